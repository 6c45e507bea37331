"""End-to-end runs against the real flex and gcc toolchain."""
import os
import shutil
import subprocess
import time
from ctypes.util import find_library
from pathlib import Path

import pytest

from lexweb.lex_tool import LexTool
from lexweb.sessions import SessionManager

pytestmark = pytest.mark.skipif(
    shutil.which("flex") is None or shutil.which("gcc") is None or find_library("fl") is None,
    reason="flex, gcc and libfl are required",
)

WORD_COUNT = r"""
%option noyywrap
%{
#include <stdio.h>
int lines = 0, words = 0, chars = 0;
%}
%%
\n          { lines++; chars++; }
[^ \t\n]+   { words++; chars += yyleng; }
.           { chars++; }
%%
int main(void)
{
    yylex();
    printf("lines=%d words=%d chars=%d\n", lines, words, chars);
    return 0;
}
"""

SAMPLE = "the quick brown fox\njumps over\nthe lazy dog\nend\n"

INFINITE_LOOP = r"""
%option noyywrap
%%
.|\n    ;
%%
int main(void)
{
    for (;;) {
    }
    return 0;
}
"""

UNDEFINED_SYMBOL = r"""
%option noyywrap
%%
.|\n    { no_such_function_anywhere(); }
%%
int main(void)
{
    return yylex();
}
"""

BAD_GRAMMAR = "%%\n[a-z\n"


@pytest.fixture
def tool(sessions: SessionManager) -> LexTool:
    return LexTool(sessions)


def test_word_count(tool: LexTool, sessions: SessionManager) -> None:
    result = tool.compile_and_run(WORD_COUNT, SAMPLE)

    assert result.success, result.error
    assert result.output == "lines=4 words=10 chars=48\n"
    assert os.listdir(sessions.root) == []


def test_same_request_is_deterministic(tool: LexTool) -> None:
    first = tool.compile_and_run(WORD_COUNT, SAMPLE)
    second = tool.compile_and_run(WORD_COUNT, SAMPLE)
    assert first == second


def test_blank_stdin(tool: LexTool) -> None:
    result = tool.compile_and_run(WORD_COUNT)
    assert result.output == "lines=1 words=0 chars=1\n"


def test_generation_error(tool: LexTool) -> None:
    result = tool.compile_and_run(BAD_GRAMMAR)
    assert not result.success
    assert result.stage == "generation"
    assert result.error


def test_compilation_error(tool: LexTool) -> None:
    result = tool.compile_and_run(UNDEFINED_SYMBOL, "abc")
    assert not result.success
    assert result.stage == "compilation"


def test_infinite_loop_times_out(sessions: SessionManager) -> None:
    tool = LexTool(sessions, timeout=1)

    started = time.monotonic()
    result = tool.compile_and_run(INFINITE_LOOP)

    assert result.stage == "execution"
    assert time.monotonic() - started < 30
    assert os.listdir(sessions.root) == []
    if shutil.which("pgrep"):
        running = subprocess.run(
            ["pgrep", "-f", str(Path(sessions.root))], capture_output=True, text=True
        )
        assert running.stdout == ""
