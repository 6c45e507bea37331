"""Platform table and command construction for the flex/gcc toolchain.

Everything here is pure: functions take the session paths and a platform
profile and return argument lists, they never spawn processes.
"""
import os
import sys
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

FLEX = "flex"
GCC = "gcc"

LEX_FILE = "input.l"
C_FILE = "lex.yy.c"
INPUT_FILE = "input.txt"


@dataclass(frozen=True)
class PlatformProfile:
    name: str
    executable: str
    link_flags: Tuple[str, ...]
    blank_stdin: str


# libfl supplies yywrap/main on POSIX-like systems; Windows flex ports
# (win_flex) ship without it.
WINDOWS = PlatformProfile("win32", "a.exe", (), "\r\n")
POSIX = PlatformProfile("posix", "a.out", ("-lfl",), "\n")

PLATFORMS = {
    "win32": WINDOWS,
}


def resolve_platform(platform: Optional[str] = None) -> PlatformProfile:
    """Pick the toolchain profile for a ``sys.platform`` value."""
    platform = platform or sys.platform
    return PLATFORMS.get(platform, POSIX)


class SessionPaths(NamedTuple):
    workdir: str
    lex_file: str
    c_file: str
    executable: str
    input_file: str


def session_paths(workdir: str, profile: PlatformProfile) -> SessionPaths:
    return SessionPaths(
        workdir,
        os.path.join(workdir, LEX_FILE),
        os.path.join(workdir, C_FILE),
        os.path.join(workdir, profile.executable),
        os.path.join(workdir, INPUT_FILE),
    )


def generate_command(paths: SessionPaths, profile: PlatformProfile) -> List[str]:
    # flex writes lex.yy.c into its working directory
    return [FLEX, paths.lex_file]


def compile_command(paths: SessionPaths, profile: PlatformProfile) -> List[str]:
    return [GCC, paths.c_file, "-o", paths.executable, *profile.link_flags]


def execute_command(paths: SessionPaths, profile: PlatformProfile) -> List[str]:
    return [paths.executable]
