import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List

from pytest import fixture

from lexweb.app import create_app
from lexweb.sessions import SessionManager


@fixture
def scratch_root(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@fixture
def app(scratch_root: Path):
    return create_app({"SCRATCH_ROOT": str(scratch_root), "SWEEP_ENABLED": False})


@fixture
def client(app):
    return app.test_client()


@fixture
def sessions(scratch_root: Path) -> SessionManager:
    manager = SessionManager(str(scratch_root))
    manager.ensure_root()
    return manager


class FakeToolchain:
    """Stands in for subprocess.run, answering per tool name."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.results: Dict[str, Any] = {}

    def set(self, tool: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.results[tool] = (returncode, stdout, stderr)

    def raise_on(self, tool: str, error: BaseException) -> None:
        self.results[tool] = error

    def __call__(self, cmd, cwd=None, input=None, timeout=None, **kwargs):
        tool = os.path.basename(cmd[0])
        self.calls.append({"tool": tool, "cmd": list(cmd), "cwd": cwd, "input": input})
        outcome = self.results.get(tool, (0, "", ""))
        if isinstance(outcome, BaseException):
            raise outcome
        returncode, stdout, stderr = outcome
        return subprocess.CompletedProcess(
            cmd, returncode, stdout.encode("utf-8"), stderr.encode("utf-8")
        )

    @property
    def tools(self) -> List[str]:
        return [call["tool"] for call in self.calls]


@fixture
def fake_toolchain(monkeypatch) -> FakeToolchain:
    fake = FakeToolchain()
    monkeypatch.setattr("lexweb.lex_tool.subprocess.run", fake)
    return fake
