import logging
import subprocess
from typing import List, Optional

from .results import (
    COMPILATION,
    EXECUTION,
    GENERATION,
    UNKNOWN,
    CompileResult,
    TimeoutFailure,
    ToolFailure,
)
from .sessions import SessionManager
from .toolchain import (
    PlatformProfile,
    SessionPaths,
    compile_command,
    execute_command,
    generate_command,
    resolve_platform,
    session_paths,
)

logger = logging.getLogger(__name__)

STAGE_TIMEOUT = 10


def _decode(data: Optional[bytes]) -> str:
    # no newline translation in either direction
    return data.decode("utf-8", "replace") if data else ""


class LexTool:
    def __init__(
        self,
        sessions: SessionManager,
        timeout: float = STAGE_TIMEOUT,
        profile: Optional[PlatformProfile] = None,
    ):
        self.sessions = sessions
        self.timeout = timeout
        self.profile = profile or resolve_platform()

    def _run_command(
        self, stage: str, cmd: List[str], cwd: str, stdin_data: Optional[bytes] = None
    ) -> str:
        """Run one stage command and return its stdout, raising ToolFailure."""
        logger.info("Running %s: %s", stage, " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                cwd=cwd,
                input=stdin_data,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            stderr = _decode(e.stderr)
            message = stderr or f"Command timed out after {self.timeout} seconds: {' '.join(cmd)}"
            raise TimeoutFailure(stage, message) from e
        except OSError as e:
            raise ToolFailure(stage, str(e)) from e

        stderr = _decode(proc.stderr)
        if proc.returncode != 0:
            logger.error("Error output: %s", stderr)
            message = stderr or (
                f"Command failed: {' '.join(cmd)} (exit code {proc.returncode})"
            )
            raise ToolFailure(stage, message)
        return _decode(proc.stdout)

    def run_flex(self, paths: SessionPaths) -> None:
        """Generate lex.yy.c from the grammar file."""
        self._run_command(GENERATION, generate_command(paths, self.profile), paths.workdir)

    def run_gcc(self, paths: SessionPaths) -> None:
        """Build the generated scanner into an executable."""
        self._run_command(COMPILATION, compile_command(paths, self.profile), paths.workdir)

    def run_program(self, paths: SessionPaths, has_input: bool) -> str:
        """Run the built scanner and return its stdout untouched."""
        if has_input:
            with open(paths.input_file, "rb") as f:
                stdin_data = f.read()
        else:
            stdin_data = self.profile.blank_stdin.encode("utf-8")
        return self._run_command(
            EXECUTION, execute_command(paths, self.profile), paths.workdir, stdin_data
        )

    def compile_and_run(self, source: str, input_text: Optional[str] = None) -> CompileResult:
        """Generate, compile and execute inside a fresh session."""
        try:
            workdir = self.sessions.create()
        except OSError as e:
            logger.error("Failed to create session: %s", e)
            return CompileResult.failure(UNKNOWN, f"Failed to create workspace: {e}")

        try:
            paths = session_paths(workdir, self.profile)
            with open(paths.lex_file, "w", encoding="utf-8", newline="") as f:
                f.write(source)
            if input_text:
                with open(paths.input_file, "w", encoding="utf-8", newline="") as f:
                    f.write(input_text)

            self.run_flex(paths)
            self.run_gcc(paths)
            output = self.run_program(paths, has_input=bool(input_text))
        except ToolFailure as e:
            logger.error("%s failed: %s", e.stage, e.message)
            return CompileResult.failure(e.stage, e.message)
        finally:
            self.sessions.destroy(workdir)

        logger.info("Success! Output: %r", output)
        return CompileResult.ok(output)
