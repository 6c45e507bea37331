from dataclasses import dataclass
from typing import Dict, Optional

GENERATION = "generation"
COMPILATION = "compilation"
EXECUTION = "execution"
UNKNOWN = "unknown"
NONE = "none"


class ValidationError(ValueError):
    """Raised when a compile request carries no Lex source."""


class ToolFailure(Exception):
    """An external tool exited non-zero, crashed or could not be launched."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message


class TimeoutFailure(ToolFailure):
    """An external tool ran past the stage timeout and was killed."""


@dataclass(frozen=True)
class CompileResult:
    success: bool
    output: str = ""
    error: Optional[str] = None
    stage: str = NONE

    @classmethod
    def ok(cls, output: str) -> "CompileResult":
        return cls(True, output=output)

    @classmethod
    def failure(cls, stage: str, error: str) -> "CompileResult":
        return cls(False, error=error, stage=stage)

    def to_json(self) -> Dict:
        if self.success:
            return {
                "success": True,
                "output": self.output,
                "message": "Compilation and execution successful",
            }
        return {"success": False, "error": self.error, "stage": self.stage}
