"""
Error taxonomy for the analysis pipelines.

Exceptions are raised for conditions that abort a run. Tool failures are
never raised: every tool invocation returns a ToolResult whose error field
tells the caller what went wrong, and the caller decides whether to degrade
or abort.

Failure policy:

    failure                                  where                       policy
    ---------------------------------------  --------------------------  -----------------------------------
    tool timeout/failed/unavailable/invalid  specialist tool loops       degrade, error text is the tool result
    web search budget exhausted              specialist tool loop        degrade, explanatory tool result
    status-update model call fails           status updates              degrade, static title/message
    router model timeout/error               lightweight router          degrade, route to "plan"
    compression transport failure            compressor                  retry 3x with linear backoff, then raise
    protocol violation                       supervisor                  abort run
    any other model error                    clarify/brief/specialist/   raise, run result becomes "problem"
                                             report
    cancellation                             everywhere                  abort run, result "cancelled"
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnalysisError(Exception):
    """Base class for errors that abort an analysis run."""


class ProtocolViolationError(AnalysisError):
    """The model answered without tool calls although tool use was forced."""


class ToolTimeoutError(AnalysisError):
    """A guarded call did not finish within its timeout."""

    def __init__(self, message: str = "tool-timeout"):
        super().__init__(message)


class RunCancelledError(AnalysisError):
    """The run's cancellation token fired."""

    def __init__(self, message: str = "Run cancelled"):
        super().__init__(message)


class ToolErrorKind(str, Enum):
    TIMEOUT = "timeout"
    INVALID_INPUT = "invalid_input"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


class ToolError(BaseModel):
    """Describes why a tool invocation did not produce output."""

    tool: str
    kind: ToolErrorKind
    message: str

    def describe(self) -> str:
        return f"Error running {self.tool} ({self.kind.value}): {self.message}"


class ToolResult(BaseModel):
    """Outcome of one tool invocation: either output or an error, never both."""

    ok: bool
    output: Any = None
    error: Optional[ToolError] = None
    sources: List[Dict[str, str]] = Field(default_factory=list)

    @classmethod
    def success(cls, output: Any, sources: Optional[List[Dict[str, str]]] = None) -> "ToolResult":
        return cls(ok=True, output=output, sources=sources or [])

    @classmethod
    def failure(cls, tool: str, kind: ToolErrorKind, message: str) -> "ToolResult":
        return cls(ok=False, error=ToolError(tool=tool, kind=kind, message=message))
