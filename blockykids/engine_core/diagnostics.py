"""
Diagnostics and engine errors.

A Diagnostic is the structured, learner-facing report of why a run
stopped before producing a complete trace. Exceptions below are raised
inside the engine and converted into Diagnostics at the sandbox and
compiler boundaries; a negative goal verdict is never an exception.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .action import ProgramTrace


class DiagnosticKind(Enum):
    """Why a run failed."""
    COMPILE_ERROR = "compile_error"
    RUNTIME_ERROR = "runtime_error"
    TIMEOUT = "timeout"
    SANDBOX_UNAVAILABLE = "sandbox_unavailable"


@dataclass(frozen=True)
class SourceLocation:
    """Best-effort location: a source line/column or a block id."""
    line: int | None = None
    column: int | None = None
    block_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"line": self.line, "column": self.column, "block_id": self.block_id}


@dataclass(frozen=True)
class Diagnostic:
    """
    Compile, runtime or infrastructure failure of one run.

    partial_trace holds the actions captured before a runtime error;
    whether they are replayed is the session's per-domain decision.
    """
    kind: DiagnosticKind
    message: str
    location: SourceLocation | None = None
    partial_trace: ProgramTrace | None = None

    @classmethod
    def compile_error(cls, message: str, location: SourceLocation | None = None) -> Diagnostic:
        return cls(DiagnosticKind.COMPILE_ERROR, message, location)

    @classmethod
    def runtime_error(
        cls,
        message: str,
        partial_trace: ProgramTrace | None = None,
        location: SourceLocation | None = None,
    ) -> Diagnostic:
        return cls(DiagnosticKind.RUNTIME_ERROR, message, location, partial_trace)

    @classmethod
    def timeout(cls, message: str) -> Diagnostic:
        return cls(DiagnosticKind.TIMEOUT, message)

    @classmethod
    def unavailable(cls, message: str) -> Diagnostic:
        return cls(DiagnosticKind.SANDBOX_UNAVAILABLE, message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "location": self.location.to_dict() if self.location else None,
            "partial_trace": self.partial_trace.to_list() if self.partial_trace else None,
        }


# =============================================================================
# Exceptions
# =============================================================================

class BlockyKidsError(Exception):
    """Base class for engine errors."""


class CapabilityError(BlockyKidsError):
    """A primitive rejected its arguments."""


class IndexOutOfRangeError(CapabilityError):
    """Index outside the potion array (or another indexed collection)."""


class UnknownTargetError(CapabilityError):
    """Combat target id does not name a unit in the level."""


class InvalidArgumentError(CapabilityError):
    """Argument of the wrong type or outside the allowed vocabulary."""


class ProgramError(BlockyKidsError):
    """Learner program failed while evaluating (undefined name, bad operand, ...)."""

    def __init__(self, message: str, location: SourceLocation | None = None):
        self.location = location
        super().__init__(message)


class BudgetExceededError(BlockyKidsError):
    """Step, action or wall-clock budget of a run was exhausted."""


class BlockCompileError(BlockyKidsError):
    """Block workspace is malformed (unknown block type, missing field)."""

    def __init__(self, message: str, block_id: str | None = None):
        self.block_id = block_id
        super().__init__(message)


class ReplayError(BlockyKidsError):
    """Scheduler was driven out of order (e.g. step() before load())."""
