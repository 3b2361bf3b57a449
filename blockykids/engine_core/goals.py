"""
Goal verdicts.

Each domain exposes a pure check_goal(level, world, log) -> Verdict.
Validators never mutate the world or the log, and a failed goal is
reported as a Verdict, not an exception.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from .state import ActionLog


@dataclass(frozen=True)
class Verdict:
    """Outcome of checking a level goal."""
    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def passed(cls, message: str, **details: Any) -> Verdict:
        return cls(True, message, details)

    @classmethod
    def failed(cls, message: str, **details: Any) -> Verdict:
        return cls(False, message, details)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, "details": dict(self.details)}


def check_free(log: ActionLog, min_actions: int = 1) -> Verdict:
    """Free-play goal: at least min_actions meaningful actions happened."""
    count = len(log)
    if count >= max(min_actions, 1):
        return Verdict.passed("Nice work, you made something!", actions=count)
    return Verdict.failed(
        f"Do at least {max(min_actions, 1)} action(s) first",
        actions=count,
        required=max(min_actions, 1),
    )
