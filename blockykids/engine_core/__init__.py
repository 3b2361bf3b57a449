"""
Engine Core - Actions, worlds, the reducer and capability registries.

The core is the runtime vocabulary shared by every domain:
1. Actions and ProgramTraces
2. WorldState and the ActionLog
3. The reducer that applies actions to worlds
4. Capability registries that record actions
5. Diagnostics and goal Verdicts
"""

from .action import Action, ActionType, ActionPayload, ActionResult, ProgramTrace
from .state import WorldState, ActionLog, clamp
from .reducer import Reducer
from .capabilities import CapabilityRegistry, TraceRecorder, PrimitiveInfo, primitive
from .diagnostics import (
    Diagnostic,
    DiagnosticKind,
    SourceLocation,
    BlockyKidsError,
    CapabilityError,
    IndexOutOfRangeError,
    UnknownTargetError,
    InvalidArgumentError,
    ProgramError,
    BudgetExceededError,
    BlockCompileError,
    ReplayError,
)
from .goals import Verdict

__all__ = [
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ProgramTrace",
    "WorldState",
    "ActionLog",
    "clamp",
    "Reducer",
    "CapabilityRegistry",
    "TraceRecorder",
    "PrimitiveInfo",
    "primitive",
    "Diagnostic",
    "DiagnosticKind",
    "SourceLocation",
    "BlockyKidsError",
    "CapabilityError",
    "IndexOutOfRangeError",
    "UnknownTargetError",
    "InvalidArgumentError",
    "ProgramError",
    "BudgetExceededError",
    "BlockCompileError",
    "ReplayError",
    "Verdict",
]
