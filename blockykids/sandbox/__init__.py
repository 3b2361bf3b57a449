"""
Execution Sandbox - Local interpreter and remote executor back ends.
"""

from .base import ExecutionOutcome, Sandbox
from .events import ACTION_MARKER, ActionEvent, format_event, parse_events, apply_events
from .expression import ExpressionContext, ExpressionEvaluator
from .local import LocalSandbox
from .remote import RemoteSandbox

__all__ = [
    "ExecutionOutcome",
    "Sandbox",
    "ACTION_MARKER",
    "ActionEvent",
    "format_event",
    "parse_events",
    "apply_events",
    "ExpressionContext",
    "ExpressionEvaluator",
    "LocalSandbox",
    "RemoteSandbox",
]
