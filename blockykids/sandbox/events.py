"""
Action-event line protocol.

A remote program reports each primitive call by printing one line:

    @@blockykids:action {"name": "move_forward", "args": []}

Lines that do not start with the marker, or whose payload does not
decode, are ordinary program output.
"""

from __future__ import annotations
from dataclasses import dataclass
import json
from typing import Any

from ..engine_core.capabilities import CapabilityRegistry

ACTION_MARKER = "@@blockykids:action"


@dataclass(frozen=True)
class ActionEvent:
    name: str
    args: tuple[Any, ...] = ()


def format_event(name: str, args: tuple[Any, ...] | list[Any] = ()) -> str:
    return f"{ACTION_MARKER} {json.dumps({'name': name, 'args': list(args)})}"


def parse_line(line: str) -> ActionEvent | None:
    """Decode one stdout line; None when it is not a well-formed event."""
    if not line.startswith(ACTION_MARKER):
        return None
    try:
        payload = json.loads(line[len(ACTION_MARKER):].strip())
    except ValueError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("name"), str):
        return None
    args = payload.get("args", [])
    if not isinstance(args, list):
        return None
    return ActionEvent(payload["name"], tuple(args))


def parse_events(stdout: str) -> tuple[list[ActionEvent], list[str]]:
    """Split stdout into action events and plain output lines, in order."""
    events: list[ActionEvent] = []
    output: list[str] = []
    for line in stdout.splitlines():
        event = parse_line(line.rstrip("\r"))
        if event is None:
            output.append(line)
        else:
            events.append(event)
    return events, output


def apply_events(events: list[ActionEvent], registry: CapabilityRegistry) -> None:
    """
    Replay events through the registry in print order.

    Capability errors propagate; the registry's trace holds every action
    recorded before the failing event.
    """
    for event in events:
        registry.invoke(event.name, *event.args)
