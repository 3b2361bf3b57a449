"""
World State - Generic per-domain world container and action log.

Design principles:
- Immutable-friendly: the reducer returns a new world per action
- Serializable: to_dict() feeds the API and replay listeners
- Rebuilt from the level's starting configuration before every run
- Domain-specific worlds (robot, building, ...) inherit from WorldState
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Iterable, Iterator, TypeVar

from .action import Action, ActionType

W = TypeVar("W", bound="WorldState")


def clamp(value: int, low: int, high: int) -> int:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


@dataclass(frozen=True)
class WorldState:
    """
    Base class for domain worlds.

    Subclasses are frozen dataclasses; use with_changes() to derive a
    modified copy. The reducer is the only code that calls it.
    """

    def with_changes(self: W, **changes: Any) -> W:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-friendly dict of the world."""
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, WorldState):
        return value.to_dict()
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        # Coordinate-keyed maps become sorted [key, value] pairs
        if any(isinstance(k, tuple) for k in value):
            return [[_plain(k), _plain(v)] for k, v in sorted(value.items())]
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (tuple, list, frozenset, set)):
        items = [_plain(v) for v in value]
        if isinstance(value, (frozenset, set)):
            items.sort(key=repr)
        return items
    return value


@dataclass
class ActionLog:
    """
    Subsequence of applied actions that matter for goal checking.

    A domain declares which action types it logs; None means every
    applied action is logged.
    """
    logged_types: frozenset[ActionType] | None = None
    entries: list[Action] = field(default_factory=list)

    def record(self, action: Action) -> bool:
        """Append action if relevant. Returns True when it was logged."""
        if self.logged_types is not None and action.action_type not in self.logged_types:
            return False
        self.entries.append(action)
        return True

    def clear(self) -> None:
        self.entries.clear()

    def of_type(self, *action_types: ActionType) -> list[Action]:
        return [a for a in self.entries if a.action_type in action_types]

    def contains(self, action_type: ActionType) -> bool:
        return any(a.action_type == action_type for a in self.entries)

    def notes(self) -> list[str]:
        """Notes played, in order."""
        return [a.payload.note for a in self.of_type(ActionType.PLAY_NOTE)]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.entries)

    def to_list(self) -> list[dict[str, Any]]:
        return [a.to_dict() for a in self.entries]

    @classmethod
    def of(cls, actions: Iterable[Action], logged_types: frozenset[ActionType] | None = None) -> ActionLog:
        """Build a log by recording each action in order."""
        log = cls(logged_types=logged_types)
        for action in actions:
            log.record(action)
        return log
