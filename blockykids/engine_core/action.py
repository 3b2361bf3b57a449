"""
Action System - Actions, payloads, traces and results.

Actions represent:
1. Grid moves (robot, building cursor, pixel cursor, sprite)
2. World edits (place/remove block, draw pixel, swap potions)
3. Timeline events (play note, rest, say, print)

An Action is self-contained: replaying it needs only the current
world state, never the program that produced it. All world changes
flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Iterator


class ActionType(Enum):
    """Types of world-mutating actions."""
    # Robot
    MOVE = "move"
    TURN = "turn"
    COLLECT_STAR = "collect_star"
    WAIT = "wait"

    # Building
    PLACE_BLOCK = "place_block"
    REMOVE_BLOCK = "remove_block"
    SET_COLOR = "set_color"
    GOTO = "goto"

    # Sorting
    SWAP = "swap"

    # Combat
    SELECT_TARGET = "select_target"
    ATTACK = "attack"

    # Music
    PLAY_NOTE = "play_note"
    REST = "rest"

    # Sprite animation
    JUMP = "jump"
    SAY = "say"
    SCALE = "scale"
    ROTATE = "rotate"

    # Pixel art
    DRAW_PIXEL = "draw_pixel"

    # Arithmetic console
    PRINT = "print"


@dataclass(frozen=True)
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields; unused fields stay None.
    Validation of the values against a world happens in the reducer.
    """
    # Relative movement
    dx: int | float | None = None
    dy: int | float | None = None
    dz: int | float | None = None

    # Absolute cell (place/remove/draw/goto)
    position: tuple[int, ...] | None = None

    # Rotation in degrees (turn, rotate)
    degrees: int | float | None = None

    color: str | None = None

    # Swap indices
    first: int | None = None
    second: int | None = None

    target_id: str | None = None
    note: str | None = None
    text: str | None = None

    # Timing
    seconds: float | None = None
    beats: float | None = None

    percent: float | None = None


@dataclass(frozen=True)
class Action:
    """
    A single atomic, replayable world mutation.

    Actions are:
    - Recorded by capability primitives into a ProgramTrace
    - Applied one at a time by the reducer during replay
    - Serializable to plain dicts for the API and logs
    """
    action_type: ActionType
    payload: ActionPayload = field(default_factory=ActionPayload)

    @classmethod
    def move(cls, dx: int | float = 0, dy: int | float = 0, dz: int | float = 0) -> Action:
        """Factory for a relative move."""
        return cls(ActionType.MOVE, ActionPayload(dx=dx, dy=dy, dz=dz))

    @classmethod
    def turn(cls, delta: int) -> Action:
        """Factory for a heading change; positive is clockwise."""
        return cls(ActionType.TURN, ActionPayload(degrees=delta))

    @classmethod
    def collect_star(cls) -> Action:
        return cls(ActionType.COLLECT_STAR)

    @classmethod
    def wait(cls, seconds: float) -> Action:
        return cls(ActionType.WAIT, ActionPayload(seconds=seconds))

    @classmethod
    def place_block(cls, position: tuple[int, int, int], color: str) -> Action:
        return cls(ActionType.PLACE_BLOCK, ActionPayload(position=tuple(position), color=color))

    @classmethod
    def remove_block(cls, position: tuple[int, int, int]) -> Action:
        return cls(ActionType.REMOVE_BLOCK, ActionPayload(position=tuple(position)))

    @classmethod
    def set_color(cls, color: str) -> Action:
        return cls(ActionType.SET_COLOR, ActionPayload(color=color))

    @classmethod
    def goto(cls, x: int, y: int, z: int = 0) -> Action:
        return cls(ActionType.GOTO, ActionPayload(position=(x, y, z)))

    @classmethod
    def swap(cls, i: int, j: int) -> Action:
        """Factory for swapping two potions."""
        return cls(ActionType.SWAP, ActionPayload(first=i, second=j))

    @classmethod
    def select_target(cls, target_id: str) -> Action:
        return cls(ActionType.SELECT_TARGET, ActionPayload(target_id=target_id))

    @classmethod
    def attack(cls, target_id: str) -> Action:
        return cls(ActionType.ATTACK, ActionPayload(target_id=target_id))

    @classmethod
    def play_note(cls, note: str) -> Action:
        return cls(ActionType.PLAY_NOTE, ActionPayload(note=note))

    @classmethod
    def rest(cls, beats: float) -> Action:
        return cls(ActionType.REST, ActionPayload(beats=beats))

    @classmethod
    def jump(cls) -> Action:
        return cls(ActionType.JUMP)

    @classmethod
    def say(cls, text: str) -> Action:
        return cls(ActionType.SAY, ActionPayload(text=text))

    @classmethod
    def scale(cls, percent: float) -> Action:
        return cls(ActionType.SCALE, ActionPayload(percent=percent))

    @classmethod
    def rotate(cls, degrees: float) -> Action:
        return cls(ActionType.ROTATE, ActionPayload(degrees=degrees))

    @classmethod
    def draw_pixel(cls, position: tuple[int, int], color: str) -> Action:
        return cls(ActionType.DRAW_PIXEL, ActionPayload(position=tuple(position), color=color))

    @classmethod
    def print_text(cls, text: str) -> Action:
        return cls(ActionType.PRINT, ActionPayload(text=text))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict, omitting unused payload fields."""
        data: dict[str, Any] = {"type": self.action_type.value}
        for f in fields(self.payload):
            value = getattr(self.payload, f.name)
            if value is None:
                continue
            data[f.name] = list(value) if isinstance(value, tuple) else value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Action:
        """Inverse of to_dict. Raises ValueError for unknown types or fields."""
        try:
            action_type = ActionType(data["type"])
        except (KeyError, ValueError) as e:
            raise ValueError(f"Unknown action type in {data!r}") from e

        known = {f.name for f in fields(ActionPayload)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key == "type":
                continue
            if key not in known:
                raise ValueError(f"Unknown payload field '{key}' for {action_type.value}")
            values[key] = tuple(value) if isinstance(value, list) else value
        return cls(action_type, ActionPayload(**values))

    def describe(self) -> str:
        """Short human-readable description, used in replay logs."""
        p = self.payload
        if self.action_type == ActionType.MOVE:
            parts = [f"{axis}={value:+}" for axis, value in (("dx", p.dx), ("dy", p.dy), ("dz", p.dz)) if value]
            return f"move {' '.join(parts) or 'nowhere'}"
        if self.action_type == ActionType.SWAP:
            return f"swap {p.first}<->{p.second}"
        if self.action_type in {ActionType.PLACE_BLOCK, ActionType.DRAW_PIXEL}:
            return f"{self.action_type.value} {p.position} {p.color}"
        detail = next(
            (v for v in (p.degrees, p.position, p.color, p.target_id, p.note,
                         p.text, p.seconds, p.beats, p.percent) if v is not None),
            None,
        )
        return self.action_type.value if detail is None else f"{self.action_type.value} {detail}"


@dataclass(frozen=True)
class ProgramTrace:
    """
    Ordered, finite, immutable sequence of Actions from one run.

    Replaying the same trace against the same initial world always
    yields the same final world.
    """
    actions: tuple[Action, ...] = ()

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __getitem__(self, index: int) -> Action:
        return self.actions[index]

    def __bool__(self) -> bool:
        return bool(self.actions)

    def to_list(self) -> list[dict[str, Any]]:
        return [action.to_dict() for action in self.actions]

    @classmethod
    def from_list(cls, items: list[dict[str, Any]]) -> ProgramTrace:
        return cls(tuple(Action.from_dict(item) for item in items))


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New world state (if succeeded)
    - Errors (if failed)
    - Human-readable changes (for the UI and replay log)
    """
    success: bool
    new_state: Any | None = None  # WorldState
    error: str | None = None
    error_code: str | None = None

    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
        )
