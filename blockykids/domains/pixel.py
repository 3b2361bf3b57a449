"""
Pixel domain - Drawing on a small square canvas with a cursor.

The cursor only moves right and down and stops at the last cell.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, primitive
from ..engine_core.diagnostics import InvalidArgumentError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState, clamp
from ..level_schema.levels import FreeGoal, PixelLevel
from .base import Domain

WARNA = {
    "merah": "#ff0000",
    "hijau": "#00ff00",
    "biru": "#0000ff",
    "kuning": "#ffff00",
    "oranye": "#ff8800",
    "ungu": "#9900ff",
    "pink": "#ff69b4",
    "coklat": "#8b4513",
    "hitam": "#000000",
    "putih": "#ffffff",
    "abu": "#808080",
}


def color_hex(name) -> str:
    """Hex value of a named color; raises InvalidArgumentError otherwise."""
    key = str(name).strip().lower()
    if key in WARNA:
        return WARNA[key]
    if key in WARNA.values():
        return key
    raise InvalidArgumentError(f"Unknown color {name!r}; use one of {', '.join(WARNA)}")


@dataclass(frozen=True)
class PixelWorld(WorldState):
    size: int
    cursor: tuple[int, int] = (0, 0)
    color: str = "#ff0000"
    pixels: dict[tuple[int, int], str] = field(default_factory=dict, hash=False)


def initial_world(level: PixelLevel) -> PixelWorld:
    return PixelWorld(size=level.size, color=color_hex(level.default_color))


def _handle_draw(state: PixelWorld, action: Action) -> ActionResult:
    x, y = tuple(action.payload.position or state.cursor)
    if not (0 <= x < state.size and 0 <= y < state.size):
        return ActionResult.failure(f"Pixel ({x}, {y}) is outside the canvas", "OUT_OF_BOUNDS")
    color = action.payload.color or state.color
    pixels = dict(state.pixels)
    pixels[(x, y)] = color
    return ActionResult.success_with_state(state.with_changes(pixels=pixels), [f"Drew {color} at ({x}, {y})"])


def _handle_move(state: PixelWorld, action: Action) -> ActionResult:
    x, y = state.cursor
    last = state.size - 1
    cursor = (clamp(x + int(action.payload.dx or 0), 0, last), clamp(y + int(action.payload.dy or 0), 0, last))
    return ActionResult.success_with_state(state.with_changes(cursor=cursor), [f"Cursor at {cursor}"])


def _handle_set_color(state: PixelWorld, action: Action) -> ActionResult:
    if not action.payload.color:
        return ActionResult.failure("set_color needs a color", "INVALID_COLOR")
    return ActionResult.success_with_state(state.with_changes(color=action.payload.color))


HANDLERS = {
    ActionType.DRAW_PIXEL: _handle_draw,
    ActionType.MOVE: _handle_move,
    ActionType.SET_COLOR: _handle_set_color,
}


class PixelCapabilities(CapabilityRegistry):
    """Pixel primitives; cursor and color are mirrored to record absolute draws."""
    domain = "pixel"

    def __init__(self, level: PixelLevel, max_actions: int = 1000, recorder=None):
        super().__init__(level, max_actions, recorder)
        self._size = level.size
        self._cursor = (0, 0)
        self._color = color_hex(level.default_color)

    @primitive("draw", aliases=("gambar", "pixelDraw"))
    def draw(self):
        """Paint the cursor cell with the current color."""
        self.record(Action.draw_pixel(self._cursor, self._color))

    @primitive("move_right", aliases=("geser_kanan", "moveRight"))
    def move_right(self):
        """Move the cursor one cell right."""
        x, y = self._cursor
        self._cursor = (min(x + 1, self._size - 1), y)
        self.record(Action.move(dx=1))

    @primitive("move_down", aliases=("geser_bawah", "moveDown"))
    def move_down(self):
        """Move the cursor one cell down."""
        x, y = self._cursor
        self._cursor = (x, min(y + 1, self._size - 1))
        self.record(Action.move(dy=1))

    @primitive("set_color", aliases=("warna", "setColor"))
    def set_color(self, name):
        """Choose a named color."""
        self._color = color_hex(name)
        self.record(Action.set_color(self._color))


def check_goal(level: PixelLevel, state: PixelWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    cells = [tuple(c) for c in goal.cells]
    missing = [c for c in cells if c not in state.pixels]
    details = {"drawn": len(state.pixels), "missing": [list(c) for c in missing]}
    if missing:
        return Verdict.failed(f"{len(missing)} pixel(s) of the picture are still empty", **details)

    if goal.colors is not None:
        wrong = [
            list(cell) for cell, wanted in zip(cells, goal.colors)
            if state.pixels[cell] != color_hex(wanted)
        ]
        if wrong:
            return Verdict.failed(f"{len(wrong)} pixel(s) have the wrong color", wrong_color=wrong, **details)
    return Verdict.passed("Beautiful picture!", **details)


def source_prelude(level: PixelLevel) -> str:
    """Color shortcuts: merah() selects red, and so on."""
    return "\n".join(f'def {name}(): set_color("{name}")' for name in WARNA)


PIXEL = Domain(
    name="pixel",
    title="Pixel Art",
    level_type=PixelLevel,
    world_type=PixelWorld,
    registry_type=PixelCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={
        ActionType.DRAW_PIXEL: 0.1,
        ActionType.MOVE: 0.1,
        ActionType.SET_COLOR: 0.1,
    },
    logged_actions=frozenset({ActionType.DRAW_PIXEL}),
    blocks=(
        BlockSpec("pixel_draw", "draw"),
        BlockSpec("pixel_move_right", "move_right"),
        BlockSpec("pixel_move_down", "move_down"),
        BlockSpec("pixel_set_color", "set_color", (ArgSpec("COLOR", "merah"),)),
    ),
    source_prelude=source_prelude,
    helper_names=frozenset(WARNA),
)
