"""
Building domain - Placing colored blocks in a 3D build area.

A cursor moves through the area; place/remove act on the cursor cell.
Blocks are keyed by coordinate, so a cell holds at most one block.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import re
from typing import Any

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, as_int, primitive
from ..engine_core.diagnostics import InvalidArgumentError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState, clamp
from ..level_schema.levels import BuildingLevel, FreeGoal
from .base import Domain

# Named block colors, also generated as source shortcuts: merah(), ...
BUILD_COLORS = {
    "merah": "#e74c3c",
    "oranye": "#e67e22",
    "kuning": "#f1c40f",
    "hijau": "#2ecc71",
    "biru": "#3498db",
    "ungu": "#9b59b6",
    "putih": "#ecf0f1",
    "coklat": "#795548",
    "abu_abu": "#95a5a6",
}

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")

Coord = tuple[int, int, int]


def resolve_color(value: Any) -> str:
    """Named color or #rrggbb hex; anything else is rejected."""
    text = str(value).strip()
    if text.lower() in BUILD_COLORS:
        return BUILD_COLORS[text.lower()]
    if HEX_COLOR.match(text):
        return text.lower()
    raise InvalidArgumentError(
        f"Unknown color {value!r}; use #rrggbb or one of {', '.join(BUILD_COLORS)}"
    )


@dataclass(frozen=True)
class BuildingWorld(WorldState):
    width: int
    height: int
    depth: int
    cursor: Coord = (0, 0, 0)
    color: str = "#e74c3c"
    blocks: dict[Coord, str] = field(default_factory=dict, hash=False)

    def clamp_cell(self, x: int, y: int, z: int) -> Coord:
        return (
            clamp(x, 0, self.width - 1),
            clamp(y, 0, self.height - 1),
            clamp(z, 0, self.depth - 1),
        )

    def contains(self, cell: tuple[int, ...]) -> bool:
        x, y, z = cell
        return 0 <= x < self.width and 0 <= y < self.height and 0 <= z < self.depth


def initial_world(level: BuildingLevel) -> BuildingWorld:
    size = level.grid_size
    world = BuildingWorld(
        width=size.width,
        height=size.height,
        depth=size.depth,
        color=level.default_color.lower(),
    )
    return world.with_changes(cursor=world.clamp_cell(level.start.x, level.start.y, level.start.z))


# =============================================================================
# Reducer handlers
# =============================================================================

def _handle_place_block(state: BuildingWorld, action: Action) -> ActionResult:
    position = tuple(action.payload.position or state.cursor)
    if len(position) != 3 or not state.contains(position):
        return ActionResult.failure(f"Cannot place a block outside the build area at {position}", "OUT_OF_BOUNDS")
    color = action.payload.color or state.color
    blocks = dict(state.blocks)
    blocks[position] = color
    return ActionResult.success_with_state(
        state.with_changes(blocks=blocks),
        [f"Placed {color} block at {position}"],
    )


def _handle_remove_block(state: BuildingWorld, action: Action) -> ActionResult:
    position = tuple(action.payload.position or state.cursor)
    if position not in state.blocks:
        return ActionResult.success_with_state(state, [f"No block to remove at {position}"])
    blocks = {cell: color for cell, color in state.blocks.items() if cell != position}
    return ActionResult.success_with_state(state.with_changes(blocks=blocks), [f"Removed block at {position}"])


def _handle_move(state: BuildingWorld, action: Action) -> ActionResult:
    p = action.payload
    x, y, z = state.cursor
    cursor = state.clamp_cell(x + int(p.dx or 0), y + int(p.dy or 0), z + int(p.dz or 0))
    return ActionResult.success_with_state(state.with_changes(cursor=cursor), [f"Cursor at {cursor}"])


def _handle_goto(state: BuildingWorld, action: Action) -> ActionResult:
    x, y, z = action.payload.position
    cursor = state.clamp_cell(int(x), int(y), int(z))
    return ActionResult.success_with_state(state.with_changes(cursor=cursor), [f"Cursor at {cursor}"])


def _handle_set_color(state: BuildingWorld, action: Action) -> ActionResult:
    color = action.payload.color
    if not color:
        return ActionResult.failure("set_color needs a color", "INVALID_COLOR")
    return ActionResult.success_with_state(state.with_changes(color=color), [f"Color is now {color}"])


HANDLERS = {
    ActionType.PLACE_BLOCK: _handle_place_block,
    ActionType.REMOVE_BLOCK: _handle_remove_block,
    ActionType.MOVE: _handle_move,
    ActionType.GOTO: _handle_goto,
    ActionType.SET_COLOR: _handle_set_color,
}


# =============================================================================
# Capabilities
# =============================================================================

class BuildingCapabilities(CapabilityRegistry):
    """
    Building primitives.

    The registry mirrors the cursor and color so each placed block is
    recorded with its absolute cell.
    """
    domain = "building"

    def __init__(self, level: BuildingLevel, max_actions: int = 1000, recorder=None):
        super().__init__(level, max_actions, recorder)
        self._world = initial_world(level)

    @property
    def cursor(self) -> Coord:
        return self._world.cursor

    @primitive("place_block", aliases=("taruh_blok", "buildPlaceBlock"))
    def place_block(self):
        """Place a block of the current color at the cursor."""
        self.record(Action.place_block(self._world.cursor, self._world.color))

    @primitive("remove_block", aliases=("hapus_blok", "buildRemoveBlock"))
    def remove_block(self):
        """Remove the block at the cursor."""
        self.record(Action.remove_block(self._world.cursor))

    def _move(self, dx: int = 0, dy: int = 0, dz: int = 0) -> None:
        x, y, z = self._world.cursor
        cursor = self._world.clamp_cell(x + dx, y + dy, z + dz)
        self._world = self._world.with_changes(cursor=cursor)
        self.record(Action.move(dx, dy, dz))

    @primitive("move_x", aliases=("gerak_x", "buildMoveX"))
    def move_x(self, distance=1):
        """Move the cursor left/right."""
        self._move(dx=as_int(distance, "distance"))

    @primitive("move_y", aliases=("gerak_y", "buildMoveY"))
    def move_y(self, distance=1):
        """Move the cursor up/down (height)."""
        self._move(dy=as_int(distance, "distance"))

    @primitive("move_z", aliases=("gerak_z", "buildMoveZ"))
    def move_z(self, distance=1):
        """Move the cursor forward/back."""
        self._move(dz=as_int(distance, "distance"))

    @primitive("goto", aliases=("ke_posisi", "buildGoto"))
    def goto(self, x, y, z):
        """Jump the cursor to (x, y, z)."""
        x, y, z = as_int(x, "x"), as_int(y, "y"), as_int(z, "z")
        self._world = self._world.with_changes(cursor=self._world.clamp_cell(x, y, z))
        self.record(Action.goto(x, y, z))

    @primitive("set_color", aliases=("warna", "buildSetColor"))
    def set_color(self, color):
        """Choose the color for the next blocks."""
        color = resolve_color(color)
        self._world = self._world.with_changes(color=color)
        self.record(Action.set_color(color))


# =============================================================================
# Goal
# =============================================================================

def check_goal(level: BuildingLevel, state: BuildingWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    placed = state.blocks
    target = {(c.x, c.y, c.z): (c.color or "").lower() for c in goal.target}
    missing = sorted(cell for cell in target if cell not in placed)
    wrong_color = sorted(
        cell for cell, color in target.items()
        if goal.match_colors and cell in placed and placed[cell].lower() != color
    )
    extra = sorted(cell for cell in placed if cell not in target) if goal.exact else []
    details = {
        "placed": len(placed),
        "missing": [list(c) for c in missing],
        "wrong_color": [list(c) for c in wrong_color],
        "extra": [list(c) for c in extra],
    }

    if missing:
        return Verdict.failed(f"{len(missing)} block(s) of the structure are missing", **details)
    if wrong_color:
        return Verdict.failed(f"{len(wrong_color)} block(s) have the wrong color", **details)
    if extra:
        return Verdict.failed(f"{len(extra)} block(s) are not part of the structure", **details)
    if goal.min_blocks is not None and len(placed) < goal.min_blocks:
        return Verdict.failed(f"Place at least {goal.min_blocks} block(s); you placed {len(placed)}", **details)
    return Verdict.passed("The structure is complete!", **details)


def source_prelude(level: BuildingLevel) -> str:
    """Color shortcuts: merah() sets the red block color, and so on."""
    return "\n".join(f'def {name}(): set_color("{name}")' for name in BUILD_COLORS)


BUILDING = Domain(
    name="building",
    title="Block Builder",
    level_type=BuildingLevel,
    world_type=BuildingWorld,
    registry_type=BuildingCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={
        ActionType.PLACE_BLOCK: 0.15,
        ActionType.REMOVE_BLOCK: 0.1,
        ActionType.MOVE: 0.08,
        ActionType.GOTO: 0.1,
        ActionType.SET_COLOR: 0.05,
    },
    logged_actions=frozenset({ActionType.PLACE_BLOCK, ActionType.REMOVE_BLOCK}),
    blocks=(
        BlockSpec("build_place_block", "place_block"),
        BlockSpec("build_remove_block", "remove_block"),
        BlockSpec("build_set_color", "set_color", (ArgSpec("COLOR"),)),
        BlockSpec("build_move_x", "move_x", (ArgSpec("DISTANCE", 1),)),
        BlockSpec("build_move_y", "move_y", (ArgSpec("DISTANCE", 1),)),
        BlockSpec("build_move_z", "move_z", (ArgSpec("DISTANCE", 1),)),
        BlockSpec("build_goto", "goto", (ArgSpec("X", 0), ArgSpec("Y", 0), ArgSpec("Z", 0))),
    ),
    source_prelude=source_prelude,
    helper_names=frozenset(BUILD_COLORS),
)
