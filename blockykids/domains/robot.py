"""
Robot domain - A robot on a 2D grid collecting stars on its way to a goal.

y grows downward: north is -y, south is +y.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, as_number, primitive
from ..engine_core.diagnostics import InvalidArgumentError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState, clamp
from ..level_schema.levels import FreeGoal, RobotLevel
from .base import Domain

HEADINGS = ("north", "east", "south", "west")

VECTORS = {
    "north": (0, -1),
    "east": (1, 0),
    "south": (0, 1),
    "west": (-1, 0),
}


def turn_heading(heading: str, degrees: int) -> str:
    """Rotate a heading by a multiple of 90 degrees; positive is clockwise."""
    index = HEADINGS.index(heading) + degrees // 90
    return HEADINGS[index % len(HEADINGS)]


@dataclass(frozen=True)
class RobotWorld(WorldState):
    width: int
    height: int
    x: int
    y: int
    heading: str = "east"
    stars: frozenset[tuple[int, int]] = frozenset()
    collected: frozenset[tuple[int, int]] = frozenset()

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def remaining_stars(self) -> frozenset[tuple[int, int]]:
        return self.stars - self.collected


def initial_world(level: RobotLevel) -> RobotWorld:
    return RobotWorld(
        width=level.width,
        height=level.height,
        x=clamp(level.robot.x, 0, level.width - 1),
        y=clamp(level.robot.y, 0, level.height - 1),
        heading=level.robot.direction.value,
        stars=frozenset((s.x, s.y) for s in level.stars),
    )


# =============================================================================
# Reducer handlers
# =============================================================================

def _handle_move(state: RobotWorld, action: Action) -> ActionResult:
    """Move by (dx, dy), stopping at the grid edge."""
    p = action.payload
    x = clamp(state.x + int(p.dx or 0), 0, state.width - 1)
    y = clamp(state.y + int(p.dy or 0), 0, state.height - 1)
    changes = [f"Robot moved to ({x}, {y})"]
    if (x, y) == state.position and (p.dx or p.dy):
        changes = [f"Robot bumped into the edge at ({x}, {y})"]
    return ActionResult.success_with_state(state.with_changes(x=x, y=y), changes)


def _handle_turn(state: RobotWorld, action: Action) -> ActionResult:
    degrees = action.payload.degrees
    if degrees is None or degrees % 90 != 0:
        return ActionResult.failure(f"Robot can only turn in steps of 90 degrees, got {degrees}", "INVALID_TURN")
    heading = turn_heading(state.heading, int(degrees))
    return ActionResult.success_with_state(state.with_changes(heading=heading), [f"Robot now faces {heading}"])


def _handle_collect_star(state: RobotWorld, action: Action) -> ActionResult:
    if state.position not in state.remaining_stars:
        return ActionResult.success_with_state(state, ["No star here"])
    collected = state.collected | {state.position}
    return ActionResult.success_with_state(
        state.with_changes(collected=collected),
        [f"Collected star at {state.position}"],
    )


def _handle_wait(state: RobotWorld, action: Action) -> ActionResult:
    return ActionResult.success_with_state(state)


HANDLERS = {
    ActionType.MOVE: _handle_move,
    ActionType.TURN: _handle_turn,
    ActionType.COLLECT_STAR: _handle_collect_star,
    ActionType.WAIT: _handle_wait,
}


# =============================================================================
# Capabilities
# =============================================================================

class RobotCapabilities(CapabilityRegistry):
    """Robot primitives. Tracks the heading so moves are recorded as deltas."""
    domain = "robot"

    def __init__(self, level: RobotLevel, max_actions: int = 1000, recorder=None):
        super().__init__(level, max_actions, recorder)
        self._heading = level.robot.direction.value

    @primitive("move_forward", aliases=("maju", "moveForward"))
    def move_forward(self):
        """Move one cell in the facing direction."""
        dx, dy = VECTORS[self._heading]
        self.record(Action.move(dx, dy))

    @primitive("turn_left", aliases=("belok_kiri", "turnLeft"))
    def turn_left(self):
        """Turn 90 degrees counter-clockwise."""
        self._heading = turn_heading(self._heading, -90)
        self.record(Action.turn(-90))

    @primitive("turn_right", aliases=("belok_kanan", "turnRight"))
    def turn_right(self):
        """Turn 90 degrees clockwise."""
        self._heading = turn_heading(self._heading, 90)
        self.record(Action.turn(90))

    @primitive("collect_star", aliases=("ambil_bintang", "collectStar"))
    def collect_star(self):
        """Pick up the star on the current cell."""
        self.record(Action.collect_star())

    @primitive("wait", aliases=("tunggu",))
    def wait(self, seconds=1):
        """Pause for a number of seconds."""
        seconds = as_number(seconds, "seconds")
        if seconds < 0:
            raise InvalidArgumentError(f"Cannot wait a negative time ({seconds})")
        self.record(Action.wait(seconds))


# =============================================================================
# Goal
# =============================================================================

def check_goal(level: RobotLevel, state: RobotWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    at_goal = state.position == (goal.x, goal.y)
    missing = sorted(state.remaining_stars) if goal.require_all_stars else []
    details = {"position": list(state.position), "goal": [goal.x, goal.y], "missing_stars": [list(s) for s in missing]}

    if at_goal and not missing:
        return Verdict.passed("The robot reached the goal!", **details)
    if at_goal:
        return Verdict.failed(f"Reached the goal, but {len(missing)} star(s) are still waiting", **details)
    return Verdict.failed(
        f"The robot stopped at ({state.x}, {state.y}); the goal is ({goal.x}, {goal.y})",
        **details,
    )


ROBOT = Domain(
    name="robot",
    title="Robot Adventure",
    level_type=RobotLevel,
    world_type=RobotWorld,
    registry_type=RobotCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={
        ActionType.MOVE: 0.4,
        ActionType.TURN: 0.3,
        ActionType.COLLECT_STAR: 0.2,
    },
    blocks=(
        BlockSpec("move_forward", "move_forward"),
        BlockSpec("turn_left", "turn_left"),
        BlockSpec("turn_right", "turn_right"),
        BlockSpec("collect_star", "collect_star"),
        BlockSpec("wait", "wait", (ArgSpec("SECONDS", 1),)),
    ),
)
