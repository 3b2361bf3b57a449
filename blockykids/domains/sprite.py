"""
Sprite domain - Animating a character on a stage.

Coordinates are stage pixels with y growing downward and are not
clamped: a sprite may walk off stage. Rotation accumulates its
absolute turning for rotation goals.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, as_number, as_text, primitive
from ..engine_core.diagnostics import InvalidArgumentError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState
from ..level_schema.levels import (
    FreeGoal,
    RotationGoal,
    ScaleGoal,
    SpeechGoal,
    SpriteActionGoal,
    SpriteLevel,
    SpritePositionGoal,
)
from .base import Domain


@dataclass(frozen=True)
class SpriteWorld(WorldState):
    sprite_id: str
    emoji: str
    x: float
    y: float
    rotation: float = 0
    total_rotation: float = 0
    scale_percent: float = 100.0
    speech: str | None = None
    jumps: int = 0


def initial_world(level: SpriteLevel) -> SpriteWorld:
    """The first sprite of the level is the one the program controls."""
    sprite = level.sprites[0]
    return SpriteWorld(sprite_id=sprite.id, emoji=sprite.emoji, x=sprite.x, y=sprite.y)


def _handle_move(state: SpriteWorld, action: Action) -> ActionResult:
    p = action.payload
    x, y = state.x + (p.dx or 0), state.y + (p.dy or 0)
    return ActionResult.success_with_state(state.with_changes(x=x, y=y), [f"{state.sprite_id} moved to ({x}, {y})"])


def _handle_jump(state: SpriteWorld, action: Action) -> ActionResult:
    return ActionResult.success_with_state(state.with_changes(jumps=state.jumps + 1), [f"{state.sprite_id} jumped"])


def _handle_rotate(state: SpriteWorld, action: Action) -> ActionResult:
    degrees = action.payload.degrees or 0
    return ActionResult.success_with_state(
        state.with_changes(
            rotation=(state.rotation + degrees) % 360,
            total_rotation=state.total_rotation + abs(degrees),
        ),
        [f"{state.sprite_id} rotated {degrees} degrees"],
    )


def _handle_scale(state: SpriteWorld, action: Action) -> ActionResult:
    percent = action.payload.percent
    if percent is None or percent <= 0:
        return ActionResult.failure(f"Scale must be positive, got {percent}", "INVALID_SCALE")
    return ActionResult.success_with_state(state.with_changes(scale_percent=percent), [f"{state.sprite_id} is now {percent}% big"])


def _handle_say(state: SpriteWorld, action: Action) -> ActionResult:
    return ActionResult.success_with_state(
        state.with_changes(speech=action.payload.text),
        [f'{state.sprite_id} says "{action.payload.text}"'],
    )


def _handle_wait(state: SpriteWorld, action: Action) -> ActionResult:
    return ActionResult.success_with_state(state)


HANDLERS = {
    ActionType.MOVE: _handle_move,
    ActionType.JUMP: _handle_jump,
    ActionType.ROTATE: _handle_rotate,
    ActionType.SCALE: _handle_scale,
    ActionType.SAY: _handle_say,
    ActionType.WAIT: _handle_wait,
}


class SpriteCapabilities(CapabilityRegistry):
    domain = "sprite"

    def _pixels(self, value) -> float:
        return as_number(value, "pixels")

    @primitive("move_right", aliases=("gerak_kanan", "animMoveRight"))
    def move_right(self, pixels=50):
        """Move right by some pixels."""
        self.record(Action.move(dx=self._pixels(pixels)))

    @primitive("move_left", aliases=("gerak_kiri", "animMoveLeft"))
    def move_left(self, pixels=50):
        """Move left by some pixels."""
        self.record(Action.move(dx=-self._pixels(pixels)))

    @primitive("move_up", aliases=("gerak_atas", "animMoveUp"))
    def move_up(self, pixels=50):
        """Move up by some pixels."""
        self.record(Action.move(dy=-self._pixels(pixels)))

    @primitive("move_down", aliases=("gerak_bawah", "animMoveDown"))
    def move_down(self, pixels=50):
        """Move down by some pixels."""
        self.record(Action.move(dy=self._pixels(pixels)))

    @primitive("jump", aliases=("lompat", "animJump"))
    def jump(self):
        """Jump in place."""
        self.record(Action.jump())

    @primitive("rotate", aliases=("putar", "animRotate"))
    def rotate(self, degrees=90):
        """Spin clockwise by some degrees."""
        self.record(Action.rotate(as_number(degrees, "degrees")))

    @primitive("scale", aliases=("skala", "animScale"))
    def scale(self, percent=100):
        """Resize to a percentage of the original size."""
        percent = as_number(percent, "percent")
        if percent <= 0:
            raise InvalidArgumentError(f"Size must be more than 0%, got {percent}")
        self.record(Action.scale(percent))

    @primitive("say", aliases=("katakan", "animSay"))
    def say(self, text):
        """Show a speech bubble."""
        self.record(Action.say(as_text(text)))

    @primitive("wait", aliases=("tunggu",))
    def wait(self, seconds=1):
        """Pause for a number of seconds."""
        seconds = as_number(seconds, "seconds")
        if seconds < 0:
            raise InvalidArgumentError(f"Cannot wait a negative time ({seconds})")
        self.record(Action.wait(seconds))


def check_goal(level: SpriteLevel, state: SpriteWorld, log: ActionLog) -> Verdict:
    goal = level.goal

    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    if isinstance(goal, SpritePositionGoal):
        details = {"x": state.x, "y": state.y, "target_x": goal.x, "target_y": goal.y}
        if goal.x is None and goal.y is None:
            return Verdict.failed("This goal has no spot to reach", **details)
        for axis, target in (("x", goal.x), ("y", goal.y)):
            if target is None:
                continue
            off = abs(getattr(state, axis) - target)
            if off > goal.tolerance:
                return Verdict.failed(f"Not there yet: {axis} is {off:g} pixels away", **details)
        return Verdict.passed("The sprite reached the spot!", **details)

    if isinstance(goal, SpriteActionGoal):
        done = any(a.action_type.value == goal.action for a in log)
        if done:
            return Verdict.passed(f"The sprite did a {goal.action}!")
        return Verdict.failed(f"Make the sprite {goal.action}")

    if isinstance(goal, RotationGoal):
        details = {"total_rotation": state.total_rotation, "required": goal.degrees}
        if state.total_rotation >= goal.degrees:
            return Verdict.passed("What a spin!", **details)
        return Verdict.failed(f"Rotate {goal.degrees:g} degrees in total", **details)

    if isinstance(goal, ScaleGoal):
        percent = state.scale_percent
        details = {"percent": percent, "required": goal.percent}
        if abs(percent - goal.percent) <= goal.tolerance:
            return Verdict.passed("Perfect size!", **details)
        return Verdict.failed(f"Make the sprite {goal.percent:g}% big", **details)

    if isinstance(goal, SpeechGoal):
        said = [a.payload.text for a in log.of_type(ActionType.SAY)]
        if goal.text is None and said:
            return Verdict.passed("The sprite said something!", said=said)
        if goal.text is not None and goal.text in said:
            return Verdict.passed(f'The sprite said "{goal.text}"!', said=said)
        wanted = f'"{goal.text}"' if goal.text is not None else "something"
        return Verdict.failed(f"Make the sprite say {wanted}", said=said)

    return Verdict.failed(f"Unsupported goal '{goal.type}'")


SPRITE = Domain(
    name="sprite",
    title="Animation Studio",
    level_type=SpriteLevel,
    world_type=SpriteWorld,
    registry_type=SpriteCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={
        ActionType.MOVE: 0.3,
        ActionType.ROTATE: 0.3,
        ActionType.SCALE: 0.3,
        ActionType.JUMP: 0.5,
        ActionType.SAY: 1.5,
    },
    logged_actions=frozenset({
        ActionType.MOVE,
        ActionType.JUMP,
        ActionType.ROTATE,
        ActionType.SCALE,
        ActionType.SAY,
    }),
    blocks=(
        BlockSpec("anim_move_right", "move_right", (ArgSpec("PIXELS", 50),)),
        BlockSpec("anim_move_left", "move_left", (ArgSpec("PIXELS", 50),)),
        BlockSpec("anim_move_up", "move_up", (ArgSpec("PIXELS", 50),)),
        BlockSpec("anim_move_down", "move_down", (ArgSpec("PIXELS", 50),)),
        BlockSpec("anim_jump", "jump"),
        BlockSpec("anim_rotate", "rotate", (ArgSpec("DEGREES", 90),)),
        BlockSpec("anim_scale", "scale", (ArgSpec("PERCENT", 100),)),
        BlockSpec("anim_say", "say", (ArgSpec("TEXT", ""),)),
        BlockSpec("wait", "wait", (ArgSpec("SECONDS", 1),)),
    ),
)
