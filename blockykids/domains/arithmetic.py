"""
Arithmetic console domain - Expressions, variables and printed output.

Every print is an action, so the console fills line by line during
replay. In source programs the built-in print() is routed here.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, as_text, primitive
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState
from ..level_schema.levels import FreeGoal, MathLevel
from .base import Domain


@dataclass(frozen=True)
class ConsoleWorld(WorldState):
    output: tuple[str, ...] = ()


def initial_world(level: MathLevel) -> ConsoleWorld:
    return ConsoleWorld()


def _handle_print(state: ConsoleWorld, action: Action) -> ActionResult:
    text = action.payload.text or ""
    return ActionResult.success_with_state(state.with_changes(output=state.output + (text,)), [f"> {text}"])


HANDLERS = {
    ActionType.PRINT: _handle_print,
}


class MathCapabilities(CapabilityRegistry):
    domain = "math"

    @primitive("print_value", aliases=("cetak", "mathPrint"))
    def print_value(self, value=""):
        """Print a value on the console."""
        self.record(Action.print_text(as_text(value)))


def check_goal(level: MathLevel, state: ConsoleWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    output = list(state.output)
    expected = [str(line) for line in goal.expected]
    details = {"output": output, "expected": expected}
    if output[:len(expected)] == expected:
        return Verdict.passed("Correct answer!", **details)
    if not output:
        return Verdict.failed("Nothing was printed; use print to show the answer", **details)
    return Verdict.failed(f"Expected {', '.join(expected)} but got {', '.join(output)}", **details)


def source_prelude(level: MathLevel) -> str:
    """Route print() through the console primitive."""
    return "\n".join([
        'def print(*values, sep=" ", end="\\n", file=None, flush=False):',
        '    _emit("print_value", (sep.join(str(v) for v in values),))',
    ])


MATH = Domain(
    name="math",
    title="Math Console",
    level_type=MathLevel,
    world_type=ConsoleWorld,
    registry_type=MathCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={ActionType.PRINT: 0.3},
    blocks=(
        BlockSpec("math_print", "print_value", (ArgSpec("VALUE", ""),)),
    ),
    source_prelude=source_prelude,
    helper_names=frozenset({"print"}),
)
