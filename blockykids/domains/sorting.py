"""
Sorting domain - The alchemist's potion shelf.

The only mutation is swapping two potions, so the shelf is always a
permutation of its starting contents. A failed run discards its
partial trace: a half-sorted shelf tells the learner nothing.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, as_int, primitive
from ..engine_core.diagnostics import IndexOutOfRangeError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState
from ..level_schema.levels import FreeGoal, SortOrder, SortingLevel
from .base import Domain


@dataclass(frozen=True)
class SortingWorld(WorldState):
    potions: tuple[int, ...]
    initial: tuple[int, ...]
    swaps: int = 0


def initial_world(level: SortingLevel) -> SortingWorld:
    potions = tuple(level.potions)
    return SortingWorld(potions=potions, initial=potions)


def is_sorted(values, order: SortOrder = SortOrder.ASCENDING) -> bool:
    pairs = zip(values, values[1:])
    if order == SortOrder.DESCENDING:
        return all(a >= b for a, b in pairs)
    return all(a <= b for a, b in pairs)


def _handle_swap(state: SortingWorld, action: Action) -> ActionResult:
    i, j = action.payload.first, action.payload.second
    size = len(state.potions)
    if i is None or j is None or not (0 <= i < size and 0 <= j < size):
        return ActionResult.failure(
            f"Swap ({i}, {j}) is outside the shelf of {size} potions",
            "INDEX_OUT_OF_RANGE",
        )
    potions = list(state.potions)
    potions[i], potions[j] = potions[j], potions[i]
    return ActionResult.success_with_state(
        state.with_changes(potions=tuple(potions), swaps=state.swaps + 1),
        [f"Swapped potion {i} and {j}: {potions}"],
    )


HANDLERS = {
    ActionType.SWAP: _handle_swap,
}


class SortingCapabilities(CapabilityRegistry):
    """Sorting primitives over a shadow copy of the shelf."""
    domain = "sorting"

    def __init__(self, level: SortingLevel, max_actions: int = 1000, recorder=None):
        super().__init__(level, max_actions, recorder)
        self._potions = list(level.potions)

    def _index(self, value, what: str) -> int:
        index = as_int(value, what)
        if not 0 <= index < len(self._potions):
            raise IndexOutOfRangeError(
                f"Index {index} is outside the shelf (0..{len(self._potions) - 1})"
            )
        return index

    @primitive("swap", aliases=("tukar", "alchemistSwap"))
    def swap(self, i, j):
        """Swap potion i with potion j."""
        i, j = self._index(i, "i"), self._index(j, "j")
        self._potions[i], self._potions[j] = self._potions[j], self._potions[i]
        self.record(Action.swap(i, j))

    @primitive("get", aliases=("ambil", "alchemistGet"), query=True)
    def get(self, i):
        """Value of potion i."""
        return self._potions[self._index(i, "i")]

    @primitive("length", aliases=("panjang", "alchemistLength"), query=True)
    def length(self):
        """Number of potions."""
        return len(self._potions)

    @primitive("view", aliases=("lihat", "alchemistView"), query=True)
    def view(self):
        """Current shelf as a list."""
        return list(self._potions)


def check_goal(level: SortingLevel, state: SortingWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    details = {
        "potions": list(state.potions),
        "swaps": state.swaps,
        "max_swaps": goal.max_swaps,
        "order": goal.order.value,
    }
    if not is_sorted(state.potions, goal.order):
        return Verdict.failed(f"The potions are not sorted {goal.order.value} yet", **details)
    if goal.max_swaps is not None and state.swaps > goal.max_swaps:
        return Verdict.failed(
            f"Sorted, but with {state.swaps} swaps; try to use at most {goal.max_swaps}",
            **details,
        )
    return Verdict.passed(f"Sorted in {state.swaps} swap(s)!", **details)


def source_prelude(level: SortingLevel) -> str:
    """The shelf as a real list kept in step with swap()."""
    return "\n".join([
        f"ramuan = potions = {list(level.potions)!r}",
        "",
        "def swap(i, j):",
        "    if not (0 <= i < len(potions) and 0 <= j < len(potions)):",
        '        raise IndexError(f"potion index out of range: {i}, {j}")',
        "    potions[i], potions[j] = potions[j], potions[i]",
        '    _emit("swap", (i, j))',
        "",
        "def get(i):",
        "    return potions[i]",
        "",
        "def length():",
        "    return len(potions)",
        "",
        "def view():",
        "    return list(potions)",
        "",
        "tukar = alchemistSwap = swap",
        "ambil = alchemistGet = get",
        "panjang = alchemistLength = length",
        "lihat = alchemistView = view",
    ])


SORTING = Domain(
    name="sorting",
    title="Potion Alchemist",
    level_type=SortingLevel,
    world_type=SortingWorld,
    registry_type=SortingCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={ActionType.SWAP: 0.8},
    logged_actions=frozenset({ActionType.SWAP}),
    partial_replay=False,
    blocks=(
        BlockSpec("alchemist_swap", "swap", (ArgSpec("I"), ArgSpec("J"))),
        BlockSpec("alchemist_get", "get", (ArgSpec("INDEX"),), query=True),
        BlockSpec("alchemist_length", "length", query=True),
        BlockSpec("alchemist_view", "view", query=True),
    ),
    source_prelude=source_prelude,
)
