"""
Domain definition - Everything the engine needs to know about one world.

A Domain bundles:
1. The level variant and the world dataclass built from it
2. The reducer handler table and the goal validator
3. The capability registry class (primitives and aliases)
4. Block specs for the block compiler and the source prelude
5. Replay pacing per action type
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from ..compiler.program import BlockSpec
from ..engine_core.action import Action, ActionType
from ..engine_core.capabilities import CapabilityRegistry
from ..engine_core.goals import Verdict
from ..engine_core.reducer import Handler, Reducer
from ..engine_core.state import ActionLog, WorldState

DEFAULT_PACING = 0.3


def _no_prelude(level: Any) -> str:
    return ""


@dataclass(frozen=True)
class Domain:
    """
    Static description of a learning domain.

    Usage:
        domain = default_registry().get("robot")
        world = domain.initial_world(level)
        registry = domain.create_registry(level)
        verdict = domain.check_goal(level, world, domain.new_log())
    """
    name: str
    title: str
    level_type: type
    world_type: type[WorldState]
    registry_type: type[CapabilityRegistry]
    initial_world: Callable[[Any], WorldState]
    handlers: Mapping[ActionType, Handler]
    check_goal: Callable[[Any, WorldState, ActionLog], Verdict]
    pacing_table: Mapping[ActionType, float] = field(default_factory=dict)

    # None logs every applied action
    logged_actions: frozenset[ActionType] | None = None

    # Replay the partial trace of a failed run
    partial_replay: bool = True

    blocks: tuple[BlockSpec, ...] = ()
    source_prelude: Callable[[Any], str] = _no_prelude

    # Names defined by the prelude that count as primitive calls
    helper_names: frozenset[str] = frozenset()

    def reducer(self) -> Reducer:
        return Reducer(self.name, self.handlers, self.world_type)

    def create_registry(self, level: Any, max_actions: int = 1000) -> CapabilityRegistry:
        """Fresh trace-recording registry for one run of a level."""
        return self.registry_type(level, max_actions=max_actions)

    def new_log(self) -> ActionLog:
        return ActionLog(logged_types=self.logged_actions)

    def pacing(self, action: Action) -> float:
        """
        Seconds to pause after applying an action.

        WAIT lasts its own duration; REST lasts beats times the table
        entry for REST (seconds per beat).
        """
        if action.action_type == ActionType.WAIT:
            return max(float(action.payload.seconds or 0), 0.0)
        base = self.pacing_table.get(action.action_type, DEFAULT_PACING)
        if action.action_type == ActionType.REST:
            return max(float(action.payload.beats or 0), 0.0) * base
        return base

    def block_spec(self, block_type: str) -> BlockSpec | None:
        for spec in self.blocks:
            if spec.block_type == block_type:
                return spec
        return None

    def block_types(self) -> list[str]:
        return [spec.block_type for spec in self.blocks]
