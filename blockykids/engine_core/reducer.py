"""
Reducer - Applies actions to world state.

The reducer is the single point of world mutation.
All world changes during replay go through Reducer.apply().

Design principles:
- Pure function: (world, action) -> new world
- Validates before applying
- Returns ActionResult with success/failure
- Per-domain handler tables supply the actual semantics
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

from .action import Action, ActionResult, ActionType
from .state import ActionLog, WorldState

Handler = Callable[[WorldState, Action], ActionResult]


@dataclass
class Reducer:
    """
    Reducer applies actions to a domain world.

    Stateless - all state is in the WorldState passed in.
    The handler table decides which action types the domain accepts.
    """
    domain: str
    handlers: Mapping[ActionType, Handler] = field(default_factory=dict)
    world_type: type[WorldState] | None = None

    def apply(self, state: WorldState, action: Action) -> ActionResult:
        """
        Apply an action to the world.

        Returns ActionResult with new state or error.
        """
        validation_error = self._validate_action(state, action)
        if validation_error:
            return ActionResult.failure(validation_error, error_code="INVALID_ACTION")

        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type {action.action_type.value} in {self.domain}",
                error_code="NO_HANDLER",
            )

        try:
            return handler(state, action)
        except (TypeError, ValueError, KeyError, IndexError) as e:
            return ActionResult.failure(str(e), error_code="HANDLER_ERROR")

    def _validate_action(self, state: WorldState, action: Action) -> str | None:
        """Return an error message if the action cannot apply to this world."""
        if self.world_type is not None and not isinstance(state, self.world_type):
            return (
                f"{self.domain} reducer expects {self.world_type.__name__}, "
                f"got {type(state).__name__}"
            )
        return None

    def _get_handler(self, action_type: ActionType) -> Handler | None:
        """Get the handler function for an action type."""
        return self.handlers.get(action_type)

    def replay(
        self,
        state: WorldState,
        actions: Iterable[Action],
        log: ActionLog | None = None,
    ) -> tuple[WorldState, ActionLog]:
        """
        Apply actions in order without pacing.

        Rejected actions leave the world unchanged and are not logged.
        """
        log = log if log is not None else ActionLog()
        for action in actions:
            result = self.apply(state, action)
            if result.success:
                state = result.new_state
                log.record(action)
        return state, log
