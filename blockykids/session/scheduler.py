"""
Replay Scheduler - Applies a ProgramTrace to the live world, one action at a time.

Lifecycle:
    IDLE -> PRIMING -> STEPPING(i) -> SETTLED
                                   -> CANCELLED

1. prime(initial_state) - reset world and log (cancels a stepping run)
2. load(trace)          - attach the trace, enter STEPPING at index 0
3. step()               - apply exactly one action, no waiting
4. play(trace, state)   - prime + load + step/sleep until settled

Every play() takes a fresh epoch. cancel() and a new prime() move the
epoch on and cancel the pending sleep, so a superseded play never
applies another action.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from ..domains.base import Domain
from ..engine_core.action import Action, ProgramTrace
from ..engine_core.diagnostics import ReplayError
from ..engine_core.state import ActionLog, WorldState
from ..logging_utils import get_logger

logger = get_logger("replay")

SleepFunc = Callable[[float], Awaitable[None]]
StepListener = Callable[[int, Action, WorldState], None]


class SchedulerState(Enum):
    """State of the replay scheduler."""
    IDLE = "idle"
    PRIMING = "priming"
    STEPPING = "stepping"
    SETTLED = "settled"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RejectedStep:
    """A trace action the reducer refused; the world was left as it was."""
    index: int
    action: Action
    error: str

    def to_dict(self) -> dict:
        return {"index": self.index, "action": self.action.to_dict(), "error": self.error}


class ReplayScheduler:
    """
    Owns the live world of one session and replays traces into it.

    Usage:
        scheduler = ReplayScheduler(domain, sleep=asyncio.sleep)
        scheduler.subscribe(lambda i, action, world: print(i, action.describe()))
        settled = await scheduler.play(trace, domain.initial_world(level))
    """

    def __init__(
        self,
        domain: Domain,
        sleep: SleepFunc = asyncio.sleep,
        pace: float = 1.0,
    ):
        self.domain = domain
        self.reducer = domain.reducer()
        self.sleep = sleep
        self.pace = pace

        self.state = SchedulerState.IDLE
        self.world: WorldState | None = None
        self.log: ActionLog = domain.new_log()
        self.trace = ProgramTrace()
        self.index = 0
        self.epoch = 0
        self.rejected: list[RejectedStep] = []

        self._listeners: list[StepListener] = []
        self._sleep_task: asyncio.Future | None = None

    # =========================================================================
    # Listeners
    # =========================================================================

    def subscribe(self, listener: StepListener) -> Callable[[], None]:
        """Register a step listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, index: int, action: Action, world: WorldState) -> None:
        for listener in list(self._listeners):
            listener(index, action, world)

    # =========================================================================
    # Stepping
    # =========================================================================

    @property
    def is_stepping(self) -> bool:
        return self.state == SchedulerState.STEPPING

    @property
    def applied(self) -> int:
        """Number of trace actions consumed so far (applied or rejected)."""
        return self.index

    def prime(self, initial_state: WorldState) -> None:
        """Reset the world and the log. A stepping run is cancelled first."""
        if self.state == SchedulerState.STEPPING:
            self.cancel()
        self.state = SchedulerState.PRIMING
        self.world = initial_state
        self.log = self.domain.new_log()
        self.trace = ProgramTrace()
        self.index = 0
        self.rejected = []

    def load(self, trace: ProgramTrace) -> None:
        if self.state != SchedulerState.PRIMING:
            raise ReplayError(f"Cannot load a trace while {self.state.value}; call prime() first")
        self.trace = trace
        self.index = 0
        self.state = SchedulerState.STEPPING
        logger.debug("Loaded %d action(s) for %s", len(trace), self.domain.name)

    def step(self) -> Action | None:
        """
        Apply the next action of the loaded trace.

        Returns the action consumed, or None once the trace is exhausted
        (the scheduler is then SETTLED). An action the reducer rejects is
        skipped: the world stays unchanged and the action is not logged.
        """
        if self.state == SchedulerState.SETTLED:
            return None
        if self.state != SchedulerState.STEPPING:
            raise ReplayError(f"Cannot step while {self.state.value}")

        if self.index >= len(self.trace):
            self.state = SchedulerState.SETTLED
            logger.debug("Replay of %s settled after %d action(s)", self.domain.name, self.index)
            return None

        index = self.index
        action = self.trace[index]
        result = self.reducer.apply(self.world, action)
        self.index += 1

        if result.success:
            self.world = result.new_state
            self.log.record(action)
            logger.debug("Step %d: %s", index, action.describe())
        else:
            self.rejected.append(RejectedStep(index, action, result.error or ""))
            logger.warning(
                "Step %d rejected (%s): %s", index, action.describe(), result.error
            )

        self._notify(index, action, self.world)
        return action

    def run_to_end(self) -> WorldState:
        """Step through the rest of the trace without pacing."""
        while self.step() is not None:
            pass
        return self.world

    # =========================================================================
    # Paced replay
    # =========================================================================

    async def play(self, trace: ProgramTrace, initial_state: WorldState) -> bool:
        """
        Replay trace from initial_state with per-action pacing.

        Returns True when the trace settled, False when this run was
        superseded by cancel() or by another prime()/play().
        """
        self.prime(initial_state)
        self.epoch += 1
        epoch = self.epoch
        self.load(trace)

        while self.epoch == epoch and self.state == SchedulerState.STEPPING:
            action = self.step()
            if action is None:
                break
            if self.epoch != epoch:
                # A listener cancelled or restarted the replay
                return False

            task = asyncio.ensure_future(self.sleep(self.domain.pacing(action) * self.pace))
            self._sleep_task = task
            try:
                await task
            except asyncio.CancelledError:
                if self.epoch == epoch:
                    # play() itself was cancelled from outside
                    self.cancel()
                    raise
                return False
            finally:
                if self._sleep_task is task:
                    self._sleep_task = None

        return self.epoch == epoch and self.state == SchedulerState.SETTLED

    def cancel(self) -> None:
        """Stop the current replay; the world keeps the actions applied so far."""
        self.epoch += 1
        if self.state in (SchedulerState.PRIMING, SchedulerState.STEPPING):
            logger.info(
                "Replay of %s cancelled at step %d/%d", self.domain.name, self.index, len(self.trace)
            )
            self.state = SchedulerState.CANCELLED
        task = self._sleep_task
        self._sleep_task = None
        if task is not None and not task.done():
            task.cancel()

    def snapshot(self) -> dict:
        """JSON-friendly view of the scheduler for the API."""
        return {
            "state": self.state.value,
            "index": self.index,
            "total": len(self.trace),
            "world": self.world.to_dict() if self.world is not None else None,
            "log": self.log.to_list(),
            "rejected": [r.to_dict() for r in self.rejected],
        }
