"""
Tests for the replay scheduler.

Tests:
- Manual stepping and lifecycle errors
- Rejected actions
- Step listeners
- Paced playback with an injected sleep
- Cancellation and re-priming during playback
"""

import asyncio

import pytest

from ..engine_core.action import Action, ProgramTrace
from ..engine_core.diagnostics import ReplayError
from ..session import ReplayScheduler, SchedulerState


def trace(*actions):
    return ProgramTrace(tuple(actions))


@pytest.fixture
def scheduler(robot_domain, fake_sleep):
    return ReplayScheduler(robot_domain, sleep=fake_sleep)


@pytest.fixture
def start(robot_domain, robot_level):
    return robot_domain.initial_world(robot_level)


class TestStepping:
    """Tests for prime/load/step."""

    def test_steps_in_order(self, scheduler, start):
        scheduler.prime(start)
        scheduler.load(trace(Action.move(dx=1), Action.turn(-90), Action.move(dy=-1)))

        assert scheduler.step() == Action.move(dx=1)
        assert scheduler.world.position == (1, 1)
        assert scheduler.step() == Action.turn(-90)
        assert scheduler.world.heading == "north"
        scheduler.step()
        assert scheduler.world.position == (1, 0)

        assert scheduler.step() is None
        assert scheduler.state == SchedulerState.SETTLED
        assert scheduler.applied == 3

    def test_step_before_load(self, scheduler, start):
        with pytest.raises(ReplayError):
            scheduler.step()
        scheduler.prime(start)
        with pytest.raises(ReplayError):
            scheduler.step()

    def test_load_needs_prime(self, scheduler, start):
        with pytest.raises(ReplayError):
            scheduler.load(trace(Action.move(dx=1)))

        scheduler.prime(start)
        scheduler.load(trace())
        with pytest.raises(ReplayError, match="stepping"):
            scheduler.load(trace())

    def test_empty_trace_settles(self, scheduler, start):
        scheduler.prime(start)
        scheduler.load(trace())
        assert scheduler.run_to_end() == start
        assert scheduler.state == SchedulerState.SETTLED

    def test_rejected_action_is_skipped(self, scheduler, start):
        """A 45 degree turn is refused; the rest of the trace still runs."""
        scheduler.prime(start)
        scheduler.load(trace(Action.turn(45), Action.move(dx=1)))
        world = scheduler.run_to_end()

        assert world.heading == "east"
        assert world.position == (1, 1)
        assert [r.index for r in scheduler.rejected] == [0]
        assert len(scheduler.log) == 1

    def test_prime_resets_log(self, scheduler, start):
        scheduler.prime(start)
        scheduler.load(trace(Action.move(dx=1)))
        scheduler.run_to_end()
        scheduler.prime(start)

        assert scheduler.world == start
        assert len(scheduler.log) == 0
        assert scheduler.state == SchedulerState.PRIMING


class TestListeners:
    """Tests for step listeners."""

    def test_listener_sees_every_step(self, scheduler, start):
        seen = []
        scheduler.subscribe(lambda index, action, world: seen.append((index, world.position)))
        scheduler.prime(start)
        scheduler.load(trace(Action.move(dx=1), Action.move(dx=1)))
        scheduler.run_to_end()
        assert seen == [(0, (1, 1)), (1, (2, 1))]

    def test_unsubscribe(self, scheduler, start):
        seen = []
        unsubscribe = scheduler.subscribe(lambda *args: seen.append(args))
        unsubscribe()
        unsubscribe()
        scheduler.prime(start)
        scheduler.load(trace(Action.move(dx=1)))
        scheduler.run_to_end()
        assert seen == []


class TestPlayback:
    """Tests for paced playback."""

    @pytest.mark.asyncio
    async def test_play_paces_each_action(self, scheduler, start, delays):
        settled = await scheduler.play(trace(Action.move(dx=1), Action.turn(90), Action.wait(2)), start)

        assert settled
        assert delays == [0.4, 0.3, 2.0]
        assert scheduler.state == SchedulerState.SETTLED

    @pytest.mark.asyncio
    async def test_pace_scales_delays(self, robot_domain, start, fake_sleep, delays):
        scheduler = ReplayScheduler(robot_domain, sleep=fake_sleep, pace=0.5)
        await scheduler.play(trace(Action.move(dx=1)), start)
        assert delays == [0.2]

    @pytest.mark.asyncio
    async def test_play_is_repeatable(self, scheduler, start):
        """Replaying the same trace from the same start gives the same world."""
        moves = trace(Action.move(dx=1), Action.turn(90), Action.move(dy=1))
        await scheduler.play(moves, start)
        first = scheduler.world
        await scheduler.play(moves, start)
        assert scheduler.world == first


class TestCancellation:
    """A superseded replay never applies another action."""

    @pytest.fixture
    def blocking(self, robot_domain):
        """Scheduler whose pauses never end on their own."""
        async def sleep_forever(seconds):
            await asyncio.Event().wait()
        return ReplayScheduler(robot_domain, sleep=sleep_forever)

    @pytest.mark.asyncio
    async def test_cancel_from_listener(self, scheduler, start):
        def stop_after_second(index, action, world):
            if index == 1:
                scheduler.cancel()

        scheduler.subscribe(stop_after_second)
        settled = await scheduler.play(trace(*[Action.move(dx=1)] * 4), start)

        assert not settled
        assert scheduler.state == SchedulerState.CANCELLED
        assert scheduler.applied == 2
        assert scheduler.world.position == (2, 1)

    @pytest.mark.asyncio
    async def test_cancel_during_pause(self, blocking, start):
        task = asyncio.ensure_future(blocking.play(trace(*[Action.move(dx=1)] * 4), start))
        for _ in range(3):
            await asyncio.sleep(0)

        blocking.cancel()
        assert await task is False
        assert blocking.applied == 1
        assert blocking.world.position == (1, 1)

    @pytest.mark.asyncio
    async def test_prime_during_pause(self, blocking, start):
        """Re-priming mid-replay cancels it and leaves the fresh world alone."""
        task = asyncio.ensure_future(blocking.play(trace(*[Action.move(dx=1)] * 4), start))
        for _ in range(3):
            await asyncio.sleep(0)

        blocking.prime(start)
        assert await task is False
        assert blocking.world == start
        assert blocking.state == SchedulerState.PRIMING

    @pytest.mark.asyncio
    async def test_outer_cancel_propagates(self, blocking, start):
        task = asyncio.ensure_future(blocking.play(trace(Action.move(dx=1), Action.move(dx=1)), start))
        for _ in range(3):
            await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert blocking.state == SchedulerState.CANCELLED


class TestSnapshot:
    def test_snapshot(self, scheduler, start):
        scheduler.prime(start)
        scheduler.load(trace(Action.move(dx=1), Action.turn(45)))
        scheduler.run_to_end()
        snapshot = scheduler.snapshot()

        assert snapshot["state"] == "settled"
        assert snapshot["index"] == 2
        assert snapshot["total"] == 2
        assert snapshot["world"]["x"] == 1
        assert snapshot["rejected"][0]["index"] == 1
