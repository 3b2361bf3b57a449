"""
Tests for the reducer (world transitions).

Tests:
- Action application per domain
- Boundary clamping and invariants
- Validation and error codes
- Deterministic replay
"""

from collections import Counter
from dataclasses import FrozenInstanceError

import pytest

from ..domains.combat import CombatWorld
from ..domains.robot import RobotWorld
from ..engine_core.action import Action, ActionType
from ..engine_core.reducer import Reducer


class TestRobotReducer:
    """Tests for robot handlers."""

    @pytest.fixture
    def reducer(self, robot_domain):
        return robot_domain.reducer()

    @pytest.fixture
    def world(self, robot_domain, robot_level):
        return robot_domain.initial_world(robot_level)

    def test_move_east(self, reducer, world):
        """A move shifts the robot by its delta."""
        result = reducer.apply(world, Action.move(1, 0))
        assert result.success
        assert result.new_state.position == (1, 1)
        assert world.position == (0, 1)

    def test_move_clamps_at_edge(self, reducer, world):
        """Moving off the grid leaves the robot on the edge cell."""
        result = reducer.apply(world, Action.move(-1, 0))
        assert result.success
        assert result.new_state.position == (0, 1)
        assert "edge" in result.state_changes[0]

    def test_clamp_holds_for_any_move(self, reducer, world):
        """Position stays inside the grid whatever the moves."""
        for dx, dy in [(10, 0), (0, 10), (-25, -25), (3, -1)]:
            world = reducer.apply(world, Action.move(dx, dy)).new_state
            assert 0 <= world.x < world.width
            assert 0 <= world.y < world.height

    def test_turn_changes_heading(self, reducer, world):
        result = reducer.apply(world, Action.turn(-90))
        assert result.new_state.heading == "north"
        result = reducer.apply(result.new_state, Action.turn(180))
        assert result.new_state.heading == "south"

    def test_turn_must_be_right_angle(self, reducer, world):
        result = reducer.apply(world, Action.turn(45))
        assert not result.success
        assert result.error_code == "INVALID_TURN"

    def test_collect_star(self, robot_domain, star_level):
        """Collecting on a star cell marks it collected; elsewhere nothing happens."""
        reducer = robot_domain.reducer()
        world = robot_domain.initial_world(star_level)

        empty = reducer.apply(world, Action.collect_star())
        assert empty.success
        assert empty.new_state.collected == frozenset()

        world = reducer.apply(world, Action.move(1, 0)).new_state
        world = reducer.apply(world, Action.collect_star()).new_state
        assert world.collected == {(1, 1)}
        assert world.remaining_stars == {(2, 1), (3, 1)}


class TestSortingReducer:
    """Tests for potion swaps."""

    def test_swap(self, registry, sorting_level):
        domain = registry.get("sorting")
        world = domain.initial_world(sorting_level)
        result = domain.reducer().apply(world, Action.swap(0, 1))
        assert result.success
        assert result.new_state.potions == (1, 3, 2)
        assert result.new_state.swaps == 1

    def test_swap_out_of_range(self, registry, sorting_level):
        domain = registry.get("sorting")
        world = domain.initial_world(sorting_level)
        result = domain.reducer().apply(world, Action.swap(0, 7))
        assert not result.success
        assert result.error_code == "INDEX_OUT_OF_RANGE"

    def test_permutation_invariant(self, registry, sorting_level):
        """Any sequence of swaps keeps the multiset of potions."""
        domain = registry.get("sorting")
        reducer = domain.reducer()
        world = domain.initial_world(sorting_level)
        for i, j in [(0, 2), (1, 1), (2, 0), (0, 5), (1, 2)]:
            world = reducer.apply(world, Action.swap(i, j)).new_state or world
            assert Counter(world.potions) == Counter(world.initial)


class TestCombatReducer:
    """Tests for target selection and attacks."""

    @pytest.fixture
    def domain(self, registry):
        return registry.get("combat")

    def test_select_known_target(self, domain, combat_level):
        world = domain.initial_world(combat_level)
        result = domain.reducer().apply(world, Action.select_target("goblin2"))
        assert result.success
        assert result.new_state.selected_target == "goblin2"

    def test_select_unknown_target(self, domain, combat_level):
        world = domain.initial_world(combat_level)
        result = domain.reducer().apply(world, Action.select_target("dragon"))
        assert not result.success
        assert result.error_code == "UNKNOWN_TARGET"

    def test_attack_clamps_hp_at_zero(self, domain, combat_level):
        """Hit points never go below zero."""
        reducer = domain.reducer()
        world = domain.initial_world(combat_level)
        for _ in range(3):
            world = reducer.apply(world, Action.attack("goblin1")).new_state
        goblin = world.enemy("goblin1")
        assert goblin.hp == 0
        assert goblin.defeated
        assert world.attacks == 3
        assert world.selected_target == "goblin1"


class TestReducerValidation:
    """Tests for generic reducer checks."""

    def test_wrong_world_type(self, robot_domain, combat_level, registry):
        world = registry.get("combat").initial_world(combat_level)
        result = robot_domain.reducer().apply(world, Action.move(1, 0))
        assert not result.success
        assert result.error_code == "INVALID_ACTION"

    def test_missing_handler(self, robot_domain, robot_level):
        world = robot_domain.initial_world(robot_level)
        result = robot_domain.reducer().apply(world, Action.swap(0, 1))
        assert not result.success
        assert result.error_code == "NO_HANDLER"

    def test_handler_exception_becomes_failure(self):
        """Handler errors are reported, not raised."""
        def broken(state, action):
            raise KeyError("boom")

        reducer = Reducer("test", {ActionType.JUMP: broken})
        result = reducer.apply(RobotWorld(1, 1, 0, 0), Action.jump())
        assert not result.success
        assert result.error_code == "HANDLER_ERROR"


class TestDeterministicReplay:
    """Replaying the same trace twice yields the same world."""

    def test_replay_is_deterministic(self, robot_domain, star_level):
        trace = [Action.move(1, 0), Action.collect_star(), Action.turn(90), Action.move(0, 1), Action.move(5, 0)]
        reducer = robot_domain.reducer()
        first, log_a = reducer.replay(robot_domain.initial_world(star_level), trace)
        second, log_b = reducer.replay(robot_domain.initial_world(star_level), trace)
        assert first == second
        assert log_a.to_list() == log_b.to_list()

    def test_replay_skips_rejected(self, robot_domain, robot_level):
        reducer = robot_domain.reducer()
        world, log = reducer.replay(robot_domain.initial_world(robot_level), [Action.turn(30), Action.move(1, 0)])
        assert world.heading == "east"
        assert world.position == (1, 1)
        assert len(log) == 1

    def test_combat_world_is_frozen(self, registry, combat_level):
        world = registry.get("combat").initial_world(combat_level)
        assert isinstance(world, CombatWorld)
        with pytest.raises(FrozenInstanceError):
            world.attacks = 5
