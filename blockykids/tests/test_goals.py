"""
Tests for goal validators.

Tests:
- Robot position and stars
- Sorting order and swap budget
- Combat target selection
- Music sequence, notes and repeat goals
- Sprite, building, pixel and math goals
- Free-play levels
"""

import pytest

from ..domains.defaults import default_levels
from ..engine_core.action import Action
from ..level_schema import load_level


def play(domain, level, actions):
    """Replay actions from the level's start and check its goal."""
    world, log = domain.reducer().replay(domain.initial_world(level), actions, domain.new_log())
    return world, domain.check_goal(level, world, log)


class TestRobotGoal:
    """Tests for reaching the flag."""

    def test_four_moves_reach_goal(self, robot_domain, robot_level):
        _, verdict = play(robot_domain, robot_level, [Action.move(dx=1)] * 4)
        assert verdict.success
        assert verdict.details["position"] == [4, 1]

    def test_short_of_goal(self, robot_domain, robot_level):
        _, verdict = play(robot_domain, robot_level, [Action.move(dx=1)] * 3)
        assert not verdict.success
        assert "stopped at (3, 1)" in verdict.message

    def test_stars_must_be_collected(self, robot_domain, star_level):
        _, verdict = play(robot_domain, star_level, [Action.move(dx=1)] * 4)
        assert not verdict.success
        assert verdict.details["missing_stars"] == [[1, 1], [2, 1], [3, 1]]

    def test_collecting_every_star(self, robot_domain, star_level):
        actions = [Action.move(dx=1), Action.collect_star()] * 3 + [Action.move(dx=1)]
        world, verdict = play(robot_domain, star_level, actions)
        assert verdict.success
        assert not world.remaining_stars

    def test_validator_does_not_mutate(self, robot_domain, robot_level):
        world = robot_domain.initial_world(robot_level)
        log = robot_domain.new_log()
        robot_domain.check_goal(robot_level, world, log)
        assert world == robot_domain.initial_world(robot_level)
        assert len(log) == 0


class TestSortingGoal:
    """Tests for sorted-with-budget goals."""

    @pytest.fixture
    def domain(self, registry):
        return registry.get("sorting")

    def test_one_swap_is_not_sorted(self, domain, sorting_level):
        world, verdict = play(domain, sorting_level, [Action.swap(0, 1)])

        assert world.potions == (1, 3, 2)
        assert not verdict.success
        assert verdict.message == "The potions are not sorted ascending yet"
        assert verdict.details["swaps"] == 1
        assert verdict.details["max_swaps"] == 5

    def test_sorted_within_budget(self, domain, sorting_level):
        _, verdict = play(domain, sorting_level, [Action.swap(0, 1), Action.swap(1, 2)])
        assert verdict.success
        assert verdict.message == "Sorted in 2 swap(s)!"

    def test_over_budget(self, domain):
        level = load_level({
            "domain": "sorting", "id": "tight", "name": "Tight", "potions": [3, 1, 2],
            "goal": {"type": "sortedWithBudget", "maxSwaps": 1},
        })
        _, verdict = play(domain, level, [Action.swap(0, 1), Action.swap(1, 2)])
        assert not verdict.success
        assert "at most 1" in verdict.message

    def test_descending(self, domain):
        level = load_level({
            "domain": "sorting", "id": "down", "name": "Down", "potions": [1, 2],
            "goal": {"type": "sortedWithBudget", "order": "descending"},
        })
        _, verdict = play(domain, level, [Action.swap(0, 1)])
        assert verdict.success


class TestCombatGoal:
    """Tests for target selection."""

    @pytest.fixture
    def domain(self, registry):
        return registry.get("combat")

    def test_nothing_selected(self, domain, combat_level):
        _, verdict = play(domain, combat_level, [])
        assert verdict.message == "No target was selected"

    def test_wrong_target(self, domain, combat_level):
        _, verdict = play(domain, combat_level, [Action.select_target("goblin1")])
        assert not verdict.success
        assert "Goblin is not the best target" in verdict.message

    def test_attack_selects(self, domain, combat_level):
        """Attacking counts as choosing that target."""
        world, verdict = play(domain, combat_level, [Action.attack("goblin2")])
        assert verdict.success
        assert world.enemy("goblin2").hp == 5


class TestMusicGoal:
    """Tests for music goals."""

    @pytest.fixture
    def domain(self, registry):
        return registry.get("music")

    @pytest.fixture
    def levels(self):
        return default_levels("music")

    def test_sequence_in_order(self, domain, levels):
        notes = [Action.play_note(n) for n in ("C4", "D4", "E4")]
        _, verdict = play(domain, levels[1], notes)
        assert verdict.success

    def test_sequence_is_order_sensitive(self, domain, levels):
        notes = [Action.play_note(n) for n in ("C4", "E4", "D4")]
        _, verdict = play(domain, levels[1], notes)
        assert not verdict.success
        assert verdict.message == "Play the notes in this order: C4 D4 E4"

    def test_rests_are_not_notes(self, domain, levels):
        actions = [Action.play_note("C4"), Action.rest(1), Action.play_note("D4"), Action.play_note("E4")]
        _, verdict = play(domain, levels[1], actions)
        assert verdict.success

    def test_missing_note(self, domain, levels):
        _, verdict = play(domain, levels[0], [Action.play_note("D4")])
        assert verdict.message == "Still missing: C4"

    def test_repeat(self, domain, levels):
        _, short = play(domain, levels[3], [Action.play_note("G4")] * 2)
        _, enough = play(domain, levels[3], [Action.play_note("G4")] * 3)
        assert not short.success
        assert enough.success

    def test_free_jam_needs_five_notes(self, domain, levels):
        _, verdict = play(domain, levels[4], [Action.play_note("C4")] * 4)
        assert verdict.message == "Do at least 5 action(s) first"
        _, verdict = play(domain, levels[4], [Action.play_note("C4")] * 5)
        assert verdict.success


class TestSpriteGoal:
    """Tests for sprite goals."""

    @pytest.fixture
    def domain(self, registry):
        return registry.get("sprite")

    @pytest.fixture
    def levels(self):
        return default_levels("sprite")

    def test_position_within_tolerance(self, domain, levels):
        """Only the x axis is checked when y is not given."""
        actions = [Action.move(dx=50)] * 6 + [Action.move(dy=-300)]
        world, verdict = play(domain, levels[0], actions)
        assert world.x == 350
        assert verdict.success

    def test_position_too_far(self, domain, levels):
        _, verdict = play(domain, levels[0], [Action.move(dx=50)])
        assert not verdict.success
        assert verdict.message.startswith("Not there yet: x")

    def test_jump(self, domain, levels):
        _, verdict = play(domain, levels[2], [Action.jump()])
        assert verdict.success

    def test_full_spin(self, domain, levels):
        _, partial = play(domain, levels[4], [Action.rotate(90)] * 3)
        _, full = play(domain, levels[4], [Action.rotate(90)] * 4)
        assert not partial.success
        assert full.success

    def test_speech(self, domain, levels):
        _, verdict = play(domain, levels[5], [Action.say("Halo!")])
        assert verdict.success
        assert verdict.details["said"] == ["Halo!"]

    @staticmethod
    def stage(goal):
        return load_level({
            "domain": "sprite", "id": "s", "name": "Stage",
            "sprites": [{"id": "cat", "x": 0, "y": 0}],
            "goal": goal,
        })

    def test_scale_exact_percent(self, domain):
        """scale(110) meets a 110% goal with no tolerance."""
        level = self.stage({"type": "scale", "percent": 110})
        caps = domain.create_registry(level)
        caps.invoke("scale", 110)

        world, verdict = play(domain, level, list(caps.trace()))
        assert world.scale_percent == 110
        assert verdict.success
        assert verdict.details == {"percent": 110, "required": 110}

    def test_scale_wrong_size(self, domain):
        _, verdict = play(domain, self.stage({"type": "scale", "percent": 150}), [Action.scale(120)])
        assert not verdict.success
        assert verdict.message == "Make the sprite 150% big"

    def test_position_goal_without_axes_fails(self, domain):
        _, verdict = play(domain, self.stage({"type": "position"}), [Action.move(dx=10)])
        assert not verdict.success

    def test_free_level_needs_an_action(self, domain, free_sprite_level):
        _, empty = play(domain, free_sprite_level, [])
        _, busy = play(domain, free_sprite_level, [Action.jump()])
        assert not empty.success
        assert busy.success


class TestBuildingGoal:
    """Tests for structure goals."""

    RED = "#e74c3c"

    @pytest.fixture
    def domain(self, registry):
        return registry.get("building")

    @pytest.fixture
    def tower(self):
        return default_levels("building")[1]

    def test_tower_complete(self, domain, tower):
        actions = [Action.place_block((0, y, 0), self.RED) for y in range(3)]
        _, verdict = play(domain, tower, actions)
        assert verdict.success

    def test_tower_missing_block(self, domain, tower):
        actions = [Action.place_block((0, y, 0), self.RED) for y in range(2)]
        _, verdict = play(domain, tower, actions)
        assert verdict.message == "1 block(s) of the structure are missing"
        assert verdict.details["missing"] == [[0, 2, 0]]

    def test_tower_wrong_color(self, domain, tower):
        actions = [Action.place_block((0, y, 0), self.RED) for y in range(2)]
        actions.append(Action.place_block((0, 2, 0), "#2ecc71"))
        _, verdict = play(domain, tower, actions)
        assert verdict.message == "1 block(s) have the wrong color"

    def test_removed_block_counts_as_missing(self, domain, tower):
        actions = [Action.place_block((0, y, 0), self.RED) for y in range(3)]
        actions.append(Action.remove_block((0, 1, 0)))
        _, verdict = play(domain, tower, actions)
        assert not verdict.success


class TestPixelAndMathGoals:
    """Tests for pixel pictures and console output."""

    def test_pixel_line(self, registry):
        domain = registry.get("pixel")
        level = default_levels("pixel")[0]
        _, four = play(domain, level, [Action.draw_pixel((x, 0), "#ff0000") for x in range(4)])
        _, five = play(domain, level, [Action.draw_pixel((x, 0), "#ff0000") for x in range(5)])
        assert four.message == "1 pixel(s) of the picture are still empty"
        assert five.success

    def test_math_output(self, registry):
        domain = registry.get("math")
        level = default_levels("math")[0]

        _, right = play(domain, level, [Action.print_text("8")])
        _, nothing = play(domain, level, [])
        _, wrong = play(domain, level, [Action.print_text("7")])

        assert right.success
        assert nothing.message == "Nothing was printed; use print to show the answer"
        assert wrong.message == "Expected 8 but got 7"
