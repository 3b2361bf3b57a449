"""
Tests for level documents.

Tests:
- Loading with camelCase and snake_case field names
- Load errors for malformed documents
- Semantic validation errors and warnings
- Default level packs
"""

import pytest
from pydantic import ValidationError

from ..domains import default_registry
from ..domains.defaults import default_levels
from ..engine_core.diagnostics import BlockyKidsError
from ..level_schema import (
    LevelLoadError,
    LevelValidationError,
    RobotLevel,
    SortingLevel,
    dump_level,
    load_level,
    validate_level,
)


def robot_doc(**overrides):
    doc = {
        "domain": "robot", "id": 1, "name": "Test", "hints": ["go"],
        "width": 5, "height": 3,
        "robot": {"x": 0, "y": 1, "direction": "east"},
        "goal": {"type": "position", "x": 4, "y": 1},
    }
    doc.update(overrides)
    return doc


class TestLoading:
    """Tests for load_level."""

    def test_domain_selects_variant(self):
        assert isinstance(load_level(robot_doc()), RobotLevel)

    def test_camel_case_aliases(self):
        level = load_level({
            "domain": "sorting", "id": "s", "name": "S", "potions": [2, 1],
            "allowedBlocks": ["alchemist_swap"],
            "goal": {"type": "sortedWithBudget", "maxSwaps": 3},
        })
        assert isinstance(level, SortingLevel)
        assert level.goal.max_swaps == 3
        assert level.allowed_blocks == ["alchemist_swap"]

    def test_snake_case_names(self):
        level = load_level({
            "domain": "sorting", "id": "s", "name": "S", "potions": [2, 1],
            "goal": {"type": "sortedWithBudget", "max_swaps": 3},
        })
        assert level.goal.max_swaps == 3

    def test_json_text(self):
        level = load_level('{"domain": "math", "id": 1, "name": "M", "goal": {"type": "output", "expected": ["1"]}}')
        assert level.goal.expected == ["1"]

    def test_free_levels(self):
        free = load_level(robot_doc(difficulty="free"))
        sandbox = load_level(robot_doc(goal={"type": "free", "minActions": 2}))
        assert free.is_free
        assert sandbox.is_free
        assert sandbox.goal.min_actions == 2
        assert not load_level(robot_doc()).is_free

    def test_levels_are_read_only(self):
        level = load_level(robot_doc())
        with pytest.raises(ValidationError):
            level.width = 9

    def test_dump_round_trip(self):
        level = load_level(robot_doc())
        data = dump_level(level)
        assert data["robot"]["direction"] == "east"
        assert load_level(data) == level


class TestLoadErrors:
    """Malformed documents are rejected at load."""

    def test_unknown_domain(self):
        with pytest.raises(LevelLoadError):
            load_level(robot_doc(domain="space"))

    def test_goal_of_other_domain(self):
        with pytest.raises(LevelLoadError) as exc_info:
            load_level(robot_doc(goal={"type": "sortedWithBudget"}))
        assert exc_info.value.errors

    def test_missing_required_field(self):
        with pytest.raises(LevelLoadError) as exc_info:
            load_level({"domain": "sorting", "id": 1, "name": "S", "goal": {"type": "sortedWithBudget"}})
        assert any("potions" in error for error in exc_info.value.errors)

    def test_load_errors_are_engine_errors(self):
        with pytest.raises(BlockyKidsError):
            load_level(robot_doc(domain="space"))
        level = load_level(robot_doc(robot={"x": 7, "y": 0}))
        with pytest.raises(BlockyKidsError):
            validate_level(level, raise_on_error=True)

    def test_negative_budget(self):
        with pytest.raises(LevelLoadError):
            load_level({
                "domain": "sorting", "id": 1, "name": "S", "potions": [1],
                "goal": {"type": "sortedWithBudget", "maxSwaps": -1},
            })


class TestValidation:
    """Tests for validate_level."""

    def test_valid_level(self):
        result = validate_level(load_level(robot_doc()))
        assert result.valid
        assert result.errors == []

    def test_goal_outside_grid(self):
        result = validate_level(load_level(robot_doc(goal={"type": "position", "x": 9, "y": 1})))
        assert not result.valid
        assert "Goal (9, 1) is outside the grid" in result.errors

    def test_raise_on_error(self):
        level = load_level(robot_doc(robot={"x": 7, "y": 0}))
        with pytest.raises(LevelValidationError):
            validate_level(level, raise_on_error=True)

    def test_missing_hints_warns(self):
        result = validate_level(load_level(robot_doc(hints=[])))
        assert result.valid
        assert "No hints defined" in result.warnings

    def test_unknown_allowed_block_warns(self):
        result = validate_level(load_level(robot_doc(allowedBlocks=["move_forward", "fly"])))
        assert result.warnings == ["Allowed block 'fly' is not known to the robot block compiler"]

    def test_unknown_expected_target(self, combat_level):
        data = dump_level(combat_level)
        data["goal"]["expected_target"] = "dragon"
        result = validate_level(load_level(data))
        assert "Expected target 'dragon' is not an enemy in this level" in result.errors

    def test_unknown_note(self):
        level = load_level({
            "domain": "music", "id": 1, "name": "M", "hints": ["x"],
            "goal": {"type": "sequence", "required": ["C4", "Z9"]},
        })
        assert not validate_level(level).valid

    def test_pixel_default_color(self):
        level = load_level({
            "domain": "pixel", "id": 1, "name": "P", "hints": ["x"], "defaultColor": "ungu-muda",
            "goal": {"type": "pixels", "cells": [[0, 0]]},
        })
        assert "Unknown default_color 'ungu-muda'" in validate_level(level).errors

    def test_sorting_zero_budget(self):
        level = load_level({
            "domain": "sorting", "id": 1, "name": "S", "hints": ["x"], "potions": [2, 1],
            "goal": {"type": "sortedWithBudget", "maxSwaps": 0},
        })
        assert "max_swaps is 0 but the potions are not sorted" in validate_level(level).errors


class TestDefaultPacks:
    """The shipped level packs load and validate."""

    @pytest.mark.parametrize("domain", default_registry().names())
    def test_pack_is_valid(self, domain):
        levels = default_levels(domain)
        assert levels
        for level in levels:
            assert level.domain == domain
            result = validate_level(level)
            assert result.valid, (level.id, result.errors)

    def test_unknown_pack(self):
        with pytest.raises(KeyError):
            default_levels("space")
