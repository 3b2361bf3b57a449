"""
Level Validation - Semantic checks beyond type checking.

Validates that:
1. Starting positions, goals and targets lie inside the world
2. References are valid (expected target ids, note names, block types)
3. Collections have no duplicate coordinates or ids
4. The level is not trivially solved or unsolvable
"""

from __future__ import annotations
from dataclasses import dataclass
from collections import Counter

from .levels import (
    BuildingLevel,
    CombatLevel,
    FreeGoal,
    Level,
    MusicLevel,
    PixelLevel,
    RobotLevel,
    SortOrder,
    SortingLevel,
    SpriteActionGoal,
    SpriteLevel,
    StructureGoal,
)
from ..engine_core.diagnostics import BlockyKidsError


class LevelValidationError(BlockyKidsError):
    """Raised when level validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Level validation failed with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


def validate_level(level: Level, raise_on_error: bool = False) -> ValidationResult:
    """
    Validate a loaded level.

    Returns ValidationResult with errors and warnings.
    Raises LevelValidationError if raise_on_error=True and errors exist.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not level.name.strip():
        errors.append("name must not be empty")
    if not level.hints:
        warnings.append("No hints defined")

    checkers = {
        RobotLevel: _validate_robot,
        BuildingLevel: _validate_building,
        SortingLevel: _validate_sorting,
        CombatLevel: _validate_combat,
        MusicLevel: _validate_music,
        SpriteLevel: _validate_sprite,
        PixelLevel: _validate_pixel,
    }
    checker = checkers.get(type(level))
    if checker:
        checker(level, errors, warnings)

    warnings.extend(_check_allowed_blocks(level))

    result = ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)
    if raise_on_error and errors:
        raise LevelValidationError(errors)
    return result


def _in_grid(x: int, y: int, width: int, height: int) -> bool:
    return 0 <= x < width and 0 <= y < height


def _validate_robot(level: RobotLevel, errors: list[str], warnings: list[str]) -> None:
    """Start, goal and stars inside the grid."""
    if not _in_grid(level.robot.x, level.robot.y, level.width, level.height):
        errors.append(f"Robot start ({level.robot.x}, {level.robot.y}) is outside the {level.width}x{level.height} grid")

    for star in level.stars:
        if not _in_grid(star.x, star.y, level.width, level.height):
            errors.append(f"Star ({star.x}, {star.y}) is outside the grid")
    duplicates = [p for p, n in Counter((s.x, s.y) for s in level.stars).items() if n > 1]
    for x, y in duplicates:
        warnings.append(f"Star ({x}, {y}) is listed more than once")

    goal = level.goal
    if isinstance(goal, FreeGoal):
        return
    if not _in_grid(goal.x, goal.y, level.width, level.height):
        errors.append(f"Goal ({goal.x}, {goal.y}) is outside the grid")
    if (goal.x, goal.y) == (level.robot.x, level.robot.y) and not (goal.require_all_stars and level.stars):
        warnings.append("Robot already starts on the goal")


def _validate_building(level: BuildingLevel, errors: list[str], warnings: list[str]) -> None:
    size = level.grid_size

    def inside(cell) -> bool:
        return 0 <= cell.x < size.width and 0 <= cell.y < size.height and 0 <= cell.z < size.depth

    if not inside(level.start):
        errors.append("Cursor start is outside the build area")
    if not level.available_colors:
        warnings.append("No available colors; blocks use the default color")

    goal = level.goal
    if not isinstance(goal, StructureGoal):
        return
    coords = Counter((c.x, c.y, c.z) for c in goal.target)
    for coord, count in coords.items():
        if count > 1:
            errors.append(f"Target structure lists {coord} {count} times")
    for cell in goal.target:
        if not inside(cell):
            errors.append(f"Target block ({cell.x}, {cell.y}, {cell.z}) is outside the build area")
        if goal.match_colors and cell.color is None:
            errors.append(f"Target block ({cell.x}, {cell.y}, {cell.z}) needs a color when match_colors is set")
        elif cell.color and level.available_colors and cell.color not in level.available_colors:
            warnings.append(f"Target color {cell.color} is not in available_colors")
    if not goal.target and goal.min_blocks is None:
        errors.append("structureMatch goal needs a target structure or min_blocks")


def _validate_sorting(level: SortingLevel, errors: list[str], warnings: list[str]) -> None:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return
    ordered = sorted(level.potions, reverse=goal.order == SortOrder.DESCENDING)
    if ordered == level.potions:
        warnings.append("Potions are already sorted")
    elif goal.max_swaps == 0:
        errors.append("max_swaps is 0 but the potions are not sorted")


def _validate_combat(level: CombatLevel, errors: list[str], warnings: list[str]) -> None:
    size = level.grid_size
    units = [level.hero, *level.enemies]
    ids = Counter(u.id for u in units)
    for unit_id, count in ids.items():
        if count > 1:
            errors.append(f"Unit id '{unit_id}' is used {count} times")
    for unit in units:
        if not _in_grid(unit.x, unit.y, size.width, size.height):
            errors.append(f"Unit '{unit.id}' at ({unit.x}, {unit.y}) is outside the arena")
        if unit.max_hp is not None and unit.hp > unit.max_hp:
            errors.append(f"Unit '{unit.id}' has hp {unit.hp} above max_hp {unit.max_hp}")
    if not level.enemies:
        warnings.append("No enemies in the arena")

    expected = getattr(level.goal, "expected_target", None)
    if expected and expected not in {e.id for e in level.enemies}:
        errors.append(f"Expected target '{expected}' is not an enemy in this level")


def _validate_music(level: MusicLevel, errors: list[str], warnings: list[str]) -> None:
    from ..domains.music import NOTES

    for note in getattr(level.goal, "required", None) or []:
        if note not in NOTES:
            errors.append(f"Unknown note '{note}' (expected one of {', '.join(NOTES)})")
    note = getattr(level.goal, "note", None)
    if note and note not in NOTES:
        errors.append(f"Unknown note '{note}'")


def _validate_sprite(level: SpriteLevel, errors: list[str], warnings: list[str]) -> None:
    from ..engine_core.action import ActionType

    goal = level.goal
    if isinstance(goal, SpriteActionGoal):
        valid = {t.value for t in ActionType}
        if goal.action not in valid:
            errors.append(f"Unknown action '{goal.action}' in action goal")
    if getattr(goal, "type", None) == "position" and goal.x is None and goal.y is None:
        errors.append("position goal needs x, y or both")
    if len({s.id for s in level.sprites}) != len(level.sprites):
        errors.append("Sprite ids must be unique")


def _validate_pixel(level: PixelLevel, errors: list[str], warnings: list[str]) -> None:
    from ..domains.pixel import WARNA

    if level.default_color.strip().lower() not in {*WARNA, *WARNA.values()}:
        errors.append(f"Unknown default_color '{level.default_color}'")

    goal = level.goal
    if isinstance(goal, FreeGoal):
        return
    for x, y in goal.cells:
        if not _in_grid(x, y, level.size, level.size):
            errors.append(f"Target pixel ({x}, {y}) is outside the {level.size}x{level.size} canvas")
    if len(set(goal.cells)) != len(goal.cells):
        warnings.append("Target pixels contain duplicates")
    if goal.colors is not None and len(goal.colors) != len(goal.cells):
        errors.append("colors must have one entry per target cell")


def _check_allowed_blocks(level: Level) -> list[str]:
    """Warn about allowed block types no compiler knows."""
    from ..domains import default_registry
    from ..compiler.blocks import GENERIC_BLOCK_TYPES

    domain = default_registry().get(level.domain)
    known = set(GENERIC_BLOCK_TYPES) | set(domain.block_types())
    return [
        f"Allowed block '{block}' is not known to the {level.domain} block compiler"
        for block in level.allowed_blocks
        if block not in known
    ]
