"""Level schema - per-domain level documents, loading and validation."""

from .levels import (
    Level,
    LevelBase,
    Difficulty,
    FreeGoal,
    RobotLevel,
    BuildingLevel,
    SortingLevel,
    CombatLevel,
    MusicLevel,
    SpriteLevel,
    PixelLevel,
    MathLevel,
    LevelLoadError,
    load_level,
    load_levels,
    dump_level,
)
from .validation import validate_level, ValidationResult, LevelValidationError

__all__ = [
    "Level",
    "LevelBase",
    "Difficulty",
    "FreeGoal",
    "RobotLevel",
    "BuildingLevel",
    "SortingLevel",
    "CombatLevel",
    "MusicLevel",
    "SpriteLevel",
    "PixelLevel",
    "MathLevel",
    "LevelLoadError",
    "load_level",
    "load_levels",
    "dump_level",
    "validate_level",
    "ValidationResult",
    "LevelValidationError",
]
