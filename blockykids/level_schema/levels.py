"""
Level documents - one tagged variant per domain.

A level is static configuration: display metadata, the starting world,
the allowed block subset, hints and a goal. Documents arrive from the
content pack or from the external admin/persistence collaborator and
are type-checked here at load; afterwards they are read-only.

Field names are snake_case; camelCase aliases (``maxSwaps``,
``allowedBlocks``, ...) are accepted so authoring tools can send their
native documents unchanged.
"""

from __future__ import annotations
from enum import Enum
import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from ..engine_core.diagnostics import BlockyKidsError


# =============================================================================
# Shared
# =============================================================================

class Difficulty(str, Enum):
    """Level difficulty. FREE levels are sandboxes and never auto-advance."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    FREE = "free"


class LevelModel(BaseModel):
    """Base for every level-document model."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class FreeGoal(LevelModel):
    """Sandbox goal: at least min_actions meaningful actions."""
    type: Literal["free"] = "free"
    min_actions: int = Field(1, ge=1)


class LevelBase(LevelModel):
    """Fields shared by every domain's level."""
    id: Union[int, str]
    name: str
    difficulty: Difficulty = Difficulty.EASY
    description: str = ""
    hints: list[str] = Field(default_factory=list)
    allowed_blocks: list[str] = Field(default_factory=list)

    @property
    def is_free(self) -> bool:
        return self.difficulty == Difficulty.FREE or self.goal.type == "free"


# =============================================================================
# Robot
# =============================================================================

class Heading(str, Enum):
    NORTH = "north"
    EAST = "east"
    SOUTH = "south"
    WEST = "west"


class GridPoint(LevelModel):
    x: int
    y: int


class RobotStart(LevelModel):
    x: int = 0
    y: int = 0
    direction: Heading = Heading.EAST


class RobotPositionGoal(LevelModel):
    """Reach (x, y); optionally every star must be collected first."""
    type: Literal["position"] = "position"
    x: int
    y: int
    require_all_stars: bool = True


class RobotLevel(LevelBase):
    domain: Literal["robot"] = "robot"
    width: int = Field(5, ge=1)
    height: int = Field(5, ge=1)
    robot: RobotStart = Field(default_factory=RobotStart)
    stars: list[GridPoint] = Field(default_factory=list)
    goal: Annotated[Union[RobotPositionGoal, FreeGoal], Field(discriminator="type")]


# =============================================================================
# Building
# =============================================================================

class GridSize3D(LevelModel):
    width: int = Field(5, ge=1)
    height: int = Field(5, ge=1)
    depth: int = Field(5, ge=1)


class BlockCell(LevelModel):
    x: int
    y: int
    z: int
    color: Optional[str] = None


class StructureGoal(LevelModel):
    """
    Placed blocks must contain the target structure.

    exact requires set equality; match_colors compares colors too;
    min_blocks requires a total block count (targets may be empty).
    """
    type: Literal["structureMatch"] = "structureMatch"
    target: list[BlockCell] = Field(default_factory=list)
    exact: bool = False
    match_colors: bool = False
    min_blocks: Optional[int] = Field(None, ge=1)


class BuildingLevel(LevelBase):
    domain: Literal["building"] = "building"
    grid_size: GridSize3D = Field(default_factory=GridSize3D)
    available_colors: list[str] = Field(default_factory=lambda: ["#e74c3c"])
    start: BlockCell = Field(default_factory=lambda: BlockCell(x=0, y=0, z=0))
    goal: Annotated[Union[StructureGoal, FreeGoal], Field(discriminator="type")]

    @property
    def default_color(self) -> str:
        return self.start.color or (self.available_colors[0] if self.available_colors else "#e74c3c")


# =============================================================================
# Sorting (alchemist potions)
# =============================================================================

class SortOrder(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class SortedGoal(LevelModel):
    type: Literal["sortedWithBudget"] = "sortedWithBudget"
    order: SortOrder = SortOrder.ASCENDING
    max_swaps: Optional[int] = Field(None, ge=0)


class SortingLevel(LevelBase):
    domain: Literal["sorting"] = "sorting"
    potions: list[int] = Field(min_length=1)
    goal: Annotated[Union[SortedGoal, FreeGoal], Field(discriminator="type")]


# =============================================================================
# Combat
# =============================================================================

class GridSize2D(LevelModel):
    width: int = Field(8, ge=1)
    height: int = Field(8, ge=1)


class UnitConfig(LevelModel):
    id: str
    name: str
    x: int
    y: int
    hp: int = Field(ge=0)
    attack: int = Field(0, ge=0)
    range: int = Field(1, ge=0)
    max_hp: Optional[int] = None

    @property
    def hp_cap(self) -> int:
        return self.max_hp if self.max_hp is not None else self.hp


def _default_hero() -> UnitConfig:
    return UnitConfig(id="hero", name="Pahlawan", x=2, y=4, hp=100, attack=25, range=3)


class TargetGoal(LevelModel):
    """Select (or attack) the expected target; any target when unset."""
    type: Literal["targetSelection"] = "targetSelection"
    expected_target: Optional[str] = None


class CombatLevel(LevelBase):
    domain: Literal["combat"] = "combat"
    grid_size: GridSize2D = Field(default_factory=GridSize2D)
    hero: UnitConfig = Field(default_factory=_default_hero)
    enemies: list[UnitConfig] = Field(default_factory=list)
    goal: Annotated[Union[TargetGoal, FreeGoal], Field(discriminator="type")]


# =============================================================================
# Music
# =============================================================================

class NotesGoal(LevelModel):
    """Every required note is played (any order), and at least min_notes notes."""
    type: Literal["notes"] = "notes"
    required: list[str] = Field(default_factory=list)
    min_notes: Optional[int] = Field(None, ge=1)


class SequenceGoal(LevelModel):
    """The played notes start with exactly this sequence."""
    type: Literal["sequence"] = "sequence"
    required: list[str] = Field(min_length=1)


class RepeatGoal(LevelModel):
    """At least min_notes notes (of `note`, when given)."""
    type: Literal["repeat"] = "repeat"
    min_notes: int = Field(3, ge=1)
    note: Optional[str] = None


class MusicLevel(LevelBase):
    domain: Literal["music"] = "music"
    goal: Annotated[
        Union[NotesGoal, SequenceGoal, RepeatGoal, FreeGoal],
        Field(discriminator="type"),
    ]


# =============================================================================
# Sprite animation
# =============================================================================

class SpriteConfig(LevelModel):
    id: str
    emoji: str = ""
    x: float = 0
    y: float = 0


class SpritePositionGoal(LevelModel):
    """Controlled sprite within tolerance of every given axis."""
    type: Literal["position"] = "position"
    x: Optional[float] = None
    y: Optional[float] = None
    tolerance: float = Field(50, ge=0)


class SpriteActionGoal(LevelModel):
    """A given action type (e.g. "jump") appears in the log."""
    type: Literal["action"] = "action"
    action: str


class RotationGoal(LevelModel):
    type: Literal["rotation"] = "rotation"
    degrees: float = Field(360, gt=0)


class ScaleGoal(LevelModel):
    type: Literal["scale"] = "scale"
    percent: float = Field(gt=0)
    tolerance: float = Field(0, ge=0)


class SpeechGoal(LevelModel):
    """Sprite said something (or, when text is given, said exactly that)."""
    type: Literal["speech"] = "speech"
    text: Optional[str] = None


class SpriteLevel(LevelBase):
    domain: Literal["sprite"] = "sprite"
    sprites: list[SpriteConfig] = Field(min_length=1)
    goal: Annotated[
        Union[SpritePositionGoal, SpriteActionGoal, RotationGoal, ScaleGoal, SpeechGoal, FreeGoal],
        Field(discriminator="type"),
    ]


# =============================================================================
# Pixel art
# =============================================================================

class PixelGoal(LevelModel):
    """Every target cell is drawn; colors checked only when given."""
    type: Literal["pixels"] = "pixels"
    cells: list[tuple[int, int]] = Field(min_length=1)
    colors: Optional[list[str]] = None


class PixelLevel(LevelBase):
    domain: Literal["pixel"] = "pixel"
    size: int = Field(8, ge=1)
    default_color: str = "merah"
    goal: Annotated[Union[PixelGoal, FreeGoal], Field(discriminator="type")]


# =============================================================================
# Arithmetic console
# =============================================================================

class OutputGoal(LevelModel):
    """Printed lines start with the expected lines."""
    type: Literal["output"] = "output"
    expected: list[str] = Field(min_length=1)


class MathLevel(LevelBase):
    domain: Literal["math"] = "math"
    goal: Annotated[Union[OutputGoal, FreeGoal], Field(discriminator="type")]


# =============================================================================
# Loading
# =============================================================================

Level = Annotated[
    Union[
        RobotLevel,
        BuildingLevel,
        SortingLevel,
        CombatLevel,
        MusicLevel,
        SpriteLevel,
        PixelLevel,
        MathLevel,
    ],
    Field(discriminator="domain"),
]

LEVEL_ADAPTER: TypeAdapter = TypeAdapter(Level)


class LevelLoadError(BlockyKidsError):
    """Raised when a level document fails type checking."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Level failed to load with {len(errors)} error(s): " + "; ".join(errors))


def load_level(document: dict[str, Any] | str | bytes) -> Level:
    """
    Type-check a level document (dict or JSON text) into a Level.

    Raises LevelLoadError listing every problem found.
    """
    try:
        if isinstance(document, (str, bytes)):
            return LEVEL_ADAPTER.validate_json(document)
        return LEVEL_ADAPTER.validate_python(document)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        raise LevelLoadError(errors) from e


def load_levels(documents: list[dict[str, Any]]) -> list[Level]:
    """Load a level pack, prefixing errors with the level position."""
    levels = []
    errors: list[str] = []
    for index, document in enumerate(documents):
        try:
            levels.append(load_level(document))
        except LevelLoadError as e:
            errors.extend(f"levels[{index}].{err}" for err in e.errors)
    if errors:
        raise LevelLoadError(errors)
    return levels


def dump_level(level: Level) -> dict[str, Any]:
    """Serialize a Level back to a JSON-friendly dict (snake_case keys)."""
    return json.loads(level.model_dump_json())
