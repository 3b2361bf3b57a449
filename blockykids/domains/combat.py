"""
Combat domain - Tactical target selection on an arena grid.

The hero picks and attacks enemies; damage is the hero's attack
value and hit points never leave [0, max_hp].
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, replace
import math
from typing import Any, Mapping

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, primitive
from ..engine_core.diagnostics import InvalidArgumentError, UnknownTargetError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState, clamp
from ..level_schema.levels import CombatLevel, FreeGoal, UnitConfig
from .base import Domain


@dataclass(frozen=True)
class CombatUnit:
    id: str
    name: str
    x: int
    y: int
    hp: int
    max_hp: int
    attack: int = 0
    range: int = 1

    @classmethod
    def from_config(cls, unit: UnitConfig) -> CombatUnit:
        return cls(
            id=unit.id,
            name=unit.name,
            x=unit.x,
            y=unit.y,
            hp=unit.hp,
            max_hp=unit.hp_cap,
            attack=unit.attack,
            range=unit.range,
        )

    @property
    def defeated(self) -> bool:
        return self.hp <= 0


@dataclass(frozen=True)
class CombatWorld(WorldState):
    width: int
    height: int
    hero: CombatUnit
    enemies: tuple[CombatUnit, ...] = ()
    selected_target: str | None = None
    attacks: int = 0

    def enemy(self, target_id: str) -> CombatUnit | None:
        return next((e for e in self.enemies if e.id == target_id), None)


def initial_world(level: CombatLevel) -> CombatWorld:
    return CombatWorld(
        width=level.grid_size.width,
        height=level.grid_size.height,
        hero=CombatUnit.from_config(level.hero),
        enemies=tuple(CombatUnit.from_config(e) for e in level.enemies),
    )


def distance(a: Any, b: Any) -> float:
    """Straight-line distance between two units (objects or records)."""
    ax, ay = _coords(a)
    bx, by = _coords(b)
    return math.sqrt((ax - bx) ** 2 + (ay - by) ** 2)


def _coords(unit: Any) -> tuple[float, float]:
    if isinstance(unit, Mapping):
        return unit["x"], unit["y"]
    return unit.x, unit.y


# =============================================================================
# Reducer handlers
# =============================================================================

def _handle_select_target(state: CombatWorld, action: Action) -> ActionResult:
    target_id = action.payload.target_id
    if state.enemy(target_id) is None:
        return ActionResult.failure(f"No enemy called '{target_id}'", "UNKNOWN_TARGET")
    return ActionResult.success_with_state(
        state.with_changes(selected_target=target_id),
        [f"Target: {target_id}"],
    )


def _handle_attack(state: CombatWorld, action: Action) -> ActionResult:
    target_id = action.payload.target_id
    enemy = state.enemy(target_id)
    if enemy is None:
        return ActionResult.failure(f"No enemy called '{target_id}'", "UNKNOWN_TARGET")

    hp = clamp(enemy.hp - state.hero.attack, 0, enemy.max_hp)
    enemies = tuple(replace(e, hp=hp) if e.id == target_id else e for e in state.enemies)
    changes = [f"{state.hero.name} hits {enemy.name} for {enemy.hp - hp} damage"]
    if hp == 0:
        changes.append(f"{enemy.name} is defeated")
    return ActionResult.success_with_state(
        state.with_changes(enemies=enemies, selected_target=target_id, attacks=state.attacks + 1),
        changes,
    )


HANDLERS = {
    ActionType.SELECT_TARGET: _handle_select_target,
    ActionType.ATTACK: _handle_attack,
}


# =============================================================================
# Capabilities
# =============================================================================

class CombatCapabilities(CapabilityRegistry):
    """
    Combat primitives.

    Enemies are exposed as the read-only ``enemies`` collection; a target
    argument may be an enemy record or its id.
    """
    domain = "combat"

    def __init__(self, level: CombatLevel, max_actions: int = 1000, recorder=None):
        super().__init__(level, max_actions, recorder)
        self._hero = CombatUnit.from_config(level.hero)
        self._enemies = {e.id: CombatUnit.from_config(e) for e in level.enemies}
        self._selected: str | None = None
        self.expose("enemies", [asdict(e) for e in self._enemies.values()])
        self.expose("hero", [asdict(self._hero)])

    def _target(self, target: Any) -> CombatUnit:
        if isinstance(target, Mapping):
            target = target.get("id")
        elif isinstance(target, CombatUnit):
            target = target.id
        unit = self._enemies.get(str(target)) if target is not None else None
        if unit is None:
            raise UnknownTargetError(f"There is no enemy called {target!r}")
        return unit

    @primitive("select_target", aliases=("pilih_target", "combatSelectTarget"))
    def select_target(self, target):
        """Choose an enemy as the target."""
        unit = self._target(target)
        self._selected = unit.id
        self.record(Action.select_target(unit.id))

    @primitive("attack", aliases=("serang_target", "attack_target", "combatAttack"))
    def attack(self, target=None):
        """Attack an enemy (the selected target when none is given)."""
        if target is None:
            if self._selected is None:
                raise InvalidArgumentError("Select a target before attacking")
            target = self._selected
        unit = self._target(target)
        self._selected = unit.id
        self.record(Action.attack(unit.id))

    @primitive("distance_to", aliases=("jarak_ke", "combatDistance"), query=True)
    def distance_to(self, target):
        """Distance from the hero to an enemy."""
        return distance(self._hero, self._target(target))

    @primitive("in_range", aliases=("dalam_jangkauan", "combatInRange"), query=True)
    def in_range(self, target):
        """Whether an enemy is within the hero's attack range."""
        return distance(self._hero, self._target(target)) <= self._hero.range

    @primitive("get_hp", aliases=("ambil_hp", "combatGetHp"), query=True)
    def get_hp(self, target):
        """Starting hit points of an enemy."""
        return self._target(target).hp

    @primitive("get_position", aliases=("ambil_posisi", "combatGetPosition"), query=True)
    def get_position(self, target, axis="x"):
        """x or y coordinate of an enemy."""
        unit = self._target(target)
        axis = str(axis).lower()
        if axis not in {"x", "y"}:
            raise InvalidArgumentError(f"axis must be 'x' or 'y', got {axis!r}")
        return getattr(unit, axis)


# =============================================================================
# Goal
# =============================================================================

def check_goal(level: CombatLevel, state: CombatWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    selected = state.selected_target
    details = {"selected_target": selected, "expected_target": goal.expected_target}
    if selected is None:
        return Verdict.failed("No target was selected", **details)
    if goal.expected_target is not None and selected != goal.expected_target:
        enemy = state.enemy(selected)
        name = enemy.name if enemy else selected
        return Verdict.failed(f"{name} is not the best target; think again", **details)
    return Verdict.passed(f"Good choice, {selected} was the right target!", **details)


def _unit_literal(cls: str, unit: UnitConfig) -> str:
    return f"{cls}({unit.id!r}, {unit.name!r}, {unit.x}, {unit.y}, {unit.hp}, {unit.attack}, {unit.range})"


def source_prelude(level: CombatLevel) -> str:
    """Unit classes, the arena roster and object-aware target helpers."""
    enemies = ",\n".join(f"    {_unit_literal('Musuh', e)}" for e in level.enemies)
    return "\n".join([
        "import math as _math",
        "",
        "class Unit:",
        "    def __init__(self, id, name, x, y, hp, attack, attack_range):",
        "        self.id = id",
        "        self.name = name",
        "        self.x = x",
        "        self.y = y",
        "        self.hp = hp",
        "        self.attack = attack",
        "        self.range = attack_range",
        "",
        "    def jarak_ke(self, other):",
        "        return _math.sqrt((self.x - other.x) ** 2 + (self.y - other.y) ** 2)",
        "",
        "    def dalam_jangkauan(self, other):",
        "        return self.jarak_ke(other) <= self.range",
        "",
        "    distance_to = jarak_ke",
        "    in_range = dalam_jangkauan",
        "",
        "    def __repr__(self):",
        '        return f"{self.name}({self.id}, hp={self.hp})"',
        "",
        "class Pahlawan(Unit):",
        "    def serang(self, target):",
        "        attack(target)",
        "        return _unit_id(target)",
        "",
        "    attack_target = serang",
        "",
        "class Musuh(Unit):",
        "    pass",
        "",
        "Hero = Pahlawan",
        "Enemy = Musuh",
        "",
        f"pahlawan = hero = {_unit_literal('Pahlawan', level.hero)}",
        "daftar_musuh = enemies = [",
        enemies,
        "]",
        "",
        "def _unit_id(target):",
        "    return target.id if isinstance(target, Unit) else target",
        "",
        "def _unit(target):",
        "    for unit in daftar_musuh:",
        "        if unit.id == _unit_id(target):",
        "            return unit",
        '    raise ValueError(f"no enemy called {target!r}")',
        "",
        "def select_target(target):",
        '    _emit("select_target", (_unit_id(target),))',
        "    return target",
        "",
        "def attack(target=None):",
        '    _emit("attack", () if target is None else (_unit_id(target),))',
        "",
        "def distance_to(target):",
        "    return pahlawan.jarak_ke(_unit(target))",
        "",
        "def in_range(target):",
        "    return pahlawan.dalam_jangkauan(_unit(target))",
        "",
        "def get_hp(target):",
        "    return _unit(target).hp",
        "",
        "def get_position(target, axis='x'):",
        "    return getattr(_unit(target), axis)",
        "",
        "pilih_target = combatSelectTarget = select_target",
        "serang_target = attack_target = combatAttack = attack",
        "jarak_ke = combatDistance = distance_to",
        "dalam_jangkauan = combatInRange = in_range",
        "ambil_hp = combatGetHp = get_hp",
        "ambil_posisi = combatGetPosition = get_position",
    ])


COMBAT = Domain(
    name="combat",
    title="Tactical Arena",
    level_type=CombatLevel,
    world_type=CombatWorld,
    registry_type=CombatCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={
        ActionType.ATTACK: 1.0,
        ActionType.SELECT_TARGET: 0.3,
    },
    logged_actions=frozenset({ActionType.SELECT_TARGET, ActionType.ATTACK}),
    blocks=(
        BlockSpec("combat_select_target", "select_target", (ArgSpec("TARGET"),)),
        BlockSpec("combat_attack", "attack"),
        BlockSpec("combat_distance", "distance_to", (ArgSpec("TARGET"),), query=True),
        BlockSpec("combat_in_range", "in_range", (ArgSpec("TARGET"),), query=True),
        BlockSpec("combat_get_hp", "get_hp", (ArgSpec("TARGET"),), query=True),
        BlockSpec("combat_get_position", "get_position", (ArgSpec("TARGET"), ArgSpec("AXIS", "x")), query=True),
    ),
    source_prelude=source_prelude,
    helper_names=frozenset({"serang"}),
)
