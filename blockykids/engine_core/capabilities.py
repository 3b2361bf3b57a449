"""
Capability Registry - The only way a program can affect a world.

Each domain subclasses CapabilityRegistry and declares its primitives
with the @primitive decorator. A primitive either:
1. Records exactly one Action through the TraceRecorder, or
2. Rejects its arguments with a CapabilityError subclass.

Query primitives (query=True) return a value and record nothing.
Primitives read level configuration and the registry's own shadow
bookkeeping (cursor, heading, potion order); they never see the live
WorldState, which belongs to the replay scheduler.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from types import MappingProxyType
import inspect
from typing import Any, Callable, ClassVar, Mapping

from .action import Action, ProgramTrace
from .diagnostics import BudgetExceededError, InvalidArgumentError, ProgramError


@dataclass(frozen=True)
class PrimitiveInfo:
    """Declaration of one primitive and the names it answers to."""
    name: str
    aliases: tuple[str, ...] = ()
    query: bool = False
    doc: str = ""
    attr: str = ""

    @property
    def all_names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


def primitive(
    name: str | None = None,
    *,
    aliases: tuple[str, ...] | list[str] = (),
    query: bool = False,
):
    """Mark a registry method as a primitive callable by learner programs."""
    def decorator(func):
        doc = (func.__doc__ or "").strip().splitlines()
        func.__primitive__ = PrimitiveInfo(
            name=name or func.__name__,
            aliases=tuple(aliases),
            query=query,
            doc=doc[0] if doc else "",
        )
        return func
    return decorator


class TraceRecorder:
    """
    Append-only action buffer with an action budget.

    The budget bounds runaway programs that keep calling primitives;
    exceeding it raises BudgetExceededError, reported as a timeout.
    """

    def __init__(self, max_actions: int = 1000):
        self.max_actions = max_actions
        self._actions: list[Action] = []

    def record(self, action: Action) -> None:
        if len(self._actions) >= self.max_actions:
            raise BudgetExceededError(
                f"Program produced more than {self.max_actions} actions"
            )
        self._actions.append(action)

    def snapshot(self) -> ProgramTrace:
        return ProgramTrace(tuple(self._actions))

    def __len__(self) -> int:
        return len(self._actions)


class CapabilityRegistry:
    """
    Trace-recording implementation of a domain's primitives.

    A fresh registry is built from the level for every run.

    Usage:
        registry = RobotCapabilities(level)
        registry.invoke("maju")
        registry.invoke("turn_left")
        trace = registry.trace()
    """
    domain: ClassVar[str] = ""

    def __init__(self, level: Any, max_actions: int = 1000, recorder: TraceRecorder | None = None):
        self.level = level
        self.recorder = recorder or TraceRecorder(max_actions)
        self._collections: dict[str, tuple[Any, ...]] = {}
        self._table = self._build_table()

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    @classmethod
    def primitives(cls) -> list[PrimitiveInfo]:
        """All primitives declared on the class, in name order."""
        infos = []
        for attr in sorted(dir(cls)):
            member = getattr(cls, attr, None)
            info = getattr(member, "__primitive__", None)
            if isinstance(info, PrimitiveInfo):
                infos.append(replace(info, attr=attr))
        return infos

    @classmethod
    def names(cls) -> set[str]:
        """Every name (canonical and alias) a program may call."""
        return {n for info in cls.primitives() for n in info.all_names}

    def _build_table(self) -> dict[str, Callable[..., Any]]:
        table: dict[str, Callable[..., Any]] = {}
        for info in self.primitives():
            bound = getattr(self, info.attr)
            for name in info.all_names:
                if name in table:
                    raise ValueError(f"Duplicate primitive name '{name}' in {type(self).__name__}")
                table[name] = bound
        return table

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def has(self, name: str) -> bool:
        return name in self._table

    def is_query(self, name: str) -> bool:
        func = self._table.get(name)
        return bool(func and func.__primitive__.query)

    def bindings(self) -> dict[str, Callable[..., Any]]:
        """Name -> callable table, aliases included."""
        return dict(self._table)

    def invoke(self, name: str, *args: Any) -> Any:
        """
        Call a primitive by any of its names.

        Raises ProgramError for unknown names and InvalidArgumentError
        when the argument count does not match.
        """
        func = self._table.get(name)
        if func is None:
            raise ProgramError(f"'{name}' is not a command in the {self.domain} world")
        try:
            inspect.signature(func).bind(*args)
        except TypeError as e:
            raise InvalidArgumentError(f"{name}(): {e}") from e
        return func(*args)

    def collection(self, name: str) -> tuple[Any, ...]:
        """Read-only values a program may iterate (e.g. combat enemies)."""
        if name not in self._collections:
            raise ProgramError(f"There is no list called '{name}' in the {self.domain} world")
        return self._collections[name]

    def expose(self, name: str, items: list[Mapping[str, Any]]) -> None:
        """Publish a read-only collection of read-only records."""
        self._collections[name] = tuple(MappingProxyType(dict(item)) for item in items)

    def record(self, action: Action) -> None:
        self.recorder.record(action)

    def trace(self) -> ProgramTrace:
        """Actions recorded so far, in invocation order."""
        return self.recorder.snapshot()


# =============================================================================
# Argument coercion
# =============================================================================

def as_int(value: Any, what: str) -> int:
    """Coerce a block field or program value to int, rejecting non-integers."""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{what} must be a whole number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidArgumentError(f"{what} must be a whole number, got {value!r}")


def as_number(value: Any, what: str) -> int | float:
    """Coerce to int or float, rejecting booleans and non-numeric text."""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{what} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            pass
        else:
            return int(number) if number.is_integer() else number
    raise InvalidArgumentError(f"{what} must be a number, got {value!r}")


def as_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
