"""
Compiled program forms.

The block front end produces a CompiledProgram: a small statement /
expression tree (IR) interpreted by the local sandbox. The source front
end produces a SourceProgram: the assembled text submitted to the
remote executor. Both front ends report through CompilationResult.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from ..engine_core.diagnostics import Diagnostic

PYTHON_LANGUAGE_ID = 71


# =============================================================================
# Expressions
# =============================================================================

@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class BinaryOp:
    """Arithmetic: + - * / %"""
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Compare:
    """Comparison: == != < <= > >="""
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Logic:
    """Short-circuit and/or."""
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Not:
    operand: Expr


@dataclass(frozen=True)
class Query:
    """Call to a query primitive; evaluates to its return value."""
    name: str
    args: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class Attribute:
    """Field of a read-only record, e.g. enemy.hp."""
    target: Expr
    name: str


Expr = Union[Literal, Variable, BinaryOp, Compare, Logic, Not, Query, Attribute]


# =============================================================================
# Statements
# =============================================================================

@dataclass(frozen=True)
class Call:
    """Invoke a primitive for its effect (records an action)."""
    name: str
    args: tuple[Expr, ...] = ()
    block_id: str | None = None


@dataclass(frozen=True)
class Repeat:
    times: Expr
    body: tuple[Stmt, ...] = ()
    block_id: str | None = None


@dataclass(frozen=True)
class ForRange:
    """
    Counting loop over start..end inclusive.

    step is a magnitude; the loop counts down when start > end.
    """
    var: str
    start: Expr
    end: Expr
    body: tuple[Stmt, ...] = ()
    step: Expr | None = None
    block_id: str | None = None


@dataclass(frozen=True)
class ForEach:
    """Loop over a registry collection such as combat enemies."""
    var: str
    collection: str
    body: tuple[Stmt, ...] = ()
    block_id: str | None = None


@dataclass(frozen=True)
class If:
    condition: Expr
    body: tuple[Stmt, ...] = ()
    orelse: tuple[Stmt, ...] = ()
    block_id: str | None = None


@dataclass(frozen=True)
class Assign:
    name: str
    value: Expr
    block_id: str | None = None


Stmt = Union[Call, Repeat, ForRange, ForEach, If, Assign]


@dataclass(frozen=True)
class CompiledProgram:
    """Block-derived program for the local sandbox."""
    domain: str
    statements: tuple[Stmt, ...] = ()
    block_count: int = 0


@dataclass(frozen=True)
class SourceProgram:
    """
    Learner source plus the assembled submission for the remote executor.

    line_offset is the number of prelude lines before the learner's
    first line; remote tracebacks are shifted back by it.
    """
    domain: str
    source: str
    submission: str
    language_id: int = PYTHON_LANGUAGE_ID
    line_offset: int = 0
    primitive_calls: int = 0


# =============================================================================
# Block specs
# =============================================================================

@dataclass(frozen=True)
class ArgSpec:
    """Named block argument, read from inputs first, then fields."""
    name: str
    default: Any = None


@dataclass(frozen=True)
class BlockSpec:
    """
    Maps a domain block type onto a primitive call.

    Statement blocks become Call statements; value blocks (query=True)
    become Query expressions.
    """
    block_type: str
    primitive: str
    args: tuple[ArgSpec, ...] = ()
    query: bool = False


# =============================================================================
# Compilation result
# =============================================================================

class CompilationStatus(Enum):
    """Status of compilation."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class CompilationResult:
    """
    Result of compiling a block workspace or source text.
    """
    status: CompilationStatus
    program: CompiledProgram | SourceProgram | None = None
    diagnostic: Diagnostic | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == CompilationStatus.SUCCESS

    @classmethod
    def success(cls, program: CompiledProgram | SourceProgram, warnings: list[str] | None = None) -> CompilationResult:
        return cls(CompilationStatus.SUCCESS, program=program, warnings=warnings or [])

    @classmethod
    def failure(cls, diagnostic: Diagnostic) -> CompilationResult:
        return cls(CompilationStatus.FAILED, diagnostic=diagnostic)
