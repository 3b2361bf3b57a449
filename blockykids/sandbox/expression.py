"""
Expression evaluation for block programs.

Evaluates the IR expression nodes produced by the block compiler.

Supports:
- Literals and learner variables
- Arithmetic: +, -, *, /, %
- Comparisons: ==, !=, <, >, <=, >=
- Boolean operators: and, or, not (short-circuit)
- Query primitives: get(i), distance_to(enemy), ...
- Field access on read-only records: enemy.hp

The context holds only learner variables and the capability registry;
there is no path from an expression to anything else.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import operator
from typing import Any, Callable, Mapping

from ..compiler.program import (
    Attribute,
    BinaryOp,
    Compare,
    Expr,
    Literal,
    Logic,
    Not,
    Query,
    Variable,
)
from ..engine_core.capabilities import CapabilityRegistry
from ..engine_core.diagnostics import InvalidArgumentError, ProgramError

COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

ARITHMETIC: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
}

# Largest values a block program may build. A single big-int multiply runs
# to completion before the step deadline is checked again.
MAX_INT_BITS = 4096
MAX_TEXT_LENGTH = 10_000


@dataclass
class ExpressionContext:
    """
    Context for evaluating expressions.

    Provides access to:
    - Learner variables (assigned by the program, loop counters)
    - The capability registry (query primitives, collections)
    """
    registry: CapabilityRegistry
    variables: dict[str, Any] = field(default_factory=dict)

    def get_variable(self, name: str) -> Any:
        if name not in self.variables:
            raise ProgramError(f"Variable '{name}' has no value yet")
        return self.variables[name]

    def set_variable(self, name: str, value: Any) -> None:
        self.variables[name] = value


def _numeric(value: Any) -> Any:
    """Numbers pass through; numeric text from block fields becomes a number."""
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return value
        return int(number) if number.is_integer() else number
    return value


def _size(value: Any) -> int:
    if isinstance(value, int):
        return value.bit_length()
    if isinstance(value, str):
        return len(value)
    return 0


def _check_operands(op: str, left: Any, right: Any) -> None:
    """Refuse operations whose result would be too big to hold."""
    if isinstance(left, str) or isinstance(right, str):
        text, other = (left, right) if isinstance(left, str) else (right, left)
        if op not in ("+", "*"):
            raise ProgramError(f"Cannot compute {left!r:.40} {op} {right!r:.40}")
        if op == "*" and isinstance(other, int) and len(text) * max(other, 0) > MAX_TEXT_LENGTH:
            raise ProgramError("That text would be too long")
        return
    if isinstance(left, int) and isinstance(right, int) and op == "*":
        if _size(left) + _size(right) > MAX_INT_BITS:
            raise ProgramError("That number is too big")


class ExpressionEvaluator:
    """
    Evaluates IR expressions.

    Usage:
        evaluator = ExpressionEvaluator()
        value = evaluator.evaluate(BinaryOp("+", Literal(5), Literal(3)), context)
    """

    def evaluate(self, expr: Expr, context: ExpressionContext) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Variable):
            return context.get_variable(expr.name)
        if isinstance(expr, BinaryOp):
            return self._arithmetic(expr, context)
        if isinstance(expr, Compare):
            return self._compare(expr, context)
        if isinstance(expr, Logic):
            left = self.evaluate_condition(expr.left, context)
            if expr.op == "and":
                return left and self.evaluate_condition(expr.right, context)
            return left or self.evaluate_condition(expr.right, context)
        if isinstance(expr, Not):
            return not self.evaluate_condition(expr.operand, context)
        if isinstance(expr, Query):
            return self._query(expr, context)
        if isinstance(expr, Attribute):
            return self._attribute(expr, context)
        raise ProgramError(f"Cannot evaluate {type(expr).__name__}")

    def evaluate_condition(self, expr: Expr, context: ExpressionContext) -> bool:
        """Evaluate an expression as a boolean condition."""
        return bool(self.evaluate(expr, context))

    def _arithmetic(self, expr: BinaryOp, context: ExpressionContext) -> Any:
        func = ARITHMETIC.get(expr.op)
        if func is None:
            raise ProgramError(f"Unknown operator '{expr.op}'")
        left = self.evaluate(expr.left, context)
        right = self.evaluate(expr.right, context)
        if not (expr.op == "+" and isinstance(left, str) and isinstance(right, str)):
            left, right = _numeric(left), _numeric(right)
        _check_operands(expr.op, left, right)
        try:
            result = func(left, right)
        except ZeroDivisionError:
            raise ProgramError("Cannot divide by zero") from None
        except (ArithmeticError, MemoryError):
            raise ProgramError(f"Cannot compute {left!r:.40} {expr.op} {right!r:.40}: the number is too big") from None
        except TypeError:
            raise ProgramError(f"Cannot compute {left!r} {expr.op} {right!r}") from None
        if _size(result) > (MAX_INT_BITS if isinstance(result, int) else MAX_TEXT_LENGTH):
            raise ProgramError("That number is too big" if isinstance(result, int) else "That text would be too long")
        if isinstance(result, float) and result.is_integer() and expr.op != "/":
            return int(result)
        return result

    def _compare(self, expr: Compare, context: ExpressionContext) -> bool:
        func = COMPARISONS.get(expr.op)
        if func is None:
            raise ProgramError(f"Unknown comparison '{expr.op}'")
        left = _numeric(self.evaluate(expr.left, context))
        right = _numeric(self.evaluate(expr.right, context))
        try:
            return func(left, right)
        except TypeError:
            raise ProgramError(f"Cannot compare {left!r} {expr.op} {right!r}") from None

    def _query(self, expr: Query, context: ExpressionContext) -> Any:
        registry = context.registry
        if not registry.is_query(expr.name):
            raise InvalidArgumentError(f"'{expr.name}' does not give back a value")
        args = [self.evaluate(arg, context) for arg in expr.args]
        return registry.invoke(expr.name, *args)

    def _attribute(self, expr: Attribute, context: ExpressionContext) -> Any:
        target = self.evaluate(expr.target, context)
        if isinstance(target, Mapping):
            if expr.name in target:
                return target[expr.name]
        raise ProgramError(f"{target!r} has no '{expr.name}'")
