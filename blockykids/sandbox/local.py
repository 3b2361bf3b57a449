"""
Local Sandbox - Tree-walking interpreter for block programs.

The interpreter sees only the learner's variables and the capability
registry. Runs are bounded three ways:
1. A step budget, charged per statement and per loop iteration
2. A wall-clock deadline, checked at every step
3. The recorder's action budget

Exceeding any budget is a TIMEOUT and the partial trace is dropped.
Capability and evaluation errors are a RUNTIME_ERROR that keeps it.
"""

from __future__ import annotations
import time
from typing import Callable

from ..compiler.program import (
    Assign,
    Call,
    CompiledProgram,
    ForEach,
    ForRange,
    If,
    Repeat,
    Stmt,
)
from ..engine_core.capabilities import CapabilityRegistry, as_int, as_number
from ..engine_core.diagnostics import (
    BudgetExceededError,
    CapabilityError,
    Diagnostic,
    ProgramError,
    SourceLocation,
)
from ..logging_utils import get_logger
from .base import ExecutionOutcome, Sandbox
from .expression import ExpressionContext, ExpressionEvaluator

logger = get_logger("sandbox.local")

DEFAULT_STEP_BUDGET = 10_000
DEFAULT_TIMEOUT_MS = 2_000


class _Interpreter:
    """Executes one CompiledProgram against one registry."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        step_budget: int,
        deadline: float,
        clock: Callable[[], float],
    ):
        self.context = ExpressionContext(registry)
        self.evaluator = ExpressionEvaluator()
        self.step_budget = step_budget
        self.deadline = deadline
        self.clock = clock
        self.steps = 0
        self.block_id: str | None = None

    def tick(self) -> None:
        self.steps += 1
        if self.steps > self.step_budget:
            raise BudgetExceededError(f"Program ran for more than {self.step_budget} steps")
        if self.clock() > self.deadline:
            raise BudgetExceededError("Program ran out of time")

    def run(self, statements: tuple[Stmt, ...]) -> None:
        for stmt in statements:
            self.execute(stmt)

    def execute(self, stmt: Stmt) -> None:
        self.tick()
        if stmt.block_id is not None:
            self.block_id = stmt.block_id
        evaluate = self.evaluator.evaluate

        if isinstance(stmt, Call):
            args = [evaluate(arg, self.context) for arg in stmt.args]
            self.context.registry.invoke(stmt.name, *args)

        elif isinstance(stmt, Assign):
            self.context.set_variable(stmt.name, evaluate(stmt.value, self.context))

        elif isinstance(stmt, Repeat):
            times = as_int(evaluate(stmt.times, self.context), "repeat count")
            for _ in range(max(times, 0)):
                self.tick()
                self.run(stmt.body)

        elif isinstance(stmt, ForRange):
            self._for_range(stmt)

        elif isinstance(stmt, ForEach):
            for item in self.context.registry.collection(stmt.collection):
                self.tick()
                self.context.set_variable(stmt.var, item)
                self.run(stmt.body)

        elif isinstance(stmt, If):
            if self.evaluator.evaluate_condition(stmt.condition, self.context):
                self.run(stmt.body)
            else:
                self.run(stmt.orelse)

        else:
            raise ProgramError(f"Cannot execute {type(stmt).__name__}")

    def _for_range(self, stmt: ForRange) -> None:
        evaluate = self.evaluator.evaluate
        start = as_number(evaluate(stmt.start, self.context), "loop start")
        end = as_number(evaluate(stmt.end, self.context), "loop end")
        step = abs(as_number(evaluate(stmt.step, self.context), "loop step")) if stmt.step else 1
        if step == 0:
            raise ProgramError("Loop step cannot be 0")
        if start > end:
            step = -step

        value = start
        while (value <= end) if step > 0 else (value >= end):
            self.tick()
            self.context.set_variable(stmt.var, value)
            self.run(stmt.body)
            value += step


class LocalSandbox(Sandbox):
    """
    In-process back end for block programs.

    Usage:
        sandbox = LocalSandbox(step_budget=10_000)
        outcome = await sandbox.execute(program, registry, timeout_ms=2000)
    """
    name = "local"

    def __init__(
        self,
        step_budget: int = DEFAULT_STEP_BUDGET,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.step_budget = step_budget
        self.default_timeout_ms = default_timeout_ms
        self.clock = clock

    async def execute(
        self,
        program: CompiledProgram,
        registry: CapabilityRegistry,
        timeout_ms: int | None = None,
    ) -> ExecutionOutcome:
        return self.run(program, registry, timeout_ms)

    def run(
        self,
        program: CompiledProgram,
        registry: CapabilityRegistry,
        timeout_ms: int | None = None,
    ) -> ExecutionOutcome:
        """Synchronous core of execute()."""
        timeout_ms = timeout_ms if timeout_ms is not None else self.default_timeout_ms
        interpreter = _Interpreter(
            registry,
            step_budget=self.step_budget,
            deadline=self.clock() + timeout_ms / 1000,
            clock=self.clock,
        )
        try:
            interpreter.run(program.statements)
        except BudgetExceededError as e:
            logger.warning("Local run of %s program timed out: %s", program.domain, e)
            return ExecutionOutcome.failure(Diagnostic.timeout(str(e)))
        except (CapabilityError, ProgramError) as e:
            location = getattr(e, "location", None) or SourceLocation(block_id=interpreter.block_id)
            logger.info("Local run of %s program failed: %s", program.domain, e)
            return ExecutionOutcome.failure(
                Diagnostic.runtime_error(str(e), registry.trace(), location)
            )

        trace = registry.trace()
        logger.debug("Local run of %s program: %d action(s) in %d step(s)", program.domain, len(trace), interpreter.steps)
        return ExecutionOutcome.success(trace)
