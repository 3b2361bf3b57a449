"""
Tests for the local block interpreter.

Tests:
- Traces from loops, branches and queries
- Runtime errors keep the partial trace
- Step, time and action budgets become timeouts
"""

import pytest

from ..compiler.program import (
    Assign,
    Attribute,
    BinaryOp,
    Call,
    Compare,
    CompiledProgram,
    ForEach,
    ForRange,
    If,
    Literal,
    Query,
    Repeat,
    Variable,
)
from ..domains.defaults import default_levels
from ..engine_core.action import Action, ActionType
from ..engine_core.diagnostics import DiagnosticKind
from ..sandbox import LocalSandbox


def program(domain, *statements):
    return CompiledProgram(domain=domain, statements=tuple(statements))


class TestLocalExecution:
    """Tests for successful runs."""

    @pytest.fixture
    def sandbox(self):
        return LocalSandbox()

    def test_repeat(self, sandbox, robot_domain, robot_level):
        registry = robot_domain.create_registry(robot_level)
        outcome = sandbox.run(program("robot", Repeat(Literal(4), (Call("move_forward"),))), registry)

        assert outcome.ok
        assert list(outcome.trace) == [Action.move(1, 0)] * 4

    def test_repeat_count_from_text_field(self, sandbox, robot_domain, robot_level):
        """Block fields may arrive as text."""
        registry = robot_domain.create_registry(robot_level)
        outcome = sandbox.run(program("robot", Repeat(Literal("2"), (Call("maju"),))), registry)
        assert len(outcome.trace) == 2

    def test_for_range_inclusive_and_descending(self, sandbox, registry):
        caps = registry.get("math").create_registry(default_levels("math")[0])
        stmt = ForRange("i", Literal(3), Literal(1), (Call("print_value", (Variable("i"),)),))
        outcome = sandbox.run(program("math", stmt), caps)
        assert [a.payload.text for a in outcome.trace] == ["3", "2", "1"]

    def test_bubble_sort_sorts(self, sandbox, registry):
        """A block bubble sort over get()/swap() produces a sorting trace."""
        level = default_levels("sorting")[2]
        caps = registry.get("sorting").create_registry(level)
        inner = ForRange(
            "j", Literal(0), BinaryOp("-", Query("length"), Literal(2)),
            (If(
                Compare(">", Query("get", (Variable("j"),)), Query("get", (BinaryOp("+", Variable("j"), Literal(1)),))),
                (Call("swap", (Variable("j"), BinaryOp("+", Variable("j"), Literal(1)))),),
            ),),
        )
        outer = ForRange("i", Literal(0), BinaryOp("-", Query("length"), Literal(1)), (inner,))
        outcome = sandbox.run(program("sorting", outer), caps)

        assert outcome.ok
        assert caps.invoke("view") == [1, 2, 3, 4, 5]
        assert all(a.action_type == ActionType.SWAP for a in outcome.trace)

    def test_for_each_enemy_picks_closest(self, sandbox, registry, combat_level):
        caps = registry.get("combat").create_registry(combat_level)
        statements = (
            Assign("best", Literal(None)),
            Assign("best_distance", Literal(1000)),
            ForEach("enemy", "enemies", (
                If(
                    Compare("<", Query("distance_to", (Variable("enemy"),)), Variable("best_distance")),
                    (
                        Assign("best", Attribute(Variable("enemy"), "id")),
                        Assign("best_distance", Query("distance_to", (Variable("enemy"),))),
                    ),
                ),
            )),
            Call("select_target", (Variable("best"),)),
        )
        outcome = sandbox.run(program("combat", *statements), caps)
        assert list(outcome.trace) == [Action.select_target("goblin2")]

    @pytest.mark.asyncio
    async def test_execute_is_awaitable(self, sandbox, robot_domain, robot_level):
        registry = robot_domain.create_registry(robot_level)
        outcome = await sandbox.execute(program("robot", Call("turn_left")), registry)
        assert outcome.trace[0] == Action.turn(-90)


class TestLocalFailures:
    """Tests for runtime errors and budgets."""

    def test_runtime_error_keeps_partial_trace(self, registry, sorting_level):
        sandbox = LocalSandbox()
        caps = registry.get("sorting").create_registry(sorting_level)
        statements = (
            Call("swap", (Literal(0), Literal(1)), "ok"),
            Call("swap", (Literal(0), Literal(9)), "bad"),
            Call("swap", (Literal(1), Literal(2)), "never"),
        )
        outcome = sandbox.run(program("sorting", *statements), caps)

        assert not outcome.ok
        diagnostic = outcome.diagnostic
        assert diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert list(diagnostic.partial_trace) == [Action.swap(0, 1)]
        assert diagnostic.location.block_id == "bad"

    def test_undefined_variable(self, robot_domain, robot_level):
        caps = robot_domain.create_registry(robot_level)
        outcome = LocalSandbox().run(program("robot", Repeat(Variable("n"), (Call("maju"),), "r1")), caps)
        assert outcome.diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert "'n'" in outcome.diagnostic.message

    def test_divide_by_zero(self, registry):
        caps = registry.get("math").create_registry(default_levels("math")[0])
        stmt = Call("print_value", (BinaryOp("/", Literal(1), Literal(0)),))
        outcome = LocalSandbox().run(program("math", stmt), caps)
        assert outcome.diagnostic.kind == DiagnosticKind.RUNTIME_ERROR

    def test_float_overflow_is_runtime_error(self, registry):
        """10 squared nine times is fine as a whole number but not as a float."""
        caps = registry.get("math").create_registry(default_levels("math")[0])
        square = Repeat(Literal(9), (Assign("x", BinaryOp("*", Variable("x"), Variable("x"))),))
        outcome = LocalSandbox().run(program(
            "math",
            Assign("x", Literal(10)),
            square,
            Assign("y", BinaryOp("*", Variable("x"), Literal(1.5))),
        ), caps)

        assert outcome.diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert "too big" in outcome.diagnostic.message

    def test_huge_numbers_are_refused(self, registry):
        caps = registry.get("math").create_registry(default_levels("math")[0])
        square = Repeat(Literal(30), (Assign("x", BinaryOp("*", Variable("x"), Variable("x"))),))
        outcome = LocalSandbox().run(program("math", Assign("x", Literal(10)), square), caps)

        assert outcome.diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert outcome.diagnostic.message == "That number is too big"

    def test_huge_text_is_refused(self, registry):
        caps = registry.get("math").create_registry(default_levels("math")[0])
        stmt = Assign("s", BinaryOp("*", Literal("a"), Literal(10**20)))
        outcome = LocalSandbox().run(program("math", stmt), caps)

        assert outcome.diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert outcome.diagnostic.message == "That text would be too long"

    def test_step_budget_is_timeout(self, robot_domain, robot_level):
        """A huge loop is stopped and reported as a timeout without a trace."""
        caps = robot_domain.create_registry(robot_level)
        sandbox = LocalSandbox(step_budget=50)
        outcome = sandbox.run(program("robot", Repeat(Literal(1000), (Call("wait", (Literal(0),)),))), caps)

        assert outcome.diagnostic.kind == DiagnosticKind.TIMEOUT
        assert outcome.diagnostic.partial_trace is None

    def test_deadline_is_timeout(self, robot_domain, robot_level):
        ticks = iter(range(0, 10_000, 1))
        sandbox = LocalSandbox(clock=lambda: next(ticks))
        caps = robot_domain.create_registry(robot_level)
        outcome = sandbox.run(
            program("robot", Repeat(Literal(100), (Call("turn_left"),))), caps, timeout_ms=5_000
        )
        assert outcome.diagnostic.kind == DiagnosticKind.TIMEOUT

    def test_action_budget_is_timeout(self, robot_domain, robot_level):
        caps = robot_domain.create_registry(robot_level, max_actions=10)
        outcome = LocalSandbox().run(program("robot", Repeat(Literal(20), (Call("turn_left"),))), caps)
        assert outcome.diagnostic.kind == DiagnosticKind.TIMEOUT
