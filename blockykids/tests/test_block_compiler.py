"""
Tests for the block compiler.

Tests:
- Sequences, loops and branches
- Value blocks and domain query blocks
- Workspace formats
- Malformed workspaces
"""

import pytest

from ..compiler import BlockCompiler
from ..compiler.program import Assign, Call, Compare, ForRange, If, Literal, Query, Repeat, Variable
from ..engine_core.diagnostics import DiagnosticKind


def block(block_type, block_id=None, fields=None, inputs=None):
    data = {"type": block_type, "id": block_id or block_type}
    if fields:
        data["fields"] = fields
    if inputs:
        data["inputs"] = {name: {"block": child} for name, child in inputs.items()}
    return data


def chain(*blocks):
    """Link blocks through ``next`` and return the first."""
    for current, following in zip(blocks, blocks[1:]):
        current["next"] = {"block": following}
    return blocks[0]


class TestSequences:
    """Tests for plain statement chains."""

    @pytest.fixture
    def compiler(self, registry):
        return BlockCompiler(registry)

    def test_chain_in_order(self, compiler):
        workspace = chain(block("move_forward", "a"), block("turn_left", "b"), block("move_forward", "c"))
        result = compiler.compile(workspace, "robot")

        assert result.ok
        statements = result.program.statements
        assert [s.name for s in statements] == ["move_forward", "turn_left", "move_forward"]
        assert [s.block_id for s in statements] == ["a", "b", "c"]
        assert result.program.block_count == 3

    def test_blockly_serialization(self, compiler):
        """Top-level stacks of the Blockly JSON format compile in order."""
        workspace = {
            "blocks": {"languageVersion": 0, "blocks": [block("move_forward", "a"), block("turn_right", "b")]},
            "variables": [],
        }
        result = compiler.compile(workspace, "robot")
        assert [s.name for s in result.program.statements] == ["move_forward", "turn_right"]

    def test_disabled_blocks_skipped(self, compiler):
        disabled = block("turn_left", "b")
        disabled["enabled"] = False
        result = compiler.compile(chain(block("move_forward", "a"), disabled), "robot")
        assert len(result.program.statements) == 1

    def test_default_arguments(self, compiler):
        """Missing optional fields fall back to the block's default."""
        result = compiler.compile(block("wait"), "robot")
        assert result.program.statements[0] == Call("wait", (Literal(1),), "wait")

    def test_empty_workspace_warns(self, compiler):
        result = compiler.compile([], "robot")
        assert result.ok
        assert result.warnings == ["The workspace has no blocks to run"]


class TestControlFlow:
    """Tests for loops and branches."""

    @pytest.fixture
    def compiler(self, registry):
        return BlockCompiler(registry)

    def test_repeat_times(self, compiler):
        loop = block("repeat_times", "loop", fields={"TIMES": 4}, inputs={"DO": block("move_forward", "m")})
        result = compiler.compile(loop, "robot")

        repeat = result.program.statements[0]
        assert isinstance(repeat, Repeat)
        assert repeat.times == Literal(4)
        assert repeat.body == (Call("move_forward", (), "m"),)

    def test_repeat_count_from_value_block(self, compiler):
        loop = block(
            "controls_repeat_ext",
            inputs={"TIMES": block("math_number", fields={"NUM": 3}), "DO": block("move_forward")},
        )
        result = compiler.compile(loop, "robot")
        assert result.program.statements[0].times == Literal(3)

    def test_for_loop(self, compiler):
        loop = block(
            "for_loop",
            fields={"VAR": "i", "FROM": 0, "TO": 3},
            inputs={"DO": block("alchemist_swap", inputs={
                "I": block("variables_get", fields={"VAR": "i"}),
                "J": block("math_number", fields={"NUM": 0}),
            })},
        )
        result = compiler.compile(loop, "sorting")

        stmt = result.program.statements[0]
        assert isinstance(stmt, ForRange)
        assert stmt.var == "i"
        assert stmt.end == Literal(3)
        assert stmt.step is None
        assert stmt.body[0].args == (Variable("i"), Literal(0))

    def test_if_compare_with_query(self, compiler):
        """Domain value blocks compile to Query expressions."""
        condition = block("compare_values", fields={"OP": "GT"}, inputs={
            "A": block("alchemist_get", fields={"INDEX": 0}),
            "B": block("alchemist_get", fields={"INDEX": 1}),
        })
        branch = block("if_compare", "if1", inputs={
            "CONDITION": condition,
            "DO": block("alchemist_swap", fields={"I": 0, "J": 1}),
        })
        result = compiler.compile(branch, "sorting")

        stmt = result.program.statements[0]
        assert isinstance(stmt, If)
        assert stmt.condition == Compare(">", Query("get", (Literal(0),)), Query("get", (Literal(1),)))
        assert stmt.orelse == ()

    def test_controls_if_else_if_chain(self, compiler):
        """IF0/IF1/ELSE become nested If statements."""
        true = block("logic_boolean", fields={"BOOL": "TRUE"})
        false = block("logic_boolean", fields={"BOOL": "FALSE"})
        branch = {
            "type": "controls_if", "id": "if",
            "inputs": {
                "IF0": {"block": false}, "DO0": {"block": block("turn_left")},
                "IF1": {"block": true}, "DO1": {"block": block("turn_right")},
                "ELSE": {"block": block("move_forward")},
            },
        }
        stmt = compiler.compile(branch, "robot").program.statements[0]
        assert stmt.condition == Literal(False)
        inner = stmt.orelse[0]
        assert inner.condition == Literal(True)
        assert inner.body[0].name == "turn_right"
        assert inner.orelse[0].name == "move_forward"

    def test_math_set_var_echoes(self, compiler):
        """The console prints every assigned value."""
        assign = block("math_set_var", fields={"VAR": "x"}, inputs={"VALUE": block("math_number", fields={"NUM": 10})})
        statements = compiler.compile(assign, "math").program.statements
        assert statements[0] == Assign("x", Literal(10), "math_set_var")
        assert statements[1].name == "print_value"


class TestMalformedWorkspaces:
    """Malformed trees are compile errors carrying the block id."""

    @pytest.fixture
    def compiler(self, registry):
        return BlockCompiler(registry)

    def test_unknown_statement_block(self, compiler):
        workspace = chain(block("move_forward", "a"), block("teleport", "b7"))
        result = compiler.compile(workspace, "robot")

        assert not result.ok
        assert result.diagnostic.kind == DiagnosticKind.COMPILE_ERROR
        assert result.diagnostic.location.block_id == "b7"
        assert "teleport" in result.diagnostic.message

    def test_block_of_other_domain(self, compiler):
        """Sorting blocks do not exist in the robot world."""
        result = compiler.compile(block("alchemist_swap", "s1", fields={"I": 0, "J": 1}), "robot")
        assert result.diagnostic.location.block_id == "s1"

    def test_missing_required_field(self, compiler):
        result = compiler.compile(block("alchemist_swap", "s1", fields={"I": 0}), "sorting")
        assert not result.ok
        assert "'J'" in result.diagnostic.message

    def test_missing_type(self, compiler):
        result = compiler.compile([{"id": "x"}], "robot")
        assert result.diagnostic.location.block_id == "x"

    def test_unknown_domain(self, compiler):
        result = compiler.compile([], "space")
        assert not result.ok

    def test_nesting_limit(self, compiler):
        body = block("move_forward")
        for index in range(120):
            body = block("repeat_times", f"r{index}", fields={"TIMES": 1}, inputs={"DO": body})
        result = compiler.compile(body, "robot")
        assert not result.ok
        assert "nested too deeply" in result.diagnostic.message

    def test_value_nesting_limit(self, compiler):
        """A deep stack of plugged-in additions is a compile error, not a crash."""
        value = block("math_number", fields={"NUM": 1})
        for index in range(5000):
            value = block("math_add", f"a{index}", fields={"B": 1}, inputs={"A": value})
        printed = block("math_print", "p", inputs={"VALUE": value})

        result = compiler.compile(printed, "math")

        assert not result.ok
        assert result.diagnostic.kind == DiagnosticKind.COMPILE_ERROR
        assert "plugged in too deeply" in result.diagnostic.message
        assert result.diagnostic.location.block_id.startswith("a")
