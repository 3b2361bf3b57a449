"""
Block Compiler - Translates a Blockly workspace into the program IR.

Pure syntax-directed translation, no network and no execution:
1. Top-level stacks are compiled in document order
2. Sequence blocks (``next`` chains) emit statements in order
3. Loop and branch blocks wrap their statement inputs
4. Value blocks become expressions substituted into their parent
5. Domain blocks map onto primitives through the domain's BlockSpecs

Malformed trees (unknown block type, missing field) fail with a
COMPILE_ERROR diagnostic that carries the offending block id.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any

from ..engine_core.diagnostics import BlockCompileError, Diagnostic, SourceLocation
from ..logging_utils import get_logger
from .program import (
    Assign,
    Attribute,
    BinaryOp,
    BlockSpec,
    Call,
    Compare,
    CompilationResult,
    CompiledProgram,
    Expr,
    ForEach,
    ForRange,
    If,
    Literal,
    Logic,
    Not,
    Query,
    Repeat,
    Stmt,
    Variable,
)

if TYPE_CHECKING:
    from ..domains import Domain, DomainRegistry

logger = get_logger("compiler.blocks")

GENERIC_BLOCK_TYPES = frozenset({
    # Loops
    "repeat_times",
    "controls_repeat",
    "controls_repeat_ext",
    "for_loop",
    "for_loop_nested",
    "controls_for",
    "for_each_enemy",
    # Branches and logic
    "if_compare",
    "controls_if",
    "compare_values",
    "logic_compare",
    "logic_operation",
    "logic_negate",
    "logic_boolean",
    # Values
    "math_number",
    "text",
    "math_add",
    "math_subtract",
    "math_multiply",
    "math_arithmetic",
    "unit_attribute",
    # Variables
    "variables_get",
    "variables_set",
    "math_set_var",
})

COMPARE_OPS = {
    "EQ": "==", "NEQ": "!=", "LT": "<", "LTE": "<=", "GT": ">", "GTE": ">=",
    "==": "==", "!=": "!=", "<": "<", "<=": "<=", ">": ">", ">=": ">=",
}

ARITHMETIC_OPS = {
    "ADD": "+", "MINUS": "-", "MULTIPLY": "*", "DIVIDE": "/", "MODULO": "%",
    "+": "+", "-": "-", "*": "*", "/": "/", "%": "%",
}

FIXED_ARITHMETIC = {"math_add": "+", "math_subtract": "-", "math_multiply": "*"}

MAX_NESTING = 100

_MISSING = object()


class BlockCompiler:
    """
    Compiles Blockly workspace JSON into a CompiledProgram.

    The compiler holds a reference to the process-wide domain registry;
    domain block specs are looked up there, never re-registered.

    Usage:
        compiler = BlockCompiler(default_registry())
        result = compiler.compile(workspace, "robot")
        if result.ok:
            program = result.program
    """

    def __init__(self, domains: DomainRegistry):
        self.domains = domains

    def compile(self, workspace: Any, domain: str) -> CompilationResult:
        """
        Compile a workspace for a domain.

        Accepts the Blockly serialization format
        (``{"blocks": {"blocks": [...]}, "variables": [...]}``), a bare
        list of top-level blocks, or a single top-level block.
        """
        try:
            domain_def = self.domains.get(domain)
        except KeyError:
            return CompilationResult.failure(
                Diagnostic.compile_error(f"Unknown domain '{domain}'")
            )

        try:
            top_blocks, variables = _unwrap_workspace(workspace)
            translator = _Translator(domain_def, variables)
            statements: list[Stmt] = []
            for block in top_blocks:
                statements.extend(translator.chain(block))
        except BlockCompileError as e:
            logger.info("Block compile failed for %s: %s", domain, e)
            return CompilationResult.failure(
                Diagnostic.compile_error(str(e), SourceLocation(block_id=e.block_id))
            )

        warnings = []
        if not statements:
            warnings.append("The workspace has no blocks to run")
        program = CompiledProgram(
            domain=domain,
            statements=tuple(statements),
            block_count=translator.block_count,
        )
        return CompilationResult.success(program, warnings)


def _unwrap_workspace(workspace: Any) -> tuple[list[dict[str, Any]], dict[str, str]]:
    """Return (top-level blocks, variable id -> name)."""
    variables: dict[str, str] = {}
    if isinstance(workspace, list):
        return workspace, variables
    if not isinstance(workspace, dict):
        raise BlockCompileError("Workspace must be a JSON object or a list of blocks")
    if "type" in workspace:
        return [workspace], variables

    for var in workspace.get("variables") or []:
        if isinstance(var, dict) and "id" in var and "name" in var:
            variables[var["id"]] = var["name"]

    blocks = workspace.get("blocks", [])
    if isinstance(blocks, dict):
        blocks = blocks.get("blocks", [])
    if not isinstance(blocks, list):
        raise BlockCompileError("Workspace 'blocks' must be a list")
    return blocks, variables


class _Translator:
    """One compilation pass; tracks block count and nesting depth."""

    def __init__(self, domain: Domain, variables: dict[str, str]):
        self.domain = domain
        self.variables = variables
        self.block_count = 0
        self._depth = 0
        self._expr_depth = 0

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def chain(self, block: Any) -> list[Stmt]:
        """Compile a block and everything linked after it via ``next``."""
        statements: list[Stmt] = []
        while block is not None:
            self._check_block(block)
            if block.get("enabled", True) is not False:
                statements.extend(self.statement(block))
            block = (block.get("next") or {}).get("block")
        return statements

    def statement(self, block: dict[str, Any]) -> list[Stmt]:
        self.block_count += 1
        block_type = block["type"]
        block_id = block.get("id")

        if block_type in {"repeat_times", "controls_repeat", "controls_repeat_ext"}:
            times = self.arg(block, "TIMES")
            return [Repeat(times, self.body(block, "DO"), block_id)]

        if block_type in {"for_loop", "for_loop_nested", "controls_for"}:
            default_var = "j" if block_type == "for_loop_nested" else "i"
            step = self.optional_arg(block, "BY")
            return [ForRange(
                var=self.variable_name(block, default_var),
                start=self.arg(block, "FROM", 0),
                end=self.arg(block, "TO"),
                body=self.body(block, "DO"),
                step=step,
                block_id=block_id,
            )]

        if block_type == "for_each_enemy":
            return [ForEach(self.variable_name(block, "enemy"), "enemies", self.body(block, "DO"), block_id)]

        if block_type == "if_compare":
            return [If(
                self.arg(block, "CONDITION"),
                self.body(block, "DO"),
                self.body(block, "ELSE"),
                block_id,
            )]

        if block_type == "controls_if":
            return [self._controls_if(block)]

        if block_type == "variables_set":
            return [Assign(self.variable_name(block), self.arg(block, "VALUE", 0), block_id)]

        if block_type == "math_set_var":
            # Arithmetic console echoes every assignment
            name = self.variable_name(block, "x")
            return [
                Assign(name, self.arg(block, "VALUE", 0), block_id),
                Call("print_value", (Variable(name),), block_id),
            ]

        spec = self.domain.block_spec(block_type)
        if spec is not None:
            return [Call(spec.primitive, self.spec_args(block, spec), block_id)]

        raise BlockCompileError(f"Unknown statement block '{block_type}'", block_id)

    def _controls_if(self, block: dict[str, Any]) -> If:
        inputs = block.get("inputs") or {}
        branches = []
        index = 0
        while f"IF{index}" in inputs:
            branches.append((self.arg(block, f"IF{index}"), self.body(block, f"DO{index}")))
            index += 1
        if not branches:
            raise BlockCompileError("'controls_if' has no condition", block.get("id"))

        orelse = self.body(block, "ELSE")
        for condition, body in reversed(branches[1:]):
            orelse = (If(condition, body, orelse, block.get("id")),)
        condition, body = branches[0]
        return If(condition, body, orelse, block.get("id"))

    def body(self, block: dict[str, Any], name: str) -> tuple[Stmt, ...]:
        """Compile a statement input (loop/branch body); empty when absent."""
        child = self.input_block(block, name)
        if child is None:
            return ()
        self._depth += 1
        if self._depth > MAX_NESTING:
            raise BlockCompileError("Blocks are nested too deeply", block.get("id"))
        try:
            return tuple(self.chain(child))
        finally:
            self._depth -= 1

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def expression(self, block: Any) -> Expr:
        self._check_block(block)
        self.block_count += 1
        block_type = block["type"]
        block_id = block.get("id")

        if block_type == "math_number":
            return Literal(self.field(block, "NUM"))
        if block_type == "text":
            return Literal(str(self.field(block, "TEXT", "")))
        if block_type == "logic_boolean":
            return Literal(str(self.field(block, "BOOL")).upper() == "TRUE")
        if block_type == "variables_get":
            return Variable(self.variable_name(block))
        if block_type in FIXED_ARITHMETIC:
            return BinaryOp(FIXED_ARITHMETIC[block_type], self.arg(block, "A", 0), self.arg(block, "B", 0))
        if block_type == "math_arithmetic":
            op = ARITHMETIC_OPS.get(str(self.field(block, "OP", "ADD")))
            if op is None:
                raise BlockCompileError(f"Unsupported arithmetic operator {self.field(block, 'OP')!r}", block_id)
            return BinaryOp(op, self.arg(block, "A", 0), self.arg(block, "B", 0))
        if block_type in {"compare_values", "logic_compare"}:
            op = COMPARE_OPS.get(str(self.field(block, "OP", "EQ")))
            if op is None:
                raise BlockCompileError(f"Unsupported comparison {self.field(block, 'OP')!r}", block_id)
            return Compare(op, self.arg(block, "A"), self.arg(block, "B"))
        if block_type == "logic_operation":
            op = str(self.field(block, "OP", "AND")).lower()
            if op not in {"and", "or"}:
                raise BlockCompileError(f"Unsupported logic operator {op!r}", block_id)
            return Logic(op, self.arg(block, "A"), self.arg(block, "B"))
        if block_type == "logic_negate":
            return Not(self.arg(block, "BOOL"))
        if block_type == "unit_attribute":
            return Attribute(self.arg(block, "UNIT"), str(self.field(block, "ATTR")))

        spec = self.domain.block_spec(block_type)
        if spec is not None and spec.query:
            return Query(spec.primitive, self.spec_args(block, spec))

        raise BlockCompileError(f"Unknown value block '{block_type}'", block_id)

    # ------------------------------------------------------------------
    # Arguments
    # ------------------------------------------------------------------

    def spec_args(self, block: dict[str, Any], spec: BlockSpec) -> tuple[Expr, ...]:
        return tuple(self.arg(block, arg.name, arg.default) for arg in spec.args)

    def arg(self, block: dict[str, Any], name: str, default: Any = _MISSING) -> Expr:
        """Value of an argument: plugged-in block, else field, else default."""
        child = self.input_block(block, name)
        if child is not None:
            self._expr_depth += 1
            if self._expr_depth > MAX_NESTING:
                raise BlockCompileError("Value blocks are plugged in too deeply", block.get("id"))
            try:
                return self.expression(child)
            finally:
                self._expr_depth -= 1
        fields = block.get("fields") or {}
        if name in fields:
            return Literal(fields[name])
        if default is not _MISSING and default is not None:
            return Literal(default)
        raise BlockCompileError(f"Block '{block['type']}' is missing '{name}'", block.get("id"))

    def optional_arg(self, block: dict[str, Any], name: str) -> Expr | None:
        if self.input_block(block, name) is None and name not in (block.get("fields") or {}):
            return None
        return self.arg(block, name)

    def field(self, block: dict[str, Any], name: str, default: Any = _MISSING) -> Any:
        fields = block.get("fields") or {}
        if name in fields:
            return fields[name]
        if default is not _MISSING:
            return default
        raise BlockCompileError(f"Block '{block['type']}' is missing field '{name}'", block.get("id"))

    def variable_name(self, block: dict[str, Any], default: str | None = None) -> str:
        """Variable fields may be a plain name or a ``{"id": ...}`` reference."""
        value = self.field(block, "VAR", default if default is not None else _MISSING)
        if isinstance(value, dict):
            ref = value.get("id")
            if ref in self.variables:
                return self.variables[ref]
            if value.get("name"):
                return str(value["name"])
            raise BlockCompileError(f"Unknown variable reference {ref!r}", block.get("id"))
        name = str(value).strip()
        if not name.isidentifier():
            raise BlockCompileError(f"'{name}' is not a valid variable name", block.get("id"))
        return name

    @staticmethod
    def input_block(block: dict[str, Any], name: str) -> dict[str, Any] | None:
        slot = (block.get("inputs") or {}).get(name)
        if not isinstance(slot, dict):
            return None
        return slot.get("block") or slot.get("shadow")

    @staticmethod
    def _check_block(block: Any) -> None:
        if not isinstance(block, dict) or not isinstance(block.get("type"), str):
            block_id = block.get("id") if isinstance(block, dict) else None
            raise BlockCompileError("Malformed block: expected an object with a 'type'", block_id)
