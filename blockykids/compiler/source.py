"""
Source Compiler - Prepares learner Python for the remote executor.

Steps:
1. Reject unsupported language ids before anything is sent
2. Parse locally so syntax errors come back with line/column at once
3. Count primitive calls (warn when the program cannot do anything)
4. Assemble the submission: event helpers, domain prelude, learner code

The generated helpers print one action event per call; the remote
sandbox parses those lines back into registry invocations.
"""

from __future__ import annotations
import ast
from typing import TYPE_CHECKING, Any, Iterable

from ..engine_core.diagnostics import Diagnostic, SourceLocation
from ..logging_utils import get_logger
from ..sandbox.events import ACTION_MARKER
from .program import PYTHON_LANGUAGE_ID, CompilationResult, SourceProgram

if TYPE_CHECKING:
    from ..domains import Domain, DomainRegistry

logger = get_logger("compiler.source")

SUPPORTED_LANGUAGES = {PYTHON_LANGUAGE_ID: "Python 3"}

EMIT_HELPER = f'''import builtins as _builtins
import json as _json


def _emit(name, args):
    _builtins.print("{ACTION_MARKER} " + _json.dumps({{"name": name, "args": list(args)}}), flush=True)
'''

USER_CODE_BANNER = "# ========== YOUR CODE =========="


def count_primitive_calls(tree: ast.AST, names: Iterable[str]) -> int:
    """Number of call sites naming a primitive, alias or helper."""
    known = set(names)
    count = 0
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        func = node.func
        if isinstance(func, ast.Name) and func.id in known:
            count += 1
        elif isinstance(func, ast.Attribute) and func.attr in known:
            count += 1
    return count


def build_helpers(domain: Domain) -> str:
    """One event-emitting function per effect primitive, plus its aliases."""
    chunks = [EMIT_HELPER]
    for info in domain.registry_type.primitives():
        if info.query:
            continue
        chunks.append(
            f"\ndef {info.name}(*args):\n"
            f"    _emit({info.name!r}, args)\n"
        )
        if info.aliases:
            chunks.append(f"{' = '.join(info.aliases)} = {info.name}\n")
    return "".join(chunks)


class SourceCompiler:
    """
    Compiles learner source into a SourceProgram for the remote sandbox.

    Usage:
        compiler = SourceCompiler(default_registry())
        result = compiler.compile("maju()\\nmaju()", "robot", level)
    """

    def __init__(self, domains: DomainRegistry):
        self.domains = domains

    def compile(
        self,
        source: str,
        domain: str,
        level: Any,
        language_id: int = PYTHON_LANGUAGE_ID,
    ) -> CompilationResult:
        if language_id not in SUPPORTED_LANGUAGES:
            return CompilationResult.failure(Diagnostic.compile_error(
                f"Language {language_id} is not supported; "
                f"use {', '.join(f'{n} ({i})' for i, n in SUPPORTED_LANGUAGES.items())}"
            ))

        try:
            domain_def = self.domains.get(domain)
        except KeyError:
            return CompilationResult.failure(Diagnostic.compile_error(f"Unknown domain '{domain}'"))

        try:
            tree = ast.parse(source, filename="<program>")
        except SyntaxError as e:
            logger.info("Syntax error in %s program at line %s", domain, e.lineno)
            return CompilationResult.failure(Diagnostic.compile_error(
                f"{type(e).__name__}: {e.msg}",
                SourceLocation(line=e.lineno, column=e.offset),
            ))

        warnings = []
        names = domain_def.registry_type.names() | domain_def.helper_names
        calls = count_primitive_calls(tree, names)
        if calls == 0:
            warnings.append("The program never calls a command, so nothing will move")

        preamble = "\n".join([
            build_helpers(domain_def),
            domain_def.source_prelude(level),
            "",
            USER_CODE_BANNER,
            "",
        ])
        program = SourceProgram(
            domain=domain,
            source=source,
            submission=preamble + source,
            language_id=language_id,
            line_offset=preamble.count("\n"),
            primitive_calls=calls,
        )
        return CompilationResult.success(program, warnings)
