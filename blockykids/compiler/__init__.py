"""
Program Compiler - Block and source front ends.

Block workspaces compile to a CompiledProgram (IR) for the local
sandbox; source text compiles to a SourceProgram for the remote one.
"""

from .program import (
    CompiledProgram,
    SourceProgram,
    CompilationResult,
    CompilationStatus,
    BlockSpec,
    ArgSpec,
)
from .blocks import BlockCompiler, GENERIC_BLOCK_TYPES
from .source import SourceCompiler, count_primitive_calls, PYTHON_LANGUAGE_ID

__all__ = [
    "CompiledProgram",
    "SourceProgram",
    "CompilationResult",
    "CompilationStatus",
    "BlockSpec",
    "ArgSpec",
    "BlockCompiler",
    "GENERIC_BLOCK_TYPES",
    "SourceCompiler",
    "count_primitive_calls",
    "PYTHON_LANGUAGE_ID",
]
