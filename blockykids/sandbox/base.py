"""
Sandbox contract.

Both back ends take a compiled program and a fresh capability registry
and return an ExecutionOutcome holding either the trace or a
Diagnostic, never both.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..engine_core.action import ProgramTrace
from ..engine_core.capabilities import CapabilityRegistry
from ..engine_core.diagnostics import Diagnostic


@dataclass(frozen=True)
class ExecutionOutcome:
    """Trace xor diagnostic, plus plain program output lines."""
    trace: ProgramTrace | None = None
    diagnostic: Diagnostic | None = None
    output: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    @classmethod
    def success(cls, trace: ProgramTrace, output: list[str] | tuple[str, ...] = ()) -> ExecutionOutcome:
        return cls(trace=trace, output=tuple(output))

    @classmethod
    def failure(cls, diagnostic: Diagnostic, output: list[str] | tuple[str, ...] = ()) -> ExecutionOutcome:
        return cls(diagnostic=diagnostic, output=tuple(output))


class Sandbox(ABC):
    """Execution back end."""

    name: str = "sandbox"

    @abstractmethod
    async def execute(
        self,
        program: Any,
        registry: CapabilityRegistry,
        timeout_ms: int | None = None,
    ) -> ExecutionOutcome:
        """Run the program against the registry within timeout_ms."""
