"""
Remote Sandbox - Runs learner source on the external executor.

Protocol (Judge0-style):
- POST {base}/submissions?base64_encoded={bool}&wait=true
  body {"source_code": ..., "language_id": 71}
- Response {stdout, stderr, compile_output, status: {id, description},
  time, memory, exit_code}
- GET {base}/about as a health probe

Outcome mapping:
- transport failure, HTTP error status, unreadable body -> SANDBOX_UNAVAILABLE
- client-side timeout or status 5 -> TIMEOUT (no partial trace)
- status 6 or a SyntaxError traceback -> COMPILE_ERROR
- other non-3 status, nonzero exit code, stderr -> RUNTIME_ERROR (partial trace)
- status 3 -> trace parsed from stdout

Nothing is retried here; retrying is the caller's decision.
"""

from __future__ import annotations
import asyncio
import base64
import binascii
import re
from typing import Any

import httpx

from ..compiler.program import PYTHON_LANGUAGE_ID, SourceProgram
from ..engine_core.capabilities import CapabilityRegistry
from ..engine_core.diagnostics import (
    BudgetExceededError,
    CapabilityError,
    Diagnostic,
    ProgramError,
    SourceLocation,
)
from ..logging_utils import get_logger
from .base import ExecutionOutcome, Sandbox
from .events import apply_events, parse_events

logger = get_logger("sandbox.remote")

STATUS_ACCEPTED = 3
STATUS_TIME_LIMIT = 5
STATUS_COMPILE_ERROR = 6

DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_HEALTH_TIMEOUT = 5.0

ENCODED_FIELDS = ("stdout", "stderr", "compile_output", "message")

TRACEBACK_LINE = re.compile(r'line (\d+)')
SYNTAX_ERRORS = ("SyntaxError", "IndentationError", "TabError")


class ResponseFormatError(ValueError):
    """Executor answered with something that is not a submission result."""


class RemoteSandbox(Sandbox):
    """
    HTTP client for the external code executor.

    Usage:
        sandbox = RemoteSandbox("http://localhost:2358")
        if await sandbox.health():
            outcome = await sandbox.execute(program, registry, timeout_ms=10_000)
    """
    name = "remote"

    def __init__(
        self,
        base_url: str,
        base64_encoded: bool = True,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.base64_encoded = base64_encoded
        self.default_timeout_ms = default_timeout_ms
        self.health_timeout = health_timeout
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self.transport)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health(self) -> bool:
        """True when the executor answers GET /about."""
        try:
            async with self._client(self.health_timeout) as client:
                response = await client.get("/about")
        except httpx.HTTPError as e:
            logger.warning("Executor health check failed: %s", e)
            return False
        return response.status_code == 200

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        program: SourceProgram,
        registry: CapabilityRegistry,
        timeout_ms: int | None = None,
    ) -> ExecutionOutcome:
        if program.language_id != PYTHON_LANGUAGE_ID:
            return ExecutionOutcome.failure(Diagnostic.compile_error(
                f"Language {program.language_id} is not supported by the executor"
            ))

        timeout = (timeout_ms if timeout_ms is not None else self.default_timeout_ms) / 1000
        source = program.submission
        if self.base64_encoded:
            source = base64.b64encode(source.encode("utf-8")).decode("ascii")

        try:
            async with self._client(timeout) as client:
                response = await asyncio.wait_for(
                    client.post(
                        "/submissions",
                        params={"base64_encoded": str(self.base64_encoded).lower(), "wait": "true"},
                        json={"source_code": source, "language_id": program.language_id},
                    ),
                    timeout,
                )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning("Executor did not finish within %.1fs", timeout)
            return ExecutionOutcome.failure(Diagnostic.timeout(
                f"The program did not finish within {timeout:g} seconds"
            ))
        except httpx.HTTPError as e:
            logger.warning("Executor unreachable: %s", e)
            return ExecutionOutcome.failure(Diagnostic.unavailable(f"Code runner is unreachable: {e}"))

        if response.status_code >= 400:
            logger.warning("Executor returned HTTP %d", response.status_code)
            return ExecutionOutcome.failure(Diagnostic.unavailable(
                f"Code runner answered with HTTP {response.status_code}"
            ))

        try:
            result = self._decode(response.json())
        except ValueError as e:
            logger.warning("Executor response unreadable: %s", e)
            return ExecutionOutcome.failure(Diagnostic.unavailable(f"Code runner sent an unreadable answer: {e}"))

        return self.interpret(result, program, registry)

    def _decode(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise ResponseFormatError("expected a JSON object")
        result = dict(data)
        if not self.base64_encoded:
            return result
        for key in ENCODED_FIELDS:
            value = result.get(key)
            if isinstance(value, str) and value:
                try:
                    result[key] = base64.b64decode(value, validate=False).decode("utf-8", errors="replace")
                except binascii.Error as e:
                    raise ResponseFormatError(f"field '{key}' is not base64") from e
        return result

    def interpret(
        self,
        result: dict[str, Any],
        program: SourceProgram,
        registry: CapabilityRegistry,
    ) -> ExecutionOutcome:
        """Map a decoded submission result onto a trace or a Diagnostic."""
        status = result.get("status") or {}
        status_id = status.get("id")
        description = status.get("description") or f"status {status_id}"
        stdout = result.get("stdout") or ""
        stderr = (result.get("stderr") or "").strip()
        compile_output = (result.get("compile_output") or "").strip()
        exit_code = result.get("exit_code")

        events, output = parse_events(stdout)

        if status_id == STATUS_TIME_LIMIT:
            return ExecutionOutcome.failure(
                Diagnostic.timeout(f"The program took too long ({description})"),
                output,
            )

        if status_id == STATUS_COMPILE_ERROR or _is_syntax_error(stderr):
            detail = compile_output or stderr or description
            return ExecutionOutcome.failure(
                Diagnostic.compile_error(_last_line(detail), self._location(detail, program)),
                output,
            )

        try:
            apply_events(events, registry)
        except BudgetExceededError as e:
            return ExecutionOutcome.failure(Diagnostic.timeout(str(e)), output)
        except (CapabilityError, ProgramError) as e:
            return ExecutionOutcome.failure(
                Diagnostic.runtime_error(str(e), registry.trace()),
                output,
            )

        failed = status_id != STATUS_ACCEPTED or bool(stderr) or (exit_code not in (None, 0))
        if failed:
            detail = stderr or result.get("message") or description
            logger.info("Remote %s program failed: %s", program.domain, _last_line(detail))
            return ExecutionOutcome.failure(
                Diagnostic.runtime_error(_last_line(detail), registry.trace(), self._location(detail, program)),
                output,
            )

        return ExecutionOutcome.success(registry.trace(), output)

    @staticmethod
    def _location(traceback: str, program: SourceProgram) -> SourceLocation | None:
        """Last traceback line number, shifted back into the learner's code."""
        matches = TRACEBACK_LINE.findall(traceback)
        if not matches:
            return None
        line = int(matches[-1]) - program.line_offset
        return SourceLocation(line=line) if line >= 1 else None


def _is_syntax_error(stderr: str) -> bool:
    return any(f"{name}:" in stderr for name in SYNTAX_ERRORS)


def _last_line(text: str) -> str:
    lines = [line for line in str(text).strip().splitlines() if line.strip()]
    return lines[-1].strip() if lines else str(text)
