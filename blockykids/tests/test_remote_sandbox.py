"""
Tests for the remote executor client.

Tests:
- Submission format (base64, language id)
- Status mapping: accepted, time limit, compile error, runtime error
- Infrastructure failures
- Event line parsing
- Health probe
"""

import base64

import httpx
import pytest

from ..compiler import SourceCompiler
from ..engine_core.action import Action
from ..engine_core.diagnostics import DiagnosticKind
from ..sandbox import RemoteSandbox, format_event, parse_events
from .conftest import FakeExecutor, executor_result


@pytest.fixture
def compile_source(registry):
    compiler = SourceCompiler(registry)

    def compile(source, domain, level):
        result = compiler.compile(source, domain, level)
        assert result.ok
        return result.program
    return compile


class TestRemoteExecution:
    """Tests for RemoteSandbox.execute."""

    @pytest.mark.asyncio
    async def test_accepted_run_builds_trace(self, remote_sandbox, executor, compile_source, robot_domain, robot_level):
        executor.queue(executor_result(
            [("move_forward", []), ("maju", []), ("turn_left", [])],
            stdout_extra="hello\n",
        ))
        program = compile_source("maju()\nmaju()\nturn_left()\nprint('hello')\n", "robot", robot_level)
        registry = robot_domain.create_registry(robot_level)

        outcome = await remote_sandbox.execute(program, registry)

        assert outcome.ok
        assert list(outcome.trace) == [Action.move(1, 0), Action.move(1, 0), Action.turn(-90)]
        assert outcome.output == ("hello",)

    @pytest.mark.asyncio
    async def test_submission_is_base64(self, remote_sandbox, executor, compile_source, robot_domain, robot_level):
        executor.queue(executor_result())
        program = compile_source("maju()", "robot", robot_level)
        await remote_sandbox.execute(program, robot_domain.create_registry(robot_level))

        body = executor.submissions[0]
        assert body["language_id"] == 71
        assert base64.b64decode(body["source_code"]).decode("utf-8") == program.submission

    @pytest.mark.asyncio
    async def test_plain_text_mode(self, compile_source, robot_domain, robot_level):
        executor = FakeExecutor([executor_result([("maju", [])], encode=False)])
        sandbox = RemoteSandbox("http://runner.test", base64_encoded=False, transport=httpx.MockTransport(executor))
        program = compile_source("maju()", "robot", robot_level)

        outcome = await sandbox.execute(program, robot_domain.create_registry(robot_level))

        assert executor.submissions[0]["source_code"] == program.submission
        assert len(outcome.trace) == 1

    @pytest.mark.asyncio
    async def test_time_limit_is_timeout(self, remote_sandbox, executor, compile_source, robot_domain, robot_level):
        executor.queue(executor_result([("maju", [])], status_id=5))
        program = compile_source("while True:\n    maju()\n", "robot", robot_level)

        outcome = await remote_sandbox.execute(program, robot_domain.create_registry(robot_level))

        assert outcome.diagnostic.kind == DiagnosticKind.TIMEOUT
        assert outcome.diagnostic.partial_trace is None

    @pytest.mark.asyncio
    async def test_runtime_error_location_is_shifted(self, remote_sandbox, executor, compile_source, robot_domain, robot_level):
        """Traceback lines are reported relative to the learner's code."""
        program = compile_source("maju()\nx = 1 / 0\n", "robot", robot_level)
        stderr = (
            "Traceback (most recent call last):\n"
            f'  File "script.py", line {program.line_offset + 2}, in <module>\n'
            "ZeroDivisionError: division by zero\n"
        )
        executor.queue(executor_result([("maju", [])], status_id=11, stderr=stderr, exit_code=1))

        outcome = await remote_sandbox.execute(program, robot_domain.create_registry(robot_level))

        diagnostic = outcome.diagnostic
        assert diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert diagnostic.message == "ZeroDivisionError: division by zero"
        assert diagnostic.location.line == 2
        assert list(diagnostic.partial_trace) == [Action.move(1, 0)]

    @pytest.mark.asyncio
    async def test_compile_error_status(self, remote_sandbox, executor, compile_source, robot_domain, robot_level):
        program = compile_source("maju()", "robot", robot_level)
        result = executor_result(status_id=6)
        result["compile_output"] = base64.b64encode(b"SyntaxError: invalid syntax").decode("ascii")
        executor.queue(result)

        outcome = await remote_sandbox.execute(program, robot_domain.create_registry(robot_level))
        assert outcome.diagnostic.kind == DiagnosticKind.COMPILE_ERROR

    @pytest.mark.asyncio
    async def test_capability_error_from_events(self, remote_sandbox, executor, compile_source, registry, sorting_level):
        """An event the registry rejects is a runtime error with the earlier actions."""
        executor.queue(executor_result([("swap", [0, 1]), ("swap", [0, 8])]))
        program = compile_source("swap(0, 1)", "sorting", sorting_level)

        outcome = await remote_sandbox.execute(program, registry.get("sorting").create_registry(sorting_level))

        assert outcome.diagnostic.kind == DiagnosticKind.RUNTIME_ERROR
        assert list(outcome.diagnostic.partial_trace) == [Action.swap(0, 1)]

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self, remote_sandbox, executor, compile_source, robot_domain, robot_level):
        executor.queue(httpx.Response(500, text="boom"))
        program = compile_source("maju()", "robot", robot_level)

        outcome = await remote_sandbox.execute(program, robot_domain.create_registry(robot_level))
        assert outcome.diagnostic.kind == DiagnosticKind.SANDBOX_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self, compile_source, robot_domain, robot_level):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        sandbox = RemoteSandbox("http://runner.test", transport=httpx.MockTransport(refuse))
        program = compile_source("maju()", "robot", robot_level)

        outcome = await sandbox.execute(program, robot_domain.create_registry(robot_level))
        assert outcome.diagnostic.kind == DiagnosticKind.SANDBOX_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_client_timeout(self, compile_source, robot_domain, robot_level):
        def slow(request):
            raise httpx.ReadTimeout("too slow", request=request)

        sandbox = RemoteSandbox("http://runner.test", transport=httpx.MockTransport(slow))
        program = compile_source("maju()", "robot", robot_level)

        outcome = await sandbox.execute(program, robot_domain.create_registry(robot_level))
        assert outcome.diagnostic.kind == DiagnosticKind.TIMEOUT


class TestHealth:
    """Tests for the /about probe."""

    @pytest.mark.asyncio
    async def test_healthy(self, remote_sandbox):
        assert await remote_sandbox.health()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        sandbox = RemoteSandbox("http://runner.test", transport=httpx.MockTransport(refuse))
        assert not await sandbox.health()


class TestEventParsing:
    """Tests for the action-event line protocol."""

    def test_split_events_and_output(self):
        stdout = "\n".join([
            "start",
            format_event("play_note", ["C4"]),
            "@@blockykids:action {not json",
            format_event("rest", [1]),
        ])
        events, output = parse_events(stdout)
        assert [(e.name, e.args) for e in events] == [("play_note", ("C4",)), ("rest", (1,))]
        assert output == ["start", "@@blockykids:action {not json"]
