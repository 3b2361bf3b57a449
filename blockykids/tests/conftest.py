"""
Pytest fixtures for BlockyKids tests.
"""

import asyncio
import base64
import json

import httpx
import pytest

from ..config import Config
from ..domains import default_registry
from ..domains.defaults import default_levels
from ..level_schema import load_level
from ..sandbox import RemoteSandbox, format_event
from ..session import SessionManager


class FastConfig(Config):
    """Config with replay pacing turned off."""
    REPLAY_PACE = 0.0
    ASSIST_AFTER = 2


@pytest.fixture
def registry():
    """The shared domain registry."""
    return default_registry()


@pytest.fixture
def robot_domain(registry):
    return registry.get("robot")


@pytest.fixture
def robot_level():
    """5x3 grid, start (0, 1) facing east, goal (4, 1)."""
    return default_levels("robot")[0]


@pytest.fixture
def star_level():
    """Stars at (1, 1), (2, 1), (3, 1) on the way to (4, 1)."""
    return default_levels("robot")[2]


@pytest.fixture
def sorting_level():
    """Potions [3, 1, 2], max 5 swaps."""
    return default_levels("sorting")[0]


@pytest.fixture
def combat_level():
    """goblin1 at (6, 4), goblin2 at (4, 2); expected goblin2."""
    return default_levels("combat")[0]


@pytest.fixture
def free_sprite_level():
    return load_level({
        "domain": "sprite", "id": "free", "name": "Free Stage", "difficulty": "free",
        "sprites": [{"id": "cat", "x": 0, "y": 0}],
        "goal": {"type": "free"},
    })


@pytest.fixture
def delays():
    """Pauses requested by the scheduler, in order."""
    return []


@pytest.fixture
def fake_sleep(delays):
    """Records the delay and yields to the event loop instead of waiting."""
    async def sleep(seconds):
        delays.append(seconds)
        await asyncio.sleep(0)
    return sleep


def executor_result(events=(), status_id=3, stdout_extra="", stderr="", exit_code=0, encode=True):
    """Build a submission result as the executor returns it."""
    stdout = "".join(format_event(name, args) + "\n" for name, args in events) + stdout_extra

    def enc(text):
        if not encode or not text:
            return text or None
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    return {
        "stdout": enc(stdout),
        "stderr": enc(stderr),
        "compile_output": None,
        "message": None,
        "exit_code": exit_code,
        "time": "0.01",
        "memory": 3000,
        "status": {"id": status_id, "description": "Accepted" if status_id == 3 else "Error"},
    }


class FakeExecutor:
    """
    httpx.MockTransport handler standing in for the code runner.

    Answers GET /about and POST /submissions with the queued results;
    records every submitted body.
    """

    def __init__(self, results=None):
        self.results = list(results or [])
        self.submissions = []

    def queue(self, result):
        self.results.append(result)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/about":
            return httpx.Response(200, json={"version": "1.13.1"})
        if request.url.path == "/submissions":
            self.submissions.append(json.loads(request.content))
            if not self.results:
                return httpx.Response(500, json={"error": "nothing queued"})
            result = self.results.pop(0)
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(201, json=result)
        return httpx.Response(404)


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def remote_sandbox(executor):
    return RemoteSandbox("http://runner.test", transport=httpx.MockTransport(executor))


@pytest.fixture
def manager(fake_sleep, remote_sandbox):
    """Session manager with a fake code runner and instant replay."""
    return SessionManager(config=FastConfig, remote_sandbox=remote_sandbox, sleep=fake_sleep)
