"""
Session Manager - Creates and manages level sessions.

LIFECYCLE:
1. Learner opens a domain -> session created on a level pack
2. Each run: compile -> execute in a sandbox -> replay the trace
3. Learner presses check -> goal validated against the replayed world
4. Success -> advance to the next level (never on FREE levels)
   Failure -> retry; hints unlock after repeated failures
5. Session ends or expires -> removed from memory

PERSISTENCE RULES:
- Sessions are in-memory only
- Level documents come from the default packs or the caller
- The world is rebuilt from the level before every run

EPOCHS:
Every run and every reset takes a new epoch. A sandbox result that
arrives after the epoch moved on is discarded (RunStatus.STALE), so a
slow remote run can never overwrite the world of a newer one.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import time
import uuid

from ..compiler import BlockCompiler, SourceCompiler
from ..compiler.program import PYTHON_LANGUAGE_ID
from ..config import Config
from ..domains import Domain, DomainRegistry, default_registry
from ..domains.defaults import default_levels
from ..engine_core.action import ProgramTrace
from ..engine_core.diagnostics import BlockyKidsError, Diagnostic
from ..engine_core.goals import Verdict
from ..engine_core.state import WorldState
from ..level_schema import Level
from ..logging_utils import get_logger
from ..sandbox import ExecutionOutcome, LocalSandbox, RemoteSandbox, Sandbox
from .scheduler import ReplayScheduler, SchedulerState, SleepFunc

logger = get_logger("session")


class SessionNotFoundError(BlockyKidsError):
    """No session with the given id (never created, ended or expired)."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found")


class RunStatus(Enum):
    """How a run ended."""
    COMPLETED = "completed"  # Trace replayed to the end
    FAILED = "failed"  # Compile, runtime, timeout or sandbox diagnostic
    CANCELLED = "cancelled"  # Replay superseded by a newer run or reset
    STALE = "stale"  # Result arrived after the epoch moved on; discarded


@dataclass
class RunResult:
    """Result of one run of a learner program."""
    run_id: int
    status: RunStatus
    trace: ProgramTrace = field(default_factory=ProgramTrace)
    diagnostic: Diagnostic | None = None

    # Trace actions consumed by the replay (partial traces included)
    replayed: int = 0

    output: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == RunStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "trace": self.trace.to_list(),
            "diagnostic": self.diagnostic.to_dict() if self.diagnostic else None,
            "replayed": self.replayed,
            "output": list(self.output),
            "warnings": list(self.warnings),
        }


@dataclass
class LevelSession:
    """
    One learner working through one domain's level pack.

    Contains:
    - The domain and its levels
    - The replay scheduler (owner of the live world)
    - Compilers and sandboxes for both front ends
    - Attempt bookkeeping for hints and progression
    """
    session_id: str
    domain: Domain
    levels: list[Level]
    scheduler: ReplayScheduler
    block_compiler: BlockCompiler
    source_compiler: SourceCompiler
    local_sandbox: LocalSandbox
    remote_sandbox: Sandbox | None
    created_at: float

    level_index: int = 0
    epoch: int = 0
    failed_attempts: int = 0
    last_run: RunResult | None = None
    last_verdict: Verdict | None = None
    completed_levels: set[int] = field(default_factory=set)

    # Limits
    assist_after: int = 3
    max_actions: int = 1000
    local_timeout_ms: int = 2000
    remote_timeout_ms: int = 10000

    last_active: float = 0.0
    clock: Callable[[], float] = time.time

    def __post_init__(self):
        if not self.levels:
            raise ValueError(f"Session for {self.domain.name} needs at least one level")
        if not 0 <= self.level_index < len(self.levels):
            raise IndexError(f"Level index {self.level_index} out of range")
        self.last_active = self.last_active or self.created_at
        self.scheduler.prime(self.initial_world())

    # =========================================================================
    # Views
    # =========================================================================

    @property
    def level(self) -> Level:
        return self.levels[self.level_index]

    @property
    def world(self) -> WorldState | None:
        return self.scheduler.world

    @property
    def is_running(self) -> bool:
        return self.scheduler.state == SchedulerState.STEPPING

    @property
    def hints_unlocked(self) -> list[str]:
        """
        Hints the learner may see.

        The first hint unlocks after assist_after failures, then one more
        per further failure.
        """
        if self.assist_after <= 0 or self.failed_attempts < self.assist_after:
            return []
        count = 1 + self.failed_attempts - self.assist_after
        return list(self.level.hints[:count])

    def initial_world(self) -> WorldState:
        return self.domain.initial_world(self.level)

    def touch(self) -> None:
        self.last_active = self.clock()

    # =========================================================================
    # Running programs
    # =========================================================================

    async def run_blocks(self, workspace: Any) -> RunResult:
        """Compile a block workspace, run it locally and replay the trace."""
        run_id = self._begin_run()
        compiled = self.block_compiler.compile(workspace, self.domain.name)
        if not compiled.ok:
            return self._finish_failed(run_id, compiled.diagnostic, warnings=compiled.warnings)

        registry = self.domain.create_registry(self.level, self.max_actions)
        outcome = await self.local_sandbox.execute(compiled.program, registry, self.local_timeout_ms)
        return await self._finish(run_id, outcome, compiled.warnings)

    async def run_source(self, source: str, language_id: int = PYTHON_LANGUAGE_ID) -> RunResult:
        """Compile learner source, run it on the remote executor and replay."""
        run_id = self._begin_run()
        compiled = self.source_compiler.compile(source, self.domain.name, self.level, language_id)
        if not compiled.ok:
            return self._finish_failed(run_id, compiled.diagnostic, warnings=compiled.warnings)

        if self.remote_sandbox is None:
            return self._finish_failed(
                run_id,
                Diagnostic.unavailable("No code runner is configured"),
                warnings=compiled.warnings,
            )

        registry = self.domain.create_registry(self.level, self.max_actions)
        outcome = await self.remote_sandbox.execute(compiled.program, registry, self.remote_timeout_ms)
        return await self._finish(run_id, outcome, compiled.warnings)

    def _begin_run(self) -> int:
        self.touch()
        self.epoch += 1
        self.last_verdict = None
        self.scheduler.prime(self.initial_world())
        logger.info("Session %s: run %d on %s level %s", self.session_id, self.epoch, self.domain.name, self.level.id)
        return self.epoch

    async def _finish(self, run_id: int, outcome: ExecutionOutcome, warnings: list[str]) -> RunResult:
        if run_id != self.epoch:
            logger.info("Session %s: run %d finished after run %d started; discarded", self.session_id, run_id, self.epoch)
            return RunResult(run_id, RunStatus.STALE, warnings=list(warnings))

        if not outcome.ok:
            diagnostic = outcome.diagnostic
            replayed = 0
            if diagnostic.partial_trace and self.domain.partial_replay:
                await self.scheduler.play(diagnostic.partial_trace, self.initial_world())
                replayed = self.scheduler.applied
            return self._finish_failed(
                run_id, diagnostic, replayed=replayed, output=list(outcome.output), warnings=warnings
            )

        settled = await self.scheduler.play(outcome.trace, self.initial_world())
        result = RunResult(
            run_id,
            RunStatus.COMPLETED if settled else RunStatus.CANCELLED,
            trace=outcome.trace,
            replayed=self.scheduler.applied if run_id == self.epoch else 0,
            output=list(outcome.output),
            warnings=list(warnings),
        )
        if run_id == self.epoch:
            self.last_run = result
        logger.info(
            "Session %s: run %d %s with %d action(s)",
            self.session_id, run_id, result.status.value, len(outcome.trace),
        )
        return result

    def _finish_failed(
        self,
        run_id: int,
        diagnostic: Diagnostic,
        replayed: int = 0,
        output: list[str] | None = None,
        warnings: list[str] | None = None,
    ) -> RunResult:
        result = RunResult(
            run_id,
            RunStatus.FAILED,
            trace=diagnostic.partial_trace or ProgramTrace(),
            diagnostic=diagnostic,
            replayed=replayed,
            output=output or [],
            warnings=list(warnings or []),
        )
        if run_id == self.epoch:
            self.failed_attempts += 1
            self.last_run = result
        logger.warning(
            "Session %s: run %d failed (%s): %s",
            self.session_id, run_id, diagnostic.kind.value, diagnostic.message,
        )
        return result

    # =========================================================================
    # Goals and progression
    # =========================================================================

    def check(self) -> Verdict:
        """
        Validate the level goal against the replayed world.

        Refused while a replay is still stepping, except on free-play
        levels which may be checked at any time.
        """
        self.touch()
        if self.is_running and not self.level.is_free:
            return Verdict.failed("Wait for the program to finish first", running=True)

        verdict = self.domain.check_goal(self.level, self.scheduler.world, self.scheduler.log)
        self.last_verdict = verdict
        if verdict.success:
            self.completed_levels.add(self.level_index)
        else:
            self.failed_attempts += 1
        logger.info(
            "Session %s: level %s check %s",
            self.session_id, self.level.id, "passed" if verdict.success else "failed",
        )
        return verdict

    @property
    def can_advance(self) -> bool:
        return (
            self.last_verdict is not None
            and self.last_verdict.success
            and not self.level.is_free
            and self.level_index + 1 < len(self.levels)
        )

    def advance(self) -> bool:
        """Move to the next level after a successful check."""
        if not self.can_advance:
            return False
        self.select_level(self.level_index + 1)
        return True

    def select_level(self, index: int) -> Level:
        if not 0 <= index < len(self.levels):
            raise IndexError(f"Level {index} does not exist (0..{len(self.levels) - 1})")
        self.level_index = index
        self.failed_attempts = 0
        self.last_run = None
        self.reset()
        return self.level

    def reset(self) -> None:
        """Cancel any replay and rebuild the world from the level."""
        self.touch()
        self.epoch += 1
        self.last_verdict = None
        self.scheduler.cancel()
        self.scheduler.prime(self.initial_world())

    def close(self) -> None:
        self.epoch += 1
        self.scheduler.cancel()

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "domain": self.domain.name,
            "level_index": self.level_index,
            "level_count": len(self.levels),
            "level_id": self.level.id,
            "failed_attempts": self.failed_attempts,
            "hints": self.hints_unlocked,
            "completed_levels": sorted(self.completed_levels),
            "can_advance": self.can_advance,
            "last_run": self.last_run.to_dict() if self.last_run else None,
            "last_verdict": self.last_verdict.to_dict() if self.last_verdict else None,
            "replay": self.scheduler.snapshot(),
        }


class SessionManager:
    """
    Manages level sessions.

    Responsibilities:
    - Create sessions on a domain's level pack
    - Track active sessions
    - Expire idle sessions

    No persistence - sessions are in-memory only.

    Usage:
        manager = SessionManager()
        session = manager.create_session("robot")
        result = await session.run_blocks(workspace)
        verdict = session.check()
    """

    def __init__(
        self,
        domains: DomainRegistry | None = None,
        config: type[Config] = Config,
        remote_sandbox: Sandbox | None = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.domains = domains or default_registry()
        self.config = config
        self.sleep = sleep
        self.clock = clock

        self.block_compiler = BlockCompiler(self.domains)
        self.source_compiler = SourceCompiler(self.domains)
        self.local_sandbox = LocalSandbox(
            step_budget=config.STEP_BUDGET,
            default_timeout_ms=config.LOCAL_TIMEOUT_MS,
        )
        self.remote_sandbox = remote_sandbox or RemoteSandbox(
            config.EXECUTOR_URL,
            base64_encoded=config.EXECUTOR_BASE64,
            default_timeout_ms=config.EXECUTOR_TIMEOUT_MS,
            health_timeout=config.HEALTH_TIMEOUT_SECONDS,
        )

        self._sessions: dict[str, LevelSession] = {}

    def create_session(
        self,
        domain: str,
        levels: list[Level] | None = None,
        level_index: int = 0,
    ) -> LevelSession:
        """
        Create a new session.

        Args:
            domain: Domain name ("robot", "sorting", ...)
            levels: Level pack; the domain's default pack when omitted
            level_index: Level to start on

        Raises KeyError for unknown domains.
        """
        domain_def = self.domains.get(domain)
        if levels is None:
            levels = default_levels(domain)
        for level in levels:
            if level.domain != domain:
                raise ValueError(f"Level {level.id} belongs to '{level.domain}', not '{domain}'")

        session_id = str(uuid.uuid4())
        session = LevelSession(
            session_id=session_id,
            domain=domain_def,
            levels=list(levels),
            scheduler=ReplayScheduler(domain_def, sleep=self.sleep, pace=self.config.REPLAY_PACE),
            block_compiler=self.block_compiler,
            source_compiler=self.source_compiler,
            local_sandbox=self.local_sandbox,
            remote_sandbox=self.remote_sandbox,
            created_at=self.clock(),
            clock=self.clock,
            level_index=level_index,
            assist_after=self.config.ASSIST_AFTER,
            max_actions=self.config.ACTION_BUDGET,
            local_timeout_ms=self.config.LOCAL_TIMEOUT_MS,
            remote_timeout_ms=self.config.EXECUTOR_TIMEOUT_MS,
        )

        self._sessions[session_id] = session
        logger.info("Created session %s for %s (%d levels)", session_id, domain, len(levels))
        return session

    def get_session(self, session_id: str) -> LevelSession | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> LevelSession:
        """Get a session by ID or raise SessionNotFoundError."""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """
        End a session and drop it from memory.

        Any replay in progress is cancelled.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Ended session %s (%s)", session_id, reason)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return list(self._sessions)

    def cleanup_stale_sessions(self, max_age_seconds: int | None = None) -> int:
        """
        End sessions idle for longer than max_age_seconds.

        Sessions with a replay in progress are kept. Returns the number
        of sessions removed.
        """
        if max_age_seconds is None:
            max_age_seconds = self.config.SESSION_MAX_AGE_SECONDS
        current_time = self.clock()
        to_remove = [
            session_id
            for session_id, session in self._sessions.items()
            if current_time - session.last_active > max_age_seconds and not session.is_running
        ]

        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return len(to_remove)

    def __len__(self) -> int:
        return len(self._sessions)
