"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to session manager calls
2. Loads and validates custom level packs
3. Formats engine results as response models
4. Fans replay steps out to registered step listeners

This layer is framework-agnostic; every method returns either a
response model or an ErrorResponse.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable

from .. import __version__
from ..domains.defaults import default_levels
from ..engine_core.action import Action
from ..engine_core.goals import Verdict
from ..engine_core.state import WorldState
from ..level_schema import (
    LevelLoadError,
    dump_level,
    load_level,
    load_levels,
    validate_level,
)
from ..logging_utils import get_logger
from ..sandbox import RemoteSandbox
from ..session import LevelSession, RunResult, SessionManager
from .schemas import (
    AdvanceResponse,
    CreateSessionRequest,
    DiagnosticInfo,
    DomainInfo,
    DomainListResponse,
    ErrorCode,
    ErrorResponse,
    HealthResponse,
    LevelListResponse,
    LevelSummary,
    RunBlocksRequest,
    RunResponse,
    RunSourceRequest,
    SelectLevelRequest,
    SessionResponse,
    StateResponse,
    ValidateLevelResponse,
    VerdictResponse,
)

logger = get_logger("api")

# (session_id, step index, action, world after the step)
StepCallback = Callable[[str, int, Action, WorldState], None]


@dataclass
class APIService:
    """
    Main API service for the learning app.

    Usage:
        service = APIService()

        session = service.create_session(CreateSessionRequest(domain="robot"))
        run = await service.run_blocks(session.session_id, RunBlocksRequest(workspace=blocks))
        verdict = service.check(session.session_id)
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    _step_listeners: list[StepCallback] = field(default_factory=list)

    def add_step_listener(self, callback: StepCallback) -> None:
        """Observe every replay step of every session created afterwards."""
        self._step_listeners.append(callback)

    def _session_not_found(self, session_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Session '{session_id}' not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": session_id},
        )

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> SessionResponse | ErrorResponse:
        """Create a new session on a default or custom level pack."""
        if request.domain not in self.session_manager.domains:
            return ErrorResponse(
                error=f"Unknown domain '{request.domain}'",
                error_code=ErrorCode.UNKNOWN_DOMAIN,
                details={"domains": self.session_manager.domains.names()},
            )

        levels = None
        if request.levels is not None:
            try:
                levels = load_levels(request.levels)
            except LevelLoadError as e:
                return ErrorResponse(
                    error="Level pack failed to load",
                    error_code=ErrorCode.INVALID_LEVEL,
                    details={"errors": e.errors},
                )
            errors = [
                f"levels[{index}]: {error}"
                for index, level in enumerate(levels)
                for error in validate_level(level).errors
            ]
            if not levels:
                errors.append("Level pack is empty")
            if errors:
                return ErrorResponse(
                    error="Level pack failed validation",
                    error_code=ErrorCode.INVALID_LEVEL,
                    details={"errors": errors},
                )

        try:
            session = self.session_manager.create_session(
                request.domain, levels=levels, level_index=request.level_index
            )
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_LEVEL)
        except IndexError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_LEVEL_INDEX)

        session_id = session.session_id
        for callback in self._step_listeners:
            session.scheduler.subscribe(
                lambda index, action, world, callback=callback: callback(session_id, index, action, world)
            )
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        return self._session_to_response(session)

    def end_session(self, session_id: str, reason: str = "user_ended") -> bool:
        return self.session_manager.end_session(session_id, reason)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Runs
    # =========================================================================

    async def run_blocks(self, session_id: str, request: RunBlocksRequest) -> RunResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        result = await session.run_blocks(request.workspace)
        return self._run_to_response(session, result)

    async def run_source(self, session_id: str, request: RunSourceRequest) -> RunResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        result = await session.run_source(request.source, request.language_id)
        return self._run_to_response(session, result)

    def reset(self, session_id: str) -> StateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        session.reset()
        return self._state_to_response(session)

    def get_state(self, session_id: str) -> StateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        return self._state_to_response(session)

    # =========================================================================
    # Goals and progression
    # =========================================================================

    def check(self, session_id: str) -> VerdictResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        verdict = session.check()
        return self._verdict_to_response(session, verdict)

    def advance(self, session_id: str) -> AdvanceResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        advanced = session.advance()
        return AdvanceResponse(
            session_id=session_id,
            advanced=advanced,
            level_index=session.level_index,
            level=dump_level(session.level),
        )

    def select_level(self, session_id: str, request: SelectLevelRequest) -> AdvanceResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return self._session_not_found(session_id)
        try:
            session.select_level(request.index)
        except IndexError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.INVALID_LEVEL_INDEX,
                details={"level_count": len(session.levels)},
            )
        return AdvanceResponse(
            session_id=session_id,
            advanced=True,
            level_index=session.level_index,
            level=dump_level(session.level),
        )

    # =========================================================================
    # Catalog
    # =========================================================================

    def list_domains(self) -> DomainListResponse:
        domains = []
        for domain in self.session_manager.domains:
            try:
                level_count = len(default_levels(domain.name))
            except KeyError:
                level_count = 0
            domains.append(DomainInfo(
                name=domain.name,
                title=domain.title,
                primitives=[info.name for info in domain.registry_type.primitives()],
                block_types=domain.block_types(),
                level_count=level_count,
            ))
        return DomainListResponse(domains=domains)

    def list_levels(self, domain: str) -> LevelListResponse | ErrorResponse:
        try:
            levels = default_levels(domain)
        except KeyError:
            return ErrorResponse(
                error=f"Unknown domain '{domain}'",
                error_code=ErrorCode.UNKNOWN_DOMAIN,
            )
        return LevelListResponse(
            domain=domain,
            levels=[
                LevelSummary(
                    index=index,
                    id=level.id,
                    name=level.name,
                    difficulty=level.difficulty.value,
                    description=level.description,
                    allowed_blocks=list(level.allowed_blocks),
                )
                for index, level in enumerate(levels)
            ],
        )

    def validate_level(self, document: dict[str, Any]) -> ValidateLevelResponse:
        try:
            level = load_level(document)
        except LevelLoadError as e:
            return ValidateLevelResponse(valid=False, errors=e.errors)
        result = validate_level(level)
        return ValidateLevelResponse(valid=result.valid, errors=result.errors, warnings=result.warnings)

    async def health(self) -> HealthResponse:
        executor_available = None
        sandbox = self.session_manager.remote_sandbox
        if isinstance(sandbox, RemoteSandbox):
            executor_available = await sandbox.health()
        return HealthResponse(
            status="healthy",
            service="blockykids-engine",
            version=__version__,
            executor_available=executor_available,
        )

    # =========================================================================
    # Conversion helpers
    # =========================================================================

    def _session_to_response(self, session: LevelSession) -> SessionResponse:
        return SessionResponse(
            session_id=session.session_id,
            domain=session.domain.name,
            level_index=session.level_index,
            level_count=len(session.levels),
            level=dump_level(session.level),
            failed_attempts=session.failed_attempts,
            hints=session.hints_unlocked,
            completed_levels=sorted(session.completed_levels),
            can_advance=session.can_advance,
            created_at=session.created_at,
        )

    def _run_to_response(self, session: LevelSession, result: RunResult) -> RunResponse:
        diagnostic = None
        if result.diagnostic is not None:
            diagnostic = DiagnosticInfo.model_validate(result.diagnostic.to_dict())
        return RunResponse(
            session_id=session.session_id,
            run_id=result.run_id,
            status=result.status.value,
            trace=result.trace.to_list(),
            diagnostic=diagnostic,
            replayed=result.replayed,
            output=result.output,
            warnings=result.warnings,
            world=session.world.to_dict() if session.world is not None else None,
        )

    def _verdict_to_response(self, session: LevelSession, verdict: Verdict) -> VerdictResponse:
        return VerdictResponse(
            session_id=session.session_id,
            success=verdict.success,
            message=verdict.message,
            details=dict(verdict.details),
            hints=session.hints_unlocked,
            can_advance=session.can_advance,
        )

    def _state_to_response(self, session: LevelSession) -> StateResponse:
        snapshot = session.scheduler.snapshot()
        return StateResponse(
            session_id=session.session_id,
            replay_state=snapshot["state"],
            index=snapshot["index"],
            total=snapshot["total"],
            world=snapshot["world"],
            log=snapshot["log"],
            rejected=snapshot["rejected"],
        )
