"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between the learning app and the engine.
All responses include explicit types for OpenAPI schema generation.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has expired
- UNKNOWN_DOMAIN: Domain name is not registered
- INVALID_LEVEL: Level document failed to load or validate
- INVALID_LEVEL_INDEX: Level index outside the session's pack
- VALIDATION_ERROR: Request body is malformed
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class RunStatus(str, Enum):
    """How a run ended."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    STALE = "stale"


class DiagnosticKind(str, Enum):
    """Why a run failed."""
    COMPILE_ERROR = "compile_error"
    RUNTIME_ERROR = "runtime_error"
    TIMEOUT = "timeout"
    SANDBOX_UNAVAILABLE = "sandbox_unavailable"


class ReplayState(str, Enum):
    """Replay scheduler state."""
    IDLE = "idle"
    PRIMING = "priming"
    STEPPING = "stepping"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    UNKNOWN_DOMAIN = "UNKNOWN_DOMAIN"
    INVALID_LEVEL = "INVALID_LEVEL"
    INVALID_LEVEL_INDEX = "INVALID_LEVEL_INDEX"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class SourceLocationInfo(BaseModel):
    """Best-effort error location."""
    line: Optional[int] = None
    column: Optional[int] = None
    block_id: Optional[str] = None


class DiagnosticInfo(BaseModel):
    """Compile, runtime, timeout or sandbox failure of a run."""
    kind: DiagnosticKind
    message: str
    location: Optional[SourceLocationInfo] = None
    partial_trace: Optional[list[dict[str, Any]]] = Field(
        None, description="Actions captured before a runtime error"
    )


class LevelSummary(BaseModel):
    """Level metadata for pickers."""
    index: int
    id: Any
    name: str
    difficulty: str
    description: str = ""
    allowed_blocks: list[str] = Field(default_factory=list)


class DomainInfo(BaseModel):
    """A registered learning domain."""
    name: str
    title: str
    primitives: list[str] = Field(default_factory=list, description="Canonical primitive names")
    block_types: list[str] = Field(default_factory=list)
    level_count: int = 0


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to create a new level session."""
    domain: str = Field(..., description="robot, building, sorting, combat, music, sprite, pixel or math")
    level_index: int = Field(0, ge=0, description="Level to start on")
    levels: Optional[list[dict[str, Any]]] = Field(
        None, description="Custom level pack; the domain's default pack when omitted"
    )


class RunBlocksRequest(BaseModel):
    """Request to run a block workspace."""
    workspace: Any = Field(..., description="Blockly serialization, a block list or a single block")


class RunSourceRequest(BaseModel):
    """Request to run learner source code on the remote executor."""
    source: str = Field(..., description="Learner program text")
    language_id: int = Field(71, description="Executor language id (71 = Python 3)")


class SelectLevelRequest(BaseModel):
    """Request to jump to a level in the session's pack."""
    index: int = Field(..., ge=0)


class ValidateLevelRequest(BaseModel):
    """A level document to type-check and validate."""
    level: dict[str, Any]


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    domain: str
    level_index: int
    level_count: int
    level: dict[str, Any] = Field(default_factory=dict, description="Current level document")
    failed_attempts: int = 0
    hints: list[str] = Field(default_factory=list, description="Hints unlocked so far")
    completed_levels: list[int] = Field(default_factory=list)
    can_advance: bool = False
    created_at: float = 0.0
    api_version: str = "v1"


class RunResponse(BaseModel):
    """Result of running a program."""
    session_id: str
    run_id: int
    status: RunStatus
    trace: list[dict[str, Any]] = Field(default_factory=list)
    diagnostic: Optional[DiagnosticInfo] = None
    replayed: int = Field(0, description="Trace actions consumed by the replay")
    output: list[str] = Field(default_factory=list, description="Plain program output lines")
    warnings: list[str] = Field(default_factory=list)
    world: Optional[dict[str, Any]] = None
    api_version: str = "v1"


class VerdictResponse(BaseModel):
    """Goal check result."""
    session_id: str
    success: bool
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    hints: list[str] = Field(default_factory=list)
    can_advance: bool = False
    api_version: str = "v1"


class AdvanceResponse(BaseModel):
    """Response after advancing or selecting a level."""
    session_id: str
    advanced: bool
    level_index: int
    level: dict[str, Any] = Field(default_factory=dict)
    api_version: str = "v1"


class StateResponse(BaseModel):
    """Live world and replay progress."""
    session_id: str
    replay_state: ReplayState
    index: int = 0
    total: int = 0
    world: Optional[dict[str, Any]] = None
    log: list[dict[str, Any]] = Field(default_factory=list)
    rejected: list[dict[str, Any]] = Field(default_factory=list)
    api_version: str = "v1"


class LevelListResponse(BaseModel):
    """Default level pack of a domain."""
    domain: str
    levels: list[LevelSummary] = Field(default_factory=list)


class DomainListResponse(BaseModel):
    """All registered domains."""
    domains: list[DomainInfo] = Field(default_factory=list)


class ValidateLevelResponse(BaseModel):
    """Result of validating a level document."""
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    executor_available: Optional[bool] = Field(None, description="Remote executor answered /about")
