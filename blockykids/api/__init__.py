"""
API Module - Learning app interface.

Exposes the engine via REST API and a WebSocket replay stream.
The app:
1. Picks a domain and creates a level session
2. Runs block workspaces or Python source
3. Animates replay steps as they arrive
4. Checks the goal and advances through the level pack

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    RunBlocksRequest,
    RunSourceRequest,
    SelectLevelRequest,
    ValidateLevelRequest,
    # Responses
    SessionResponse,
    RunResponse,
    VerdictResponse,
    AdvanceResponse,
    StateResponse,
    ErrorResponse,
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "RunBlocksRequest",
    "RunSourceRequest",
    "SelectLevelRequest",
    "ValidateLevelRequest",
    # Responses
    "SessionResponse",
    "RunResponse",
    "VerdictResponse",
    "AdvanceResponse",
    "StateResponse",
    "ErrorResponse",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
