"""
FastAPI Application - REST API for the learning app.

Endpoints:
    GET    /api/v1/domains                      List domains
    GET    /api/v1/domains/{domain}/levels      Default level pack
    POST   /api/v1/levels/validate              Validate a level document
    POST   /api/v1/sessions                     Create level session
    GET    /api/v1/sessions                     List sessions
    GET    /api/v1/sessions/{id}                Get session status
    DELETE /api/v1/sessions/{id}                End session
    POST   /api/v1/sessions/{id}/run/blocks     Run a block workspace
    POST   /api/v1/sessions/{id}/run/source     Run Python source remotely
    POST   /api/v1/sessions/{id}/reset          Reset the world
    GET    /api/v1/sessions/{id}/state          Live world and replay progress
    POST   /api/v1/sessions/{id}/check          Check the level goal
    POST   /api/v1/sessions/{id}/advance        Go to the next level
    POST   /api/v1/sessions/{id}/level          Jump to a level
    WS     /api/v1/sessions/{id}/ws             Replay step stream

Run Flow:
    1. POST /run/blocks or /run/source compiles and executes the program
    2. The trace replays with pacing; every step is pushed over the
       session's WebSocket as a "step" message
    3. The response arrives once the replay settled (or was superseded)
    4. POST /check judges the replayed world

All responses are JSON with explicit Pydantic schemas.
"""

import asyncio
import json
from typing import Annotated, Optional, Union

from ..config import Config
from ..logging_utils import get_logger

logger = get_logger("api")

ALLOWED_ORIGINS = Config.ALLOWED_ORIGINS


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .. import __version__
    from .service import APIService
    from .schemas import (
        # Request models
        CreateSessionRequest,
        RunBlocksRequest,
        RunSourceRequest,
        SelectLevelRequest,
        ValidateLevelRequest,
        # Response models
        AdvanceResponse,
        DomainListResponse,
        EndSessionResponse,
        ErrorResponse,
        HealthResponse,
        LevelListResponse,
        RunResponse,
        SessionListResponse,
        SessionResponse,
        StateResponse,
        ValidateLevelResponse,
        VerdictResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="BlockyKids Engine API",
        description="""
Action-trace execution and replay engine for block-based coding lessons.

## Run Flow

1. `POST /run/blocks` (or `/run/source`) compiles and executes the program
2. The resulting trace is replayed step by step; open the session
   WebSocket to animate each `step` message as it happens
3. `POST /check` judges the final world against the level goal

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `UNKNOWN_DOMAIN` | Domain is not registered |
| `INVALID_LEVEL` | Level document failed to load or validate |
| `INVALID_LEVEL_INDEX` | Level index outside the pack |

Program failures (compile errors, runtime errors, timeouts, an
unavailable code runner) are not HTTP errors: they come back as a
`failed` run with a `diagnostic`.
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()

    # WebSocket connections
    ws_connections: dict[str, list[WebSocket]] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.UNKNOWN_DOMAIN: 404,
    }

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def error_result(response: ErrorResponse) -> JSONResponse:
        return make_error_response(
            response.error_code,
            response.error,
            status_code=status_codes.get(response.error_code, 400),
            details=response.details,
        )

    async def broadcast_to_session(session_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a session."""
        if session_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[session_id]:
                try:
                    await ws.send_json(message)
                except (WebSocketDisconnect, RuntimeError):
                    dead_connections.append(ws)
            for ws in dead_connections:
                if ws in ws_connections[session_id]:
                    ws_connections[session_id].remove(ws)

    def on_step(session_id: str, index: int, action, world) -> None:
        """Replay listener: push each applied step to the session's sockets."""
        if not ws_connections.get(session_id):
            return
        asyncio.ensure_future(broadcast_to_session(session_id, {
            "type": "step",
            "payload": {
                "index": index,
                "action": action.to_dict(),
                "description": action.describe(),
                "world": world.to_dict(),
            },
        }))

    api_service.add_step_listener(on_step)

    # =========================================================================
    # Catalog Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/domains",
        response_model=DomainListResponse,
        tags=["Catalog"],
        summary="List learning domains",
    )
    async def list_domains() -> DomainListResponse:
        """List every registered domain with its primitives and block types."""
        return api_service.list_domains()

    @app.get(
        "/api/v1/domains/{domain}/levels",
        response_model=LevelListResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Catalog"],
        summary="List a domain's default levels",
    )
    async def list_levels(domain: str) -> Union[LevelListResponse, JSONResponse]:
        response = api_service.list_levels(domain)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        return response

    @app.post(
        "/api/v1/levels/validate",
        response_model=ValidateLevelResponse,
        tags=["Catalog"],
        summary="Validate a level document",
    )
    async def validate_level(request: ValidateLevelRequest) -> ValidateLevelResponse:
        """Type-check and semantically validate a level document."""
        return api_service.validate_level(request.level)

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid level pack or index"},
            404: {"model": ErrorResponse, "description": "Unknown domain"},
        },
        tags=["Sessions"],
        summary="Create a new level session",
    )
    async def create_session(request: CreateSessionRequest) -> Union[SessionResponse, JSONResponse]:
        """
        Create a new level session.

        Uses the domain's default level pack unless `levels` is given.
        """
        response = api_service.create_session(request)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        logger.info("API created session %s (%s)", response.session_id, response.domain)
        return response

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session IDs."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Get the current level, attempts and unlocked hints of a session."""
        response = api_service.get_session(session_id)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        return response

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a level session",
    )
    async def end_session(
        session_id: str,
        reason: Annotated[str, Query(description="Reason for ending")] = "user_ended",
    ) -> EndSessionResponse:
        """End a session and cancel any replay in progress."""
        success = api_service.end_session(session_id, reason)
        await broadcast_to_session(session_id, {"type": "session_ended", "payload": {"reason": reason}})
        ws_connections.pop(session_id, None)
        return EndSessionResponse(success=success, session_id=session_id)

    # =========================================================================
    # Run Endpoints
    # =========================================================================

    async def finish_run(session_id: str, response) -> Union[RunResponse, JSONResponse]:
        if isinstance(response, ErrorResponse):
            return error_result(response)
        await broadcast_to_session(session_id, {
            "type": "run_finished",
            "payload": response.model_dump(mode="json"),
        })
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/run/blocks",
        response_model=RunResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Runs"],
        summary="Run a block workspace",
    )
    async def run_blocks(session_id: str, request: RunBlocksRequest) -> Union[RunResponse, JSONResponse]:
        """
        Compile the workspace, run it in the local interpreter and replay
        the trace. A newer run or a reset cancels this one's replay.
        """
        response = await api_service.run_blocks(session_id, request)
        return await finish_run(session_id, response)

    @app.post(
        "/api/v1/sessions/{session_id}/run/source",
        response_model=RunResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Runs"],
        summary="Run Python source on the code runner",
    )
    async def run_source(session_id: str, request: RunSourceRequest) -> Union[RunResponse, JSONResponse]:
        """
        Check the source locally, run it on the remote executor and replay
        the trace. Results that arrive after a newer run started come back
        with status `stale` and leave the world alone.
        """
        response = await api_service.run_source(session_id, request)
        return await finish_run(session_id, response)

    @app.post(
        "/api/v1/sessions/{session_id}/reset",
        response_model=StateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Runs"],
        summary="Reset the world to the level start",
    )
    async def reset(session_id: str) -> Union[StateResponse, JSONResponse]:
        response = api_service.reset(session_id)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        await broadcast_to_session(session_id, {
            "type": "state_update",
            "payload": response.model_dump(mode="json"),
        })
        return response

    @app.get(
        "/api/v1/sessions/{session_id}/state",
        response_model=StateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Runs"],
        summary="Get the live world and replay progress",
    )
    async def get_state(session_id: str) -> Union[StateResponse, JSONResponse]:
        response = api_service.get_state(session_id)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        return response

    # =========================================================================
    # Goal Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/check",
        response_model=VerdictResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Goals"],
        summary="Check the level goal",
    )
    async def check(session_id: str) -> Union[VerdictResponse, JSONResponse]:
        """
        Judge the replayed world against the level goal.

        A failed goal is a normal response with `success=false`.
        """
        response = api_service.check(session_id)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/advance",
        response_model=AdvanceResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Goals"],
        summary="Advance to the next level",
    )
    async def advance(session_id: str) -> Union[AdvanceResponse, JSONResponse]:
        """Move on after a successful check. Never advances free-play levels."""
        response = api_service.advance(session_id)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        return response

    @app.post(
        "/api/v1/sessions/{session_id}/level",
        response_model=AdvanceResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Goals"],
        summary="Jump to a level",
    )
    async def select_level(session_id: str, request: SelectLevelRequest) -> Union[AdvanceResponse, JSONResponse]:
        response = api_service.select_level(session_id, request)
        if isinstance(response, ErrorResponse):
            return error_result(response)
        return response

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/sessions/{session_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        WebSocket for replay updates.

        Messages from server:
        - state_update: Current world and replay progress
        - step: One trace action applied (index, action, world)
        - run_finished: A run ended (same payload as the run response)
        - session_ended: Session was ended
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()

        if session_id not in ws_connections:
            ws_connections[session_id] = []
        ws_connections[session_id].append(websocket)

        try:
            response = api_service.get_state(session_id)
            if isinstance(response, ErrorResponse):
                await websocket.send_json({
                    "type": "error",
                    "payload": {"message": response.error, "error_code": response.error_code.value},
                })
            else:
                await websocket.send_json({
                    "type": "state_update",
                    "payload": response.model_dump(mode="json"),
                })

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if message.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })

        except WebSocketDisconnect:
            pass
        finally:
            if session_id in ws_connections:
                if websocket in ws_connections[session_id]:
                    ws_connections[session_id].remove(websocket)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check; also probes the remote code runner."""
        return await api_service.health()

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "BlockyKids Engine API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn blockykids.api.app:app
app = None
try:
    app = create_app()
except ImportError:
    # FastAPI not installed
    pass
