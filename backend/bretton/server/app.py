from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from bretton.messaging.router import MessageRouter
from bretton.server.settings import GameServerSettings
from bretton.server.websocket import websocket_endpoint
from bretton.session.manager import SessionManager
from bretton.session.models import GlobalState
from bretton.session.persistence import PersistenceScheduler
from shared.auth.password import get_hasher
from shared.logging import setup_logging
from shared.storage import LocalStateStorage, StateStorageError

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from shared.storage import StateStorage


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    settings: GameServerSettings = request.app.state.settings
    persistence: PersistenceScheduler | None = request.app.state.persistence
    return JSONResponse(
        {
            "status": "ok",
            "rooms": session_manager.room_count,
            "max_rooms": settings.max_rooms,
            "users": len(session_manager.state.users),
            "connections": session_manager.connection_count,
            "saves": persistence.saves if persistence else 0,
            "save_failures": persistence.failures if persistence else 0,
        },
    )


async def list_rooms(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse({"rooms": [r.model_dump(mode="json") for r in session_manager.rooms_info()]})


def load_state(storage: StateStorage) -> GlobalState:
    """Read the persisted state, or start empty when nothing was saved yet.

    Raises StateStorageError when the stored document is not a valid state;
    starting over it would overwrite accounts and rooms on the next save.
    """
    data = storage.load()
    if data is None:
        logger.info("no saved state, starting empty")
        return GlobalState()
    try:
        state = GlobalState.model_validate(data)
    except ValidationError as e:
        raise StateStorageError(f"Stored state is invalid: {e.error_count()} errors") from e
    logger.info("state loaded", users=len(state.users), rooms=len(state.rooms))
    return state


def create_app(
    settings: GameServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
    storage: StateStorage | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    # When the app creates its own SessionManager, it owns persistence.
    persistence: PersistenceScheduler | None = None

    if session_manager is None:
        if storage is None:
            storage = LocalStateStorage(settings.state_file)
        state = load_state(storage)
        persistence = PersistenceScheduler(
            storage,
            state.snapshot,
            autosave_interval=settings.autosave_interval_seconds,
        )
        session_manager = SessionManager(
            state,
            password_hasher=get_hasher(settings.password_hasher),
            superadmin_usernames=settings.superadmin_usernames,
            max_rooms=settings.max_rooms,
            persistence=persistence,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/rooms", list_rooms, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        if persistence is not None:
            persistence.start()
        try:
            yield
        finally:
            if persistence is not None:
                await persistence.shutdown()
                logger.info("final state saved", saves=persistence.saves, failures=persistence.failures)

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager
    app.state.persistence = persistence

    logger.info("game server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = GameServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
