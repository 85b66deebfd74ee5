from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from hkmahjong.messaging.router import MessageRouter
from hkmahjong.server.settings import GameServerSettings
from hkmahjong.server.types import CreateGameRequest
from hkmahjong.server.websocket import websocket_endpoint
from hkmahjong.session.manager import SessionManager
from hkmahjong.session.registry import GameRegistry
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

_MAX_REQUEST_BODY_SIZE = 4096


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def list_games(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    settings: GameServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "games": session_manager.registry.describe(),
            "capacity_used": session_manager.game_count,
            "max_capacity": settings.max_games,
        },
    )


async def create_game(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager

    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return JSONResponse({"error": "Request body too large"}, status_code=413)
        body = json.loads(raw_body) if raw_body else {}
        game_request = CreateGameRequest(**body)
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):  # fmt: skip
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    if session_manager.registry.is_full:
        return JSONResponse({"error": "Server at capacity"}, status_code=503)
    if game_request.game_id is not None and game_request.game_id in session_manager.registry:
        return JSONResponse({"error": "Game with this ID already exists"}, status_code=409)

    game = await session_manager.create_game(
        game_request.num_ai_players,
        game_id=game_request.game_id,
        seed=game_request.seed,
        player_names=game_request.player_names,
        ai_difficulty=game_request.ai_difficulty,
    )
    return JSONResponse(
        {
            "game_id": game.game_id,
            "status": "started",
            "human_seats": game.vacant_seats,
            "ai_seats": sorted(game.controller.ai_player_seats),
        },
        status_code=201,
    )


def create_app(
    settings: GameServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    if session_manager is None:
        session_manager = SessionManager(
            GameRegistry(max_games=settings.max_games),
            ai_difficulty=settings.default_ai_difficulty,
            ai_delay_override=settings.ai_delay_override,
            game_ttl_seconds=settings.game_ttl_seconds,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/games", list_games, methods=["GET"]),
        Route("/games", create_game, methods=["POST"]),
        WebSocketRoute("/ws/{game_id}", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        session_manager.start_game_reaper()
        yield
        await session_manager.stop_game_reaper()
        session_manager.cancel_all_pending_actions()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("game server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = GameServerSettings()
    setup_logging(settings.log_dir)
    return create_app(settings=settings)
