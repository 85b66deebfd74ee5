from __future__ import annotations

import contextlib
import re
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from hkmahjong.messaging.encoder import DecodeError, decode
from hkmahjong.messaging.protocol import ConnectionProtocol
from hkmahjong.messaging.types import ErrorMessage, SessionErrorCode

logger = structlog.get_logger()

if TYPE_CHECKING:
    from hkmahjong.messaging.router import MessageRouter

GAME_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
MAX_GAME_ID_LENGTH = 50

# Disconnect after this many consecutive undecodable frames
MAX_DECODE_ERRORS = 5


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, game_id: str, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._game_id = game_id
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def game_id(self) -> str:
        return self._game_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    game_id = websocket.path_params["game_id"]
    if not GAME_ID_PATTERN.match(game_id) or len(game_id) > MAX_GAME_ID_LENGTH:
        await websocket.close(code=4000, reason="invalid_game_id")
        return

    await websocket.accept()

    connection = WebSocketConnection(websocket, game_id=game_id)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    logger.info("websocket connected", game_id=game_id)
    await router.handle_connect(connection)

    decode_errors = 0
    try:
        while True:
            raw = await connection.receive_bytes()
            try:
                data = decode(raw)
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(
                    ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
                )
                if decode_errors >= MAX_DECODE_ERRORS:
                    logger.info("too many decode errors, disconnecting")
                    await connection.close(code=4004, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0
            await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
