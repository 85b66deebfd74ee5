from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from hkmahjong.logic.exceptions import GameRuleError
from hkmahjong.messaging.types import (
    AddKongMessage,
    ClaimMessage,
    ConcealedKongMessage,
    DiscardMessage,
    ErrorMessage,
    JoinGameMessage,
    NextRoundMessage,
    NoDataActionMessage,
    PingMessage,
    SessionErrorCode,
    parse_client_message,
)

if TYPE_CHECKING:
    from hkmahjong.messaging.protocol import ConnectionProtocol
    from hkmahjong.session.manager import SessionManager

logger = structlog.get_logger()


_GAME_ACTION_TYPES = (
    DiscardMessage,
    ClaimMessage,
    ConcealedKongMessage,
    AddKongMessage,
    NoDataActionMessage,
)


class MessageRouter:
    """
    Routes decoded client messages to the session manager.

    Holds no state of its own and can be tested without real WebSocket
    connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
            )
            return

        if isinstance(message, JoinGameMessage):
            await self._session_manager.join_game(connection, message.player_name, message.seat)
        elif isinstance(message, _GAME_ACTION_TYPES):
            await self._handle_game_action(connection, message)
        elif isinstance(message, NextRoundMessage):
            await self._session_manager.next_round(connection)
        elif isinstance(message, PingMessage):
            await self._session_manager.handle_ping(connection)

    async def _handle_game_action(
        self,
        connection: ConnectionProtocol,
        message: DiscardMessage | ClaimMessage | ConcealedKongMessage | AddKongMessage | NoDataActionMessage,
    ) -> None:
        """Route a game action message, handling expected and fatal errors."""
        try:
            data = message.model_dump(exclude={"type", "action"})
            await self._session_manager.handle_game_action(
                connection=connection,
                action=message.action,
                data=data,
            )
        except (GameRuleError, ValueError, KeyError, TypeError) as e:
            logger.warning("action failed", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.ACTION_FAILED, message=str(e)).model_dump(),
            )
        except Exception:
            logger.exception("fatal error during game action", connection_id=connection.connection_id)
            await self._session_manager.close_game_on_error(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.leave_game(connection)
        self._session_manager.unregister_connection(connection)
