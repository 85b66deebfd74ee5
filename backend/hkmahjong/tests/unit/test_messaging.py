import pytest
from pydantic import ValidationError

from hkmahjong.logic.enums import ClaimType, GameAction, GameErrorCode
from hkmahjong.messaging.types import (
    AddKongMessage,
    ClaimMessage,
    ConcealedKongMessage,
    DiscardMessage,
    JoinGameMessage,
    NextRoundMessage,
    NoDataActionMessage,
    PingMessage,
    SessionErrorCode,
    SessionMessageType,
    parse_client_message,
)
from hkmahjong.tests.conftest import FIXED_SEED
from hkmahjong.tests.mocks.connection import MockConnection


class TestParseClientMessage:
    def test_join(self):
        message = parse_client_message({"type": "join_game", "player_name": "Alice", "seat": 2})
        assert isinstance(message, JoinGameMessage)
        assert message.seat == 2

    def test_join_without_seat(self):
        message = parse_client_message({"type": "join_game", "player_name": "Alice"})
        assert message.seat is None

    @pytest.mark.parametrize("name", ["", "x" * 51, "bad\x00name", "tab\tname"])
    def test_join_rejects_bad_names(self, name):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "join_game", "player_name": name})

    def test_join_rejects_bad_seat(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "join_game", "player_name": "Alice", "seat": 4})

    def test_discard(self):
        message = parse_client_message({"type": "game_action", "action": "discard", "tile_id": 143})
        assert isinstance(message, DiscardMessage)
        assert message.tile_id == 143

    def test_discard_rejects_unknown_tile(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "game_action", "action": "discard", "tile_id": 144})

    def test_claim(self):
        message = parse_client_message(
            {"type": "game_action", "action": "claim", "claim_type": "chow", "tile_ids": [80, 84]},
        )
        assert isinstance(message, ClaimMessage)
        assert message.claim_type == ClaimType.CHOW

    def test_claim_rejects_pass_as_claim_type(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "game_action", "action": "claim", "claim_type": "pass"})

    def test_concealed_kong_needs_four_tiles(self):
        message = parse_client_message(
            {"type": "game_action", "action": "concealed_kong", "tile_ids": [108, 109, 110, 111]},
        )
        assert isinstance(message, ConcealedKongMessage)
        with pytest.raises(ValidationError):
            parse_client_message({"type": "game_action", "action": "concealed_kong", "tile_ids": [108, 109, 110]})

    def test_add_kong(self):
        message = parse_client_message({"type": "game_action", "action": "add_kong", "tile_id": 7, "meld_index": 1})
        assert isinstance(message, AddKongMessage)

    @pytest.mark.parametrize("action", [GameAction.DRAW, GameAction.PASS, GameAction.DECLARE_WIN])
    def test_actions_without_data(self, action):
        message = parse_client_message({"type": "game_action", "action": action.value})
        assert isinstance(message, NoDataActionMessage)
        assert message.action == action

    def test_next_round_and_ping(self):
        assert isinstance(parse_client_message({"type": "next_round"}), NextRoundMessage)
        assert isinstance(parse_client_message({"type": "ping"}), PingMessage)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "chat", "text": "hi"})


class TestMessageRouter:
    async def test_invalid_message_is_reported(self, message_router, mock_connection):
        await message_router.handle_connect(mock_connection)
        await message_router.handle_message(mock_connection, {"type": "bogus"})
        assert len(mock_connection.sent_messages) == 1
        response = mock_connection.sent_messages[0]
        assert response["type"] == SessionMessageType.ERROR
        assert response["code"] == SessionErrorCode.INVALID_MESSAGE

    async def test_ping(self, message_router, mock_connection):
        await message_router.handle_message(mock_connection, {"type": "ping"})
        assert mock_connection.sent_messages == [{"type": "pong"}]

    async def test_join_and_discard(self, message_router, session_manager):
        game = await session_manager.create_game(3, game_id="game1", seed=FIXED_SEED)
        connection = MockConnection(game_id="game1")
        await message_router.handle_connect(connection)

        await message_router.handle_message(connection, {"type": "join_game", "player_name": "Alice"})
        assert connection.messages_of_type(SessionMessageType.GAME_JOINED)
        connection.clear()

        tile_id = game.game.player(0).hand[0]
        await message_router.handle_message(
            connection,
            {"type": "game_action", "action": "discard", "tile_id": tile_id},
        )
        states = connection.messages_of_type(SessionMessageType.GAME_STATE)
        assert states[0]["event"]["tile_id"] == tile_id
        session_manager.cancel_all_pending_actions()

    async def test_rule_error_from_action(self, message_router, session_manager):
        await session_manager.create_game(3, game_id="game1", seed=FIXED_SEED)
        connection = MockConnection(game_id="game1")
        await message_router.handle_connect(connection)
        await message_router.handle_message(connection, {"type": "join_game", "player_name": "Alice"})
        connection.clear()

        await message_router.handle_message(connection, {"type": "game_action", "action": "pass"})
        errors = connection.messages_of_type(SessionMessageType.ERROR)
        assert errors[0]["code"] == GameErrorCode.ILLEGAL_TURN

    async def test_disconnect_leaves_game(self, message_router, session_manager):
        await session_manager.create_game(3, game_id="game1", seed=FIXED_SEED)
        connection = MockConnection(game_id="game1")
        await message_router.handle_connect(connection)
        await message_router.handle_message(connection, {"type": "join_game", "player_name": "Alice"})

        await message_router.handle_disconnect(connection)
        assert session_manager.get_game("game1") is None
