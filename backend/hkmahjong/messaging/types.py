from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from hkmahjong.logic.enums import ClaimEpisodeType, ClaimType, GameAction, GameErrorCode
from hkmahjong.logic.tiles import TOTAL_TILES

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F


class ClientMessageType(StrEnum):
    JOIN_GAME = "join_game"
    GAME_ACTION = "game_action"
    NEXT_ROUND = "next_round"
    PING = "ping"


class SessionMessageType(StrEnum):
    GAME_JOINED = "game_joined"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    GAME_STATE = "game_state"
    YOUR_TURN = "your_turn"
    CLAIM_AVAILABLE = "claim_available"
    ROUND_ENDED = "round_ended"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    ALREADY_IN_GAME = "already_in_game"
    NOT_IN_GAME = "not_in_game"
    GAME_NOT_FOUND = "game_not_found"
    GAME_FULL = "game_full"
    SEAT_TAKEN = "seat_taken"
    INVALID_MESSAGE = "invalid_message"
    ACTION_FAILED = "action_failed"


_TileId = Annotated[int, Field(ge=0, lt=TOTAL_TILES)]


class JoinGameMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_GAME] = ClientMessageType.JOIN_GAME
    player_name: str = Field(min_length=1, max_length=50)
    seat: int | None = Field(default=None, ge=0, le=3)

    @field_validator("player_name")
    @classmethod
    def _validate_player_name(cls, v: str) -> str:
        if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in v):
            raise ValueError("player_name must not contain control characters")
        return v


class DiscardMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.DISCARD] = GameAction.DISCARD
    tile_id: _TileId


class ClaimMessage(BaseModel):
    """Claim the last discard (or the tile of an added kong, for a win)."""

    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.CLAIM] = GameAction.CLAIM
    claim_type: Literal[ClaimType.WIN, ClaimType.KONG, ClaimType.PONG, ClaimType.CHOW]
    tile_ids: list[_TileId] = Field(default_factory=list, max_length=3)


class ConcealedKongMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.CONCEALED_KONG] = GameAction.CONCEALED_KONG
    tile_ids: list[_TileId] = Field(min_length=4, max_length=4)


class AddKongMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.ADD_KONG] = GameAction.ADD_KONG
    tile_id: _TileId
    meld_index: int = Field(ge=0, le=3)


class NoDataActionMessage(BaseModel):
    type: Literal[ClientMessageType.GAME_ACTION] = ClientMessageType.GAME_ACTION
    action: Literal[GameAction.DRAW, GameAction.PASS, GameAction.DECLARE_WIN]


GameActionMessage = Annotated[
    DiscardMessage | ClaimMessage | ConcealedKongMessage | AddKongMessage | NoDataActionMessage,
    Field(discriminator="action"),
]


class NextRoundMessage(BaseModel):
    type: Literal[ClientMessageType.NEXT_ROUND] = ClientMessageType.NEXT_ROUND


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = (
    JoinGameMessage
    | DiscardMessage
    | ClaimMessage
    | ConcealedKongMessage
    | AddKongMessage
    | NoDataActionMessage
    | NextRoundMessage
    | PingMessage
)


class GameJoinedMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_JOINED] = SessionMessageType.GAME_JOINED
    game_id: str
    seat: int
    player_name: str
    snapshot: dict[str, Any]


class PlayerJoinedMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_JOINED] = SessionMessageType.PLAYER_JOINED
    player_name: str
    seat: int


class PlayerLeftMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_LEFT] = SessionMessageType.PLAYER_LEFT
    player_name: str
    seat: int


class GameStateMessage(BaseModel):
    """Sent to every human seat after each committed action, with that seat's view."""

    type: Literal[SessionMessageType.GAME_STATE] = SessionMessageType.GAME_STATE
    event: dict[str, Any] | None = None
    snapshot: dict[str, Any]


class YourTurnMessage(BaseModel):
    type: Literal[SessionMessageType.YOUR_TURN] = SessionMessageType.YOUR_TURN
    seat: int
    drawn_tile: int | None = None
    can_win: bool = False
    kong_options: list[dict[str, Any]] = Field(default_factory=list)


class ClaimAvailableMessage(BaseModel):
    type: Literal[SessionMessageType.CLAIM_AVAILABLE] = SessionMessageType.CLAIM_AVAILABLE
    seat: int
    episode_type: ClaimEpisodeType
    tile_id: int
    from_seat: int
    options: list[dict[str, Any]]


class RoundEndedMessage(BaseModel):
    type: Literal[SessionMessageType.ROUND_ENDED] = SessionMessageType.ROUND_ENDED
    result: dict[str, Any]


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode | GameErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG


_NonGameMessage = Annotated[
    JoinGameMessage | NextRoundMessage | PingMessage,
    Field(discriminator="type"),
]

_non_game_adapter = TypeAdapter(_NonGameMessage)
_game_action_adapter = TypeAdapter(GameActionMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage.

    Game action messages use a two-level discriminator (type then action),
    so they are routed to a separate adapter.
    """
    if data.get("type") == ClientMessageType.GAME_ACTION:
        return _game_action_adapter.validate_python(data)
    return _non_game_adapter.validate_python(data)
