"""Typed domain exceptions for game rule violations.

All rule violations raised by the engine are subclasses of GameRuleError
so the session boundary can catch and convert them in one place. Every
subclass carries the GameErrorCode reported to the client.
"""

from hkmahjong.logic.enums import GameErrorCode


class GameRuleError(Exception):
    """Base exception for game rule violations.

    Raised by domain logic (turn.py, claims.py, melds.py) when a player
    action violates the rules. The engine commits no state when one is
    raised, so callers can report it and carry on.
    """

    code: GameErrorCode = GameErrorCode.INVALID_ACTION


class NotYourTurnError(GameRuleError):
    """Seat is not entitled to act in the current phase or step."""

    code = GameErrorCode.ILLEGAL_TURN


class InvalidTileError(GameRuleError):
    """Tile id is not present in the acting seat's hand or meld."""

    code = GameErrorCode.ILLEGAL_TILE_REFERENCE


class InvalidMeldError(GameRuleError):
    """Kong or claim data does not form a legal grouping."""

    code = GameErrorCode.ILLEGAL_MELD


class InvalidActionError(GameRuleError):
    """Action is not valid in the current game state."""

    code = GameErrorCode.INVALID_ACTION
