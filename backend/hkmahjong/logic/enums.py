"""
String enum definitions for Hong Kong mahjong concepts.
"""

from enum import Enum


class Suit(str, Enum):
    """Tile suits, declared in display order."""

    DOTS = "dots"
    BAMBOO = "bamboo"
    CHARACTERS = "characters"
    WINDS = "winds"
    DRAGONS = "dragons"
    FLOWERS = "flowers"
    SEASONS = "seasons"


class Wind(str, Enum):
    """Wind labels in seat order (East deals first)."""

    EAST = "east"
    SOUTH = "south"
    WEST = "west"
    NORTH = "north"


class Dragon(str, Enum):
    RED = "red"
    GREEN = "green"
    WHITE = "white"


class Flower(str, Enum):
    """Flower labels; index matches the wind they belong to."""

    PLUM = "plum"
    ORCHID = "orchid"
    CHRYSANTHEMUM = "chrysanthemum"
    BAMBOO_FLOWER = "bamboo_flower"


class Season(str, Enum):
    """Season labels; index matches the wind they belong to."""

    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


WIND_ORDER: tuple[Wind, ...] = tuple(Wind)


class MeldType(str, Enum):
    """Shapes a group of tiles can take."""

    PAIR = "pair"
    CHOW = "chow"
    PONG = "pong"
    KONG = "kong"


class KongType(str, Enum):
    """How a kong was formed."""

    CONCEALED = "concealed"
    ADDED = "added"
    EXPOSED = "exposed"


class ClaimType(str, Enum):
    """Responses a seat may give to a claimable tile."""

    WIN = "win"
    KONG = "kong"
    PONG = "pong"
    CHOW = "chow"
    PASS = "pass"  # noqa: S105


# resolution priority: win > kong = pong > chow > pass
CLAIM_PRIORITY: dict[ClaimType, int] = {
    ClaimType.WIN: 3,
    ClaimType.KONG: 2,
    ClaimType.PONG: 2,
    ClaimType.CHOW: 1,
    ClaimType.PASS: 0,
}


class ClaimEpisodeType(str, Enum):
    """What opened the current claim episode."""

    DISCARD = "discard"
    ROBBING_KONG = "robbing_kong"


class RoundPhase(str, Enum):
    """Phase of a mahjong round."""

    WAITING = "waiting"
    DEALING = "dealing"
    PLAYING = "playing"
    CLAIM = "claim"
    FINISHED = "finished"


class RoundResultType(str, Enum):
    """Types of round end results."""

    SELF_DRAWN = "self_drawn"
    DISCARD_WIN = "discard_win"
    ROBBING_KONG = "robbing_kong"
    DRAW_GAME = "draw_game"


class SpecialHand(str, Enum):
    """Hands scored outside the regular faan table."""

    THIRTEEN_ORPHANS = "thirteen_orphans"
    SEVEN_PAIRS = "seven_pairs"


class GameAction(str, Enum):
    """Actions dispatched from client to the game session."""

    DRAW = "draw"
    DISCARD = "discard"
    CLAIM = "claim"
    PASS = "pass"  # noqa: S105
    CONCEALED_KONG = "concealed_kong"
    ADD_KONG = "add_kong"
    DECLARE_WIN = "declare_win"


class GameErrorCode(str, Enum):
    """Error codes sent to clients for rejected game actions."""

    ILLEGAL_TURN = "illegal_turn"
    ILLEGAL_TILE_REFERENCE = "illegal_tile_reference"
    ILLEGAL_MELD = "illegal_meld"
    INVALID_ACTION = "invalid_action"


class AIDifficulty(str, Enum):
    """Automated player strength levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class AIDecisionType(str, Enum):
    """Kinds of decisions an automated player can return."""

    DISCARD = "discard"
    WIN = "win"
    KONG = "kong"
    PONG = "pong"
    CHOW = "chow"
    PASS = "pass"  # noqa: S105
