from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from hkmahjong.logic.enums import RoundPhase, Wind
from hkmahjong.logic.rng import SEED_BYTES
from hkmahjong.logic.settings import NUM_PLAYERS
from hkmahjong.logic.state import MahjongGameState, MahjongPlayer, MahjongRoundState
from hkmahjong.logic.tiles import FLOWER_ID_START, TOTAL_TILES
from hkmahjong.logic.wall import DEAD_WALL_SIZE, Wall
from hkmahjong.messaging.router import MessageRouter
from hkmahjong.server.app import create_app
from hkmahjong.server.settings import GameServerSettings
from hkmahjong.session.manager import SessionManager
from hkmahjong.session.registry import GameRegistry
from hkmahjong.tests.mocks.connection import MockConnection

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from hkmahjong.logic.meld_model import Meld
    from hkmahjong.logic.settings import GameSettings

FIXED_SEED = "ab" * SEED_BYTES

# seat 1: 1-2-3 and 4-5-6 dots, 7-8-9 bamboo, 2-3-4 characters, single 5 characters; seat 0 discards 89 into it
DISCARD_WIN_HANDS = {
    0: [89, 108, 109, 110, 112, 113, 114, 116, 117, 120, 121, 124, 128, 132],
    1: [0, 4, 8, 12, 16, 20, 60, 64, 68, 76, 80, 84, 88],
    2: [1, 5, 9, 25, 29, 33, 36, 40, 44, 48, 96, 100, 125],
    3: [2, 6, 10, 26, 30, 34, 37, 41, 45, 52, 104, 118, 129],
}

# 1-9 dots, red pong, 2 bamboo pair
DEALER_WINNING_HAND = [0, 4, 8, 12, 16, 20, 24, 28, 32, 124, 125, 126, 40, 41]


# ============================================================================
# Test State Builder Helpers
# ============================================================================


def tid(kind: int, copy: int = 0) -> int:
    """Tile id for a kind index (0-33) and copy number."""
    return kind * 4 + copy


def create_player(
    seat: int = 0,
    name: str | None = None,
    *,
    hand: Sequence[int] | None = None,
    melds: Sequence[Meld] | None = None,
    concealed_kongs: Sequence[Meld] | None = None,
    discards: Sequence[int] | None = None,
    flowers: Sequence[int] | None = None,
    score: int = 0,
) -> MahjongPlayer:
    """Create a MahjongPlayer with sensible defaults for testing."""
    return MahjongPlayer(
        seat=seat,
        name=name if name is not None else f"Player{seat}",
        hand=tuple(hand) if hand is not None else (),
        melds=tuple(melds) if melds is not None else (),
        concealed_kongs=tuple(concealed_kongs) if concealed_kongs is not None else (),
        discards=tuple(discards) if discards is not None else (),
        flowers=tuple(flowers) if flowers is not None else (),
        score=score,
    )


def create_round_state(
    *,
    players: Sequence[MahjongPlayer] | None = None,
    wall: Sequence[int] | None = None,
    dead_wall: Sequence[int] | None = None,
    dealer_seat: int = 0,
    current_player_seat: int = 0,
    prevailing_wind: Wind = Wind.EAST,
    turn_count: int = 0,
    phase: RoundPhase = RoundPhase.PLAYING,
    last_drawn_tile: int | None = None,
) -> MahjongRoundState:
    """Create a MahjongRoundState with sensible defaults for testing."""
    if players is None:
        players = tuple(create_player(seat=i) for i in range(NUM_PLAYERS))
    return MahjongRoundState(
        wall=Wall(
            live_tiles=tuple(wall) if wall is not None else (),
            dead_wall_tiles=tuple(dead_wall) if dead_wall is not None else (),
        ),
        players=tuple(players),
        phase=phase,
        dealer_seat=dealer_seat,
        current_player_seat=current_player_seat,
        prevailing_wind=prevailing_wind,
        turn_count=turn_count,
        last_drawn_tile=last_drawn_tile,
    )


def create_game_state(
    round_state: MahjongRoundState | None = None,
    *,
    round_number: int = 0,
    seed: str = FIXED_SEED,
    settings: GameSettings | None = None,
) -> MahjongGameState:
    """Create a MahjongGameState with sensible defaults for testing."""
    if round_state is None:
        round_state = create_round_state()
    kwargs: dict[str, Any] = {
        "game_id": "test-game",
        "round_state": round_state,
        "round_number": round_number,
        "seed": seed,
    }
    if settings is not None:
        kwargs["settings"] = settings
    return MahjongGameState(**kwargs)


def _deal_order(dealer_seat: int) -> list[int]:
    """Seat receiving each of the first 53 live tiles during the deal."""
    order: list[int] = []
    for _ in range(3):
        for offset in range(NUM_PLAYERS):
            order.extend([(dealer_seat + offset) % NUM_PLAYERS] * 4)
    order.extend((dealer_seat + offset) % NUM_PLAYERS for offset in range(NUM_PLAYERS))
    order.append(dealer_seat)
    return order


def build_wall_tiles(
    hands: Mapping[int, Sequence[int]],
    *,
    draws: Sequence[int] = (),
    dead_wall: Sequence[int] | None = None,
    dealer_seat: int = 0,
) -> list[int]:
    """
    Full 144-tile wall order that deals the given hands.

    Hands not given (or short) are filled from the lowest unused suited and
    honor tiles. `draws` come next off the live wall. Unless `dead_wall` is
    given, the dead wall holds six filler tiles followed by all eight bonus
    tiles, so no bonus tile is drawn unless a test asks for it.
    """
    used = {t for hand in hands.values() for t in hand} | set(draws) | set(dead_wall or ())
    filler = [t for t in range(FLOWER_ID_START) if t not in used]
    bonus = [t for t in range(FLOWER_ID_START, TOTAL_TILES) if t not in used]

    dealt: dict[int, list[int]] = {}
    for seat in range(NUM_PLAYERS):
        size = 14 if seat == dealer_seat else 13
        hand = list(hands.get(seat, ()))
        while len(hand) < size:
            hand.append(filler.pop(0))
        dealt[seat] = hand

    if dead_wall is None:
        dead = filler[-(DEAD_WALL_SIZE - len(bonus)) :] + bonus
        filler = filler[: -(DEAD_WALL_SIZE - len(bonus))]
        live_tail: list[int] = filler
    else:
        dead = list(dead_wall)
        live_tail = filler + bonus

    positions = {seat: iter(tiles) for seat, tiles in dealt.items()}
    sequence = [next(positions[seat]) for seat in _deal_order(dealer_seat)]
    tiles = sequence + list(draws) + live_tail + dead
    assert len(tiles) == TOTAL_TILES
    assert len(set(tiles)) == TOTAL_TILES
    return tiles


# ============================================================================
# Session Fixtures
# ============================================================================


@pytest.fixture
def registry():
    return GameRegistry(max_games=10)


@pytest.fixture
def session_manager(registry):
    return SessionManager(registry, ai_delay_override=0)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return GameServerSettings(max_games=10, ai_delay_override=0)


@pytest.fixture
def app(server_settings):
    return create_app(settings=server_settings)
