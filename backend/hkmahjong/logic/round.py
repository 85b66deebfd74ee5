"""
Round setup for Hong Kong mahjong: dealing, bonus-tile replacement, and
advancing to the next round.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from hkmahjong.logic.enums import WIND_ORDER, RoundPhase, Wind
from hkmahjong.logic.exceptions import InvalidActionError
from hkmahjong.logic.rng import Shuffler, shuffle_tiles
from hkmahjong.logic.settings import NUM_PLAYERS, GameSettings
from hkmahjong.logic.state import MahjongGameState, MahjongPlayer, MahjongRoundState, seat_to_wind
from hkmahjong.logic.state_utils import add_flower, append_log, update_player
from hkmahjong.logic.tiles import is_bonus_id, sort_tiles, tile_display_name
from hkmahjong.logic.wall import create_wall, create_wall_from_tiles, deal_initial_hands, draw_replacement

if TYPE_CHECKING:
    from hkmahjong.logic.wall import Wall

logger = structlog.get_logger()


def default_player_name(seat: int, dealer_seat: int) -> str:
    """Name for an unnamed seat, e.g. "AI East" for the dealer."""
    return f"AI {seat_to_wind(seat, dealer_seat).value.capitalize()}"


def prevailing_wind_for_round(round_number: int, settings: GameSettings) -> Wind:
    """The prevailing wind rotates once every `rounds_per_wind` rounds."""
    return WIND_ORDER[(round_number // settings.rounds_per_wind) % NUM_PLAYERS]


def replace_bonus_tiles(round_state: MahjongRoundState, seat: int, max_log: int) -> MahjongRoundState:
    """
    Move every bonus tile out of a seat's hand, drawing replacements.

    Replacements come from the dead wall first, then the live wall. A
    replacement that is itself a bonus tile is replaced in turn.
    """
    while True:
        player = round_state.players[seat]
        bonus = [t for t in player.hand if is_bonus_id(t)]
        if not bonus:
            return round_state
        for tile_id in bonus:
            replacement, wall = draw_replacement(round_state.wall)
            hand = [t for t in round_state.players[seat].hand if t != tile_id]
            if replacement is not None:
                hand.append(replacement)
            round_state = update_player(round_state.model_copy(update={"wall": wall}), seat, hand=tuple(hand))
            round_state = add_flower(round_state, seat, tile_id)
            round_state = append_log(
                round_state,
                f"{player.name} drew bonus tile {tile_display_name(tile_id)} and replaced it.",
                max_log,
            )
            if replacement is None:
                return round_state


def deal_round(
    game_state: MahjongGameState,
    *,
    shuffler: Shuffler = shuffle_tiles,
    wall_tiles: Sequence[int] | None = None,
) -> MahjongGameState:
    """
    Build a fresh wall, deal all hands and replace bonus tiles.

    Names and scores carry over from the current players. `wall_tiles` fixes
    the wall order (used by tests); otherwise `shuffler` produces it from the
    game seed and round number. Ends in PLAYING with the dealer to act.
    """
    settings = game_state.settings
    previous = game_state.round_state
    dealer_seat = previous.dealer_seat

    wall: Wall
    if wall_tiles is not None:
        wall = create_wall_from_tiles(wall_tiles, dead_wall_size=settings.dead_wall_size)
    else:
        wall = create_wall(
            game_state.seed,
            game_state.round_number,
            shuffler=shuffler,
            dead_wall_size=settings.dead_wall_size,
        )
    wall, hands = deal_initial_hands(wall, dealer_seat)

    players = tuple(
        MahjongPlayer(seat=p.seat, name=p.name, hand=tuple(hands[p.seat]), score=p.score) for p in previous.players
    )
    round_state = MahjongRoundState(
        wall=wall,
        players=players,
        phase=RoundPhase.DEALING,
        dealer_seat=dealer_seat,
        current_player_seat=dealer_seat,
        prevailing_wind=previous.prevailing_wind,
    )

    for offset in range(NUM_PLAYERS):
        round_state = replace_bonus_tiles(round_state, (dealer_seat + offset) % NUM_PLAYERS, settings.action_log_size)

    players = tuple(p.model_copy(update={"hand": tuple(sort_tiles(p.hand))}) for p in round_state.players)
    round_state = round_state.model_copy(update={"players": players, "phase": RoundPhase.PLAYING})
    round_state = append_log(
        round_state,
        f"Round started. {round_state.prevailing_wind.value.upper()} wind round.",
        settings.action_log_size,
    )
    round_state = append_log(
        round_state,
        f"{round_state.players[dealer_seat].name} is the dealer (East).",
        settings.action_log_size,
    )

    logger.info(
        "round dealt",
        game_id=game_state.game_id,
        round_number=game_state.round_number,
        dealer_seat=dealer_seat,
        prevailing_wind=round_state.prevailing_wind,
        wall_remaining=round_state.wall.live_count,
    )
    return game_state.model_copy(update={"round_state": round_state, "round_result": None})


def init_game(
    game_id: str,
    seed: str,
    *,
    player_names: Sequence[str | None] = (),
    settings: GameSettings | None = None,
    shuffler: Shuffler = shuffle_tiles,
    wall_tiles: Sequence[int] | None = None,
    dealer_seat: int = 0,
) -> MahjongGameState:
    """
    Create a game and deal its first round.

    Unnamed seats get a wind-based automated player name. All scores start
    at zero.
    """
    names = list(player_names) + [None] * (NUM_PLAYERS - len(player_names))
    if len(names) != NUM_PLAYERS:
        raise ValueError(f"Expected at most {NUM_PLAYERS} player names, got {len(player_names)}")
    game_settings = settings or GameSettings()
    players = tuple(
        MahjongPlayer(seat=seat, name=name or default_player_name(seat, dealer_seat)) for seat, name in enumerate(names)
    )
    game_state = MahjongGameState(
        game_id=game_id,
        round_state=MahjongRoundState(
            players=players,
            dealer_seat=dealer_seat,
            current_player_seat=dealer_seat,
            prevailing_wind=prevailing_wind_for_round(0, game_settings),
        ),
        round_number=0,
        seed=seed,
        settings=game_settings,
    )
    return deal_round(game_state, shuffler=shuffler, wall_tiles=wall_tiles)


def advance_round(
    game_state: MahjongGameState,
    *,
    shuffler: Shuffler = shuffle_tiles,
    wall_tiles: Sequence[int] | None = None,
) -> MahjongGameState:
    """
    Start the next round after a finished one.

    The dealer moves one seat on, the round number increases and the
    prevailing wind rotates every `rounds_per_wind` rounds. Scores carry over.
    Seats still carrying their wind-based default name are renamed for the
    wind they sit in this round.
    """
    round_state = game_state.round_state
    if round_state.phase != RoundPhase.FINISHED:
        raise InvalidActionError(f"cannot start next round in phase {round_state.phase.value}")

    round_number = game_state.round_number + 1
    dealer_seat = (round_state.dealer_seat + 1) % NUM_PLAYERS
    players = tuple(
        p.model_copy(update={"name": default_player_name(p.seat, dealer_seat)})
        if p.name == default_player_name(p.seat, round_state.dealer_seat)
        else p
        for p in round_state.players
    )
    round_state = round_state.model_copy(
        update={
            "players": players,
            "dealer_seat": dealer_seat,
            "prevailing_wind": prevailing_wind_for_round(round_number, game_state.settings),
        },
    )
    game_state = game_state.model_copy(update={"round_state": round_state, "round_number": round_number})
    return deal_round(game_state, shuffler=shuffler, wall_tiles=wall_tiles)
