"""
Turn transitions for Hong Kong mahjong: draws, discards, kongs, and wins.

Every function takes the current game state and returns the new game state
with a result object. Inputs are never mutated; rule violations raise a
GameRuleError before any new state is built.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from hkmahjong.logic.claims import check_claims, find_robbing_claims, open_claim_episode
from hkmahjong.logic.enums import ClaimEpisodeType, RoundPhase, RoundResultType
from hkmahjong.logic.exceptions import InvalidActionError, InvalidMeldError, InvalidTileError, NotYourTurnError
from hkmahjong.logic.hand import analyze_winning_hand, can_form_winning_hand
from hkmahjong.logic.melds import (
    find_kong_options,
    form_concealed_kong,
    upgrade_pong_to_kong,
    validate_add_kong,
)
from hkmahjong.logic.scoring import base_points, compute_score_changes, score_winning_hand
from hkmahjong.logic.state import MahjongGameState, MahjongRoundState, seat_to_wind
from hkmahjong.logic.state_utils import (
    add_flower,
    add_tile_to_player,
    append_log,
    apply_score_changes,
    current_scores,
    next_seat,
    update_game_with_round,
    update_player,
)
from hkmahjong.logic.tiles import is_bonus_id, tile_display_name
from hkmahjong.logic.types import (
    DiscardResult,
    DrawGameResult,
    DrawResult,
    KongRobberyResult,
    ScoringContext,
    WinResult,
)
from hkmahjong.logic.wall import draw_from_live_wall, draw_replacement

if TYPE_CHECKING:
    from hkmahjong.logic.meld_model import Meld

logger = structlog.get_logger()

HAND_SIZE_BETWEEN_TURNS = 13
HAND_SIZE_TO_ACT = 14


def _log(game_state: MahjongGameState, round_state: MahjongRoundState, message: str) -> MahjongRoundState:
    return append_log(round_state, message, game_state.settings.action_log_size)


def require_turn(round_state: MahjongRoundState, seat: int, *, hand_size: int) -> None:
    """
    Check that `seat` may act on its own turn.

    Raises NotYourTurnError outside PLAYING, for any other seat, or when the
    seat's hand is not at the expected size (drawing twice, discarding
    before drawing).
    """
    if round_state.phase != RoundPhase.PLAYING:
        raise NotYourTurnError(f"cannot act in phase {round_state.phase.value}")
    if seat != round_state.current_player_seat:
        raise NotYourTurnError(f"seat {seat} is not the current player (seat {round_state.current_player_seat})")
    tile_count = round_state.players[seat].effective_tile_count
    if tile_count != hand_size:
        raise NotYourTurnError(f"seat {seat} holds {tile_count} tiles, expected {hand_size} for this action")


def finish_draw_game(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
) -> tuple[MahjongGameState, DrawGameResult]:
    """End the round with no winner and no payments."""
    round_state = _log(game_state, round_state, "Wall exhausted. Game is a draw.")
    round_state = round_state.model_copy(update={"phase": RoundPhase.FINISHED, "claim_episode": None})
    scores = current_scores(round_state)
    result = DrawGameResult(scores=scores, score_changes=dict.fromkeys(scores, 0))
    logger.info("draw game", game_id=game_state.game_id, round_number=game_state.round_number)
    game_state = update_game_with_round(game_state, round_state)
    return game_state.model_copy(update={"round_result": result}), result


def draw_for_seat(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
    seat: int,
    *,
    replacement: bool,
    from_kong: bool = False,
) -> tuple[MahjongGameState, DrawResult | DrawGameResult]:
    """
    Draw a tile into a seat's hand.

    A normal draw takes the live wall front; a replacement draw takes the
    dead wall front, falling back to the live wall. Bonus tiles go straight
    to the seat's flowers and trigger another replacement draw. Running out
    of tiles ends the round as a draw game.
    """
    bonus_tiles: list[int] = []
    name = round_state.players[seat].name
    while True:
        wall = round_state.wall
        tile_id, wall = draw_replacement(wall) if replacement else draw_from_live_wall(wall)
        if tile_id is None:
            return finish_draw_game(game_state, round_state)
        round_state = round_state.model_copy(update={"wall": wall})
        if not is_bonus_id(tile_id):
            break
        round_state = add_flower(round_state, seat, tile_id)
        round_state = _log(game_state, round_state, f"{name} drew bonus tile {tile_display_name(tile_id)}.")
        bonus_tiles.append(tile_id)
        replacement = True

    round_state = add_tile_to_player(round_state, seat, tile_id)
    round_state = round_state.model_copy(
        update={
            "last_drawn_tile": tile_id,
            "is_kong_replacement": from_kong,
            "turn_count": round_state.turn_count + 1,
            "current_player_seat": seat,
            "phase": RoundPhase.PLAYING,
        },
    )
    round_state = _log(game_state, round_state, f"{name} drew a tile.")
    player = round_state.players[seat]
    result = DrawResult(
        seat=seat,
        tile_id=tile_id,
        can_win=can_form_winning_hand(player.hand, player.melds, player.concealed_kongs),
        kong_options=find_kong_options(player),
        is_replacement=replacement,
        bonus_tiles=bonus_tiles,
        wall_remaining=round_state.wall.live_count,
    )
    logger.debug("tile drawn", seat=seat, tile_id=tile_id, is_replacement=replacement, bonus_tiles=bonus_tiles)
    return update_game_with_round(game_state, round_state), result


def process_draw(game_state: MahjongGameState, seat: int) -> tuple[MahjongGameState, DrawResult | DrawGameResult]:
    """Normal turn draw for the current player."""
    round_state = game_state.round_state
    require_turn(round_state, seat, hand_size=HAND_SIZE_BETWEEN_TURNS)
    return draw_for_seat(game_state, round_state, seat, replacement=False)


def process_discard(game_state: MahjongGameState, seat: int, tile_id: int) -> tuple[MahjongGameState, DiscardResult]:
    """
    Discard a tile from the current player's hand.

    Opens a claim episode when any other seat has a legal claim; otherwise
    the turn passes to the next seat.
    """
    round_state = game_state.round_state
    require_turn(round_state, seat, hand_size=HAND_SIZE_TO_ACT)
    player = round_state.players[seat]
    if tile_id not in player.hand:
        raise InvalidTileError(f"tile {tile_id} is not in seat {seat}'s hand")

    round_state = update_player(
        round_state,
        seat,
        hand=tuple(t for t in player.hand if t != tile_id),
        discards=(*player.discards, tile_id),
    )
    round_state = round_state.model_copy(
        update={
            "last_discard": tile_id,
            "last_discard_seat": seat,
            "last_drawn_tile": None,
            "is_kong_replacement": False,
        },
    )
    round_state = _log(game_state, round_state, f"{player.name} discarded {tile_display_name(tile_id)}.")

    claims = check_claims(round_state, seat, tile_id)
    if claims:
        round_state = open_claim_episode(
            round_state,
            episode_type=ClaimEpisodeType.DISCARD,
            tile_id=tile_id,
            from_seat=seat,
            options=claims,
        )
        result = DiscardResult(seat=seat, tile_id=tile_id, claims=claims, wall_remaining=round_state.wall.live_count)
    else:
        following = next_seat(seat)
        round_state = round_state.model_copy(update={"current_player_seat": following})
        result = DiscardResult(
            seat=seat,
            tile_id=tile_id,
            next_seat=following,
            wall_remaining=round_state.wall.live_count,
        )
    logger.debug("tile discarded", seat=seat, tile_id=tile_id, claims=len(claims))
    return update_game_with_round(game_state, round_state), result


def process_win(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
    seat: int,
    *,
    result_type: RoundResultType,
    winning_tile: int | None,
    payer_seat: int | None = None,
) -> tuple[MahjongGameState, WinResult]:
    """
    Score a win and apply payment.

    The winning tile must already be in the winner's hand. Raises
    InvalidMeldError when the hand does not form a winning hand.
    """
    player = round_state.players[seat]
    winning_hand = analyze_winning_hand(player.hand, player.melds, player.concealed_kongs)
    if winning_hand is None:
        raise InvalidMeldError(f"seat {seat}'s hand does not form a winning hand")

    self_drawn = result_type == RoundResultType.SELF_DRAWN
    context = ScoringContext(
        self_drawn=self_drawn,
        is_last_wall_tile=round_state.wall.live_count == 0,
        is_kong_replacement=self_drawn and round_state.is_kong_replacement,
        is_robbing_kong=result_type == RoundResultType.ROBBING_KONG,
    )
    seat_wind = seat_to_wind(seat, round_state.dealer_seat)
    faan = score_winning_hand(
        winning_hand,
        seat_wind=seat_wind,
        prevailing_wind=round_state.prevailing_wind,
        context=context,
        flowers=player.flowers,
        settings=game_state.settings,
    )
    points = base_points(faan.faan, game_state.settings.faan_cap)
    changes = compute_score_changes(seat, points, self_drawn=self_drawn, payer_seat=payer_seat)

    round_state = apply_score_changes(round_state, changes)
    win_label = "Self-Drawn" if self_drawn else "Discard"
    round_state = _log(game_state, round_state, f"{player.name} wins! ({win_label}) - {faan.faan} faan")
    round_state = round_state.model_copy(update={"phase": RoundPhase.FINISHED, "claim_episode": None})

    result = WinResult(
        type=result_type,
        winner_seat=seat,
        payer_seat=payer_seat,
        winning_tile=winning_tile,
        special_hand=winning_hand.special_hand,
        melds=list(winning_hand.melds),
        concealed_tiles=list(winning_hand.concealed_tiles),
        flowers=list(player.flowers),
        faan=faan,
        base_points=points,
        score_changes=changes,
        scores=current_scores(round_state),
    )
    logger.info(
        "round won",
        game_id=game_state.game_id,
        winner_seat=seat,
        result_type=result_type,
        faan=faan.faan,
        base_points=points,
        payer_seat=payer_seat,
    )
    game_state = update_game_with_round(game_state, round_state)
    return game_state.model_copy(update={"round_result": result}), result


def holds_claimed_tile(round_state: MahjongRoundState, seat: int) -> bool:
    """
    Whether the seat's 14-tile hand was completed by claiming a discard.

    The dealer's untouched opening hand is the only 14-tile hand with
    neither a drawn tile nor a claim behind it.
    """
    if round_state.last_drawn_tile is not None:
        return False
    player = round_state.players[seat]
    opening_hand = round_state.turn_count == 0 and seat == round_state.dealer_seat and not player.melds
    return not opening_hand


def declare_win(game_state: MahjongGameState, seat: int) -> tuple[MahjongGameState, WinResult]:
    """
    Self-drawn win by the current player.

    A hand completed by a pong or chow cannot be declared; a discard win is
    claimed while the discard is on offer.
    """
    round_state = game_state.round_state
    require_turn(round_state, seat, hand_size=HAND_SIZE_TO_ACT)
    if holds_claimed_tile(round_state, seat):
        raise InvalidActionError(f"seat {seat} completed its hand with a claimed tile and must discard")
    return process_win(
        game_state,
        round_state,
        seat,
        result_type=RoundResultType.SELF_DRAWN,
        winning_tile=round_state.last_drawn_tile,
    )


def process_concealed_kong(
    game_state: MahjongGameState,
    seat: int,
    tile_ids: list[int] | tuple[int, ...],
) -> tuple[MahjongGameState, DrawResult | DrawGameResult]:
    """Declare four concealed identical tiles, then draw a replacement."""
    round_state = game_state.round_state
    require_turn(round_state, seat, hand_size=HAND_SIZE_TO_ACT)
    round_state, _meld = form_concealed_kong(round_state, seat, tile_ids)
    round_state = _log(game_state, round_state, f"{round_state.players[seat].name} declared a concealed Kong!")
    logger.debug("concealed kong declared", seat=seat, tile_ids=list(tile_ids))
    return draw_for_seat(game_state, round_state, seat, replacement=True, from_kong=True)


def complete_add_kong(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
    seat: int,
    tile_id: int,
    meld_index: int,
) -> tuple[MahjongGameState, DrawResult | DrawGameResult, Meld]:
    """Upgrade the pong and draw the replacement tile."""
    round_state, kong = upgrade_pong_to_kong(round_state, seat, tile_id, meld_index)
    round_state = _log(game_state, round_state, f"{round_state.players[seat].name} added to Kong!")
    logger.debug("added kong completed", seat=seat, tile_id=tile_id, meld_index=meld_index)
    game_state, result = draw_for_seat(game_state, round_state, seat, replacement=True, from_kong=True)
    return game_state, result, kong


def process_add_kong(
    game_state: MahjongGameState,
    seat: int,
    tile_id: int,
    meld_index: int,
) -> tuple[MahjongGameState, DrawResult | DrawGameResult | KongRobberyResult]:
    """
    Add a concealed tile to an exposed pong.

    When another seat could win on the added tile, a robbing-the-kong claim
    episode opens instead and the tile stays in the declarer's hand until
    it resolves.
    """
    round_state = game_state.round_state
    require_turn(round_state, seat, hand_size=HAND_SIZE_TO_ACT)
    validate_add_kong(round_state.players[seat], tile_id, meld_index)

    robbers = find_robbing_claims(round_state, seat, tile_id)
    if robbers:
        round_state = open_claim_episode(
            round_state,
            episode_type=ClaimEpisodeType.ROBBING_KONG,
            tile_id=tile_id,
            from_seat=seat,
            options=robbers,
            meld_index=meld_index,
        )
        round_state = _log(
            game_state,
            round_state,
            f"{round_state.players[seat].name} tries to add {tile_display_name(tile_id)} to a Kong.",
        )
        logger.debug("kong robbery possible", seat=seat, tile_id=tile_id, robbers=[c.seat for c in robbers])
        result = KongRobberyResult(seat=seat, tile_id=tile_id, meld_index=meld_index, claims=robbers)
        return update_game_with_round(game_state, round_state), result

    game_state, result, _kong = complete_add_kong(game_state, round_state, seat, tile_id, meld_index)
    return game_state, result
