"""
Claim responses and resolution.

Responses are registered one per seat. When the last obligated seat has
answered, the episode resolves: the winning response takes the tile, or,
if everyone passed, play continues past the discarder (or the interrupted
added kong completes).
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from hkmahjong.logic.claims import pick_winning_response, validate_claim
from hkmahjong.logic.enums import ClaimEpisodeType, ClaimType, MeldType, RoundPhase, RoundResultType
from hkmahjong.logic.exceptions import NotYourTurnError
from hkmahjong.logic.melds import form_exposed_meld
from hkmahjong.logic.state import ClaimEpisode, ClaimResponse, MahjongGameState, MahjongRoundState
from hkmahjong.logic.state_utils import (
    add_tile_to_player,
    append_log,
    clear_claim_episode,
    next_seat,
    record_claim_response,
    remove_tiles_from_hand,
    update_game_with_round,
    update_player,
)
from hkmahjong.logic.tiles import tile_display_name
from hkmahjong.logic.turn import complete_add_kong, draw_for_seat, process_win
from hkmahjong.logic.types import ClaimRegisteredResult, ClaimResolution

logger = structlog.get_logger()

_CLAIM_MELD_TYPES = {
    ClaimType.KONG: MeldType.KONG,
    ClaimType.PONG: MeldType.PONG,
    ClaimType.CHOW: MeldType.CHOW,
}


def process_claim(
    game_state: MahjongGameState,
    seat: int,
    claim_type: ClaimType,
    tile_ids: Sequence[int] = (),
) -> tuple[MahjongGameState, ClaimRegisteredResult | ClaimResolution]:
    """
    Register one seat's response to the open claim episode.

    Resolves the episode once no seat is left to answer.
    """
    round_state = game_state.round_state
    episode = round_state.claim_episode
    if round_state.phase != RoundPhase.CLAIM or episode is None:
        raise NotYourTurnError(f"no claim is open in phase {round_state.phase.value}")

    hand_tiles = validate_claim(episode, seat, claim_type, tile_ids)
    episode = record_claim_response(episode, seat, claim_type, hand_tiles)
    round_state = round_state.model_copy(update={"claim_episode": episode})
    logger.debug("claim registered", seat=seat, claim_type=claim_type, pending_seats=episode.pending_seats)

    if not episode.is_complete:
        result = ClaimRegisteredResult(seat=seat, claim_type=claim_type, pending_seats=episode.pending_seats)
        return update_game_with_round(game_state, round_state), result
    return resolve_claim_episode(update_game_with_round(game_state, round_state))


def pass_claim(
    game_state: MahjongGameState,
    seat: int,
) -> tuple[MahjongGameState, ClaimRegisteredResult | ClaimResolution]:
    return process_claim(game_state, seat, ClaimType.PASS)


def _take_claimed_tile(round_state: MahjongRoundState, episode: ClaimEpisode) -> MahjongRoundState:
    """Remove the claimed tile from where it sits: the discard pile, or the kong declarer's hand."""
    if episode.episode_type == ClaimEpisodeType.ROBBING_KONG:
        return remove_tiles_from_hand(round_state, episode.from_seat, [episode.tile_id])
    discarder = round_state.players[episode.from_seat]
    discards = list(discarder.discards)
    discards.remove(episode.tile_id)
    round_state = update_player(round_state, episode.from_seat, discards=tuple(discards))
    return round_state.model_copy(update={"last_discard": None})


def _resolve_all_passed(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
    episode: ClaimEpisode,
) -> tuple[MahjongGameState, ClaimResolution]:
    if episode.episode_type == ClaimEpisodeType.ROBBING_KONG:
        if episode.meld_index is None:  # pragma: no cover
            raise AssertionError("robbing-the-kong episode without a meld index")
        game_state, followup, _kong = complete_add_kong(
            game_state,
            round_state,
            episode.from_seat,
            episode.tile_id,
            episode.meld_index,
        )
        resolution = ClaimResolution(
            episode_type=episode.episode_type,
            claim_type=ClaimType.PASS,
            next_seat=episode.from_seat,
            followup=followup,
        )
        return game_state, resolution

    following = next_seat(episode.from_seat)
    round_state = round_state.model_copy(update={"current_player_seat": following})
    resolution = ClaimResolution(episode_type=episode.episode_type, claim_type=ClaimType.PASS, next_seat=following)
    return update_game_with_round(game_state, round_state), resolution


def _resolve_win(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
    episode: ClaimEpisode,
    response: ClaimResponse,
) -> tuple[MahjongGameState, ClaimResolution]:
    round_state = _take_claimed_tile(round_state, episode)
    round_state = add_tile_to_player(round_state, response.seat, episode.tile_id)
    result_type = (
        RoundResultType.ROBBING_KONG
        if episode.episode_type == ClaimEpisodeType.ROBBING_KONG
        else RoundResultType.DISCARD_WIN
    )
    game_state, win = process_win(
        game_state,
        round_state,
        response.seat,
        result_type=result_type,
        winning_tile=episode.tile_id,
        payer_seat=episode.from_seat,
    )
    resolution = ClaimResolution(
        episode_type=episode.episode_type,
        claim_type=ClaimType.WIN,
        seat=response.seat,
        followup=win,
    )
    return game_state, resolution


def _resolve_meld(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
    episode: ClaimEpisode,
    response: ClaimResponse,
) -> tuple[MahjongGameState, ClaimResolution]:
    meld_type = _CLAIM_MELD_TYPES[response.claim_type]
    round_state = _take_claimed_tile(round_state, episode)
    round_state, meld = form_exposed_meld(
        round_state,
        response.seat,
        meld_type,
        response.tile_ids,
        episode.tile_id,
        episode.from_seat,
    )
    name = round_state.players[response.seat].name
    round_state = append_log(
        round_state,
        f"{name} declared {meld_type.value.capitalize()} on {tile_display_name(episode.tile_id)}!",
        game_state.settings.action_log_size,
    )
    round_state = round_state.model_copy(
        update={"current_player_seat": response.seat, "last_drawn_tile": None, "is_kong_replacement": False},
    )
    logger.debug("meld claimed", seat=response.seat, meld_type=meld_type, tile_id=episode.tile_id)

    followup = None
    if meld_type == MeldType.KONG:
        game_state, followup = draw_for_seat(game_state, round_state, response.seat, replacement=True, from_kong=True)
    else:
        game_state = update_game_with_round(game_state, round_state)

    resolution = ClaimResolution(
        episode_type=episode.episode_type,
        claim_type=response.claim_type,
        seat=response.seat,
        next_seat=response.seat,
        meld=meld,
        followup=followup,
    )
    return game_state, resolution


def resolve_claim_episode(game_state: MahjongGameState) -> tuple[MahjongGameState, ClaimResolution]:
    """Apply the winning response of a fully answered claim episode."""
    round_state = game_state.round_state
    episode = round_state.claim_episode
    if episode is None or not episode.is_complete:  # pragma: no cover
        raise AssertionError("resolve_claim_episode called without a complete claim episode")

    response = pick_winning_response(episode)
    round_state = clear_claim_episode(round_state).model_copy(update={"phase": RoundPhase.PLAYING})
    logger.debug(
        "claims resolved",
        episode_type=episode.episode_type,
        claim_type=response.claim_type if response else ClaimType.PASS,
        seat=response.seat if response else None,
    )

    if response is None:
        return _resolve_all_passed(game_state, round_state, episode)
    if response.claim_type == ClaimType.WIN:
        return _resolve_win(game_state, round_state, episode, response)
    if response.claim_type in _CLAIM_MELD_TYPES:
        return _resolve_meld(game_state, round_state, episode, response)
    raise ValueError(f"no resolution for claim type {response.claim_type}")
