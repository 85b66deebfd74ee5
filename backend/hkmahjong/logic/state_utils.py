"""
Immutable state update utilities using Pydantic model_copy.

Helpers for the common updates on frozen state models. None of them mutate
their input; they always return new state objects.
"""

from collections.abc import Iterable

from hkmahjong.logic.enums import ClaimType
from hkmahjong.logic.exceptions import InvalidTileError
from hkmahjong.logic.state import (
    ClaimEpisode,
    ClaimResponse,
    MahjongGameState,
    MahjongPlayer,
    MahjongRoundState,
)
from hkmahjong.logic.tiles import sort_tiles

_PLAYER_FIELDS = set(MahjongPlayer.model_fields)


def update_player(
    round_state: MahjongRoundState,
    seat: int,
    **updates: object,
) -> MahjongRoundState:
    """
    Return new round state with updated player at seat.

    Raises ValueError if seat is out of bounds or an update field is unknown.
    """
    if not (0 <= seat < len(round_state.players)):
        raise ValueError(f"Invalid seat {seat}, expected 0-{len(round_state.players) - 1}")
    invalid_fields = set(updates) - _PLAYER_FIELDS
    if invalid_fields:
        raise ValueError(f"Invalid player fields: {invalid_fields}")
    players = list(round_state.players)
    players[seat] = round_state.players[seat].model_copy(update=updates)
    return round_state.model_copy(update={"players": tuple(players)})


def add_tile_to_player(
    round_state: MahjongRoundState,
    seat: int,
    tile_id: int,
) -> MahjongRoundState:
    """Return new state with tile added to the player's hand (kept in display order)."""
    player = round_state.players[seat]
    return update_player(round_state, seat, hand=tuple(sort_tiles((*player.hand, tile_id))))


def remove_tiles_from_hand(
    round_state: MahjongRoundState,
    seat: int,
    tile_ids: Iterable[int],
) -> MahjongRoundState:
    """
    Return new state with the given tiles removed from the player's hand.

    Raises InvalidTileError if any tile is not in the hand.
    """
    hand = list(round_state.players[seat].hand)
    for tile_id in tile_ids:
        if tile_id not in hand:
            raise InvalidTileError(f"tile {tile_id} is not in seat {seat}'s hand")
        hand.remove(tile_id)
    return update_player(round_state, seat, hand=tuple(hand))


def add_flower(round_state: MahjongRoundState, seat: int, tile_id: int) -> MahjongRoundState:
    player = round_state.players[seat]
    return update_player(round_state, seat, flowers=(*player.flowers, tile_id))


def next_seat(seat: int, num_players: int = 4) -> int:
    return (seat + 1) % num_players


def append_log(round_state: MahjongRoundState, message: str, max_entries: int) -> MahjongRoundState:
    """Return new state with a message appended to the bounded action log."""
    log = (*round_state.action_log, message)
    if max_entries <= 0:
        log = ()
    elif len(log) > max_entries:
        log = log[-max_entries:]
    return round_state.model_copy(update={"action_log": log})


def clear_claim_episode(round_state: MahjongRoundState) -> MahjongRoundState:
    return round_state.model_copy(update={"claim_episode": None})


def record_claim_response(
    episode: ClaimEpisode,
    seat: int,
    claim_type: ClaimType,
    tile_ids: tuple[int, ...] = (),
) -> ClaimEpisode:
    """Return new episode with the seat's response stored in its slot."""
    responses = list(episode.responses)
    responses[seat] = ClaimResponse(
        seat=seat,
        claim_type=claim_type,
        tile_ids=tile_ids,
        order=episode.next_order,
    )
    return episode.model_copy(update={"responses": tuple(responses), "next_order": episode.next_order + 1})


def update_game_with_round(
    game_state: MahjongGameState,
    round_state: MahjongRoundState,
) -> MahjongGameState:
    """Return new game state with updated round state."""
    return game_state.model_copy(update={"round_state": round_state})


def current_scores(round_state: MahjongRoundState) -> dict[int, int]:
    return {player.seat: player.score for player in round_state.players}


def apply_score_changes(round_state: MahjongRoundState, changes: dict[int, int]) -> MahjongRoundState:
    """Return new state with per-seat score deltas applied."""
    players = tuple(
        player.model_copy(update={"score": player.score + changes.get(player.seat, 0)})
        for player in round_state.players
    )
    return round_state.model_copy(update={"players": players})
