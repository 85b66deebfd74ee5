"""
Claim detection and the pending-claims ledger.

After a discard (or an added kong that another seat could rob), every other
seat is checked for legal claims. Seats with at least one option are
obligated to answer; the rest are recorded as passes when the episode
opens. Once every seat has answered, the highest-priority response wins
(win > kong = pong > chow > pass), ties going to the response registered
first.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from hkmahjong.logic.enums import CLAIM_PRIORITY, ClaimEpisodeType, ClaimType, RoundPhase
from hkmahjong.logic.exceptions import InvalidMeldError, NotYourTurnError
from hkmahjong.logic.hand import can_form_winning_hand
from hkmahjong.logic.melds import (
    TILES_FOR_EXPOSED_KONG,
    TILES_FOR_PONG,
    find_chow_options,
    find_matching_tiles,
)
from hkmahjong.logic.settings import NUM_PLAYERS
from hkmahjong.logic.state import ClaimEpisode, ClaimResponse, MahjongPlayer, MahjongRoundState
from hkmahjong.logic.state_utils import next_seat, record_claim_response
from hkmahjong.logic.types import ClaimOption

logger = structlog.get_logger()

CHOW_TILES_WITH_DISCARD = 3


def can_win_with(player: MahjongPlayer, tile_id: int) -> bool:
    """Whether adding `tile_id` to the player's concealed tiles makes a winning hand."""
    return can_form_winning_hand((*player.hand, tile_id), player.melds, player.concealed_kongs)


def check_claims(round_state: MahjongRoundState, discarder_seat: int, tile_id: int) -> list[ClaimOption]:
    """
    Every legal claim other seats could make on a discarded tile.

    Per seat: win, kong (exactly three matching concealed tiles), pong (at
    least two), and chow (next seat only, suited only, one option per
    low/middle/high position that the hand can fill).
    """
    claims: list[ClaimOption] = []
    chow_seat = next_seat(discarder_seat)
    for player in round_state.players:
        if player.seat == discarder_seat:
            continue

        if can_win_with(player, tile_id):
            claims.append(ClaimOption(seat=player.seat, claim_type=ClaimType.WIN))

        matching = find_matching_tiles(player.hand, tile_id)
        if len(matching) == TILES_FOR_EXPOSED_KONG:
            claims.append(ClaimOption(seat=player.seat, claim_type=ClaimType.KONG, tile_ids=tuple(matching)))
        if len(matching) >= TILES_FOR_PONG:
            claims.append(
                ClaimOption(seat=player.seat, claim_type=ClaimType.PONG, tile_ids=tuple(matching[:TILES_FOR_PONG])),
            )

        if player.seat == chow_seat:
            claims.extend(
                ClaimOption(seat=player.seat, claim_type=ClaimType.CHOW, tile_ids=option)
                for option in find_chow_options(player.hand, tile_id)
            )
    return claims


def find_robbing_claims(round_state: MahjongRoundState, kong_seat: int, tile_id: int) -> list[ClaimOption]:
    """Seats that could win on the tile being added to a pong."""
    return [
        ClaimOption(seat=player.seat, claim_type=ClaimType.WIN)
        for player in round_state.players
        if player.seat != kong_seat and can_win_with(player, tile_id)
    ]


def open_claim_episode(
    round_state: MahjongRoundState,
    *,
    episode_type: ClaimEpisodeType,
    tile_id: int,
    from_seat: int,
    options: Sequence[ClaimOption],
    meld_index: int | None = None,
) -> MahjongRoundState:
    """Enter the CLAIM phase, auto-passing seats with no option."""
    episode = ClaimEpisode(
        episode_type=episode_type,
        tile_id=tile_id,
        from_seat=from_seat,
        options=tuple(options),
        meld_index=meld_index,
    )
    obligated = set(episode.obligated_seats)
    for seat in range(NUM_PLAYERS):
        if seat != from_seat and seat not in obligated:
            episode = record_claim_response(episode, seat, ClaimType.PASS)

    logger.debug(
        "claim episode opened",
        episode_type=episode_type,
        tile_id=tile_id,
        from_seat=from_seat,
        obligated_seats=sorted(obligated),
    )
    return round_state.model_copy(update={"claim_episode": episode, "phase": RoundPhase.CLAIM})


def _match_chow_tiles(
    options: list[ClaimOption],
    tile_ids: Sequence[int],
    claimed_tile: int,
) -> tuple[int, ...]:
    if not tile_ids:
        return options[0].tile_ids
    if len(tile_ids) == CHOW_TILES_WITH_DISCARD and claimed_tile not in tile_ids:
        raise InvalidMeldError(f"chow tiles {list(tile_ids)} do not include the claimed tile {claimed_tile}")
    hand_tiles = sorted(t for t in tile_ids if t != claimed_tile)
    for option in options:
        if sorted(option.tile_ids) == hand_tiles:
            return option.tile_ids
    raise InvalidMeldError(f"chow tiles {list(tile_ids)} do not match any legal chow on tile {claimed_tile}")


def validate_claim(
    episode: ClaimEpisode,
    seat: int,
    claim_type: ClaimType,
    tile_ids: Sequence[int] = (),
) -> tuple[int, ...]:
    """
    Check a claim response and return the hand tiles it will use.

    Raises NotYourTurnError for the discarder or a seat that has already
    answered, and InvalidMeldError for a claim the seat is not entitled to
    (or chow tiles that match none of its options).
    """
    if seat == episode.from_seat:
        raise NotYourTurnError(f"seat {seat} cannot claim its own tile")
    if not (0 <= seat < NUM_PLAYERS):
        raise NotYourTurnError(f"invalid seat {seat}")
    if episode.responses[seat] is not None:
        raise NotYourTurnError(f"seat {seat} has already responded to this claim")
    if claim_type == ClaimType.PASS:
        return ()

    options = [option for option in episode.options_for(seat) if option.claim_type == claim_type]
    if not options:
        raise InvalidMeldError(f"seat {seat} cannot claim {claim_type.value} on tile {episode.tile_id}")
    if claim_type == ClaimType.CHOW:
        return _match_chow_tiles(options, tile_ids, episode.tile_id)
    return options[0].tile_ids


def pick_winning_response(episode: ClaimEpisode) -> ClaimResponse | None:
    """
    The response that takes the tile, or None when everyone passed.

    Highest priority wins; among equal priority the earliest registered
    response wins.
    """
    best: ClaimResponse | None = None
    for response in episode.responses:
        if response is None or response.claim_type == ClaimType.PASS:
            continue
        if best is None:
            best = response
            continue
        key = (CLAIM_PRIORITY[response.claim_type], -response.order)
        if key > (CLAIM_PRIORITY[best.claim_type], -best.order):
            best = response
    return best
