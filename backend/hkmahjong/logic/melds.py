"""
Meld operations: claim option queries and meld formation (pong, chow, kong).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from hkmahjong.logic.enums import KongType, MeldType
from hkmahjong.logic.exceptions import InvalidMeldError, InvalidTileError
from hkmahjong.logic.meld_model import Meld, make_meld
from hkmahjong.logic.state_utils import remove_tiles_from_hand, update_player
from hkmahjong.logic.tiles import hand_to_kind_counts, is_suited_kind, sort_tiles, tile_kind
from hkmahjong.logic.types import KongOption

if TYPE_CHECKING:
    from hkmahjong.logic.state import MahjongPlayer, MahjongRoundState

TILES_FOR_PONG = 2
TILES_FOR_EXPOSED_KONG = 3
TILES_FOR_CONCEALED_KONG = 4

# chow positions by 0-based value within a suit
CHOW_LOWEST_MAX_VALUE = 6
CHOW_MIDDLE_MIN_VALUE = 1
CHOW_MIDDLE_MAX_VALUE = 7
CHOW_HIGHEST_MIN_VALUE = 2


def find_matching_tiles(hand: Sequence[int], tile_id: int) -> list[int]:
    """Hand tiles with the same face as `tile_id`, in display order."""
    kind = tile_kind(tile_id)
    return [t for t in sort_tiles(hand) if tile_kind(t) == kind]


def _first_of_kind(hand: list[int], kind: int) -> int | None:
    return next((t for t in hand if tile_kind(t) == kind), None)


def find_chow_options(hand: Sequence[int], tile_id: int) -> list[tuple[int, int]]:
    """
    Hand tile pairs that complete a chow with `tile_id`.

    Options come in low, middle, high order (the claimed tile as the lowest,
    middle, or highest value of the run). Only suited tiles can form chows.
    """
    kind = tile_kind(tile_id)
    if not is_suited_kind(kind):
        return []
    value = kind % 9
    ordered = sort_tiles(hand)
    candidates: list[tuple[int, int]] = []
    if value <= CHOW_LOWEST_MAX_VALUE:
        candidates.append((kind + 1, kind + 2))
    if CHOW_MIDDLE_MIN_VALUE <= value <= CHOW_MIDDLE_MAX_VALUE:
        candidates.append((kind - 1, kind + 1))
    if value >= CHOW_HIGHEST_MIN_VALUE:
        candidates.append((kind - 2, kind - 1))

    options: list[tuple[int, int]] = []
    for first_kind, second_kind in candidates:
        first = _first_of_kind(ordered, first_kind)
        second = _first_of_kind(ordered, second_kind)
        if first is not None and second is not None:
            options.append((first, second))
    return options


def find_kong_options(player: MahjongPlayer) -> list[KongOption]:
    """
    Kongs the player could declare from hand.

    Concealed: four identical concealed tiles. Added: one concealed tile
    matching an exposed pong.
    """
    options: list[KongOption] = []
    counts = hand_to_kind_counts(player.hand)
    for kind, count in enumerate(counts):
        if count == TILES_FOR_CONCEALED_KONG:
            tiles = tuple(t for t in sort_tiles(player.hand) if tile_kind(t) == kind)
            options.append(KongOption(kong_type=KongType.CONCEALED, tile_ids=tiles))

    for index, meld in enumerate(player.melds):
        if meld.meld_type != MeldType.PONG:
            continue
        match = _first_of_kind(sort_tiles(player.hand), meld.kind)
        if match is not None:
            options.append(KongOption(kong_type=KongType.ADDED, tile_ids=(match,), meld_index=index))
    return options


def form_exposed_meld(
    round_state: MahjongRoundState,
    seat: int,
    meld_type: MeldType,
    hand_tile_ids: Sequence[int],
    claimed_tile: int,
    source_seat: int,
) -> tuple[MahjongRoundState, Meld]:
    """Move hand tiles plus the claimed tile into a new exposed meld."""
    meld = make_meld(
        meld_type,
        (*hand_tile_ids, claimed_tile),
        exposed=True,
        source_seat=source_seat,
        kong_type=KongType.EXPOSED if meld_type == MeldType.KONG else None,
    )
    round_state = remove_tiles_from_hand(round_state, seat, hand_tile_ids)
    player = round_state.players[seat]
    return update_player(round_state, seat, melds=(*player.melds, meld)), meld


def form_concealed_kong(
    round_state: MahjongRoundState,
    seat: int,
    tile_ids: Sequence[int],
) -> tuple[MahjongRoundState, Meld]:
    """
    Declare four identical concealed tiles as a concealed kong.

    Raises InvalidTileError if a tile is not in hand, InvalidMeldError if the
    tiles are not four of a kind.
    """
    if len(tile_ids) != TILES_FOR_CONCEALED_KONG:
        raise InvalidMeldError(f"concealed kong needs {TILES_FOR_CONCEALED_KONG} tiles, got {len(tile_ids)}")
    hand = round_state.players[seat].hand
    missing = [t for t in tile_ids if t not in hand]
    if missing:
        raise InvalidTileError(f"tiles {missing} are not in seat {seat}'s hand")
    meld = make_meld(MeldType.KONG, tuple(tile_ids), exposed=False, kong_type=KongType.CONCEALED)
    round_state = remove_tiles_from_hand(round_state, seat, tile_ids)
    player = round_state.players[seat]
    return update_player(round_state, seat, concealed_kongs=(*player.concealed_kongs, meld)), meld


def validate_add_kong(player: MahjongPlayer, tile_id: int, meld_index: int) -> Meld:
    """
    Check an added kong request and return the pong being upgraded.

    Raises InvalidTileError if the tile is not in hand, InvalidMeldError if
    the meld index does not name an exposed pong of the same face.
    """
    if tile_id not in player.hand:
        raise InvalidTileError(f"tile {tile_id} is not in seat {player.seat}'s hand")
    if not (0 <= meld_index < len(player.melds)):
        raise InvalidMeldError(f"seat {player.seat} has no meld at index {meld_index}")
    meld = player.melds[meld_index]
    if meld.meld_type != MeldType.PONG:
        raise InvalidMeldError(f"meld {meld_index} is a {meld.meld_type.value}, not a pong")
    if meld.kind != tile_kind(tile_id):
        raise InvalidMeldError(f"tile {tile_id} does not match the pong at index {meld_index}")
    return meld


def upgrade_pong_to_kong(
    round_state: MahjongRoundState,
    seat: int,
    tile_id: int,
    meld_index: int,
) -> tuple[MahjongRoundState, Meld]:
    """Move a hand tile onto an exposed pong, turning it into an added kong."""
    pong = validate_add_kong(round_state.players[seat], tile_id, meld_index)
    kong = make_meld(
        MeldType.KONG,
        (*pong.tile_ids, tile_id),
        exposed=True,
        source_seat=pong.source_seat,
        kong_type=KongType.ADDED,
    )
    round_state = remove_tiles_from_hand(round_state, seat, [tile_id])
    melds = list(round_state.players[seat].melds)
    melds[meld_index] = kong
    return update_player(round_state, seat, melds=tuple(melds)), kong
