"""
Hand analysis: winning-hand decomposition search and special-hand detection.

The decomposition search works over a fixed, sorted array of tile ids and a
"consumed" bitmask. Each recursive step takes the lowest unconsumed tile,
which every valid decomposition must place somewhere, and tries in order:

  (a) a pair with an identical tile, if no pair has been placed yet
  (b) a pong with two more identical tiles
  (c) a chow with the next two values of the same suit

A branch succeeds when every tile is consumed and a pair was placed. All
decompositions are enumerated in that branch order; the scorer uses the
first one.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from hkmahjong.logic.enums import MeldType, SpecialHand
from hkmahjong.logic.meld_model import Meld
from hkmahjong.logic.tiles import (
    ORPHAN_KINDS,
    is_bonus_id,
    is_suited_kind,
    sort_tiles,
    tile_kind,
)

MAX_SETS = 4
SPECIAL_HAND_SIZE = 14

# (meld_type, indices into the sorted tile array)
_Group = tuple[MeldType, tuple[int, ...]]


class WinningHand(BaseModel):
    """
    A finalized winning hand.

    `melds` holds the full decomposition: concealed groups found by the
    search followed by exposed melds and concealed kongs. For Seven Pairs it
    holds the seven pairs; for Thirteen Orphans it is empty.
    """

    model_config = ConfigDict(frozen=True)

    special_hand: SpecialHand | None = None
    melds: tuple[Meld, ...] = ()
    concealed_tiles: tuple[int, ...] = ()


def expected_concealed_count(total_melds: int) -> int:
    """Concealed tiles needed to win when holding `total_melds` declared sets."""
    return (MAX_SETS - total_melds) * 3 + 2


def find_winning_decompositions(tile_ids: Sequence[int]) -> list[tuple[Meld, ...]]:
    """
    Enumerate every way to split the tiles into sets plus exactly one pair.

    Returns an empty list when no decomposition exists (including when the
    tile count cannot hold one pair plus whole sets).
    """
    ordered = sort_tiles(tile_ids)
    n = len(ordered)
    if n % 3 != 2:
        return []

    kinds = [tile_kind(t) for t in ordered]
    full_mask = (1 << n) - 1
    found: list[list[_Group]] = []

    def next_unused(used: int, start: int, kind: int) -> int | None:
        for j in range(start, n):
            if not (used >> j) & 1 and kinds[j] == kind:
                return j
        return None

    def search(used: int, has_pair: bool, groups: list[_Group]) -> None:
        if used == full_mask:
            if has_pair:
                found.append(groups)
            return

        free = ~used & full_mask
        i = (free & -free).bit_length() - 1
        kind = kinds[i]
        used_i = used | (1 << i)

        second = next_unused(used_i, i + 1, kind)
        if second is not None:
            if not has_pair:
                search(used_i | (1 << second), True, [*groups, (MeldType.PAIR, (i, second))])
            used_ij = used_i | (1 << second)
            third = next_unused(used_ij, second + 1, kind)
            if third is not None:
                search(used_ij | (1 << third), has_pair, [*groups, (MeldType.PONG, (i, second, third))])

        # a run cannot wrap past 9 or cross suits
        if is_suited_kind(kind) and kind % 9 <= 6:
            middle = next_unused(used_i, i + 1, kind + 1)
            if middle is not None:
                high = next_unused(used_i | (1 << middle), middle + 1, kind + 2)
                if high is not None:
                    search(
                        used_i | (1 << middle) | (1 << high),
                        has_pair,
                        [*groups, (MeldType.CHOW, (i, middle, high))],
                    )

    search(0, False, [])

    return [
        tuple(
            Meld(meld_type=meld_type, tile_ids=tuple(ordered[index] for index in indices))
            for meld_type, indices in groups
        )
        for groups in found
    ]


def is_thirteen_orphans(tile_ids: Sequence[int]) -> bool:
    """All 13 terminal/honor faces present, plus one duplicate of any of them."""
    if len(tile_ids) != SPECIAL_HAND_SIZE:
        return False
    kinds = [tile_kind(t) for t in tile_ids]
    return set(kinds) == set(ORPHAN_KINDS)


def is_seven_pairs(tile_ids: Sequence[int]) -> bool:
    """Sorted 14 tiles form seven adjacent identical pairs (four of a kind counts as two)."""
    if len(tile_ids) != SPECIAL_HAND_SIZE or any(is_bonus_id(t) for t in tile_ids):
        return False
    kinds = [tile_kind(t) for t in sort_tiles(tile_ids)]
    return all(kinds[i] == kinds[i + 1] for i in range(0, SPECIAL_HAND_SIZE, 2))


def detect_special_hand(tile_ids: Sequence[int]) -> SpecialHand | None:
    if is_thirteen_orphans(tile_ids):
        return SpecialHand.THIRTEEN_ORPHANS
    if is_seven_pairs(tile_ids):
        return SpecialHand.SEVEN_PAIRS
    return None


def can_form_winning_hand(
    hand: Sequence[int],
    melds: Sequence[Meld],
    concealed_kongs: Sequence[Meld],
) -> bool:
    """
    Check whether concealed tiles plus declared melds form a win.

    Bonus tiles in `hand` are ignored. Special hands are only considered
    when no melds or concealed kongs have been declared.
    """
    concealed = [t for t in hand if not is_bonus_id(t)]
    total_melds = len(melds) + len(concealed_kongs)
    if len(concealed) != expected_concealed_count(total_melds):
        return False
    if total_melds == 0 and detect_special_hand(concealed) is not None:
        return True
    return bool(find_winning_decompositions(concealed))


def analyze_winning_hand(
    hand: Sequence[int],
    melds: Sequence[Meld],
    concealed_kongs: Sequence[Meld],
) -> WinningHand | None:
    """
    Finalize the winning interpretation of a hand, or None if it is not a win.

    Special hands take precedence; otherwise the first decomposition found
    is used (not the highest scoring one).
    """
    concealed = sort_tiles(t for t in hand if not is_bonus_id(t))
    total_melds = len(melds) + len(concealed_kongs)
    if len(concealed) != expected_concealed_count(total_melds):
        return None

    if total_melds == 0:
        special = detect_special_hand(concealed)
        if special == SpecialHand.THIRTEEN_ORPHANS:
            return WinningHand(special_hand=special, concealed_tiles=tuple(concealed))
        if special == SpecialHand.SEVEN_PAIRS:
            pairs = tuple(
                Meld(meld_type=MeldType.PAIR, tile_ids=(concealed[i], concealed[i + 1]))
                for i in range(0, SPECIAL_HAND_SIZE, 2)
            )
            return WinningHand(special_hand=special, melds=pairs, concealed_tiles=tuple(concealed))

    decompositions = find_winning_decompositions(concealed)
    if not decompositions:
        return None
    return WinningHand(
        melds=(*decompositions[0], *melds, *concealed_kongs),
        concealed_tiles=tuple(concealed),
    )
