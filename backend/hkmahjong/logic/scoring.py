"""
Faan scoring for Hong Kong mahjong.

Regular hands are scored from their decomposition against the faan table.
Table entries are summed, except that a limit hand (All Honors, Big Three
Dragons, Big Four Winds) replaces the total with the fixed limit value and
a single item. Special hands (Thirteen Orphans, Seven Pairs) have their own
fixed values. Bonus tiles (flowers and seasons) are scored separately and
always added on top.

Payment: base points = 2 ** min(total faan, cap). On self-draw each other
seat pays the base; on a discard win the discarder alone pays three times
the base.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from hkmahjong.logic.enums import WIND_ORDER, Dragon, MeldType, SpecialHand, Wind
from hkmahjong.logic.meld_model import meld_tile_ids
from hkmahjong.logic.settings import NUM_PLAYERS, GameSettings
from hkmahjong.logic.tiles import (
    DRAGON_KIND_START,
    FLOWER_ID_START,
    SEASON_ID_START,
    TOTAL_TILES,
    is_dragon_kind,
    is_honor_kind,
    is_suited_kind,
    is_wind_kind,
    suit_of_kind,
    tile_kind,
    wind_kind,
)
from hkmahjong.logic.types import FaanItem, FaanResult, ScoringContext

if TYPE_CHECKING:
    from hkmahjong.logic.hand import WinningHand
    from hkmahjong.logic.meld_model import Meld

BONUS_SET_SIZE = 4
COMPLETE_BONUS_SET_FAAN = 2

_DEFAULT_SETTINGS = GameSettings()
_DRAGON_NAMES = tuple(d.value.capitalize() for d in Dragon)
_FLOWER_NAMES = ("Plum", "Orchid", "Chrysanthemum", "Bamboo")
_SEASON_NAMES = ("Spring", "Summer", "Autumn", "Winter")


def _limit_hand_name(sets: list[Meld], kinds: list[int]) -> str | None:
    """Name of the limit hand the melds qualify for, by precedence."""
    wind_sets = sum(1 for s in sets if is_wind_kind(s.kind))
    dragon_sets = sum(1 for s in sets if s.is_pong_or_kong and is_dragon_kind(s.kind))
    if wind_sets == 4:
        return "Big Four Winds"
    if dragon_sets == 3:
        return "Big Three Dragons"
    if kinds and all(is_honor_kind(k) for k in kinds):
        return "All Honors"
    return None


def calculate_faan(
    melds: Sequence[Meld],
    seat_wind: Wind,
    prevailing_wind: Wind,
    context: ScoringContext,
    settings: GameSettings | None = None,
) -> FaanResult:
    """
    Score a regular (non-special) hand.

    `melds` is the full decomposition: pair plus sets, exposed and concealed
    combined. Returns the total faan and its itemization.
    """
    settings = settings or _DEFAULT_SETTINGS
    sets = [m for m in melds if m.is_set]
    pair = next((m for m in melds if m.meld_type == MeldType.PAIR), None)
    kinds = [tile_kind(t) for t in meld_tile_ids(melds)]

    limit_name = _limit_hand_name(sets, kinds)
    if limit_name is not None:
        return FaanResult(
            faan=settings.limit_hand_faan,
            items=(FaanItem(name=limit_name, faan=settings.limit_hand_faan),),
            is_limit=True,
        )

    suits = {suit_of_kind(k) for k in kinds if is_suited_kind(k)}
    has_honors = any(is_honor_kind(k) for k in kinds)
    fully_concealed = not any(m.exposed for m in melds)
    dragon_sets = [s for s in sets if s.is_pong_or_kong and is_dragon_kind(s.kind)]
    wind_sets = [s for s in sets if s.is_pong_or_kong and is_wind_kind(s.kind)]
    set_kinds = {s.kind for s in sets if s.is_pong_or_kong}

    items: list[FaanItem] = [
        FaanItem(name=f"{_DRAGON_NAMES[s.kind - DRAGON_KIND_START]} Dragon Pong", faan=1) for s in dragon_sets
    ]

    if wind_kind(seat_wind) in set_kinds:
        items.append(FaanItem(name="Seat Wind", faan=1))
    if wind_kind(prevailing_wind) in set_kinds:
        items.append(FaanItem(name="Prevailing Wind", faan=1))
    if context.self_drawn:
        items.append(FaanItem(name="Self-Drawn", faan=1))

    all_chows = bool(sets) and all(s.meld_type == MeldType.CHOW for s in sets)
    all_chows_awarded = all_chows and pair is not None and not is_honor_kind(pair.kind) and fully_concealed
    if all_chows_awarded:
        items.append(FaanItem(name="All Chows", faan=1))

    if sets and all(s.is_pong_or_kong for s in sets):
        items.append(FaanItem(name="All Pongs", faan=3))

    if len(suits) == 1:
        if has_honors:
            items.append(FaanItem(name="Mixed One Suit", faan=3))
        else:
            items.append(FaanItem(name="Pure One Suit", faan=7))

    if len(dragon_sets) == 2 and pair is not None and is_dragon_kind(pair.kind):
        items.append(FaanItem(name="Small Three Dragons", faan=5))
    if len(wind_sets) == 3 and pair is not None and is_wind_kind(pair.kind):
        items.append(FaanItem(name="Small Four Winds", faan=6))

    if fully_concealed and context.self_drawn and not all_chows_awarded:
        items.append(FaanItem(name="Fully Concealed", faan=1))
    if context.is_last_wall_tile:
        items.append(FaanItem(name="Last Tile Draw", faan=1))
    if context.is_kong_replacement:
        items.append(FaanItem(name="Kong Replacement Win", faan=1))
    if context.is_robbing_kong:
        items.append(FaanItem(name="Robbing the Kong", faan=1))

    return FaanResult(faan=sum(item.faan for item in items), items=tuple(items))


def calculate_special_hand_faan(
    special_hand: SpecialHand,
    context: ScoringContext,
    settings: GameSettings | None = None,
) -> FaanResult:
    """Fixed scoring for hands outside the regular table."""
    settings = settings or _DEFAULT_SETTINGS
    if special_hand == SpecialHand.THIRTEEN_ORPHANS:
        return FaanResult(
            faan=settings.thirteen_orphans_faan,
            items=(FaanItem(name="Thirteen Orphans", faan=settings.thirteen_orphans_faan),),
            is_limit=True,
        )
    items = [FaanItem(name="Seven Pairs", faan=settings.seven_pairs_faan)]
    if context.self_drawn:
        items.append(FaanItem(name="Self-Drawn", faan=1))
    return FaanResult(faan=sum(item.faan for item in items), items=tuple(items))


def calculate_bonus_faan(flowers: Sequence[int], seat_wind: Wind) -> FaanResult:
    """
    Score collected flower and season tiles.

    +1 for the flower and the season that belong to the seat's wind,
    +2 for each complete set of four.
    """
    seat_index = WIND_ORDER.index(seat_wind)
    owned = set(flowers)
    items: list[FaanItem] = []

    for tile_id in sorted(owned):
        if FLOWER_ID_START <= tile_id < SEASON_ID_START and tile_id - FLOWER_ID_START == seat_index:
            items.append(FaanItem(name=f"Seat Flower ({_FLOWER_NAMES[seat_index]})", faan=1))
        elif SEASON_ID_START <= tile_id < TOTAL_TILES and tile_id - SEASON_ID_START == seat_index:
            items.append(FaanItem(name=f"Seat Season ({_SEASON_NAMES[seat_index]})", faan=1))

    if owned.issuperset(range(FLOWER_ID_START, FLOWER_ID_START + BONUS_SET_SIZE)):
        items.append(FaanItem(name="Complete Flowers", faan=COMPLETE_BONUS_SET_FAAN))
    if owned.issuperset(range(SEASON_ID_START, SEASON_ID_START + BONUS_SET_SIZE)):
        items.append(FaanItem(name="Complete Seasons", faan=COMPLETE_BONUS_SET_FAAN))

    return FaanResult(faan=sum(item.faan for item in items), items=tuple(items))


def score_winning_hand(
    winning_hand: WinningHand,
    *,
    seat_wind: Wind,
    prevailing_wind: Wind,
    context: ScoringContext,
    flowers: Sequence[int] = (),
    settings: GameSettings | None = None,
) -> FaanResult:
    """Total faan for a finalized winning hand, bonus tiles included."""
    if winning_hand.special_hand is not None:
        hand_result = calculate_special_hand_faan(winning_hand.special_hand, context, settings)
    else:
        hand_result = calculate_faan(winning_hand.melds, seat_wind, prevailing_wind, context, settings)

    bonus = calculate_bonus_faan(flowers, seat_wind)
    return FaanResult(
        faan=hand_result.faan + bonus.faan,
        items=hand_result.items + bonus.items,
        is_limit=hand_result.is_limit,
    )


def base_points(total_faan: int, faan_cap: int = _DEFAULT_SETTINGS.faan_cap) -> int:
    return 2 ** min(total_faan, faan_cap)


def compute_score_changes(
    winner_seat: int,
    points: int,
    *,
    self_drawn: bool,
    payer_seat: int | None = None,
) -> dict[int, int]:
    """
    Per-seat score deltas for a win worth `points` base points.

    Self-draw: every other seat pays the base. Otherwise the payer (the
    discarder, or the seat whose kong was robbed) pays three times the base.
    """
    changes = dict.fromkeys(range(NUM_PLAYERS), 0)
    if self_drawn:
        for seat in range(NUM_PLAYERS):
            if seat != winner_seat:
                changes[seat] -= points
                changes[winner_seat] += points
        return changes

    if payer_seat is None or payer_seat == winner_seat:
        raise ValueError(f"discard win needs a payer other than the winner, got {payer_seat}")
    changes[payer_seat] -= points * 3
    changes[winner_seat] += points * 3
    return changes
