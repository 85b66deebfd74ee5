"""
Immutable meld representation.

A meld is a pair, chow, pong or kong. Tile ids are kept in display order.
Shape legality (sizes, matching faces, consecutive chow values) is checked
by `make_meld`; the model validators only guard structural bounds.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from hkmahjong.logic.enums import KongType, MeldType
from hkmahjong.logic.exceptions import InvalidMeldError
from hkmahjong.logic.tiles import (
    is_bonus_id,
    is_suited_kind,
    sort_tiles,
    suit_of_kind,
    tile_kind,
)

_MIN_SEAT = 0
_MAX_SEAT = 3

MELD_SIZES: dict[MeldType, int] = {
    MeldType.PAIR: 2,
    MeldType.CHOW: 3,
    MeldType.PONG: 3,
    MeldType.KONG: 4,
}


class Meld(BaseModel):
    """Immutable meld. `source_seat` is the seat the claimed tile came from."""

    model_config = ConfigDict(frozen=True)

    meld_type: MeldType
    tile_ids: tuple[int, ...]
    exposed: bool = False
    source_seat: int | None = None
    kong_type: KongType | None = None

    @field_validator("source_seat")
    @classmethod
    def _validate_source_seat(cls, v: int | None) -> int | None:
        if v is not None and not (_MIN_SEAT <= v <= _MAX_SEAT):
            raise ValueError(f"source_seat must be in [{_MIN_SEAT}, {_MAX_SEAT}], got {v}")
        return v

    @property
    def kind(self) -> int:
        """Kind index of the meld's lowest tile."""
        return tile_kind(self.tile_ids[0])

    @property
    def is_set(self) -> bool:
        """Chow, pong or kong (anything but the pair)."""
        return self.meld_type != MeldType.PAIR

    @property
    def is_pong_or_kong(self) -> bool:
        return self.meld_type in (MeldType.PONG, MeldType.KONG)


def _is_consecutive_run(kinds: list[int]) -> bool:
    kinds = sorted(kinds)
    if not all(is_suited_kind(k) for k in kinds):
        return False
    if len({suit_of_kind(k) for k in kinds}) != 1:
        return False
    return kinds == list(range(kinds[0], kinds[0] + len(kinds)))


def make_meld(
    meld_type: MeldType,
    tile_ids: tuple[int, ...] | list[int],
    *,
    exposed: bool = False,
    source_seat: int | None = None,
    kong_type: KongType | None = None,
) -> Meld:
    """
    Build a meld after checking its shape.

    Raises InvalidMeldError when the tiles do not form the requested shape.
    """
    expected = MELD_SIZES[meld_type]
    if len(tile_ids) != expected:
        raise InvalidMeldError(f"{meld_type.value} needs {expected} tiles, got {len(tile_ids)}")
    if len(set(tile_ids)) != len(tile_ids):
        raise InvalidMeldError(f"{meld_type.value} contains duplicate tile ids: {list(tile_ids)}")
    if any(is_bonus_id(t) for t in tile_ids):
        raise InvalidMeldError("bonus tiles cannot be part of a meld")

    kinds = [tile_kind(t) for t in tile_ids]
    if meld_type == MeldType.CHOW:
        if not _is_consecutive_run(kinds):
            raise InvalidMeldError(f"chow tiles are not a same-suit run: {list(tile_ids)}")
    elif len(set(kinds)) != 1:
        raise InvalidMeldError(f"{meld_type.value} tiles do not match: {list(tile_ids)}")

    return Meld(
        meld_type=meld_type,
        tile_ids=tuple(sort_tiles(tile_ids)),
        exposed=exposed,
        source_seat=source_seat,
        kong_type=kong_type if meld_type == MeldType.KONG else None,
    )


def meld_tile_ids(melds: tuple[Meld, ...] | list[Meld]) -> list[int]:
    """Flatten all tile ids held in a sequence of melds."""
    return [tile_id for meld in melds for tile_id in meld.tile_ids]
