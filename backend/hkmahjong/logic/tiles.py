"""
Tile representation utilities for Hong Kong mahjong.

Tiles are identified by an integer id in 144-format. Ids are assigned in
generation order, which is also display order:

  dots:        0-35    (1-9, 4 copies each)
  bamboo:      36-71
  characters:  72-107
  winds:       108-123 (E, S, W, N, 4 copies each)
  dragons:     124-135 (red, green, white, 4 copies each)
  flowers:     136-139 (plum, orchid, chrysanthemum, bamboo, 1 copy each)
  seasons:     140-143 (spring, summer, autumn, winter, 1 copy each)

Matching compares suit and value, never id. Internally the engine works on
a "kind" index (0-41) where two tiles match iff their kinds are equal.
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from hkmahjong.logic.enums import Dragon, Flower, Season, Suit, Wind

TOTAL_TILES = 144
COPIES_PER_TILE = 4
SUITED_VALUES = range(1, 10)

SUITED_ID_END = 107
WIND_ID_START = 108
DRAGON_ID_START = 124
FLOWER_ID_START = 136
SEASON_ID_START = 140

# kind ranges (one index per distinct tile face)
SUITED_KIND_END = 26
WIND_KIND_START = 27
DRAGON_KIND_START = 31
FLOWER_KIND_START = 34
SEASON_KIND_START = 38
NUM_KINDS = 42

# terminal and honor kinds required for Thirteen Orphans
TERMINAL_KINDS = (0, 8, 9, 17, 18, 26)
HONOR_KINDS = tuple(range(WIND_KIND_START, FLOWER_KIND_START))
ORPHAN_KINDS = TERMINAL_KINDS + HONOR_KINDS

_SUIT_ORDER = {suit: index for index, suit in enumerate(Suit)}
_VALUE_ORDER: dict[str, int] = {
    **{w.value: i for i, w in enumerate(Wind)},
    **{d.value: i for i, d in enumerate(Dragon)},
    **{f.value: i for i, f in enumerate(Flower)},
    **{s.value: i for i, s in enumerate(Season)},
}


class Tile(BaseModel):
    """A physical tile. `id` is its identity, `suit` + `value` its face."""

    model_config = ConfigDict(frozen=True)

    id: int
    suit: Suit
    value: int | str
    copy_index: int = 0


def create_tile_set() -> tuple[Tile, ...]:
    """Generate the full 144-tile set in id order."""
    tiles: list[Tile] = []
    for suit in (Suit.DOTS, Suit.BAMBOO, Suit.CHARACTERS):
        for value in SUITED_VALUES:
            tiles.extend(Tile(id=len(tiles), suit=suit, value=value, copy_index=c) for c in range(COPIES_PER_TILE))
    for wind in Wind:
        tiles.extend(
            Tile(id=len(tiles), suit=Suit.WINDS, value=wind.value, copy_index=c) for c in range(COPIES_PER_TILE)
        )
    for dragon in Dragon:
        tiles.extend(
            Tile(id=len(tiles), suit=Suit.DRAGONS, value=dragon.value, copy_index=c) for c in range(COPIES_PER_TILE)
        )
    tiles.extend(Tile(id=len(tiles), suit=Suit.FLOWERS, value=flower.value) for flower in Flower)
    tiles.extend(Tile(id=len(tiles), suit=Suit.SEASONS, value=season.value) for season in Season)
    return tuple(tiles)


TILE_SET: tuple[Tile, ...] = create_tile_set()


def get_tile(tile_id: int) -> Tile:
    """Look up a tile by id."""
    if not (0 <= tile_id < TOTAL_TILES):
        raise ValueError(f"tile_id must be in [0, {TOTAL_TILES - 1}], got {tile_id}")
    return TILE_SET[tile_id]


def tile_kind(tile_id: int) -> int:
    """
    Convert a tile id to its kind index (0-41).

    Suited and honor tiles come in blocks of four, so the kind is id // 4.
    Bonus tiles are unique and take one kind each.
    """
    if not (0 <= tile_id < TOTAL_TILES):
        raise ValueError(f"tile_id must be in [0, {TOTAL_TILES - 1}], got {tile_id}")
    if tile_id < FLOWER_ID_START:
        return tile_id // COPIES_PER_TILE
    return FLOWER_KIND_START + (tile_id - FLOWER_ID_START)


def tile_key(tile: Tile) -> str:
    """Canonical suit+value key used for equivalence."""
    return f"{tile.suit.value}-{tile.value}"


def tiles_match(first: Tile, second: Tile) -> bool:
    return tile_key(first) == tile_key(second)


def ids_match(first_id: int, second_id: int) -> bool:
    """Check whether two tile ids show the same face."""
    return tile_kind(first_id) == tile_kind(second_id)


def is_suited_tile(tile: Tile) -> bool:
    return tile.suit in (Suit.DOTS, Suit.BAMBOO, Suit.CHARACTERS)


def is_honor_tile(tile: Tile) -> bool:
    return tile.suit in (Suit.WINDS, Suit.DRAGONS)


def is_bonus_tile(tile: Tile) -> bool:
    return tile.suit in (Suit.FLOWERS, Suit.SEASONS)


def is_terminal(tile: Tile) -> bool:
    """Check if tile is a 1 or 9 of a suit."""
    return is_suited_tile(tile) and tile.value in (1, 9)


def is_terminal_or_honor(tile: Tile) -> bool:
    return is_terminal(tile) or is_honor_tile(tile)


def is_bonus_id(tile_id: int) -> bool:
    return tile_id >= FLOWER_ID_START


def is_suited_kind(kind: int) -> bool:
    return 0 <= kind <= SUITED_KIND_END


def is_honor_kind(kind: int) -> bool:
    return WIND_KIND_START <= kind < FLOWER_KIND_START


def is_wind_kind(kind: int) -> bool:
    return WIND_KIND_START <= kind < DRAGON_KIND_START


def is_dragon_kind(kind: int) -> bool:
    return DRAGON_KIND_START <= kind < FLOWER_KIND_START


def wind_kind(wind: Wind) -> int:
    """Kind index of the wind tile for a given wind."""
    return WIND_KIND_START + list(Wind).index(wind)


def suit_of_kind(kind: int) -> int:
    """Suit block of a suited kind (0=dots, 1=bamboo, 2=characters)."""
    return kind // 9


def tile_sort_key(tile: Tile) -> tuple[int, int, int]:
    """Total display order: suit, then value (numeric or enumeration order), then id."""
    value_rank = tile.value if isinstance(tile.value, int) else _VALUE_ORDER[tile.value]
    return _SUIT_ORDER[tile.suit], value_rank, tile.id


def sort_tiles(tile_ids: Iterable[int]) -> list[int]:
    """Sort tile ids into display order."""
    return sorted(tile_ids, key=lambda tile_id: tile_sort_key(TILE_SET[tile_id]))


def tile_display_name(tile_id: int) -> str:
    """Human readable tile name, e.g. "5 of dots" or "red (dragons)"."""
    tile = get_tile(tile_id)
    if is_suited_tile(tile):
        return f"{tile.value} of {tile.suit.value}"
    return f"{tile.value} ({tile.suit.value})"


def hand_to_kind_counts(tile_ids: Iterable[int]) -> list[int]:
    """Count tiles per kind (42-array)."""
    counts = [0] * NUM_KINDS
    for tile_id in tile_ids:
        counts[tile_kind(tile_id)] += 1
    return counts
