"""
Wall state and operations for Hong Kong mahjong.

The wall is split once per round: after shuffling, the last 14 tiles form
the dead wall and the rest form the live wall. Normal draws come from the
front of the live wall. Replacement draws (after a kong or a bonus tile)
come from the front of the dead wall, falling back to the live wall once
the dead wall is used up.
"""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from hkmahjong.logic.rng import Shuffler, shuffle_tiles
from hkmahjong.logic.settings import NUM_PLAYERS
from hkmahjong.logic.tiles import TOTAL_TILES

DEAD_WALL_SIZE = 14
TILES_PER_DEAL_BLOCK = 4
DEAL_BLOCKS = 3
TILES_PER_FINAL_DEAL = 1


class Wall(BaseModel):
    """Immutable wall state for a mahjong round."""

    model_config = ConfigDict(frozen=True)

    live_tiles: tuple[int, ...] = ()
    dead_wall_tiles: tuple[int, ...] = ()

    @property
    def live_count(self) -> int:
        return len(self.live_tiles)

    @property
    def is_exhausted(self) -> bool:
        """True when neither a normal nor a replacement draw is possible."""
        return not self.live_tiles and not self.dead_wall_tiles


def create_wall(
    seed: str,
    round_number: int,
    *,
    shuffler: Shuffler = shuffle_tiles,
    dead_wall_size: int = DEAD_WALL_SIZE,
) -> Wall:
    """Shuffle a full tile set and split off the dead wall."""
    return create_wall_from_tiles(shuffler(seed, round_number), dead_wall_size=dead_wall_size)


def create_wall_from_tiles(tiles: Sequence[int], *, dead_wall_size: int = DEAD_WALL_SIZE) -> Wall:
    """
    Create a wall from an explicit tile order.

    The order must be a permutation of every tile id; the last
    `dead_wall_size` tiles become the dead wall.
    """
    if len(tiles) != TOTAL_TILES:
        raise ValueError(f"Expected {TOTAL_TILES} tiles, got {len(tiles)}")
    if not all(isinstance(t, int) and 0 <= t < TOTAL_TILES for t in tiles):
        raise ValueError(f"All tile IDs must be integers in [0, {TOTAL_TILES - 1}]")
    if len(set(tiles)) != TOTAL_TILES:
        raise ValueError("All tile IDs must be unique (full permutation)")

    split = len(tiles) - dead_wall_size
    return Wall(live_tiles=tuple(tiles[:split]), dead_wall_tiles=tuple(tiles[split:]))


def deal_initial_hands(wall: Wall, dealer_seat: int) -> tuple[Wall, list[list[int]]]:
    """
    Deal initial hands following the dealing order.

    Starting from the dealer: 4 tiles x 3 rounds, then 1 more each, then one
    extra tile for the dealer (who starts with 14). Tiles come from the front
    of the live wall. Returns (updated_wall, hands indexed by seat).
    """
    min_tiles = NUM_PLAYERS * (TILES_PER_DEAL_BLOCK * DEAL_BLOCKS + TILES_PER_FINAL_DEAL) + 1
    if len(wall.live_tiles) < min_tiles:
        raise ValueError(f"Live wall has {len(wall.live_tiles)} tiles, need at least {min_tiles} for dealing")

    live = list(wall.live_tiles)
    hands: list[list[int]] = [[] for _ in range(NUM_PLAYERS)]
    pos = 0

    for _ in range(DEAL_BLOCKS):
        for offset in range(NUM_PLAYERS):
            seat = (dealer_seat + offset) % NUM_PLAYERS
            hands[seat].extend(live[pos : pos + TILES_PER_DEAL_BLOCK])
            pos += TILES_PER_DEAL_BLOCK

    for offset in range(NUM_PLAYERS):
        seat = (dealer_seat + offset) % NUM_PLAYERS
        hands[seat].append(live[pos])
        pos += TILES_PER_FINAL_DEAL

    hands[dealer_seat].append(live[pos])
    pos += 1

    return wall.model_copy(update={"live_tiles": tuple(live[pos:])}), hands


def draw_from_live_wall(wall: Wall) -> tuple[int | None, Wall]:
    """Pop the front of the live wall. Returns (None, wall) when empty."""
    if not wall.live_tiles:
        return None, wall
    return wall.live_tiles[0], wall.model_copy(update={"live_tiles": wall.live_tiles[1:]})


def draw_replacement(wall: Wall) -> tuple[int | None, Wall]:
    """Draw from the dead wall front, or the live wall once the dead wall is empty."""
    if wall.dead_wall_tiles:
        tile = wall.dead_wall_tiles[0]
        return tile, wall.model_copy(update={"dead_wall_tiles": wall.dead_wall_tiles[1:]})
    return draw_from_live_wall(wall)
