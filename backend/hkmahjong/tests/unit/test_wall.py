"""
Unit tests for the wall: creation, live/dead split, dealing, and the two
draw sources.
"""

import pytest

from hkmahjong.logic.tiles import TOTAL_TILES
from hkmahjong.logic.wall import (
    DEAD_WALL_SIZE,
    Wall,
    create_wall,
    create_wall_from_tiles,
    deal_initial_hands,
    draw_from_live_wall,
    draw_replacement,
)
from hkmahjong.tests.conftest import FIXED_SEED


class TestCreateWall:
    def test_split_covers_every_tile(self):
        """Live wall + dead wall = 144 right after shuffling and splitting."""
        wall = create_wall(FIXED_SEED, 0)
        assert len(wall.live_tiles) + len(wall.dead_wall_tiles) == TOTAL_TILES
        assert len(wall.dead_wall_tiles) == DEAD_WALL_SIZE
        assert sorted(wall.live_tiles + wall.dead_wall_tiles) == list(range(TOTAL_TILES))

    def test_deterministic(self):
        assert create_wall(FIXED_SEED, 0) == create_wall(FIXED_SEED, 0)

    def test_custom_shuffler(self):
        wall = create_wall(FIXED_SEED, 0, shuffler=lambda _seed, _round: list(range(TOTAL_TILES)))
        assert wall.live_tiles[0] == 0
        assert wall.dead_wall_tiles == tuple(range(TOTAL_TILES - DEAD_WALL_SIZE, TOTAL_TILES))

    def test_from_tiles_rejects_short_list(self):
        with pytest.raises(ValueError, match="Expected 144"):
            create_wall_from_tiles(list(range(100)))

    def test_from_tiles_rejects_duplicates(self):
        tiles = list(range(TOTAL_TILES))
        tiles[1] = 0
        with pytest.raises(ValueError, match="unique"):
            create_wall_from_tiles(tiles)


class TestDeal:
    def test_dealer_gets_fourteen(self):
        wall, hands = deal_initial_hands(create_wall(FIXED_SEED, 0), dealer_seat=2)
        assert [len(h) for h in hands] == [13, 13, 14, 13]
        assert len(wall.live_tiles) == TOTAL_TILES - DEAD_WALL_SIZE - 53

    def test_deal_is_tile_conserving(self):
        original = create_wall(FIXED_SEED, 0)
        wall, hands = deal_initial_hands(original, dealer_seat=0)
        dealt = [t for hand in hands for t in hand]
        assert sorted(dealt + list(wall.live_tiles) + list(wall.dead_wall_tiles)) == list(range(TOTAL_TILES))

    def test_deals_in_blocks_from_the_dealer(self):
        wall = create_wall_from_tiles(list(range(TOTAL_TILES)))
        _wall, hands = deal_initial_hands(wall, dealer_seat=0)
        assert hands[0][:4] == [0, 1, 2, 3]
        assert hands[1][:4] == [4, 5, 6, 7]
        assert hands[0][-1] == 52

    def test_rejects_short_live_wall(self):
        with pytest.raises(ValueError, match="need at least"):
            deal_initial_hands(Wall(live_tiles=(1, 2, 3)), dealer_seat=0)


class TestDraw:
    def test_live_draw_pops_front(self):
        tile, wall = draw_from_live_wall(Wall(live_tiles=(5, 6), dead_wall_tiles=(7,)))
        assert tile == 5
        assert wall.live_tiles == (6,)
        assert wall.dead_wall_tiles == (7,)

    def test_live_draw_on_empty_wall(self):
        wall = Wall(dead_wall_tiles=(7,))
        assert draw_from_live_wall(wall) == (None, wall)

    def test_replacement_uses_dead_wall_first(self):
        tile, wall = draw_replacement(Wall(live_tiles=(5,), dead_wall_tiles=(7, 8)))
        assert tile == 7
        assert wall.dead_wall_tiles == (8,)
        assert wall.live_tiles == (5,)

    def test_replacement_falls_back_to_live_wall(self):
        tile, wall = draw_replacement(Wall(live_tiles=(5, 6)))
        assert tile == 5
        assert wall.live_tiles == (6,)

    def test_replacement_on_exhausted_wall(self):
        wall = Wall()
        assert wall.is_exhausted
        assert draw_replacement(wall) == (None, wall)
