"""
Unit tests for AIPlayerController: seat bookkeeping and mapping game
situations to (GameAction, data) pairs.
"""

import random

from hkmahjong.logic.ai_player import AIPlayer
from hkmahjong.logic.ai_player_controller import AIPlayerController
from hkmahjong.logic.enums import AIDifficulty, ClaimType, GameAction
from hkmahjong.logic.game import MahjongGame
from hkmahjong.tests.conftest import DEALER_WINNING_HAND, DISCARD_WIN_HANDS, FIXED_SEED, build_wall_tiles, tid


def _controller(seats=(0, 1, 2, 3)):
    return AIPlayerController({seat: AIPlayer(seat, AIDifficulty.HARD, random.Random(seat)) for seat in seats})


def _game(hands):
    game = MahjongGame("g1", seed=FIXED_SEED)
    game.initialize_game(wall_tiles=build_wall_tiles(hands))
    return game


class TestSeats:
    def test_ai_player_seats(self):
        controller = _controller((1, 2, 3))
        assert controller.ai_player_seats == {1, 2, 3}
        assert not controller.is_ai_player(0)

    def test_add_and_remove(self):
        controller = _controller((1, 2, 3))
        controller.remove_ai_player(2)
        controller.add_ai_player(0, AIPlayer(0))
        assert controller.ai_player_seats == {0, 1, 3}
        # removing an empty seat is a no-op
        controller.remove_ai_player(2)


class TestTurnActions:
    def test_declares_win_when_possible(self):
        game = _game({0: DEALER_WINNING_HAND})
        assert _controller().get_turn_action(0, game) == (GameAction.DECLARE_WIN, {})

    def test_draws_at_thirteen_tiles(self):
        game = _game(DISCARD_WIN_HANDS)
        game.discard_tile(0, 132)
        assert _controller().get_turn_action(1, game) == (GameAction.DRAW, {})

    def test_discards_a_held_tile(self):
        game = _game(DISCARD_WIN_HANDS)
        action, data = _controller().get_turn_action(0, game)
        assert action == GameAction.DISCARD
        assert data["tile_id"] in game.player(0).hand

    def test_declares_concealed_kong(self):
        hand = [tid(27, c) for c in range(4)] + [tid(k) for k in range(10)]
        game = _game({0: hand})
        decisions = {
            AIPlayerController({0: AIPlayer(0, rng=random.Random(seed))}).get_turn_action(0, game)[0]
            for seed in range(20)
        }
        assert GameAction.CONCEALED_KONG in decisions

    def test_none_for_human_seat(self):
        game = _game(DISCARD_WIN_HANDS)
        assert _controller((1, 2, 3)).get_turn_action(0, game) is None

    def test_none_when_not_current(self):
        game = _game(DISCARD_WIN_HANDS)
        assert _controller().get_turn_action(2, game) is None


class TestClaimResponses:
    def test_claims_win(self):
        game = _game(DISCARD_WIN_HANDS)
        game.discard_tile(0, 89)
        action, data = _controller().get_claim_response(1, game)
        assert action == GameAction.CLAIM
        assert data == {"claim_type": ClaimType.WIN, "tile_ids": []}

    def test_none_without_open_episode(self):
        game = _game(DISCARD_WIN_HANDS)
        assert _controller().get_claim_response(1, game) is None

    def test_none_for_seat_that_owes_nothing(self):
        game = _game(DISCARD_WIN_HANDS)
        game.discard_tile(0, 89)
        assert _controller().get_claim_response(2, game) is None
