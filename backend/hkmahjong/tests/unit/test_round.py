"""
Unit tests for round setup: game initialization, dealing with bonus-tile
replacement, and advancing the dealer and prevailing wind.
"""

import pytest

from hkmahjong.logic.enums import RoundPhase, Wind
from hkmahjong.logic.exceptions import InvalidActionError
from hkmahjong.logic.round import advance_round, default_player_name, init_game, prevailing_wind_for_round
from hkmahjong.logic.settings import GameSettings
from hkmahjong.logic.state import all_tile_locations
from hkmahjong.logic.tiles import TOTAL_TILES
from hkmahjong.tests.conftest import FIXED_SEED, build_wall_tiles, tid


def _finish(game_state, scores=(0, 0, 0, 0)):
    round_state = game_state.round_state
    players = tuple(p.model_copy(update={"score": s}) for p, s in zip(round_state.players, scores, strict=True))
    round_state = round_state.model_copy(update={"phase": RoundPhase.FINISHED, "players": players})
    return game_state.model_copy(update={"round_state": round_state})


class TestInitGame:
    def test_initial_deal(self):
        game_state = init_game("g1", FIXED_SEED)
        round_state = game_state.round_state
        assert round_state.phase == RoundPhase.PLAYING
        assert round_state.current_player_seat == 0
        assert round_state.prevailing_wind == Wind.EAST
        assert [p.effective_tile_count for p in round_state.players] == [14, 13, 13, 13]
        assert sorted(all_tile_locations(round_state)) == list(range(TOTAL_TILES))
        assert game_state.round_result is None

    def test_default_names(self):
        game_state = init_game("g1", FIXED_SEED, player_names=["Alice"])
        names = [p.name for p in game_state.round_state.players]
        assert names == ["Alice", "AI South", "AI West", "AI North"]

    def test_too_many_names(self):
        with pytest.raises(ValueError, match="player names"):
            init_game("g1", FIXED_SEED, player_names=["a", "b", "c", "d", "e"])

    def test_same_seed_same_deal(self):
        first = init_game("g1", FIXED_SEED)
        second = init_game("g2", FIXED_SEED)
        assert first.round_state.players == second.round_state.players

    def test_fixed_wall(self):
        hand = [tid(k) for k in range(13)]
        game_state = init_game("g1", FIXED_SEED, wall_tiles=build_wall_tiles({1: hand}))
        assert game_state.round_state.players[1].hand == tuple(hand)

    def test_opening_log(self):
        log = init_game("g1", FIXED_SEED).round_state.action_log
        assert log == ("Round started. EAST wind round.", "AI East is the dealer (East).")


class TestBonusReplacementAtDeal:
    def test_bonus_tiles_move_to_flowers(self):
        wall_tiles = build_wall_tiles({1: [136, 140]})
        game_state = init_game("g1", FIXED_SEED, wall_tiles=wall_tiles)
        round_state = game_state.round_state
        player = round_state.players[1]
        assert player.flowers == (136, 140)
        assert len(player.hand) == 13
        assert not any(t >= 136 for t in player.hand)
        assert len(round_state.wall.dead_wall_tiles) == 12
        assert sorted(all_tile_locations(round_state)) == list(range(TOTAL_TILES))

    def test_seeded_deal_never_leaves_bonus_in_hand(self):
        round_state = init_game("g1", FIXED_SEED).round_state
        for player in round_state.players:
            assert not any(t >= 136 for t in player.hand)


class TestAdvanceRound:
    def test_requires_finished_round(self):
        with pytest.raises(InvalidActionError):
            advance_round(init_game("g1", FIXED_SEED))

    def test_dealer_rotates_and_scores_carry(self):
        game_state = _finish(init_game("g1", FIXED_SEED, player_names=["Alice"]), scores=(24, -8, -8, -8))
        game_state = advance_round(game_state)
        round_state = game_state.round_state
        assert game_state.round_number == 1
        assert round_state.dealer_seat == 1
        assert round_state.current_player_seat == 1
        assert [p.score for p in round_state.players] == [24, -8, -8, -8]
        assert round_state.players[0].name == "Alice"
        assert [p.effective_tile_count for p in round_state.players] == [13, 14, 13, 13]
        assert round_state.phase == RoundPhase.PLAYING

    def test_default_names_follow_the_dealer(self):
        game_state = advance_round(_finish(init_game("g1", FIXED_SEED, player_names=["Alice"])))
        round_state = game_state.round_state
        assert [p.name for p in round_state.players] == ["Alice", "AI East", "AI South", "AI West"]
        assert round_state.action_log[-1] == "AI East is the dealer (East)."

        game_state = advance_round(_finish(game_state))
        assert [p.name for p in game_state.round_state.players] == ["Alice", "AI North", "AI East", "AI South"]

    def test_chosen_names_survive_rotation(self):
        game_state = advance_round(_finish(init_game("g1", FIXED_SEED, player_names=["Alice", "Bob"])))
        assert [p.name for p in game_state.round_state.players][:2] == ["Alice", "Bob"]

    def test_new_round_uses_a_new_wall(self):
        first = init_game("g1", FIXED_SEED)
        second = advance_round(_finish(first))
        assert first.round_state.wall != second.round_state.wall

    def test_prevailing_wind_rotates(self):
        settings = GameSettings(rounds_per_wind=1)
        game_state = init_game("g1", FIXED_SEED, settings=settings)
        game_state = advance_round(_finish(game_state))
        assert game_state.round_state.prevailing_wind == Wind.SOUTH


class TestHelpers:
    @pytest.mark.parametrize(
        ("round_number", "wind"),
        [(0, Wind.EAST), (3, Wind.EAST), (4, Wind.SOUTH), (15, Wind.NORTH), (16, Wind.EAST)],
    )
    def test_prevailing_wind_for_round(self, round_number, wind):
        assert prevailing_wind_for_round(round_number, GameSettings()) == wind

    def test_default_player_name(self):
        assert default_player_name(2, 0) == "AI West"
        assert default_player_name(0, 1) == "AI North"
