"""
Unit tests for claim detection, claim validation, and claim resolution.

Covers:
- check_claims: win, kong, pong, and downstream-only chow detection
- claim priority: win > kong = pong > chow > pass, ties to the first registered
- validate_claim: discarder, double responses, unentitled claims, chow tile choice
- resolution: meld formation, discard win payment, everyone passing
"""

import pytest

from hkmahjong.logic.call_resolution import pass_claim, process_claim
from hkmahjong.logic.claims import check_claims, pick_winning_response, validate_claim
from hkmahjong.logic.enums import ClaimEpisodeType, ClaimType, MeldType, RoundPhase, RoundResultType
from hkmahjong.logic.exceptions import InvalidMeldError, NotYourTurnError
from hkmahjong.logic.state import ClaimEpisode
from hkmahjong.logic.state_utils import record_claim_response
from hkmahjong.logic.turn import process_discard
from hkmahjong.logic.types import ClaimOption, ClaimRegisteredResult, ClaimResolution, WinResult
from hkmahjong.tests.conftest import create_game_state, create_player, create_round_state, tid

# 5 of dots, discarded by seat 0
CLAIMED = tid(4, 3)

SEAT0_HAND = [
    CLAIMED,
    *(tid(27, c) for c in range(3)),
    *(tid(28, c) for c in range(3)),
    tid(29, 0),
    tid(29, 1),
    tid(30, 0),
    tid(30, 1),
    tid(31, 0),
    tid(32, 0),
    tid(33, 0),
]
# three chow options on 5 dots
SEAT1_HAND = [tid(k, 0) for k in (2, 3, 5, 6, 9, 11, 13, 15, 17, 18, 20, 22, 24)]
# pong on 5 dots
SEAT2_HAND = [tid(4, 0), tid(4, 1), tid(31, 1), tid(32, 1)] + [tid(k, 0) for k in (10, 12, 14, 16, 19, 21, 23, 25, 26)]
SEAT3_NO_CLAIM = [tid(k, 1) for k in (0, 7, 9, 11, 13, 15, 17, 18, 20, 22, 24, 33)] + [tid(30, 2)]
# 1-2-3 dots, 4-_-6 dots, 1-2-3 and 5-6-7 bamboo, north pair: wins on 5 dots
SEAT3_WAITING = [
    tid(0, 0),
    tid(1, 2),
    tid(2, 2),
    tid(3, 2),
    tid(5, 2),
    tid(9, 1),
    tid(10, 1),
    tid(11, 1),
    tid(13, 1),
    tid(14, 1),
    tid(15, 1),
    tid(30, 2),
    tid(30, 3),
]


def _claim_state(seat3_hand=SEAT3_NO_CLAIM):
    """Seat 0 has discarded 5 of dots and a claim episode is open."""
    players = [
        create_player(0, hand=SEAT0_HAND),
        create_player(1, hand=SEAT1_HAND),
        create_player(2, hand=SEAT2_HAND),
        create_player(3, hand=seat3_hand),
    ]
    round_state = create_round_state(
        players=players,
        wall=[tid(1, 0), tid(1, 1), tid(8, 0), tid(8, 1)],
        dead_wall=[tid(0, 1), tid(0, 2)],
    )
    game_state, result = process_discard(create_game_state(round_state), 0, CLAIMED)
    assert result.claims
    return game_state


class TestCheckClaims:
    def test_claims_by_seat(self):
        game_state = _claim_state()
        claims = check_claims(game_state.round_state, 0, CLAIMED)
        by_seat = {(c.seat, c.claim_type) for c in claims}
        assert by_seat == {(1, ClaimType.CHOW), (2, ClaimType.PONG)}
        assert len([c for c in claims if c.claim_type == ClaimType.CHOW]) == 3

    def test_pong_uses_two_hand_tiles(self):
        claims = check_claims(_claim_state().round_state, 0, CLAIMED)
        pong = next(c for c in claims if c.claim_type == ClaimType.PONG)
        assert pong.tile_ids == (tid(4, 0), tid(4, 1))

    def test_kong_needs_three_matching(self):
        players = [create_player(0), create_player(1), create_player(2, hand=[tid(4, 0), tid(4, 1), tid(4, 2)])]
        players.append(create_player(3))
        claims = check_claims(create_round_state(players=players), 0, CLAIMED)
        assert [c.claim_type for c in claims] == [ClaimType.KONG, ClaimType.PONG]

    def test_chow_only_for_next_seat(self):
        players = [create_player(i) for i in range(3)] + [create_player(3, hand=[tid(2), tid(3)])]
        assert check_claims(create_round_state(players=players), 0, CLAIMED) == []
        assert check_claims(create_round_state(players=players), 2, CLAIMED)[0].claim_type == ClaimType.CHOW

    def test_win_detected(self):
        game_state = _claim_state(SEAT3_WAITING)
        claims = game_state.round_state.claim_episode.options
        assert ClaimOption(seat=3, claim_type=ClaimType.WIN) in claims


class TestEpisode:
    def test_discard_opens_claim_phase(self):
        round_state = _claim_state().round_state
        episode = round_state.claim_episode
        assert round_state.phase == RoundPhase.CLAIM
        assert episode.episode_type == ClaimEpisodeType.DISCARD
        assert episode.obligated_seats == [1, 2]
        assert episode.pending_seats == [1, 2]
        # seat 3 has no option and is recorded as a pass
        assert episode.responses[3].claim_type == ClaimType.PASS
        assert episode.responses[0] is None

    def test_registered_result_while_others_pending(self):
        game_state, result = process_claim(_claim_state(), 1, ClaimType.CHOW)
        assert isinstance(result, ClaimRegisteredResult)
        assert result.pending_seats == [2]
        assert game_state.round_state.phase == RoundPhase.CLAIM


class TestPriority:
    @pytest.mark.parametrize("order", [(1, 2), (2, 1)])
    def test_pong_beats_chow(self, order):
        game_state = _claim_state()
        responses = {1: ClaimType.CHOW, 2: ClaimType.PONG}
        result = None
        for seat in order:
            game_state, result = process_claim(game_state, seat, responses[seat])

        assert isinstance(result, ClaimResolution)
        assert result.claim_type == ClaimType.PONG
        assert result.seat == 2
        round_state = game_state.round_state
        assert round_state.phase == RoundPhase.PLAYING
        assert round_state.current_player_seat == 2
        assert round_state.claim_episode is None
        meld = round_state.players[2].melds[0]
        assert meld.meld_type == MeldType.PONG
        assert CLAIMED in meld.tile_ids
        assert meld.source_seat == 0
        assert CLAIMED not in round_state.players[0].discards
        # seat 1's chow tiles stay in hand
        assert round_state.players[1].hand == tuple(SEAT1_HAND)

    @pytest.mark.parametrize("order", [(1, 2, 3), (3, 2, 1), (2, 3, 1)])
    def test_win_beats_everything(self, order):
        game_state = _claim_state(SEAT3_WAITING)
        responses = {1: ClaimType.CHOW, 2: ClaimType.PONG, 3: ClaimType.WIN}
        result = None
        for seat in order:
            game_state, result = process_claim(game_state, seat, responses[seat])

        assert result.claim_type == ClaimType.WIN
        assert result.seat == 3
        win = result.followup
        assert isinstance(win, WinResult)
        assert win.type == RoundResultType.DISCARD_WIN
        assert win.payer_seat == 0
        assert win.winning_tile == CLAIMED
        assert game_state.round_state.phase == RoundPhase.FINISHED
        assert game_state.round_result == win

    def test_discard_win_payment(self):
        game_state = _claim_state(SEAT3_WAITING)
        for seat, claim in ((1, ClaimType.PASS), (2, ClaimType.PASS), (3, ClaimType.WIN)):
            game_state, result = process_claim(game_state, seat, claim)
        win = result.followup
        # four chows with an honor pair: no faan, base 1, the discarder pays triple
        assert win.faan.faan == 0
        assert win.score_changes == {0: -3, 1: 0, 2: 0, 3: 3}
        assert [p.score for p in game_state.round_state.players] == [-3, 0, 0, 3]

    def test_equal_priority_goes_to_first_registered(self):
        episode = ClaimEpisode(
            episode_type=ClaimEpisodeType.DISCARD,
            tile_id=CLAIMED,
            from_seat=0,
            options=(
                ClaimOption(seat=1, claim_type=ClaimType.WIN),
                ClaimOption(seat=3, claim_type=ClaimType.WIN),
            ),
        )
        episode = record_claim_response(episode, 3, ClaimType.WIN)
        episode = record_claim_response(episode, 2, ClaimType.PASS)
        episode = record_claim_response(episode, 1, ClaimType.WIN)
        assert pick_winning_response(episode).seat == 3

    def test_all_pass_returns_none(self):
        episode = ClaimEpisode(episode_type=ClaimEpisodeType.DISCARD, tile_id=CLAIMED, from_seat=0, options=())
        for seat in (1, 2, 3):
            episode = record_claim_response(episode, seat, ClaimType.PASS)
        assert pick_winning_response(episode) is None


class TestValidateClaim:
    def test_discarder_cannot_claim(self):
        with pytest.raises(NotYourTurnError, match="own tile"):
            process_claim(_claim_state(), 0, ClaimType.PONG)

    def test_seat_cannot_answer_twice(self):
        game_state, _ = process_claim(_claim_state(), 1, ClaimType.PASS)
        with pytest.raises(NotYourTurnError, match="already responded"):
            process_claim(game_state, 1, ClaimType.CHOW)

    def test_auto_passed_seat_cannot_claim(self):
        with pytest.raises(NotYourTurnError):
            process_claim(_claim_state(), 3, ClaimType.PONG)

    def test_claim_without_option(self):
        with pytest.raises(InvalidMeldError, match="cannot claim"):
            process_claim(_claim_state(), 1, ClaimType.PONG)

    def test_no_open_episode(self):
        with pytest.raises(NotYourTurnError, match="no claim is open"):
            process_claim(create_game_state(), 1, ClaimType.PASS)

    def test_chow_selects_requested_option(self):
        episode = _claim_state().round_state.claim_episode
        assert validate_claim(episode, 1, ClaimType.CHOW, (tid(3, 0), tid(5, 0))) == (tid(3, 0), tid(5, 0))
        assert validate_claim(episode, 1, ClaimType.CHOW, (tid(2, 0), tid(3, 0), CLAIMED)) == (tid(2, 0), tid(3, 0))

    def test_chow_defaults_to_first_option(self):
        episode = _claim_state().round_state.claim_episode
        assert validate_claim(episode, 1, ClaimType.CHOW) == (tid(5, 0), tid(6, 0))

    def test_chow_with_unmatched_tiles(self):
        episode = _claim_state().round_state.claim_episode
        with pytest.raises(InvalidMeldError, match="do not match"):
            validate_claim(episode, 1, ClaimType.CHOW, (tid(2, 0), tid(6, 0)))

    def test_rejected_claim_leaves_state_untouched(self):
        game_state = _claim_state()
        with pytest.raises(InvalidMeldError):
            process_claim(game_state, 2, ClaimType.CHOW)
        assert game_state.round_state.claim_episode.pending_seats == [1, 2]


class TestResolution:
    def test_chow_claim_forms_meld(self):
        game_state = _claim_state()
        game_state, _ = process_claim(game_state, 1, ClaimType.CHOW, (tid(3, 0), tid(5, 0)))
        game_state, result = pass_claim(game_state, 2)
        assert result.claim_type == ClaimType.CHOW
        player = game_state.round_state.players[1]
        assert player.melds[0].tile_ids == (tid(3, 0), CLAIMED, tid(5, 0))
        assert player.effective_tile_count == 14
        assert game_state.round_state.current_player_seat == 1

    def test_everyone_passes(self):
        game_state = _claim_state()
        game_state, _ = pass_claim(game_state, 2)
        game_state, result = pass_claim(game_state, 1)
        assert result.claim_type == ClaimType.PASS
        assert result.next_seat == 1
        round_state = game_state.round_state
        assert round_state.phase == RoundPhase.PLAYING
        assert round_state.current_player_seat == 1
        assert round_state.claim_episode is None
        assert round_state.players[0].discards == (CLAIMED,)
