"""
MahjongGame: the action and query surface of a single game instance.

The facade holds one immutable MahjongGameState. Each action runs a pure
transition and only replaces the stored state (bumping `generation`) when
the transition succeeds, so a rejected action leaves the game untouched.
The class is not thread-safe: callers drive it one action at a time.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar
from uuid import uuid4

import structlog

from hkmahjong.logic import call_resolution, turn
from hkmahjong.logic.claims import check_claims
from hkmahjong.logic.enums import ClaimType, GameAction, RoundPhase
from hkmahjong.logic.exceptions import InvalidActionError, NotYourTurnError
from hkmahjong.logic.hand import can_form_winning_hand
from hkmahjong.logic.melds import find_kong_options
from hkmahjong.logic.rng import Shuffler, generate_seed, shuffle_tiles, validate_seed_hex
from hkmahjong.logic.round import advance_round, default_player_name, init_game
from hkmahjong.logic.settings import NUM_PLAYERS, GameSettings
from hkmahjong.logic.state import MahjongGameState, MahjongPlayer, MahjongRoundState, build_snapshot
from hkmahjong.logic.state_utils import update_game_with_round, update_player

if TYPE_CHECKING:
    from hkmahjong.logic.state import ClaimEpisode
    from hkmahjong.logic.types import (
        ActionOutcome,
        ClaimOption,
        ClaimRegisteredResult,
        ClaimResolution,
        DiscardResult,
        DrawGameResult,
        DrawResult,
        GameSnapshot,
        KongOption,
        KongRobberyResult,
        RoundResult,
        WinResult,
    )

logger = structlog.get_logger()

ResultT = TypeVar("ResultT")


class MahjongGame:
    """
    One four-seat Hong Kong mahjong game.

    `seed` drives the wall shuffle (a fresh one is generated when omitted);
    `shuffler` may be swapped to control wall order. Scores accumulate
    across rounds until `initialize_game` is called again.
    """

    def __init__(
        self,
        game_id: str | None = None,
        *,
        seed: str | None = None,
        settings: GameSettings | None = None,
        player_names: Sequence[str | None] = (),
        shuffler: Shuffler = shuffle_tiles,
    ) -> None:
        if len(player_names) > NUM_PLAYERS:
            raise ValueError(f"Expected at most {NUM_PLAYERS} player names, got {len(player_names)}")
        self.game_id = game_id or uuid4().hex
        self.seed = seed if seed is not None else generate_seed()
        validate_seed_hex(self.seed)
        self._shuffler = shuffler
        self._player_names: list[str | None] = list(player_names) + [None] * (NUM_PLAYERS - len(player_names))
        players = tuple(
            MahjongPlayer(seat=seat, name=name or default_player_name(seat, 0))
            for seat, name in enumerate(self._player_names)
        )
        self._state = MahjongGameState(
            game_id=self.game_id,
            round_state=MahjongRoundState(players=players),
            seed=self.seed,
            settings=settings or GameSettings(),
        )

    # --- Read-only accessors ---

    @property
    def state(self) -> MahjongGameState:
        return self._state

    @property
    def round_state(self) -> MahjongRoundState:
        return self._state.round_state

    @property
    def settings(self) -> GameSettings:
        return self._state.settings

    @property
    def phase(self) -> RoundPhase:
        return self._state.round_state.phase

    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def current_player_seat(self) -> int:
        return self._state.round_state.current_player_seat

    @property
    def claim_episode(self) -> ClaimEpisode | None:
        return self._state.round_state.claim_episode

    @property
    def round_result(self) -> RoundResult | None:
        return self._state.round_result

    def player(self, seat: int) -> MahjongPlayer:
        self._check_seat(seat)
        return self._state.round_state.players[seat]

    # --- Internals ---

    @staticmethod
    def _check_seat(seat: int) -> None:
        if not (0 <= seat < NUM_PLAYERS):
            raise NotYourTurnError(f"invalid seat {seat}, expected 0-{NUM_PLAYERS - 1}")

    def _commit(self, action: str, new_state: MahjongGameState) -> None:
        self._state = new_state.model_copy(update={"generation": self._state.generation + 1})
        logger.debug(
            "game action committed",
            game_id=self.game_id,
            action=action,
            generation=self._state.generation,
            phase=self._state.round_state.phase,
        )

    def _apply(
        self,
        action: str,
        transition: Callable[[MahjongGameState], tuple[MahjongGameState, ResultT]],
    ) -> ResultT:
        new_state, result = transition(self._state)
        self._commit(action, new_state)
        return result

    # --- Lifecycle ---

    def initialize_game(self, *, wall_tiles: Sequence[int] | None = None) -> GameSnapshot:
        """Deal the first round, resetting scores. `wall_tiles` fixes the wall order."""
        new_state = init_game(
            self.game_id,
            self.seed,
            player_names=self._player_names,
            settings=self.settings,
            shuffler=self._shuffler,
            wall_tiles=wall_tiles,
        )
        self._commit("initialize_game", new_state.model_copy(update={"generation": self._state.generation}))
        logger.info("game initialized", game_id=self.game_id)
        return self.snapshot()

    def next_round(self, *, wall_tiles: Sequence[int] | None = None) -> GameSnapshot:
        """Start the next round; only valid once the current one has finished."""
        new_state = advance_round(self._state, shuffler=self._shuffler, wall_tiles=wall_tiles)
        self._commit("next_round", new_state)
        return self.snapshot()

    def set_player_name(self, seat: int, name: str) -> None:
        """Rename a seat (e.g. when a human takes it over)."""
        self._check_seat(seat)
        self._player_names[seat] = name
        round_state = update_player(self._state.round_state, seat, name=name)
        self._commit("set_player_name", update_game_with_round(self._state, round_state))

    # --- Actions ---

    def draw_tile(self, seat: int) -> DrawResult | DrawGameResult:
        self._check_seat(seat)
        return self._apply("draw_tile", lambda state: turn.process_draw(state, seat))

    def discard_tile(self, seat: int, tile_id: int) -> DiscardResult:
        self._check_seat(seat)
        return self._apply("discard_tile", lambda state: turn.process_discard(state, seat, tile_id))

    def process_claim(
        self,
        seat: int,
        claim_type: ClaimType | str,
        tile_ids: Sequence[int] = (),
    ) -> ClaimRegisteredResult | ClaimResolution:
        """
        Register a claim response. `tile_ids` selects the chow to form (the
        two hand tiles, or all three including the claimed tile).
        """
        self._check_seat(seat)
        try:
            claim = ClaimType(claim_type)
        except ValueError:
            raise InvalidActionError(f"unknown claim type {claim_type!r}") from None
        return self._apply(
            "process_claim",
            lambda state: call_resolution.process_claim(state, seat, claim, tuple(tile_ids)),
        )

    def pass_claim(self, seat: int) -> ClaimRegisteredResult | ClaimResolution:
        self._check_seat(seat)
        return self._apply("pass_claim", lambda state: call_resolution.pass_claim(state, seat))

    def process_concealed_kong(self, seat: int, tile_ids: Sequence[int]) -> DrawResult | DrawGameResult:
        self._check_seat(seat)
        return self._apply(
            "process_concealed_kong",
            lambda state: turn.process_concealed_kong(state, seat, tuple(tile_ids)),
        )

    def process_add_kong(
        self,
        seat: int,
        tile_id: int,
        meld_index: int,
    ) -> DrawResult | DrawGameResult | KongRobberyResult:
        self._check_seat(seat)
        return self._apply(
            "process_add_kong",
            lambda state: turn.process_add_kong(state, seat, tile_id, meld_index),
        )

    def declare_win(self, seat: int) -> WinResult:
        self._check_seat(seat)
        return self._apply("declare_win", lambda state: turn.declare_win(state, seat))

    def handle_action(self, seat: int, action: GameAction, data: Mapping[str, Any] | None = None) -> ActionOutcome:
        """
        Dispatch a GameAction with its data payload to the matching method.

        Raises InvalidActionError when the payload is missing a required field.
        """
        payload = dict(data or {})

        def field(name: str) -> Any:
            if payload.get(name) is None:
                raise InvalidActionError(f"{action.value} requires field {name!r}")
            return payload[name]

        if action == GameAction.DRAW:
            return self.draw_tile(seat)
        if action == GameAction.DISCARD:
            return self.discard_tile(seat, int(field("tile_id")))
        if action == GameAction.CLAIM:
            return self.process_claim(seat, field("claim_type"), payload.get("tile_ids") or ())
        if action == GameAction.PASS:
            return self.pass_claim(seat)
        if action == GameAction.CONCEALED_KONG:
            return self.process_concealed_kong(seat, [int(t) for t in field("tile_ids")])
        if action == GameAction.ADD_KONG:
            return self.process_add_kong(seat, int(field("tile_id")), int(field("meld_index")))
        if action == GameAction.DECLARE_WIN:
            return self.declare_win(seat)
        raise InvalidActionError(f"unsupported action {action!r}")

    # --- Queries ---

    def check_claims(self, discarder_seat: int, tile_id: int) -> list[ClaimOption]:
        self._check_seat(discarder_seat)
        return check_claims(self._state.round_state, discarder_seat, tile_id)

    def claim_options_for(self, seat: int) -> list[ClaimOption]:
        """Options `seat` holds in the open claim episode (empty when none is open)."""
        episode = self._state.round_state.claim_episode
        if episode is None:
            return []
        return episode.options_for(seat)

    def find_kong_options(self, seat: int) -> list[KongOption]:
        return find_kong_options(self.player(seat))

    def check_win_condition(self, seat: int) -> bool:
        player = self.player(seat)
        return can_form_winning_hand(player.hand, player.melds, player.concealed_kongs)

    def can_declare_win(self, seat: int) -> bool:
        """Whether `seat` may declare a self-drawn win right now."""
        round_state = self._state.round_state
        if round_state.phase != RoundPhase.PLAYING or round_state.current_player_seat != seat:
            return False
        if self.player(seat).effective_tile_count != turn.HAND_SIZE_TO_ACT:
            return False
        return not turn.holds_claimed_tile(round_state, seat) and self.check_win_condition(seat)

    def get_player_view(self, seat: int) -> GameSnapshot:
        """Snapshot as `seat` sees it: only its own hand is revealed."""
        self._check_seat(seat)
        return build_snapshot(self._state, viewer_seat=seat)

    def snapshot(self) -> GameSnapshot:
        """Full snapshot with every hand revealed."""
        return build_snapshot(self._state)
