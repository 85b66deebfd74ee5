"""
AI player controller as a pure decision-maker.

Maps automated seats to their AIPlayer and turns each seat's situation
into one (GameAction, data) pair using only the game's query surface.
Orchestration (timing, locking, applying the action) is handled by the
session layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from hkmahjong.logic.enums import AIDecisionType, ClaimType, GameAction, RoundPhase

if TYPE_CHECKING:
    from hkmahjong.logic.ai_player import AIPlayer
    from hkmahjong.logic.game import MahjongGame

HAND_SIZE_BEFORE_DRAW = 13


class AIPlayerController:
    """
    Decision-maker for AI players.

    Provides methods to check AI player identity and get AI player decisions
    for turn actions and claim responses. Does not orchestrate game flow.
    """

    def __init__(self, ai_players: dict[int, AIPlayer]) -> None:
        self._ai_players = ai_players

    def _get_ai_player(self, seat: int) -> AIPlayer | None:
        return self._ai_players.get(seat)

    def is_ai_player(self, seat: int) -> bool:
        """Check if a seat is occupied by an AI player."""
        return seat in self._ai_players

    def add_ai_player(self, seat: int, ai_player: AIPlayer) -> None:
        """Register an AI player at a seat (e.g. when a human leaves)."""
        self._ai_players[seat] = ai_player

    def remove_ai_player(self, seat: int) -> None:
        """Remove an AI player from a seat (a human took it over)."""
        self._ai_players.pop(seat, None)

    @property
    def ai_player_seats(self) -> set[int]:
        """Return the set of seats occupied by AI players."""
        return set(self._ai_players.keys())

    def get_turn_action(self, seat: int, game: MahjongGame) -> tuple[GameAction, dict[str, Any]] | None:
        """
        Get the AI player's next turn action as (GameAction, data).

        Draws when holding 13 tiles; otherwise wins if possible, then
        maybe declares a kong, then discards. Returns None if the seat is
        not an AI player or it is not the seat's turn.
        """
        ai_player = self._get_ai_player(seat)
        if ai_player is None or game.phase != RoundPhase.PLAYING or game.current_player_seat != seat:
            return None

        player = game.player(seat)
        if player.effective_tile_count == HAND_SIZE_BEFORE_DRAW:
            return GameAction.DRAW, {}

        if game.can_declare_win(seat):
            return GameAction.DECLARE_WIN, {}

        kong = ai_player.decide_kong(game.find_kong_options(seat))
        if kong is not None:
            if kong.meld_index is None:
                return GameAction.CONCEALED_KONG, {"tile_ids": list(kong.tile_ids)}
            return GameAction.ADD_KONG, {"tile_id": kong.tile_ids[0], "meld_index": kong.meld_index}

        discard = ai_player.choose_discard(player)
        return GameAction.DISCARD, {"tile_id": discard.tile_ids[0]}

    def get_claim_response(self, seat: int, game: MahjongGame) -> tuple[GameAction, dict[str, Any]] | None:
        """
        Get the AI player's response to the open claim episode as (GameAction, data).

        Returns None if the seat is not an AI player or owes no response.
        """
        ai_player = self._get_ai_player(seat)
        episode = game.claim_episode
        if ai_player is None or episode is None or seat not in episode.pending_seats:
            return None

        decision = ai_player.decide_claim(game.claim_options_for(seat), game.player(seat))
        if decision.decision_type == AIDecisionType.PASS:
            return GameAction.PASS, {}
        return GameAction.CLAIM, {
            "claim_type": ClaimType(decision.decision_type.value),
            "tile_ids": list(decision.tile_ids),
        }
