"""
Heuristic automated player.

Scores each tile by how useful it is to keep (pairs and triplets, run
neighbours, middle values, paired honors) and discards among the least
useful ones. Claim and kong decisions are mostly greedy with some
randomness. Decisions are returned as AIDecision objects; the player never
touches game state itself.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from hkmahjong.logic.enums import AIDecisionType, AIDifficulty, ClaimType
from hkmahjong.logic.tiles import (
    hand_to_kind_counts,
    is_dragon_kind,
    is_honor_kind,
    is_suited_kind,
    sort_tiles,
    tile_kind,
)
from hkmahjong.logic.types import AIDecision

if TYPE_CHECKING:
    from hkmahjong.logic.state import MahjongPlayer
    from hkmahjong.logic.types import ClaimOption, KongOption

BASE_TILE_SCORE = 50
TRIPLET_BONUS = 80
PAIR_BONUS = 40
RUN_MIDDLE_BONUS = 60
RUN_END_BONUS = 55
ADJACENT_BONUS = 30
GAP_BONUS = 15
TERMINAL_PENALTY = 5
MIDDLE_VALUE_BONUS = 5
ISOLATED_HONOR_PENALTY = 10
DRAGON_BONUS = 10

# how many of the lowest-scored tiles a discard is picked from
DISCARD_CANDIDATES = {
    AIDifficulty.EASY: 5,
    AIDifficulty.MEDIUM: 3,
    AIDifficulty.HARD: 1,
}

KONG_CLAIM_THRESHOLD = 0.2
STRONG_HAND = 0.6
PONG_CLAIM_STRONG_THRESHOLD = 0.3
PONG_CLAIM_WEAK_THRESHOLD = 0.5
CHOW_HAND_STRENGTH = 0.5
CHOW_CLAIM_THRESHOLD = 0.4
KONG_DECLARE_THRESHOLD = 0.15


def _has_neighbour(kinds: set[int], kind: int, offset: int) -> bool:
    value = kind % 9 + offset
    return 0 <= value <= 8 and kind + offset in kinds


def score_tiles(hand: Sequence[int]) -> list[tuple[int, int]]:
    """(tile_id, keep score) for each tile in display order; higher is more worth keeping."""
    ordered = sort_tiles(hand)
    counts = hand_to_kind_counts(ordered)
    kinds = {tile_kind(t) for t in ordered}
    scores: list[tuple[int, int]] = []

    for tile_id in ordered:
        kind = tile_kind(tile_id)
        count = counts[kind]
        score = BASE_TILE_SCORE
        if count >= 3:
            score += TRIPLET_BONUS
        elif count == 2:
            score += PAIR_BONUS

        if is_suited_kind(kind):
            lower2 = _has_neighbour(kinds, kind, -2)
            lower1 = _has_neighbour(kinds, kind, -1)
            upper1 = _has_neighbour(kinds, kind, 1)
            upper2 = _has_neighbour(kinds, kind, 2)
            if lower1 and upper1:
                score += RUN_MIDDLE_BONUS
            elif (lower1 and lower2) or (upper1 and upper2):
                score += RUN_END_BONUS
            elif lower1 or upper1:
                score += ADJACENT_BONUS
            elif lower2 or upper2:
                score += GAP_BONUS

            value = kind % 9 + 1
            if value in (1, 9):
                score -= TERMINAL_PENALTY
            if 3 <= value <= 7:
                score += MIDDLE_VALUE_BONUS

        if is_honor_kind(kind):
            if count == 1:
                score -= ISOLATED_HONOR_PENALTY
            if is_dragon_kind(kind):
                score += DRAGON_BONUS

        scores.append((tile_id, score))
    return scores


def evaluate_hand_strength(player: MahjongPlayer) -> float:
    """Rough 0..1 estimate of how developed a hand is."""
    counts = hand_to_kind_counts(player.hand)
    trips = sum(1 for c in counts if c >= 3)
    pairs = sum(1 for c in counts if c == 2)
    kinds = {tile_kind(t) for t in player.hand}
    sequence_parts = sum(
        1 for t in player.hand if is_suited_kind(tile_kind(t)) and _has_neighbour(kinds, tile_kind(t), 1)
    )
    strength = player.total_melds * 0.25 + trips * 0.2 + pairs * 0.1 + sequence_parts * 0.05
    return min(1.0, strength)


class AIPlayer:
    """
    Heuristic decision-maker for one seat.

    `rng` supplies all randomness so games can be replayed; pass a seeded
    random.Random for deterministic behaviour.
    """

    def __init__(
        self,
        seat: int,
        difficulty: AIDifficulty = AIDifficulty.MEDIUM,
        rng: random.Random | None = None,
    ) -> None:
        self.seat = seat
        self.difficulty = difficulty
        self._rng = rng or random.Random()  # noqa: S311

    def choose_discard(self, player: MahjongPlayer) -> AIDecision:
        ranked = sorted(score_tiles(player.hand), key=lambda item: item[1])
        if not ranked:
            raise ValueError(f"seat {self.seat} has no tiles to discard")
        candidates = min(DISCARD_CANDIDATES[self.difficulty], len(ranked))
        tile_id, _score = ranked[self._rng.randrange(candidates)]
        return AIDecision(decision_type=AIDecisionType.DISCARD, tile_ids=(tile_id,))

    def decide_claim(self, options: Sequence[ClaimOption], player: MahjongPlayer) -> AIDecision:
        """
        Pick a response to a claimable tile.

        Always wins when possible; otherwise kong, pong, then chow, each
        taken with a probability that depends on difficulty and hand shape.
        """
        by_type: dict[ClaimType, ClaimOption] = {}
        for option in options:
            by_type.setdefault(option.claim_type, option)

        if ClaimType.WIN in by_type:
            return AIDecision(decision_type=AIDecisionType.WIN)

        kong = by_type.get(ClaimType.KONG)
        if kong is not None and (self.difficulty == AIDifficulty.HARD or self._rng.random() > KONG_CLAIM_THRESHOLD):
            return AIDecision(decision_type=AIDecisionType.KONG, tile_ids=kong.tile_ids)

        pong = by_type.get(ClaimType.PONG)
        if pong is not None:
            strong = evaluate_hand_strength(player) > STRONG_HAND or self.difficulty == AIDifficulty.EASY
            threshold = PONG_CLAIM_STRONG_THRESHOLD if strong else PONG_CLAIM_WEAK_THRESHOLD
            if self._rng.random() > threshold:
                return AIDecision(decision_type=AIDecisionType.PONG, tile_ids=pong.tile_ids)

        chow = by_type.get(ClaimType.CHOW)
        if (
            chow is not None
            and (player.total_melds >= 1 or evaluate_hand_strength(player) > CHOW_HAND_STRENGTH)
            and self._rng.random() > CHOW_CLAIM_THRESHOLD
        ):
            return AIDecision(decision_type=AIDecisionType.CHOW, tile_ids=chow.tile_ids)

        return AIDecision(decision_type=AIDecisionType.PASS)

    def decide_kong(self, options: Sequence[KongOption]) -> AIDecision | None:
        """Declare the first available kong most of the time; None to skip."""
        if not options:
            return None
        if self._rng.random() > KONG_DECLARE_THRESHOLD:
            option = options[0]
            return AIDecision(decision_type=AIDecisionType.KONG, tile_ids=option.tile_ids, meld_index=option.meld_index)
        return None
