"""Centralized game settings for Hong Kong mahjong - configurable rule constants."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hkmahjong.logic.enums import AIDifficulty

NUM_PLAYERS = 4
MAX_AI_PLAYERS = 4


class GameSettings(BaseModel):
    """
    Configuration for game rules and automated player pacing.

    All fields default to standard Hong Kong rules.
    """

    model_config = ConfigDict(frozen=True)

    # --- Wall ---
    dead_wall_size: int = Field(default=14, ge=0, le=40)

    # --- Scoring ---
    faan_cap: int = Field(default=10, ge=0)
    limit_hand_faan: int = 10
    thirteen_orphans_faan: int = 13
    seven_pairs_faan: int = 4

    # --- Round Flow ---
    rounds_per_wind: int = Field(default=4, ge=1)
    action_log_size: int = Field(default=20, ge=0)

    # --- Automated Players ---
    ai_difficulty: AIDifficulty = AIDifficulty.MEDIUM
    ai_turn_delay_seconds: float = Field(default=1.0, ge=0)
    ai_discard_delay_seconds: float = Field(default=0.8, ge=0)
    ai_claim_delay_seconds: float = Field(default=1.5, ge=0)
