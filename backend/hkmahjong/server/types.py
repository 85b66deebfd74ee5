from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hkmahjong.logic.enums import AIDifficulty
from hkmahjong.logic.settings import MAX_AI_PLAYERS, NUM_PLAYERS


class CreateGameRequest(BaseModel):
    """Body of POST /games. Seats without a name get an automatic one."""

    model_config = ConfigDict(extra="forbid")

    game_id: str | None = Field(default=None, min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9_-]+$")
    num_ai_players: int = Field(default=3, ge=0, le=MAX_AI_PLAYERS, strict=True)
    player_names: list[str] = Field(default_factory=list, max_length=NUM_PLAYERS)
    seed: str | None = Field(default=None, pattern=r"^[0-9a-fA-F]{192}$")
    ai_difficulty: AIDifficulty | None = None

    @model_validator(mode="after")
    def _validate_player_names(self) -> Self:
        for name in self.player_names:
            if not name.strip() or len(name) > 50:
                raise ValueError("player names must be 1-50 characters")
        if len(set(self.player_names)) != len(self.player_names):
            raise ValueError("Duplicate player name in player_names")
        return self
