"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from hkmahjong.logic.enums import AIDifficulty
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "HKMJ_"}

    max_games: int = Field(default=100, ge=1)
    # idle seconds before a game is closed and removed; 0 disables the reaper
    game_ttl_seconds: int = Field(default=3600, ge=0)
    log_dir: str = Field(default="backend/logs/hkmahjong", min_length=1)
    cors_origins: list[str] = ["http://localhost:8712"]
    default_ai_difficulty: AIDifficulty = AIDifficulty.MEDIUM
    # fixed think time for every automated action; None uses the per-game delays
    ai_delay_override: float | None = Field(default=None, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
