import pytest
from pydantic import ValidationError

from hkmahjong.logic.enums import AIDifficulty
from hkmahjong.server.settings import GameServerSettings
from hkmahjong.server.types import CreateGameRequest
from hkmahjong.tests.conftest import FIXED_SEED


class TestGameServerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("HKMJ_AI_DELAY_OVERRIDE", raising=False)
        settings = GameServerSettings()
        assert settings.max_games == 100
        assert settings.default_ai_difficulty == AIDifficulty.MEDIUM
        assert settings.ai_delay_override is None
        assert settings.game_ttl_seconds == 3600

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("HKMJ_CORS_ORIGINS", '["http://a.com","http://b.com"]')
        assert GameServerSettings().cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("HKMJ_CORS_ORIGINS", "http://a.com,http://b.com")
        assert GameServerSettings().cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_empty_rejected(self, monkeypatch):
        monkeypatch.setenv("HKMJ_CORS_ORIGINS", "")
        with pytest.raises(ValidationError, match="cors_origins"):
            GameServerSettings()

    def test_difficulty_from_env(self, monkeypatch):
        monkeypatch.setenv("HKMJ_DEFAULT_AI_DIFFICULTY", "hard")
        assert GameServerSettings().default_ai_difficulty == AIDifficulty.HARD

    def test_max_games_must_be_positive(self):
        with pytest.raises(ValidationError, match="max_games"):
            GameServerSettings(max_games=0)

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValidationError, match="game_ttl_seconds"):
            GameServerSettings(game_ttl_seconds=-1)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError, match="ai_delay_override"):
            GameServerSettings(ai_delay_override=-1)

    def test_log_dir_empty_rejected(self):
        with pytest.raises(ValidationError, match="log_dir"):
            GameServerSettings(log_dir="")


class TestCreateGameRequest:
    def test_defaults(self):
        request = CreateGameRequest()
        assert request.num_ai_players == 3
        assert request.player_names == []
        assert request.game_id is None

    def test_full_request(self):
        request = CreateGameRequest(
            game_id="table-1",
            num_ai_players=2,
            player_names=["Alice", "Bob"],
            seed=FIXED_SEED,
            ai_difficulty="easy",
        )
        assert request.ai_difficulty == AIDifficulty.EASY

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_ai_players": -1},
            {"num_ai_players": 5},
            {"game_id": ""},
            {"game_id": "a/b"},
            {"seed": "ab"},
            {"player_names": ["a", "b", "c", "d", "e"]},
            {"player_names": ["  "]},
            {"player_names": ["Alice", "Alice"]},
        ],
    )
    def test_rejects(self, kwargs):
        with pytest.raises(ValidationError):
            CreateGameRequest(**kwargs)
