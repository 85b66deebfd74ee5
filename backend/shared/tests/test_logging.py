import json
import logging
import sys
from enum import Enum

import pytest
import structlog

from shared.logging import resolve_json_mode, resolve_log_level, serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def file_logging(monkeypatch):
    """setup_logging skips the log file under pytest; pretend it is not loaded."""
    monkeypatch.delitem(sys.modules, "pytest")


class TestSetupLogging:
    def test_stdout_only_under_tests(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert setup_logging(log_dir=tmp_path) is None
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert root.level == logging.INFO

    def test_repeated_calls_replace_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_explicit_level(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.usefixtures("file_logging")
    def test_writes_json_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "nested")
        assert log_path is not None
        assert log_path.parent == tmp_path / "nested"

        structlog.contextvars.bind_contextvars(game_id="g1")
        structlog.get_logger("test").info("round ended", seat=2)

        entry = json.loads(log_path.read_text().strip().splitlines()[-1])
        assert entry["event"] == "round ended"
        assert entry["game_id"] == "g1"
        assert entry["seat"] == 2
        assert entry["level"] == "info"


class TestResolveEnv:
    @pytest.mark.parametrize(("value", "expected"), [("", False), ("console", False), ("JSON", True)])
    def test_json_mode(self, monkeypatch, value, expected):
        monkeypatch.setenv("LOG_FORMAT", value)
        assert resolve_json_mode() is expected

    def test_bad_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            resolve_json_mode()

    def test_bad_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "loud")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            resolve_log_level()


class TestSerializeEnums:
    class _Phase(Enum):
        CLAIM = "claim"

    def test_top_level_and_nested(self):
        event_dict = {
            "phase": self._Phase.CLAIM,
            "changes": {"phase": self._Phase.CLAIM, "seat": 1},
            "phases": [self._Phase.CLAIM],
            "event": "x",
        }
        assert serialize_enums(None, "info", event_dict) == {
            "phase": "claim",
            "changes": {"phase": "claim", "seat": 1},
            "phases": ["claim"],
            "event": "x",
        }
