import pytest

from hkmahjong.session.manager import SessionManager
from hkmahjong.session.registry import GameRegistry


@pytest.fixture
async def manager():
    manager = SessionManager(GameRegistry(max_games=10), ai_delay_override=0)
    yield manager
    manager.cancel_all_pending_actions()
