from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from hkmahjong.tests.mocks.connection import MockConnection

if TYPE_CHECKING:
    from hkmahjong.session.manager import SessionManager
    from hkmahjong.session.models import Game

MAX_SETTLE_ITERATIONS = 20000


async def join_players(
    manager: SessionManager,
    game: Game,
    names: list[str],
    *,
    seats: list[int | None] | None = None,
) -> list[MockConnection]:
    """Connect and join one MockConnection per name, in order."""
    seats = seats or [None] * len(names)
    connections: list[MockConnection] = []
    for name, seat in zip(names, seats, strict=True):
        conn = MockConnection(game_id=game.game_id)
        manager.register_connection(conn)
        await manager.join_game(conn, name, seat)
        connections.append(conn)
    return connections


async def settle(manager: SessionManager, game_id: str) -> None:
    """Let scheduled automated actions run until the game waits on a human or the round ends."""
    for _ in range(MAX_SETTLE_ITERATIONS):
        if not manager.scheduler.pending_seats(game_id):
            return
        await asyncio.sleep(0)
    raise AssertionError("automated players did not settle")
