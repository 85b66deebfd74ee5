"""
Cancellable, generation-stamped automated actions.

Each pending automated action is one asyncio task keyed by (game id, seat).
The task carries the game generation it was scheduled against; the
callback compares it with the live generation and drops stale work.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger()

# (game_id, seat, generation) -> Awaitable[None]
AIActionCallback = Callable[[str, int, int], Awaitable[None]]


class AIActionScheduler:
    """Run one delayed automated action per (game, seat)."""

    def __init__(self, on_fire: AIActionCallback) -> None:
        self._on_fire = on_fire
        self._tasks: dict[tuple[str, int], asyncio.Task[None]] = {}

    def schedule(self, game_id: str, seat: int, generation: int, delay: float) -> None:
        """Schedule an action for a seat, replacing any task already pending for it."""
        self.cancel_seat(game_id, seat)
        key = (game_id, seat)
        self._tasks[key] = asyncio.create_task(self._run(key, generation, delay))

    def has_pending(self, game_id: str, seat: int) -> bool:
        task = self._tasks.get((game_id, seat))
        return task is not None and not task.done()

    def pending_seats(self, game_id: str) -> set[int]:
        return {seat for (gid, seat), task in self._tasks.items() if gid == game_id and not task.done()}

    def cancel_seat(self, game_id: str, seat: int) -> None:
        task = self._tasks.pop((game_id, seat), None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_game(self, game_id: str) -> None:
        for gid, seat in [key for key in self._tasks if key[0] == game_id]:
            self.cancel_seat(gid, seat)

    def cancel_all(self) -> None:
        for gid, seat in list(self._tasks):
            self.cancel_seat(gid, seat)

    async def _run(self, key: tuple[str, int], generation: int, delay: float) -> None:
        game_id, seat = key
        try:
            await asyncio.sleep(delay)
            # unregister first: the callback may schedule the same seat again
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]
            await self._on_fire(game_id, seat, generation)
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("automated action failed", game_id=game_id, seat=seat)
