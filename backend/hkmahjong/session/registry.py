"""Explicit registry of running game instances, owned by the server."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hkmahjong.session.models import Game

logger = structlog.get_logger()


class GameRegistry:
    """Game id -> Game. Not a singleton: each app (or test) creates its own."""

    def __init__(self, max_games: int | None = None) -> None:
        self._games: dict[str, Game] = {}
        self._max_games = max_games

    def __len__(self) -> int:
        return len(self._games)

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._games

    def __iter__(self) -> Iterator[Game]:
        return iter(list(self._games.values()))

    @property
    def is_full(self) -> bool:
        return self._max_games is not None and len(self._games) >= self._max_games

    def get(self, game_id: str) -> Game | None:
        return self._games.get(game_id)

    def add(self, game: Game) -> None:
        """Register a game. Raises ValueError on a duplicate id or when at capacity."""
        if game.game_id in self._games:
            raise ValueError(f"game {game.game_id} already exists")
        if self.is_full:
            raise ValueError(f"registry is full ({self._max_games} games)")
        self._games[game.game_id] = game
        logger.info("game registered", game_id=game.game_id, games=len(self._games))

    def remove(self, game_id: str) -> Game | None:
        game = self._games.pop(game_id, None)
        if game is not None:
            logger.info("game removed", game_id=game_id, games=len(self._games))
        return game

    def describe(self) -> list[dict[str, object]]:
        """Summary of every game for the HTTP listing."""
        return [
            {
                "game_id": game.game_id,
                "phase": game.game.phase.value,
                "round_number": game.game.state.round_number,
                "players": game.player_names,
                "ai_seats": sorted(game.controller.ai_player_seats),
                "vacant_seats": game.vacant_seats,
            }
            for game in self._games.values()
        ]
