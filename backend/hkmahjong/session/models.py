from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from hkmahjong.logic.settings import MAX_AI_PLAYERS, NUM_PLAYERS

if TYPE_CHECKING:
    from hkmahjong.logic.ai_player_controller import AIPlayerController
    from hkmahjong.logic.game import MahjongGame
    from hkmahjong.messaging.protocol import ConnectionProtocol


def validate_num_ai_players(num_ai_players: int) -> None:
    """Validate num_ai_players is within the allowed range (0 to MAX_AI_PLAYERS)."""
    if not (0 <= num_ai_players <= MAX_AI_PLAYERS):
        raise ValueError(f"num_ai_players must be 0-{MAX_AI_PLAYERS}, got {num_ai_players}")


@dataclass
class Player:
    """A connected human in the session layer.

    `game_id` and `seat` are set on join and cleared on leave.
    """

    connection: ConnectionProtocol
    name: str
    game_id: str | None = None
    seat: int | None = None

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id


@dataclass
class Game:
    """
    A running game instance plus the humans attached to it.

    Seats not held by the AI controller belong to humans; a human seat with
    no connected player is vacant and the game waits for someone to join it.
    """

    game_id: str
    game: MahjongGame
    controller: AIPlayerController
    num_ai_players: int = 3
    players: dict[str, Player] = field(default_factory=dict)
    # seat -> key of the last prompt sent, so unchanged prompts are not repeated
    last_prompts: dict[int, tuple[Any, ...]] = field(default_factory=dict)
    created_at: float = field(default_factory=time.monotonic)
    # monotonic time of the last join or committed action
    last_activity: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        validate_num_ai_players(self.num_ai_players)

    @property
    def player_names(self) -> list[str]:
        return [p.name for p in self.players.values()]

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return self.player_count == 0

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def idle_seconds(self, now: float) -> float:
        return now - self.last_activity

    def player_at_seat(self, seat: int) -> Player | None:
        for player in self.players.values():
            if player.seat == seat:
                return player
        return None

    @property
    def vacant_seats(self) -> list[int]:
        """Human seats nobody has joined yet."""
        taken = {p.seat for p in self.players.values()}
        ai_seats = self.controller.ai_player_seats
        return [seat for seat in range(NUM_PLAYERS) if seat not in taken and seat not in ai_seats]
