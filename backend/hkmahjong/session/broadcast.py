"""Shared broadcast utility for sending messages to player groups."""

import contextlib
from typing import Any


async def broadcast_to_players(
    players: dict[str, Any],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> None:
    """Send a message to every player except the excluded connection.

    Iterates over a copy since a leave may mutate the dict while a send is awaited.
    """
    for player in list(players.values()):
        if player.connection_id == exclude_connection_id:
            continue
        with contextlib.suppress(RuntimeError, OSError):
            await player.connection.send_message(message)
