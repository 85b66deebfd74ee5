"""Transport-independent client connection interface."""

from abc import ABC, abstractmethod
from typing import Any

from hkmahjong.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One connected client.

    The router and session manager only talk to this interface, so they can
    be driven in tests by an in-memory connection.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""

    @property
    @abstractmethod
    def game_id(self) -> str:
        """Game the client connected to (from /ws/{game_id})."""

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        return decode(await self.receive_bytes())
