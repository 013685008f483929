"""Transport-independent connection interface used by the router and session layer."""

from abc import ABC, abstractmethod
from typing import Any

from bretton.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client connection speaking MessagePack frames.

    The WebSocket endpoint and the test MockConnection both implement it,
    so session logic never touches Starlette objects directly.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str: ...

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
