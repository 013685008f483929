import asyncio
from typing import Any
from uuid import uuid4

from bretton.messaging.encoder import decode, encode
from bretton.messaging.protocol import ConnectionProtocol

# Room snapshots can exceed the inbound frame limit; the mock decodes outbound frames.
_OUTBOUND_BUFFER_LEN = 4 * 1024 * 1024


class MockConnection(ConnectionProtocol):
    """In-memory connection recording every message the server sends."""

    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or str(uuid4())
        self._inbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._outbox: list[dict[str, Any]] = []
        self._closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return self._outbox.copy()

    @property
    def is_closed(self) -> bool:
        return self._closed

    def messages_of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self._outbox if m.get("type") == message_type]

    def last_result(self) -> dict[str, Any]:
        """Most recent action_result sent to this connection."""
        return self.messages_of_type("action_result")[-1]

    def clear(self) -> None:
        self._outbox.clear()

    async def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Connection is closed")
        self._outbox.append(decode(data, max_buffer_len=_OUTBOUND_BUFFER_LEN))

    async def receive_bytes(self) -> bytes:
        if self._closed:
            raise RuntimeError("Connection is closed")
        return await self._inbox.get()

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._closed = True
        self.close_code = code
        self.close_reason = reason

    async def simulate_receive(self, data: dict[str, Any]) -> None:
        await self._inbox.put(encode(data))
