from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from bretton.messaging.types import (
    ErrorMessage,
    PingMessage,
    SessionErrorCode,
    action_for,
    parse_client_message,
)

if TYPE_CHECKING:
    from bretton.messaging.protocol import ConnectionProtocol
    from bretton.session.manager import SessionManager

logger = structlog.get_logger()


class MessageRouter:
    """
    Routes incoming messages to the session manager.

    Parsing failures are answered here with an ``error`` frame; everything
    that parses becomes exactly one session action.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
            )
            return

        if isinstance(message, PingMessage):
            await self._session_manager.handle_ping(connection)
            return
        await self._session_manager.handle_action(connection, action_for(message), message)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)
        await self._session_manager.send_room_list(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)
        self._session_manager.unregister_connection(connection)
