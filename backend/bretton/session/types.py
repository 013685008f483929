"""
Pydantic models for the session layer.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from bretton.logic.enums import GamePhase
from bretton.logic.state import RoomState  # noqa: TC001


class RoomInfo(BaseModel):
    """Room summary for the lobby listing."""

    room_id: str
    name: str
    host_id: str
    player_count: int
    max_players: int
    status: Literal["waiting", "playing"]
    phase: GamePhase
    created_at: float

    @classmethod
    def from_room(cls, room: RoomState) -> RoomInfo:
        return cls(
            room_id=room.room_id,
            name=room.room_name,
            host_id=room.host_id,
            player_count=len(room.players),
            max_players=room.max_players,
            status="playing" if room.game_started else "waiting",
            phase=room.phase,
            created_at=room.created_at,
        )
