"""User account model for authentication."""

from enum import StrEnum

from pydantic import BaseModel, Field


class Role(StrEnum):
    PLAYER = "player"
    SUPERADMIN = "superadmin"


class User(BaseModel, frozen=True):
    """User account stored in the global state."""

    username: str
    password_hash: str
    player_id: str = Field(pattern=r"^player_[0-9a-z_]+$")  # older accounts: player_<ms>_<base36>
    role: Role = Role.PLAYER
    created_at: float  # time.time()

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN
