"""Import accounts from state files written by the Node.js edition of the game.

Both of its layouts (single-room ``game-state.json`` and the multi-room
file) keep accounts under ``users`` as ``username -> {password, playerId,
createdAt, role?}``. ``password`` is a bare SHA-256 hex digest, which the
password hashers still verify and replace on the next successful login.
``createdAt`` is in milliseconds.

Rooms and in-progress games are not imported: only the accounts carry over.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.auth.models import Role, User
from shared.auth.password import is_legacy_hash
from shared.auth.repository import StateUserRepository
from shared.auth.service import USERNAME_MAX_LENGTH, resolve_initial_role

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from bretton.session.models import GlobalState

logger = structlog.get_logger()


class LegacyImportError(ValueError):
    """The legacy document cannot be imported."""


class LegacyUser(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    password: str
    player_id: str = Field(alias="playerId")
    created_at_ms: float = Field(alias="createdAt", ge=0)
    role: Role = Role.PLAYER


@dataclass
class ImportReport:
    imported: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)  # username -> reason
    rooms_ignored: int = 0


def _parse_users(data: Mapping[str, Any]) -> dict[str, LegacyUser]:
    raw_users = data.get("users") or {}
    if not isinstance(raw_users, dict):
        raise LegacyImportError("Expected 'users' to be a JSON object")

    users: dict[str, LegacyUser] = {}
    for username, record in raw_users.items():
        try:
            users[username] = LegacyUser.model_validate(record)
        except ValidationError as exc:
            raise LegacyImportError(f"Invalid user record for key '{username}'") from exc
    return users


async def import_legacy_users(
    data: Mapping[str, Any],
    state: GlobalState,
    *,
    superadmin_usernames: Iterable[str] = (),
) -> ImportReport:
    """Merge legacy accounts into ``state.users``.

    Existing accounts win: a username that is already registered (compared
    case-insensitively) or a player id that is already in use is skipped, so
    running the import twice changes nothing. Raises LegacyImportError when
    any record is malformed, before anything is added.
    """
    legacy_users = _parse_users(data)
    repo = StateUserRepository(state.users)
    known_ids = {user.player_id for user in state.users.values()}
    report = ImportReport(rooms_ignored=len(data.get("rooms") or {}) + (1 if data.get("players") else 0))

    for username, legacy in legacy_users.items():
        if not username or len(username) > USERNAME_MAX_LENGTH:
            report.skipped[username] = "username length"
            continue
        if not is_legacy_hash(legacy.password):
            report.skipped[username] = "unrecognised password hash"
            continue
        if await repo.get_by_username(username) is not None:
            report.skipped[username] = "already registered"
            continue
        if legacy.player_id in known_ids:
            report.skipped[username] = "player id in use"
            continue

        role = legacy.role
        if resolve_initial_role(username, superadmin_usernames) == Role.SUPERADMIN:
            role = Role.SUPERADMIN
        try:
            user = User(
                username=username,
                password_hash=legacy.password,
                player_id=legacy.player_id,
                role=role,
                created_at=legacy.created_at_ms / 1000,
            )
        except ValidationError:
            report.skipped[username] = "invalid player id"
            continue
        await repo.create_user(user)
        known_ids.add(user.player_id)
        report.imported.append(username)

    logger.info(
        "imported legacy accounts",
        imported=len(report.imported),
        skipped=len(report.skipped),
        rooms_ignored=report.rooms_ignored,
    )
    return report
