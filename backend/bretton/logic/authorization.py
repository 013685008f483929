"""Role checks shared by every guarded room transition and registry action."""

from dataclasses import dataclass

from bretton.logic.exceptions import AuthorizationError
from shared.auth.models import Role

_ROLE_RANK = {Role.PLAYER: 0, Role.SUPERADMIN: 1}


@dataclass(frozen=True)
class Actor:
    """Identity of the user performing an action, taken from the login binding."""

    player_id: str
    username: str
    role: Role = Role.PLAYER

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN


def require_role(actor: Actor, role: Role, *, owner_id: str | None = None) -> None:
    """Raise AuthorizationError unless the actor holds ``role`` or owns the resource.

    Roles are ranked, so a superadmin satisfies a player requirement.
    ``owner_id`` lets the owner of a resource (e.g. a room's host) pass
    regardless of role.
    """
    if owner_id is not None and actor.player_id == owner_id:
        return
    if _ROLE_RANK[actor.role] < _ROLE_RANK[role]:
        raise AuthorizationError(f"{role} role required")
