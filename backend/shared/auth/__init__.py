"""Account model, password hashing and registration/login shared by the game server and scripts."""

from shared.auth.models import Role, User
from shared.auth.password import BcryptHasher, PasswordHasher, SimpleHasher, get_hasher
from shared.auth.repository import StateUserRepository, UserRepository
from shared.auth.service import AuthError, AuthService, resolve_initial_role

__all__ = [
    "AuthError",
    "AuthService",
    "BcryptHasher",
    "PasswordHasher",
    "Role",
    "SimpleHasher",
    "StateUserRepository",
    "User",
    "UserRepository",
    "get_hasher",
    "resolve_initial_role",
]
