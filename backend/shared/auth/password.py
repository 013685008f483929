"""Password hashing for account registration and login.

``bcrypt`` is the production hasher; it is CPU-bound, so hashing and
verification run in a worker thread via anyio to keep the game loop
responsive. ``simple`` is an unsalted SHA-256 scheme with a ``simple$``
prefix, selected with ``GAME_PASSWORD_HASHER=simple`` in tests.

Accounts imported from Node.js-era state files (see
``bretton.session.legacy``) carry a bare SHA-256 hex digest. Both hashers
still accept those digests and report them through ``needs_rehash`` so that
login can upgrade the stored hash in place.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from typing import Literal, Protocol, runtime_checkable

import bcrypt
from anyio import to_thread

HasherName = Literal["bcrypt", "simple"]

_SIMPLE_PREFIX = "simple$"
_BCRYPT_PREFIX = "$2"
_LEGACY_DIGEST = re.compile(r"^[0-9a-f]{64}$")


def _sha256_hex(plain: str) -> str:
    return hashlib.sha256(plain.encode("utf-8")).hexdigest()


def is_legacy_hash(hashed: str) -> bool:
    return bool(_LEGACY_DIGEST.match(hashed))


def _verify_legacy(plain: str, hashed: str) -> bool:
    return hmac.compare_digest(_sha256_hex(plain), hashed)


@runtime_checkable
class PasswordHasher(Protocol):
    async def hash(self, plain: str) -> str: ...

    async def verify(self, plain: str, hashed: str) -> bool: ...

    def needs_rehash(self, hashed: str) -> bool: ...


class BcryptHasher:
    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    async def hash(self, plain: str) -> str:
        encoded = plain.encode("utf-8")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return await to_thread.run_sync(lambda: bcrypt.hashpw(encoded, salt).decode("utf-8"))

    async def verify(self, plain: str, hashed: str) -> bool:
        """Check ``plain`` against a bcrypt or legacy digest; anything else (e.g. ``simple$``) never verifies."""
        if is_legacy_hash(hashed):
            return _verify_legacy(plain, hashed)
        encoded_plain = plain.encode("utf-8")
        encoded_hash = hashed.encode("utf-8")
        try:
            return await to_thread.run_sync(lambda: bcrypt.checkpw(encoded_plain, encoded_hash))
        except ValueError:
            return False

    def needs_rehash(self, hashed: str) -> bool:
        return not hashed.startswith(_BCRYPT_PREFIX)


class SimpleHasher:
    """Instant hasher for tests. Not suitable for production use."""

    async def hash(self, plain: str) -> str:
        return _SIMPLE_PREFIX + _sha256_hex(plain)

    async def verify(self, plain: str, hashed: str) -> bool:
        if is_legacy_hash(hashed):
            return _verify_legacy(plain, hashed)
        if not hashed.startswith(_SIMPLE_PREFIX):
            return False
        return hmac.compare_digest(hashed, await self.hash(plain))

    def needs_rehash(self, hashed: str) -> bool:
        return not hashed.startswith(_SIMPLE_PREFIX)


def get_hasher(name: HasherName = "bcrypt") -> PasswordHasher:
    if name == "bcrypt":
        return BcryptHasher()
    if name == "simple":
        return SimpleHasher()
    raise ValueError(f"Unknown password hasher: {name!r}")
