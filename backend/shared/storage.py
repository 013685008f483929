"""Storage abstraction for the persisted game state.

The whole global state (users and rooms) is one JSON document. Writes go
through a temp file in the same directory followed by a rename, so a reader
never sees a truncated file. The file holds password hashes, so it is
written owner-only (0o600).
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()

_STATE_FILE_MODE = 0o600


class StateStorageError(OSError):
    """The state file exists but cannot be used."""


class StateStorage(Protocol):
    """Protocol for persisting the global state document."""

    def load(self) -> dict[str, Any] | None: ...

    def save(self, data: dict[str, Any]) -> None: ...


class LocalStateStorage:
    """Reads and atomically writes a single JSON state file."""

    def __init__(self, state_file: str | Path) -> None:
        self._path = Path(state_file)

    @property
    def path(self) -> Path:
        return self._path

    def check_usable(self) -> None:
        """Raise StateStorageError when the parent path exists but is not a directory."""
        for parent in self._path.parents:
            if parent.exists():
                if not parent.is_dir():
                    raise StateStorageError(f"State directory {parent} is not a directory")
                return

    def load(self) -> dict[str, Any] | None:
        """Return the stored document, or None when no state has been saved yet.

        Raises StateStorageError for a file that exists but cannot be read or
        parsed, so a later save never overwrites data we failed to read.
        """
        self.check_usable()
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise StateStorageError(f"Failed to load state from {self._path}") from exc
        if not isinstance(data, dict):
            raise StateStorageError(f"Expected JSON object at root in {self._path}")
        return data

    def save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(data, indent=2).encode("utf-8")

        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".state_", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
                os.fchmod(f.fileno(), _STATE_FILE_MODE)
            Path(tmp_path).replace(self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.debug("saved state", path=str(self._path), size=len(content))
