"""Import accounts from a Node.js-era state file into the game state.

Usage: uv run python bin/import-legacy-state.py legacy_file [state_file]

state_file defaults to GAME_STATE_FILE. Accounts keep their player ids and
passwords; each password hash is upgraded the first time its owner logs in.
Rooms are not carried over. Stop the server first: a running server
overwrites the file on its next save.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from bretton.server.settings import GameServerSettings
from bretton.session.legacy import LegacyImportError, import_legacy_users
from bretton.session.models import GlobalState
from shared.storage import LocalStateStorage, StateStorageError


async def main() -> None:
    if len(sys.argv) not in (2, 3):
        print(f"Usage: {sys.argv[0]} legacy_file [state_file]")
        sys.exit(1)

    settings = GameServerSettings()
    legacy = LocalStateStorage(sys.argv[1])
    storage = LocalStateStorage(sys.argv[2] if len(sys.argv) == 3 else settings.state_file)  # noqa: PLR2004
    try:
        legacy_data = legacy.load()
        data = storage.load()
    except StateStorageError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if legacy_data is None:
        print(f"No legacy state at {legacy.path}")
        sys.exit(1)

    state = GlobalState() if data is None else GlobalState.model_validate(data)
    try:
        report = await import_legacy_users(legacy_data, state, superadmin_usernames=settings.superadmin_usernames)
    except LegacyImportError as e:
        print(f"Error: {e}")
        sys.exit(1)

    for username, reason in sorted(report.skipped.items()):
        print(f"  skipped {username}: {reason}")
    if report.rooms_ignored:
        print(f"  {report.rooms_ignored} room(s) not imported")
    if not report.imported:
        print("No accounts imported")
        return

    storage.save(state.snapshot())
    print(f"Imported {len(report.imported)} account(s) into {storage.path}")


if __name__ == "__main__":
    asyncio.run(main())
