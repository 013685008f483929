"""Promote the configured superadmin usernames in a saved state file.

Usage: uv run python bin/fix-admin-roles.py [state_file]

Reads GAME_SUPERADMIN_USERNAMES. Accounts registered before their name was
configured keep the player role until this script is run. Stop the server
first: a running server overwrites the file on its next save.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from bretton.server.settings import GameServerSettings
from bretton.session.models import GlobalState
from shared.auth.models import Role
from shared.auth.repository import StateUserRepository
from shared.storage import LocalStateStorage, StateStorageError


async def main() -> None:
    if len(sys.argv) > 2:  # noqa: PLR2004
        print(f"Usage: {sys.argv[0]} [state_file]")
        sys.exit(1)

    settings = GameServerSettings()
    if not settings.superadmin_usernames:
        print("GAME_SUPERADMIN_USERNAMES is empty, nothing to do")
        return

    storage = LocalStateStorage(sys.argv[1] if len(sys.argv) == 2 else settings.state_file)  # noqa: PLR2004
    try:
        data = storage.load()
    except StateStorageError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if data is None:
        print(f"No state saved at {storage.path}")
        return

    state = GlobalState.model_validate(data)
    users = StateUserRepository(state.users)
    promoted = []
    for username in settings.superadmin_usernames:
        user = await users.get_by_username(username)
        if user is None:
            print(f"  {username}: not registered")
            continue
        if user.role == Role.SUPERADMIN:
            continue
        await users.set_role(user.username, Role.SUPERADMIN)
        promoted.append(user.username)

    if not promoted:
        print("All configured superadmins already have the role")
        return

    storage.save(state.snapshot())
    print(f"Promoted {len(promoted)} account(s): {', '.join(promoted)}")


if __name__ == "__main__":
    asyncio.run(main())
