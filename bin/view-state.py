"""Print a readable summary of the persisted game state.

Usage: uv run python bin/view-state.py [state_file]

Defaults to GAME_STATE_FILE (or backend/data/game-state.json). The file is
only read, never written.
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from bretton.server.settings import GameServerSettings
from bretton.session.models import GlobalState
from shared.storage import LocalStateStorage, StateStorageError


def _print_room(room) -> None:
    print(f"\n{room.room_name} [{room.room_id}]")
    print(f"  phase: {room.phase}  round: {room.current_round}  host: {room.host_id}")
    if room.phase2.current_year is not None:
        print(f"  year: {room.phase2.current_year}")
    for player in sorted(room.players.values(), key=lambda p: p.joined_at):
        liveness = "disconnected" if player.disconnected else "connected"
        ready = " ready" if player.player_id in room.ready_players else ""
        print(f"  {player.country:<10} {player.username:<24} {liveness}{ready}")
    scored = {country: score for country, score in room.scores.items() if score}
    if scored:
        print("  scores: " + ", ".join(f"{c}={s:g}" for c, s in sorted(scored.items(), key=lambda i: -i[1])))


def main() -> None:
    if len(sys.argv) > 2:  # noqa: PLR2004
        print(f"Usage: {sys.argv[0]} [state_file]")
        sys.exit(1)

    state_file = sys.argv[1] if len(sys.argv) == 2 else GameServerSettings().state_file  # noqa: PLR2004
    try:
        data = LocalStateStorage(state_file).load()
    except StateStorageError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if data is None:
        print(f"No state saved at {state_file}")
        return

    state = GlobalState.model_validate(data)
    print(f"State file: {state_file}")
    print(f"\nUsers ({len(state.users)}):")
    for user in sorted(state.users.values(), key=lambda u: u.created_at):
        print(f"  {user.username:<24} {user.role:<11} {user.player_id}")

    print(f"\nRooms ({len(state.rooms)}):")
    for room in sorted(state.rooms.values(), key=lambda r: r.created_at):
        _print_room(room)


if __name__ == "__main__":
    main()
