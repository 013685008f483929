"""
Mutable room state owned by a RoomStateMachine.

RoomState is the persisted shape of one room. It is only ever changed
through RoomStateMachine methods; everything else reads snapshots.
"""

import secrets
import time

from pydantic import BaseModel, Field

from bretton.logic.enums import Country, GamePhase
from bretton.logic.settings import MAX_SEATS, GameSettings
from bretton.logic.types import (
    AchievementReport,
    EconomicYearRecord,
    PerformanceScore,
    Policy,
    RoundResult,
    ScoreEntry,
)

ROOM_NAME_MAX_LENGTH = 50
_ROOM_ID_PREFIX = "room_"


def new_room_id() -> str:
    return f"{_ROOM_ID_PREFIX}{secrets.token_hex(6)}"


def _zero_scores() -> dict[Country, float]:
    return dict.fromkeys(Country, 0.0)


class RoomPlayer(BaseModel):
    """A seated delegation. Removed only by leave_game; disconnect just flags it."""

    player_id: str
    username: str
    country: Country
    joined_at: float = Field(default_factory=time.time)
    disconnected: bool = False
    disconnected_at: float | None = None


class Phase2State(BaseModel):
    active: bool = False
    current_year: int | None = None
    yearly_data: dict[int, dict[Country, EconomicYearRecord]] = Field(default_factory=dict)
    policies: dict[int, dict[Country, Policy]] = Field(default_factory=dict)
    year_scores: dict[int, dict[Country, PerformanceScore]] = Field(default_factory=dict)
    achievements: dict[Country, AchievementReport] = Field(default_factory=dict)

    def records_for(self, country: Country) -> dict[int, EconomicYearRecord]:
        return {year: data[country] for year, data in self.yearly_data.items() if country in data}

    def policies_for(self, country: Country) -> dict[int, Policy]:
        return {year: data[country] for year, data in self.policies.items() if country in data}


class RoomState(BaseModel):
    room_id: str = Field(default_factory=new_room_id)
    room_name: str = Field(min_length=1, max_length=ROOM_NAME_MAX_LENGTH)
    host_id: str
    created_at: float = Field(default_factory=time.time)
    max_players: int = MAX_SEATS
    phase: GamePhase = GamePhase.LOBBY
    current_round: int = 0
    game_started: bool = False
    players: dict[str, RoomPlayer] = Field(default_factory=dict)
    votes: dict[str, str] = Field(default_factory=dict)
    ready_players: list[str] = Field(default_factory=list)
    round_history: list[RoundResult] = Field(default_factory=list)
    scores: dict[Country, float] = Field(default_factory=_zero_scores)
    score_log: list[ScoreEntry] = Field(default_factory=list)
    phase2: Phase2State = Field(default_factory=Phase2State)
    settings: GameSettings = Field(default_factory=GameSettings)

    def seat_of(self, country: Country) -> RoomPlayer | None:
        return next((p for p in self.players.values() if p.country == country), None)

    @property
    def seated_countries(self) -> list[Country]:
        """Seated countries in canonical delegation order."""
        taken = {p.country for p in self.players.values()}
        return [c for c in Country if c in taken]

    @property
    def all_ready(self) -> bool:
        return bool(self.players) and all(pid in self.ready_players for pid in self.players)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= min(self.max_players, self.settings.max_players)
