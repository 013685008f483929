"""
Pydantic models for game logic data structures.

Contains the immutable value records that cross component boundaries:
policies, economic year records, performance and achievement reports,
score ledger entries and Phase 1 round results.
"""

from pydantic import BaseModel, ConfigDict, Field

from bretton.logic.enums import Country, MotionOutcome, ScoreSource

CENTRAL_BANK_RATE_MIN = 0.0
CENTRAL_BANK_RATE_MAX = 20.0
EXCHANGE_RATE_MIN = 0.1
EXCHANGE_RATE_MAX = 5.0
TARIFF_RATE_MIN = 0.0
TARIFF_RATE_MAX = 100.0


class Policy(BaseModel):
    """One country's economic policy for one year."""

    model_config = ConfigDict(frozen=True)

    central_bank_rate: float = Field(ge=CENTRAL_BANK_RATE_MIN, le=CENTRAL_BANK_RATE_MAX)
    exchange_rate: float = Field(ge=EXCHANGE_RATE_MIN, le=EXCHANGE_RATE_MAX)
    tariff_rate: float = Field(ge=TARIFF_RATE_MIN, le=TARIFF_RATE_MAX)
    submitted_at: float = 0.0


class EconomicYearRecord(BaseModel):
    """Published economic indicators of one country for one year."""

    model_config = ConfigDict(frozen=True)

    gdp_growth: float = 0.0
    unemployment: float
    inflation: float
    trade_balance: int
    gold_reserves: int
    industrial_output: float


class PerformanceBands(BaseModel):
    model_config = ConfigDict(frozen=True)

    gdp_growth: int = 0
    unemployment: int = 0
    inflation: int = 0
    trade_balance: int = 0
    gold_change: int = 0
    industrial_growth: int = 0

    @property
    def total(self) -> int:
        return (
            self.gdp_growth
            + self.unemployment
            + self.inflation
            + self.trade_balance
            + self.gold_change
            + self.industrial_growth
        )


class PerformanceScore(BaseModel):
    """Yearly performance total together with its per-band breakdown."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    bands: PerformanceBands = PerformanceBands()


class Achievement(BaseModel):
    model_config = ConfigDict(frozen=True)

    achievement_id: str
    name: str
    points: int


class AchievementReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    achievements: tuple[Achievement, ...] = ()
    total: int = 0


class ScoreEntry(BaseModel):
    """One line of a room's score ledger."""

    model_config = ConfigDict(frozen=True)

    source: ScoreSource
    round: int | None = None
    year: int | None = None
    country: Country
    delta: float
    reason: str


class RoundResult(BaseModel):
    """Outcome of one resolved Phase 1 round.

    Issue rounds carry ``issue_id`` and ``winner_option_id``; motion rounds
    carry ``outcome``. ``counts`` maps option ids or vote choices to tallies.
    """

    model_config = ConfigDict(frozen=True)

    round: int
    issue_id: str
    counts: dict[str, int]
    winner_option_id: str | None = None
    outcome: MotionOutcome | None = None
    deltas: dict[Country, float] = Field(default_factory=dict)
    votes: dict[str, str] = Field(default_factory=dict)
    resolved_at: float = 0.0
