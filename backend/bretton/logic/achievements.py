"""
End-of-game achievement evaluation.

Achievements are judged once, when the final year is reached, from a
country's full record history and its submitted policies. Evaluation is
pure: the same history always yields the same report.

Three families are checked:

- Stability tiers: mutually exclusive, strictest first, judged on mean
  growth, unemployment and inflation over computed years.
- Independent achievements: additive with each other and with the tier.
- Country-specific achievements: each needs its designated years to be
  present in the history, otherwise it is skipped.

Computed years are every record year after the start year.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import pairwise
from statistics import fmean
from typing import TYPE_CHECKING

from bretton.logic.enums import Country
from bretton.logic.types import Achievement, AchievementReport

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from bretton.logic.types import EconomicYearRecord, Policy

PARITY_TOLERANCE = 0.1
_EPSILON = 1e-9


@dataclass(frozen=True)
class _Tier:
    achievement_id: str
    name: str
    points: int
    min_growth: float
    max_inflation: float
    max_unemployment: float | None = None


STABILITY_TIERS: tuple[_Tier, ...] = (
    _Tier("golden_age", "Golden Age", 50, min_growth=5.0, max_inflation=4.0, max_unemployment=4.0),
    _Tier("stable_prosperity", "Stable Prosperity", 30, min_growth=3.0, max_inflation=6.0, max_unemployment=6.0),
    _Tier("steady_course", "Steady Course", 15, min_growth=1.0, max_inflation=10.0),
)

TRADE_CHAMPION_THRESHOLD = 5000
INDUSTRIAL_POWERHOUSE_FACTOR = 1.5


@dataclass(frozen=True)
class _History:
    start_year: int
    records: Mapping[int, EconomicYearRecord]
    policies: Mapping[int, Policy]

    @property
    def years(self) -> list[int]:
        return sorted(self.records)

    @property
    def computed_years(self) -> list[int]:
        return [y for y in self.years if y > self.start_year]

    def has_years(self, years: tuple[int, ...]) -> bool:
        return all(y in self.records for y in years)


@dataclass(frozen=True)
class _CountryAchievement:
    country: Country
    achievement_id: str
    name: str
    points: int
    years: tuple[int, ...]
    check: Callable[[list[EconomicYearRecord]], bool]  # receives the designated years' records in order


COUNTRY_ACHIEVEMENTS: tuple[_CountryAchievement, ...] = (
    _CountryAchievement(
        Country.USA,
        "marshall_plan",
        "Marshall Plan Architect",
        30,
        (1947, 1948, 1949, 1950),
        lambda rs: all(r.trade_balance > 0 for r in rs),
    ),
    _CountryAchievement(
        Country.UK,
        "sterling_area",
        "Sterling Area Survivor",
        25,
        (1946, 1952),
        lambda rs: rs[-1].gold_reserves >= rs[0].gold_reserves,
    ),
    _CountryAchievement(
        Country.USSR,
        "full_employment",
        "Planned Full Employment",
        20,
        (1947, 1948, 1949, 1950, 1951, 1952),
        lambda rs: all(r.unemployment <= 1.0 for r in rs),
    ),
    _CountryAchievement(
        Country.FRANCE,
        "trente_glorieuses",
        "Les Trente Glorieuses",
        30,
        (1949, 1950, 1951, 1952),
        lambda rs: fmean(r.gdp_growth for r in rs) >= 4.0,  # noqa: PLR2004
    ),
    _CountryAchievement(
        Country.CHINA,
        "postwar_rebuilding",
        "Rebuilding After the War",
        30,
        (1950, 1951),
        lambda rs: all(r.gdp_growth > 0 for r in rs),
    ),
    _CountryAchievement(
        Country.INDIA,
        "tryst_with_destiny",
        "Tryst with Destiny",
        30,
        (1949, 1950, 1951, 1952),
        lambda rs: all(r.gdp_growth > 0 for r in rs),
    ),
    _CountryAchievement(
        Country.ARGENTINA,
        "industrial_leap",
        "Industrial Leap",
        25,
        (1946, 1947, 1948, 1949, 1950),
        lambda rs: all(b.industrial_output > a.industrial_output for a, b in pairwise(rs)),
    ),
)


def evaluate_achievements(
    country: Country,
    records: Mapping[int, EconomicYearRecord],
    policies: Mapping[int, Policy],
    start_year: int,
) -> AchievementReport:
    """Evaluate every achievement family for one country's history."""
    history = _History(start_year=start_year, records=records, policies=policies)
    if not history.computed_years:
        return AchievementReport()

    earned: list[Achievement] = []
    tier = _stability_tier(history)
    if tier is not None:
        earned.append(tier)
    earned.extend(_independent_achievements(history))
    earned.extend(
        Achievement(achievement_id=a.achievement_id, name=a.name, points=a.points)
        for a in COUNTRY_ACHIEVEMENTS
        if a.country == country and history.has_years(a.years) and a.check([records[y] for y in a.years])
    )
    return AchievementReport(achievements=tuple(earned), total=sum(a.points for a in earned))


def _stability_tier(history: _History) -> Achievement | None:
    computed = [history.records[y] for y in history.computed_years]
    growth = fmean(r.gdp_growth for r in computed)
    unemployment = fmean(r.unemployment for r in computed)
    inflation = fmean(r.inflation for r in computed)
    for tier in STABILITY_TIERS:
        if growth < tier.min_growth or inflation > tier.max_inflation:
            continue
        if tier.max_unemployment is not None and unemployment > tier.max_unemployment:
            continue
        return Achievement(achievement_id=tier.achievement_id, name=tier.name, points=tier.points)
    return None


def _independent_achievements(history: _History) -> list[Achievement]:
    earned: list[Achievement] = []
    years = history.years
    computed = history.computed_years
    final = history.records[years[-1]]

    if sum(history.records[y].trade_balance for y in computed) >= TRADE_CHAMPION_THRESHOLD:
        earned.append(Achievement(achievement_id="trade_champion", name="Trade Champion", points=20))

    gold = [history.records[y].gold_reserves for y in years]
    if all(b >= a for a, b in pairwise(gold)) and gold[-1] > gold[0]:
        earned.append(Achievement(achievement_id="reserve_builder", name="Reserve Builder", points=20))

    start = history.records.get(history.start_year)
    if start is not None and final.industrial_output >= INDUSTRIAL_POWERHOUSE_FACTOR * start.industrial_output:
        earned.append(
            Achievement(achievement_id="industrial_powerhouse", name="Industrial Powerhouse", points=25),
        )

    if _kept_steady_hand(history, computed[-1]):
        earned.append(Achievement(achievement_id="steady_hand", name="Steady Hand", points=15))

    return earned


def _kept_steady_hand(history: _History, last_computed: int) -> bool:
    policy_years = range(history.start_year, last_computed)
    if not all(y in history.policies for y in policy_years):
        return False
    return all(
        abs(history.policies[y].exchange_rate - 1.0) <= PARITY_TOLERANCE + _EPSILON for y in policy_years
    )
