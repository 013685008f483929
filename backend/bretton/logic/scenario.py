"""Static scenario data: delegations, 1946 economies, Phase 1 issues and scripted shocks."""

from pydantic import BaseModel, ConfigDict

from bretton.logic.enums import Country
from bretton.logic.types import EconomicYearRecord

COUNTRIES: tuple[Country, ...] = tuple(Country)

USA_OPTIMAL_TARIFF = 10.0
DEFAULT_OPTIMAL_TARIFF = 15.0


class IssueOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    option_id: str
    title: str
    favors: tuple[Country, ...] = ()
    opposes: tuple[Country, ...] = ()


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue_id: str
    title: str
    options: tuple[IssueOption, ...]

    def get_option(self, option_id: str) -> IssueOption | None:
        return next((o for o in self.options if o.option_id == option_id), None)


class ScriptedShock(BaseModel):
    """A historical event applied while advancing from a policy year inside [first_year, last_year]."""

    model_config = ConfigDict(frozen=True)

    country: Country
    name: str
    first_year: int
    last_year: int
    gdp: float = 0.0
    inflation: float = 0.0
    trade: float = 0.0

    def applies_to(self, country: Country, year: int) -> bool:
        return self.country == country and self.first_year <= year <= self.last_year


STARTING_ECONOMIES: dict[Country, EconomicYearRecord] = {
    Country.USA: EconomicYearRecord(
        gold_reserves=20000, trade_balance=8000, industrial_output=100.0, unemployment=3.9, inflation=8.3
    ),
    Country.UK: EconomicYearRecord(
        gold_reserves=2500, trade_balance=-1500, industrial_output=60.0, unemployment=2.5, inflation=3.1
    ),
    Country.USSR: EconomicYearRecord(
        gold_reserves=2000, trade_balance=0, industrial_output=50.0, unemployment=0.0, inflation=0.0
    ),
    Country.FRANCE: EconomicYearRecord(
        gold_reserves=550, trade_balance=-1800, industrial_output=35.0, unemployment=4.5, inflation=50.0
    ),
    Country.CHINA: EconomicYearRecord(
        gold_reserves=300, trade_balance=-700, industrial_output=15.0, unemployment=5.0, inflation=20.0
    ),
    Country.INDIA: EconomicYearRecord(
        gold_reserves=250, trade_balance=200, industrial_output=20.0, unemployment=5.0, inflation=20.0
    ),
    Country.ARGENTINA: EconomicYearRecord(
        gold_reserves=1100, trade_balance=600, industrial_output=25.0, unemployment=5.0, inflation=20.0
    ),
}


def _option(
    option_id: str,
    title: str,
    favors: tuple[Country, ...] = (),
    opposes: tuple[Country, ...] = (),
) -> IssueOption:
    return IssueOption(option_id=option_id, title=title, favors=favors, opposes=opposes)


ISSUES: tuple[Issue, ...] = (
    Issue(
        issue_id="reserve-currency",
        title="Anchor of the monetary system",
        options=(
            _option(
                "A",
                "US dollar pegged to gold at $35/oz",
                favors=(Country.USA,),
                opposes=(Country.UK, Country.FRANCE),
            ),
            _option(
                "B",
                "Keynes' bancor clearing union",
                favors=(Country.UK, Country.INDIA),
                opposes=(Country.USA,),
            ),
            _option("C", "Multi-currency gold standard", favors=(Country.FRANCE, Country.USSR)),
        ),
    ),
    Issue(
        issue_id="imf-quotas",
        title="IMF voting quotas",
        options=(
            _option(
                "A",
                "Quotas by economic size",
                favors=(Country.USA, Country.UK),
                opposes=(Country.INDIA, Country.CHINA, Country.ARGENTINA),
            ),
            _option(
                "B",
                "Equal-weight quotas",
                favors=(Country.INDIA, Country.CHINA, Country.ARGENTINA),
                opposes=(Country.USA,),
            ),
        ),
    ),
    Issue(
        issue_id="exchange-adjustment",
        title="Exchange-rate adjustment",
        options=(
            _option("A", "Fixed parity within a 1% band", favors=(Country.USA, Country.UK)),
            _option("B", "Free floating", favors=(Country.ARGENTINA,), opposes=(Country.FRANCE,)),
            _option(
                "C",
                "Wide adjustable bands",
                favors=(Country.FRANCE, Country.INDIA),
                opposes=(Country.USA,),
            ),
        ),
    ),
    Issue(
        issue_id="reconstruction-lending",
        title="World Bank lending priority",
        options=(
            _option(
                "A",
                "European reconstruction first",
                favors=(Country.UK, Country.FRANCE),
                opposes=(Country.INDIA, Country.CHINA, Country.ARGENTINA),
            ),
            _option(
                "B",
                "Balance reconstruction and development",
                favors=(Country.INDIA, Country.CHINA, Country.USSR),
            ),
        ),
    ),
    Issue(
        issue_id="capital-controls",
        title="Capital account policy",
        options=(
            _option(
                "A",
                "Permit national capital controls",
                favors=(Country.UK, Country.USSR, Country.INDIA),
                opposes=(Country.USA,),
            ),
            _option(
                "B",
                "Full capital liberalization",
                favors=(Country.USA, Country.ARGENTINA),
                opposes=(Country.UK, Country.USSR),
            ),
        ),
    ),
    Issue(
        issue_id="trade-organization",
        title="Trade institution",
        options=(
            _option(
                "A",
                "International Trade Organization",
                favors=(Country.ARGENTINA, Country.INDIA, Country.UK),
            ),
            _option("B", "Tariff negotiations only", favors=(Country.USA,), opposes=(Country.ARGENTINA,)),
            _option("C", "No trade body", favors=(Country.USSR,), opposes=(Country.USA, Country.UK)),
        ),
    ),
)

SCRIPTED_SHOCKS: tuple[ScriptedShock, ...] = (
    ScriptedShock(
        country=Country.CHINA,
        name="civil conflict",
        first_year=1946,
        last_year=1949,
        gdp=-3.0,
        inflation=25.0,
        trade=-300,
    ),
    ScriptedShock(
        country=Country.INDIA,
        name="independence and partition",
        first_year=1947,
        last_year=1948,
        gdp=-2.0,
        inflation=5.0,
        trade=-200,
    ),
)


def issue_for_round(round_number: int) -> Issue | None:
    """Return the issue debated in a 1-based round, or None past the last issue."""
    if 1 <= round_number <= len(ISSUES):
        return ISSUES[round_number - 1]
    return None


def get_issue(issue_id: str) -> Issue | None:
    return next((i for i in ISSUES if i.issue_id == issue_id), None)


def optimal_tariff(country: Country) -> float:
    return USA_OPTIMAL_TARIFF if country == Country.USA else DEFAULT_OPTIMAL_TARIFF


def shocks_for(country: Country, year: int) -> list[ScriptedShock]:
    """Scripted shocks that hit ``country`` when advancing from policy ``year``."""
    return [shock for shock in SCRIPTED_SHOCKS if shock.applies_to(country, year)]
