'''
Domain types for the fair value calculator.

These dataclasses are the plain records passed between the market data
client, scenario derivation and the DCF engine. All rates are decimal
fractions (0.12 means 12%).
'''

from dataclasses import asdict, dataclass, field, fields
import json
from typing import (Any, Dict, Generic, Iterator, List, Mapping, Optional, Tuple,
                    TypeVar)

import pandas as pd

from fairvalue.errors import InvalidPayloadError

T = TypeVar('T')

SCENARIO_NAMES = ('bull', 'base', 'bear')

# camelCase keys written by the web client; accepted when loading JSON.
_CAMEL_CASE_ALIASES = {
    'revenueGrowthYears1to5': 'revenue_growth_years_1_to_5',
    'revenueGrowthYears6to10': 'revenue_growth_years_6_to_10',
    'operatingMarginTarget': 'operating_margin_target',
    'taxRate': 'tax_rate',
    'reinvestmentRate': 'reinvestment_rate',
    'wacc': 'wacc',
    'terminalGrowth': 'terminal_growth',
}


@dataclass
class PolicyOutput(Generic[T]):
  '''
  Standard output from any policy.

  Every policy returns both a computed value and diagnostic information
  explaining how the value was computed.

  Attributes:
    value: The computed value (type depends on policy)
    diag: Dictionary of diagnostic information
  '''
  value: T
  diag: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScenarioInput:
  '''
  Assumptions for one DCF scenario.

  Attributes:
    revenue_growth_years_1_to_5: Annual revenue growth, years 1-5
    revenue_growth_years_6_to_10: Annual revenue growth, years 6-10
    operating_margin_target: Target EBIT / revenue
    tax_rate: Effective tax rate applied to EBIT
    reinvestment_rate: Share of NOPAT reinvested (not paid out as FCF)
    wacc: Discount rate
    terminal_growth: Perpetual growth rate (must be below wacc)
  '''
  revenue_growth_years_1_to_5: float
  revenue_growth_years_6_to_10: float
  operating_margin_target: float
  tax_rate: float
  reinvestment_rate: float
  wacc: float
  terminal_growth: float

  def to_dict(self) -> Dict[str, float]:
    '''Convert to dictionary.'''
    return asdict(self)

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> 'ScenarioInput':
    '''
    Create from dictionary.

    Both snake_case field names and the camelCase keys written by the
    web client are accepted. Unknown keys are ignored. Ranges are not
    checked here; see validate_scenario_input.

    Raises:
      InvalidPayloadError: If data is not a mapping, a field is missing or
        a field is not a number
    '''
    if not isinstance(data, Mapping):
      raise InvalidPayloadError(
          'Invalid valuation payload: scenario must be an object.')

    names = {f.name for f in fields(cls)}
    values: Dict[str, float] = {}
    for key, value in data.items():
      name = _CAMEL_CASE_ALIASES.get(key, key)
      if name not in names:
        continue
      # bool is an int subclass.
      if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidPayloadError(
            f'Invalid valuation payload: {name} must be a number.')
      values[name] = float(value)

    missing = names - values.keys()
    if missing:
      raise InvalidPayloadError(
          f'Invalid valuation payload: missing scenario fields '
          f'{sorted(missing)}.')
    return cls(**values)


@dataclass(frozen=True)
class ScenarioSet:
  '''
  Bull, base and bear assumptions for one valuation.

  By construction bull >= base >= bear on growth and margin, and
  bull <= base <= bear on WACC, tax and reinvestment. The engine does not
  enforce this ordering.
  '''
  bull: ScenarioInput
  base: ScenarioInput
  bear: ScenarioInput

  def items(self) -> Iterator[Tuple[str, ScenarioInput]]:
    '''Iterate (name, scenario) pairs in bull, base, bear order.'''
    for name in SCENARIO_NAMES:
      yield name, getattr(self, name)

  def to_dict(self) -> Dict[str, Dict[str, float]]:
    '''Convert to nested dictionary.'''
    return {name: scenario.to_dict() for name, scenario in self.items()}

  def to_json(self) -> str:
    '''Serialize to JSON string.'''
    return json.dumps(self.to_dict(), indent=2)

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> 'ScenarioSet':
    '''
    Create from dictionary keyed by scenario name.

    Raises:
      InvalidPayloadError: If a scenario is missing or malformed
    '''
    if not isinstance(data, Mapping):
      raise InvalidPayloadError(
          'Invalid valuation payload: expected bull, base and bear.')
    missing = [name for name in SCENARIO_NAMES if name not in data]
    if missing:
      raise InvalidPayloadError(
          f'Invalid valuation payload: missing scenarios {missing}.')
    return cls(**{
        name: ScenarioInput.from_dict(data[name]) for name in SCENARIO_NAMES
    })

  @classmethod
  def from_json(cls, json_str: str) -> 'ScenarioSet':
    '''
    Create from JSON string.

    Raises:
      InvalidPayloadError: If json_str is not valid JSON or not a valid
        scenario set
    '''
    try:
      data = json.loads(json_str)
    except json.JSONDecodeError as e:
      raise InvalidPayloadError(
          f'Invalid valuation payload: {e.msg} at line {e.lineno}.') from e
    return cls.from_dict(data)


@dataclass(frozen=True)
class DcfInput:
  '''
  Market inputs plus one scenario for a single DCF run.

  Attributes:
    current_revenue: Latest annual revenue (must be positive)
    net_debt: Total debt minus cash (negative for a net cash position)
    shares_outstanding: Share count (must be positive)
    current_price: Market price per share (must be positive)
    mos_percent: Margin of safety in percent, 0-80
    scenario: Scenario assumptions
  '''
  current_revenue: float
  net_debt: float
  shares_outstanding: float
  current_price: float
  mos_percent: float
  scenario: ScenarioInput


@dataclass(frozen=True)
class ScenarioResult:
  '''
  DCF output for a single scenario.

  Attributes:
    enterprise_value: PV of projected FCF plus discounted terminal value
    equity_value: Enterprise value minus net debt
    fair_value_per_share: Equity value / shares outstanding
    fair_value_after_mos: Fair value with margin of safety applied
    upside_vs_price_percent: Percent difference of fair_value_after_mos
      versus the current price
  '''
  enterprise_value: float
  equity_value: float
  fair_value_per_share: float
  fair_value_after_mos: float
  upside_vs_price_percent: float

  def to_dict(self) -> Dict[str, float]:
    '''Convert to dictionary for DataFrame creation.'''
    return asdict(self)


@dataclass(frozen=True)
class AnnualFundamentalPoint:
  '''One fiscal year of income statement and cash flow data.'''
  year: int
  revenue: float
  ebit: float
  net_income: float
  fcf: float
  operating_margin: float
  net_margin: float


@dataclass(frozen=True)
class Ratios:
  '''Trailing valuation multiples; any may be unavailable.'''
  pe: Optional[float] = None
  pb: Optional[float] = None
  ps: Optional[float] = None
  ev_ebitda: Optional[float] = None


@dataclass(frozen=True)
class FundamentalsData:
  '''
  Historical fundamentals for one company.

  Attributes:
    ticker: Company ticker symbol
    currency: Reporting currency
    annual: Annual points ordered newest-first
    ratios: Trailing valuation multiples
  '''
  ticker: str
  currency: str
  annual: List[AnnualFundamentalPoint]
  ratios: Ratios = field(default_factory=Ratios)

  @property
  def latest(self) -> Optional[AnnualFundamentalPoint]:
    '''Most recent annual point, if any.'''
    return self.annual[0] if self.annual else None

  def to_frame(self) -> pd.DataFrame:
    '''Annual points as a DataFrame, one row per year, newest first.'''
    columns = [f.name for f in fields(AnnualFundamentalPoint)]
    return pd.DataFrame([asdict(p) for p in self.annual], columns=columns)


@dataclass(frozen=True)
class AnalystEstimates:
  '''
  Analyst consensus and current financial metrics.

  Every field is optional because analyst coverage varies by ticker and
  region.
  '''
  revenue_growth_next_year: Optional[float] = None
  revenue_growth_5_year: Optional[float] = None
  earnings_growth_next_year: Optional[float] = None
  target_mean_price: Optional[float] = None
  number_of_analysts: Optional[float] = None
  operating_margins: Optional[float] = None
  revenue_growth_ttm: Optional[float] = None
  free_cashflow: Optional[float] = None
  total_revenue: Optional[float] = None

  @classmethod
  def empty(cls) -> 'AnalystEstimates':
    '''Estimates for a ticker without analyst coverage.'''
    return cls()

  def to_dict(self) -> Dict[str, Optional[float]]:
    '''Convert to dictionary.'''
    return asdict(self)


@dataclass(frozen=True)
class Quote:
  '''
  Market quote for a ticker.

  Attributes:
    ticker: Normalized (upper case) ticker symbol
    short_name: Display name
    currency: Quote currency
    exchange: Exchange name or code
    region: 'US', 'EU' or 'OTHER'
    regular_market_price: Latest price
    market_cap: Market capitalization, if reported
    shares_outstanding: Share count, if reported
    fetched_at: ISO 8601 timestamp of the fetch
  '''
  ticker: str
  short_name: str
  currency: str
  exchange: str
  region: str
  regular_market_price: float
  market_cap: Optional[float]
  shares_outstanding: Optional[float]
  fetched_at: str


@dataclass(frozen=True)
class ValuationSummary:
  '''Overall assessment derived from the base scenario.'''
  status: str
  base_scenario_upside_after_mos: float


@dataclass
class ValuationResponse:
  '''
  Valuation results for all three scenarios.

  Attributes:
    ticker: Company ticker symbol
    current_price: Market price used for upside
    mos_percent: Margin of safety percent applied
    scenarios: ScenarioResult per scenario name
    summary: Status based on base scenario upside
    diag: Derivation diagnostics, when scenarios were derived
  '''
  ticker: str
  current_price: float
  mos_percent: float
  scenarios: Dict[str, ScenarioResult]
  summary: ValuationSummary
  diag: Dict[str, Any] = field(default_factory=dict)

  def to_frame(self) -> pd.DataFrame:
    '''One row per scenario, indexed by scenario name.'''
    rows = []
    for name in SCENARIO_NAMES:
      result = self.scenarios.get(name)
      if result is None:
        continue
      rows.append({'scenario': name, **result.to_dict()})
    return pd.DataFrame(rows).set_index('scenario')
