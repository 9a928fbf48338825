import pandas as pd
import pytest

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import AnnualFundamentalPoint
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import Quote
from fairvalue.domain.types import Ratios
from fairvalue.domain.types import ScenarioInput


def make_point(year: int, revenue: float, ebit: float, net_income: float,
               fcf: float) -> AnnualFundamentalPoint:
  """Helper to create an annual point with margins derived from revenue."""
  return AnnualFundamentalPoint(
      year=year,
      revenue=revenue,
      ebit=ebit,
      net_income=net_income,
      fcf=fcf,
      operating_margin=ebit / revenue if revenue > 0 else 0.0,
      net_margin=net_income / revenue if revenue > 0 else 0.0,
  )


@pytest.fixture
def apple_fundamentals() -> FundamentalsData:
  """Apple-like history: high margins, steady growth, newest first."""
  return FundamentalsData(
      ticker='AAPL',
      currency='USD',
      annual=[
          AnnualFundamentalPoint(2025, 391035e6, 123215e6, 93736e6, 108807e6,
                                 0.315, 0.24),
          AnnualFundamentalPoint(2024, 383285e6, 114301e6, 96995e6, 99584e6,
                                 0.298, 0.253),
          AnnualFundamentalPoint(2023, 394328e6, 114301e6, 96995e6, 99584e6,
                                 0.290, 0.246),
          AnnualFundamentalPoint(2022, 365817e6, 119437e6, 99803e6, 111443e6,
                                 0.327, 0.273),
      ],
      ratios=Ratios(pe=28.5, pb=45.2, ps=7.8, ev_ebitda=24.1),
  )


@pytest.fixture
def apple_estimates() -> AnalystEstimates:
  """Full analyst coverage with Apple's actual FCF and revenue."""
  return AnalystEstimates(
      revenue_growth_next_year=0.08,
      revenue_growth_5_year=0.10,
      earnings_growth_next_year=0.12,
      target_mean_price=250.0,
      number_of_analysts=35.0,
      operating_margins=0.315,
      revenue_growth_ttm=0.02,
      free_cashflow=108807e6,
      total_revenue=391035e6,
  )


@pytest.fixture
def no_estimates() -> AnalystEstimates:
  """No analyst coverage (small cap / non-US)."""
  return AnalystEstimates.empty()


@pytest.fixture
def minimal_fundamentals() -> FundamentalsData:
  """Only one year of data."""
  return FundamentalsData(
      ticker='XYZ',
      currency='USD',
      annual=[make_point(2025, 100e6, 15e6, 10e6, 8e6)],
  )


@pytest.fixture
def unprofitable_fundamentals() -> FundamentalsData:
  """Loss-making company with negative operating margins."""
  return FundamentalsData(
      ticker='LOSS',
      currency='USD',
      annual=[
          make_point(2025, 50e6, -5e6, -8e6, -6e6),
          make_point(2024, 40e6, -6e6, -9e6, -7e6),
      ],
  )


@pytest.fixture
def sample_scenario() -> ScenarioInput:
  """Moderate scenario used across engine tests."""
  return ScenarioInput(
      revenue_growth_years_1_to_5=0.08,
      revenue_growth_years_6_to_10=0.05,
      operating_margin_target=0.2,
      tax_rate=0.22,
      reinvestment_rate=0.35,
      wacc=0.10,
      terminal_growth=0.025,
  )


class FakeTicker:
  """In-memory stand-in for yfinance.Ticker."""

  def __init__(self, info=None, income_stmt=None, cashflow=None,
               revenue_estimate=None, growth_estimates=None):
    self.info = info if info is not None else {}
    self.income_stmt = (income_stmt
                        if income_stmt is not None else pd.DataFrame())
    self.cashflow = cashflow if cashflow is not None else pd.DataFrame()
    self.revenue_estimate = revenue_estimate
    self.growth_estimates = growth_estimates


class FakeClient:
  """Market data client returning fixed records and counting calls."""

  def __init__(self, quote: Quote, fundamentals: FundamentalsData,
               net_debt: float, estimates: AnalystEstimates):
    self.quote = quote
    self.fundamentals = fundamentals
    self.net_debt = net_debt
    self.estimates = estimates
    self.calls: list[str] = []

  def get_quote(self, ticker):
    self.calls.append('quote')
    return self.quote

  def get_fundamentals(self, ticker):
    self.calls.append('fundamentals')
    return self.fundamentals

  def get_net_debt_estimate(self, ticker):
    self.calls.append('net_debt')
    return self.net_debt

  def get_analyst_estimates(self, ticker):
    self.calls.append('estimates')
    return self.estimates


def make_quote(price: float = 190.0,
               shares: float | None = 15e9,
               ticker: str = 'AAPL') -> Quote:
  """Helper to create a Quote."""
  return Quote(
      ticker=ticker,
      short_name='Apple Inc.',
      currency='USD',
      exchange='NasdaqGS',
      region='OTHER',
      regular_market_price=price,
      market_cap=None,
      shares_outstanding=shares,
      fetched_at='2025-01-01T00:00:00+00:00',
  )


@pytest.fixture
def apple_client(apple_fundamentals, apple_estimates) -> FakeClient:
  """FakeClient with Apple-like data and $20B net debt."""
  return FakeClient(
      quote=make_quote(),
      fundamentals=apple_fundamentals,
      net_debt=20e9,
      estimates=apple_estimates,
  )
