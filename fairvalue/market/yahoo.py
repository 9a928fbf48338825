'''
Yahoo Finance market data client.

Fetches quote, annual fundamentals, net debt and analyst estimates through
yfinance and converts them into the plain domain records consumed by the
valuation core. This is the only module that performs network I/O.

Yahoo responses vary by ticker and region and whole statements can be
missing, so every mapper tolerates partial data and falls back to safe
values instead of failing.

Usage:
  client = YahooFinanceClient()
  quote = client.get_quote('AAPL')
  fundamentals = client.get_fundamentals('AAPL')
'''

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, TypeVar

import pandas as pd
import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import AnnualFundamentalPoint
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import Quote
from fairvalue.domain.types import Ratios
from fairvalue.errors import MarketDataError
from fairvalue.errors import RateLimitError
from fairvalue.errors import TickerNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RATE_LIMIT_MESSAGE = 'Yahoo Finance rate limit reached. Retry in 30-60 seconds.'
NOT_FOUND_MESSAGE = 'Ticker not found or unavailable on Yahoo Finance.'

US_EXCHANGES = {'NMS', 'NASDAQ', 'NYQ', 'NYSE', 'ASE', 'AMEX', 'BATS', 'PCX'}
EU_EXCHANGES = {
    'MIL', 'PAR', 'FRA', 'XETRA', 'GER', 'LSE', 'AMS', 'STO', 'MCX', 'SWX'
}

REVENUE_LABELS = ('Total Revenue', 'Operating Revenue')
EBIT_LABELS = ('EBIT', 'Operating Income')
NET_INCOME_LABELS = ('Net Income', 'Net Income Common Stockholders')
FCF_LABELS = ('Free Cash Flow',)
OPERATING_CASH_LABELS = ('Operating Cash Flow',
                         'Cash Flow From Continuing Operating Activities')
CAPEX_LABELS = ('Capital Expenditure',)


@dataclass(frozen=True)
class ProviderConfig:
  '''
  Market data client settings.

  Attributes:
    retries: Retry attempts after the first failure
    backoff_sec: Base delay; attempt n waits backoff_sec * n
    annual_periods: Maximum number of annual points to keep
  '''
  retries: int = 2
  backoff_sec: float = 0.25
  annual_periods: int = 5


def extract_raw_number(value: Any) -> Optional[float]:
  '''
  Extract a finite number from Yahoo's mixed schema.

  Values arrive either as plain numbers or as objects with a `raw` payload
  (e.g. {'raw': 123.45, 'fmt': '123.45'}).

  Returns:
    The number, or None for missing, non-numeric or non-finite values
  '''
  if isinstance(value, Mapping):
    value = value.get('raw')
  if value is None or isinstance(value, (bool, str)):
    return None
  try:
    number = float(value)
  except (TypeError, ValueError):
    return None
  if not math.isfinite(number):
    return None
  return number


def detect_region(exchange: str) -> str:
  '''Classify an exchange code as 'US', 'EU' or 'OTHER'.'''
  upper = exchange.upper()
  if upper in US_EXCHANGES:
    return 'US'
  if upper in EU_EXCHANGES:
    return 'EU'
  return 'OTHER'


def normalize_provider_error(error: Exception) -> MarketDataError:
  '''Map raw provider failures to user-facing MarketDataError subclasses.'''
  if isinstance(error, MarketDataError):
    return error
  if isinstance(error, YFRateLimitError):
    return RateLimitError(RATE_LIMIT_MESSAGE)

  message = str(error).lower()
  if 'too many requests' in message or '429' in message:
    return RateLimitError(RATE_LIMIT_MESSAGE)
  if 'not found' in message or 'no data' in message or 'symbol' in message:
    return TickerNotFoundError(NOT_FOUND_MESSAGE)
  return MarketDataError(str(error) or 'Unknown Yahoo Finance error.')


def with_retry(
    task: Callable[[], T],
    retries: int = 2,
    backoff_sec: float = 0.25,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
  '''
  Run task, retrying on failure with linearly increasing delays.

  With the defaults: immediate attempt, then 0.25s and 0.5s waits.

  Args:
    task: Zero-argument callable to execute
    retries: Retry attempts after the first failure
    backoff_sec: Base delay in seconds
    sleep: Sleep function (injectable for tests)

  Returns:
    Result of the first successful attempt

  Raises:
    The last exception if every attempt fails
  '''
  attempt = 0
  while True:
    try:
      return task()
    except Exception as e:  # pylint: disable=broad-except
      if attempt >= retries:
        raise
      attempt += 1
      delay = backoff_sec * attempt
      logger.debug('Attempt %d failed (%s), retrying in %.2fs', attempt, e,
                   delay)
      sleep(delay)


def _utc_now_iso() -> str:
  return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _statement_value(
    frame: Optional[pd.DataFrame],
    labels: Iterable[str],
    column: Any,
) -> Optional[float]:
  '''First present value among row labels for one statement column.'''
  if frame is None or frame.empty or column not in frame.columns:
    return None
  for label in labels:
    if label in frame.index:
      value = extract_raw_number(frame.at[label, column])
      if value is not None:
        return value
  return None


def _sorted_columns(frame: Optional[pd.DataFrame]) -> list:
  if frame is None or frame.empty:
    return []
  return sorted(frame.columns, reverse=True)


def _column_year(column: Any) -> int:
  try:
    return int(pd.Timestamp(column).year)
  except (TypeError, ValueError):
    return datetime.now(timezone.utc).year


def map_fundamentals(
    ticker: str,
    income_stmt: Optional[pd.DataFrame],
    cashflow: Optional[pd.DataFrame],
    info: Mapping[str, Any],
    periods: int = 5,
) -> FundamentalsData:
  '''
  Build FundamentalsData from yfinance annual statements.

  Statements are indexed by line item with one column per fiscal year end.
  Cash flow columns are matched to income statement columns by position
  after sorting both newest-first. Missing free cash flow is approximated
  as operating cash flow plus (negative) capital expenditure.

  Args:
    ticker: Ticker symbol
    income_stmt: Annual income statement
    cashflow: Annual cash flow statement
    info: Ticker info dictionary (currency and ratios)
    periods: Maximum number of years to keep

  Returns:
    FundamentalsData with annual points newest-first
  '''
  income_columns = _sorted_columns(income_stmt)[:periods]
  cash_columns = _sorted_columns(cashflow)

  annual = []
  for index, column in enumerate(income_columns):
    cash_column = cash_columns[index] if index < len(cash_columns) else None

    revenue = _statement_value(income_stmt, REVENUE_LABELS, column) or 0.0
    ebit = _statement_value(income_stmt, EBIT_LABELS, column) or 0.0
    net_income = _statement_value(income_stmt, NET_INCOME_LABELS,
                                  column) or 0.0

    fcf = _statement_value(cashflow, FCF_LABELS, cash_column)
    if fcf is None:
      operating_cash = _statement_value(cashflow, OPERATING_CASH_LABELS,
                                        cash_column) or 0.0
      capex = _statement_value(cashflow, CAPEX_LABELS, cash_column) or 0.0
      fcf = operating_cash + capex

    annual.append(
        AnnualFundamentalPoint(
            year=_column_year(column),
            revenue=revenue,
            ebit=ebit,
            net_income=net_income,
            fcf=fcf,
            operating_margin=ebit / revenue if revenue > 0 else 0.0,
            net_margin=net_income / revenue if revenue > 0 else 0.0,
        ))

  return FundamentalsData(
      ticker=ticker.upper(),
      currency=str(
          info.get('financialCurrency') or info.get('currency') or 'USD'),
      annual=annual,
      ratios=Ratios(
          pe=extract_raw_number(info.get('trailingPE')),
          pb=extract_raw_number(info.get('priceToBook')),
          ps=extract_raw_number(info.get('priceToSalesTrailing12Months')),
          ev_ebitda=extract_raw_number(info.get('enterpriseToEbitda')),
      ),
  )


def map_quote(ticker: str, info: Mapping[str, Any]) -> Quote:
  '''Build Quote from a yfinance info dictionary.'''
  price = extract_raw_number(info.get('regularMarketPrice'))
  if price is None:
    price = extract_raw_number(info.get('currentPrice'))
  if price is None and not info.get('symbol'):
    raise TickerNotFoundError(NOT_FOUND_MESSAGE)

  exchange = str(
      info.get('fullExchangeName') or info.get('exchange') or 'UNKNOWN')
  return Quote(
      ticker=str(info.get('symbol') or ticker).upper(),
      short_name=str(info.get('shortName') or info.get('longName') or ticker),
      currency=str(info.get('currency') or 'USD'),
      exchange=exchange,
      region=detect_region(exchange),
      regular_market_price=price or 0.0,
      market_cap=extract_raw_number(info.get('marketCap')),
      shares_outstanding=extract_raw_number(info.get('sharesOutstanding')),
      fetched_at=_utc_now_iso(),
  )


def map_analyst_estimates(
    info: Mapping[str, Any],
    revenue_estimate: Optional[pd.DataFrame] = None,
    growth_estimates: Optional[pd.DataFrame] = None,
) -> AnalystEstimates:
  '''
  Build AnalystEstimates from yfinance info and estimate tables.

  Yahoo publishes no multi-year revenue consensus; revenue_estimate only
  covers the current and next fiscal year. revenue_growth_5_year is
  therefore taken from the long-term (+5y or LTG) row of growth_estimates,
  which is an EPS growth trend, as a proxy for sustained revenue growth.
  It stays first in the growth chain and is clamped with the rest of the
  scenario.

  Args:
    info: Ticker info dictionary (current financials and targets)
    revenue_estimate: Revenue consensus by period ('0y', '+1y', ...)
    growth_estimates: Growth consensus by period ('+1y', '+5y'/'LTG', ...)

  Returns:
    AnalystEstimates with None for anything not covered
  '''
  return AnalystEstimates(
      revenue_growth_next_year=_statement_value(revenue_estimate, ('+1y',),
                                                'growth'),
      revenue_growth_5_year=_statement_value(growth_estimates,
                                             ('+5y', 'LTG'), 'stockTrend'),
      earnings_growth_next_year=_statement_value(growth_estimates, ('+1y',),
                                                 'stockTrend'),
      target_mean_price=extract_raw_number(info.get('targetMeanPrice')),
      number_of_analysts=extract_raw_number(
          info.get('numberOfAnalystOpinions')),
      operating_margins=extract_raw_number(info.get('operatingMargins')),
      revenue_growth_ttm=extract_raw_number(info.get('revenueGrowth')),
      free_cashflow=extract_raw_number(info.get('freeCashflow')),
      total_revenue=extract_raw_number(info.get('totalRevenue')),
  )


class YahooFinanceClient:
  '''
  Market data client backed by yfinance.

  Every public method retries transient failures and raises a
  MarketDataError subclass with a user-facing message.
  '''

  def __init__(
      self,
      config: Optional[ProviderConfig] = None,
      ticker_factory: Callable[[str], Any] = yf.Ticker,
      sleep: Callable[[float], None] = time.sleep,
  ):
    '''
    Initialize client.

    Args:
      config: Retry and history settings (default: ProviderConfig())
      ticker_factory: Creates the per-ticker handle (yf.Ticker)
      sleep: Sleep function used between retries
    '''
    self.config = config or ProviderConfig()
    self._ticker_factory = ticker_factory
    self._sleep = sleep
    self._handles: Dict[str, Any] = {}
    self._lock = threading.Lock()

  def _handle(self, ticker: str) -> Any:
    '''Cached per-ticker handle; yfinance memoizes info on it.'''
    key = ticker.upper()
    with self._lock:
      if key not in self._handles:
        self._handles[key] = self._ticker_factory(ticker)
      return self._handles[key]

  def _fetch(self, ticker: str, what: str, task: Callable[[Any], T]) -> T:
    handle = self._handle(ticker)
    logger.debug('Fetching %s for %s', what, ticker)
    try:
      return with_retry(lambda: task(handle),
                        retries=self.config.retries,
                        backoff_sec=self.config.backoff_sec,
                        sleep=self._sleep)
    except Exception as e:  # pylint: disable=broad-except
      raise normalize_provider_error(e) from e

  def get_quote(self, ticker: str) -> Quote:
    '''Current price, market cap, shares outstanding and exchange.'''
    info = self._fetch(ticker, 'quote', lambda t: dict(t.info or {}))
    return map_quote(ticker, info)

  def get_fundamentals(self, ticker: str) -> FundamentalsData:
    '''Up to `annual_periods` years of income and cash flow data.'''
    income_stmt, cashflow, info = self._fetch(
        ticker, 'fundamentals', lambda t:
        (t.income_stmt, t.cashflow, dict(t.info or {})))
    return map_fundamentals(ticker, income_stmt, cashflow, info,
                            periods=self.config.annual_periods)

  def get_net_debt_estimate(self, ticker: str) -> float:
    '''
    Total debt minus total cash.

    Positive means debt exceeds cash; negative is a net cash position.
    Missing components count as zero.
    '''
    info = self._fetch(ticker, 'net debt', lambda t: dict(t.info or {}))
    total_debt = extract_raw_number(info.get('totalDebt')) or 0.0
    total_cash = extract_raw_number(info.get('totalCash')) or 0.0
    return total_debt - total_cash

  def get_analyst_estimates(self, ticker: str) -> AnalystEstimates:
    '''Analyst consensus plus current margin, FCF and revenue.'''
    info, revenue_estimate, growth_estimates = self._fetch(
        ticker, 'analyst estimates', lambda t:
        (dict(t.info or {}), t.revenue_estimate, t.growth_estimates))
    return map_analyst_estimates(info, revenue_estimate, growth_estimates)
