"""
Error taxonomy for valuation requests.

All errors derive from ValueError so callers that only catch ValueError
keep working. Scenario derivation never raises any of these.
"""


class ValuationError(ValueError):
  """Base class for all valuation failures."""


class ScenarioConstraintError(ValuationError):
  """A scenario field is out of range, or WACC <= terminal growth."""


class InvalidMarketInputError(ValuationError):
  """Revenue, shares outstanding or price is not positive."""


class InvalidPayloadError(ValuationError):
  """A scenario payload is not valid JSON or lacks numeric fields."""


class MissingDataError(ValuationError):
  """Upstream data is missing or produced an unusable result."""


class MarketDataError(ValuationError):
  """The market data provider failed."""


class RateLimitError(MarketDataError):
  """The market data provider is rate limiting requests."""


class TickerNotFoundError(MarketDataError):
  """The ticker is unknown or has no data at the provider."""
