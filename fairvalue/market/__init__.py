"""Market data client for quotes, fundamentals and analyst estimates."""

from fairvalue.market.yahoo import ProviderConfig
from fairvalue.market.yahoo import YahooFinanceClient

__all__ = [
    'ProviderConfig',
    'YahooFinanceClient',
]
