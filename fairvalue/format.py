"""
Display formatting for valuation output.

The valuation core works in decimal fractions; conversion to percent and
currency strings happens only here.
"""

import math

CURRENCY_SYMBOLS = {
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'JPY': '¥',
    'INR': '₹',
}

_COMPACT_UNITS = (
    (1e12, 'T'),
    (1e9, 'B'),
    (1e6, 'M'),
    (1e3, 'K'),
)


def format_currency(value: float, currency: str = 'USD') -> str:
  """Format as currency with thousands separators, e.g. '-$1,234.50'."""
  if not math.isfinite(value):
    return 'n/a'
  symbol = CURRENCY_SYMBOLS.get(currency.upper())
  sign = '-' if value < 0 else ''
  amount = f'{abs(value):,.2f}'
  if symbol is None:
    return f'{sign}{amount} {currency.upper()}'
  return f'{sign}{symbol}{amount}'


def format_compact_number(value: float) -> str:
  """Format with a magnitude suffix, e.g. 391035000000 -> '391.04B'."""
  if not math.isfinite(value):
    return 'n/a'
  for threshold, suffix in _COMPACT_UNITS:
    if abs(value) >= threshold:
      scaled = f'{value / threshold:.2f}'.rstrip('0').rstrip('.')
      return f'{scaled}{suffix}'
  return f'{value:.2f}'.rstrip('0').rstrip('.')


def format_percent(fraction: float, fraction_digits: int = 1) -> str:
  """Format a decimal fraction as percent, e.g. 0.1234 -> '12.3%'."""
  if not math.isfinite(fraction):
    return 'n/a'
  return f'{fraction * 100:.{fraction_digits}f}%'
