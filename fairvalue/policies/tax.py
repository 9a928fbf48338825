'''
Effective tax rate policy.

The rate is implied from the newest profitable year as
1 - net_income / ebit. Net income also absorbs interest and one-off items,
so the implied rate is clipped to a plausible corporate range.
'''

from typing import Optional

from fairvalue.domain.types import AnnualFundamentalPoint
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import PolicyOutput
from fairvalue.policies.bounds import clamp
from fairvalue.policies.fallback import is_present

DEFAULT_TAX_RATE = 0.22
TAX_CLIP_MIN = 0.10
TAX_CLIP_MAX = 0.40


def is_profitable(point: AnnualFundamentalPoint) -> bool:
  '''True if both EBIT and net income are positive.'''
  return (is_present(point.ebit) and is_present(point.net_income) and
          point.ebit > 0 and point.net_income > 0)


def implied_tax_rate(
    point: AnnualFundamentalPoint,
    clip_min: float = TAX_CLIP_MIN,
    clip_max: float = TAX_CLIP_MAX,
) -> Optional[float]:
  '''Clipped 1 - net_income / ebit, or None for an unprofitable year.'''
  if not is_profitable(point):
    return None
  return clamp(1.0 - point.net_income / point.ebit, clip_min, clip_max)


class TaxRatePolicy:
  '''Implied tax rate from the newest profitable year.'''

  def __init__(
      self,
      default: float = DEFAULT_TAX_RATE,
      clip_min: float = TAX_CLIP_MIN,
      clip_max: float = TAX_CLIP_MAX,
  ):
    '''
    Initialize tax rate policy.

    Args:
      default: Rate used when no year is profitable (default: 22%)
      clip_min: Minimum implied rate (default: 10%)
      clip_max: Maximum implied rate (default: 40%)
    '''
    self.default = default
    self.clip_min = clip_min
    self.clip_max = clip_max

  def compute(self, fundamentals: FundamentalsData) -> PolicyOutput[float]:
    '''Scan newest-first for the first profitable year.'''
    for point in fundamentals.annual:
      rate = implied_tax_rate(point, self.clip_min, self.clip_max)
      if rate is None:
        continue
      return PolicyOutput(value=rate,
                          diag={
                              'tax_method': 'implied',
                              'tax_rate': rate,
                              'tax_year': point.year,
                              'raw_tax_rate':
                                  1.0 - point.net_income / point.ebit,
                          })

    return PolicyOutput(value=self.default,
                        diag={
                            'tax_method': 'default',
                            'tax_rate': self.default,
                        })
