'''
Revenue growth estimation policy.

Estimates the years 1-5 growth rate from analyst consensus, falling back to
historical revenue CAGR and trailing growth, and derives the years 6-10
rate by decaying it toward the terminal phase.
'''

from typing import Optional

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import PolicyOutput
from fairvalue.policies.fallback import FallbackChain
from fairvalue.policies.fallback import FallbackLink
from fairvalue.policies.fallback import is_present

DEFAULT_GROWTH = 0.05
LONG_TERM_DECAY = 0.6


def historical_revenue_cagr(fundamentals: FundamentalsData) -> Optional[float]:
  '''
  CAGR between the oldest and newest annual revenue.

  With N points ordered newest-first the span is N - 1 years.

  Returns:
    CAGR, or None with fewer than 2 points or a non-positive endpoint
  '''
  points = fundamentals.annual
  if len(points) < 2:
    return None

  newest = points[0].revenue
  oldest = points[-1].revenue
  if not (is_present(newest) and is_present(oldest)):
    return None
  if newest <= 0 or oldest <= 0:
    return None

  return (newest / oldest)**(1.0 / (len(points) - 1)) - 1.0


class RevenueGrowthPolicy:
  '''
  Fallback-chain growth estimate.

  Priority: analyst 5-year growth, analyst next-year growth, historical
  CAGR, trailing twelve month growth, literal default.
  '''

  def __init__(
      self,
      default: float = DEFAULT_GROWTH,
      long_term_decay: float = LONG_TERM_DECAY,
  ):
    '''
    Initialize revenue growth policy.

    Args:
      default: Growth used when no data is available (default: 5%)
      long_term_decay: Multiplier from years 1-5 to years 6-10 growth
    '''
    self.default = default
    self.long_term_decay = long_term_decay
    self.chain = FallbackChain(
        links=[
            FallbackLink(
                'analyst_5y',
                predicate=lambda f, e: is_present(e.revenue_growth_5_year),
                supplier=lambda f, e: e.revenue_growth_5_year,
            ),
            FallbackLink(
                'analyst_next_year',
                predicate=lambda f, e: is_present(e.revenue_growth_next_year),
                supplier=lambda f, e: e.revenue_growth_next_year,
            ),
            FallbackLink(
                'historical_cagr',
                predicate=lambda f, e: historical_revenue_cagr(f) is not None,
                supplier=lambda f, e: historical_revenue_cagr(f),
            ),
            FallbackLink(
                'ttm',
                predicate=lambda f, e: is_present(e.revenue_growth_ttm),
                supplier=lambda f, e: e.revenue_growth_ttm,
            ),
        ],
        default=default,
    )

  def compute(
      self,
      fundamentals: FundamentalsData,
      estimates: AnalystEstimates,
  ) -> PolicyOutput[float]:
    '''Compute years 1-5 revenue growth.'''
    result = self.chain.resolve(fundamentals, estimates)
    return PolicyOutput(value=result.value,
                        diag={
                            'growth_method': result.diag['source'],
                            'growth_years_1_to_5': result.value,
                            'long_term_decay': self.long_term_decay,
                        })

  def long_term(self, growth_years_1_to_5: float) -> float:
    '''Years 6-10 growth, decayed from the years 1-5 rate.'''
    return growth_years_1_to_5 * self.long_term_decay
