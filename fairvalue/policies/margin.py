'''Operating margin estimation policy.'''

from typing import Optional

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import PolicyOutput
from fairvalue.policies.fallback import FallbackChain
from fairvalue.policies.fallback import FallbackLink
from fairvalue.policies.fallback import is_present

DEFAULT_MARGIN = 0.18


def latest_operating_margin(fundamentals: FundamentalsData) -> Optional[float]:
  '''Operating margin of the most recent annual point.'''
  latest = fundamentals.latest
  if latest is None or not is_present(latest.operating_margin):
    return None
  return latest.operating_margin


def average_operating_margin(
    fundamentals: FundamentalsData,
    years: int = 3,
) -> Optional[float]:
  '''Mean of the finite operating margins among the newest `years` points.'''
  recent = fundamentals.annual[:years]
  if len(recent) < years:
    return None
  margins = [
      p.operating_margin for p in recent if is_present(p.operating_margin)
  ]
  if not margins:
    return None
  return sum(margins) / len(margins)


class OperatingMarginPolicy:
  '''
  Fallback-chain operating margin estimate.

  Priority: current analyst-reported margin, latest annual margin, average
  of the last `average_years` annual margins, literal default.
  '''

  def __init__(self, default: float = DEFAULT_MARGIN, average_years: int = 3):
    self.default = default
    self.average_years = average_years
    self.chain = FallbackChain(
        links=[
            FallbackLink(
                'analyst_current',
                predicate=lambda f, e: is_present(e.operating_margins),
                supplier=lambda f, e: e.operating_margins,
            ),
            FallbackLink(
                'latest_annual',
                predicate=lambda f, e: latest_operating_margin(f) is not None,
                supplier=lambda f, e: latest_operating_margin(f),
            ),
            FallbackLink(
                'average_annual',
                predicate=lambda f, e: average_operating_margin(
                    f, self.average_years) is not None,
                supplier=lambda f, e: average_operating_margin(
                    f, self.average_years),
            ),
        ],
        default=default,
    )

  def compute(
      self,
      fundamentals: FundamentalsData,
      estimates: AnalystEstimates,
  ) -> PolicyOutput[float]:
    '''Compute target operating margin.'''
    result = self.chain.resolve(fundamentals, estimates)
    return PolicyOutput(value=result.value,
                        diag={
                            'margin_method': result.diag['source'],
                            'operating_margin': result.value,
                        })
