'''
Reinvestment rate policy.

Reinvestment is the share of NOPAT not converted to free cash flow:
1 - FCF / NOPAT. Capital-light companies can report FCF above NOPAT, which
makes the raw rate negative; it is floored at a small positive rate rather
than replaced by the generic default, which would understate fair value.
'''

from typing import Optional

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import AnnualFundamentalPoint
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import PolicyOutput
from fairvalue.policies.bounds import clamp
from fairvalue.policies.fallback import FallbackChain
from fairvalue.policies.fallback import FallbackLink
from fairvalue.policies.fallback import is_present
from fairvalue.policies.tax import DEFAULT_TAX_RATE
from fairvalue.policies.tax import implied_tax_rate

DEFAULT_REINVESTMENT = 0.30
REINVESTMENT_FLOOR = 0.05
REINVESTMENT_CAP = 0.70


def current_nopat(estimates: AnalystEstimates,
                  tax_rate: float) -> Optional[float]:
  '''NOPAT from current revenue and margin, or None if either is missing.'''
  if not (is_present(estimates.total_revenue) and
          is_present(estimates.operating_margins)):
    return None
  ebit = estimates.total_revenue * estimates.operating_margins
  return ebit * (1.0 - tax_rate)


def historical_nopat(point: AnnualFundamentalPoint) -> Optional[float]:
  '''NOPAT of one year using its implied tax rate, or the default rate.'''
  if not is_present(point.ebit):
    return None
  rate = implied_tax_rate(point)
  if rate is None:
    rate = DEFAULT_TAX_RATE
  return point.ebit * (1.0 - rate)


def first_historical_pair(
    fundamentals: FundamentalsData) -> Optional[tuple[float, float]]:
  '''(fcf, nopat) of the newest year with positive NOPAT and nonzero FCF.'''
  for point in fundamentals.annual:
    nopat = historical_nopat(point)
    if nopat is None or nopat <= 0:
      continue
    if not is_present(point.fcf) or point.fcf == 0:
      continue
    return point.fcf, nopat
  return None


class ReinvestmentPolicy:
  '''
  Fallback-chain reinvestment estimate.

  Priority: current FCF against current NOPAT, newest usable historical
  year, literal default. Computed rates are clipped to [floor, cap].
  '''

  def __init__(
      self,
      default: float = DEFAULT_REINVESTMENT,
      floor: float = REINVESTMENT_FLOOR,
      cap: float = REINVESTMENT_CAP,
  ):
    '''
    Initialize reinvestment policy.

    Args:
      default: Rate used when no FCF data is usable (default: 30%)
      floor: Minimum computed rate (default: 5%)
      cap: Maximum computed rate (default: 70%)
    '''
    self.default = default
    self.floor = floor
    self.cap = cap
    self.chain = FallbackChain(
        links=[
            FallbackLink(
                'current_fcf',
                predicate=self._has_current,
                supplier=self._from_current,
            ),
            FallbackLink(
                'historical_fcf',
                predicate=lambda f, e, t: first_historical_pair(f) is not None,
                supplier=self._from_history,
            ),
        ],
        default=default,
    )

  def _rate(self, fcf: float, nopat: float) -> float:
    return clamp(1.0 - fcf / nopat, self.floor, self.cap)

  def _has_current(self, fundamentals: FundamentalsData,
                   estimates: AnalystEstimates, tax_rate: float) -> bool:
    if not is_present(estimates.free_cashflow):
      return False
    nopat = current_nopat(estimates, tax_rate)
    return nopat is not None and nopat > 0

  def _from_current(self, fundamentals: FundamentalsData,
                    estimates: AnalystEstimates, tax_rate: float) -> float:
    return self._rate(estimates.free_cashflow,
                      current_nopat(estimates, tax_rate))

  def _from_history(self, fundamentals: FundamentalsData,
                    estimates: AnalystEstimates, tax_rate: float) -> float:
    fcf, nopat = first_historical_pair(fundamentals)
    return self._rate(fcf, nopat)

  def compute(
      self,
      fundamentals: FundamentalsData,
      estimates: AnalystEstimates,
      tax_rate: float = DEFAULT_TAX_RATE,
  ) -> PolicyOutput[float]:
    '''
    Compute reinvestment rate.

    Args:
      fundamentals: Annual history, newest first
      estimates: Analyst estimates and current financials
      tax_rate: Effective tax rate from TaxRatePolicy

    Returns:
      PolicyOutput with the rate and the source used
    '''
    result = self.chain.resolve(fundamentals, estimates, tax_rate)
    return PolicyOutput(value=result.value,
                        diag={
                            'reinvestment_method': result.diag['source'],
                            'reinvestment_rate': result.value,
                            'reinvestment_tax_rate': tax_rate,
                        })
