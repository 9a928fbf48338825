"""
Cost of capital policy.

The discount rate and terminal growth are fixed literals; there is no
beta/CAPM estimation.
"""

from typing import Tuple

from fairvalue.domain.types import PolicyOutput

BASE_WACC = 0.095
BASE_TERMINAL_GROWTH = 0.025


class FixedCostOfCapital:
  """Constant (wacc, terminal_growth) pair for the base scenario."""

  def __init__(
      self,
      wacc: float = BASE_WACC,
      terminal_growth: float = BASE_TERMINAL_GROWTH,
  ):
    """
    Initialize fixed cost of capital policy.

    Args:
      wacc: Discount rate (default: 9.5%)
      terminal_growth: Perpetual growth rate (default: 2.5%)
    """
    self.wacc = wacc
    self.terminal_growth = terminal_growth

  def compute(self) -> PolicyOutput[Tuple[float, float]]:
    """Return fixed (wacc, terminal_growth)."""
    return PolicyOutput(value=(self.wacc, self.terminal_growth),
                        diag={
                            'wacc_method': 'fixed',
                            'wacc': self.wacc,
                            'terminal_growth': self.terminal_growth,
                        })
