"""
Bull and bear adjustments applied to a derived base scenario.

The deltas are fixed calibration constants. Growth is scaled
multiplicatively; every other field moves by an absolute amount.
"""

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import replace
from typing import Any

from fairvalue.domain.types import ScenarioInput
from fairvalue.policies.bounds import clamp_scenario

TERMINAL_GROWTH_REPAIR_SPREAD = 0.01


@dataclass(frozen=True)
class ScenarioAdjustment:
  """
  Deterministic shift from the base scenario.

  Attributes:
    name: Scenario name ('bull' or 'bear')
    growth_multiplier_years_1_to_5: Factor on years 1-5 growth
    growth_multiplier_years_6_to_10: Factor on years 6-10 growth
    margin_delta: Added to operating margin
    tax_delta: Added to tax rate
    reinvestment_delta: Added to reinvestment rate
    wacc_delta: Added to WACC
    terminal_growth_delta: Added to terminal growth
  """
  name: str
  growth_multiplier_years_1_to_5: float
  growth_multiplier_years_6_to_10: float
  margin_delta: float
  tax_delta: float
  reinvestment_delta: float
  wacc_delta: float
  terminal_growth_delta: float

  def apply(self, base: ScenarioInput) -> ScenarioInput:
    """Adjust, clamp to engine bounds, then repair WACC/terminal growth."""
    adjusted = ScenarioInput(
        revenue_growth_years_1_to_5=(base.revenue_growth_years_1_to_5 *
                                     self.growth_multiplier_years_1_to_5),
        revenue_growth_years_6_to_10=(base.revenue_growth_years_6_to_10 *
                                      self.growth_multiplier_years_6_to_10),
        operating_margin_target=base.operating_margin_target +
        self.margin_delta,
        tax_rate=base.tax_rate + self.tax_delta,
        reinvestment_rate=base.reinvestment_rate + self.reinvestment_delta,
        wacc=base.wacc + self.wacc_delta,
        terminal_growth=base.terminal_growth + self.terminal_growth_delta,
    )
    return repair_terminal_growth(clamp_scenario(adjusted))

  def to_dict(self) -> dict[str, Any]:
    """Convert to dictionary."""
    return asdict(self)


def repair_terminal_growth(scenario: ScenarioInput) -> ScenarioInput:
  """Pull terminal growth below WACC if an adjustment crossed them."""
  if scenario.wacc > scenario.terminal_growth:
    return scenario
  return replace(scenario,
                 terminal_growth=scenario.wacc -
                 TERMINAL_GROWTH_REPAIR_SPREAD)


BULL_ADJUSTMENT = ScenarioAdjustment(
    name='bull',
    growth_multiplier_years_1_to_5=1.25,
    growth_multiplier_years_6_to_10=1.25,
    margin_delta=0.03,
    tax_delta=-0.02,
    reinvestment_delta=-0.05,
    wacc_delta=-0.01,
    terminal_growth_delta=0.005,
)

BEAR_ADJUSTMENT = ScenarioAdjustment(
    name='bear',
    growth_multiplier_years_1_to_5=0.5,
    growth_multiplier_years_6_to_10=0.4,
    margin_delta=-0.04,
    tax_delta=0.03,
    reinvestment_delta=0.10,
    wacc_delta=0.015,
    terminal_growth_delta=-0.005,
)
