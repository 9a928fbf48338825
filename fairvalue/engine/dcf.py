"""
Pure DCF math engine.

This module contains pure functions for DCF calculations. No pandas, no I/O,
just numeric computations over a validated scenario.

The model projects revenue for 10 years (growth for years 1-5, then a
slower rate for years 6-10), converts revenue to free cash flow through
operating margin, tax and reinvestment, and caps the horizon with a Gordon
Growth terminal value.

Key functions:
  validate_scenario_input: Range and WACC > terminal growth checks
  run_dcf: Main entry point, computes fair value per share
  project_free_cash_flows: Yearly revenue/EBIT/NOPAT/FCF rows
  compute_pv_explicit: PV of the explicit forecast period
  compute_terminal_value: Discounted Gordon Growth terminal value
"""

from dataclasses import dataclass
import math
from typing import List, Tuple

from fairvalue.domain.types import DcfInput
from fairvalue.domain.types import ScenarioInput
from fairvalue.domain.types import ScenarioResult
from fairvalue.errors import InvalidMarketInputError
from fairvalue.errors import ScenarioConstraintError

PROJECTION_YEARS = 10
HIGH_GROWTH_YEARS = 5

# (field, min, max, label); closed ranges accepted by the engine.
SCENARIO_BOUNDS: Tuple[Tuple[str, float, float, str], ...] = (
    ('revenue_growth_years_1_to_5', -0.5, 0.6, 'Revenue growth years 1-5'),
    ('revenue_growth_years_6_to_10', -0.5, 0.4, 'Revenue growth years 6-10'),
    ('operating_margin_target', 0.0, 0.8, 'Operating margin target'),
    ('tax_rate', 0.0, 0.6, 'Tax rate'),
    ('reinvestment_rate', 0.0, 0.9, 'Reinvestment rate'),
    ('wacc', 0.03, 0.3, 'WACC'),
    ('terminal_growth', -0.02, 0.06, 'Terminal growth'),
)


@dataclass(frozen=True)
class ProjectedYear:
  '''One year of the explicit forecast.'''
  year: int
  growth: float
  revenue: float
  ebit: float
  nopat: float
  fcf: float
  discounted_fcf: float


def _format_bound(value: float) -> str:
  return f'{value:g}'


def validate_scenario_input(scenario: ScenarioInput) -> None:
  """
  Validate scenario constraints before running DCF.

  Non-finite values are rejected first since every comparison with NaN is
  false. The WACC / terminal growth check runs next since the terminal value
  is undefined without it.

  Args:
    scenario: Scenario assumptions to check

  Raises:
    ScenarioConstraintError: If any field is NaN or infinite,
      wacc <= terminal_growth, or any field lies outside its closed range
  """
  for name, _, _, label in SCENARIO_BOUNDS:
    if not math.isfinite(getattr(scenario, name)):
      raise ScenarioConstraintError(f'{label} must be a finite number.')

  if scenario.wacc <= scenario.terminal_growth:
    raise ScenarioConstraintError(
        'WACC must be greater than terminal growth.')

  for name, lo, hi, label in SCENARIO_BOUNDS:
    value = getattr(scenario, name)
    if value < lo or value > hi:
      raise ScenarioConstraintError(
          f'{label} must be between {_format_bound(lo)} and '
          f'{_format_bound(hi)}.')


def project_free_cash_flows(
    current_revenue: float,
    scenario: ScenarioInput,
) -> List[ProjectedYear]:
  """
  Project the explicit forecast period.

  Args:
    current_revenue: Latest annual revenue (year 0)
    scenario: Validated scenario assumptions

  Returns:
    PROJECTION_YEARS rows, year 1 first
  """
  rows: List[ProjectedYear] = []
  revenue = current_revenue

  for year in range(1, PROJECTION_YEARS + 1):
    if year <= HIGH_GROWTH_YEARS:
      growth = scenario.revenue_growth_years_1_to_5
    else:
      growth = scenario.revenue_growth_years_6_to_10
    revenue *= 1.0 + growth

    ebit = revenue * scenario.operating_margin_target
    nopat = ebit * (1.0 - scenario.tax_rate)
    # Reinvestment is taken out of NOPAT so growth is not free.
    fcf = nopat * (1.0 - scenario.reinvestment_rate)

    rows.append(
        ProjectedYear(
            year=year,
            growth=growth,
            revenue=revenue,
            ebit=ebit,
            nopat=nopat,
            fcf=fcf,
            discounted_fcf=fcf / ((1.0 + scenario.wacc)**year),
        ))

  return rows


def compute_pv_explicit(rows: List[ProjectedYear]) -> float:
  """Sum of discounted FCF over the explicit period."""
  total = 0.0
  for row in rows:
    total += row.discounted_fcf
  return total


def compute_terminal_value(
    final_fcf: float,
    terminal_growth: float,
    wacc: float,
    final_year: int,
) -> float:
  """
  Compute discounted terminal value using Gordon Growth Model.

  The terminal cash flow is the final explicit-year FCF grown once by
  terminal_growth, i.e. final-year margin, tax and reinvestment carry into
  perpetuity unchanged.

  Args:
    final_fcf: FCF in the final explicit year
    terminal_growth: Perpetual growth rate
    wacc: Discount rate (must exceed terminal_growth)
    final_year: Number of years to discount back

  Returns:
    Present value of terminal value
  """
  terminal_fcf = final_fcf * (1.0 + terminal_growth)
  terminal_value = terminal_fcf / (wacc - terminal_growth)
  return terminal_value / ((1.0 + wacc)**final_year)


def run_dcf(dcf_input: DcfInput) -> ScenarioResult:
  """
  Compute a scenario fair value.

  Fails fast on the first violated precondition; nothing is clamped.
  Non-finite results are not detected here.

  Args:
    dcf_input: Market inputs and scenario assumptions

  Returns:
    ScenarioResult with enterprise, equity and per-share values

  Raises:
    ScenarioConstraintError: If the scenario is invalid
    InvalidMarketInputError: If revenue, shares or price is not positive
  """
  scenario = dcf_input.scenario
  validate_scenario_input(scenario)

  if (dcf_input.current_revenue <= 0 or dcf_input.shares_outstanding <= 0 or
      dcf_input.current_price <= 0):
    raise InvalidMarketInputError(
        'Revenue, shares outstanding, and current price must be positive.')

  rows = project_free_cash_flows(dcf_input.current_revenue, scenario)
  pv_explicit = compute_pv_explicit(rows)
  tv_component = compute_terminal_value(
      final_fcf=rows[-1].fcf,
      terminal_growth=scenario.terminal_growth,
      wacc=scenario.wacc,
      final_year=PROJECTION_YEARS,
  )

  enterprise_value = pv_explicit + tv_component
  equity_value = enterprise_value - dcf_input.net_debt
  fair_value_per_share = equity_value / dcf_input.shares_outstanding
  fair_value_after_mos = fair_value_per_share * (
      1.0 - dcf_input.mos_percent / 100.0)
  upside = ((fair_value_after_mos - dcf_input.current_price) /
            dcf_input.current_price * 100.0)

  return ScenarioResult(
      enterprise_value=enterprise_value,
      equity_value=equity_value,
      fair_value_per_share=fair_value_per_share,
      fair_value_after_mos=fair_value_after_mos,
      upside_vs_price_percent=upside,
  )
