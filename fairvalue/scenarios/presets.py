'''
Bull/base/bear scenario presets.

Two sources of scenarios:
1. get_default_scenarios: fixed generic assumptions, no data needed
2. get_company_scenarios: base derived from fundamentals and analyst
   estimates through the policy fallback chains, bull and bear derived
   from base by fixed adjustments

Derivation never raises. Every emitted scenario lies inside the DCF
engine's bounds and satisfies wacc > terminal_growth.

Usage:
  from fairvalue.scenarios.presets import get_company_scenarios

  scenarios = get_company_scenarios(fundamentals, estimates)
  scenarios.base.operating_margin_target
'''

import logging
from typing import Any, Dict, Optional

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import PolicyOutput
from fairvalue.domain.types import ScenarioInput
from fairvalue.domain.types import ScenarioSet
from fairvalue.policies.bounds import clamp_scenario
from fairvalue.policies.capital import FixedCostOfCapital
from fairvalue.policies.growth import RevenueGrowthPolicy
from fairvalue.policies.margin import OperatingMarginPolicy
from fairvalue.policies.reinvestment import ReinvestmentPolicy
from fairvalue.policies.tax import TaxRatePolicy
from fairvalue.scenarios.adjustments import BEAR_ADJUSTMENT
from fairvalue.scenarios.adjustments import BULL_ADJUSTMENT

logger = logging.getLogger(__name__)

PRESET_GENERIC = 'generic'
PRESET_COMPANY = 'company'
PRESET_NAMES = (PRESET_COMPANY, PRESET_GENERIC)


def get_default_scenarios() -> ScenarioSet:
  '''
  Generic bull/base/bear assumptions for when no company data is used.

  Conservative enough to avoid extreme output while still differentiating
  the three scenarios.
  '''
  return ScenarioSet(
      bull=ScenarioInput(
          revenue_growth_years_1_to_5=0.12,
          revenue_growth_years_6_to_10=0.08,
          operating_margin_target=0.22,
          tax_rate=0.20,
          reinvestment_rate=0.30,
          wacc=0.085,
          terminal_growth=0.03,
      ),
      base=ScenarioInput(
          revenue_growth_years_1_to_5=0.08,
          revenue_growth_years_6_to_10=0.05,
          operating_margin_target=0.18,
          tax_rate=0.22,
          reinvestment_rate=0.35,
          wacc=0.095,
          terminal_growth=0.025,
      ),
      bear=ScenarioInput(
          revenue_growth_years_1_to_5=0.04,
          revenue_growth_years_6_to_10=0.02,
          operating_margin_target=0.14,
          tax_rate=0.25,
          reinvestment_rate=0.40,
          wacc=0.11,
          terminal_growth=0.02,
      ),
  )


def create_derivation_policies() -> Dict[str, Any]:
  '''
  Policy instances used by derive_company_scenarios.

  Returns:
    Dictionary with growth, margin, tax, reinvestment and capital policies
  '''
  return {
      'growth': RevenueGrowthPolicy(),
      'margin': OperatingMarginPolicy(),
      'tax': TaxRatePolicy(),
      'reinvestment': ReinvestmentPolicy(),
      'capital': FixedCostOfCapital(),
  }


def derive_company_scenarios(
    fundamentals: FundamentalsData,
    estimates: AnalystEstimates,
    policies: Optional[Dict[str, Any]] = None,
) -> PolicyOutput[ScenarioSet]:
  '''
  Derive company-specific scenarios with diagnostics.

  Args:
    fundamentals: Annual history, newest first (may be empty)
    estimates: Analyst estimates (any field may be None)
    policies: Optional override of create_derivation_policies()

  Returns:
    PolicyOutput with the ScenarioSet and merged policy diagnostics
  '''
  if policies is None:
    policies = create_derivation_policies()

  all_diag: Dict[str, Any] = {'ticker': fundamentals.ticker}

  growth_result = policies['growth'].compute(fundamentals, estimates)
  all_diag.update(growth_result.diag)

  margin_result = policies['margin'].compute(fundamentals, estimates)
  all_diag.update(margin_result.diag)

  tax_result = policies['tax'].compute(fundamentals)
  all_diag.update(tax_result.diag)

  reinvestment_result = policies['reinvestment'].compute(
      fundamentals, estimates, tax_result.value)
  all_diag.update(reinvestment_result.diag)

  capital_result = policies['capital'].compute()
  all_diag.update(capital_result.diag)
  wacc, terminal_growth = capital_result.value

  logger.debug(
      '%s: growth=%s margin=%s tax=%s reinvestment=%s', fundamentals.ticker,
      growth_result.diag['growth_method'], margin_result.diag['margin_method'],
      tax_result.diag['tax_method'],
      reinvestment_result.diag['reinvestment_method'])

  base = clamp_scenario(
      ScenarioInput(
          revenue_growth_years_1_to_5=growth_result.value,
          revenue_growth_years_6_to_10=policies['growth'].long_term(
              growth_result.value),
          operating_margin_target=margin_result.value,
          tax_rate=tax_result.value,
          reinvestment_rate=reinvestment_result.value,
          wacc=wacc,
          terminal_growth=terminal_growth,
      ))

  scenarios = ScenarioSet(
      bull=BULL_ADJUSTMENT.apply(base),
      base=base,
      bear=BEAR_ADJUSTMENT.apply(base),
  )
  return PolicyOutput(value=scenarios, diag=all_diag)


def get_company_scenarios(
    fundamentals: FundamentalsData,
    estimates: AnalystEstimates,
) -> ScenarioSet:
  '''Company-specific bull/base/bear scenarios.'''
  return derive_company_scenarios(fundamentals, estimates).value
