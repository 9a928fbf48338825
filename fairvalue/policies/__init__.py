"""
Policies deriving company-specific scenario assumptions.

Each policy estimates one assumption (growth, margin, tax, reinvestment,
cost of capital) from fundamentals and analyst estimates and returns both a
value and diagnostic information. Missing inputs never raise; every policy
ends in a literal default.

To add a new fallback source, append a FallbackLink to the policy's chain:

  policy = RevenueGrowthPolicy()
  policy.chain.links.insert(2, FallbackLink(
      'my_source',
      predicate=lambda f, e: ...,
      supplier=lambda f, e: ...,
  ))
"""

from fairvalue.policies.bounds import clamp
from fairvalue.policies.bounds import clamp_scenario
from fairvalue.policies.capital import FixedCostOfCapital
from fairvalue.policies.fallback import FallbackChain
from fairvalue.policies.fallback import FallbackLink
from fairvalue.policies.fallback import is_present
from fairvalue.policies.growth import RevenueGrowthPolicy
from fairvalue.policies.margin import OperatingMarginPolicy
from fairvalue.policies.reinvestment import ReinvestmentPolicy
from fairvalue.policies.tax import TaxRatePolicy

__all__ = [
  'clamp', 'clamp_scenario',
  'FallbackChain', 'FallbackLink', 'is_present',
  'RevenueGrowthPolicy',
  'OperatingMarginPolicy',
  'TaxRatePolicy',
  'ReinvestmentPolicy',
  'FixedCostOfCapital',
]
