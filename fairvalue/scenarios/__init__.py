"""Scenario presets and bull/bear adjustments."""

from fairvalue.scenarios.adjustments import BEAR_ADJUSTMENT
from fairvalue.scenarios.adjustments import BULL_ADJUSTMENT
from fairvalue.scenarios.adjustments import ScenarioAdjustment
from fairvalue.scenarios.presets import derive_company_scenarios
from fairvalue.scenarios.presets import get_company_scenarios
from fairvalue.scenarios.presets import get_default_scenarios

__all__ = [
  'BEAR_ADJUSTMENT',
  'BULL_ADJUSTMENT',
  'ScenarioAdjustment',
  'derive_company_scenarios',
  'get_company_scenarios',
  'get_default_scenarios',
]
