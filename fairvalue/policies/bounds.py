"""
Clamping utilities.

Every derived scenario passes through clamp_scenario() exactly once when it
is finalized, using the same bounds table the DCF engine validates against.
"""

from dataclasses import replace

from fairvalue.domain.types import ScenarioInput
from fairvalue.engine.dcf import SCENARIO_BOUNDS


def clamp(value: float, lo: float, hi: float) -> float:
  """Limit value to the closed range [lo, hi]."""
  return max(lo, min(hi, value))


def clamp_scenario(scenario: ScenarioInput) -> ScenarioInput:
  """Return a copy of scenario with every field inside engine bounds."""
  clamped = {
      name: clamp(getattr(scenario, name), lo, hi)
      for name, lo, hi, _ in SCENARIO_BOUNDS
  }
  return replace(scenario, **clamped)
