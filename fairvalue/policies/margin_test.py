from dataclasses import replace
import math

import pytest

from fairvalue.conftest import make_point
from fairvalue.domain.types import FundamentalsData
from fairvalue.policies.margin import average_operating_margin
from fairvalue.policies.margin import latest_operating_margin
from fairvalue.policies.margin import OperatingMarginPolicy


def _with_nan_latest(fundamentals: FundamentalsData) -> FundamentalsData:
  annual = list(fundamentals.annual)
  annual[0] = replace(annual[0], operating_margin=math.nan)
  return replace(fundamentals, annual=annual)


class TestMarginHelpers:

  def test_latest(self, apple_fundamentals):
    assert latest_operating_margin(apple_fundamentals) == 0.315

  def test_latest_empty(self):
    assert latest_operating_margin(FundamentalsData('X', 'USD', [])) is None

  def test_average_of_three_newest(self, apple_fundamentals):
    assert average_operating_margin(apple_fundamentals) == pytest.approx(
        (0.315 + 0.298 + 0.290) / 3)

  def test_average_needs_enough_points(self, minimal_fundamentals):
    assert average_operating_margin(minimal_fundamentals) is None

  def test_average_skips_missing_margins(self, apple_fundamentals):
    assert average_operating_margin(
        _with_nan_latest(apple_fundamentals)) == pytest.approx(
            (0.298 + 0.290) / 2)


class TestOperatingMarginPolicy:
  """Tests for OperatingMarginPolicy fallback order."""

  def test_analyst_current_first(self, apple_fundamentals, apple_estimates):
    estimates = replace(apple_estimates, operating_margins=0.30)
    result = OperatingMarginPolicy().compute(apple_fundamentals, estimates)

    assert result.value == 0.30
    assert result.diag == {
        'margin_method': 'analyst_current',
        'operating_margin': 0.30,
    }

  def test_latest_annual_second(self, apple_fundamentals, no_estimates):
    result = OperatingMarginPolicy().compute(apple_fundamentals, no_estimates)

    assert result.value == 0.315
    assert result.diag['margin_method'] == 'latest_annual'

  def test_average_annual_third(self, apple_fundamentals, no_estimates):
    result = OperatingMarginPolicy().compute(
        _with_nan_latest(apple_fundamentals), no_estimates)

    assert result.value == pytest.approx(0.294)
    assert result.diag['margin_method'] == 'average_annual'

  def test_default_without_history(self, no_estimates):
    result = OperatingMarginPolicy().compute(FundamentalsData('X', 'USD', []),
                                             no_estimates)

    assert result.value == 0.18
    assert result.diag['margin_method'] == 'default'

  def test_negative_margin_passed_through(self, unprofitable_fundamentals,
                                          no_estimates):
    """Clamping happens later, when the scenario is finalized."""
    result = OperatingMarginPolicy().compute(unprofitable_fundamentals,
                                             no_estimates)
    assert result.value == pytest.approx(-0.1)

  def test_zero_revenue_point_gives_zero_margin(self, no_estimates):
    fundamentals = FundamentalsData('X', 'USD',
                                    [make_point(2025, 0.0, 1.0, 1.0, 1.0)])
    result = OperatingMarginPolicy().compute(fundamentals, no_estimates)
    assert result.value == 0.0
