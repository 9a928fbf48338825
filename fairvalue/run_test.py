from dataclasses import replace
import json
import math
import sys

import pytest

from fairvalue.conftest import FakeClient
from fairvalue.conftest import make_quote
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import ScenarioSet
from fairvalue.errors import InvalidMarketInputError
from fairvalue.errors import InvalidPayloadError
from fairvalue.errors import MarketDataError
from fairvalue.errors import MissingDataError
from fairvalue.errors import RateLimitError
from fairvalue.errors import ScenarioConstraintError
from fairvalue.errors import TickerNotFoundError
from fairvalue.run import classify_status
from fairvalue.run import error_status_code
from fairvalue.run import main
from fairvalue.run import run_valuation
from fairvalue.run import suggest_scenarios
from fairvalue.scenarios.presets import get_company_scenarios
from fairvalue.scenarios.presets import get_default_scenarios


def _client_with_price(client: FakeClient, price: float) -> FakeClient:
  return FakeClient(quote=make_quote(price=price),
                    fundamentals=client.fundamentals,
                    net_debt=client.net_debt,
                    estimates=client.estimates)


class TestClassifyStatus:
  """Tests for classify_status thresholds."""

  @pytest.mark.parametrize('upside,status', [
      (15.01, 'undervalued'),
      (15.0, 'fair'),
      (0.0, 'fair'),
      (-15.0, 'fair'),
      (-15.01, 'overvalued'),
  ])
  def test_thresholds(self, upside, status):
    assert classify_status(upside) == status


class TestErrorStatusCode:

  @pytest.mark.parametrize('error,code', [
      (RateLimitError('slow down'), 503),
      (MissingDataError('no revenue'), 422),
      (ScenarioConstraintError('bad'), 400),
      (InvalidMarketInputError('bad'), 400),
      (InvalidPayloadError('Invalid valuation payload.'), 400),
      (TickerNotFoundError('gone'), 400),
      (MarketDataError('down'), 400),
  ])
  def test_codes(self, error, code):
    assert error_status_code(error) == code


class TestRunValuation:
  """Tests for run_valuation with an in-memory client."""

  def test_company_scenarios(self, apple_client, apple_fundamentals,
                             apple_estimates):
    response = run_valuation('AAPL', mos_percent=25, client=apple_client)

    assert response.ticker == 'AAPL'
    assert response.current_price == 190.0
    assert response.mos_percent == 25
    assert list(response.scenarios) == ['bull', 'base', 'bear']
    assert sorted(apple_client.calls) == [
        'estimates', 'fundamentals', 'net_debt', 'quote'
    ]
    assert response.diag['scenario_source'] == 'company'
    assert response.diag['growth_method'] == 'analyst_5y'

    expected = get_company_scenarios(apple_fundamentals, apple_estimates)
    assert response.diag['growth_years_1_to_5'] == (
        expected.base.revenue_growth_years_1_to_5)

  def test_scenario_ordering(self, apple_client):
    results = run_valuation('AAPL', client=apple_client).scenarios

    assert (results['bull'].fair_value_per_share >
            results['base'].fair_value_per_share >
            results['bear'].fair_value_per_share)

  def test_mos_and_upside_relations(self, apple_client):
    response = run_valuation('AAPL', mos_percent=30, client=apple_client)

    for result in response.scenarios.values():
      assert result.fair_value_after_mos == pytest.approx(
          result.fair_value_per_share * 0.7)
      assert result.upside_vs_price_percent == pytest.approx(
          (result.fair_value_after_mos - 190.0) / 190.0 * 100)
      assert result.equity_value == pytest.approx(result.enterprise_value -
                                                  20e9)

    base = response.scenarios['base']
    assert response.summary.base_scenario_upside_after_mos == (
        base.upside_vs_price_percent)
    assert response.summary.status == classify_status(
        base.upside_vs_price_percent)

  def test_status_follows_price(self, apple_client):
    fair = run_valuation('AAPL', client=apple_client).scenarios[
        'base'].fair_value_after_mos

    cheap = run_valuation('AAPL',
                          client=_client_with_price(apple_client, fair / 2))
    dear = run_valuation('AAPL',
                         client=_client_with_price(apple_client, fair * 2))
    even = run_valuation('AAPL', client=_client_with_price(apple_client, fair))

    assert cheap.summary.status == 'undervalued'
    assert dear.summary.status == 'overvalued'
    assert even.summary.status == 'fair'

  def test_caller_scenarios_skip_estimates(self, apple_client):
    response = run_valuation('AAPL',
                             scenarios=get_default_scenarios(),
                             client=apple_client)

    assert 'estimates' not in apple_client.calls
    assert response.diag['scenario_source'] == 'caller'
    assert 'growth_method' not in response.diag

  def test_invalid_caller_scenario_rejected_before_fetch(
      self, apple_client):
    defaults = get_default_scenarios()
    scenarios = replace(defaults,
                        bear=replace(defaults.bear,
                                     wacc=0.02,
                                     terminal_growth=0.02))

    with pytest.raises(ScenarioConstraintError, match='WACC'):
      run_valuation('AAPL', scenarios=scenarios, client=apple_client)
    assert apple_client.calls == []

  @pytest.mark.parametrize('mos', [-1, 80.5, 100])
  def test_mos_out_of_range(self, apple_client, mos):
    with pytest.raises(ScenarioConstraintError, match='Margin of safety'):
      run_valuation('AAPL', mos_percent=mos, client=apple_client)
    assert apple_client.calls == []

  @pytest.mark.parametrize('mos', [0, 80])
  def test_mos_bounds_accepted(self, apple_client, mos):
    response = run_valuation('AAPL', mos_percent=mos, client=apple_client)
    assert response.mos_percent == mos

  def test_missing_revenue(self, apple_client):
    apple_client.fundamentals = FundamentalsData('AAPL', 'USD', [])
    with pytest.raises(MissingDataError,
                       match='Missing revenue data for valuation'):
      run_valuation('AAPL', client=apple_client)

  def test_zero_latest_revenue(self, apple_client):
    annual = list(apple_client.fundamentals.annual)
    annual[0] = replace(annual[0], revenue=0.0)
    apple_client.fundamentals = replace(apple_client.fundamentals,
                                        annual=annual)
    with pytest.raises(MissingDataError, match='Missing revenue'):
      run_valuation('AAPL', client=apple_client)

  def test_missing_shares(self, apple_client):
    apple_client.quote = make_quote(shares=None)
    with pytest.raises(MissingDataError, match='Missing shares outstanding'):
      run_valuation('AAPL', client=apple_client)

  def test_shares_override(self, apple_client):
    apple_client.quote = make_quote(shares=None)
    response = run_valuation('AAPL',
                             shares_outstanding_override=15e9,
                             client=apple_client)

    apple_client.quote = make_quote(shares=15e9)
    expected = run_valuation('AAPL', client=apple_client)

    assert response.scenarios['base'] == expected.scenarios['base']

  def test_override_takes_precedence(self, apple_client):
    halved = run_valuation('AAPL',
                           shares_outstanding_override=30e9,
                           client=apple_client)
    full = run_valuation('AAPL', client=apple_client)

    assert halved.scenarios['base'].equity_value == pytest.approx(
        full.scenarios['base'].equity_value)
    assert halved.scenarios['base'].fair_value_per_share == pytest.approx(
        full.scenarios['base'].fair_value_per_share / 2)

  def test_non_finite_output(self, apple_client):
    with pytest.raises(MissingDataError,
                       match='Invalid output for bull scenario'):
      run_valuation('AAPL',
                    shares_outstanding_override=1e-320,
                    client=apple_client)

  def test_zero_price(self, apple_client):
    apple_client.quote = make_quote(price=0.0)
    with pytest.raises(InvalidMarketInputError):
      run_valuation('AAPL', client=apple_client)

  def test_provider_error_propagates(self, apple_client):

    def fail(ticker):
      raise RateLimitError('Yahoo Finance rate limit reached.')

    apple_client.get_net_debt_estimate = fail
    with pytest.raises(RateLimitError):
      run_valuation('AAPL', client=apple_client)

  def test_results_finite(self, apple_client):
    response = run_valuation('AAPL', client=apple_client)
    for result in response.scenarios.values():
      assert all(math.isfinite(v) for v in result.to_dict().values())


def test_suggest_scenarios(apple_client, apple_fundamentals, apple_estimates):
  estimates, scenarios = suggest_scenarios('AAPL', client=apple_client)

  assert estimates == apple_estimates
  assert scenarios == get_company_scenarios(apple_fundamentals,
                                            apple_estimates)
  assert sorted(apple_client.calls) == ['estimates', 'fundamentals']


class TestMain:
  """Tests for the CLI entrypoint with the client patched out."""

  @pytest.fixture
  def patched_client(self, monkeypatch, apple_client):
    monkeypatch.setattr('fairvalue.run.YahooFinanceClient',
                        lambda: apple_client)
    return apple_client

  def test_generic_preset_to_csv(self, monkeypatch, tmp_path,
                                 patched_client):
    output = tmp_path / 'out' / 'aapl.csv'
    monkeypatch.setattr(sys, 'argv', [
        'run', '--ticker', 'AAPL', '--preset', 'generic', '--output',
        str(output)
    ])
    main()

    assert output.exists()
    assert 'fair_value_after_mos' in output.read_text()
    assert 'estimates' not in patched_client.calls

  def test_scenarios_file(self, monkeypatch, tmp_path, patched_client):
    path = tmp_path / 'scenarios.json'
    path.write_text(json.dumps(get_default_scenarios().to_dict()))
    monkeypatch.setattr(sys, 'argv', [
        'run', '--ticker', 'AAPL', '--scenarios-file',
        str(path)
    ])
    main()

    assert 'estimates' not in patched_client.calls
    assert ScenarioSet.from_json(path.read_text()) == get_default_scenarios()

  def test_failure_exits_nonzero(self, monkeypatch, patched_client):
    monkeypatch.setattr(sys, 'argv',
                        ['run', '--ticker', 'AAPL', '--mos', '95'])
    with pytest.raises(SystemExit) as exc_info:
      main()
    assert exc_info.value.code == 1

  @pytest.mark.parametrize('payload', [
      '{"bull": {}, "base": {}, "bear": {}}',
      '{"bull": ',
      '{"base": {"wacc": "high"}}',
  ])
  def test_malformed_scenarios_file_exits_nonzero(self, monkeypatch, tmp_path,
                                                  patched_client, payload):
    path = tmp_path / 'scenarios.json'
    path.write_text(payload)
    monkeypatch.setattr(sys, 'argv', [
        'run', '--ticker', 'AAPL', '--scenarios-file',
        str(path)
    ])
    with pytest.raises(SystemExit) as exc_info:
      main()

    assert exc_info.value.code == 1
    assert patched_client.calls == []

  def test_nan_in_scenarios_file_rejected_before_fetch(
      self, monkeypatch, tmp_path, patched_client, caplog):
    data = get_default_scenarios().to_dict()
    data['base']['wacc'] = math.nan
    path = tmp_path / 'scenarios.json'
    path.write_text(json.dumps(data))
    monkeypatch.setattr(sys, 'argv', [
        'run', '--ticker', 'AAPL', '--scenarios-file',
        str(path)
    ])
    with pytest.raises(SystemExit):
      main()

    assert patched_client.calls == []
    assert 'Valuation failed (400): WACC must be a finite number.' in (
        caplog.text)
