'''
Single-company valuation entrypoint.

This module provides the main entry point for running valuations. It:
1. Fetches quote, fundamentals and net debt concurrently
2. Derives company scenarios (or accepts caller-supplied ones)
3. Runs the DCF engine for bull, base and bear
4. Checks outputs for finiteness and classifies the base case

Usage:
  from fairvalue.run import run_valuation

  response = run_valuation(ticker='AAPL', mos_percent=25)
  print(response.summary.status)

Usage (CLI):
  python -m fairvalue.run --ticker AAPL --mos 25
  python -m fairvalue.run --ticker ASML.AS --preset generic -v
  python -m fairvalue.run --ticker MSFT --scenarios-file my_scenarios.json
'''

import argparse
from concurrent.futures import ThreadPoolExecutor
import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import DcfInput
from fairvalue.domain.types import ScenarioResult
from fairvalue.domain.types import ScenarioSet
from fairvalue.domain.types import ValuationResponse
from fairvalue.domain.types import ValuationSummary
from fairvalue.engine.dcf import run_dcf
from fairvalue.engine.dcf import validate_scenario_input
from fairvalue.errors import MissingDataError
from fairvalue.errors import RateLimitError
from fairvalue.errors import ScenarioConstraintError
from fairvalue.errors import ValuationError
from fairvalue.format import format_compact_number
from fairvalue.format import format_currency
from fairvalue.format import format_percent
from fairvalue.market.yahoo import YahooFinanceClient
from fairvalue.scenarios.presets import PRESET_COMPANY
from fairvalue.scenarios.presets import PRESET_GENERIC
from fairvalue.scenarios.presets import PRESET_NAMES
from fairvalue.scenarios.presets import derive_company_scenarios
from fairvalue.scenarios.presets import get_default_scenarios

logger = logging.getLogger(__name__)

STATUS_THRESHOLD_PERCENT = 15.0
MOS_MIN_PERCENT = 0.0
MOS_MAX_PERCENT = 80.0
DEFAULT_MOS_PERCENT = 25.0


def classify_status(base_upside_percent: float) -> str:
  '''
  Classify valuation from the base scenario upside after margin of safety.

  Returns:
    'undervalued' above +15%, 'overvalued' below -15%, else 'fair'
  '''
  if base_upside_percent > STATUS_THRESHOLD_PERCENT:
    return 'undervalued'
  if base_upside_percent < -STATUS_THRESHOLD_PERCENT:
    return 'overvalued'
  return 'fair'


def error_status_code(error: Exception) -> int:
  '''
  HTTP-style status code for a valuation failure.

  Rate limits are retriable (503); missing or unusable upstream data is
  422; everything else, including invalid scenarios, is a bad request.
  '''
  if isinstance(error, RateLimitError):
    return 503
  if isinstance(error, MissingDataError):
    return 422
  return 400


def validate_mos_percent(mos_percent: float) -> None:
  '''Reject a margin of safety outside [0, 80] percent.'''
  if not MOS_MIN_PERCENT <= mos_percent <= MOS_MAX_PERCENT:
    raise ScenarioConstraintError(
        f'Margin of safety must be between {MOS_MIN_PERCENT:g} and '
        f'{MOS_MAX_PERCENT:g} percent.')


def suggest_scenarios(
    ticker: str,
    client: Optional[YahooFinanceClient] = None,
) -> Tuple[AnalystEstimates, ScenarioSet]:
  '''
  Analyst estimates and company-specific scenarios for a ticker.

  Used to pre-populate editable scenarios before running a valuation.
  '''
  if client is None:
    client = YahooFinanceClient()

  with ThreadPoolExecutor(max_workers=2) as executor:
    estimates_future = executor.submit(client.get_analyst_estimates, ticker)
    fundamentals_future = executor.submit(client.get_fundamentals, ticker)
    estimates = estimates_future.result()
    fundamentals = fundamentals_future.result()

  return estimates, derive_company_scenarios(fundamentals, estimates).value


def run_valuation(
    ticker: str,
    mos_percent: float = DEFAULT_MOS_PERCENT,
    scenarios: Optional[ScenarioSet] = None,
    shares_outstanding_override: Optional[float] = None,
    client: Optional[YahooFinanceClient] = None,
) -> ValuationResponse:
  '''
  Run a three-scenario valuation for a single ticker.

  Args:
    ticker: Company ticker symbol (e.g., 'AAPL', 'ASML.AS')
    mos_percent: Margin of safety in percent, 0-80
    scenarios: Scenarios to value; derived from company data when None
    shares_outstanding_override: Used when the provider lacks share count
    client: Market data client (default: YahooFinanceClient())

  Returns:
    ValuationResponse with per-scenario results and status summary

  Raises:
    ScenarioConstraintError: Invalid scenario or margin of safety
    MissingDataError: Revenue or shares missing, or non-finite output
    MarketDataError: Provider failure (RateLimitError when throttled)
  '''
  validate_mos_percent(mos_percent)
  if scenarios is not None:
    for _, scenario in scenarios.items():
      validate_scenario_input(scenario)

  if client is None:
    client = YahooFinanceClient()

  with ThreadPoolExecutor(max_workers=4) as executor:
    quote_future = executor.submit(client.get_quote, ticker)
    fundamentals_future = executor.submit(client.get_fundamentals, ticker)
    net_debt_future = executor.submit(client.get_net_debt_estimate, ticker)
    estimates_future = None
    if scenarios is None:
      estimates_future = executor.submit(client.get_analyst_estimates, ticker)

    quote = quote_future.result()
    fundamentals = fundamentals_future.result()
    net_debt = net_debt_future.result()
    estimates = estimates_future.result() if estimates_future else None

  diag: Dict[str, Any] = {'ticker': quote.ticker}
  if scenarios is None:
    derived = derive_company_scenarios(fundamentals, estimates)
    scenarios = derived.value
    diag.update(derived.diag)
    diag['scenario_source'] = PRESET_COMPANY
  else:
    diag['scenario_source'] = 'caller'

  latest = fundamentals.latest
  if latest is None or latest.revenue <= 0:
    raise MissingDataError('Missing revenue data for valuation.')

  shares = shares_outstanding_override or quote.shares_outstanding
  if not shares or shares <= 0:
    raise MissingDataError('Missing shares outstanding.')

  results: Dict[str, ScenarioResult] = {}
  for name, scenario in scenarios.items():
    results[name] = run_dcf(
        DcfInput(
            current_revenue=latest.revenue,
            net_debt=net_debt,
            shares_outstanding=shares,
            current_price=quote.regular_market_price,
            mos_percent=mos_percent,
            scenario=scenario,
        ))

  for name, result in results.items():
    if not math.isfinite(result.fair_value_after_mos):
      logger.warning('%s: non-finite fair value for %s scenario', ticker,
                     name)
      raise MissingDataError(f'Invalid output for {name} scenario.')

  base_upside = results['base'].upside_vs_price_percent
  return ValuationResponse(
      ticker=quote.ticker,
      current_price=quote.regular_market_price,
      mos_percent=mos_percent,
      scenarios=results,
      summary=ValuationSummary(
          status=classify_status(base_upside),
          base_scenario_upside_after_mos=base_upside,
      ),
      diag=diag,
  )


def _load_scenarios(args: argparse.Namespace) -> Optional[ScenarioSet]:
  if args.scenarios_file is not None:
    return ScenarioSet.from_json(
        args.scenarios_file.read_text(encoding='utf-8'))
  if args.preset == PRESET_GENERIC:
    return get_default_scenarios()
  return None


def _log_response(response: ValuationResponse) -> None:
  separator = '=' * 70
  logger.info('\n%s', separator)
  logger.info('DCF Valuation - %s', response.ticker)
  logger.info('Current Price: %s', format_currency(response.current_price))
  logger.info('Margin of Safety: %s',
              format_percent(response.mos_percent / 100, 0))
  logger.info(separator)

  for name, result in response.scenarios.items():
    logger.info('\n%s:', name.capitalize())
    logger.info('  Enterprise Value: %s',
                format_compact_number(result.enterprise_value))
    logger.info('  Equity Value: %s',
                format_compact_number(result.equity_value))
    logger.info('  Fair Value: %s',
                format_currency(result.fair_value_per_share))
    logger.info('  Fair Value after MoS: %s',
                format_currency(result.fair_value_after_mos))
    logger.info('  Upside: %s',
                format_percent(result.upside_vs_price_percent / 100))

  logger.info('\nStatus: %s (base upside %s)', response.summary.status,
              format_percent(
                  response.summary.base_scenario_upside_after_mos / 100))
  logger.debug('\n%s', response.to_frame().to_string())
  for key, value in response.diag.items():
    logger.debug('  %s: %s', key, value)
  logger.info('%s\n', separator)


def main() -> None:
  '''CLI entrypoint.'''
  parser = argparse.ArgumentParser(description='Run 3-scenario DCF valuation')
  parser.add_argument('--ticker',
                      type=str,
                      required=True,
                      help='Company ticker')
  parser.add_argument('--mos',
                      type=float,
                      default=DEFAULT_MOS_PERCENT,
                      help='Margin of safety percent (0-80)')
  parser.add_argument(
      '--preset',
      type=str,
      default=PRESET_COMPANY,
      choices=list(PRESET_NAMES),
      help='Scenario source: company-specific or generic defaults',
  )
  parser.add_argument(
      '--scenarios-file',
      type=Path,
      default=None,
      help='JSON file with bull/base/bear scenarios (overrides --preset)',
  )
  parser.add_argument('--shares',
                      type=float,
                      default=None,
                      help='Shares outstanding override')
  parser.add_argument('--output',
                      type=Path,
                      default=None,
                      help='Optional CSV path for scenario results')
  parser.add_argument('-v',
                      '--verbose',
                      action='store_true',
                      help='Log derivation diagnostics')
  args = parser.parse_args()

  logging.basicConfig(
      level=logging.DEBUG if args.verbose else logging.INFO,
      format='%(message)s',
  )

  try:
    response = run_valuation(
        ticker=args.ticker,
        mos_percent=args.mos,
        scenarios=_load_scenarios(args),
        shares_outstanding_override=args.shares,
    )
  except ValuationError as e:
    logger.error('Valuation failed (%d): %s', error_status_code(e), e)
    raise SystemExit(1) from e

  _log_response(response)

  if args.output is not None:
    args.output.parent.mkdir(parents=True, exist_ok=True)
    response.to_frame().to_csv(args.output)
    logger.info('Results saved to %s', args.output)


if __name__ == '__main__':
  main()
