'''
Three-scenario DCF fair value estimates for a single ticker.

The package is split into a pure valuation core and thin collaborators:
  - engine: 10-year DCF projection with Gordon Growth terminal value
  - policies: fallback chains that derive each scenario assumption
  - scenarios: generic presets and company-specific bull/base/bear sets
  - market: Yahoo Finance client producing plain domain records
  - run: single-ticker orchestration and CLI

Usage:
  from fairvalue.run import run_valuation

  response = run_valuation(ticker='AAPL', mos_percent=25)
  print(response.summary.status)
'''
