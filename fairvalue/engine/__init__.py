'''DCF calculation engine with pure math functions.'''

from fairvalue.engine.dcf import (
    compute_pv_explicit,
    compute_terminal_value,
    project_free_cash_flows,
    run_dcf,
    validate_scenario_input,
)

__all__ = [
    'compute_pv_explicit',
    'compute_terminal_value',
    'project_free_cash_flows',
    'run_dcf',
    'validate_scenario_input',
]
