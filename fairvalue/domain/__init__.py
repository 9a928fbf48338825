"""Domain types for the fair value calculator."""

from fairvalue.domain.types import AnalystEstimates
from fairvalue.domain.types import AnnualFundamentalPoint
from fairvalue.domain.types import DcfInput
from fairvalue.domain.types import FundamentalsData
from fairvalue.domain.types import PolicyOutput
from fairvalue.domain.types import Quote
from fairvalue.domain.types import Ratios
from fairvalue.domain.types import ScenarioInput
from fairvalue.domain.types import ScenarioResult
from fairvalue.domain.types import ScenarioSet
from fairvalue.domain.types import ValuationResponse
from fairvalue.domain.types import ValuationSummary

__all__ = [
    'AnalystEstimates',
    'AnnualFundamentalPoint',
    'DcfInput',
    'FundamentalsData',
    'PolicyOutput',
    'Quote',
    'Ratios',
    'ScenarioInput',
    'ScenarioResult',
    'ScenarioSet',
    'ValuationResponse',
    'ValuationSummary',
]
