'''
Ordered fallback chains for nullable upstream data.

A chain is a list of named links. Each link has a predicate deciding
whether it applies to the inputs and a supplier producing the value. Links
are tried in order and the first applicable one wins; a literal default
terminates every chain so resolution never fails.

Example:
  chain = FallbackChain(
      links=[
          FallbackLink('analyst_5y',
                       predicate=lambda f, e: is_present(e.revenue_growth_5_year),
                       supplier=lambda f, e: e.revenue_growth_5_year),
      ],
      default=0.05,
  )
  result = chain.resolve(fundamentals, estimates)
  result.value, result.diag['source']
'''

from dataclasses import dataclass
import logging
import math
from typing import Any, Callable, Optional, Sequence

from fairvalue.domain.types import PolicyOutput

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = 'default'


def is_present(value: Optional[float]) -> bool:
  '''True if value is a usable number (not None, not NaN or infinite).'''
  if value is None or isinstance(value, bool):
    return False
  try:
    return math.isfinite(value)
  except TypeError:
    return False


@dataclass(frozen=True)
class FallbackLink:
  '''
  One step of a fallback chain.

  Attributes:
    name: Identifier reported in diagnostics when this link wins
    predicate: Returns True if the link applies to the inputs
    supplier: Produces the value; only called when predicate is True
  '''
  name: str
  predicate: Callable[..., bool]
  supplier: Callable[..., float]


class FallbackChain:
  '''Evaluate links in order, ending in a literal default.'''

  def __init__(self, links: Sequence[FallbackLink], default: float):
    '''
    Initialize fallback chain.

    Args:
      links: Links in priority order
      default: Value used when no link applies
    '''
    self.links = list(links)
    self.default = default

  @property
  def names(self) -> list[str]:
    '''Link names in priority order, default last.'''
    return [link.name for link in self.links] + [DEFAULT_SOURCE]

  def resolve(self, *args: Any) -> PolicyOutput[float]:
    '''
    Return the value of the first applicable link.

    Args:
      *args: Inputs passed unchanged to every predicate and supplier

    Returns:
      PolicyOutput with the value and the winning link in diag['source']
    '''
    for position, link in enumerate(self.links):
      if not link.predicate(*args):
        continue
      value = float(link.supplier(*args))
      if not is_present(value):
        logger.debug('Fallback link %s produced %r, skipping', link.name,
                     value)
        continue
      return PolicyOutput(value=value,
                          diag={
                              'source': link.name,
                              'position': position,
                          })

    return PolicyOutput(value=self.default,
                        diag={
                            'source': DEFAULT_SOURCE,
                            'position': len(self.links),
                        })
