"""
Sequence simulation under nucleotide substitution models.

Useful for:
- Validating parameter estimation methods
- Parametric bootstrap
- Generating test datasets

Available tools:
- SequenceSimulator: evolve sequences along a single branch, with per-site
  rate categories
- TreeSimulator: evolve a root sequence down a whole tree
- cumulative_select / cumulative_select_rows: discrete sampling primitive
"""

from .selection import cumulative_select, cumulative_select_rows
from .sequence import SequenceSimulator
from .tree import TreeSimulator

__all__ = [
    'SequenceSimulator',
    'TreeSimulator',
    'cumulative_select',
    'cumulative_select_rows',
]
