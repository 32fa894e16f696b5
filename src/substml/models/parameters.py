"""
Free-parameter record shared by substitution models and rate distributions.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ModelParameter:
    """
    One free model parameter.

    Bounds and default are fixed at construction; `value` and `se` change as
    the parameter is estimated.

    Attributes
    ----------
    name : str
        Parameter name (e.g. 'kappa', 'alpha')
    default : float
        Starting value for estimation
    lower, upper : float
        Box constraints used by the optimizers
    value : float
        Current value (defaults to `default`)
    se : float or None
        Standard error attached after estimation
    """

    name: str
    default: float
    lower: float
    upper: float
    value: Optional[float] = None
    se: Optional[float] = None

    def __post_init__(self):
        if not self.lower <= self.default <= self.upper:
            raise ValueError(
                f"Default {self.default} of parameter '{self.name}' outside "
                f"[{self.lower}, {self.upper}]"
            )
        if self.value is None:
            self.value = self.default
