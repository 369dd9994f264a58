"""Closed real interval used for confidence intervals and search ranges."""

from __future__ import annotations

import math
from dataclasses import dataclass

from simstats.errors import InvalidConfigurationError


@dataclass(frozen=True)
class Interval:
    """Closed interval ``[lower, upper]``.

    Infinite bounds are allowed; an interval with ``lower > upper`` is not.
    """

    lower: float
    upper: float

    def __post_init__(self) -> None:
        if math.isnan(self.lower) or math.isnan(self.upper):
            raise InvalidConfigurationError("Interval bounds must not be NaN")
        if self.lower > self.upper:
            raise InvalidConfigurationError(
                f"Interval lower bound {self.lower} exceeds upper bound {self.upper}"
            )

    @property
    def width(self) -> float:
        return self.upper - self.lower

    @property
    def midpoint(self) -> float:
        return (self.lower + self.upper) / 2.0

    def contains(self, x: float) -> bool:
        return self.lower <= x <= self.upper

    def clip(self, x: float) -> float:
        """Return ``x`` clamped into the interval."""
        return min(max(x, self.lower), self.upper)

    def __contains__(self, x: object) -> bool:
        return isinstance(x, (int, float)) and self.contains(float(x))

    def __iter__(self):
        yield self.lower
        yield self.upper
