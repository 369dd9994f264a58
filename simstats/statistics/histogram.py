"""Fixed-width frequency tabulation with underflow and overflow counts."""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from simstats.errors import InvalidConfigurationError
from simstats.statistics.moments import Statistic

__all__ = ["Bin", "Histogram"]


@dataclass(frozen=True)
class Bin:
    """Half-open bin ``[lower, upper)`` and the number of values that fell in it."""

    lower: float
    upper: float
    count: int


class Histogram:
    """Tabulate observations into ``num_bins`` equal-width bins.

    Values below ``lower_limit`` count as underflow, values at or above
    ``lower_limit + num_bins * bin_width`` as overflow.  Summary statistics
    are kept over the in-range values only.

    Parameters
    ----------
    lower_limit : float
        Lower limit of the first bin.
    num_bins : int
        Number of bins, must be > 0.
    bin_width : float
        Width of every bin, must be finite and > 0.
    name : str | None, optional
        Label for reports.
    values : Iterable[float] | None, optional
        Initial observations.
    """

    def __init__(
        self,
        lower_limit: float,
        num_bins: int,
        bin_width: float,
        name: str | None = None,
        values: Iterable[float] | None = None,
    ) -> None:
        if not math.isfinite(lower_limit):
            raise InvalidConfigurationError("The lower limit of the range cannot be infinite")
        if num_bins <= 0:
            raise InvalidConfigurationError(f"The number of bins must be > 0, got {num_bins}")
        if not math.isfinite(bin_width) or bin_width <= 0.0:
            raise InvalidConfigurationError(
                f"The bin width must be finite and > 0, got {bin_width}"
            )
        self.name = name
        self._lower = float(lower_limit)
        self._num_bins = int(num_bins)
        self._width = float(bin_width)
        self._upper = self._lower + self._num_bins * self._width
        self._counts = np.zeros(self._num_bins, dtype=np.int64)
        self._statistic = Statistic(name=name)
        self.reset()
        if values is not None:
            self.collect_all(values)

    @classmethod
    def make_histogram(
        cls,
        lower_limit: float,
        upper_limit: float,
        num_bins: int,
        name: str | None = None,
        values: Iterable[float] | None = None,
    ) -> Histogram:
        """Histogram covering ``[lower_limit, upper_limit)`` with ``num_bins`` bins."""
        if not (math.isfinite(lower_limit) and math.isfinite(upper_limit)):
            raise InvalidConfigurationError("The limits of the range must be finite")
        if lower_limit >= upper_limit:
            raise InvalidConfigurationError(
                "The lower limit must be < the upper limit of the range"
            )
        if num_bins <= 0:
            raise InvalidConfigurationError(f"The number of bins must be > 0, got {num_bins}")
        width = (upper_limit - lower_limit) / num_bins
        return cls(lower_limit, num_bins, width, name=name, values=values)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._counts.fill(0)
        self._underflow = 0
        self._overflow = 0
        self._num_missing = 0
        self._statistic.reset()

    def collect(self, x: float) -> None:
        x = float(x)
        if math.isnan(x):
            self._num_missing += 1
            return
        if x < self._lower:
            self._underflow += 1
        elif x >= self._upper:
            self._overflow += 1
        else:
            self._counts[self.bin_index(x)] += 1
            self._statistic.collect(x)

    def collect_all(self, values: Iterable[float]) -> None:
        if isinstance(values, np.ndarray):
            values = values.ravel().tolist()
        for x in values:
            self.collect(x)

    def copy(self) -> Histogram:
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def num_bins(self) -> int:
        return self._num_bins

    @property
    def bin_width(self) -> float:
        return self._width

    @property
    def lower_limit(self) -> float:
        return self._lower

    @property
    def upper_limit(self) -> float:
        return self._upper

    @property
    def underflow_count(self) -> int:
        return self._underflow

    @property
    def overflow_count(self) -> int:
        return self._overflow

    @property
    def num_missing(self) -> int:
        return self._num_missing

    @property
    def count(self) -> int:
        """Number of in-range observations."""
        return int(self._counts.sum())

    @property
    def total_count(self) -> int:
        """In-range observations plus underflow and overflow."""
        return self.count + self._underflow + self._overflow

    @property
    def statistic(self) -> Statistic:
        """Summary statistics over the in-range observations."""
        return self._statistic.copy()

    def bin_index(self, x: float) -> int:
        """0-based index of the bin holding ``x``; ``x`` must be in range."""
        if not self._lower <= x < self._upper:
            raise ValueError(f"{x} is outside [{self._lower}, {self._upper})")
        # rounding can put values just below the upper limit one bin too far
        return min(int(math.floor((x - self._lower) / self._width)), self._num_bins - 1)

    @property
    def bin_counts(self) -> np.ndarray:
        return self._counts.copy()

    @property
    def bin_fractions(self) -> np.ndarray:
        """Bin counts divided by the in-range count; NaN when nothing is in range."""
        n = self.count
        if n == 0:
            return np.full(self._num_bins, np.nan)
        return self._counts / n

    @property
    def cumulative_bin_counts(self) -> np.ndarray:
        return np.cumsum(self._counts)

    @property
    def cumulative_fractions(self) -> np.ndarray:
        """Fraction of all observations (including underflow) at or below each bin."""
        total = self.total_count
        if total == 0:
            return np.full(self._num_bins, np.nan)
        return (self._underflow + np.cumsum(self._counts)) / total

    @property
    def bins(self) -> list[Bin]:
        edges = self._lower + self._width * np.arange(self._num_bins + 1)
        return [
            Bin(lower=float(edges[i]), upper=float(edges[i + 1]), count=int(self._counts[i]))
            for i in range(self._num_bins)
        ]

    def bin(self, x: float) -> Bin | None:
        """Bin holding ``x``, or ``None`` for out-of-range values."""
        if not self._lower <= x < self._upper:
            return None
        return self.bins[self.bin_index(x)]
