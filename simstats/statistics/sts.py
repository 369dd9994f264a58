"""Standardized time series (area) estimator.

Observations are split into non-overlapping batches of a fixed size ``b``.
For each full batch the weighted area

    a = sum_j j * x_j - (b + 1) / 2 * sum_j x_j      (j = 1..b within the batch)

is accumulated as ``sum(a**2)``.  The area constant
``A = 12 * sum(a**2) / (b**3 - b)`` estimates the variance parameter of the
process, and ``sqrt(A / (n * k))`` with ``k`` batches and ``n = b * k``
observations is the standard error of the grand mean.

Reference:
    Schruben, L. (1983). "Confidence interval estimation using standardized
    time series." Operations Research, 31(6), 1090-1108.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

import numpy as np

from simstats.distributions import student_t_inverse_cdf
from simstats.errors import InvalidConfigurationError
from simstats.statistics.accessor import (
    DEFAULT_CONFIDENCE_LEVEL,
    DelegatingAccessor,
    validate_confidence_level,
)
from simstats.statistics.moments import Statistic

if TYPE_CHECKING:
    from simstats.config import STSConfig

__all__ = ["StandardizedTimeSeriesStatistic"]

DEFAULT_BATCH_SIZE = 1024


class StandardizedTimeSeriesStatistic(DelegatingAccessor):
    """Batch means plus the standardized-time-series area estimator.

    The inherited summary accessors describe the batch means; the ``sts_*``
    members give the area-based standard error and half-width.

    Parameters
    ----------
    batch_size : int, optional
        Observations per batch, by default 1024. Must be >= 2.
    save_batch_statistics : bool, optional
        Keep a :class:`Statistic` for every completed batch.
    name : str | None, optional
        Label used in exports.
    values : Iterable[float] | None, optional
        Initial observations collected on construction.
    confidence_level : float, optional
        Default confidence level, by default 0.95.
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        save_batch_statistics: bool = False,
        name: str | None = None,
        values: Iterable[float] | None = None,
        *,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    ) -> None:
        if batch_size < 2:
            raise InvalidConfigurationError(f"batch_size must be >= 2, got {batch_size}")
        super().__init__(name=name, confidence_level=confidence_level)
        self._batch_size = int(batch_size)
        self._center = (self._batch_size + 1.0) / 2.0
        self._save_batches = save_batch_statistics
        self._batches: list[Statistic] = []
        self._unbatched = Statistic()
        self._current = Statistic()
        # across-batch statistic over the batch means
        self._delegate = Statistic(name=name, confidence_level=confidence_level)
        self.reset()
        if values is not None:
            self.collect_all(values)

    @classmethod
    def from_config(
        cls, config: STSConfig, name: str | None = None, **kwargs
    ) -> StandardizedTimeSeriesStatistic:
        return cls(
            batch_size=config.batch_size,
            save_batch_statistics=config.save_batch_statistics,
            name=name,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._num_batches = 0
        self._area_squared = 0.0
        self._num_missing = 0
        self._unbatched.reset()
        self._current.reset()
        self._delegate.reset()
        self._batches.clear()

    def collect(self, x: float) -> None:
        x = float(x)
        if not math.isfinite(x):
            self._num_missing += 1
            return
        self._unbatched.collect(x)
        self._current.collect(x)
        if self._current.count < self._batch_size:
            return

        self._num_batches += 1
        self._delegate.collect(self._current.average)
        area = self._current.obs_weighted_sum - self._center * self._current.sum
        self._area_squared += area * area
        if self._save_batches:
            self._batches.append(self._current)
            self._current = Statistic()
        else:
            self._current.reset()

    def collect_all(self, values: Iterable[float]) -> None:
        if isinstance(values, np.ndarray):
            values = values.ravel().tolist()
        for x in values:
            self.collect(x)

    def copy(self) -> StandardizedTimeSeriesStatistic:
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # STS estimator
    # ------------------------------------------------------------------

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def num_batches(self) -> int:
        return self._num_batches

    @property
    def sts_area_constant(self) -> float:
        b = float(self._batch_size)
        return 12.0 * self._area_squared / (b * b * b - b)

    @property
    def sts_standard_error(self) -> float:
        k = float(self._num_batches)
        if k == 0:
            return math.nan
        n = self._batch_size * k
        return math.sqrt(self.sts_area_constant / (n * k))

    def sts_half_width(self, level: float | None = None) -> float:
        """Half-width based on the area estimator, with ``k`` degrees of freedom.

        NaN until at least two batches are complete.
        """
        level = self._confidence_level if level is None else validate_confidence_level(level)
        k = self._num_batches
        if k <= 1:
            return math.nan
        t = student_t_inverse_cdf(float(k), 1.0 - (1.0 - level) / 2.0)
        return t * self.sts_standard_error

    @property
    def across_batch_statistic(self) -> Statistic:
        return self._delegate.copy()

    @property
    def current_batch_statistic(self) -> Statistic:
        return self._current.copy()

    @property
    def unbatched_statistic(self) -> Statistic:
        return self._unbatched.copy()

    @property
    def batch_statistics(self) -> list[Statistic]:
        """Copies of the completed batches; empty unless saving was enabled."""
        return [stat.copy() for stat in self._batches]
