"""Batch-means statistic with automatic re-batching.

Correlated simulation output is grouped into consecutive batches whose means
are close to independent; the confidence interval is then formed over the
batch means.  The number of batches is kept between ``min_num_batches`` and
``min_num_batches * max_batch_multiple``: whenever the upper bound is reached
the batch size grows by ``max_batch_multiple`` and adjacent batch means are
averaged together, so memory stays bounded for arbitrarily long runs.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from simstats.errors import InvalidConfigurationError
from simstats.statistics.accessor import DEFAULT_CONFIDENCE_LEVEL, DelegatingAccessor
from simstats.statistics.moments import Statistic

if TYPE_CHECKING:
    from simstats.config import BatchingConfig

__all__ = ["BatchStatistic"]

MIN_NUM_BATCHES = 20
MIN_BATCH_SIZE = 16
MAX_BATCH_MULTIPLE = 2


class BatchStatistic(DelegatingAccessor):
    """Summary statistics over batch means of a (possibly correlated) stream.

    All summary accessors (average, variance, half-width, ...) describe the
    batch means, not the raw observations.

    Parameters
    ----------
    min_num_batches : int, optional
        Number of batches left after a re-batch, by default 20. Must be >= 2.
    min_batch_size : int, optional
        Initial number of observations per batch, by default 16. Must be >= 2.
    max_batch_multiple : int, optional
        Factor by which the batch size grows on each re-batch, by default 2.
        Must be >= 2.
    name : str | None, optional
        Label used in exports.
    values : Iterable[float] | None, optional
        Initial observations collected on construction.
    confidence_level : float, optional
        Default confidence level, by default 0.95.

    Raises
    ------
    InvalidConfigurationError
        If any of the three batching parameters is below 2.
    """

    def __init__(
        self,
        min_num_batches: int = MIN_NUM_BATCHES,
        min_batch_size: int = MIN_BATCH_SIZE,
        max_batch_multiple: int = MAX_BATCH_MULTIPLE,
        name: str | None = None,
        values: Iterable[float] | None = None,
        *,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    ) -> None:
        for label, value in (
            ("min_num_batches", min_num_batches),
            ("min_batch_size", min_batch_size),
            ("max_batch_multiple", max_batch_multiple),
        ):
            if value < 2:
                raise InvalidConfigurationError(f"{label} must be >= 2, got {value}")
        super().__init__(name=name, confidence_level=confidence_level)
        self._min_num_batches = int(min_num_batches)
        self._min_batch_size = int(min_batch_size)
        self._max_batch_multiple = int(max_batch_multiple)
        self._max_num_batches = self._min_num_batches * self._max_batch_multiple
        self._means = np.zeros(self._max_num_batches, dtype=np.float64)
        self._within = Statistic()
        # across-batch statistic over the batch means
        self._delegate = Statistic(name=name, confidence_level=confidence_level)
        self.reset()
        if values is not None:
            self.collect_all(values)

    @classmethod
    def from_config(
        cls, config: BatchingConfig, name: str | None = None, **kwargs
    ) -> BatchStatistic:
        return cls(
            min_num_batches=config.min_num_batches,
            min_batch_size=config.min_batch_size,
            max_batch_multiple=config.max_batch_multiple,
            name=name,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard all batches and return to the initial batch size."""
        self._means.fill(0.0)
        self._num_batches = 0
        self._num_rebatches = 0
        self._current_batch_size = self._min_batch_size
        self._total_obs = 0
        self._num_missing = 0
        self._within.reset()
        self._delegate.reset()

    def collect(self, x: float) -> None:
        x = float(x)
        if not math.isfinite(x):
            self._num_missing += 1
            return
        self._total_obs += 1
        self._within.collect(x)
        if self._within.count == self._current_batch_size:
            self._collect_batch()

    def collect_all(self, values: Iterable[float]) -> None:
        if isinstance(values, np.ndarray):
            values = values.ravel().tolist()
        for x in values:
            self.collect(x)

    def _collect_batch(self) -> None:
        mean = self._within.average
        self._means[self._num_batches] = mean
        self._num_batches += 1
        self._delegate.collect(mean)
        self._within.reset()
        if self._num_batches == self._max_num_batches:
            self._rebatch()

    def _rebatch(self) -> None:
        m = self._max_batch_multiple
        k = self._min_num_batches
        self._num_rebatches += 1
        self._current_batch_size *= m
        self._delegate.reset()
        merged = self._means.reshape(k, m).mean(axis=1)
        self._means[:k] = merged
        self._means[k:] = 0.0
        self._delegate.collect_all(merged)
        self._num_batches = k
        logger.debug(
            f"Re-batched {self.name or 'batch statistic'}: {k} batches of size "
            f"{self._current_batch_size} (re-batch #{self._num_rebatches})"
        )

    def rebatch_to_number_of_batches(self, num_batches: int, save: bool = True) -> Statistic:
        """Statistic over the current batch means regrouped into ``num_batches`` batches.

        Each new batch averages ``self.num_batches // num_batches`` consecutive
        batch means. When the batch count does not divide evenly, the oldest
        surplus batch means are dropped.

        Parameters
        ----------
        num_batches : int
            Desired number of batches, between 2 and :attr:`num_batches`.
        save : bool, optional
            Turn on the save option of the returned statistic, so the new batch
            means are available through ``saved_data``.

        Returns
        -------
        Statistic
            Statistic over the regrouped batch means.
        """
        if num_batches < 2:
            raise InvalidConfigurationError(f"Number of batches must be >= 2, got {num_batches}")
        if num_batches > self._num_batches:
            raise InvalidConfigurationError(
                f"Cannot form {num_batches} batches from {self._num_batches} batch means"
            )
        size = self._num_batches // num_batches
        used = self._means[self._num_batches - size * num_batches : self._num_batches]
        regrouped = used.reshape(num_batches, size).mean(axis=1)
        stat = Statistic(
            name=self.name, confidence_level=self.confidence_level, save_data=save
        )
        stat.collect_all(regrouped)
        return stat

    def copy(self) -> BatchStatistic:
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Batching state
    # ------------------------------------------------------------------

    @property
    def min_num_batches(self) -> int:
        return self._min_num_batches

    @property
    def min_batch_size(self) -> int:
        return self._min_batch_size

    @property
    def max_batch_multiple(self) -> int:
        return self._max_batch_multiple

    @property
    def max_num_batches(self) -> int:
        return self._max_num_batches

    @property
    def num_batches(self) -> int:
        return self._num_batches

    @property
    def num_rebatches(self) -> int:
        return self._num_rebatches

    @property
    def current_batch_size(self) -> int:
        return self._current_batch_size

    @property
    def total_number_of_observations(self) -> int:
        return self._total_obs

    @property
    def amount_left_unbatched(self) -> int:
        """Observations collected into the batch that is not yet full."""
        return self._within.count

    @property
    def batch_means(self) -> np.ndarray:
        """Copy of the current batch means, oldest first."""
        return self._means[: self._num_batches].copy()

    @property
    def current_batch_statistic(self) -> Statistic:
        return self._within.copy()
