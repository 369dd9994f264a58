"""Statistic over antithetic pairs of observations."""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable

import numpy as np

from simstats.statistics.accessor import DEFAULT_CONFIDENCE_LEVEL, DelegatingAccessor
from simstats.statistics.moments import Statistic

__all__ = ["AntitheticStatistic"]


class AntitheticStatistic(DelegatingAccessor):
    """Collect observations in pairs and summarise the pair averages.

    Consecutive observations ``(x1, x2), (x3, x4), ...`` are treated as an
    antithetic pair; only ``(x1 + x2) / 2`` is folded into the summary.  An
    unpaired trailing observation is held back until its partner arrives and
    never enters the summary on its own.
    """

    def __init__(
        self,
        name: str | None = None,
        values: Iterable[float] | None = None,
        *,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    ) -> None:
        super().__init__(name=name, confidence_level=confidence_level)
        self._delegate = Statistic(name=name, confidence_level=confidence_level)
        self.reset()
        if values is not None:
            self.collect_all(values)

    def reset(self) -> None:
        self._delegate.reset()
        self._pending = math.nan
        self._num_missing = 0

    def collect(self, x: float) -> None:
        x = float(x)
        if not math.isfinite(x):
            self._num_missing += 1
            return
        if math.isnan(self._pending):
            self._pending = x
            return
        self._delegate.collect((self._pending + x) / 2.0)
        self._pending = math.nan

    def collect_all(self, values: Iterable[float]) -> None:
        if isinstance(values, np.ndarray):
            values = values.ravel().tolist()
        for x in values:
            self.collect(x)

    @property
    def has_unpaired_value(self) -> bool:
        return not math.isnan(self._pending)

    @property
    def pair_statistic(self) -> Statistic:
        return self._delegate.copy()

    def copy(self) -> AntitheticStatistic:
        return copy.deepcopy(self)
