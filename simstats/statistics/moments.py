"""Streaming moment accumulator for simulation output.

``Statistic`` keeps the count, mean and the second to fourth central moments
of a stream of observations using one-pass update formulas, so memory stays
constant no matter how many values are collected.  It also tracks the
extremes, the first and last value and the cross-product sum needed for the
lag-1 autocorrelation and the Von Neumann test of independence.

Non-finite values (NaN, +/-inf) are never folded into the moments; they are
counted as missing observations instead.

Reference:
    Pébay, P. (2008). "Formulas for robust, one-pass parallel computation of
    covariances and arbitrary-order statistical moments." Sandia Report
    SAND2008-6212.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable

import numpy as np

from simstats.statistics.accessor import DEFAULT_CONFIDENCE_LEVEL, StatisticAccessor

__all__ = ["Statistic"]


class Statistic(StatisticAccessor):
    """Online count, mean, central moments and lag-1 statistics.

    Central moments are stored normalised by the count (population moments);
    ``variance`` applies the ``n / (n - 1)`` correction.

    Parameters
    ----------
    name : str | None, optional
        Label used in exports.
    values : Iterable[float] | None, optional
        Initial observations collected on construction.
    confidence_level : float, optional
        Default confidence level, by default 0.95.
    save_data : bool, optional
        If ``True``, keep a copy of every collected value (see :attr:`saved_data`).
    """

    def __init__(
        self,
        name: str | None = None,
        values: Iterable[float] | None = None,
        *,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
        save_data: bool = False,
    ) -> None:
        super().__init__(name=name, confidence_level=confidence_level)
        self.save_data = save_data
        self._saved: list[float] = []
        self.reset()
        if values is not None:
            self.collect_all(values)

    @classmethod
    def from_values(cls, values: Iterable[float], name: str | None = None) -> Statistic:
        return cls(name=name, values=values)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Zero all accumulators; name, confidence level and save option survive."""
        self._n = 0
        self._mean = 0.0
        self._m2 = 0.0
        self._m3 = 0.0
        self._m4 = 0.0
        self._min = math.inf
        self._max = -math.inf
        self._first = math.nan
        self._last = math.nan
        self._jsum = 0.0
        self._sumxx = 0.0
        self._num_missing = 0
        self._saved.clear()

    def collect(self, x: float) -> None:
        """Fold one observation into the running moments."""
        x = float(x)
        if not math.isfinite(x):
            self._num_missing += 1
            return
        if self.save_data:
            self._saved.append(x)

        n = float(self._n)
        n1 = n + 1.0
        n2 = n * n
        delta = (self._mean - x) / n1
        d2 = delta * delta
        d3 = delta * d2
        r1 = n / n1
        # order matters: each update reads the lower moments before they change
        self._m4 = (
            (1.0 + n * n2) * d2 * d2 + 6.0 * self._m2 * d2 + 4.0 * self._m3 * delta + self._m4
        ) * r1
        self._m3 = ((1.0 - n2) * d3 + 3.0 * self._m2 * delta + self._m3) * r1
        self._m2 = ((1.0 + n) * d2 + self._m2) * r1
        self._mean -= delta
        self._n += 1

        self._jsum += self._n * x
        if self._n == 1:
            self._first = x
        else:
            self._sumxx += x * self._last

        if x > self._max:
            self._max = x
        if x < self._min:
            self._min = x
        self._last = x

    def collect_all(self, values: Iterable[float]) -> None:
        """Collect every value of ``values`` in order.

        The block is summarised with numpy and folded in through :meth:`merge`,
        which gives the same result as collecting the values one at a time up
        to floating-point rounding.
        """
        if not isinstance(values, np.ndarray):
            values = list(values)
        data = np.asarray(values, dtype=np.float64)
        self.merge(self._summarize_block(data.ravel()))

    def _summarize_block(self, data: np.ndarray) -> Statistic:
        block = Statistic(save_data=self.save_data)
        finite = np.isfinite(data)
        block._num_missing = int(data.size - finite.sum())
        x = data[finite]
        n = x.size
        if n == 0:
            return block
        mean = float(x.mean())
        dev = x - mean
        dev2 = dev * dev
        block._n = n
        block._mean = mean
        block._m2 = float(dev2.mean())
        block._m3 = float((dev2 * dev).mean())
        block._m4 = float((dev2 * dev2).mean())
        block._min = float(x.min())
        block._max = float(x.max())
        block._first = float(x[0])
        block._last = float(x[-1])
        block._jsum = float(np.dot(np.arange(1, n + 1, dtype=np.float64), x))
        block._sumxx = float(np.dot(x[:-1], x[1:]))
        if self.save_data:
            block._saved.extend(x.tolist())
        return block

    def merge(self, other: Statistic) -> None:
        """Fold ``other`` in as though its observations followed this one's.

        Moments combine with the pairwise formulas of Pébay (2008).  Lag-1
        terms are exact because the boundary product ``last * first`` is
        added to the cross-product sum.
        """
        nb = other._n
        self._num_missing += other._num_missing
        if self.save_data:
            self._saved.extend(other._saved)
        if nb == 0:
            return
        na = self._n
        if na == 0:
            state = copy.deepcopy(other.__dict__)
            for key in ("name", "_confidence_level", "save_data", "_saved", "_num_missing"):
                state.pop(key)
            self.__dict__.update(state)
            return

        n = float(na + nb)
        fa, fb = float(na), float(nb)
        delta = other._mean - self._mean
        d2 = delta * delta
        s2a, s2b = self._m2 * fa, other._m2 * fb
        s3a, s3b = self._m3 * fa, other._m3 * fb
        s4a, s4b = self._m4 * fa, other._m4 * fb

        s4 = (
            s4a
            + s4b
            + d2 * d2 * fa * fb * (fa * fa - fa * fb + fb * fb) / n**3
            + 6.0 * d2 * (fa * fa * s2b + fb * fb * s2a) / n**2
            + 4.0 * delta * (fa * s3b - fb * s3a) / n
        )
        s3 = (
            s3a
            + s3b
            + d2 * delta * fa * fb * (fa - fb) / n**2
            + 3.0 * delta * (fa * s2b - fb * s2a) / n
        )
        s2 = s2a + s2b + d2 * fa * fb / n

        self._jsum += other._jsum + fa * (other._mean * fb)
        self._sumxx += other._sumxx + self._last * other._first
        self._mean += delta * fb / n
        self._m2, self._m3, self._m4 = s2 / n, s3 / n, s4 / n
        self._n += nb
        self._min = min(self._min, other._min)
        self._max = max(self._max, other._max)
        self._last = other._last

    def copy(self) -> Statistic:
        """Independent deep copy, including saved data."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Primitive values
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        return self._n

    @property
    def average(self) -> float:
        if self._n < 1:
            return math.nan
        return self._mean

    @property
    def sum(self) -> float:
        return self._mean * self._n

    @property
    def variance(self) -> float:
        n = self._n
        if n < 2:
            return math.nan
        return self._m2 * n / (n - 1.0)

    @property
    def deviation_sum_of_squares(self) -> float:
        return self._m2 * self._n

    @property
    def min(self) -> float:
        return self._min

    @property
    def max(self) -> float:
        return self._max

    @property
    def first_value(self) -> float:
        return self._first

    @property
    def last_value(self) -> float:
        return self._last

    @property
    def num_missing(self) -> int:
        return self._num_missing

    @property
    def obs_weighted_sum(self) -> float:
        """``sum(j * x_j)`` with ``j`` the 1-based observation number."""
        return self._jsum

    @property
    def central_moments(self) -> np.ndarray:
        """``[n, mean, m2, m3, m4]`` with the moments normalised by ``n``."""
        return np.array([self._n, self._mean, self._m2, self._m3, self._m4], dtype=np.float64)

    def raw_moment(self, order: int) -> float:
        """Non-central moment ``E[X**order]`` for ``order`` in 1..4."""
        mu, m2, m3, m4 = self._mean, self._m2, self._m3, self._m4
        if self._n < 1:
            return math.nan
        if order == 1:
            return mu
        if order == 2:
            return m2 + mu * mu
        if order == 3:
            return m3 + 3.0 * mu * m2 + mu**3
        if order == 4:
            return m4 + 4.0 * mu * m3 + 6.0 * mu * mu * m2 + mu**4
        raise ValueError(f"order must be between 1 and 4, got {order}")

    @property
    def skewness(self) -> float:
        """Bias-corrected sample skewness; NaN below 3 observations or for constant data."""
        n = float(self._n)
        if n < 3:
            return math.nan
        v = self.variance
        if v <= 0.0:
            return math.nan
        return n * n * self._m3 / ((n - 1.0) * (n - 2.0) * v * math.sqrt(v))

    @property
    def kurtosis(self) -> float:
        """Bias-corrected excess kurtosis; NaN below 4 observations or for constant data."""
        n = float(self._n)
        if n < 4:
            return math.nan
        v = self.variance
        if v <= 0.0:
            return math.nan
        n1 = n - 1.0
        t = n * (n + 1.0) * n * self._m4 - 3.0 * n1 * n1 * n1 * v * v
        return t / ((n - 1.0) * (n - 2.0) * (n - 3.0) * v * v)

    @property
    def lag1_covariance(self) -> float:
        n = float(self._n)
        if n <= 2:
            return math.nan
        mu = self._mean
        c1 = self._sumxx - (n + 1.0) * mu * mu + mu * (self._first + self._last)
        return c1 / n

    @property
    def lag1_correlation(self) -> float:
        if self._n <= 2 or self._m2 <= 0.0:
            return math.nan
        return self.lag1_covariance / self._m2

    @property
    def von_neumann_lag1_statistic(self) -> float:
        """Von Neumann lag-1 test statistic, asymptotically standard normal under independence."""
        n = float(self._n)
        if n <= 2 or self._m2 <= 0.0:
            return math.nan
        mu = self._mean
        t = (self._first - mu) ** 2 + (self._last - mu) ** 2
        b = 2.0 * n * self._m2
        return math.sqrt((n * n - 1.0) / (n - 2.0)) * (self.lag1_correlation + t / b)

    # ------------------------------------------------------------------
    # Saved data
    # ------------------------------------------------------------------

    @property
    def saved_data(self) -> np.ndarray:
        """Copy of the collected values, empty unless ``save_data`` was enabled."""
        return np.array(self._saved, dtype=np.float64)

    def clear_saved_data(self) -> None:
        self._saved.clear()
