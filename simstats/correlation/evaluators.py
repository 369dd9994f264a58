"""Simulation estimators of the correlation induced by a NORTA input correlation.

NORTA (NORmal To Anything) builds correlated variates by transforming
correlated standard normals through ``F^-1(Phi(z))``.  The correlation of the
outputs differs from the input normal correlation and has no closed form for
general marginals, so it is estimated by replicated sampling.

Two evaluators are provided:

- :class:`BivariateNORTAEvaluator` correlates two marginals through a
  bivariate normal pair.
- :class:`AutocorrelationEvaluator` gives one marginal a lag-1
  autocorrelation through a stationary AR(1) normal process.

Reference:
    Cario, M. C., & Nelson, B. L. (1996). "Autoregressive to anything:
    Time-series input processes for simulation." Operations Research
    Letters, 19(2), 51-58.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from scipy import special

from simstats.distributions import normal_cdf

from simstats.errors import InvalidConfigurationError
from simstats.interval import Interval
from simstats.random.samplers import (
    AR1NormalSampler,
    InverseTransformSampler,
    Sampler,
    validate_correlation,
)
from simstats.random.streams import RandomStream
from simstats.statistics.moments import Statistic
from simstats.statistics.xy import StatisticXY

__all__ = [
    "LIMIT_CORRELATION",
    "AutocorrelationEvaluator",
    "BivariateNORTAEvaluator",
    "CorrelationEvaluator",
]

# the search never reaches +/-1 where the normal transform degenerates
LIMIT_CORRELATION = 0.999999


class CorrelationEvaluator(ABC):
    """Replicated estimation of an output correlation for a given input correlation.

    Subclasses implement :meth:`_draw_correlation`, one sample correlation
    from a sample of ``sample_size`` variates drawn from :attr:`stream`, and
    expose the :attr:`sampler` through which antithetic pairs rewind and
    advance that stream.

    Parameters
    ----------
    correlation : float, optional
        Input (normal) correlation in (-1, 1).
    sample_size : int, optional
        Variates per replication, by default 1000. Must be >= 3.
    num_replications : int, optional
        Replications per estimate, by default 10. Must be >= 1.
    antithetic : bool, optional
        Estimate from antithetic pairs of replications.
    common_random_numbers : bool, optional
        Rewind the stream before every estimate so that estimates at
        different input correlations share their random numbers.
    seed : int | None, optional
        Seed of the random stream.
    """

    def __init__(
        self,
        correlation: float = 0.0,
        sample_size: int = 1000,
        num_replications: int = 10,
        *,
        antithetic: bool = False,
        common_random_numbers: bool = False,
        seed: int | None = None,
    ) -> None:
        self.stream = RandomStream(seed)
        self.correlation = correlation
        self.sample_size = sample_size
        self.num_replications = num_replications
        self.antithetic = antithetic
        self.common_random_numbers = common_random_numbers
        self._replication_statistic = Statistic(name="Correlation across replications")

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @property
    def correlation(self) -> float:
        return self._correlation

    @correlation.setter
    def correlation(self, rho: float) -> None:
        self._correlation = validate_correlation(rho)

    @property
    def sample_size(self) -> int:
        return self._sample_size

    @sample_size.setter
    def sample_size(self, n: int) -> None:
        self._sample_size = _validate_sample_size(n)

    @property
    def num_replications(self) -> int:
        return self._num_replications

    @num_replications.setter
    def num_replications(self, n: int) -> None:
        self._num_replications = _validate_replications(n)

    @property
    def replication_statistic(self) -> Statistic:
        """Statistic over the replications of the last estimate."""
        return self._replication_statistic.copy()

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def sampler(self) -> Sampler:
        """Sampler whose stream control drives the replications."""

    @abstractmethod
    def _draw_correlation(self, sample_size: int) -> float:
        """One sample correlation from the current position of :attr:`stream`."""

    @abstractmethod
    def search_interval(self, desired: float) -> Interval:
        """Input correlations searched when matching ``desired``."""

    def sample_correlation(self, sample_size: int | None = None) -> float:
        """A single finite-sample estimate at the current input correlation."""
        n = self._sample_size if sample_size is None else _validate_sample_size(sample_size)
        return self._draw_correlation(n)

    def _replicate(self, sample_size: int) -> float:
        if not self.antithetic:
            return self._draw_correlation(sample_size)
        # both members of a pair read the same substream, the second one antithetically
        sampler = self.sampler
        sampler.advance_stream()
        first = self._draw_correlation(sample_size)
        sampler.reset_stream()
        sampler.set_antithetic_option(True)
        try:
            second = self._draw_correlation(sample_size)
        finally:
            sampler.set_antithetic_option(False)
        return (first + second) / 2.0

    def _start_estimate(self) -> Statistic:
        if self.common_random_numbers:
            self.stream.reset_start_stream()
        self._replication_statistic.reset()
        return self._replication_statistic

    def estimate_correlation(
        self, num_replications: int | None = None, sample_size: int | None = None
    ) -> float:
        """Average sample correlation over ``num_replications`` replications.

        With the antithetic option each replication is an antithetic pair, so
        ``num_replications`` pairs (twice as many samples) are drawn.
        """
        reps = self._num_replications if num_replications is None else num_replications
        reps = _validate_replications(reps)
        n = self._sample_size if sample_size is None else _validate_sample_size(sample_size)
        stat = self._start_estimate()
        for _ in range(reps):
            stat.collect(self._replicate(n))
        return stat.average

    def estimate_correlation_to_half_width(
        self,
        hw_bound: float,
        sample_size: int | None = None,
        max_replications: int | None = None,
    ) -> float:
        """Replicate until the half-width falls to ``hw_bound`` or the budget is used.

        Parameters
        ----------
        hw_bound : float
            Target half-width of the confidence interval on the correlation.
        sample_size : int | None, optional
            Variates per replication, by default :attr:`sample_size`.
        max_replications : int | None, optional
            Replication budget, by default ``100 * num_replications``.

        Returns
        -------
        float
            Average sample correlation over the replications performed.
        """
        if not hw_bound > 0.0:
            raise InvalidConfigurationError(f"Half-width bound must be > 0, got {hw_bound}")
        n = self._sample_size if sample_size is None else _validate_sample_size(sample_size)
        cap = 100 * self._num_replications if max_replications is None else max_replications
        cap = _validate_replications(cap)
        stat = self._start_estimate()
        for _ in range(cap):
            stat.collect(self._replicate(n))
            if stat.half_width() <= hw_bound:
                break
        return stat.average


class BivariateNORTAEvaluator(CorrelationEvaluator):
    """Correlation between ``X = F1^-1(Phi(Z1))`` and ``Y = F2^-1(Phi(Z2))``.

    ``(Z1, Z2)`` is bivariate standard normal with correlation
    :attr:`correlation`, built as ``Z2 = rho * Z1 + sqrt(1 - rho**2) * E``.

    Parameters
    ----------
    first, second : Any
        Frozen ``scipy.stats`` distributions of the two marginals.
    **kwargs
        Forwarded to :class:`CorrelationEvaluator`.
    """

    def __init__(self, first: Any, second: Any, correlation: float = 0.0, **kwargs) -> None:
        super().__init__(correlation, **kwargs)
        self.first = InverseTransformSampler(first, self.stream)
        self.second = InverseTransformSampler(second, self.stream)
        self._pair_statistic = StatisticXY(name="Sample pairs")

    @property
    def sampler(self) -> Sampler:
        # both marginals read the evaluator stream
        return self.first

    def sample_pairs(self, sample_size: int) -> tuple[np.ndarray, np.ndarray]:
        """Draw ``sample_size`` correlated ``(x, y)`` pairs."""
        z = special.ndtri(self.stream.rand_u01((sample_size, 2)))
        rho = self._correlation
        z1 = z[:, 0]
        z2 = rho * z1 + math.sqrt(1.0 - rho * rho) * z[:, 1]
        x = self.first.inverse_cdf(normal_cdf(z1))
        y = self.second.inverse_cdf(normal_cdf(z2))
        return x, y

    def _draw_correlation(self, sample_size: int) -> float:
        x, y = self.sample_pairs(sample_size)
        self._pair_statistic.reset()
        self._pair_statistic.collect_all(x, y)
        return self._pair_statistic.correlation_xy

    def search_interval(self, desired: float) -> Interval:
        # the induced correlation has the sign of the input correlation
        if desired <= 0.0:
            return Interval(-LIMIT_CORRELATION, 0.0)
        return Interval(0.0, LIMIT_CORRELATION)


class AutocorrelationEvaluator(CorrelationEvaluator):
    """Lag-1 autocorrelation of ``X_t = F^-1(Phi(Z_t))`` for an AR(1) normal ``Z_t``.

    Parameters
    ----------
    marginal : Any
        Frozen ``scipy.stats`` distribution of ``X_t``.
    **kwargs
        Forwarded to :class:`CorrelationEvaluator`.
    """

    def __init__(self, marginal: Any, correlation: float = 0.0, **kwargs) -> None:
        super().__init__(correlation, **kwargs)
        self.marginal = InverseTransformSampler(marginal, self.stream)
        self._process = AR1NormalSampler(self._correlation, self.stream)
        self._sample_statistic = Statistic(name="Sample")

    @property
    def sampler(self) -> Sampler:
        return self._process

    def sample_path(self, sample_size: int) -> np.ndarray:
        """A fresh path of ``sample_size`` autocorrelated variates."""
        self._process.correlation = self._correlation
        self._process.restart_path()
        return self.marginal.inverse_cdf(self._process.sample_uniforms(sample_size))

    def _draw_correlation(self, sample_size: int) -> float:
        self._sample_statistic.reset()
        self._sample_statistic.collect_all(self.sample_path(sample_size))
        return self._sample_statistic.lag1_correlation

    def search_interval(self, desired: float) -> Interval:
        return Interval(-LIMIT_CORRELATION, LIMIT_CORRELATION)


def _validate_sample_size(n: int) -> int:
    if n < 3:
        raise InvalidConfigurationError(f"The sample size must be >= 3, got {n}")
    return int(n)


def _validate_replications(n: int) -> int:
    if n < 1:
        raise InvalidConfigurationError(f"The number of replications must be >= 1, got {n}")
    return int(n)
