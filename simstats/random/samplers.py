"""Samplers driven by a :class:`RandomStream`.

Any object that satisfies the :class:`Sampler` protocol can feed the
correlation evaluators.  Distribution math is delegated to scipy: marginals
are frozen ``scipy.stats`` distributions sampled by inversion, so antithetic
uniforms translate into antithetic variates.
"""

from __future__ import annotations

import math
from typing import Any, Protocol, runtime_checkable

import numpy as np
from scipy import signal, special

from simstats.distributions import normal_cdf
from simstats.errors import InvalidConfigurationError
from simstats.random.streams import RandomStream

__all__ = [
    "AR1NormalSampler",
    "InverseTransformSampler",
    "Sampler",
    "validate_correlation",
]


def validate_correlation(rho: float) -> float:
    rho = float(rho)
    if not -1.0 < rho < 1.0:
        raise InvalidConfigurationError(f"The correlation must be in (-1, 1), got {rho}")
    return rho


@runtime_checkable
class Sampler(Protocol):
    """Anything that produces variates from a controllable random stream."""

    def sample(self, size: int | None = None) -> float | np.ndarray: ...

    def reset_stream(self) -> None: ...

    def advance_stream(self) -> None: ...

    def set_antithetic_option(self, flag: bool) -> None: ...


class _StreamSampler:
    """Stream bookkeeping shared by the concrete samplers."""

    def __init__(self, stream: RandomStream | None = None) -> None:
        self.stream = stream if stream is not None else RandomStream()

    def reset_stream(self) -> None:
        """Rewind to the start of the current substream."""
        self.stream.reset_start_substream()

    def advance_stream(self) -> None:
        self.stream.advance_to_next_substream()

    def set_antithetic_option(self, flag: bool) -> None:
        self.stream.antithetic = flag


class InverseTransformSampler(_StreamSampler):
    """Sample a frozen scipy distribution by inversion, ``F^-1(U)``.

    Parameters
    ----------
    distribution : Any
        Frozen ``scipy.stats`` distribution (anything with a ``ppf`` method).
    stream : RandomStream | None, optional
        Source of uniforms; a fresh unseeded stream when omitted.
    """

    def __init__(self, distribution: Any, stream: RandomStream | None = None) -> None:
        if not callable(getattr(distribution, "ppf", None)):
            raise InvalidConfigurationError(
                f"distribution must provide an inverse CDF (ppf), got {type(distribution).__name__}"
            )
        super().__init__(stream)
        self.distribution = distribution

    def sample(self, size: int | None = None) -> float | np.ndarray:
        u = self.stream.rand_u01(size)
        x = self.distribution.ppf(u)
        if size is None:
            return float(x)
        return np.asarray(x, dtype=np.float64)

    def inverse_cdf(self, u: np.ndarray) -> np.ndarray:
        return np.asarray(self.distribution.ppf(u), dtype=np.float64)


class AR1NormalSampler(_StreamSampler):
    """Stationary AR(1) process with standard normal marginals.

    ``Z_t = rho * Z_{t-1} + sqrt(1 - rho**2) * e_t`` with ``e_t ~ N(0, 1)``,
    started from ``Z_1 ~ N(0, 1)``, so every ``Z_t`` is standard normal and
    the lag-1 correlation is ``rho``.  Successive calls to :meth:`sample`
    continue the same path until :meth:`restart_path` is called.

    Parameters
    ----------
    correlation : float
        Lag-1 correlation in (-1, 1).
    stream : RandomStream | None, optional
        Source of uniforms; a fresh unseeded stream when omitted.
    """

    def __init__(self, correlation: float = 0.0, stream: RandomStream | None = None) -> None:
        super().__init__(stream)
        self.correlation = correlation
        self._previous = math.nan

    @property
    def correlation(self) -> float:
        return self._correlation

    @correlation.setter
    def correlation(self, rho: float) -> None:
        self._correlation = validate_correlation(rho)

    def restart_path(self) -> None:
        """Forget the previous value so the next draw starts a new stationary path."""
        self._previous = math.nan

    def reset_stream(self) -> None:
        super().reset_stream()
        self.restart_path()

    def sample(self, size: int | None = None) -> float | np.ndarray:
        n = 1 if size is None else int(size)
        e = special.ndtri(np.atleast_1d(self.stream.rand_u01(n)))
        rho = self._correlation
        scale = math.sqrt(1.0 - rho * rho)
        z = np.empty(n, dtype=np.float64)
        if math.isnan(self._previous):
            z[0] = e[0]
            start = 1
        else:
            start = 0
        if n > start:
            prev = z[0] if start == 1 else self._previous
            z[start:], _ = signal.lfilter([scale], [1.0, -rho], e[start:], zi=[rho * prev])
        self._previous = float(z[-1])
        if size is None:
            return float(z[0])
        return z

    def sample_uniforms(self, size: int) -> np.ndarray:
        """AR(1) path mapped through the normal CDF: correlated U(0, 1) variates."""
        return normal_cdf(np.atleast_1d(self.sample(size)))
