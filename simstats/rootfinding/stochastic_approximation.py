"""Robbins-Monro stochastic approximation root finder.

Finds ``x`` in ``[lower, upper]`` with ``E[f(x)] = 0`` when ``f`` can only be
observed with noise, such as a correlation estimated by simulation.  The
iteration is

    x_{k+1} = x_k - scale * a_k * f(x_k)

where the series ``a_k`` starts at 1 and follows Kesten's rule: it only
shrinks (``a <- 1 / (1 / a + 1)``) when the sign of ``f`` changes, i.e. when
the iterates cross the root.  Iteration stops once the next step would move
the estimate by less than the desired precision, or when an iteration or
wall-clock budget runs out.

Reference:
    Kesten, H. (1958). "Accelerated stochastic approximation." Annals of
    Mathematical Statistics, 29(1), 41-59.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import numpy as np
from loguru import logger

from simstats.errors import InvalidConfigurationError
from simstats.interval import Interval

if TYPE_CHECKING:
    from simstats.config import RootFinderConfig

__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_PRECISION",
    "DEFAULT_SCALE_FACTOR",
    "RootFinderResult",
    "RootFinderStep",
    "StochasticApproximationRootFinder",
]

DEFAULT_PRECISION = 1e-4
DEFAULT_SCALE_FACTOR = 100.0
DEFAULT_MAX_ITERATIONS = 10_000

StopReason = Literal[
    "converged", "max_iterations", "max_execution_time", "undefined_function_value"
]
Boundary = Literal["clamp", "bounce"]


@dataclass(frozen=True)
class RootFinderStep:
    x: float
    fx: float


@dataclass(frozen=True)
class RootFinderResult:
    """Outcome of :meth:`StochasticApproximationRootFinder.run`.

    Parameters
    ----------
    root : float
        Final root estimate.
    function_value : float
        ``f`` observed at ``root``.
    iterations : int
        Number of completed steps.
    converged : bool
        Whether the stopping criterion fell below the desired precision.
    stopping_criterion : float
        ``|scale * a * f(root)|`` at termination.
    elapsed_seconds : float
        Wall-clock duration of the run.
    stop_reason : str
        One of ``"converged"``, ``"max_iterations"``, ``"max_execution_time"``
        or ``"undefined_function_value"``.  In the last case ``root`` and
        ``function_value`` are the last point where ``f`` was finite.
    """

    root: float
    function_value: float
    iterations: int
    converged: bool
    stopping_criterion: float
    elapsed_seconds: float
    stop_reason: StopReason


class StochasticApproximationRootFinder:
    """Root finder for noisy functions on a closed interval.

    Parameters
    ----------
    func : Callable[[float], float]
        Function whose (expected) root is sought.  May be stochastic.
    interval : Interval
        Search interval; every trial point stays inside it.
    initial_point : float | None, optional
        Starting point, by default the interval midpoint.
    scale_factor : float, optional
        Step multiplier, by default 100. Must be > 0.
    desired_precision : float, optional
        Convergence threshold on ``|scale * a * f(x)|``, by default 1e-4.
    max_iterations : int, optional
        Iteration budget, by default 10000.
    max_execution_time : float | None, optional
        Wall-clock budget in seconds; ``None`` disables it.
    boundary : {"clamp", "bounce"}, optional
        How out-of-range steps are brought back: ``"clamp"`` moves to the
        violated bound, ``"bounce"`` draws uniformly between the current
        point and that bound.
    seed : int | None, optional
        Seed for the bounce draws.
    progress_callback : Callable[[StochasticApproximationRootFinder], None] | None, optional
        Called every ``progress_interval`` iterations; must not modify the finder.
    progress_interval : int, optional
        Iterations between progress callbacks and debug log lines.
    save_steps : bool, optional
        Record every ``(x, f(x))`` visited in :attr:`steps`.
    """

    def __init__(
        self,
        func: Callable[[float], float],
        interval: Interval,
        initial_point: float | None = None,
        scale_factor: float = DEFAULT_SCALE_FACTOR,
        *,
        desired_precision: float = DEFAULT_PRECISION,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_execution_time: float | None = None,
        boundary: Boundary = "clamp",
        seed: int | None = None,
        progress_callback: Callable[[StochasticApproximationRootFinder], None] | None = None,
        progress_interval: int = 100,
        save_steps: bool = False,
    ) -> None:
        if not (math.isfinite(interval.lower) and math.isfinite(interval.upper)):
            raise InvalidConfigurationError(f"The search interval must be finite, got {interval}")
        self.func = func
        self.interval = interval
        self.initial_point = interval.midpoint if initial_point is None else initial_point
        self.scale_factor = scale_factor
        self.desired_precision = desired_precision
        self.max_iterations = max_iterations
        self.max_execution_time = max_execution_time
        if boundary not in ("clamp", "bounce"):
            raise InvalidConfigurationError(f"boundary must be 'clamp' or 'bounce', got {boundary}")
        self.boundary = boundary
        if progress_interval < 1:
            raise InvalidConfigurationError(
                f"progress_interval must be >= 1, got {progress_interval}"
            )
        self.progress_callback = progress_callback
        self.progress_interval = progress_interval
        self.save_steps = save_steps
        self._rng = np.random.default_rng(seed)
        self.steps: list[RootFinderStep] = []
        self._reset_iteration_state()

    @classmethod
    def from_config(
        cls,
        func: Callable[[float], float],
        interval: Interval,
        config: RootFinderConfig,
        initial_point: float | None = None,
        **kwargs,
    ) -> StochasticApproximationRootFinder:
        return cls(
            func,
            interval,
            initial_point,
            config.scale_factor,
            desired_precision=config.desired_precision,
            max_iterations=config.max_iterations,
            max_execution_time=config.max_execution_time,
            boundary=config.boundary,
            seed=config.seed,
            progress_interval=config.progress_interval,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    @property
    def initial_point(self) -> float:
        return self._initial_point

    @initial_point.setter
    def initial_point(self, x: float) -> None:
        if not self.interval.contains(x):
            raise InvalidConfigurationError(f"The initial point {x} is not in {self.interval}")
        self._initial_point = float(x)

    @property
    def scale_factor(self) -> float:
        return self._scale_factor

    @scale_factor.setter
    def scale_factor(self, value: float) -> None:
        if not value > 0.0:
            raise InvalidConfigurationError(f"The scale factor must be > 0, got {value}")
        self._scale_factor = float(value)

    @property
    def desired_precision(self) -> float:
        return self._desired_precision

    @desired_precision.setter
    def desired_precision(self, value: float) -> None:
        if not value > 0.0:
            raise InvalidConfigurationError(f"The desired precision must be > 0, got {value}")
        self._desired_precision = float(value)

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        if value < 1:
            raise InvalidConfigurationError(f"The maximum iterations must be >= 1, got {value}")
        self._max_iterations = int(value)

    @property
    def max_execution_time(self) -> float | None:
        return self._max_execution_time

    @max_execution_time.setter
    def max_execution_time(self, seconds: float | None) -> None:
        if seconds is not None and not seconds > 0.0:
            raise InvalidConfigurationError(
                f"The maximum execution time must be > 0, got {seconds}"
            )
        self._max_execution_time = seconds

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def recommend_initial_point(self, num_points: int = 10) -> float:
        """Point with the smallest ``|f|`` among ``num_points`` evenly spaced points.

        The grid includes both interval ends.  ``num_points <= 1`` returns the
        midpoint without evaluating ``f``.
        """
        if num_points <= 1:
            return self.interval.midpoint
        grid = np.linspace(self.interval.lower, self.interval.upper, int(num_points))
        values = np.abs([self.func(float(x)) for x in grid])
        return float(grid[int(np.argmin(values))])

    def recommend_scaling_factor(self, point: float, delta: float) -> float:
        """Scale factor from the magnitude and the local slope of ``f`` at ``point``.

        Returns ``min(1 / |f(point)|, 1 / |slope|)`` with the slope taken over
        ``[point - delta, point + delta]`` clipped to the interval.  Results
        below ``DEFAULT_SCALE_FACTOR * DEFAULT_PRECISION`` fall back to 1 and
        results above ``DEFAULT_SCALE_FACTOR`` are capped.
        """
        if not self.interval.contains(point):
            raise InvalidConfigurationError(f"The point {point} is not in {self.interval}")
        if not delta > 0.0:
            raise InvalidConfigurationError(f"delta must be > 0, got {delta}")
        xu = self.interval.clip(point + delta)
        xl = self.interval.clip(point - delta)
        fu = self.func(xu)
        fl = self.func(xl)
        fp = self.func(point)
        slope = math.inf if math.isclose(xu, xl) else (fu - fl) / (xu - xl)
        rfp = math.inf if fp == 0.0 else 1.0 / abs(fp)
        rslope = math.inf if slope == 0.0 else 1.0 / abs(slope)
        factor = min(rfp, rslope)
        if factor < DEFAULT_SCALE_FACTOR * DEFAULT_PRECISION:
            return 1.0
        if factor > DEFAULT_SCALE_FACTOR:
            return DEFAULT_SCALE_FACTOR
        return factor

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def _reset_iteration_state(self) -> None:
        self.root = math.nan
        self.function_value = math.nan
        self.series = 1.0
        self.iterations = 0

    @property
    def stopping_criterion(self) -> float:
        return abs(self._scale_factor * self.series * self.function_value)

    @property
    def converged(self) -> bool:
        return self.stopping_criterion < self._desired_precision

    def _evaluate(self, x: float) -> None:
        self.root = x
        self.function_value = float(self.func(x))
        if self.save_steps:
            self.steps.append(RootFinderStep(x, self.function_value))

    def _bring_into_range(self, x: float) -> float:
        if math.isnan(x):
            raise ValueError("Cannot bring NaN into the search interval")
        lower, upper = self.interval.lower, self.interval.upper
        if lower <= x <= upper:
            return x
        if self.boundary == "clamp":
            return self.interval.clip(x)
        if x < lower:
            return float(self._rng.uniform(lower, self.root))
        return float(self._rng.uniform(self.root, upper))

    def run(self) -> RootFinderResult:
        """Iterate from :attr:`initial_point` until a stopping rule fires."""
        self._reset_iteration_state()
        self.steps = []
        start = time.perf_counter()
        self._evaluate(self._initial_point)
        previous_fx = self.function_value
        previous_root = self.root
        reason: StopReason = "max_iterations"

        while True:
            if not math.isfinite(self.function_value):
                reason = "undefined_function_value"
                if math.isfinite(previous_fx):
                    self.root, self.function_value = previous_root, previous_fx
                break
            if self.converged:
                reason = "converged"
                break
            if self.iterations >= self._max_iterations:
                reason = "max_iterations"
                break
            elapsed = time.perf_counter() - start
            if self._max_execution_time is not None and elapsed >= self._max_execution_time:
                reason = "max_execution_time"
                break

            if np.sign(previous_fx) != np.sign(self.function_value):
                self.series = 1.0 / (1.0 / self.series + 1.0)
            x = self.root - self._scale_factor * self.series * self.function_value
            x = self._bring_into_range(x)
            previous_fx = self.function_value
            previous_root = self.root
            self._evaluate(x)
            self.iterations += 1

            if self.iterations % self.progress_interval == 0:
                logger.debug(
                    f"Root finder iteration {self.iterations}: x={self.root:.6g}, "
                    f"f(x)={self.function_value:.6g}, criterion={self.stopping_criterion:.3g}"
                )
                if self.progress_callback is not None:
                    self.progress_callback(self)

        elapsed = time.perf_counter() - start
        result = RootFinderResult(
            root=self.root,
            function_value=self.function_value,
            iterations=self.iterations,
            converged=reason == "converged",
            stopping_criterion=self.stopping_criterion,
            elapsed_seconds=elapsed,
            stop_reason=reason,
        )
        if not result.converged:
            logger.warning(
                f"Root finder stopped without converging ({reason}) after "
                f"{result.iterations} iterations: x={result.root:.6g}, "
                f"criterion={result.stopping_criterion:.3g} >= {self._desired_precision:g}"
            )
        return result
