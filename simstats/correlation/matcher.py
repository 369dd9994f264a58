"""Find the NORTA input correlation that induces a desired output correlation.

Matching runs in two stages.  :meth:`NORTACorrelationMatcher.check_matching_correlation`
estimates the output correlation at both ends of the search interval and
rejects targets outside that achievable range.  :meth:`find_matching_correlation`
then solves ``estimate_correlation(x) - desired = 0`` with the stochastic
approximation root finder, starting from the best point of a coarse grid and
a scale factor derived from the local slope.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from simstats.config import CorrelationMatchConfig
from simstats.correlation.evaluators import (
    AutocorrelationEvaluator,
    BivariateNORTAEvaluator,
    CorrelationEvaluator,
)
from simstats.errors import InvalidConfigurationError
from simstats.interval import Interval
from simstats.rootfinding.stochastic_approximation import (
    RootFinderResult,
    StochasticApproximationRootFinder,
)

__all__ = ["MatchResult", "NORTACorrelationMatcher"]


@dataclass(frozen=True)
class MatchResult:
    """Outcome of :meth:`NORTACorrelationMatcher.match`.

    Parameters
    ----------
    desired : float
        Target output correlation.
    matched : bool
        Whether the target was achievable and the root finder was run.
    matching_correlation : float
        Input correlation found, NaN when unmatched.
    achievable : Interval
        Output correlations estimated at the ends of the search interval.
    converged : bool
        Whether the root finder met its precision.
    iterations : int
        Root finder iterations.
    stopping_criterion : float
        Final root finder stopping criterion, NaN when unmatched.
    """

    desired: float
    matched: bool
    matching_correlation: float
    achievable: Interval
    converged: bool = False
    iterations: int = 0
    stopping_criterion: float = math.nan


class NORTACorrelationMatcher:
    """Correlation matching on top of a :class:`CorrelationEvaluator`.

    Use :meth:`bivariate` or :meth:`autocorrelation` to build the evaluator
    from the sampling settings of a :class:`CorrelationMatchConfig`.

    Parameters
    ----------
    evaluator : CorrelationEvaluator
        Estimates the output correlation for an input correlation.
    config : CorrelationMatchConfig | None, optional
        Matching and root finder settings; defaults when omitted.
    progress_callback : Callable[[StochasticApproximationRootFinder], None] | None, optional
        Forwarded to the root finder.
    """

    def __init__(
        self,
        evaluator: CorrelationEvaluator,
        config: CorrelationMatchConfig | None = None,
        progress_callback: Callable[[StochasticApproximationRootFinder], None] | None = None,
    ) -> None:
        self.evaluator = evaluator
        self.config = config if config is not None else CorrelationMatchConfig()
        self.progress_callback = progress_callback
        self._desired = math.nan
        self._achievable: Interval | None = None
        self._root_finder: StochasticApproximationRootFinder | None = None
        self._result: RootFinderResult | None = None
        self._matching_correlation = math.nan

    @classmethod
    def bivariate(
        cls, first: Any, second: Any, config: CorrelationMatchConfig | None = None, **kwargs
    ) -> NORTACorrelationMatcher:
        """Matcher for the correlation between two frozen scipy marginals."""
        config = config if config is not None else CorrelationMatchConfig()
        evaluator = BivariateNORTAEvaluator(first, second, **_evaluator_options(config))
        return cls(evaluator, config, **kwargs)

    @classmethod
    def autocorrelation(
        cls, marginal: Any, config: CorrelationMatchConfig | None = None, **kwargs
    ) -> NORTACorrelationMatcher:
        """Matcher for the lag-1 autocorrelation of one frozen scipy marginal."""
        config = config if config is not None else CorrelationMatchConfig()
        evaluator = AutocorrelationEvaluator(marginal, **_evaluator_options(config))
        return cls(evaluator, config, **kwargs)

    @property
    def desired_correlation(self) -> float:
        return self._desired

    @property
    def matching_correlation(self) -> float:
        return self._matching_correlation

    @property
    def root_finder(self) -> StochasticApproximationRootFinder | None:
        return self._root_finder

    @property
    def correlation_interval(self) -> Interval:
        """Achievable output correlations from the last bracket check."""
        if self._achievable is None:
            raise InvalidConfigurationError(
                "check_matching_correlation() must be called before the interval is known"
            )
        return self._achievable

    def _correlation_gap(self, x: float) -> float:
        self.evaluator.correlation = x
        return self.evaluator.estimate_correlation() - self._desired

    def check_matching_correlation(self, desired: float) -> bool:
        """Whether ``desired`` lies within the achievable output correlations.

        Estimates the output correlation at both ends of the evaluator's search
        interval to the configured half-width bound and remembers the range.
        On success the root finder is prepared for :meth:`find_matching_correlation`.

        Raises
        ------
        InvalidConfigurationError
            If ``desired`` is not in (-1, 1).
        """
        if not -1.0 < desired < 1.0:
            raise InvalidConfigurationError(f"Correlation must be in (-1, 1), got {desired}")
        cfg = self.config
        search = self.evaluator.search_interval(desired)

        self.evaluator.correlation = search.lower
        rho_low = self.evaluator.estimate_correlation_to_half_width(cfg.hw_bound)
        self.evaluator.correlation = search.upper
        rho_high = self.evaluator.estimate_correlation_to_half_width(cfg.hw_bound)
        self._achievable = Interval(min(rho_low, rho_high), max(rho_low, rho_high))
        self._root_finder = None

        if not self._achievable.contains(desired):
            logger.info(
                f"Correlation {desired:g} is not achievable; estimated range is "
                f"[{self._achievable.lower:.6g}, {self._achievable.upper:.6g}]"
            )
            return False

        self._desired = float(desired)
        self._root_finder = StochasticApproximationRootFinder.from_config(
            self._correlation_gap,
            search,
            cfg.root_finder,
            progress_callback=self.progress_callback,
        )
        logger.info(
            f"Correlation {desired:g} is achievable within "
            f"[{self._achievable.lower:.6g}, {self._achievable.upper:.6g}]"
        )
        return True

    def recommend_initial_point(self, num_points: int | None = None) -> float:
        if self._root_finder is None:
            raise InvalidConfigurationError(
                "check_matching_correlation() must succeed before searching"
            )
        n = self.config.initial_points if num_points is None else num_points
        return self._root_finder.recommend_initial_point(n)

    def find_matching_correlation(self) -> float:
        """Run the root finder; NaN unless a bracket check succeeded first."""
        self._matching_correlation = math.nan
        self._result = None
        finder = self._root_finder
        if finder is None:
            return math.nan
        start = finder.recommend_initial_point(self.config.initial_points)
        finder.initial_point = start
        finder.scale_factor = finder.recommend_scaling_factor(start, self.config.delta)
        logger.debug(
            f"Matching correlation {self._desired:g} from x0={start:.6g} "
            f"with scale factor {finder.scale_factor:.6g}"
        )
        self._result = finder.run()
        self._matching_correlation = self._result.root
        return self._matching_correlation

    def match(self, desired: float) -> MatchResult:
        """Bracket check followed by the root search for ``desired``."""
        if not self.check_matching_correlation(desired):
            return MatchResult(
                desired=float(desired),
                matched=False,
                matching_correlation=math.nan,
                achievable=self.correlation_interval,
            )
        root = self.find_matching_correlation()
        result = self._result
        assert result is not None
        logger.success(
            f"Matched correlation {desired:g} with input correlation {root:.6g} "
            f"after {result.iterations} iterations"
        )
        return MatchResult(
            desired=float(desired),
            matched=True,
            matching_correlation=root,
            achievable=self.correlation_interval,
            converged=result.converged,
            iterations=result.iterations,
            stopping_criterion=result.stopping_criterion,
        )


def _evaluator_options(config: CorrelationMatchConfig) -> dict[str, Any]:
    return {
        "sample_size": config.sample_size,
        "num_replications": config.num_replications,
        "antithetic": config.antithetic,
        "common_random_numbers": config.common_random_numbers,
        "seed": config.seed,
    }
