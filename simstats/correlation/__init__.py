"""NORTA correlation estimation and matching."""

from simstats.correlation.evaluators import (
    AutocorrelationEvaluator,
    BivariateNORTAEvaluator,
    CorrelationEvaluator,
)
from simstats.correlation.matcher import MatchResult, NORTACorrelationMatcher

__all__ = [
    "AutocorrelationEvaluator",
    "BivariateNORTAEvaluator",
    "CorrelationEvaluator",
    "MatchResult",
    "NORTACorrelationMatcher",
]
