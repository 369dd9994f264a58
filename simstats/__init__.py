"""Online statistical estimators for simulation output analysis."""

from simstats._version import __version__
from simstats.errors import InvalidConfigurationError, SimStatsError
from simstats.interval import Interval
from simstats.statistics import (
    AntitheticStatistic,
    BatchStatistic,
    Histogram,
    StandardizedTimeSeriesStatistic,
    Statistic,
    StatisticAccessor,
    StatisticXY,
)

__all__ = [
    "__version__",
    "AntitheticStatistic",
    "BatchStatistic",
    "Histogram",
    "Interval",
    "InvalidConfigurationError",
    "SimStatsError",
    "StandardizedTimeSeriesStatistic",
    "Statistic",
    "StatisticAccessor",
    "StatisticXY",
]
