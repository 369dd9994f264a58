"""Online summary statistics for simulation output.

This module provides:
- ``Statistic``: one-pass moments, extremes and lag-1 autocorrelation
- ``BatchStatistic``: batch means with automatic re-batching
- ``StandardizedTimeSeriesStatistic``: the STS area variance estimator
- ``AntitheticStatistic``, ``StatisticXY`` and ``Histogram`` collectors
"""

from simstats.statistics.accessor import (
    STATISTIC_FIELDS,
    DelegatingAccessor,
    StatisticAccessor,
    estimate_sample_size,
)
from simstats.statistics.antithetic import AntitheticStatistic
from simstats.statistics.batch import BatchStatistic
from simstats.statistics.histogram import Bin, Histogram
from simstats.statistics.moments import Statistic
from simstats.statistics.sts import StandardizedTimeSeriesStatistic
from simstats.statistics.xy import StatisticXY

__all__ = [
    "STATISTIC_FIELDS",
    "AntitheticStatistic",
    "BatchStatistic",
    "Bin",
    "DelegatingAccessor",
    "Histogram",
    "StandardizedTimeSeriesStatistic",
    "Statistic",
    "StatisticAccessor",
    "StatisticXY",
    "estimate_sample_size",
]
