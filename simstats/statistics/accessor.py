"""Shared read-only contract for summary statistics.

Every summary statistic in simstats (plain moments, batch means, standardized
time series, antithetic pairs) exposes the same set of accessors.  Concrete
classes supply the primitive values; this module derives the confidence-interval
math and the export formats from them.

Export order
------------
``as_array`` returns the 18 values listed in :data:`STATISTIC_FIELDS`, in that
order.  The CSV header prepends ``"Statistic Name"``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np

from simstats.distributions import (
    normal_complementary_cdf,
    normal_inverse_cdf,
    student_t_inverse_cdf,
)
from simstats.errors import InvalidConfigurationError
from simstats.interval import Interval

__all__ = [
    "DEFAULT_CONFIDENCE_LEVEL",
    "DelegatingAccessor",
    "STATISTIC_FIELDS",
    "StatisticAccessor",
    "estimate_sample_size",
    "validate_confidence_level",
]

DEFAULT_CONFIDENCE_LEVEL = 0.95

STATISTIC_FIELDS: tuple[str, ...] = (
    "Count",
    "Average",
    "Standard Deviation",
    "Standard Error",
    "Half-width",
    "Confidence Level",
    "Minimum",
    "Maximum",
    "Sum",
    "Variance",
    "Deviation Sum of Squares",
    "Last value collected",
    "Kurtosis",
    "Skewness",
    "Lag 1 Covariance",
    "Lag 1 Correlation",
    "Von Neumann Lag 1 Test Statistic",
    "Number of missing observations",
)


def validate_confidence_level(level: float) -> float:
    """Return ``level`` as a float, raising if it is not strictly inside (0, 1)."""
    level = float(level)
    if not 0.0 < level < 1.0:
        raise InvalidConfigurationError(f"Confidence level must be in (0, 1), got {level}")
    return level


def estimate_sample_size(desired_half_width: float, std_dev: float, level: float) -> int:
    """Normal-approximation sample size needed to reach a target half-width.

    Parameters
    ----------
    desired_half_width : float
        Target half-width, must be > 0.
    std_dev : float
        Standard deviation estimate, must be >= 0.
    level : float
        Confidence level in (0, 1).

    Returns
    -------
    int
        ``ceil((z * std_dev / desired_half_width) ** 2)`` with
        ``z = Phi^-1(1 - (1 - level) / 2)``.
    """
    if desired_half_width <= 0.0:
        raise InvalidConfigurationError(
            f"The desired half-width must be > 0, got {desired_half_width}"
        )
    if std_dev < 0.0:
        raise InvalidConfigurationError(f"The standard deviation must be >= 0, got {std_dev}")
    level = validate_confidence_level(level)
    z = normal_inverse_cdf(1.0 - (1.0 - level) / 2.0)
    return int(math.ceil((z * std_dev / desired_half_width) ** 2))


class StatisticAccessor(ABC):
    """Capability contract implemented by every summary statistic.

    Subclasses implement the primitive properties (count, average, variance,
    extremes, moments, lag-1 terms).  Standard error, half-width, confidence
    interval, sample size planning and the export helpers are derived here.

    Parameters
    ----------
    name : str | None
        Optional label used in exports.
    confidence_level : float
        Default level for :meth:`half_width` and :meth:`confidence_interval`.
    """

    def __init__(
        self, name: str | None = None, confidence_level: float = DEFAULT_CONFIDENCE_LEVEL
    ) -> None:
        self.name = name
        self._confidence_level = validate_confidence_level(confidence_level)

    # ------------------------------------------------------------------
    # Primitive values
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def count(self) -> float: ...

    @property
    @abstractmethod
    def average(self) -> float: ...

    @property
    @abstractmethod
    def variance(self) -> float: ...

    @property
    @abstractmethod
    def sum(self) -> float: ...

    @property
    @abstractmethod
    def min(self) -> float: ...

    @property
    @abstractmethod
    def max(self) -> float: ...

    @property
    @abstractmethod
    def deviation_sum_of_squares(self) -> float: ...

    @property
    @abstractmethod
    def last_value(self) -> float: ...

    @property
    @abstractmethod
    def kurtosis(self) -> float: ...

    @property
    @abstractmethod
    def skewness(self) -> float: ...

    @property
    @abstractmethod
    def lag1_covariance(self) -> float: ...

    @property
    @abstractmethod
    def lag1_correlation(self) -> float: ...

    @property
    @abstractmethod
    def von_neumann_lag1_statistic(self) -> float: ...

    @property
    @abstractmethod
    def num_missing(self) -> int: ...

    # ------------------------------------------------------------------
    # Confidence summary
    # ------------------------------------------------------------------

    @property
    def confidence_level(self) -> float:
        return self._confidence_level

    @confidence_level.setter
    def confidence_level(self, level: float) -> None:
        self._confidence_level = validate_confidence_level(level)

    @property
    def standard_deviation(self) -> float:
        var = self.variance
        if math.isnan(var):
            return math.nan
        return math.sqrt(var)

    @property
    def standard_error(self) -> float:
        n = self.count
        if n < 1:
            return math.nan
        return self.standard_deviation / math.sqrt(n)

    def half_width(self, level: float | None = None) -> float:
        """Student-t half-width of the confidence interval on the mean.

        Parameters
        ----------
        level : float | None
            Confidence level in (0, 1); defaults to :attr:`confidence_level`.

        Returns
        -------
        float
            ``t(n-1, 1 - alpha/2) * standard_error``, or NaN when fewer than
            two observations were collected.
        """
        level = self._confidence_level if level is None else validate_confidence_level(level)
        n = self.count
        if n <= 1:
            return math.nan
        t = student_t_inverse_cdf(n - 1.0, 1.0 - (1.0 - level) / 2.0)
        return t * self.standard_error

    def confidence_interval(self, level: float | None = None) -> Interval:
        """Confidence interval on the mean; unbounded when nothing was collected."""
        if self.count < 1:
            return Interval(-math.inf, math.inf)
        hw = self.half_width(level)
        if math.isnan(hw):
            return Interval(-math.inf, math.inf)
        avg = self.average
        return Interval(avg - hw, avg + hw)

    def check_mean(self, mean: float) -> bool:
        """Whether ``mean`` lies inside the current confidence interval."""
        return self.confidence_interval().contains(mean)

    def estimate_sample_size(self, desired_half_width: float) -> int | float:
        """Sample size needed to reach ``desired_half_width`` at the current level.

        Returns NaN while the standard deviation is still undefined.
        """
        if desired_half_width <= 0.0:
            raise InvalidConfigurationError(
                f"The desired half-width must be > 0, got {desired_half_width}"
            )
        std = self.standard_deviation
        if math.isnan(std):
            return math.nan
        return estimate_sample_size(desired_half_width, std, self._confidence_level)

    @property
    def von_neumann_lag1_p_value(self) -> float:
        return normal_complementary_cdf(self.von_neumann_lag1_statistic)

    def leading_digit_rule(self, multiplier: float = 1.0) -> int | float:
        """``floor(log10(multiplier * standard_error))``.

        Indicates the last digit of the average worth reporting.  NaN when the
        standard error is zero or undefined.
        """
        value = multiplier * self.standard_error
        if math.isnan(value) or value <= 0.0:
            return math.nan
        return int(math.floor(math.log10(value)))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def as_array(self) -> np.ndarray:
        """The 18 summary values in :data:`STATISTIC_FIELDS` order."""
        return np.array(
            [
                self.count,
                self.average,
                self.standard_deviation,
                self.standard_error,
                self.half_width(),
                self.confidence_level,
                self.min,
                self.max,
                self.sum,
                self.variance,
                self.deviation_sum_of_squares,
                self.last_value,
                self.kurtosis,
                self.skewness,
                self.lag1_covariance,
                self.lag1_correlation,
                self.von_neumann_lag1_statistic,
                self.num_missing,
            ],
            dtype=np.float64,
        )

    def as_dict(self) -> dict[str, float]:
        return dict(zip(STATISTIC_FIELDS, self.as_array().tolist(), strict=True))

    @staticmethod
    def csv_header() -> list[str]:
        return ["Statistic Name", *STATISTIC_FIELDS]

    def csv_row(self) -> list[str]:
        """Name followed by the 18 values; NaN and infinities become empty strings."""
        row = [self.name or ""]
        for value in self.as_array().tolist():
            row.append(repr(value) if math.isfinite(value) else "")
        return row

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, count={self.count:g}, "
            f"average={self.average:g}, half_width={self.half_width():g})"
        )


class DelegatingAccessor(StatisticAccessor):
    """Accessor whose summary values come from an inner statistic.

    Subclasses assign the inner statistic to ``self._delegate`` and keep their
    own ``self._num_missing`` counter.  Setting :attr:`confidence_level`
    updates the delegate too.
    """

    _delegate: StatisticAccessor
    _num_missing: int

    @property
    def confidence_level(self) -> float:
        return self._confidence_level

    @confidence_level.setter
    def confidence_level(self, level: float) -> None:
        self._confidence_level = validate_confidence_level(level)
        self._delegate.confidence_level = level

    @property
    def count(self) -> float:
        return self._delegate.count

    @property
    def average(self) -> float:
        return self._delegate.average

    @property
    def sum(self) -> float:
        return self._delegate.sum

    @property
    def variance(self) -> float:
        return self._delegate.variance

    @property
    def deviation_sum_of_squares(self) -> float:
        return self._delegate.deviation_sum_of_squares

    @property
    def min(self) -> float:
        return self._delegate.min

    @property
    def max(self) -> float:
        return self._delegate.max

    @property
    def last_value(self) -> float:
        return self._delegate.last_value

    @property
    def kurtosis(self) -> float:
        return self._delegate.kurtosis

    @property
    def skewness(self) -> float:
        return self._delegate.skewness

    @property
    def lag1_covariance(self) -> float:
        return self._delegate.lag1_covariance

    @property
    def lag1_correlation(self) -> float:
        return self._delegate.lag1_correlation

    @property
    def von_neumann_lag1_statistic(self) -> float:
        return self._delegate.von_neumann_lag1_statistic

    @property
    def num_missing(self) -> int:
        return self._num_missing
