"""Streaming bivariate statistics: covariance, correlation and simple regression.

Co-moments are accumulated with Welford's update so the correlation stays
accurate for long streams with large means.

Reference:
    Welford, B. P. (1962). "Note on a method for calculating corrected sums
    of squares and products." Technometrics, 4(3), 419-420.

    Chan, T. F., Golub, G. H., & LeVeque, R. J. (1979). "Updating formulae
    and a pairwise algorithm for computing sample variances."
"""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable

import numpy as np

__all__ = ["StatisticXY"]


class StatisticXY:
    """Online statistics over ``(x, y)`` pairs.

    Pairs where either value is non-finite are counted as missing and
    otherwise ignored.

    Parameters
    ----------
    name : str | None, optional
        Label for reports.
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self.reset()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self._n = 0
        self._mean_x = 0.0
        self._mean_y = 0.0
        self._ss_xx = 0.0
        self._ss_yy = 0.0
        self._ss_xy = 0.0
        self._num_missing = 0

    def collect(self, x: float, y: float) -> None:
        x, y = float(x), float(y)
        if not (math.isfinite(x) and math.isfinite(y)):
            self._num_missing += 1
            return
        self._n += 1
        dx = x - self._mean_x
        dy = y - self._mean_y
        self._mean_x += dx / self._n
        self._mean_y += dy / self._n
        self._ss_xx += dx * (x - self._mean_x)
        self._ss_yy += dy * (y - self._mean_y)
        self._ss_xy += dx * (y - self._mean_y)

    def collect_all(self, x: Iterable[float], y: Iterable[float]) -> None:
        """Collect paired values; both sequences must have the same length.

        Non-finite pairs count as missing.  The block is merged with the
        pairwise update of Chan, Golub and LeVeque (1979).
        """
        xs = np.asarray(x if isinstance(x, np.ndarray) else list(x), dtype=np.float64).ravel()
        ys = np.asarray(y if isinstance(y, np.ndarray) else list(y), dtype=np.float64).ravel()
        if xs.shape != ys.shape:
            raise ValueError(f"x and y must have the same length, got {xs.size} and {ys.size}")
        finite = np.isfinite(xs) & np.isfinite(ys)
        self._num_missing += int(xs.size - finite.sum())
        xs, ys = xs[finite], ys[finite]
        nb = xs.size
        if nb == 0:
            return

        # Chan et al. pairwise merge of the block into the running co-moments
        mean_bx, mean_by = float(xs.mean()), float(ys.mean())
        dx, dy = xs - mean_bx, ys - mean_by
        na = self._n
        n = na + nb
        delta_x = mean_bx - self._mean_x
        delta_y = mean_by - self._mean_y
        factor = na * nb / n
        self._ss_xx += float(dx @ dx) + delta_x * delta_x * factor
        self._ss_yy += float(dy @ dy) + delta_y * delta_y * factor
        self._ss_xy += float(dx @ dy) + delta_x * delta_y * factor
        self._mean_x += delta_x * nb / n
        self._mean_y += delta_y * nb / n
        self._n = n

    def copy(self) -> StatisticXY:
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        return self._n

    @property
    def num_missing(self) -> int:
        return self._num_missing

    @property
    def average_x(self) -> float:
        return self._mean_x if self._n > 0 else math.nan

    @property
    def average_y(self) -> float:
        return self._mean_y if self._n > 0 else math.nan

    @property
    def sum_x(self) -> float:
        return self._mean_x * self._n

    @property
    def sum_y(self) -> float:
        return self._mean_y * self._n

    @property
    def ss_xx(self) -> float:
        return self._ss_xx

    @property
    def ss_yy(self) -> float:
        return self._ss_yy

    @property
    def ss_xy(self) -> float:
        return self._ss_xy

    @property
    def variance_x(self) -> float:
        return self._ss_xx / (self._n - 1) if self._n > 1 else math.nan

    @property
    def variance_y(self) -> float:
        return self._ss_yy / (self._n - 1) if self._n > 1 else math.nan

    @property
    def covariance_xy(self) -> float:
        return self._ss_xy / (self._n - 1) if self._n > 1 else math.nan

    @property
    def correlation_xy(self) -> float:
        """Pearson correlation; NaN below two pairs or when either series is constant."""
        if self._n < 2 or self._ss_xx <= 0.0 or self._ss_yy <= 0.0:
            return math.nan
        return self._ss_xy / math.sqrt(self._ss_xx * self._ss_yy)

    # ---- Simple linear regression of y on x ----

    @property
    def slope(self) -> float:
        if self._n < 2 or self._ss_xx <= 0.0:
            return math.nan
        return self._ss_xy / self._ss_xx

    @property
    def intercept(self) -> float:
        return self._mean_y - self.slope * self._mean_x

    @property
    def sum_square_errors_regression(self) -> float:
        if self._ss_xx <= 0.0:
            return math.nan
        return self._ss_xy * self._ss_xy / self._ss_xx

    @property
    def sum_square_error_residuals(self) -> float:
        return self._ss_yy - self.sum_square_errors_regression

    @property
    def coefficient_of_determination(self) -> float:
        if self._ss_yy <= 0.0:
            return math.nan
        return self.sum_square_errors_regression / self._ss_yy

    @property
    def adjusted_r_squared(self) -> float:
        d = self._n - 2.0
        if d <= 0.0:
            return math.nan
        r2 = self.coefficient_of_determination
        return 1.0 - (1.0 - r2) * (self._n - 1.0) / d

    @property
    def mse_residuals(self) -> float:
        d = self._n - 2.0
        if d <= 0.0:
            return math.nan
        return self.sum_square_error_residuals / d

    @property
    def slope_std_error(self) -> float:
        if self._ss_xx <= 0.0:
            return math.nan
        return math.sqrt(self.mse_residuals / self._ss_xx)

    @property
    def intercept_std_error(self) -> float:
        if self._n <= 2 or self._ss_xx <= 0.0:
            return math.nan
        t1 = 1.0 / self._n + self._mean_x * self._mean_x / self._ss_xx
        return math.sqrt(self.mse_residuals * t1)
