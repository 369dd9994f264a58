"""Thin wrappers over ``scipy.stats`` for the distribution functions simstats needs.

All functions are pure and stateless.
"""

from __future__ import annotations

import numpy as np
from scipy import special, stats

__all__ = [
    "normal_cdf",
    "normal_complementary_cdf",
    "normal_inverse_cdf",
    "student_t_inverse_cdf",
]


def student_t_inverse_cdf(dof: float, p: float) -> float:
    """Quantile of Student's t distribution with ``dof`` degrees of freedom."""
    return float(stats.t.ppf(p, dof))


def normal_inverse_cdf(p: float) -> float:
    """Quantile of the standard normal distribution."""
    return float(stats.norm.ppf(p))


def normal_cdf(x: float | np.ndarray) -> float | np.ndarray:
    """Standard normal CDF, elementwise for arrays."""
    values = special.ndtr(x)
    if np.ndim(values) == 0:
        return float(values)
    return values


def normal_complementary_cdf(x: float) -> float:
    """Upper tail ``1 - Phi(x)``, computed without cancellation."""
    return float(stats.norm.sf(x))
