"""Root finding for noisy functions."""

from simstats.rootfinding.stochastic_approximation import (
    RootFinderResult,
    RootFinderStep,
    StochasticApproximationRootFinder,
)

__all__ = ["RootFinderResult", "RootFinderStep", "StochasticApproximationRootFinder"]
