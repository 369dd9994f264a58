"""Random streams and samplers used by the correlation evaluators."""

from simstats.random.samplers import (
    AR1NormalSampler,
    InverseTransformSampler,
    Sampler,
    validate_correlation,
)
from simstats.random.streams import RandomStream

__all__ = [
    "AR1NormalSampler",
    "InverseTransformSampler",
    "RandomStream",
    "Sampler",
    "validate_correlation",
]
