"""Configuration dataclasses for simstats with OmegaConf support."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from simstats.errors import InvalidConfigurationError


@dataclass
class BatchingConfig:
    """Configuration for :class:`~simstats.statistics.BatchStatistic`.

    Parameters
    ----------
    min_num_batches : int
        Number of batches kept after every re-batch
    min_batch_size : int
        Initial number of observations per batch
    max_batch_multiple : int
        Factor by which the batch size grows when the batch count doubles up
    """

    min_num_batches: int = 20
    min_batch_size: int = 16
    max_batch_multiple: int = 2

    def __post_init__(self) -> None:
        for name in ("min_num_batches", "min_batch_size", "max_batch_multiple"):
            if getattr(self, name) < 2:
                raise InvalidConfigurationError(f"{name} must be >= 2, got {getattr(self, name)}")


@dataclass
class STSConfig:
    """Configuration for :class:`~simstats.statistics.StandardizedTimeSeriesStatistic`.

    Parameters
    ----------
    batch_size : int
        Observations per batch
    save_batch_statistics : bool
        Keep a statistic for every completed batch
    """

    batch_size: int = 1024
    save_batch_statistics: bool = False

    def __post_init__(self) -> None:
        if self.batch_size < 2:
            raise InvalidConfigurationError(f"batch_size must be >= 2, got {self.batch_size}")


@dataclass
class RootFinderConfig:
    """Configuration for the stochastic approximation root finder.

    Parameters
    ----------
    desired_precision : float
        Convergence threshold on the size of the next step
    scale_factor : float
        Step multiplier used when no recommendation is computed
    max_iterations : int
        Iteration budget
    max_execution_time : float | None
        Wall-clock budget in seconds, disabled when None
    boundary : str
        'clamp' or 'bounce'; how out-of-range steps are brought back
    progress_interval : int
        Iterations between progress reports
    seed : int | None
        Seed for the bounce draws
    """

    desired_precision: float = 1e-4
    scale_factor: float = 100.0
    max_iterations: int = 10_000
    max_execution_time: float | None = None
    boundary: str = "clamp"
    progress_interval: int = 100
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.desired_precision <= 0.0:
            raise InvalidConfigurationError(
                f"desired_precision must be > 0, got {self.desired_precision}"
            )
        if self.scale_factor <= 0.0:
            raise InvalidConfigurationError(f"scale_factor must be > 0, got {self.scale_factor}")
        if self.max_iterations < 1:
            raise InvalidConfigurationError(
                f"max_iterations must be >= 1, got {self.max_iterations}"
            )
        if self.max_execution_time is not None and self.max_execution_time <= 0.0:
            raise InvalidConfigurationError(
                f"max_execution_time must be > 0, got {self.max_execution_time}"
            )
        if self.boundary not in ("clamp", "bounce"):
            raise InvalidConfigurationError(
                f"boundary must be 'clamp' or 'bounce', got {self.boundary}"
            )
        if self.progress_interval < 1:
            raise InvalidConfigurationError(
                f"progress_interval must be >= 1, got {self.progress_interval}"
            )


@dataclass
class CorrelationMatchConfig:
    """Configuration for NORTA correlation matching.

    Parameters
    ----------
    sample_size : int
        Variates per replication
    num_replications : int
        Replications per correlation estimate inside the root finder
    antithetic : bool
        Estimate from antithetic pairs of replications
    common_random_numbers : bool
        Reuse the random numbers for every estimate
    hw_bound : float
        Half-width bound when estimating the achievable correlation range
    delta : float
        Offset used for the slope estimate of the recommended scale factor
    initial_points : int
        Grid size used to recommend the initial point
    seed : int | None
        Seed of the evaluator's random stream
    root_finder : RootFinderConfig
        Root finder settings
    """

    sample_size: int = 1000
    num_replications: int = 10
    antithetic: bool = False
    common_random_numbers: bool = False
    hw_bound: float = 0.005
    delta: float = 0.1
    initial_points: int = 10
    seed: int | None = None
    root_finder: RootFinderConfig = field(default_factory=RootFinderConfig)

    def __post_init__(self) -> None:
        if self.sample_size < 3:
            raise InvalidConfigurationError(f"sample_size must be >= 3, got {self.sample_size}")
        if self.num_replications < 1:
            raise InvalidConfigurationError(
                f"num_replications must be >= 1, got {self.num_replications}"
            )
        if self.hw_bound <= 0.0:
            raise InvalidConfigurationError(f"hw_bound must be > 0, got {self.hw_bound}")
        if self.delta <= 0.0:
            raise InvalidConfigurationError(f"delta must be > 0, got {self.delta}")
        if self.initial_points < 2:
            raise InvalidConfigurationError(
                f"initial_points must be >= 2, got {self.initial_points}"
            )


@dataclass
class SimStatsConfig:
    """Top-level configuration.

    Parameters
    ----------
    confidence_level : float
        Default confidence level of every summary statistic
    batching : BatchingConfig
        Batch means settings
    sts : STSConfig
        Standardized time series settings
    matching : CorrelationMatchConfig
        Correlation matching settings
    """

    confidence_level: float = 0.95
    batching: BatchingConfig = field(default_factory=BatchingConfig)
    sts: STSConfig = field(default_factory=STSConfig)
    matching: CorrelationMatchConfig = field(default_factory=CorrelationMatchConfig)

    def __post_init__(self) -> None:
        if not 0.0 < self.confidence_level < 1.0:
            raise InvalidConfigurationError(
                f"confidence_level must be in (0, 1), got {self.confidence_level}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary.

        Returns
        -------
        dict[str, Any]
            Dictionary representation suitable for YAML serialization
        """
        return asdict(self)

    def to_dict_config(self) -> DictConfig:
        """Convert to OmegaConf DictConfig with schema validation.

        Returns
        -------
        DictConfig
            OmegaConf DictConfig representation
        """
        base = OmegaConf.structured(SimStatsConfig)
        payload = OmegaConf.create(asdict(self))
        merged = OmegaConf.merge(base, payload)
        assert isinstance(merged, DictConfig)
        return merged

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimStatsConfig:
        return cls.from_dict_config(data)

    @classmethod
    def from_dict_config(cls, config: DictConfig | Mapping[str, Any]) -> SimStatsConfig:
        """Create SimStatsConfig from DictConfig or plain mapping.

        Missing keys take their dataclass defaults; unknown keys are rejected
        by the structured schema.

        Parameters
        ----------
        config : DictConfig | Mapping[str, Any]
            Configuration dict to parse

        Returns
        -------
        SimStatsConfig
            Parsed configuration object

        Raises
        ------
        InvalidConfigurationError
            If a value fails validation
        """
        cfg = config if isinstance(config, DictConfig) else OmegaConf.create(dict(config))
        merged = OmegaConf.merge(OmegaConf.structured(SimStatsConfig), cfg)
        assert isinstance(merged, DictConfig)
        instantiated = OmegaConf.to_object(merged)
        if not isinstance(instantiated, SimStatsConfig):
            raise TypeError(f"Expected SimStatsConfig, got {type(instantiated)}")
        return instantiated

    def save_to_file(self, path: str | Path) -> None:
        """Save config to a YAML file, creating parent directories."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(
    config_path: str | Path | None = None, overrides: Sequence[str] | None = None
) -> SimStatsConfig:
    """Load a YAML config and apply dot-list overrides.

    Parameters
    ----------
    config_path : str | Path | None
        YAML file; defaults are used when None
    overrides : Sequence[str] | None
        Overrides in dot notation, e.g. ``["batching.min_batch_size=32"]``

    Returns
    -------
    SimStatsConfig
        Validated configuration
    """
    if config_path is not None:
        logger.info(f"Loading configuration from {config_path}")
        cfg = OmegaConf.load(config_path)
    else:
        cfg = OmegaConf.create({})
    if overrides:
        logger.info(f"Applying overrides: {list(overrides)}")
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    assert isinstance(cfg, DictConfig)
    return SimStatsConfig.from_dict_config(cfg)
