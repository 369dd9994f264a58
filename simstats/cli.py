"""Command line interface for summarising simulation output and matching correlations.

Examples
--------
    simstats summary output.txt
    simstats --log-level DEBUG batch output.txt --min-batch-size 32
    simstats sts output.txt --batch-size 256 --csv
    simstats match --target 0.5 --first expon --second beta --second-params 1,0.5
    simstats match --target 0.3 --first expon --lag1 -o matching.sample_size=500
"""

from __future__ import annotations

import csv
import math
import sys
from pathlib import Path

import click
from loguru import logger
from omegaconf.errors import OmegaConfBaseException
from scipy import stats

from simstats._version import __version__
from simstats.config import SimStatsConfig, load_config
from simstats.correlation import NORTACorrelationMatcher
from simstats.errors import InvalidConfigurationError
from simstats.statistics import (
    BatchStatistic,
    StandardizedTimeSeriesStatistic,
    Statistic,
    StatisticAccessor,
)

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR")


def read_values(path: Path) -> list[float]:
    """Whitespace separated numbers; tokens that do not parse become NaN."""
    values: list[float] = []
    with path.open() as f:
        for line in f:
            for token in line.split():
                try:
                    values.append(float(token))
                except ValueError:
                    values.append(math.nan)
    return values


def resolve_distribution(name: str, params: str | None):
    """Frozen scipy distribution from its name and comma separated shape/loc/scale values."""
    dist = getattr(stats, name, None)
    if not isinstance(dist, (stats.rv_continuous, stats.rv_discrete)):
        raise click.BadParameter(f"Unknown scipy.stats distribution '{name}'")
    try:
        args = [float(p) for p in params.split(",")] if params else []
        return dist(*args)
    except (TypeError, ValueError) as exc:
        raise click.BadParameter(f"Invalid parameters '{params}' for '{name}': {exc}") from exc


def _echo_statistic(stat: StatisticAccessor, as_csv: bool) -> None:
    if as_csv:
        writer = csv.writer(sys.stdout, lineterminator="\n")
        writer.writerow(stat.csv_header())
        writer.writerow(stat.csv_row())
        return
    if stat.name:
        click.echo(f"Name: {stat.name}")
    for label, value in stat.as_dict().items():
        click.echo(f"{label}: {value:.6g}")


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


@click.group()
@click.version_option(__version__, prog_name="simstats")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "-o",
    "--override",
    "overrides",
    multiple=True,
    help="Config override in dot notation, e.g. batching.min_batch_size=32.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
)
@click.pass_context
def main(
    ctx: click.Context, config_path: Path | None, overrides: tuple[str, ...], log_level: str
) -> None:
    """Online statistics for simulation output."""
    _configure_logging(log_level)
    try:
        ctx.obj = load_config(config_path, overrides)
    except (ValueError, OmegaConfBaseException) as exc:
        raise click.UsageError(f"Invalid configuration: {exc}") from exc


@main.command()
@click.argument("data", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Label for the statistic.")
@click.option("--csv", "as_csv", is_flag=True, help="Write a CSV header and row.")
@click.pass_obj
def summary(cfg: SimStatsConfig, data: Path, name: str | None, as_csv: bool) -> None:
    """Summary statistics of the values in DATA."""
    stat = Statistic(name=name or data.stem, confidence_level=cfg.confidence_level)
    stat.collect_all(read_values(data))
    _echo_statistic(stat, as_csv)


@main.command()
@click.argument("data", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--min-num-batches", type=int, default=None)
@click.option("--min-batch-size", type=int, default=None)
@click.option("--max-batch-multiple", type=int, default=None)
@click.option("--csv", "as_csv", is_flag=True, help="Write a CSV header and row.")
@click.pass_obj
def batch(
    cfg: SimStatsConfig,
    data: Path,
    min_num_batches: int | None,
    min_batch_size: int | None,
    max_batch_multiple: int | None,
    as_csv: bool,
) -> None:
    """Batch means statistics of the values in DATA."""
    batching = cfg.batching
    try:
        stat = BatchStatistic(
            min_num_batches if min_num_batches is not None else batching.min_num_batches,
            min_batch_size if min_batch_size is not None else batching.min_batch_size,
            max_batch_multiple if max_batch_multiple is not None else batching.max_batch_multiple,
            name=data.stem,
            confidence_level=cfg.confidence_level,
        )
    except InvalidConfigurationError as exc:
        raise click.BadParameter(str(exc)) from exc
    stat.collect_all(read_values(data))
    if stat.num_batches == 0:
        logger.warning(
            f"No complete batch of size {stat.current_batch_size} in {stat.amount_left_unbatched} "
            "observations"
        )
    logger.info(
        f"{stat.num_batches} batches of size {stat.current_batch_size} "
        f"after {stat.num_rebatches} re-batches"
    )
    _echo_statistic(stat, as_csv)


@main.command()
@click.argument("data", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--batch-size", type=int, default=None)
@click.option("--csv", "as_csv", is_flag=True, help="Write a CSV header and row.")
@click.pass_obj
def sts(cfg: SimStatsConfig, data: Path, batch_size: int | None, as_csv: bool) -> None:
    """Standardized time series statistics of the values in DATA."""
    try:
        stat = StandardizedTimeSeriesStatistic(
            batch_size if batch_size is not None else cfg.sts.batch_size,
            name=data.stem,
            confidence_level=cfg.confidence_level,
        )
    except InvalidConfigurationError as exc:
        raise click.BadParameter(str(exc)) from exc
    stat.collect_all(read_values(data))
    _echo_statistic(stat, as_csv)
    if not as_csv:
        click.echo(f"STS Batches: {stat.num_batches}")
        click.echo(f"STS Area Constant: {stat.sts_area_constant:.6g}")
        click.echo(f"STS Standard Error: {stat.sts_standard_error:.6g}")
        click.echo(f"STS Half-width: {stat.sts_half_width():.6g}")


@main.command()
@click.option("--target", type=float, required=True, help="Desired output correlation.")
@click.option("--first", "first_name", required=True, help="scipy.stats name of the marginal.")
@click.option("--first-params", default=None, help="Comma separated distribution parameters.")
@click.option("--second", "second_name", default=None, help="Second marginal (bivariate).")
@click.option("--second-params", default=None)
@click.option("--lag1", is_flag=True, help="Match the lag-1 autocorrelation of FIRST.")
@click.pass_obj
def match(
    cfg: SimStatsConfig,
    target: float,
    first_name: str,
    first_params: str | None,
    second_name: str | None,
    second_params: str | None,
    lag1: bool,
) -> None:
    """Find the NORTA input correlation that yields TARGET."""
    if lag1 == (second_name is not None):
        raise click.UsageError("Give either --second for bivariate matching or --lag1, not both")
    if not -1.0 < target < 1.0:
        raise click.BadParameter(f"--target must be in (-1, 1), got {target}")
    first = resolve_distribution(first_name, first_params)
    if lag1:
        matcher = NORTACorrelationMatcher.autocorrelation(first, cfg.matching)
    else:
        second = resolve_distribution(second_name, second_params)
        matcher = NORTACorrelationMatcher.bivariate(first, second, cfg.matching)

    result = matcher.match(target)
    click.echo(f"Desired correlation: {result.desired:.6g}")
    click.echo(
        f"Achievable range: [{result.achievable.lower:.6g}, {result.achievable.upper:.6g}]"
    )
    if not result.matched:
        click.echo("Matched: no")
        raise SystemExit(1)
    click.echo(f"Matching input correlation: {result.matching_correlation:.6g}")
    click.echo(f"Converged: {'yes' if result.converged else 'no'}")
    click.echo(f"Iterations: {result.iterations}")
    click.echo(f"Stopping criterion: {result.stopping_criterion:.3g}")
