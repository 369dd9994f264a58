"""Tests for the simstats command line interface."""

import csv
import io
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner
from loguru import logger

from simstats import __version__
from simstats.cli import main, read_values

pytestmark = pytest.mark.unit

FAST_MATCHING = [
    "-o",
    "matching.sample_size=300",
    "-o",
    "matching.num_replications=3",
    "-o",
    "matching.hw_bound=0.05",
    "-o",
    "matching.common_random_numbers=true",
    "-o",
    "matching.seed=1",
    "-o",
    "matching.root_finder.max_iterations=100",
]


@pytest.fixture
def runner():
    """Click runner; restores the default loguru sink the CLI replaces."""
    yield CliRunner()
    logger.remove()
    logger.add(sys.stderr)


def test_read_values_marks_bad_tokens_missing(data_file: Path) -> None:
    values = read_values(data_file)
    assert len(values) == 201
    assert sum(v != v for v in values) == 1


def test_read_values_accepts_several_values_per_line(tmp_path: Path) -> None:
    path = tmp_path / "values.txt"
    path.write_text("1.0 2.0\t3.0\n\n4.0\n")
    assert read_values(path) == [1.0, 2.0, 3.0, 4.0]


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestSummaryCommands:
    def test_summary(self, runner: CliRunner, data_file: Path) -> None:
        result = runner.invoke(main, ["summary", str(data_file)])
        assert result.exit_code == 0, result.output
        assert "Name: output" in result.output
        assert "Count: 200" in result.output
        assert "Number of missing observations: 1" in result.output

    def test_summary_csv(self, runner: CliRunner, data_file: Path) -> None:
        result = runner.invoke(
            main, ["--log-level", "ERROR", "summary", str(data_file), "--csv", "--name", "wait"]
        )
        assert result.exit_code == 0, result.output
        rows = list(csv.reader(io.StringIO(result.stdout)))
        assert rows[0][0] == "Statistic Name"
        assert rows[1][0] == "wait"
        assert float(rows[1][1]) == 200

    def test_batch(self, runner: CliRunner, data_file: Path) -> None:
        result = runner.invoke(main, ["batch", str(data_file)])
        assert result.exit_code == 0, result.output
        # 200 values in batches of 16
        assert "Count: 12" in result.output

    def test_batch_options_override_config(self, runner: CliRunner, data_file: Path) -> None:
        result = runner.invoke(
            main,
            ["-o", "batching.min_batch_size=50", "batch", str(data_file), "--min-batch-size", "10"],
        )
        assert result.exit_code == 0, result.output
        assert "Count: 20" in result.output

    def test_batch_rejects_invalid_options(self, runner: CliRunner, data_file: Path) -> None:
        result = runner.invoke(main, ["batch", str(data_file), "--min-batch-size", "1"])
        assert result.exit_code == 2

    def test_sts(self, runner: CliRunner, data_file: Path) -> None:
        result = runner.invoke(main, ["sts", str(data_file), "--batch-size", "50"])
        assert result.exit_code == 0, result.output
        assert "STS Batches: 4" in result.output
        assert "STS Half-width" in result.output

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, ["summary", str(tmp_path / "absent.txt")])
        assert result.exit_code == 2


class TestConfiguration:
    def test_config_file(self, runner: CliRunner, data_file: Path, tmp_path: Path) -> None:
        config = tmp_path / "simstats.yaml"
        config.write_text("sts:\n  batch_size: 100\n")
        result = runner.invoke(main, ["--config", str(config), "sts", str(data_file)])
        assert result.exit_code == 0, result.output
        assert "STS Batches: 2" in result.output

    @pytest.mark.parametrize(
        "override", ["sts.batch_size=1", "batching.unknown=3", "confidence_level=2"]
    )
    def test_invalid_override(self, runner: CliRunner, data_file: Path, override: str) -> None:
        result = runner.invoke(main, ["-o", override, "summary", str(data_file)])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output


class TestMatchCommand:
    def test_bivariate_match(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main,
            [*FAST_MATCHING, "match", "--target", "0.5", "--first", "norm", "--second", "norm"],
        )
        assert result.exit_code == 0, result.output
        assert "Matching input correlation" in result.output

    def test_lag1_match(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main,
            [*FAST_MATCHING, "-o", "matching.sample_size=1000", "match", "--target", "0.3",
             "--first", "expon", "--lag1"],
        )
        assert result.exit_code == 0, result.output
        assert "Matching input correlation" in result.output

    def test_unachievable_target(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main,
            [*FAST_MATCHING, "match", "--target=-0.9", "--first", "expon", "--second", "expon"],
        )
        assert result.exit_code == 1
        assert "Matched: no" in result.output

    def test_distribution_parameters(self, runner: CliRunner) -> None:
        result = runner.invoke(
            main,
            [*FAST_MATCHING, "match", "--target", "0.3", "--first", "gamma", "--first-params",
             "2.0", "--second", "beta", "--second-params", "1,0.5"],
        )
        assert result.exit_code == 0, result.output

    @pytest.mark.parametrize(
        "args",
        [
            ["--target", "0.5", "--first", "norm"],
            ["--target", "0.5", "--first", "norm", "--second", "norm", "--lag1"],
            ["--target", "0.5", "--first", "nosuchdist", "--lag1"],
            ["--target", "0.5", "--first", "gamma", "--first-params", "a,b", "--lag1"],
            ["--target", "1.5", "--first", "norm", "--lag1"],
        ],
    )
    def test_usage_errors(self, runner: CliRunner, args: list[str]) -> None:
        result = runner.invoke(main, ["match", *args])
        assert result.exit_code == 2
