"""Tests for the streaming moment accumulator."""

import math

import numpy as np
import pytest
from scipy import stats

from simstats.statistics import STATISTIC_FIELDS, Statistic

pytestmark = pytest.mark.unit


def _random_data(n: int = 500, *, seed: int = 42) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.gamma(2.0, 3.0, size=n) + 100.0


def _collect_one_by_one(values, **kwargs) -> Statistic:
    stat = Statistic(**kwargs)
    for x in values:
        stat.collect(x)
    return stat


class TestBasicMoments:
    """Count, mean, variance and extremes on small known data."""

    def test_known_values(self) -> None:
        stat = _collect_one_by_one([1.0, 2.0, 3.0, 4.0, 5.0])
        assert stat.count == 5
        assert stat.average == pytest.approx(3.0)
        assert stat.sum == pytest.approx(15.0)
        assert stat.variance == pytest.approx(2.5)
        assert stat.standard_deviation == pytest.approx(math.sqrt(2.5))
        assert stat.deviation_sum_of_squares == pytest.approx(10.0)
        assert stat.min == 1.0
        assert stat.max == 5.0
        assert stat.first_value == 1.0
        assert stat.last_value == 5.0

    def test_empty_statistic(self) -> None:
        stat = Statistic()
        assert stat.count == 0
        assert math.isnan(stat.average)
        assert math.isnan(stat.variance)
        assert math.isnan(stat.standard_error)
        assert stat.min == math.inf
        assert stat.max == -math.inf

    def test_single_observation(self) -> None:
        stat = Statistic(values=[4.2])
        assert stat.average == 4.2
        assert math.isnan(stat.variance)
        assert math.isnan(stat.half_width())

    def test_matches_numpy_on_random_data(self) -> None:
        data = _random_data()
        stat = _collect_one_by_one(data)
        np.testing.assert_allclose(stat.average, data.mean(), rtol=1e-12)
        np.testing.assert_allclose(stat.variance, data.var(ddof=1), rtol=1e-10)
        np.testing.assert_allclose(stat.sum, data.sum(), rtol=1e-12)

    def test_raw_moments(self) -> None:
        data = _random_data(200)
        stat = Statistic(values=data)
        for order in range(1, 5):
            np.testing.assert_allclose(stat.raw_moment(order), np.mean(data**order), rtol=1e-9)
        with pytest.raises(ValueError):
            stat.raw_moment(5)

    def test_obs_weighted_sum(self) -> None:
        data = _random_data(50)
        stat = _collect_one_by_one(data)
        expected = np.dot(np.arange(1, data.size + 1), data)
        np.testing.assert_allclose(stat.obs_weighted_sum, expected, rtol=1e-12)


class TestShapeStatistics:
    """Bias-corrected skewness and kurtosis."""

    def test_skewness_and_kurtosis_match_scipy(self) -> None:
        data = _random_data(300)
        stat = _collect_one_by_one(data)
        np.testing.assert_allclose(stat.skewness, stats.skew(data, bias=False), rtol=1e-7)
        np.testing.assert_allclose(
            stat.kurtosis, stats.kurtosis(data, fisher=True, bias=False), rtol=1e-7
        )

    def test_undefined_for_small_samples(self) -> None:
        assert math.isnan(Statistic(values=[1.0, 2.0]).skewness)
        assert math.isnan(Statistic(values=[1.0, 2.0, 4.0]).kurtosis)

    def test_undefined_for_constant_data(self) -> None:
        stat = Statistic(values=[3.0] * 10)
        assert stat.variance == 0.0
        assert math.isnan(stat.skewness)
        assert math.isnan(stat.kurtosis)
        assert math.isnan(stat.lag1_correlation)
        assert math.isnan(stat.von_neumann_lag1_statistic)


class TestLagOneStatistics:
    """Lag-1 covariance, correlation and the Von Neumann statistic."""

    def test_lag1_against_brute_force(self) -> None:
        data = _random_data(400)
        stat = _collect_one_by_one(data)
        n = data.size
        dev = data - data.mean()
        cov = np.sum(dev[:-1] * dev[1:]) / n
        m2 = np.sum(dev * dev) / n
        np.testing.assert_allclose(stat.lag1_covariance, cov, rtol=1e-6, atol=1e-6)
        np.testing.assert_allclose(stat.lag1_correlation, cov / m2, rtol=1e-6, atol=1e-7)

    def test_von_neumann_against_successive_differences(self) -> None:
        data = _random_data(400)
        stat = Statistic(values=data)
        n = data.size
        dss = np.sum((data - data.mean()) ** 2)
        ratio = 1.0 - np.sum(np.diff(data) ** 2) / (2.0 * dss)
        expected = math.sqrt((n * n - 1.0) / (n - 2.0)) * ratio
        np.testing.assert_allclose(stat.von_neumann_lag1_statistic, expected, rtol=1e-6, atol=1e-6)
        assert stat.von_neumann_lag1_p_value == pytest.approx(
            stats.norm.sf(stat.von_neumann_lag1_statistic)
        )

    def test_positively_correlated_series(self, ar1_series) -> None:
        stat = Statistic(values=ar1_series)
        assert stat.lag1_correlation == pytest.approx(0.8, abs=0.05)
        assert stat.von_neumann_lag1_p_value < 1e-6

    def test_von_neumann_p_value_is_the_normal_upper_tail(self) -> None:
        stat = Statistic(values=[1.0, -1.0] * 50)
        assert stat.von_neumann_lag1_statistic < -5.0
        assert stat.von_neumann_lag1_p_value == pytest.approx(
            stats.norm.sf(stat.von_neumann_lag1_statistic)
        )
        assert stat.von_neumann_lag1_p_value == pytest.approx(1.0)

    def test_undefined_with_two_observations(self) -> None:
        stat = Statistic(values=[1.0, 2.0])
        assert math.isnan(stat.lag1_covariance)
        assert math.isnan(stat.lag1_correlation)


class TestMissingValues:
    """Non-finite observations are counted, not folded in."""

    def test_non_finite_values_are_missing(self) -> None:
        stat = _collect_one_by_one([1.0, math.nan, 2.0, math.inf, -math.inf, 3.0])
        assert stat.count == 3
        assert stat.num_missing == 3
        assert stat.average == pytest.approx(2.0)
        assert stat.last_value == 3.0

    def test_collect_all_counts_missing(self) -> None:
        stat = Statistic(values=np.array([1.0, np.nan, 3.0]))
        assert stat.count == 2
        assert stat.num_missing == 1


class TestBlockCollection:
    """Vectorised collection and merging agree with one-by-one collection."""

    def test_collect_all_matches_collect(self) -> None:
        data = _random_data(257)
        sequential = _collect_one_by_one(data)
        block = Statistic()
        block.collect_all(data[:100])
        block.collect_all(data[100:])
        np.testing.assert_allclose(block.central_moments, sequential.central_moments, rtol=1e-9)
        np.testing.assert_allclose(block.obs_weighted_sum, sequential.obs_weighted_sum, rtol=1e-12)
        np.testing.assert_allclose(
            block.lag1_covariance, sequential.lag1_covariance, rtol=1e-6, atol=1e-6
        )
        assert block.min == sequential.min
        assert block.max == sequential.max
        assert block.first_value == sequential.first_value
        assert block.last_value == sequential.last_value

    def test_merge_into_empty_keeps_own_name(self) -> None:
        other = Statistic(name="other", values=[1.0, 2.0, 3.0])
        stat = Statistic(name="mine", confidence_level=0.9)
        stat.merge(other)
        assert stat.name == "mine"
        assert stat.confidence_level == 0.9
        assert stat.count == 3
        assert stat.average == pytest.approx(2.0)

    def test_merge_matches_concatenation(self) -> None:
        data = _random_data(300)
        left = Statistic(values=data[:120])
        right = Statistic(values=data[120:])
        left.merge(right)
        full = _collect_one_by_one(data)
        np.testing.assert_allclose(left.skewness, full.skewness, rtol=1e-7)
        np.testing.assert_allclose(left.kurtosis, full.kurtosis, rtol=1e-7)
        np.testing.assert_allclose(
            left.lag1_correlation, full.lag1_correlation, rtol=1e-6, atol=1e-7
        )


class TestLifecycle:
    """Reset, copy and saved data."""

    def test_reset_keeps_name_and_level(self) -> None:
        stat = Statistic(name="wait", values=[1.0, 2.0, math.nan], confidence_level=0.99)
        stat.reset()
        assert stat.count == 0
        assert stat.num_missing == 0
        assert stat.name == "wait"
        assert stat.confidence_level == 0.99

    def test_reset_then_recollect_matches_fresh(self) -> None:
        data = _random_data(200)
        stat = Statistic(values=data[:50], save_data=True)
        stat.collect(math.nan)
        stat.reset()
        stat.collect_all(data)
        fresh = Statistic(values=data, save_data=True)
        np.testing.assert_array_equal(stat.as_array(), fresh.as_array())
        np.testing.assert_array_equal(stat.central_moments, fresh.central_moments)
        np.testing.assert_array_equal(stat.saved_data, fresh.saved_data)
        assert stat.lag1_covariance == fresh.lag1_covariance
        assert stat.obs_weighted_sum == fresh.obs_weighted_sum

    def test_copy_is_independent(self) -> None:
        stat = Statistic(values=[1.0, 2.0])
        clone = stat.copy()
        clone.collect(100.0)
        assert stat.count == 2
        assert clone.count == 3
        stat.collect(-5.0)
        assert clone.min == 1.0
        assert clone.max == 100.0
        assert clone.count == 3
        expected = Statistic(values=[1.0, 2.0, 100.0])
        np.testing.assert_array_equal(clone.as_array(), expected.as_array())

    def test_saved_data(self) -> None:
        stat = Statistic(save_data=True)
        stat.collect(1.0)
        stat.collect_all([2.0, math.nan, 3.0])
        np.testing.assert_array_equal(stat.saved_data, [1.0, 2.0, 3.0])
        stat.clear_saved_data()
        assert stat.saved_data.size == 0

    def test_saved_data_off_by_default(self) -> None:
        assert Statistic(values=[1.0, 2.0]).saved_data.size == 0


class TestExport:
    """Array, dict and CSV exports."""

    def test_as_array_order(self) -> None:
        stat = Statistic(name="x", values=[1.0, 2.0, 3.0, 4.0, math.nan])
        values = stat.as_array()
        assert values.shape == (len(STATISTIC_FIELDS),)
        assert values[0] == 4
        assert values[1] == pytest.approx(2.5)
        assert values[5] == pytest.approx(0.95)
        assert values[6] == 1.0
        assert values[7] == 4.0
        assert values[-1] == 1

    def test_as_dict_uses_field_labels(self) -> None:
        stat = Statistic(values=[1.0, 2.0, 3.0])
        summary = stat.as_dict()
        assert list(summary) == list(STATISTIC_FIELDS)
        assert summary["Average"] == pytest.approx(2.0)

    def test_csv_row(self) -> None:
        stat = Statistic(name="queue", values=[1.0, 2.0])
        header = Statistic.csv_header()
        row = stat.csv_row()
        assert header[0] == "Statistic Name"
        assert len(row) == len(header)
        assert row[0] == "queue"
        # kurtosis is undefined for two observations
        assert row[header.index("Kurtosis")] == ""
        assert float(row[header.index("Sum")]) == pytest.approx(3.0)

    def test_repr_mentions_name(self) -> None:
        assert "queue" in repr(Statistic(name="queue", values=[1.0, 2.0]))
