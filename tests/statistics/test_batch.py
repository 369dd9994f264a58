"""Tests for the batch-means statistic."""

import math

import numpy as np
import pytest

from simstats.config import BatchingConfig
from simstats.errors import InvalidConfigurationError
from simstats.statistics import BatchStatistic, Statistic

pytestmark = pytest.mark.unit


class TestConstruction:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_num_batches": 1},
            {"min_batch_size": 1},
            {"max_batch_multiple": 1},
        ],
    )
    def test_parameters_below_two_rejected(self, kwargs) -> None:
        with pytest.raises(InvalidConfigurationError):
            BatchStatistic(**kwargs)

    def test_defaults(self) -> None:
        stat = BatchStatistic()
        assert stat.min_num_batches == 20
        assert stat.min_batch_size == 16
        assert stat.max_batch_multiple == 2
        assert stat.max_num_batches == 40
        assert stat.num_batches == 0
        assert stat.current_batch_size == 16

    def test_from_config(self) -> None:
        stat = BatchStatistic.from_config(BatchingConfig(4, 3, 3), name="delay")
        assert stat.min_num_batches == 4
        assert stat.min_batch_size == 3
        assert stat.max_num_batches == 12
        assert stat.name == "delay"


class TestBatching:
    """Batch formation and re-batching."""

    def test_batch_means_before_rebatch(self) -> None:
        stat = BatchStatistic(4, 2, 2, values=np.arange(1.0, 10.0))
        np.testing.assert_allclose(stat.batch_means, [1.5, 3.5, 5.5, 7.5])
        assert stat.num_batches == 4
        assert stat.amount_left_unbatched == 1
        assert stat.total_number_of_observations == 9
        assert stat.average == pytest.approx(4.5)

    def test_rebatch_halves_the_batches(self) -> None:
        # 8 batches of size 2 trigger the re-batch to 4 batches of size 4
        stat = BatchStatistic(4, 2, 2, values=np.arange(1.0, 17.0))
        assert stat.num_rebatches == 1
        assert stat.num_batches == 4
        assert stat.current_batch_size == 4
        np.testing.assert_allclose(stat.batch_means, [2.5, 6.5, 10.5, 14.5])
        assert stat.count == 4
        assert stat.average == pytest.approx(8.5)

    def test_batch_count_stays_bounded(self, ar1_series) -> None:
        stat = BatchStatistic(10, 4, 2)
        for x in ar1_series:
            stat.collect(x)
            assert stat.min_num_batches <= stat.num_batches < stat.max_num_batches or (
                stat.num_rebatches == 0 and stat.num_batches < stat.min_num_batches
            )

    def test_invariant_between_observations_and_batches(self, ar1_series) -> None:
        stat = BatchStatistic(values=ar1_series)
        assert (
            stat.num_batches * stat.current_batch_size + stat.amount_left_unbatched
            == stat.total_number_of_observations
        )
        assert stat.current_batch_size == stat.min_batch_size * 2**stat.num_rebatches

    def test_summary_describes_batch_means(self, ar1_series) -> None:
        stat = BatchStatistic(values=ar1_series)
        means = stat.batch_means
        np.testing.assert_allclose(stat.average, means.mean(), rtol=1e-10)
        np.testing.assert_allclose(stat.variance, means.var(ddof=1), rtol=1e-8)

    def test_wider_interval_than_raw_statistic(self, ar1_series) -> None:
        batched = BatchStatistic(values=ar1_series)
        raw = Statistic(values=ar1_series)
        assert batched.half_width() > raw.half_width()

    def test_non_finite_values_are_missing(self) -> None:
        stat = BatchStatistic(4, 2, 2, values=[1.0, math.nan, 2.0, math.inf])
        assert stat.num_missing == 2
        assert stat.total_number_of_observations == 2
        assert stat.num_batches == 1

    def test_reset(self) -> None:
        stat = BatchStatistic(4, 2, 2, values=np.arange(40.0))
        stat.reset()
        assert stat.num_batches == 0
        assert stat.num_rebatches == 0
        assert stat.current_batch_size == 2
        assert stat.count == 0

    def test_current_batch_statistic_is_a_copy(self) -> None:
        stat = BatchStatistic(4, 3, 2, values=[1.0, 2.0])
        current = stat.current_batch_statistic
        current.collect(3.0)
        assert stat.amount_left_unbatched == 2


class TestRebatchToNumberOfBatches:
    def test_regroups_batch_means(self) -> None:
        stat = BatchStatistic(4, 2, 2, values=np.arange(1.0, 13.0))
        # six batch means of size 2: 1.5, 3.5, ..., 11.5
        regrouped = stat.rebatch_to_number_of_batches(3)
        np.testing.assert_allclose(regrouped.saved_data, [2.5, 6.5, 10.5])
        assert regrouped.count == 3

    def test_drops_oldest_surplus_means(self) -> None:
        stat = BatchStatistic(4, 2, 2, values=np.arange(1.0, 15.0))
        # seven batch means, grouped into two of size three from the newest end
        regrouped = stat.rebatch_to_number_of_batches(2, save=False)
        assert regrouped.count == 2
        assert regrouped.saved_data.size == 0
        assert regrouped.average == pytest.approx(np.mean([3.5, 5.5, 7.5, 9.5, 11.5, 13.5]))

    @pytest.mark.parametrize("k", [1, 9])
    def test_invalid_number_of_batches(self, k) -> None:
        stat = BatchStatistic(4, 2, 2, values=np.arange(1.0, 15.0))
        with pytest.raises(InvalidConfigurationError):
            stat.rebatch_to_number_of_batches(k)


class TestLifecycle:
    def test_reset_then_recollect_matches_fresh(self, ar1_series) -> None:
        stat = BatchStatistic(4, 2, 2, values=ar1_series[:100])
        stat.collect(math.nan)
        stat.reset()
        stat.collect_all(ar1_series[:500])
        fresh = BatchStatistic(4, 2, 2, values=ar1_series[:500])
        np.testing.assert_array_equal(stat.as_array(), fresh.as_array())
        np.testing.assert_array_equal(stat.batch_means, fresh.batch_means)
        assert stat.num_rebatches == fresh.num_rebatches
        assert stat.amount_left_unbatched == fresh.amount_left_unbatched

    def test_copy_is_independent_both_ways(self) -> None:
        stat = BatchStatistic(4, 2, 2, values=np.arange(1.0, 10.0))
        clone = stat.copy()
        np.testing.assert_array_equal(clone.batch_means, stat.batch_means)

        clone.collect_all(np.arange(10.0, 30.0))
        assert stat.total_number_of_observations == 9
        assert stat.num_rebatches == 0
        np.testing.assert_allclose(stat.batch_means, [1.5, 3.5, 5.5, 7.5])

        stat.collect(100.0)
        assert stat.batch_means[-1] == pytest.approx(54.5)
        assert clone.total_number_of_observations == 29
        assert 54.5 not in clone.batch_means
