import math

import pytest

from simstats.errors import InvalidConfigurationError, SimStatsError
from simstats.interval import Interval

pytestmark = pytest.mark.unit


class TestInterval:
    def test_members(self) -> None:
        interval = Interval(-1.0, 3.0)
        assert interval.width == 4.0
        assert interval.midpoint == 1.0
        assert interval.contains(3.0)
        assert 0.5 in interval
        assert 5.0 not in interval
        assert interval.clip(7.0) == 3.0
        assert tuple(interval) == (-1.0, 3.0)

    def test_unbounded(self) -> None:
        interval = Interval(-math.inf, math.inf)
        assert interval.contains(1e300)
        assert interval.width == math.inf

    @pytest.mark.parametrize("bounds", [(2.0, 1.0), (math.nan, 1.0), (0.0, math.nan)])
    def test_invalid_bounds(self, bounds) -> None:
        with pytest.raises(InvalidConfigurationError):
            Interval(*bounds)

    def test_error_hierarchy(self) -> None:
        assert issubclass(InvalidConfigurationError, SimStatsError)
        assert issubclass(InvalidConfigurationError, ValueError)
