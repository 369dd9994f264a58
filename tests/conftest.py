from pathlib import Path

import numpy as np
import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register a CLI flag for including slow tests."""
    parser.addoption(
        "--runslow",
        action="store_true",
        default=False,
        help="Run tests marked as slow.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Declare the custom markers so pytest does not warn."""
    config.addinivalue_line("markers", "slow: mark test as slow to skip by default")
    config.addinivalue_line("markers", "unit: fast isolated tests")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip slow tests unless --runslow was requested explicitly."""
    if config.getoption("--runslow"):
        return

    skip_slow = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible test data."""
    return np.random.default_rng(42)


@pytest.fixture
def ar1_series() -> np.ndarray:
    """Positively autocorrelated AR(1) series with mean 10."""
    gen = np.random.default_rng(7)
    e = gen.standard_normal(4096)
    x = np.empty_like(e)
    x[0] = e[0]
    for i in range(1, e.size):
        x[i] = 0.8 * x[i - 1] + e[i]
    return x + 10.0


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Text file with one value per line, a blank line and one bad token."""
    gen = np.random.default_rng(3)
    values = gen.normal(5.0, 2.0, size=200)
    lines = [f"{v:.10f}" for v in values]
    lines.insert(10, "")
    lines.insert(20, "not-a-number")
    path = tmp_path / "output.txt"
    path.write_text("\n".join(lines) + "\n")
    return path
