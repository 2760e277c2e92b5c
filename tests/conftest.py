# tests/conftest.py

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from trend_ml.config import PipelineConfig
from trend_ml.pipeline import run_pipeline


def _make_prices(close, volume=None, spread=1.0, start="2020-01-01") -> pd.DataFrame:
    close = np.asarray(close, dtype=float)
    if volume is None:
        volume = np.full(len(close), 1_000_000.0)
    index = pd.bdate_range(start=start, periods=len(close), name="Date")
    return pd.DataFrame(
        {
            "Open": close,
            "High": close + spread,
            "Low": close - spread,
            "Close": close,
            "Volume": np.asarray(volume, dtype=float),
        },
        index=index,
    )


@pytest.fixture
def make_prices():
    """Factory for synthetic OHLCV frames: High/Low = Close +/- spread."""
    return _make_prices


@pytest.fixture
def sine_prices() -> pd.DataFrame:
    """100 trading days of a deterministic sinusoidal close with constant volume."""
    t = np.arange(100)
    close = 100.0 + 10.0 * np.sin(2 * np.pi * t / 20.0)
    return _make_prices(close)


@pytest.fixture(scope="session")
def random_walk_prices() -> pd.DataFrame:
    rng = np.random.default_rng(7)
    n = 400
    close = 50.0 + np.cumsum(rng.normal(0.0, 1.0, n))
    close = np.maximum(close, 5.0)
    high = close + rng.uniform(0.2, 2.0, n)
    low = close - rng.uniform(0.2, 2.0, n)
    volume = rng.lognormal(mean=13.0, sigma=0.3, size=n)
    index = pd.bdate_range(start="2019-01-01", periods=n, name="Date")
    return pd.DataFrame(
        {"Open": close, "High": high, "Low": low, "Close": close, "Volume": volume},
        index=index,
    )


@pytest.fixture(scope="session")
def small_config() -> PipelineConfig:
    return PipelineConfig(n_estimators=25, n_jobs=1, random_seed=11)


@pytest.fixture(scope="session")
def trained_result(random_walk_prices, small_config):
    return run_pipeline(random_walk_prices, small_config)
