# trend_ml/features.py

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from ta.momentum import StochasticOscillator  # Technical Analysis library, built on pandas & numpy

from .config import PipelineConfig
from .errors import SeriesValidationError
from .series import check_ordered


# ---------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------
def ema(series: pd.Series, period: int) -> pd.Series:
    """
    Exponential moving average seeded by a simple average.

    EMA[t] = a * x[t] + (1 - a) * EMA[t-1] with a = 2 / (period + 1). The first
    value is the mean of the first `period` valid inputs; everything before it
    is NaN. Leading NaNs in the input (e.g. another indicator's warm-up) shift
    the seed accordingly.
    """
    values = series.astype(float)
    out = pd.Series(np.nan, index=series.index, name=series.name)

    first_valid = values.first_valid_index()
    if first_valid is None:
        return out

    start = values.index.get_loc(first_valid)
    seed_pos = start + period - 1
    if seed_pos >= len(values):
        return out

    seeded = values.copy()
    seeded.iloc[:seed_pos] = np.nan
    seeded.iloc[seed_pos] = values.iloc[start : seed_pos + 1].mean()

    out = seeded.ewm(alpha=2.0 / (period + 1), adjust=False).mean()
    out.iloc[:seed_pos] = np.nan
    return out


# ---------------------------------------------------------------------
# Technical features
# ---------------------------------------------------------------------
def add_momentum(df: pd.DataFrame, window: int) -> pd.DataFrame:
    """Continuous rate of change of volume: ln(volume[t] / volume[t - window])."""
    df = df.copy()
    volume = df["Volume"].astype(float)

    non_positive = volume[volume <= 0]
    if not non_positive.empty:
        raise SeriesValidationError(
            f"Volume must be positive for the log momentum ratio; "
            f"{len(non_positive)} non-positive value(s), first on "
            f"{pd.Timestamp(non_positive.index[0]).date().isoformat()}"
        )

    df["momentum"] = np.log(volume / volume.shift(window))
    return df


def add_convergence(
    df: pd.DataFrame,
    fast: int,
    slow: int,
    signal: int,
) -> pd.DataFrame:
    """
    Trend convergence line (fast EMA - slow EMA of close) and its signal EMA.

    The line is defined once the slow EMA has a full window, the signal needs
    another `signal` values of the line on top of that.
    """
    df = df.copy()
    close = df["Close"].astype(float)

    line = ema(close, fast) - ema(close, slow)
    df["convergence_line"] = line
    df["convergence_signal"] = ema(line, signal)
    return df


def add_stochastic(df: pd.DataFrame, k_period: int, d_period: int) -> pd.DataFrame:
    """
    Stochastic oscillator: fast %K, fast %D (SMA of %K) and slow %D (SMA of fast %D).

    A flat high/low range gives an undefined %K (NaN), never +/-inf.
    """
    df = df.copy()

    stoch = StochasticOscillator(
        high=df["High"].astype(float),
        low=df["Low"].astype(float),
        close=df["Close"].astype(float),
        window=k_period,
        smooth_window=d_period,
        fillna=False,
    )
    fast_k = stoch.stoch().replace([np.inf, -np.inf], np.nan)
    fast_d = stoch.stoch_signal().replace([np.inf, -np.inf], np.nan)

    df["fast_k"] = fast_k
    df["fast_d"] = fast_d
    df["slow_d"] = fast_d.rolling(d_period, min_periods=d_period).mean()
    return df


def add_technical_features(
    df: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
) -> pd.DataFrame:
    """
    Add the six indicator columns used as model features.

    Input must be a repaired, strictly date-ordered OHLCV frame (see
    series.prepare_series). Rows inside a warm-up window get NaN for the
    affected indicator.
    """
    config = config or PipelineConfig()
    check_ordered(df)

    df = add_momentum(df, config.momentum_window)
    df = add_convergence(
        df,
        fast=config.fast_ema_period,
        slow=config.slow_ema_period,
        signal=config.signal_period,
    )
    df = add_stochastic(df, config.stochastic_k_period, config.stochastic_d_period)
    return df
