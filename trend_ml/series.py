# trend_ml/series.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from .config import PRICE_COLUMNS
from .errors import SeriesValidationError

logger = logging.getLogger(__name__)


def load_price_csv(path: Union[str, Path], date_column: str = "Date") -> pd.DataFrame:
    """
    Read a daily OHLCV table from CSV.

    Only parses the file; call prepare_series() before computing features.
    """
    df = pd.read_csv(path)
    if date_column not in df.columns:
        raise SeriesValidationError(
            f"Missing date column '{date_column}' in {path}. "
            f"Got columns: {list(df.columns)}"
        )
    df[date_column] = pd.to_datetime(df[date_column])
    return df.set_index(date_column)


def prepare_series(df: pd.DataFrame) -> pd.DataFrame:
    """
    Sort a raw price table by date and repair missing values.

    Accepts either a 'Date' column or a DatetimeIndex. Missing numeric values
    are forward-filled from the last valid observation. Duplicate dates and
    missing values with no prior observation are fatal.

    Returns a new DataFrame indexed by Date with columns PRICE_COLUMNS.
    """
    df = df.copy()

    if "Date" in df.columns:
        df = df.set_index("Date")
    if not isinstance(df.index, pd.DatetimeIndex):
        try:
            df.index = pd.to_datetime(df.index)
        except (TypeError, ValueError) as exc:
            raise SeriesValidationError(f"Index cannot be parsed as dates: {exc}") from exc
    df.index.name = "Date"

    missing = [c for c in PRICE_COLUMNS if c not in df.columns]
    if missing:
        raise SeriesValidationError(
            f"Expected columns {missing} not found in price table. "
            f"Got columns: {list(df.columns)}"
        )

    if df.index.hasnans:
        raise SeriesValidationError("Price table contains rows without a date.")

    duplicated = df.index[df.index.duplicated()]
    if len(duplicated) > 0:
        raise SeriesValidationError(
            f"Duplicate dates in price table: {[d.date().isoformat() for d in duplicated[:5]]}"
        )

    df = df[PRICE_COLUMNS].apply(pd.to_numeric, errors="coerce").sort_index()
    if df.empty:
        raise SeriesValidationError("Price table is empty.")

    leading = df.iloc[0].isna()
    if leading.any():
        raise SeriesValidationError(
            f"Cannot repair missing {list(leading[leading].index)} on the first date "
            f"{df.index[0].date().isoformat()}: no prior observation to carry forward."
        )

    n_missing = int(df.isna().sum().sum())
    if n_missing:
        logger.info("Forward-filling %d missing price values", n_missing)
        df = df.ffill()

    return df


def check_ordered(df: pd.DataFrame) -> None:
    """Raise unless the index is strictly increasing."""
    if not df.index.is_monotonic_increasing or not df.index.is_unique:
        raise SeriesValidationError(
            "Series must be strictly ordered by date; call prepare_series() first."
        )
