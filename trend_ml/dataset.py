# trend_ml/dataset.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .config import FEATURE_COLUMNS, LABEL_COLUMN, PipelineConfig
from .errors import SeriesValidationError
from .features import add_technical_features
from .labeling import add_labels
from .series import prepare_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    train: pd.DataFrame
    test: pd.DataFrame

    @property
    def sizes(self) -> tuple:
        return len(self.train), len(self.test)


def trim_windows(df: pd.DataFrame) -> pd.DataFrame:
    """
    Keep only rows where all six features and the label are defined.

    Drops the leading indicator warm-up block and the trailing label horizon.
    Interior rows are only dropped when a stochastic window has a flat
    high/low range; that case is logged.
    """
    required = FEATURE_COLUMNS + [LABEL_COLUMN]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise KeyError(
            f"Expected columns {missing} not found in DataFrame. "
            f"Run add_technical_features() and add_labels() first."
        )

    defined = df[required].notna().all(axis=1)
    kept = df.loc[defined].copy()

    if not kept.empty:
        first = df.index.get_loc(kept.index[0])
        last = df.index.get_loc(kept.index[-1])
        interior = (last - first + 1) - len(kept)
        if interior:
            logger.warning(
                "Dropped %d interior row(s) with undefined indicators (flat high/low range)",
                interior,
            )

    logger.info("Trimmed %d of %d rows; %d eligible", len(df) - len(kept), len(df), len(kept))
    return kept


def build_dataset(
    prices: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
) -> pd.DataFrame:
    """
    Build the eligible feature table from a raw OHLCV table.

    Returns
    -------
    df : pd.DataFrame
        Date-ordered rows with price columns, FEATURE_COLUMNS and the label.
    """
    config = config or PipelineConfig()

    df = prepare_series(prices)
    df = add_technical_features(df, config)
    df = add_labels(df, horizon=config.label_horizon)
    df = trim_windows(df)

    if df.empty:
        raise SeriesValidationError(
            f"No eligible rows: series of {len(prices)} rows is shorter than the "
            f"indicator warm-up ({config.warmup}) plus label horizon ({config.label_horizon})."
        )
    return df


def stratified_split(
    df: pd.DataFrame,
    train_fraction: float = 0.67,
    random_state: Optional[int] = None,
) -> SplitResult:
    """
    Stratified random train/test split on the label column.

    Each class independently contributes round(train_fraction * n_class) rows
    to the training partition; the rest go to test. Partitions are disjoint
    and together contain every input row. Row order within each partition is
    fixed for a given random_state.
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1) (got {train_fraction})")
    if not df.index.is_unique:
        raise ValueError("Cannot split a DataFrame with a non-unique index.")
    if df[LABEL_COLUMN].isna().any():
        raise ValueError("Label column has missing values; run trim_windows() first.")

    train = df.groupby(LABEL_COLUMN, group_keys=False).sample(
        frac=train_fraction,
        random_state=random_state,
    )
    test = df.drop(index=train.index)

    logger.info(
        "Stratified split: train=%d %s, test=%d %s",
        len(train),
        train[LABEL_COLUMN].value_counts().to_dict(),
        len(test),
        test[LABEL_COLUMN].value_counts().to_dict(),
    )
    return SplitResult(train=train, test=test)
