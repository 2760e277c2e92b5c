# trend_ml/labeling.py

from __future__ import annotations

import numpy as np
import pandas as pd

from .config import LABEL_COLUMN, LABEL_HORIZON, NEGATIVE_CLASS, POSITIVE_CLASS


def add_labels(df: pd.DataFrame, horizon: int = LABEL_HORIZON) -> pd.DataFrame:
    """
    Add the forward-looking class label.

    label = "Bullish" if Close[t + horizon] - Close[t] > 0, else "Bearish".
    A flat move is Bearish. The last `horizon` rows have no future close and
    get a missing label (they are removed by dataset.trim_windows).
    """
    df = df.copy()

    close = df["Close"].astype(float)
    future_close = close.shift(-horizon)
    change = future_close - close

    df["future_close"] = future_close
    df[LABEL_COLUMN] = pd.Series(
        np.where(change > 0, POSITIVE_CLASS, NEGATIVE_CLASS),
        index=df.index,
        dtype=object,
    ).where(future_close.notna())

    return df
