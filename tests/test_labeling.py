# tests/test_labeling.py

import numpy as np
import pandas as pd

from trend_ml.config import LABEL_COLUMN, NEGATIVE_CLASS, POSITIVE_CLASS
from trend_ml.labeling import add_labels


def test_rising_close_is_bullish_and_tail_undefined(make_prices):
    df = add_labels(make_prices(np.arange(20, dtype=float) + 1), horizon=7)

    assert (df[LABEL_COLUMN].iloc[:13] == POSITIVE_CLASS).all()
    assert df[LABEL_COLUMN].iloc[13:].isna().all()


def test_falling_close_is_bearish(make_prices):
    df = add_labels(make_prices(100.0 - np.arange(20, dtype=float)), horizon=7)

    assert (df[LABEL_COLUMN].iloc[:13] == NEGATIVE_CLASS).all()


def test_flat_move_is_bearish(make_prices):
    df = add_labels(make_prices(np.full(15, 10.0)), horizon=7)

    assert (df[LABEL_COLUMN].iloc[:8] == NEGATIVE_CLASS).all()
    assert df[LABEL_COLUMN].iloc[8:].isna().all()


def test_label_compares_close_exactly_horizon_rows_ahead(make_prices):
    close = np.array([10.0, 11.0, 9.0, 10.0, 12.0, 8.0])
    df = add_labels(make_prices(close), horizon=2)

    # t=0: 9 - 10 < 0, t=1: 10 - 11 < 0, t=2: 12 - 9 > 0, t=3: 8 - 10 < 0
    assert df[LABEL_COLUMN].iloc[:4].tolist() == [
        NEGATIVE_CLASS,
        NEGATIVE_CLASS,
        POSITIVE_CLASS,
        NEGATIVE_CLASS,
    ]
    np.testing.assert_allclose(df["future_close"].iloc[:4], [9.0, 10.0, 12.0, 8.0])


def test_add_labels_does_not_mutate_input(make_prices):
    prices = make_prices(np.arange(10, dtype=float))
    before = prices.copy()

    add_labels(prices, horizon=3)

    pd.testing.assert_frame_equal(prices, before)
