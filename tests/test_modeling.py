# tests/test_modeling.py

import joblib
import numpy as np
import pandas as pd
import pytest

from trend_ml.config import (
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    NEGATIVE_CLASS,
    POSITIVE_CLASS,
)
from trend_ml.errors import SchemaMismatchError, TrainingError
from trend_ml.modeling import (
    classes_from_proba,
    fit_classifier,
    load_classifier,
    predict_class,
    predict_proba_frame,
    predict_probability,
    save_classifier,
)


@pytest.fixture
def separable_rows() -> pd.DataFrame:
    rng = np.random.default_rng(1)
    pos = rng.normal(2.0, 0.3, size=(40, 6))
    neg = rng.normal(-2.0, 0.3, size=(40, 6))
    df = pd.DataFrame(np.vstack([pos, neg]), columns=FEATURE_COLUMNS)
    df[LABEL_COLUMN] = [POSITIVE_CLASS] * 40 + [NEGATIVE_CLASS] * 40
    return df


def _fit(rows, **kwargs):
    kwargs.setdefault("n_estimators", 20)
    kwargs.setdefault("random_state", 0)
    return fit_classifier(rows, **kwargs)


def test_fit_is_deterministic_for_fixed_seed(separable_rows):
    a = _fit(separable_rows, n_jobs=1)
    b = _fit(separable_rows, n_jobs=2)

    pd.testing.assert_series_equal(
        predict_proba_frame(a, separable_rows),
        predict_proba_frame(b, separable_rows),
    )


def test_probability_is_positive_class_probability(separable_rows):
    clf = _fit(separable_rows)

    assert predict_probability(clf, np.full(6, 2.0)) > 0.9
    assert predict_probability(clf, np.full(6, -2.0)) < 0.1
    assert 0.0 <= predict_probability(clf, np.zeros(6)) <= 1.0


def test_predict_class_uses_default_and_override_threshold(separable_rows):
    clf = _fit(separable_rows, threshold=0.6)
    x = np.full(6, -2.0)

    assert clf.threshold == 0.6
    assert predict_class(clf, x) == NEGATIVE_CLASS
    assert predict_class(clf, x, threshold=0.0) == POSITIVE_CLASS
    assert predict_class(clf.with_threshold(0.0), x) == POSITIVE_CLASS


def test_named_features_are_reordered_to_schema(separable_rows):
    clf = _fit(separable_rows)
    values = dict(zip(FEATURE_COLUMNS, [2.0, -1.0, 0.5, 1.0, -0.5, 0.0]))
    shuffled = dict(reversed(list(values.items())))

    assert predict_probability(clf, shuffled) == predict_probability(
        clf, [values[f] for f in FEATURE_COLUMNS]
    )


def test_schema_mismatch_is_rejected(separable_rows):
    clf = _fit(separable_rows)

    with pytest.raises(SchemaMismatchError):
        predict_probability(clf, [1.0, 2.0])
    with pytest.raises(SchemaMismatchError, match="unexpected"):
        predict_probability(clf, {**{f: 0.0 for f in FEATURE_COLUMNS}, "rsi": 1.0})
    with pytest.raises(SchemaMismatchError, match="NaN"):
        predict_probability(clf, [np.nan] * 6)


def test_empty_partition_fails(separable_rows):
    with pytest.raises(TrainingError, match="'train' is empty"):
        _fit(separable_rows.iloc[0:0])


def test_single_class_partition_fails_with_details(separable_rows):
    only_pos = separable_rows[separable_rows[LABEL_COLUMN] == POSITIVE_CLASS]

    with pytest.raises(TrainingError) as excinfo:
        _fit(only_pos, partition_name="fold-3")

    message = str(excinfo.value)
    assert "fold-3" in message
    assert "40 rows" in message
    assert "single class" in message


def test_undefined_features_fail(separable_rows):
    separable_rows.iloc[0, 0] = np.nan

    with pytest.raises(TrainingError, match="undefined"):
        _fit(separable_rows)


def test_classes_from_proba_is_inclusive_at_threshold():
    probas = pd.Series([0.59, 0.6, 0.61])

    assert classes_from_proba(probas, 0.6).tolist() == [
        NEGATIVE_CLASS,
        POSITIVE_CLASS,
        POSITIVE_CLASS,
    ]


def test_save_and_load_preserve_predictions(separable_rows, tmp_path):
    clf = _fit(separable_rows, threshold=0.55)
    path = save_classifier(clf, tmp_path / "models" / "classifier.joblib")

    loaded = load_classifier(path)

    assert loaded.feature_order == clf.feature_order
    assert loaded.threshold == 0.55
    pd.testing.assert_series_equal(
        predict_proba_frame(loaded, separable_rows),
        predict_proba_frame(clf, separable_rows),
    )


def test_load_rejects_other_schema_version(separable_rows, tmp_path):
    path = save_classifier(_fit(separable_rows), tmp_path / "classifier.joblib")
    artifact = joblib.load(path)
    artifact["schema_version"] = "0"
    joblib.dump(artifact, path)

    with pytest.raises(SchemaMismatchError, match="v0"):
        load_classifier(path)
