# tests/test_scaling.py

import numpy as np
import pandas as pd
import pytest

from trend_ml.config import FEATURE_COLUMNS
from trend_ml.errors import DegenerateFeatureError, SchemaMismatchError
from trend_ml.scaling import FeatureScaler


@pytest.fixture
def train_test():
    rng = np.random.default_rng(3)
    train = pd.DataFrame(rng.normal(5.0, 2.0, size=(50, 6)), columns=FEATURE_COLUMNS)
    test = pd.DataFrame(rng.normal(-3.0, 9.0, size=(20, 6)), columns=FEATURE_COLUMNS)
    return train, test


def test_training_mean_row_scales_to_zero(train_test):
    train, _ = train_test
    scaler = FeatureScaler().fit(train)

    mean_row = pd.DataFrame([train.mean()], columns=FEATURE_COLUMNS)
    np.testing.assert_allclose(scaler.transform(mean_row).to_numpy(), 0.0, atol=1e-12)


def test_parameters_come_from_training_partition_only(train_test):
    train, test = train_test
    scaler = FeatureScaler().fit(train)
    params_before = scaler.params

    scaled = scaler.transform(test)
    perturbed = scaler.transform(test * 10.0 + 100.0)

    assert scaler.params == params_before
    np.testing.assert_allclose(scaler.params.mean, train.mean().to_numpy())
    np.testing.assert_allclose(scaler.params.stddev, train.std(ddof=0).to_numpy())

    expected = (test - train.mean()) / train.std(ddof=0)
    np.testing.assert_allclose(scaled.to_numpy(), expected.to_numpy())
    expected_perturbed = (test * 10.0 + 100.0 - train.mean()) / train.std(ddof=0)
    np.testing.assert_allclose(perturbed.to_numpy(), expected_perturbed.to_numpy())


def test_transform_returns_copy_and_keeps_other_columns(train_test):
    train, test = train_test
    test = test.assign(label="Bullish")
    scaler = FeatureScaler().fit(train)

    out = scaler.transform(test)

    assert (out["label"] == "Bullish").all()
    assert not np.allclose(out[FEATURE_COLUMNS].to_numpy(), test[FEATURE_COLUMNS].to_numpy())


def test_zero_variance_feature_is_reported(train_test):
    train, _ = train_test
    train = train.assign(momentum=0.0)

    with pytest.raises(DegenerateFeatureError) as excinfo:
        FeatureScaler().fit(train)

    assert excinfo.value.features == ("momentum",)


def test_zero_variance_feature_can_pass_through(train_test):
    train, test = train_test
    train = train.assign(momentum=1.5)

    scaler = FeatureScaler(passthrough=["momentum"]).fit(train)
    out = scaler.transform(test)

    np.testing.assert_allclose(out["momentum"], test["momentum"] - 1.5)
    assert scaler.params.passthrough == ("momentum",)


def test_scaler_cannot_be_refitted_or_used_unfitted(train_test):
    train, test = train_test
    scaler = FeatureScaler()

    with pytest.raises(RuntimeError):
        scaler.transform(test)

    scaler.fit(train)
    with pytest.raises(RuntimeError, match="already fitted"):
        scaler.fit(test)


def test_transform_vector_matches_frame_transform(train_test):
    train, test = train_test
    scaler = FeatureScaler().fit(train)

    row = test.iloc[0].to_numpy()
    np.testing.assert_allclose(
        scaler.transform_vector(row),
        scaler.transform(test.iloc[[0]]).iloc[0].to_numpy(),
    )
    with pytest.raises(SchemaMismatchError):
        scaler.transform_vector(row[:3])


def test_missing_feature_column_is_schema_error(train_test):
    train, _ = train_test

    with pytest.raises(SchemaMismatchError, match="slow_d"):
        FeatureScaler().fit(train.drop(columns=["slow_d"]))


def test_near_constant_feature_is_reported(train_test):
    train, _ = train_test
    momentum = np.ones(len(train))
    momentum[7] = 1.0 + 1e-15
    train = train.assign(momentum=momentum)

    with pytest.raises(DegenerateFeatureError) as excinfo:
        FeatureScaler().fit(train)

    assert excinfo.value.features == ("momentum",)


def test_published_parameters_match_applied_scaling(train_test):
    train, test = train_test
    momentum = np.ones(len(train))
    momentum[7] = 1.0 + 1e-15
    train = train.assign(momentum=momentum)
    test = test.assign(momentum=2.0)

    scaler = FeatureScaler(passthrough=["momentum"]).fit(train)
    params = scaler.params.as_dict()["momentum"]
    out = scaler.transform(test)

    assert params["stddev"] == 1.0
    np.testing.assert_allclose(
        out["momentum"], (2.0 - params["mean"]) / params["stddev"]
    )
