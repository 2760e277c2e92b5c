# trend_ml/modeling.py

from __future__ import annotations

import logging
from collections import abc
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple, Union

import joblib
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

from .config import (
    DECISION_THRESHOLD,
    FEATURE_COLUMNS,
    FEATURE_SCHEMA_VERSION,
    LABEL_COLUMN,
    N_ESTIMATORS,
    NEGATIVE_CLASS,
    POSITIVE_CLASS,
    RANDOM_SEED,
)
from .errors import SchemaMismatchError, TrainingError

logger = logging.getLogger(__name__)

FeatureVector = Union[Sequence[float], Mapping[str, float], np.ndarray]


@dataclass(frozen=True)
class TrainedClassifier:
    """
    A fitted random forest together with the feature schema it was trained on.

    Trees are built in parallel (n_jobs) from per-tree seeds drawn from
    random_state up front, so a fixed seed gives the same forest regardless
    of worker count. Probabilities are the mean of the per-tree class
    probabilities.
    """

    model: RandomForestClassifier
    feature_order: Tuple[str, ...]
    schema_version: str = FEATURE_SCHEMA_VERSION
    positive_class: str = POSITIVE_CLASS
    negative_class: str = NEGATIVE_CLASS
    threshold: float = DECISION_THRESHOLD

    @property
    def positive_index(self) -> int:
        return list(self.model.classes_).index(self.positive_class)

    def with_threshold(self, threshold: float) -> "TrainedClassifier":
        _check_threshold(threshold)
        return replace(self, threshold=threshold)


def _check_threshold(threshold: float) -> None:
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be in [0, 1] (got {threshold})")


def fit_classifier(
    train: pd.DataFrame,
    features: Sequence[str] = FEATURE_COLUMNS,
    n_estimators: int = N_ESTIMATORS,
    random_state: Optional[int] = RANDOM_SEED,
    n_jobs: int = -1,
    threshold: float = DECISION_THRESHOLD,
    partition_name: str = "train",
) -> TrainedClassifier:
    """
    Train a random forest on the (already scaled) training partition.

    Raises TrainingError for an empty partition, missing feature values or a
    partition holding a single class.
    """
    _check_threshold(threshold)
    features = list(features)

    if train.empty:
        raise TrainingError(f"Partition '{partition_name}' is empty; nothing to train on.")

    missing = [c for c in features + [LABEL_COLUMN] if c not in train.columns]
    if missing:
        raise TrainingError(f"Partition '{partition_name}' lacks columns {missing}.")

    X = train[features].astype(float)
    y = train[LABEL_COLUMN]

    n_bad = int(X.isna().any(axis=1).sum() + y.isna().sum())
    if n_bad:
        raise TrainingError(
            f"Partition '{partition_name}' has {n_bad} row(s) with undefined features or labels."
        )

    counts = y.value_counts().to_dict()
    if len(counts) < 2:
        raise TrainingError(
            f"Partition '{partition_name}' ({len(train)} rows) contains a single class: "
            f"{counts}. Both {POSITIVE_CLASS} and {NEGATIVE_CLASS} are required."
        )

    clf = RandomForestClassifier(
        n_estimators=n_estimators,
        random_state=random_state,
        n_jobs=n_jobs,
    )
    clf.fit(X, y)

    logger.info(
        "Trained random forest (%d trees) on %d rows %s",
        n_estimators,
        len(train),
        counts,
    )
    return TrainedClassifier(
        model=clf,
        feature_order=tuple(features),
        threshold=threshold,
    )


def _as_frame(classifier: TrainedClassifier, x: FeatureVector) -> pd.DataFrame:
    """Turn a single feature vector into a one-row frame in schema order."""
    order = list(classifier.feature_order)

    if isinstance(x, abc.Mapping):
        missing = [f for f in order if f not in x]
        extra = [f for f in x if f not in order]
        if missing or extra:
            raise SchemaMismatchError(
                f"Feature names do not match schema v{classifier.schema_version}: "
                f"missing={missing}, unexpected={extra}"
            )
        values = [float(x[f]) for f in order]
    else:
        arr = np.asarray(x, dtype=float)
        if arr.ndim != 1 or arr.shape[0] != len(order):
            raise SchemaMismatchError(
                f"Feature vector must be 1D of length {len(order)} "
                f"(got shape {arr.shape})"
            )
        values = arr.tolist()

    if any(np.isnan(values)):
        raise SchemaMismatchError("Feature vector contains undefined (NaN) values.")
    return pd.DataFrame([values], columns=order)


def predict_probability(classifier: TrainedClassifier, x: FeatureVector) -> float:
    """Probability of the positive class for one scaled feature vector."""
    frame = _as_frame(classifier, x)
    return float(classifier.model.predict_proba(frame)[0, classifier.positive_index])


def predict_class(
    classifier: TrainedClassifier,
    x: FeatureVector,
    threshold: Optional[float] = None,
) -> str:
    """Positive class if probability >= threshold (classifier default if None)."""
    threshold = classifier.threshold if threshold is None else threshold
    _check_threshold(threshold)
    p = predict_probability(classifier, x)
    return classifier.positive_class if p >= threshold else classifier.negative_class


def predict_proba_frame(classifier: TrainedClassifier, df: pd.DataFrame) -> pd.Series:
    """Positive-class probabilities for every row of a scaled feature table."""
    missing = [f for f in classifier.feature_order if f not in df.columns]
    if missing:
        raise SchemaMismatchError(f"Missing feature columns: {missing}")

    X = df[list(classifier.feature_order)].astype(float)
    probas = classifier.model.predict_proba(X)[:, classifier.positive_index]
    return pd.Series(probas, index=df.index, name="probability")


def classes_from_proba(
    probas: pd.Series,
    threshold: float,
    positive_class: str = POSITIVE_CLASS,
    negative_class: str = NEGATIVE_CLASS,
) -> pd.Series:
    """Apply a decision threshold (probability >= threshold is positive)."""
    _check_threshold(threshold)
    return pd.Series(
        np.where(probas >= threshold, positive_class, negative_class),
        index=probas.index,
        name="predicted",
        dtype=object,
    )


# ---------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------
def save_classifier(classifier: TrainedClassifier, path: Union[str, Path]) -> Path:
    """Persist the classifier and its schema as a joblib artifact."""
    path = Path(path)
    path.parent.mkdir(exist_ok=True, parents=True)
    joblib.dump(
        {
            "model": classifier.model,
            "feature_order": list(classifier.feature_order),
            "schema_version": classifier.schema_version,
            "positive_class": classifier.positive_class,
            "negative_class": classifier.negative_class,
            "threshold": classifier.threshold,
        },
        path,
    )
    logger.info("Saved classifier to %s", path)
    return path


def load_classifier(path: Union[str, Path]) -> TrainedClassifier:
    """Load a classifier saved by save_classifier(), checking the schema version."""
    artifact = joblib.load(path)

    version = artifact.get("schema_version")
    if version != FEATURE_SCHEMA_VERSION:
        raise SchemaMismatchError(
            f"Artifact {path} uses feature schema v{version}, "
            f"this build expects v{FEATURE_SCHEMA_VERSION}."
        )

    return TrainedClassifier(
        model=artifact["model"],
        feature_order=tuple(artifact["feature_order"]),
        schema_version=version,
        positive_class=artifact["positive_class"],
        negative_class=artifact["negative_class"],
        threshold=artifact["threshold"],
    )
