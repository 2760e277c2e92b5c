# trend_ml/pipeline.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .config import FEATURE_COLUMNS, PipelineConfig
from .dataset import build_dataset, stratified_split
from .errors import DegenerateFeatureError, TrainingError
from .evaluation import EvaluationReport, evaluate_classifier
from .modeling import TrainedClassifier, fit_classifier
from .scaling import FeatureScaler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    config: PipelineConfig
    feature_rows: pd.DataFrame
    train: pd.DataFrame
    test: pd.DataFrame
    scaler: FeatureScaler
    classifier: TrainedClassifier
    report: EvaluationReport


def fit_scaler(train: pd.DataFrame, allow_degenerate: bool = True) -> FeatureScaler:
    """
    Fit a FeatureScaler on the training partition.

    With allow_degenerate, zero-variance features are reported and kept
    centered, not scaled, instead of aborting the run.
    """
    try:
        return FeatureScaler(FEATURE_COLUMNS).fit(train)
    except DegenerateFeatureError as exc:
        if not allow_degenerate:
            raise
        logger.warning("%s; keeping them centered, not scaled", exc)
        return FeatureScaler(FEATURE_COLUMNS, passthrough=exc.features).fit(train)


def run_pipeline(
    prices: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """
    Run the full batch: repair -> indicators -> labels -> trim -> split ->
    scale (fit on train) -> random forest -> evaluation on test.
    """
    config = (config or PipelineConfig()).validate()
    logger.info("Running pipeline on %d raw rows with %s", len(prices), config.to_dict())

    feature_rows = build_dataset(prices, config)

    split = stratified_split(
        feature_rows,
        train_fraction=config.split_fraction,
        random_state=config.random_seed,
    )
    if split.test.empty:
        raise TrainingError(
            f"Partition 'test' is empty after splitting {len(feature_rows)} eligible rows "
            f"with split_fraction={config.split_fraction}."
        )

    scaler = fit_scaler(split.train, allow_degenerate=config.allow_degenerate_features)
    train_scaled = scaler.transform(split.train)
    test_scaled = scaler.transform(split.test)

    classifier = fit_classifier(
        train_scaled,
        features=FEATURE_COLUMNS,
        n_estimators=config.n_estimators,
        random_state=config.random_seed,
        n_jobs=config.n_jobs,
        threshold=config.decision_threshold,
    )
    report = evaluate_classifier(classifier, test_scaled)

    return PipelineResult(
        config=config,
        feature_rows=feature_rows,
        train=train_scaled,
        test=test_scaled,
        scaler=scaler,
        classifier=classifier,
        report=report,
    )
