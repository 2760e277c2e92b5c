# scripts/train_models.py

from __future__ import annotations

import argparse

import joblib
import numpy as np

from trend_ml.config import (
    DECISION_THRESHOLD,
    LABEL_COLUMN,
    MODELS_DIR,
    N_ESTIMATORS,
    RANDOM_SEED,
    SPLIT_FRACTION,
    PipelineConfig,
)
from trend_ml.evaluation import sweep_thresholds
from trend_ml.explain import explain_classifier
from trend_ml.log import configure_logging
from trend_ml.modeling import predict_proba_frame, save_classifier
from trend_ml.pipeline import run_pipeline
from trend_ml.series import load_price_csv


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train and evaluate the weekly trend classifier.")
    parser.add_argument("prices_csv", help="CSV with Date, Open, High, Low, Close, Volume")
    parser.add_argument("--threshold", type=float, default=DECISION_THRESHOLD)
    parser.add_argument("--split", type=float, default=SPLIT_FRACTION)
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--trees", type=int, default=N_ESTIMATORS)
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


def main():
    args = parse_args()
    configure_logging(args.log_level)

    config = PipelineConfig(
        split_fraction=args.split,
        decision_threshold=args.threshold,
        random_seed=args.seed,
        n_estimators=args.trees,
    )

    print(f"[train_models] Loading prices from {args.prices_csv}...")
    prices = load_price_csv(args.prices_csv)

    print("[train_models] Running pipeline...")
    result = run_pipeline(prices, config)

    print(f"[train_models] Eligible rows: {len(result.feature_rows)} "
          f"(train={len(result.train)}, test={len(result.test)})")
    print("\n=== EVALUATION (test partition) ===")
    print(f" Positive class: {result.report.positive_class}, threshold: {result.report.threshold}")
    print(result.report)

    probas = predict_proba_frame(result.classifier, result.test)
    sweep = sweep_thresholds(result.test[LABEL_COLUMN], probas, np.arange(0.3, 0.81, 0.05))
    print("\n=== THRESHOLD SWEEP ===")
    print(sweep.to_string(index=False, float_format=lambda v: f"{v:.3f}"))

    print("\n=== FEATURE IMPORTANCE ===")
    for r in explain_classifier(result.classifier):
        print(f"   - {r['feature']:<20} {r['importance']:.3f} (+/- {r['std']:.3f})  {r['text']}")

    model_path = save_classifier(result.classifier, MODELS_DIR / "classifier.joblib")
    scaler_path = MODELS_DIR / "scaler.joblib"
    joblib.dump(result.scaler, scaler_path)

    print(f"\n[train_models] Saved classifier to: {model_path}")
    print(f"[train_models] Saved scaler to: {scaler_path}")
    print("[train_models] Done.")


if __name__ == "__main__":
    main()
