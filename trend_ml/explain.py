# trend_ml/explain.py

from __future__ import annotations

from typing import Dict, List

import numpy as np

from .modeling import TrainedClassifier


# Human-readable descriptions for features
FEATURE_DESCRIPTIONS: Dict[str, str] = {
    "momentum": "Log change in traded volume over the momentum window.",
    "convergence_line": "Gap between the fast and slow exponential averages of close.",
    "convergence_signal": "Smoothed trigger line of the fast/slow average gap.",
    "fast_k": "Position of the close within its recent high/low range (%K).",
    "fast_d": "Three-day average of %K (fast %D).",
    "slow_d": "Three-day average of fast %D (slow %D).",
}


def explain_classifier(
    classifier: TrainedClassifier,
    top_k: int = 6,
) -> List[Dict[str, object]]:
    """
    Rank features by the forest's impurity-based importance.

    Returns a list of dicts with:
      - feature
      - importance (share of total, sums to 1 over all features)
      - std (spread of the importance across trees)
      - text (human-readable description)
    """
    model = classifier.model
    importances = model.feature_importances_
    per_tree = np.array([tree.feature_importances_ for tree in model.estimators_])
    spread = per_tree.std(axis=0)

    # Sort by importance, largest first
    idx_sorted = np.argsort(-importances)

    reasons: List[Dict[str, object]] = []
    for idx in idx_sorted[:top_k]:
        fname = classifier.feature_order[idx]
        reasons.append(
            {
                "feature": fname,
                "importance": float(importances[idx]),
                "std": float(spread[idx]),
                "text": FEATURE_DESCRIPTIONS.get(fname, fname),
            }
        )

    return reasons
