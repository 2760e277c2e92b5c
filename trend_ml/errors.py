# trend_ml/errors.py

"""
Exception hierarchy for the trend_ml pipeline.

Window warm-ups are never errors (they are NaN and get trimmed); these
classes cover the conditions a caller has to act on.
"""

from __future__ import annotations

from typing import Iterable, Tuple


class TrendMLError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(TrendMLError, ValueError):
    """Invalid pipeline configuration."""


class SeriesValidationError(TrendMLError, ValueError):
    """Price series cannot be used for indicator computation."""


class SchemaMismatchError(TrendMLError, ValueError):
    """Feature vector does not match the classifier's feature schema."""


class DegenerateFeatureError(TrendMLError, ValueError):
    """
    One or more features have zero standard deviation on the training partition.

    Recoverable: the caller can drop the listed features or refit the scaler
    with them kept centered, not scaled.
    """

    def __init__(self, features: Iterable[str]):
        self.features: Tuple[str, ...] = tuple(features)
        super().__init__(
            "Zero training-set variance for feature(s): "
            + ", ".join(self.features)
        )


class TrainingError(TrendMLError, RuntimeError):
    """Classifier training cannot proceed on the given partition."""
