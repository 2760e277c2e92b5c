# trend_ml/scaling.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from .config import FEATURE_COLUMNS
from .errors import DegenerateFeatureError, SchemaMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScalingParameters:
    """
    Per-feature mean and divisor learned from the training partition.

    stddev is the divisor transform() applies: 1.0 for passthrough features.
    """

    features: Tuple[str, ...]
    mean: Tuple[float, ...]
    stddev: Tuple[float, ...]
    passthrough: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            f: {"mean": m, "stddev": s}
            for f, m, s in zip(self.features, self.mean, self.stddev)
        }


class FeatureScaler:
    """
    Standardize features with statistics from the training partition only.

    Features listed in `passthrough` are allowed to have zero training
    variance: they are centered, not scaled (divided by 1). Any other
    zero-variance feature makes fit() raise DegenerateFeatureError.
    """

    def __init__(
        self,
        features: Sequence[str] = FEATURE_COLUMNS,
        passthrough: Iterable[str] = (),
    ):
        self.features: List[str] = list(features)
        self.passthrough: Tuple[str, ...] = tuple(passthrough)
        self._scaler: Optional[StandardScaler] = None
        self._params: Optional[ScalingParameters] = None

        unknown = [f for f in self.passthrough if f not in self.features]
        if unknown:
            raise ValueError(f"Passthrough features {unknown} are not in {self.features}")

    @property
    def is_fitted(self) -> bool:
        return self._params is not None

    @property
    def params(self) -> ScalingParameters:
        if self._params is None:
            raise RuntimeError("FeatureScaler is not fitted yet; call fit() first.")
        return self._params

    def fit(self, train: pd.DataFrame) -> "FeatureScaler":
        """Learn mean/stddev on the training partition. Can only be called once."""
        if self._params is not None:
            raise RuntimeError("FeatureScaler is already fitted; create a new one to refit.")
        if train.empty:
            raise ValueError("Cannot fit FeatureScaler on an empty training partition.")

        X = self._matrix(train)
        scaler = StandardScaler()
        scaler.fit(X)

        # StandardScaler swaps in scale 1.0 for (near) zero-variance columns
        constant = (scaler.scale_ == 1.0) & np.isclose(scaler.var_, 0.0)
        degenerate = [
            f for f, is_constant in zip(self.features, constant)
            if is_constant and f not in self.passthrough
        ]
        if degenerate:
            raise DegenerateFeatureError(degenerate)

        self._scaler = scaler
        self._params = ScalingParameters(
            features=tuple(self.features),
            mean=tuple(float(m) for m in scaler.mean_),
            stddev=tuple(float(s) for s in scaler.scale_),
            passthrough=self.passthrough,
        )
        logger.info("Fitted scaler on %d training rows", len(train))
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Return a copy with feature columns replaced by (value - mean) / stddev."""
        if self._scaler is None:
            raise RuntimeError("FeatureScaler is not fitted yet; call fit() first.")

        out = df.copy()
        out[self.features] = self._scaler.transform(self._matrix(df))
        return out

    def transform_vector(self, x_raw: Sequence[float]) -> np.ndarray:
        """Scale a single raw feature vector ordered like self.features."""
        if self._scaler is None:
            raise RuntimeError("FeatureScaler is not fitted yet; call fit() first.")

        x = np.asarray(x_raw, dtype=float)
        if x.ndim != 1 or x.shape[0] != len(self.features):
            raise SchemaMismatchError(
                f"x_raw must be 1D array of length {len(self.features)} "
                f"(got shape {x.shape})"
            )
        frame = pd.DataFrame([x], columns=self.features)
        return self._scaler.transform(frame)[0]

    def _matrix(self, df: pd.DataFrame) -> pd.DataFrame:
        missing = [f for f in self.features if f not in df.columns]
        if missing:
            raise SchemaMismatchError(f"Missing feature columns: {missing}")
        return df[self.features].astype(float)
