# trend_ml/config.py

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError

# Root directory = project root (two levels up from this file)
ROOT_DIR = Path(__file__).resolve().parents[1]

# Data and models directories
DATA_DIR = ROOT_DIR / "data"
MODELS_DIR = ROOT_DIR / "models"

# Raw price columns expected from the ingestion side
PRICE_COLUMNS = ["Open", "High", "Low", "Close", "Volume"]

# Indicator windows
MOMENTUM_WINDOW = 7
FAST_EMA_PERIOD = 7
SLOW_EMA_PERIOD = 30
SIGNAL_PERIOD = 9
STOCHASTIC_K_PERIOD = 14
STOCHASTIC_D_PERIOD = 3

# Label definition (binary classification)
# Bullish: close one trading week later is strictly higher than today's close.
LABEL_HORIZON = 7
LABEL_COLUMN = "label"
POSITIVE_CLASS = "Bullish"
NEGATIVE_CLASS = "Bearish"
CLASS_ORDER = [POSITIVE_CLASS, NEGATIVE_CLASS]

# Train/test split and classifier
SPLIT_FRACTION = 0.67
DECISION_THRESHOLD = 0.6
RANDOM_SEED = 42
N_ESTIMATORS = 500

# Feature columns (we keep them in one place so scaling, modeling and
# evaluation share the same order). Bump the version when the list changes.
FEATURE_SCHEMA_VERSION = "1"
FEATURE_COLUMNS = [
    "momentum",
    "convergence_line",
    "convergence_signal",
    "fast_k",
    "fast_d",
    "slow_d",
]

# camelCase option names accepted by PipelineConfig.from_mapping()
_OPTION_ALIASES = {
    "momentumWindow": "momentum_window",
    "fastEmaPeriod": "fast_ema_period",
    "slowEmaPeriod": "slow_ema_period",
    "signalPeriod": "signal_period",
    "stochasticKPeriod": "stochastic_k_period",
    "stochasticDPeriod": "stochastic_d_period",
    "labelHorizon": "label_horizon",
    "splitFraction": "split_fraction",
    "decisionThreshold": "decision_threshold",
    "randomSeed": "random_seed",
    "nEstimators": "n_estimators",
    "nJobs": "n_jobs",
    "allowDegenerateFeatures": "allow_degenerate_features",
}


@dataclass(frozen=True)
class PipelineConfig:
    """
    Recognized pipeline options.

    random_seed=None leaves sampling and tree construction unseeded, so two
    runs on the same data can produce different splits and models.
    """

    momentum_window: int = MOMENTUM_WINDOW
    fast_ema_period: int = FAST_EMA_PERIOD
    slow_ema_period: int = SLOW_EMA_PERIOD
    signal_period: int = SIGNAL_PERIOD
    stochastic_k_period: int = STOCHASTIC_K_PERIOD
    stochastic_d_period: int = STOCHASTIC_D_PERIOD
    label_horizon: int = LABEL_HORIZON
    split_fraction: float = SPLIT_FRACTION
    decision_threshold: float = DECISION_THRESHOLD
    random_seed: Optional[int] = RANDOM_SEED
    n_estimators: int = N_ESTIMATORS
    n_jobs: int = -1
    allow_degenerate_features: bool = True

    def validate(self) -> "PipelineConfig":
        """Raise ConfigError on invalid values, return self otherwise."""
        windows = {
            "momentum_window": self.momentum_window,
            "fast_ema_period": self.fast_ema_period,
            "slow_ema_period": self.slow_ema_period,
            "signal_period": self.signal_period,
            "stochastic_k_period": self.stochastic_k_period,
            "stochastic_d_period": self.stochastic_d_period,
            "label_horizon": self.label_horizon,
        }
        for name, value in windows.items():
            if not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be a positive integer (got {value!r})")

        if self.slow_ema_period <= self.fast_ema_period:
            raise ConfigError(
                f"slow_ema_period ({self.slow_ema_period}) must be greater than "
                f"fast_ema_period ({self.fast_ema_period})"
            )
        if not 0.0 < self.split_fraction < 1.0:
            raise ConfigError(f"split_fraction must be in (0, 1) (got {self.split_fraction})")
        if not 0.0 <= self.decision_threshold <= 1.0:
            raise ConfigError(
                f"decision_threshold must be in [0, 1] (got {self.decision_threshold})"
            )
        if self.n_estimators < 1:
            raise ConfigError(f"n_estimators must be >= 1 (got {self.n_estimators})")
        return self

    @property
    def warmup(self) -> int:
        """Number of leading rows without a full indicator set."""
        convergence = self.slow_ema_period + self.signal_period - 2
        stochastic = self.stochastic_k_period + 2 * (self.stochastic_d_period - 1) - 1
        return max(self.momentum_window, convergence, stochastic)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "PipelineConfig":
        """Build a config from camelCase or snake_case option names."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown pipeline option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs).validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
