# trend_ml/evaluation.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import auc as trapezoid_auc
from sklearn.metrics import confusion_matrix, roc_curve

from .config import LABEL_COLUMN, NEGATIVE_CLASS, POSITIVE_CLASS
from .modeling import TrainedClassifier, classes_from_proba, predict_proba_frame

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Confusion matrix and threshold metrics
# ---------------------------------------------------------------------
def confusion_counts(
    y_true: Sequence[str],
    y_pred: Sequence[str],
    positive_class: str = POSITIVE_CLASS,
    negative_class: str = NEGATIVE_CLASS,
) -> pd.DataFrame:
    """
    2x2 confusion matrix: rows = actual class, columns = predicted class.

    Both axes are ordered [positive_class, negative_class], so the top-left
    cell is TP and the bottom-right cell is TN.
    """
    labels = [positive_class, negative_class]
    cm = confusion_matrix(list(y_true), list(y_pred), labels=labels)
    return pd.DataFrame(
        cm,
        index=pd.Index(labels, name="actual"),
        columns=pd.Index(labels, name="predicted"),
    )


def _safe_ratio(num: float, den: float) -> float:
    return float(num) / float(den) if den else float("nan")


def metrics_from_counts(cm: pd.DataFrame) -> Tuple[float, float, float]:
    """Precision, recall and F1 for the positive (first) class; NaN on a zero denominator."""
    tp, fn = cm.iat[0, 0], cm.iat[0, 1]
    fp = cm.iat[1, 0]

    precision = _safe_ratio(tp, tp + fp)
    recall = _safe_ratio(tp, tp + fn)
    if np.isnan(precision) or np.isnan(recall):
        f1 = float("nan")
    else:
        f1 = _safe_ratio(2 * precision * recall, precision + recall)
    return precision, recall, f1


def precision_recall_f1(
    y_true: Sequence[str],
    y_pred: Sequence[str],
    positive_class: str = POSITIVE_CLASS,
    negative_class: str = NEGATIVE_CLASS,
) -> Tuple[float, float, float]:
    cm = confusion_counts(y_true, y_pred, positive_class, negative_class)
    return metrics_from_counts(cm)


# ---------------------------------------------------------------------
# ROC curve
# ---------------------------------------------------------------------
class RocPoint(NamedTuple):
    false_positive_rate: float
    true_positive_rate: float
    threshold: float


class RocCurve:
    """
    ROC curve over a set of scored examples.

    Points are computed on first use and yielded in ascending false-positive
    rate order; every iteration starts from the first point again. By default
    the sweep uses the observed probabilities as thresholds, with grid_step
    it uses a fixed grid from 1 down to 0. The curve is empty when y_true
    holds a single class.
    """

    def __init__(
        self,
        y_true: Sequence[str],
        scores: Sequence[float],
        positive_class: str = POSITIVE_CLASS,
        grid_step: Optional[float] = None,
    ):
        self._y_true = np.asarray(list(y_true), dtype=object)
        self._scores = np.asarray(scores, dtype=float)
        if self._y_true.shape != self._scores.shape:
            raise ValueError(
                f"y_true and scores must have the same length "
                f"({self._y_true.shape[0]} != {self._scores.shape[0]})"
            )
        if grid_step is not None and not 0.0 < grid_step <= 1.0:
            raise ValueError(f"grid_step must be in (0, 1] (got {grid_step})")

        self.positive_class = positive_class
        self.grid_step = grid_step

    @cached_property
    def _arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        is_pos = self._y_true == self.positive_class
        n_pos = int(is_pos.sum())
        n_neg = int((~is_pos).sum())
        if n_pos == 0 or n_neg == 0:
            logger.warning(
                "ROC curve undefined: %d positive and %d negative examples", n_pos, n_neg
            )
            empty = np.array([], dtype=float)
            return empty, empty, empty

        if self.grid_step is None:
            fpr, tpr, thresholds = roc_curve(
                is_pos.astype(int),
                self._scores,
                pos_label=1,
                drop_intermediate=False,
            )
            return fpr, tpr, thresholds

        n_steps = int(round(1.0 / self.grid_step))
        grid = np.round(np.linspace(1.0, 0.0, n_steps + 1), 12)
        thresholds = np.concatenate([[np.inf], grid])
        pos_scores = self._scores[is_pos]
        neg_scores = self._scores[~is_pos]
        tpr = np.array([(pos_scores >= t).mean() for t in thresholds])
        fpr = np.array([(neg_scores >= t).mean() for t in thresholds])
        return fpr, tpr, thresholds

    def __iter__(self) -> Iterator[RocPoint]:
        fpr, tpr, thresholds = self._arrays
        for f, t, th in zip(fpr, tpr, thresholds):
            yield RocPoint(float(f), float(t), float(th))

    def __len__(self) -> int:
        return len(self._arrays[0])

    @property
    def auc(self) -> float:
        return auc_score(self)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self), columns=list(RocPoint._fields))


def auc_score(curve: Iterable[RocPoint]) -> float:
    """Trapezoidal area under an ROC curve; NaN when fewer than two points."""
    points = list(curve)
    if len(points) < 2:
        return float("nan")
    fpr = np.array([p.false_positive_rate for p in points])
    tpr = np.array([p.true_positive_rate for p in points])
    return float(trapezoid_auc(fpr, tpr))


# ---------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class EvaluationReport:
    confusion_matrix: pd.DataFrame
    precision: float
    recall: float
    f1: float
    roc: RocCurve
    auc: float
    threshold: Optional[float] = None
    positive_class: str = POSITIVE_CLASS

    @property
    def n_samples(self) -> int:
        return int(self.confusion_matrix.values.sum())

    @property
    def roc_points(self) -> List[RocPoint]:
        return list(self.roc)

    def to_dict(self) -> Dict[str, object]:
        return {
            "positive_class": self.positive_class,
            "threshold": self.threshold,
            "confusion_matrix": self.confusion_matrix.to_dict(orient="index"),
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "auc": self.auc,
            "roc_points": [p._asdict() for p in self.roc],
        }

    def __str__(self) -> str:
        return (
            f"Confusion matrix (rows=actual, cols=predicted):\n{self.confusion_matrix}\n"
            f"Precision: {self.precision:.4f}\n"
            f"Recall:    {self.recall:.4f}\n"
            f"F1 Score:  {self.f1:.4f}\n"
            f"ROC-AUC:   {self.auc:.4f}"
        )


def evaluate(
    y_true: Sequence[str],
    y_pred: Sequence[str],
    probas: Sequence[float],
    positive_class: str = POSITIVE_CLASS,
    negative_class: str = NEGATIVE_CLASS,
    threshold: Optional[float] = None,
    grid_step: Optional[float] = None,
) -> EvaluationReport:
    """Build an EvaluationReport from true labels, predicted labels and probabilities."""
    y_true = list(y_true)
    y_pred = list(y_pred)
    if len(y_true) != len(y_pred):
        raise ValueError(
            f"y_true and y_pred must have the same length ({len(y_true)} != {len(y_pred)})"
        )

    cm = confusion_counts(y_true, y_pred, positive_class, negative_class)
    precision, recall, f1 = metrics_from_counts(cm)
    roc = RocCurve(y_true, probas, positive_class=positive_class, grid_step=grid_step)

    return EvaluationReport(
        confusion_matrix=cm,
        precision=precision,
        recall=recall,
        f1=f1,
        roc=roc,
        auc=roc.auc,
        threshold=threshold,
        positive_class=positive_class,
    )


def evaluate_classifier(
    classifier: TrainedClassifier,
    test: pd.DataFrame,
    threshold: Optional[float] = None,
    grid_step: Optional[float] = None,
) -> EvaluationReport:
    """Score a scaled test partition and evaluate at the given (or default) threshold."""
    threshold = classifier.threshold if threshold is None else threshold

    probas = predict_proba_frame(classifier, test)
    y_pred = classes_from_proba(
        probas,
        threshold,
        positive_class=classifier.positive_class,
        negative_class=classifier.negative_class,
    )
    report = evaluate(
        test[LABEL_COLUMN],
        y_pred,
        probas,
        positive_class=classifier.positive_class,
        negative_class=classifier.negative_class,
        threshold=threshold,
        grid_step=grid_step,
    )
    logger.info(
        "Evaluated %d test rows at threshold %.2f: precision=%.3f recall=%.3f f1=%.3f auc=%.3f",
        report.n_samples,
        threshold,
        report.precision,
        report.recall,
        report.f1,
        report.auc,
    )
    return report


def sweep_thresholds(
    y_true: Sequence[str],
    probas: Sequence[float],
    thresholds: Iterable[float],
    positive_class: str = POSITIVE_CLASS,
    negative_class: str = NEGATIVE_CLASS,
) -> pd.DataFrame:
    """Precision/recall/F1 and raw counts at each threshold (NaN where undefined)."""
    y_true = list(y_true)
    probas = pd.Series(np.asarray(probas, dtype=float))

    rows = []
    for t in thresholds:
        y_pred = classes_from_proba(probas, float(t), positive_class, negative_class)
        cm = confusion_counts(y_true, y_pred, positive_class, negative_class)
        precision, recall, f1 = metrics_from_counts(cm)
        rows.append(
            {
                "threshold": float(t),
                "tp": int(cm.iat[0, 0]),
                "fn": int(cm.iat[0, 1]),
                "fp": int(cm.iat[1, 0]),
                "tn": int(cm.iat[1, 1]),
                "precision": precision,
                "recall": recall,
                "f1": f1,
            }
        )
    return pd.DataFrame(rows)
