# app/main.py

from __future__ import annotations

from functools import lru_cache
from typing import Tuple

import joblib
from fastapi import Depends, FastAPI, HTTPException

from app.schemas import SchemaResponse, ScoreRequest, ScoreResponse
from trend_ml.config import MODELS_DIR
from trend_ml.errors import TrendMLError
from trend_ml.modeling import TrainedClassifier, load_classifier, predict_probability
from trend_ml.scaling import FeatureScaler

app = FastAPI(
    title="Weekly Trend Classifier",
    description=(
        "Scores one day's technical indicators with the trained random forest.\n\n"
        "Bullish = close one trading week (7 rows) later is strictly higher."
    ),
    version="1.0.0",
)

CLASSIFIER_FILE = "classifier.joblib"
SCALER_FILE = "scaler.joblib"


# ---------- MODEL LOADING HELPERS ----------


@lru_cache(maxsize=1)
def load_model_pair() -> Tuple[TrainedClassifier, FeatureScaler]:
    """
    Load the classifier and fitted scaler written by scripts/train_models.py.
    Uses LRU cache so they are loaded only once per process.
    """
    model_path = MODELS_DIR / CLASSIFIER_FILE
    scaler_path = MODELS_DIR / SCALER_FILE

    if not model_path.exists() or not scaler_path.exists():
        raise FileNotFoundError(
            f"Model or scaler not found. Expected: {model_path} and {scaler_path}. "
            f"Run scripts/train_models.py to create them."
        )

    classifier = load_classifier(model_path)
    scaler = joblib.load(scaler_path)
    return classifier, scaler


def get_model_pair() -> Tuple[TrainedClassifier, FeatureScaler]:
    try:
        return load_model_pair()
    except FileNotFoundError as e:
        raise HTTPException(status_code=503, detail=str(e))


# ---------- ROUTES ----------
@app.get("/health", tags=["meta"])
def health_check():
    return {"status": "ok"}


@app.get("/schema", response_model=SchemaResponse, tags=["meta"])
def feature_schema(pair: Tuple[TrainedClassifier, FeatureScaler] = Depends(get_model_pair)):
    classifier, _ = pair
    return SchemaResponse(
        schema_version=classifier.schema_version,
        features=list(classifier.feature_order),
        positive_class=classifier.positive_class,
        default_threshold=classifier.threshold,
    )


@app.post("/score", response_model=ScoreResponse, tags=["scoring"])
def score(
    request: ScoreRequest,
    pair: Tuple[TrainedClassifier, FeatureScaler] = Depends(get_model_pair),
):
    """
    Scale the raw feature values with the training-set parameters and return
    P(Bullish) plus the class at the requested (or default) threshold.
    """
    classifier, scaler = pair
    threshold = classifier.threshold if request.threshold is None else request.threshold

    missing = [f for f in classifier.feature_order if f not in request.features]
    extra = [f for f in request.features if f not in classifier.feature_order]
    if missing or extra:
        raise HTTPException(
            status_code=422,
            detail=f"Feature names do not match schema: missing={missing}, unexpected={extra}",
        )

    x_raw = [request.features[f] for f in classifier.feature_order]
    try:
        x_scaled = scaler.transform_vector(x_raw)
        probability = predict_probability(classifier, x_scaled)
    except TrendMLError as e:
        raise HTTPException(status_code=422, detail=str(e))

    label = classifier.positive_class if probability >= threshold else classifier.negative_class
    return ScoreResponse(
        probability=probability,
        label=label,
        threshold=threshold,
        schema_version=classifier.schema_version,
    )
