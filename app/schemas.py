# app/schemas.py

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ScoreRequest(BaseModel):
    """
    One day's raw (unscaled) indicator values.
    Keys must match the feature schema returned by GET /schema.
    """
    features: Dict[str, float]
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ScoreResponse(BaseModel):
    probability: float        # model P(Bullish)
    label: str                # "Bullish" or "Bearish"
    threshold: float          # threshold actually applied
    schema_version: str


class SchemaResponse(BaseModel):
    schema_version: str
    features: List[str]       # order used by the scaler and classifier
    positive_class: str
    default_threshold: float
