# evaluation/breakout.py
from dataclasses import asdict, dataclass
from typing import List

import numpy as np

from .metrics import ordered_tracks, to_numpy


@dataclass(frozen=True)
class BreakoutScore:
    track_id: str
    track_name: str
    breakout_score: float   # averaged trend signal * 100
    confidence: float       # averaged mean probability * 100
    trend: str
    risk_level: str
    trend_signal: float
    mean_confidence: float

    def to_dict(self):
        return asdict(self)


def trend_signal(p1, p2, p3):
    """Positive when the predicted increase probability grows with the horizon."""
    return (p3 - p1) * 2 + (p2 - p1)


def calculate_risk_level(signal: float, confidence: float) -> str:
    if signal > 0.1 and confidence > 0.7:
        return "low"
    if signal > 0.05 and confidence > 0.6:
        return "medium"
    if signal > 0:
        return "high"
    return "very-high"


def detect_breakout_tracks(predictions, track_metadata, horizons: int = 3) -> List[BreakoutScore]:
    """
    Rank tracks by their averaged horizon trend.

    Uses the first three horizons of each track's prediction triplet.
    Returns an empty list when there are no predictions.
    """
    predictions = to_numpy(predictions)
    if predictions.ndim != 2 or predictions.shape[0] == 0:
        return []

    scores = []
    for t, meta in enumerate(ordered_tracks(track_metadata)):
        base = t * horizons
        p1, p2, p3 = (predictions[:, base + h].astype(np.float64) for h in range(3))

        signal = float(np.mean(trend_signal(p1, p2, p3)))
        confidence = float(np.mean((p1 + p2 + p3) / 3))
        scores.append(BreakoutScore(
            track_id=meta.track_id,
            track_name=meta.name or meta.track_id,
            breakout_score=signal * 100,
            confidence=confidence * 100,
            trend="rising" if signal > 0 else "stable",
            risk_level=calculate_risk_level(signal, confidence),
            trend_signal=signal,
            mean_confidence=confidence,
        ))

    return sorted(scores, key=lambda score: score.trend_signal, reverse=True)
