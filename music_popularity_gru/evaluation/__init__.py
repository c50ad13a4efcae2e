from .breakout import BreakoutScore, calculate_risk_level, detect_breakout_tracks
from .evaluator import EvaluationReport, Evaluator
from .feature_importance import FeatureImportance, compute_feature_importance, shuffle_feature
from .metrics import (
    TrackAccuracy,
    TrackAccuracyReport,
    compute_consistent_accuracy,
    compute_track_specific_accuracy,
)

__all__ = [
    "BreakoutScore",
    "EvaluationReport",
    "Evaluator",
    "FeatureImportance",
    "TrackAccuracy",
    "TrackAccuracyReport",
    "calculate_risk_level",
    "compute_consistent_accuracy",
    "compute_feature_importance",
    "compute_track_specific_accuracy",
    "detect_breakout_tracks",
    "shuffle_feature",
]
