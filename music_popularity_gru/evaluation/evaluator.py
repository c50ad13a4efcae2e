# evaluation/evaluator.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..data.data_structures import DatasetSplit
from ..exceptions import NoTestDataError
from .breakout import BreakoutScore, detect_breakout_tracks
from .feature_importance import FeatureImportance, compute_feature_importance
from .metrics import TrackAccuracy, compute_consistent_accuracy, compute_track_specific_accuracy

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    """Everything the presentation layer needs after one evaluation call"""
    loss: float
    accuracy: float
    pooled_accuracy: float
    track_accuracies: List[TrackAccuracy]
    horizon_accuracies: Tuple[float, ...]
    feature_importance: List[FeatureImportance] = field(default_factory=list)
    breakout_tracks: List[BreakoutScore] = field(default_factory=list)
    prediction_method: str = "single-pass"
    num_samples: int = 0

    def top_breakouts(self, k: int = 3) -> List[BreakoutScore]:
        """Highest-ranked tracks among the first k, keeping only positive scores."""
        return [track for track in self.breakout_tracks[:k] if track.breakout_score > 0]

    def to_dict(self):
        return {
            "loss": self.loss,
            "accuracy": self.accuracy,
            "pooled_accuracy": self.pooled_accuracy,
            "prediction_method": self.prediction_method,
            "num_samples": self.num_samples,
            "track_accuracies": [acc.to_dict() for acc in self.track_accuracies],
            "horizon_accuracies": {f"day{h + 1}": acc for h, acc in enumerate(self.horizon_accuracies)},
            "feature_importance": [fi.to_dict() for fi in self.feature_importance],
            "breakout_tracks": [b.to_dict() for b in self.breakout_tracks],
        }


class Evaluator:
    """Scores a trained SequenceClassifier against the test block of a DatasetSplit."""

    def __init__(self, classifier, seed: Optional[int] = None, horizons: int = 3):
        self.classifier = classifier
        self.seed = classifier.config.seed if seed is None else seed
        self.horizons = horizons

    def evaluate(self, split: DatasetSplit, use_uncertainty: bool = False, passes: Optional[int] = None,
                 compute_importance: bool = True) -> EvaluationReport:
        if split is None or split.num_test == 0:
            raise NoTestDataError("No test data available. Load data and train the model first.")

        X_test, y_test = split.X_test, split.y_test
        tracks = split.ordered_metadata()

        evaluation = self.classifier.evaluate(X_test, y_test)
        if use_uncertainty:
            predictions = self.classifier.predict_with_uncertainty(X_test, passes)
            method = "ensemble"
        else:
            predictions = self.classifier.predict(X_test)
            method = "single-pass"

        pooled = compute_consistent_accuracy(predictions, y_test)
        by_track = compute_track_specific_accuracy(predictions, y_test, tracks, self.horizons)

        importance = []
        if compute_importance:
            importance = compute_feature_importance(
                self.classifier, X_test, y_test,
                baseline_accuracy=evaluation.accuracy,
                seed=self.seed,
            )
        breakouts = detect_breakout_tracks(predictions, tracks, self.horizons)
        del predictions

        logger.info(f"Evaluated {split.num_test} samples ({method}): loss {evaluation.loss:.4f}, "
                    f"pooled accuracy {pooled:.2f}%")
        return EvaluationReport(
            loss=evaluation.loss,
            accuracy=evaluation.accuracy,
            pooled_accuracy=pooled,
            track_accuracies=list(by_track.track_accuracies.values()),
            horizon_accuracies=by_track.horizon_accuracies,
            feature_importance=importance,
            breakout_tracks=breakouts,
            prediction_method=method,
            num_samples=split.num_test,
        )
