# evaluation/metrics.py
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple, Union

import numpy as np
import torch

from ..data.data_structures import TrackMetadata

THRESHOLD = 0.5


def to_numpy(values) -> np.ndarray:
    if isinstance(values, torch.Tensor):
        return values.detach().cpu().numpy()
    return np.asarray(values)


def ordered_tracks(track_metadata: Union[Dict[str, TrackMetadata], Iterable[TrackMetadata]]) -> List[TrackMetadata]:
    """Track metadata in label order; dicts are taken in insertion order."""
    if isinstance(track_metadata, dict):
        return list(track_metadata.values())
    return list(track_metadata)


@dataclass(frozen=True)
class TrackAccuracy:
    track_id: str
    track_name: str
    accuracy: float
    horizon_accuracies: Tuple[float, ...]

    def to_dict(self):
        return {
            "track_id": self.track_id,
            "track_name": self.track_name,
            "accuracy": self.accuracy,
            "horizon_accuracies": {f"day{h + 1}": acc for h, acc in enumerate(self.horizon_accuracies)},
        }


@dataclass(frozen=True)
class TrackAccuracyReport:
    track_accuracies: Dict[str, TrackAccuracy]
    horizon_accuracies: Tuple[float, ...]

    def to_dict(self):
        return {
            "track_accuracies": [acc.to_dict() for acc in self.track_accuracies.values()],
            "horizon_accuracies": {f"day{h + 1}": acc for h, acc in enumerate(self.horizon_accuracies)},
        }


def compute_consistent_accuracy(predictions, y_true) -> float:
    """
    Percentage of label units matched by the thresholded predictions.
    Same result whichever prediction method produced `predictions`.
    """
    predictions, y_true = to_numpy(predictions), to_numpy(y_true)
    if y_true.size == 0:
        return 0.0
    binary = (predictions > THRESHOLD).astype(np.float32)
    return float((binary == y_true).sum()) / y_true.size * 100


def _percent(correct, total) -> float:
    return float(correct) / total * 100 if total > 0 else 0.0


def compute_track_specific_accuracy(predictions, y_true, track_metadata, horizons: int = 3) -> TrackAccuracyReport:
    """Accuracy per track, per track and horizon, and per horizon pooled over tracks."""
    binary = (to_numpy(predictions) > THRESHOLD).astype(np.float32)
    y_true = to_numpy(y_true)
    num_samples = y_true.shape[0]
    tracks = ordered_tracks(track_metadata)

    horizon_correct = np.zeros(horizons)
    horizon_total = np.zeros(horizons)
    track_accuracies = {}
    for t, meta in enumerate(tracks):
        columns = slice(t * horizons, (t + 1) * horizons)
        hits = binary[:, columns] == y_true[:, columns]  # (samples, horizons)
        per_horizon = hits.sum(axis=0)

        horizon_correct += per_horizon
        horizon_total += num_samples
        track_accuracies[meta.track_id] = TrackAccuracy(
            track_id=meta.track_id,
            track_name=meta.name or meta.track_id,
            accuracy=_percent(hits.sum(), hits.size),
            horizon_accuracies=tuple(_percent(c, num_samples) for c in per_horizon),
        )

    return TrackAccuracyReport(
        track_accuracies=track_accuracies,
        horizon_accuracies=tuple(_percent(c, n) for c, n in zip(horizon_correct, horizon_total)),
    )
