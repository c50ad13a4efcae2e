# evaluation/feature_importance.py
import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

import numpy as np
import torch

from ..data.data_structures import FEATURE_NAMES
from .metrics import to_numpy

logger = logging.getLogger(__name__)

FEATURE_DESCRIPTIONS = {
    "streams": "Historical streaming patterns - most important for trend prediction",
    "danceability": "Musical rhythm and dance-friendly characteristics",
    "energy": "Intensity and activity level of the track",
}


@dataclass(frozen=True)
class FeatureImportance:
    feature: str
    importance_score: float
    description: str

    def to_dict(self):
        return asdict(self)


def shuffle_feature(X, feature_index: int, num_features: int = len(FEATURE_NAMES),
                    rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Copy of X with one feature scrambled across the whole tensor.

    Every (sample, day, track) slot of the feature is swapped with a randomly
    chosen (sample, day, track) slot of the same feature, so values move
    between tracks as well as between samples and days.
    """
    rng = rng if rng is not None else np.random.default_rng()
    data = np.array(to_numpy(X), dtype=np.float32, copy=True)
    num_samples, num_days, width = data.shape
    num_tracks = width // num_features
    if num_samples == 0 or num_tracks == 0:
        return data

    for sample in range(num_samples):
        for day in range(num_days):
            for track in range(num_tracks):
                pos = track * num_features + feature_index
                other_sample = rng.integers(num_samples)
                other_day = rng.integers(num_days)
                other_pos = rng.integers(num_tracks) * num_features + feature_index

                data[sample, day, pos], data[other_sample, other_day, other_pos] = (
                    data[other_sample, other_day, other_pos], data[sample, day, pos]
                )
    return data


def compute_feature_importance(classifier, X_test, y_test, baseline_accuracy: Optional[float] = None,
                               seed: Optional[int] = 42,
                               feature_names: Sequence[str] = FEATURE_NAMES) -> List[FeatureImportance]:
    """
    Permutation importance of each per-track feature.

    importance = max(baseline - shuffled, 0) * 100, with accuracies taken from
    classifier.evaluate (fractions). A feature whose shuffling helps scores 0.
    Sorted by importance, highest first.
    """
    if baseline_accuracy is None:
        baseline_accuracy = classifier.evaluate(X_test, y_test).accuracy

    rng = np.random.default_rng(seed)
    scores = []
    for feature_index, feature in enumerate(feature_names):
        shuffled = torch.from_numpy(shuffle_feature(X_test, feature_index, len(feature_names), rng))
        shuffled_accuracy = classifier.evaluate(shuffled, y_test).accuracy
        importance = max((baseline_accuracy - shuffled_accuracy) * 100, 0.0)
        logger.debug(f"{feature}: baseline {baseline_accuracy:.4f}, shuffled {shuffled_accuracy:.4f}")
        scores.append(FeatureImportance(
            feature=feature.capitalize(),
            importance_score=importance,
            description=FEATURE_DESCRIPTIONS.get(feature, "Audio feature characteristic"),
        ))
        del shuffled

    return sorted(scores, key=lambda score: score.importance_score, reverse=True)
