import numpy as np
import pytest
import torch

from music_popularity_gru.data import TrackMetadata
from music_popularity_gru.evaluation import compute_consistent_accuracy, compute_track_specific_accuracy

TRACKS = [TrackMetadata("a", "Song A", 10.0), TrackMetadata("b", "Song B", 5.0)]


def test_consistent_accuracy_half_matching_is_exactly_fifty():
    y_true = torch.tensor([[1, 0, 1, 0], [1, 1, 0, 0]], dtype=torch.float32)
    predictions = torch.tensor([[0.9, 0.1, 0.2, 0.8], [0.7, 0.3, 0.6, 0.4]])
    assert compute_consistent_accuracy(predictions, y_true) == 50.0


def test_consistent_accuracy_threshold_is_strict():
    y_true = np.array([[1.0, 0.0]])
    assert compute_consistent_accuracy(np.array([[0.5, 0.5]]), y_true) == 50.0
    assert compute_consistent_accuracy(np.array([[0.51, 0.49]]), y_true) == 100.0


def test_consistent_accuracy_empty_is_zero():
    assert compute_consistent_accuracy(np.zeros((0, 6)), np.zeros((0, 6))) == 0.0


def test_track_specific_accuracy():
    # two samples, two tracks, three horizons
    y_true = np.array([
        [1, 1, 1, 0, 0, 0],
        [1, 0, 1, 0, 1, 0],
    ], dtype=np.float32)
    predictions = np.array([
        [0.9, 0.9, 0.9, 0.9, 0.9, 0.9],
        [0.9, 0.9, 0.9, 0.9, 0.9, 0.9],
    ])
    report = compute_track_specific_accuracy(predictions, y_true, TRACKS)

    a, b = report.track_accuracies["a"], report.track_accuracies["b"]
    assert a.track_name == "Song A"
    assert a.accuracy == pytest.approx(5 / 6 * 100)
    assert a.horizon_accuracies == pytest.approx((100.0, 50.0, 100.0))
    assert b.accuracy == pytest.approx(1 / 6 * 100)
    assert b.horizon_accuracies == pytest.approx((0.0, 50.0, 0.0))
    assert report.horizon_accuracies == pytest.approx((50.0, 50.0, 50.0))


def test_track_specific_accuracy_accepts_metadata_dict():
    y_true = np.ones((1, 6), dtype=np.float32)
    report = compute_track_specific_accuracy(np.ones((1, 6)), y_true, {m.track_id: m for m in TRACKS})
    assert list(report.track_accuracies) == ["a", "b"]
    assert report.to_dict()["horizon_accuracies"] == {"day1": 100.0, "day2": 100.0, "day3": 100.0}
