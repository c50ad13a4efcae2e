# data/windowing.py
import logging
import math
from datetime import date
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np
import torch
from torch.utils.data import Dataset

from .data_structures import (
    FEATURE_NAMES,
    DatasetSplit,
    NormalizedObservation,
    TrackMetadata,
    WindowedDataset,
)

logger = logging.getLogger(__name__)


def _day_vector(lookup, day: date, track_ids: Sequence[str]) -> np.ndarray:
    """Concatenated normalized features of every track on one day; zeros where absent."""
    vector = np.zeros(len(track_ids) * len(FEATURE_NAMES), dtype=np.float32)
    for t, track_id in enumerate(track_ids):
        entry = lookup.get((track_id, day))
        if entry is not None:
            start = t * len(FEATURE_NAMES)
            vector[start:start + len(FEATURE_NAMES)] = entry.feature_vector()
    return vector


def _label_vector(lookup, dates: Sequence[date], anchor_idx: int, track_ids: Sequence[str], horizons: int) -> np.ndarray:
    """1 where the day `offset` after the anchor has strictly more raw streams than the anchor."""
    label = np.zeros(len(track_ids) * horizons, dtype=np.float32)
    anchor = dates[anchor_idx]
    for t, track_id in enumerate(track_ids):
        current = lookup.get((track_id, anchor))
        if current is None:
            continue
        for offset in range(1, horizons + 1):
            future = lookup.get((track_id, dates[anchor_idx + offset]))
            if future is not None and future.streams > current.streams:
                label[t * horizons + offset - 1] = 1.0
    return label


def build_windows(
    normalized: Iterable[NormalizedObservation],
    track_ids: Sequence[str],
    window_size: int = 7,
    horizons: int = 3,
    dates: Optional[Iterable[date]] = None,
) -> WindowedDataset:
    """
    Slide a window of `window_size` days over the sorted distinct dates.

    `dates` is the full date axis of the ingested data, including days seen
    only for tracks that were not selected. Defaults to the dates of
    `normalized`.

    Every date with `window_size` earlier days and `horizons` later days
    becomes an anchor: the sample is the preceding window, the label holds one
    increase flag per track and horizon. Missing (track, date) pairs are
    zero feature vectors and never shift the window.
    """
    track_ids = tuple(track_ids)
    lookup: Dict[Tuple[str, date], NormalizedObservation] = {
        (obs.track_id, obs.date): obs for obs in normalized
    }
    if dates is None:
        dates = {day for _, day in lookup}
    dates = sorted(set(dates))
    width = len(track_ids) * len(FEATURE_NAMES)

    samples, labels, anchors = [], [], []
    for i in range(window_size, len(dates) - horizons):
        window_dates = dates[i - window_size:i]
        sample = [_day_vector(lookup, day, track_ids) for day in window_dates]
        if len(sample) != window_size:
            continue
        samples.append(np.stack(sample))
        labels.append(_label_vector(lookup, dates, i, track_ids, horizons))
        anchors.append(dates[i])

    if samples:
        sample_array = np.stack(samples).astype(np.float32)
        label_array = np.stack(labels).astype(np.float32)
    else:
        sample_array = np.zeros((0, window_size, width), dtype=np.float32)
        label_array = np.zeros((0, len(track_ids) * horizons), dtype=np.float32)

    logger.info(f"Built {len(anchors)} windows from {len(dates)} distinct dates "
                f"(window={window_size}, horizons={horizons})")
    return WindowedDataset(
        samples=sample_array,
        labels=label_array,
        anchor_dates=tuple(anchors),
        track_ids=track_ids,
        window_size=window_size,
    )


def split_dataset(
    windows: WindowedDataset,
    train_ratio: float = 0.8,
    track_metadata: Optional[Dict[str, TrackMetadata]] = None,
) -> DatasetSplit:
    """Order-preserving split: the first floor(len * train_ratio) windows train, the rest test."""
    split_index = math.floor(len(windows) * train_ratio)

    split = DatasetSplit(
        X_train=torch.tensor(windows.samples[:split_index], dtype=torch.float32),
        y_train=torch.tensor(windows.labels[:split_index], dtype=torch.float32),
        X_test=torch.tensor(windows.samples[split_index:], dtype=torch.float32),
        y_test=torch.tensor(windows.labels[split_index:], dtype=torch.float32),
        train_dates=windows.anchor_dates[:split_index],
        test_dates=windows.anchor_dates[split_index:],
        track_ids=windows.track_ids,
        track_metadata=dict(track_metadata or {}),
    )
    logger.info(f"Split {len(windows)} windows into {split.num_train} train / {split.num_test} test")
    return split


class StreamWindowDataset(Dataset):
    """Wraps sample/label tensors for a DataLoader"""

    def __init__(self, samples: torch.Tensor, labels: torch.Tensor):
        if samples.shape[0] != labels.shape[0]:
            raise ValueError(f"Sample/label count mismatch: {samples.shape[0]} vs {labels.shape[0]}")
        self.samples = samples
        self.labels = labels

    def __len__(self):
        return self.samples.shape[0]

    def __getitem__(self, idx):
        return self.samples[idx], self.labels[idx]
