# data/data_structures.py
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple
import numpy as np
import torch

FEATURE_NAMES: Tuple[str, ...] = ("streams", "danceability", "energy")

@dataclass(frozen=True)
class Observation:
    """One (track, day) row of the streaming history"""
    date: date
    track_id: str
    streams: float = 0.0
    danceability: float = 0.0
    energy: float = 0.0
    valence: float = 0.0
    acousticness: float = 0.0
    track_name: Optional[str] = None

    @property
    def key(self) -> Tuple[str, date]:
        return (self.track_id, self.date)

@dataclass(frozen=True)
class NormalizedObservation:
    """An observation plus its per-track min-max scaled features"""
    observation: Observation
    streams_norm: float
    danceability_norm: float
    energy_norm: float

    @property
    def date(self) -> date:
        return self.observation.date

    @property
    def track_id(self) -> str:
        return self.observation.track_id

    @property
    def streams(self) -> float:
        return self.observation.streams

    def feature_vector(self) -> Tuple[float, float, float]:
        return (self.streams_norm, self.danceability_norm, self.energy_norm)

@dataclass(frozen=True)
class TrackMetadata:
    track_id: str
    name: str
    total_streams: float

@dataclass(frozen=True)
class TrackSelection:
    """Top-N tracks by total streams and the observations restricted to them"""
    track_ids: Tuple[str, ...]
    observations: Tuple[Observation, ...]
    metadata: Dict[str, TrackMetadata]

    @property
    def num_tracks(self) -> int:
        return len(self.track_ids)

@dataclass(frozen=True)
class WindowedDataset:
    """
    Sliding-window samples in anchor-date order.

    samples: (S, W, 3 * num_tracks), labels: (S, 3 * num_tracks)
    """
    samples: np.ndarray
    labels: np.ndarray
    anchor_dates: Tuple[date, ...]
    track_ids: Tuple[str, ...]
    window_size: int

    def __len__(self):
        return len(self.anchor_dates)

@dataclass
class DatasetSplit:
    """
    Sequential train/test partition handed to the classifier and evaluator.
    Owns its tensors until dispose() is called.
    """
    X_train: Optional[torch.Tensor]
    y_train: Optional[torch.Tensor]
    X_test: Optional[torch.Tensor]
    y_test: Optional[torch.Tensor]
    train_dates: Tuple[date, ...]
    test_dates: Tuple[date, ...]
    track_ids: Tuple[str, ...]
    track_metadata: Dict[str, TrackMetadata] = field(default_factory=dict)

    @property
    def num_train(self) -> int:
        return 0 if self.X_train is None else int(self.X_train.shape[0])

    @property
    def num_test(self) -> int:
        return 0 if self.X_test is None else int(self.X_test.shape[0])

    @property
    def input_shape(self) -> Tuple[int, int]:
        reference = self.X_train if self.num_train else self.X_test
        if reference is None:
            raise ValueError("Dataset split has been disposed")
        return tuple(reference.shape[1:])

    def ordered_metadata(self) -> List[TrackMetadata]:
        """Track metadata in label order."""
        return [
            self.track_metadata.get(track_id, TrackMetadata(track_id, track_id, 0.0))
            for track_id in self.track_ids
        ]

    def dispose(self):
        self.X_train = self.y_train = self.X_test = self.y_test = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False
