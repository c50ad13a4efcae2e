from .data_structures import (
    DatasetSplit,
    NormalizedObservation,
    Observation,
    TrackMetadata,
    TrackSelection,
    WindowedDataset,
)
from .data_loader import RecordStore, load_observations
from .preprocessing import normalize_features, select_top_tracks
from .windowing import StreamWindowDataset, build_windows, split_dataset

__all__ = [
    "DatasetSplit",
    "NormalizedObservation",
    "Observation",
    "RecordStore",
    "StreamWindowDataset",
    "TrackMetadata",
    "TrackSelection",
    "WindowedDataset",
    "build_windows",
    "load_observations",
    "normalize_features",
    "select_top_tracks",
    "split_dataset",
]
