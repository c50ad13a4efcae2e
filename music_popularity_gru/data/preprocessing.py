# data/preprocessing.py
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List

import numpy as np
from sklearn.preprocessing import MinMaxScaler

from .data_structures import (
    FEATURE_NAMES,
    NormalizedObservation,
    Observation,
    TrackMetadata,
    TrackSelection,
)

logger = logging.getLogger(__name__)

# Value assigned to every record of a track whose feature never changes
FLAT_SERIES_VALUE = 0.5


def select_top_tracks(observations: Iterable[Observation], n: int = 10) -> TrackSelection:
    """
    Keep the n tracks with the highest total streams.

    Ties keep first-appearance order. Fewer than n distinct tracks simply
    yields a smaller selection.
    """
    observations = list(observations)
    totals: "OrderedDict[str, float]" = OrderedDict()
    names: Dict[str, str] = {}
    for obs in observations:
        totals[obs.track_id] = totals.get(obs.track_id, 0.0) + obs.streams
        if obs.track_name and obs.track_id not in names:
            names[obs.track_id] = obs.track_name

    # sorted() is stable, so equal totals stay in insertion order
    ranked = sorted(totals.items(), key=lambda item: -item[1])[:max(n, 0)]
    track_ids = tuple(track_id for track_id, _ in ranked)
    selected = set(track_ids)

    metadata = {
        track_id: TrackMetadata(track_id, names.get(track_id, track_id), total)
        for track_id, total in ranked
    }
    kept = tuple(obs for obs in observations if obs.track_id in selected)

    logger.info(f"Selected {len(track_ids)} of {len(totals)} tracks ({len(kept)} observations)")
    return TrackSelection(track_ids=track_ids, observations=kept, metadata=metadata)


def _scale_track(observations: List[Observation]) -> np.ndarray:
    values = np.array(
        [[getattr(obs, feature) for feature in FEATURE_NAMES] for obs in observations],
        dtype=np.float64,
    )
    values = np.where(np.isfinite(values), values, 0.0)

    scaled = MinMaxScaler(feature_range=(0.0, 1.0), clip=True).fit_transform(values)

    flat = values.max(axis=0) <= values.min(axis=0)
    scaled[:, flat] = FLAT_SERIES_VALUE
    return scaled


def normalize_features(selection: TrackSelection) -> List[NormalizedObservation]:
    """
    Per-track min-max scaling of streams, danceability and energy.

    Must be re-run whenever the track selection changes. Valence and
    acousticness are carried along raw on the wrapped observation.
    """
    by_track: Dict[str, List[Observation]] = {track_id: [] for track_id in selection.track_ids}
    for obs in selection.observations:
        if obs.track_id in by_track:
            by_track[obs.track_id].append(obs)

    scaled_by_key = {}
    for track_id, track_obs in by_track.items():
        if not track_obs:
            continue
        scaled = _scale_track(track_obs)
        for obs, row in zip(track_obs, scaled):
            scaled_by_key[obs.key] = row

    normalized = []
    for obs in selection.observations:
        row = scaled_by_key.get(obs.key)
        if row is None:
            continue
        normalized.append(NormalizedObservation(
            observation=obs,
            streams_norm=float(row[0]),
            danceability_norm=float(row[1]),
            energy_norm=float(row[2]),
        ))
    return normalized
