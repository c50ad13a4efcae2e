from datetime import date, timedelta

import numpy as np
import pytest

from music_popularity_gru.config import DataConfig, GRUModelConfig, TrainingConfig
from music_popularity_gru.data import Observation, RecordStore
from music_popularity_gru.pipeline import prepare_dataset

START = date(2024, 1, 1)


def make_observations(streams_by_track, start=START, danceability=None, energy=None):
    """One observation per (track, day); None in a stream list means the day is missing."""
    observations = []
    for track_id, streams in streams_by_track.items():
        for offset, value in enumerate(streams):
            if value is None:
                continue
            observations.append(Observation(
                date=start + timedelta(days=offset),
                track_id=track_id,
                streams=float(value),
                danceability=danceability if danceability is not None else 0.1 * (offset % 7),
                energy=energy if energy is not None else 0.5 + 0.01 * offset,
                valence=0.3,
                acousticness=0.2,
            ))
    return observations


def synthetic_store(num_tracks=4, num_days=40, seed=0):
    rng = np.random.default_rng(seed)
    streams = {}
    for t in range(num_tracks):
        base = 1000 * (num_tracks - t)
        trend = rng.normal(0, 20, size=num_days).cumsum()
        noise = rng.normal(0, 50, size=num_days)
        streams[f"track_{t}"] = list(np.maximum(base + trend + noise, 0.0))
    return RecordStore(make_observations(streams))


@pytest.fixture
def store():
    return synthetic_store()


@pytest.fixture
def data_config():
    return DataConfig(top_n=3, window_size=5)


@pytest.fixture
def split(store, data_config):
    return prepare_dataset(store, data_config)


@pytest.fixture
def training_config():
    return TrainingConfig(num_epochs=3, batch_size=8, patience=15, device="cpu", seed=7)


@pytest.fixture
def model_config(data_config):
    return GRUModelConfig.for_tracks(data_config.top_n, window_size=data_config.window_size,
                                     gru_units=8, dense_units=16)
