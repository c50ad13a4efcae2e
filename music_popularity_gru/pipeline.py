# pipeline.py
import logging
from typing import Iterable, Optional, Union

from .config.data_config import DataConfig
from .config.model_config import GRUModelConfig
from .data.data_loader import RecordStore
from .data.data_structures import DatasetSplit, Observation
from .data.preprocessing import normalize_features, select_top_tracks
from .data.windowing import build_windows, split_dataset

logger = logging.getLogger(__name__)


def prepare_dataset(records: Union[RecordStore, Iterable[Observation]],
                    config: Optional[DataConfig] = None) -> DatasetSplit:
    """Track selection -> normalization -> windows -> sequential split."""
    config = config or DataConfig()
    if not isinstance(records, RecordStore):
        records = RecordStore(records)
    observations = records.observations()

    selection = select_top_tracks(observations, config.top_n)
    normalized = normalize_features(selection)
    # Days seen only for unselected tracks still count as (all-zero) window days
    windows = build_windows(normalized, selection.track_ids, config.window_size, config.horizons,
                            dates=records.dates)
    return split_dataset(windows, config.train_ratio, selection.metadata)


def model_config_for(split: DatasetSplit, config: Optional[DataConfig] = None) -> GRUModelConfig:
    config = config or DataConfig()
    return GRUModelConfig.for_tracks(
        len(split.track_ids),
        window_size=config.window_size,
        num_features=config.num_features,
        horizons=config.horizons,
    )
