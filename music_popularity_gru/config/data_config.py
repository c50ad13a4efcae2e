# config/data_config.py
from dataclasses import dataclass
from typing import Tuple

@dataclass
class DataConfig:
    """Dataset construction settings"""
    top_n: int = 10
    window_size: int = 7
    horizons: int = 3
    train_ratio: float = 0.8

    # Per-track features fed to the model, in this order
    features: Tuple[str, ...] = ("streams", "danceability", "energy")

    # Ingested but not windowed
    context_features: Tuple[str, ...] = ("valence", "acousticness")

    def __post_init__(self):
        if self.top_n < 1:
            raise ValueError(f"top_n must be positive, got {self.top_n}")
        if self.window_size < 1:
            raise ValueError(f"window_size must be positive, got {self.window_size}")
        if not 0.0 < self.train_ratio < 1.0:
            raise ValueError(f"train_ratio must be in (0, 1), got {self.train_ratio}")

    @property
    def num_features(self) -> int:
        return len(self.features)
