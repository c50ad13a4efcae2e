# config/model_config.py
from dataclasses import dataclass, asdict

@dataclass
class GRUModelConfig:
    """Configuration for the stacked GRU classifier"""
    window_size: int = 7
    input_dim: int = 30
    output_dim: int = 30
    gru_units: int = 32
    num_gru_layers: int = 2
    dense_units: int = 64
    input_dropout: float = 0.3
    recurrent_dropout: float = 0.3
    dense_dropout: float = 0.5

    @classmethod
    def for_tracks(cls, num_tracks: int, window_size: int = 7, num_features: int = 3, horizons: int = 3, **overrides):
        """Size the input/output layers for a given track selection."""
        return cls(
            window_size=window_size,
            input_dim=num_tracks * num_features,
            output_dim=num_tracks * horizons,
            **overrides
        )

    def to_dict(self):
        return asdict(self)
