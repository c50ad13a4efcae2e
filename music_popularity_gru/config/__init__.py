from .data_config import DataConfig
from .model_config import GRUModelConfig
from .training_config import TrainingConfig

__all__ = ["DataConfig", "GRUModelConfig", "TrainingConfig"]
