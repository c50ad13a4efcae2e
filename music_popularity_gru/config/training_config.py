# config/training_config.py
from dataclasses import dataclass
from typing import Optional

@dataclass
class TrainingConfig:
    """Training configuration for the GRU classifier"""
    batch_size: int = 32
    learning_rate: float = 1e-3
    num_epochs: int = 100
    patience: int = 15
    weight_decay: float = 1e-2
    gradient_clip_norm: float = 1.0

    # Scheduler settings (fixed learning rate unless enabled)
    use_lr_scheduler: bool = False
    scheduler_factor: float = 0.5
    scheduler_patience: int = 5
    min_lr: float = 1e-6

    # Ensemble prediction
    uncertainty_passes: int = 10

    # Seeds weight init, batch order and permutation importance; None for unseeded runs
    seed: Optional[int] = 42
    device: str = "auto"
    show_progress: bool = False

    # Experiment tracking
    use_wandb: bool = False
    wandb_project: str = "music-popularity-gru"

    model_save_path: str = "models/music_popularity_gru.pth"
