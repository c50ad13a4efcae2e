# training/trainer.py
import gc
import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import torch
import torch.nn as nn
import torch.optim as optim
from torch.utils.data import DataLoader

from ..config.model_config import GRUModelConfig
from ..config.training_config import TrainingConfig
from ..data.windowing import StreamWindowDataset
from ..exceptions import (
    EmptySplitError,
    ModelNotBuiltError,
    NoTestDataError,
    TrainingInProgressError,
)
from ..models.gru_model import StackedGRUClassifier
from .callbacks import ProgressEvent
from .engine import binary_accuracy, eval_loop, train_loop
from .state import ModelState, TrainingHistory

logger = logging.getLogger(__name__)


class ModelStatus(Enum):
    UNBUILT = "unbuilt"
    BUILT = "built"
    TRAINING = "training"
    TRAINED = "trained"


@dataclass(frozen=True)
class EvaluationResult:
    loss: float
    accuracy: float


def resolve_device(name: str = "auto") -> torch.device:
    if name == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")
    return torch.device(name)


class SequenceClassifier:
    """
    Owns the GRU network, its optimizer and the best-weight snapshot.

    Lifecycle: UNBUILT -> BUILT -> TRAINING -> TRAINED. Only one fit() may run
    at a time; predictions are refused while a run is in flight.
    """

    def __init__(self, model_config: Optional[GRUModelConfig] = None,
                 training_config: Optional[TrainingConfig] = None, device=None):
        self.model_config = model_config or GRUModelConfig()
        self.config = training_config or TrainingConfig()
        self.device = device if isinstance(device, torch.device) else resolve_device(device or self.config.device)

        self.network: Optional[StackedGRUClassifier] = None
        self.optimizer = None
        self.scheduler = None
        self.criterion = nn.BCELoss()
        self.state = ModelState()
        self.status = ModelStatus.UNBUILT
        self._train_lock = threading.Lock()

    # ------------------------------------------------------------------ build

    def build(self, input_shape: Optional[Sequence[int]] = None, output_dim: Optional[int] = None):
        """Instantiate the network and optimizer. input_shape is (window, features)."""
        if self.is_training:
            raise TrainingInProgressError("Cannot rebuild the model while training is running")
        return self._build(input_shape, output_dim)

    def _build(self, input_shape=None, output_dim=None):
        if input_shape is not None:
            self.model_config.window_size, self.model_config.input_dim = int(input_shape[0]), int(input_shape[1])
        if output_dim is not None:
            self.model_config.output_dim = int(output_dim)

        # Seed weight init without touching the caller's global RNG
        with torch.random.fork_rng(devices=[]):
            if self.config.seed is None:
                torch.default_generator.seed()
            else:
                torch.default_generator.manual_seed(self.config.seed)
            self.network = StackedGRUClassifier(self.model_config).to(self.device)
        self.optimizer = optim.AdamW(
            self.network.parameters(),
            lr=self.config.learning_rate,
            weight_decay=self.config.weight_decay,
        )
        self.scheduler = None
        if self.config.use_lr_scheduler:
            self.scheduler = optim.lr_scheduler.ReduceLROnPlateau(
                self.optimizer,
                mode="min",
                factor=self.config.scheduler_factor,
                patience=self.config.scheduler_patience,
                min_lr=self.config.min_lr,
            )
        self.state = ModelState()
        self.status = ModelStatus.BUILT

        trainable = sum(p.numel() for p in self.network.parameters() if p.requires_grad)
        logger.info(f"Model built with {trainable:,} trainable parameters on {self.device}")
        return self.network

    @property
    def is_training(self) -> bool:
        return self._train_lock.locked()

    @property
    def history(self) -> TrainingHistory:
        return self.state.history

    def _require_ready(self):
        if self.is_training:
            raise TrainingInProgressError("Model weights are being updated by an active training run")
        if self.network is None:
            raise ModelNotBuiltError("Model not built or loaded")

    # -------------------------------------------------------------------- fit

    def fit(self, X_train: torch.Tensor, y_train: torch.Tensor, X_val: torch.Tensor, y_val: torch.Tensor,
            max_epochs: Optional[int] = None, batch_size: Optional[int] = None,
            progress_callback: Optional[Callable[[ProgressEvent], None]] = None,
            stop_requested: Optional[Callable[[], bool]] = None) -> TrainingHistory:
        """
        Train with early stopping on validation loss.

        Whenever validation loss improves the parameters are snapshotted; after
        `patience` epochs without improvement the snapshot is restored and
        training ends. `progress_callback` receives a ProgressEvent after every
        epoch. `stop_requested` is polled between epochs.
        """
        if not self._train_lock.acquire(blocking=False):
            logger.warning("Training request rejected: a training run is already in progress")
            raise TrainingInProgressError("A training run is already in progress")

        previous_status = self.status
        train_loader = val_loader = None
        try:
            if X_train is None or len(X_train) == 0:
                raise EmptySplitError("Training split is empty")
            if X_val is None or len(X_val) == 0:
                raise EmptySplitError("Validation split is empty")

            if self.network is None:
                self._build(input_shape=tuple(X_train.shape[1:]), output_dim=y_train.shape[1])
                previous_status = self.status

            max_epochs = max_epochs if max_epochs is not None else self.config.num_epochs
            batch_size = batch_size or self.config.batch_size
            patience = self.config.patience

            generator = None
            if self.config.seed is not None:
                generator = torch.Generator().manual_seed(self.config.seed)
            train_loader = DataLoader(StreamWindowDataset(X_train, y_train), batch_size=batch_size,
                                      shuffle=True, generator=generator)
            val_loader = DataLoader(StreamWindowDataset(X_val, y_val), batch_size=batch_size, shuffle=False)

            self.status = ModelStatus.TRAINING
            self.state = ModelState()
            patience_counter = 0
            logger.info(f"🚀 Starting training for up to {max_epochs} epochs "
                        f"({len(X_train)} train / {len(X_val)} validation samples)")

            for epoch in range(1, max_epochs + 1):
                loss, accuracy = train_loop(self.network, train_loader, self.optimizer, self.criterion,
                                            self.device, self.config.gradient_clip_norm,
                                            show_progress=self.config.show_progress)
                val_loss, val_accuracy = eval_loop(self.network, val_loader, self.criterion, self.device,
                                                   show_progress=self.config.show_progress)

                self.state.history.record(loss, accuracy, val_loss, val_accuracy)
                self.state.epochs_run = epoch
                if self.scheduler is not None:
                    self.scheduler.step(val_loss)

                if val_loss < self.state.best_val_loss:
                    self.state.snapshot(self.network, epoch, val_loss)
                    patience_counter = 0
                    logger.debug(f"Epoch {epoch}: new best validation loss {val_loss:.4f}")
                else:
                    patience_counter += 1

                self._emit(progress_callback, ProgressEvent(
                    epoch=epoch,
                    loss=loss,
                    accuracy=accuracy,
                    val_loss=val_loss,
                    val_accuracy=val_accuracy,
                    early_stopping_counter=patience_counter,
                ))

                if patience_counter >= patience:
                    logger.info(f"🛑 Early stopping triggered at epoch {epoch} "
                                f"(best epoch {self.state.best_epoch}, val_loss {self.state.best_val_loss:.4f})")
                    self.state.restore(self.network)
                    self.state.stopped_early = True
                    break

                if stop_requested is not None and stop_requested():
                    logger.info(f"Training stopped on request after epoch {epoch}")
                    break

            self.status = ModelStatus.TRAINED
            logger.info(f"Training completed after {self.state.epochs_run} epochs. "
                        f"Best validation loss: {self.state.best_val_loss:.4f}")
            return self.state.history
        finally:
            if self.status is ModelStatus.TRAINING:
                self.status = ModelStatus.TRAINED if self.state.epochs_run else previous_status
            del train_loader, val_loader
            if self.device.type == "cuda":
                gc.collect()
                torch.cuda.empty_cache()
            self._train_lock.release()

    @staticmethod
    def _emit(callback, event: ProgressEvent):
        if callback is None:
            return
        try:
            callback(event)
        except Exception as e:
            logger.warning(f"Progress callback failed at epoch {event.epoch}: {e}")

    # ---------------------------------------------------------------- predict

    def predict(self, X: torch.Tensor) -> torch.Tensor:
        """Single deterministic forward pass (dropout off)."""
        self._require_ready()
        self.network.eval()
        with torch.no_grad():
            return self.network(X.to(self.device)).cpu()

    def predict_with_uncertainty(self, X: torch.Tensor, passes: Optional[int] = None) -> torch.Tensor:
        """Mean of `passes` stochastic forward passes with dropout active."""
        self._require_ready()
        passes = self.config.uncertainty_passes if passes is None else passes
        if passes < 1:
            raise ValueError(f"passes must be positive, got {passes}")

        X = X.to(self.device)
        self.network.train()
        try:
            with torch.no_grad():
                samples = torch.stack([self.network(X) for _ in range(passes)])
        finally:
            self.network.eval()
        return samples.mean(dim=0).cpu()

    def evaluate(self, X: torch.Tensor, y: torch.Tensor) -> EvaluationResult:
        """Pooled loss and accuracy (threshold 0.5, averaged over every output unit)."""
        if X is None or len(X) == 0:
            raise NoTestDataError("Cannot evaluate on an empty set")
        predictions = self.predict(X)
        y = y.to(predictions.dtype)
        loss = self.criterion(predictions, y).item()
        return EvaluationResult(loss=loss, accuracy=binary_accuracy(predictions, y))

    # ----------------------------------------------------------- persistence

    def summary(self) -> str:
        if self.network is None:
            return "Model not built"
        lines = ["Model Architecture:"]
        for i, (name, cls, shape) in enumerate(self.network.layer_summary(), start=1):
            lines.append(f"{i}. {name} ({cls}) - Output: {list(shape)}")
        return "\n".join(lines)

    def save(self, path: Optional[str] = None) -> str:
        self._require_ready()
        path = path or self.config.model_save_path
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        torch.save({
            "model_config": self.model_config.to_dict(),
            "state_dict": self.network.state_dict(),
            "best_val_loss": self.state.best_val_loss,
        }, path)
        logger.info(f"💾 Model saved to {path}")
        return path

    def load(self, path: str):
        if self.is_training:
            raise TrainingInProgressError("Cannot load weights while training is running")
        checkpoint = torch.load(path, map_location=self.device)
        self.model_config = GRUModelConfig(**checkpoint["model_config"])
        self.build()
        self.network.load_state_dict(checkpoint["state_dict"])
        self.state.best_val_loss = checkpoint.get("best_val_loss", float("inf"))
        self.status = ModelStatus.TRAINED
        logger.info(f"Model loaded from {path}")
        return self.network

    def dispose(self):
        if self.is_training:
            raise TrainingInProgressError("Cannot dispose the model while training is running")
        self.state.release()
        self.network = self.optimizer = self.scheduler = None
        self.status = ModelStatus.UNBUILT
        if self.device.type == "cuda":
            gc.collect()
            torch.cuda.empty_cache()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False
