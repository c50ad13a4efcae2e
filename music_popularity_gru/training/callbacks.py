# training/callbacks.py
import logging
from dataclasses import asdict, dataclass

import wandb

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted once per epoch by SequenceClassifier.fit"""
    epoch: int
    loss: float
    accuracy: float
    val_loss: float
    val_accuracy: float
    early_stopping_counter: int

    def to_dict(self):
        return asdict(self)


class LoggingProgressCallback:
    """Logs every `every` epochs (and always the first)."""

    def __init__(self, total_epochs: int, every: int = 10):
        self.total_epochs = total_epochs
        self.every = max(every, 1)

    def __call__(self, event: ProgressEvent):
        if event.epoch == 1 or event.epoch % self.every == 0:
            logger.info(
                f"Epoch {event.epoch:03}/{self.total_epochs:03} | "
                f"loss: {event.loss:.4f} - accuracy: {event.accuracy:.4f} | "
                f"val_loss: {event.val_loss:.4f} - val_accuracy: {event.val_accuracy:.4f} | "
                f"patience: {event.early_stopping_counter}"
            )


class WandbProgressCallback:
    """Mirrors epoch metrics to an active Weights & Biases run."""

    def __init__(self, run=None):
        self.run = run

    def __call__(self, event: ProgressEvent):
        payload = event.to_dict()
        if self.run is not None:
            self.run.log(payload)
        else:
            wandb.log(payload)
