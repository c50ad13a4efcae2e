# training/state.py
import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import torch


@dataclass
class TrainingHistory:
    loss: List[float] = field(default_factory=list)
    accuracy: List[float] = field(default_factory=list)
    val_loss: List[float] = field(default_factory=list)
    val_accuracy: List[float] = field(default_factory=list)

    def record(self, loss, accuracy, val_loss, val_accuracy):
        self.loss.append(loss)
        self.accuracy.append(accuracy)
        self.val_loss.append(val_loss)
        self.val_accuracy.append(val_accuracy)

    def __len__(self):
        return len(self.loss)

    def to_dict(self):
        return {
            "loss": list(self.loss),
            "accuracy": list(self.accuracy),
            "val_loss": list(self.val_loss),
            "val_accuracy": list(self.val_accuracy),
        }


@dataclass
class ModelState:
    """Best-epoch bookkeeping for one training run"""
    history: TrainingHistory = field(default_factory=TrainingHistory)
    best_val_loss: float = float("inf")
    best_epoch: Optional[int] = None
    best_state: Optional[Dict[str, torch.Tensor]] = None
    best_checksum: Optional[str] = None
    stopped_early: bool = False
    epochs_run: int = 0

    def snapshot(self, model: torch.nn.Module, epoch: int, val_loss: float):
        self.best_val_loss = val_loss
        self.best_epoch = epoch
        self.best_state = {k: v.detach().clone() for k, v in model.state_dict().items()}
        self.best_checksum = parameter_checksum(self.best_state)

    def restore(self, model: torch.nn.Module) -> bool:
        if self.best_state is None:
            return False
        model.load_state_dict(self.best_state)
        return True

    def release(self):
        self.best_state = None


def parameter_checksum(state) -> str:
    """SHA-1 over every tensor of a module or state dict, in key order."""
    if isinstance(state, torch.nn.Module):
        state = state.state_dict()
    digest = hashlib.sha1()
    for key in sorted(state):
        digest.update(key.encode("utf-8"))
        digest.update(np.ascontiguousarray(state[key].detach().cpu().numpy()).tobytes())
    return digest.hexdigest()
