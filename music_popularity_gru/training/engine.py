# training/engine.py
from typing import Tuple

import torch
from tqdm import tqdm

THRESHOLD = 0.5


def binary_accuracy(predictions: torch.Tensor, targets: torch.Tensor) -> float:
    """Fraction of output units whose thresholded prediction equals the target."""
    if targets.numel() == 0:
        return 0.0
    hits = ((predictions > THRESHOLD).float() == targets).float()
    return hits.mean().item()


def train_loop(model, dataloader, optimizer, loss_fn, device, clip_value, show_progress=False) -> Tuple[float, float]:
    """One optimization pass. Returns sample-weighted (loss, accuracy)."""
    model.train()
    total_loss = 0.0
    total_hits = 0.0
    total_samples = 0
    total_units = 0
    for sequences, targets in tqdm(dataloader, desc="Training", leave=False, disable=not show_progress):
        sequences, targets = sequences.to(device), targets.to(device)
        optimizer.zero_grad(set_to_none=True)

        predictions = model(sequences)
        loss = loss_fn(predictions, targets)
        loss.backward()
        if clip_value:
            torch.nn.utils.clip_grad_norm_(model.parameters(), clip_value)
        optimizer.step()

        batch = sequences.shape[0]
        total_loss += loss.item() * batch
        total_samples += batch
        with torch.no_grad():
            total_hits += ((predictions > THRESHOLD).float() == targets).float().sum().item()
            total_units += targets.numel()

    if total_samples == 0:
        return float("inf"), 0.0
    return total_loss / total_samples, total_hits / max(total_units, 1)


def eval_loop(model, dataloader, loss_fn, device, show_progress=False) -> Tuple[float, float]:
    """Deterministic pass over a loader. Returns sample-weighted (loss, accuracy)."""
    model.eval()
    total_loss = 0.0
    total_hits = 0.0
    total_samples = 0
    total_units = 0
    with torch.no_grad():
        for sequences, targets in tqdm(dataloader, desc="Evaluating", leave=False, disable=not show_progress):
            sequences, targets = sequences.to(device), targets.to(device)
            predictions = model(sequences)
            loss = loss_fn(predictions, targets)

            batch = sequences.shape[0]
            total_loss += loss.item() * batch
            total_samples += batch
            total_hits += ((predictions > THRESHOLD).float() == targets).float().sum().item()
            total_units += targets.numel()

    if total_samples == 0:
        return float("inf"), 0.0
    return total_loss / total_samples, total_hits / max(total_units, 1)
