# models/gru_model.py
from collections import OrderedDict
from typing import List, Tuple

import torch
import torch.nn as nn

from ..config.model_config import GRUModelConfig
from .components import VariationalGRU


class StackedGRUClassifier(nn.Module):
    """
    Stacked GRU encoder over a (window, tracks * features) sequence followed by
    a dense projection and one sigmoid unit per (track, horizon).
    """

    def __init__(self, config: GRUModelConfig):
        super(StackedGRUClassifier, self).__init__()
        self.config = config

        layers = OrderedDict()
        in_dim = config.input_dim
        for i in range(config.num_gru_layers):
            last = i == config.num_gru_layers - 1
            layers[f"gru_{i + 1}"] = VariationalGRU(
                in_dim,
                config.gru_units,
                dropout=config.input_dropout,
                recurrent_dropout=config.recurrent_dropout,
                return_sequences=not last,
            )
            in_dim = config.gru_units
        self.encoder = nn.Sequential(layers)

        self.head = nn.Sequential(OrderedDict([
            ("dense_1", nn.Linear(config.gru_units, config.dense_units)),
            ("relu", nn.ReLU()),
            ("dropout", nn.Dropout(config.dense_dropout)),
            ("output", nn.Linear(config.dense_units, config.output_dim)),
            ("sigmoid", nn.Sigmoid()),
        ]))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.head(self.encoder(x))

    def layer_summary(self) -> List[Tuple[str, str, Tuple]]:
        """(name, class, output shape) per layer; batch dimension shown as None."""
        window = self.config.window_size
        rows = []
        for name, layer in self.encoder.named_children():
            shape = (None, window, layer.hidden_size) if layer.return_sequences else (None, layer.hidden_size)
            rows.append((name, type(layer).__name__, shape))
        width = self.config.gru_units
        for name, layer in self.head.named_children():
            if isinstance(layer, nn.Linear):
                width = layer.out_features
            rows.append((name, type(layer).__name__, (None, width)))
        return rows
