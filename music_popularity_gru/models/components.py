# models/components.py
import torch
import torch.nn as nn


def _dropout_mask(reference: torch.Tensor, shape, rate: float) -> torch.Tensor:
    keep = 1.0 - rate
    return torch.bernoulli(reference.new_full(shape, keep)) / keep


class VariationalGRU(nn.Module):
    """
    Single GRU layer with input and recurrent dropout.

    One dropout mask per sequence is sampled for the inputs and one for the
    hidden state, and reused at every time step. Masks are only applied in
    training mode.
    """

    def __init__(self, input_size: int, hidden_size: int, dropout: float = 0.0,
                 recurrent_dropout: float = 0.0, return_sequences: bool = False):
        super().__init__()
        if not 0.0 <= dropout < 1.0 or not 0.0 <= recurrent_dropout < 1.0:
            raise ValueError("dropout rates must be in [0, 1)")
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.dropout = dropout
        self.recurrent_dropout = recurrent_dropout
        self.return_sequences = return_sequences
        self.cell = nn.GRUCell(input_size, hidden_size)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        # x: (batch, time, features)
        batch_size, steps, _ = x.shape
        h = x.new_zeros(batch_size, self.hidden_size)

        input_mask = recurrent_mask = None
        if self.training and self.dropout > 0:
            input_mask = _dropout_mask(x, (batch_size, self.input_size), self.dropout)
        if self.training and self.recurrent_dropout > 0:
            recurrent_mask = _dropout_mask(x, (batch_size, self.hidden_size), self.recurrent_dropout)

        outputs = []
        for t in range(steps):
            x_t = x[:, t, :]
            if input_mask is not None:
                x_t = x_t * input_mask
            h_prev = h * recurrent_mask if recurrent_mask is not None else h
            h = self.cell(x_t, h_prev)
            if self.return_sequences:
                outputs.append(h)

        if self.return_sequences:
            return torch.stack(outputs, dim=1)
        return h

    def extra_repr(self):
        return (f"{self.input_size}, {self.hidden_size}, dropout={self.dropout}, "
                f"recurrent_dropout={self.recurrent_dropout}, return_sequences={self.return_sequences}")
