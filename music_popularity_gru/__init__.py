"""Daily streaming trend forecasting with a stacked GRU classifier."""

__version__ = "0.1.0"
