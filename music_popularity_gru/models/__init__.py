from .components import VariationalGRU
from .gru_model import StackedGRUClassifier

__all__ = ["StackedGRUClassifier", "VariationalGRU"]
