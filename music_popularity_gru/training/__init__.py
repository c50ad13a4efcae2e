from .callbacks import LoggingProgressCallback, ProgressEvent, WandbProgressCallback
from .state import ModelState, TrainingHistory, parameter_checksum
from .trainer import EvaluationResult, ModelStatus, SequenceClassifier

__all__ = [
    "EvaluationResult",
    "LoggingProgressCallback",
    "ModelState",
    "ModelStatus",
    "ProgressEvent",
    "SequenceClassifier",
    "TrainingHistory",
    "WandbProgressCallback",
    "parameter_checksum",
]
