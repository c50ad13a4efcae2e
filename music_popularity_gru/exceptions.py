# exceptions.py


class MusicPopularityError(Exception):
    """Base class for pipeline and model errors."""


class NoUsableRowsError(MusicPopularityError, ValueError):
    """Ingestion produced no usable observations."""


class EmptySplitError(MusicPopularityError, ValueError):
    """Training was requested with an empty train or validation split."""


class NoTestDataError(MusicPopularityError, ValueError):
    """Evaluation was requested without any test samples."""


class ModelNotBuiltError(MusicPopularityError, RuntimeError):
    """The network was used before build() or load()."""


class TrainingInProgressError(MusicPopularityError, RuntimeError):
    """A second training run, or a read of in-flight weights, was attempted."""
