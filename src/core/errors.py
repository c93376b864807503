"""
Error taxonomy for classifier evaluation.

Fatal errors (DatasetReadError, MetricsInputError, PipelineError) stop a run.
Per-item errors (InferenceError, SplitIOError, ReportWriteError) are recorded
on the stage result and the stage carries on with the remaining items.
"""

from pathlib import Path
from typing import Optional, Union


PathLike = Union[str, Path]


class ClassifierEvalError(RuntimeError):
    """Base class for all evaluation errors."""
    pass


class DatasetReadError(ClassifierEvalError):
    """Dataset root is missing, unreadable, or holds no class folders."""

    def __init__(self, path: PathLike, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"cannot read dataset at {self.path}: {reason}")


class InferenceError(ClassifierEvalError):
    """The classifier could not produce a label for one image."""

    def __init__(self, image_path: PathLike, cause: Union[str, BaseException]):
        self.image_path = Path(image_path)
        self.cause = cause
        super().__init__(f"inference failed for {self.image_path}: {cause}")


class SplitIOError(ClassifierEvalError):
    """A split destination could not be created or a copy failed."""

    def __init__(self, path: PathLike, cause: Union[str, BaseException]):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"split I/O failed for {self.path}: {cause}")


class MetricsInputError(ClassifierEvalError, ValueError):
    """Ground truth / prediction sequences are empty or not the same length."""
    pass


class ReportWriteError(ClassifierEvalError):
    """An artifact (CSV, HTML, JSON, plot) could not be written."""

    def __init__(self, path: PathLike, cause: Union[str, BaseException]):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"could not write {self.path}: {cause}")


class PipelineError(ClassifierEvalError):
    """
    Fatal failure of one pipeline stage.

    Attributes:
        stage: Name of the stage that was running
        cause: The underlying error (carries the offending path where known)
    """

    def __init__(self, stage: str, cause: BaseException, path: Optional[PathLike] = None):
        self.stage = stage
        self.cause = cause
        self.path = Path(path) if path is not None else getattr(cause, 'path', None)
        location = f" ({self.path})" if self.path is not None else ""
        super().__init__(f"pipeline failed during {stage}{location}: {cause}")
