"""
Core module for classifier evaluation.

This module contains the error taxonomy and the structured event log
shared by every stage.
"""

from .errors import (
    ClassifierEvalError,
    DatasetReadError,
    InferenceError,
    SplitIOError,
    MetricsInputError,
    ReportWriteError,
    PipelineError,
)
from .events import EventLevel, StageEvent, EventLog

__all__ = [
    "ClassifierEvalError",
    "DatasetReadError",
    "InferenceError",
    "SplitIOError",
    "MetricsInputError",
    "ReportWriteError",
    "PipelineError",
    "EventLevel",
    "StageEvent",
    "EventLog",
]
