"""Utility modules for classifier evaluation."""

from .benchmark import Timer, StageTimings, TimingRecord

__all__ = [
    'Timer',
    'StageTimings',
    'TimingRecord',
]
