"""
Dataset module for classifier evaluation.

This module indexes class-partitioned image folders into labeled samples
and splits them into stratified train/val/test trees.
"""

from .indexer import DatasetIndexer, Sample, IMAGE_EXTENSIONS
from .splitter import (
    DatasetSplitter,
    SplitConfig,
    SplitAssignment,
    SplitResult,
    SPLIT_NAMES,
    clear_destinations,
)

__all__ = [
    'DatasetIndexer',
    'Sample',
    'IMAGE_EXTENSIONS',
    'DatasetSplitter',
    'SplitConfig',
    'SplitAssignment',
    'SplitResult',
    'SPLIT_NAMES',
    'clear_destinations',
]
