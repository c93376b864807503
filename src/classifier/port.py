"""
Capability interfaces for external image classifiers and trainers.

The evaluation core only ever talks to these two abstractions, so any
inference backend can be plugged in without touching pipeline logic.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class ClassifierPort(ABC):
    """Abstract top-1 image classifier."""

    @abstractmethod
    def predict(self, image_path: Path) -> str:
        """
        Classify one image.

        Args:
            image_path: Path to the image file

        Returns:
            The single top-1 class label

        Raises:
            InferenceError: If the image cannot be classified
        """
        pass

    def get_name(self) -> str:
        """Return the name of this classifier."""
        return type(self).__name__


class ModelTrainer(ABC):
    """Abstract training service producing a classifier from split folders."""

    @abstractmethod
    def train(self, train_root: Path, val_root: Path, output_dir: Path) -> ClassifierPort:
        """
        Train a classifier on class-partitioned folders.

        Args:
            train_root: Training images, one subfolder per class
            val_root: Validation images, same layout
            output_dir: Where the trainer may store its model files

        Returns:
            A classifier ready for evaluation
        """
        pass
