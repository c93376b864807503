"""
Dataset indexing for class-partitioned image folders.

Expected layout::

    dataset_root/
        cat/
            img001.jpg
            img002.png
        dog/
            img003.jpeg

Each immediate subfolder is a class; its name is the ground-truth label of
every image inside it.
"""

from typing import Dict, List, Optional, Sequence, Any
from dataclasses import dataclass
from pathlib import Path
import logging

from src.core.errors import DatasetReadError


IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png')


@dataclass
class Sample:
    """
    One labeled image.

    Attributes:
        image_path: Path to the image file
        ground_truth: Class label (name of the parent folder)
        prediction: Top-1 label from the classifier, None until inferred
    """
    image_path: Path
    ground_truth: str
    prediction: Optional[str] = None

    @property
    def is_evaluated(self) -> bool:
        return self.prediction is not None

    def set_prediction(self, label: str) -> None:
        """Record the classifier's label. A sample is predicted only once."""
        if self.prediction is not None:
            raise ValueError(
                f"Prediction already set for {self.image_path}: {self.prediction}"
            )
        self.prediction = label

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'image_path': str(self.image_path),
            'ground_truth': self.ground_truth,
            'prediction': self.prediction,
        }


def is_hidden(path: Path) -> bool:
    """Dot-prefixed entries (.DS_Store, .git, ...) are never dataset content."""
    return path.name.startswith('.')


def is_image_file(path: Path, extensions: Sequence[str] = IMAGE_EXTENSIONS) -> bool:
    return (
        path.is_file()
        and not is_hidden(path)
        and path.suffix.lower() in extensions
    )


class DatasetIndexer:
    """
    Walk a class-partitioned image folder into Sample records.

    Traversal is read-only and deterministic: classes are visited in sorted
    order and images are sorted by file name within each class.
    """

    def __init__(self, extensions: Sequence[str] = IMAGE_EXTENSIONS):
        """
        Initialize indexer.

        Args:
            extensions: Accepted image suffixes, compared case-insensitively
        """
        self.extensions = tuple(
            ext.lower() if ext.startswith('.') else f".{ext.lower()}"
            for ext in extensions
        )
        self.logger = logging.getLogger(__name__)

    def list_classes(self, dataset_root: Path) -> List[Path]:
        """
        List class folders under the dataset root.

        Raises:
            DatasetReadError: If the root is missing, unreadable or has no
                class folders
        """
        root = Path(dataset_root)
        if not root.exists():
            raise DatasetReadError(root, "directory does not exist")
        if not root.is_dir():
            raise DatasetReadError(root, "not a directory")

        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise DatasetReadError(root, str(e)) from e

        class_dirs = [p for p in entries if p.is_dir() and not is_hidden(p)]
        if not class_dirs:
            raise DatasetReadError(root, "no class folders found")

        return class_dirs

    def _list_images(self, class_dir: Path) -> List[Path]:
        try:
            entries = sorted(class_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise DatasetReadError(class_dir, str(e)) from e

        images = []
        for entry in entries:
            if entry.is_dir():
                self.logger.debug(f"Ignoring nested folder {entry}")
                continue
            if is_image_file(entry, self.extensions):
                images.append(entry)
        return images

    def index_by_class(self, dataset_root: Path) -> Dict[str, List[Sample]]:
        """
        Index the dataset grouped by class.

        Classes without qualifying images map to an empty list.

        Args:
            dataset_root: Folder whose immediate subfolders are classes

        Returns:
            Ordered mapping of class name to its samples
        """
        grouped: Dict[str, List[Sample]] = {}

        for class_dir in self.list_classes(dataset_root):
            label = class_dir.name
            grouped[label] = [
                Sample(image_path=image, ground_truth=label)
                for image in self._list_images(class_dir)
            ]
            if not grouped[label]:
                self.logger.warning(f"Class '{label}' has no images")

        total = sum(len(samples) for samples in grouped.values())
        self.logger.info(
            f"Indexed {total} images in {len(grouped)} classes from {dataset_root}"
        )
        return grouped

    def index(self, dataset_root: Path) -> List[Sample]:
        """
        Index the dataset into a flat, ordered list of samples.

        Args:
            dataset_root: Folder whose immediate subfolders are classes

        Returns:
            One Sample per image, prediction unset
        """
        return [
            sample
            for samples in self.index_by_class(dataset_root).values()
            for sample in samples
        ]
