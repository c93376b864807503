"""
Shared fixtures: on-disk image trees and fake classifiers.
"""

from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from src.classifier.port import ClassifierPort, ModelTrainer
from src.core.errors import InferenceError


def write_image_tree(root: Path, layout: Dict[str, List[str]]) -> Path:
    """
    Create ``root/{class}/{file}`` with small placeholder image files.

    Args:
        root: Dataset root to create
        layout: Class name -> file names

    Returns:
        The dataset root
    """
    root = Path(root)
    for class_name, files in layout.items():
        class_dir = root / class_name
        class_dir.mkdir(parents=True, exist_ok=True)
        for name in files:
            (class_dir / name).write_bytes(f"{class_name}/{name}".encode())
    return root


class MappingClassifier(ClassifierPort):
    """Returns a fixed label per file name; unknown or failing files raise."""

    def __init__(self, labels: Dict[str, str], failing: Optional[Set[str]] = None):
        self.labels = labels
        self.failing = failing or set()
        self.calls: List[Path] = []

    def predict(self, image_path: Path) -> str:
        image_path = Path(image_path)
        self.calls.append(image_path)
        if image_path.name in self.failing or image_path.name not in self.labels:
            raise InferenceError(image_path, "unreadable image")
        return self.labels[image_path.name]


class FolderClassifier(ClassifierPort):
    """Perfect classifier: predicts the parent folder name."""

    def predict(self, image_path: Path) -> str:
        return Path(image_path).parent.name


class UnreadableImageClassifier(ClassifierPort):
    """Predicts the parent folder, but raises OSError for the named files."""

    def __init__(self, unreadable: Set[str]):
        self.unreadable = unreadable

    def predict(self, image_path: Path) -> str:
        image_path = Path(image_path)
        if image_path.name in self.unreadable:
            raise OSError(f"cannot identify image file {image_path}")
        return image_path.parent.name


class RecordingTrainer(ModelTrainer):
    """Trainer that records the split it was given and returns a FolderClassifier."""

    def __init__(self):
        self.train_files: List[Path] = []
        self.val_files: List[Path] = []
        self.output_dir: Optional[Path] = None

    def train(self, train_root: Path, val_root: Path, output_dir: Path) -> ClassifierPort:
        self.train_files = sorted(p for p in Path(train_root).rglob('*') if p.is_file())
        self.val_files = sorted(p for p in Path(val_root).rglob('*') if p.is_file())
        self.output_dir = Path(output_dir)
        return FolderClassifier()


@pytest.fixture
def image_tree(tmp_path):
    """Factory fixture: image_tree(layout, name='dataset') -> dataset root."""
    def _make(layout: Dict[str, List[str]], name: str = 'dataset') -> Path:
        return write_image_tree(tmp_path / name, layout)
    return _make


@pytest.fixture
def two_class_dataset(image_tree):
    """Two classes, two images each: A/a1.jpg, A/a2.jpg, B/b1.jpg, B/b2.jpg."""
    return image_tree({
        'A': ['a1.jpg', 'a2.jpg'],
        'B': ['b1.jpg', 'b2.jpg'],
    })
