"""
Classifier backed by a file of precomputed predictions.

Supported formats:

JSON::

    {"predictions": {"cat/img001.jpg": "cat", "dog/img003.jpeg": "cat"}}

(a flat ``{path: label}`` object is accepted too)

CSV with a header row::

    image_path,label
    cat/img001.jpg,cat
"""

from typing import Dict, Optional
from pathlib import Path
import csv
import json
import logging

from src.core.errors import InferenceError
from .port import ClassifierPort


def load_predictions(predictions_path: Path) -> Dict[str, str]:
    """
    Load an image → label mapping from JSON or CSV.

    Args:
        predictions_path: Path to a .json or .csv file

    Returns:
        Mapping of image key to predicted label
    """
    predictions_path = Path(predictions_path)
    if not predictions_path.exists():
        raise FileNotFoundError(f"Predictions file not found: {predictions_path}")

    suffix = predictions_path.suffix.lower()
    if suffix == '.json':
        with open(predictions_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a JSON object at the top level of {predictions_path}, "
                f"got {type(data).__name__}"
            )
        mapping = data.get('predictions', data)
        if not isinstance(mapping, dict):
            raise ValueError(f"Expected an object of predictions in {predictions_path}")
        return {str(k): str(v) for k, v in mapping.items()}

    if suffix == '.csv':
        with open(predictions_path, 'r', newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            missing = {'image_path', 'label'} - set(reader.fieldnames or [])
            if missing:
                raise ValueError(
                    f"Missing columns {sorted(missing)} in {predictions_path}"
                )
            return {row['image_path']: row['label'] for row in reader}

    raise ValueError(f"Unsupported predictions format: {suffix}")


class PredictionFileClassifier(ClassifierPort):
    """
    Replay predictions produced elsewhere.

    Keys are matched against the image's resolved path, then against
    ``class/file_name``, then against the bare file name.
    """

    def __init__(self, predictions: Dict[str, str], base_dir: Optional[Path] = None):
        """
        Initialize classifier.

        Args:
            predictions: Mapping of image key to label
            base_dir: Directory relative keys are resolved against
        """
        self.logger = logging.getLogger(__name__)
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self._by_key: Dict[str, str] = {}
        self._count = len(predictions)

        for key, label in predictions.items():
            self._by_key[Path(key).as_posix()] = label
            resolved = self._resolve(Path(key))
            if resolved is not None:
                self._by_key[resolved.as_posix()] = label

    @classmethod
    def from_file(cls, predictions_path: Path, base_dir: Optional[Path] = None) -> 'PredictionFileClassifier':
        predictions = load_predictions(predictions_path)
        classifier = cls(predictions, base_dir=base_dir)
        classifier.logger.info(
            f"Loaded {len(predictions)} predictions from {predictions_path}"
        )
        return classifier

    def _resolve(self, path: Path) -> Optional[Path]:
        if path.is_absolute():
            return path.resolve()
        if self.base_dir is not None:
            return (self.base_dir / path).resolve()
        return None

    def predict(self, image_path: Path) -> str:
        image_path = Path(image_path)
        candidates = [
            image_path.resolve().as_posix(),
            f"{image_path.parent.name}/{image_path.name}",
            image_path.name,
        ]
        for key in candidates:
            if key in self._by_key:
                return self._by_key[key]

        raise InferenceError(image_path, "no prediction recorded for this image")

    def __len__(self) -> int:
        return self._count
