"""
TorchScript image classifier adapter.

Loads a scripted/traced model (``torch.jit.save``) and returns the arg-max
class of its logits. Preprocessing: RGB conversion, bilinear resize to a
square input, scaling to [0, 1] and per-channel normalization.
"""

from typing import List, Optional, Sequence, Tuple
from pathlib import Path
import logging
import threading

import numpy as np
import torch
from PIL import Image

from src.core.errors import InferenceError
from .port import ClassifierPort


IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)


def load_labels(labels_path: Path) -> List[str]:
    """
    Load class labels, one per line, in model output order.

    Blank lines are ignored.
    """
    labels_path = Path(labels_path)
    if not labels_path.exists():
        raise FileNotFoundError(f"Labels file not found: {labels_path}")

    with open(labels_path, 'r', encoding='utf-8') as f:
        labels = [line.strip() for line in f if line.strip()]

    if not labels:
        raise ValueError(f"No labels found in {labels_path}")
    return labels


class TorchScriptClassifier(ClassifierPort):
    """Top-1 classifier over a TorchScript model."""

    def __init__(
        self,
        model: torch.jit.ScriptModule,
        labels: Sequence[str],
        image_size: int = 224,
        mean: Tuple[float, float, float] = IMAGENET_MEAN,
        std: Tuple[float, float, float] = IMAGENET_STD,
        device: str = 'cpu'
    ):
        """
        Initialize classifier.

        Args:
            model: Loaded TorchScript module producing (1, num_classes) logits
            labels: Class labels indexed by model output position
            image_size: Side of the square model input
            mean: Per-channel normalization mean
            std: Per-channel normalization std
            device: Torch device ('cpu', 'cuda' or 'auto')
        """
        if device == 'auto':
            device = 'cuda' if torch.cuda.is_available() else 'cpu'

        self.device = torch.device(device)
        self.model = model.to(self.device)
        self.model.eval()
        self.labels = list(labels)
        self.image_size = image_size
        self.mean = np.asarray(mean, dtype=np.float32).reshape(3, 1, 1)
        self.std = np.asarray(std, dtype=np.float32).reshape(3, 1, 1)
        self.logger = logging.getLogger(__name__)
        # Scripted modules are not guaranteed thread-safe
        self._lock = threading.Lock()

    @classmethod
    def from_files(
        cls,
        model_path: Path,
        labels_path: Path,
        image_size: int = 224,
        mean: Optional[Tuple[float, float, float]] = None,
        std: Optional[Tuple[float, float, float]] = None,
        device: str = 'cpu'
    ) -> 'TorchScriptClassifier':
        """Load model and labels from disk."""
        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        model = torch.jit.load(str(model_path), map_location='cpu')
        labels = load_labels(labels_path)

        classifier = cls(
            model,
            labels,
            image_size=image_size,
            mean=tuple(mean) if mean else IMAGENET_MEAN,
            std=tuple(std) if std else IMAGENET_STD,
            device=device
        )
        classifier.logger.info(
            f"Loaded TorchScript model {model_path.name} with {len(labels)} labels "
            f"on {classifier.device}"
        )
        return classifier

    def preprocess(self, image_path: Path) -> torch.Tensor:
        """Load an image into a normalized (1, 3, H, W) float tensor."""
        with Image.open(image_path) as image:
            image = image.convert('RGB').resize(
                (self.image_size, self.image_size), Image.Resampling.BILINEAR
            )
            array = np.asarray(image, dtype=np.float32) / 255.0

        array = array.transpose(2, 0, 1)  # HWC -> CHW
        array = (array - self.mean) / self.std
        return torch.from_numpy(np.ascontiguousarray(array)).unsqueeze(0)

    def predict(self, image_path: Path) -> str:
        try:
            inputs = self.preprocess(Path(image_path)).to(self.device)
        except OSError as e:
            raise InferenceError(image_path, e) from e

        try:
            with self._lock, torch.no_grad():
                logits = self.model(inputs)
            index = int(torch.argmax(logits.reshape(-1)).item())
        except (RuntimeError, AttributeError) as e:
            raise InferenceError(image_path, e) from e

        if index >= len(self.labels):
            raise InferenceError(
                image_path,
                f"model output index {index} has no label ({len(self.labels)} labels)"
            )
        return self.labels[index]

    def get_name(self) -> str:
        return f"TorchScriptClassifier({len(self.labels)} labels)"
