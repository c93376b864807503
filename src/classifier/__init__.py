"""
Classifier interfaces and adapters.

The TorchScript adapter lives in ``src.classifier.torchscript`` and is
imported on demand so that the rest of the package does not load torch.
"""

from .port import ClassifierPort, ModelTrainer
from .prediction_file import PredictionFileClassifier, load_predictions

__all__ = [
    'ClassifierPort',
    'ModelTrainer',
    'PredictionFileClassifier',
    'load_predictions',
]
