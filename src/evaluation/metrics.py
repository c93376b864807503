"""
Metrics calculation for multi-class image classification.

Provides:
- Accuracy
- Confusion matrix over the sorted label set
- Per-label precision/recall/F1
- Macro-averaged precision/recall/F1 (every class weighted equally)
"""

from typing import List, Dict, Any, Optional, Sequence, Tuple
from dataclasses import dataclass, field
import logging
import numpy as np

from src.core.errors import MetricsInputError


EPSILON = 1e-10


@dataclass(frozen=True, eq=False)
class ConfusionMatrix:
    """
    Square count table: rows are ground truth, columns are predictions.

    Attributes:
        labels: Sorted label list shared by rows and columns
        counts: Integer array of shape (len(labels), len(labels))
    """
    labels: Tuple[str, ...]
    counts: np.ndarray

    @classmethod
    def from_pairs(
        cls,
        ground_truths: Sequence[str],
        predictions: Sequence[str],
        labels: Optional[Sequence[str]] = None
    ) -> 'ConfusionMatrix':
        """Cross-tabulate paired labels. Labels default to the sorted union."""
        if labels is None:
            labels = sorted(set(ground_truths) | set(predictions))
        labels = tuple(labels)
        index = {label: i for i, label in enumerate(labels)}

        counts = np.zeros((len(labels), len(labels)), dtype=np.int64)
        for gt, pred in zip(ground_truths, predictions):
            counts[index[gt], index[pred]] += 1

        return cls(labels=labels, counts=counts)

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    @property
    def correct(self) -> int:
        return int(np.trace(self.counts))

    def row(self, ground_truth: str) -> List[int]:
        return [int(c) for c in self.counts[self.labels.index(ground_truth)]]

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """Nested mapping ground truth -> prediction -> count."""
        return {
            gt: {pred: int(self.counts[i, j]) for j, pred in enumerate(self.labels)}
            for i, gt in enumerate(self.labels)
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfusionMatrix):
            return NotImplemented
        return self.labels == other.labels and np.array_equal(self.counts, other.counts)


@dataclass(frozen=True)
class LabelMetrics:
    """
    Metrics for a single class.

    Attributes:
        label: Class label
        precision: TP / (TP + FP + eps)
        recall: TP / (TP + FN + eps)
        f1: Harmonic mean of precision and recall
        support: Number of ground-truth occurrences
        true_positives: Correct predictions of this label
        false_positives: Other classes predicted as this label
        false_negatives: This label predicted as another class
    """
    label: str
    precision: float
    recall: float
    f1: float
    support: int
    true_positives: int
    false_positives: int
    false_negatives: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            'label': self.label,
            'precision': self.precision,
            'recall': self.recall,
            'f1': self.f1,
            'support': self.support,
            'true_positives': self.true_positives,
            'false_positives': self.false_positives,
            'false_negatives': self.false_negatives,
        }


@dataclass(frozen=True)
class EvaluationMetrics:
    """
    Container for evaluation metrics.

    Attributes:
        accuracy: Fraction of samples predicted correctly
        precision: Macro-averaged precision
        recall: Macro-averaged recall
        f1: Macro-averaged F1-score
        num_samples: Number of paired samples the metrics are computed over
        per_label: Per-class metrics, in label order
    """
    accuracy: float
    precision: float
    recall: float
    f1: float
    num_samples: int
    per_label: Tuple[LabelMetrics, ...] = field(default_factory=tuple)

    @property
    def labels(self) -> List[str]:
        return [m.label for m in self.per_label]

    def for_label(self, label: str) -> LabelMetrics:
        for metrics in self.per_label:
            if metrics.label == label:
                return metrics
        raise KeyError(label)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            'accuracy': self.accuracy,
            'precision': self.precision,
            'recall': self.recall,
            'f1': self.f1,
            'num_samples': self.num_samples,
            'per_label': [m.to_dict() for m in self.per_label],
        }


class MetricCalculator:
    """
    Calculate classification metrics from paired label sequences.

    Pure: the same inputs always produce the same outputs. Per-label ratios
    are guarded by a small epsilon so labels without predictions or without
    ground-truth occurrences score 0 instead of dividing by zero.
    """

    def __init__(self, epsilon: float = EPSILON):
        """
        Initialize metric calculator.

        Args:
            epsilon: Denominator guard for precision/recall/F1
        """
        self.epsilon = epsilon
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def validate_inputs(ground_truths: Sequence[str], predictions: Sequence[str]) -> None:
        if len(ground_truths) != len(predictions):
            raise MetricsInputError(
                f"Ground truths ({len(ground_truths)}) and predictions "
                f"({len(predictions)}) differ in length"
            )
        if len(ground_truths) == 0:
            raise MetricsInputError("Cannot compute metrics over zero samples")

    def build_confusion_matrix(
        self,
        ground_truths: Sequence[str],
        predictions: Sequence[str]
    ) -> ConfusionMatrix:
        """Build the confusion matrix over the sorted union of labels."""
        self.validate_inputs(ground_truths, predictions)
        return ConfusionMatrix.from_pairs(ground_truths, predictions)

    def calculate(
        self,
        ground_truths: Sequence[str],
        predictions: Sequence[str]
    ) -> Tuple[EvaluationMetrics, ConfusionMatrix]:
        """
        Calculate accuracy and macro-averaged precision/recall/F1.

        Args:
            ground_truths: True labels, paired index-for-index with predictions
            predictions: Predicted labels

        Returns:
            Tuple of (EvaluationMetrics, ConfusionMatrix)

        Raises:
            MetricsInputError: If the sequences are empty or differ in length
        """
        matrix = self.build_confusion_matrix(ground_truths, predictions)
        return self.metrics_from_matrix(matrix), matrix

    def metrics_from_matrix(self, matrix: ConfusionMatrix) -> EvaluationMetrics:
        """Derive all metrics from a confusion matrix."""
        if matrix.total == 0:
            raise MetricsInputError("Cannot compute metrics over an empty confusion matrix")

        counts = matrix.counts
        predicted_totals = counts.sum(axis=0)
        actual_totals = counts.sum(axis=1)

        per_label = []
        for i, label in enumerate(matrix.labels):
            tp = int(counts[i, i])
            fp = int(predicted_totals[i]) - tp
            fn = int(actual_totals[i]) - tp

            precision = tp / (tp + fp + self.epsilon)
            recall = tp / (tp + fn + self.epsilon)
            f1 = 2 * precision * recall / (precision + recall + self.epsilon)

            per_label.append(LabelMetrics(
                label=label,
                precision=precision,
                recall=recall,
                f1=f1,
                support=int(actual_totals[i]),
                true_positives=tp,
                false_positives=fp,
                false_negatives=fn,
            ))

        return EvaluationMetrics(
            accuracy=matrix.correct / matrix.total,
            precision=float(np.mean([m.precision for m in per_label])),
            recall=float(np.mean([m.recall for m in per_label])),
            f1=float(np.mean([m.f1 for m in per_label])),
            num_samples=matrix.total,
            per_label=tuple(per_label),
        )
