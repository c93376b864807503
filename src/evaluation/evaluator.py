"""
Evaluator for running a classifier over indexed samples.

Orchestrates per-image inference, absorbs per-image failures, and
aggregates the successfully inferred subset into metrics.
"""

from typing import List, Dict, Any, Optional, Tuple, Union
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor
import logging
from tqdm import tqdm

from src.core.errors import InferenceError
from src.core.events import EventLog, StageEvent
from src.classifier.port import ClassifierPort
from src.dataset.indexer import Sample
from .metrics import MetricCalculator, EvaluationMetrics, ConfusionMatrix


@dataclass
class EvaluationConfig:
    """
    Configuration for the inference stage.

    Attributes:
        num_workers: Parallel inference threads (1 = sequential)
        show_progress: Show a progress bar while inferring
    """
    num_workers: int = 1
    show_progress: bool = True

    def __post_init__(self):
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")


@dataclass
class InferenceResult:
    """
    Outcome of running the classifier over a sample list.

    Attributes:
        samples: Successfully inferred samples, in input order
        failures: Per-image inference errors (excluded from metrics)
        events: Structured events emitted during inference
    """
    samples: List[Sample] = field(default_factory=list)
    failures: List[InferenceError] = field(default_factory=list)
    events: List[StageEvent] = field(default_factory=list)

    @property
    def ground_truths(self) -> List[str]:
        return [s.ground_truth for s in self.samples]

    @property
    def predictions(self) -> List[str]:
        return [s.prediction for s in self.samples]

    @property
    def num_evaluated(self) -> int:
        return len(self.samples)

    @property
    def num_excluded(self) -> int:
        return len(self.failures)

    @property
    def num_attempted(self) -> int:
        return self.num_evaluated + self.num_excluded

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'num_attempted': self.num_attempted,
            'num_evaluated': self.num_evaluated,
            'num_excluded': self.num_excluded,
            'excluded': [str(f.image_path) for f in self.failures],
        }


class Evaluator:
    """
    Runs a ClassifierPort over samples and computes metrics.

    A sample whose inference fails is excluded from both the ground-truth
    and prediction sequences; the remaining samples are still evaluated.
    With ``num_workers > 1`` inference runs on a thread pool, but results
    are collected in input order so the output never depends on completion
    order.
    """

    def __init__(
        self,
        classifier: ClassifierPort,
        config: Optional[EvaluationConfig] = None,
        metric_calculator: Optional[MetricCalculator] = None
    ):
        """
        Initialize evaluator.

        Args:
            classifier: Classifier to evaluate
            config: Evaluation configuration
            metric_calculator: Metrics engine (default epsilon if None)
        """
        self.classifier = classifier
        self.config = config or EvaluationConfig()
        self.metric_calculator = metric_calculator or MetricCalculator()
        self.logger = logging.getLogger(__name__)

    def predict_label(self, sample: Sample) -> str:
        """
        Ask the classifier for one sample's label.

        Raises:
            InferenceError: If the classifier fails or returns no label
        """
        label = self.classifier.predict(sample.image_path)
        if not isinstance(label, str) or not label:
            raise InferenceError(sample.image_path, f"invalid label {label!r}")
        return label

    def _attempt(self, sample: Sample) -> Tuple[Sample, Union[str, InferenceError]]:
        try:
            return sample, self.predict_label(sample)
        except InferenceError as e:
            return sample, e
        except Exception as e:
            return sample, InferenceError(sample.image_path, e)

    def run_inference(self, samples: List[Sample]) -> InferenceResult:
        """
        Predict every sample, skipping those that fail.

        Args:
            samples: Indexed samples without predictions

        Returns:
            InferenceResult with the evaluated subset and the failures
        """
        log = EventLog("inference", self.logger)
        result = InferenceResult()

        log.info(
            f"Running {self.classifier.get_name()} on {len(samples)} images "
            f"({self.config.num_workers} worker(s))"
        )

        if self.config.num_workers > 1:
            executor = ThreadPoolExecutor(max_workers=self.config.num_workers)
            outcomes = executor.map(self._attempt, samples)
        else:
            executor = None
            outcomes = map(self._attempt, samples)

        try:
            pbar = tqdm(
                outcomes,
                total=len(samples),
                desc="Inference",
                unit="img",
                disable=not self.config.show_progress
            )
            for sample, outcome in pbar:
                if isinstance(outcome, InferenceError):
                    result.failures.append(outcome)
                    log.warning(str(outcome), path=outcome.image_path)
                    continue

                sample.set_prediction(outcome)
                result.samples.append(sample)
                self.logger.debug(
                    f"GT: {sample.ground_truth} | Pred: {sample.prediction} "
                    f"({sample.image_path.name})"
                )
            pbar.close()
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        log.info(
            f"Inferred {result.num_evaluated}/{result.num_attempted} images, "
            f"{result.num_excluded} excluded",
            evaluated=result.num_evaluated,
            excluded=result.num_excluded
        )
        result.events = log.events
        return result

    def aggregate(self, inference: InferenceResult) -> Tuple[EvaluationMetrics, ConfusionMatrix]:
        """
        Compute metrics over the successfully inferred samples.

        Raises:
            MetricsInputError: If no sample was inferred
        """
        return self.metric_calculator.calculate(
            inference.ground_truths,
            inference.predictions
        )


def format_summary(
    metrics: EvaluationMetrics,
    inference: Optional[InferenceResult] = None,
    timings: Optional[Dict[str, float]] = None
) -> str:
    """
    Get human-readable summary of evaluation results.

    Returns:
        Formatted summary string
    """
    summary = [
        "=" * 60,
        "EVALUATION SUMMARY",
        "=" * 60,
        f"Evaluated samples: {metrics.num_samples}",
    ]
    if inference is not None:
        summary.append(f"Excluded samples:  {inference.num_excluded}")

    summary.extend([
        "",
        "METRICS (macro-averaged):",
        "-" * 60,
        f"Accuracy:  {metrics.accuracy:.4f}",
        f"Precision: {metrics.precision:.4f}",
        f"Recall:    {metrics.recall:.4f}",
        f"F1 Score:  {metrics.f1:.4f}",
        "",
        "PER LABEL:",
        "-" * 60,
        f"{'Label':<20} {'Precision':>10} {'Recall':>10} {'F1':>10} {'Support':>8}",
    ])
    for m in metrics.per_label:
        summary.append(
            f"{m.label[:20]:<20} {m.precision:>10.4f} {m.recall:>10.4f} "
            f"{m.f1:>10.4f} {m.support:>8}"
        )

    if timings:
        summary.extend(["", "TIMINGS:", "-" * 60])
        for stage, seconds in timings.items():
            summary.append(f"{stage:<20} {seconds:.3f}s")

    summary.append("=" * 60)
    return "\n".join(summary)
