"""Classifier evaluation pipeline.

Integrates:
- Dataset indexing (class-per-folder image trees)
- Inference through a ClassifierPort (per-image failures excluded)
- Metrics aggregation (accuracy, macro precision/recall/F1, confusion matrix)
- Reporting (sample export, CSV, HTML, JSON, confusion matrix plot)
- Dataset splitting and the split -> train -> evaluate workflow

Usage:
  # Evaluate precomputed predictions
  python -m src.pipeline.run_pipeline evaluate --dataset data/pets --predictions preds.json --output results/pets

  # Evaluate a TorchScript model
  python -m src.pipeline.run_pipeline evaluate --dataset data/pets --model model.pt --labels labels.txt --output results/pets

  # Split a dataset
  python -m src.pipeline.run_pipeline split --dataset data/pets --train data/train --val data/val --test data/test
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any

from src.core.errors import (
    DatasetReadError,
    MetricsInputError,
    PipelineError,
    ReportWriteError,
    SplitIOError,
)
from src.core.events import EventLog, StageEvent
from src.classifier import ClassifierPort, ModelTrainer, PredictionFileClassifier
from src.dataset import DatasetIndexer, DatasetSplitter, SplitResult, clear_destinations
from src.dataset import SplitConfig as SplitterConfig
from src.evaluation import (
    Evaluator,
    InferenceResult,
    EvaluationMetrics,
    ConfusionMatrix,
    SampleExporter,
    ExportResult,
    ReportGenerator,
    ReportFormat,
    ReportArtifacts,
    Visualizer,
    format_summary,
)
from src.evaluation import EvaluationConfig as EvaluatorConfig
from src.pipeline.config_parser import (
    PipelineConfig,
    EvaluationConfig,
    OutputConfig,
    parse_args_to_config,
    all_inputs_selected,
    missing_inputs,
)
from src.utils.benchmark import Timer, StageTimings


logger = logging.getLogger("pipeline")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

TRAINING_FOLDERS = ('train_data', 'val_data', 'test_data')


class PipelineStage(Enum):
    """Progress of one evaluation run."""
    PENDING = "pending"
    INDEXED = "indexed"
    INFERRED = "inferred"
    AGGREGATED = "aggregated"
    REPORTED = "reported"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """
    Everything one evaluation run produced.

    Attributes:
        stage: Last stage reached (REPORTED on success)
        output_dir: Folder holding the artifacts
        inference: Evaluated and excluded samples
        metrics: Aggregated metrics
        confusion_matrix: Matrix the metrics came from
        export: Exported sample images
        artifacts: Written report files and write failures
        plot_path: Confusion matrix image, if drawn
        events: Structured events from every stage, in order
        timings: Seconds spent per stage
    """
    stage: PipelineStage
    output_dir: Path
    inference: Optional[InferenceResult] = None
    metrics: Optional[EvaluationMetrics] = None
    confusion_matrix: Optional[ConfusionMatrix] = None
    export: Optional[ExportResult] = None
    artifacts: Optional[ReportArtifacts] = None
    plot_path: Optional[Path] = None
    events: List[StageEvent] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def report_failures(self) -> List[ReportWriteError]:
        return list(self.artifacts.failures) if self.artifacts is not None else []

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            'stage': self.stage.value,
            'output_dir': str(self.output_dir),
            'inference': self.inference.to_dict() if self.inference else None,
            'metrics': self.metrics.to_dict() if self.metrics else None,
            'exported': [str(p) for p in self.export.exported] if self.export else [],
            'artifacts': {
                fmt.value: str(path) for fmt, path in self.artifacts.written.items()
            } if self.artifacts else {},
            'timings': dict(self.timings),
            'events': [e.to_dict() for e in self.events],
        }


class EvaluationPipeline:
    """
    Index -> infer -> aggregate -> report.

    Per-image inference failures are excluded and the run continues.
    A fatal failure (unreadable dataset, nothing left to aggregate) moves the
    pipeline to FAILED and raises a single PipelineError naming the stage.
    Report write failures are recorded on the result but do not fail the run.
    """

    def __init__(
        self,
        classifier: ClassifierPort,
        evaluation: Optional[EvaluationConfig] = None,
        output: Optional[OutputConfig] = None,
        indexer: Optional[DatasetIndexer] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize pipeline.

        Args:
            classifier: Classifier under evaluation
            evaluation: Sampling, worker and visualization settings
            output: Artifact file names
            indexer: Dataset indexer (default image extensions if None)
            seed: Sample export seed; overrides evaluation.seed when given
        """
        self.classifier = classifier
        self.evaluation = evaluation or EvaluationConfig()
        self.output = output or OutputConfig()
        self.indexer = indexer or DatasetIndexer()
        self.seed = seed if seed is not None else self.evaluation.seed
        self.stage = PipelineStage.PENDING
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, classifier: ClassifierPort, config: PipelineConfig) -> 'EvaluationPipeline':
        """Create a pipeline from a merged PipelineConfig."""
        return cls(
            classifier,
            evaluation=config.evaluation,
            output=config.output,
            indexer=DatasetIndexer(config.dataset.extensions),
            seed=config.seed_for(config.evaluation.seed)
        )

    def _advance(self, stage: PipelineStage, log: EventLog) -> None:
        self.stage = stage
        log.info(f"Stage {stage.value}")

    def _fail(
        self,
        stage_name: str,
        error: BaseException,
        log: EventLog,
        path: Optional[Path] = None
    ) -> PipelineError:
        self.stage = PipelineStage.FAILED
        pipeline_error = PipelineError(stage_name, error, path=path)
        log.error(str(pipeline_error), stage=stage_name)
        return pipeline_error

    def run(self, dataset_root: Path, output_dir: Path) -> PipelineResult:
        """
        Evaluate the classifier on ``dataset_root`` and write artifacts.

        Args:
            dataset_root: Folder with one subfolder per class
            output_dir: Destination for CSV, HTML, JSON, plot and samples

        Returns:
            PipelineResult in stage REPORTED

        Raises:
            PipelineError: On a fatal stage failure
        """
        dataset_root = Path(dataset_root)
        output_dir = Path(output_dir)
        log = EventLog("pipeline", self.logger)
        timings = StageTimings()
        result = PipelineResult(stage=self.stage, output_dir=output_dir)

        self.stage = PipelineStage.PENDING

        # Index
        try:
            with Timer("index", timings):
                samples = self.indexer.index(dataset_root)
        except DatasetReadError as e:
            raise self._fail("index", e, log) from e
        self._advance(PipelineStage.INDEXED, log)

        # Infer
        evaluator = Evaluator(
            self.classifier,
            EvaluatorConfig(
                num_workers=self.evaluation.num_workers,
                show_progress=self.evaluation.show_progress
            )
        )
        with Timer("inference", timings, images=len(samples)):
            inference = evaluator.run_inference(samples)
        result.inference = inference
        self._advance(PipelineStage.INFERRED, log)

        if inference.num_excluded:
            log.warning(
                f"{inference.num_excluded} of {inference.num_attempted} images "
                f"excluded from metrics",
                excluded=inference.num_excluded
            )

        # Aggregate
        try:
            with Timer("aggregate", timings):
                metrics, matrix = evaluator.aggregate(inference)
        except MetricsInputError as e:
            raise self._fail("aggregate", e, log, path=dataset_root) from e
        result.metrics = metrics
        result.confusion_matrix = matrix
        self._advance(PipelineStage.AGGREGATED, log)

        # Report
        with Timer("report", timings):
            self._report(result, output_dir, log)
        self._advance(PipelineStage.REPORTED, log)

        result.stage = self.stage
        result.timings = timings.durations()
        result.events = (
            list(inference.events)
            + (list(result.export.events) if result.export else [])
            + list(result.artifacts.events)
            + log.events
        )
        return result

    def _report(self, result: PipelineResult, output_dir: Path, log: EventLog) -> None:
        samples_dir = output_dir / self.output.samples_dir_name

        # Gallery shows only this run's samples
        if samples_dir.exists():
            try:
                shutil.rmtree(samples_dir)
            except OSError as e:
                log.warning(f"Could not clear {samples_dir}: {e}", path=samples_dir)

        exporter = SampleExporter(count=self.evaluation.num_samples, seed=self.seed)
        result.export = exporter.export(result.inference.samples, samples_dir)

        plot_failure = None
        if self.evaluation.visualizations:
            try:
                result.plot_path = Visualizer().plot_confusion_matrix(
                    result.confusion_matrix,
                    output_dir / self.output.plot_name
                )
            except ReportWriteError as e:
                plot_failure = e
                log.error(str(e), path=e.path)

        generator = ReportGenerator()
        result.artifacts = generator.generate_report(
            result.metrics,
            result.confusion_matrix,
            output_dir,
            sample_folder=samples_dir,
            inference=result.inference,
            plot_path=result.plot_path,
            file_names={
                ReportFormat.CSV: self.output.confusion_matrix_name,
                ReportFormat.HTML: self.output.report_name,
                ReportFormat.JSON: self.output.summary_name,
            }
        )
        if plot_failure is not None:
            result.artifacts.failures.append(plot_failure)


def build_classifier(config: PipelineConfig) -> ClassifierPort:
    """
    Create the classifier selected by ``config.classifier.backend``.

    Raises:
        FileNotFoundError: If a predictions/model/labels file is missing
        ValueError: If the predictions file cannot be parsed
    """
    clf = config.classifier
    if clf.backend == 'predictions':
        predictions_path = Path(clf.predictions_path)
        return PredictionFileClassifier.from_file(
            predictions_path,
            base_dir=predictions_path.parent
        )

    # torch is only needed for this backend
    from src.classifier.torchscript import TorchScriptClassifier

    return TorchScriptClassifier.from_files(
        Path(clf.model_path),
        Path(clf.labels_path),
        image_size=clf.image_size,
        mean=clf.mean,
        std=clf.std,
        device=clf.device
    )


def run_evaluation(config: PipelineConfig, classifier: Optional[ClassifierPort] = None) -> PipelineResult:
    """Evaluate the configured classifier and print a summary."""
    logger.info("=" * 80)
    logger.info("Classifier Evaluation")
    logger.info("=" * 80)

    classifier = classifier or build_classifier(config)
    logger.info(f"Classifier: {classifier.get_name()}")
    logger.info(f"Dataset: {config.dataset.root}")
    logger.info(f"Output: {config.output.output_dir}")

    pipeline = EvaluationPipeline.from_config(classifier, config)
    result = pipeline.run(Path(config.dataset.root), Path(config.output.output_dir))

    print(format_summary(result.metrics, result.inference, result.timings))

    for failure in result.report_failures:
        logger.warning(f"Artifact not written: {failure.path}")
    for fmt, path in result.artifacts.written.items():
        logger.info(f"  {fmt.value.upper()}: {path}")

    return result


def run_split(config: PipelineConfig) -> SplitResult:
    """
    Split ``config.dataset.root`` into the configured train/val/test roots.

    Raises:
        PipelineError: If the dataset cannot be read or a destination
            cannot be prepared
    """
    split_cfg = config.split
    roots = [Path(split_cfg.train_root), Path(split_cfg.val_root), Path(split_cfg.test_root)]

    logger.info("=" * 80)
    logger.info("Dataset Split")
    logger.info("=" * 80)
    logger.info(
        f"Ratios: train={split_cfg.train_ratio}, val={split_cfg.val_ratio}, "
        f"test={split_cfg.test_ratio}"
    )

    splitter = DatasetSplitter(SplitterConfig(
        train_ratio=split_cfg.train_ratio,
        val_ratio=split_cfg.val_ratio,
        test_ratio=split_cfg.test_ratio,
        seed=config.seed_for(split_cfg.seed),
        show_progress=config.show_progress
    ))

    if split_cfg.clear_destinations:
        for root in roots:
            try:
                clear_destinations(root)
            except OSError as e:
                raise PipelineError("split", SplitIOError(root, e)) from e

    try:
        result = splitter.split_directory(
            Path(config.dataset.root),
            *roots,
            indexer=DatasetIndexer(config.dataset.extensions)
        )
    except DatasetReadError as e:
        raise PipelineError("index", e) from e

    counts = result.counts()
    logger.info(
        f"✓ Copied {result.copied} images: train={counts['train']}, "
        f"val={counts['val']}, test={counts['test']}"
    )
    if result.failures:
        logger.warning(f"{len(result.failures)} files could not be copied")
    return result


@dataclass
class TrainingResult:
    """Split, training and test-set evaluation of one training run."""
    split: SplitResult
    classifier: ClassifierPort
    evaluation: PipelineResult


@dataclass
class ZeroShotTrainResult:
    """Zero-shot evaluation followed by a training run."""
    zero_shot: PipelineResult
    training: TrainingResult


def _remove_training_folders(folders: List[Path]) -> None:
    for folder in folders:
        if folder.exists():
            try:
                shutil.rmtree(folder)
            except OSError as e:
                logger.warning(f"Could not remove {folder}: {e}")


def run_training_pipeline(
    trainer: ModelTrainer,
    dataset_root: Path,
    output_dir: Path,
    work_dir: Optional[Path] = None,
    split_config: Optional[SplitterConfig] = None,
    evaluation: Optional[EvaluationConfig] = None,
    output: Optional[OutputConfig] = None,
    seed: Optional[int] = None
) -> TrainingResult:
    """
    Split the dataset, train through ``trainer`` and evaluate on the test split.

    Temporary ``train_data``/``val_data``/``test_data`` folders are created
    under ``work_dir`` (a fresh temporary directory if None) and removed
    when the run ends, whether it succeeded or not.

    Args:
        trainer: Training capability producing a classifier
        dataset_root: Folder with one subfolder per class
        output_dir: Trained model goes to ``output_dir/model``, reports to
            ``output_dir``
        work_dir: Parent folder for the temporary split folders
        split_config: Split ratios (60/20/20 if None)
        evaluation: Evaluation settings for the test-set run
        output: Artifact file names
        seed: Seed for both the split and the sample export

    Returns:
        TrainingResult

    Raises:
        PipelineError: If splitting, training or evaluation fails fatally
    """
    output_dir = Path(output_dir)
    owns_work_dir = work_dir is None
    work_dir = Path(tempfile.mkdtemp(prefix="classifier_eval_")) if owns_work_dir else Path(work_dir)
    folders = [work_dir / name for name in TRAINING_FOLDERS]
    train_root, val_root, test_root = folders

    logger.info("=" * 80)
    logger.info("STEP 1: Dataset Split")
    logger.info("=" * 80)

    try:
        try:
            clear_destinations(*folders)
        except OSError as e:
            raise PipelineError("split", SplitIOError(work_dir, e)) from e

        splitter = DatasetSplitter(split_config)
        try:
            split = splitter.split_directory(dataset_root, train_root, val_root, test_root, seed=seed)
        except DatasetReadError as e:
            raise PipelineError("index", e) from e

        logger.info("=" * 80)
        logger.info("STEP 2: Model Training")
        logger.info("=" * 80)

        model_dir = output_dir / "model"
        try:
            classifier = trainer.train(train_root, val_root, model_dir)
        except (OSError, RuntimeError, ValueError) as e:
            raise PipelineError("train", e, path=model_dir) from e
        logger.info(f"✓ Training complete: {classifier.get_name()}")

        logger.info("=" * 80)
        logger.info("STEP 3: Test-Set Evaluation")
        logger.info("=" * 80)

        pipeline = EvaluationPipeline(classifier, evaluation=evaluation, output=output, seed=seed)
        evaluation_result = pipeline.run(test_root, output_dir)
    finally:
        _remove_training_folders(folders)
        if owns_work_dir:
            shutil.rmtree(work_dir, ignore_errors=True)
        logger.info("Temporary training data cleaned up")

    return TrainingResult(split=split, classifier=classifier, evaluation=evaluation_result)


def run_zero_shot_and_train(
    base_classifier: ClassifierPort,
    trainer: ModelTrainer,
    dataset_root: Path,
    output_dir: Path,
    work_dir: Optional[Path] = None,
    split_config: Optional[SplitterConfig] = None,
    evaluation: Optional[EvaluationConfig] = None,
    output: Optional[OutputConfig] = None,
    seed: Optional[int] = None
) -> ZeroShotTrainResult:
    """
    Evaluate ``base_classifier`` on the whole dataset, then train and evaluate.

    Reports go to ``output_dir/zero_shot`` and ``output_dir/trained``.
    """
    output_dir = Path(output_dir)

    logger.info("Zero-shot evaluation of the base classifier")
    zero_shot = EvaluationPipeline(
        base_classifier, evaluation=evaluation, output=output, seed=seed
    ).run(dataset_root, output_dir / "zero_shot")

    training = run_training_pipeline(
        trainer,
        dataset_root,
        output_dir / "trained",
        work_dir=work_dir,
        split_config=split_config,
        evaluation=evaluation,
        output=output,
        seed=seed
    )

    logger.info(
        f"Accuracy: zero-shot {zero_shot.metrics.accuracy:.4f} -> "
        f"trained {training.evaluation.metrics.accuracy:.4f}"
    )
    return ZeroShotTrainResult(zero_shot=zero_shot, training=training)


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for pipeline."""
    try:
        config = parse_args_to_config(argv)
    except (FileNotFoundError, ValueError, TypeError) as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(config.verbose)

    if not all_inputs_selected(config):
        logger.error(f"Missing required inputs: {', '.join(missing_inputs(config))}")
        return 2

    try:
        if config.command == 'split':
            run_split(config)
        else:
            run_evaluation(config)
    except PipelineError as e:
        logger.error(str(e))
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Could not load classifier: {e}")
        return 1

    return 0


if __name__ == '__main__':
    raise SystemExit(main())
