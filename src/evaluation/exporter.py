"""
Export a random handful of evaluated images for visual inspection.

Files are renamed to carry their export index, ground truth and prediction::

    sample1_gt_cat_pred_dog.jpg
"""

from typing import List, Optional
from dataclasses import dataclass, field
from pathlib import Path
import logging
import random
import shutil

from src.core.events import EventLog, StageEvent
from src.dataset.indexer import Sample


def _safe_label(label: str) -> str:
    return label.replace('/', '_').replace('\\', '_')


def export_name(index: int, sample: Sample) -> str:
    """File name for the ``index``-th (1-based) exported sample."""
    return (
        f"sample{index}_gt_{_safe_label(sample.ground_truth)}"
        f"_pred_{_safe_label(sample.prediction)}{sample.image_path.suffix}"
    )


@dataclass
class ExportResult:
    """
    Outcome of a sample export.

    Attributes:
        output_dir: Folder the samples were copied into
        exported: Paths of the copied files
        failures: Source images that could not be copied, with the reason
        events: Structured events emitted while exporting
    """
    output_dir: Path
    exported: List[Path] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    events: List[StageEvent] = field(default_factory=list)


class SampleExporter:
    """
    Copy ``count`` randomly chosen evaluated samples into a folder.

    Export is a convenience artifact: copy errors are logged and recorded,
    never raised.
    """

    def __init__(self, count: int = 3, seed: Optional[int] = None):
        """
        Initialize exporter.

        Args:
            count: Number of samples to export
            seed: Selection seed for reproducible exports
        """
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        self.count = count
        self.seed = seed
        self.logger = logging.getLogger(__name__)

    def select(self, samples: List[Sample], seed: Optional[int] = None) -> List[Sample]:
        """Pick up to ``count`` evaluated samples uniformly without replacement."""
        evaluated = [s for s in samples if s.is_evaluated]
        rng = random.Random(self.seed if seed is None else seed)
        return rng.sample(evaluated, min(self.count, len(evaluated)))

    def export(
        self,
        samples: List[Sample],
        output_dir: Path,
        seed: Optional[int] = None
    ) -> ExportResult:
        """
        Copy the selected samples into ``output_dir``.

        Args:
            samples: Evaluated samples (unevaluated ones are ignored)
            output_dir: Destination folder, created if missing
            seed: Selection seed; falls back to the exporter's seed

        Returns:
            ExportResult with exported paths and failures
        """
        log = EventLog("export", self.logger)
        output_dir = Path(output_dir)
        result = ExportResult(output_dir=output_dir)

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.failures.append(f"{output_dir}: {e}")
            log.error(f"Cannot create sample folder {output_dir}: {e}", path=output_dir)
            result.events = log.events
            return result

        for index, sample in enumerate(self.select(samples, seed=seed), start=1):
            destination = output_dir / export_name(index, sample)
            try:
                shutil.copy2(sample.image_path, destination)
                result.exported.append(destination)
            except OSError as e:
                result.failures.append(f"{sample.image_path}: {e}")
                log.warning(
                    f"Could not export {sample.image_path}: {e}",
                    path=sample.image_path
                )

        log.info(f"Exported {len(result.exported)} samples to {output_dir}")
        result.events = log.events
        return result
