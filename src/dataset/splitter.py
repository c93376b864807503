"""
Stratified train/val/test splitting of a class-partitioned image folder.

Ratios are applied independently inside every class so each subset keeps
the class balance of the source dataset. The split is materialized by
copying images into parallel directory trees::

    train_root/{class}/{image}
    val_root/{class}/{image}
    test_root/{class}/{image}
"""

from typing import Dict, List, Optional, Tuple, Any
from dataclasses import dataclass, field
from pathlib import Path
import logging
import math
import random
import shutil
from tqdm import tqdm

from src.core.errors import SplitIOError
from src.core.events import EventLog, StageEvent
from .indexer import DatasetIndexer, Sample


SPLIT_NAMES = ('train', 'val', 'test')


@dataclass
class SplitConfig:
    """Configuration for dataset splitting."""
    train_ratio: float = 0.6
    val_ratio: float = 0.2
    test_ratio: float = 0.2
    seed: Optional[int] = None
    show_progress: bool = True

    def __post_init__(self):
        """Post-initialization validation."""
        for name in ('train_ratio', 'val_ratio', 'test_ratio'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

        total_ratio = self.train_ratio + self.val_ratio + self.test_ratio
        if not 0.99 <= total_ratio <= 1.01:
            raise ValueError(f"Split ratios must sum to 1.0, got {total_ratio}")


@dataclass
class SplitAssignment:
    """Disjoint train/val/test partition of one class's samples."""
    class_name: str
    train: List[Sample] = field(default_factory=list)
    val: List[Sample] = field(default_factory=list)
    test: List[Sample] = field(default_factory=list)

    def subset(self, split: str) -> List[Sample]:
        if split not in SPLIT_NAMES:
            raise ValueError(f"Unknown split: {split}")
        return getattr(self, split)

    @property
    def total(self) -> int:
        return len(self.train) + len(self.val) + len(self.test)

    def counts(self) -> Dict[str, int]:
        return {split: len(self.subset(split)) for split in SPLIT_NAMES}


@dataclass
class SplitResult:
    """
    Outcome of a materialized split.

    Attributes:
        assignments: Per-class partitions, keyed by class name
        copied: Number of images copied successfully
        failures: Per-file errors that were skipped
        events: Structured events emitted while splitting
    """
    assignments: Dict[str, SplitAssignment]
    copied: int = 0
    failures: List[SplitIOError] = field(default_factory=list)
    events: List[StageEvent] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        """Total number of assigned images per split."""
        return {
            split: sum(len(a.subset(split)) for a in self.assignments.values())
            for split in SPLIT_NAMES
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'splits': self.counts(),
            'classes': {name: a.counts() for name, a in self.assignments.items()},
            'copied': self.copied,
            'failures': [str(f) for f in self.failures],
        }


def clear_destinations(*roots: Path) -> None:
    """Remove and recreate split roots so the splitter starts from empty folders."""
    for root in roots:
        root = Path(root)
        if root.exists():
            shutil.rmtree(root)
        root.mkdir(parents=True, exist_ok=True)


class DatasetSplitter:
    """
    Class-stratified dataset splitter.

    Per class of ``n`` images: ``floor(n * train_ratio)`` go to train,
    ``floor(n * val_ratio)`` to val and the remainder to test. Classes with
    fewer than three images get a best-effort split and may leave subsets
    empty.
    """

    def __init__(self, config: Optional[SplitConfig] = None):
        """
        Initialize splitter.

        Args:
            config: Split configuration. If None, uses 60/20/20.
        """
        self.config = config or SplitConfig()
        self.logger = logging.getLogger(__name__)

    def calculate_counts(self, total: int) -> Tuple[int, int, int]:
        """Calculate number of samples for each split of one class."""
        train_size = math.floor(total * self.config.train_ratio)
        val_size = math.floor(total * self.config.val_ratio)
        test_size = total - train_size - val_size  # Remainder goes to test

        return train_size, val_size, test_size

    def assign(
        self,
        samples_by_class: Dict[str, List[Sample]],
        seed: Optional[int] = None
    ) -> Dict[str, SplitAssignment]:
        """
        Partition every class into train/val/test without touching the disk.

        Args:
            samples_by_class: Samples grouped by class name
            seed: Shuffle seed; falls back to config.seed

        Returns:
            Mapping of class name to its SplitAssignment
        """
        rng = random.Random(self.config.seed if seed is None else seed)
        assignments: Dict[str, SplitAssignment] = {}

        # Sorted visit order keeps a seeded split reproducible
        for class_name in sorted(samples_by_class):
            shuffled = list(samples_by_class[class_name])
            rng.shuffle(shuffled)

            train_size, val_size, _ = self.calculate_counts(len(shuffled))
            assignments[class_name] = SplitAssignment(
                class_name=class_name,
                train=shuffled[:train_size],
                val=shuffled[train_size:train_size + val_size],
                test=shuffled[train_size + val_size:],
            )

            if len(shuffled) < len(SPLIT_NAMES):
                self.logger.warning(
                    f"Class '{class_name}' has only {len(shuffled)} images; "
                    f"split {assignments[class_name].counts()}"
                )

        return assignments

    def split(
        self,
        samples_by_class: Dict[str, List[Sample]],
        train_root: Path,
        val_root: Path,
        test_root: Path,
        seed: Optional[int] = None
    ) -> SplitResult:
        """
        Assign samples and copy them into the destination trees.

        Destinations are expected to be empty; see ``clear_destinations``.
        A failed directory creation or copy is logged and skipped.

        Args:
            samples_by_class: Samples grouped by class name
            train_root: Destination for the training subset
            val_root: Destination for the validation subset
            test_root: Destination for the test subset
            seed: Shuffle seed; falls back to config.seed

        Returns:
            SplitResult with assignments, copy count and failures
        """
        log = EventLog("split", self.logger)
        roots = dict(zip(SPLIT_NAMES, (Path(train_root), Path(val_root), Path(test_root))))

        assignments = self.assign(samples_by_class, seed=seed)
        result = SplitResult(assignments=assignments)

        pbar = tqdm(
            assignments.values(),
            desc="Splitting",
            unit="class",
            disable=not self.config.show_progress
        )

        for assignment in pbar:
            for split, root in roots.items():
                copied, failures = self._copy_subset(
                    assignment.subset(split),
                    root / assignment.class_name
                )
                result.copied += copied
                for failure in failures:
                    log.error(str(failure), path=failure.path)
                result.failures.extend(failures)

            pbar.set_postfix({'class': assignment.class_name[:12]})

        pbar.close()

        counts = result.counts()
        log.info(
            f"Split {sum(counts.values())} images in {len(assignments)} classes: "
            f"train={counts['train']}, val={counts['val']}, test={counts['test']}",
            **counts
        )
        if result.failures:
            log.warning(f"{len(result.failures)} files could not be copied")

        result.events = log.events
        return result

    def split_directory(
        self,
        dataset_root: Path,
        train_root: Path,
        val_root: Path,
        test_root: Path,
        seed: Optional[int] = None,
        indexer: Optional[DatasetIndexer] = None
    ) -> SplitResult:
        """Index ``dataset_root`` and split it. Raises DatasetReadError if unreadable."""
        indexer = indexer or DatasetIndexer()
        samples_by_class = indexer.index_by_class(dataset_root)
        return self.split(samples_by_class, train_root, val_root, test_root, seed=seed)

    def _copy_subset(
        self,
        samples: List[Sample],
        class_dir: Path
    ) -> Tuple[int, List[SplitIOError]]:
        try:
            class_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Nothing of this subset can land without its folder
            return 0, [SplitIOError(class_dir, e)]

        copied = 0
        failures: List[SplitIOError] = []
        for sample in samples:
            destination = class_dir / sample.image_path.name
            try:
                shutil.copy2(sample.image_path, destination)
                copied += 1
            except OSError as e:
                failures.append(SplitIOError(sample.image_path, e))

        return copied, failures
