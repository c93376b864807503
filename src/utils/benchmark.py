"""
Stage timing utilities.

A pipeline run owns one StageTimings collector; each stage is wrapped in a
Timer so the summary and the JSON report can show where time was spent.
"""

import time
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


@dataclass
class TimingRecord:
    """
    One timed stage.

    Attributes:
        name: Stage name
        duration: Wall-clock time in seconds
        metadata: Extra fields (e.g. number of images)
    """
    name: str
    duration: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        meta_str = ", ".join(f"{k}={v}" for k, v in self.metadata.items())
        return f"{self.name}: {self.duration:.4f}s ({meta_str})"


class StageTimings:
    """Ordered collection of TimingRecords for one run."""

    def __init__(self):
        self.records: List[TimingRecord] = []

    def add(self, record: TimingRecord) -> None:
        self.records.append(record)

    def durations(self) -> Dict[str, float]:
        """
        Total duration per stage name, in first-seen order.

        Returns:
            Mapping stage name -> seconds
        """
        totals: Dict[str, float] = {}
        for record in self.records:
            totals[record.name] = totals.get(record.name, 0.0) + record.duration
        return totals

    @property
    def total(self) -> float:
        return sum(r.duration for r in self.records)

    def __len__(self) -> int:
        return len(self.records)


class Timer:
    """
    Context manager for timing code blocks.

    The duration is recorded even when the block raises.

    Example:
        timings = StageTimings()
        with Timer("inference", timings, images=120) as t:
            run_inference()
        print(f"Inference took {t.duration:.4f}s")
    """

    def __init__(self, name: str, collector: Optional[StageTimings] = None, **metadata):
        """
        Initialize timer.

        Args:
            name: Stage name
            collector: Where to record the timing (not recorded if None)
            **metadata: Additional metadata to store
        """
        self.name = name
        self.collector = collector
        self.metadata = metadata
        self.start_time: Optional[float] = None
        self.duration: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        if self.collector is not None:
            self.collector.add(TimingRecord(
                name=self.name,
                duration=self.duration,
                metadata=self.metadata
            ))
        return False
