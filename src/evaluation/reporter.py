"""
Report generator for evaluation results.

Writes:
- confusion matrix CSV (``GroundTruth/Predicted,<labels...>``)
- static HTML report with metrics, per-label table, CSV link and a gallery
  of exported sample images
- JSON summary of metrics, matrix and excluded samples

Outputs contain no timestamps or random elements, so regenerating from the
same inputs gives identical files.
"""

from typing import List, Dict, Any, Optional, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import csv
import html
import json
import logging
import os

from src.core.errors import ReportWriteError
from src.core.events import EventLog, StageEvent
from src.dataset.indexer import is_hidden
from .evaluator import InferenceResult
from .metrics import EvaluationMetrics, ConfusionMatrix


class ReportFormat(Enum):
    """Supported report formats."""
    CSV = "csv"
    HTML = "html"
    JSON = "json"


DEFAULT_FILE_NAMES = {
    ReportFormat.CSV: "confusion_matrix.csv",
    ReportFormat.HTML: "report.html",
    ReportFormat.JSON: "summary.json",
}

CSV_CORNER = "GroundTruth/Predicted"

_HTML_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>
        body {{ font-family: Arial, sans-serif; padding: 20px; }}
        h1 {{ color: #333; }}
        ul {{ list-style-type: none; }}
        table {{ border-collapse: collapse; margin-top: 20px; }}
        th, td {{ border: 1px solid #ccc; padding: 8px; text-align: center; }}
        img {{ height: 200px; margin: 10px; }}
        .plot {{ height: auto; max-width: 100%; }}
    </style>
</head>
<body>
"""


@dataclass
class ReportArtifacts:
    """
    Files written by one report run.

    Attributes:
        written: Paths of successfully written artifacts, by format
        failures: Artifacts that could not be written
        events: Structured events emitted while reporting
    """
    written: Dict[ReportFormat, Path] = field(default_factory=dict)
    failures: List[ReportWriteError] = field(default_factory=list)
    events: List[StageEvent] = field(default_factory=list)


def _relative_link(target: Path, start_dir: Path) -> str:
    return Path(os.path.relpath(target, start_dir)).as_posix()


def list_gallery_images(sample_folder: Optional[Path]) -> List[Path]:
    """
    Every visible file in the sample folder, sorted by name.

    The folder only holds exported samples, whatever extensions the dataset
    was indexed with, so no extension filter is applied. Missing folder gives [].
    """
    if sample_folder is None or not Path(sample_folder).is_dir():
        return []
    return sorted(
        (p for p in Path(sample_folder).iterdir() if p.is_file() and not is_hidden(p)),
        key=lambda p: p.name
    )


class ReportGenerator:
    """
    Generate evaluation reports in CSV, HTML and JSON formats.

    Generation is best-effort: a failed artifact is logged and recorded,
    and the remaining artifacts are still attempted.
    """

    def __init__(self, title: str = "Classification Report"):
        """
        Initialize report generator.

        Args:
            title: Title of the HTML report
        """
        self.title = title
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def confusion_matrix_rows(matrix: ConfusionMatrix) -> List[List[Any]]:
        """Header row followed by one row of counts per ground-truth label."""
        rows: List[List[Any]] = [[CSV_CORNER, *matrix.labels]]
        for label in matrix.labels:
            rows.append([label, *matrix.row(label)])
        return rows

    def write_confusion_matrix(self, matrix: ConfusionMatrix, output_path: Path) -> Path:
        """
        Write the confusion matrix CSV.

        Raises:
            ReportWriteError: If the file cannot be written
        """
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.writer(f, lineterminator='\n')
                writer.writerows(self.confusion_matrix_rows(matrix))
        except OSError as e:
            raise ReportWriteError(output_path, e) from e
        return output_path

    def render_html(
        self,
        metrics: EvaluationMetrics,
        html_path: Path,
        confusion_matrix_path: Path,
        sample_folder: Optional[Path] = None,
        inference: Optional[InferenceResult] = None,
        plot_path: Optional[Path] = None
    ) -> str:
        """
        Render the HTML report.

        All links (CSV, plot, gallery images) are relative to the folder of
        ``html_path``.
        """
        base_dir = Path(html_path).parent
        esc = html.escape

        parts = [_HTML_HEAD.format(title=esc(self.title))]
        parts.append(f"    <h1>{esc(self.title)}</h1>\n")

        parts.append("    <h2>Metrics</h2>\n    <ul>\n")
        parts.append(f"        <li><b>Accuracy:</b> {metrics.accuracy:.4f}</li>\n")
        parts.append(f"        <li><b>Precision:</b> {metrics.precision:.4f}</li>\n")
        parts.append(f"        <li><b>Recall:</b> {metrics.recall:.4f}</li>\n")
        parts.append(f"        <li><b>F1 Score:</b> {metrics.f1:.4f}</li>\n")
        parts.append(f"        <li><b>Evaluated samples:</b> {metrics.num_samples}</li>\n")
        if inference is not None:
            parts.append(
                f"        <li><b>Excluded samples:</b> {inference.num_excluded}</li>\n"
            )
        parts.append("    </ul>\n")

        parts.append("    <h2>Per-Label Metrics</h2>\n    <table>\n")
        parts.append(
            "        <tr><th>Label</th><th>Precision</th><th>Recall</th>"
            "<th>F1</th><th>Support</th></tr>\n"
        )
        for m in metrics.per_label:
            parts.append(
                f"        <tr><td>{esc(m.label)}</td><td>{m.precision:.4f}</td>"
                f"<td>{m.recall:.4f}</td><td>{m.f1:.4f}</td><td>{m.support}</td></tr>\n"
            )
        parts.append("    </table>\n")

        csv_link = esc(_relative_link(Path(confusion_matrix_path), base_dir))
        parts.append("    <h2>Confusion Matrix</h2>\n")
        parts.append(f"    <p><a href=\"{csv_link}\">Download CSV</a></p>\n")
        if plot_path is not None and Path(plot_path).exists():
            plot_link = esc(_relative_link(Path(plot_path), base_dir))
            parts.append(
                f"    <img class=\"plot\" src=\"{plot_link}\" alt=\"Confusion matrix\">\n"
            )

        parts.append("    <h2>Sample Predictions</h2>\n")
        for image in list_gallery_images(sample_folder):
            src = esc(_relative_link(image, base_dir))
            parts.append(f"    <img src=\"{src}\" alt=\"{esc(image.stem)}\">\n")

        parts.append("</body>\n</html>\n")
        return "".join(parts)

    def write_html(self, content: str, output_path: Path) -> Path:
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise ReportWriteError(output_path, e) from e
        return output_path

    def write_summary(
        self,
        metrics: EvaluationMetrics,
        matrix: ConfusionMatrix,
        output_path: Path,
        inference: Optional[InferenceResult] = None
    ) -> Path:
        """Write metrics, matrix and exclusion details as JSON."""
        output_path = Path(output_path)
        summary = {
            'metrics': metrics.to_dict(),
            'labels': list(matrix.labels),
            'confusion_matrix': matrix.to_dict(),
        }
        if inference is not None:
            summary['inference'] = inference.to_dict()

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(summary, f, indent=2)
        except OSError as e:
            raise ReportWriteError(output_path, e) from e
        return output_path

    def generate_report(
        self,
        metrics: EvaluationMetrics,
        matrix: ConfusionMatrix,
        output_dir: Path,
        sample_folder: Optional[Path] = None,
        inference: Optional[InferenceResult] = None,
        plot_path: Optional[Path] = None,
        formats: Sequence[ReportFormat] = (ReportFormat.CSV, ReportFormat.HTML, ReportFormat.JSON),
        file_names: Optional[Dict[ReportFormat, str]] = None
    ) -> ReportArtifacts:
        """
        Generate every requested artifact into ``output_dir``.

        Args:
            metrics: Computed metrics
            matrix: Confusion matrix the metrics came from
            output_dir: Destination folder
            sample_folder: Folder of exported sample images for the gallery
            inference: Inference outcome, for evaluated/excluded counts
            plot_path: Optional confusion-matrix image to embed
            formats: Artifacts to write
            file_names: Overrides of DEFAULT_FILE_NAMES

        Returns:
            ReportArtifacts with written paths and failures
        """
        log = EventLog("report", self.logger)
        output_dir = Path(output_dir)
        names = {**DEFAULT_FILE_NAMES, **(file_names or {})}
        paths = {fmt: output_dir / names[fmt] for fmt in ReportFormat}
        artifacts = ReportArtifacts()

        writers = {
            ReportFormat.CSV: lambda: self.write_confusion_matrix(matrix, paths[ReportFormat.CSV]),
            ReportFormat.HTML: lambda: self.write_html(
                self.render_html(
                    metrics,
                    paths[ReportFormat.HTML],
                    paths[ReportFormat.CSV],
                    sample_folder=sample_folder,
                    inference=inference,
                    plot_path=plot_path
                ),
                paths[ReportFormat.HTML]
            ),
            ReportFormat.JSON: lambda: self.write_summary(
                metrics, matrix, paths[ReportFormat.JSON], inference=inference
            ),
        }

        for fmt in formats:
            try:
                artifacts.written[fmt] = writers[fmt]()
                log.info(f"Generated {fmt.value} report: {paths[fmt]}", path=paths[fmt])
            except ReportWriteError as e:
                artifacts.failures.append(e)
                log.error(str(e), path=e.path)

        artifacts.events = log.events
        return artifacts
