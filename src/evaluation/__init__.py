"""
Evaluation system for image classifiers.

This module provides:
- Metrics calculation (accuracy, macro precision/recall/F1, confusion matrix)
- Inference over indexed samples with per-image failure isolation
- Sample export for visual inspection
- Report generation (CSV, HTML, JSON)
- Visualization (confusion matrix plot)
"""

from .metrics import MetricCalculator, EvaluationMetrics, LabelMetrics, ConfusionMatrix
from .evaluator import (
    Evaluator,
    EvaluationConfig,
    InferenceResult,
    format_summary,
)
from .exporter import SampleExporter, ExportResult, export_name
from .reporter import ReportGenerator, ReportFormat, ReportArtifacts
from .visualizer import Visualizer

__all__ = [
    'MetricCalculator',
    'EvaluationMetrics',
    'LabelMetrics',
    'ConfusionMatrix',
    'Evaluator',
    'EvaluationConfig',
    'InferenceResult',
    'format_summary',
    'SampleExporter',
    'ExportResult',
    'export_name',
    'ReportGenerator',
    'ReportFormat',
    'ReportArtifacts',
    'Visualizer',
]
