"""
Visualization tools for evaluation results.

Creates a confusion matrix heatmap and a per-label precision/recall/F1
bar chart.
"""

from typing import Tuple
from pathlib import Path
import logging
import numpy as np
import matplotlib.pyplot as plt

from src.core.errors import ReportWriteError
from .metrics import ConfusionMatrix


class Visualizer:
    """
    Create visualizations for evaluation results.

    Plots are written with matplotlib and closed immediately, so the
    visualizer does not accumulate open figures across runs.
    """

    def __init__(self, dpi: int = 150):
        """
        Initialize visualizer.

        Args:
            dpi: Resolution of saved images
        """
        self.dpi = dpi
        self.logger = logging.getLogger(__name__)

    def _save(self, fig: plt.Figure, output_path: Path) -> Path:
        output_file = Path(output_path)
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(output_file, dpi=self.dpi, bbox_inches='tight')
        except OSError as e:
            raise ReportWriteError(output_file, e) from e
        finally:
            plt.close(fig)
        return output_file

    def plot_confusion_matrix(
        self,
        matrix: ConfusionMatrix,
        output_path: Path,
        figsize: Tuple[int, int] = (8, 7)
    ) -> Path:
        """
        Plot confusion matrix as an annotated heatmap.

        Args:
            matrix: Confusion matrix to draw
            output_path: Path to save the plot
            figsize: Figure size in inches

        Returns:
            Path of the saved image

        Raises:
            ReportWriteError: If the image cannot be saved
        """
        counts = matrix.counts
        n = len(matrix.labels)

        fig, ax = plt.subplots(figsize=figsize)
        im = ax.imshow(counts, cmap='YlOrRd', aspect='auto')

        ax.set_xlabel('Predicted', fontweight='bold')
        ax.set_ylabel('Ground Truth', fontweight='bold')
        ax.set_title('Confusion Matrix', fontweight='bold', fontsize=14)
        ax.set_xticks(np.arange(n))
        ax.set_xticklabels(matrix.labels, rotation=45, ha='right')
        ax.set_yticks(np.arange(n))
        ax.set_yticklabels(matrix.labels)

        threshold = counts.max() / 2 if counts.size else 0
        for i in range(n):
            for j in range(n):
                ax.text(
                    j, i, str(int(counts[i, j])),
                    ha='center', va='center',
                    color='white' if counts[i, j] > threshold else 'black'
                )

        cbar = plt.colorbar(im, ax=ax)
        cbar.set_label('Count', fontweight='bold')

        output_file = self._save(fig, output_path)
        self.logger.info(f"Saved confusion matrix to {output_file}")
        return output_file
