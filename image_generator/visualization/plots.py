"""
Matplotlib-based visualization for evolution runs.

These functions create static plots for analysis and documentation.
"""

import numpy as np
from typing import Optional, Tuple
import io
import base64
import math

# Matplotlib imports with non-GUI backend
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from ..datasets.data import Dataset
from ..evolution.checkpoint import EvolutionHistory
from ..evolution.population import TrainedIndividual


def plot_error_history(
    history: EvolutionHistory,
    figsize: Tuple[int, int] = (10, 4),
    title: Optional[str] = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Figure:
    """
    Plot best and mean error per generation.

    Args:
        history: History of an evolution run
        figsize: Figure size
        title: Plot title
        ax: Existing axes to plot on

    Returns:
        matplotlib Figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    generations = [g.generation for g in history.generations]
    best = [g.best_error if math.isfinite(g.best_error) else np.nan for g in history.generations]
    mean = [g.mean_error if math.isfinite(g.mean_error) else np.nan for g in history.generations]

    ax.plot(generations, best, 'b-', linewidth=2, label='best')
    ax.plot(generations, mean, 'g--', linewidth=1, label='mean')
    ax.set_xlabel('Generation')
    ax.set_ylabel('Error')
    ax.set_title(title or 'Training Error')
    ax.grid(True, alpha=0.3)
    if any(v > 0 for v in best if not np.isnan(v)):
        ax.set_yscale('log')
    ax.legend()

    fig.tight_layout()
    return fig


def plot_reproductions(
    individual: TrainedIndividual,
    dataset: Dataset,
    figsize_per_image: float = 2.0,
    cmap: str = 'gray',
) -> plt.Figure:
    """
    Show each target image above the individual's reproduction of it.

    Outputs are reshaped with the sample's info['shape'] when present
    (datasets built with Dataset.from_outputs), otherwise drawn as a row.

    Returns:
        matplotlib Figure
    """
    n = len(dataset)
    fig, axes = plt.subplots(
        2, n, figsize=(figsize_per_image * n, figsize_per_image * 2), squeeze=False
    )
    network = individual.to_network()

    for i, sample in enumerate(dataset):
        shape = sample.info.get('shape') or (1, sample.output.size)
        if len(shape) == 1:
            shape = (1, shape[0])
        target = sample.output.reshape(shape)
        produced = network.run(sample.input).reshape(shape)

        for row, image in ((0, target), (1, produced)):
            axes[row, i].imshow(image, cmap=cmap, vmin=0, vmax=1)
            axes[row, i].set_xticks([])
            axes[row, i].set_yticks([])
        axes[0, i].set_title(f"#{i}")

    axes[0, 0].set_ylabel('target')
    axes[1, 0].set_ylabel('generated')
    fig.suptitle(individual.genome.architecture_string)
    fig.tight_layout()
    return fig


def figure_to_base64(fig: plt.Figure) -> str:
    """Convert matplotlib figure to base64 PNG string."""
    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=100, bbox_inches='tight')
    buf.seek(0)
    img_base64 = base64.b64encode(buf.read()).decode('utf-8')
    plt.close(fig)
    return img_base64
