"""Visualization utilities for evolution runs."""

from .plots import (
    plot_error_history,
    plot_reproductions,
    figure_to_base64,
)

__all__ = [
    'plot_error_history',
    'plot_reproductions',
    'figure_to_base64',
]
