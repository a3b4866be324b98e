"""Tabular Bench - Visualization."""

from .plots import plot_resample_result, plot_benchmark, plot_importance, plot_roc, plot_confusion

__all__ = ['plot_resample_result', 'plot_benchmark', 'plot_importance', 'plot_roc', 'plot_confusion']
