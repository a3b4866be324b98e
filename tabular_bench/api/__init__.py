"""Tabular Bench - High-level API."""

from .workflows import run_experiment

__all__ = ['run_experiment']
