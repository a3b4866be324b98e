"""Tabular Bench - Benchmarking."""

from .benchmark import BenchmarkResult, benchmark, benchmark_grid

__all__ = ['BenchmarkResult', 'benchmark', 'benchmark_grid']
