"""Tabular Bench - Performance Measures."""

from .measure import Measure, MEASURES, msr, msrs, as_measures, list_measures

__all__ = ['Measure', 'MEASURES', 'msr', 'msrs', 'as_measures', 'list_measures']
