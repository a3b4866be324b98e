"""Tabular Bench - Resampling.

Example:
    >>> from tabular_bench.resampling import rsmp, resample
    >>> rr = resample(task, learner, rsmp("cv", folds=3), seed=1)
    >>> rr.aggregate()
"""

from .schemes import (
    Resampling,
    ResamplingHoldout,
    ResamplingCV,
    ResamplingRepeatedCV,
    ResamplingSubsampling,
    ResamplingBootstrap,
    ResamplingInsample,
    ResamplingCustom,
    RESAMPLINGS,
    rsmp,
    rsmps
)
from .resample import ResampleResult, resample

__all__ = [
    'Resampling',
    'ResamplingHoldout',
    'ResamplingCV',
    'ResamplingRepeatedCV',
    'ResamplingSubsampling',
    'ResamplingBootstrap',
    'ResamplingInsample',
    'ResamplingCustom',
    'RESAMPLINGS',
    'rsmp',
    'rsmps',
    'ResampleResult',
    'resample'
]
