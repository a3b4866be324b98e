"""Tabular Bench - Hyperparameter Tuning."""

from .search_space import ParamInt, ParamDbl, ParamFct, p_int, p_dbl, p_fct, search_space_from_dict
from .tuner import TuningResult, tune, AutoTuner

__all__ = [
    'ParamInt',
    'ParamDbl',
    'ParamFct',
    'p_int',
    'p_dbl',
    'p_fct',
    'search_space_from_dict',
    'TuningResult',
    'tune',
    'AutoTuner'
]
