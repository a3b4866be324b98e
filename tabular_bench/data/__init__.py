"""Tabular Bench - Data Components.

Tasks bind a data table to a target column; the loaders provide the German
credit and Titanic data used throughout the examples.

Example:
    >>> from tabular_bench.data import tsk, ClassificationTask
    >>> task = tsk("german_credit")
    >>> task.missings()
"""

from .task import ClassificationTask, FEATURE_TYPES, infer_feature_type
from .datasets import (
    load_german_credit,
    load_titanic,
    load_csv,
    prepare_german_credit,
    prepare_titanic,
    tsk,
    TASKS
)
from .titanic_features import extract_title, extract_deck, family_size, ticket_prefix

__all__ = [
    'ClassificationTask',
    'FEATURE_TYPES',
    'infer_feature_type',
    'load_german_credit',
    'load_titanic',
    'load_csv',
    'prepare_german_credit',
    'prepare_titanic',
    'tsk',
    'TASKS',
    'extract_title',
    'extract_deck',
    'family_size',
    'ticket_prefix'
]
