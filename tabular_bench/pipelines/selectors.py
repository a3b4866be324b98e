# tabular_bench/pipelines/selectors.py
"""Column selectors: functions of a task returning a subset of its features.

Selectors are used as ``affect_columns`` of preprocessing operators and as
the ``selector`` of ``po("select")``. They always return features in task
order.
"""

import re
from typing import Callable, List

from ..data.task import FEATURE_TYPES, ClassificationTask
from ..utils.exceptions import validate_parameter


class Selector:
    """Callable column selector with a readable description."""

    def __init__(self, fun: Callable[[ClassificationTask], List[str]], description: str) -> None:
        self.fun = fun
        self.description = description

    def __call__(self, task: ClassificationTask) -> List[str]:
        chosen = set(self.fun(task))
        return [col for col in task.feature_names if col in chosen]

    def __repr__(self) -> str:
        return self.description


def selector_all() -> Selector:
    return Selector(lambda task: task.feature_names, "selector_all()")


def selector_none() -> Selector:
    return Selector(lambda task: [], "selector_none()")


def selector_type(*types: str) -> Selector:
    """Features of the given types, e.g. ``selector_type("factor", "ordered")``."""
    for t in types:
        validate_parameter("types", t, valid_values=list(FEATURE_TYPES))
    wanted = set(types)
    return Selector(
        lambda task: [col for col, t in task.feature_type_map().items() if t in wanted],
        f"selector_type({', '.join(repr(t) for t in types)})"
    )


def selector_name(*names: str) -> Selector:
    wanted = set(names)
    return Selector(
        lambda task: [col for col in task.feature_names if col in wanted],
        f"selector_name({', '.join(repr(n) for n in names)})"
    )


def selector_grep(pattern: str, ignore_case: bool = False) -> Selector:
    regex = re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    return Selector(
        lambda task: [col for col in task.feature_names if regex.search(col)],
        f"selector_grep({pattern!r})"
    )


def selector_missing() -> Selector:
    """Features with at least one missing value."""
    def fun(task: ClassificationTask) -> List[str]:
        counts = task.missings(task.feature_names)
        return list(counts[counts > 0].index)
    return Selector(fun, "selector_missing()")


def selector_invert(selector: Selector) -> Selector:
    return Selector(
        lambda task: [col for col in task.feature_names if col not in set(selector(task))],
        f"selector_invert({selector!r})"
    )


def selector_union(a: Selector, b: Selector) -> Selector:
    return Selector(lambda task: a(task) + b(task), f"selector_union({a!r}, {b!r})")


def selector_intersect(a: Selector, b: Selector) -> Selector:
    return Selector(lambda task: set(a(task)) & set(b(task)), f"selector_intersect({a!r}, {b!r})")


def selector_setdiff(a: Selector, b: Selector) -> Selector:
    return Selector(lambda task: set(a(task)) - set(b(task)), f"selector_setdiff({a!r}, {b!r})")
