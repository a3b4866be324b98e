# tabular_bench/pipelines/registry.py
"""Lookup of pipeline operators by key."""

from typing import Any, Dict, List, Sequence

import pandas as pd

from ..learners.base import Learner
from ..utils.exceptions import ConfigurationError
from .impute import (
    PipeOpImputeConstant,
    PipeOpImputeHist,
    PipeOpImputeMean,
    PipeOpImputeMedian,
    PipeOpImputeMode,
    PipeOpImputeNewLvl,
    PipeOpImputeSample,
    PipeOpMissInd,
)
from .pipeop import PipeOp, PipeOpFeatureUnion, PipeOpLearner, PipeOpNOP
from .transforms import (
    PipeOpCollapseFactors,
    PipeOpEncode,
    PipeOpFixFactors,
    PipeOpMutate,
    PipeOpScale,
    PipeOpSelect,
)

PIPEOPS: Dict[str, type] = {
    cls.key: cls
    for cls in (
        PipeOpImputeHist,
        PipeOpImputeSample,
        PipeOpImputeNewLvl,
        PipeOpImputeMean,
        PipeOpImputeMedian,
        PipeOpImputeMode,
        PipeOpImputeConstant,
        PipeOpMissInd,
        PipeOpMutate,
        PipeOpCollapseFactors,
        PipeOpSelect,
        PipeOpFixFactors,
        PipeOpEncode,
        PipeOpScale,
        PipeOpFeatureUnion,
        PipeOpNOP,
        PipeOpLearner,
    )
}


def po(key: Any, *args: Any, **params: Any) -> PipeOp:
    """Construct a pipeline operator.

    Args:
        key: Operator key, or a ``Learner`` to wrap
        *args: Positional arguments (the learner for ``po("learner", ...)``)
        **params: ``id`` and operator parameters

    Raises:
        ConfigurationError: If the key is unknown

    Example:
        >>> po("imputehist")
        >>> po("collapsefactors", target_level_count=5, id="collapse")
        >>> po("learner", lrn("classif.rpart"))
    """
    if isinstance(key, Learner):
        return PipeOpLearner(key, **params)
    if key not in PIPEOPS:
        raise ConfigurationError(
            f"Unknown PipeOp: {key}. Available: {sorted(PIPEOPS)}",
            error_code="UNKNOWN_PIPEOP"
        )
    return PIPEOPS[key](*args, **params)


def pos(keys: Sequence[str]) -> List[PipeOp]:
    return [po(key) for key in keys]


def list_pipeops() -> pd.DataFrame:
    """Overview of the available operators."""
    return pd.DataFrame([
        {"key": key, "class": cls.__name__, "variadic": cls.n_inputs < 0,
         "doc": (cls.__doc__ or "").strip().splitlines()[0] if cls.__doc__ else ""}
        for key, cls in sorted(PIPEOPS.items())
    ])
