"""Tabular Bench - Pipelines.

Operators are combined into graphs with ``>>`` and ``gunion`` and used as
learners through ``GraphLearner``.

Example:
    >>> from tabular_bench.pipelines import po, gunion, GraphLearner
    >>> graph = (gunion([po("imputehist"), po("missind")])
    ...          >> po("featureunion")
    ...          >> po("imputenewlvl")
    ...          >> lrn("classif.ranger"))
    >>> learner = GraphLearner(graph)
"""

from .selectors import (
    Selector,
    selector_all,
    selector_none,
    selector_type,
    selector_name,
    selector_grep,
    selector_missing,
    selector_invert,
    selector_union,
    selector_intersect,
    selector_setdiff
)
from .pipeop import PipeOp, PipeOpTaskPreproc, PipeOpNOP, PipeOpFeatureUnion, PipeOpLearner
from .impute import (
    MISSING_LEVEL,
    PipeOpImpute,
    PipeOpImputeHist,
    PipeOpImputeSample,
    PipeOpImputeNewLvl,
    PipeOpImputeMean,
    PipeOpImputeMedian,
    PipeOpImputeMode,
    PipeOpImputeConstant,
    PipeOpMissInd
)
from .transforms import (
    PipeOpMutate,
    PipeOpCollapseFactors,
    PipeOpSelect,
    PipeOpFixFactors,
    PipeOpEncode,
    PipeOpScale
)
from .graph import Graph, as_graph, concat_graphs, gunion
from .graph_learner import GraphLearner, as_learner
from .registry import PIPEOPS, po, pos, list_pipeops

__all__ = [
    'Selector',
    'selector_all',
    'selector_none',
    'selector_type',
    'selector_name',
    'selector_grep',
    'selector_missing',
    'selector_invert',
    'selector_union',
    'selector_intersect',
    'selector_setdiff',
    'PipeOp',
    'PipeOpTaskPreproc',
    'PipeOpNOP',
    'PipeOpFeatureUnion',
    'PipeOpLearner',
    'MISSING_LEVEL',
    'PipeOpImpute',
    'PipeOpImputeHist',
    'PipeOpImputeSample',
    'PipeOpImputeNewLvl',
    'PipeOpImputeMean',
    'PipeOpImputeMedian',
    'PipeOpImputeMode',
    'PipeOpImputeConstant',
    'PipeOpMissInd',
    'PipeOpMutate',
    'PipeOpCollapseFactors',
    'PipeOpSelect',
    'PipeOpFixFactors',
    'PipeOpEncode',
    'PipeOpScale',
    'Graph',
    'as_graph',
    'concat_graphs',
    'gunion',
    'GraphLearner',
    'as_learner',
    'PIPEOPS',
    'po',
    'pos',
    'list_pipeops'
]
