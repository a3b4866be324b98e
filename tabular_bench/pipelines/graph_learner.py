# tabular_bench/pipelines/graph_learner.py
"""A pipeline graph ending in a learner, used as a learner itself."""

from typing import Any, Dict, FrozenSet, List, Optional

from ..data.task import FEATURE_TYPES, ClassificationTask
from ..learners.base import Learner
from ..prediction import PredictionClassif
from ..utils.exceptions import PipelineError, validate_parameter
from ..utils.logger import get_logger
from .graph import Graph, as_graph
from .impute import PipeOpImpute
from .pipeop import PipeOpLearner

logger = get_logger(__name__)


class GraphLearner(Learner):
    """Learner that trains and predicts through a pipeline graph.

    Training fits every operator on the training rows only, so
    preprocessing never sees the test rows of a resampling iteration.
    Hyperparameters are addressed as ``<op id>.<param>``.

    Example:
        >>> graph = po("imputehist") >> po("imputenewlvl") >> lrn("classif.ranger")
        >>> learner = GraphLearner(graph)
        >>> learner.set_params(**{"classif.ranger.num_trees": 100})
        >>> resample(task, learner, rsmp("cv", folds=3))
    """

    key = "classif.graph"

    def __init__(self, graph: Any, id: Optional[str] = None, predict_type: Optional[str] = None) -> None:
        graph = as_graph(graph)
        outputs = graph.output_ids
        if len(outputs) != 1 or not isinstance(graph.pipeops[outputs[0]], PipeOpLearner):
            raise PipelineError(
                "A GraphLearner needs a graph with exactly one output, which must be a learner",
                error_code="INVALID_GRAPH_LEARNER",
                context={"outputs": outputs}
            )
        self.graph = graph
        self.id = id or ".".join(graph.topological_order())
        self.state = None
        if predict_type is not None:
            self.predict_type = predict_type

    @property
    def base_learner(self) -> Learner:
        """The learner at the end of the graph."""
        return self.graph.pipeops[self.graph.output_ids[0]].learner

    @property
    def predict_type(self) -> str:
        return self.base_learner.predict_type

    @predict_type.setter
    def predict_type(self, value: str) -> None:
        validate_parameter("predict_type", value, valid_values=list(self.base_learner.predict_types))
        self.base_learner.predict_type = value

    @property
    def predict_types(self):
        return self.base_learner.predict_types

    @property
    def properties(self) -> FrozenSet[str]:
        props = set(self.base_learner.properties)
        if any(isinstance(op, PipeOpImpute) for op in self.graph.pipeops.values()):
            props.add("missings")
        return frozenset(props)

    @property
    def feature_types(self) -> FrozenSet[str]:
        return frozenset(FEATURE_TYPES)

    @property
    def param_values(self) -> Dict[str, Any]:
        return self.graph.param_values

    def set_params(self, **params: Any) -> "GraphLearner":
        self.graph.set_params(**params)
        return self

    def check_learnable(self, task: ClassificationTask, row_ids=None) -> None:
        # the graph's learner checks the preprocessed task itself
        pass

    def reset(self) -> "GraphLearner":
        self.graph.reset()
        self.state = None
        return self

    def _train(self, task: ClassificationTask, rows: List[Any]) -> Graph:
        self.graph.reset()
        self.graph.train(task.subset(rows))
        return self.graph

    def _predict(self, task: ClassificationTask, rows: List[Any]) -> PredictionClassif:
        subset = task.subset(rows).select(self.state.feature_names)
        prediction = self.graph.predict(subset)[0]
        prediction.row_ids = list(rows)
        return prediction

    def _importance(self) -> Any:
        return self.base_learner._importance()

    def __repr__(self) -> str:
        state = "trained" if self.is_trained else "untrained"
        return (
            f"<GraphLearner:{self.id}> ({state})\n"
            f"* Predict Type: {self.predict_type}\n"
            f"* Properties: {', '.join(sorted(self.properties))}\n"
            f"{self.graph.summary().to_string(index=False)}"
        )


def as_learner(graph: Any, **kwargs: Any) -> Learner:
    """Wrap a graph (or anything ``as_graph`` accepts) as a learner; learners pass through."""
    if isinstance(graph, Learner):
        return graph
    return GraphLearner(graph, **kwargs)
