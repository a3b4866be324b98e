# tabular_bench/pipelines/graph.py
"""Directed acyclic graphs of pipeline operators.

Nodes are ``PipeOp`` objects keyed by id; an edge ``(src, dst, channel)``
feeds the output of ``src`` into input ``channel`` of ``dst``. Nodes
without incoming edges receive the task passed to ``train``/``predict``.

Graphs are built with the combinators:

* ``a >> b`` chains ``a`` into ``b`` (``concat_graphs``)
* ``gunion([a, b])`` places graphs side by side so both receive the input

Example:
    >>> graph = gunion([po("imputehist"), po("missind")]) >> po("featureunion") >> lrn("classif.ranger")
"""

import copy
from collections import deque
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..learners.base import Learner
from ..utils.exceptions import ConfigurationError, PipelineError
from ..utils.logger import get_logger
from .pipeop import PipeOp, PipeOpLearner

logger = get_logger(__name__)

Edge = Tuple[str, str, int]


class Graph:
    """A DAG of pipeline operators."""

    def __init__(self) -> None:
        self.pipeops: Dict[str, PipeOp] = {}
        self.edges: List[Edge] = []

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #
    def add_pipeop(self, op: Any) -> "Graph":
        """Add an operator (a ``Learner`` is wrapped in ``PipeOpLearner``).

        Raises:
            PipelineError: If the id is already used
        """
        if isinstance(op, Learner):
            op = PipeOpLearner(op)
        if not isinstance(op, PipeOp):
            raise PipelineError(
                f"Cannot add object of type {type(op).__name__} to a graph",
                error_code="INVALID_PIPEOP"
            )
        if op.id in self.pipeops:
            raise PipelineError(
                f"PipeOp id '{op.id}' already present in graph; set a different id",
                error_code="DUPLICATE_PIPEOP_ID"
            )
        self.pipeops[op.id] = op
        return self

    def _incoming(self, op_id: str) -> List[Edge]:
        return sorted((e for e in self.edges if e[1] == op_id), key=lambda e: e[2])

    def _outgoing(self, op_id: str) -> List[Edge]:
        return [e for e in self.edges if e[0] == op_id]

    def _reachable(self, start: str, target: str) -> bool:
        queue, seen = deque([start]), {start}
        while queue:
            node = queue.popleft()
            if node == target:
                return True
            for _, dst, _ in self._outgoing(node):
                if dst not in seen:
                    seen.add(dst)
                    queue.append(dst)
        return False

    def add_edge(self, src_id: str, dst_id: str, dst_channel: Optional[int] = None) -> "Graph":
        """Connect the output of ``src_id`` to an input channel of ``dst_id``.

        Raises:
            PipelineError: On unknown ids, occupied input channels or cycles
        """
        for op_id in (src_id, dst_id):
            if op_id not in self.pipeops:
                raise PipelineError(f"Unknown PipeOp id '{op_id}'", error_code="UNKNOWN_PIPEOP")
        if isinstance(self.pipeops[src_id], PipeOpLearner):
            raise PipelineError(
                f"PipeOp '{src_id}' outputs a prediction and cannot feed another operator",
                error_code="INVALID_EDGE"
            )

        dst = self.pipeops[dst_id]
        incoming = self._incoming(dst_id)
        channel = len(incoming) if dst_channel is None else dst_channel
        if not dst.is_variadic and channel >= dst.n_inputs:
            raise PipelineError(
                f"PipeOp '{dst_id}' has {dst.n_inputs} input(s), all already connected",
                error_code="INPUT_OCCUPIED"
            )
        if any(e[2] == channel for e in incoming):
            raise PipelineError(
                f"Input {channel} of PipeOp '{dst_id}' is already connected",
                error_code="INPUT_OCCUPIED"
            )
        if self._reachable(dst_id, src_id):
            raise PipelineError(
                f"Edge {src_id} -> {dst_id} would create a cycle",
                error_code="GRAPH_CYCLE"
            )
        self.edges.append((src_id, dst_id, channel))
        return self

    # ------------------------------------------------------------------ #
    # Structure
    # ------------------------------------------------------------------ #
    @property
    def ids(self) -> List[str]:
        return list(self.pipeops)

    @property
    def input_ids(self) -> List[str]:
        targets = {e[1] for e in self.edges}
        return [op_id for op_id in self.pipeops if op_id not in targets]

    @property
    def output_ids(self) -> List[str]:
        sources = {e[0] for e in self.edges}
        return [op_id for op_id in self.pipeops if op_id not in sources]

    def topological_order(self) -> List[str]:
        """Operator ids so that every operator comes after its inputs."""
        indegree = {op_id: 0 for op_id in self.pipeops}
        for _, dst, _ in self.edges:
            indegree[dst] += 1
        ready = deque(op_id for op_id in self.pipeops if indegree[op_id] == 0)
        order = []
        while ready:
            node = ready.popleft()
            order.append(node)
            for _, dst, _ in self._outgoing(node):
                indegree[dst] -= 1
                if indegree[dst] == 0:
                    ready.append(dst)
        return order

    @property
    def is_trained(self) -> bool:
        return bool(self.pipeops) and all(op.is_trained for op in self.pipeops.values())

    # ------------------------------------------------------------------ #
    # Parameters
    # ------------------------------------------------------------------ #
    @property
    def param_values(self) -> Dict[str, Any]:
        """All operator parameters as ``<op id>.<param>``."""
        return {
            f"{op_id}.{name}": value
            for op_id, op in self.pipeops.items()
            for name, value in op.param_values.items()
        }

    def set_params(self, **params: Any) -> "Graph":
        """Set parameters given as ``<op id>.<param>``.

        Raises:
            ConfigurationError: If no operator matches a parameter name
        """
        by_op: Dict[str, Dict[str, Any]] = {}
        for full_name, value in params.items():
            matches = [op_id for op_id in self.pipeops if full_name.startswith(f"{op_id}.")]
            if not matches:
                raise ConfigurationError(
                    f"Parameter '{full_name}' does not start with a PipeOp id of this graph: {self.ids}",
                    error_code="UNKNOWN_GRAPH_PARAMETER"
                )
            op_id = max(matches, key=len)
            by_op.setdefault(op_id, {})[full_name[len(op_id) + 1:]] = value
        for op_id, values in by_op.items():
            self.pipeops[op_id].set_params(**values)
        return self

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #
    def _run(self, task: Any, mode: str) -> List[Any]:
        if not self.pipeops:
            raise PipelineError("Cannot run an empty graph", error_code="EMPTY_GRAPH")
        results: Dict[str, Any] = {}
        for op_id in self.topological_order():
            incoming = self._incoming(op_id)
            inputs = [results[src] for src, _, _ in incoming] if incoming else [task]
            op = self.pipeops[op_id]
            outputs = op.train(inputs) if mode == "train" else op.predict(inputs)
            results[op_id] = outputs[0]
        return [results[op_id] for op_id in self.output_ids]

    def train(self, task: Any) -> List[Any]:
        """Train every operator in topological order; returns the graph outputs."""
        logger.debug(f"Training graph {' -> '.join(self.topological_order())}")
        return self._run(task, "train")

    def predict(self, task: Any) -> List[Any]:
        """Apply the trained operators; returns the graph outputs.

        Raises:
            PipelineError: If the graph has not been trained
        """
        if not self.is_trained:
            raise PipelineError("Graph must be trained before predicting", error_code="GRAPH_NOT_TRAINED")
        return self._run(task, "predict")

    def reset(self) -> "Graph":
        for op in self.pipeops.values():
            op.reset()
        return self

    def clone(self) -> "Graph":
        return copy.deepcopy(self)

    def summary(self) -> pd.DataFrame:
        """One row per operator with its class, predecessors and successors."""
        rows = []
        for op_id in self.topological_order():
            rows.append({
                "id": op_id,
                "class": type(self.pipeops[op_id]).__name__,
                "inputs": ", ".join(e[0] for e in self._incoming(op_id)) or "<INPUT>",
                "outputs": ", ".join(e[1] for e in self._outgoing(op_id)) or "<OUTPUT>",
            })
        return pd.DataFrame(rows)

    def __rshift__(self, other: Any) -> "Graph":
        return concat_graphs(self, other)

    def __rrshift__(self, other: Any) -> "Graph":
        return concat_graphs(other, self)

    def __repr__(self) -> str:
        return f"<Graph> with {len(self.pipeops)} PipeOps:\n{self.summary().to_string(index=False)}"


def as_graph(x: Any, clone: bool = True) -> Graph:
    """Convert a PipeOp, Learner, list of either (via ``gunion``) or Graph to a Graph."""
    if isinstance(x, Graph):
        return x.clone() if clone else x
    if isinstance(x, (list, tuple)):
        return gunion(x)
    if isinstance(x, Learner):
        x = PipeOpLearner(x)
    if isinstance(x, PipeOp):
        return Graph().add_pipeop(x.clone() if clone else x)
    raise PipelineError(
        f"Cannot convert object of type {type(x).__name__} to a Graph",
        error_code="INVALID_GRAPH"
    )


def _merge_into(graph: Graph, other: Graph) -> None:
    clashes = [op_id for op_id in other.pipeops if op_id in graph.pipeops]
    if clashes:
        raise PipelineError(
            f"PipeOp ids {clashes} occur in both graphs; give them distinct ids",
            error_code="DUPLICATE_PIPEOP_ID"
        )
    graph.pipeops.update(other.pipeops)
    graph.edges.extend(other.edges)


def concat_graphs(g1: Any, g2: Any) -> Graph:
    """Chain ``g1`` into ``g2``.

    Outputs of ``g1`` are connected to inputs of ``g2`` pairwise when their
    numbers match. Several outputs all feed a single variadic input (fan-in)
    and a single output feeds every input (fan-out).

    Raises:
        PipelineError: On duplicate ids or incompatible numbers of channels
    """
    left, right = as_graph(g1), as_graph(g2)
    outs, ins = left.output_ids, right.input_ids

    graph = Graph()
    _merge_into(graph, left)
    _merge_into(graph, right)

    if len(ins) == 1 and right.pipeops[ins[0]].is_variadic:
        for src in outs:
            graph.add_edge(src, ins[0])
    elif len(outs) == len(ins):
        for src, dst in zip(outs, ins):
            graph.add_edge(src, dst)
    elif len(outs) == 1:
        for dst in ins:
            graph.add_edge(outs[0], dst)
    else:
        raise PipelineError(
            f"Cannot connect {len(outs)} outputs to {len(ins)} inputs",
            error_code="CHANNEL_MISMATCH",
            context={"outputs": outs, "inputs": ins}
        )
    return graph


def gunion(graphs: Sequence[Any]) -> Graph:
    """Disjoint union of graphs; every input node receives the graph input.

    Raises:
        PipelineError: On duplicate ids
    """
    graph = Graph()
    for g in graphs:
        _merge_into(graph, as_graph(g))
    return graph
