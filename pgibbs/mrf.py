"""Pairwise MRF view of a factor graph: one vertex per variable.

Vertices carry the sampler state (belief, update count, tree height and the
current assignment). The graph is owned by whoever built it; a sampler gets
mutable access only inside ``MRFGraph.lend()``.
"""

from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from pgibbs.factor_graph import Factor, FactorGraph, Variable
from pgibbs.models import NodeSummary

logger = logging.getLogger("pgibbs.mrf")


def normalized(belief: np.ndarray) -> np.ndarray:
    """Return a normalized copy; an all-zero belief becomes uniform."""
    total = float(belief.sum())
    if total <= 0.0:
        return np.full(belief.shape, 1.0 / belief.size)
    return belief / total


def expectation(belief: np.ndarray) -> float:
    p = normalized(belief)
    return float(np.dot(np.arange(p.size), p))


@dataclass
class VertexData:
    variable: Variable
    belief: np.ndarray
    asg: int = 0
    updates: int = 0
    height: int = 0
    factor_ids: List[int] = field(default_factory=list)


class _AssignmentView:
    """Index a vertex list by variable id and get its current assignment."""

    __slots__ = ("_vertices",)

    def __init__(self, vertices: List[VertexData]):
        self._vertices = vertices

    def __getitem__(self, vid: int) -> int:
        return self._vertices[vid].asg


class MRFGraph:
    def __init__(self) -> None:
        self._vertices: List[VertexData] = []
        self._neighbors: List[set[int]] = []
        self._on_loan = False

    def add_vertex(self, vdata: VertexData) -> int:
        self._vertices.append(vdata)
        self._neighbors.append(set())
        return len(self._vertices) - 1

    def add_edge(self, a: int, b: int) -> None:
        if a != b:
            self._neighbors[a].add(b)
            self._neighbors[b].add(a)

    def num_vertices(self) -> int:
        return len(self._vertices)

    def vertex_data(self, vid: int) -> VertexData:
        return self._vertices[vid]

    def neighbors(self, vid: int) -> set[int]:
        return self._neighbors[vid]

    @property
    def assignment(self) -> _AssignmentView:
        return _AssignmentView(self._vertices)

    @property
    def on_loan(self) -> bool:
        return self._on_loan

    @contextmanager
    def lend(self) -> Iterator["MRFGraph"]:
        """Hand mutable access to a sampler for the duration of one call."""
        if self._on_loan:
            raise RuntimeError("MRF graph is already lent to a sampler")
        self._on_loan = True
        try:
            yield self
        finally:
            self._on_loan = False

    def node_summary(self, vid: int) -> NodeSummary:
        if self._on_loan:
            raise RuntimeError("MRF graph is lent to a sampler; summaries are unavailable")
        vdata = self._vertices[vid]
        belief = normalized(vdata.belief)
        return NodeSummary(
            vid=vid,
            belief=belief,
            expectation=expectation(belief),
            updates=vdata.updates,
            height=vdata.height,
            assignment=vdata.asg,
            arity=vdata.variable.arity,
        )

    def node_summaries(self) -> List[NodeSummary]:
        return [self.node_summary(vid) for vid in range(self.num_vertices())]

    def total_updates(self) -> int:
        return sum(v.updates for v in self._vertices)


def construct_mrf(
    factor_graph: FactorGraph, rng: Optional[random.Random] = None
) -> MRFGraph:
    """Build the MRF with a random initial assignment and empty beliefs."""
    rng = rng or random.Random()
    graph = MRFGraph()
    for var in factor_graph.variables:
        graph.add_vertex(
            VertexData(
                variable=var,
                belief=np.zeros(var.arity),
                asg=rng.randrange(var.arity),
            )
        )
    for fid, factor in enumerate(factor_graph.factors()):
        for v in factor.variables:
            graph.vertex_data(v).factor_ids.append(fid)
        for i, a in enumerate(factor.variables):
            for b in factor.variables[i + 1:]:
                graph.add_edge(a, b)
    logger.info("Built MRF with %d vertices", graph.num_vertices())
    return graph


def unnormalized_loglikelihood(graph: MRFGraph, factors: List[Factor]) -> float:
    """Sum of factor log-potentials at the current assignment."""
    asg = graph.assignment
    return float(sum(f.value(asg) for f in factors))


def save_beliefs(graph: MRFGraph, path: str) -> None:
    """Write ``vid<TAB>p0<TAB>p1...`` per vertex."""
    with open(path, "w", encoding="utf-8") as f:
        for vid in range(graph.num_vertices()):
            p = normalized(graph.vertex_data(vid).belief)
            f.write(str(vid))
            for value in p:
                f.write(f"\t{value:.16g}")
            f.write("\n")
