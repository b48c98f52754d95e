"""Time-budgeted tree-blocked Gibbs sampler.

Each round grows up to ``ncpus`` disjoint trees over the MRF and samples
them concurrently on a thread pool. Inside a tree vertices are resampled
from their full conditionals in breadth-first order; the conditional is
accumulated into the vertex belief.
"""

from __future__ import annotations

import logging
import random
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from pgibbs.factor_graph import FactorGraph
from pgibbs.mrf import MRFGraph

logger = logging.getLogger("pgibbs.sampler")

TreeOrder = List[Tuple[int, int]]  # (vertex id, depth) in BFS order


@dataclass
class SamplerState:
    """Bookkeeping for one ``parallel_sample`` call."""

    start_time: float
    budget_s: float
    rounds: int = 0
    trees: int = 0
    samples: int = 0

    def elapsed(self) -> float:
        return time.perf_counter() - self.start_time

    def time_left(self) -> bool:
        return self.elapsed() < self.budget_s


def _oversized(factor_graph: FactorGraph, mrf: MRFGraph, vid: int, factorsize: int) -> bool:
    if factorsize <= 0:
        return False
    factors = factor_graph.factors()
    return any(factors[fid].size > factorsize for fid in mrf.vertex_data(vid).factor_ids)


def grow_tree(
    factor_graph: FactorGraph,
    mrf: MRFGraph,
    root: int,
    claimed: set[int],
    treesize: int,
    treewidth: int,
    factorsize: int,
    treeheight: int,
) -> TreeOrder:
    """Breadth-first tree from ``root`` over unclaimed vertices.

    A vertex joins when the tree has room, its depth is below ``treeheight``
    (0 = unbounded), at most ``treewidth`` of its neighbours are already in
    the tree and none of its factors exceeds ``factorsize`` entries. The root
    always joins. Joined vertices are added to ``claimed``.
    """
    order: TreeOrder = [(root, 0)]
    in_tree = {root}
    claimed.add(root)
    queue = deque([(root, 0)])
    while queue and len(order) < treesize:
        vid, depth = queue.popleft()
        child_depth = depth + 1
        if treeheight > 0 and child_depth >= treeheight:
            continue
        for nb in sorted(mrf.neighbors(vid)):
            if len(order) >= treesize:
                break
            if nb in claimed:
                continue
            if len(mrf.neighbors(nb) & in_tree) > treewidth:
                continue
            if _oversized(factor_graph, mrf, nb, factorsize):
                continue
            in_tree.add(nb)
            claimed.add(nb)
            order.append((nb, child_depth))
            queue.append((nb, child_depth))
    return order


def conditional(factor_graph: FactorGraph, mrf: MRFGraph, vid: int) -> np.ndarray:
    """Normalized full conditional of ``vid`` given the current assignment."""
    vdata = mrf.vertex_data(vid)
    factors = factor_graph.factors()
    asg = mrf.assignment
    logits = np.zeros(vdata.variable.arity)
    for fid in vdata.factor_ids:
        logits += factors[fid].conditional(vid, asg)
    # -inf + inf from conflicting hard factors counts as ruled out
    logits = np.nan_to_num(logits, nan=-np.inf, posinf=np.inf, neginf=-np.inf)
    top = logits.max()
    if np.isposinf(top):
        p = np.isposinf(logits).astype(float)
        return p / p.sum()
    if np.isneginf(top):
        # current neighbours rule out every value
        return np.full(logits.size, 1.0 / logits.size)
    p = np.exp(logits - top)
    return p / p.sum()


def sample_tree(
    factor_graph: FactorGraph,
    mrf: MRFGraph,
    order: TreeOrder,
    rng: random.Random,
    deadline: float,
) -> int:
    """Resample the tree vertices in order; returns the number of updates."""
    done = 0
    for vid, depth in order:
        if time.perf_counter() >= deadline:
            break
        p = conditional(factor_graph, mrf, vid)
        vdata = mrf.vertex_data(vid)
        vdata.asg = rng.choices(range(p.size), weights=p.tolist())[0]
        vdata.belief += p
        vdata.updates += 1
        vdata.height = depth
        done += 1
    return done


def _root_order(mrf: MRFGraph, priorities: bool, rng: random.Random) -> List[int]:
    roots = list(range(mrf.num_vertices()))
    rng.shuffle(roots)
    if priorities:
        # stable: least-updated first, random among ties
        roots.sort(key=lambda v: mrf.vertex_data(v).updates)
    return roots


def parallel_sample(
    factor_graph: FactorGraph,
    mrf: MRFGraph,
    ncpus: int,
    budget_s: float,
    treesize: int,
    treewidth: int,
    factorsize: int,
    treeheight: int,
    subthreads: int,
    priorities: bool,
    rng: Optional[random.Random] = None,
) -> None:
    """Sample ``mrf`` in place for roughly ``budget_s`` seconds.

    The deadline is checked before every round and every vertex update, so a
    zero budget returns without touching the graph. ``subthreads`` is
    accepted for interface compatibility; trees are sampled sequentially
    inside each worker.
    """
    rng = rng or random.Random()
    state = SamplerState(start_time=time.perf_counter(), budget_s=max(0.0, budget_s))
    deadline = state.start_time + state.budget_s
    if mrf.num_vertices() == 0 or not state.time_left():
        logger.debug("Zero budget or empty graph, nothing sampled")
        return

    with ThreadPoolExecutor(max_workers=ncpus, thread_name_prefix="pgibbs") as pool:
        while state.time_left():
            claimed: set[int] = set()
            trees: List[TreeOrder] = []
            for root in _root_order(mrf, priorities, rng):
                if len(trees) >= ncpus:
                    break
                if root in claimed:
                    continue
                trees.append(
                    grow_tree(
                        factor_graph,
                        mrf,
                        root,
                        claimed,
                        treesize,
                        treewidth,
                        factorsize,
                        treeheight,
                    )
                )
            futures = [
                pool.submit(
                    sample_tree,
                    factor_graph,
                    mrf,
                    tree,
                    random.Random(rng.getrandbits(64)),
                    deadline,
                )
                for tree in trees
            ]
            state.samples += sum(f.result() for f in futures)
            state.trees += len(trees)
            state.rounds += 1

    logger.debug(
        "Sampler finished: rounds=%d trees=%d samples=%d elapsed=%.3fs (budget %.3fs)",
        state.rounds,
        state.trees,
        state.samples,
        state.elapsed(),
        state.budget_s,
    )
