"""Runtime budget scheduler: the checkpoint loop of an experiment session.

For every target cumulative runtime the scheduler hands the remaining budget
to the sampler, measures the call itself, appends a results-log record and
renders diagnostics. Checkpoints run strictly in the configured order.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Optional

from pgibbs.factor_graph import FactorGraph
from pgibbs.models import ExperimentConfig, ExperimentRecord
from pgibbs.mrf import MRFGraph, save_beliefs, unnormalized_loglikelihood
from pgibbs.recorder import ExperimentRecorder
from pgibbs.results_log import ExperimentIdSource, LineCountIdSource
from pgibbs.sampler import parallel_sample
from pgibbs.visualization import DiagnosticRenderer, make_filename

logger = logging.getLogger("pgibbs.scheduler")

# (factor_graph, mrf, ncpus, budget_s, treesize, treewidth, factorsize,
#  treeheight, subthreads, priorities) -> None
Sampler = Callable[..., None]


@dataclass
class CheckpointResult:
    record: ExperimentRecord
    remaining: float
    image_paths: Dict[str, str] = field(default_factory=dict)


class RuntimeBudgetScheduler:
    def __init__(
        self,
        config: ExperimentConfig,
        factor_graph: FactorGraph,
        mrf: MRFGraph,
        sampler: Optional[Sampler] = None,
        id_source: Optional[ExperimentIdSource] = None,
        recorder: Optional[ExperimentRecorder] = None,
        renderer: Optional[DiagnosticRenderer] = None,
        clock: Callable[[], float] = time.perf_counter,
        dump_beliefs: bool = True,
    ):
        self.config = config
        self.factor_graph = factor_graph
        self.mrf = mrf
        if sampler is None:
            sampler = partial(parallel_sample, rng=random.Random(config.seed))
        self.sampler = sampler
        self.id_source = id_source or LineCountIdSource(config.results_file)
        self.recorder = recorder or ExperimentRecorder(config)
        self.renderer = renderer or DiagnosticRenderer(config.output_dir, config.image_ext)
        self.clock = clock
        self.dump_beliefs = dump_beliefs
        self.run_so_far = 0.0

    def remaining_budget(self, runtime: float) -> float:
        """Budget for a checkpoint; clamped to exactly 0 once it is overdue."""
        remaining = runtime - self.run_so_far
        if remaining <= 0:
            return 0.0
        return remaining

    def run(self) -> List[CheckpointResult]:
        results: List[CheckpointResult] = []
        for idx, runtime in enumerate(self.config.runtimes, start=1):
            logger.info("[Checkpoint] (%d/%d) target %ss", idx, len(self.config.runtimes), runtime)
            results.append(self.run_checkpoint(runtime))
        return results

    def run_checkpoint(self, runtime: float) -> CheckpointResult:
        cfg = self.config
        experiment_id = self.id_source.next_id()
        self._log_settings(experiment_id, runtime)

        remaining = self.remaining_budget(runtime)
        with self.mrf.lend() as graph:
            start = self.clock()
            self.sampler(
                self.factor_graph,
                graph,
                cfg.ncpus,
                remaining,
                cfg.treesize,
                cfg.treewidth,
                cfg.factorsize,
                cfg.treeheight,
                cfg.subthreads,
                cfg.priorities,
            )
            actual_runtime = self.clock() - start
        logger.info("Local Runtime: %s", actual_runtime)

        self.run_so_far += actual_runtime
        logger.info("Total Runtime: %s", self.run_so_far)

        logger.info("Computing unnormalized log-likelihood")
        loglik = unnormalized_loglikelihood(self.mrf, self.factor_graph.factors())
        logger.info("LogLikelihood: %s", loglik)

        record = self.recorder.record(
            experiment_id=experiment_id,
            run_so_far=self.run_so_far,
            runtime=runtime,
            actual_runtime=actual_runtime,
            total_updates=self.mrf.total_updates(),
            loglik=loglik,
        )

        if self.dump_beliefs:
            os.makedirs(cfg.output_dir, exist_ok=True)
            save_beliefs(
                self.mrf,
                os.path.join(cfg.output_dir, make_filename("beliefs", ".tsv", experiment_id)),
            )
        image_paths = self.renderer.render(self.mrf.node_summaries(), experiment_id)
        return CheckpointResult(record=record, remaining=remaining, image_paths=image_paths)

    def _log_settings(self, experiment_id: int, runtime: float) -> None:
        cfg = self.config
        logger.info(
            "Settings: experiment=%d model=%s runtime=%s treesize=%d treewidth=%d "
            "treeheight=%d factorsize=%d subthreads=%d priorities=%s",
            experiment_id,
            cfg.model_filename,
            runtime,
            cfg.treesize,
            cfg.treewidth,
            cfg.treeheight,
            cfg.factorsize,
            cfg.subthreads,
            cfg.priorities,
        )
