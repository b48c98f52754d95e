from __future__ import annotations

import logging
from pathlib import Path

from pgibbs.models import ExperimentConfig, ExperimentRecord
from pgibbs.results_log import append_record

logger = logging.getLogger("pgibbs.recorder")


class ExperimentRecorder:
    """Build one ``ExperimentRecord`` per checkpoint and append it to the log."""

    def __init__(self, config: ExperimentConfig, results_file: str | Path | None = None):
        self.config = config
        self.results_file = Path(results_file or config.results_file)

    def record(
        self,
        experiment_id: int,
        run_so_far: float,
        runtime: float,
        actual_runtime: float,
        total_updates: int,
        loglik: float,
    ) -> ExperimentRecord:
        cfg = self.config
        record = ExperimentRecord(
            experiment_id=experiment_id,
            ncpus=cfg.ncpus,
            run_so_far=float(run_so_far),
            runtime=float(runtime),
            treesize=cfg.treesize,
            treewidth=cfg.treewidth,
            factorsize=cfg.factorsize,
            treeheight=cfg.treeheight,
            subthreads=cfg.subthreads,
            priorities=cfg.priorities,
            actual_runtime=float(actual_runtime),
            total_updates=int(total_updates),
            loglik=float(loglik),
        )
        append_record(self.results_file, record)
        logger.info("Saved experiment %d to %s", experiment_id, self.results_file)
        return record
