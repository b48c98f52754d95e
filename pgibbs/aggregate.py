from __future__ import annotations

import csv
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Tuple

from pgibbs.models import ExperimentRecord
from pgibbs.results_log import read_records

logger = logging.getLogger("pgibbs.aggregate")

GROUP_COLUMNS = (
    "ncpus",
    "treesize",
    "treewidth",
    "factorsize",
    "treeheight",
    "subthreads",
    "priorities",
    "runtime",
)
SUMMARY_COLUMNS = GROUP_COLUMNS + (
    "experiments",
    "mean_run_so_far",
    "mean_total_updates",
    "mean_loglik",
    "best_loglik",
)


def group_records(
    records: List[ExperimentRecord],
) -> Dict[Tuple, List[ExperimentRecord]]:
    """Group records sharing sampler settings and target checkpoint."""
    groups: Dict[Tuple, List[ExperimentRecord]] = defaultdict(list)
    for r in records:
        groups[tuple(getattr(r, c) for c in GROUP_COLUMNS)].append(r)
    return dict(groups)


def write_summary_csv(experiment_file: str | Path, out_path: str | Path) -> Path:
    """One CSV row per settings group with mean / best statistics."""
    out_path = Path(out_path)
    records = read_records(experiment_file)
    if not records:
        logger.warning("[Aggregate] No records found in %s", experiment_file)
    groups = group_records(records)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(SUMMARY_COLUMNS)
        for key in sorted(groups):
            rows = groups[key]
            n = len(rows)
            writer.writerow(
                [
                    *(int(v) if isinstance(v, bool) else v for v in key),
                    n,
                    sum(r.run_so_far for r in rows) / n,
                    sum(r.total_updates for r in rows) / n,
                    sum(r.loglik for r in rows) / n,
                    max(r.loglik for r in rows),
                ]
            )
    logger.info("[Aggregate] Summary written: %s", out_path)
    return out_path
