from __future__ import annotations

import csv
from pathlib import Path

import pytest

from pgibbs.aggregate import SUMMARY_COLUMNS, write_summary_csv
from pgibbs.models import ExperimentRecord
from pgibbs.results_log import append_record


def _rec(eid: int, treesize: int, runtime: float, loglik: float) -> ExperimentRecord:
    return ExperimentRecord(
        eid, 2, runtime, runtime, treesize, 3, 0, 0, 1, False, runtime, 10 * eid, loglik
    )


def test_summary_groups_by_settings_and_checkpoint(tmp_path: Path) -> None:
    log = tmp_path / "experiment_results.tsv"
    for rec in (
        _rec(0, 100, 1.0, -10.0),
        _rec(1, 100, 1.0, -6.0),
        _rec(2, 100, 2.0, -4.0),
        _rec(3, 50, 1.0, -8.0),
    ):
        append_record(log, rec)

    out = write_summary_csv(log, tmp_path / "summary" / "summary.csv")
    with open(out, encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    assert tuple(rows[0].keys()) == SUMMARY_COLUMNS
    assert len(rows) == 3
    by_key = {(int(r["treesize"]), float(r["runtime"])): r for r in rows}
    pair = by_key[(100, 1.0)]
    assert int(pair["experiments"]) == 2
    assert float(pair["mean_loglik"]) == pytest.approx(-8.0)
    assert float(pair["best_loglik"]) == pytest.approx(-6.0)
    assert float(pair["mean_total_updates"]) == pytest.approx(5.0)
    assert pair["priorities"] == "0"


def test_summary_of_missing_log_has_header_only(tmp_path: Path) -> None:
    out = write_summary_csv(tmp_path / "none.tsv", tmp_path / "summary.csv")
    assert out.read_text().splitlines() == [",".join(SUMMARY_COLUMNS)]
