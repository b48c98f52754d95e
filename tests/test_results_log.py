from __future__ import annotations

from dataclasses import fields
from pathlib import Path

import pytest

from pgibbs.models import ExperimentConfig, ExperimentRecord
from pgibbs.recorder import ExperimentRecorder
from pgibbs.results_log import (
    LineCountIdSource,
    SequentialIdSource,
    append_record,
    next_experiment_id,
    read_records,
)


def _record(experiment_id: int, loglik: float = -12.3456789012345) -> ExperimentRecord:
    return ExperimentRecord(
        experiment_id=experiment_id,
        ncpus=4,
        run_so_far=6.00012345678901,
        runtime=5.0,
        treesize=1000,
        treewidth=3,
        factorsize=0,
        treeheight=2,
        subthreads=1,
        priorities=True,
        actual_runtime=6.00012345678901,
        total_updates=421,
        loglik=loglik,
    )


def test_missing_or_empty_log_gives_zero(tmp_path: Path) -> None:
    path = tmp_path / "results.tsv"
    assert next_experiment_id(path) == 0
    path.write_text("")
    assert next_experiment_id(path) == 0


def test_allocator_is_idempotent_without_append(tmp_path: Path) -> None:
    path = tmp_path / "results.tsv"
    path.write_text("a\nb\nc\n")
    assert next_experiment_id(path) == 3
    assert next_experiment_id(path) == 3


def test_appending_k_records_yields_ids_in_order(tmp_path: Path) -> None:
    path = tmp_path / "results.tsv"
    source = LineCountIdSource(path)
    ids = []
    for _ in range(5):
        eid = source.next_id()
        ids.append(eid)
        append_record(path, _record(eid))
    assert ids == [0, 1, 2, 3, 4]
    assert [r.experiment_id for r in read_records(path)] == ids


def test_record_round_trip_keeps_all_thirteen_fields(tmp_path: Path) -> None:
    path = tmp_path / "results.tsv"
    rec = _record(7)
    append_record(path, rec)
    line = path.read_text(encoding="utf-8").splitlines()[0]
    parts = line.split("\t")
    assert len(parts) == 13
    assert parts[9] == "1"  # priorities
    parsed = ExperimentRecord.from_line(line)
    assert parsed == rec
    for f in fields(ExperimentRecord):
        assert type(getattr(parsed, f.name)) is type(getattr(rec, f.name))


def test_floats_written_with_sixteen_digits() -> None:
    line = _record(0, loglik=-1.0 / 3.0).to_line()
    assert line.split("\t")[12] == "-0.3333333333333333"


def test_from_line_rejects_wrong_field_count() -> None:
    with pytest.raises(ValueError):
        ExperimentRecord.from_line("1\t2\t3\n")


def test_sequential_source_counts_from_start() -> None:
    source = SequentialIdSource(start=10)
    assert [source.next_id() for _ in range(3)] == [10, 11, 12]


def test_recorder_copies_config_fields(tmp_path: Path) -> None:
    cfg = ExperimentConfig(
        model_filename="m.fg",
        treesize=50,
        treewidth=2,
        factorsize=8,
        treeheight=3,
        subthreads=2,
        priorities=False,
        ncpus=3,
        results_file=str(tmp_path / "results.tsv"),
    )
    rec = ExperimentRecorder(cfg).record(
        experiment_id=0,
        run_so_far=1.5,
        runtime=2.0,
        actual_runtime=1.5,
        total_updates=99,
        loglik=-3.0,
    )
    assert (rec.ncpus, rec.treesize, rec.treewidth, rec.factorsize) == (3, 50, 2, 8)
    assert (rec.treeheight, rec.subthreads, rec.priorities) == (3, 2, False)
    assert read_records(cfg.results_file) == [rec]


def test_append_to_unopenable_path_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        append_record(tmp_path, _record(0))
