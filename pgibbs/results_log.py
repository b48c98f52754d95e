"""Append-only results log and experiment-id sources.

The log is a headerless TSV file with one ``ExperimentRecord`` per line.
The id of the next record is the number of lines already present. Nothing
is reserved or locked: two processes counting before either appends will
hand out the same id.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Protocol

from pgibbs.models import ExperimentRecord

logger = logging.getLogger("pgibbs.results_log")


def next_experiment_id(experiment_file: str | Path) -> int:
    """Number of lines in ``experiment_file`` (0 when missing or empty)."""
    try:
        with open(experiment_file, "r", encoding="utf-8") as f:
            return sum(1 for _ in f)
    except FileNotFoundError:
        return 0


class ExperimentIdSource(Protocol):
    def next_id(self) -> int: ...


class LineCountIdSource:
    """Ids derived from the current line count of the results log."""

    def __init__(self, experiment_file: str | Path):
        self.experiment_file = Path(experiment_file)

    def next_id(self) -> int:
        return next_experiment_id(self.experiment_file)


class SequentialIdSource:
    """In-memory counter; each call hands out the next integer."""

    def __init__(self, start: int = 0):
        self._next = start

    def next_id(self) -> int:
        value = self._next
        self._next += 1
        return value


def append_record(experiment_file: str | Path, record: ExperimentRecord) -> None:
    """Append one line. ``OSError`` from opening the file propagates."""
    with open(experiment_file, "a", encoding="utf-8") as fout:
        fout.write(record.to_line() + "\n")
        fout.flush()


def read_records(experiment_file: str | Path) -> List[ExperimentRecord]:
    """Parse every line of the log back into records (blank lines skipped)."""
    records: List[ExperimentRecord] = []
    path = Path(experiment_file)
    if not path.exists():
        return records
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if line.strip():
                records.append(ExperimentRecord.from_line(line))
    logger.debug("Read %d records from %s", len(records), path)
    return records
