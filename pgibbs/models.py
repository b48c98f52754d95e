"""Core data structures for blocked Gibbs experiments.

This module defines:
    ExperimentConfig -- immutable run parameters, fixed at startup.
    ExperimentRecord -- one row of the results log, one per checkpoint.
    NodeSummary      -- read-only per-vertex view of the sampled graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

import numpy as np

RESULTS_FN = "experiment_results.tsv"
IMAGE_EXTENSIONS = (".pgm", ".png")


@dataclass(frozen=True)
class ExperimentConfig:
    """Parameters of one experiment session.

    Attributes:
        model_filename: Path to the factor-graph model file.
        runtimes: Target cumulative runtimes in seconds, processed in order.
        treesize: Maximum number of variables in a sampled tree.
        treeheight: Maximum tree height (0 = unconstrained).
        treewidth: Maximum treewidth.
        factorsize: Maximum factor table size (0 = unconstrained).
        subthreads: Number of threads to use inside each tree.
        priorities: Use least-updated-first root selection.
        ncpus: Total worker thread count handed to the sampler.
        results_file: Append-only results log.
        output_dir: Directory receiving images and belief dumps.
        image_ext: Image extension, one of IMAGE_EXTENSIONS.
        seed: Optional RNG seed (None = seeded from the clock).
    """

    model_filename: str
    runtimes: tuple[float, ...] = (10.0,)
    treesize: int = 1000
    treeheight: int = 0
    treewidth: int = 3
    factorsize: int = 0
    subthreads: int = 1
    priorities: bool = False
    ncpus: int = 2
    results_file: str = RESULTS_FN
    output_dir: str = "."
    image_ext: str = ".pgm"
    seed: int | None = None

    def validate(self) -> None:
        if not self.model_filename:
            raise ValueError("model filename must be set")
        if not self.runtimes:
            raise ValueError("runtimes must be a non-empty list of seconds")
        if any(r < 0 for r in self.runtimes):
            raise ValueError(f"runtimes must be non-negative: {list(self.runtimes)}")
        if self.treesize <= 0:
            raise ValueError("treesize must be positive")
        if self.ncpus <= 0 or self.subthreads <= 0:
            raise ValueError("ncpus and subthreads must be positive")
        for name in ("treewidth", "treeheight", "factorsize"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.image_ext not in IMAGE_EXTENSIONS:
            raise ValueError(f"Unsupported image extension {self.image_ext!r}")


@dataclass(frozen=True)
class ExperimentRecord:
    """Single results-log row. Field order is the on-disk column order."""

    experiment_id: int
    ncpus: int
    run_so_far: float
    runtime: float
    treesize: int
    treewidth: int
    factorsize: int
    treeheight: int
    subthreads: int
    priorities: bool
    actual_runtime: float
    total_updates: int
    loglik: float

    def to_line(self) -> str:
        """Format as one tab-separated line (16 significant digits for floats)."""
        cols = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                cols.append(str(int(value)))
            elif isinstance(value, float):
                cols.append(f"{value:.16g}")
            else:
                cols.append(str(value))
        return "\t".join(cols)

    @classmethod
    def from_line(cls, line: str) -> "ExperimentRecord":
        parts = line.rstrip("\n").split("\t")
        names = [f.name for f in fields(cls)]
        if len(parts) != len(names):
            raise ValueError(f"Expected {len(names)} fields, got {len(parts)}: {line!r}")
        values = {}
        for f, raw in zip(fields(cls), parts):
            if f.type == "bool":
                values[f.name] = raw.strip() not in ("0", "false", "False", "")
            elif f.type == "float":
                values[f.name] = float(raw)
            else:
                values[f.name] = int(raw)
        return cls(**values)


@dataclass(frozen=True, eq=False)
class NodeSummary:
    """Per-vertex snapshot taken between sampler calls."""

    vid: int
    belief: np.ndarray = field(repr=False)
    expectation: float
    updates: int
    height: int
    assignment: int
    arity: int
