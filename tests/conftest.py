"""Pytest configuration & custom summary hook.

Also ensures the project root is on sys.path for imports and provides
small model builders shared by the test modules.
"""

from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so 'import pgibbs.*' works
_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from pgibbs.factor_graph import FactorGraph  # noqa: E402
from pgibbs.mrf import construct_mrf  # noqa: E402

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def build_grid(side: int, arity: int = 2, coupling: float = 0.8, seed: int = 0) -> FactorGraph:
    """Square grid with attractive pairwise factors and random unaries."""
    rng = random.Random(seed)
    graph = FactorGraph()
    for _ in range(side * side):
        graph.add_variable(arity)
    for vid in range(side * side):
        graph.add_factor((vid,), [rng.uniform(-0.5, 0.5) for _ in range(arity)])
        r, c = divmod(vid, side)
        pair = [coupling if i == j else 0.0 for i in range(arity) for j in range(arity)]
        if c + 1 < side:
            graph.add_factor((vid, vid + 1), pair)
        if r + 1 < side:
            graph.add_factor((vid, vid + side), pair)
    return graph


@pytest.fixture
def grid_model():
    def _make(side: int = 4, arity: int = 2):
        fg = build_grid(side, arity)
        return fg, construct_mrf(fg, rng=random.Random(1))

    return _make


@pytest.fixture
def chain_path() -> Path:
    return FIXTURES / "chain3.fg"


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
    exitstatus: int,
    config: pytest.Config,
) -> None:  # noqa: D401
    """Append a compact custom summary at the end of test session."""
    stats = terminalreporter.stats
    collected = terminalreporter._numcollected  # type: ignore[attr-defined]
    passed = len(stats.get("passed", []))
    failed = len(stats.get("failed", []))
    errors = len(stats.get("error", []))
    skipped = len(stats.get("skipped", []))

    terminalreporter.section("Custom summary", sep="=")
    terminalreporter.write_line(
        "Collected: "
        f"{collected} | Passed: {passed} | Failed: {failed} | "
        f"Errors: {errors} | Skipped: {skipped}"
    )
    if failed:
        terminalreporter.write_line("Failed tests:")
        for rep in stats["failed"]:
            terminalreporter.write_line(f"  - {rep.nodeid}")
