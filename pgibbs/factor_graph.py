"""Factorized model and its text-format loader.

File layout::

    variables:
    <name>\t<arity>
    ...
    factors:
    <var> <var> ... / <logp> <logp> ...
    ...

Variables are referenced by their 0-based position in the ``variables:``
section. Each factor table holds ``prod(arity)`` log-potentials in row-major
order, the last listed variable varying fastest.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

logger = logging.getLogger("pgibbs.factor_graph")


class ModelFormatError(ValueError):
    """Malformed model file."""

    def __init__(self, path: str | Path, lineno: int, message: str):
        super().__init__(f"{path}:{lineno}: {message}")
        self.path = str(path)
        self.lineno = lineno


@dataclass(frozen=True)
class Variable:
    id: int
    arity: int
    name: str = ""


@dataclass
class Factor:
    """Log-potential table over an ordered tuple of variable ids."""

    variables: tuple[int, ...]
    logp: np.ndarray  # shape == tuple(arity of each variable)

    @property
    def size(self) -> int:
        return int(self.logp.size)

    def value(self, assignment) -> float:
        """Log-potential at ``assignment`` (indexable by variable id)."""
        return float(self.logp[tuple(int(assignment[v]) for v in self.variables)])

    def conditional(self, vid: int, assignment) -> np.ndarray:
        """Slice of the table over ``vid`` with all other variables fixed."""
        index = tuple(
            slice(None) if v == vid else int(assignment[v]) for v in self.variables
        )
        return self.logp[index]


@dataclass
class FactorGraph:
    variables: list[Variable] = field(default_factory=list)
    _factors: list[Factor] = field(default_factory=list)

    def factors(self) -> list[Factor]:
        return self._factors

    def add_variable(self, arity: int, name: str = "") -> Variable:
        var = Variable(id=len(self.variables), arity=arity, name=name)
        self.variables.append(var)
        return var

    def add_factor(self, variables: tuple[int, ...], logp) -> Factor:
        shape = tuple(self.variables[v].arity for v in variables)
        table = np.asarray(logp, dtype=float).reshape(shape)
        factor = Factor(variables=tuple(variables), logp=table)
        self._factors.append(factor)
        return factor

    @property
    def num_variables(self) -> int:
        return len(self.variables)


def _parse_variable(path, lineno, line, graph: FactorGraph) -> None:
    parts = line.split()
    if len(parts) == 1:
        name, arity_s = str(graph.num_variables), parts[0]
    elif len(parts) == 2:
        name, arity_s = parts
    else:
        raise ModelFormatError(path, lineno, "expected '<name> <arity>'")
    try:
        arity = int(arity_s)
    except ValueError:
        raise ModelFormatError(path, lineno, f"invalid arity {arity_s!r}") from None
    if arity < 1:
        raise ModelFormatError(path, lineno, "arity must be >= 1")
    graph.add_variable(arity, name)


def _parse_factor(path, lineno, line, graph: FactorGraph) -> None:
    if "/" not in line:
        raise ModelFormatError(path, lineno, "expected '<vars> / <log-potentials>'")
    lhs, rhs = line.split("/", 1)
    try:
        var_ids = tuple(int(tok) for tok in lhs.split())
        values = [float(tok) for tok in rhs.split()]
    except ValueError as e:
        raise ModelFormatError(path, lineno, str(e)) from None
    if not var_ids:
        raise ModelFormatError(path, lineno, "factor without variables")
    if len(set(var_ids)) != len(var_ids):
        raise ModelFormatError(path, lineno, "repeated variable in factor")
    for v in var_ids:
        if not (0 <= v < graph.num_variables):
            raise ModelFormatError(path, lineno, f"variable id {v} out of range")
    expected = math.prod(graph.variables[v].arity for v in var_ids)
    if len(values) != expected:
        raise ModelFormatError(
            path, lineno, f"table has {len(values)} entries, expected {expected}"
        )
    graph.add_factor(var_ids, values)


def load_factor_graph(file_path: str | Path) -> FactorGraph:
    """Parse a model file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ModelFormatError: On any structural problem (reported with line number).
    """
    graph = FactorGraph()
    section = None
    with open(file_path, "r", encoding="utf-8") as f:
        for lineno, raw in enumerate(f, start=1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            lowered = line.lower()
            if lowered == "variables:":
                section = "variables"
                continue
            if lowered == "factors:":
                section = "factors"
                continue
            if section == "variables":
                _parse_variable(file_path, lineno, line, graph)
            elif section == "factors":
                _parse_factor(file_path, lineno, line, graph)
            else:
                raise ModelFormatError(file_path, lineno, "content before 'variables:'")
    if graph.num_variables == 0:
        raise ModelFormatError(file_path, 0, "model declares no variables")
    logger.info(
        "Loaded %s: %d variables, %d factors",
        file_path,
        graph.num_variables,
        len(graph.factors()),
    )
    return graph
