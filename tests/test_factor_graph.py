"""Tests for `load_factor_graph` and the MRF built from it.

Error cases write a temporary model file and assert the exception type.
"""

from __future__ import annotations

import random
from pathlib import Path

import numpy as np
import pytest

from pgibbs.factor_graph import ModelFormatError, load_factor_graph
from pgibbs.mrf import construct_mrf, save_beliefs, unnormalized_loglikelihood


def test_load_chain(chain_path: Path) -> None:
    fg = load_factor_graph(chain_path)
    assert [v.arity for v in fg.variables] == [2, 2, 3]
    assert [v.name for v in fg.variables] == ["a", "b", "c"]
    assert len(fg.factors()) == 3
    last = fg.factors()[2]
    assert last.logp.shape == (2, 3)
    # last variable varies fastest
    assert last.logp[1, 2] == pytest.approx(0.3)


def test_mrf_has_one_vertex_per_variable(chain_path: Path) -> None:
    fg = load_factor_graph(chain_path)
    mrf = construct_mrf(fg, rng=random.Random(0))
    assert mrf.num_vertices() == 3
    assert mrf.neighbors(1) == {0, 2}
    assert mrf.vertex_data(0).factor_ids == [0, 1]
    for vid in range(3):
        vdata = mrf.vertex_data(vid)
        assert 0 <= vdata.asg < vdata.variable.arity
        assert vdata.updates == 0


def test_loglikelihood_sums_factor_values(chain_path: Path) -> None:
    fg = load_factor_graph(chain_path)
    mrf = construct_mrf(fg)
    for vid, value in enumerate((1, 1, 2)):
        mrf.vertex_data(vid).asg = value
    assert unnormalized_loglikelihood(mrf, fg.factors()) == pytest.approx(0.5 + 1.0 + 0.3)


def test_summary_of_unsampled_vertex_is_uniform(chain_path: Path) -> None:
    mrf = construct_mrf(load_factor_graph(chain_path))
    summary = mrf.node_summary(2)
    assert np.allclose(summary.belief, [1 / 3, 1 / 3, 1 / 3])
    assert summary.expectation == pytest.approx(1.0)
    assert summary.arity == 3


def test_save_beliefs(tmp_path: Path, chain_path: Path) -> None:
    mrf = construct_mrf(load_factor_graph(chain_path))
    mrf.vertex_data(0).belief[:] = [1.0, 3.0]
    out = tmp_path / "beliefs0.tsv"
    save_beliefs(mrf, str(out))
    lines = out.read_text().splitlines()
    assert len(lines) == 3
    assert lines[0].split("\t") == ["0", "0.25", "0.75"]


def test_missing_file() -> None:
    with pytest.raises(FileNotFoundError):
        load_factor_graph("does/not/exist.fg")


@pytest.mark.parametrize(
    "content",
    [
        "0 / 1.0\n",  # content before variables:
        "variables:\na x\n",  # invalid arity
        "variables:\na 0\n",  # non-positive arity
        "variables:\na 2\nfactors:\n0 1.0 2.0\n",  # missing separator
        "variables:\na 2\nfactors:\n0 / 1.0\n",  # wrong table size
        "variables:\na 2\nfactors:\n3 / 1.0 2.0\n",  # variable out of range
        "variables:\na 2\nfactors:\n0 0 / 1 2 3 4\n",  # repeated variable
        "# only a comment\n",  # no variables
    ],
)
def test_parse_errors(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.fg"
    path.write_text(content)
    with pytest.raises(ModelFormatError):
        load_factor_graph(path)
