#!/usr/bin/env python3
"""Write a per-settings summary CSV (and a convergence plot) from a results log.

Usage:
    python scripts/summarize_results.py experiment_results.tsv results/summary.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from pgibbs.aggregate import write_summary_csv  # noqa: E402
from pgibbs.results_log import read_records  # noqa: E402
from pgibbs.visualization import save_convergence_plot  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarize an experiment results log")
    parser.add_argument("results", help="Results log (TSV)")
    parser.add_argument("summary", help="Output CSV path")
    parser.add_argument("--plot", help="Also plot log-likelihood vs runtime to this PNG")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    write_summary_csv(args.results, args.summary)
    if args.plot:
        save_convergence_plot(read_records(args.results), args.plot)


if __name__ == "__main__":
    main()
