"""Command line entry point: run a blocked Gibbs experiment session."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from typing import List, Optional

from pgibbs.config import build_config, load_config
from pgibbs.factor_graph import load_factor_graph
from pgibbs.mrf import construct_mrf
from pgibbs.scheduler import RuntimeBudgetScheduler
from pgibbs.visualization import save_convergence_plot

logger = logging.getLogger("pgibbs")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgibbs",
        description="Parallel junction tree MCMC on large factorized models.",
    )
    parser.add_argument("model", nargs="?", help="Factor-graph model file")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--runtime", type=float, nargs="+", help="Total runtime checkpoints in seconds"
    )
    parser.add_argument("--treesize", type=int, help="The number of variables in a junction tree")
    parser.add_argument("--treeheight", type=int, help="The height of the tree (0 = unbounded)")
    parser.add_argument("--treewidth", type=int, help="The maximum treewidth")
    parser.add_argument("--factorsize", type=int, help="The maximum factorsize (0 = unbounded)")
    parser.add_argument(
        "--subthreads", type=int, help="The number of threads to use inside each tree"
    )
    parser.add_argument(
        "--priorities",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use priorities?",
    )
    parser.add_argument("--ncpus", type=int, help="Number of worker threads")
    parser.add_argument("--results-file", dest="results_file", help="Results log (TSV)")
    parser.add_argument("--output-dir", dest="output_dir", help="Directory for images/beliefs")
    parser.add_argument(
        "--image-ext", dest="image_ext", choices=(".pgm", ".png"), help="Image format"
    )
    parser.add_argument("--seed", type=int, help="RNG seed")
    parser.add_argument("--plot", help="Write a convergence plot of this session to PATH")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default INFO)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    file_cfg = load_config(args.config) if args.config else {}
    log_level = args.log_level or file_cfg.get("log_level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {k: v for k, v in vars(args).items() if k not in ("config", "plot", "log_level")}
    try:
        config = build_config(overrides, file_cfg)
    except (TypeError, ValueError) as e:
        parser.error(str(e))

    logger.info("This program runs junction tree blocked MCMC inference on large factorized models.")
    logger.info("Load model file %s", config.model_filename)
    factor_graph = load_factor_graph(config.model_filename)

    logger.info("Building MRF.")
    mrf = construct_mrf(factor_graph, rng=random.Random(config.seed))

    scheduler = RuntimeBudgetScheduler(config, factor_graph, mrf)
    results = scheduler.run()

    if args.plot:
        save_convergence_plot([r.record for r in results], args.plot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
