#!/usr/bin/env python3
"""CLI to train GPHMM parameters with Baum-Welch and dump YAML."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .constants import (
    LOG_FORMAT,
    LOG_LIKELIHOODS_YAML,
    MAX_ITERATIONS,
    NUM_WORKERS,
    PAIRS_CSV,
    PARAMETERS_YAML,
    PSEUDOCOUNT,
    SEQUENCES_FASTA,
)

# Add the repository root to the Python path
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from gphmm.algorithms.baum_welch import BaumWelchTrainer, TrainingConfig
from gphmm.types import ParameterSet
from gphmm.utils import (
    build_pairs,
    load_parameters,
    read_dna_fasta_index,
    read_pairs_table,
    save_log_likelihoods,
    save_parameters,
)

logger = logging.getLogger(__name__)


def main() -> None:
    """Train parameters on a pairs table and write the parameter and likelihood artifacts."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--fasta", type=Path, default=SEQUENCES_FASTA)
    parser.add_argument("--pairs", type=Path, default=PAIRS_CSV)
    parser.add_argument(
        "-p",
        "--init-parameters",
        type=Path,
        default=None,
        help="Starting parameter YAML (default: built-in defaults).",
    )
    parser.add_argument("-i", "--max-iterations", type=int, default=MAX_ITERATIONS)
    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Stop early when the log-likelihood gain drops below this.",
    )
    parser.add_argument("--pseudocount", type=float, default=PSEUDOCOUNT)
    parser.add_argument("-j", "--workers", type=int, default=NUM_WORKERS)
    parser.add_argument("-o", "--output", type=Path, default=PARAMETERS_YAML)
    parser.add_argument("--log-likelihoods", type=Path, default=LOG_LIKELIHOODS_YAML)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    sequences = read_dna_fasta_index(args.fasta)
    pairs = build_pairs(read_pairs_table(args.pairs), sequences)
    init_params = (
        load_parameters(args.init_parameters)
        if args.init_parameters
        else ParameterSet.default()
    )

    config = TrainingConfig(
        max_iterations=args.max_iterations,
        tolerance=args.tolerance,
        pseudocount=args.pseudocount,
        n_workers=args.workers,
    )
    state = BaumWelchTrainer(config).fit(pairs, init_params)

    save_parameters(
        state.params,
        args.output,
        metadata={
            "pairs_table": str(args.pairs),
            "num_pairs": len(pairs),
            "iterations": state.iteration,
            "converged": state.converged,
        },
    )
    save_log_likelihoods(state.log_likelihoods, args.log_likelihoods)
    logger.info(
        "Wrote parameters after %d iterations to %s", state.iteration, args.output
    )


if __name__ == "__main__":
    main()
