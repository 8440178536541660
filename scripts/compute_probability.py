#!/usr/bin/env python3
"""Score every row of a pairs table and write the table with a log_probability column."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .constants import (
    LOG_FORMAT,
    PAIRS_CSV,
    PARAMETERS_YAML,
    SCORED_PAIRS_CSV,
    SEQUENCES_FASTA,
)

# Ensure repository modules are importable when invoked as a script
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from gphmm import compute_probability, SequencePair
from gphmm.types import ParameterSet
from gphmm.utils import (
    load_parameters,
    read_dna_fasta_index,
    read_pairs_table,
    score_pairs,
    write_scored_pairs,
)

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--fasta", type=Path, default=SEQUENCES_FASTA)
    parser.add_argument("--pairs", type=Path, default=PAIRS_CSV)
    parser.add_argument(
        "-p",
        "--parameters",
        type=Path,
        default=PARAMETERS_YAML,
        help="Parameter YAML; falls back to the defaults if the file does not exist.",
    )
    parser.add_argument("-o", "--output", type=Path, default=SCORED_PAIRS_CSV)
    parser.add_argument(
        "--query",
        type=str,
        default=None,
        help="Score a single query string against --reference instead of a table.",
    )
    parser.add_argument("--reference", type=str, default=None)
    parser.add_argument("--qv", type=float, default=None)
    parser.add_argument(
        "--long",
        action="store_true",
        help="With --query, also print the Viterbi state path.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    if args.parameters.exists():
        params = load_parameters(args.parameters)
    else:
        logger.warning("%s not found; using default parameters", args.parameters)
        params = ParameterSet.default()

    if args.query is not None:
        if args.reference is None:
            parser.error("--query requires --reference")
        pair_kwargs = {} if args.qv is None else {"qv": args.qv}
        pair = SequencePair(args.query, args.reference, **pair_kwargs)
        result = compute_probability(pair, params, mode="long" if args.long else "short")
        print(result)
        return

    scored = score_pairs(read_pairs_table(args.pairs), read_dna_fasta_index(args.fasta), params)
    write_scored_pairs(scored, args.output)
    logger.info("Wrote %d scored pairs to %s", len(scored), args.output)


if __name__ == "__main__":
    main()
