#!/usr/bin/env python3
"""Simulate references and reads and write them as a FASTA file plus a pairs table."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from .constants import (
    DEFAULT_QV,
    LOG_FORMAT,
    MEAN_LENGTH,
    NUM_PAIRS,
    PAIRS_CSV,
    RANDOM_SEED,
    SD_LENGTH,
    SEQUENCES_FASTA,
)

# Ensure repository modules are importable when invoked as a script
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from gphmm.algorithms.generator import generate_training_pairs
from gphmm.types import DNASequence
from gphmm.utils import load_parameters, write_dna_fasta

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("-n", "--num-pairs", type=int, default=NUM_PAIRS)
    parser.add_argument("--mean-length", type=float, default=MEAN_LENGTH)
    parser.add_argument("--sd-length", type=float, default=SD_LENGTH)
    parser.add_argument("--qv", type=float, default=DEFAULT_QV)
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument(
        "-p",
        "--parameters",
        type=Path,
        default=None,
        help="Parameter YAML to simulate from (default: built-in defaults).",
    )
    parser.add_argument("--fasta", type=Path, default=SEQUENCES_FASTA)
    parser.add_argument("--pairs", type=Path, default=PAIRS_CSV)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    params = load_parameters(args.parameters) if args.parameters else None
    pairs = generate_training_pairs(
        args.num_pairs,
        args.mean_length,
        args.sd_length,
        params=params,
        qv=args.qv,
        seed=args.seed,
    )

    records = []
    for pair in pairs:
        records.append(DNASequence(identifier=pair.reference_id, residues=pair.reference))
        records.append(DNASequence(identifier=pair.query_id, residues=pair.query))
    write_dna_fasta(records, args.fasta)

    table = pd.DataFrame(
        {
            "query_id": [pair.query_id for pair in pairs],
            "reference_id": [pair.reference_id for pair in pairs],
            "qv": [args.qv] * len(pairs),
        }
    )
    args.pairs.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(args.pairs, index=False)
    logger.info("Wrote %d pairs to %s and %s", len(pairs), args.fasta, args.pairs)


if __name__ == "__main__":
    main()
