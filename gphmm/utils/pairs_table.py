"""Pairs tables: which query is scored against which reference.

A pairs table is a CSV with columns ``query_id``, ``reference_id`` and an
optional ``qv``. Scoring appends a ``log_probability`` column and keeps the
row order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Union

import pandas as pd

from gphmm.algorithms.scoring import compute_probability
from gphmm.errors import MissingRecordError
from gphmm.types import DNASequence, ParameterSet, SequencePair
from gphmm.types.parameters import DEFAULT_QV

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("query_id", "reference_id")
QV_COLUMN = "qv"
SCORE_COLUMN = "log_probability"


def read_pairs_table(csv_path: Union[str, Path]) -> pd.DataFrame:
    """Load a pairs table, checking the required columns."""
    table = pd.read_csv(csv_path, dtype={"query_id": str, "reference_id": str})
    missing = [column for column in REQUIRED_COLUMNS if column not in table.columns]
    if missing:
        raise ValueError(f"Pairs table {csv_path} is missing columns: {missing}")
    return table


def _lookup(sequences: Mapping[str, DNASequence], identifier: str, row: int) -> DNASequence:
    try:
        return sequences[identifier]
    except KeyError:
        raise MissingRecordError(
            f"Sequence '{identifier}' referenced in row {row} is not in the sequence collection",
            record=identifier,
            step="input",
        ) from None


def build_pairs(
    table: pd.DataFrame, sequences: Mapping[str, DNASequence]
) -> List[SequencePair]:
    """Resolve each row of a pairs table into a SequencePair.

    A missing or blank ``qv`` falls back to the default quality value.
    """
    has_qv = QV_COLUMN in table.columns
    pairs = []
    for row, record in enumerate(table.itertuples(index=False)):
        query = _lookup(sequences, record.query_id, row)
        reference = _lookup(sequences, record.reference_id, row)
        qv = getattr(record, QV_COLUMN) if has_qv else DEFAULT_QV
        if pd.isna(qv):
            qv = DEFAULT_QV
        pairs.append(SequencePair.from_records(query, reference, qv=float(qv)))
    return pairs


def score_pairs(
    table: pd.DataFrame,
    sequences: Mapping[str, DNASequence],
    params: ParameterSet,
) -> pd.DataFrame:
    """Return a copy of ``table`` with a ``log_probability`` column."""
    pairs = build_pairs(table, sequences)
    scores = [compute_probability(pair, params, mode="short").log_probability for pair in pairs]
    logger.info("Scored %d pairs", len(scores))
    scored = table.copy()
    scored[SCORE_COLUMN] = scores
    return scored


def write_scored_pairs(table: pd.DataFrame, csv_path: Union[str, Path]) -> Path:
    csv_path = Path(csv_path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(csv_path, index=False)
    return csv_path


__all__ = [
    "read_pairs_table",
    "build_pairs",
    "score_pairs",
    "write_scored_pairs",
]
