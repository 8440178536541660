"""Pair Hidden Markov Model utilities."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from gphmm.types.parameters import (
    BASE_INDEX,
    HMM_STATES,
    NUCLEOTIDES,
    STATE_INDEX,
    ParameterSet,
)
from gphmm.types.sequence import SequencePair

NEG_INF = float("-inf")

_BASE_LOOKUP = np.full(256, -1, dtype=np.int64)
for _base, _idx in BASE_INDEX.items():
    _BASE_LOOKUP[ord(_base)] = _idx


def encode_bases(sequence: str) -> np.ndarray:
    """Map an A/C/G/T string onto indices 0..3."""
    codes = _BASE_LOOKUP[np.frombuffer(sequence.encode("ascii"), dtype=np.uint8)]
    if np.any(codes < 0):
        raise ValueError(f"sequence holds characters outside {NUCLEOTIDES}")
    return codes


def _log(values) -> np.ndarray:
    with np.errstate(divide="ignore"):
        return np.log(values)


@dataclass(frozen=True)
class EmissionTables:
    """Per-pair emission log-probabilities laid out for the DP grid.

    Attributes:
        match: (n, m) array; ``match[i-1, j-1]`` scores cell (i, j) in state M.
        insert: (n,) array; ``insert[i-1]`` scores row i in state I.
        delete: (n+1, m) array; ``delete[i, j-1]`` scores cell (i, j) in state D.
    """

    match: np.ndarray
    insert: np.ndarray
    delete: np.ndarray


class PairHMM:
    """Log-space view of a ParameterSet with helpers for the DP engines."""

    def __init__(self, params: ParameterSet) -> None:
        self.params = params
        self.log_pp = _log(params.pp)
        self.log_q_x = _log(params.q_x)
        self.log_q_y = _log(params.q_y)
        self.log_transitions = _log(params.transitions)

    def log_trans(self, state_from: str, state_to: str) -> float:
        """Return the log transition probability for the given states."""
        self._assert_state(state_from, "state_from")
        self._assert_state(state_to, "state_to")
        return float(self.log_transitions[STATE_INDEX[state_from], STATE_INDEX[state_to]])

    def match_log_probs(self, query: np.ndarray, reference: np.ndarray) -> np.ndarray:
        return self.log_pp[reference[None, :], query[:, None]]

    def insert_log_probs(self, query: np.ndarray, qv: np.ndarray) -> np.ndarray:
        return _log(self.params.insertion_probability(qv)) + self.log_q_x[query]

    def delete_log_probs(self, reference: np.ndarray, qv: np.ndarray) -> np.ndarray:
        # Row 0 borrows the first query base's quality; row i uses base i.
        row_qv = np.concatenate((qv[:1], qv))
        row_scale = _log(self.params.deletion_probability(row_qv))
        return row_scale[:, None] + self.log_q_y[reference][None, :]

    def emission_tables(self, pair: SequencePair) -> EmissionTables:
        """Build the emission arrays for one pair."""
        query = encode_bases(pair.query)
        reference = encode_bases(pair.reference)
        return EmissionTables(
            match=self.match_log_probs(query, reference),
            insert=self.insert_log_probs(query, pair.qv),
            delete=self.delete_log_probs(reference, pair.qv),
        )

    def _assert_state(self, state: str, arg_name: str) -> None:
        if state not in HMM_STATES:
            raise ValueError(f"{arg_name} must be one of {HMM_STATES}, got '{state}'")


__all__ = ["PairHMM", "EmissionTables", "encode_bases", "NEG_INF"]
