"""Forward/backward dynamic programming for the GPHMM.

This module assumes a 3-state pair-HMM with states:
    - M: match/mismatch (consumes one query base and one reference base)
    - I: insertion (consumes one query base only)
    - D: deletion (consumes one reference base only)

The grid is indexed by query position i = 0..n and reference position
j = 0..m. Alignments start in M at (0, 0) with probability 1 and the total is
summed over the three states at (n, m) with no end transition. The
transitions I->D and D->I are never taken.

All dynamic programming is done in LOG-SPACE.
"""

from __future__ import annotations

import math
from typing import List, NamedTuple, Optional

import numpy as np

from gphmm.algorithms.base import PairwiseAligner
from gphmm.algorithms.hmm import NEG_INF, EmissionTables, PairHMM
from gphmm.types import AlignmentResult, SequencePair


class DPMatrices(NamedTuple):
    """Score surfaces of one DP pass, each of shape (n+1, m+1)."""

    M: np.ndarray
    I: np.ndarray
    D: np.ndarray
    log_probability: float


def logsumexp(values: List[float]) -> float:
    """Compute log(sum(exp(values))) in a numerically stable way.

    Returns -inf if the list is empty or all entries are -inf.
    """
    if not values:
        return NEG_INF
    max_val = max(values)
    if max_val == NEG_INF:
        return NEG_INF
    total = sum(math.exp(v - max_val) for v in values)
    return max_val + math.log(total)


def _logaddexp(a: float, b: float) -> float:
    if a == NEG_INF:
        return b
    if b == NEG_INF:
        return a
    if a > b:
        return a + math.log1p(math.exp(b - a))
    return b + math.log1p(math.exp(a - b))


def _logaddexp3(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    return np.logaddexp(np.logaddexp(a, b), c)


def _transition_terms(hmm: PairHMM):
    T = hmm.log_transitions
    return T[0, 0], T[0, 1], T[0, 2], T[1, 0], T[1, 1], T[2, 0], T[2, 2]


def _fill_deletion_row(
    m_row: np.ndarray,
    d_row: np.ndarray,
    emit: np.ndarray,
    t_md: float,
    t_dd: float,
) -> None:
    """D(i, j) = emit + logaddexp(M(i, j-1) + t_md, D(i, j-1) + t_dd), left to right."""
    m_vals = m_row.tolist()
    d_vals = d_row.tolist()
    emit_vals = emit.tolist()
    for j in range(1, len(d_vals)):
        prev = _logaddexp(m_vals[j - 1] + t_md, d_vals[j - 1] + t_dd)
        d_vals[j] = prev + emit_vals[j - 1]
    d_row[:] = d_vals


def compute_forward(
    hmm: PairHMM,
    pair: SequencePair,
    emissions: Optional[EmissionTables] = None,
) -> DPMatrices:
    """Compute forward DP matrices for the pair HMM in log-space.

    M(i, j), I(i, j) and D(i, j) hold the log-probability of emitting the first
    i query bases and first j reference bases and ending in that state.
    """
    n = len(pair.query)
    m = len(pair.reference)
    if emissions is None:
        emissions = hmm.emission_tables(pair)
    t_mm, t_mi, t_md, t_im, t_ii, t_dm, t_dd = _transition_terms(hmm)

    F_M = np.full((n + 1, m + 1), NEG_INF)
    F_I = np.full((n + 1, m + 1), NEG_INF)
    F_D = np.full((n + 1, m + 1), NEG_INF)

    # All probability mass starts in M at (0, 0); row 0 holds deletions only.
    F_M[0, 0] = 0.0
    _fill_deletion_row(F_M[0], F_D[0], emissions.delete[0], t_md, t_dd)

    for i in range(1, n + 1):
        F_M[i, 1:] = emissions.match[i - 1] + _logaddexp3(
            F_M[i - 1, :-1] + t_mm,
            F_I[i - 1, :-1] + t_im,
            F_D[i - 1, :-1] + t_dm,
        )
        # Column 0 is reached through insertions only.
        F_I[i, :] = emissions.insert[i - 1] + np.logaddexp(
            F_M[i - 1, :] + t_mi,
            F_I[i - 1, :] + t_ii,
        )
        _fill_deletion_row(F_M[i], F_D[i], emissions.delete[i], t_md, t_dd)

    log_probability = logsumexp([F_M[n, m], F_I[n, m], F_D[n, m]])
    return DPMatrices(F_M, F_I, F_D, log_probability)


def compute_backward(
    hmm: PairHMM,
    pair: SequencePair,
    emissions: Optional[EmissionTables] = None,
) -> DPMatrices:
    """Compute backward DP matrices for the pair HMM in log-space.

    B_s(i, j) is the log-probability of emitting the rest of both sequences
    given state s at (i, j). ``log_probability`` is B_M(0, 0), which matches the
    forward total.
    """
    n = len(pair.query)
    m = len(pair.reference)
    if emissions is None:
        emissions = hmm.emission_tables(pair)
    t_mm, t_mi, t_md, t_im, t_ii, t_dm, t_dd = _transition_terms(hmm)

    B_M = np.full((n + 1, m + 1), NEG_INF)
    B_I = np.full((n + 1, m + 1), NEG_INF)
    B_D = np.full((n + 1, m + 1), NEG_INF)

    for i in range(n, -1, -1):
        # Score of the next cell (emission plus backward value) per successor state.
        via_m = np.full(m + 1, NEG_INF)
        via_i = np.full(m + 1, NEG_INF)
        if i < n:
            via_m[:m] = emissions.match[i] + B_M[i + 1, 1:]
            via_i[:] = emissions.insert[i] + B_I[i + 1, :]

        via_m_vals = via_m.tolist()
        delete_vals = emissions.delete[i].tolist()
        d_vals = [NEG_INF] * (m + 1)
        for j in range(m, -1, -1):
            if i == n and j == m:
                d_vals[j] = 0.0
                continue
            via_d = delete_vals[j] + d_vals[j + 1] if j < m else NEG_INF
            d_vals[j] = _logaddexp(t_dm + via_m_vals[j], t_dd + via_d)
        B_D[i, :] = d_vals

        via_d = np.full(m + 1, NEG_INF)
        via_d[:m] = emissions.delete[i] + B_D[i, 1:]

        B_I[i, :] = np.logaddexp(t_im + via_m, t_ii + via_i)
        B_M[i, :] = _logaddexp3(t_mm + via_m, t_mi + via_i, t_md + via_d)

        if i == n:
            B_M[n, m] = 0.0
            B_I[n, m] = 0.0

    return DPMatrices(B_M, B_I, B_D, float(B_M[0, 0]))


class ForwardAligner(PairwiseAligner):
    """Total alignment log-probability summed over all paths ("short" mode)."""

    def align(self, hmm: PairHMM, pair: SequencePair) -> AlignmentResult:
        forward = compute_forward(hmm, pair)
        return AlignmentResult(log_probability=forward.log_probability)


__all__ = [
    "DPMatrices",
    "ForwardAligner",
    "logsumexp",
    "compute_forward",
    "compute_backward",
]
