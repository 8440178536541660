"""Viterbi decoding for the GPHMM."""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

from gphmm.algorithms.base import PairwiseAligner
from gphmm.algorithms.forward_backward import compute_forward
from gphmm.algorithms.hmm import NEG_INF, EmissionTables, PairHMM
from gphmm.errors import NumericInstabilityError
from gphmm.types import AlignmentResult, SequencePair
from gphmm.types.parameters import HMM_STATES

STATE_M, STATE_I, STATE_D = 0, 1, 2


class ViterbiAligner(PairwiseAligner):
    """Most probable state path via the Viterbi algorithm ("long" mode).

    The result carries the Forward total as ``log_probability`` and the score
    of the decoded path as ``viterbi_log_probability``.
    """

    def _initialize_dp_matrices(
        self, n: int, m: int
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Allocate DP tables for states M, I, D and seed with -inf."""
        V_M = np.full((n + 1, m + 1), NEG_INF)
        V_I = np.full((n + 1, m + 1), NEG_INF)
        V_D = np.full((n + 1, m + 1), NEG_INF)
        V_M[0, 0] = 0.0
        return V_M, V_I, V_D

    def _initialize_backpointers(
        self, n: int, m: int
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Prepare backpointer grids for traceback (state codes 0=M, 1=I, 2=D)."""
        Psi_M = np.zeros((n + 1, m + 1), dtype=np.int8)
        Psi_I = np.zeros((n + 1, m + 1), dtype=np.int8)
        Psi_D = np.zeros((n + 1, m + 1), dtype=np.int8)
        return Psi_M, Psi_I, Psi_D

    def _fill_deletion_row(
        self,
        V_M: np.ndarray,
        V_D: np.ndarray,
        Psi_D: np.ndarray,
        emissions: EmissionTables,
        hmm: PairHMM,
        i: int,
    ) -> None:
        """Extend deletion runs left to right along row ``i``."""
        t_md = hmm.log_transitions[STATE_M, STATE_D]
        t_dd = hmm.log_transitions[STATE_D, STATE_D]
        m_vals = V_M[i].tolist()
        d_vals = V_D[i].tolist()
        emit = emissions.delete[i].tolist()
        pointers = Psi_D[i].tolist()
        for j in range(1, len(d_vals)):
            from_m = m_vals[j - 1] + t_md
            from_d = d_vals[j - 1] + t_dd
            if from_m >= from_d:
                d_vals[j] = from_m + emit[j - 1]
                pointers[j] = STATE_M
            else:
                d_vals[j] = from_d + emit[j - 1]
                pointers[j] = STATE_D
        V_D[i, :] = d_vals
        Psi_D[i, :] = pointers

    def _fill_rows(
        self,
        V_M: np.ndarray,
        V_I: np.ndarray,
        V_D: np.ndarray,
        Psi_M: np.ndarray,
        Psi_I: np.ndarray,
        Psi_D: np.ndarray,
        emissions: EmissionTables,
        hmm: PairHMM,
    ) -> None:
        """Run Viterbi recurrences row by row; ties go to M, then I, then D."""
        T = hmm.log_transitions
        n = V_M.shape[0] - 1

        self._fill_deletion_row(V_M, V_D, Psi_D, emissions, hmm, 0)

        for i in range(1, n + 1):
            candidates = np.stack(
                (
                    V_M[i - 1, :-1] + T[STATE_M, STATE_M],
                    V_I[i - 1, :-1] + T[STATE_I, STATE_M],
                    V_D[i - 1, :-1] + T[STATE_D, STATE_M],
                )
            )
            best = candidates.argmax(axis=0)
            V_M[i, 1:] = candidates.max(axis=0) + emissions.match[i - 1]
            Psi_M[i, 1:] = best

            candidates = np.stack(
                (
                    V_M[i - 1, :] + T[STATE_M, STATE_I],
                    V_I[i - 1, :] + T[STATE_I, STATE_I],
                )
            )
            best = candidates.argmax(axis=0)
            V_I[i, :] = candidates.max(axis=0) + emissions.insert[i - 1]
            Psi_I[i, :] = best

            self._fill_deletion_row(V_M, V_D, Psi_D, emissions, hmm, i)

    def _compute_termination(
        self,
        V_M: np.ndarray,
        V_I: np.ndarray,
        V_D: np.ndarray,
        pair: SequencePair,
    ) -> Tuple[float, int]:
        """Determine the best ending state at (n, m)."""
        finals = (V_M[-1, -1], V_I[-1, -1], V_D[-1, -1])
        best_state = int(np.argmax(finals))
        score = float(finals[best_state])
        if score == NEG_INF:
            raise NumericInstabilityError(
                "No alignment path has non-zero probability",
                record=pair.record,
                step="alignment",
            )
        return score, best_state

    def _traceback(
        self,
        Psi_M: np.ndarray,
        Psi_I: np.ndarray,
        Psi_D: np.ndarray,
        best_state: int,
    ) -> str:
        """Follow backpointers from (n, m) back to the start cell."""
        i, j = Psi_M.shape[0] - 1, Psi_M.shape[1] - 1
        state = best_state
        path: List[str] = []

        while i > 0 or j > 0:
            path.append(HMM_STATES[state])
            if state == STATE_M:
                prev_state = Psi_M[i, j]
                i -= 1
                j -= 1
            elif state == STATE_I:
                prev_state = Psi_I[i, j]
                i -= 1
            else:
                prev_state = Psi_D[i, j]
                j -= 1
            state = int(prev_state)

        path.reverse()
        return "".join(path)

    def decode(self, hmm: PairHMM, pair: SequencePair) -> Tuple[str, float]:
        """Return the most probable state path and its log-probability."""
        n = len(pair.query)
        m = len(pair.reference)
        emissions = hmm.emission_tables(pair)

        V_M, V_I, V_D = self._initialize_dp_matrices(n, m)
        Psi_M, Psi_I, Psi_D = self._initialize_backpointers(n, m)

        self._fill_rows(V_M, V_I, V_D, Psi_M, Psi_I, Psi_D, emissions, hmm)

        score, best_state = self._compute_termination(V_M, V_I, V_D, pair)
        return self._traceback(Psi_M, Psi_I, Psi_D, best_state), score

    def align(self, hmm: PairHMM, pair: SequencePair) -> AlignmentResult:
        """Compute the Viterbi path plus the Forward total for the pair."""
        state_path, score = self.decode(hmm, pair)
        forward = compute_forward(hmm, pair)
        return AlignmentResult(
            log_probability=forward.log_probability,
            state_path=state_path,
            viterbi_log_probability=score,
        )


__all__ = ["ViterbiAligner"]
