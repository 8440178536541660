"""
Baum-Welch (EM) estimation of GPHMM parameters from unaligned training pairs.

Each iteration:

- E-step: for every (query, reference, qv) pair, run forward and backward and
  turn the posteriors into expected event counts:
    * match/mismatch counts per (reference base, query base)
    * insertion counts per query base, deletion counts per reference base
    * transition counts over M, I, D (only the allowed transitions)
  Pairs share no state, so the E-step is mapped over a process pool.
- Reduce: sum the per-pair statistics in input order.
- M-step: normalise the aggregate counts (plus an optional pseudocount) into a
  new ParameterSet. The quality-to-indel functions ``delta_x``/``delta_y`` are
  carried over unchanged.
- Bookkeeping: the summed log-likelihood under the parameters of the E-step is
  appended to the history.

Log-likelihoods are natural-log; parameters stay in probability space.
"""

from __future__ import annotations

import itertools
import logging
import math
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from gphmm.algorithms.forward_backward import compute_backward, compute_forward
from gphmm.algorithms.hmm import PairHMM, encode_bases
from gphmm.errors import NumericInstabilityError
from gphmm.types import ParameterSet, SequencePair, SufficientStatistics, TrainingState
from gphmm.types.parameters import (
    FORBIDDEN_TRANSITIONS,
    PARAMETER_FIELDS,
    STATE_INDEX,
)
from gphmm.types.training import STATISTIC_FIELDS

logger = logging.getLogger(__name__)

DEFAULT_PSEUDOCOUNT = 1e-3
DEFAULT_MAX_ITERATIONS = 10

ALLOWED_TRANSITIONS = np.ones((3, 3), dtype=bool)
for _from, _to in FORBIDDEN_TRANSITIONS:
    ALLOWED_TRANSITIONS[STATE_INDEX[_from], STATE_INDEX[_to]] = False


def _posterior_mass(log_values: np.ndarray, log_z: float) -> float:
    return float(np.exp(log_values - log_z).sum())


def expected_counts(
    hmm: PairHMM, pair: SequencePair
) -> Tuple[SufficientStatistics, float]:
    """Expected emission and transition counts for one pair.

    Returns the statistics and the pair's total log-probability.
    """
    emissions = hmm.emission_tables(pair)
    forward = compute_forward(hmm, pair, emissions)
    backward = compute_backward(hmm, pair, emissions)

    log_z = forward.log_probability
    if not math.isfinite(log_z):
        raise NumericInstabilityError(
            f"Pair log-likelihood is not finite ({log_z})",
            record=pair.record,
            step="E-step",
        )

    query = encode_bases(pair.query)
    reference = encode_bases(pair.reference)
    n, m = len(query), len(reference)

    # Emissions: state posteriors at the cells where each base is emitted.
    post_M = np.exp(forward.M[1:, 1:] + backward.M[1:, 1:] - log_z)
    post_I = np.exp(forward.I[1:, :] + backward.I[1:, :] - log_z)
    post_D = np.exp(forward.D[:, 1:] + backward.D[:, 1:] - log_z)

    pair_codes = (reference[None, :] * 4 + query[:, None]).ravel()
    counts_m = np.bincount(pair_codes, weights=post_M.ravel(), minlength=16).reshape(4, 4)
    counts_i = np.bincount(query, weights=post_I.sum(axis=1), minlength=4)
    counts_d = np.bincount(reference, weights=post_D.sum(axis=0), minlength=4)

    # Transitions: forward at the source, transition, emission and backward at the target.
    T = hmm.log_transitions
    into_M = emissions.match + backward.M[1:, 1:]
    into_I = emissions.insert[:, None] + backward.I[1:, :]
    into_D = emissions.delete + backward.D[:, 1:]

    counts_t = np.zeros((3, 3))
    counts_t[0, 0] = _posterior_mass(forward.M[:-1, :-1] + T[0, 0] + into_M, log_z)
    counts_t[1, 0] = _posterior_mass(forward.I[:-1, :-1] + T[1, 0] + into_M, log_z)
    counts_t[2, 0] = _posterior_mass(forward.D[:-1, :-1] + T[2, 0] + into_M, log_z)
    counts_t[0, 1] = _posterior_mass(forward.M[:-1, :] + T[0, 1] + into_I, log_z)
    counts_t[1, 1] = _posterior_mass(forward.I[:-1, :] + T[1, 1] + into_I, log_z)
    counts_t[0, 2] = _posterior_mass(forward.M[:, :-1] + T[0, 2] + into_D, log_z)
    counts_t[2, 2] = _posterior_mass(forward.D[:, :-1] + T[2, 2] + into_D, log_z)

    stats = SufficientStatistics(
        counts_emission_m=counts_m,
        counts_emission_d=counts_d,
        counts_emission_i=counts_i,
        counts_transition=counts_t,
    )
    logger.debug("E-step %s: n=%d m=%d log-likelihood %.6f", pair.record, n, m, log_z)
    return stats, log_z


def _normalize_emissions(counts: np.ndarray, pseudocount: float) -> np.ndarray:
    """Normalise each row of ``counts``; an all-zero row becomes uniform."""
    rows = np.atleast_2d(counts) + pseudocount
    totals = rows.sum(axis=1, keepdims=True)
    uniform = np.full_like(rows, 1.0 / rows.shape[1])
    with np.errstate(invalid="ignore", divide="ignore"):
        probs = np.where(totals > 0.0, rows / totals, uniform)
    return probs.reshape(np.shape(counts))


def _normalize_transitions(
    counts: np.ndarray, previous: np.ndarray, pseudocount: float
) -> np.ndarray:
    """Normalise allowed transitions per row; a row never visited keeps its values."""
    rows = np.where(ALLOWED_TRANSITIONS, counts + pseudocount, 0.0)
    totals = rows.sum(axis=1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(totals > 0.0, rows / totals, previous)


def _check_finite(
    arrays: Dict[str, np.ndarray], step: str, iteration: Optional[int]
) -> None:
    for name, array in arrays.items():
        array = np.asarray(array, dtype=float)
        if not np.all(np.isfinite(array)):
            raise NumericInstabilityError(
                f"Non-finite values in {name}",
                step=step,
                field=name,
                iteration=iteration,
            )
        if np.any(array < 0.0) and name not in ("delta_x", "delta_y"):
            raise NumericInstabilityError(
                f"Negative values in {name}",
                step=step,
                field=name,
                iteration=iteration,
            )


def maximize(
    stats: SufficientStatistics,
    params: ParameterSet,
    pseudocount: float = DEFAULT_PSEUDOCOUNT,
    iteration: Optional[int] = None,
) -> ParameterSet:
    """M-step: re-normalise aggregate counts into a new ParameterSet."""
    fields = {
        "q_r": _normalize_emissions(stats.counts_reference, pseudocount),
        "q_x": _normalize_emissions(stats.counts_emission_i, pseudocount),
        "q_y": _normalize_emissions(stats.counts_emission_d, pseudocount),
        "pp": _normalize_emissions(stats.counts_emission_m, pseudocount),
        "delta_x": params.delta_x,
        "delta_y": params.delta_y,
        "transitions": _normalize_transitions(
            stats.counts_transition, params.transitions, pseudocount
        ),
    }
    _check_finite(
        {name: fields[name] for name in PARAMETER_FIELDS}, step="M-step", iteration=iteration
    )
    return ParameterSet(**fields)


def _pair_expectation(
    pair: SequencePair, params: ParameterSet
) -> Tuple[SufficientStatistics, float]:
    """Worker entry point: one E-step task."""
    return expected_counts(PairHMM(params), pair)


@dataclass
class TrainingConfig:
    """Configuration for Baum-Welch training.

    Attributes:
        max_iterations: Number of EM iterations to run at most.
        tolerance: Stop early once the log-likelihood improves by less than
            this; None runs exactly ``max_iterations`` iterations.
        pseudocount: Added to every allowed count before normalising.
        n_workers: Processes used for the E-step (1 = sequential).
        chunksize: Pairs handed to a worker at a time.
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: Optional[float] = None
    pseudocount: float = DEFAULT_PSEUDOCOUNT
    n_workers: int = 1
    chunksize: int = 1

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1.")
        if self.tolerance is not None and self.tolerance < 0:
            raise ValueError("tolerance must be non-negative.")
        if self.pseudocount < 0:
            raise ValueError("pseudocount must be non-negative.")
        if self.n_workers < 1:
            raise ValueError("n_workers must be at least 1.")
        if self.chunksize < 1:
            raise ValueError("chunksize must be at least 1.")


class BaumWelchTrainer:
    """Iterates E-step, reduction and M-step over a fixed training set."""

    def __init__(self, config: Optional[TrainingConfig] = None) -> None:
        self.config = config or TrainingConfig()

    def expectation(
        self,
        pairs: Sequence[SequencePair],
        params: ParameterSet,
        executor: Optional[Executor] = None,
    ) -> Tuple[SufficientStatistics, float]:
        """Run the E-step over all pairs and reduce the results."""
        if executor is None:
            results: Iterable = map(_pair_expectation, pairs, itertools.repeat(params))
        else:
            results = executor.map(
                _pair_expectation,
                pairs,
                itertools.repeat(params),
                chunksize=self.config.chunksize,
            )

        total = SufficientStatistics.zeros()
        log_likelihood = 0.0
        for stats, pair_log_likelihood in results:
            total = total + stats
            log_likelihood += pair_log_likelihood
        return total, log_likelihood

    def fit(
        self, pairs: Iterable[SequencePair], init_params: ParameterSet
    ) -> TrainingState:
        """Train from ``init_params``; returns the final state and history."""
        pairs = list(pairs)
        if not pairs:
            raise ValueError("No training pairs supplied.")
        for pair in pairs:
            pair.validate(step="E-step")

        config = self.config
        state = TrainingState(params=init_params)
        executor: Optional[Executor] = None
        if config.n_workers > 1 and len(pairs) > 1:
            logger.debug("Starting E-step pool with %d workers", config.n_workers)
            executor = ProcessPoolExecutor(max_workers=config.n_workers)

        try:
            while state.iteration < config.max_iterations:
                iteration = state.iteration + 1
                stats, log_likelihood = self.expectation(pairs, state.params, executor)

                _check_finite(
                    {name: getattr(stats, name) for name in STATISTIC_FIELDS},
                    step="E-step",
                    iteration=iteration,
                )
                if not math.isfinite(log_likelihood):
                    raise NumericInstabilityError(
                        "Training log-likelihood is not finite",
                        step="E-step",
                        field="log_likelihood",
                        iteration=iteration,
                    )

                state.params = maximize(
                    stats, state.params, config.pseudocount, iteration=iteration
                )
                state.log_likelihoods.append(log_likelihood)
                state.iteration = iteration
                logger.info(
                    "Baum-Welch iteration %d/%d: log-likelihood %.6f",
                    iteration,
                    config.max_iterations,
                    log_likelihood,
                )

                if config.tolerance is not None and len(state.log_likelihoods) > 1:
                    improvement = state.log_likelihoods[-1] - state.log_likelihoods[-2]
                    if improvement < config.tolerance:
                        state.converged = True
                        logger.info(
                            "Converged after %d iterations (improvement %.3g)",
                            iteration,
                            improvement,
                        )
                        break
        finally:
            if executor is not None:
                executor.shutdown()

        return state


def train_parameters(
    pairs: Iterable[SequencePair],
    init_params: Optional[ParameterSet] = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    **config_options,
) -> Tuple[ParameterSet, List[float]]:
    """Estimate parameters by Baum-Welch; returns (parameters, log-likelihoods)."""
    config = TrainingConfig(max_iterations=max_iterations, **config_options)
    state = BaumWelchTrainer(config).fit(pairs, init_params or ParameterSet.default())
    return state.params, list(state.log_likelihoods)


__all__ = [
    "expected_counts",
    "maximize",
    "TrainingConfig",
    "BaumWelchTrainer",
    "train_parameters",
    "DEFAULT_PSEUDOCOUNT",
]
