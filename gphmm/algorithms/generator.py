"""Synthetic references and simulated reads drawn from the GPHMM.

Reads are sampled from the same transition/emission model the aligners score,
which makes simulated pairs a correctness oracle for decoding and training.
All randomness goes through ``numpy.random.default_rng`` so a seed gives the
same output on every machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np

from gphmm.errors import InvalidParameterError, NumericInstabilityError
from gphmm.types import DNASequence, ParameterSet, SequencePair
from gphmm.types.parameters import DEFAULT_QV, HMM_STATES, NUCLEOTIDES, PROBABILITY_TOLERANCE

Seed = Union[int, np.random.SeedSequence, None]

_ALPHABET = np.array(NUCLEOTIDES)
_STATE_M, _STATE_I, _STATE_D = 0, 1, 2


@dataclass(frozen=True, eq=False)
class SimulatedRead:
    """A read sampled from a reference together with its generating path."""

    read: str
    state_path: str
    qv: np.ndarray

    def to_pair(
        self,
        reference: Union[str, DNASequence],
        query_id: Optional[str] = None,
    ) -> SequencePair:
        reference_id = reference.identifier if isinstance(reference, DNASequence) else None
        return SequencePair(
            query=self.read,
            reference=str(reference),
            qv=self.qv,
            query_id=query_id,
            reference_id=reference_id,
        )


def _base_distribution(base_distribution: Optional[Sequence[float]]) -> np.ndarray:
    if base_distribution is None:
        return np.full(len(NUCLEOTIDES), 1.0 / len(NUCLEOTIDES))
    probs = np.asarray(base_distribution, dtype=float)
    if probs.shape != (len(NUCLEOTIDES),) or np.any(probs < 0):
        raise InvalidParameterError(
            f"base_distribution must hold {len(NUCLEOTIDES)} non-negative values",
            "base_distribution",
        )
    if abs(probs.sum() - 1.0) > PROBABILITY_TOLERANCE:
        raise InvalidParameterError("base_distribution must sum to 1", "base_distribution")
    return probs / probs.sum()


def _draw(rng: np.random.Generator, weights: np.ndarray) -> int:
    """Draw an index with probability proportional to ``weights``."""
    cumulative = np.cumsum(weights)
    index = int(np.searchsorted(cumulative, rng.random() * cumulative[-1], side="right"))
    return min(index, len(weights) - 1)


def generate_random_sequences(
    n: int,
    mean_length: float,
    sd_length: float,
    base_distribution: Optional[Sequence[float]] = None,
    seed: Seed = None,
    prefix: str = "seq",
) -> List[DNASequence]:
    """Draw ``n`` independent random sequences.

    Lengths follow a normal distribution, rounded and floored at 1; bases are
    i.i.d. from ``base_distribution`` (uniform by default).
    """
    if n < 0:
        raise ValueError("n must be non-negative.")
    if sd_length < 0:
        raise ValueError("sd_length must be non-negative.")
    probs = _base_distribution(base_distribution)
    rng = np.random.default_rng(seed)

    lengths = np.maximum(1, np.rint(rng.normal(mean_length, sd_length, size=n))).astype(int)
    sequences = []
    for k, length in enumerate(lengths):
        codes = rng.choice(len(NUCLEOTIDES), size=int(length), p=probs)
        sequences.append(DNASequence(identifier=f"{prefix}{k}", residues="".join(_ALPHABET[codes])))
    return sequences


def _successor_weights(params: ParameterSet, state: int, emit_qv: float, delete_qv: float) -> np.ndarray:
    return params.transitions[state] * np.array(
        (
            1.0,
            params.insertion_probability(emit_qv),
            params.deletion_probability(delete_qv),
        )
    )


def _sample_path(
    reference: str,
    params: ParameterSet,
    qv_at,
    rng: np.random.Generator,
):
    read: List[str] = []
    read_qv: List[float] = []
    path: List[str] = []
    state = _STATE_M
    i = j = 0

    while j < len(reference):
        emit_qv = qv_at(i)
        weights = _successor_weights(params, state, emit_qv, qv_at(max(i, 1) - 1))
        if weights.sum() <= 0.0:
            raise NumericInstabilityError(
                f"State {HMM_STATES[state]} has no reachable successor at qv {emit_qv}",
                step="generate",
            )
        state = _draw(rng, weights)
        path.append(HMM_STATES[state])

        if state == _STATE_M:
            ref_row = params.pp[NUCLEOTIDES.index(reference[j])]
            read.append(NUCLEOTIDES[_draw(rng, ref_row)])
            read_qv.append(emit_qv)
            i += 1
            j += 1
        elif state == _STATE_I:
            read.append(NUCLEOTIDES[_draw(rng, params.q_x)])
            read_qv.append(emit_qv)
            i += 1
        else:
            j += 1

    # Reference consumed: trailing insertions compete with ending the read,
    # which takes the remaining weight of the row.
    while True:
        emit_qv = qv_at(i)
        weights = _successor_weights(params, state, emit_qv, qv_at(max(i, 1) - 1))
        insert_weight = weights[_STATE_I]
        if insert_weight <= 0.0:
            break
        if _draw(rng, np.array((insert_weight, weights.sum() - insert_weight))) == 1:
            break
        state = _STATE_I
        path.append(HMM_STATES[state])
        read.append(NUCLEOTIDES[_draw(rng, params.q_x)])
        read_qv.append(emit_qv)
        i += 1

    return "".join(read), "".join(path), np.array(read_qv, dtype=float)


def generate_read(
    true_sequence: Union[str, DNASequence],
    params: ParameterSet,
    qv: Union[float, Sequence[float], np.ndarray] = DEFAULT_QV,
    seed: Seed = None,
    max_attempts: int = 1000,
) -> SimulatedRead:
    """Simulate one noisy read of ``true_sequence``.

    The walk starts in M before the first base, draws each next state from the
    transition row weighted by the quality-dependent indel probabilities, emits
    query bases in M (from ``pp``) and I (from ``q_x``), and, once every
    reference base is consumed, keeps adding trailing insertions until the
    draw ends the read. ``qv`` is either one value for the whole read
    or one per read position (the last value repeats past its end).
    """
    if isinstance(true_sequence, DNASequence):
        true_sequence.validate(step="generate")
        reference = true_sequence.residues
    else:
        reference = str(true_sequence).upper()
        DNASequence(identifier="true_sequence", residues=reference).validate(step="generate")

    qv_values = np.atleast_1d(np.asarray(qv, dtype=float))
    if qv_values.size == 0:
        raise ValueError("qv must hold at least one value.")

    def qv_at(position: int) -> float:
        return float(qv_values[min(position, qv_values.size - 1)])

    rng = np.random.default_rng(seed)
    for _ in range(max_attempts):
        read, path, read_qv = _sample_path(reference, params, qv_at, rng)
        # An all-deletion walk leaves nothing to score; redraw from the same stream.
        if read:
            read_qv.setflags(write=False)
            return SimulatedRead(read=read, state_path=path, qv=read_qv)
    raise NumericInstabilityError(
        f"Could not simulate a non-empty read in {max_attempts} attempts",
        step="generate",
    )


def generate_training_pairs(
    n: int,
    mean_length: float,
    sd_length: float,
    params: Optional[ParameterSet] = None,
    qv: Union[float, Sequence[float], np.ndarray] = DEFAULT_QV,
    seed: Seed = None,
    base_distribution: Optional[Sequence[float]] = None,
) -> List[SequencePair]:
    """Random references with one simulated read each, as SequencePairs."""
    params = params or ParameterSet.default()
    if not isinstance(seed, np.random.SeedSequence):
        seed = np.random.SeedSequence(seed)
    reference_seed, *read_seeds = seed.spawn(n + 1)
    references = generate_random_sequences(
        n,
        mean_length,
        sd_length,
        base_distribution=base_distribution,
        seed=reference_seed,
        prefix="ref",
    )
    pairs = []
    for k, (reference, read_seed) in enumerate(zip(references, read_seeds)):
        simulated = generate_read(reference, params, qv=qv, seed=read_seed)
        pairs.append(simulated.to_pair(reference, query_id=f"read{k}"))
    return pairs


__all__ = [
    "SimulatedRead",
    "generate_random_sequences",
    "generate_read",
    "generate_training_pairs",
]
