"""
This module defines the parameter record of the generalized pair HMM (GPHMM)
used to score a noisy query read against a reference sequence. It includes the
emission and transition probability tables, the quality-dependent indel
functions, their validation on construction, and constants for the canonical
DNA bases and HMM states.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple, Union

import numpy as np

from gphmm.errors import InvalidParameterError

NUCLEOTIDES: Tuple[str, str, str, str] = ("A", "C", "G", "T")
HMM_STATES: Tuple[str, str, str] = ("M", "I", "D")

BASE_INDEX: Dict[str, int] = {base: idx for idx, base in enumerate(NUCLEOTIDES)}
STATE_INDEX: Dict[str, int] = {state: idx for idx, state in enumerate(HMM_STATES)}

# Transitions the pair HMM never takes: an insertion run cannot turn directly
# into a deletion run and vice versa.
FORBIDDEN_TRANSITIONS: Tuple[Tuple[str, str], ...] = (("I", "D"), ("D", "I"))

PROBABILITY_TOLERANCE = 1e-6
DEFAULT_QV = 20.0
MIN_QV = 0.0
MAX_QV = 93.0

PARAMETER_FIELDS: Tuple[str, ...] = (
    "q_r",
    "q_x",
    "q_y",
    "pp",
    "delta_x",
    "delta_y",
    "transitions",
)

QualityValues = Union[float, np.ndarray]


def _as_frozen_array(value, shape: Tuple[int, ...], field: str) -> np.ndarray:
    try:
        array = np.array(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"{field} is not numeric: {exc}", field) from exc
    if array.shape != shape:
        raise InvalidParameterError(
            f"{field} must have shape {shape}, got {array.shape}", field
        )
    if not np.all(np.isfinite(array)):
        raise InvalidParameterError(f"{field} contains non-finite values", field)
    array.setflags(write=False)
    return array


def _validate_distribution(array: np.ndarray, field: str) -> None:
    """Check every row of ``array`` is a probability distribution."""
    if np.any(array < 0.0):
        raise InvalidParameterError(f"{field} has negative entries", field)
    rows = np.atleast_2d(array)
    sums = rows.sum(axis=1)
    bad = np.flatnonzero(np.abs(sums - 1.0) > PROBABILITY_TOLERANCE)
    if bad.size:
        raise InvalidParameterError(
            f"{field} rows {bad.tolist()} do not sum to 1 (sums: {sums[bad].tolist()})",
            field,
        )


def _log(values) -> np.ndarray:
    with np.errstate(divide="ignore"):
        return np.log(values)


def linear_indel_probability(delta: np.ndarray, qv: QualityValues) -> QualityValues:
    """Evaluate ``intercept + slope * qv`` clamped to [0, 1]."""
    intercept, slope = delta
    prob = np.clip(intercept + slope * np.asarray(qv, dtype=float), 0.0, 1.0)
    if np.ndim(prob) == 0:
        return float(prob)
    return prob


@dataclass(frozen=True, eq=False)
class ParameterSet:
    """Emission, transition and indel parameters of the GPHMM.

    Attributes:
        q_r: Reference-base marginal over A, C, G, T.
        q_x: Insertion emission distribution (query base).
        q_y: Deletion emission distribution (reference base).
        pp: Match/mismatch emissions, row = reference base, column = query base.
        delta_x: (intercept, slope) of the insertion probability in qv.
        delta_y: (intercept, slope) of the deletion probability in qv.
        transitions: State transition matrix over M, I, D.
    """

    q_r: np.ndarray
    q_x: np.ndarray
    q_y: np.ndarray
    pp: np.ndarray
    delta_x: np.ndarray
    delta_y: np.ndarray
    transitions: np.ndarray

    def __post_init__(self) -> None:
        shapes = {
            "q_r": (4,),
            "q_x": (4,),
            "q_y": (4,),
            "pp": (4, 4),
            "delta_x": (2,),
            "delta_y": (2,),
            "transitions": (3, 3),
        }
        for field in PARAMETER_FIELDS:
            frozen = _as_frozen_array(getattr(self, field), shapes[field], field)
            object.__setattr__(self, field, frozen)

        for field in ("q_r", "q_x", "q_y", "pp", "transitions"):
            _validate_distribution(getattr(self, field), field)

        for state_from, state_to in FORBIDDEN_TRANSITIONS:
            value = self.transitions[STATE_INDEX[state_from], STATE_INDEX[state_to]]
            if value != 0.0:
                raise InvalidParameterError(
                    f"transition {state_from}->{state_to} must be 0, got {value}",
                    "transitions",
                )

    @classmethod
    def default(cls) -> "ParameterSet":
        """Non-degenerate starting point: diagonal-heavy ``pp``, small indel rates."""
        uniform = np.full(4, 0.25)
        pp = np.full((4, 4), 0.03)
        np.fill_diagonal(pp, 0.91)
        return cls(
            q_r=uniform,
            q_x=uniform,
            q_y=uniform,
            pp=pp,
            delta_x=(0.06, -0.0005),
            delta_y=(0.05, -0.0005),
            transitions=[
                [0.90, 0.05, 0.05],
                [0.75, 0.25, 0.00],
                [0.75, 0.00, 0.25],
            ],
        )

    def replace(self, **changes) -> "ParameterSet":
        """Return a new, re-validated ParameterSet with some fields swapped."""
        values = {field: getattr(self, field) for field in PARAMETER_FIELDS}
        unknown = [key for key in changes if key not in values]
        if unknown:
            raise InvalidParameterError(f"unknown parameter fields: {unknown}")
        values.update(changes)
        return ParameterSet(**values)

    def insertion_probability(self, qv: QualityValues) -> QualityValues:
        return linear_indel_probability(self.delta_x, qv)

    def deletion_probability(self, qv: QualityValues) -> QualityValues:
        return linear_indel_probability(self.delta_y, qv)

    def emission_log_prob(
        self,
        state: str,
        ref_base: str | None = None,
        query_base: str | None = None,
        qv: float = DEFAULT_QV,
    ) -> float:
        """Log-probability of one emission event under ``state``.

        A match/mismatch reads ``pp[ref][query]``; an insertion is ``q_x[query]``
        scaled by the insertion probability at ``qv``; a deletion is
        ``q_y[ref]`` scaled by the deletion probability at ``qv``.
        """
        if state == "M":
            value = self.pp[_base_index(ref_base, "ref_base"), _base_index(query_base, "query_base")]
        elif state == "I":
            value = self.insertion_probability(qv) * self.q_x[_base_index(query_base, "query_base")]
        elif state == "D":
            value = self.deletion_probability(qv) * self.q_y[_base_index(ref_base, "ref_base")]
        else:
            raise ValueError(f"state must be one of {HMM_STATES}, got '{state}'")
        return float(_log(value))

    def transition_log_prob(self, state_from: str, state_to: str) -> float:
        """Log-probability of moving from ``state_from`` to ``state_to``."""
        return float(
            _log(
                self.transitions[
                    _state_index(state_from, "state_from"),
                    _state_index(state_to, "state_to"),
                ]
            )
        )


def _base_index(base: str | None, arg_name: str) -> int:
    if base not in BASE_INDEX:
        raise ValueError(f"{arg_name} must be one of {NUCLEOTIDES}, got '{base}'")
    return BASE_INDEX[base]


def _state_index(state: str, arg_name: str) -> int:
    if state not in STATE_INDEX:
        raise ValueError(f"{arg_name} must be one of {HMM_STATES}, got '{state}'")
    return STATE_INDEX[state]


__all__ = [
    "ParameterSet",
    "PARAMETER_FIELDS",
    "NUCLEOTIDES",
    "HMM_STATES",
    "BASE_INDEX",
    "STATE_INDEX",
    "FORBIDDEN_TRANSITIONS",
    "PROBABILITY_TOLERANCE",
    "DEFAULT_QV",
    "MIN_QV",
    "MAX_QV",
    "linear_indel_probability",
]
