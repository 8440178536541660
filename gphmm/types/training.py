"""Data structures produced and consumed by Baum-Welch training."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from gphmm.types.parameters import ParameterSet

STATISTIC_FIELDS: Tuple[str, ...] = (
    "counts_emission_m",
    "counts_emission_d",
    "counts_emission_i",
    "counts_transition",
)

STATISTIC_SHAPES = {
    "counts_emission_m": (4, 4),
    "counts_emission_d": (4,),
    "counts_emission_i": (4,),
    "counts_transition": (3, 3),
}


@dataclass(frozen=True, eq=False)
class SufficientStatistics:
    """Posterior expected event counts for one pair or a whole training set.

    Attributes:
        counts_emission_m: (reference base, query base) match/mismatch counts.
        counts_emission_d: Reference-base counts in the deletion state.
        counts_emission_i: Query-base counts in the insertion state.
        counts_transition: State transition counts over M, I, D.
    """

    counts_emission_m: np.ndarray
    counts_emission_d: np.ndarray
    counts_emission_i: np.ndarray
    counts_transition: np.ndarray

    def __post_init__(self) -> None:
        for name in STATISTIC_FIELDS:
            array = np.asarray(getattr(self, name), dtype=float)
            if array.shape != STATISTIC_SHAPES[name]:
                raise ValueError(
                    f"{name} must have shape {STATISTIC_SHAPES[name]}, got {array.shape}"
                )
            if np.any(array < 0.0):
                raise ValueError(f"{name} has negative entries")
            object.__setattr__(self, name, array)

    @classmethod
    def zeros(cls) -> "SufficientStatistics":
        return cls(**{name: np.zeros(shape) for name, shape in STATISTIC_SHAPES.items()})

    def __add__(self, other: "SufficientStatistics") -> "SufficientStatistics":
        if not isinstance(other, SufficientStatistics):
            return NotImplemented
        return SufficientStatistics(
            **{name: getattr(self, name) + getattr(other, name) for name in STATISTIC_FIELDS}
        )

    @property
    def counts_reference(self) -> np.ndarray:
        """Expected usage of each reference base (match rows plus deletions)."""
        return self.counts_emission_m.sum(axis=1) + self.counts_emission_d


@dataclass
class TrainingState:
    """Mutable state of one Baum-Welch run."""

    params: ParameterSet
    iteration: int = 0
    log_likelihoods: List[float] = field(default_factory=list)
    converged: bool = False

    @property
    def last_log_likelihood(self) -> Optional[float]:
        return self.log_likelihoods[-1] if self.log_likelihoods else None


__all__ = [
    "SufficientStatistics",
    "TrainingState",
    "STATISTIC_FIELDS",
    "STATISTIC_SHAPES",
]
