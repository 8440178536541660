"""Shared interfaces for pairwise alignment algorithms."""

from __future__ import annotations

from abc import ABC, abstractmethod

from gphmm.algorithms.hmm import PairHMM
from gphmm.types import AlignmentResult, SequencePair


class PairwiseAligner(ABC):
    """Abstract base class for pairwise alignment algorithms."""

    @abstractmethod
    def align(self, hmm: PairHMM, pair: SequencePair) -> AlignmentResult:
        """Score ``pair`` under the provided HMM."""
        raise NotImplementedError


__all__ = ["PairwiseAligner"]
