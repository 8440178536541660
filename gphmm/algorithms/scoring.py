"""Entry point for scoring one query/reference pair."""

from __future__ import annotations

from typing import Dict

from gphmm.algorithms.base import PairwiseAligner
from gphmm.algorithms.forward_backward import ForwardAligner
from gphmm.algorithms.hmm import PairHMM
from gphmm.algorithms.viterbi import ViterbiAligner
from gphmm.types import AlignmentResult, OutputMode, ParameterSet, SequencePair
from gphmm.types.alignment import OUTPUT_MODES

ALIGNERS: Dict[str, PairwiseAligner] = {
    "short": ForwardAligner(),
    "long": ViterbiAligner(),
}


def compute_probability(
    pair: SequencePair,
    params: ParameterSet,
    mode: OutputMode = "short",
) -> AlignmentResult:
    """Probability that ``pair.query`` was generated from ``pair.reference``.

    "short" returns the Forward log-probability only; "long" also decodes the
    Viterbi state path.
    """
    if mode not in OUTPUT_MODES:
        raise ValueError(f"mode must be one of {OUTPUT_MODES}, got '{mode}'")
    pair.validate(step="alignment")
    return ALIGNERS[mode].align(PairHMM(params), pair)


__all__ = ["compute_probability", "ALIGNERS"]
