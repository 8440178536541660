"""Algorithms for the project."""

from .base import PairwiseAligner
from .forward_backward import ForwardAligner
from .viterbi import ViterbiAligner
from .scoring import compute_probability
from .baum_welch import BaumWelchTrainer, TrainingConfig, train_parameters


__all__ = [
    "PairwiseAligner",
    "ForwardAligner",
    "ViterbiAligner",
    "compute_probability",
    "BaumWelchTrainer",
    "TrainingConfig",
    "train_parameters",
    "forward_backward",
    "generator",
    "hmm",
]
