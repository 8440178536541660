"""Generalized pair HMM for scoring noisy reads against reference sequences."""

from .errors import (
    EmptySequenceError,
    GPHMMError,
    InvalidParameterError,
    InvalidSequenceError,
    MissingRecordError,
    NumericInstabilityError,
)
from .types import AlignmentResult, DNASequence, ParameterSet, SequencePair
from .algorithms import compute_probability, train_parameters
from .algorithms.generator import (
    generate_random_sequences,
    generate_read,
    generate_training_pairs,
)

__version__ = "0.1.0"

__all__ = [
    "AlignmentResult",
    "DNASequence",
    "ParameterSet",
    "SequencePair",
    "compute_probability",
    "train_parameters",
    "generate_random_sequences",
    "generate_read",
    "generate_training_pairs",
    "GPHMMError",
    "InvalidSequenceError",
    "EmptySequenceError",
    "InvalidParameterError",
    "MissingRecordError",
    "NumericInstabilityError",
]
