"""Types for the project."""

from .sequence import DNASequence, SequencePair
from .alignment import AlignmentResult, OutputMode
from .parameters import ParameterSet
from .training import SufficientStatistics, TrainingState


__all__ = [
    "DNASequence",
    "SequencePair",
    "AlignmentResult",
    "OutputMode",
    "ParameterSet",
    "SufficientStatistics",
    "TrainingState",
    "parameters",
]
