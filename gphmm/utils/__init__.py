"""Utility functions for the project."""

from .fasta import read_dna_fasta, read_dna_fasta_index, write_dna_fasta
from .serialization import (
    parameters_to_dict,
    parameters_from_dict,
    save_parameters,
    load_parameters,
    save_log_likelihoods,
    load_log_likelihoods,
)
from .pairs_table import read_pairs_table, build_pairs, score_pairs, write_scored_pairs

__all__ = [
    "read_dna_fasta",
    "read_dna_fasta_index",
    "write_dna_fasta",
    "parameters_to_dict",
    "parameters_from_dict",
    "save_parameters",
    "load_parameters",
    "save_log_likelihoods",
    "load_log_likelihoods",
    "read_pairs_table",
    "build_pairs",
    "score_pairs",
    "write_scored_pairs",
]
