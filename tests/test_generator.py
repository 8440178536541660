"""Tests for the sequence and read simulator."""

from __future__ import annotations

import math

import numpy as np
import pytest

from gphmm.algorithms.generator import (
    generate_random_sequences,
    generate_read,
    generate_training_pairs,
)
from gphmm.algorithms.scoring import compute_probability
from gphmm.errors import InvalidParameterError, InvalidSequenceError
from gphmm.types import ParameterSet


def _path_cells(path: str) -> set:
    """The (state, i, j) cell visited by every column of a path."""
    cells = set()
    i = j = 0
    for state in path:
        if state in "MI":
            i += 1
        if state in "MD":
            j += 1
        cells.add((state, i, j))
    return cells


def test_random_sequences_are_deterministic_per_seed():
    first = generate_random_sequences(5, 40, 5, seed=11)
    second = generate_random_sequences(5, 40, 5, seed=11)
    other = generate_random_sequences(5, 40, 5, seed=12)

    assert [s.residues for s in first] == [s.residues for s in second]
    assert [s.residues for s in first] != [s.residues for s in other]
    assert [s.identifier for s in first] == ["seq0", "seq1", "seq2", "seq3", "seq4"]


def test_random_sequence_lengths_are_at_least_one():
    sequences = generate_random_sequences(200, 0.5, 3.0, seed=3)

    assert len(sequences) == 200
    assert min(len(s) for s in sequences) >= 1
    for record in sequences:
        record.validate()


def test_base_distribution_is_respected_and_validated():
    sequences = generate_random_sequences(4, 30, 2, base_distribution=[1, 0, 0, 0], seed=1)
    assert all(set(s.residues) == {"A"} for s in sequences)

    with pytest.raises(InvalidParameterError):
        generate_random_sequences(1, 10, 1, base_distribution=[0.5, 0.5, 0.5, 0.5])
    with pytest.raises(InvalidParameterError):
        generate_random_sequences(1, 10, 1, base_distribution=[0.5, 0.5])


def test_generated_read_is_consistent_with_its_path():
    params = ParameterSet.default()
    reference = "ACGTTGCAACGGTACCATGA"

    simulated = generate_read(reference, params, qv=10, seed=5)
    path = simulated.state_path

    assert len(simulated.read) >= 1
    assert path.count("M") + path.count("I") == len(simulated.read)
    assert path.count("M") + path.count("D") == len(reference)
    assert "ID" not in path and "DI" not in path
    assert simulated.qv.shape == (len(simulated.read),)
    assert np.all(simulated.qv == 10)


def test_generated_read_is_deterministic_per_seed():
    params = ParameterSet.default()
    reference = "ACGTTGCAACGGTACCATGA" * 3

    first = generate_read(reference, params, seed=99)
    second = generate_read(reference, params, seed=99)

    assert first.read == second.read
    assert first.state_path == second.state_path


def test_per_position_quality_is_carried_to_the_read():
    params = ParameterSet.default()

    simulated = generate_read("ACGTACGT", params, qv=[30, 20, 10], seed=4)

    assert simulated.qv.shape == (len(simulated.read),)
    assert set(simulated.qv.tolist()) <= {30.0, 20.0, 10.0}


def test_invalid_reference_is_rejected():
    with pytest.raises(InvalidSequenceError):
        generate_read("ACGN", ParameterSet.default(), seed=0)


def test_training_pairs_are_named_and_deterministic():
    first = generate_training_pairs(3, 20, 2, seed=8)
    second = generate_training_pairs(3, 20, 2, seed=8)

    assert [pair.record for pair in first] == ["read0/ref0", "read1/ref1", "read2/ref2"]
    assert [pair.query for pair in first] == [pair.query for pair in second]
    for pair in first:
        pair.validate()


def test_simulated_pairs_score_and_decode_back_to_their_paths():
    """Reads drawn from the model are scored finitely and Viterbi recovers most of the path."""
    params = ParameterSet.default()
    references = generate_random_sequences(10, 30, 3, seed=21)

    recovered = 0
    total = 0
    for k, reference in enumerate(references):
        simulated = generate_read(reference, params, qv=30, seed=100 + k)
        pair = simulated.to_pair(reference, query_id=f"read{k}")
        result = compute_probability(pair, params, mode="long")

        assert math.isfinite(result.log_probability)
        true_cells = _path_cells(simulated.state_path)
        recovered += len(true_cells & _path_cells(result.state_path))
        total += len(true_cells)

    assert recovered / total >= 0.75


def test_reads_can_end_with_trailing_insertions():
    """After the reference is consumed the walk may still insert query bases."""
    params = ParameterSet.default().replace(
        delta_x=(0.6, 0.0),
        transitions=[[0.5, 0.4, 0.1], [0.5, 0.5, 0.0], [0.75, 0.0, 0.25]],
    )
    reference = "ACGTAC"

    reads = [generate_read(reference, params, seed=seed) for seed in range(200)]
    trailing = [r for r in reads if r.state_path.endswith("I")]

    assert trailing
    for simulated in trailing:
        path = simulated.state_path
        assert path.count("M") + path.count("I") == len(simulated.read)
        assert path.count("M") + path.count("D") == len(reference)
        assert simulated.qv.shape == (len(simulated.read),)


def test_zero_insertion_rate_never_adds_trailing_bases():
    params = ParameterSet.default().replace(delta_x=(0.0, 0.0))

    for seed in range(20):
        simulated = generate_read("ACGTACGT", params, seed=seed)
        assert "I" not in simulated.state_path
