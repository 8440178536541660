"""Tests for DNASequence and SequencePair validation."""

import numpy as np
import pytest

from gphmm.errors import EmptySequenceError, InvalidSequenceError
from gphmm.types import DNASequence, SequencePair


def test_scalar_qv_is_broadcast_to_query_length():
    pair = SequencePair("acgt", "ACG")

    assert pair.query == "ACGT"
    assert pair.qv.tolist() == [20.0, 20.0, 20.0, 20.0]
    with pytest.raises(ValueError):
        pair.qv[0] = 30.0


def test_record_defaults_and_identifiers():
    assert SequencePair("A", "C").record == "query/reference"
    pair = SequencePair.from_records(
        DNASequence("read7", "ACG"), DNASequence("chr1", "ACGT"), qv=[10, 20, 30]
    )
    assert pair.record == "read7/chr1"
    assert pair.qv.tolist() == [10.0, 20.0, 30.0]


def test_empty_sequence_raises_with_record_and_step():
    pair = SequencePair("", "ACGT", query_id="r1", reference_id="ref1")

    with pytest.raises(EmptySequenceError) as excinfo:
        pair.validate(step="alignment")
    assert isinstance(excinfo.value, InvalidSequenceError)
    assert excinfo.value.record == "r1"
    assert excinfo.value.step == "alignment"
    assert "r1" in str(excinfo.value)


def test_empty_reference_is_rejected():
    with pytest.raises(EmptySequenceError):
        SequencePair("ACGT", "").validate()


def test_invalid_character_is_rejected():
    """Ambiguity codes such as N are outside the alphabet."""
    pair = SequencePair("ACGN", "ACGT", query_id="r2")

    with pytest.raises(InvalidSequenceError) as excinfo:
        pair.validate(step="E-step")
    assert excinfo.value.record == "r2"
    assert "N" in str(excinfo.value)


def test_qv_length_must_match_query():
    pair = SequencePair("ACGT", "ACGT", qv=[20, 20, 20])

    with pytest.raises(InvalidSequenceError, match="qv"):
        pair.validate()


def test_qv_outside_supported_range_is_rejected():
    with pytest.raises(InvalidSequenceError):
        SequencePair("AC", "AC", qv=[20, 120]).validate()
    with pytest.raises(InvalidSequenceError):
        SequencePair("AC", "AC", qv=[20, np.nan]).validate()


def test_dna_sequence_validate():
    record = DNASequence("seq0", "acgt")

    assert record.residues == "ACGT"
    assert len(record) == 4
    record.validate()
    with pytest.raises(InvalidSequenceError):
        DNASequence("seq1", "ACGU").validate()
