"""Unit tests for the ParameterSet record and the PairHMM log-space view."""

from __future__ import annotations

import dataclasses
import math

import numpy as np
import pytest

from gphmm.algorithms.hmm import PairHMM, encode_bases
from gphmm.errors import InvalidParameterError
from gphmm.types import ParameterSet, SequencePair
from gphmm.types.parameters import HMM_STATES, NUCLEOTIDES


def _default_fields() -> dict:
    params = ParameterSet.default()
    return {field.name: getattr(params, field.name) for field in dataclasses.fields(params)}


def test_default_parameters_are_row_stochastic():
    """Every distribution of the default parameter set sums to 1."""
    params = ParameterSet.default()

    for vector in (params.q_r, params.q_x, params.q_y):
        assert math.isclose(vector.sum(), 1.0)
    assert np.allclose(params.pp.sum(axis=1), 1.0)
    assert np.allclose(params.transitions.sum(axis=1), 1.0)
    # Diagonal-favouring match emissions
    assert np.all(np.diag(params.pp) > params.pp.max(axis=1) - 1e-12)


def test_default_indel_probabilities_are_small_at_moderate_quality():
    """At qv 20 the indel probabilities are small but non-zero."""
    params = ParameterSet.default()

    assert math.isclose(params.insertion_probability(20), 0.05)
    assert math.isclose(params.deletion_probability(20), 0.04)
    qv = np.arange(0, 94)
    assert np.all(params.insertion_probability(qv) > 0.0)
    assert np.all(params.deletion_probability(qv) > 0.0)


def test_indel_probability_is_clamped_to_unit_interval():
    """The linear quality function never leaves [0, 1]."""
    params = ParameterSet.default().replace(delta_x=(0.5, 0.1), delta_y=(0.1, -0.01))

    assert params.insertion_probability(20) == 1.0
    assert params.deletion_probability(20) == 0.0
    assert params.deletion_probability(5) == pytest.approx(0.05)


def test_row_that_does_not_sum_to_one_is_rejected():
    """A pp row summing to 0.9 raises InvalidParameterError naming pp."""
    fields = _default_fields()
    pp = np.array(fields["pp"])
    pp[2] = [0.6, 0.1, 0.1, 0.1]
    fields["pp"] = pp

    with pytest.raises(InvalidParameterError) as excinfo:
        ParameterSet(**fields)
    assert excinfo.value.field == "pp"
    assert "pp" in str(excinfo.value)


def test_negative_and_malformed_entries_are_rejected():
    """Negative probabilities, wrong shapes and NaNs are all invalid."""
    fields = _default_fields()

    with pytest.raises(InvalidParameterError):
        ParameterSet(**{**fields, "q_x": [1.2, -0.2, 0.0, 0.0]})
    with pytest.raises(InvalidParameterError):
        ParameterSet(**{**fields, "q_y": [0.5, 0.5]})
    with pytest.raises(InvalidParameterError):
        ParameterSet(**{**fields, "q_r": [0.25, 0.25, float("nan"), 0.25]})


def test_forbidden_transitions_must_be_zero():
    """I->D and D->I are not part of the model."""
    fields = _default_fields()
    transitions = [[0.9, 0.05, 0.05], [0.7, 0.2, 0.1], [0.75, 0.0, 0.25]]

    with pytest.raises(InvalidParameterError) as excinfo:
        ParameterSet(**{**fields, "transitions": transitions})
    assert excinfo.value.field == "transitions"


def test_parameter_set_is_immutable():
    """Fields cannot be reassigned and arrays cannot be written."""
    params = ParameterSet.default()

    with pytest.raises(dataclasses.FrozenInstanceError):
        params.pp = np.eye(4)
    with pytest.raises(ValueError):
        params.pp[0, 0] = 1.0


def test_construction_copies_inputs():
    """Mutating the source array after construction leaves the record untouched."""
    q_x = np.array([0.1, 0.2, 0.3, 0.4])
    params = ParameterSet.default().replace(q_x=q_x)
    q_x[0] = 0.9

    assert params.q_x[0] == pytest.approx(0.1)


def test_replace_rejects_unknown_fields():
    with pytest.raises(InvalidParameterError):
        ParameterSet.default().replace(gap_open=0.1)


def test_emission_log_prob_per_state():
    """Match reads pp; insertion and deletion are scaled by the indel probability."""
    params = ParameterSet.default()

    assert math.isclose(params.emission_log_prob("M", "A", "A", 20), math.log(0.91))
    assert math.isclose(params.emission_log_prob("M", "A", "G", 20), math.log(0.03))
    assert math.isclose(
        params.emission_log_prob("I", query_base="C", qv=20), math.log(0.05 * 0.25)
    )
    assert math.isclose(
        params.emission_log_prob("D", ref_base="T", qv=20), math.log(0.04 * 0.25)
    )


def test_emission_log_prob_rejects_unknown_inputs():
    params = ParameterSet.default()

    with pytest.raises(ValueError):
        params.emission_log_prob("X", "A", "A")
    with pytest.raises(ValueError):
        params.emission_log_prob("M", "A", "N")


def test_transition_log_prob():
    """Transition log-probabilities read the table; forbidden moves are -inf."""
    params = ParameterSet.default()

    assert math.isclose(params.transition_log_prob("M", "M"), math.log(0.9))
    assert math.isclose(params.transition_log_prob("I", "I"), math.log(0.25))
    assert params.transition_log_prob("I", "D") == float("-inf")
    assert params.transition_log_prob("D", "I") == float("-inf")
    with pytest.raises(ValueError):
        params.transition_log_prob("M", "END")


def test_pair_hmm_tables_match_scalar_emissions():
    """The vectorised emission tables agree with emission_log_prob cell by cell."""
    params = ParameterSet.default()
    hmm = PairHMM(params)
    pair = SequencePair("ACGTT", "GATC", qv=[10, 20, 30, 40, 50])
    tables = hmm.emission_tables(pair)

    assert tables.match.shape == (5, 4)
    assert tables.insert.shape == (5,)
    assert tables.delete.shape == (6, 4)

    for i, q in enumerate(pair.query):
        assert math.isclose(
            tables.insert[i], params.emission_log_prob("I", query_base=q, qv=pair.qv[i])
        )
        for j, r in enumerate(pair.reference):
            assert math.isclose(tables.match[i, j], params.emission_log_prob("M", r, q))

    for i in range(len(pair.query) + 1):
        qv = pair.qv[max(i, 1) - 1]
        for j, r in enumerate(pair.reference):
            assert math.isclose(
                tables.delete[i, j], params.emission_log_prob("D", ref_base=r, qv=qv)
            )


def test_pair_hmm_log_trans_matches_parameter_set():
    params = ParameterSet.default()
    hmm = PairHMM(params)

    for state_from in HMM_STATES:
        for state_to in HMM_STATES:
            assert hmm.log_trans(state_from, state_to) == params.transition_log_prob(
                state_from, state_to
            )
    with pytest.raises(ValueError):
        hmm.log_trans("START", "M")


def test_encode_bases():
    assert encode_bases("ACGT").tolist() == [NUCLEOTIDES.index(b) for b in "ACGT"]
    with pytest.raises(ValueError):
        encode_bases("ACGN")
