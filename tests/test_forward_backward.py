"""Unit tests for the forward/backward implementation and the scoring entry point."""

from __future__ import annotations

import math

import numpy as np
import pytest

from gphmm.algorithms.forward_backward import (
    compute_backward,
    compute_forward,
    logsumexp,
)
from gphmm.algorithms.hmm import PairHMM
from gphmm.algorithms.scoring import compute_probability
from gphmm.errors import EmptySequenceError, InvalidSequenceError
from gphmm.types import ParameterSet, SequencePair


def _build_pair(query: str, reference: str, qv=20) -> SequencePair:
    return SequencePair(query, reference, qv=qv, query_id="q", reference_id="r")


def test_logsumexp_handles_empty_and_negative_infinity():
    """logsumexp should return -inf for empty or all -inf inputs."""
    assert logsumexp([]) == float("-inf")
    assert logsumexp([float("-inf"), float("-inf")]) == float("-inf")


def test_logsumexp_matches_direct_computation():
    values = [math.log(0.2), math.log(0.3), float("-inf"), math.log(0.5)]
    assert logsumexp(values) == pytest.approx(0.0, abs=1e-12)


def test_single_base_pair_has_only_the_match_path():
    """With one base each, the only path is a single match column."""
    params = ParameterSet.default()
    result = compute_probability(_build_pair("A", "C"), params)

    assert result.log_probability == pytest.approx(math.log(0.9 * 0.03))
    assert result.state_path is None


def test_two_base_query_against_one_base_reference():
    """MI and IM are the only paths; I->D and D->I are never taken."""
    params = ParameterSet.default()
    pair = _build_pair("AA", "A")

    insertion = 0.05 * 0.25
    expected = 0.91 * insertion * (0.9 * 0.05 + 0.05 * 0.75)
    forward = compute_forward(PairHMM(params), pair)

    assert forward.log_probability == pytest.approx(math.log(expected))


def test_one_base_query_against_two_base_reference():
    """MD and DM are the only paths; the first deletion borrows the first qv."""
    params = ParameterSet.default()
    pair = _build_pair("G", "GG", qv=[40])

    deletion = params.deletion_probability(40) * 0.25
    expected = 0.91 * deletion * (0.9 * 0.05 + 0.05 * 0.75)
    forward = compute_forward(PairHMM(params), pair)

    assert forward.log_probability == pytest.approx(math.log(expected))


def test_forward_and_backward_totals_agree():
    params = ParameterSet.default()
    hmm = PairHMM(params)
    pair = _build_pair("ATGCGATGCA", "ATGTACGATGA", qv=np.linspace(5, 40, 10))

    forward = compute_forward(hmm, pair)
    backward = compute_backward(hmm, pair)

    assert math.isfinite(forward.log_probability)
    assert backward.log_probability == pytest.approx(forward.log_probability, abs=1e-6)


def test_posteriors_are_consistent_at_every_row():
    """Each query base is emitted exactly once, so M and I posteriors sum to 1 per row."""
    params = ParameterSet.default()
    hmm = PairHMM(params)
    pair = _build_pair("ACCGTTA", "ACGTA")

    forward = compute_forward(hmm, pair)
    backward = compute_backward(hmm, pair)
    log_z = forward.log_probability

    post_m = np.exp(forward.M[1:, 1:] + backward.M[1:, 1:] - log_z).sum(axis=1)
    post_i = np.exp(forward.I[1:, :] + backward.I[1:, :] - log_z).sum(axis=1)
    assert np.allclose(post_m + post_i, 1.0)


def test_concrete_pair_is_finite_and_reproducible():
    params = ParameterSet.default()
    pair = _build_pair("ATGCGATGCA", "ATGTACGATGA")

    first = compute_probability(pair, params)
    second = compute_probability(pair, params)

    assert math.isfinite(first.log_probability)
    assert first.log_probability < 0.0
    assert first.log_probability == second.log_probability


def test_identical_query_scores_higher_than_substituted_query():
    params = ParameterSet.default()
    reference = "ACGTACGTACGTAGCT"
    mutated = "ACGAACGTTCGTAGCA"

    identical = compute_probability(_build_pair(reference, reference, qv=40), params)
    substituted = compute_probability(_build_pair(mutated, reference, qv=40), params)

    assert identical.log_probability > substituted.log_probability


def test_low_quality_favours_indel_explanations():
    """A read with an extra base is more plausible when that read is low quality."""
    params = ParameterSet.default()
    reference = "ACGTACGTAC"
    query = "ACGTTACGTAC"

    high = compute_probability(_build_pair(query, reference, qv=60), params)
    low = compute_probability(_build_pair(query, reference, qv=5), params)

    assert low.log_probability > high.log_probability


def test_zero_deletion_rate_makes_shorter_reads_impossible():
    """Short mode reports -inf instead of raising when no path exists."""
    params = ParameterSet.default().replace(delta_y=(0.0, 0.0))
    result = compute_probability(_build_pair("A", "AC"), params)

    assert result.log_probability == float("-inf")


def test_invalid_inputs_raise_before_any_computation():
    params = ParameterSet.default()

    with pytest.raises(EmptySequenceError) as excinfo:
        compute_probability(_build_pair("", "ACGT"), params)
    assert excinfo.value.step == "alignment"

    with pytest.raises(InvalidSequenceError):
        compute_probability(_build_pair("ACGX", "ACGT"), params)


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        compute_probability(_build_pair("ACGT", "ACGT"), ParameterSet.default(), mode="full")
