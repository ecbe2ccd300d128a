"""Tests for swarmhub.utils.math."""

import math

import pytest

from swarmhub.utils.math import (
    cosine_similarity,
    cosine_similarity_batch,
    fit_dimension,
    unit_score,
)


def test_identical_vectors():
    assert cosine_similarity([1, 0, 0], [1, 0, 0]) == pytest.approx(1.0)


def test_orthogonal_vectors():
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)


def test_opposite_vectors():
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)


def test_empty_vectors():
    assert cosine_similarity([], []) == 0.0


def test_mismatched_lengths():
    assert cosine_similarity([1, 2], [1, 2, 3]) == 0.0


def test_zero_vector():
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0


def test_none_input():
    assert cosine_similarity(None, [1, 2]) == 0.0  # type: ignore[arg-type]
    assert cosine_similarity([1, 2], None) == 0.0  # type: ignore[arg-type]


def test_known_similarity():
    a = [1.0, 2.0, 3.0]
    b = [4.0, 5.0, 6.0]
    expected = 32 / (math.sqrt(14) * math.sqrt(77))
    assert cosine_similarity(a, b) == pytest.approx(expected, abs=1e-6)


def test_batch_matches_single():
    store = [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
    scores = cosine_similarity_batch([1.0, 0.0], store)
    assert scores == pytest.approx([1.0, 0.0, 1 / math.sqrt(2)])


def test_batch_empty_query():
    assert cosine_similarity_batch([], [[1.0], [2.0]]) == [0.0, 0.0]


def test_unit_score_clamps():
    assert unit_score(-0.3) == 0.0
    assert unit_score(1.0000001) == 1.0
    assert unit_score(0.42) == pytest.approx(0.42)


def test_fit_dimension_truncates_and_pads():
    assert fit_dimension([1.0, 2.0, 3.0], 2) == [1.0, 2.0]
    assert fit_dimension([1.0], 3) == [1.0, 0.0, 0.0]
    assert fit_dimension([1.0, 2.0], 2) == [1.0, 2.0]
