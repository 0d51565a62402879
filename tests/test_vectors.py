"""Tests for embedding coercion and cosine similarity."""

from __future__ import annotations

import numpy as np
import pytest

from gutenberg_search.vectors import bounded_similarity, coerce_embedding, cosine_similarity


def test_cosine_similarity_of_known_vectors() -> None:
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 2.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [1.0, 0.0]) == pytest.approx(2**-0.5)
    assert cosine_similarity([1.0, 0.0], [-3.0, 0.0]) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ([], []),
        ([1.0, 0.0], [1.0, 0.0, 0.0]),
        ([0.0, 0.0], [1.0, 0.0]),
        ([1.0, 0.0], [0.0, 0.0]),
    ],
)
def test_cosine_similarity_degenerate_inputs_are_zero(left, right) -> None:
    assert cosine_similarity(left, right) == 0.0


def test_cosine_similarity_accepts_numpy_arrays() -> None:
    value = cosine_similarity(np.array([0.6, 0.8], dtype=np.float32), [0.6, 0.8])

    assert isinstance(value, float)
    assert value == pytest.approx(1.0, abs=1e-6)


def test_bounded_similarity_clamps_to_unit_range() -> None:
    assert bounded_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0
    assert bounded_similarity([1.0, 0.0], [2.0, 0.0]) == pytest.approx(1.0)
    assert 0.0 <= bounded_similarity([0.3, 0.7], [0.9, 0.1]) <= 1.0


def test_coerce_embedding_handles_lists_strings_and_garbage() -> None:
    assert coerce_embedding([1, 2]) == [1.0, 2.0]
    assert coerce_embedding("[0.5, 0.25]") == [0.5, 0.25]
    assert coerce_embedding("not json") is None
    assert coerce_embedding('{"a": 1}') is None
    assert coerce_embedding("") is None
    assert coerce_embedding(None) is None
