import math

import pytest

from rag_pipeline.errors import DimensionMismatchError
from rag_pipeline.similarity import (
    RankedChunk,
    VectorRecord,
    cosine_similarity,
    is_relevant,
    rank_records,
)


@pytest.mark.parametrize("v", [[1.0, 2.0, 3.0], [-0.5, 0.25, 8.0], [1e-6, 3e-6]])
def test_vector_is_identical_to_itself(v):
    assert cosine_similarity(v, v) == pytest.approx(1.0)


@pytest.mark.parametrize("v", [[1.0, 2.0, 3.0], [0.3, -0.7]])
def test_vector_is_opposite_to_its_negation(v):
    assert cosine_similarity(v, [-x for x in v]) == pytest.approx(-1.0)


def test_similarity_is_symmetric():
    a, b = [0.2, 0.9, -0.4], [0.7, -0.1, 0.3]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_zero_vector_scores_zero():
    assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 0.0


def test_result_is_clamped():
    score = cosine_similarity([0.1] * 768, [0.1] * 768)
    assert -1.0 <= score <= 1.0


@pytest.mark.parametrize("a, b", [([1.0, 2.0], [1.0, 2.0, 3.0]), ([], [1.0]), ([], [])])
def test_dimension_mismatch_raises(a, b):
    with pytest.raises(DimensionMismatchError):
        cosine_similarity(a, b)


def test_dimension_mismatch_is_a_value_error():
    with pytest.raises(ValueError):
        cosine_similarity([1.0], [1.0, 1.0])


def _unit(score):
    return [score, math.sqrt(1.0 - score * score)]


def test_rank_records_orders_by_score_descending():
    records = [VectorRecord("low", _unit(0.1)), VectorRecord("high", _unit(0.9)), VectorRecord("mid", _unit(0.5))]

    ranked = rank_records([1.0, 0.0], records)

    assert [r.text for r in ranked] == ["high", "mid", "low"]
    assert [r.score for r in ranked] == pytest.approx([0.9, 0.5, 0.1])


def test_rank_records_keeps_insertion_order_for_ties():
    records = [VectorRecord("first", [1.0, 0.0]), VectorRecord("second", [2.0, 0.0])]

    ranked = rank_records([1.0, 0.0], records)

    assert [r.text for r in ranked] == ["first", "second"]


def test_is_relevant_uses_best_score():
    assert is_relevant([RankedChunk("a", 0.1)])
    assert not is_relevant([RankedChunk("a", 0.09)])
    assert not is_relevant([])
    assert is_relevant([RankedChunk("a", 0.5)], threshold=0.5)
