import pytest

from storyframe.services.scoring import (
    SCORE_FLOOR,
    clamp_top_k,
    keyword_score,
    select_top_k,
    tokenize,
)


def test_tokenize_strips_punctuation_and_case():
    assert tokenize("Sprinting, FORWARD!  fast") == {"sprinting", "forward", "fast"}
    assert tokenize(None) == set()


def test_full_overlap_scores_one():
    assert keyword_score("sprinting forward", "Run", "sprinting forward") == 1.0


def test_partial_overlap_is_a_fraction():
    score = keyword_score("sprinting forward quickly", "Run", "sprinting ahead", "moving forward")
    assert score == pytest.approx(2 / 3)


def test_score_never_below_floor():
    assert keyword_score("sprinting forward", "Idle", "standing relaxed") == SCORE_FLOOR
    assert keyword_score("", "Idle", "standing relaxed") == SCORE_FLOOR


def test_provider_summary_counts_toward_overlap():
    without = keyword_score("arms crossed", "Pose", "a stance")
    with_summary = keyword_score("arms crossed", "Pose", "a stance", "figure with arms crossed")
    assert with_summary > without


@pytest.mark.parametrize(
    "value, expected",
    [(None, 3), (0, 1), (-4, 1), (1, 1), (2.9, 2), (5, 5), (12, 5), ("abc", 3), (float("nan"), 3)],
)
def test_clamp_top_k(value, expected):
    assert clamp_top_k(value) == expected


def test_select_top_k_picks_best_overlap():
    candidates = [
        {"label": "Run", "score": keyword_score("sprinting forward", "Run", "sprinting forward")},
        {"label": "Idle", "score": keyword_score("sprinting forward", "Idle", "standing relaxed")},
    ]
    picked = select_top_k(candidates, 1, key=lambda c: c["score"])
    assert [candidates[i]["label"] for i in picked] == ["Run"]


def test_select_top_k_ties_keep_generation_order():
    scores = [0.5, 0.9, 0.5, 0.5, 0.9]
    assert select_top_k(scores, 3, key=lambda s: s) == [1, 4, 0]


def test_select_top_k_with_fewer_items_than_k():
    assert select_top_k([0.2, 0.1], 5, key=lambda s: s) == [0, 1]
