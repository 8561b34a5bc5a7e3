"""
Tests for score composition and level thresholds (scoring.compose).
"""

from __future__ import annotations

import pytest

from catalog import CANONICAL_CATEGORIES, CATEGORY_BASE, CATEGORY_HIT_WEIGHT, SIGNALS, SIGNAL_WEIGHTS
from scanner import scan
from scoring import (
    BASE_SCORE, COMPLEXITY_ADJUSTMENT, LONG_DOC_ADJUSTMENT, SHORT_DOC_ADJUSTMENT,
    compose, count_words, level_for_score, category_level_for_score,
)

from conftest import filler


def _compose(text):
    return compose(scan(text), text, count_words(text))


@pytest.mark.parametrize("score,level", [
    (0, "low"), (30, "low"), (31, "medium"), (65, "medium"), (66, "high"), (100, "high"),
])
def test_overall_level_thresholds(score, level):
    assert level_for_score(score) == level


def test_category_levels_follow_three_tiers():
    assert category_level_for_score(0) == "low"
    assert category_level_for_score(50) == "medium"
    assert category_level_for_score(100) == "high"


@pytest.mark.parametrize("sentences", [1, 10, 200, 1200])
def test_signal_free_text_scores_base(sentences):
    c = _compose(filler(sentences))
    assert c.overall_score == BASE_SCORE
    assert c.risk_level == "low"
    assert c.adjustments == {}
    for cat in CANONICAL_CATEGORIES:
        assert c.category_scores[cat].score == CATEGORY_BASE[cat]


def test_repeated_phrase_counts_once():
    once = "Disputes go to binding arbitration."
    five = " ".join([once] * 5)
    c1, c5 = _compose(once), _compose(five)
    expected = BASE_SCORE + SIGNAL_WEIGHTS["binding arbitration"] + SHORT_DOC_ADJUSTMENT
    assert c1.overall_score == expected
    assert c5.overall_score == expected
    assert c5.risk_factors[0].count == 5


def test_positive_factors_lower_score_below_base():
    text = "Members can opt out easily. We value data protection. " + filler(120)
    assert count_words(text) > 500
    c = _compose(text)
    assert c.overall_score == BASE_SCORE + SIGNAL_WEIGHTS["opt out"] + SIGNAL_WEIGHTS["data protection"]
    assert c.overall_score < BASE_SCORE
    assert [p.phrase for p in c.positive_factors] == ["opt out", "data protection"]
    assert c.risk_factors == ()


def test_long_document_adjustment():
    text = "We may sell your data. " + filler(1001)
    c = _compose(text)
    assert c.adjustments == {"long_document": LONG_DOC_ADJUSTMENT}
    assert c.overall_score == BASE_SCORE + 25 + LONG_DOC_ADJUSTMENT


def test_complex_sentence_adjustment():
    text = "The company is not liable " + "members read these pages carefully " * 6 + "."
    c = _compose(text)
    assert c.adjustments == {
        "short_document": SHORT_DOC_ADJUSTMENT,
        "complex_sentences": COMPLEXITY_ADJUSTMENT,
    }
    assert c.overall_score == BASE_SCORE + 10 + SHORT_DOC_ADJUSTMENT + COMPLEXITY_ADJUSTMENT


def test_scores_clamped_high():
    text = ". ".join(s.phrase for s in SIGNALS if s.weight > 0) + "."
    c = _compose(text)
    assert c.overall_score == 100
    assert c.risk_level == "high"
    assert all(0 <= t.score <= 100 for t in c.category_scores.values())


def test_scores_clamped_low():
    text = ". ".join(s.phrase for s in SIGNALS if s.weight < 0) + "."
    c = _compose(text)
    assert c.overall_score == 0
    assert c.risk_level == "low"


def test_negative_word_count_is_tolerated():
    text = "We may sell your data."
    c = compose(scan(text), text, -10)
    assert 0 <= c.overall_score <= 100
    assert "short_document" in c.adjustments


def test_category_score_combines_topic_terms_and_signals():
    text = "We may terminate your account."
    c = _compose(text)
    tally = c.category_scores["termination"]
    expected = CATEGORY_BASE["termination"] + CATEGORY_HIT_WEIGHT["termination"] + SIGNAL_WEIGHTS["terminate your account"]
    assert tally.score == expected
    assert tally.level == category_level_for_score(expected)
    assert {h.phrase for h in tally.hits} == {"terminate", "terminate your account"}


def test_termination_hits_weigh_more_than_data_collection_hits():
    assert CATEGORY_HIT_WEIGHT["termination"] > CATEGORY_HIT_WEIGHT["dataCollection"]


def test_risk_factors_ordered_by_weight():
    text = "We use tracking technologies. We may sell your data. We are not liable."
    c = _compose(text)
    weights = [f.weight for f in c.risk_factors]
    assert weights == sorted(weights, reverse=True)
    assert c.risk_factors[0].phrase == "sell your data"
