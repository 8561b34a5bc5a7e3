"""
scoring.py — Turn scanner output into bounded risk scores.

The overall score starts from BASE_SCORE, adds the weight of every distinct
signal phrase found (repeated mentions of one clause do not compound), then
applies small document-shape adjustments and clamps to 0–100.

Each canonical category gets its own sub-score from a smaller topic table.

This module is also the single source of truth for mapping a score to a
low / medium / high level; the LLM path imports the same functions.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

from catalog import (
    CANONICAL_CATEGORIES, CATEGORY_BASE, CATEGORY_TERMS,
)
from scanner import Occurrence, scan


# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

BASE_SCORE = 25

LONG_DOC_WORDS        = 5000
LONG_DOC_ADJUSTMENT   = 5
SHORT_DOC_WORDS       = 500
SHORT_DOC_ADJUSTMENT  = -5
COMPLEX_SENTENCE_LEN  = 25      # avg words per sentence
COMPLEXITY_ADJUSTMENT = 3

# (upper bound for "low", upper bound for "medium"); anything above is "high"
OVERALL_THRESHOLDS  = (30, 65)
CATEGORY_THRESHOLDS = (33, 66)

RISK_LEVELS = ("low", "medium", "high")


# ─────────────────────────────────────────────────────────────────────────────
# Level / clamping helpers
# ─────────────────────────────────────────────────────────────────────────────

def clamp(value, lo: int = 0, hi: int = 100) -> int:
    return int(max(lo, min(hi, value)))


def level_for_score(score: int, thresholds: Tuple[int, int] = OVERALL_THRESHOLDS) -> str:
    low_max, medium_max = thresholds
    if score <= low_max:
        return "low"
    if score <= medium_max:
        return "medium"
    return "high"


def category_level_for_score(score: int) -> str:
    return level_for_score(score, CATEGORY_THRESHOLDS)


def count_words(text: str) -> int:
    return len((text or "").split())


def count_sentences(text: str) -> int:
    return len([s for s in re.split(r"[.!?]+", text or "") if s.strip()])


# ─────────────────────────────────────────────────────────────────────────────
# Composition
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CategoryTally:
    category: str
    score:    int
    level:    str
    # topic terms then signal phrases that contributed to this category
    hits:     Tuple[Occurrence, ...] = ()


@dataclass(frozen=True)
class Composition:
    overall_score:    int
    risk_level:       str
    category_scores:  Dict[str, CategoryTally]
    risk_factors:     Tuple[Occurrence, ...]          # weight > 0, most severe first
    positive_factors: Tuple[Occurrence, ...] = ()     # weight < 0
    adjustments:      Dict[str, int] = field(default_factory=dict)


def shape_adjustments(text: str, word_count: int) -> Dict[str, int]:
    """Length / sentence-complexity adjustments for a document."""
    adj = {}
    if word_count > LONG_DOC_WORDS:
        adj["long_document"] = LONG_DOC_ADJUSTMENT
    elif word_count < SHORT_DOC_WORDS:
        adj["short_document"] = SHORT_DOC_ADJUSTMENT

    sentences = max(count_sentences(text), 1)
    if word_count / sentences > COMPLEX_SENTENCE_LEN:
        adj["complex_sentences"] = COMPLEXITY_ADJUSTMENT
    return adj


def _severity_order(o: Occurrence):
    return (-o.weight, o.first_position, o.phrase)


def compose(occurrences: Sequence[Occurrence], text: str, word_count: int) -> Composition:
    """
    Compute the overall score, per-category scores and the risk factors found.

    Shape adjustments only apply when at least one signal was found, so a
    document with no catalog phrases always scores exactly BASE_SCORE.
    """
    text = text or ""
    word_count = max(int(word_count or 0), 0)

    # one entry per phrase, even across concatenated scans
    distinct: Dict[str, Occurrence] = {}
    for o in occurrences:
        distinct.setdefault(o.phrase, o)

    score = BASE_SCORE + sum(o.weight for o in distinct.values())

    adjustments = shape_adjustments(text, word_count) if distinct else {}
    score = clamp(score + sum(adjustments.values()))

    category_scores = {}
    for cat in CANONICAL_CATEGORIES:
        terms = scan(text, CATEGORY_TERMS[cat])
        signals = [o for o in distinct.values() if o.category == cat]
        raw = (
            CATEGORY_BASE[cat]
            + sum(t.weight for t in terms)
            + sum(s.weight for s in signals)
        )
        cat_score = clamp(raw)
        category_scores[cat] = CategoryTally(
            category=cat,
            score=cat_score,
            level=category_level_for_score(cat_score),
            hits=tuple(terms) + tuple(signals),
        )

    risk = sorted((o for o in distinct.values() if o.weight > 0), key=_severity_order)
    positive = sorted((o for o in distinct.values() if o.weight < 0),
                      key=lambda o: (o.weight, o.first_position, o.phrase))

    return Composition(
        overall_score=score,
        risk_level=level_for_score(score),
        category_scores=category_scores,
        risk_factors=tuple(risk),
        positive_factors=tuple(positive),
        adjustments=adjustments,
    )

