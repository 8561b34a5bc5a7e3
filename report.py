"""
report.py — Assemble the deterministic AnalysisResult.

Takes the scanner occurrences and the scoring composition and produces the
summary, key points, concerns, category summaries, highlights and breakdown.
No randomness and no timestamps: identical input gives an identical result.
"""

import math
from typing import Dict, List, Sequence

from markupsafe import Markup, escape

from catalog import CANONICAL_CATEGORIES, CATEGORY_LABELS
from models import (
    AnalysisResult, BreakdownEntry, CategoryScore, Highlight,
    RiskAssessment, TermDetail,
)
from scanner import Occurrence
from scoring import CategoryTally, Composition

MAX_KEY_POINTS   = 7
MIN_CATEGORY_KEY_POINTS = 3
WORDS_PER_MINUTE = 200

PLACEHOLDER_CONCERN   = "Standard terms and conditions - review recommended"
PLACEHOLDER_KEY_POINT = "Document contains legal terms requiring review"

# |weight| buckets for highlight severity
HIGH_SEVERITY_WEIGHT   = 15
MEDIUM_SEVERITY_WEIGHT = 8


# ─────────────────────────────────────────────────────────────────────────────
# Category summary templates
# ─────────────────────────────────────────────────────────────────────────────

CATEGORY_SUMMARIES = {
    "dataCollection": {
        "low":    "Limited data collection language was found.",
        "medium": "The document describes collecting personal data; check what is gathered and why.",
        "high":   "Extensive data collection or sharing of personal data with others is described.",
    },
    "liability": {
        "low":    "Few liability limitations were detected.",
        "medium": "The provider limits its liability in places; your recourse may be reduced.",
        "high":   "Broad disclaimers or liability shifted onto you leave little recourse for damages.",
    },
    "termination": {
        "low":    "Account termination terms appear standard.",
        "medium": "The provider reserves some rights to suspend or terminate accounts.",
        "high":   "Accounts can be terminated at the provider's discretion, possibly without notice.",
    },
    "userRights": {
        "low":    "No significant restrictions on user rights were detected.",
        "medium": "Some user rights, such as dispute options, are restricted.",
        "high":   "Important rights are waived, such as going to court or joining a class action.",
    },
}

DEFAULT_CATEGORY_SUMMARIES = {
    "dataCollection": "Data collection practices require review",
    "liability":      "Liability terms require review",
    "termination":    "Termination procedures require review",
    "userRights":     "User rights and obligations require review",
}


# ─────────────────────────────────────────────────────────────────────────────
# Small shared helpers
# ─────────────────────────────────────────────────────────────────────────────

def reading_time(word_count: int) -> int:
    return max(1, math.ceil(max(word_count, 0) / WORDS_PER_MINUTE))


def severity_for_weight(weight: int) -> str:
    magnitude = abs(weight)
    if magnitude >= HIGH_SEVERITY_WEIGHT:
        return "high"
    if magnitude >= MEDIUM_SEVERITY_WEIGHT:
        return "medium"
    return "low"


def build_breakdown(categories: Dict[str, CategoryScore]) -> List[BreakdownEntry]:
    total = sum(categories[c].score for c in CANONICAL_CATEGORIES)
    out = []
    for cat in CANONICAL_CATEGORIES:
        score = categories[cat].score
        pct = round(score / total * 100) if total else 0
        out.append(BreakdownEntry(category=cat, score=score, percentage=pct))
    return out


def _quote_list(phrases: Sequence[str]) -> str:
    quoted = [f'"{p}"' for p in phrases]
    if len(quoted) <= 1:
        return "".join(quoted)
    return ", ".join(quoted[:-1]) + " and " + quoted[-1]


# ─────────────────────────────────────────────────────────────────────────────
# Sections
# ─────────────────────────────────────────────────────────────────────────────

def build_summary(word_count: int, composition: Composition) -> str:
    top = [f.phrase for f in composition.risk_factors[:2]]
    text = (
        f"This {word_count}-word document presents {composition.risk_level} risk "
        f"(score {composition.overall_score}/100)."
    )
    if top:
        text += f" The most significant clauses found include {_quote_list(top)}."
    else:
        text += " No high-risk clauses were detected by keyword analysis."
    return text + " Review carefully before accepting."


def build_key_points(word_count: int, composition: Composition) -> List[str]:
    points = []
    for cat in CANONICAL_CATEGORIES:
        tally = composition.category_scores[cat]
        if not tally.hits:
            continue
        mentions = sum(h.count for h in tally.hits)
        terms = _quote_list([h.phrase for h in tally.hits[:3]])
        points.append(
            f"{CATEGORY_LABELS[cat]}: {len(tally.hits)} notable term(s) "
            f"mentioned {mentions} time(s), including {terms}"
        )

    if len(points) < MIN_CATEGORY_KEY_POINTS:
        points.append(
            f"Document contains {word_count} words of legal text "
            f"(about {reading_time(word_count)} minute(s) to read)"
        )

    if composition.risk_factors:
        points.append(f"Found {len(composition.risk_factors)} potentially concerning clause(s)")
    if composition.positive_factors:
        points.append(
            f"Found {len(composition.positive_factors)} user-protective term(s), such as "
            f"{_quote_list([p.phrase for p in composition.positive_factors[:2]])}"
        )

    return points[:MAX_KEY_POINTS] or [PLACEHOLDER_KEY_POINT]


def build_concerns(composition: Composition) -> List[str]:
    concerns = [f'Document contains: "{f.phrase}"' for f in composition.risk_factors]
    return concerns or [PLACEHOLDER_CONCERN]


def build_highlights(occurrences: Sequence[Occurrence], text_length: int) -> List[Highlight]:
    highlights = []
    for o in occurrences:
        severity = severity_for_weight(o.weight)
        for start, end in o.spans:
            if 0 <= start < end <= text_length:
                highlights.append(Highlight(start, end, o.category, o.phrase, severity))
    highlights.sort(key=lambda h: (h.start, h.end, h.term))
    return highlights


def build_category(tally: CategoryTally) -> CategoryScore:
    summary = CATEGORY_SUMMARIES[tally.category][tally.level]
    if tally.hits:
        summary += f" ({len(tally.hits)} relevant term(s) found.)"
    return CategoryScore(
        category=tally.category,
        summary=summary,
        score=tally.score,
        risk_level=tally.level,
        details=tuple(TermDetail(h.phrase, h.count, h.positions) for h in tally.hits),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Main entry point
# ─────────────────────────────────────────────────────────────────────────────

def build(occurrences: Sequence[Occurrence], composition: Composition,
          text: str, word_count: int) -> AnalysisResult:
    text = text or ""
    word_count = max(int(word_count or 0), 0)

    categories = {
        cat: build_category(composition.category_scores[cat])
        for cat in CANONICAL_CATEGORIES
    }

    return AnalysisResult(
        summary=build_summary(word_count, composition),
        key_points=tuple(build_key_points(word_count, composition)),
        risk_assessment=RiskAssessment(
            level=composition.risk_level,
            score=composition.overall_score,
            concerns=tuple(build_concerns(composition)),
        ),
        categories=categories,
        original_text=text,
        word_count=word_count,
        reading_time=reading_time(word_count),
        analysis_method="heuristic",
        text_highlights=tuple(build_highlights(occurrences, len(text))),
        category_breakdown=tuple(build_breakdown(categories)),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Highlight rendering
# ─────────────────────────────────────────────────────────────────────────────

def highlight_markup(text: str, highlights: Sequence[Highlight]) -> Markup:
    """
    Render text as HTML with <mark> tags around highlights.

    Highlights are inserted in position order; one that overlaps an already
    inserted highlight is skipped, so the output is always well-formed.
    """
    parts = []
    cursor = 0
    for h in sorted(highlights, key=lambda h: (h.start, -h.end)):
        if h.start < cursor or h.end > len(text):
            continue
        parts.append(escape(text[cursor:h.start]))
        parts.append(Markup(
            '<mark class="hl hl-{sev}" data-category="{cat}" title="{term}">{body}</mark>'
        ).format(sev=h.severity, cat=h.category, term=h.term, body=text[h.start:h.end]))
        cursor = h.end
    parts.append(escape(text[cursor:]))
    return Markup("").join(parts)
