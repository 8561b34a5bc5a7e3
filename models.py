"""
Result data classes shared by the heuristic and LLM analysis paths.

Everything here is frozen: a result is built once per document and handed to
the caller.  to_dict() produces the camelCase wire shape used by the API,
the document store and the exporters.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from catalog import CANONICAL_CATEGORIES
from scoring import RISK_LEVELS, level_for_score

ANALYSIS_METHODS = ("ai", "heuristic")


# ─────────────────────────────────────────────────────────────────────────────
# Data classes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TermDetail:
    term:      str
    count:     int
    positions: Tuple[int, ...] = ()


@dataclass(frozen=True)
class CategoryScore:
    category:   str
    summary:    str
    score:      int                         # 0–100
    risk_level: str
    details:    Tuple[TermDetail, ...] = ()

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Category score out of range: {self.score}")
        if self.risk_level not in RISK_LEVELS:
            raise ValueError(f"Unknown risk level: {self.risk_level!r}")


@dataclass(frozen=True)
class RiskAssessment:
    level:     str
    score:     int                          # 0–100
    concerns:  Tuple[str, ...] = ()
    reasoning: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Risk score out of range: {self.score}")
        expected = level_for_score(self.score)
        if self.level != expected:
            raise ValueError(
                f"Risk level {self.level!r} does not match score {self.score} (expected {expected!r})"
            )


@dataclass(frozen=True)
class Highlight:
    start:    int
    end:      int
    category: str
    term:     str
    severity: str                           # low | medium | high

    def __post_init__(self):
        if not 0 <= self.start < self.end:
            raise ValueError(f"Invalid highlight span {self.start}..{self.end}")
        if self.severity not in RISK_LEVELS:
            raise ValueError(f"Unknown severity: {self.severity!r}")


@dataclass(frozen=True)
class BreakdownEntry:
    category:   str
    score:      int
    percentage: int


@dataclass(frozen=True)
class AnalysisResult:
    summary:            str
    key_points:         Tuple[str, ...]
    risk_assessment:    RiskAssessment
    categories:         Dict[str, CategoryScore]
    original_text:      str
    word_count:         int
    reading_time:       int
    analysis_method:    str
    text_highlights:    Tuple[Highlight, ...] = ()
    category_breakdown: Tuple[BreakdownEntry, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.analysis_method not in ANALYSIS_METHODS:
            raise ValueError(f"Unknown analysis method: {self.analysis_method!r}")
        missing = [c for c in CANONICAL_CATEGORIES if c not in self.categories]
        if missing:
            raise ValueError(f"Missing categories: {', '.join(missing)}")
        limit = len(self.original_text)
        for h in self.text_highlights:
            if h.end > limit:
                raise ValueError(f"Highlight {h.start}..{h.end} runs past end of text ({limit})")

    @property
    def risk_level(self) -> str:
        return self.risk_assessment.level

    @property
    def risk_score(self) -> int:
        return self.risk_assessment.score

    def to_dict(self) -> dict:
        """Serialize to the camelCase wire shape (JSON / storage)."""
        ra = self.risk_assessment
        risk = {
            "level":    ra.level,
            "score":    ra.score,
            "concerns": list(ra.concerns),
        }
        if ra.reasoning:
            risk["reasoning"] = ra.reasoning
        return {
            "summary":        self.summary,
            "keyPoints":      list(self.key_points),
            "riskAssessment": risk,
            "categories": {
                cat: {
                    "summary":   cs.summary,
                    "score":     cs.score,
                    "riskLevel": cs.risk_level,
                    "details": [
                        {"term": d.term, "count": d.count, "positions": list(d.positions)}
                        for d in cs.details
                    ],
                }
                for cat, cs in ((c, self.categories[c]) for c in CANONICAL_CATEGORIES)
            },
            "textHighlights": [
                {"start": h.start, "end": h.end, "category": h.category,
                 "term": h.term, "severity": h.severity}
                for h in self.text_highlights
            ],
            "originalText":   self.original_text,
            "wordCount":      self.word_count,
            "readingTime":    self.reading_time,
            "categoryBreakdown": [
                {"category": b.category, "score": b.score, "percentage": b.percentage}
                for b in self.category_breakdown
            ],
            "analysisMethod": self.analysis_method,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AnalysisResult":
        ra = d["riskAssessment"]
        categories = {
            cat: CategoryScore(
                category=cat,
                summary=c["summary"],
                score=c["score"],
                risk_level=c["riskLevel"],
                details=tuple(
                    TermDetail(x["term"], x["count"], tuple(x.get("positions", ())))
                    for x in c.get("details", ())
                ),
            )
            for cat, c in d["categories"].items()
        }
        return cls(
            summary=d["summary"],
            key_points=tuple(d["keyPoints"]),
            risk_assessment=RiskAssessment(
                level=ra["level"],
                score=ra["score"],
                concerns=tuple(ra["concerns"]),
                reasoning=ra.get("reasoning"),
            ),
            categories=categories,
            original_text=d["originalText"],
            word_count=d["wordCount"],
            reading_time=d["readingTime"],
            analysis_method=d.get("analysisMethod", "heuristic"),
            text_highlights=tuple(Highlight(**h) for h in d.get("textHighlights", ())),
            category_breakdown=tuple(BreakdownEntry(**b) for b in d.get("categoryBreakdown", ())),
        )
