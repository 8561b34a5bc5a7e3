"""
Tests for the analyzer controller: heuristic path, LLM path and fallback.
"""

from __future__ import annotations

import json

import pytest

import llm
from analyzer import FallbackAnalyzer, HeuristicAnalyzer, LLMAnalyzer, analyze, build_analyzer
from catalog import CANONICAL_CATEGORIES
from llm import Malformed, RateLimited, Transient
from scoring import BASE_SCORE, category_level_for_score, level_for_score

from conftest import RISKY_TEXT, filler

SAMPLE_TEXTS = [
    "",
    "short",
    filler(3),
    RISKY_TEXT,
    "Members can opt out easily. We value data protection. " + filler(120),
    " ".join(["Disputes go to binding arbitration."] * 5),
    RISKY_TEXT * 40,
]


class CountingModel:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, prompt):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.parametrize("text", SAMPLE_TEXTS)
def test_heuristic_result_invariants(text):
    r = HeuristicAnalyzer().analyze(text)
    ra = r.risk_assessment
    assert 0 <= ra.score <= 100
    assert ra.level == level_for_score(ra.score)
    assert len(ra.concerns) >= 1
    assert 1 <= len(r.key_points) <= 7
    assert set(r.categories) == set(CANONICAL_CATEGORIES)
    for cat in CANONICAL_CATEGORIES:
        cs = r.categories[cat]
        assert 0 <= cs.score <= 100
        assert cs.risk_level == category_level_for_score(cs.score)
    for h in r.text_highlights:
        assert 0 <= h.start < h.end <= len(r.original_text)
    assert r.analysis_method == "heuristic"
    assert r.reading_time >= 1


@pytest.mark.parametrize("text", SAMPLE_TEXTS)
def test_heuristic_path_is_idempotent(text):
    assert HeuristicAnalyzer().analyze(text).to_dict() == HeuristicAnalyzer().analyze(text).to_dict()


def test_empty_text_degrades_gracefully():
    r = HeuristicAnalyzer().analyze("")
    assert r.risk_assessment.score == BASE_SCORE
    assert r.risk_assessment.level == "low"
    assert r.word_count == 0
    assert r.reading_time == 1


def test_malformed_model_output_falls_back_to_heuristic():
    model = CountingModel(["{not valid json"] * 3)
    sleeps = []
    result = analyze(RISKY_TEXT, call_model=model, sleep=sleeps.append)
    assert result.analysis_method == "heuristic"
    assert result == HeuristicAnalyzer().analyze(RISKY_TEXT)
    assert model.calls == 1
    assert sleeps == []


def test_rate_limited_exhaustion_falls_back():
    model = CountingModel([RateLimited("429")])
    sleeps = []
    result = analyze(RISKY_TEXT, call_model=model, sleep=sleeps.append)
    assert result.analysis_method == "heuristic"
    assert model.calls == 3
    assert sleeps == [1, 2]


def test_transient_then_success_uses_model_result():
    good = json.dumps({"summary": "From the model", "riskAssessment": {"score": 20, "level": "high"}})
    model = CountingModel([Transient("timeout"), good])
    result = analyze(RISKY_TEXT, call_model=model, sleep=lambda s: None)
    assert result.analysis_method == "ai"
    assert result.summary == "From the model"
    assert result.risk_assessment.level == "low"
    assert model.calls == 2


def test_both_paths_share_output_shape():
    good = json.dumps({"summary": "From the model"})
    ai = analyze(RISKY_TEXT, call_model=CountingModel([good])).to_dict()
    heuristic = analyze(RISKY_TEXT, use_llm=False).to_dict()
    assert set(ai) == set(heuristic)
    assert set(ai["categories"]) == set(heuristic["categories"])


def test_build_analyzer_selection(monkeypatch):
    assert isinstance(build_analyzer(use_llm=False), HeuristicAnalyzer)

    monkeypatch.setattr(llm, "OLLAMA_ENABLED", False)
    assert isinstance(build_analyzer(), HeuristicAnalyzer)

    chosen = build_analyzer(call_model=lambda p: "{}")
    assert isinstance(chosen, FallbackAnalyzer)
    assert isinstance(chosen.primary, LLMAnalyzer)
    assert chosen.method == "ai"


def test_fallback_recovers_from_primary_failure():
    class Broken(HeuristicAnalyzer):
        def analyze(self, text):
            raise Malformed("nope")

    r = FallbackAnalyzer(Broken(), HeuristicAnalyzer()).analyze(RISKY_TEXT)
    assert r.analysis_method == "heuristic"


@pytest.mark.parametrize("raw", [
    '{"summary": "x", "riskAssessment": {"score": 1e999}}',
    '{"summary": "x", "categories": {"liability": {"score": Infinity}}}',
])
def test_non_finite_model_numbers_never_escape(raw):
    result = analyze(RISKY_TEXT, call_model=lambda p: raw, sleep=lambda s: None)
    assert result.analysis_method == "ai"
    assert 0 <= result.risk_assessment.score <= 100
    assert all(0 <= cs.score <= 100 for cs in result.categories.values())


def test_deeply_nested_model_output_falls_back():
    depth = 100000
    raw = '{"summary": ' + "[" * depth + "]" * depth + "}"
    result = analyze(RISKY_TEXT, call_model=lambda p: raw, sleep=lambda s: None)
    assert result == HeuristicAnalyzer().analyze(RISKY_TEXT)
