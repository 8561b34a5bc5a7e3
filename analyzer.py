"""
Terms & Conditions analyzers.

Two implementations of one interface produce the same AnalysisResult shape:

  HeuristicAnalyzer — deterministic keyword/phrase scoring; never blocks and
                      never fails on well-formed text.
  LLMAnalyzer       — asks an Ollama model, with bounded retries.

FallbackAnalyzer tries the LLM first and degrades to the heuristic result on
any external-call failure, so callers always get a complete result.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import llm
from models import AnalysisResult
from report import build
from scanner import scan
from scoring import compose, count_words

logger = logging.getLogger(__name__)


class Analyzer(ABC):
    method = ""

    @abstractmethod
    def analyze(self, text: str) -> AnalysisResult:
        ...


class HeuristicAnalyzer(Analyzer):
    method = "heuristic"

    def analyze(self, text: str) -> AnalysisResult:
        text = text or ""
        word_count = count_words(text)
        occurrences = scan(text)
        composition = compose(occurrences, text, word_count)
        return build(occurrences, composition, text, word_count)


class LLMAnalyzer(Analyzer):
    method = "ai"

    def __init__(self, call_model: Optional[Callable[[str], str]] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.call_model = call_model
        self.sleep = sleep

    def analyze(self, text: str) -> AnalysisResult:
        return llm.analyze_with_llm(text, call_model=self.call_model, sleep=self.sleep)


class FallbackAnalyzer(Analyzer):
    """Run primary; on ExternalCallFailed return fallback's result instead."""

    def __init__(self, primary: Analyzer, fallback: Analyzer):
        self.primary = primary
        self.fallback = fallback

    @property
    def method(self) -> str:
        return self.primary.method

    def analyze(self, text: str) -> AnalysisResult:
        try:
            return self.primary.analyze(text)
        except llm.ExternalCallFailed as e:
            logger.warning("%s analysis failed (%s: %s); falling back to %s",
                           self.primary.method, type(e).__name__, e, self.fallback.method)
        return self.fallback.analyze(text)


def build_analyzer(use_llm: bool = True,
                   call_model: Optional[Callable[[str], str]] = None,
                   sleep: Callable[[float], None] = time.sleep) -> Analyzer:
    if not use_llm or (call_model is None and not llm.OLLAMA_ENABLED):
        return HeuristicAnalyzer()
    return FallbackAnalyzer(LLMAnalyzer(call_model, sleep), HeuristicAnalyzer())


def analyze(text: str, use_llm: bool = True,
            call_model: Optional[Callable[[str], str]] = None,
            sleep: Callable[[float], None] = time.sleep) -> AnalysisResult:
    """Analyze a document, preferring the LLM and falling back to heuristics."""
    analyzer = build_analyzer(use_llm, call_model, sleep)
    logger.info("Analyzing %d chars with %s analyzer", len(text or ""), analyzer.method)
    return analyzer.analyze(text)
