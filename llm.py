"""
llm.py — Ollama-backed analysis of T&C documents.

Talks to an Ollama instance via its REST API and asks for a single JSON
object in the AnalysisResult shape.  Failures are classified as:

  RateLimited — HTTP 429; retried with exponential backoff (1s, 2s, 4s … ≤30s)
  Transient   — timeouts, connection errors, other HTTP errors; retried after 1s
  Malformed   — output that is not the expected JSON object; never retried

After the last attempt the error propagates so the caller can fall back to
the heuristic analyzer.  Whatever the model returns is validated: missing
fields get defaults, scores are clamped and levels are re-derived locally.
"""

import json
import logging
import os
import re
import time
from typing import Callable, Optional

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_before_delay,
    wait_exponential,
    wait_fixed,
)

from catalog import CANONICAL_CATEGORIES
from models import AnalysisResult, CategoryScore, Highlight, RiskAssessment, TermDetail
from report import (
    DEFAULT_CATEGORY_SUMMARIES, PLACEHOLDER_CONCERN, PLACEHOLDER_KEY_POINT,
    MAX_KEY_POINTS, build_breakdown, reading_time,
)
from scoring import RISK_LEVELS, category_level_for_score, clamp, count_words, level_for_score

logger = logging.getLogger(__name__)

# ── Config (overridable via environment variables) ────────────────────────────
OLLAMA_BASE_URL  = os.environ.get("OLLAMA_BASE_URL",  "http://ollama:11434")
OLLAMA_MODEL     = os.environ.get("OLLAMA_MODEL",     "llama3.2")
OLLAMA_TIMEOUT   = int(os.environ.get("OLLAMA_TIMEOUT", "60"))    # seconds, per attempt
OLLAMA_ENABLED   = os.environ.get("OLLAMA_ENABLED", "true").lower() != "false"

LLM_MAX_ATTEMPTS = int(os.environ.get("LLM_MAX_ATTEMPTS", "3"))
LLM_TOTAL_BUDGET = int(os.environ.get("LLM_TOTAL_BUDGET", "200"))  # seconds; no retry sleep may run past it

RATE_LIMIT_BACKOFF_MAX = 30

# How many characters of the document go into the prompt
MAX_DOC_CHARS = 12000

EXPECTED_KEYS = ("summary", "keyPoints", "riskAssessment", "categories",
                 "textHighlights", "categoryBreakdown")

DEFAULT_CATEGORY_SCORE = 50


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────

class ExternalCallFailed(Exception):
    """The model call could not produce a usable analysis."""


class RateLimited(ExternalCallFailed):
    pass


class Transient(ExternalCallFailed):
    pass


class Malformed(ExternalCallFailed):
    pass


# ─────────────────────────────────────────────────────────────────────────────
# Ollama client
# ─────────────────────────────────────────────────────────────────────────────

def _ollama_available() -> bool:
    """Quick ping to see if Ollama is reachable."""
    try:
        r = requests.get(f"{OLLAMA_BASE_URL}/api/tags", timeout=4)
        return r.status_code == 200
    except requests.RequestException:
        return False


def ollama_generate(prompt: str, system: str = "") -> str:
    """
    Call /api/generate and return the raw response text.
    Raises RateLimited / Transient so the retry loop can classify failures.
    """
    payload = {
        "model":  OLLAMA_MODEL,
        "prompt": prompt,
        "stream": False,
        "format": "json",
        "options": {
            "temperature": 0.1,
            "num_predict": 2000,
        },
    }
    if system:
        payload["system"] = system

    try:
        resp = requests.post(
            f"{OLLAMA_BASE_URL}/api/generate",
            json=payload,
            timeout=OLLAMA_TIMEOUT,
        )
    except requests.exceptions.Timeout as e:
        raise Transient(f"Ollama timed out after {OLLAMA_TIMEOUT}s") from e
    except requests.RequestException as e:
        raise Transient(f"Ollama request failed: {e}") from e

    if resp.status_code == 429:
        raise RateLimited("Ollama rate limited the request")
    if resp.status_code >= 400:
        raise Transient(f"Ollama returned HTTP {resp.status_code}")

    try:
        body = resp.json()
    except ValueError as e:
        raise Malformed("Ollama envelope is not JSON") from e
    if not isinstance(body, dict):
        raise Malformed("Unexpected Ollama envelope")
    return body.get("response") or ""


# ─────────────────────────────────────────────────────────────────────────────
# Prompt
# ─────────────────────────────────────────────────────────────────────────────

SYSTEM_PROMPT = """You are an expert legal analyst specializing in terms and conditions \
documents. Analyze the provided text and return ONLY a JSON object with this structure:

{
  "summary": "2-3 sentence summary of the document's key aspects and overall risk",
  "keyPoints": ["5-7 specific key points about important clauses"],
  "riskAssessment": {
    "score": number between 0 and 100,
    "concerns": ["specific concerning clauses or practices found"],
    "reasoning": "one or two sentences explaining the score"
  },
  "categories": {
    "dataCollection": {"summary": "...", "score": 0-100, "details": [{"term": "...", "count": 1, "positions": [0]}]},
    "liability":      {"summary": "...", "score": 0-100, "details": []},
    "termination":    {"summary": "...", "score": 0-100, "details": []},
    "userRights":     {"summary": "...", "score": 0-100, "details": []}
  },
  "textHighlights": [
    {"start": 0, "end": 10, "category": "dataCollection|liability|termination|userRights|concerning",
     "term": "highlighted term", "severity": "low|medium|high"}
  ]
}

Focus on data collection and privacy, liability limitations, account termination, \
user rights, dispute resolution, and phrases like "without notice", \
"at our discretion" or "unlimited liability". Character positions refer to the text \
exactly as given. No markdown, no code fences, no commentary."""


def build_prompt(text: str) -> str:
    return f"""Analyze this terms and conditions document:

{text[:MAX_DOC_CHARS]}

Provide the analysis in the specified JSON format."""


# ─────────────────────────────────────────────────────────────────────────────
# Parsing & validation
# ─────────────────────────────────────────────────────────────────────────────

def parse_json_response(raw: str) -> dict:
    """Extract the JSON object from model output — tolerates code fences and stray text."""
    if not raw or not raw.strip():
        raise Malformed("Empty model response")
    cleaned = re.sub(r"```(?:json)?", "", raw).strip()
    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if not match:
        raise Malformed("No JSON object in model response")
    try:
        data = json.loads(match.group())
    except (json.JSONDecodeError, RecursionError) as e:
        raise Malformed(f"Invalid JSON from model: {e}") from e
    if not isinstance(data, dict) or not any(k in data for k in EXPECTED_KEYS):
        raise Malformed("Model response does not match the analysis schema")
    return data


def _as_int(value, default: int) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default


def _text_items(items) -> list:
    """Accept a list of strings or of {"text": ...} objects."""
    if not isinstance(items, list):
        return []
    out = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("text", "")
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return out


def _details(raw) -> tuple:
    if not isinstance(raw, list):
        return ()
    out = []
    for d in raw:
        if not isinstance(d, dict) or not isinstance(d.get("term"), str):
            continue
        raw_positions = d.get("positions") if isinstance(d.get("positions"), list) else []
        # bool is an int subclass; JSON true/false are not offsets
        positions = tuple(p for p in raw_positions
                          if isinstance(p, int) and not isinstance(p, bool) and p >= 0)
        out.append(TermDetail(d["term"], max(_as_int(d.get("count"), len(positions)), 0), positions))
    return tuple(out)


def _category(cat: str, raw) -> CategoryScore:
    if isinstance(raw, str) and raw.strip():
        raw = {"summary": raw}
    if not isinstance(raw, dict):
        raw = {}
    score = clamp(_as_int(raw.get("score"), DEFAULT_CATEGORY_SCORE))
    summary = raw.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = DEFAULT_CATEGORY_SUMMARIES[cat]
    return CategoryScore(
        category=cat,
        summary=summary.strip(),
        score=score,
        risk_level=category_level_for_score(score),
        details=_details(raw.get("details")),
    )


def _highlights(raw, text_length: int) -> tuple:
    if not isinstance(raw, list):
        return ()
    out = []
    for h in raw:
        if not isinstance(h, dict):
            continue
        start, end = _as_int(h.get("start"), -1), _as_int(h.get("end"), -1)
        if not 0 <= start < end <= text_length:
            continue
        severity = h.get("severity") if h.get("severity") in RISK_LEVELS else "medium"
        out.append(Highlight(start, end, str(h.get("category") or "concerning"),
                             str(h.get("term") or ""), severity))
    out.sort(key=lambda h: (h.start, h.end, h.term))
    return tuple(out)


def normalize_response(data: dict, text: str) -> AnalysisResult:
    """
    Coerce a parsed model response into an AnalysisResult.

    Word count, reading time and the category breakdown are always computed
    locally; score levels are always re-derived from the (clamped) scores.
    """
    wc = count_words(text)

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = f"This {wc}-word document contains terms and conditions that require careful review."

    risk = data.get("riskAssessment")
    if not isinstance(risk, dict):
        risk = {}
    score = clamp(_as_int(risk.get("score"), DEFAULT_CATEGORY_SCORE))
    reasoning = risk.get("reasoning") if isinstance(risk.get("reasoning"), str) else None

    raw_categories = data.get("categories")
    if not isinstance(raw_categories, dict):
        raw_categories = {}
    categories = {cat: _category(cat, raw_categories.get(cat)) for cat in CANONICAL_CATEGORIES}

    return AnalysisResult(
        summary=summary.strip(),
        key_points=tuple(_text_items(data.get("keyPoints"))[:MAX_KEY_POINTS] or [PLACEHOLDER_KEY_POINT]),
        risk_assessment=RiskAssessment(
            level=level_for_score(score),
            score=score,
            concerns=tuple(_text_items(risk.get("concerns")) or [PLACEHOLDER_CONCERN]),
            reasoning=reasoning.strip() if reasoning and reasoning.strip() else None,
        ),
        categories=categories,
        original_text=text,
        word_count=wc,
        reading_time=reading_time(wc),
        analysis_method="ai",
        text_highlights=_highlights(data.get("textHighlights"), len(text)),
        category_breakdown=tuple(build_breakdown(categories)),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Retry policy
# ─────────────────────────────────────────────────────────────────────────────

_rate_limit_wait = wait_exponential(multiplier=1, min=1, max=RATE_LIMIT_BACKOFF_MAX)
_transient_wait  = wait_fixed(1)


def backoff_for(retry_state) -> float:
    """Exponential backoff after RateLimited, a fixed second after anything else."""
    exc = retry_state.outcome.exception()
    if isinstance(exc, RateLimited):
        return _rate_limit_wait(retry_state)
    return _transient_wait(retry_state)


def call_with_retry(fn: Callable[[], dict],
                    max_attempts: int = LLM_MAX_ATTEMPTS,
                    total_budget: float = LLM_TOTAL_BUDGET,
                    sleep: Callable[[float], None] = time.sleep) -> dict:
    """Run fn under the retry policy; the last failure is re-raised."""
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts) | stop_before_delay(total_budget),
        wait=backoff_for,
        retry=retry_if_exception_type((RateLimited, Transient)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
    return retrying(fn)


# ─────────────────────────────────────────────────────────────────────────────
# Main public function
# ─────────────────────────────────────────────────────────────────────────────

def analyze_with_llm(text: str,
                     call_model: Optional[Callable[[str], str]] = None,
                     sleep: Callable[[float], None] = time.sleep) -> AnalysisResult:
    """
    Analyze text with the model.  Raises ExternalCallFailed when no usable
    result could be obtained within the retry policy.

    call_model defaults to the Ollama client; any `prompt -> raw string`
    callable raising the errors above can stand in for it.
    """
    if call_model is None:
        if not OLLAMA_ENABLED:
            raise Transient("Ollama disabled via OLLAMA_ENABLED=false")
        if not _ollama_available():
            raise Transient(f"Ollama not reachable at {OLLAMA_BASE_URL}")
        call_model = lambda prompt: ollama_generate(prompt, SYSTEM_PROMPT)  # noqa: E731

    prompt = build_prompt(text)

    def attempt() -> dict:
        return parse_json_response(call_model(prompt))

    data = call_with_retry(attempt, sleep=sleep)
    try:
        return normalize_response(data, text)
    except (TypeError, ValueError, AttributeError, OverflowError, RecursionError) as e:
        raise Malformed(f"Could not normalize model response: {e}") from e


# ─────────────────────────────────────────────────────────────────────────────
# Status helper  (used by the health endpoints)
# ─────────────────────────────────────────────────────────────────────────────

def ollama_status() -> dict:
    """Return Ollama connectivity info."""
    if not OLLAMA_ENABLED:
        return {"available": False, "reason": "Disabled via OLLAMA_ENABLED=false", "model": OLLAMA_MODEL}

    try:
        r = requests.get(f"{OLLAMA_BASE_URL}/api/tags", timeout=4)
        if r.status_code != 200:
            return {"available": False, "reason": f"HTTP {r.status_code}", "model": OLLAMA_MODEL}

        tags = r.json().get("models", [])
        model_names = [m.get("name", "") for m in tags]
        model_loaded = any(OLLAMA_MODEL in n for n in model_names)

        return {
            "available":    True,
            "model":        OLLAMA_MODEL,
            "model_loaded": model_loaded,
            "all_models":   model_names,
            "base_url":     OLLAMA_BASE_URL,
        }
    except (requests.RequestException, ValueError) as e:
        return {"available": False, "reason": str(e), "model": OLLAMA_MODEL}
