"""
ingest.py — Turn uploads, URLs and pasted text into plain text for analysis.

PDF support is best effort: PyPDF2 first, then a byte-level scan for runs of
readable characters.  Images are not supported.
"""

import io
import logging
import os
import re

import requests

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS     = 50
MAX_ANALYSIS_CHARS = int(os.environ.get("MAX_ANALYSIS_CHARS", "50000"))
TRUNCATION_MARKER  = "... [truncated for analysis]"
URL_TIMEOUT        = 15

ALLOWED_TEXT  = {".txt", ".md"}
ALLOWED_PDF   = {".pdf"}
IMAGE_TYPES   = {".png", ".jpg", ".jpeg", ".webp", ".tiff", ".bmp", ".gif"}


class IngestError(ValueError):
    """Document could not be turned into text.  `kind` is echoed to API clients."""

    def __init__(self, message: str, kind: str = "ingest_error"):
        super().__init__(message)
        self.kind = kind


class InputTooShort(IngestError):
    def __init__(self, length: int):
        super().__init__(
            f"Document appears to be empty or too short to analyze "
            f"({length} characters, minimum {MIN_TEXT_CHARS}).",
            kind="input_too_short",
        )


def file_ext(fn: str) -> str:
    return os.path.splitext(fn.lower())[1]


# ── Text extractors ──────────────────────────────────────────────────────────

def _from_txt(raw: bytes) -> str:
    return raw.decode("utf-8", errors="ignore")


def _pdf_byte_fallback(raw: bytes) -> str:
    """Recover readable runs straight from the PDF bytes."""
    decoded = raw.decode("utf-8", errors="ignore")
    decoded = re.sub(r"[\x00-\x1f\x7f-\x9f]", " ", decoded)
    decoded = re.sub(r"\s+", " ", decoded)
    runs = re.findall(r"[a-zA-Z\s.,;:!?'\"()-]{10,}", decoded)
    text = " ".join(runs).strip()
    if len(text) < 100:
        text = re.sub(r"\s+", " ", re.sub(r"[^\w\s.,;:!?'\"()-]", " ", decoded)).strip()
    return text


def _from_pdf(raw: bytes) -> str:
    text = ""
    try:
        import PyPDF2
        reader = PyPDF2.PdfReader(io.BytesIO(raw))
        text = "\n".join(p.extract_text() or "" for p in reader.pages)
    except Exception as e:  # PyPDF2 raises a wide range of errors on damaged files
        logger.warning("PyPDF2 could not read PDF: %s", e)
    if len(text.strip()) >= 100:
        return text
    text = _pdf_byte_fallback(raw)
    if len(text) < MIN_TEXT_CHARS:
        raise IngestError(
            "Failed to extract text from PDF. Please try converting to text format or paste the text.",
            kind="pdf_parsing_error",
        )
    return text


def extract_text(filename: str, raw: bytes) -> str:
    ext = file_ext(filename)
    if ext in ALLOWED_TEXT:
        return _from_txt(raw)
    if ext in ALLOWED_PDF:
        return _from_pdf(raw)
    if ext in IMAGE_TYPES:
        raise IngestError(
            "Image analysis is not supported. Please use text files, PDFs, URLs, or paste text directly.",
            kind="feature_unavailable",
        )
    raise IngestError(f"Unsupported file type: {ext or filename}", kind="unsupported_type")


def html_to_text(html: str) -> str:
    html = re.sub(r"<script\b[^>]*>.*?</script>", " ", html, flags=re.IGNORECASE | re.DOTALL)
    html = re.sub(r"<style\b[^>]*>.*?</style>", " ", html, flags=re.IGNORECASE | re.DOTALL)
    html = re.sub(r"<[^>]*>", " ", html)
    return re.sub(r"\s+", " ", html).strip()


def fetch_url(url: str) -> str:
    if not isinstance(url, str) or not re.match(r"^https?://", url, re.IGNORECASE):
        raise IngestError("URL must start with http:// or https://", kind="fetch_error")
    try:
        resp = requests.get(url, timeout=URL_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise IngestError(f"Failed to fetch content from URL: {e}", kind="fetch_error") from e
    return html_to_text(resp.text)


# ── Validation ───────────────────────────────────────────────────────────────

def prepare_text(text: str) -> str:
    """Strip, reject too-short input, and cap very long documents."""
    if text is not None and not isinstance(text, str):
        raise IngestError("Document text must be a string.", kind="invalid_request")
    text = (text or "").strip()
    if len(text) < MIN_TEXT_CHARS:
        raise InputTooShort(len(text))
    if len(text) > MAX_ANALYSIS_CHARS:
        logger.info("Truncating %d-char document to %d chars", len(text), MAX_ANALYSIS_CHARS)
        text = text[:MAX_ANALYSIS_CHARS] + TRUNCATION_MARKER
    return text
