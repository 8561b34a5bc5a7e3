import io
import logging
import os
import uuid

from flask import Flask, jsonify, request, send_file

from analyzer import analyze
from ingest import IngestError, extract_text, fetch_url, prepare_text
from llm import ollama_status
from models import AnalysisResult
from report import highlight_markup
from storage import DocumentStore

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "tc-analyzer-dev-key")

store = DocumentStore()

DEMO_TEXT = """
Terms of Service

1. Data Collection and Privacy
We collect personal data including your name, email address, browsing habits, device information, \
location data, and usage patterns. This information may be shared with third parties for advertising \
and marketing purposes. We use cookies and tracking technologies to monitor your behavior across our platform.

2. Liability and Disclaimers
The service is provided "as is" without warranty. We disclaim all liability for damages, loss, or harm \
resulting from service use. Users waive all rights to hold the company responsible for any issues. \
This limitation of liability is unlimited and applies to all circumstances.

3. Account Termination
We may terminate your account immediately without notice at our discretion. Upon termination, all user \
data may be retained for business purposes. Users have no right to data portability or account recovery.

4. Legal Disputes
All disputes must be resolved through binding arbitration. Users waive their right to jury trial and \
cannot participate in class action lawsuits. The governing law is determined at our discretion.

5. Changes to Terms
We may modify these terms at any time without notice. Continued use constitutes acceptance of changes. \
Users cannot opt out of modifications.
"""

# ── In-memory result cache ───────────────────────────────────────────────────
_cache: dict = {}
_MAX_CACHE = 50

def _cache_put(result: AnalysisResult, title: str) -> str:
    key = str(uuid.uuid4())
    if len(_cache) >= _MAX_CACHE:
        del _cache[next(iter(_cache))]
    _cache[key] = {"result": result.to_dict(), "title": title}
    return key

def _cache_get(key: str):
    entry = _cache.get(key) if key else None
    if not entry:
        return None, None
    return AnalysisResult.from_dict(entry["result"]), entry["title"]

def _error(message: str, status: int = 400, kind: str = ""):
    body = {"error": message}
    if kind:
        body["type"] = kind
    return jsonify(body), status

def _truthy(value, default=True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() not in ("false", "0", "off", "no")


# ── Request parsing ──────────────────────────────────────────────────────────

def _read_analyze_request():
    """Return (text, title, use_llm) from a JSON, form or raw body."""
    ct = request.content_type or ""

    if "application/json" in ct:
        body = request.get_json(silent=True)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise IngestError("Request body must be a JSON object.", kind="invalid_request")
        if _truthy(body.get("demo"), default=False):
            return DEMO_TEXT, "Demo terms of service", _truthy(body.get("use_llm"))
        text = body.get("text") or ""
        if not text and body.get("url"):
            text = fetch_url(body["url"])
        return text, str(body.get("title") or "Pasted text"), _truthy(body.get("use_llm"))

    if "multipart/form-data" in ct or "application/x-www-form-urlencoded" in ct:
        use_llm = _truthy(request.form.get("use_llm"))
        if _truthy(request.form.get("demo"), default=False):
            return DEMO_TEXT, "Demo terms of service", use_llm
        title = request.form.get("title", "")
        upload = request.files.get("file")
        if upload and upload.filename:
            return extract_text(upload.filename, upload.read()), title or upload.filename, use_llm
        if request.form.get("url"):
            url = request.form["url"]
            return fetch_url(url), title or url, use_llm
        return request.form.get("text", ""), title or "Pasted text", use_llm

    return request.get_data(as_text=True), "Pasted text", True


# ── REST API ─────────────────────────────────────────────────────────────────

@app.route("/api/health", methods=["GET"])
def api_health():
    return jsonify({"status": "ok", "version": "1.0", "llm": ollama_status()})


@app.route("/api/llm/status", methods=["GET"])
def api_llm_status():
    return jsonify(ollama_status())


@app.route("/api/analyze", methods=["POST"])
def api_analyze():
    """
    Analyze a T&C document and return the AnalysisResult as JSON.

    Accepts:
      • application/json    → { "text": "...", "title": "...", "use_llm": true }
                              or { "url": "..." } or { "demo": true }
      • multipart/form-data → file, text, url or demo field
      • anything else       → raw body is the document text

    The result-cache key comes back in the X-Result-Key header.
    """
    try:
        text, title, use_llm = _read_analyze_request()
        text = prepare_text(text)
    except IngestError as e:
        app.logger.info("Rejected analyze request: %s", e)
        return _error(str(e), 415 if e.kind == "unsupported_type" else 400, e.kind)

    result = analyze(text, use_llm=use_llm)
    key = _cache_put(result, title)

    resp = jsonify(result.to_dict())
    resp.headers["X-Result-Key"] = key
    return resp, 200


@app.route("/api/results/<key>/highlighted", methods=["GET"])
def api_highlighted(key):
    result, _ = _cache_get(key)
    if not result:
        return _error("No analysis found for that key.", 404)
    html = highlight_markup(result.original_text, result.text_highlights)
    return app.response_class(str(html), mimetype="text/html")


# ── Export routes ────────────────────────────────────────────────────────────

EXPORTS = {
    "pdf":  ("export_pdf",  "application/pdf", "tc_risk_report.pdf"),
    "word": ("export_word",
             "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
             "tc_risk_report.docx"),
    "csv":  ("export_csv",  "text/csv", "tc_risk_report.csv"),
}

@app.route("/export/<fmt>")
def export(fmt):
    if fmt not in EXPORTS:
        return _error(f"Unknown export format: {fmt}", 404)
    result, title = _cache_get(request.args.get("key"))
    if not result:
        return _error("No analysis found — please analyze a document first.", 404)

    import exporters
    func_name, mimetype, filename = EXPORTS[fmt]
    gen = getattr(exporters, func_name)
    data = gen(result) if fmt == "csv" else gen(result, title)
    return send_file(io.BytesIO(data), mimetype=mimetype, as_attachment=True, download_name=filename)


# ── Saved documents ──────────────────────────────────────────────────────────

def _user_id() -> str:
    return request.headers.get("X-User-Id", "").strip()


@app.route("/api/documents", methods=["GET", "POST"])
def api_documents():
    user_id = _user_id()
    if not user_id:
        return _error("X-User-Id header is required.", 401)

    if request.method == "GET":
        return jsonify([r.summary() for r in store.list_for_user(user_id)])

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return _error("Request body must be a JSON object.", 400, "invalid_request")
    title = str(body.get("title") or "")
    if isinstance(body.get("key"), str) and body["key"]:
        analysis, cached_title = _cache_get(body["key"])
        if not analysis:
            return _error("No analysis found for that key.", 404)
        title = title or cached_title
    elif isinstance(body.get("analysis"), dict):
        try:
            analysis = AnalysisResult.from_dict(body["analysis"])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return _error(f"Invalid analysis payload: {e}", 400)
    else:
        return _error("Body must contain a result 'key' or an 'analysis' object.", 400)

    rec = store.save(user_id, title, analysis)
    app.logger.info("Saved document %s for user %s", rec.id, user_id)
    return jsonify(rec.to_dict()), 201


@app.route("/api/documents/<doc_id>", methods=["GET", "PATCH", "DELETE"])
def api_document(doc_id):
    user_id = _user_id()
    if not user_id:
        return _error("X-User-Id header is required.", 401)

    if request.method == "DELETE":
        if not store.delete(user_id, doc_id):
            return _error("Document not found.", 404)
        return "", 204

    if request.method == "PATCH":
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _error("Request body must be a JSON object.", 400, "invalid_request")
        rec = store.rename(user_id, doc_id, str(body.get("title") or ""))
    else:
        rec = store.get(user_id, doc_id)
    if rec is None:
        return _error("Document not found.", 404)
    return jsonify(rec.to_dict())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run(debug=True, port=5050)
