"""
Flask API tests: analysis, highlighting, exports and saved documents.
"""

from __future__ import annotations

import io

from conftest import RISKY_TEXT

USER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}


def _analyze(client, **body):
    body.setdefault("use_llm", False)
    return client.post("/api/analyze", json=body)


def _result_key(client, text=RISKY_TEXT):
    resp = _analyze(client, text=text)
    assert resp.status_code == 200
    return resp.headers["X-Result-Key"]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["status"] == "ok"
    assert data["llm"]["available"] is False


def test_analyze_json_text(client):
    resp = _analyze(client, text=RISKY_TEXT)
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["analysisMethod"] == "heuristic"
    assert data["originalText"] == RISKY_TEXT
    assert set(data["categories"]) == {"dataCollection", "liability", "termination", "userRights"}
    assert resp.headers["X-Result-Key"]


def test_analyze_defaults_to_heuristic_when_llm_disabled(client):
    resp = client.post("/api/analyze", json={"text": RISKY_TEXT})
    assert resp.get_json()["analysisMethod"] == "heuristic"


def test_analyze_raw_body(client):
    resp = client.post("/api/analyze", data=RISKY_TEXT, content_type="text/plain")
    assert resp.status_code == 200
    assert resp.get_json()["wordCount"] == len(RISKY_TEXT.split())


def test_analyze_rejects_short_text(client):
    resp = _analyze(client, text="too short")
    assert resp.status_code == 400
    assert resp.get_json()["type"] == "input_too_short"


def test_analyze_demo_is_high_risk(client):
    resp = _analyze(client, demo=True)
    assert resp.status_code == 200
    assert resp.get_json()["riskAssessment"]["level"] == "high"


def test_analyze_text_file_upload(client):
    data = {"file": (io.BytesIO(RISKY_TEXT.encode("utf-8")), "terms.txt"), "use_llm": "false"}
    resp = client.post("/api/analyze", data=data, content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.get_json()["originalText"] == RISKY_TEXT


def test_analyze_image_upload_is_unavailable(client):
    data = {"file": (io.BytesIO(b"\x89PNG\r\n"), "scan.png")}
    resp = client.post("/api/analyze", data=data, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["type"] == "feature_unavailable"


def test_analyze_unsupported_upload(client):
    data = {"file": (io.BytesIO(b"MZ"), "setup.exe")}
    resp = client.post("/api/analyze", data=data, content_type="multipart/form-data")
    assert resp.status_code == 415
    assert resp.get_json()["type"] == "unsupported_type"


def test_analyze_bad_url(client):
    resp = _analyze(client, url="ftp://example.com/terms")
    assert resp.status_code == 400
    assert resp.get_json()["type"] == "fetch_error"


def test_highlighted_view(client):
    key = _result_key(client)
    resp = client.get(f"/api/results/{key}/highlighted")
    assert resp.status_code == 200
    assert resp.mimetype == "text/html"
    assert b"<mark" in resp.data


def test_highlighted_unknown_key(client):
    assert client.get("/api/results/nope/highlighted").status_code == 404


def test_exports(client):
    key = _result_key(client)

    csv_resp = client.get(f"/export/csv?key={key}")
    assert csv_resp.status_code == 200
    assert csv_resp.data.startswith(b"\xef\xbb\xbf")
    assert b"CATEGORIES" in csv_resp.data

    pdf_resp = client.get(f"/export/pdf?key={key}")
    assert pdf_resp.status_code == 200
    assert pdf_resp.data.startswith(b"%PDF")

    word_resp = client.get(f"/export/word?key={key}")
    assert word_resp.status_code == 200
    assert word_resp.data.startswith(b"PK")


def test_export_errors(client):
    assert client.get("/export/xlsx?key=x").status_code == 404
    assert client.get("/export/csv?key=missing").status_code == 404


def test_documents_require_user_header(client):
    assert client.get("/api/documents").status_code == 401
    assert client.delete("/api/documents/doc_x").status_code == 401


def test_document_lifecycle(client):
    key = _result_key(client)
    resp = client.post("/api/documents", json={"key": key, "title": "Acme terms"}, headers=USER)
    assert resp.status_code == 201
    saved = resp.get_json()
    doc_id = saved["id"]
    assert saved["title"] == "Acme terms"
    assert saved["riskLevel"] == saved["analysis"]["riskAssessment"]["level"]

    listing = client.get("/api/documents", headers=USER).get_json()
    assert [d["id"] for d in listing] == [doc_id]
    assert "analysis" not in listing[0]

    resp = client.patch(f"/api/documents/{doc_id}", json={"title": "Renamed"}, headers=USER)
    assert resp.status_code == 200
    assert resp.get_json()["title"] == "Renamed"

    assert client.get(f"/api/documents/{doc_id}", headers=OTHER).status_code == 404
    assert client.delete(f"/api/documents/{doc_id}", headers=OTHER).status_code == 404
    assert client.get("/api/documents", headers=OTHER).get_json() == []

    assert client.delete(f"/api/documents/{doc_id}", headers=USER).status_code == 204
    assert client.get(f"/api/documents/{doc_id}", headers=USER).status_code == 404


def test_save_document_from_analysis_payload(client):
    analysis = _analyze(client, text=RISKY_TEXT).get_json()
    resp = client.post("/api/documents", json={"analysis": analysis}, headers=USER)
    assert resp.status_code == 201
    assert resp.get_json()["title"] == "Untitled document"
    assert resp.get_json()["analysis"] == analysis


def test_save_document_requires_key_or_analysis(client):
    assert client.post("/api/documents", json={}, headers=USER).status_code == 400
    assert client.post("/api/documents", json={"key": "missing"}, headers=USER).status_code == 404


def test_analyze_rejects_non_object_json(client):
    resp = client.post("/api/analyze", json=["a", "b"])
    assert resp.status_code == 400
    assert resp.get_json()["type"] == "invalid_request"


def test_analyze_rejects_non_string_text(client):
    resp = _analyze(client, text=12345)
    assert resp.status_code == 400
    assert resp.get_json()["type"] == "invalid_request"


def test_analyze_rejects_non_string_url(client):
    resp = _analyze(client, url=["https://example.com"])
    assert resp.status_code == 400
    assert resp.get_json()["type"] == "fetch_error"


def test_save_document_rejects_malformed_payloads(client):
    analysis = _analyze(client, text=RISKY_TEXT).get_json()
    analysis["categories"] = ["liability"]
    resp = client.post("/api/documents", json={"analysis": analysis}, headers=USER)
    assert resp.status_code == 400

    assert client.post("/api/documents", json=["x"], headers=USER).status_code == 400
    assert client.post("/api/documents", json={"key": ["x"]}, headers=USER).status_code == 400


def test_rename_rejects_non_object_body(client):
    key = _result_key(client)
    doc_id = client.post("/api/documents", json={"key": key}, headers=USER).get_json()["id"]
    resp = client.patch(f"/api/documents/{doc_id}", json=["Renamed"], headers=USER)
    assert resp.status_code == 400
    assert client.get(f"/api/documents/{doc_id}", headers=USER).get_json()["title"] == "Pasted text"
