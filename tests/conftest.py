"""
Pytest fixtures for the T&C analyzer tests.
"""

from __future__ import annotations

import pytest

# Contains no catalog phrase and no category topic term
FILLER_SENTENCE = "Members read these pages carefully."


def filler(sentences: int) -> str:
    """Neutral text: five words per sentence."""
    return " ".join([FILLER_SENTENCE] * sentences)


RISKY_TEXT = (
    "We collect personal data and may sell your data to advertisers. "
    "Information is shared with third parties for marketing purposes. "
    "The service is provided as is and we are not liable for any damages. "
    "We may terminate your account without notice at our discretion. "
    "All disputes are settled by binding arbitration and you waive your right to a jury trial. "
    "We may modify these terms at any time."
)


@pytest.fixture
def neutral_text():
    return filler(20)


@pytest.fixture
def risky_text():
    return RISKY_TEXT


@pytest.fixture
def store(tmp_path):
    from storage import DocumentStore

    return DocumentStore(str(tmp_path / "documents.json"))


@pytest.fixture
def client(store, monkeypatch):
    """Flask test client with a temporary document store and the LLM switched off."""
    import app as app_module
    import llm

    monkeypatch.setattr(llm, "OLLAMA_ENABLED", False)
    monkeypatch.setattr(app_module, "store", store)
    monkeypatch.setattr(app_module, "ollama_status", lambda: {"available": False, "model": "test"})
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()
