"""
storage.py — Saved analyses, keyed by document id.

Records live in memory and, when DOCUMENT_STORE_PATH is set, are mirrored to
a JSON file after every change so they survive a restart.  A user only ever
sees their own records.
"""

import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from models import AnalysisResult

logger = logging.getLogger(__name__)

DOCUMENT_STORE_PATH = os.environ.get("DOCUMENT_STORE_PATH", "")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class DocumentRecord:
    id:         str
    user_id:    str
    title:      str
    risk_level: str
    score:      int
    analysis:   AnalysisResult
    created_at: str
    updated_at: str

    def summary(self) -> dict:
        return {
            "id":        self.id,
            "title":     self.title,
            "riskLevel": self.risk_level,
            "score":     self.score,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def to_dict(self) -> dict:
        d = self.summary()
        d["userId"] = self.user_id
        d["analysis"] = self.analysis.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "DocumentRecord":
        return cls(
            id=d["id"],
            user_id=d["userId"],
            title=d["title"],
            risk_level=d["riskLevel"],
            score=d["score"],
            analysis=AnalysisResult.from_dict(d["analysis"]),
            created_at=d["createdAt"],
            updated_at=d["updatedAt"],
        )


class DocumentStore:
    def __init__(self, path: str = DOCUMENT_STORE_PATH):
        self.path = path
        self._records: Dict[str, DocumentRecord] = {}
        if path and os.path.exists(path):
            self._load()

    # ── persistence ─────────────────────────────────────────────────────────
    def _load(self):
        with open(self.path, encoding="utf-8") as f:
            for d in json.load(f):
                rec = DocumentRecord.from_dict(d)
                self._records[rec.id] = rec
        logger.info("Loaded %d saved documents from %s", len(self._records), self.path)

    def _flush(self):
        if not self.path:
            return
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in self._records.values()], f)
        os.replace(tmp, self.path)

    # ── operations ──────────────────────────────────────────────────────────
    def save(self, user_id: str, title: str, analysis: AnalysisResult) -> DocumentRecord:
        if not user_id:
            raise ValueError("user_id is required")
        now = _now()
        rec = DocumentRecord(
            id=f"doc_{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            title=(title or "").strip() or "Untitled document",
            risk_level=analysis.risk_level,
            score=analysis.risk_score,
            analysis=analysis,
            created_at=now,
            updated_at=now,
        )
        self._records[rec.id] = rec
        self._flush()
        return rec

    def get(self, user_id: str, doc_id: str) -> Optional[DocumentRecord]:
        rec = self._records.get(doc_id)
        if rec is None or rec.user_id != user_id:
            return None
        return rec

    def list_for_user(self, user_id: str) -> List[DocumentRecord]:
        recs = [(r.created_at, i, r) for i, r in enumerate(self._records.values())
                if r.user_id == user_id]
        return [r for _, _, r in sorted(recs, key=lambda t: t[:2], reverse=True)]

    def rename(self, user_id: str, doc_id: str, title: str) -> Optional[DocumentRecord]:
        rec = self.get(user_id, doc_id)
        if rec is None:
            return None
        rec.title = (title or "").strip() or rec.title
        rec.updated_at = _now()
        self._flush()
        return rec

    def delete(self, user_id: str, doc_id: str) -> bool:
        if self.get(user_id, doc_id) is None:
            return False
        del self._records[doc_id]
        self._flush()
        return True
