from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

ACTIVE_STATUS = "Active"


@dataclass(frozen=True)
class VerificationCodeRecord:
    email: str
    code: str
    type: str
    expires_at: str
    created_at: str

    def is_expired(self, now: datetime) -> bool:
        return now > datetime.fromisoformat(self.expires_at)


@dataclass(frozen=True)
class AdminRecord:
    admin_id: str
    name: str
    email: str
    status: str
    role: str
    created_at: str

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE_STATUS


@dataclass(frozen=True)
class WordRecord:
    word_id: str
    word: str
    created_at: str
    updated_at: str
    created_by: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.word_id,
            "word": self.word,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "createdBy": self.created_by,
        }


@dataclass(frozen=True)
class DocumentRecord:
    """A row whose body is a free-form JSON document (game answers, precases)."""

    doc_id: str
    created_at: str
    updated_at: str
    doc_json: str

    def document(self) -> Dict[str, Any]:
        try:
            doc = json.loads(self.doc_json or "{}")
        except json.JSONDecodeError:
            doc = {}
        if not isinstance(doc, dict):
            doc = {}
        doc["_id"] = self.doc_id
        doc["createdAt"] = self.created_at
        doc["updatedAt"] = self.updated_at
        return doc
