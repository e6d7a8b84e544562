from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _check_date(v: str) -> str:
    try:
        datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("Invalid date format")
    return v


class WordCreateBody(BaseModel):
    word: str


class AnswerCreateBody(BaseModel):
    """A daily answer document; fields beyond these are stored as sent."""

    model_config = ConfigDict(extra="allow")

    date: str
    status: Optional[str] = None
    answers: Dict[str, Dict[str, Any]] = {}

    @field_validator("date")
    @classmethod
    def valid_date(cls, v: str) -> str:
        return _check_date(v)


class AnswerUpdateBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    date: Optional[str] = None
    status: Optional[str] = None
    answers: Optional[Dict[str, Dict[str, Any]]] = None

    @field_validator("date")
    @classmethod
    def valid_date(cls, v: Optional[str]) -> str:
        # Runs only when the client sends the key; an explicit null is rejected.
        if v is None:
            raise ValueError("date cannot be null")
        return _check_date(v)
