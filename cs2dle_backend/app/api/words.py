from __future__ import annotations

import logging
import re
import sqlite3

from fastapi import APIRouter, Depends, HTTPException

from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse
from ..schemas.games import WordCreateBody
from .deps import get_content_store, get_current_user, require_valid_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cs2dle/games/words", tags=["words"])

WORD_RE = re.compile(r"^[A-Z]{5}$")


@router.get("")
def list_words(
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    return {"words": [w.to_dict() for w in store.list_words()]}


@router.post("", status_code=201)
def add_word(
    body: WordCreateBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    word = body.word.strip().upper()
    if not WORD_RE.match(word):
        raise HTTPException(status_code=400, detail="Word must be exactly 5 letters")

    if store.find_word(word) is not None:
        raise HTTPException(status_code=409, detail="Word already exists")
    try:
        rec = store.create_word(word, created_by=user.email or "unknown")
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail="Word already exists")

    logger.info("Wordle word %s added by %s", word, user.email)
    return {"message": "Word added successfully", "word": rec.to_dict()}


@router.delete("/{word_id}")
def delete_word(
    word_id: str,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(word_id, "word ID")
    rec = store.get_word(word_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Word not found")

    if store.word_in_active_answer(rec.word):
        raise HTTPException(
            status_code=409,
            detail="Cannot delete word that is being used in an active game answer",
        )

    store.delete_word(word_id)
    logger.info("Wordle word %s deleted by %s", rec.word, user.email)
    return {"message": "Word deleted successfully"}
