from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse
from ..schemas.games import AnswerCreateBody, AnswerUpdateBody
from .deps import get_content_store, get_current_user, require_valid_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cs2dle/games/answers", tags=["answers"])


def _only_game(doc: Dict[str, Any], game_type: str) -> Dict[str, Any]:
    answers = doc.get("answers") or {}
    doc["answers"] = {game_type: answers[game_type]} if game_type in answers else {}
    return doc


@router.get("")
def list_answers(
    game_type: Optional[str] = Query(default=None, alias="gameType"),
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    docs = [rec.document() for rec in store.list_answers(game_type)]
    if game_type:
        docs = [_only_game(d, game_type) for d in docs]
    return {"answers": docs}


@router.post("", status_code=201)
def create_answer(
    body: AnswerCreateBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    rec = store.create_answer(body.model_dump(), author=user.email)
    logger.info("Game answer %s for %s created by %s", rec.doc_id, body.date, user.email)
    return {"answer": rec.document()}


@router.get("/{answer_id}")
def get_answer(
    answer_id: str,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(answer_id, "answer ID")
    rec = store.get_answer(answer_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Answer not found")
    return {"answer": rec.document()}


@router.put("/{answer_id}")
def update_answer(
    answer_id: str,
    body: AnswerUpdateBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(answer_id, "answer ID")
    fields = body.model_dump(exclude_unset=True)
    for key in ("_id", "createdBy", "createdAt"):
        fields.pop(key, None)

    if fields.get("date") and store.answer_date_taken(fields["date"], exclude_id=answer_id):
        raise HTTPException(status_code=400, detail="An answer already exists for this date")

    rec = store.update_answer(answer_id, fields, author=user.email)
    if rec is None:
        raise HTTPException(status_code=404, detail="Answer not found")
    logger.info("Game answer %s updated by %s", answer_id, user.email)
    return {"answer": rec.document()}


@router.delete("/{answer_id}")
def delete_answer(
    answer_id: str,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(answer_id, "answer ID")
    if not store.delete_answer(answer_id):
        raise HTTPException(status_code=404, detail="Answer not found")
    logger.info("Game answer %s deleted by %s", answer_id, user.email)
    return {"message": "Answer deleted successfully"}
