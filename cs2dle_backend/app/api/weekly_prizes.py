from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..db.players import SQLitePlayerStore
from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse
from ..schemas.rewards import WeeklyPrizeAwardBody, WeeklyPrizeClaimBody, WeeklyPrizeCreateBody, WeeklyPrizeUpdateBody
from ..services.players import populate_weekly_prizes, reward_ids
from .deps import get_content_store, get_current_user, get_player_store, require_valid_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cs2dle/rewards/weekly-prize", tags=["weekly-prize"])

OVERLAP_MESSAGE = "A prize already exists for this week or overlapping period"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
def list_weekly_prizes(
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    return {"weeklyPrizes": [rec.document() for rec in store.list_weekly_prizes()]}


@router.post("", status_code=201)
def create_weekly_prize(
    body: WeeklyPrizeCreateBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    if store.weekly_prize_overlaps(body.weekStartDate, body.weekEndDate):
        raise HTTPException(status_code=400, detail=OVERLAP_MESSAGE)

    doc = body.model_dump(exclude_none=True)
    doc.update(status="active", createdBy=user.email, lastModifiedBy=user.email)
    try:
        rec = store.create_weekly_prize(doc)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=409, detail="A weekly prize already exists for this skin")
    logger.info("Weekly prize %s (%s) for %s created by %s", rec.doc_id, body.skinId, body.weekStartDate, user.email)
    return {"message": "Weekly prize created successfully", "weeklyPrize": rec.document()}


@router.patch("")
def update_weekly_prize(
    body: WeeklyPrizeUpdateBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    fields = body.model_dump(exclude_unset=True, exclude_none=True, exclude={"skinId"})

    if "weekStartDate" in fields or "weekEndDate" in fields:
        current = store.find_weekly_prize(body.skinId)
        if current is None:
            raise HTTPException(status_code=404, detail="Weekly prize not found")
        doc = current.document()
        start = fields.get("weekStartDate", doc.get("weekStartDate", ""))
        end = fields.get("weekEndDate", doc.get("weekEndDate", ""))
        if end < start:
            raise HTTPException(status_code=400, detail="weekEndDate must not be before weekStartDate")
        if store.weekly_prize_overlaps(start, end, exclude_skin_id=body.skinId):
            raise HTTPException(status_code=400, detail=OVERLAP_MESSAGE)

    rec = store.update_weekly_prize(body.skinId, fields, author=user.email)
    if rec is None:
        raise HTTPException(status_code=404, detail="Weekly prize not found")
    logger.info("Weekly prize %s updated by %s", body.skinId, user.email)
    return {"message": "Weekly prize updated successfully"}


@router.delete("")
def delete_weekly_prize(
    skin_id: Optional[str] = Query(default=None, alias="skinId"),
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    if not skin_id:
        raise HTTPException(status_code=400, detail="skinId is required")
    if not store.delete_weekly_prize(skin_id):
        raise HTTPException(status_code=404, detail="Weekly prize not found")
    logger.info("Weekly prize %s deleted by %s", skin_id, user.email)
    return {"message": "Weekly prize deleted successfully"}


@router.get("/users")
def winners(
    players: SQLitePlayerStore = Depends(get_player_store),
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    docs = [rec.document() for rec in players.players_with_rewards("weeklyPrize")]
    prizes = store.weekly_prizes_by_ids(reward_ids(docs, "weeklyPrize"))
    data = [{**doc, "weeklyPrize": populate_weekly_prizes(doc["weeklyPrize"], prizes)} for doc in docs]
    return {"success": True, "data": data}


@router.post("/users")
def award_weekly_prize(
    body: WeeklyPrizeAwardBody,
    players: SQLitePlayerStore = Depends(get_player_store),
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(body.userId, "user ID")
    require_valid_id(body.weeklyPrizeId, "weekly prize ID")
    if store.get_weekly_prize(body.weeklyPrizeId) is None:
        raise HTTPException(status_code=404, detail="Weekly prize not found")

    entry: Dict[str, Any] = {
        "id": body.weeklyPrizeId,
        "active": False,
        "weekStartDate": body.weekStartDate,
        "weekEndDate": body.weekEndDate,
        "claimData": _now_iso(),
    }

    def add_prize(doc: Dict[str, Any]) -> None:
        awarded = doc.setdefault("weeklyPrize", [])
        if any(isinstance(e, dict) and e.get("id") == body.weeklyPrizeId for e in awarded):
            raise HTTPException(status_code=400, detail="User already has this weekly prize")
        awarded.append(entry)

    if players.update_player(body.userId, add_prize) is None:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Weekly prize %s awarded to %s by %s", body.weeklyPrizeId, body.userId, user.email)
    return {"success": True, "message": "Weekly prize awarded successfully", "weeklyPrize": entry}


@router.patch("/users")
def set_weekly_prize_status(
    body: WeeklyPrizeClaimBody,
    players: SQLitePlayerStore = Depends(get_player_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(body.userId, "user ID")

    def mark(doc: Dict[str, Any]) -> None:
        for entry in doc.get("weeklyPrize") or []:
            if isinstance(entry, dict) and entry.get("id") == body.weeklyPrizeId:
                entry["active"] = body.active
                entry["receivedData"] = _now_iso()
                return
        raise HTTPException(status_code=404, detail="User or weekly prize not found")

    if players.update_player(body.userId, mark) is None:
        raise HTTPException(status_code=404, detail="User or weekly prize not found")
    logger.info("Weekly prize %s for %s set active=%s by %s", body.weeklyPrizeId, body.userId, body.active, user.email)
    return {"success": True, "message": "Weekly prize status updated successfully"}
