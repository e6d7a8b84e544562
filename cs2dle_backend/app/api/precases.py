from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..db.players import SQLitePlayerStore
from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse
from ..schemas.precases import PrecaseCreateBody, PrecaseEditBody, PrecaseToggleBody
from ..schemas.rewards import DailyCaseActiveBody
from ..services.players import populate_daily_cases, reward_ids
from .deps import get_content_store, get_current_user, get_player_store, require_valid_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cs2dle/rewards/daily-case", tags=["daily-case"])


def _fallback_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}"


def _build_precase(body: PrecaseCreateBody, author: str) -> Dict[str, Any]:
    return {
        "skinId": body.skinId or _fallback_id("skin"),
        "name": body.name,
        "description": body.description,
        "image": body.image,
        "weapon": {
            "id": body.weapon.id or _fallback_id("weapon"),
            "weapon_id": body.weapon.weapon_id,
            "name": body.weapon.name,
        },
        "category": {"id": body.category.id or _fallback_id("category"), "name": body.category.name},
        "pattern": {"id": body.pattern.id or _fallback_id("pattern"), "name": body.pattern.name},
        "min_float": body.min_float,
        "max_float": body.max_float,
        "rarity": {
            "id": body.rarity.id or _fallback_id("rarity"),
            "name": body.rarity.name,
            "color": body.rarity.color,
        },
        "paint_index": body.paint_index,
        "probability": body.probability,
        "price": body.price,
        "status": body.status,
        "stattrak": body.stattrak,
        "souvenir": body.souvenir,
        "createdBy": author,
        "lastModifiedBy": author,
        "isManual": True,
    }


@router.get("/all")
def all_precases(
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    precases = [rec.document() for rec in store.list_precases()]
    if not precases:
        raise HTTPException(status_code=404, detail="No pre-cases available")
    return {"success": True, "preCase": precases}


@router.post("/create")
def create_precase(
    body: PrecaseCreateBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    rec = store.create_precase(_build_precase(body, user.email))
    logger.info("Precase %s (%s) created by %s", rec.doc_id, body.name, user.email)
    return {"success": True, "message": "Precase item created successfully", "precase": rec.document()}


@router.api_route("/edit", methods=["PUT", "PATCH"])
def edit_precase(
    body: PrecaseEditBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(body.id)
    fields = body.model_dump(exclude_unset=True, exclude={"id"})
    rec = store.update_precase(body.id, fields, author=user.email)
    if rec is None:
        raise HTTPException(status_code=404, detail="Precase not found")
    logger.info("Precase %s updated by %s", body.id, user.email)
    return {"success": True, "message": "Precase updated successfully", "precase": rec.document()}


@router.api_route("/toggle-status", methods=["POST", "PATCH"])
def toggle_status(
    body: PrecaseToggleBody,
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
):
    require_valid_id(body.id)
    rec = store.get_precase(body.id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Precase not found")

    current = rec.document().get("status")
    if current == body.status:
        return JSONResponse(
            status_code=400,
            content={"error": f"Precase is already {body.status}", "currentStatus": current},
        )

    updated = store.update_precase(body.id, {"status": body.status}, author=user.email)
    if updated is None:
        raise HTTPException(status_code=404, detail="Precase not found")
    logger.info("Precase %s set %s by %s", body.id, body.status, user.email)
    return {"success": True, "message": f"Precase status updated to {body.status}", "precase": updated.document()}


_WINNER_FIELDS = ("email", "name", "username", "image", "steamId", "tradeLink", "cryptoAddresses")


@router.get("/users")
def winners(
    players: SQLitePlayerStore = Depends(get_player_store),
    store: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    docs = [rec.document() for rec in players.players_with_rewards("dailyCase")]
    precases = store.precases_by_ids(reward_ids(docs, "dailyCase"))
    data = []
    for doc in docs:
        row = {"_id": doc["_id"]}
        row.update({k: doc[k] for k in _WINNER_FIELDS if k in doc})
        row["dailyCase"] = populate_daily_cases(doc["dailyCase"], precases)
        data.append(row)
    return {"success": True, "data": data}


@router.api_route("/active", methods=["POST", "PATCH"])
def set_prize_status(
    body: DailyCaseActiveBody,
    players: SQLitePlayerStore = Depends(get_player_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    """Mark a player's daily-case prize as handed out (or revert it)."""
    require_valid_id(body.userId, "user ID")

    def mark(doc: Dict[str, Any]) -> None:
        for entry in doc.get("dailyCase") or []:
            if isinstance(entry, dict) and entry.get("id") == body.prizeId:
                if not entry.get("active") and not body.newStatus:
                    raise HTTPException(status_code=400, detail="Prize is already inactive")
                entry["active"] = body.newStatus
                entry["receivedData"] = datetime.now(timezone.utc).isoformat()
                return
        raise HTTPException(status_code=404, detail="Prize not found for this user")

    rec = players.update_player(body.userId, mark)
    if rec is None:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("Daily-case prize %s for %s set active=%s by %s", body.prizeId, body.userId, body.newStatus, user.email)
    return {"message": "Status updated successfully", "user": rec.document()}
