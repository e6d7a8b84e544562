from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ..db.players import SQLitePlayerStore
from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse
from ..services.players import performance_row, player_details, reward_ids
from .deps import PageWindow, get_content_store, get_current_user, get_player_store, page_window, require_valid_id

router = APIRouter(prefix="/cs2dle/users", tags=["users"])


@router.get("/all")
def all_users(
    window: PageWindow = Depends(page_window),
    players: SQLitePlayerStore = Depends(get_player_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    total = players.count_players()
    docs = [rec.document() for rec in players.list_players(window.offset, window.limit)]
    return {"success": True, "data": docs, "pagination": window.meta(total)}


@router.get("/details")
def users_with_details(
    include_guests: bool = Query(default=False, alias="includeGuests"),
    window: PageWindow = Depends(page_window),
    players: SQLitePlayerStore = Depends(get_player_store),
    content: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    total = players.count_players(include_guests=include_guests)
    docs = [rec.document() for rec in players.list_players(window.offset, window.limit, include_guests=include_guests)]
    precases = content.precases_by_ids(reward_ids(docs, "dailyCase"))
    prizes = content.weekly_prizes_by_ids(reward_ids(docs, "weeklyPrize"))
    return {
        "success": True,
        "data": [player_details(d, precases, prizes) for d in docs],
        "pagination": window.meta(total),
    }


@router.get("/top-by-performance")
def top_by_performance(
    limit: int = Query(default=10),
    players: SQLitePlayerStore = Depends(get_player_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    top = players.top_players(min(50, max(1, limit)))
    return {"success": True, "data": [performance_row(rec.document()) for rec in top]}


@router.get("/{user_id}")
def user_detail(
    user_id: str,
    players: SQLitePlayerStore = Depends(get_player_store),
    content: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    require_valid_id(user_id, "user ID")
    rec = players.get_player(user_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="User not found")
    doc = rec.document()
    precases = content.precases_by_ids(reward_ids([doc], "dailyCase"))
    prizes = content.weekly_prizes_by_ids(reward_ids([doc], "weeklyPrize"))
    return {"success": True, "data": player_details(doc, precases, prizes)}
