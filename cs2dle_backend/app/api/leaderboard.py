from __future__ import annotations

from fastapi import APIRouter, Depends

from ..db.players import SQLitePlayerStore
from ..db.sqlite import SQLiteContentStore
from ..schemas.auth import MeResponse
from ..services.players import leaderboard_row, reward_ids
from .deps import PageWindow, get_content_store, get_current_user, get_player_store, page_window

router = APIRouter(prefix="/cs2dle/leaderboard", tags=["leaderboard"])


@router.get("")
def leaderboard(
    window: PageWindow = Depends(page_window),
    players: SQLitePlayerStore = Depends(get_player_store),
    content: SQLiteContentStore = Depends(get_content_store),
    user: MeResponse = Depends(get_current_user),
) -> dict:
    """Ranked non-guest, non-admin players with their most valuable daily-case prize."""
    total = players.count_ranked_players()
    docs = [rec.document() for rec in players.ranked_players(window.offset, window.limit)]
    precases = content.precases_by_ids(reward_ids(docs, "dailyCase"))
    rows = [leaderboard_row(doc, window.offset + i + 1, precases) for i, doc in enumerate(docs)]
    return {"success": True, "data": rows, "pagination": window.meta(total)}
