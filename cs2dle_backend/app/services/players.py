"""Read models built from player records for the admin dashboard.

Player documents carry reward entries (``dailyCase`` and ``weeklyPrize``)
that reference precases and weekly prizes by id. The functions here attach
a short summary of the referenced item to each entry and derive the win
rate shown next to a player's statistics.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

DEFAULT_AVATAR = "/avatars/default.png"
PLACEHOLDER_IMAGE = "/placeholder.jpg"

# Fields returned for a player in the user listings.
PROFILE_FIELDS = (
    "email",
    "name",
    "username",
    "image",
    "steamId",
    "tradeLink",
    "cryptoAddresses",
)
STAT_FIELDS = ("gamesPlayed", "bestStreak", "currentStreak", "score", "ticket")


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _named(value: Any, *keys: str) -> Optional[Dict[str, Any]]:
    if not isinstance(value, dict):
        return None
    return _compact({k: value.get(k) for k in keys})


def win_rate(player: Mapping[str, Any]) -> float:
    """Tickets per game played, rounded half up to two decimals."""
    games = player.get("gamesPlayed") or 0
    tickets = player.get("ticket") or 0
    if games <= 0:
        return 0.0
    return math.floor(tickets / games * 100 + 0.5) / 100


def precase_summary(precase: Mapping[str, Any]) -> Dict[str, Any]:
    return _compact(
        {
            "name": precase.get("name"),
            "image": precase.get("image"),
            "weapon": _named(precase.get("weapon"), "name"),
            "category": _named(precase.get("category"), "name"),
            "rarity": _named(precase.get("rarity"), "name", "color"),
            "price": precase.get("price"),
        }
    )


def weekly_prize_summary(prize: Mapping[str, Any]) -> Dict[str, Any]:
    return _compact(
        {
            "name": prize.get("name"),
            "image": prize.get("image"),
            "rarity": _named(prize.get("rarity"), "name", "color"),
            "price": prize.get("price"),
        }
    )


def reward_ids(players: Iterable[Mapping[str, Any]], field: str) -> List[str]:
    ids = []
    for player in players:
        for entry in player.get(field) or []:
            if isinstance(entry, dict) and entry.get("id"):
                ids.append(str(entry["id"]))
    return ids


def populate_daily_cases(entries: Iterable[Any], precases: Mapping[str, Mapping[str, Any]]) -> List[Any]:
    out = []
    for entry in entries or []:
        precase = precases.get(entry.get("id")) if isinstance(entry, dict) else None
        out.append({**entry, "precase": precase_summary(precase)} if precase else entry)
    return out


def populate_weekly_prizes(entries: Iterable[Any], prizes: Mapping[str, Mapping[str, Any]]) -> List[Any]:
    out = []
    for entry in entries or []:
        prize = prizes.get(entry.get("id")) if isinstance(entry, dict) else None
        out.append({**entry, "weeklyPrize": weekly_prize_summary(prize)} if prize else entry)
    return out


def player_details(
    player: Mapping[str, Any],
    precases: Mapping[str, Mapping[str, Any]],
    prizes: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Any]:
    details: Dict[str, Any] = {"_id": player["_id"]}
    details.update({k: player.get(k) for k in PROFILE_FIELDS})
    details["dailyCase"] = populate_daily_cases(player.get("dailyCase"), precases)
    details["weeklyPrize"] = populate_weekly_prizes(player.get("weeklyPrize"), prizes)
    details.update({k: player.get(k) for k in STAT_FIELDS})
    details.update(
        {
            "createdAt": player.get("createdAt"),
            "updatedAt": player.get("updatedAt"),
            "role": player.get("role"),
            "isGuest": player.get("isGuest"),
            "winRate": win_rate(player),
        }
    )
    return _compact(details)


def performance_row(player: Mapping[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {"_id": player["_id"]}
    row.update({k: player.get(k) for k in ("email", "name", "username", "image", "steamId")})
    row.update({k: player.get(k) for k in ("ticket", "bestStreak", "currentStreak", "gamesPlayed", "score")})
    row["winRate"] = win_rate(player)
    return _compact(row)


def _top_prize(entries: List[Any], precases: Mapping[str, Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    prizes = [
        {"entry": e, "precase": precases.get(e.get("id"))} for e in entries if isinstance(e, dict)
    ]
    if not prizes:
        return None
    best = prizes[0]
    for prize in prizes:
        price = (prize["precase"] or {}).get("price")
        if not isinstance(price, (int, float)):
            continue
        if price > ((best["precase"] or {}).get("price") or 0):
            best = prize
    precase = best["precase"]
    if not precase:
        return None
    return {"name": precase.get("name") or "Unknown Skin", "image": precase.get("image") or PLACEHOLDER_IMAGE}


def leaderboard_row(player: Mapping[str, Any], position: int, precases: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
    return {
        "position": position,
        "user": {
            "_id": player["_id"],
            "username": player.get("name") or "Anonymous",
            "avatar": player.get("image") or DEFAULT_AVATAR,
        },
        "bestStreak": player.get("bestStreak") or 0,
        "currentStreak": player.get("currentStreak") or 0,
        "guesses": player.get("gamesPlayed") or 0,
        "tickets": player.get("ticket") or 0,
        "prize": _top_prize(player.get("dailyCase") or [], precases),
    }
