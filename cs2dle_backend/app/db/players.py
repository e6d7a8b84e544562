from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from .models import DocumentRecord
from .sqlite import _dump, _now_iso

_COLUMNS = "doc_id, created_at, updated_at, doc_json"

# Game statistics live in the document; missing values count as zero.
_SCORE = "COALESCE(json_extract(doc_json, '$.score'), 0)"
_GAMES = "COALESCE(json_extract(doc_json, '$.gamesPlayed'), 0)"
_TICKETS = "COALESCE(json_extract(doc_json, '$.ticket'), 0)"
_BEST_STREAK = "COALESCE(json_extract(doc_json, '$.bestStreak'), 0)"
_CURRENT_STREAK = "COALESCE(json_extract(doc_json, '$.currentStreak'), 0)"
_WIN_RATE = f"ROUND(CASE WHEN {_GAMES} > 0 THEN CAST({_TICKETS} AS REAL) / {_GAMES} ELSE 0 END, 2)"


class SQLitePlayerStore:
    """Player accounts of the public game site.

    The game site writes these records; the admin API reads them and only
    changes the reward entries (``dailyCase`` / ``weeklyPrize``) they carry.
    """

    def __init__(self, db_path: Path, busy_timeout: float = 30.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init()

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._conn() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init(self) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS players (
                  doc_id TEXT PRIMARY KEY,
                  email TEXT NOT NULL,
                  role TEXT,
                  is_guest INTEGER NOT NULL DEFAULT 0,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  doc_json TEXT NOT NULL
                )
                """
            )

    def insert_player(self, doc: Dict[str, Any], created_at: Optional[str] = None) -> DocumentRecord:
        now = _now_iso()
        created_at = created_at or now
        doc_id = str(uuid.uuid4())
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO players(doc_id, email, role, is_guest, created_at, updated_at, doc_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (doc_id, doc["email"], doc.get("role"), int(bool(doc.get("isGuest"))), created_at, now, _dump(doc)),
            )
        return DocumentRecord(doc_id=doc_id, created_at=created_at, updated_at=now, doc_json=_dump(doc))

    def get_player(self, player_id: str) -> Optional[DocumentRecord]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM players WHERE doc_id = ?", (player_id,)).fetchone()
            if row is None:
                return None
            return DocumentRecord(**dict(row))

    def count_players(self, include_guests: bool = True) -> int:
        where = "" if include_guests else "WHERE is_guest = 0"
        with self._conn() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS n FROM players {where}").fetchone()
            return int(row["n"])

    def list_players(self, offset: int, limit: int, include_guests: bool = True) -> List[DocumentRecord]:
        """Newest accounts first."""
        where = "" if include_guests else "WHERE is_guest = 0"
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM players {where} ORDER BY created_at DESC, doc_id DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
            return [DocumentRecord(**dict(r)) for r in rows]

    def top_players(self, limit: int) -> List[DocumentRecord]:
        """Non-guest players by score, then win rate, then games played."""
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM players WHERE is_guest = 0
                ORDER BY {_SCORE} DESC, {_WIN_RATE} DESC, {_GAMES} DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
            return [DocumentRecord(**dict(r)) for r in rows]

    def count_ranked_players(self) -> int:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM players WHERE is_guest = 0 AND (role IS NULL OR role != 'admin')"
            ).fetchone()
            return int(row["n"])

    def ranked_players(self, offset: int, limit: int) -> List[DocumentRecord]:
        """Leaderboard order: best streak, then games played, then current streak."""
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM players
                WHERE is_guest = 0 AND (role IS NULL OR role != 'admin')
                ORDER BY {_BEST_STREAK} DESC, {_GAMES} DESC, {_CURRENT_STREAK} DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()
            return [DocumentRecord(**dict(r)) for r in rows]

    def players_with_rewards(self, field: str) -> List[DocumentRecord]:
        """Players whose ``field`` array (dailyCase or weeklyPrize) is non-empty, newest first."""
        if field not in ("dailyCase", "weeklyPrize"):
            raise ValueError(f"Unknown reward field: {field}")
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM players
                WHERE json_type(doc_json, '$.{field}') = 'array' AND json_array_length(doc_json, '$.{field}') > 0
                ORDER BY created_at DESC
                """
            ).fetchall()
            return [DocumentRecord(**dict(r)) for r in rows]

    def update_player(self, player_id: str, change: Callable[[Dict[str, Any]], None]) -> Optional[DocumentRecord]:
        """Apply ``change`` to the player's document under the write lock.

        Returns None if the player does not exist. If ``change`` raises,
        nothing is written and the exception propagates.
        """
        with self.transaction() as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM players WHERE doc_id = ?", (player_id,)).fetchone()
            if row is None:
                return None
            doc = DocumentRecord(**dict(row)).document()
            change(doc)
            conn.execute(
                "UPDATE players SET updated_at = ?, doc_json = ? WHERE doc_id = ?",
                (_now_iso(), _dump(doc), player_id),
            )
        return self.get_player(player_id)
