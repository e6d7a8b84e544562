from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .models import DocumentRecord, WordRecord


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump(doc: Dict[str, Any]) -> str:
    body = {k: v for k, v in doc.items() if k not in ("_id", "createdAt", "updatedAt")}
    return json.dumps(body, ensure_ascii=False, default=str)


class SQLiteContentStore:
    """Game content and reward definitions managed from the dashboard."""

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

    def _init(self) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS wordle_words (
                  word_id TEXT PRIMARY KEY,
                  word TEXT UNIQUE NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  created_by TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS game_answers (
                  doc_id TEXT PRIMARY KEY,
                  date TEXT NOT NULL,
                  status TEXT,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  doc_json TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS precases (
                  doc_id TEXT PRIMARY KEY,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  doc_json TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS weekly_prizes (
                  doc_id TEXT PRIMARY KEY,
                  skin_id TEXT UNIQUE NOT NULL,
                  week_start TEXT NOT NULL,
                  week_end TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  doc_json TEXT NOT NULL
                )
                """
            )

    # -- wordle words -------------------------------------------------------

    def list_words(self) -> List[WordRecord]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM wordle_words ORDER BY word ASC").fetchall()
            return [WordRecord(**dict(r)) for r in rows]

    def get_word(self, word_id: str) -> Optional[WordRecord]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM wordle_words WHERE word_id = ?", (word_id,)).fetchone()
            if row is None:
                return None
            return WordRecord(**dict(row))

    def find_word(self, word: str) -> Optional[WordRecord]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM wordle_words WHERE word = ?", (word,)).fetchone()
            if row is None:
                return None
            return WordRecord(**dict(row))

    def create_word(self, word: str, created_by: Optional[str]) -> WordRecord:
        """Insert a word. Raises sqlite3.IntegrityError if it already exists."""
        now = _now_iso()
        rec = WordRecord(word_id=str(uuid.uuid4()), word=word, created_at=now, updated_at=now, created_by=created_by)
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO wordle_words(word_id, word, created_at, updated_at, created_by) VALUES (?, ?, ?, ?, ?)",
                (rec.word_id, rec.word, rec.created_at, rec.updated_at, rec.created_by),
            )
        return rec

    def delete_word(self, word_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM wordle_words WHERE word_id = ?", (word_id,))
            return cur.rowcount > 0

    def word_in_active_answer(self, word: str) -> bool:
        with self._conn() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM game_answers
                WHERE status = 'active' AND json_extract(doc_json, '$.answers.Wordle.word') = ?
                LIMIT 1
                """,
                (word,),
            ).fetchone()
            return row is not None

    # -- game answers -------------------------------------------------------

    def list_answers(self, game_type: Optional[str] = None, limit: int = 100) -> List[DocumentRecord]:
        with self._conn() as conn:
            if not game_type:
                rows = conn.execute(
                    "SELECT doc_id, created_at, updated_at, doc_json FROM game_answers ORDER BY date DESC LIMIT ?",
                    (limit,),
                ).fetchall()
            elif '"' in game_type:
                # Not expressible as a quoted JSON path label; no stored game uses one.
                return []
            else:
                rows = conn.execute(
                    """
                    SELECT doc_id, created_at, updated_at, doc_json FROM game_answers
                    WHERE json_type(doc_json, ?) IS NOT NULL
                    ORDER BY date DESC LIMIT ?
                    """,
                    (f'$.answers."{game_type}"', limit),
                ).fetchall()
        return [DocumentRecord(**dict(r)) for r in rows]

    def get_answer(self, doc_id: str) -> Optional[DocumentRecord]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT doc_id, created_at, updated_at, doc_json FROM game_answers WHERE doc_id = ?", (doc_id,)
            ).fetchone()
            if row is None:
                return None
            return DocumentRecord(**dict(row))

    def answer_date_taken(self, date: str, exclude_id: Optional[str] = None) -> bool:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT 1 FROM game_answers WHERE date = ? AND doc_id != ? LIMIT 1",
                (date, exclude_id or ""),
            ).fetchone()
            return row is not None

    def create_answer(self, doc: Dict[str, Any], author: str) -> DocumentRecord:
        now = _now_iso()
        body = dict(doc)
        body["createdBy"] = author
        body["lastModifiedBy"] = author
        doc_id = str(uuid.uuid4())
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO game_answers(doc_id, date, status, created_at, updated_at, doc_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (doc_id, body["date"], body.get("status"), now, now, _dump(body)),
            )
        return DocumentRecord(doc_id=doc_id, created_at=now, updated_at=now, doc_json=_dump(body))

    def update_answer(self, doc_id: str, fields: Dict[str, Any], author: str) -> Optional[DocumentRecord]:
        rec = self.get_answer(doc_id)
        if rec is None:
            return None
        body = rec.document()
        body.update(fields)
        body["lastModifiedBy"] = author
        now = _now_iso()
        with self._conn() as conn:
            conn.execute(
                "UPDATE game_answers SET date = ?, status = ?, updated_at = ?, doc_json = ? WHERE doc_id = ?",
                (body["date"], body.get("status"), now, _dump(body), doc_id),
            )
        return self.get_answer(doc_id)

    def delete_answer(self, doc_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM game_answers WHERE doc_id = ?", (doc_id,))
            return cur.rowcount > 0

    # -- daily-case precases ------------------------------------------------

    def list_precases(self) -> List[DocumentRecord]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM precases ORDER BY created_at ASC").fetchall()
            return [DocumentRecord(**dict(r)) for r in rows]

    def get_precase(self, doc_id: str) -> Optional[DocumentRecord]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM precases WHERE doc_id = ?", (doc_id,)).fetchone()
            if row is None:
                return None
            return DocumentRecord(**dict(row))

    def create_precase(self, doc: Dict[str, Any]) -> DocumentRecord:
        now = _now_iso()
        doc_id = str(uuid.uuid4())
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO precases(doc_id, created_at, updated_at, doc_json) VALUES (?, ?, ?, ?)",
                (doc_id, now, now, _dump(doc)),
            )
        return DocumentRecord(doc_id=doc_id, created_at=now, updated_at=now, doc_json=_dump(doc))

    def update_precase(self, doc_id: str, fields: Dict[str, Any], author: str) -> Optional[DocumentRecord]:
        rec = self.get_precase(doc_id)
        if rec is None:
            return None
        body = rec.document()
        body.update(fields)
        body["lastModifiedBy"] = author
        with self._conn() as conn:
            conn.execute(
                "UPDATE precases SET updated_at = ?, doc_json = ? WHERE doc_id = ?",
                (_now_iso(), _dump(body), doc_id),
            )
        return self.get_precase(doc_id)

    def precases_by_ids(self, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        return self._documents_by_ids("precases", ids)

    # -- weekly prizes ------------------------------------------------------

    def list_weekly_prizes(self) -> List[DocumentRecord]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT doc_id, created_at, updated_at, doc_json FROM weekly_prizes ORDER BY week_start DESC"
            ).fetchall()
            return [DocumentRecord(**dict(r)) for r in rows]

    def get_weekly_prize(self, doc_id: str) -> Optional[DocumentRecord]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT doc_id, created_at, updated_at, doc_json FROM weekly_prizes WHERE doc_id = ?", (doc_id,)
            ).fetchone()
            if row is None:
                return None
            return DocumentRecord(**dict(row))

    def find_weekly_prize(self, skin_id: str) -> Optional[DocumentRecord]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT doc_id, created_at, updated_at, doc_json FROM weekly_prizes WHERE skin_id = ?", (skin_id,)
            ).fetchone()
            if row is None:
                return None
            return DocumentRecord(**dict(row))

    def weekly_prize_overlaps(self, week_start: str, week_end: str, exclude_skin_id: Optional[str] = None) -> bool:
        """True if another prize's week range intersects [week_start, week_end] (inclusive)."""
        with self._conn() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM weekly_prizes
                WHERE week_start <= ? AND week_end >= ? AND skin_id != ?
                LIMIT 1
                """,
                (week_end, week_start, exclude_skin_id or ""),
            ).fetchone()
            return row is not None

    def create_weekly_prize(self, doc: Dict[str, Any]) -> DocumentRecord:
        """Insert a prize. Raises sqlite3.IntegrityError if its skinId is already a prize."""
        now = _now_iso()
        doc_id = str(uuid.uuid4())
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO weekly_prizes(doc_id, skin_id, week_start, week_end, created_at, updated_at, doc_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (doc_id, doc["skinId"], doc["weekStartDate"], doc["weekEndDate"], now, now, _dump(doc)),
            )
        return DocumentRecord(doc_id=doc_id, created_at=now, updated_at=now, doc_json=_dump(doc))

    def update_weekly_prize(self, skin_id: str, fields: Dict[str, Any], author: str) -> Optional[DocumentRecord]:
        rec = self.find_weekly_prize(skin_id)
        if rec is None:
            return None
        body = rec.document()
        body.update(fields)
        body["lastModifiedBy"] = author
        with self._conn() as conn:
            conn.execute(
                "UPDATE weekly_prizes SET week_start = ?, week_end = ?, updated_at = ?, doc_json = ? WHERE doc_id = ?",
                (body["weekStartDate"], body["weekEndDate"], _now_iso(), _dump(body), rec.doc_id),
            )
        return self.get_weekly_prize(rec.doc_id)

    def delete_weekly_prize(self, skin_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM weekly_prizes WHERE skin_id = ?", (skin_id,))
            return cur.rowcount > 0

    def weekly_prizes_by_ids(self, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        return self._documents_by_ids("weekly_prizes", ids)

    def _documents_by_ids(self, table: str, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        wanted = sorted({i for i in ids if i})
        if not wanted:
            return {}
        marks = ",".join("?" for _ in wanted)
        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT doc_id, created_at, updated_at, doc_json FROM {table} WHERE doc_id IN ({marks})",
                wanted,
            ).fetchall()
        return {r["doc_id"]: DocumentRecord(**dict(r)).document() for r in rows}
