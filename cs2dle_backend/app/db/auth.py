from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .models import AdminRecord, VerificationCodeRecord


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteAuthStore:
    """Admin accounts and pending verification codes.

    Read/write helpers accept an optional ``conn`` so that a caller can run
    several of them inside one ``transaction()``; without it each call uses
    its own autocommit connection.
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
    def _using(self, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return
        with self._conn() as own:
            yield own

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        # IMMEDIATE takes the write lock up front, so a second request using the
        # same code blocks here until the first one has committed its delete.
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
                CREATE TABLE IF NOT EXISTS admins (
                  admin_id TEXT PRIMARY KEY,
                  name TEXT NOT NULL,
                  email TEXT UNIQUE NOT NULL,
                  status TEXT NOT NULL,
                  role TEXT NOT NULL,
                  created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS verification_codes (
                  email TEXT PRIMARY KEY,
                  code TEXT NOT NULL,
                  type TEXT NOT NULL,
                  expires_at TEXT NOT NULL,
                  created_at TEXT NOT NULL
                )
                """
            )

    # -- verification codes -------------------------------------------------

    def upsert_verification_code(self, email: str, code: str, code_type: str, expires_at: datetime) -> None:
        now = _now_iso()
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO verification_codes(email, code, type, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET code=excluded.code, type=excluded.type,
                  expires_at=excluded.expires_at, created_at=excluded.created_at
                """,
                (email, code, code_type, expires_at.isoformat(), now),
            )

    def find_verification_code(
        self,
        email: str,
        code: str,
        code_type: str,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[VerificationCodeRecord]:
        # Exact match on all three fields; emails are not case-folded.
        with self._using(conn) as c:
            row = c.execute(
                "SELECT * FROM verification_codes WHERE email = ? AND code = ? AND type = ?",
                (email, code, code_type),
            ).fetchone()
            if row is None:
                return None
            return VerificationCodeRecord(**dict(row))

    def get_verification_code(self, email: str) -> Optional[VerificationCodeRecord]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM verification_codes WHERE email = ?", (email,)).fetchone()
            if row is None:
                return None
            return VerificationCodeRecord(**dict(row))

    def delete_verification_code(self, email: str, code: str, *, conn: Optional[sqlite3.Connection] = None) -> bool:
        with self._using(conn) as c:
            cur = c.execute("DELETE FROM verification_codes WHERE email = ? AND code = ?", (email, code))
            return cur.rowcount > 0

    # -- admins -------------------------------------------------------------

    def get_admin_by_email(self, email: str, *, conn: Optional[sqlite3.Connection] = None) -> Optional[AdminRecord]:
        with self._using(conn) as c:
            row = c.execute("SELECT * FROM admins WHERE email = ?", (email,)).fetchone()
            if row is None:
                return None
            return AdminRecord(**dict(row))

    def insert_admin(
        self,
        *,
        admin_id: str,
        name: str,
        email: str,
        status: str,
        role: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> AdminRecord:
        now = _now_iso()
        with self._using(conn) as c:
            c.execute(
                "INSERT INTO admins(admin_id, name, email, status, role, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (admin_id, name, email, status, role, now),
            )
        return AdminRecord(admin_id=admin_id, name=name, email=email, status=status, role=role, created_at=now)

    def count_admins(self, email: Optional[str] = None) -> int:
        with self._conn() as conn:
            if email is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM admins").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) AS n FROM admins WHERE email = ?", (email,)).fetchone()
            return int(row["n"])
