from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

from sessions.models import Session
from sessions.repository_interface import SessionStoreProtocol

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 30
SQLITE_MAX_ROW_ID = 2**63 - 1

_SESSION_COLUMNS = "id, user_id, platform, session_type, session_data, created_at, expires_at"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SqliteSessionStore(SessionStoreProtocol):
    """Embedded session store: one SQLite file, sequential row ids."""

    def __init__(
        self,
        sqlite_path: str,
        default_ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.sqlite_path = Path(sqlite_path)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self.default_ttl_minutes = max(1, int(default_ttl_minutes))
        self._clock = clock or _utc_now
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.sqlite_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS user_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    platform TEXT NOT NULL,
                    session_type TEXT NOT NULL,
                    session_data TEXT,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_user_sessions_kind
                    ON user_sessions(user_id, platform, session_type, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_user_sessions_expires_at
                    ON user_sessions(expires_at);

                CREATE TABLE IF NOT EXISTS processed_events (
                    event_key TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL
                );
                """
            )
            conn.commit()

    def create(
        self,
        user_id: str,
        platform: str,
        state: str,
        payload: dict[str, Any],
        expires_at: datetime | None = None,
    ) -> str:
        now = self._clock()
        deadline = expires_at or now + timedelta(minutes=self.default_ttl_minutes)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO user_sessions(user_id, platform, session_type, session_data, created_at, expires_at)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    platform,
                    state,
                    json.dumps(payload, ensure_ascii=False),
                    _to_utc_text(now),
                    _to_utc_text(deadline),
                ),
            )
            conn.commit()
            session_id = str(cur.lastrowid)
        logger.info("session-created session_id=%s user_id=%s state=%s", session_id, user_id, state)
        return session_id

    def get_by_id(self, session_id: str) -> Session | None:
        row_id = _to_row_id(session_id)
        if row_id is None:
            return None
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM user_sessions WHERE id = ? AND expires_at > ?",
                (row_id, self._now_text()),
            ).fetchone()
        return _row_to_session(row) if row is not None else None

    def get_latest_by_kind(self, user_id: str, platform: str, state: str) -> Session | None:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM user_sessions
                WHERE user_id = ? AND platform = ? AND session_type = ? AND expires_at > ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (user_id, platform, state, self._now_text()),
            ).fetchone()
        return _row_to_session(row) if row is not None else None

    def update_by_id(self, session_id: str, state: str, payload: dict[str, Any]) -> bool:
        row_id = _to_row_id(session_id)
        if row_id is None:
            return False
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE user_sessions
                SET session_type = ?, session_data = ?
                WHERE id = ? AND expires_at > ?
                """,
                (state, json.dumps(payload, ensure_ascii=False), row_id, self._now_text()),
            )
            conn.commit()
            return cur.rowcount > 0

    def delete_by_id(self, session_id: str) -> bool:
        row_id = _to_row_id(session_id)
        if row_id is None:
            return False
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM user_sessions WHERE id = ?", (row_id,))
            conn.commit()
            return cur.rowcount > 0

    def delete_by_kind(self, user_id: str, platform: str, state: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM user_sessions WHERE user_id = ? AND platform = ? AND session_type = ?",
                (user_id, platform, state),
            )
            conn.commit()
            return cur.rowcount > 0

    def delete_expired(self) -> int:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM user_sessions WHERE expires_at <= ?", (self._now_text(),))
            conn.commit()
            deleted = cur.rowcount
        logger.info("sessions-swept backend=sqlite deleted=%s", deleted)
        return deleted

    def mark_event_processed(self, event_key: str) -> bool:
        key = (event_key or "").strip()
        if not key:
            return False

        with self._connect() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO processed_events(event_key, created_at) VALUES(?, ?)",
                (key, self._now_text()),
            )
            conn.commit()
            return cur.rowcount > 0

    def _now_text(self) -> str:
        return _to_utc_text(self._clock())


def _row_to_session(row: sqlite3.Row) -> Session:
    raw_payload = _load_json(row["session_data"])
    payload = raw_payload if isinstance(raw_payload, dict) else {}
    return Session(
        id=str(row["id"]),
        user_id=row["user_id"],
        platform=row["platform"],
        state=row["session_type"],
        payload=payload,
        created_at=_from_utc_text(row["created_at"]),
        expires_at=_from_utc_text(row["expires_at"]),
    )


def _to_row_id(session_id: Any) -> int | None:
    text = str(session_id or "").strip()
    if not (text.isascii() and text.isdigit()):
        return None
    row_id = int(text)
    if row_id > SQLITE_MAX_ROW_ID:
        return None
    return row_id


def _to_utc_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_utc_text(text: str) -> datetime:
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _load_json(text: str | None) -> Any:
    if not text:
        return {}
    try:
        return json.loads(text)
    except ValueError:
        logger.warning("session-data-corrupt length=%s", len(text))
        return {}
