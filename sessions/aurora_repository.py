from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

import boto3

from sessions.models import Session
from sessions.repository_interface import SessionStoreProtocol

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 30

_SESSION_COLUMNS = "id, user_id, platform, session_type, session_data::text AS session_data, created_at, expires_at"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS user_sessions (
        id VARCHAR(255) PRIMARY KEY,
        user_id VARCHAR(255) NOT NULL,
        platform VARCHAR(50) NOT NULL,
        session_type VARCHAR(100) NOT NULL,
        session_data JSONB NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'UTC'),
        expires_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_sessions_kind ON user_sessions(user_id, platform, session_type)",
    "CREATE INDEX IF NOT EXISTS idx_user_sessions_expires_at ON user_sessions(expires_at)",
    """
    CREATE TABLE IF NOT EXISTS processed_events (
        event_key VARCHAR(500) PRIMARY KEY,
        created_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'UTC')
    )
    """,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuroraSessionStore(SessionStoreProtocol):
    """Networked session store on Aurora PostgreSQL through the RDS Data API.

    Timestamps are stored as UTC in ``TIMESTAMP`` columns and ids are random UUID
    strings, so concurrent writers never collide.
    """

    def __init__(
        self,
        *,
        cluster_arn: str,
        secret_arn: str,
        database: str = "timelogger",
        region_name: str | None = None,
        default_ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] | None = None,
        rds_data_client: Any | None = None,
    ) -> None:
        if not cluster_arn or not secret_arn:
            raise ValueError("cluster_arn and secret_arn are required for AuroraSessionStore")
        self.cluster_arn = cluster_arn
        self.secret_arn = secret_arn
        self.database = database
        self.default_ttl_minutes = max(1, int(default_ttl_minutes))
        self._clock = clock or _utc_now
        self._client = rds_data_client or boto3.client("rds-data", region_name=region_name)

    def ensure_schema(self) -> None:
        for statement in SCHEMA_STATEMENTS:
            self._execute(statement)
        logger.info("session-schema-ready backend=aurora database=%s", self.database)

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
        session_id = str(uuid4())
        self._execute(
            """
            INSERT INTO user_sessions (id, user_id, platform, session_type, session_data, created_at, expires_at)
            VALUES (:id, :user_id, :platform, :session_type, :session_data, :created_at, :expires_at)
            """,
            [
                _string_param("id", session_id),
                _string_param("user_id", user_id),
                _string_param("platform", platform),
                _string_param("session_type", state),
                _json_param("session_data", payload),
                _timestamp_param("created_at", now),
                _timestamp_param("expires_at", deadline),
            ],
        )
        logger.info("session-created session_id=%s user_id=%s state=%s", session_id, user_id, state)
        return session_id

    def get_by_id(self, session_id: str) -> Session | None:
        sid = str(session_id or "").strip()
        if not sid:
            return None
        rows = self._query(
            f"SELECT {_SESSION_COLUMNS} FROM user_sessions WHERE id = :id AND expires_at > :now",
            [_string_param("id", sid), self._now_param()],
        )
        return _row_to_session(rows[0]) if rows else None

    def get_latest_by_kind(self, user_id: str, platform: str, state: str) -> Session | None:
        rows = self._query(
            f"""
            SELECT {_SESSION_COLUMNS}
            FROM user_sessions
            WHERE user_id = :user_id AND platform = :platform AND session_type = :session_type
              AND expires_at > :now
            ORDER BY created_at DESC
            LIMIT 1
            """,
            [
                _string_param("user_id", user_id),
                _string_param("platform", platform),
                _string_param("session_type", state),
                self._now_param(),
            ],
        )
        return _row_to_session(rows[0]) if rows else None

    def update_by_id(self, session_id: str, state: str, payload: dict[str, Any]) -> bool:
        response = self._execute(
            """
            UPDATE user_sessions
            SET session_type = :session_type, session_data = :session_data
            WHERE id = :id AND expires_at > :now
            """,
            [
                _string_param("id", str(session_id or "")),
                _string_param("session_type", state),
                _json_param("session_data", payload),
                self._now_param(),
            ],
        )
        return _updated_count(response) > 0

    def delete_by_id(self, session_id: str) -> bool:
        response = self._execute(
            "DELETE FROM user_sessions WHERE id = :id",
            [_string_param("id", str(session_id or ""))],
        )
        return _updated_count(response) > 0

    def delete_by_kind(self, user_id: str, platform: str, state: str) -> bool:
        response = self._execute(
            """
            DELETE FROM user_sessions
            WHERE user_id = :user_id AND platform = :platform AND session_type = :session_type
            """,
            [
                _string_param("user_id", user_id),
                _string_param("platform", platform),
                _string_param("session_type", state),
            ],
        )
        return _updated_count(response) > 0

    def delete_expired(self) -> int:
        response = self._execute(
            "DELETE FROM user_sessions WHERE expires_at <= :now",
            [self._now_param()],
        )
        deleted = _updated_count(response)
        logger.info("sessions-swept backend=aurora deleted=%s", deleted)
        return deleted

    def mark_event_processed(self, event_key: str) -> bool:
        key = (event_key or "").strip()
        if not key:
            return False
        response = self._execute(
            """
            INSERT INTO processed_events (event_key, created_at)
            VALUES (:event_key, :now)
            ON CONFLICT (event_key) DO NOTHING
            """,
            [_string_param("event_key", key), self._now_param()],
        )
        return _updated_count(response) > 0

    def _now_param(self) -> dict[str, Any]:
        return _timestamp_param("now", self._clock())

    def _execute(self, sql: str, parameters: list[dict[str, Any]] | None = None, **extra: Any) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "resourceArn": self.cluster_arn,
            "secretArn": self.secret_arn,
            "database": self.database,
            "sql": sql.strip(),
        }
        if parameters:
            kwargs["parameters"] = parameters
        kwargs.update(extra)
        return self._client.execute_statement(**kwargs)

    def _query(self, sql: str, parameters: list[dict[str, Any]]) -> list[dict[str, Any]]:
        response = self._execute(sql, parameters, formatRecordsAs="JSON")
        records = json.loads(response.get("formattedRecords") or "[]")
        return records if isinstance(records, list) else []


def _string_param(name: str, value: str) -> dict[str, Any]:
    return {"name": name, "value": {"stringValue": str(value)}}


def _json_param(name: str, value: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": name,
        "value": {"stringValue": json.dumps(value, ensure_ascii=False)},
        "typeHint": "JSON",
    }


def _timestamp_param(name: str, value: datetime) -> dict[str, Any]:
    return {
        "name": name,
        "value": {"stringValue": _to_db_timestamp(value)},
        "typeHint": "TIMESTAMP",
    }


def _to_db_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%d %H:%M:%S.") + f"{utc.microsecond // 1000:03d}"


def _from_db_timestamp(text: Any) -> datetime:
    raw = str(text or "").strip().replace("T", " ")
    base, _, fraction = raw.partition(".")
    value = datetime.strptime(base[:19], "%Y-%m-%d %H:%M:%S")
    digits = "".join(ch for ch in fraction if ch.isdigit())
    if digits:
        value = value.replace(microsecond=int(digits[:6].ljust(6, "0")))
    return value.replace(tzinfo=timezone.utc)


def _row_to_session(row: dict[str, Any]) -> Session:
    raw_payload = row.get("session_data")
    if isinstance(raw_payload, str):
        raw_payload = _load_json(raw_payload)
    payload = raw_payload if isinstance(raw_payload, dict) else {}
    return Session(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        platform=str(row["platform"]),
        state=str(row["session_type"]),
        payload=payload,
        created_at=_from_db_timestamp(row.get("created_at")),
        expires_at=_from_db_timestamp(row.get("expires_at")),
    )


def _updated_count(response: dict[str, Any]) -> int:
    try:
        return int(response.get("numberOfRecordsUpdated", 0) or 0)
    except (TypeError, ValueError):
        return 0


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        logger.warning("session-data-corrupt length=%s", len(text))
        return {}
