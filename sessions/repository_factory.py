from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from sessions.aurora_repository import AuroraSessionStore
from sessions.repository import SqliteSessionStore
from sessions.repository_interface import SessionStoreProtocol

logger = logging.getLogger(__name__)


def resolve_backend(config: dict[str, Any], environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    sessions_conf = config.get("sessions", {}) if isinstance(config, dict) else {}
    backend = str(sessions_conf.get("backend", "auto") or "auto").strip().lower()
    if backend in {"sqlite", "aurora"}:
        return backend
    if backend != "auto":
        raise ValueError(f"unsupported session backend: {backend}")

    aurora_conf = sessions_conf.get("aurora", {}) if isinstance(sessions_conf, dict) else {}
    cluster_arn = _as_optional_str(aurora_conf.get("cluster_arn")) or _as_optional_str(env.get("AURORA_CLUSTER_ARN"))
    secret_arn = _as_optional_str(aurora_conf.get("secret_arn")) or _as_optional_str(env.get("DB_SECRET_ARN"))
    return "aurora" if cluster_arn and secret_arn else "sqlite"


def create_session_store(
    config: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> SessionStoreProtocol:
    env = os.environ if environ is None else environ
    sessions_conf = config.get("sessions", {}) if isinstance(config, dict) else {}
    ttl_minutes = int(sessions_conf.get("ttl_minutes", 30))
    backend = resolve_backend(config, env)

    if backend == "aurora":
        aurora_conf = sessions_conf.get("aurora", {}) if isinstance(sessions_conf, dict) else {}
        cluster_arn = _as_optional_str(aurora_conf.get("cluster_arn")) or _as_optional_str(env.get("AURORA_CLUSTER_ARN"))
        secret_arn = _as_optional_str(aurora_conf.get("secret_arn")) or _as_optional_str(env.get("DB_SECRET_ARN"))
        logger.info("session-backend-selected backend=aurora")
        return AuroraSessionStore(
            cluster_arn=cluster_arn or "",
            secret_arn=secret_arn or "",
            database=str(aurora_conf.get("database") or env.get("DB_NAME") or "timelogger"),
            region_name=_as_optional_str(aurora_conf.get("region")) or _as_optional_str(env.get("AWS_REGION")),
            default_ttl_minutes=ttl_minutes,
        )

    sqlite_path = str(sessions_conf.get("sqlite_path", "data/sessions/timelogger.db"))
    logger.info("session-backend-selected backend=sqlite path=%s", sqlite_path)
    return SqliteSessionStore(sqlite_path=sqlite_path, default_ttl_minutes=ttl_minutes)


def _as_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None
