from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "sessions": {
        "backend": "auto",
        "sqlite_path": "data/sessions/timelogger.db",
        "ttl_minutes": 30,
        "aurora": {
            "cluster_arn": None,
            "secret_arn": None,
            "database": "timelogger",
            "region": None,
        },
    },
    "conversation": {
        "require_confirmation": True,
        "max_ticket_options": 25,
        "quick_time_options": [0.25, 0.5, 1, 1.5, 2, 3, 4, 8],
        "timezone": "UTC",
    },
    "display": {
        "icon_set": "current",
    },
    "vault": {
        "backend": "fernet",
        "key": None,
        "kms_key_id": None,
        "region": None,
    },
    "logging": {
        "level": "INFO",
    },
}

# env var -> config path
ENV_OVERRIDES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("SESSION_BACKEND", ("sessions", "backend")),
    ("SESSION_SQLITE_PATH", ("sessions", "sqlite_path")),
    ("AURORA_CLUSTER_ARN", ("sessions", "aurora", "cluster_arn")),
    ("DB_SECRET_ARN", ("sessions", "aurora", "secret_arn")),
    ("DB_NAME", ("sessions", "aurora", "database")),
    ("AWS_REGION", ("sessions", "aurora", "region")),
    ("AWS_REGION", ("vault", "region")),
    ("TIMELOGGER_TIMEZONE", ("conversation", "timezone")),
    ("ENCRYPTION_KEY", ("vault", "key")),
    ("LOG_LEVEL", ("logging", "level")),
)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | None = None) -> dict[str, Any]:
    if not config_path:
        return deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        return deepcopy(DEFAULT_CONFIG)

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return deepcopy(DEFAULT_CONFIG)

    if path.suffix.lower() == ".json":
        loaded = json.loads(text)
    else:
        loaded = yaml.safe_load(text)
    data = loaded if isinstance(loaded, dict) else {}
    return deep_merge(deepcopy(DEFAULT_CONFIG), data)


def apply_env_overrides(config: dict[str, Any], environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Copy of ``config`` with non-empty environment variables written over it."""
    env = os.environ if environ is None else environ
    updated = deepcopy(config)
    for name, path in ENV_OVERRIDES:
        value = str(env.get(name, "") or "").strip()
        if not value:
            continue
        node = updated
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
    return updated
