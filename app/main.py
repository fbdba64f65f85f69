from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import apply_env_overrides, load_config
from dates.extractor import extract_date_from_text
from dates.ranges import date_range
from dates.resolver import resolve
from sessions.aurora_repository import AuroraSessionStore
from sessions.repository_factory import create_session_store
from vault.credential_vault import create_credential_vault

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=str(level or "INFO").upper(), format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Time logger session and date tooling")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve-date", help="Resolve a natural-language date")
    resolve_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    resolve_parser.add_argument("--text", required=True)
    resolve_parser.add_argument("--now", default=None, help="Reference instant in ISO-8601")
    resolve_parser.add_argument("--timezone", default=None)

    extract_parser = subparsers.add_parser("extract-date", help="Find a date phrase inside a sentence")
    extract_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    extract_parser.add_argument("--text", required=True)
    extract_parser.add_argument("--now", default=None, help="Reference instant in ISO-8601")
    extract_parser.add_argument("--timezone", default=None)

    range_parser = subparsers.add_parser("date-range", help="Print the reporting window for a period")
    range_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    range_parser.add_argument("--period", required=True)
    range_parser.add_argument("--now", default=None, help="Reference instant in ISO-8601")
    range_parser.add_argument("--timezone", default=None)

    sweep_parser = subparsers.add_parser("sweep-sessions", help="Delete expired sessions")
    sweep_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")

    schema_parser = subparsers.add_parser("init-schema", help="Create the Aurora session tables")
    schema_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")

    encrypt_parser = subparsers.add_parser("encrypt-token", help="Encrypt a tracker token")
    encrypt_parser.add_argument("--config", default=None, help="Path to config.yaml or config.json")
    encrypt_parser.add_argument("--token", required=True)

    return parser


def reference_now(now_text: str | None, timezone_name: str) -> datetime:
    tz = ZoneInfo(timezone_name)
    if not now_text:
        return datetime.now(tz)
    value = datetime.fromisoformat(now_text)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _timezone_name(args: argparse.Namespace, config: dict[str, Any]) -> str:
    return str(args.timezone or config.get("conversation", {}).get("timezone") or "UTC")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def cmd_resolve_date(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        now = reference_now(args.now, _timezone_name(args, config))
    except (ValueError, ZoneInfoNotFoundError) as exc:
        print(f"resolve-date failed: {exc}")
        return 1
    result = resolve(args.text, now)
    _print_json(result.to_dict())
    return 0 if result.is_valid else 1


def cmd_extract_date(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        now = reference_now(args.now, _timezone_name(args, config))
    except (ValueError, ZoneInfoNotFoundError) as exc:
        print(f"extract-date failed: {exc}")
        return 1
    extracted = extract_date_from_text(args.text, now)
    _print_json(extracted.to_dict() if extracted is not None else None)
    return 0 if extracted is not None else 1


def cmd_date_range(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        now = reference_now(args.now, _timezone_name(args, config))
        start, end = date_range(args.period, now)
    except (ValueError, ZoneInfoNotFoundError) as exc:
        print(f"date-range failed: {exc}")
        return 1
    _print_json({"period": args.period, "start": start.isoformat(), "end": end.isoformat()})
    return 0


def cmd_sweep_sessions(config: dict[str, Any]) -> int:
    store = create_session_store(config)
    deleted = store.delete_expired()
    _print_json({"backend": type(store).__name__, "deleted": deleted})
    return 0


def cmd_init_schema(config: dict[str, Any]) -> int:
    store = create_session_store(config)
    if not isinstance(store, AuroraSessionStore):
        _print_json({"backend": type(store).__name__, "schema": "created on open"})
        return 0
    try:
        store.ensure_schema()
    except Exception as exc:  # noqa: BLE001
        print(f"init-schema failed: {exc}")
        return 1
    _print_json({"backend": type(store).__name__, "schema": "ready"})
    return 0


def cmd_encrypt_token(args: argparse.Namespace, config: dict[str, Any]) -> int:
    try:
        vault = create_credential_vault(config)
        token = vault.encrypt(args.token)
    except Exception as exc:  # noqa: BLE001
        print(f"encrypt-token failed: {exc}")
        return 1
    _print_json({"backend": type(vault).__name__, "token": token})
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = apply_env_overrides(load_config(args.config))
    configure_logging(str(config.get("logging", {}).get("level", "INFO")))

    if args.command == "resolve-date":
        return cmd_resolve_date(args, config)
    if args.command == "extract-date":
        return cmd_extract_date(args, config)
    if args.command == "date-range":
        return cmd_date_range(args, config)
    if args.command == "sweep-sessions":
        return cmd_sweep_sessions(config)
    if args.command == "init-schema":
        return cmd_init_schema(config)
    if args.command == "encrypt-token":
        return cmd_encrypt_token(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
