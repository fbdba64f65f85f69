from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sessions.repository import SqliteSessionStore
from sessions.repository_factory import create_session_store, resolve_backend

AURORA_ENV = {
    "AURORA_CLUSTER_ARN": "arn:aws:rds:us-east-1:123456789012:cluster:timelogger",
    "DB_SECRET_ARN": "arn:aws:secretsmanager:us-east-1:123456789012:secret:db",
}


class SessionStoreFactoryTest(unittest.TestCase):
    def test_auto_picks_sqlite_without_database_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = {"sessions": {"backend": "auto", "sqlite_path": str(Path(tmp) / "sessions.db")}}
            store = create_session_store(config, environ={})
            self.assertIsInstance(store, SqliteSessionStore)

    def test_auto_picks_aurora_when_env_is_set(self) -> None:
        self.assertEqual(resolve_backend({"sessions": {"backend": "auto"}}, AURORA_ENV), "aurora")
        self.assertEqual(resolve_backend({"sessions": {"backend": "auto"}}, {"AURORA_CLUSTER_ARN": "x"}), "sqlite")

        with mock.patch("sessions.repository_factory.AuroraSessionStore") as constructor:
            _ = create_session_store({"sessions": {"backend": "auto", "ttl_minutes": 45}}, environ=AURORA_ENV)
        constructor.assert_called_once()
        kwargs = constructor.call_args.kwargs
        self.assertEqual(kwargs["cluster_arn"], AURORA_ENV["AURORA_CLUSTER_ARN"])
        self.assertEqual(kwargs["secret_arn"], AURORA_ENV["DB_SECRET_ARN"])
        self.assertEqual(kwargs["database"], "timelogger")
        self.assertEqual(kwargs["default_ttl_minutes"], 45)

    def test_explicit_aurora_from_config(self) -> None:
        config = {
            "sessions": {
                "backend": "aurora",
                "aurora": {
                    "cluster_arn": "cluster",
                    "secret_arn": "secret",
                    "database": "worklogs",
                    "region": "us-west-2",
                },
            }
        }
        with mock.patch("sessions.repository_factory.AuroraSessionStore") as constructor:
            _ = create_session_store(config, environ={})
        kwargs = constructor.call_args.kwargs
        self.assertEqual(kwargs["database"], "worklogs")
        self.assertEqual(kwargs["region_name"], "us-west-2")

    def test_explicit_sqlite_ignores_env(self) -> None:
        self.assertEqual(resolve_backend({"sessions": {"backend": "sqlite"}}, AURORA_ENV), "sqlite")

    def test_unknown_backend_raises(self) -> None:
        with self.assertRaises(ValueError):
            create_session_store({"sessions": {"backend": "dynamodb"}}, environ={})


if __name__ == "__main__":
    unittest.main()
