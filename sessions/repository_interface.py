from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from sessions.models import Session


class SessionStoreProtocol(Protocol):
    def create(
        self,
        user_id: str,
        platform: str,
        state: str,
        payload: dict[str, Any],
        expires_at: datetime | None = None,
    ) -> str: ...

    def get_by_id(self, session_id: str) -> Session | None: ...

    def get_latest_by_kind(self, user_id: str, platform: str, state: str) -> Session | None: ...

    def update_by_id(self, session_id: str, state: str, payload: dict[str, Any]) -> bool: ...

    def delete_by_id(self, session_id: str) -> bool: ...

    def delete_by_kind(self, user_id: str, platform: str, state: str) -> bool: ...

    def delete_expired(self) -> int: ...

    def mark_event_processed(self, event_key: str) -> bool: ...
