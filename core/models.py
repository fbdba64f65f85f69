from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from core.enums import ActionKind, ReplyKind


def _serialize(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if is_dataclass(value):
        return {k: _serialize(v) for k, v in asdict(value).items()}
    if isinstance(value, tuple):
        return [_serialize(v) for v in value]
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


@dataclass(frozen=True, slots=True)
class ResolvedDate:
    date: Optional[date]
    is_valid: bool
    is_today: bool
    is_past: bool
    display_text: str
    original_text: str
    error: Optional[str] = None

    @property
    def formatted(self) -> str | None:
        return self.date.isoformat() if self.date is not None else None

    def to_dict(self) -> dict[str, Any]:
        data = _serialize(self)
        data["formatted"] = self.formatted
        return data


@dataclass(frozen=True, slots=True)
class ExtractedDate:
    resolved: ResolvedDate
    extracted_text: str
    remaining_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "resolved": self.resolved.to_dict(),
            "extracted_text": self.extracted_text,
            "remaining_text": self.remaining_text,
        }


@dataclass(slots=True)
class WorkLogIntent:
    user_id: str
    platform: str
    hours: Optional[float] = None
    ticket_key: Optional[str] = None
    description: str = ""
    date_text: Optional[str] = None


@dataclass(slots=True)
class ButtonAction:
    kind: ActionKind
    session_id: Optional[str] = None
    ticket_key: Optional[str] = None
    value: Optional[str] = None


@dataclass(slots=True)
class ReplyAction:
    label: str
    action_id: str
    value: Optional[str] = None


@dataclass(slots=True)
class Reply:
    kind: ReplyKind
    text: str
    session_id: Optional[str] = None
    actions: list[ReplyAction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)
