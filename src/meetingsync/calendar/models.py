from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


DEFAULT_SUBJECT = "Untitled Meeting"


def parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, datetime):
        return raw
    value = str(raw).strip()
    if not value:
        raise ValueError("Missing appointment timestamp")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    # EventKit NSDate descriptions, e.g. "2026-02-08 10:00:00 +0000".
    return datetime.strptime(value, "%Y-%m-%d %H:%M:%S %z")


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.replace(tzinfo=None)


def _attendee_field(raw: object) -> str:
    if raw is None:
        return ""
    if isinstance(raw, (list, tuple)):
        return ";".join(str(item) for item in raw)
    return str(raw)


@dataclass(frozen=True)
class Appointment:
    subject: str
    start: datetime
    end: datetime
    organizer: str = ""
    required_attendees: str = ""
    location: str = ""
    is_recurring: bool = False
    recurrence_pattern: object | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "Appointment":
        subject = str(payload.get("subject") or payload.get("title") or "").strip()
        recurrence = payload.get("recurrence")
        is_recurring = bool(payload.get("is_recurring", recurrence is not None))
        return cls(
            subject=subject or DEFAULT_SUBJECT,
            start=parse_timestamp(payload.get("start", "")),
            end=parse_timestamp(payload.get("end", "")),
            organizer=str(payload.get("organizer") or ""),
            required_attendees=_attendee_field(payload.get("attendees")),
            location=str(payload.get("location") or ""),
            is_recurring=is_recurring,
            recurrence_pattern=recurrence if is_recurring else None,
        )

    def localized(self) -> "Appointment":
        """Same appointment with start and end as naive local wall-clock times."""
        return replace(self, start=_to_local_naive(self.start), end=_to_local_naive(self.end))
