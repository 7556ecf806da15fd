from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime
import json
import logging
import os
from pathlib import Path
from typing import Callable, ContextManager, Iterator, Protocol

from meetingsync.calendar.models import Appointment

try:
    from EventKit import EKEventStore, EKEntityTypeEvent
    from Foundation import NSDate
except ImportError:
    EKEventStore = None  # type: ignore[misc, assignment]
    EKEntityTypeEvent = None  # type: ignore[misc, assignment]
    NSDate = None  # type: ignore[misc, assignment]


logger = logging.getLogger(__name__)

# EKParticipantRole values: 0=Unknown, 1=Required, 2=Optional, 3=Chair, 4=NonParticipant
_NON_REQUIRED_ROLES = (2, 4)


class CalendarError(RuntimeError):
    def __init__(self, *, backend: str, reason: str) -> None:
        self.backend = backend
        self.reason = reason
        self.hint = "Run `meetingsync doctor` and verify calendar permissions/backends."
        super().__init__(f"[{backend}] {reason}. {self.hint}")

    def to_payload(self) -> dict[str, object]:
        return {
            "error": self.reason,
            "error_kind": type(self).__name__,
            "backend": self.backend,
            "hint": self.hint,
        }


class CalendarConnectionError(CalendarError):
    pass


class CalendarQueryError(CalendarError):
    pass


class AppointmentQuery(Protocol):
    def fetch_appointments(self, *, start: datetime, end: datetime) -> list[Appointment]:
        ...


class CalendarSource(Protocol):
    backend_name: str

    def connect(self) -> ContextManager[AppointmentQuery]:
        ...


def _appointments_from_payloads(
    backend: str, payloads: list[dict[str, object]]
) -> list[Appointment]:
    appointments: list[Appointment] = []
    for payload in payloads:
        if not isinstance(payload, dict):
            raise CalendarQueryError(backend=backend, reason="Calendar item must be a JSON object")
        try:
            appointments.append(Appointment.from_payload(payload))
        except (TypeError, ValueError) as exc:
            raise CalendarQueryError(
                backend=backend, reason=f"Invalid calendar item {payload.get('title')!r}: {exc}"
            ) from exc
    return appointments


def _nsdate_to_datetime(value) -> datetime:
    return datetime.fromtimestamp(float(value.timeIntervalSince1970()), tz=UTC).astimezone()


def _participant_name(participant) -> str:
    name = participant.name() if participant.name() else ""
    if name:
        return str(name)
    url = participant.URL()
    return str(url).removeprefix("mailto:") if url else ""


class EventKitSource:
    backend_name = "eventkit"

    def __init__(
        self,
        loader: Callable[..., list[dict[str, object]]] | None = None,
    ) -> None:
        self._loader = loader
        self._store = None

    @contextmanager
    def connect(self) -> Iterator["EventKitSource"]:
        if self._loader is None and "MEETINGSYNC_EVENTKIT_EVENTS_JSON" not in os.environ:
            self._store = self._open_store()
            logger.info("Connected to EventKit calendar store")
        try:
            yield self
        finally:
            self._store = None

    def _open_store(self):
        if os.environ.get("MEETINGSYNC_EVENTKIT_UNAVAILABLE") == "1":
            raise CalendarConnectionError(
                backend=self.backend_name, reason="EventKit backend unavailable on this machine"
            )
        if EKEventStore is None:
            raise CalendarConnectionError(
                backend=self.backend_name,
                reason="EventKit framework not available. Install pyobjc-framework-EventKit",
            )

        # EKAuthorizationStatus values: 0=NotDetermined, 1=Restricted, 2=Denied, 3=Authorized
        auth_status = EKEventStore.authorizationStatusForEntityType_(EKEntityTypeEvent)
        if auth_status == 2:
            raise CalendarConnectionError(
                backend=self.backend_name,
                reason="Calendar access denied. Grant permission in System Settings > "
                "Privacy & Security > Calendars",
            )
        if auth_status == 1:
            raise CalendarConnectionError(
                backend=self.backend_name, reason="Calendar access restricted by system policy"
            )
        try:
            return EKEventStore.alloc().init()
        except Exception as exc:
            raise CalendarConnectionError(backend=self.backend_name, reason=str(exc)) from exc

    def _default_loader(self, *, start: datetime, end: datetime) -> list[dict[str, object]]:
        if "MEETINGSYNC_EVENTKIT_EVENTS_JSON" in os.environ:
            payload = json.loads(os.environ.get("MEETINGSYNC_EVENTKIT_EVENTS_JSON", "[]"))
            if not isinstance(payload, list):
                raise RuntimeError("Invalid EventKit payload")
            return payload
        if self._store is None:
            raise RuntimeError("EventKit store is not connected")

        # EventKit expands recurring events into occurrences for predicate queries.
        predicate = self._store.predicateForEventsWithStartDate_endDate_calendars_(
            NSDate.dateWithTimeIntervalSince1970_(start.timestamp()),
            NSDate.dateWithTimeIntervalSince1970_(end.timestamp()),
            None,
        )
        normalized: list[dict[str, object]] = []
        for event in self._store.eventsMatchingPredicate_(predicate):
            organizer = event.organizer()
            attendees = [
                _participant_name(participant)
                for participant in (event.attendees() or [])
                if participant.participantRole() not in _NON_REQUIRED_ROLES
            ]
            rules = event.recurrenceRules() or []
            normalized.append(
                {
                    "title": event.title() or "",
                    "start": _nsdate_to_datetime(event.startDate()),
                    "end": _nsdate_to_datetime(event.endDate()),
                    "location": event.location() or "",
                    "organizer": _participant_name(organizer) if organizer else "",
                    "attendees": attendees,
                    "is_recurring": bool(event.hasRecurrenceRules()),
                    "recurrence": rules[0] if rules else None,
                }
            )
        return normalized

    def fetch_appointments(self, *, start: datetime, end: datetime) -> list[Appointment]:
        loader = self._loader or self._default_loader
        try:
            payloads = loader(start=start, end=end)
        except CalendarError:
            raise
        except Exception as exc:
            raise CalendarQueryError(backend=self.backend_name, reason=str(exc)) from exc
        return _appointments_from_payloads(self.backend_name, payloads)


class JsonFileSource:
    """Appointments exported to a JSON array, one object per occurrence."""

    backend_name = "json"

    def __init__(self, events_file: Path) -> None:
        self.events_file = events_file
        self._payloads: list[dict[str, object]] | None = None

    @contextmanager
    def connect(self) -> Iterator["JsonFileSource"]:
        if not self.events_file.is_file():
            raise CalendarConnectionError(
                backend=self.backend_name, reason=f"Events file not found: {self.events_file}"
            )
        try:
            payload = json.loads(self.events_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CalendarConnectionError(backend=self.backend_name, reason=str(exc)) from exc
        if not isinstance(payload, list):
            raise CalendarConnectionError(
                backend=self.backend_name, reason="Events file must contain a JSON array"
            )
        self._payloads = payload
        logger.info("Loaded %d calendar items from %s", len(payload), self.events_file)
        try:
            yield self
        finally:
            self._payloads = None

    def fetch_appointments(self, *, start: datetime, end: datetime) -> list[Appointment]:
        if self._payloads is None:
            raise CalendarQueryError(backend=self.backend_name, reason="Events file is not loaded")
        return _appointments_from_payloads(self.backend_name, self._payloads)


def build_source(name: str, *, events_file: Path | None = None) -> CalendarSource:
    if name == "eventkit":
        return EventKitSource()
    if name == "json":
        if events_file is None:
            raise ValueError("The json calendar source requires --events-json.")
        return JsonFileSource(events_file)
    raise ValueError(f"Unknown calendar source: {name}")


def eventkit_available() -> bool:
    if os.environ.get("MEETINGSYNC_EVENTKIT_UNAVAILABLE") == "1":
        return False
    return EKEventStore is not None
