from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
import logging
from pathlib import Path
from typing import Literal

from meetingsync.calendar.backends import CalendarError, CalendarSource
from meetingsync.calendar.models import Appointment
from meetingsync.calendar.service import fetch_window
from meetingsync.config import Config
from meetingsync.note.identity import note_date, series_log_filename
from meetingsync.note.meeting import write_meeting_note
from meetingsync.note.recurring import SeriesWrite, write_series_entry
from meetingsync.note.template import TemplateStore


logger = logging.getLogger(__name__)

FailureMode = Literal["stop", "continue"]


class AppointmentProcessingError(RuntimeError):
    def __init__(self, appointment: Appointment, cause: BaseException) -> None:
        self.appointment = appointment
        self.cause = cause
        super().__init__(
            f"Failed to write notes for {appointment.subject!r} "
            f"on {note_date(appointment.start)}: {cause}"
        )


@dataclass(frozen=True)
class AppointmentResult:
    subject: str
    start: datetime
    ok: bool
    note_path: Path | None = None
    series: SeriesWrite | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "subject": self.subject,
            "start": self.start.isoformat(),
            "ok": self.ok,
            "note_path": str(self.note_path) if self.note_path else None,
        }
        if self.series is not None:
            payload["series_path"] = str(self.series.path)
            payload["series_action"] = self.series.action
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class SyncResult:
    window_start: datetime
    window_end: datetime
    results: list[AppointmentResult] = field(default_factory=list)
    aborted: bool = False
    skipped: int = 0
    created_dirs: list[Path] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for result in self.results if result.ok)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_payload(self) -> dict[str, object]:
        return {
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "appointments": len(self.results) + self.skipped,
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted": self.aborted,
            "created_dirs": [str(path) for path in self.created_dirs],
            "results": [result.to_payload() for result in self.results],
        }


def ensure_directories(config: Config) -> list[Path]:
    created: list[Path] = []
    for directory in (config.meetings_dir, config.people_dir, config.recurring_dir):
        if directory.is_dir():
            continue
        directory.mkdir(parents=True, exist_ok=True)
        logger.info("Created directory %s", directory)
        created.append(directory)
    return created


def process_appointment(
    appointment: Appointment,
    *,
    config: Config,
    templates: TemplateStore,
) -> AppointmentResult:
    local = appointment.localized()
    try:
        series = None
        if local.is_recurring:
            series = write_series_entry(
                config.recurring_dir / series_log_filename(local.subject),
                local,
                templates=templates,
            )
        note_path = write_meeting_note(
            local,
            meetings_dir=config.meetings_dir,
            people_dir=config.people_dir,
            templates=templates,
            datetime_format=config.datetime_format,
            person_log_mode=config.person_log_mode,
        )
    except Exception as exc:
        raise AppointmentProcessingError(local, exc) from exc
    return AppointmentResult(
        subject=local.subject,
        start=local.start,
        ok=True,
        note_path=note_path,
        series=series,
    )


def run_sync(
    *,
    config: Config,
    source: CalendarSource,
    templates: TemplateStore | None = None,
    now: datetime | None = None,
    failure_mode: FailureMode = "stop",
) -> SyncResult:
    """Write notes for every appointment in ``[now, now + window_days)``.

    Appointments are handled in chronological order. With ``failure_mode``
    ``"stop"`` the first failing appointment aborts the rest of the batch;
    ``"continue"`` records the failure and moves on. Files written before a
    failure are kept.
    """
    now = now or datetime.now(UTC)
    window_end = now + timedelta(days=config.window_days)
    templates = templates or TemplateStore(config.templates_dir)
    created_dirs = ensure_directories(config)

    results: list[AppointmentResult] = []
    aborted = False
    skipped = 0
    try:
        with source.connect() as calendar:
            appointments = fetch_window(calendar, start=now, end=window_end)
            logger.info(
                "Fetched %d appointments from %s between %s and %s",
                len(appointments),
                source.backend_name,
                now.isoformat(),
                window_end.isoformat(),
            )
            for index, appointment in enumerate(appointments):
                try:
                    results.append(
                        process_appointment(appointment, config=config, templates=templates)
                    )
                except AppointmentProcessingError as exc:
                    logger.error("%s (cause: %r)", exc, exc.cause)
                    results.append(
                        AppointmentResult(
                            subject=exc.appointment.subject,
                            start=exc.appointment.start,
                            ok=False,
                            error=str(exc),
                        )
                    )
                    if failure_mode == "stop":
                        aborted = True
                        skipped = len(appointments) - index - 1
                        if skipped:
                            logger.error("Aborting batch, %d appointments not processed", skipped)
                        break
    except CalendarError as exc:
        logger.error("Calendar %s: %s", type(exc).__name__, exc.reason)
        raise

    result = SyncResult(
        window_start=now,
        window_end=window_end,
        results=results,
        aborted=aborted,
        skipped=skipped,
        created_dirs=created_dirs,
    )
    logger.info(
        "Sync finished: %d processed, %d failed, %d skipped",
        result.processed,
        result.failed,
        result.skipped,
    )
    return result
