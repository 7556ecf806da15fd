from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Literal

from meetingsync.calendar.models import Appointment
from meetingsync.note.identity import meeting_note_filename, note_date
from meetingsync.note.template import RECURRING_TEMPLATE, TemplateStore


logger = logging.getLogger(__name__)

# Left in the rendered note for the reader to fill in.
FREQUENCY_PLACEHOLDER = "{{ MeetingFrequency }}"


@dataclass(frozen=True)
class SeriesWrite:
    path: Path
    action: Literal["created", "appended"]


def series_link_line(appointment: Appointment) -> str:
    day = note_date(appointment.start)
    target = meeting_note_filename(appointment.subject, appointment.start)
    return f"- [{day} Meeting]({target})"


def write_series_entry(
    series_log_path: Path,
    appointment: Appointment,
    *,
    templates: TemplateStore,
) -> SeriesWrite:
    if not series_log_path.exists():
        rendered = templates.render(
            RECURRING_TEMPLATE,
            {
                "MeetingSubject": appointment.subject,
                "MeetingFrequency": FREQUENCY_PLACEHOLDER,
                "NextMeetingDate": note_date(appointment.start),
                "PastMeetingsList": "",
            },
        )
        series_log_path.parent.mkdir(parents=True, exist_ok=True)
        series_log_path.write_text(rendered, encoding="utf-8")
        logger.info("Created recurring series log %s", series_log_path)
        return SeriesWrite(path=series_log_path, action="created")

    with series_log_path.open("a", encoding="utf-8") as fh:
        fh.write("\n" + series_link_line(appointment))
    logger.info("Appended %s to recurring series log %s", note_date(appointment.start), series_log_path)
    return SeriesWrite(path=series_log_path, action="appended")
