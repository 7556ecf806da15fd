from __future__ import annotations

import logging
from pathlib import Path

from meetingsync.calendar.models import Appointment
from meetingsync.note.identity import (
    meeting_note_filename,
    note_date,
    person_log_filename,
    split_attendees,
)
from meetingsync.note.people import PersonLogMode, append_meeting_mention
from meetingsync.note.template import MEETING_TEMPLATE, TemplateStore


logger = logging.getLogger(__name__)

DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %H:%M"


def attendee_checklist(attendees: list[str]) -> str:
    return "\n".join(f"- [ ] {name}" for name in attendees)


def write_meeting_note(
    appointment: Appointment,
    *,
    meetings_dir: Path,
    people_dir: Path,
    templates: TemplateStore,
    datetime_format: str = DEFAULT_DATETIME_FORMAT,
    person_log_mode: PersonLogMode = "once",
) -> Path:
    appointment = appointment.localized()
    attendees = split_attendees(appointment.required_attendees)
    mention = f"{appointment.subject} on {note_date(appointment.start)}"
    for name in attendees:
        append_meeting_mention(
            people_dir / person_log_filename(name),
            name,
            mention,
            templates=templates,
            mode=person_log_mode,
        )

    rendered = templates.render(
        MEETING_TEMPLATE,
        {
            "MeetingSubject": appointment.subject,
            "MeetingStart": appointment.start.strftime(datetime_format),
            "MeetingEnd": appointment.end.strftime(datetime_format),
            "MeetingLocation": appointment.location,
            "MeetingOrganizer": appointment.organizer,
            "AttendeesList": attendee_checklist(attendees),
        },
    )
    note_path = meetings_dir / meeting_note_filename(appointment.subject, appointment.start)
    meetings_dir.mkdir(parents=True, exist_ok=True)
    note_path.write_text(rendered, encoding="utf-8")
    logger.info("Wrote meeting note %s (%d attendees)", note_path, len(attendees))
    return note_path
