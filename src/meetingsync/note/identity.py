from __future__ import annotations

from datetime import date, datetime
import re


MAX_FILENAME_LENGTH = 250
NOTE_EXTENSION = ".md"
SERIES_PREFIX = "Recurring - "

_RESERVED_CHARS = re.compile(r'[\\/:*?"<>|@\[\]]')


def normalize_attendee(raw: str) -> str | None:
    name = raw.strip()
    return name or None


def split_attendees(raw: str) -> list[str]:
    """Return normalized attendee names from a ``;``-separated field.

    Raw entries are deduplicated and sorted by their raw text before
    normalization. Blank entries are dropped, and entries that only collide
    after trimming keep their first position.
    """
    names: list[str] = []
    for entry in sorted(set(raw.split(";"))):
        name = normalize_attendee(entry)
        if name is None or name in names:
            continue
        names.append(name)
    return names


def sanitize_filename(
    name: str,
    extension: str = "",
    max_length: int = MAX_FILENAME_LENGTH,
) -> str:
    if max_length <= len(extension):
        raise ValueError(
            f"max_length ({max_length}) must exceed the extension length ({len(extension)})."
        )
    cleaned = _RESERVED_CHARS.sub("-", name).strip()
    if len(cleaned) + len(extension) > max_length:
        cleaned = cleaned[: max_length - len(extension)].rstrip()
    return cleaned + extension


def note_date(value: datetime | date) -> str:
    return value.strftime("%Y-%m-%d")


def meeting_note_filename(
    subject: str,
    start: datetime | date,
    max_length: int = MAX_FILENAME_LENGTH,
) -> str:
    prefix = f"{note_date(start)} - "
    return prefix + sanitize_filename(subject, NOTE_EXTENSION, max_length - len(prefix))


def person_log_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    return sanitize_filename(name, NOTE_EXTENSION, max_length)


def series_log_filename(subject: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    return sanitize_filename(SERIES_PREFIX + subject, NOTE_EXTENSION, max_length)
