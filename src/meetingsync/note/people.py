from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from meetingsync.note.template import PERSON_TEMPLATE, TemplateStore


logger = logging.getLogger(__name__)

PersonLogMode = Literal["once", "block"]


def _append_text(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8") as fh:
        fh.write(text)


def append_meeting_mention(
    person_log_path: Path,
    person_name: str,
    meeting_line: str,
    *,
    templates: TemplateStore,
    mode: PersonLogMode = "once",
) -> None:
    """Record one meeting mention in a person's running log.

    ``block`` appends a full rendered person-template block for every
    mention, creating the file if needed. ``once`` renders the template only
    when the log does not exist yet and afterwards appends just the meeting
    line as a list item.
    """
    person_log_path.parent.mkdir(parents=True, exist_ok=True)
    if mode == "block" or not person_log_path.exists():
        rendered = templates.render(
            PERSON_TEMPLATE,
            {"PersonName": person_name, "MeetingList": meeting_line},
        )
        _append_text(person_log_path, rendered)
        logger.info("Wrote person log block for %s: %s", person_name, person_log_path)
        return

    existing = person_log_path.read_text(encoding="utf-8")
    separator = "" if not existing or existing.endswith("\n") else "\n"
    _append_text(person_log_path, f"{separator}- {meeting_line}\n")
    logger.info("Appended meeting to person log %s", person_log_path)
