from __future__ import annotations

from pathlib import Path
import re
from typing import Mapping


PERSON_TEMPLATE = "person.md"
MEETING_TEMPLATE = "meeting.md"
RECURRING_TEMPLATE = "recurring.md"


class TemplateNotFoundError(FileNotFoundError):
    pass


_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")


def render_template(template: str, bindings: Mapping[str, str]) -> str:
    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        return bindings[key] if key in bindings else match.group(0)

    return _PLACEHOLDER.sub(_substitute, template)


class TemplateStore:
    """Named note templates read from a directory on every render."""

    def __init__(self, templates_dir: Path) -> None:
        self.templates_dir = templates_dir

    def path_for(self, name: str) -> Path:
        return self.templates_dir / name

    def load(self, name: str) -> str:
        template_file = self.path_for(name)
        if not template_file.is_file():
            raise TemplateNotFoundError(f"Template not found: {template_file}")
        return template_file.read_text(encoding="utf-8")

    def render(self, name: str, bindings: Mapping[str, str]) -> str:
        return render_template(self.load(name), bindings)

    def missing(self) -> list[str]:
        return [
            name
            for name in (PERSON_TEMPLATE, MEETING_TEMPLATE, RECURRING_TEMPLATE)
            if not self.path_for(name).is_file()
        ]
