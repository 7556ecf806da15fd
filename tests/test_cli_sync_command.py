from __future__ import annotations

import json
from pathlib import Path

from meetingsync import cli


def _setup(monkeypatch, tmp_path: Path, events: list[dict[str, object]]) -> Path:
    events_file = tmp_path / "events.json"
    events_file.write_text(json.dumps(events))
    monkeypatch.setenv("VAULT_PATH", str(tmp_path / "vault"))
    monkeypatch.setenv("MEETINGSYNC_LOG_FILE", str(tmp_path / "logs" / "sync.log"))
    monkeypatch.setenv("MEETINGSYNC_NOW_ISO", "2024-03-01T00:00:00")
    monkeypatch.delenv("MEETINGSYNC_TEMPLATES_DIR", raising=False)
    monkeypatch.delenv("MEETINGSYNC_WINDOW_DAYS", raising=False)
    return events_file


def _event(title: str, day: int, **extra: object) -> dict[str, object]:
    event: dict[str, object] = {
        "title": title,
        "start": f"2024-03-{day:02d}T10:00:00",
        "end": f"2024-03-{day:02d}T10:30:00",
        "organizer": "Dana",
        "attendees": "A;B",
    }
    event.update(extra)
    return event


def test_cli_sync_json_source(monkeypatch, tmp_path: Path, capsys) -> None:
    events_file = _setup(
        monkeypatch,
        tmp_path,
        [_event("1:1", 1), _event("Standup", 2, is_recurring=True)],
    )
    monkeypatch.setattr(
        "sys.argv",
        ["meetingsync", "sync", "--source", "json", "--events-json", str(events_file), "--json"],
    )

    assert cli.main() == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["processed"] == 2
    assert payload["failed"] == 0
    vault = tmp_path / "vault"
    assert (vault / "meetings" / "2024-03-01 - 1-1.md").is_file()
    assert (vault / "recurring" / "Recurring - Standup.md").is_file()
    assert sorted(path.name for path in (vault / "people").iterdir()) == ["A.md", "B.md"]

    log_lines = (tmp_path / "logs" / "sync.log").read_text().splitlines()
    assert any("Wrote meeting note" in line for line in log_lines)
    assert all(line[:4].isdigit() for line in log_lines)


def test_cli_sync_days_limits_window(monkeypatch, tmp_path: Path, capsys) -> None:
    events_file = _setup(monkeypatch, tmp_path, [_event("Soon", 1), _event("Later", 5)])
    monkeypatch.setattr(
        "sys.argv",
        ["meetingsync", "sync", "--source", "json", "--events-json", str(events_file), "--days", "2"],
    )

    assert cli.main() == 0
    output = capsys.readouterr().out
    assert "Synced 1 of 1 appointments" in output
    assert not (tmp_path / "vault" / "meetings" / "2024-03-05 - Later.md").exists()


def test_cli_sync_reports_connection_failure(monkeypatch, tmp_path: Path, capsys) -> None:
    _setup(monkeypatch, tmp_path, [])
    monkeypatch.setattr(
        "sys.argv",
        [
            "meetingsync",
            "sync",
            "--source",
            "json",
            "--events-json",
            str(tmp_path / "missing.json"),
            "--json",
        ],
    )

    assert cli.main() == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["error_kind"] == "CalendarConnectionError"
    assert payload["backend"] == "json"


def test_cli_sync_processing_failure_exits_nonzero(monkeypatch, tmp_path: Path, capsys) -> None:
    events_file = _setup(monkeypatch, tmp_path, [_event("Sync", 1), _event("Next", 2)])
    monkeypatch.setenv("MEETINGSYNC_TEMPLATES_DIR", str(tmp_path / "no-templates"))
    monkeypatch.setattr(
        "sys.argv",
        ["meetingsync", "sync", "--source", "json", "--events-json", str(events_file), "--json"],
    )

    assert cli.main() == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["aborted"] is True
    assert payload["failed"] == 1
    assert payload["skipped"] == 1
    assert "Template not found" in payload["results"][0]["error"]


def test_cli_sync_missing_config(monkeypatch, capsys) -> None:
    monkeypatch.delenv("VAULT_PATH", raising=False)
    monkeypatch.setattr("sys.argv", ["meetingsync", "sync", "--json"])

    assert cli.main() == 1
    payload = json.loads(capsys.readouterr().out)
    assert "VAULT_PATH" in payload["error"]


def test_cli_sync_rejects_negative_days(monkeypatch, tmp_path: Path, capsys) -> None:
    events_file = _setup(monkeypatch, tmp_path, [_event("Soon", 1)])
    monkeypatch.setattr(
        "sys.argv",
        [
            "meetingsync",
            "sync",
            "--source",
            "json",
            "--events-json",
            str(events_file),
            "--days",
            "-1",
            "--json",
        ],
    )

    assert cli.main() == 1
    payload = json.loads(capsys.readouterr().out)
    assert "--days" in payload["error"]
    assert not (tmp_path / "vault" / "meetings").exists()
