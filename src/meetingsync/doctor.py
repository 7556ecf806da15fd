from __future__ import annotations

import os
from pathlib import Path

from meetingsync.calendar import backends
from meetingsync.config import ConfigError, load_config
from meetingsync.note.template import TemplateStore


def _nearest_existing(path: Path) -> Path:
    candidate = path
    while not candidate.exists() and candidate != candidate.parent:
        candidate = candidate.parent
    return candidate


def _calendar_permission_check() -> dict[str, object]:
    if backends.EKEventStore is None:
        return {
            "name": "calendar_permissions",
            "ok": False,
            "message": "EventKit framework not available.",
            "hint": "Install pyobjc-framework-EventKit, or sync from an exported file with --source json.",
        }
    auth_status = backends.EKEventStore.authorizationStatusForEntityType_(
        backends.EKEntityTypeEvent
    )
    # 0=NotDetermined, 1=Restricted, 2=Denied, 3=WriteOnly/Authorized, 4=FullAccess.
    status_names = {
        0: "not determined",
        1: "restricted",
        2: "denied",
        3: "authorized",
        4: "authorized (full access)",
    }
    return {
        "name": "calendar_permissions",
        "ok": auth_status in (3, 4),
        "message": f"Calendar access {status_names.get(auth_status, 'unknown')}.",
        "hint": "Grant calendar access in System Settings > Privacy & Security > Calendars.",
    }


def run_doctor(env: dict[str, str] | None = None) -> dict[str, object]:
    checks: list[dict[str, object]] = []

    try:
        cfg = load_config(env)
    except ConfigError as exc:
        checks.append(
            {
                "name": "config",
                "ok": False,
                "message": str(exc),
                "hint": "Set VAULT_PATH in your configured env file.",
            }
        )
        return {"ok": False, "checks": checks}

    checks.append(
        {
            "name": "vault_path",
            "ok": cfg.vault_path.is_dir(),
            "message": f"Vault found at {cfg.vault_path}."
            if cfg.vault_path.is_dir()
            else f"Vault directory does not exist: {cfg.vault_path}.",
            "hint": "Point VAULT_PATH at an existing vault directory.",
        }
    )

    missing = TemplateStore(cfg.templates_dir).missing()
    checks.append(
        {
            "name": "templates",
            "ok": not missing,
            "message": "All note templates present."
            if not missing
            else f"Missing templates in {cfg.templates_dir}: {', '.join(missing)}.",
            "hint": "Set MEETINGSYNC_TEMPLATES_DIR to a directory with person.md, meeting.md and recurring.md.",
        }
    )

    log_dir = _nearest_existing(cfg.log_file.parent)
    log_ok = os.access(log_dir, os.W_OK)
    checks.append(
        {
            "name": "log_file",
            "ok": log_ok,
            "message": f"Log file location is writable: {cfg.log_file}."
            if log_ok
            else f"Cannot write log file under {log_dir}.",
            "hint": "Set MEETINGSYNC_LOG_FILE to a writable path.",
        }
    )

    eventkit_ok = backends.eventkit_available()
    checks.append(
        {
            "name": "calendar_backend",
            "ok": eventkit_ok,
            "message": "EventKit backend is available."
            if eventkit_ok
            else "EventKit backend unavailable.",
            "hint": "Install pyobjc-framework-EventKit on macOS, or use `meetingsync sync --source json`.",
        }
    )
    if eventkit_ok:
        checks.append(_calendar_permission_check())

    ok = all(bool(check["ok"]) for check in checks)
    return {"ok": ok, "checks": checks}
