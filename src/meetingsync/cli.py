import argparse
from dataclasses import replace
from datetime import UTC, datetime
import json
import logging
import os
from pathlib import Path

from meetingsync.calendar.backends import CalendarError, build_source
from meetingsync.config import Config, ConfigError, load_config
from meetingsync.doctor import run_doctor
from meetingsync.sync import run_sync


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def registered_commands() -> list[str]:
    return ["sync", "doctor"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="meetingsync")
    sub = parser.add_subparsers(dest="command")

    sync_parser = sub.add_parser("sync")
    sync_parser.add_argument("--days", type=int, default=0)
    sync_parser.add_argument("--source", choices=["eventkit", "json"], default="eventkit")
    sync_parser.add_argument("--events-json")
    sync_parser.add_argument("--continue-on-error", action="store_true")
    sync_parser.add_argument("--json", action="store_true")

    doctor_parser = sub.add_parser("doctor")
    doctor_parser.add_argument("--json", action="store_true")

    return parser


def configure_logging(log_file: Path) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        filename=str(log_file),
        filemode="a",
        encoding="utf-8",
        force=True,
    )


def _print_payload(payload: dict[str, object], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload))
    else:
        print(payload)


def _now_utc() -> datetime:
    override = os.environ.get("MEETINGSYNC_NOW_ISO")
    if override:
        return datetime.fromisoformat(override)
    return datetime.now(UTC)


def _format_sync_human(payload: dict[str, object]) -> str:
    lines = [
        f"Synced {payload['processed']} of {payload['appointments']} appointments "
        f"({payload['failed']} failed, {payload['skipped']} skipped)."
    ]
    for result in payload.get("results", []):
        if not isinstance(result, dict):
            continue
        if result.get("ok"):
            lines.append(f"- [OK] {result.get('note_path')}")
        else:
            lines.append(f"- [FAIL] {result.get('subject')}: {result.get('error')}")
    if payload.get("aborted"):
        lines.append("Batch aborted after the first failure.")
    return "\n".join(lines)


def _format_doctor_human(payload: dict[str, object]) -> str:
    status = "OK" if payload.get("ok") else "NOT OK"
    lines = [f"Doctor status: {status}"]
    for check in payload.get("checks", []):
        if not isinstance(check, dict):
            continue
        marker = "PASS" if check.get("ok") else "FAIL"
        name = check.get("name", "unknown")
        message = check.get("message", "")
        hint = check.get("hint", "")
        lines.append(f"- [{marker}] {name}: {message}")
        if hint:
            lines.append(f"  hint: {hint}")
    return "\n".join(lines)


def _sync_config(args: argparse.Namespace) -> Config:
    cfg = load_config()
    if args.days < 0:
        raise ConfigError(f"--days must be positive, got {args.days}.")
    if args.days > 0:
        cfg = replace(cfg, window_days=args.days)
    return cfg


def _run_sync_command(args: argparse.Namespace) -> int:
    try:
        cfg = _sync_config(args)
    except ConfigError as exc:
        _print_payload({"error": str(exc)}, args.json)
        return 1
    configure_logging(cfg.log_file)

    try:
        source = build_source(
            args.source,
            events_file=Path(args.events_json).expanduser() if args.events_json else None,
        )
    except ValueError as exc:
        _print_payload({"error": str(exc)}, args.json)
        return 1

    try:
        result = run_sync(
            config=cfg,
            source=source,
            now=_now_utc(),
            failure_mode="continue" if args.continue_on_error else "stop",
        )
    except CalendarError as exc:
        _print_payload(exc.to_payload(), args.json)
        return 1

    payload = result.to_payload()
    if args.json:
        _print_payload(payload, True)
    else:
        print(_format_sync_human(payload))
    return 0 if result.ok else 1


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "sync":
        return _run_sync_command(args)
    if args.command == "doctor":
        payload = run_doctor()
        if args.json:
            _print_payload(payload, True)
        else:
            print(_format_doctor_human(payload))
        return 0 if payload.get("ok") else 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
