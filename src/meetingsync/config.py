from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Config:
    vault_path: Path
    meetings_dir: Path
    people_dir: Path
    recurring_dir: Path
    templates_dir: Path
    log_file: Path
    window_days: int = 7
    datetime_format: str = "%Y-%m-%d %H:%M"
    person_log_mode: str = "once"


REQUIRED_ENV_KEYS = ("VAULT_PATH",)
DEFAULT_LOG_FILE = "~/.local/state/meetingsync/sync.log"
DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
PERSON_LOG_MODES = ("once", "block")


def _normalize_path(path_value: str) -> Path:
    return Path(os.path.expandvars(path_value)).expanduser().resolve()


def _window_days(raw: str) -> int:
    try:
        days = int(raw)
    except ValueError as exc:
        raise ConfigError(f"MEETINGSYNC_WINDOW_DAYS must be an integer, got {raw!r}.") from exc
    if days <= 0:
        raise ConfigError(f"MEETINGSYNC_WINDOW_DAYS must be positive, got {days}.")
    return days


def load_config(env: dict[str, str] | None = None) -> Config:
    effective_env = dict(os.environ if env is None else env)
    missing = [key for key in REQUIRED_ENV_KEYS if not effective_env.get(key)]
    if missing:
        raise ConfigError(
            "Missing required config keys: "
            + ", ".join(missing)
            + ". Set them in your environment or .env file."
        )

    person_log_mode = effective_env.get("MEETINGSYNC_PERSON_LOG_MODE", "once").strip().lower()
    if person_log_mode not in PERSON_LOG_MODES:
        raise ConfigError(
            f"MEETINGSYNC_PERSON_LOG_MODE must be one of {', '.join(PERSON_LOG_MODES)}, "
            f"got {person_log_mode!r}."
        )

    vault_path = _normalize_path(effective_env["VAULT_PATH"])
    templates_dir = effective_env.get("MEETINGSYNC_TEMPLATES_DIR", "").strip()
    return Config(
        vault_path=vault_path,
        meetings_dir=vault_path / effective_env.get("MEETINGSYNC_MEETINGS_FOLDER", "meetings"),
        people_dir=vault_path / effective_env.get("MEETINGSYNC_PEOPLE_FOLDER", "people"),
        recurring_dir=vault_path / effective_env.get("MEETINGSYNC_RECURRING_FOLDER", "recurring"),
        templates_dir=_normalize_path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR,
        log_file=_normalize_path(effective_env.get("MEETINGSYNC_LOG_FILE", DEFAULT_LOG_FILE)),
        window_days=_window_days(effective_env.get("MEETINGSYNC_WINDOW_DAYS", "7")),
        datetime_format=effective_env.get("MEETINGSYNC_DATETIME_FORMAT", "%Y-%m-%d %H:%M"),
        person_log_mode=person_log_mode,
    )
