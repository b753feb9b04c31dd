"""Settings for a sync run, loaded from environment variables (+ optional .env).

One ``SyncConfig`` is built at process start and handed to every component.
Nothing reads the environment after that.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from clients.errors import SyncError

ENV_PREFIX = "NOTION_GCAL"
SCRIPT_DIR = Path(__file__).resolve().parent.parent

# Notion never returns more than 100 results per query page.
MAX_PAGE_SIZE = 100


class ConfigError(SyncError):
    """Required settings are missing or invalid."""


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _first(env: Mapping[str, str], *names: str, default: str = "") -> str:
    for n in names:
        v = env.get(n)
        if v is not None and v.strip() != "":
            return v.strip()
    return default


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class SyncConfig:
    notion_token: str
    database_id: str
    calendar_id: str = "primary"
    title_property: str = "Task"
    due_property: str = "Due"
    done_property: str = "Done"
    synced_property: str = "Synced"
    type_property: str = "Type"
    class_property: str = "Class"
    resources_property: str = "Links/Resources"
    review_event_title: str = "Daily Task Review"
    review_window_days: int = 7
    page_size: int = MAX_PAGE_SIZE
    notion_version: str = "2022-06-28"
    time_zone: str = ""
    google_credentials_path: str = str(SCRIPT_DIR / "credentials.json")
    google_token_path: str = str(SCRIPT_DIR / "token_calendar.pickle")
    check_existing_events: bool = False
    log_dir: str = ""
    log_level: str = "INFO"

    @property
    def tzinfo(self) -> Optional[tzinfo]:
        """Zone used for "today" and for turning due date-times into days.

        None means the process local zone; callers pass it to
        ``astimezone()`` / ``datetime.now()`` so DST rules apply per instant.
        """
        if self.time_zone:
            return ZoneInfo(self.time_zone)
        return None

    def redacted(self) -> dict:
        data = asdict(self)
        if data["notion_token"]:
            data["notion_token"] = data["notion_token"][:4] + "…"
        return data


def load_config(env: Optional[Mapping[str, str]] = None) -> SyncConfig:
    """Build the config from ``env`` (defaults to ``os.environ`` after .env)."""
    if env is None:
        load_dotenv(override=False)
        env = os.environ

    token = _first(env, _k("NOTION_TOKEN"), "NOTION_TOKEN")
    database_id = _first(env, _k("DATABASE_ID"), "NOTION_DATABASE_ID")
    if not token:
        raise ConfigError("NOTION_TOKEN is not set")
    if not database_id:
        raise ConfigError("NOTION_GCAL_DATABASE_ID is not set")

    time_zone = _first(env, _k("TIME_ZONE"))
    if time_zone:
        try:
            ZoneInfo(time_zone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"Unknown time zone {time_zone!r}") from e

    defaults = SyncConfig(notion_token=token, database_id=database_id)
    page_size = _int(env, _k("PAGE_SIZE"), defaults.page_size)
    window = _int(env, _k("REVIEW_WINDOW_DAYS"), defaults.review_window_days)

    return SyncConfig(
        notion_token=token,
        database_id=database_id,
        calendar_id=_first(env, _k("CALENDAR_ID"), default=defaults.calendar_id),
        title_property=_first(env, _k("TITLE_PROPERTY"), default=defaults.title_property),
        due_property=_first(env, _k("DUE_PROPERTY"), default=defaults.due_property),
        done_property=_first(env, _k("DONE_PROPERTY"), default=defaults.done_property),
        synced_property=_first(env, _k("SYNCED_PROPERTY"), default=defaults.synced_property),
        type_property=_first(env, _k("TYPE_PROPERTY"), default=defaults.type_property),
        class_property=_first(env, _k("CLASS_PROPERTY"), default=defaults.class_property),
        resources_property=_first(
            env, _k("RESOURCES_PROPERTY"), default=defaults.resources_property
        ),
        review_event_title=_first(env, _k("REVIEW_TITLE"), default=defaults.review_event_title),
        review_window_days=max(1, window),
        page_size=min(MAX_PAGE_SIZE, max(1, page_size)),
        notion_version=_first(env, _k("NOTION_VERSION"), default=defaults.notion_version),
        time_zone=time_zone,
        google_credentials_path=_first(
            env, _k("GOOGLE_CREDENTIALS"), default=defaults.google_credentials_path
        ),
        google_token_path=_first(env, _k("GOOGLE_TOKEN"), default=defaults.google_token_path),
        check_existing_events=_bool(env, _k("CHECK_EXISTING_EVENTS"), False),
        log_dir=_first(env, _k("LOG_DIR")),
        log_level=_first(env, _k("LOG_LEVEL"), default=defaults.log_level).upper(),
    )
