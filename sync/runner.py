"""Entry point run by the daily trigger: task sync first, then the review."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from clients.calendar_client import CalendarClient
from clients.models import ReviewResult, SyncResult
from clients.notion_client import NotionClient

from .daily_review import update_daily_review
from .task_sync import sync_tasks_to_calendar

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    sync: Optional[SyncResult] = None
    review: Optional[ReviewResult] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict:
        return {
            'ok': self.ok,
            'sync': self.sync.to_dict() if self.sync else None,
            'review': self.review.to_dict() if self.review else None,
            'errors': list(self.errors),
        }


def build_notion_client(config) -> NotionClient:
    return NotionClient(config.notion_token, notion_version=config.notion_version)


def build_calendar_client(config) -> CalendarClient:
    return CalendarClient(config.google_credentials_path, config.google_token_path)


def run_daily_sync(config, notion=None, calendar=None) -> RunReport:
    """Run both components; a failure in one does not stop the other."""
    report = RunReport()

    try:
        notion = notion or build_notion_client(config)
        calendar = calendar or build_calendar_client(config)
    except Exception as e:
        logger.exception("Could not set up API clients")
        report.errors.append(f"setup: {e}")
        return report

    try:
        report.sync = sync_tasks_to_calendar(config, notion, calendar)
    except Exception as e:
        logger.exception("Task sync aborted")
        report.errors.append(f"sync: {e}")

    try:
        report.review = update_daily_review(config, notion, calendar)
    except Exception as e:
        logger.exception("Daily review aborted")
        report.errors.append(f"review: {e}")

    return report
