"""Daily review event: one all-day event per day listing what is overdue or
due in the next week, grouped by urgency.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional

from clients.errors import CalendarNotFoundError, NotionQueryError
from clients.models import CalendarEvent, ReviewGroup, ReviewResult, TaskRecord, Urgency
from clients.notion_client import due_ascending_sort, parse_task, review_window_filter

logger = logging.getLogger(__name__)

SUMMARY_BANNER = "🧾 Task Summary (Overdue + Next 7 Days)"
ALL_CLEAR = "✅ No overdue tasks and nothing due in the next 7 days."

# Display order of the groups in the summary.
GROUP_LAYOUT = (
    (Urgency.OVERDUE, "Overdue", "🔴"),
    (Urgency.TODAY, "Due Today", "🟡"),
    (Urgency.TOMORROW, "Due Tomorrow", "🟠"),
    (Urgency.UPCOMING, "Due in Next 7 Days", "🟢"),
)

DEFAULT_WINDOW_DAYS = 7


def day_offset(due: date, today: date) -> int:
    return (due - today).days


def label_for_offset(offset: int) -> str:
    if offset < 0:
        return "Overdue"
    if offset == 0:
        return "Due today"
    if offset == 1:
        return "Due tomorrow"
    return f"Due in {offset} days"


def urgency_for_offset(offset: int, window: int = DEFAULT_WINDOW_DAYS) -> Optional[Urgency]:
    """Bucket for an offset; None past the window (dropped from the summary)."""
    if offset < 0:
        return Urgency.OVERDUE
    if offset == 0:
        return Urgency.TODAY
    if offset == 1:
        return Urgency.TOMORROW
    if offset <= window:
        return Urgency.UPCOMING
    return None


def format_review_date(day: date) -> str:
    """e.g. "Sun, Oct 18"."""
    return f"{day:%a}, {day:%b} {day.day}"


def format_review_line(title: str, due: date, offset: int) -> str:
    return f"• {title} — {format_review_date(due)} ({label_for_offset(offset)})"


def group_tasks(tasks: Iterable[TaskRecord], today: date, tz: Optional[tzinfo],
                window: int = DEFAULT_WINDOW_DAYS) -> List[ReviewGroup]:
    groups = {urgency: ReviewGroup(urgency, heading, emoji) for urgency, heading, emoji in GROUP_LAYOUT}
    for task in tasks:
        due = task.due_date(tz)
        if due is None:
            continue
        offset = day_offset(due, today)
        urgency = urgency_for_offset(offset, window)
        if urgency is None:
            logger.debug("Dropping %r from the review, due in %d days", task.title, offset)
            continue
        groups[urgency].lines.append(format_review_line(task.title, due, offset))
    return [groups[urgency] for urgency, _, _ in GROUP_LAYOUT]


def compose_summary(groups: Iterable[ReviewGroup]) -> str:
    sections = [
        f"{g.emoji} {g.heading} ({len(g.lines)})\n" + "\n".join(g.lines)
        for g in groups
        if g.lines
    ]
    if not sections:
        return ALL_CLEAR
    return f"{SUMMARY_BANNER}\n\n" + "\n\n".join(sections)


def find_review_event(events: Iterable[CalendarEvent], title: str) -> Optional[CalendarEvent]:
    """Exact title match wins; otherwise the first event whose title contains it."""
    events = list(events)
    exact = [e for e in events if (e.summary or "").strip() == title]
    partial = [e for e in events if title in (e.summary or "")]
    candidates = exact or partial
    if not candidates:
        return None
    if len(partial) > 1:
        logger.warning(
            "%d events today look like %r; updating %s and leaving the rest alone",
            len(partial), title, candidates[0].id,
        )
    return candidates[0]


def _today(config, today: Optional[date]) -> date:
    return today if today is not None else datetime.now(config.tzinfo).date()


def _fetch_review_tasks(config, notion, today: date) -> List[TaskRecord]:
    boundary = today + timedelta(days=config.review_window_days)
    try:
        pages = notion.query_database(
            config.database_id,
            filter=review_window_filter(config, boundary),
            sorts=due_ascending_sort(config),
            page_size=config.page_size,
        )
    except NotionQueryError as e:
        logger.error("Notion query failed (status=%s): %s", e.status, e)
        raise
    return [parse_task(page, config) for page in pages]


def preview_daily_review(config, notion, today: Optional[date] = None) -> str:
    """Summary text for today without touching the calendar."""
    today = _today(config, today)
    tasks = _fetch_review_tasks(config, notion, today)
    return compose_summary(group_tasks(tasks, today, config.tzinfo, config.review_window_days))


def update_daily_review(config, notion, calendar, today: Optional[date] = None) -> ReviewResult:
    """Create or refresh today's review event."""
    today = _today(config, today)
    tasks = _fetch_review_tasks(config, notion, today)
    summary = compose_summary(group_tasks(tasks, today, config.tzinfo, config.review_window_days))

    try:
        calendar.get_calendar(config.calendar_id)
    except CalendarNotFoundError as e:
        logger.error("%s", e)
        raise

    todays = calendar.get_events_for_day(config.calendar_id, today, config.tzinfo)
    existing = find_review_event(todays, config.review_event_title)
    if existing is None:
        event = calendar.create_all_day_event(config.calendar_id, config.review_event_title, today, summary)
        logger.info("Created review event %s for %s (%d tasks)", event.id, today.isoformat(), len(tasks))
        return ReviewResult(summary=summary, event_id=event.id, created=True, task_count=len(tasks))

    calendar.update_event_description(config.calendar_id, existing.id, summary)
    logger.info("Updated review event %s for %s (%d tasks)", existing.id, today.isoformat(), len(tasks))
    return ReviewResult(summary=summary, event_id=existing.id, created=False, task_count=len(tasks))
