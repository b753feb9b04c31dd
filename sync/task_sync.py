"""Push unsynced Notion tasks to the calendar as all-day events.

Each task with a due date that is neither done nor synced gets one event.
After the event exists the task's Synced checkbox is set, which is what keeps
it out of the next run's query. If that patch fails the event stays and the
task comes back next run (a duplicate event is possible then).
"""

from __future__ import annotations

import logging

from clients.errors import CalendarNotFoundError, NotionQueryError, NotionUpdateError
from clients.models import SyncResult
from clients.notion_client import parse_task, unsynced_tasks_filter

logger = logging.getLogger(__name__)

# Private extended property stamped on every event this module creates.
PAGE_ID_KEY = "notionPageId"


def sync_tasks_to_calendar(config, notion, calendar) -> SyncResult:
    result = SyncResult()

    try:
        pages = notion.query_database(
            config.database_id,
            filter=unsynced_tasks_filter(config),
            page_size=config.page_size,
        )
    except NotionQueryError as e:
        logger.error("Notion query failed (status=%s): %s", e.status, e)
        raise

    try:
        calendar.get_calendar(config.calendar_id)
    except CalendarNotFoundError as e:
        logger.error("%s", e)
        raise

    tz = config.tzinfo
    for page in pages:
        result.scanned += 1
        task = parse_task(page, config)
        day = task.due_date(tz)
        if day is None:
            logger.debug("Skipping %s: no usable due date (%r)", task.id, task.due)
            result.skipped += 1
            continue

        if config.check_existing_events:
            try:
                existing = calendar.find_events_by_private_property(config.calendar_id, PAGE_ID_KEY, task.id)
            except Exception as e:
                logger.error("Duplicate check failed for %r: %r", task.title, e)
                result.failed += 1
                continue
            if existing:
                logger.info("Event for %r already exists (%s), only marking synced", task.title, existing[0].id)
                result.skipped += 1
                _mark_synced(notion, config, task.id, result)
                continue

        try:
            event = calendar.create_all_day_event(
                config.calendar_id,
                task.title,
                day,
                task.description(),
                private={PAGE_ID_KEY: task.id},
            )
        except Exception as e:
            # A failure on one task must not stop the rest.
            logger.error("Failed to create event for %r: %r", task.title, e)
            result.failed += 1
            continue

        if not event or not event.id:
            logger.error("Calendar returned no event for %r, leaving it unsynced", task.title)
            result.failed += 1
            continue

        logger.info("Created event %s for %r on %s", event.id, task.title, day.isoformat())
        result.created += 1
        result.event_ids.append(event.id)
        _mark_synced(notion, config, task.id, result)

    logger.info(
        "Task sync done: %d scanned, %d created, %d skipped, %d failed, %d unsynced after patch errors",
        result.scanned, result.created, result.skipped, result.failed, result.patch_failed,
    )
    return result


def _mark_synced(notion, config, page_id: str, result: SyncResult) -> None:
    try:
        notion.mark_synced(page_id, config.synced_property)
    except NotionUpdateError as e:
        logger.error("Failed to patch page %s (status=%s): %s", page_id, e.status, e)
        result.patch_failed += 1
    except Exception as e:
        logger.error("Failed to patch page %s: %r", page_id, e)
        result.patch_failed += 1
