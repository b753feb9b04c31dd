# tests/test_task_sync.py

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from clients.errors import CalendarNotFoundError, NotionQueryError
from sync.task_sync import PAGE_ID_KEY, sync_tasks_to_calendar

from .fakes import make_page


def test_new_task_becomes_all_day_event_and_is_marked_synced(config, notion, calendar, today) -> None:
    notion.pages["p1"] = make_page("p1", title="Pay rent", due=today.isoformat())

    result = sync_tasks_to_calendar(config, notion, calendar)

    assert result.created == 1
    (event,) = calendar.events.values()
    assert event.summary == "Pay rent"
    assert event.start == today
    assert event.all_day is True
    assert event.description.split("\n") == ["Type: N/A", "Class: None", "Resources: "]
    assert event.private == {PAGE_ID_KEY: "p1"}
    assert notion.patches == [("p1", {"Synced": {"checkbox": True}})]


def test_description_carries_type_first_class_and_link(config, notion, calendar) -> None:
    notion.pages["p1"] = make_page(
        "p1",
        title="  Lab report  ",
        due="2026-10-20",
        task_type="Assignment",
        class_ids=["cls-1", "cls-2"],
        url="https://example.com/lab",
    )

    sync_tasks_to_calendar(config, notion, calendar)

    (event,) = calendar.events.values()
    assert event.summary == "Lab report"
    assert event.description == "Type: Assignment\nClass: cls-1\nResources: https://example.com/lab"


def test_query_asks_only_for_undone_unsynced_tasks_with_a_due_date(config, notion, calendar) -> None:
    sync_tasks_to_calendar(config, notion, calendar)

    (query,) = notion.queries
    assert query["database_id"] == "db123"
    assert query["page_size"] == 100
    assert query["filter"] == {
        "and": [
            {"property": "Due", "date": {"is_not_empty": True}},
            {"property": "Done", "checkbox": {"equals": False}},
            {"property": "Synced", "checkbox": {"equals": False}},
        ]
    }


def test_synced_and_done_tasks_are_never_reprocessed(config, notion, calendar) -> None:
    notion.pages["synced"] = make_page("synced", due="2026-10-19", synced=True)
    notion.pages["done"] = make_page("done", due="2026-10-19", done=True)
    notion.pages["nodue"] = make_page("nodue", due=None)

    result = sync_tasks_to_calendar(config, notion, calendar)

    assert result.scanned == 0
    assert calendar.events == {}


def test_second_run_does_not_duplicate_events(config, notion, calendar) -> None:
    notion.pages["p1"] = make_page("p1", due="2026-10-19")

    sync_tasks_to_calendar(config, notion, calendar)
    second = sync_tasks_to_calendar(config, notion, calendar)

    assert second.created == 0
    assert len(calendar.events) == 1


@pytest.mark.parametrize(
    "due, expected",
    [
        ("2026-10-21", date(2026, 10, 21)),
        ("2026-10-21T00:00:00.000+00:00", date(2026, 10, 21)),
        ("2026-10-21T23:59:00.000Z", date(2026, 10, 21)),
        ("2026-10-21T09:30:00", date(2026, 10, 21)),
    ],
)
def test_event_date_is_the_local_calendar_date_of_the_due_value(config, notion, calendar, due, expected) -> None:
    notion.pages["p1"] = make_page("p1", due=due)

    sync_tasks_to_calendar(config, notion, calendar)

    (event,) = calendar.events.values()
    assert event.start == expected


def test_due_time_is_shifted_into_the_configured_zone(config, notion, calendar) -> None:
    config = replace(config, time_zone="America/New_York")
    # 02:00 UTC on the 22nd is still the evening of the 21st in New York.
    notion.pages["p1"] = make_page("p1", due="2026-10-22T02:00:00.000+00:00")

    sync_tasks_to_calendar(config, notion, calendar)

    (event,) = calendar.events.values()
    assert event.start == date(2026, 10, 21)


def test_local_zone_follows_dst_at_the_due_instant(config, notion, calendar, new_york_local) -> None:
    config = replace(config, time_zone="")
    # Today is in EDT (-04:00); the due instant is in EST (-05:00).
    notion.pages["p1"] = make_page("p1", due="2026-12-05T23:30:00.000-05:00")

    sync_tasks_to_calendar(config, notion, calendar)

    (event,) = calendar.events.values()
    assert event.start == date(2026, 12, 5)


def test_failed_event_creation_leaves_task_unsynced_and_continues(config, notion, calendar) -> None:
    notion.pages["bad"] = make_page("bad", title="Broken", due="2026-10-19")
    notion.pages["good"] = make_page("good", title="Fine", due="2026-10-19")
    calendar.fail_create_titles.add("Broken")

    result = sync_tasks_to_calendar(config, notion, calendar)

    assert result.failed == 1
    assert result.created == 1
    assert [pid for pid, _ in notion.patches] == ["good"]
    assert notion.pages["bad"]["properties"]["Synced"]["checkbox"] is False


def test_timeout_on_one_task_does_not_stop_the_others(config, notion, calendar) -> None:
    notion.pages["bad"] = make_page("bad", title="Broken", due="2026-10-19")
    notion.pages["good"] = make_page("good", title="Fine", due="2026-10-19")
    calendar.create_errors["Broken"] = TimeoutError("timed out")

    result = sync_tasks_to_calendar(config, notion, calendar)

    assert result.failed == 1
    assert result.created == 1
    assert [e.summary for e in calendar.events.values()] == ["Fine"]
    assert [pid for pid, _ in notion.patches] == ["good"]


def test_event_without_id_is_not_marked_synced(config, notion, calendar) -> None:
    notion.pages["p1"] = make_page("p1", title="Ghost", due="2026-10-19")
    calendar.blank_id_titles.add("Ghost")

    result = sync_tasks_to_calendar(config, notion, calendar)

    assert result.failed == 1
    assert notion.patches == []


def test_patch_failure_is_logged_and_task_retried_next_run(config, notion, calendar) -> None:
    notion.pages["p1"] = make_page("p1", due="2026-10-19")
    notion.fail_patch_for.add("p1")

    first = sync_tasks_to_calendar(config, notion, calendar)
    second = sync_tasks_to_calendar(config, notion, calendar)

    assert first.created == 1
    assert first.patch_failed == 1
    # Accepted best-effort behavior: the event is created again.
    assert second.created == 1
    assert len(calendar.events) == 2


def test_existing_event_check_prevents_duplicate_after_patch_failure(config, notion, calendar) -> None:
    config = replace(config, check_existing_events=True)
    notion.pages["p1"] = make_page("p1", due="2026-10-19")
    notion.fail_patch_for.add("p1")

    sync_tasks_to_calendar(config, notion, calendar)
    notion.fail_patch_for.clear()
    second = sync_tasks_to_calendar(config, notion, calendar)

    assert second.created == 0
    assert second.skipped == 1
    assert len(calendar.events) == 1
    assert notion.pages["p1"]["properties"]["Synced"]["checkbox"] is True


def test_query_failure_aborts_without_touching_calendar(config, notion, calendar) -> None:
    notion.pages["p1"] = make_page("p1", due="2026-10-19")
    notion.fail_query = True

    with pytest.raises(NotionQueryError):
        sync_tasks_to_calendar(config, notion, calendar)

    assert calendar.events == {}


def test_missing_calendar_aborts_before_any_event(config, notion, calendar) -> None:
    notion.pages["p1"] = make_page("p1", due="2026-10-19")
    calendar.missing = True

    with pytest.raises(CalendarNotFoundError):
        sync_tasks_to_calendar(config, notion, calendar)

    assert notion.patches == []
