# tests/test_runner.py

from __future__ import annotations

import notion_gcal_server
from sync import runner
from sync.config import ConfigError

from .fakes import make_page


def test_runs_sync_then_review(config, notion, calendar, today) -> None:
    notion.pages["p1"] = make_page("p1", title="Pay rent", due=today.isoformat())

    report = runner.run_daily_sync(config, notion, calendar)

    assert report.ok
    assert report.sync.created == 1
    assert report.review.created is True
    titles = sorted(e.summary for e in calendar.events.values())
    assert titles == ["Daily Task Review", "Pay rent"]


def test_review_still_runs_when_sync_blows_up(config, notion, calendar, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("sync exploded")

    monkeypatch.setattr(runner, "sync_tasks_to_calendar", boom)

    report = runner.run_daily_sync(config, notion, calendar)

    assert not report.ok
    assert report.errors == ["sync: sync exploded"]
    assert report.review is not None
    assert report.to_dict()["sync"] is None


def test_query_failure_is_reported_for_both_components(config, notion, calendar) -> None:
    notion.fail_query = True

    report = runner.run_daily_sync(config, notion, calendar)

    assert [e.split(":")[0] for e in report.errors] == ["sync", "review"]
    assert calendar.events == {}


def test_client_setup_failure_is_reported(config, monkeypatch) -> None:
    def no_credentials(cfg):
        raise FileNotFoundError("credentials.json not found")

    monkeypatch.setattr(runner, "build_calendar_client", no_credentials)
    monkeypatch.setattr(runner, "build_notion_client", lambda cfg: object())

    report = runner.run_daily_sync(config)

    assert report.errors == ["setup: credentials.json not found"]


def test_main_exit_codes(config, notion, calendar, monkeypatch) -> None:
    monkeypatch.setattr(notion_gcal_server, "config", config)
    monkeypatch.setattr(notion_gcal_server, "setup_logging", lambda *a, **k: None)
    monkeypatch.setattr(runner, "build_notion_client", lambda cfg: notion)
    monkeypatch.setattr(runner, "build_calendar_client", lambda cfg: calendar)

    assert notion_gcal_server.main([]) == 0

    notion.fail_query = True
    assert notion_gcal_server.main([]) == 1


def test_main_reports_config_errors(monkeypatch) -> None:
    def bad_config():
        raise ConfigError("NOTION_TOKEN is not set")

    monkeypatch.setattr(notion_gcal_server, "config", None)
    monkeypatch.setattr(notion_gcal_server, "load_config", bad_config)
    monkeypatch.setattr(notion_gcal_server, "setup_logging", lambda *a, **k: None)

    assert notion_gcal_server.main([]) == 2


def test_dry_run_prints_summary(config, notion, calendar, monkeypatch, capsys, today) -> None:
    notion.pages["p1"] = make_page("p1", title="Pay rent", due="2020-01-01")
    monkeypatch.setattr(notion_gcal_server, "config", config)
    monkeypatch.setattr(notion_gcal_server, "notion_client", notion)
    monkeypatch.setattr(notion_gcal_server, "setup_logging", lambda *a, **k: None)

    assert notion_gcal_server.main(["--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "🔴 Overdue (1)" in out
    assert calendar.events == {}


def test_mcp_tool_wraps_errors(config, notion, calendar, monkeypatch) -> None:
    notion.fail_query = True
    monkeypatch.setattr(notion_gcal_server, "config", config)
    monkeypatch.setattr(notion_gcal_server, "notion_client", notion)
    monkeypatch.setattr(notion_gcal_server, "calendar_client", calendar)

    result = notion_gcal_server.sync_tasks_to_calendar()

    assert "error" in result
