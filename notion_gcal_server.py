import argparse
import logging
import os
import sys
from typing import Any, Dict, List, Optional

# Add the script directory to Python path for reliable imports
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
if SCRIPT_DIR not in sys.path:
    sys.path.insert(0, SCRIPT_DIR)

from mcp.server.fastmcp import FastMCP

from clients.errors import SyncError
from sync import daily_review, runner, task_sync
from sync.config import load_config
from sync.logging_setup import setup_logging

logger = logging.getLogger("notion_gcal_server")

mcp = FastMCP("Notion_GCal_Sync")

# Built on first use
config = None
notion_client = None
calendar_client = None


def get_config():
    global config
    if config is None:
        config = load_config()
    return config


def get_notion_client():
    global notion_client
    if notion_client is None:
        notion_client = runner.build_notion_client(get_config())
    return notion_client


def get_calendar_client():
    global calendar_client
    if calendar_client is None:
        calendar_client = runner.build_calendar_client(get_config())
    return calendar_client


def get_clients():
    return get_notion_client(), get_calendar_client()


@mcp.tool()
def debug_config() -> Dict[str, Any]:
    """Show the active settings (token redacted) and whether the Google files exist."""
    try:
        cfg = get_config()
        return {
            'script_directory': SCRIPT_DIR,
            'config': cfg.redacted(),
            'google_credentials_exists': os.path.exists(cfg.google_credentials_path),
            'google_token_exists': os.path.exists(cfg.google_token_path),
        }
    except Exception as e:
        return {'error': str(e)}


@mcp.tool()
def sync_tasks_to_calendar() -> Dict[str, Any]:
    """Create all-day calendar events for unsynced Notion tasks and mark them synced."""
    try:
        notion, calendar = get_clients()
        return task_sync.sync_tasks_to_calendar(get_config(), notion, calendar).to_dict()
    except Exception as e:
        return {'error': str(e)}


@mcp.tool()
def update_daily_task_review() -> Dict[str, Any]:
    """Create or update today's Daily Task Review event."""
    try:
        notion, calendar = get_clients()
        return daily_review.update_daily_review(get_config(), notion, calendar).to_dict()
    except Exception as e:
        return {'error': str(e)}


@mcp.tool()
def preview_daily_task_review() -> Dict[str, Any]:
    """Build today's review summary without writing to the calendar."""
    try:
        notion = get_notion_client()
        return {'summary': daily_review.preview_daily_review(get_config(), notion)}
    except Exception as e:
        return {'error': str(e)}


@mcp.tool()
def run_daily_sync() -> Dict[str, Any]:
    """Run the task sync and then the daily review, each independently."""
    try:
        notion, calendar = get_clients()
        return runner.run_daily_sync(get_config(), notion, calendar).to_dict()
    except Exception as e:
        return {'error': str(e)}


@mcp.resource("notion-gcal://setup-instructions")
def setup_instructions() -> str:
    """Instructions for setting up the Notion integration and Calendar credentials."""
    return """
# Notion → Google Calendar Sync Setup

## 1. Notion
1. Create an internal integration at https://www.notion.so/my-integrations
2. Share the task database with it
3. Set NOTION_TOKEN and NOTION_GCAL_DATABASE_ID
4. The database needs: Task (title), Due (date), Done (checkbox), Synced (checkbox),
   Type (select), Class (relation), Links/Resources (url)

## 2. Google Calendar
1. Enable the Calendar API in Google Cloud Console
2. Create an OAuth client (Desktop) and save it as 'credentials.json'
3. Set NOTION_GCAL_CALENDAR_ID (defaults to 'primary')
4. The first run opens a browser on port 8081; the token is cached in token_calendar.pickle

## 3. Scheduling
Run `notion-gcal-sync` once a day (cron, systemd timer, ...).

## 4. Available Tools
- sync_tasks_to_calendar(): push unsynced tasks as all-day events
- update_daily_task_review(): upsert today's review event
- preview_daily_task_review(): summary text only
- run_daily_sync(): both, in order
- debug_config(): active settings
"""


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="notion-gcal-sync",
        description="Sync Notion tasks to Google Calendar and refresh the daily review event.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", action="store_true", help="print today's review summary and exit")
    mode.add_argument("--serve", action="store_true", help="run as an MCP server instead of syncing once")
    args = parser.parse_args(argv)

    try:
        cfg = get_config()
    except SyncError as e:
        setup_logging()
        logger.error("Configuration error: %s", e)
        return 2

    setup_logging(cfg.log_level, cfg.log_dir or None)

    if args.serve:
        mcp.run()
        return 0

    if args.dry_run:
        try:
            notion = get_notion_client()
            print(daily_review.preview_daily_review(cfg, notion))
        except SyncError as e:
            logger.error("Preview failed: %s", e)
            return 1
        return 0

    report = runner.run_daily_sync(cfg)
    if not report.ok:
        logger.error("Run finished with errors: %s", "; ".join(report.errors))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
