"""
Notion API client for the task database.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
from notion_client import APIResponseError, Client, RequestTimeoutError, UnknownHTTPResponseError

from .errors import NotionQueryError, NotionUpdateError
from .models import DEFAULT_CLASS, DEFAULT_RESOURCES, DEFAULT_TITLE, DEFAULT_TYPE, TaskRecord

logger = logging.getLogger(__name__)

NOTION_API_VERSION = "2022-06-28"
MAX_PAGE_SIZE = 100

_SDK_ERRORS = (APIResponseError, UnknownHTTPResponseError, RequestTimeoutError, httpx.HTTPError)


class NotionClient:
    def __init__(self, token: str, notion_version: str = NOTION_API_VERSION, client: Any = None):
        self.notion_version = notion_version
        if client is None:
            # The sync is re-run daily; the SDK must not retry behind our back.
            client = Client(
                auth=token,
                notion_version=notion_version,
                retry=False,
                logger=logging.getLogger("notion_client"),
            )
        self.client = client

    def query_database(self, database_id: str, filter: Dict, sorts: Optional[List[Dict]] = None,
                       page_size: int = MAX_PAGE_SIZE) -> List[Dict]:
        """Return the first page of results for a database query.

        Anything past ``page_size`` (at most 100) is not fetched.
        """
        body: Dict[str, Any] = {
            "filter": filter,
            "page_size": max(1, min(MAX_PAGE_SIZE, page_size)),
        }
        if sorts:
            body["sorts"] = sorts

        try:
            response = self.client.request(
                path=f"databases/{database_id}/query",
                method="POST",
                body=body,
            )
        except _SDK_ERRORS as e:
            raise NotionQueryError(f"Notion query failed: {e}", status=getattr(e, "status", None)) from e

        results = (response or {}).get("results") or []
        logger.debug("Notion query on %s returned %d page(s)", database_id, len(results))
        return results

    def update_page_properties(self, page_id: str, properties: Dict) -> Dict:
        """Patch properties on a page (e.g. set Synced = true)."""
        try:
            return self.client.pages.update(page_id=page_id, properties=properties)
        except _SDK_ERRORS as e:
            raise NotionUpdateError(page_id, str(e), status=getattr(e, "status", None)) from e

    def mark_synced(self, page_id: str, synced_property: str = "Synced") -> Dict:
        return self.update_page_properties(page_id, {synced_property: {"checkbox": True}})


def _property(properties: Dict, name: str, kind: str) -> Any:
    prop = properties.get(name)
    if not isinstance(prop, dict):
        return None
    return prop.get(kind)


def _extract_title(properties: Dict, title_property: str) -> str:
    """First title segment of the page, trimmed."""
    segments = _property(properties, title_property, "title")
    if isinstance(segments, list) and segments and isinstance(segments[0], dict):
        text = (segments[0].get("plain_text") or "").strip()
        if text:
            return text
    return DEFAULT_TITLE


def parse_task(page: Dict, config: Any) -> TaskRecord:
    """Turn a raw Notion page into a TaskRecord.

    Missing or oddly-shaped properties fall back to the documented defaults
    instead of raising.
    """
    properties = page.get("properties") or {}

    due = _property(properties, config.due_property, "date")
    due_start = due.get("start") if isinstance(due, dict) else None

    select = _property(properties, config.type_property, "select")
    task_type = (select.get("name") if isinstance(select, dict) else None) or DEFAULT_TYPE

    relation = _property(properties, config.class_property, "relation")
    class_id = DEFAULT_CLASS
    if isinstance(relation, list) and relation and isinstance(relation[0], dict):
        class_id = relation[0].get("id") or DEFAULT_CLASS

    return TaskRecord(
        id=page.get("id", ""),
        title=_extract_title(properties, config.title_property),
        due=due_start or None,
        done=bool(_property(properties, config.done_property, "checkbox")),
        synced=bool(_property(properties, config.synced_property, "checkbox")),
        task_type=task_type,
        class_id=class_id,
        resource_url=_property(properties, config.resources_property, "url") or DEFAULT_RESOURCES,
        url=page.get("url") or "",
    )


def unsynced_tasks_filter(config: Any) -> Dict:
    """Due set, not done, not yet pushed to the calendar."""
    return {
        "and": [
            {"property": config.due_property, "date": {"is_not_empty": True}},
            {"property": config.done_property, "checkbox": {"equals": False}},
            {"property": config.synced_property, "checkbox": {"equals": False}},
        ]
    }


def review_window_filter(config: Any, boundary: date) -> Dict:
    """Undone tasks due on or before ``boundary`` (overdue ones included)."""
    return {
        "and": [
            {"property": config.due_property, "date": {"is_not_empty": True}},
            {"property": config.due_property, "date": {"on_or_before": boundary.isoformat()}},
            {"property": config.done_property, "checkbox": {"equals": False}},
        ]
    }


def due_ascending_sort(config: Any) -> List[Dict]:
    return [{"property": config.due_property, "direction": "ascending"}]
