"""
Calendar API client for the task sync.
"""

import logging
import os
import pickle
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Dict, List, Optional

import httplib2
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import CalendarError, CalendarNotFoundError
from .models import CalendarEvent

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/calendar']
OAUTH_PORT = 8081

# Failures a single request can raise. TimeoutError and socket errors are OSError subclasses.
REQUEST_ERRORS = (HttpError, httplib2.HttpLib2Error, RefreshError, OSError)


def _load_token(path: str):
    """Cached credentials from ``path``, or None when there is no cache."""
    if not os.path.exists(path):
        return None
    with open(path, 'rb') as token:
        return pickle.load(token)


def _save_token(path: str, creds) -> None:
    with open(path, 'wb') as token:
        pickle.dump(creds, token)


def _refreshed(creds):
    """Refresh an expired token in place; None if Google rejects it."""
    try:
        creds.refresh(Request())
    except RefreshError:
        logger.warning("Stored Google token could not be refreshed, re-running consent flow")
        return None
    return creds


def _day_bounds(day: date, tz: Optional[tzinfo]):
    """Start of ``day`` and of the next day, as aware datetimes.

    Each bound gets its own offset so a DST change inside the day is honored.
    """
    start = datetime.combine(day, time.min)
    end = datetime.combine(day + timedelta(days=1), time.min)
    if tz is None:
        return start.astimezone(), end.astimezone()
    return start.replace(tzinfo=tz), end.replace(tzinfo=tz)


def _parse_boundary(value: Dict) -> Any:
    if 'dateTime' in value:
        return datetime.fromisoformat(value['dateTime'].replace('Z', '+00:00'))
    if 'date' in value:
        return date.fromisoformat(value['date'])
    return None


def _to_event(item: Dict, calendar_id: str) -> CalendarEvent:
    start = item.get('start', {})
    return CalendarEvent(
        id=item.get('id', ''),
        summary=item.get('summary', ''),
        description=item.get('description', ''),
        start=_parse_boundary(start),
        end=_parse_boundary(item.get('end', {})),
        all_day='date' in start and 'dateTime' not in start,
        calendar_id=calendar_id,
        private=dict(item.get('extendedProperties', {}).get('private', {})),
    )


class CalendarClient:
    def __init__(self, credentials_path: str, token_path: str, service: Any = None):
        self.credentials_path = credentials_path
        self.token_path = token_path
        self.service = service
        if self.service is None:
            self.authenticate()

    def authenticate(self):
        """Build the Calendar service from the cached token, running the consent flow if needed."""
        creds = _load_token(self.token_path)
        if creds and creds.valid:
            self.service = build('calendar', 'v3', credentials=creds, cache_discovery=False)
            return

        if creds and creds.expired and creds.refresh_token:
            creds = _refreshed(creds)
        else:
            creds = None

        if creds is None:
            if not os.path.exists(self.credentials_path):
                raise FileNotFoundError(
                    f"credentials.json not found at {self.credentials_path}. "
                    "Download an OAuth client from Google Cloud Console and point "
                    "NOTION_GCAL_GOOGLE_CREDENTIALS at it."
                )
            flow = InstalledAppFlow.from_client_secrets_file(self.credentials_path, SCOPES)
            creds = flow.run_local_server(port=OAUTH_PORT, timeout_seconds=300)

        _save_token(self.token_path, creds)
        self.service = build('calendar', 'v3', credentials=creds, cache_discovery=False)

    def get_calendar(self, calendar_id: str) -> Dict[str, Any]:
        """Fetch calendar metadata; fails if it is missing or not shared."""
        try:
            return self.service.calendars().get(calendarId=calendar_id).execute()
        except HttpError as error:
            raise CalendarNotFoundError(
                f"Calendar {calendar_id!r} not found. Check the calendar id and sharing permissions ({error})"
            ) from error
        except REQUEST_ERRORS as error:
            raise CalendarError(f"Could not reach calendar {calendar_id!r}: {error!r}") from error

    def create_all_day_event(self, calendar_id: str, summary: str, day: date, description: str,
                             private: Optional[Dict[str, str]] = None) -> CalendarEvent:
        """Create an all-day event on ``day``."""
        event_body = {
            'summary': summary,
            'description': description,
            'start': {'date': day.isoformat()},
            # Google treats the end date of an all-day event as exclusive.
            'end': {'date': (day + timedelta(days=1)).isoformat()},
        }
        if private:
            event_body['extendedProperties'] = {'private': dict(private)}

        try:
            event = self.service.events().insert(calendarId=calendar_id, body=event_body).execute()
        except REQUEST_ERRORS as error:
            raise CalendarError(f"Failed to create event {summary!r}: {error!r}") from error

        if not event or not event.get('id'):
            raise CalendarError(f"Calendar returned no event id for {summary!r}")
        return _to_event(event, calendar_id)

    def get_events_for_day(self, calendar_id: str, day: date, tz: Optional[tzinfo]) -> List[CalendarEvent]:
        """Events overlapping the local day ``day`` (``tz=None`` is the process zone)."""
        time_min, time_max = _day_bounds(day, tz)
        try:
            events_result = self.service.events().list(
                calendarId=calendar_id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy='startTime',
            ).execute()
        except REQUEST_ERRORS as error:
            raise CalendarError(f"Failed to list events for {day}: {error!r}") from error

        return [_to_event(item, calendar_id) for item in events_result.get('items', [])]

    def find_events_by_private_property(self, calendar_id: str, key: str, value: str) -> List[CalendarEvent]:
        """Events tagged with a private extended property ``key=value``."""
        try:
            events_result = self.service.events().list(
                calendarId=calendar_id,
                privateExtendedProperty=f"{key}={value}",
                singleEvents=True,
            ).execute()
        except REQUEST_ERRORS as error:
            raise CalendarError(f"Failed to look up events with {key}={value}: {error!r}") from error

        return [_to_event(item, calendar_id) for item in events_result.get('items', [])]

    def update_event_description(self, calendar_id: str, event_id: str, description: str) -> CalendarEvent:
        """Replace the description of an event, leaving title and dates alone."""
        try:
            updated = self.service.events().patch(
                calendarId=calendar_id,
                eventId=event_id,
                body={'description': description},
            ).execute()
        except REQUEST_ERRORS as error:
            raise CalendarError(f"Failed to update event {event_id}: {error!r}") from error

        return _to_event(updated, calendar_id)
