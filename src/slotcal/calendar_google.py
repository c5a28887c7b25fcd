from __future__ import annotations
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo
import base64
import json
import logging
import os

from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from .models import Event, MalformedEventError, SourceKind

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
MAX_RESULTS = 2500

log = logging.getLogger(__name__)

def _parse_service_account_info(raw: str) -> Dict[str, Any]:
    # The variable holds either the key JSON itself or its base64 encoding.
    text = raw.strip()
    if not text.startswith("{"):
        text = base64.b64decode(text).decode("utf-8")
    try:
        return json.loads(text, strict=False)
    except json.JSONDecodeError as exc:
        raise ValueError(f"GOOGLE_CREDENTIALS_JSON is not valid JSON: {exc}") from exc

def _get_oauth_creds(credentials_path: str, token_path: str) -> Credentials:
    if os.path.exists(token_path):
        return Credentials.from_authorized_user_file(token_path, SCOPES)

    flow = InstalledAppFlow.from_client_secrets_file(credentials_path, SCOPES)
    creds = flow.run_local_server(port=0)
    os.makedirs(os.path.dirname(token_path), exist_ok=True)
    with open(token_path, "w", encoding="utf-8") as f:
        f.write(creds.to_json())
    return creds

def build_calendar_service(auth: str = "service_account"):
    """Calendar v3 client. Credentials come from GOOGLE_CREDENTIALS_JSON (and GOOGLE_TOKEN_JSON for oauth)."""
    raw = os.environ.get("GOOGLE_CREDENTIALS_JSON", "")
    if not raw:
        raise RuntimeError("GOOGLE_CREDENTIALS_JSON environment variable is not set.")

    if auth == "oauth":
        token_path = os.environ.get("GOOGLE_TOKEN_JSON", "")
        if not token_path:
            raise RuntimeError("GOOGLE_TOKEN_JSON must be set for oauth calendar access.")
        creds = _get_oauth_creds(raw, token_path)
    else:
        creds = service_account.Credentials.from_service_account_info(
            _parse_service_account_info(raw), scopes=SCOPES
        )
    return build("calendar", "v3", credentials=creds, cache_discovery=False)

def normalize_google_event(item: Dict[str, Any], source_kind: SourceKind, tz: ZoneInfo,
                           location: Optional[str] = None) -> Event:
    event_id = item.get("id")
    if not event_id:
        raise MalformedEventError("Calendar event has no id.")

    start_obj = item.get("start") or {}
    end_obj = item.get("end") or {}

    # All-day events have "date" not "dateTime"
    if "dateTime" in start_obj:
        start = datetime.fromisoformat(start_obj["dateTime"]).astimezone(tz)
    elif "date" in start_obj:
        start = datetime.combine(datetime.fromisoformat(start_obj["date"]).date(), time.min, tzinfo=tz)
    else:
        raise MalformedEventError(f"Event {event_id} has no start time.")

    if "dateTime" in end_obj:
        end = datetime.fromisoformat(end_obj["dateTime"]).astimezone(tz)
    elif "date" in end_obj:
        # Google's all-day end date is exclusive; close the block at 23:59:59 of the last day.
        last_day = datetime.fromisoformat(end_obj["date"]).date() - timedelta(days=1)
        end = datetime.combine(last_day, time(23, 59, 59), tzinfo=tz)
    else:
        raise MalformedEventError(f"Event {event_id} has no end time.")

    return Event(
        id=str(event_id),
        start=start,
        end=end,
        source_kind=source_kind,
        title=item.get("summary") or None,
        location=location,
    )

def fetch_google_events(
    service,
    calendar_id: str,
    time_min: datetime,
    time_max: datetime,
    source_kind: SourceKind,
    tz: ZoneInfo,
    location: Optional[str] = None,
) -> List[Event]:
    events: List[Event] = []
    page_token: Optional[str] = None

    while True:
        resp = service.events().list(
            calendarId=calendar_id,
            timeMin=time_min.isoformat(),
            timeMax=time_max.isoformat(),
            singleEvents=True,
            orderBy="startTime",
            maxResults=MAX_RESULTS,
            pageToken=page_token,
        ).execute()

        for item in resp.get("items", []):
            if item.get("status") == "cancelled":
                continue
            events.append(normalize_google_event(item, source_kind, tz, location=location))

        page_token = resp.get("nextPageToken")
        if not page_token:
            break

    log.info("Fetched %d events from %s (%s)", len(events), calendar_id, source_kind.value)
    return events
