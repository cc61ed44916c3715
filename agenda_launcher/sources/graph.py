"""Calendar provider for Outlook / Microsoft 365 via the Microsoft Graph API.

Uses a delegated access token with the ``Calendars.Read`` scope. Tokens are
not minted here; see ``agenda_launcher.config.get_graph_token``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from agenda_launcher.sources.base import (
    AccessDenied,
    Appointment,
    CalendarProvider,
    ProviderUnavailable,
    StoreAccess,
    UserIdentity,
)

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


@dataclass
class GraphStore:
    user: UserIdentity


def _parse_graph_datetime(value: Dict[str, str]) -> datetime:
    """Parse a Graph ``dateTimeTimeZone`` into an aware UTC datetime.

    calendarView is requested with the UTC timezone preference, so the
    ``timeZone`` field is ignored. Graph emits 7 fractional digits, which
    fromisoformat rejects on older interpreters.
    """
    raw = value.get("dateTime", "").replace("Z", "")
    if "." in raw:
        head, frac = raw.split(".", 1)
        raw = f"{head}.{frac[:6]}"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _localize(when: datetime, like: datetime) -> datetime:
    """Express an aware datetime in the same zone convention as ``like``."""
    if like.tzinfo is None:
        return when.astimezone().replace(tzinfo=None)
    return when.astimezone(like.tzinfo)


def _to_utc_iso(when: datetime) -> str:
    if when.tzinfo is None:
        when = when.astimezone()
    return when.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


def _join_url(event: Dict[str, Any]) -> str:
    online = event.get("onlineMeeting") or {}
    return online.get("joinUrl") or event.get("onlineMeetingUrl") or ""


class GraphProvider(CalendarProvider):
    """Reads appointments from the signed-in user's Microsoft 365 calendars."""

    name = "graph"

    def __init__(
        self,
        token: Optional[str],
        base_url: str = GRAPH_BASE_URL,
        request_timeout: float = 15.0,
        page_size: int = 50,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.page_size = page_size

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Prefer": 'outlook.timezone="UTC"',
        }

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.token:
            raise AccessDenied("No Microsoft Graph token — run 'agenda-launcher set-token'")

        try:
            resp = requests.get(url, headers=self._headers, params=params, timeout=self.request_timeout)
        except requests.RequestException as exc:
            raise ProviderUnavailable(f"Graph request failed: {exc}") from exc

        if resp.status_code in (401, 403):
            raise AccessDenied(f"Graph refused access ({resp.status_code}): {resp.text[:200]}")
        if resp.status_code != 200:
            raise ProviderUnavailable(f"Graph error {resp.status_code}: {resp.text[:200]}")

        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderUnavailable("Graph returned a non-JSON body") from exc

    def get_default_user(self) -> UserIdentity:
        data = self._get(f"{self.base_url}/me")
        return UserIdentity(
            id=data.get("id") or data.get("userPrincipalName") or "",
            display_name=data.get("displayName") or "",
        )

    def get_appointment_manager(self, user: UserIdentity) -> Any:
        return user

    def request_store(
        self,
        manager: Any,
        access: StoreAccess = StoreAccess.ALL_CALENDARS_READ_ONLY,
    ) -> GraphStore:
        # Probe with a cheap read so a missing Calendars.Read scope surfaces here
        self._get(f"{self.base_url}/me/calendars", params={"$top": 1, "$select": "id"})
        logger.debug("Graph calendar store opened for %s (%s)", manager.id, access.value)
        return GraphStore(user=manager)

    def find_appointments(self, store: GraphStore, anchor: datetime, duration: timedelta) -> List[Appointment]:
        url: Optional[str] = f"{self.base_url}/me/calendarView"
        params: Optional[Dict[str, Any]] = {
            "startDateTime": _to_utc_iso(anchor),
            "endDateTime": _to_utc_iso(anchor + duration),
            "$orderby": "start/dateTime",
            "$top": self.page_size,
            "$select": "id,subject,start,isCancelled,onlineMeeting,onlineMeetingUrl",
        }

        appointments: List[Appointment] = []
        while url:
            data = self._get(url, params=params)
            for event in data.get("value", []):
                if event.get("isCancelled"):
                    continue
                start = _localize(_parse_graph_datetime(event.get("start") or {}), anchor)
                # calendarView returns events overlapping the window, not only those starting in it
                if start < anchor:
                    continue
                appointments.append(Appointment(
                    id=event.get("id", ""),
                    subject=event.get("subject") or "",
                    start_time=start,
                    online_meeting_link=_join_url(event),
                ))
            # nextLink already carries the query string
            url = data.get("@odata.nextLink")
            params = None

        logger.debug("Graph: %d appointments starting in window", len(appointments))
        return appointments
