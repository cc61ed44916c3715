"""Calendar provider for macOS Calendar via EventKit (pyobjc)."""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timedelta
from typing import Any, List

from agenda_launcher.sources.base import (
    AccessDenied,
    Appointment,
    CalendarProvider,
    ProviderUnavailable,
    StoreAccess,
    UserIdentity,
)

logger = logging.getLogger(__name__)

# EKAuthorizationStatus values
STATUS_NOT_DETERMINED = 0
STATUS_RESTRICTED = 1
STATUS_DENIED = 2
STATUS_WRITE_ONLY = 4  # can add events but not read them
STATUS_GRANTED = (3,)  # fullAccess

_MEETING_URL_RE = re.compile(
    r"https://[^\s<>\"']*(?:teams\.microsoft\.com|zoom\.us|meet\.google\.com|webex\.com)[^\s<>\"']*",
    re.IGNORECASE,
)


def extract_meeting_link(*texts: str) -> str:
    """Return the first online-meeting URL found in the given texts, or ''."""
    for text in texts:
        if not text:
            continue
        match = _MEETING_URL_RE.search(text)
        if match:
            return match.group(0).rstrip(".,;)>")
    return ""


def _load_eventkit():
    try:
        import EventKit
        import Foundation
    except ImportError as exc:
        raise ProviderUnavailable(
            "EventKit not available — install pyobjc-framework-EventKit"
        ) from exc
    return EventKit, Foundation


class EventKitProvider(CalendarProvider):
    """Reads appointments from every calendar configured in macOS Calendar."""

    name = "eventkit"

    def __init__(self, access_timeout: float = 30.0):
        self.access_timeout = access_timeout

    def get_default_user(self) -> UserIdentity:
        _, Foundation = _load_eventkit()
        return UserIdentity(
            id=str(Foundation.NSUserName() or ""),
            display_name=str(Foundation.NSFullUserName() or ""),
        )

    def get_appointment_manager(self, user: UserIdentity) -> Any:
        # EventKit stores are per-process and always act for the logged-in user
        EventKit, _ = _load_eventkit()
        logger.debug("Opening EKEventStore for %s", user.id)
        return EventKit.EKEventStore.alloc().init()

    def request_store(
        self,
        manager: Any,
        access: StoreAccess = StoreAccess.ALL_CALENDARS_READ_ONLY,
    ) -> Any:
        EventKit, _ = _load_eventkit()
        status = EventKit.EKEventStore.authorizationStatusForEntityType_(EventKit.EKEntityTypeEvent)

        if status in STATUS_GRANTED:
            return manager

        if status == STATUS_WRITE_ONLY:
            raise AccessDenied(
                "Calendar access is write-only. Grant full access in: "
                "System Settings → Privacy & Security → Calendars"
            )
        if status != STATUS_NOT_DETERMINED:
            raise AccessDenied(
                f"Calendar access not granted (status={status}). Grant access in: "
                "System Settings → Privacy & Security → Calendars"
            )

        # Not determined yet — ask, which shows the macOS permission prompt
        granted_event = threading.Event()
        grant_result = [False]

        def callback(granted, error):
            grant_result[0] = bool(granted)
            if error is not None:
                logger.debug("EventKit access request error: %s", error)
            granted_event.set()

        if hasattr(manager, "requestFullAccessToEventsWithCompletion_"):
            manager.requestFullAccessToEventsWithCompletion_(callback)
        else:
            manager.requestAccessToEntityType_completion_(EventKit.EKEntityTypeEvent, callback)

        if not granted_event.wait(timeout=self.access_timeout):
            raise ProviderUnavailable(
                f"Calendar access request did not complete within {self.access_timeout}s"
            )
        if not grant_result[0]:
            raise AccessDenied(
                "Calendar access denied. Grant access in: "
                "System Settings → Privacy & Security → Calendars"
            )
        return manager

    def find_appointments(self, store: Any, anchor: datetime, duration: timedelta) -> List[Appointment]:
        _, Foundation = _load_eventkit()

        start_date = Foundation.NSDate.dateWithTimeIntervalSince1970_(anchor.timestamp())
        end_date = Foundation.NSDate.dateWithTimeIntervalSince1970_((anchor + duration).timestamp())

        predicate = store.predicateForEventsWithStartDate_endDate_calendars_(start_date, end_date, None)
        events = store.eventsMatchingPredicate_(predicate)
        if not events:
            return []

        events = events.sortedArrayUsingSelector_("compareStartDateWithEvent:")

        appointments = []
        for event in events:
            start_dt = datetime.fromtimestamp(event.startDate().timeIntervalSince1970(), tz=anchor.tzinfo)
            # The predicate also matches events that started earlier and are still running
            if start_dt < anchor:
                continue

            url = str(event.URL()) if event.URL() else ""
            if not extract_meeting_link(url):
                notes = str(event.notes() or "") if event.notes() else ""
                location = str(event.location() or "") if event.location() else ""
                url = extract_meeting_link(location, notes) or url

            appointments.append(Appointment(
                id=str(event.eventIdentifier() or ""),
                subject=str(event.title() or ""),
                start_time=start_dt,
                online_meeting_link=url,
                calendar=str(event.calendar().title()) if event.calendar() else "",
            ))

        logger.debug("EventKit: %d events, %d starting in window", len(events), len(appointments))
        return appointments
