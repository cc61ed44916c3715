"""Core calendar types and the provider contract shared by all sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, List


class AgendaError(Exception):
    """Base class for calendar lookup failures."""


class AccessDenied(AgendaError):
    """The provider refused read access to the user's calendars."""


class ProviderUnavailable(AgendaError):
    """The provider is absent, timed out, or failed in transport."""


class StoreAccess(Enum):
    ALL_CALENDARS_READ_ONLY = "AllCalendarsReadOnly"


@dataclass
class UserIdentity:
    id: str
    display_name: str = ""


@dataclass(frozen=True)
class Appointment:
    """A calendar event as seen by the launcher.

    Owned by the provider; nothing here writes back. An empty
    ``online_meeting_link`` means the event is not a virtual meeting.
    """

    id: str
    subject: str
    start_time: datetime
    online_meeting_link: str = ""
    calendar: str = ""


@dataclass(frozen=True)
class LookaheadWindow:
    """Half-open time range ``[start, start + duration)``."""

    start: datetime
    duration: timedelta

    @property
    def end(self) -> datetime:
        return self.start + self.duration

    def contains(self, when: datetime) -> bool:
        return self.start <= when < self.end


class CalendarProvider(ABC):
    """The four calls the lookahead makes against a calendar backend.

    Handles returned by ``get_appointment_manager`` and ``request_store``
    are opaque to callers and only passed back into the same provider.
    """

    name = "provider"

    @abstractmethod
    def get_default_user(self) -> UserIdentity:
        ...

    @abstractmethod
    def get_appointment_manager(self, user: UserIdentity) -> Any:
        ...

    @abstractmethod
    def request_store(
        self,
        manager: Any,
        access: StoreAccess = StoreAccess.ALL_CALENDARS_READ_ONLY,
    ) -> Any:
        """Return a store handle, or raise AccessDenied."""

    @abstractmethod
    def find_appointments(
        self,
        store: Any,
        anchor: datetime,
        duration: timedelta,
    ) -> List[Appointment]:
        """Return appointments starting in ``[anchor, anchor + duration)``."""
