from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import List, Optional

import pytest

from agenda_launcher.results import Theme
from agenda_launcher.sources.base import Appointment, CalendarProvider, StoreAccess, UserIdentity


class FakeClock:
    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class FakeProvider(CalendarProvider):
    name = "fake"

    def __init__(self, appointments: Optional[List[Appointment]] = None):
        self.appointments = appointments or []
        self.store_error: Optional[Exception] = None
        self.find_error: Optional[Exception] = None
        self.hang: Optional[threading.Event] = None
        self.calls: List[tuple] = []
        self.access_requested: List[StoreAccess] = []

    def get_default_user(self) -> UserIdentity:
        return UserIdentity(id="me", display_name="Me")

    def get_appointment_manager(self, user):
        return ("manager", user.id)

    def request_store(self, manager, access=StoreAccess.ALL_CALENDARS_READ_ONLY):
        self.access_requested.append(access)
        if self.store_error:
            raise self.store_error
        return ("store", manager)

    def find_appointments(self, store, anchor, duration):
        self.calls.append((anchor, duration))
        if self.hang is not None:
            self.hang.wait(5)
        if self.find_error:
            raise self.find_error
        return list(self.appointments)


class FakeHostAPI:
    def __init__(self, theme: Theme = Theme.LIGHT):
        self.theme = theme
        self.listeners = []
        self.messages = []

    def get_current_theme(self) -> Theme:
        return self.theme

    def subscribe_theme_changed(self, listener):
        self.listeners.append(listener)

    def unsubscribe_theme_changed(self, listener):
        self.listeners.remove(listener)

    def show_msg(self, title: str, text: str):
        self.messages.append((title, text))

    def change_theme(self, new_theme: Theme):
        old, self.theme = self.theme, new_theme
        for listener in list(self.listeners):
            listener(old, new_theme)


def make_appointment(subject: str, start: datetime, link: str = "", appt_id: str = "") -> Appointment:
    return Appointment(id=appt_id or subject.lower(), subject=subject, start_time=start, online_meeting_link=link)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 8, 0, 0))


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def host_api():
    return FakeHostAPI()
