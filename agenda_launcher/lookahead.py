"""Bounded lookahead query against a calendar provider."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional

from agenda_launcher.sources.base import (
    AgendaError,
    Appointment,
    CalendarProvider,
    LookaheadWindow,
    ProviderUnavailable,
    StoreAccess,
)

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=24)
DEFAULT_TIMEOUT = 10.0


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


class CalendarLookahead:
    """Fetches appointments starting within ``duration`` of the current time.

    The window is anchored when ``fetch_upcoming`` is called, never when the
    lookahead is constructed. Provider calls run on a worker thread and the
    caller waits at most ``timeout`` seconds. A provider that hangs past that
    is reported as ProviderUnavailable; its daemon thread is abandoned and
    does not block interpreter exit.
    """

    def __init__(
        self,
        provider: CalendarProvider,
        clock=None,
        duration: timedelta = DEFAULT_DURATION,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.provider = provider
        self.clock = clock or SystemClock()
        self.duration = duration
        self.timeout = timeout

    def current_window(self) -> LookaheadWindow:
        return LookaheadWindow(start=self.clock.now(), duration=self.duration)

    def _query(self, window: LookaheadWindow) -> List[Appointment]:
        user = self.provider.get_default_user()
        logger.debug("Resolved calendar user %s", user.id)

        manager = self.provider.get_appointment_manager(user)
        store = self.provider.request_store(manager, access=StoreAccess.ALL_CALENDARS_READ_ONLY)

        appointments = self.provider.find_appointments(store, window.start, window.duration)
        return list(appointments or [])

    def fetch_upcoming(self) -> List[Appointment]:
        """Return the provider's appointments for a fresh window, in provider order.

        Raises AccessDenied or ProviderUnavailable. Any other error from the
        provider is wrapped in ProviderUnavailable.
        """
        window = self.current_window()
        logger.debug(
            "Querying %s for appointments in [%s, %s)",
            self.provider.name, window.start, window.end,
        )

        done = threading.Event()
        outcome: dict = {}

        def worker():
            try:
                outcome["appointments"] = self._query(window)
            except Exception as exc:
                outcome["error"] = exc
            finally:
                done.set()

        # daemon: a hung provider must not block interpreter exit
        thread = threading.Thread(target=worker, name="agenda-lookahead", daemon=True)
        thread.start()

        if not done.wait(timeout=self.timeout):
            raise ProviderUnavailable(f"{self.provider.name} did not answer within {self.timeout}s")

        error = outcome.get("error")
        if isinstance(error, AgendaError):
            raise error
        if error is not None:
            raise ProviderUnavailable(f"{self.provider.name} failed: {error}") from error

        appointments = outcome["appointments"]

        logger.debug("%s returned %d appointments", self.provider.name, len(appointments))
        return appointments

