"""Turns the next appointment into a single launcher result."""

from __future__ import annotations

import logging
import webbrowser
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from agenda_launcher.lookahead import CalendarLookahead
from agenda_launcher.sources.base import Appointment

logger = logging.getLogger(__name__)

RESULT_TITLE = "Agenda"
LIGHT_ICON = "Images/agenda.light.png"
DARK_ICON = "Images/agenda.dark.png"

SELECTION_POLICIES = ("first", "earliest")


class Theme(Enum):
    NONE = "none"
    LIGHT = "light"
    DARK = "dark"
    HIGH_CONTRAST_ONE = "high_contrast_one"
    HIGH_CONTRAST_TWO = "high_contrast_two"
    HIGH_CONTRAST_BLACK = "high_contrast_black"
    HIGH_CONTRAST_WHITE = "high_contrast_white"


def icon_for_theme(theme: Theme) -> str:
    if theme in (Theme.LIGHT, Theme.HIGH_CONTRAST_WHITE):
        return LIGHT_ICON
    return DARK_ICON


@dataclass
class Query:
    """What the launcher passes on each keystroke."""

    raw_query: str = ""
    search: str = ""
    action_keyword: str = ""


@dataclass
class ToolTip:
    title: str
    text: str


@dataclass
class AgendaResult:
    title: str
    subtitle: str
    context_data: Appointment
    tooltip: ToolTip
    icon_path: str
    action: Callable[[], bool] = field(repr=False)


def format_start(start: datetime) -> str:
    return start.strftime("%Y-%m-%d %H:%M:%S")


def select_next(appointments: List[Appointment], policy: str = "first") -> Appointment:
    """Pick the appointment to surface.

    ``first`` trusts the provider's order and takes element 0 even if a later
    element starts sooner. ``earliest`` takes the minimum start time, keeping
    provider order on ties.
    """
    if policy == "earliest":
        return min(appointments, key=lambda a: a.start_time)
    return appointments[0]


class AgendaResultBuilder:
    """Builds zero or one result per query and never raises to the caller.

    A broken calendar integration must not take down the launcher's query
    pipeline, so every lookup failure collapses to an empty list. Pass
    ``on_error`` to be told about those failures.
    """

    def __init__(
        self,
        lookahead: CalendarLookahead,
        name: str = RESULT_TITLE,
        launcher: Optional[Callable[[str], object]] = None,
        theme: Theme = Theme.LIGHT,
        selection: str = "first",
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        if selection not in SELECTION_POLICIES:
            raise ValueError(f"Unknown selection policy: {selection}. Use one of {SELECTION_POLICIES}.")
        self.lookahead = lookahead
        self.name = name
        self.launcher = launcher or webbrowser.open
        self.selection = selection
        self.on_error = on_error
        self._icon_path = icon_for_theme(theme)

    @property
    def icon_path(self) -> str:
        return self._icon_path

    def on_theme_changed(self, new_theme: Theme) -> None:
        self._icon_path = icon_for_theme(new_theme)

    def _report(self, exc: Exception) -> None:
        if self.on_error is None:
            logger.warning("Agenda lookup failed: %s", exc)
            return
        try:
            self.on_error(exc)
        except Exception:
            logger.exception("Agenda error hook raised")

    def _join_action(self, appointment: Appointment) -> Callable[[], bool]:
        def action() -> bool:
            link = appointment.online_meeting_link
            if not link:
                logger.info("'%s' has no online meeting link", appointment.subject)
                return True
            try:
                self.launcher(link)
            except Exception:
                logger.exception("Failed to open meeting link for '%s'", appointment.subject)
            # Joining is reported as handled even if the launch failed
            return True

        return action

    def build_result(self, appointment: Appointment) -> AgendaResult:
        return AgendaResult(
            title=RESULT_TITLE,
            subtitle=f"Join {appointment.subject}",
            context_data=appointment,
            tooltip=ToolTip(self.name, f"{appointment.subject}@{format_start(appointment.start_time)}"),
            icon_path=self._icon_path,
            action=self._join_action(appointment),
        )

    def build_results(self, trigger: Optional[Query] = None) -> List[AgendaResult]:
        try:
            appointments = self.lookahead.fetch_upcoming()
        except Exception as exc:
            self._report(exc)
            return []

        if not appointments:
            logger.debug("No appointments in the lookahead window")
            return []

        try:
            return [self.build_result(select_next(appointments, self.selection))]
        except Exception as exc:
            self._report(exc)
            return []
