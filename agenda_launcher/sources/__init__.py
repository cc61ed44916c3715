from agenda_launcher.sources.base import (
    AccessDenied,
    AgendaError,
    Appointment,
    CalendarProvider,
    LookaheadWindow,
    ProviderUnavailable,
    StoreAccess,
    UserIdentity,
)
from agenda_launcher.sources.eventkit import EventKitProvider
from agenda_launcher.sources.graph import GraphProvider

__all__ = [
    "AccessDenied",
    "AgendaError",
    "Appointment",
    "CalendarProvider",
    "LookaheadWindow",
    "ProviderUnavailable",
    "StoreAccess",
    "UserIdentity",
    "EventKitProvider",
    "GraphProvider",
]
