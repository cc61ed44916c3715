"""Launcher plugin surface: lifecycle, query entry point and theme tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol

from agenda_launcher.config import build_provider, load_config
from agenda_launcher.lookahead import CalendarLookahead
from agenda_launcher.results import SELECTION_POLICIES, AgendaResult, AgendaResultBuilder, Query, Theme
from agenda_launcher.sources.base import CalendarProvider

logger = logging.getLogger(__name__)

PLUGIN_NAME = "Agenda"
PLUGIN_DESCRIPTION = "Join your next meeting from the launcher"
PLUGIN_ID = "C3F7E8A14E5B4E6C8E9F0D2A7B9C0D1E"

ThemeListener = Callable[[Theme, Theme], None]


class HostAPI(Protocol):
    def get_current_theme(self) -> Theme: ...

    def subscribe_theme_changed(self, listener: ThemeListener) -> None: ...

    def unsubscribe_theme_changed(self, listener: ThemeListener) -> None: ...

    def show_msg(self, title: str, text: str) -> None: ...


@dataclass
class PluginInitContext:
    api: HostAPI


class AgendaPlugin:
    """Agenda plugin for a launcher host.

    Construct it, call ``init`` with the host context, call ``query`` per
    trigger, and ``dispose`` on shutdown. ``dispose`` may be called any
    number of times.
    """

    name = PLUGIN_NAME
    description = PLUGIN_DESCRIPTION

    def __init__(
        self,
        provider: Optional[CalendarProvider] = None,
        config: Optional[Dict[str, Any]] = None,
        clock=None,
        launcher: Optional[Callable[[str], object]] = None,
    ):
        self.config = dict(config) if config is not None else load_config()
        self.provider = provider or build_provider(self.config)
        self.context: Optional[PluginInitContext] = None
        self._error_shown = False
        self._disposed = False

        self.lookahead = CalendarLookahead(
            self.provider,
            clock=clock,
            duration=timedelta(hours=float(self.config.get("lookahead_hours", 24))),
            timeout=float(self.config.get("timeout_seconds", 10)),
        )
        self.builder = AgendaResultBuilder(
            self.lookahead,
            name=self.name,
            launcher=launcher,
            selection=self.config.get("selection", "first"),
            on_error=self._on_plugin_error,
        )

    @property
    def icon_path(self) -> str:
        return self.builder.icon_path

    def init(self, context: PluginInitContext):
        if context is None:
            raise ValueError("context is required")
        self.context = context
        self._disposed = False
        context.api.subscribe_theme_changed(self.on_theme_changed)
        self.builder.on_theme_changed(context.api.get_current_theme())

    def query(self, query: Query) -> List[AgendaResult]:
        if query is None:
            raise ValueError("query is required")
        return self.builder.build_results(query)

    def on_theme_changed(self, current_theme: Theme, new_theme: Theme):
        self.builder.on_theme_changed(new_theme)

    def _on_plugin_error(self, exc: Exception):
        logger.error("Could not read your calendar from %s: %s", self.provider.name, exc)
        text = f"Could not read your calendar from {self.provider.name}: {exc}"
        if self._error_shown or self.context is None:
            return
        self._error_shown = True
        self.context.api.show_msg(f"Plugin: {self.name}", text)

    # ── host metadata ─────────────────────────────────────────────────────────

    def get_translated_plugin_title(self) -> str:
        return self.name

    def get_translated_plugin_description(self) -> str:
        return self.description

    @property
    def additional_options(self) -> List[Dict[str, Any]]:
        return []

    def update_settings(self, settings: Dict[str, Any]):
        """Apply host-side settings; unknown keys are ignored."""
        if "selection" in settings:
            selection = settings["selection"]
            if selection not in SELECTION_POLICIES:
                raise ValueError(f"Unknown selection policy: {selection}")
            self.builder.selection = selection
            self.config["selection"] = selection
        if "timeout_seconds" in settings:
            self.lookahead.timeout = float(settings["timeout_seconds"])
            self.config["timeout_seconds"] = self.lookahead.timeout
        if "lookahead_hours" in settings:
            self.lookahead.duration = timedelta(hours=float(settings["lookahead_hours"]))
            self.config["lookahead_hours"] = settings["lookahead_hours"]

    # ── teardown ──────────────────────────────────────────────────────────────

    def dispose(self):
        if self._disposed:
            return
        if self.context is not None and self.context.api is not None:
            self.context.api.unsubscribe_theme_changed(self.on_theme_changed)
        self._disposed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.dispose()
