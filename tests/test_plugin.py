import logging
from datetime import datetime

import pytest

from agenda_launcher.plugin import PLUGIN_ID, AgendaPlugin, PluginInitContext
from agenda_launcher.results import DARK_ICON, LIGHT_ICON, Query, Theme
from agenda_launcher.sources.base import AccessDenied

from conftest import FakeHostAPI, make_appointment

CONFIG = {"lookahead_hours": 24, "timeout_seconds": 5, "selection": "first"}


@pytest.fixture
def plugin(provider, clock):
    return AgendaPlugin(provider=provider, config=CONFIG, clock=clock, launcher=lambda url: None)


def test_init_seeds_icon_from_host_theme(plugin):
    api = FakeHostAPI(theme=Theme.DARK)
    plugin.init(PluginInitContext(api=api))
    assert plugin.icon_path == DARK_ICON
    assert len(api.listeners) == 1


def test_init_requires_context(plugin):
    with pytest.raises(ValueError):
        plugin.init(None)


def test_query_requires_query(plugin):
    with pytest.raises(ValueError):
        plugin.query(None)


def test_theme_notifications_update_icon(plugin, host_api):
    plugin.init(PluginInitContext(api=host_api))
    host_api.change_theme(Theme.HIGH_CONTRAST_BLACK)
    assert plugin.icon_path == DARK_ICON
    host_api.change_theme(Theme.HIGH_CONTRAST_WHITE)
    assert plugin.icon_path == LIGHT_ICON


def test_query_returns_next_appointment(plugin, provider, host_api):
    provider.appointments = [make_appointment("Standup", datetime(2024, 1, 1, 9, 0))]
    plugin.init(PluginInitContext(api=host_api))

    results = plugin.query(Query(raw_query="agenda"))

    assert [r.subtitle for r in results] == ["Join Standup"]


def test_failure_shows_one_message_and_no_results(plugin, provider, host_api):
    provider.store_error = AccessDenied("denied")
    plugin.init(PluginInitContext(api=host_api))

    assert plugin.query(Query()) == []
    assert plugin.query(Query()) == []

    assert len(host_api.messages) == 1
    title, text = host_api.messages[0]
    assert title == "Plugin: Agenda"
    assert "denied" in text


def test_failure_before_init_does_not_raise(plugin, provider):
    provider.store_error = AccessDenied("denied")
    assert plugin.query(Query()) == []


def test_dispose_unsubscribes_once(plugin, host_api):
    plugin.init(PluginInitContext(api=host_api))
    plugin.dispose()
    plugin.dispose()
    assert host_api.listeners == []


def test_context_manager_disposes(provider, clock, host_api):
    with AgendaPlugin(provider=provider, config=CONFIG, clock=clock) as plugin:
        plugin.init(PluginInitContext(api=host_api))
    assert host_api.listeners == []


def test_dispose_without_init_is_safe(plugin):
    plugin.dispose()


def test_update_settings(plugin):
    plugin.update_settings({"selection": "earliest", "timeout_seconds": 2, "lookahead_hours": 12, "other": 1})
    assert plugin.builder.selection == "earliest"
    assert plugin.lookahead.timeout == 2.0
    assert plugin.lookahead.duration.total_seconds() == 12 * 3600


def test_update_settings_rejects_unknown_selection(plugin):
    with pytest.raises(ValueError):
        plugin.update_settings({"selection": "random"})


def test_metadata(plugin):
    assert plugin.get_translated_plugin_title() == "Agenda"
    assert plugin.get_translated_plugin_description() == plugin.description
    assert plugin.additional_options == []
    assert len(PLUGIN_ID) == 32


def test_failure_is_logged_once(plugin, provider, host_api, caplog):
    provider.store_error = AccessDenied("denied")
    plugin.init(PluginInitContext(api=host_api))

    with caplog.at_level(logging.DEBUG, logger="agenda_launcher"):
        plugin.query(Query())

    failures = [r for r in caplog.records if r.levelno >= logging.WARNING]
    assert len(failures) == 1
    assert failures[0].levelno == logging.ERROR
