"""Agenda launcher configuration and Keychain helpers.

Shared by the plugin and the CLI.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from agenda_launcher.sources.base import CalendarProvider
from agenda_launcher.sources.eventkit import EventKitProvider
from agenda_launcher.sources.graph import GRAPH_BASE_URL, GraphProvider

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".agenda-launcher" / "config.json"
KEYCHAIN_SERVICE = "agenda-launcher"
GRAPH_KEYCHAIN_ACCOUNT = "graph"

PROVIDERS = ("eventkit", "graph")

DEFAULTS: Dict[str, Any] = {
    "provider": "eventkit",
    "lookahead_hours": 24,
    "timeout_seconds": 10,
    "selection": "first",
    "graph_api_url": GRAPH_BASE_URL,
}


def load_config(path: Optional[Path] = None, apply_env: bool = True) -> Dict[str, Any]:
    """Load config from disk over the defaults, then apply env overrides."""
    path = path or DEFAULT_CONFIG_PATH
    config = dict(DEFAULTS)
    if path.exists():
        try:
            config.update(json.loads(path.read_text()))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", path, exc)

    if not apply_env:
        return config

    provider = os.environ.get("AGENDA_PROVIDER")
    if provider:
        config["provider"] = provider

    timeout = os.environ.get("AGENDA_TIMEOUT")
    if timeout:
        try:
            config["timeout_seconds"] = float(timeout)
        except ValueError:
            logger.warning("Ignoring non-numeric AGENDA_TIMEOUT=%r", timeout)

    return config


def save_config(config: Dict[str, Any], path: Optional[Path] = None):
    """Save config to disk."""
    path = path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2))


def get_graph_token() -> Optional[str]:
    """Load the Graph access token from the environment or macOS Keychain.

    Checks AGENDA_GRAPH_TOKEN first, then Keychain (set via
    `agenda-launcher set-token`).
    """
    token = os.environ.get("AGENDA_GRAPH_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["security", "find-generic-password", "-a", GRAPH_KEYCHAIN_ACCOUNT, "-s", KEYCHAIN_SERVICE, "-w"],
            capture_output=True, text=True,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except FileNotFoundError:
        pass

    return None


def store_token(token: str) -> bool:
    """Store the Graph token in macOS Keychain, replacing any previous one."""
    clear_token()
    result = subprocess.run(
        ["security", "add-generic-password", "-a", GRAPH_KEYCHAIN_ACCOUNT, "-s", KEYCHAIN_SERVICE, "-w", token],
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        logger.error("Failed to store token: %s", result.stderr.strip())
    return result.returncode == 0


def clear_token():
    """Remove the Graph token from Keychain."""
    subprocess.run(
        ["security", "delete-generic-password", "-a", GRAPH_KEYCHAIN_ACCOUNT, "-s", KEYCHAIN_SERVICE],
        capture_output=True,
    )


def build_provider(config: Dict[str, Any]) -> CalendarProvider:
    name = str(config.get("provider", "eventkit")).lower()
    if name == "eventkit":
        return EventKitProvider()
    if name == "graph":
        return GraphProvider(
            token=get_graph_token(),
            base_url=config.get("graph_api_url") or GRAPH_BASE_URL,
        )
    raise ValueError(f"Unsupported provider: {name}. Use one of {', '.join(PROVIDERS)}.")
