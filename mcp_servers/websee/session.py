"""
Attach to a tab of an already running Chrome/Chromium.

The browser is started by the caller with --remote-debugging-port; this module
only discovers page targets and opens a CDP connection to one of them.

`session.py` remains the stable import surface (re-exports BrowserSession).
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from .browser_session import BrowserSession
from .config import WebseeConfig
from .http_client import HttpClientError, http_get_json
from .session_cdp import CdpConnection


def list_targets(config: WebseeConfig) -> list[dict[str, Any]]:
    """List page targets exposed by the DevTools HTTP endpoint."""
    raw = http_get_json(f"http://{config.cdp_host}:{config.cdp_port}/json/list")
    if not isinstance(raw, list):
        return []
    return [t for t in raw if isinstance(t, dict) and t.get("type") == "page"]


def open_session(config: WebseeConfig, tab_id: str | None = None) -> BrowserSession:
    """Open a BrowserSession on `tab_id`, or on the first page target."""
    targets = list_targets(config)
    if tab_id:
        targets = [t for t in targets if t.get("id") == tab_id]
    for target in targets:
        ws_url = target.get("webSocketDebuggerUrl")
        if isinstance(ws_url, str) and ws_url:
            conn = CdpConnection(ws_url, timeout=config.cdp_timeout)
            return BrowserSession(conn, str(target.get("id") or ""), str(target.get("url") or ""))
    if tab_id:
        raise HttpClientError(f"Tab {tab_id} not found (or already attached by another client)")
    raise HttpClientError(
        f"No page target on {config.cdp_host}:{config.cdp_port}; start Chrome with --remote-debugging-port"
    )


@contextmanager
def session(config: WebseeConfig, tab_id: str | None = None) -> Generator[BrowserSession, None, None]:
    """Context manager for a browser session."""
    sess = open_session(config, tab_id)
    try:
        sess.enable_page()
        yield sess
    finally:
        sess.close()


__all__ = ["BrowserSession", "list_targets", "open_session", "session"]
