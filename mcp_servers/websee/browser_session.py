"""BrowserSession: the CDP operations the introspection engines rely on, for one tab."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from typing import Any

from .http_client import HttpClientError
from .session_cdp import CdpConnection, EventSink

_ENABLE = {
    "page": "Page.enable",
    "runtime": "Runtime.enable",
    "dom": "DOM.enable",
    "network": "Network.enable",
    "debugger": "Debugger.enable",
}


def _remote_value(result: dict[str, Any]) -> Any:
    """Plain value of a Runtime.evaluate result; undefined and null become None."""
    obj = result.get("result")
    if not isinstance(obj, dict):
        return None
    if obj.get("type") == "undefined" or obj.get("subtype") == "null":
        return None
    return obj.get("value")


class BrowserSession:
    """
    One attached tab.

    Domains are enabled lazily and only once per session. Usable as a context
    manager; leaving it closes the underlying connection.
    """

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._enabled: set[str] = set()

    def __enter__(self) -> BrowserSession:
        self.enable_page()
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self.conn.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Domains
    # ─────────────────────────────────────────────────────────────────────────

    def enable_page(self) -> None:
        self.enable_domains(page=True)

    def enable_runtime(self) -> None:
        self.enable_domains(runtime=True)

    def enable_domains(
        self,
        *,
        page: bool = False,
        runtime: bool = False,
        dom: bool = False,
        network: bool = False,
        debugger: bool = False,
        strict: bool = True,
    ) -> None:
        """Enable the requested domains not enabled yet.

        One batched round of commands first; if that fails, each domain is
        retried on its own. With strict=False, domains that still fail are
        left disabled silently.
        """
        requested = {"page": page, "runtime": runtime, "dom": dom, "network": network, "debugger": debugger}
        missing = [name for name, wanted in requested.items() if wanted and name not in self._enabled]
        if not missing:
            return

        send_many = getattr(self.conn, "send_many", None)
        if callable(send_many):
            with suppress(Exception):
                send_many([{"method": _ENABLE[name]} for name in missing])
                self._enabled.update(missing)
                return

        errors: dict[str, str] = {}
        for name in missing:
            try:
                self.conn.send(_ENABLE[name], None)
            except Exception as exc:  # noqa: BLE001
                errors[_ENABLE[name]] = str(exc)
            else:
                self._enabled.add(name)

        if strict and errors:
            detail = "; ".join(f"{method}: {err}" for method, err in errors.items())
            raise HttpClientError(f"Failed to enable CDP domain(s): {', '.join(errors)}. Details: {detail}")

    # ─────────────────────────────────────────────────────────────────────────
    # Raw access
    # ─────────────────────────────────────────────────────────────────────────

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.conn.send(method, params)

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict | None:
        """Best-effort: connection failures read as "no event"."""
        try:
            return self.conn.wait_for_event(event_name, timeout=timeout)
        except HttpClientError:
            return None

    def drain_events(self, *, max_messages: int = 200) -> int:
        drain = getattr(self.conn, "drain_events", None)
        return int(drain(max_messages=max_messages)) if callable(drain) else 0

    def set_event_sink(self, sink: EventSink | None) -> None:
        setter = getattr(self.conn, "set_event_sink", None)
        if callable(setter):
            setter(sink)

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, url: str, wait_load: bool = True, timeout: float = 10.0) -> str:
        self.enable_page()
        self.conn.send("Page.navigate", {"url": url})
        if wait_load:
            self.wait_load(timeout)
        self.tab_url = url
        return url

    def wait_load(self, timeout: float = 10.0) -> bool:
        return self.wait_for_event("Page.loadEventFired", timeout) is not None

    def get_frame_id(self) -> str | None:
        """Main frame id (Network.loadNetworkResource needs one)."""
        self.enable_page()
        tree = self.conn.send("Page.getFrameTree", None)
        frame = (tree.get("frameTree") or {}).get("frame") if isinstance(tree, dict) else None
        frame_id = frame.get("id") if isinstance(frame, dict) else None
        return frame_id if isinstance(frame_id, str) and frame_id else None

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    def add_init_script(self, source: str) -> str | None:
        """Run `source` before any page script on every new document; returns its identifier."""
        self.enable_page()
        res = self.conn.send("Page.addScriptToEvaluateOnNewDocument", {"source": source})
        identifier = res.get("identifier") if isinstance(res, dict) else None
        return identifier if isinstance(identifier, str) and identifier else None

    def remove_init_script(self, identifier: str) -> None:
        with suppress(HttpClientError):
            self.conn.send("Page.removeScriptToEvaluateOnNewDocument", {"identifier": identifier})

    @contextmanager
    def _command_timeout(self, timeout: float | None) -> Iterator[None]:
        if timeout is None:
            yield
            return
        previous = self.conn.timeout
        self.conn.timeout = float(timeout)
        try:
            yield
        finally:
            self.conn.timeout = previous

    def eval_js(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate `expression` (promises awaited) and return its JSON value.

        A thrown page exception raises HttpClientError; undefined/null give None.
        """
        self.enable_runtime()
        with self._command_timeout(timeout):
            result = self.conn.send(
                "Runtime.evaluate",
                {"expression": expression, "returnByValue": True, "awaitPromise": True},
            )

        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            exc = details.get("exception")
            text = exc.get("description") if isinstance(exc, dict) else None
            raise HttpClientError(f"JavaScript evaluation failed: {text or details.get('text') or 'exception'}")
        return _remote_value(result)

    def call_js(self, function_source: str, *args: Any, timeout: float | None = None) -> Any:
        """Invoke a JS function expression with JSON-serializable arguments."""
        payload = ", ".join(json.dumps(a) for a in args)
        return self.eval_js(f"({function_source})({payload})", timeout=timeout)


__all__ = ["BrowserSession"]
