"""Blocking CDP client over one DevTools websocket."""

from __future__ import annotations

import itertools
import json
import socket
import time
from collections import deque
from collections.abc import Callable
from contextlib import suppress
from typing import Any

import websocket

from .http_client import HttpClientError

EventSink = Callable[[dict[str, Any]], None]

# Upper bound for one blocking recv(); keeps our own deadlines enforceable.
_POLL_S = 0.5


def _is_event(message: dict[str, Any]) -> bool:
    return isinstance(message.get("method"), str) and "id" not in message


class CdpConnection:
    """Commands are answered in order; events read meanwhile are queued and fed to the sink.

    Script discovery depends on Debugger.scriptParsed / Network.responseReceived,
    so events are never dropped while a command waits for its response (only the
    oldest ones fall off once `max_queued_events` is reached).
    """

    def __init__(self, ws_url: str, timeout: float = 5.0, *, max_queued_events: int = 2000):
        self.ws = websocket.create_connection(ws_url, timeout=timeout)
        self.ws_url = ws_url
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._events: deque[dict[str, Any]] = deque(maxlen=max_queued_events)
        self._sink: EventSink | None = None

    def set_event_sink(self, sink: EventSink | None) -> None:
        self._sink = sink

    # ─────────────────────────────────────────────────────────────────────────
    # Wire
    # ─────────────────────────────────────────────────────────────────────────

    def _read(self, wait: float) -> dict[str, Any] | None:
        """Next decoded message, or None if nothing arrived within `wait` seconds."""
        try:
            self.ws.settimeout(max(0.0, wait))
            raw = self.ws.recv()
        except (websocket.WebSocketTimeoutException, TimeoutError, BlockingIOError):
            return None
        except (websocket.WebSocketException, OSError) as exc:
            raise HttpClientError(f"CDP connection lost: {exc}") from exc
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            return None
        return message if isinstance(message, dict) else None

    def _deliver(self, event: dict[str, Any], *, queue: bool = True) -> None:
        sink = self._sink
        if sink is not None:
            # A misbehaving sink must not break the command in flight.
            with suppress(Exception):
                sink(event)
        if queue:
            self._events.append(event)

    # ─────────────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────────────

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send one command and block until its response (or `self.timeout`)."""
        msg_id = next(self._ids)
        payload: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            payload["params"] = params
        try:
            self.ws.settimeout(self.timeout)
            self.ws.send(json.dumps(payload))
        except (websocket.WebSocketException, OSError) as exc:
            raise HttpClientError(f"{method}: {exc}") from exc

        deadline = time.monotonic() + float(self.timeout)
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise HttpClientError(f"{method}: CDP response timed out")
            message = self._read(min(_POLL_S, remaining))
            if message is None:
                continue
            if _is_event(message):
                self._deliver(message)
                continue
            if message.get("id") != msg_id:
                continue
            if "error" in message:
                raise HttpClientError(f"{method}: {message['error']}")
            result = message.get("result")
            return result if isinstance(result, dict) else {}

    def send_many(self, commands: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Send commands one after another; the first failure propagates."""
        results: list[dict[str, Any]] = []
        for cmd in commands:
            method = cmd.get("method") if isinstance(cmd, dict) else None
            if not isinstance(method, str) or not method:
                raise HttpClientError("send_many: every command needs a 'method'")
            params = cmd.get("params")
            results.append(self.send(method, params if isinstance(params, dict) else None))
        return results

    # ─────────────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────────────

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Remove and return params of the oldest queued `event_name` event."""
        for event in self._events:
            if event.get("method") == event_name:
                self._events.remove(event)
                params = event.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued
        deadline = time.monotonic() + timeout
        while (remaining := deadline - time.monotonic()) > 0:
            message = self._read(min(_POLL_S, remaining))
            if message is None or not _is_event(message):
                continue
            if message["method"] == event_name:
                self._deliver(message, queue=False)
                params = message.get("params")
                return params if isinstance(params, dict) else {}
            self._deliver(message)
        return None

    def drain_events(self, *, max_messages: int = 50) -> int:
        """Feed already-arrived events to the sink without blocking.

        Stops at the first non-event message; no command is in flight here,
        so nothing else is expected on the socket.
        """
        drained = 0
        while drained < max_messages:
            try:
                message = self._read(0.0)
            except HttpClientError:
                break
            if message is None or not _is_event(message):
                break
            self._deliver(message)
            drained += 1
        return drained

    def close(self) -> None:
        """Shut the raw socket down; websocket-client's close handshake can hang on a wedged page."""
        sock = getattr(self.ws, "sock", None)
        if sock is None:
            return
        with suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        with suppress(OSError):
            sock.close()


__all__ = ["CdpConnection", "EventSink"]
