from __future__ import annotations

import json
from typing import Any

import pytest

from mcp_servers.websee.browser_session import BrowserSession
from mcp_servers.websee.http_client import HttpClientError


class DummyConn:
    def __init__(self, responses: dict[str, dict[str, Any]] | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.responses = responses or {}
        self.timeout = 5.0

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append((method, params))
        return self.responses.get(method, {})


def test_eval_js_returns_value_by_value() -> None:
    conn = DummyConn({"Runtime.evaluate": {"result": {"type": "number", "value": 123}}})
    session = BrowserSession(conn, tab_id="t1")

    assert session.eval_js("1 + 2") == 123

    eval_calls = [(m, p) for (m, p) in conn.calls if m == "Runtime.evaluate"]
    assert len(eval_calls) == 1
    params = eval_calls[0][1] or {}
    assert params.get("awaitPromise") is True
    assert params.get("returnByValue") is True
    assert "replMode" not in params


def test_eval_js_maps_undefined_and_null_to_none() -> None:
    undefined = BrowserSession(DummyConn({"Runtime.evaluate": {"result": {"type": "undefined"}}}), tab_id="t1")
    assert undefined.eval_js("globalThis.__nope && 1") is None

    null = BrowserSession(DummyConn({"Runtime.evaluate": {"result": {"type": "object", "subtype": "null"}}}), "t1")
    assert null.eval_js("null") is None


def test_eval_js_raises_on_page_exception() -> None:
    conn = DummyConn(
        {
            "Runtime.evaluate": {
                "result": {"type": "object"},
                "exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x is undefined"}},
            }
        }
    )
    session = BrowserSession(conn, tab_id="t1")
    with pytest.raises(HttpClientError, match="TypeError: x is undefined"):
        session.eval_js("x.y")


def test_eval_js_timeout_override_is_restored() -> None:
    conn = DummyConn({"Runtime.evaluate": {"result": {"type": "boolean", "value": True}}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.eval_js("true", timeout=30.0) is True
    assert conn.timeout == 5.0


def test_call_js_serializes_arguments() -> None:
    conn = DummyConn({"Runtime.evaluate": {"result": {"type": "string", "value": "ok"}}})
    session = BrowserSession(conn, tab_id="t1")

    session.call_js("(sel, n) => sel", "a[href='x']", 3)

    expr = [p for m, p in conn.calls if m == "Runtime.evaluate"][0]["expression"]
    assert expr == "((sel, n) => sel)(" + json.dumps("a[href='x']") + ", 3)"


def test_enable_domains_is_idempotent_and_falls_back_per_command() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")

    session.enable_domains(network=True, debugger=True)
    session.enable_domains(network=True, debugger=True)

    methods = [m for m, _ in conn.calls]
    assert methods == ["Network.enable", "Debugger.enable"]


def test_enable_domains_strict_failure_raises() -> None:
    class FailingConn(DummyConn):
        def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
            if method == "Debugger.enable":
                raise HttpClientError("Debugger domain unavailable")
            return super().send(method, params)

    session = BrowserSession(FailingConn(), tab_id="t1")
    with pytest.raises(HttpClientError, match="Debugger.enable"):
        session.enable_domains(debugger=True)
    session.enable_domains(network=True, debugger=True, strict=False)


def test_add_init_script_returns_identifier() -> None:
    conn = DummyConn({"Page.addScriptToEvaluateOnNewDocument": {"identifier": "7"}})
    session = BrowserSession(conn, tab_id="t1")

    assert session.add_init_script("window.__x = 1") == "7"
    session.remove_init_script("7")

    methods = [m for m, _ in conn.calls]
    assert methods == ["Page.enable", "Page.addScriptToEvaluateOnNewDocument", "Page.removeScriptToEvaluateOnNewDocument"]


def test_get_frame_id() -> None:
    conn = DummyConn({"Page.getFrameTree": {"frameTree": {"frame": {"id": "F1", "url": "https://ex.com/"}}}})
    assert BrowserSession(conn, tab_id="t1").get_frame_id() == "F1"
