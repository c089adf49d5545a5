from __future__ import annotations

import pytest

from mcp_servers.websee.config import WebseeConfig
from mcp_servers.websee.errors import NotInitializedError, WebseeError


def test_config_defaults() -> None:
    cfg = WebseeConfig()
    assert (cfg.cdp_host, cfg.cdp_port) == ("127.0.0.1", 9222)
    assert cfg.sourcemap_cache_size == 50
    assert cfg.resolve_budget_ms == 100.0
    assert cfg.scan_budget_ms == 50.0
    assert cfg.context_lines == 3
    assert cfg.allow_hosts == []


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBSEE_CDP_HOST", " localhost ")
    monkeypatch.setenv("WEBSEE_CDP_PORT", "9333")
    monkeypatch.setenv("WEBSEE_ALLOW_HOSTS", "Example.com, cdn.test ,*")
    monkeypatch.setenv("WEBSEE_SOURCEMAP_CACHE_SIZE", "0")
    monkeypatch.setenv("WEBSEE_RESOLVE_BUDGET_MS", "250")
    monkeypatch.setenv("WEBSEE_CONTEXT_LINES", "not-a-number")

    cfg = WebseeConfig.from_env()

    assert cfg.cdp_host == "localhost"
    assert cfg.cdp_port == 9333
    assert cfg.allow_hosts == ["example.com", "cdn.test"]
    assert cfg.sourcemap_cache_size == 1
    assert cfg.resolve_budget_ms == 250.0
    assert cfg.context_lines == 3


def test_host_allowlist_matches_subdomains() -> None:
    cfg = WebseeConfig(allow_hosts=["example.com"])
    assert cfg.is_host_allowed("example.com")
    assert cfg.is_host_allowed("static.example.com")
    assert not cfg.is_host_allowed("notexample.com")
    assert WebseeConfig().is_host_allowed("anything.test")


def test_not_initialized_error_is_structured() -> None:
    err = NotInitializedError.for_engine("ComponentTracker", "get_component_tree")

    assert isinstance(err, WebseeError)
    payload = err.to_dict()
    assert payload["error"] is True
    assert payload["tool"] == "ComponentTracker"
    assert payload["action"] == "get_component_tree"
    assert "initialize(session)" in str(err)
