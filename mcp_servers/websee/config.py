from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


@dataclass
class WebseeConfig:
    cdp_host: str = "127.0.0.1"
    cdp_port: int = 9222
    cdp_timeout: float = 5.0
    allow_hosts: list[str] = field(default_factory=list)
    http_max_bytes: int = 20_000_000
    sourcemap_cache_size: int = 50
    resolve_budget_ms: float = 100.0
    scan_budget_ms: float = 50.0
    context_lines: int = 3

    @classmethod
    def from_env(cls) -> WebseeConfig:
        allow_raw = os.environ.get("WEBSEE_ALLOW_HOSTS", "")
        allow_hosts = [host.strip().lower() for host in allow_raw.split(",") if host.strip() and host.strip() != "*"]
        return cls(
            cdp_host=(os.environ.get("WEBSEE_CDP_HOST") or "127.0.0.1").strip(),
            cdp_port=_env_int("WEBSEE_CDP_PORT", 9222),
            cdp_timeout=_env_float("WEBSEE_CDP_TIMEOUT", 5.0),
            allow_hosts=allow_hosts,
            http_max_bytes=_env_int("WEBSEE_HTTP_MAX_BYTES", 20_000_000),
            sourcemap_cache_size=max(1, _env_int("WEBSEE_SOURCEMAP_CACHE_SIZE", 50)),
            resolve_budget_ms=_env_float("WEBSEE_RESOLVE_BUDGET_MS", 100.0),
            scan_budget_ms=_env_float("WEBSEE_SCAN_BUDGET_MS", 50.0),
            context_lines=max(0, _env_int("WEBSEE_CONTEXT_LINES", 3)),
        )

    def is_host_allowed(self, host: str) -> bool:
        host = (host or "").strip().lower().rstrip(".")
        if not self.allow_hosts:
            return True
        for raw_allowed in self.allow_hosts:
            allowed = (raw_allowed or "").strip().lower().lstrip(".").rstrip(".")
            if not allowed:
                continue
            if host == allowed:
                return True
            if host.endswith("." + allowed):
                return True
        return False
