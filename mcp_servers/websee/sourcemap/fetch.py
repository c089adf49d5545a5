"""Fetch mapping files with the page's own cookie/header context."""

from __future__ import annotations

import base64
from contextlib import suppress
from typing import Any
from urllib.parse import urlsplit

from ..browser_session import BrowserSession
from ..config import WebseeConfig
from ..http_client import HttpClientError
from .urls import decode_data_url

_PAGE_FETCH_JS = """
async (url, maxBytes) => {
  try {
    const resp = await fetch(url, { credentials: "include", cache: "force-cache" });
    if (!resp.ok) return { ok: false, status: resp.status };
    const text = await resp.text();
    if (text.length > maxBytes) return { ok: false, status: resp.status, tooLarge: true };
    return { ok: true, status: resp.status, text };
  } catch (e) {
    return { ok: false, error: String(e && e.message || e) };
  }
}
"""


class MapFetcher:
    """Reads a mapping URL as text; raises HttpClientError on any failure."""

    def __init__(self, session: BrowserSession, config: WebseeConfig):
        self.session = session
        self.config = config

    def fetch_text(self, url: str) -> str:
        if url.startswith("data:"):
            text = decode_data_url(url)
            if text is None:
                raise HttpClientError("Malformed data: source map URL")
            return text

        parts = urlsplit(url)
        if parts.scheme not in ("http", "https", "file"):
            raise HttpClientError(f"Unsupported source map URL scheme: {parts.scheme or '<none>'}")
        if parts.scheme != "file" and not self.config.is_host_allowed(parts.hostname or ""):
            raise HttpClientError(f"Host {parts.hostname} is not in allowlist")

        try:
            return self._fetch_in_page(url)
        except HttpClientError as page_exc:
            try:
                return self._fetch_via_network(url)
            except HttpClientError as net_exc:
                raise HttpClientError(f"{page_exc}; {net_exc}") from net_exc

    def _fetch_in_page(self, url: str) -> str:
        res = self.session.call_js(_PAGE_FETCH_JS, url, int(self.config.http_max_bytes))
        if not isinstance(res, dict):
            raise HttpClientError("page fetch returned no result")
        if res.get("tooLarge"):
            raise HttpClientError(f"source map exceeds {self.config.http_max_bytes} bytes")
        if not res.get("ok"):
            detail = res.get("error") or f"HTTP {res.get('status')}"
            raise HttpClientError(f"page fetch failed: {detail}")
        text = res.get("text")
        if not isinstance(text, str):
            raise HttpClientError("page fetch returned a non-text body")
        return text

    def _fetch_via_network(self, url: str) -> str:
        """Network.loadNetworkResource uses page cookies and is not subject to CORS."""
        frame_id = self.session.get_frame_id()
        if not frame_id:
            raise HttpClientError("no main frame for Network.loadNetworkResource")
        self.session.enable_domains(network=True)
        res = self.session.send(
            "Network.loadNetworkResource",
            {"frameId": frame_id, "url": url, "options": {"disableCache": False, "includeCredentials": True}},
        )
        resource: dict[str, Any] = res.get("resource") if isinstance(res.get("resource"), dict) else {}
        if not resource.get("success"):
            status = resource.get("httpStatusCode")
            reason = resource.get("netErrorName") or (f"HTTP {status}" if status else "load failed")
            raise HttpClientError(f"Network.loadNetworkResource failed: {reason}")
        handle = resource.get("stream")
        if not isinstance(handle, str) or not handle:
            raise HttpClientError("Network.loadNetworkResource returned no stream")
        return self._read_stream(handle)

    def _read_stream(self, handle: str) -> str:
        chunks: list[bytes] = []
        total = 0
        try:
            while True:
                part = self.session.send("IO.read", {"handle": handle, "size": 1 << 20})
                data = part.get("data") or ""
                chunk = base64.b64decode(data) if part.get("base64Encoded") else str(data).encode("utf-8")
                total += len(chunk)
                if total > self.config.http_max_bytes:
                    raise HttpClientError(f"source map exceeds {self.config.http_max_bytes} bytes")
                chunks.append(chunk)
                if part.get("eof") or not data:
                    break
        finally:
            with suppress(Exception):
                self.session.send("IO.close", {"handle": handle})
        return b"".join(chunks).decode("utf-8", errors="replace")


__all__ = ["MapFetcher"]
