"""
Source Map Resolution Engine.

Turns (minified script URL, line, column) into an original-source answer.
Discovery, fetch, parse and caching are transparent to the caller:

- register(): script URL → map URL (headers, marker comments, Debugger.scriptParsed)
- resolve(): lazy fetch + parse on first use, then LRU-cached point lookups
- clear_cache(): drop parsed maps and registrations between navigations

Environmental failures (no map, fetch error, bad JSON, unmapped point) are
returned as None. Only calling an operation before initialize() raises.
"""

from __future__ import annotations

import base64
import logging
import threading
import time
from contextlib import suppress
from typing import Any

from ..browser_session import BrowserSession
from ..config import WebseeConfig
from ..errors import NotInitializedError
from ..lru import LRUCache
from .consumer import IndexedSourceMapConsumer, SourceMapConsumer, parse_source_map
from .fetch import MapFetcher
from .models import OriginalLocation, ResolvedFrame, ResolvedMapEntry, ResolvedStack
from .stack import parse_stack_frame
from .urls import find_marker, is_javascript, map_url_from_headers, resolve_map_url

_LOGGER = logging.getLogger("mcp.websee.sourcemap")

_ENGINE = "SourceMapResolver"


def _is_position(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class SourceMapResolver:
    """Resolves minified locations to original sources for one page session."""

    def __init__(self, config: WebseeConfig | None = None, *, cache_size: int | None = None):
        self.config = config or WebseeConfig()
        size = cache_size if cache_size is not None else self.config.sourcemap_cache_size
        self._cache: LRUCache[str, ResolvedMapEntry] = LRUCache(size)
        # Replaced wholesale on every write so readers never see a partial update.
        self._map_urls: dict[str, str] = {}
        # requestId -> [script url, loading finished]
        self._pending_bodies: dict[str, list[Any]] = {}
        self._failed_maps: set[str] = set()
        self._lock = threading.Lock()
        self._session: BrowserSession | None = None
        self._fetcher: MapFetcher | None = None

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._session is not None

    def initialize(self, session: BrowserSession) -> None:
        """Bind to a live session and start observing script loads (idempotent)."""
        if self._session is session:
            return
        self._session = session
        self._fetcher = MapFetcher(session, self.config)
        session.set_event_sink(self.observe_event)
        # Debugger.enable replays scriptParsed for scripts that are already loaded.
        try:
            session.enable_domains(network=True, debugger=True, strict=False)
            # An enabled Debugger would otherwise halt the page on every `debugger;` statement.
            session.send("Debugger.setSkipAllPauses", {"skip": True})
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("source map discovery unavailable: %s", exc)

    def destroy(self) -> None:
        session = self._session
        self.clear_cache()
        if session is not None:
            with suppress(Exception):
                session.set_event_sink(None)
        self._session = None
        self._fetcher = None

    def _require(self, action: str) -> BrowserSession:
        if self._session is None:
            raise NotInitializedError.for_engine(_ENGINE, action)
        return self._session

    # ─────────────────────────────────────────────────────────────────────────
    # Discovery
    # ─────────────────────────────────────────────────────────────────────────

    def register(self, script_url: str, map_url: str) -> str | None:
        """Associate a script with its mapping reference (last write wins)."""
        if not script_url or not map_url:
            return None
        resolved = resolve_map_url(script_url, map_url)
        with self._lock:
            if self._map_urls.get(script_url) == resolved:
                return resolved
            self._map_urls = {**self._map_urls, script_url: resolved}
        return resolved

    def registered_map_url(self, script_url: str) -> str | None:
        return self._map_urls.get(script_url)

    def observe_response(
        self,
        url: str,
        headers: dict[str, Any] | None,
        body: str | None = None,
        mime_type: str | None = None,
    ) -> str | None:
        """Discover a map from one script response: header first, then body marker."""
        if not is_javascript(url, mime_type, headers):
            return None
        ref = map_url_from_headers(headers)
        if ref is None and body:
            ref = find_marker(body)
        if ref is None:
            return None
        return self.register(url, ref)

    def observe_event(self, event: dict[str, Any]) -> None:
        """CDP event sink. Never sends commands (it runs inside the receive loop)."""
        method = event.get("method") if isinstance(event, dict) else None
        params = event.get("params") if isinstance(event, dict) else None
        if not isinstance(method, str) or not isinstance(params, dict):
            return

        if method == "Debugger.scriptParsed":
            url = params.get("url")
            ref = params.get("sourceMapURL")
            if isinstance(url, str) and url and isinstance(ref, str) and ref:
                self.register(url, ref)
            return

        if method == "Network.responseReceived":
            resp = params.get("response") if isinstance(params.get("response"), dict) else {}
            url = resp.get("url")
            if not isinstance(url, str) or not url:
                return
            if params.get("type") != "Script" and not is_javascript(url, resp.get("mimeType"), resp.get("headers")):
                return
            if self.observe_response(url, resp.get("headers"), mime_type=resp.get("mimeType") or "text/javascript"):
                return
            request_id = params.get("requestId")
            if isinstance(request_id, str) and request_id and url not in self._map_urls:
                self._pending_bodies[request_id] = [url, False]
            return

        if method == "Network.loadingFinished":
            pending = self._pending_bodies.get(str(params.get("requestId") or ""))
            if pending is not None:
                pending[1] = True
            return

        if method == "Network.loadingFailed":
            self._pending_bodies.pop(str(params.get("requestId") or ""), None)

    def sync_discovery(self) -> int:
        """Drain pending CDP events and scan finished script bodies for markers."""
        session = self._require("sync_discovery")
        session.drain_events()
        found = 0
        for request_id, (url, finished) in list(self._pending_bodies.items()):
            if not finished:
                continue
            self._pending_bodies.pop(request_id, None)
            if url in self._map_urls:
                continue
            try:
                res = session.send("Network.getResponseBody", {"requestId": request_id})
            except Exception as exc:  # noqa: BLE001
                _LOGGER.debug("response body unavailable for %s: %s", url, exc)
                continue
            body = res.get("body") if isinstance(res, dict) else None
            if not isinstance(body, str):
                continue
            if res.get("base64Encoded"):
                body = base64.b64decode(body).decode("utf-8", errors="replace")
            ref = find_marker(body)
            if ref and self.register(url, ref):
                found += 1
        return found

    # ─────────────────────────────────────────────────────────────────────────
    # Resolution
    # ─────────────────────────────────────────────────────────────────────────

    def resolve(self, script_url: str, line: int, column: int) -> OriginalLocation | None:
        """Resolve a minified position (1-indexed line, 0-indexed column)."""
        self._require("resolve")
        if not script_url or not _is_position(line) or not _is_position(column):
            return None

        started = time.perf_counter()
        try:
            entry = self._get_or_load(script_url)
            if entry is None:
                return None
            pos = entry.consumer.original_position_for(line, column)
            if pos is None:
                return None
            location = OriginalLocation(
                file=pos.source,
                line=pos.line,
                column=pos.column,
                name=pos.name,
                content=entry.context(pos.source, pos.line, self.config.context_lines),
            )
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("failed to resolve %s:%s:%s: %s", script_url, line, column, exc)
            return None

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if elapsed_ms > self.config.resolve_budget_ms:
            _LOGGER.warning("slow source map resolution (%.1fms) for %s", elapsed_ms, script_url)
        return location

    def resolve_stack(self, stack_trace: str) -> ResolvedStack:
        """Resolve every parseable frame of a stack trace; others are kept verbatim."""
        self._require("resolve_stack")
        original = stack_trace.split("\n")
        resolved: list[str] = []
        frames: list[ResolvedFrame] = []
        for line in original:
            frame = parse_stack_frame(line)
            if frame is None:
                resolved.append(line)
                continue
            item = ResolvedFrame(frame=frame, location=self.resolve(frame.url, frame.line, frame.column))
            frames.append(item)
            resolved.append(item.format())
        return ResolvedStack(original=original, resolved=resolved, frames=frames)

    def get_consumer(self, script_url: str) -> SourceMapConsumer | IndexedSourceMapConsumer | None:
        self._require("get_consumer")
        try:
            entry = self._get_or_load(script_url)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("failed to load source map for %s: %s", script_url, exc)
            return None
        return entry.consumer if entry is not None else None

    def _get_or_load(self, script_url: str) -> ResolvedMapEntry | None:
        entry = self._cache.get(script_url)
        if entry is not None:
            return entry

        map_url = self._map_urls.get(script_url)
        if map_url is None:
            # Script loads observed since the last call may still sit unread on the socket.
            self.sync_discovery()
            map_url = self._map_urls.get(script_url)
        if map_url is None:
            return None

        fetcher = self._fetcher
        if fetcher is None:
            return None
        try:
            consumer = parse_source_map(fetcher.fetch_text(map_url))
        except Exception as exc:  # noqa: BLE001
            if map_url not in self._failed_maps:
                self._failed_maps.add(map_url)
                _LOGGER.warning("failed to load source map %s for %s: %s", _brief(map_url), script_url, exc)
            return None

        entry = ResolvedMapEntry.build(map_url, consumer)
        self._failed_maps.discard(map_url)
        evicted = self._cache.set(script_url, entry)
        if evicted is not None:
            _LOGGER.debug("evicted source map for %s", evicted)
        return entry

    # ─────────────────────────────────────────────────────────────────────────
    # Cache access
    # ─────────────────────────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        """Drop parsed maps and map-URL registrations."""
        self._cache.clear()
        with self._lock:
            self._map_urls = {}
        self._pending_bodies = {}
        self._failed_maps = set()

    def get_source_text(self, file: str) -> str | None:
        """Original text of `file` from any cached map (linear scan, no promotion)."""
        for entry in self._cache.values():
            lines = entry.source_lines.get(file)
            if lines is not None:
                return "\n".join(lines)
        return None

    def get_all_source_files(self) -> list[str]:
        files: dict[str, None] = {}
        for entry in self._cache.values():
            for source in entry.source_lines:
                files.setdefault(source, None)
        return list(files)

    def cached_scripts(self) -> list[str]:
        """Script URLs with a parsed map, least recently used first."""
        return self._cache.keys()


def _brief(url: str) -> str:
    return url if not url.startswith("data:") else url[:48] + "…"


__all__ = ["SourceMapResolver"]
