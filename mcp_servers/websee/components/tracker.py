"""
Component Introspection Engine.

Discovers live React/Vue/Angular component instances on the page and maps
DOM elements back to them. Each framework variant runs as its own in-page
walk; a failing or absent framework contributes zero records.
"""

from __future__ import annotations

import logging
import time
from contextlib import suppress
from typing import Any

from ..browser_session import BrowserSession
from ..config import WebseeConfig
from ..errors import NotInitializedError
from .js_tracker import (
    ELEMENT_LOOKUP_JS,
    FRAMEWORK_DETECT_JS,
    PAGE_NOW_JS,
    RENDER_COMMITS_JS,
    WALKERS,
    tracker_bootstrap_js,
)
from .models import FRAMEWORKS, ComponentRecord, ComponentTreeNode, RenderTrace, SourceHint
from .tree import build_component_tree

_LOGGER = logging.getLogger("mcp.websee.components")

_ENGINE = "ComponentTracker"


class ComponentTracker:
    """Framework-agnostic component discovery for one page session."""

    def __init__(self, config: WebseeConfig | None = None):
        self.config = config or WebseeConfig()
        self._session: BrowserSession | None = None
        self._init_script_id: str | None = None
        # All three are replaced wholesale after each full scan.
        self._by_id: dict[str, ComponentRecord] = {}
        self._by_name: dict[str, ComponentRecord] = {}
        self._dom_index: dict[str, str] = {}

    @property
    def initialized(self) -> bool:
        return self._session is not None

    def initialize(self, session: BrowserSession) -> None:
        """Install and reset page-owned tracking state, then bind to the session."""
        if self._session is not None and self._session is not session:
            self.destroy()
        self._session = session
        self._by_id, self._by_name, self._dom_index = {}, {}, {}

        if self._init_script_id is None:
            try:
                self._init_script_id = session.add_init_script(tracker_bootstrap_js(reset=False))
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning("tracker init script not installed: %s", exc)
        try:
            session.eval_js(tracker_bootstrap_js(reset=True))
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("tracker state not installed on current document: %s", exc)

    def destroy(self) -> None:
        session = self._session
        if session is not None and self._init_script_id:
            session.remove_init_script(self._init_script_id)
        self._init_script_id = None
        self._session = None
        self._by_id, self._by_name, self._dom_index = {}, {}, {}

    def _require(self, action: str) -> BrowserSession:
        if self._session is None:
            raise NotInitializedError.for_engine(_ENGINE, action)
        return self._session

    # ─────────────────────────────────────────────────────────────────────────
    # Scanning
    # ─────────────────────────────────────────────────────────────────────────

    def get_component_tree(self, framework: str | None = None) -> list[ComponentRecord]:
        """Full scan across all variants. `framework` filters the returned list only."""
        session = self._require("get_component_tree")
        if framework is not None and framework not in FRAMEWORKS:
            return []

        started = time.perf_counter()
        records: list[ComponentRecord] = []
        for name, source in WALKERS:
            records.extend(self._run_variant(session, name, source))
        self._rebuild_indexes(records)

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if elapsed_ms > self.config.scan_budget_ms:
            _LOGGER.warning("slow component scan (%.1fms, %d components)", elapsed_ms, len(records))

        if framework is None:
            return records
        return [r for r in records if r.framework == framework]

    def _run_variant(self, session: BrowserSession, framework: str, source: str) -> list[ComponentRecord]:
        try:
            payload = session.eval_js(source)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.debug("%s scan failed: %s", framework, exc)
            return []
        if not isinstance(payload, dict):
            return []
        if not payload.get("detected"):
            _LOGGER.debug("%s not detected", framework)

        out: list[ComponentRecord] = []
        for raw in payload.get("records") or []:
            try:
                out.append(ComponentRecord.from_raw(raw, framework))
            except ValueError as exc:
                _LOGGER.debug("skipping malformed %s record: %s", framework, exc)
        skipped = payload.get("skipped")
        if isinstance(skipped, int) and skipped:
            _LOGGER.debug("%s scan skipped %d unreadable component(s)", framework, skipped)
        return out

    def _rebuild_indexes(self, records: list[ComponentRecord]) -> None:
        by_id: dict[str, ComponentRecord] = {}
        by_name: dict[str, ComponentRecord] = {}
        dom_index: dict[str, str] = {}
        for rec in records:
            by_id[rec.id] = rec
            by_name[rec.name] = rec
            for node in rec.dom_nodes:
                # Outer components share their first element with inner ones; the
                # innermost (last visited) owner wins.
                dom_index[node] = rec.id
        self._by_id, self._by_name, self._dom_index = by_id, by_name, dom_index

    # ─────────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────────

    def get_component_at_element(self, selector: str) -> ComponentRecord | None:
        """Component owning the first element matching `selector` (or its nearest owned ancestor)."""
        session = self._require("get_component_at_element")
        if not isinstance(selector, str) or not selector.strip():
            return None
        self.get_component_tree()

        try:
            found = session.call_js(ELEMENT_LOOKUP_JS, selector)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.debug("element lookup failed for %r: %s", selector, exc)
            return None
        if not isinstance(found, dict) or not found.get("found"):
            return None

        candidates = [found.get("id"), *(found.get("ancestors") or [])]
        for ident in candidates:
            if not isinstance(ident, str):
                continue
            rec_id = self._dom_index.get(ident)
            if rec_id is not None:
                return self._by_id.get(rec_id)
        return None

    def get_component_source(self, selector: str) -> SourceHint | None:
        rec = self.get_component_at_element(selector)
        return rec.source if rec is not None else None

    def find_by_name(self, name: str) -> list[ComponentRecord]:
        """Every live instance called `name` (fresh scan)."""
        return [r for r in self.get_component_tree() if r.name == name]

    def last_seen(self, name: str) -> ComponentRecord | None:
        """Last record of that name from the most recent scan (no page access)."""
        return self._by_name.get(name)

    def build_component_tree(self, records: list[ComponentRecord] | None = None) -> list[ComponentTreeNode]:
        if records is None:
            records = self.get_component_tree()
        return build_component_tree(records)

    def frameworks_present(self) -> dict[str, bool]:
        session = self._require("frameworks_present")
        try:
            found = session.eval_js(FRAMEWORK_DETECT_JS)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.debug("framework detection failed: %s", exc)
            found = None
        found = found if isinstance(found, dict) else {}
        return {name: bool(found.get(name)) for name in FRAMEWORKS}

    # ─────────────────────────────────────────────────────────────────────────
    # Render tracking
    # ─────────────────────────────────────────────────────────────────────────

    def track_renders(self, duration_s: float = 5.0) -> RenderTrace:
        """Collect React fiber commits that happen during the next `duration_s` seconds."""
        session = self._require("track_renders")
        duration_s = max(0.0, float(duration_s))
        since = _page_now(session)
        time.sleep(duration_s)

        commits: list[float] = []
        try:
            res: Any = session.call_js(RENDER_COMMITS_JS, since)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.debug("render commits unavailable: %s", exc)
            res = None
        if isinstance(res, dict) and isinstance(res.get("commits"), list):
            commits = [float(t) for t in res["commits"] if isinstance(t, (int, float)) and not isinstance(t, bool)]
        return RenderTrace(duration_ms=duration_s * 1000.0, commits=sorted(commits))


def _page_now(session: BrowserSession) -> float:
    with suppress(Exception):
        now = session.eval_js(PAGE_NOW_JS)
        if isinstance(now, (int, float)) and not isinstance(now, bool):
            return float(now)
    return time.time() * 1000.0


__all__ = ["ComponentTracker"]
