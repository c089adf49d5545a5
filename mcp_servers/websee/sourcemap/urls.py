"""Mapping-URL discovery and resolution.

A script names its map either with a response header (`SourceMap`, legacy
`X-SourceMap`) or with a trailing marker comment. The reference may be
absolute, protocol-relative, root-relative, path-relative, or an inline
`data:` URL.
"""

from __future__ import annotations

import base64
import re
from typing import Any
from urllib.parse import unquote_to_bytes, urljoin, urlsplit

_MARKER_RE = re.compile(r"(?://|/\*)[@#][ \t]*sourceMappingURL=([^\s'\"*]+)[ \t]*(?:\*/)?")
_MAP_HEADERS = ("sourcemap", "x-sourcemap")
_JS_URL_SUFFIXES = (".js", ".mjs", ".cjs")


def header_value(headers: Any, name: str) -> str | None:
    """Case-insensitive header lookup (best-effort)."""
    if not isinstance(headers, dict) or not headers:
        return None
    want = name.strip().lower()
    for k, v in headers.items():
        if str(k).strip().lower() == want:
            s = v if isinstance(v, str) else str(v)
            return s.strip() or None
    return None


def map_url_from_headers(headers: Any) -> str | None:
    for name in _MAP_HEADERS:
        value = header_value(headers, name)
        if value:
            return value
    return None


def find_marker(body: str) -> str | None:
    """Return the last sourceMappingURL marker in a script body.

    Only the tail of large bundles is scanned; the marker is conventionally the
    final line and earlier occurrences can be string literals.
    """
    if not body:
        return None
    tail = body[-4096:] if len(body) > 4096 else body
    matches = _MARKER_RE.findall(tail)
    if not matches and len(body) > 4096:
        # Inline data: maps can be far longer than the tail window.
        idx = body.rfind("sourceMappingURL=")
        if idx >= 0:
            matches = _MARKER_RE.findall(body[max(0, idx - 4) :])
    return matches[-1].strip() if matches else None


def is_javascript(url: str, mime_type: str | None = None, headers: Any = None) -> bool:
    ctype = (mime_type or header_value(headers, "content-type") or "").lower()
    if "javascript" in ctype or "ecmascript" in ctype:
        return True
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return False
    return path.endswith(_JS_URL_SUFFIXES)


def resolve_map_url(script_url: str, reference: str) -> str:
    """Resolve a mapping reference against the script that declared it."""
    ref = (reference or "").strip()
    if ref.startswith("data:"):
        return ref
    if ref.startswith(("http://", "https://")):
        return ref
    if ref.startswith("//"):
        scheme = urlsplit(script_url).scheme or "https"
        return f"{scheme}:{ref}"
    if ref.startswith("/"):
        parts = urlsplit(script_url)
        return f"{parts.scheme}://{parts.netloc}{ref}"
    return urljoin(script_url, ref)


def decode_data_url(url: str) -> str | None:
    """Decode a `data:` URL payload (base64 or percent-encoded) to text."""
    if not url.startswith("data:") or "," not in url:
        return None
    meta, _, payload = url[5:].partition(",")
    params = [p.strip().lower() for p in meta.split(";")]
    charset = "utf-8"
    for p in params:
        if p.startswith("charset="):
            charset = p.split("=", 1)[1] or "utf-8"
    try:
        if "base64" in params:
            payload = unquote_to_bytes(payload).decode("ascii").strip()
            payload += "=" * (-len(payload) % 4)
            data = base64.b64decode(payload)
        else:
            data = unquote_to_bytes(payload)
        return data.decode(charset, errors="replace")
    except (ValueError, LookupError):
        return None


__all__ = [
    "decode_data_url",
    "find_marker",
    "header_value",
    "is_javascript",
    "map_url_from_headers",
    "resolve_map_url",
]
