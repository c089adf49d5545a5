"""
Source Map v3 consumer.

Parses the JSON mapping format (plain and indexed/sectioned maps) and answers
generated → original point lookups with greatest-lower-bound semantics: a
generated column resolves to the closest mapping at or before it on the same
generated line.
"""

from __future__ import annotations

import json
import posixpath
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any

from .vlq import VlqError, decode_segment

_XSSI_PREFIX = ")]}'"


class SourceMapError(ValueError):
    """The payload is not a usable Source Map v3 document."""


@dataclass(frozen=True, slots=True)
class OriginalPosition:
    source: str
    line: int  # 1-indexed
    column: int  # 0-indexed
    name: str | None = None


@dataclass(frozen=True, slots=True)
class _Mapping:
    generated_column: int
    source: int | None
    original_line: int  # 0-indexed
    original_column: int
    name: int | None


def _join_source_root(root: str, source: str) -> str:
    if not root or "://" in source or source.startswith("/"):
        return source
    if "://" in root:
        return root + source if root.endswith("/") else root + "/" + source
    return posixpath.normpath(posixpath.join(root, source))


class SourceMapConsumer:
    """Point lookups over a single (non-indexed) source map."""

    def __init__(self, raw: dict[str, Any]):
        version = raw.get("version")
        if version is not None and int(version) != 3:
            raise SourceMapError(f"unsupported source map version: {version!r}")
        mappings = raw.get("mappings")
        if not isinstance(mappings, str):
            raise SourceMapError("source map has no 'mappings' string")

        root = raw.get("sourceRoot") if isinstance(raw.get("sourceRoot"), str) else ""
        sources = raw.get("sources") if isinstance(raw.get("sources"), list) else []
        self.sources: list[str] = [_join_source_root(root, str(s or "")) for s in sources]
        names = raw.get("names") if isinstance(raw.get("names"), list) else []
        self.names: list[str] = [str(n) for n in names]

        contents = raw.get("sourcesContent") if isinstance(raw.get("sourcesContent"), list) else []
        self._contents: dict[str, str] = {}
        for i, src in enumerate(self.sources):
            if i < len(contents) and isinstance(contents[i], str):
                self._contents[src] = contents[i]

        self.file = raw.get("file") if isinstance(raw.get("file"), str) else None
        self._lines = self._parse_mappings(mappings)
        self._columns = [[m.generated_column for m in line] for line in self._lines]

    def _parse_mappings(self, mappings: str) -> list[list[_Mapping]]:
        lines: list[list[_Mapping]] = []
        source = original_line = original_column = name = 0
        for raw_line in mappings.split(";"):
            generated_column = 0
            line: list[_Mapping] = []
            for segment in raw_line.split(","):
                if not segment:
                    continue
                try:
                    fields = decode_segment(segment)
                except VlqError as exc:
                    raise SourceMapError(str(exc)) from exc
                if len(fields) not in (1, 4, 5):
                    raise SourceMapError(f"segment {segment!r} has {len(fields)} fields")
                generated_column += fields[0]
                if len(fields) == 1:
                    line.append(_Mapping(generated_column, None, 0, 0, None))
                    continue
                source += fields[1]
                original_line += fields[2]
                original_column += fields[3]
                name_index: int | None = None
                if len(fields) == 5:
                    name += fields[4]
                    name_index = name
                line.append(_Mapping(generated_column, source, original_line, original_column, name_index))
            line.sort(key=lambda m: m.generated_column)
            lines.append(line)
        return lines

    def original_position_for(self, line: int, column: int) -> OriginalPosition | None:
        """Look up a generated position (1-indexed line, 0-indexed column)."""
        idx = line - 1
        if idx < 0 or idx >= len(self._lines) or column < 0:
            return None
        pos = bisect_right(self._columns[idx], column) - 1
        if pos < 0:
            return None
        mapping = self._lines[idx][pos]
        if mapping.source is None or not (0 <= mapping.source < len(self.sources)):
            return None
        name = None
        if mapping.name is not None and 0 <= mapping.name < len(self.names):
            name = self.names[mapping.name]
        return OriginalPosition(
            source=self.sources[mapping.source],
            line=mapping.original_line + 1,
            column=mapping.original_column,
            name=name,
        )

    def source_content_for(self, source: str) -> str | None:
        return self._contents.get(source)


class IndexedSourceMapConsumer:
    """Point lookups over an indexed map (`sections` with generated offsets)."""

    def __init__(self, raw: dict[str, Any]):
        sections = raw.get("sections")
        if not isinstance(sections, list):
            raise SourceMapError("indexed source map has no 'sections' list")
        self._sections: list[tuple[int, int, SourceMapConsumer]] = []
        for section in sections:
            if not isinstance(section, dict):
                raise SourceMapError("section must be an object")
            if "url" in section:
                raise SourceMapError("indexed source map sections with 'url' are not supported")
            offset = section.get("offset") if isinstance(section.get("offset"), dict) else {}
            sub = section.get("map")
            if not isinstance(sub, dict):
                raise SourceMapError("section has no embedded 'map'")
            self._sections.append((int(offset.get("line", 0)), int(offset.get("column", 0)), load_consumer(sub)))
        self._sections.sort(key=lambda s: (s[0], s[1]))
        self._keys = [(s[0], s[1]) for s in self._sections]
        self.file = raw.get("file") if isinstance(raw.get("file"), str) else None

    @property
    def sources(self) -> list[str]:
        seen: dict[str, None] = {}
        for _, _, consumer in self._sections:
            for src in consumer.sources:
                seen.setdefault(src, None)
        return list(seen)

    def original_position_for(self, line: int, column: int) -> OriginalPosition | None:
        idx = bisect_right(self._keys, (line - 1, column)) - 1
        if idx < 0:
            return None
        off_line, off_col, consumer = self._sections[idx]
        rel_line = line - off_line
        rel_col = column - off_col if line - 1 == off_line else column
        return consumer.original_position_for(rel_line, rel_col)

    def source_content_for(self, source: str) -> str | None:
        for _, _, consumer in self._sections:
            content = consumer.source_content_for(source)
            if content is not None:
                return content
        return None


def load_consumer(raw: dict[str, Any]) -> SourceMapConsumer | IndexedSourceMapConsumer:
    if "sections" in raw:
        return IndexedSourceMapConsumer(raw)
    return SourceMapConsumer(raw)


def parse_source_map(payload: str | bytes | dict[str, Any]) -> SourceMapConsumer | IndexedSourceMapConsumer:
    """Parse a source map document (JSON text, bytes, or already-decoded dict)."""
    if isinstance(payload, dict):
        raw: Any = payload
    else:
        text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else str(payload)
        text = text.lstrip("\ufeff")
        if text.startswith(_XSSI_PREFIX):
            text = text.split("\n", 1)[1] if "\n" in text else ""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceMapError(f"invalid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise SourceMapError("source map must be a JSON object")
    try:
        return load_consumer(raw)
    except (TypeError, ValueError) as exc:
        if isinstance(exc, SourceMapError):
            raise
        raise SourceMapError(str(exc)) from exc


__all__ = [
    "IndexedSourceMapConsumer",
    "OriginalPosition",
    "SourceMapConsumer",
    "SourceMapError",
    "parse_source_map",
]
