from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .consumer import IndexedSourceMapConsumer, SourceMapConsumer


@dataclass(frozen=True, slots=True)
class OriginalLocation:
    """Where a minified position came from."""

    file: str
    line: int  # 1-indexed
    column: int  # 0-indexed
    name: str | None = None
    content: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ResolvedMapEntry:
    map_url: str
    consumer: SourceMapConsumer | IndexedSourceMapConsumer
    source_lines: dict[str, list[str]]

    @classmethod
    def build(cls, map_url: str, consumer: SourceMapConsumer | IndexedSourceMapConsumer) -> ResolvedMapEntry:
        lines: dict[str, list[str]] = {}
        for source in consumer.sources:
            content = consumer.source_content_for(source)
            if content is not None:
                lines[source] = content.split("\n")
        return cls(map_url=map_url, consumer=consumer, source_lines=lines)

    def context(self, source: str, line: int, radius: int) -> str | None:
        """±radius lines around a 1-indexed line; None when content is not embedded."""
        lines = self.source_lines.get(source)
        if lines is None:
            return None
        start = max(0, line - radius - 1)
        end = min(len(lines), line + radius)
        return "\n".join(lines[start:end])


@dataclass(frozen=True, slots=True)
class StackFrame:
    raw: str
    url: str
    line: int
    column: int
    function: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedFrame:
    frame: StackFrame
    location: OriginalLocation | None

    @property
    def resolved(self) -> bool:
        return self.location is not None

    def format(self) -> str:
        loc = self.location
        if loc is None:
            return self.frame.raw
        fn = self.frame.function or loc.name
        where = f"{loc.file}:{loc.line}:{loc.column}"
        return f"    at {fn} ({where})" if fn else f"    at {where}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "url": self.frame.url,
            "line": self.frame.line,
            "column": self.frame.column,
            "resolved": self.resolved,
        }
        if self.frame.function:
            out["function"] = self.frame.function
        if self.location is not None:
            out["original"] = self.location.to_dict()
        return out


@dataclass(frozen=True)
class ResolvedStack:
    original: list[str]
    resolved: list[str]
    frames: list[ResolvedFrame]

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": list(self.original),
            "resolved": list(self.resolved),
            "frames": [f.to_dict() for f in self.frames],
        }
