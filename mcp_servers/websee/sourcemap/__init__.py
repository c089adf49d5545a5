"""
Source map resolution.

Modules:
- vlq: base64 VLQ segment codec
- consumer: Source Map v3 parsing + point lookups
- urls: mapping-URL discovery and resolution
- fetch: map download with the page's cookie context
- stack: stack-frame parsing
- resolver: SourceMapResolver engine (LRU-cached)
"""

from .consumer import (
    IndexedSourceMapConsumer,
    OriginalPosition,
    SourceMapConsumer,
    SourceMapError,
    parse_source_map,
)
from .models import OriginalLocation, ResolvedFrame, ResolvedMapEntry, ResolvedStack, StackFrame
from .resolver import SourceMapResolver
from .stack import parse_stack_frame
from .urls import decode_data_url, find_marker, resolve_map_url

__all__ = [
    "IndexedSourceMapConsumer",
    "OriginalLocation",
    "OriginalPosition",
    "ResolvedFrame",
    "ResolvedMapEntry",
    "ResolvedStack",
    "SourceMapConsumer",
    "SourceMapError",
    "SourceMapResolver",
    "StackFrame",
    "decode_data_url",
    "find_marker",
    "parse_source_map",
    "parse_stack_frame",
    "resolve_map_url",
]
