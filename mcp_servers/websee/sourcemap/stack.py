"""Stack-trace frame parsing (V8 and SpiderMonkey/JavaScriptCore formats)."""

from __future__ import annotations

import re

from .models import StackFrame

# "    at fn (https://x/app.js:1:234)" / "    at async fn (...)" / "    at https://x/app.js:1:234"
_V8_RE = re.compile(r"^\s*at\s+(?:(?P<fn>.*?)\s+\()?(?P<url>[^()\s]+?):(?P<line>\d+):(?P<col>\d+)\)?\s*$")
# "fn@https://x/app.js:1:234" / "@https://x/app.js:1:234"
_GECKO_RE = re.compile(r"^\s*(?P<fn>[^@\s]*)@(?P<url>\S+?):(?P<line>\d+):(?P<col>\d+)\s*$")


def parse_stack_frame(line: str) -> StackFrame | None:
    m = _V8_RE.match(line) or _GECKO_RE.match(line)
    if not m:
        return None
    fn = (m.group("fn") or "").strip()
    if fn.startswith("async "):
        fn = fn[len("async ") :].strip()
    return StackFrame(
        raw=line,
        url=m.group("url"),
        line=int(m.group("line")),
        # Stack columns are 1-indexed; mapping lookups are 0-indexed.
        column=max(0, int(m.group("col")) - 1),
        function=fn or None,
    )


__all__ = ["parse_stack_frame"]
