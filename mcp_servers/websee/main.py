"""
Command-line entry point for ad-hoc introspection of a running Chrome tab.

Connects to the DevTools endpoint from WebseeConfig (WEBSEE_CDP_HOST/PORT),
runs one query and prints JSON to stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .components import ComponentTracker
from .config import WebseeConfig
from .errors import WebseeError
from .http_client import HttpClientError
from .session import session
from .sourcemap import SourceMapResolver

logger = logging.getLogger("mcp.websee")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="websee", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--tab", default=None, help="Target id (default: first page target)")
    parser.add_argument("--verbose", "-v", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    tree = sub.add_parser("tree", help="Print the live component tree")
    tree.add_argument("--framework", choices=["react", "vue", "angular"], default=None)
    tree.add_argument("--flat", action="store_true", help="Print flat records instead of a nested tree")

    element = sub.add_parser("element", help="Component owning the element matching a CSS selector")
    element.add_argument("selector")

    resolve = sub.add_parser("resolve", help="Map a minified position to its original source")
    resolve.add_argument("url")
    resolve.add_argument("line", type=int, help="1-indexed line")
    resolve.add_argument("column", type=int, help="0-indexed column")

    stack = sub.add_parser("stack", help="Resolve a stack trace read from a file ('-' for stdin)")
    stack.add_argument("path")

    renders = sub.add_parser("renders", help="Record React commits for a while")
    renders.add_argument("--seconds", type=float, default=5.0)

    sub.add_parser("detect", help="Report which frameworks are present")
    return parser


def _run(args: argparse.Namespace, config: WebseeConfig) -> Any:
    with session(config, tab_id=args.tab) as sess:
        if args.command in {"resolve", "stack"}:
            resolver = SourceMapResolver(config)
            resolver.initialize(sess)
            try:
                if args.command == "resolve":
                    loc = resolver.resolve(args.url, args.line, args.column)
                    return loc.to_dict() if loc is not None else None
                text = sys.stdin.read() if args.path == "-" else Path(args.path).read_text(encoding="utf-8")
                return resolver.resolve_stack(text).to_dict()
            finally:
                resolver.destroy()

        tracker = ComponentTracker(config)
        tracker.initialize(sess)
        try:
            if args.command == "tree":
                records = tracker.get_component_tree(args.framework)
                if args.flat:
                    return [r.to_dict() for r in records]
                return [node.to_dict() for node in tracker.build_component_tree(records)]
            if args.command == "element":
                rec = tracker.get_component_at_element(args.selector)
                return rec.to_dict() if rec is not None else None
            if args.command == "renders":
                return tracker.track_renders(args.seconds).to_dict()
            return tracker.frameworks_present()
        finally:
            tracker.destroy()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    config = WebseeConfig.from_env()
    try:
        result = _run(args, config)
    except WebseeError as exc:
        print(json.dumps(exc.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 2
    except HttpClientError as exc:
        logger.error("CDP connection failed: %s", exc)
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
