"""Nesting flat scan results into a component tree."""

from __future__ import annotations

from collections.abc import Iterable

from .models import ComponentRecord, ComponentTreeNode


def build_component_tree(records: Iterable[ComponentRecord]) -> list[ComponentTreeNode]:
    """Nest records by parent_id, keeping scan order among siblings.

    Records whose parent is missing from `records` (for example after a
    framework filter) become roots.
    """
    items = list(records)
    known = {r.id for r in items}
    by_parent: dict[str | None, list[ComponentRecord]] = {}
    for rec in items:
        key = rec.parent_id if rec.parent_id in known and rec.parent_id != rec.id else None
        by_parent.setdefault(key, []).append(rec)

    seen: set[str] = set()
    roots: list[ComponentTreeNode] = []
    for rec in by_parent.get(None, []):
        if rec.id in seen:
            continue
        root = ComponentTreeNode(record=rec, depth=0)
        seen.add(rec.id)
        stack = [root]
        while stack:
            node = stack.pop()
            for child in by_parent.get(node.record.id, []):
                if child.id in seen:
                    continue
                seen.add(child.id)
                child_node = ComponentTreeNode(record=child, depth=node.depth + 1)
                node.children.append(child_node)
                stack.append(child_node)
        roots.append(root)
    return roots


def format_component_tree(roots: list[ComponentTreeNode], *, indent: str = "  ") -> str:
    lines: list[str] = []
    for root in roots:
        for node in root.walk():
            src = node.record.source
            where = f" ({src.file}:{src.line})" if src.known and src.line is not None else ""
            lines.append(f"{indent * node.depth}{node.name} [{node.record.framework}]{where}")
    return "\n".join(lines)


__all__ = ["build_component_tree", "format_component_tree"]
