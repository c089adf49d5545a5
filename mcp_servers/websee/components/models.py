from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

FRAMEWORKS = ("react", "vue", "angular")


def _opt_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


@dataclass(frozen=True, slots=True)
class SourceHint:
    file: str = "unknown"
    line: int | None = None
    column: int | None = None
    framework: str | None = None

    @property
    def known(self) -> bool:
        return self.file != "unknown"

    @classmethod
    def from_raw(cls, raw: Any, framework: str | None = None) -> SourceHint:
        if not isinstance(raw, dict):
            return cls(framework=framework)
        file = raw.get("file")
        return cls(
            file=file if isinstance(file, str) and file else "unknown",
            line=_opt_int(raw.get("line")),
            column=_opt_int(raw.get("column")),
            framework=raw.get("framework") if isinstance(raw.get("framework"), str) else framework,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"file": self.file}
        if self.line is not None:
            out["line"] = self.line
        if self.column is not None:
            out["column"] = self.column
        if self.framework:
            out["framework"] = self.framework
        return out


@dataclass(frozen=True)
class ComponentRecord:
    """One live component instance observed during a scan.

    `id`/`parent_id`/`child_ids` are only meaningful within the scan that
    produced them; `parent`/`children` carry the same links by name.
    """

    id: str
    name: str
    framework: str
    source: SourceHint = field(default_factory=SourceHint)
    props: dict[str, Any] = field(default_factory=dict)
    state: dict[str, Any] | None = None
    parent: str | None = None
    parent_id: str | None = None
    children: list[str] = field(default_factory=list)
    child_ids: list[str] = field(default_factory=list)
    dom_nodes: list[str] = field(default_factory=list)
    render_count: int = 0
    last_render_time: float = 0.0

    @classmethod
    def from_raw(cls, raw: dict[str, Any], framework: str) -> ComponentRecord:
        """Normalize one walker record. Raises ValueError on a malformed payload."""
        if not isinstance(raw, dict):
            raise ValueError("component record must be an object")
        rec_id = raw.get("id")
        if not isinstance(rec_id, str) or not rec_id:
            raise ValueError("component record has no id")
        name = raw.get("name")
        props = raw.get("props")
        state = raw.get("state")
        parent = raw.get("parent")
        parent_id = raw.get("parentId")
        last = raw.get("lastRenderTime")
        return cls(
            id=rec_id,
            name=name if isinstance(name, str) and name else "Anonymous",
            framework=framework,
            source=SourceHint.from_raw(raw.get("source"), framework),
            props=props if isinstance(props, dict) else {},
            state=state if isinstance(state, dict) else None,
            parent=parent if isinstance(parent, str) else None,
            parent_id=parent_id if isinstance(parent_id, str) else None,
            children=_str_list(raw.get("children")),
            child_ids=_str_list(raw.get("childIds")),
            dom_nodes=_str_list(raw.get("domNodes")),
            render_count=_opt_int(raw.get("renderCount")) or 0,
            last_render_time=float(last) if isinstance(last, (int, float)) and not isinstance(last, bool) else 0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "framework": self.framework,
            "source": self.source.to_dict(),
            "props": dict(self.props),
            "state": dict(self.state) if self.state is not None else None,
            "parent": self.parent,
            "parentId": self.parent_id,
            "children": list(self.children),
            "childIds": list(self.child_ids),
            "domNodes": list(self.dom_nodes),
            "renderCount": self.render_count,
            "lastRenderTime": self.last_render_time,
        }


@dataclass
class ComponentTreeNode:
    record: ComponentRecord
    depth: int = 0
    children: list[ComponentTreeNode] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.record.name

    def walk(self):
        """Pre-order iteration over this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.record.id,
            "name": self.record.name,
            "framework": self.record.framework,
            "depth": self.depth,
            "source": self.record.source.to_dict(),
            "children": [c.to_dict() for c in self.children],
        }


@dataclass(frozen=True)
class RenderTrace:
    """Fiber commits observed during a tracking window."""

    duration_ms: float
    commits: list[float]

    @property
    def total(self) -> int:
        return len(self.commits)

    @property
    def intervals_ms(self) -> list[float]:
        return [b - a for a, b in zip(self.commits, self.commits[1:])]

    @property
    def average_interval_ms(self) -> float | None:
        gaps = self.intervals_ms
        return sum(gaps) / len(gaps) if gaps else None

    def to_dict(self) -> dict[str, Any]:
        gaps = self.intervals_ms
        return {
            "durationMs": self.duration_ms,
            "total": self.total,
            "commits": list(self.commits),
            "averageIntervalMs": self.average_interval_ms,
            "minIntervalMs": min(gaps) if gaps else None,
            "maxIntervalMs": max(gaps) if gaps else None,
        }
