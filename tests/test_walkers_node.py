from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any

import pytest

from mcp_servers.websee.components import build_component_tree
from mcp_servers.websee.components.js_tracker import (
    ANGULAR_WALKER_JS,
    ELEMENT_LOOKUP_JS,
    REACT_WALKER_JS,
    VUE_WALKER_JS,
)
from mcp_servers.websee.components.models import ComponentRecord

NODE = shutil.which("node")

pytestmark = pytest.mark.skipif(NODE is None, reason="Requires a node binary to run the in-page walkers.")

# Just enough DOM for the walkers: elements with attributes and a parent chain.
# Every selector passed to querySelectorAll matches every element; the walkers
# only act on elements that carry framework internals.
FAKE_DOM = r"""
class FakeElement {
  constructor(tag, attrs, parent) {
    this.nodeType = 1;
    this.tagName = tag.toUpperCase();
    this.attributes = new Map(Object.entries(attrs || {}));
    this.children = [];
    this.parentElement = parent || null;
    if (parent) parent.children.push(this);
  }
  get id() {
    return this.getAttribute("id") || "";
  }
  getAttribute(name) {
    return this.attributes.has(name) ? this.attributes.get(name) : null;
  }
  setAttribute(name, value) {
    this.attributes.set(name, String(value));
  }
}
const body = new FakeElement("body");
const el = (tag, attrs, parent) => new FakeElement(tag, attrs, parent || body);
function allElements() {
  const out = [];
  const walk = (node) => {
    for (const c of node.children) {
      out.push(c);
      walk(c);
    }
  };
  walk(body);
  return out;
}
globalThis.document = {
  body,
  querySelectorAll: () => allElements(),
  querySelector: (sel) =>
    allElements().find((e) => (sel.startsWith("#") ? e.id === sel.slice(1) : e.tagName === sel.toUpperCase())) || null,
};
const named = (n) => ({ [n]: function () {} })[n];
"""


def _run(tmp_path: Path, page: str, expression: str) -> Any:
    script = tmp_path / "page.js"
    script.write_text(
        FAKE_DOM + page + "\nconst result = " + expression + ";\nprocess.stdout.write(JSON.stringify(result));\n",
        encoding="utf-8",
    )
    proc = subprocess.run([NODE, str(script)], capture_output=True, text=True, timeout=60, check=False)
    assert proc.returncode == 0, proc.stderr
    return json.loads(proc.stdout)


def _records(payload: dict[str, Any], framework: str) -> list[ComponentRecord]:
    return [ComponentRecord.from_raw(raw, framework) for raw in payload["records"]]


def test_react_walker_keeps_nine_of_ten_when_one_fiber_throws(tmp_path: Path) -> None:
    page = r"""
const nodes = [];
for (let i = 0; i < 10; i++) {
  const f = { tag: 0, type: named("Widget" + i), memoizedProps: { index: i }, memoizedState: null,
              stateNode: null, child: null, sibling: null, return: null };
  if (i === 4) Object.defineProperty(f, "memoizedProps", { get() { throw new Error("boom"); } });
  nodes.push(f);
}
for (let i = 0; i < 9; i++) { nodes[i].child = nodes[i + 1]; nodes[i + 1].return = nodes[i]; }
const hostRoot = { tag: 3, child: nodes[0] };
nodes[0].return = hostRoot;
el("div", { id: "root" })["__reactContainer$t1"] = hostRoot;
"""
    payload = _run(tmp_path, page, REACT_WALKER_JS)

    records = _records(payload, "react")
    assert payload["detected"] is True
    assert payload["skipped"] == 1
    assert [r.name for r in records] == [f"Widget{i}" for i in range(10) if i != 4]
    by_name = {r.name: r for r in records}
    assert by_name["Widget0"].parent is None
    assert by_name["Widget5"].parent == "Widget3"
    assert by_name["Widget5"].parent_id == by_name["Widget3"].id
    assert by_name["Widget7"].props == {"index": 7}
    assert all(r.render_count == 1 for r in records)

    roots = build_component_tree(records)
    assert [n.name for n in roots] == ["Widget0"]
    assert len(list(roots[0].walk())) == 9


def test_react_walker_terminates_on_cyclic_fibers(tmp_path: Path) -> None:
    page = r"""
const props = { label: "loop" };
props.self = props;
const a = { tag: 0, type: named("CycleA"), memoizedProps: props };
const b = { tag: 0, type: named("CycleB"), memoizedProps: {} };
a.child = b; b.child = a; b.sibling = b; a.return = b; b.return = a;
el("div", { id: "cyclic" })["__reactContainer$t2"] = { tag: 3, child: a };
el("span")["__reactFiber$t2"] = b;
"""
    payload = _run(tmp_path, page, REACT_WALKER_JS)

    records = _records(payload, "react")
    assert [(r.name, r.parent) for r in records] == [("CycleA", None), ("CycleB", "CycleA")]
    assert records[0].props["label"] == "loop"
    assert "[Circular]" in json.dumps(records[0].props)


def test_react_walker_anchors_components_on_synthesized_ids(tmp_path: Path) -> None:
    page = r"""
const first = el("button", { id: "dup" });
const second = el("button", { id: "dup" });
const hostA = { tag: 5, type: "button", stateNode: first };
const hostB = { tag: 5, type: "button", stateNode: second };
const buyA = { tag: 0, type: named("BuyButton"), memoizedProps: { sku: "a" }, child: hostA };
const buyB = { tag: 0, type: named("BuyButton"), memoizedProps: { sku: "b" }, child: hostB };
buyA.sibling = buyB;
const app = { tag: 0, type: named("Shop"), memoizedProps: {}, child: buyA };
el("div", { id: "root" })["__reactContainer$t3"] = { tag: 3, child: app };
"""
    expression = (
        "{ walk: " + REACT_WALKER_JS + ', attrs: allElements().map((e) => e.getAttribute("data-websee-id")) }'
    )
    out = _run(tmp_path, page, expression)

    records = {r.props.get("sku"): r for r in _records(out["walk"], "react") if r.name == "BuyButton"}
    first, second = records["a"].dom_nodes, records["b"].dom_nodes
    assert len(first) == 1 and len(second) == 1
    assert first != second
    assert first[0].startswith("websee-react-") and second[0].startswith("websee-react-")
    assert first[0] in out["attrs"] and second[0] in out["attrs"]


def test_vue_walker_terminates_on_cyclic_instances_and_skips_broken_ones(tmp_path: Path) -> None:
    page = r"""
const rootEl = el("div", { id: "app" });
const childEl = el("p", {}, rootEl);
const root = { type: { name: "VueRoot", __file: "src/App.vue" }, props: {},
               setupState: { count: 0, title: "Shop" }, data: { count: 1 }, vnode: { el: rootEl } };
const child = { type: { __name: "VueChild" }, props: { msg: "hi" }, setupState: {}, vnode: { el: childEl } };
const broken = { get type() { throw new Error("boom"); }, subTree: { children: [] } };
root.subTree = { children: [{ children: [{ component: child }] }, { component: broken }] };
child.subTree = { children: [{ component: root }] };
globalThis.app = { _instance: root };
"""
    payload = _run(tmp_path, page, VUE_WALKER_JS)

    records = _records(payload, "vue")
    assert payload["skipped"] == 1
    assert [(r.name, r.parent) for r in records] == [("VueRoot", None), ("VueChild", "VueRoot")]
    root, child = records
    assert root.source.file == "src/App.vue"
    assert root.state == {"count": 1, "title": "Shop"}
    assert child.props == {"msg": "hi"}
    assert child.state is None
    assert root.dom_nodes[0].startswith("websee-vue-")


def test_angular_walker_splits_inputs_and_links_parents(tmp_path: Path) -> None:
    page = r"""
class HeroCard {
  constructor(title) { this.title = title; this.count = 1; this._private = 1; this.onClick = () => {}; }
}
class Badge { constructor() { this.label = "new"; } }
class Broken {}
const cardA = el("div", { id: "dup" });
const badgeEl = el("span", {}, cardA);
const cardB = el("div", { id: "dup" });
el("i", {}, cardB);
const brokenEl = el("p");
const broken = new Broken();
Object.defineProperty(broken, "value", { enumerable: true, get() { throw new Error("boom"); } });
const owners = new Map([
  [cardA, new HeroCard("A")], [badgeEl, new Badge()], [cardB, new HeroCard("B")], [brokenEl, broken],
]);
globalThis.ng = {
  getComponent: (e) => owners.get(e) || null,
  getDirectiveMetadata: (inst) => (inst instanceof HeroCard ? { inputs: { title: "title" } } : null),
};
"""
    expression = "{ walk: " + ANGULAR_WALKER_JS + ", lookup: (" + ELEMENT_LOOKUP_JS + ')("i") }'
    out = _run(tmp_path, page, expression)

    records = _records(out["walk"], "angular")
    assert out["walk"]["skipped"] == 1
    assert [(r.name, r.parent) for r in records] == [("HeroCard", None), ("Badge", "HeroCard"), ("HeroCard", None)]
    card_a, badge, card_b = records
    assert card_a.props == {"title": "A"}
    assert card_a.state == {"count": 1}
    assert badge.props == {} and badge.state == {"label": "new"}
    assert badge.parent_id == card_a.id
    assert card_a.dom_nodes != card_b.dom_nodes

    lookup = out["lookup"]
    assert lookup["found"] is True
    assert lookup["id"].startswith("websee-elem-")
    assert lookup["ancestors"] == card_b.dom_nodes
