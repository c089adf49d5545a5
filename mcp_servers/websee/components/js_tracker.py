from __future__ import annotations

TRACKER_SCRIPT_VERSION = "1"


# NOTE: Every script below is self-contained and runs synchronously inside one
# Runtime.evaluate. The page's own scripts cannot interleave with a walk.
#
# Page-owned state lives on `globalThis.__WEBSEE_TRACKER__`:
# - renderCounts: Map("<framework>:<name>" -> count)
# - lastRenderTimes: Map(framework -> epoch ms)
# - commits: bounded list of fiber commit timestamps (render tracking)
# - fiberRoots: roots seen by the commit hook
# - nextId: counter for synthesized element identifiers (survives resets)
#
# Element identifiers live only in `data-websee-id` (page ids may repeat). Once
# written it is never changed, so point lookups stay consistent for the
# element's lifetime.
_BOOTSTRAP_TEMPLATE = r"""
(() => {
  const VERSION = "__VERSION__";
  const RESET = __RESET__;
  const g = globalThis;
  const KEY = "__WEBSEE_TRACKER__";
  const MAX_COMMITS = 1000;

  const prev = g[KEY];
  if (prev && prev.version === VERSION && !RESET) {
    return { ok: true, already: true, version: VERSION };
  }

  const tracker = {
    version: VERSION,
    renderCounts: new Map(),
    lastRenderTimes: new Map(),
    commits: [],
    maxCommits: MAX_COMMITS,
    fiberRoots: new Set(),
    nextId: prev && typeof prev.nextId === "number" ? prev.nextId : 1,
  };
  g[KEY] = tracker;

  let shim = false;
  let hook = g.__REACT_DEVTOOLS_GLOBAL_HOOK__;
  if (!hook) {
    // Minimal hook compatible with the renderer's injection contract. It must
    // exist before the renderer loads, otherwise early commits are invisible.
    const renderers = new Map();
    const roots = new Map();
    let nextRendererId = 1;
    hook = {
      __webseeShim: true,
      renderers,
      supportsFiber: true,
      inject(renderer) {
        const id = nextRendererId++;
        renderers.set(id, renderer);
        roots.set(id, new Set());
        return id;
      },
      getFiberRoots(id) {
        let set = roots.get(id);
        if (!set) {
          set = new Set();
          roots.set(id, set);
        }
        return set;
      },
      onCommitFiberRoot(id, root) {
        try {
          const set = this.getFiberRoots(id);
          if (root && root.current) set.add(root);
          else if (root) set.delete(root);
        } catch (_e) {
          // ignore
        }
      },
      onCommitFiberUnmount() {},
      onPostCommitFiberRoot() {},
      onScheduleFiberRoot() {},
      setStrictMode() {},
      checkDCE() {},
    };
    try {
      Object.defineProperty(g, "__REACT_DEVTOOLS_GLOBAL_HOOK__", {
        value: hook,
        configurable: true,
        writable: true,
        enumerable: false,
      });
    } catch (_e) {
      g.__REACT_DEVTOOLS_GLOBAL_HOOK__ = hook;
    }
    shim = true;
  }

  if (!hook.__webseePatched) {
    const original = hook.onCommitFiberRoot;
    hook.onCommitFiberRoot = function (...args) {
      try {
        const t = g[KEY];
        if (t) {
          const now = Date.now();
          t.lastRenderTimes.set("react", now);
          t.commits.push(now);
          if (t.commits.length > t.maxCommits) t.commits.splice(0, t.commits.length - t.maxCommits);
          const root = args[1];
          if (root && root.current) t.fiberRoots.add(root);
        }
      } catch (_e) {
        // ignore
      }
      if (typeof original === "function") return original.apply(this, args);
      return undefined;
    };
    try {
      Object.defineProperty(hook, "__webseePatched", { value: true, configurable: true });
    } catch (_e) {
      hook.__webseePatched = true;
    }
  }

  return { ok: true, already: false, shim, version: VERSION };
})()
"""


def tracker_bootstrap_js(*, reset: bool) -> str:
    """Install (or, with reset=True, re-create) the page-owned tracker and fiber hook."""
    return _BOOTSTRAP_TEMPLATE.replace("__VERSION__", TRACKER_SCRIPT_VERSION).replace(
        "__RESET__", "true" if reset else "false"
    )


# Shared helpers, inlined at the top of every walker.
_COMMON = r"""
  const g = globalThis;
  const KEY = "__WEBSEE_TRACKER__";
  const ID_ATTR = "data-websee-id";
  const MAX_DEPTH = 3;
  const MAX_KEYS = 50;
  const MAX_ITEMS = 50;
  const MAX_STR = 500;
  const MAX_NODES = 20000;

  let tracker = g[KEY];
  if (!tracker) {
    tracker = {
      version: "__VERSION__",
      renderCounts: new Map(),
      lastRenderTimes: new Map(),
      commits: [],
      maxCommits: 1000,
      fiberRoots: new Set(),
      nextId: 1,
    };
    g[KEY] = tracker;
  }

  const isElement = (n) => !!n && typeof n === "object" && n.nodeType === 1 && typeof n.getAttribute === "function";

  function stableId(el, prefix) {
    if (!isElement(el)) return null;
    const existing = el.getAttribute(ID_ATTR);
    if (existing) return existing;
    const id = `websee-${prefix}-${(tracker.nextId++).toString(36)}`;
    el.setAttribute(ID_ATTR, id);
    return id;
  }

  function clampStr(s) {
    return s.length <= MAX_STR ? s : s.slice(0, MAX_STR) + `… <truncated len=${s.length}>`;
  }

  function safeValue(v, depth, seen) {
    if (v === null || v === undefined) return null;
    const t = typeof v;
    if (t === "string") return clampStr(v);
    if (t === "number") return Number.isFinite(v) ? v : String(v);
    if (t === "boolean") return v;
    if (t === "bigint") return `${v}n`;
    if (t === "symbol") return String(v);
    if (t === "function") return `[Function ${v.name || "anonymous"}]`;
    try {
      if (isElement(v)) return `<${String(v.tagName || "").toLowerCase()}${v.id ? "#" + v.id : ""}>`;
      if (v.$$typeof) {
        const ty = v.type;
        const n = typeof ty === "string" ? ty : (ty && (ty.displayName || ty.name)) || "Anonymous";
        return `[Element ${n}]`;
      }
      if (v.__v_isRef) return safeValue(v.value, depth, seen);
      if (v instanceof Date) return v.toISOString();
      if (v instanceof Promise) return "[Promise]";
    } catch (_e) {
      return "[Unreadable]";
    }
    if (seen.has(v)) return "[Circular]";
    if (depth >= MAX_DEPTH) return Array.isArray(v) ? `[Array(${v.length})]` : "[Object]";
    seen.add(v);
    try {
      if (Array.isArray(v)) return v.slice(0, MAX_ITEMS).map((x) => safeValue(x, depth + 1, seen));
      if (v instanceof Map) {
        const out = {};
        let n = 0;
        for (const [k, val] of v) {
          if (n++ >= MAX_KEYS) break;
          out[String(k)] = safeValue(val, depth + 1, seen);
        }
        return out;
      }
      if (v instanceof Set) return Array.from(v).slice(0, MAX_ITEMS).map((x) => safeValue(x, depth + 1, seen));
      const out = {};
      const keys = Object.keys(v);
      for (let i = 0; i < keys.length; i++) {
        if (i >= MAX_KEYS) {
          out["…"] = `${keys.length - MAX_KEYS} more`;
          break;
        }
        try {
          out[keys[i]] = safeValue(v[keys[i]], depth + 1, seen);
        } catch (_e) {
          out[keys[i]] = "[Unreadable]";
        }
      }
      return out;
    } catch (_e) {
      return "[Unreadable]";
    } finally {
      seen.delete(v);
    }
  }

  function shallowRecord(obj) {
    const out = {};
    if (!obj || typeof obj !== "object") return out;
    const keys = Object.keys(obj);
    for (let i = 0; i < keys.length && i < MAX_KEYS * 4; i++) {
      try {
        out[keys[i]] = safeValue(obj[keys[i]], 1, new WeakSet());
      } catch (_e) {
        out[keys[i]] = "[Unreadable]";
      }
    }
    return out;
  }

  function sourceHint(framework, file, line, column) {
    const hint = { file: typeof file === "string" && file ? file : "unknown", framework };
    if (typeof line === "number") hint.line = line;
    if (typeof column === "number") hint.column = column;
    return hint;
  }

  // Builds the record, then commits it (counter bump + parent link) only when
  // extraction fully succeeded, so a throwing node leaves no partial trace.
  function commitRecord(out, framework, fields, parentRec) {
    const key = `${framework}:${fields.name}`;
    const count = (tracker.renderCounts.get(key) || 0) + 1;
    const rec = {
      id: `${framework}:${out.records.length}`,
      name: fields.name,
      framework,
      source: fields.source,
      props: fields.props,
      state: fields.state === undefined ? null : fields.state,
      parent: parentRec ? parentRec.name : null,
      parentId: parentRec ? parentRec.id : null,
      children: [],
      childIds: [],
      domNodes: fields.domNodes,
      renderCount: count,
      lastRenderTime: tracker.lastRenderTimes.get(framework) || 0,
    };
    tracker.renderCounts.set(key, count);
    if (parentRec) {
      parentRec.children.push(rec.name);
      parentRec.childIds.push(rec.id);
    }
    out.records.push(rec);
    return rec;
  }
"""


_REACT_WALKER = r"""
(() => {
__COMMON__
  const out = { framework: "react", detected: false, records: [], skipped: 0 };
  // FunctionComponent, ClassComponent, IndeterminateComponent, ForwardRef, SimpleMemoComponent.
  // MemoComponent (14) wraps an inner fiber that is reported instead.
  const COMPONENT_TAGS = new Set([0, 1, 2, 11, 15]);
  const HOST_TAGS = new Set([5, 26, 27]);

  function typeName(t, depth) {
    if (!t || depth > 4) return null;
    if (typeof t === "function") return t.displayName || t.name || null;
    if (typeof t === "object") {
      if (typeof t.displayName === "string" && t.displayName) return t.displayName;
      if (t.render) return typeName(t.render, depth + 1);
      if (t.type) return typeName(t.type, depth + 1);
    }
    return null;
  }

  function isComponentFiber(f) {
    try {
      const t = f.type;
      if (t == null || typeof t === "string") return false;
      if (typeof f.tag === "number") return COMPONENT_TAGS.has(f.tag);
      return typeof t === "function" || typeof t === "object";
    } catch (_e) {
      return false;
    }
  }

  function fiberFromElement(el) {
    let keys;
    try {
      keys = Object.keys(el);
    } catch (_e) {
      return null;
    }
    // The internal key suffix changes per React build; match by prefix only.
    for (const k of keys) {
      if (k.startsWith("__reactContainer$")) {
        const v = el[k];
        if (v && typeof v === "object") return v;
      }
    }
    for (const k of keys) {
      if (k.startsWith("__reactFiber$") || k.startsWith("__reactInternalInstance$")) {
        const v = el[k];
        if (v && typeof v === "object") return v;
      }
    }
    try {
      const legacy = el._reactRootContainer;
      const internal = legacy && (legacy._internalRoot || legacy);
      if (internal && internal.current) return internal.current;
    } catch (_e) {
      // ignore
    }
    return null;
  }

  function currentRootFiber(f) {
    let cur = f;
    const seen = new Set();
    while (cur && !seen.has(cur)) {
      seen.add(cur);
      let up = null;
      try {
        up = cur.return;
      } catch (_e) {
        up = null;
      }
      if (!up) break;
      cur = up;
    }
    try {
      const root = cur && cur.stateNode;
      if (root && root.current && typeof root.current === "object") return root.current;
    } catch (_e) {
      // ignore
    }
    return cur;
  }

  function hostElement(f) {
    try {
      if (isElement(f.stateNode)) return f.stateNode;
    } catch (_e) {
      // ignore
    }
    const seen = new Set();
    const stack = [];
    try {
      if (f.child) stack.push(f.child);
    } catch (_e) {
      return null;
    }
    while (stack.length && seen.size < 2000) {
      const n = stack.pop();
      if (!n || typeof n !== "object" || seen.has(n)) continue;
      seen.add(n);
      try {
        if (isElement(n.stateNode) && (HOST_TAGS.has(n.tag) || typeof n.type === "string")) return n.stateNode;
      } catch (_e) {
        // ignore
      }
      try {
        if (n.sibling) stack.push(n.sibling);
      } catch (_e) {
        // ignore
      }
      try {
        if (n.child) stack.push(n.child);
      } catch (_e) {
        // ignore
      }
    }
    return null;
  }

  function isHookList(f, s) {
    return f.tag !== 1 && typeof s === "object" && "next" in s && ("queue" in s || "baseState" in s);
  }

  function fiberState(f) {
    const s = f.memoizedState;
    if (s === null || s === undefined) return undefined;
    if (typeof s !== "object") return { value: safeValue(s, 1, new WeakSet()) };
    if (!isHookList(f, s)) return shallowRecord(s);
    const state = {};
    let found = false;
    let h = s;
    const seen = new Set();
    for (let i = 0; h && typeof h === "object" && !seen.has(h) && i < 100; i++) {
      seen.add(h);
      if (h.queue) {
        state[String(i)] = safeValue(h.memoizedState, 1, new WeakSet());
        found = true;
      }
      h = h.next;
    }
    return found ? state : undefined;
  }

  function extract(f, parentRec) {
    try {
      const name = typeName(f.type, 0) || typeName(f.elementType, 0) || "Anonymous";
      const dbg = f._debugSource || (f.type && f.type._debugSource) || null;
      const source = dbg
        ? sourceHint("react", dbg.fileName, dbg.lineNumber, dbg.columnNumber)
        : sourceHint("react", null, null, null);
      const props = shallowRecord(f.memoizedProps);
      const state = fiberState(f);
      const el = hostElement(f);
      const id = el ? stableId(el, "react") : null;
      return commitRecord(out, "react", { name, source, props, state, domNodes: id ? [id] : [] }, parentRec);
    } catch (_e) {
      out.skipped++;
      return null;
    }
  }

  const starts = new Set();
  try {
    const hook = g.__REACT_DEVTOOLS_GLOBAL_HOOK__;
    if (hook && typeof hook.getFiberRoots === "function" && hook.renderers) {
      const ids = typeof hook.renderers.keys === "function" ? Array.from(hook.renderers.keys()) : Object.keys(hook.renderers);
      for (const id of ids) {
        try {
          const roots = hook.getFiberRoots(id);
          if (roots) roots.forEach((r) => r && r.current && starts.add(r.current));
        } catch (_e) {
          // ignore
        }
      }
    }
  } catch (_e) {
    // ignore
  }
  try {
    if (tracker.fiberRoots) tracker.fiberRoots.forEach((r) => r && r.current && starts.add(r.current));
  } catch (_e) {
    // ignore
  }
  try {
    const candidates = new Set(document.querySelectorAll("[data-reactroot], #root, #app, #__next"));
    if (document.body) for (const el of Array.from(document.body.children)) candidates.add(el);
    candidates.forEach((el) => {
      const f = fiberFromElement(el);
      if (f) starts.add(currentRootFiber(f));
    });
  } catch (_e) {
    // ignore
  }

  out.detected = starts.size > 0;
  const visited = new WeakSet();
  for (const start of starts) {
    const stack = [[start, null]];
    while (stack.length) {
      const [fiber, parentRec] = stack.pop();
      if (!fiber || typeof fiber !== "object" || visited.has(fiber)) continue;
      visited.add(fiber);
      const rec = isComponentFiber(fiber) ? extract(fiber, parentRec) : null;
      let sibling = null;
      let child = null;
      try {
        sibling = fiber.sibling;
      } catch (_e) {
        sibling = null;
      }
      try {
        child = fiber.child;
      } catch (_e) {
        child = null;
      }
      if (sibling) stack.push([sibling, parentRec]);
      if (child) stack.push([child, rec || parentRec]);
    }
    if (out.records.length >= MAX_NODES) break;
  }
  return out;
})()
"""


_VUE_WALKER = r"""
(() => {
__COMMON__
  const out = { framework: "vue", detected: false, records: [], skipped: 0 };

  function childInstances(vnode) {
    const found = [];
    const seen = new Set();
    const stack = [vnode];
    while (stack.length && seen.size < MAX_NODES) {
      const v = stack.pop();
      if (!v || typeof v !== "object" || seen.has(v)) continue;
      seen.add(v);
      try {
        if (v.component && typeof v.component === "object") {
          // A child component's own subtree is walked from its instance.
          found.push(v.component);
          continue;
        }
        if (v.suspense && v.suspense.activeBranch) stack.push(v.suspense.activeBranch);
        const ch = v.children;
        if (Array.isArray(ch)) for (let i = ch.length - 1; i >= 0; i--) stack.push(ch[i]);
      } catch (_e) {
        // ignore
      }
    }
    return found;
  }

  // setup() bindings and the Options API `data` merged; `data` wins on a name clash.
  function instanceState(inst) {
    const state = Object.assign({}, shallowRecord(inst.setupState), shallowRecord(inst.data));
    return Object.keys(state).length ? state : undefined;
  }

  function extract(inst, parentRec) {
    try {
      const type = inst.type || {};
      const name = type.name || type.__name || "Anonymous";
      const source = sourceHint("vue", type.__file, null, null);
      let el = inst.vnode && inst.vnode.el;
      if (!isElement(el) && inst.subTree) el = inst.subTree.el;
      const id = isElement(el) ? stableId(el, "vue") : null;
      const props = shallowRecord(inst.props);
      const state = instanceState(inst);
      return commitRecord(out, "vue", { name, source, props, state, domNodes: id ? [id] : [] }, parentRec);
    } catch (_e) {
      out.skipped++;
      return null;
    }
  }

  const apps = new Set();
  try {
    for (const candidate of [g.app, g.__VUE_APP__]) {
      if (candidate && candidate._instance) apps.add(candidate);
    }
  } catch (_e) {
    // ignore
  }
  try {
    document.querySelectorAll("[data-v-app], #app").forEach((el) => {
      const a = el.__vue_app__;
      if (a && a._instance) apps.add(a);
    });
  } catch (_e) {
    // ignore
  }

  out.detected = apps.size > 0;
  const visited = new WeakSet();
  for (const app of apps) {
    const stack = [[app._instance, null]];
    while (stack.length) {
      const [inst, parentRec] = stack.pop();
      if (!inst || typeof inst !== "object" || visited.has(inst)) continue;
      visited.add(inst);
      const rec = extract(inst, parentRec);
      let kids = [];
      try {
        kids = childInstances(inst.subTree);
      } catch (_e) {
        kids = [];
      }
      for (let i = kids.length - 1; i >= 0; i--) stack.push([kids[i], rec || parentRec]);
    }
  }
  return out;
})()
"""


_ANGULAR_WALKER = r"""
(() => {
__COMMON__
  const out = { framework: "angular", detected: false, records: [], skipped: 0 };
  const ng = g.ng;
  let probe = null;
  if (ng && typeof ng.getComponent === "function") {
    probe = (el) => ng.getComponent(el);
  } else if (ng && typeof ng.probe === "function") {
    probe = (el) => {
      const dbg = ng.probe(el);
      return dbg ? dbg.componentInstance : null;
    };
  }
  if (!probe) return out;
  out.detected = true;

  const metadata = typeof ng.getDirectiveMetadata === "function" ? (inst) => ng.getDirectiveMetadata(inst) : null;

  function inputNames(inst) {
    if (!metadata) return null;
    try {
      const meta = metadata(inst);
      const inputs = meta && meta.inputs;
      if (!inputs || typeof inputs !== "object") return null;
      return new Set(Object.keys(inputs));
    } catch (_e) {
      return null;
    }
  }

  const byInstance = new Map();
  const byElement = new Map();
  const elements = document.querySelectorAll("*");
  for (let i = 0; i < elements.length && out.records.length < MAX_NODES; i++) {
    const el = elements[i];
    let inst = null;
    try {
      inst = probe(el);
    } catch (_e) {
      continue;
    }
    if (!inst || typeof inst !== "object" || byInstance.has(inst)) continue;
    byInstance.set(inst, null);

    let parentRec = null;
    let cur = el.parentElement;
    while (cur) {
      const hit = byElement.get(cur);
      if (hit) {
        parentRec = hit;
        break;
      }
      cur = cur.parentElement;
    }

    try {
      const ctor = inst.constructor;
      let name = (ctor && ctor.name) || "Anonymous";
      if (name === "Object") name = "Anonymous";
      const inputs = inputNames(inst);
      const props = {};
      const state = {};
      for (const key of Object.keys(inst)) {
        if (key.startsWith("_")) continue;
        const value = inst[key];
        if (typeof value === "function") continue;
        const safe = safeValue(value, 1, new WeakSet());
        if (inputs && inputs.has(key)) props[key] = safe;
        else state[key] = safe;
      }
      const id = stableId(el, "ng");
      const rec = commitRecord(
        out,
        "angular",
        { name, source: sourceHint("angular", null, null, null), props, state, domNodes: id ? [id] : [] },
        parentRec,
      );
      byInstance.set(inst, rec);
      byElement.set(el, rec);
    } catch (_e) {
      out.skipped++;
    }
  }
  return out;
})()
"""


def _walker(body: str) -> str:
    return body.replace("__COMMON__", _COMMON).replace("__VERSION__", TRACKER_SCRIPT_VERSION)


REACT_WALKER_JS = _walker(_REACT_WALKER)
VUE_WALKER_JS = _walker(_VUE_WALKER)
ANGULAR_WALKER_JS = _walker(_ANGULAR_WALKER)

WALKERS: tuple[tuple[str, str], ...] = (
    ("react", REACT_WALKER_JS),
    ("vue", VUE_WALKER_JS),
    ("angular", ANGULAR_WALKER_JS),
)


# Resolves a selector to its element identifier (synthesizing one if needed)
# plus the identifiers already present on its ancestors, nearest first.
ELEMENT_LOOKUP_JS = _walker(
    r"""
(selector) => {
__COMMON__
  let el = null;
  try {
    el = document.querySelector(selector);
  } catch (e) {
    return { found: false, error: String(e && e.message || e) };
  }
  if (!el) return { found: false };
  const id = stableId(el, "elem");
  const ancestors = [];
  let cur = el.parentElement;
  for (let n = 0; cur && n < 500; n++) {
    const a = cur.getAttribute(ID_ATTR);
    if (a) ancestors.push(a);
    cur = cur.parentElement;
  }
  return { found: true, id, ancestors };
}
"""
)


FRAMEWORK_DETECT_JS = r"""
(() => {
  const g = globalThis;
  const out = { react: false, vue: false, angular: false };
  try {
    const hook = g.__REACT_DEVTOOLS_GLOBAL_HOOK__;
    const renderers = hook && hook.renderers;
    out.react = !!(renderers && (renderers.size > 0 || Object.keys(renderers).length > 0));
    if (!out.react) out.react = !!document.querySelector("[data-reactroot]");
  } catch (_e) {
    // ignore
  }
  try {
    out.vue = !!((g.app && g.app._instance) || g.__VUE_APP__ || document.querySelector("[data-v-app]"));
  } catch (_e) {
    // ignore
  }
  try {
    out.angular = !!((g.ng && (g.ng.probe || g.ng.getComponent)) || document.querySelector("[ng-version]"));
  } catch (_e) {
    // ignore
  }
  return out;
})()
"""


# Commit timestamps recorded by the fiber hook at or after `since` (epoch ms).
RENDER_COMMITS_JS = r"""
(since) => {
  const t = globalThis.__WEBSEE_TRACKER__;
  if (!t || !Array.isArray(t.commits)) return { now: Date.now(), commits: [] };
  return { now: Date.now(), commits: t.commits.filter((ts) => ts >= since) };
}
"""

PAGE_NOW_JS = "Date.now()"
