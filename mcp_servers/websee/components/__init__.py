"""
Component introspection.

Modules:
- js_tracker: in-page tracker bootstrap, fiber hook and variant walkers
- models: ComponentRecord / SourceHint / ComponentTreeNode / RenderTrace
- tree: nesting flat scan results
- tracker: ComponentTracker engine
"""

from .models import ComponentRecord, ComponentTreeNode, RenderTrace, SourceHint
from .tracker import ComponentTracker
from .tree import build_component_tree, format_component_tree

__all__ = [
    "ComponentRecord",
    "ComponentTracker",
    "ComponentTreeNode",
    "RenderTrace",
    "SourceHint",
    "build_component_tree",
    "format_component_tree",
]
