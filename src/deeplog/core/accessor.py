"""
Tree Accessor for Gnosis DeepLog

Reads the recorded tree off a handle and renders it as indented text. The
rendered text is stable enough to use in snapshot tests.
"""

from collections.abc import Mapping
from typing import Any, List, Optional, Set

from .call_tree import CallTreeNode, format_value
from .handle import interceptor_of

__all__ = ["get_call_tree", "render_tree", "INDENT_STEP"]

INDENT_STEP = "  "


def get_call_tree(handle: Any) -> Optional[CallTreeNode]:
    """Return the root of the tree ``handle`` records into, or None for non-handles."""
    interceptor = interceptor_of(handle)
    if interceptor is None:
        return None
    return interceptor.tree.root


def _render_entries(value: Any, indent: str, lines: List[str], seen: Set[int]) -> None:
    value_type = type(value)
    if issubclass(value_type, Mapping):
        entries = list(value.items())
    else:
        entries = list(enumerate(value))

    seen.add(id(value))
    for key, item in entries:
        if _is_structured(item):
            if id(item) in seen:
                lines.append(f"{indent}{key}: [Circular]")
                continue
            lines.append(f"{indent}{key}:")
            _render_entries(item, indent + INDENT_STEP, lines, seen)
        else:
            lines.append(f"{indent}{key}: {format_value(item)}")
    seen.discard(id(value))


def _is_structured(value: Any) -> bool:
    return issubclass(type(value), (Mapping, list, tuple))


def render_tree(node: Optional[CallTreeNode], indent: str = "") -> str:
    """
    Render a call tree as indented text.

    Roots print as ``label (type)``, operations as their action name. A
    structured detail prints one entry per line a level deeper, any other
    detail (``None`` included) as ``detail: value``. Children follow, one level deeper still.
    """
    if node is None:
        return ""

    lines = [indent + node.title]
    detail_indent = indent + INDENT_STEP
    if not node.is_root:
        if _is_structured(node.detail):
            _render_entries(node.detail, detail_indent, lines, set())
        else:
            lines.append(f"{detail_indent}detail: {format_value(node.detail)}")

    for child in node.children:
        lines.append(render_tree(child, detail_indent))
    return "\n".join(lines)
