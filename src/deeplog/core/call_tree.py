"""
Call-Tree Model for Gnosis DeepLog

This module holds the recorded call tree: the node type, the open-node stack
that instrumented operations push onto and pop from, and the helpers that turn
recorded values into text without touching instrumented handles.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

__all__ = [
    "OperationKind",
    "TreeMode",
    "CallTreeNode",
    "TreeStack",
    "format_value",
]


class OperationKind(str, Enum):
    """Structural operations recorded on an instrumented handle."""

    GET = "get"
    SET = "set"
    HAS = "has"
    DELETE_PROPERTY = "deleteProperty"
    OWN_KEYS = "ownKeys"
    GET_OWN_PROPERTY_DESCRIPTOR = "getOwnPropertyDescriptor"
    DEFINE_PROPERTY = "defineProperty"
    GET_PROTOTYPE_OF = "getPrototypeOf"
    SET_PROTOTYPE_OF = "setPrototypeOf"
    IS_EXTENSIBLE = "isExtensible"
    PREVENT_EXTENSIONS = "preventExtensions"
    APPLY = "apply"
    CONSTRUCT = "construct"
    TO_PRIMITIVE = "toPrimitive"
    GET_ITEM = "getItem"
    SET_ITEM = "setItem"
    DELETE_ITEM = "deleteItem"
    PROTOCOL = "protocol"

    def __str__(self) -> str:
        return self.value


class TreeMode(str, Enum):
    """Whether descendants of one root share its tree or get their own."""

    SHARED = "shared"
    ISOLATED = "isolated"

    @classmethod
    def coerce(cls, value: Union["TreeMode", str]) -> "TreeMode":
        """Accept either the enum or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown tree mode {value!r} (expected one of: {choices})") from None


@dataclass
class CallTreeNode:
    """One recorded operation, or the root of a tree."""

    label: Optional[str] = None
    value_kind: Optional[str] = None
    action: Optional[OperationKind] = None
    detail: Any = None
    children: List["CallTreeNode"] = field(default_factory=list)

    @classmethod
    def root(cls, label: str, value_kind: str) -> "CallTreeNode":
        return cls(label=str(label), value_kind=value_kind)

    @classmethod
    def operation(cls, action: OperationKind, detail: Any = None) -> "CallTreeNode":
        return cls(action=action, detail=detail)

    @property
    def is_root(self) -> bool:
        return self.action is None

    @property
    def title(self) -> str:
        """Heading line used by the renderer."""
        if self.is_root:
            return f"{self.label} ({self.value_kind})"
        return str(self.action)

    def walk(self) -> Iterator["CallTreeNode"]:
        """Iterate over this node and its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain nested dictionaries for snapshots and diffs."""
        if self.is_root:
            data: Dict[str, Any] = {"label": self.label, "type": self.value_kind}
        else:
            data = {"action": str(self.action), "detail": self.detail}
        data["children"] = [child.to_dict() for child in self.children]
        return data


class TreeStack:
    """A tree root plus the stack of operations currently in progress."""

    def __init__(self, root: CallTreeNode):
        self.root = root
        self._stack: List[CallTreeNode] = [root]

    @property
    def current(self) -> CallTreeNode:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        """Number of open operations (zero when only the root is open)."""
        return len(self._stack) - 1

    def push(self, action: OperationKind, detail: Any = None) -> CallTreeNode:
        """Open a new operation as the last child of the current node."""
        node = CallTreeNode.operation(action, detail)
        self.current.children.append(node)
        self._stack.append(node)
        return node

    def pop(self) -> CallTreeNode:
        """Close the innermost open operation."""
        if len(self._stack) == 1:
            raise RuntimeError("Cannot pop the root of a call tree")
        return self._stack.pop()


_SCALAR_TYPES = (type(None), bool, int, float, complex, str, bytes)


def format_value(value: Any) -> str:
    """Render a single value on one line.

    Only ``type()`` is consulted for anything that is not a plain scalar, so
    formatting never runs through an instrumented handle.
    """
    value_type = type(value)
    if issubclass(value_type, _SCALAR_TYPES):
        return str(value)
    if issubclass(value_type, type):
        return f"[Class {value.__name__}]"
    if callable(value):
        return "[Function]"
    return f"<{value_type.__name__}>"
