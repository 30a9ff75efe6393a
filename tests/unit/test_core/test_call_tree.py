"""Unit tests for the call-tree model and renderer."""

import pytest

from deeplog.core.accessor import get_call_tree, render_tree
from deeplog.core.call_tree import (
    CallTreeNode,
    OperationKind,
    TreeMode,
    TreeStack,
    format_value,
)


def sample_function():
    """Function used as a detail value."""


class TestCallTreeNode:
    """Test node construction and conversion."""

    def test_root_node(self):
        """Test root variant fields."""
        root = CallTreeNode.root("root", "dict")
        assert root.is_root
        assert root.title == "root (dict)"
        assert root.children == []

    def test_operation_node(self):
        """Test operation variant fields."""
        node = CallTreeNode.operation(OperationKind.GET, "x")
        assert not node.is_root
        assert node.title == "get"
        assert node.action == "get"
        assert node.detail == "x"

    def test_to_dict(self):
        """Test conversion to plain dictionaries."""
        root = CallTreeNode.root("root", "Counter")
        get = CallTreeNode.operation(OperationKind.GET, "add")
        get.children.append(CallTreeNode.operation(OperationKind.APPLY, {"arg_list": [1]}))
        root.children.append(get)

        assert root.to_dict() == {
            "label": "root",
            "type": "Counter",
            "children": [
                {
                    "action": "get",
                    "detail": "add",
                    "children": [{"action": "apply", "detail": {"arg_list": [1]}, "children": []}],
                }
            ],
        }

    def test_walk_is_depth_first(self):
        """Test walk order."""
        root = CallTreeNode.root("root", "object")
        first = CallTreeNode.operation(OperationKind.GET, "a")
        nested = CallTreeNode.operation(OperationKind.GET, "b")
        second = CallTreeNode.operation(OperationKind.SET, {"key": "c", "value": 1})
        first.children.append(nested)
        root.children.extend([first, second])

        assert list(root.walk()) == [root, first, nested, second]


class TestTreeStack:
    """Test push/pop discipline."""

    def test_push_appends_to_current(self):
        """Test nested pushes build nested children."""
        stack = TreeStack(CallTreeNode.root("root", "object"))
        outer = stack.push(OperationKind.APPLY, None)
        inner = stack.push(OperationKind.GET, "x")

        assert stack.depth == 2
        assert stack.current is inner
        assert stack.root.children == [outer]
        assert outer.children == [inner]

    def test_pop_restores_parent(self):
        """Test pop returns to the enclosing node."""
        stack = TreeStack(CallTreeNode.root("root", "object"))
        outer = stack.push(OperationKind.APPLY, None)
        stack.push(OperationKind.GET, "x")

        stack.pop()
        assert stack.current is outer
        stack.pop()
        assert stack.current is stack.root
        assert stack.depth == 0

    def test_pop_root_raises(self):
        """Test the root cannot be popped."""
        stack = TreeStack(CallTreeNode.root("root", "object"))
        with pytest.raises(RuntimeError):
            stack.pop()


class TestTreeMode:
    """Test tree mode coercion."""

    def test_coerce_string(self):
        assert TreeMode.coerce("shared") is TreeMode.SHARED
        assert TreeMode.coerce("isolated") is TreeMode.ISOLATED
        assert TreeMode.coerce(TreeMode.ISOLATED) is TreeMode.ISOLATED

    def test_coerce_invalid(self):
        with pytest.raises(ValueError, match="Unknown tree mode"):
            TreeMode.coerce("huge")


class TestFormatValue:
    """Test single-value formatting."""

    def test_scalars(self):
        assert format_value(1) == "1"
        assert format_value("x") == "x"
        assert format_value(None) == "None"
        assert format_value(True) == "True"

    def test_callables_and_classes(self):
        assert format_value(sample_function) == "[Function]"
        assert format_value(len) == "[Function]"
        assert format_value(dict) == "[Class dict]"

    def test_other_objects(self):
        assert format_value(object()) == "<object>"
        assert format_value({1, 2}) == "<set>"


class TestRenderTree:
    """Test text rendering."""

    def test_render_none(self):
        """Test absent tree renders empty."""
        assert render_tree(None) == ""

    def test_render_root_only(self):
        assert render_tree(CallTreeNode.root("root", "dict")) == "root (dict)"

    def test_render_scalar_detail(self):
        """Test scalar details print as ``detail: value``."""
        root = CallTreeNode.root("root", "SimpleNamespace")
        root.children.append(CallTreeNode.operation(OperationKind.GET, "x"))

        assert render_tree(root) == "root (SimpleNamespace)\n  get\n    detail: x"

    def test_render_structured_detail(self):
        """Test mapping details print key by line, nested containers recurse."""
        root = CallTreeNode.root("f", "function")
        root.children.append(
            CallTreeNode.operation(
                OperationKind.APPLY,
                {"this_arg": None, "arg_list": [21, {"k": "v"}], "kwargs": {}, "callback": sample_function},
            )
        )

        assert render_tree(root).splitlines() == [
            "f (function)",
            "  apply",
            "    this_arg: None",
            "    arg_list:",
            "      0: 21",
            "      1:",
            "        k: v",
            "    kwargs:",
            "    callback: [Function]",
        ]

    def test_render_children_nested(self):
        """Test children render one level deeper than their parent."""
        root = CallTreeNode.root("root", "Counter")
        get = CallTreeNode.operation(OperationKind.GET, "add")
        apply = CallTreeNode.operation(OperationKind.APPLY, None)
        apply.children.append(CallTreeNode.operation(OperationKind.GET, "count"))
        root.children.extend([get, apply])

        assert render_tree(root).splitlines() == [
            "root (Counter)",
            "  get",
            "    detail: add",
            "  apply",
            "    detail: None",
            "    get",
            "      detail: count",
        ]

    def test_render_with_indent(self):
        root = CallTreeNode.root("root", "dict")
        root.children.append(CallTreeNode.operation(OperationKind.OWN_KEYS))

        assert render_tree(root, indent="> ") == "> root (dict)\n>   ownKeys\n>     detail: None"

    def test_render_circular_detail(self):
        """Test self-referencing details do not recurse forever."""
        cyclic = {"name": "loop"}
        cyclic["self"] = cyclic
        root = CallTreeNode.root("root", "dict")
        root.children.append(CallTreeNode.operation(OperationKind.SET, {"key": "c", "value": cyclic}))

        lines = render_tree(root).splitlines()
        assert "      self: [Circular]" in lines

    def test_get_call_tree_of_plain_value(self):
        """Test non-handles have no tree."""
        assert get_call_tree({"x": 1}) is None
        assert get_call_tree(None) is None
