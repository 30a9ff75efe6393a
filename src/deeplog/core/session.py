"""
Wrap Sessions for Gnosis DeepLog

A session is one call to ``create_instrumented_handle``: it owns the identity
registry, the caches, the tree mode and (in shared mode) the single tree that
every handle reachable from the root records into. Sessions are never shared
and are meant to be used from one thread.
"""

import logging
from typing import Any, Optional, Union

from ..config import Config, DeepLogConfig
from .call_tree import CallTreeNode, TreeMode, TreeStack
from .handle import Handle, handle_class_for
from .identity_registry import IdentityRegistry
from .interceptor import OperationInterceptor
from .operation_logger import OperationLogger
from .reflection import is_primitive

__all__ = ["WrapSession", "create_instrumented_handle", "instrument"]

logger = logging.getLogger(__name__)


class WrapSession:
    """Owns everything one instrumented object graph needs."""

    def __init__(
        self,
        tree_mode: Optional[Union[TreeMode, str]] = None,
        config: Optional[DeepLogConfig] = None,
    ):
        self.config = config or Config.get_instance()
        self.tree_mode = TreeMode.coerce(tree_mode if tree_mode is not None else self.config.tree_mode)
        self.registry = IdentityRegistry()
        if self.config.debug:
            logging.getLogger("deeplog").setLevel(logging.DEBUG)
        self.operation_logger: Optional[OperationLogger] = None
        if self.config.log_operations:
            self.operation_logger = OperationLogger.from_config(self.config)
        self._shared_tree: Optional[TreeStack] = None

    def __repr__(self):
        return f"WrapSession(tree_mode={self.tree_mode.value}, handles={len(self.registry)})"

    @property
    def shared_tree(self) -> Optional[TreeStack]:
        """The session-wide tree in shared mode, once something has been wrapped."""
        return self._shared_tree

    def _tree_for(self, value: Any, label: str) -> TreeStack:
        if self.tree_mode is TreeMode.SHARED:
            if self._shared_tree is None:
                self._shared_tree = TreeStack(CallTreeNode.root(label, type(value).__name__))
            return self._shared_tree
        return TreeStack(CallTreeNode.root(label, type(value).__name__))

    def wrap(self, value: Any, label: str = "root") -> Handle:
        """Return the handle for ``value``, creating it on first sight."""
        primitive = is_primitive(value)
        if not primitive:
            existing = self.registry.lookup_wrapper(value)
            if existing is not None:
                return existing

        label = str(label)
        tree = self._tree_for(value, label)
        target = self.registry.box(value) if primitive else value
        interceptor = OperationInterceptor(self, value, target, label, tree)
        handle_class = handle_class_for(value)
        handle = handle_class(interceptor)

        if primitive:
            self.registry.register_wrapper(handle, value)
        else:
            self.registry.register(value, handle)
        logger.debug("Wrapped %s as %r", type(value).__name__, label)
        return handle


def create_instrumented_handle(
    value: Any,
    label: str = "root",
    tree_mode: Optional[Union[TreeMode, str]] = None,
    config: Optional[DeepLogConfig] = None,
) -> Handle:
    """
    Wrap ``value`` in a fresh session and return its handle.

    Args:
        value: Any object, function, class or primitive
        label: Name of the root in the recorded tree
        tree_mode: ``"shared"`` (one tree for everything reachable from the
            root) or ``"isolated"`` (a tree per handle); defaults to the
            configured mode
        config: Configuration to use instead of the global one

    Example:
        handle = create_instrumented_handle(client, "client")
        handle.fetch("users")
        print(render_tree(get_call_tree(handle)))
    """
    return WrapSession(tree_mode=tree_mode, config=config).wrap(value, label)


instrument = create_instrumented_handle
