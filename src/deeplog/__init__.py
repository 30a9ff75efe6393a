"""
Gnosis DeepLog - Transparent Recording of Every Operation on a Python Object Graph

Wrap any value in an instrumented handle that behaves like the original while
recording every structural operation performed on it, and on everything
reachable through it, into a hierarchical call tree that can be rendered as text.
"""

__version__ = "0.1.0"
__author__ = "Gnosis Team"
__email__ = "team@gnosis.dev"
__license__ = "Apache-2.0"

# Core public API
# Configuration
from .config import DeepLogConfig, get_config, load_config, save_config
from .core.accessor import get_call_tree, render_tree
from .core.call_tree import CallTreeNode, OperationKind, TreeMode, TreeStack
from .core.handle import (
    CallableHandle,
    Handle,
    define_property,
    delete_property,
    get_own_property_descriptor,
    get_prototype_of,
    has_property,
    is_extensible,
    is_handle,
    own_keys,
    prevent_extensions,
    set_prototype_of,
)
from .core.identity_registry import IdentityRegistry, PrimitiveBox
from .core.operation_logger import LogFormat, LogLevel, OperationLogger
from .core.reflection import PropertyDescriptor
from .core.session import WrapSession, create_instrumented_handle, instrument

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    # Instrumentation
    "create_instrumented_handle",
    "instrument",
    "WrapSession",
    "Handle",
    "CallableHandle",
    "is_handle",
    # Call tree
    "get_call_tree",
    "render_tree",
    "CallTreeNode",
    "OperationKind",
    "TreeMode",
    "TreeStack",
    # Identity
    "IdentityRegistry",
    "PrimitiveBox",
    # Reflection
    "PropertyDescriptor",
    "get_own_property_descriptor",
    "define_property",
    "get_prototype_of",
    "set_prototype_of",
    "is_extensible",
    "prevent_extensions",
    "own_keys",
    "has_property",
    "delete_property",
    # Logging
    "OperationLogger",
    "LogFormat",
    "LogLevel",
    # Configuration
    "DeepLogConfig",
    "load_config",
    "save_config",
    "get_config",
]
