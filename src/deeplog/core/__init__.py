"""
Core functionality package for Gnosis DeepLog.

This package contains the interception engine, the identity registry and the
call-tree model that together record every operation performed on a wrapped
object graph.
"""

from .accessor import *
from .call_tree import *
from .handle import *
from .identity_registry import *
from .operation_logger import *
from .reflection import *
from .session import *

__version__ = "0.1.0"
