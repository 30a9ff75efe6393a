"""
Identity Registry for Gnosis DeepLog

Keeps wrapping idempotent across a whole wrap session: one wrapper per original
object, a way back from wrapper to original, one wrapper per underlying method,
and one box per primitive value.

Entries are keyed by ``id()`` and hold strong references to both sides, so ids
stay valid for as long as the session lives. The registry belongs to exactly one
session and is dropped with it; a long session over a large graph grows
accordingly.
"""

import logging
from types import BuiltinMethodType, MethodType, MethodWrapperType, ModuleType
from typing import Any, Dict, Hashable, Optional, Tuple

__all__ = ["IdentityRegistry", "PrimitiveBox"]

logger = logging.getLogger(__name__)


class PrimitiveBox:
    """Attribute-carrying stand-in for a primitive value.

    Reads that the box cannot satisfy fall through to the primitive, while
    attributes set on the box stay on the box.
    """

    __slots__ = ("_primitive", "__dict__")

    def __init__(self, primitive: Any):
        object.__setattr__(self, "_primitive", primitive)

    @property
    def __class__(self):
        return type(object.__getattribute__(self, "_primitive"))

    def __getattr__(self, name: str) -> Any:
        return getattr(object.__getattribute__(self, "_primitive"), name)

    def __dir__(self):
        return sorted(set(dir(self._primitive)) | set(self.__dict__))

    def __repr__(self) -> str:
        return f"PrimitiveBox({self._primitive!r})"


def method_key(func: Any) -> Hashable:
    """Key identifying the real code and receiver behind a callable.

    Attribute access creates a fresh bound-method object every time, so bound
    methods are keyed by their function and receiver rather than by identity.
    """
    func_type = type(func)
    if func_type is MethodType:
        return ("method", id(func.__func__), id(func.__self__))
    if func_type in (BuiltinMethodType, MethodWrapperType):
        receiver = func.__self__
        if receiver is not None and type(receiver) is not ModuleType:
            return ("builtin", id(receiver), func.__name__)
    return ("object", id(func))


class IdentityRegistry:
    """Wrapper/original lookup tables plus the method and box caches."""

    def __init__(self):
        self._wrappers: Dict[int, Tuple[Any, Any]] = {}
        self._originals: Dict[int, Tuple[Any, Any]] = {}
        self._methods: Dict[Hashable, Tuple[Any, Any]] = {}
        self._boxes: Dict[Tuple[type, Any], PrimitiveBox] = {}

    def __len__(self) -> int:
        return len(self._originals)

    def lookup_wrapper(self, original: Any) -> Optional[Any]:
        """Return the wrapper registered for ``original``, if any."""
        entry = self._wrappers.get(id(original))
        if entry is not None and entry[0] is original:
            return entry[1]
        return None

    def is_wrapper(self, candidate: Any) -> bool:
        entry = self._originals.get(id(candidate))
        return entry is not None and entry[0] is candidate

    def register(self, original: Any, wrapper: Any) -> None:
        """Record the original/wrapper pair in both directions."""
        self._wrappers[id(original)] = (original, wrapper)
        self._originals[id(wrapper)] = (wrapper, original)

    def register_wrapper(self, wrapper: Any, original: Any) -> None:
        """Record only the way back, used for handles over primitives."""
        self._originals[id(wrapper)] = (wrapper, original)

    def resolve(self, value: Any) -> Any:
        """Return the original behind a known wrapper, else ``value`` itself."""
        entry = self._originals.get(id(value))
        if entry is not None and entry[0] is value:
            return entry[1]
        return value

    def lookup_method(self, func: Any) -> Optional[Any]:
        try:
            entry = self._methods.get(method_key(func))
        except Exception:
            logger.debug("Could not key method %r", type(func).__name__, exc_info=True)
            return None
        return entry[1] if entry is not None else None

    def cache_method(self, func: Any, wrapper: Any) -> bool:
        """Remember ``wrapper`` for ``func``; failures are logged and ignored."""
        try:
            self._methods[method_key(func)] = (func, wrapper)
        except Exception:
            logger.debug("Method cache insertion failed for %r", type(func).__name__, exc_info=True)
            return False
        return True

    def box(self, primitive: Any) -> PrimitiveBox:
        """Return the session's box for ``primitive``, creating it on first use."""
        primitive_type = type(primitive)
        # Signed zeros compare equal and NaN equals nothing; repr tells them apart.
        key = (primitive_type, repr(primitive) if primitive_type in (float, complex) else primitive)
        boxed = self._boxes.get(key)
        if boxed is None:
            boxed = self._boxes[key] = PrimitiveBox(primitive)
        return boxed
