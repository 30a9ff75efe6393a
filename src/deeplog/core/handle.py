"""
Instrumented Handles for Gnosis DeepLog

A handle stands in for an original value. Attribute access goes through
``__getattribute__``; everything Python looks up on the type (operators,
conversions, ``len``, ``iter``, subscription, calls, ``await``) is forwarded to
the handle's interceptor. Each wrapped type gets its own handle class carrying
exactly the special methods that type defines, so protocol and ABC checks such
as ``isinstance(h, Iterable)`` answer as they would for the original. Handle
state lives in a slot that is only reachable through
``object.__getattribute__``, so ordinary attribute operations can neither see
nor spoof it.

The functions at the bottom cover the operations Python has no syntax for.
Given a handle they route through its interceptor; given anything else they
act on the object directly.
"""

import math
import operator
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import reflection
from .interceptor import OperationInterceptor
from .reflection import PropertyDescriptor

__all__ = [
    "Handle",
    "CallableHandle",
    "handle_class_for",
    "is_handle",
    "interceptor_of",
    "get_own_property_descriptor",
    "define_property",
    "get_prototype_of",
    "set_prototype_of",
    "is_extensible",
    "prevent_extensions",
    "own_keys",
    "has_property",
    "delete_property",
]

_MISSING = object()


def _interceptor(handle: "Handle") -> OperationInterceptor:
    return object.__getattribute__(handle, "_deeplog_interceptor")


class Handle:
    """Base of every handle: the attribute operations all objects support."""

    __slots__ = ("_deeplog_interceptor", "__weakref__")

    def __init__(self, interceptor: OperationInterceptor):
        object.__setattr__(self, "_deeplog_interceptor", interceptor)

    def __getattribute__(self, name):
        return _interceptor(self).get(name)

    def __setattr__(self, name, value):
        _interceptor(self).set(name, value)

    def __delattr__(self, name):
        _interceptor(self).delete(name)

    def __dir__(self):
        return _interceptor(self).own_keys()


class CallableHandle(Handle):
    """Base for handles over functions, methods, classes and callable objects."""

    __slots__ = ()

    def __call__(self, *args, **kwargs):
        return _interceptor(self).apply(args, kwargs)


# Special methods, installed per wrapped type

def _forward(method: str, func: Callable[..., Any]):
    def forward(self, *args):
        return _interceptor(self).protocol(method, func, *args)

    forward.__name__ = method
    return forward


def _convert(method: str, hint: str, converter: Callable[..., Any]):
    def convert(self, *args):
        return _interceptor(self).to_primitive(hint, converter, *args)

    convert.__name__ = method
    return convert


def _reflected(func):
    return lambda value, other: func(other, value)


def _on_type(method: str):
    """Call ``method`` the way the interpreter does, looked up on the type."""
    return lambda value, *args: getattr(type(value), method)(value, *args)


def _contains(self, key):
    return _interceptor(self).has(key)


def _getitem(self, key):
    return _interceptor(self).get_item(key)


def _setitem(self, key, value):
    _interceptor(self).set_item(key, value)


def _delitem(self, key):
    _interceptor(self).delete_item(key)


def _await(self):
    return _interceptor(self).awaited()


_CONVERSIONS = {
    "__str__": ("str", str),
    "__repr__": ("repr", repr),
    "__bytes__": ("bytes", bytes),
    "__format__": ("format", format),
    "__bool__": ("bool", bool),
    "__int__": ("int", int),
    "__float__": ("float", float),
    "__complex__": ("complex", complex),
    "__index__": ("index", operator.index),
}

_PROTOCOLS = {
    "__hash__": hash,
    "__len__": len,
    "__length_hint__": _on_type("__length_hint__"),
    "__iter__": iter,
    "__next__": next,
    "__reversed__": reversed,
    "__round__": round,
    "__floor__": math.floor,
    "__ceil__": math.ceil,
    "__trunc__": math.trunc,
    "__fspath__": os.fspath,
    "__enter__": _on_type("__enter__"),
    "__exit__": _on_type("__exit__"),
    "__aiter__": _on_type("__aiter__"),
    "__anext__": _on_type("__anext__"),
    "__aenter__": _on_type("__aenter__"),
    "__aexit__": _on_type("__aexit__"),
    "__instancecheck__": lambda value, instance: isinstance(instance, value),
    "__subclasscheck__": lambda value, subclass: issubclass(subclass, value),
}

_BINARY_OPERATORS = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "matmul": operator.matmul,
    "truediv": operator.truediv,
    "floordiv": operator.floordiv,
    "mod": operator.mod,
    "divmod": divmod,
    "pow": pow,
    "lshift": operator.lshift,
    "rshift": operator.rshift,
    "and": operator.and_,
    "xor": operator.xor,
    "or": operator.or_,
}

_INPLACE_OPERATORS = {
    "iadd": operator.iadd,
    "isub": operator.isub,
    "imul": operator.imul,
    "imatmul": operator.imatmul,
    "itruediv": operator.itruediv,
    "ifloordiv": operator.ifloordiv,
    "imod": operator.imod,
    "ipow": operator.ipow,
    "ilshift": operator.ilshift,
    "irshift": operator.irshift,
    "iand": operator.iand,
    "ixor": operator.ixor,
    "ior": operator.ior,
}

_UNARY_OPERATORS = {
    "neg": operator.neg,
    "pos": operator.pos,
    "abs": abs,
    "invert": operator.invert,
}

_COMPARISONS = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}

SPECIAL_METHODS: Dict[str, Callable[..., Any]] = {
    "__contains__": _contains,
    "__getitem__": _getitem,
    "__setitem__": _setitem,
    "__delitem__": _delitem,
    "__await__": _await,
}
for _name, (_hint, _converter) in _CONVERSIONS.items():
    SPECIAL_METHODS[_name] = _convert(_name, _hint, _converter)
for _name, _func in _PROTOCOLS.items():
    SPECIAL_METHODS[_name] = _forward(_name, _func)
for _name, _func in _BINARY_OPERATORS.items():
    SPECIAL_METHODS[f"__{_name}__"] = _forward(f"__{_name}__", _func)
    SPECIAL_METHODS[f"__r{_name}__"] = _forward(f"__r{_name}__", _reflected(_func))
for _name, _func in {**_INPLACE_OPERATORS, **_UNARY_OPERATORS, **_COMPARISONS}.items():
    SPECIAL_METHODS[f"__{_name}__"] = _forward(f"__{_name}__", _func)
del _name, _func, _hint, _converter


def _type_lookup(value_type: type, name: str) -> Any:
    """Find ``name`` on the type's MRO the way special-method lookup does."""
    for klass in value_type.__mro__:
        namespace = vars(klass)
        if name in namespace:
            return namespace[name]
    return _MISSING


_handle_classes: Dict[Tuple[type, bool], type] = {}
_handle_classes_lock = threading.RLock()


def handle_class_for(value: Any) -> type:
    """Return the handle class for values of ``type(value)``, building it once.

    Classes that support ``cls[...]`` through ``__class_getitem__`` get a
    handle class with subscription on top of what their metaclass defines.
    """
    value_type = type(value)
    generic = issubclass(value_type, type) and _type_lookup(value, "__class_getitem__") is not _MISSING
    key = (value_type, generic)
    with _handle_classes_lock:
        handle_class = _handle_classes.get(key)
        if handle_class is not None:
            return handle_class

        namespace: Dict[str, Any] = {
            "__slots__": (),
            "__module__": __name__,
            "__qualname__": value_type.__qualname__,
        }
        for name, method in SPECIAL_METHODS.items():
            found = _type_lookup(value_type, name)
            if found is _MISSING:
                continue
            # A None entry (list.__hash__) switches the protocol off.
            namespace[name] = None if found is None else method
        if generic:
            namespace["__getitem__"] = _getitem

        call = _type_lookup(value_type, "__call__")
        base = Handle if call is _MISSING or call is None else CallableHandle
        handle_class = _handle_classes[key] = type(value_type.__name__, (base,), namespace)
        return handle_class


def is_handle(obj: Any) -> bool:
    """True when ``obj`` is an instrumented handle (checked without touching it)."""
    return issubclass(type(obj), Handle)


def interceptor_of(obj: Any) -> Optional[OperationInterceptor]:
    return _interceptor(obj) if is_handle(obj) else None


def get_own_property_descriptor(obj: Any, name: str) -> Optional[PropertyDescriptor]:
    """Describe the own attribute ``name`` of ``obj``."""
    interceptor = interceptor_of(obj)
    if interceptor is not None:
        return interceptor.get_descriptor(name)
    return reflection.describe_attribute(obj, name)


def define_property(obj: Any, name: str, descriptor: PropertyDescriptor) -> bool:
    interceptor = interceptor_of(obj)
    if interceptor is not None:
        return interceptor.define_property(name, descriptor)
    return reflection.define_property(obj, name, descriptor)


def get_prototype_of(obj: Any) -> type:
    interceptor = interceptor_of(obj)
    if interceptor is not None:
        return interceptor.get_prototype()
    return reflection.get_prototype(obj)


def set_prototype_of(obj: Any, prototype: type) -> None:
    interceptor = interceptor_of(obj)
    if interceptor is not None:
        return interceptor.set_prototype(prototype)
    return reflection.set_prototype(obj, prototype)


def is_extensible(obj: Any) -> bool:
    interceptor = interceptor_of(obj)
    if interceptor is not None:
        return interceptor.is_extensible()
    return reflection.is_extensible(obj)


def prevent_extensions(obj: Any) -> bool:
    interceptor = interceptor_of(obj)
    if interceptor is not None:
        return interceptor.prevent_extensions()
    return reflection.prevent_extensions(obj)


def own_keys(obj: Any) -> List[str]:
    """Same as ``dir(obj)``."""
    return dir(obj)


def has_property(obj: Any, key: Any) -> bool:
    """Same as ``key in obj``."""
    return key in obj


def delete_property(obj: Any, name: str) -> None:
    """Same as ``del obj.<name>``."""
    delattr(obj, name)
