"""
Real-value accessors for Gnosis DeepLog

Every recorded operation ends in one of the functions below, applied to the
real object behind a handle. Operations that Python spells with syntax map to
that syntax; descriptor queries, property definition and extensibility control
have no syntax of their own and are modelled here explicitly.
"""

import inspect
import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .call_tree import OperationKind

__all__ = [
    "PRIMITIVE_TYPES",
    "ACCESSORS",
    "PropertyDescriptor",
    "is_primitive",
    "is_frozen",
    "is_non_configurable",
    "describe_attribute",
]

PRIMITIVE_TYPES = (type(None), bool, int, float, complex, str, bytes)

# Instances of these refuse attribute assignment and deletion.
IMMUTABLE_TYPES = PRIMITIVE_TYPES + (tuple, frozenset, range)


@dataclass
class PropertyDescriptor:
    """Description of a single own attribute."""

    value: Any = None
    writable: bool = True
    configurable: bool = True
    enumerable: bool = True
    getter: Optional[Callable] = None
    setter: Optional[Callable] = None

    @property
    def is_accessor(self) -> bool:
        return self.getter is not None or self.setter is not None

    def as_dict(self) -> Dict[str, Any]:
        if self.is_accessor:
            return {
                "get": self.getter,
                "set": self.setter,
                "configurable": self.configurable,
                "enumerable": self.enumerable,
            }
        return {
            "value": self.value,
            "writable": self.writable,
            "configurable": self.configurable,
            "enumerable": self.enumerable,
        }


def is_primitive(value: Any) -> bool:
    """True for values that are never wrapped when they flow out of an operation."""
    return issubclass(type(value), PRIMITIVE_TYPES)


def is_frozen(obj: Any) -> bool:
    """True when attributes of ``obj`` can be neither rebound nor deleted."""
    obj_type = type(obj)
    if issubclass(obj_type, IMMUTABLE_TYPES):
        return True
    if issubclass(obj_type, type):
        return obj.__module__ == "builtins"
    params = getattr(obj_type, "__dataclass_params__", None)
    return bool(params is not None and params.frozen)


def _instance_dict(obj: Any) -> Optional[Any]:
    try:
        return object.__getattribute__(obj, "__dict__")
    except (AttributeError, TypeError):
        return None


def describe_attribute(obj: Any, name: str, fetch_value: bool = True) -> Optional[PropertyDescriptor]:
    """Describe the own attribute ``name`` of ``obj``, or None when it has none.

    Own attributes are entries of the instance ``__dict__`` and data descriptors
    defined by the type (properties, slots, builtin getsets). Plain class
    attributes and methods are inherited and therefore not own. With
    ``fetch_value`` off, data descriptors are described without being read.
    """
    try:
        static = inspect.getattr_static(obj, name)
    except AttributeError:
        return None

    frozen = is_frozen(obj)
    namespace = _instance_dict(obj)
    enumerable = not name.startswith("_")

    if issubclass(type(static), property):
        mutable = static.fset is not None or static.fdel is not None
        return PropertyDescriptor(
            getter=static.fget,
            setter=static.fset,
            configurable=mutable and not frozen,
            enumerable=False,
        )

    if namespace is not None and name in namespace:
        return PropertyDescriptor(
            value=namespace[name],
            writable=not frozen,
            configurable=not frozen,
            enumerable=enumerable,
        )

    is_data_descriptor = hasattr(type(static), "__set__") or hasattr(type(static), "__delete__")
    if is_data_descriptor or frozen:
        if callable(static) and not is_data_descriptor:
            return None
        value = None
        if fetch_value:
            try:
                value = getattr(obj, name)
            except AttributeError:
                return None
        return PropertyDescriptor(
            value=value,
            writable=not frozen,
            configurable=not frozen,
            enumerable=enumerable,
        )
    return None


def is_non_configurable(obj: Any, name: str) -> bool:
    descriptor = describe_attribute(obj, name, fetch_value=False)
    return descriptor is not None and not descriptor.configurable


def define_property(obj: Any, name: str, descriptor: PropertyDescriptor) -> bool:
    """Define ``name`` on ``obj`` from a data descriptor.

    Python cannot attach accessors to a single instance, so accessor
    descriptors are refused. Returns whether the definition took effect.
    """
    if descriptor.is_accessor or is_frozen(obj):
        return False
    try:
        setattr(obj, name, descriptor.value)
    except (AttributeError, TypeError):
        return False
    return True


def get_prototype(obj: Any) -> type:
    return obj.__class__


def set_prototype(obj: Any, prototype: type) -> None:
    obj.__class__ = prototype


def is_extensible(obj: Any) -> bool:
    """True when new attributes can be added to ``obj``."""
    if is_frozen(obj):
        return False
    return _instance_dict(obj) is not None


def prevent_extensions(obj: Any) -> bool:
    """Report whether ``obj`` is closed to new attributes.

    Existing Python objects cannot be sealed after the fact, so this succeeds
    only for objects that are already inextensible.
    """
    return not is_extensible(obj)


def _own_keys(obj: Any) -> List[str]:
    return dir(obj)


def _contains(obj: Any, key: Any) -> bool:
    return key in obj


ACCESSORS: Dict[OperationKind, Callable[..., Any]] = {
    OperationKind.GET: getattr,
    OperationKind.SET: setattr,
    OperationKind.HAS: _contains,
    OperationKind.DELETE_PROPERTY: delattr,
    OperationKind.OWN_KEYS: _own_keys,
    OperationKind.GET_OWN_PROPERTY_DESCRIPTOR: describe_attribute,
    OperationKind.DEFINE_PROPERTY: define_property,
    OperationKind.GET_PROTOTYPE_OF: get_prototype,
    OperationKind.SET_PROTOTYPE_OF: set_prototype,
    OperationKind.IS_EXTENSIBLE: is_extensible,
    OperationKind.PREVENT_EXTENSIONS: prevent_extensions,
    OperationKind.GET_ITEM: operator.getitem,
    OperationKind.SET_ITEM: operator.setitem,
    OperationKind.DELETE_ITEM: operator.delitem,
}

