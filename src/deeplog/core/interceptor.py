"""
Operation Interceptor for Gnosis DeepLog

Each instrumented handle owns one OperationInterceptor. Every handler follows
the same shape: open a node on the handle's tree, run the real operation against
the original value (arguments unwrapped first), wrap whatever non-primitive
value comes back, and close the node on every exit path.
"""

import logging
import time
from types import MethodType
from typing import TYPE_CHECKING, Any, Callable, Dict, Generator, List, Optional, Tuple

from . import reflection
from .call_tree import OperationKind, TreeStack
from .reflection import ACCESSORS, PropertyDescriptor, is_primitive

if TYPE_CHECKING:
    from .session import WrapSession

__all__ = ["OperationInterceptor", "rebind"]

logger = logging.getLogger(__name__)


def rebind(func: Callable, receiver: Any, session: "WrapSession") -> Callable:
    """Bind ``func`` to ``receiver`` when it is a method bound to a wrapper of it.

    Methods fetched from the real object are already bound to it and come back
    unchanged; a method bound to a handle is moved onto the real receiver so the
    call operates on genuine state.
    """
    if type(func) is not MethodType:
        return func
    owner = func.__self__
    if owner is receiver or session.registry.resolve(owner) is not session.registry.resolve(receiver):
        return func
    return MethodType(func.__func__, receiver)


def _await_iterator(value: Any) -> Any:
    return type(value).__await__(value)


def _result_label(callee_label: str) -> str:
    if callee_label.endswith("()"):
        return f"{callee_label} result"
    return f"{callee_label}() result"


class OperationInterceptor:
    """Per-handle operation handlers."""

    def __init__(self, session: "WrapSession", value: Any, target: Any, label: str, tree: TreeStack):
        self.session = session
        self.value = value
        self.target = target
        self.label = label
        self.tree = tree

    def __repr__(self):
        return f"OperationInterceptor(label={self.label!r}, kind={type(self.value).__name__})"

    # Bookkeeping

    def _intercept(self, action: OperationKind, detail: Any, operation: Callable[[], Any]) -> Any:
        node = self.tree.push(action, detail)
        op_logger = self.session.operation_logger
        if op_logger is not None:
            op_logger.log_enter(self.label, node, self.tree.depth)
        start_time = time.time()
        error: Optional[BaseException] = None
        try:
            return operation()
        except BaseException as e:
            error = e
            raise
        finally:
            self.tree.pop()
            if op_logger is not None:
                op_logger.log_exit(self.label, node, time.time() - start_time, error)

    def _resolve(self, value: Any) -> Any:
        return self.session.registry.resolve(value)

    def _resolve_args(self, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Tuple[List[Any], Dict[str, Any]]:
        resolve = self._resolve
        return [resolve(arg) for arg in args], {key: resolve(value) for key, value in kwargs.items()}

    def _wrap_result(self, result: Any, label: str) -> Any:
        if is_primitive(result):
            return result
        return self.session.wrap(result, label)

    def _wrap_method(self, func: Callable, name: str) -> Any:
        registry = self.session.registry
        cached = registry.lookup_method(func)
        if cached is not None:
            return cached

        label = f"{self.label}.{name}()"
        # The target is already the unwrapped receiver; there is no second one to try.
        try:
            wrapped = self.session.wrap(rebind(func, self.target, self.session), label)
        except Exception:
            logger.debug("Rebinding %s failed, returning it uninstrumented", label, exc_info=True)
            wrapped = func

        registry.cache_method(func, wrapped)
        return wrapped

    # Attribute operations (against the target, which is the box for primitives)

    def get(self, name: str) -> Any:
        if name == "__class__":
            return self.get_prototype()

        def operation():
            base = self.target
            result = ACCESSORS[OperationKind.GET](base, name)
            if reflection.is_non_configurable(base, name):
                return result
            if callable(result):
                return self._wrap_method(result, name)
            return self._wrap_result(result, f"{self.label}.{name}")

        return self._intercept(OperationKind.GET, name, operation)

    def set(self, name: str, value: Any) -> None:
        if name == "__class__":
            return self.set_prototype(value)
        new_value = self._resolve(value)
        return self._intercept(
            OperationKind.SET,
            {"key": name, "value": new_value},
            lambda: ACCESSORS[OperationKind.SET](self.target, name, new_value),
        )

    def delete(self, name: str) -> None:
        return self._intercept(
            OperationKind.DELETE_PROPERTY,
            name,
            lambda: ACCESSORS[OperationKind.DELETE_PROPERTY](self.target, name),
        )

    def own_keys(self) -> List[str]:
        return self._intercept(
            OperationKind.OWN_KEYS, None, lambda: ACCESSORS[OperationKind.OWN_KEYS](self.target)
        )

    def get_descriptor(self, name: str) -> Optional[PropertyDescriptor]:
        return self._intercept(
            OperationKind.GET_OWN_PROPERTY_DESCRIPTOR,
            name,
            lambda: ACCESSORS[OperationKind.GET_OWN_PROPERTY_DESCRIPTOR](self.target, name),
        )

    def define_property(self, name: str, descriptor: PropertyDescriptor) -> bool:
        real = PropertyDescriptor(
            value=self._resolve(descriptor.value),
            writable=descriptor.writable,
            configurable=descriptor.configurable,
            enumerable=descriptor.enumerable,
            getter=descriptor.getter,
            setter=descriptor.setter,
        )
        return self._intercept(
            OperationKind.DEFINE_PROPERTY,
            {"key": name, "descriptor": real.as_dict()},
            lambda: ACCESSORS[OperationKind.DEFINE_PROPERTY](self.target, name, real),
        )

    def get_prototype(self) -> type:
        return self._intercept(
            OperationKind.GET_PROTOTYPE_OF,
            None,
            lambda: ACCESSORS[OperationKind.GET_PROTOTYPE_OF](self.target),
        )

    def set_prototype(self, prototype: type) -> None:
        prototype = self._resolve(prototype)
        return self._intercept(
            OperationKind.SET_PROTOTYPE_OF,
            prototype,
            lambda: ACCESSORS[OperationKind.SET_PROTOTYPE_OF](self.target, prototype),
        )

    def is_extensible(self) -> bool:
        return self._intercept(
            OperationKind.IS_EXTENSIBLE,
            None,
            lambda: ACCESSORS[OperationKind.IS_EXTENSIBLE](self.target),
        )

    def prevent_extensions(self) -> bool:
        return self._intercept(
            OperationKind.PREVENT_EXTENSIONS,
            None,
            lambda: ACCESSORS[OperationKind.PREVENT_EXTENSIONS](self.target),
        )

    # Value operations (against the original value)

    def has(self, key: Any) -> bool:
        key = self._resolve(key)
        return self._intercept(
            OperationKind.HAS, key, lambda: ACCESSORS[OperationKind.HAS](self.value, key)
        )

    def get_item(self, key: Any) -> Any:
        key = self._resolve(key)

        def operation():
            result = ACCESSORS[OperationKind.GET_ITEM](self.value, key)
            return self._wrap_result(result, f"{self.label}[{key!r}]")

        return self._intercept(OperationKind.GET_ITEM, key, operation)

    def set_item(self, key: Any, value: Any) -> None:
        key, new_value = self._resolve(key), self._resolve(value)
        return self._intercept(
            OperationKind.SET_ITEM,
            {"key": key, "value": new_value},
            lambda: ACCESSORS[OperationKind.SET_ITEM](self.value, key, new_value),
        )

    def delete_item(self, key: Any) -> None:
        key = self._resolve(key)
        return self._intercept(
            OperationKind.DELETE_ITEM, key, lambda: ACCESSORS[OperationKind.DELETE_ITEM](self.value, key)
        )

    def apply(self, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        """Call the original; calling a class is a construction."""
        if issubclass(type(self.value), type):
            return self.construct(args, kwargs)

        arg_list, real_kwargs = self._resolve_args(args, kwargs)
        this_arg = self.value.__self__ if type(self.value) is MethodType else None
        detail = {"this_arg": this_arg, "arg_list": arg_list, "kwargs": real_kwargs}

        def operation():
            result = self.value(*arg_list, **real_kwargs)
            return self._wrap_result(result, _result_label(self.label))

        return self._intercept(OperationKind.APPLY, detail, operation)

    def construct(self, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        arg_list, real_kwargs = self._resolve_args(args, kwargs)
        detail = {"arg_list": arg_list, "kwargs": real_kwargs}

        def operation():
            instance = self.value(*arg_list, **real_kwargs)
            return self._wrap_result(instance, f"new {self.label}")

        return self._intercept(OperationKind.CONSTRUCT, detail, operation)

    def to_primitive(self, hint: str, converter: Callable[..., Any], *args: Any) -> Any:
        """Convert the original value; the result is handed back as is."""
        return self._intercept(OperationKind.TO_PRIMITIVE, hint, lambda: converter(self.value, *args))

    def protocol(self, method: str, func: Callable[..., Any], *args: Any, wrap: bool = True) -> Any:
        """Run a special method (operator, ``len``, ``iter``...) on the original."""
        arg_list = [self._resolve(arg) for arg in args]

        def operation():
            result = func(self.value, *arg_list)
            if not wrap:
                return result
            return self._wrap_result(result, f"{self.label}.{method}() result")

        return self._intercept(OperationKind.PROTOCOL, {"method": method, "arg_list": arg_list}, operation)

    def awaited(self) -> Generator[Any, Any, Any]:
        """Drive the original awaitable; ``await`` on a handle delegates here."""
        iterator = self.protocol("__await__", _await_iterator, wrap=False)
        result = yield from iterator
        return self._wrap_result(result, f"{self.label}.__await__() result")
