"""A small dependency-injection container keyed by type annotations."""

from __future__ import annotations

import threading
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Mapping

_MISSING = object()


class _Empty:
    """Marker for a missing annotation."""


_EMPTY = _Empty


class ContainerError(Exception):
    """Raised when a binding cannot be registered or resolved."""


@dataclass(frozen=True)
class Conditional:
    """A binding registered only when its condition holds."""

    init: Any
    on_condition: Callable[..., bool]


def with_condition(init: Any, on_condition: Callable[..., bool]) -> Conditional:
    """Wrap a factory so it is bound only if ``on_condition`` returns true."""
    return Conditional(init, on_condition)


@dataclass
class _Binding:
    factory: Callable[..., Any] | None
    value: Any = _MISSING
    shared: bool = True
    by_name: bool = False


@dataclass(frozen=True)
class _Param:
    name: str
    annotation: Any
    has_default: bool
    positional_only: bool


def _describe(key: Any) -> str:
    if isinstance(key, type):
        return f"{key.__module__}.{key.__qualname__}"
    return repr(key)


def _annotations(target: Any) -> dict[str, Any]:
    return dict(getattr(target, "__annotations__", None) or {})


def _target(func: Any) -> tuple[Any, int]:
    """The plain function behind ``func`` and how many leading parameters it binds itself."""
    if isinstance(func, type):
        init = func.__init__
        if not hasattr(init, "__code__"):
            return None, 0
        return init, 1
    if isinstance(func, types.MethodType):
        return func.__func__, 1
    if hasattr(func, "__code__"):
        return func, 0
    call = getattr(type(func), "__call__", None)
    if call is not None and hasattr(call, "__code__"):
        return call, 1
    raise ContainerError(f"can not inspect {func!r}")


def _parameters(func: Any) -> list[_Param]:
    fn, skip = _target(func)
    if fn is None:
        return []
    code = fn.__code__
    positional = code.co_argcount
    names = code.co_varnames[: positional + code.co_kwonlyargcount]
    defaults = fn.__defaults__ or ()
    kwdefaults = fn.__kwdefaults__ or {}
    first_default = positional - len(defaults)
    annotations = _annotations(fn)

    params = []
    for index, name in enumerate(names):
        if index < skip:
            continue
        if index < positional:
            has_default = index >= first_default
        else:
            has_default = name in kwdefaults
        params.append(
            _Param(
                name,
                annotations.get(name, _EMPTY),
                has_default,
                index < code.co_posonlyargcount,
            )
        )
    return params


def _return_annotation(func: Any) -> Any:
    fn, _ = _target(func)
    if fn is None:
        return _EMPTY
    return _annotations(fn).get("return", _EMPTY)


def _hashable(key: Any) -> bool:
    try:
        hash(key)
    except TypeError:
        return False
    return True


def _is_class_var(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return typing.get_origin(annotation) is typing.ClassVar


class Container:
    """Holds singleton, prototype and value bindings and injects them."""

    def __init__(self, parent: Container | None = None) -> None:
        self._parent = parent
        self._bindings: dict[Any, _Binding] = {}
        self._lock = threading.RLock()

    def singleton(self, factory: Any, override: bool = False) -> None:
        """Bind a factory whose result is created once, or an instance."""
        self._register(factory, override, shared=True)

    def prototype(self, factory: Any, override: bool = False) -> None:
        """Bind a factory that is called on every lookup."""
        self._register(factory, override, shared=False)

    def bind_value(self, key: Any, value: Any) -> None:
        """Bind a plain value under an explicit key."""
        with self._lock:
            if key in self._bindings:
                raise ContainerError(f"{_describe(key)} has already been bound")
            self._bindings[key] = _Binding(None, value)

    def has(self, key: Any) -> bool:
        """Tell whether ``key`` can be resolved."""
        if not _hashable(key):
            return False
        if self._is_self_key(key):
            return True
        if self._local_key(key) is not _MISSING:
            return True
        return self._parent is not None and self._parent.has(key)

    def get(self, key: Any) -> Any:
        """Return the object bound to ``key``."""
        if not _hashable(key):
            raise ContainerError(f"{_describe(key)} can not be used as a key")
        if self._is_self_key(key):
            return self
        local = self._local_key(key)
        if local is _MISSING:
            if self._parent is not None and self._parent.has(key):
                return self._parent.get(key)
            raise ContainerError(f"{_describe(key)} not found in container")
        with self._lock:
            binding = self._bindings[local]
        return self._instance(binding)

    def resolve(self, func: Callable[..., Any]) -> Any:
        """Call ``func`` with its annotated parameters injected."""
        return self.call(func)

    def call(self, func: Callable[..., Any], extra: Mapping[Any, Any] | None = None) -> Any:
        """Call ``func``; ``extra`` supplies values that take precedence."""
        extra = dict(extra or {})
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for param in _parameters(func):
            annotation = param.annotation
            if annotation is _EMPTY:
                if param.has_default:
                    continue
                raise ContainerError(
                    f"parameter {param.name!r} of {func!r} has no type annotation"
                )
            if _hashable(annotation) and annotation in extra:
                value = extra[annotation]
            elif self.has(annotation):
                value = self.get(annotation)
            elif param.has_default:
                continue
            else:
                raise ContainerError(
                    f"can not resolve parameter {param.name!r} ({_describe(annotation)}) of {func!r}"
                )
            if param.positional_only:
                args.append(value)
            else:
                kwargs[param.name] = value
        return func(*args, **kwargs)

    def autowire(self, obj: Any) -> Any:
        """Fill the object's unset annotated attributes from the container."""
        hints: dict[str, Any] = {}
        for klass in reversed(type(obj).__mro__):
            hints.update(getattr(klass, "__annotations__", None) or {})
        for name, annotation in hints.items():
            if _is_class_var(annotation):
                continue
            if getattr(obj, name, None) is not None:
                continue
            if not self.has(annotation):
                continue
            setattr(obj, name, self.get(annotation))
        return obj

    def _local_key(self, key: Any) -> Any:
        """The key under which ``key`` is bound in this container, if any."""
        with self._lock:
            if key in self._bindings:
                return key
            if isinstance(key, type):
                for alias in (key.__qualname__, key.__name__):
                    binding = self._bindings.get(alias)
                    if binding is not None and binding.by_name:
                        return alias
            elif isinstance(key, str):
                for bound in self._bindings:
                    if isinstance(bound, type) and key in (bound.__qualname__, bound.__name__):
                        return bound
        return _MISSING

    def _is_self_key(self, key: Any) -> bool:
        if isinstance(key, type):
            return issubclass(key, Container) and isinstance(self, key)
        if isinstance(key, str):
            return any(
                key == klass.__name__
                for klass in type(self).__mro__
                if issubclass(klass, Container)
            )
        return False

    def _register(self, init: Any, override: bool, shared: bool) -> None:
        if isinstance(init, Conditional):
            if not self.call(init.on_condition):
                return
            init = init.init

        key, factory = self._key_and_factory(init)
        with self._lock:
            if key in self._bindings and not override:
                raise ContainerError(f"{_describe(key)} has already been bound")
            if factory is None:
                self._bindings[key] = _Binding(None, init)
            else:
                self._bindings[key] = _Binding(
                    factory, shared=shared, by_name=isinstance(key, str)
                )

    @staticmethod
    def _key_and_factory(init: Any) -> tuple[Any, Callable[..., Any] | None]:
        if isinstance(init, type):
            return init, init
        if callable(init):
            returned = _return_annotation(init)
            if returned is _EMPTY or returned is None or returned is type(None) or returned == "None":
                raise ContainerError(f"factory {init!r} must declare its return type")
            return returned, init
        return type(init), None

    def _instance(self, binding: _Binding) -> Any:
        if binding.value is not _MISSING:
            return binding.value
        if not binding.shared:
            return self.call(binding.factory)
        with self._lock:
            if binding.value is _MISSING:
                binding.value = self.call(binding.factory)
            return binding.value


def autowire(resolver: Container, obj: Any) -> Any:
    """Inject dependencies into ``obj`` and return it for chaining."""
    if isinstance(obj, type) or not hasattr(obj, "__dict__"):
        raise TypeError("obj must be a mutable object instance")
    resolver.autowire(obj)
    return obj