"""Framework status and helpers for naming and filtering modules."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable

from glacier.container import Container
from glacier.infra import Nameable

_NO_RETURN = object()


class Status(IntEnum):
    """Life-cycle state of the framework."""

    UNKNOWN = 0
    INITIALIZED = 1
    STARTED = 2

    def __str__(self) -> str:
        if self is Status.INITIALIZED:
            return "Initialized"
        if self is Status.STARTED:
            return "Started"
        return "Unknown"


def resolve_name(item: Any) -> str:
    """Name of a provider, service or function for diagnostics."""
    if not isinstance(item, type) and isinstance(item, Nameable):
        name = item.name()
        if name:
            return name
    target = item if inspect.isfunction(item) or inspect.ismethod(item) or isinstance(item, type) else type(item)
    module = getattr(target, "__module__", "") or "."
    qualname = getattr(target, "__qualname__", None) or repr(target)
    return f"{module}:{qualname}"


@dataclass(frozen=True)
class NamedFunc:
    """A callable together with a name used in logs."""

    fn: Callable[..., Any]
    name: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", resolve_name(self.fn))


def validate_should_load(obj: Any) -> None:
    """Check that an optional ``should_load`` method is usable."""
    method = getattr(obj, "should_load", None)
    if method is None:
        return
    kind = type(obj).__name__
    if not callable(method):
        raise TypeError(f"invalid provider {kind}: should_load must be a method")
    annotations = getattr(method, "__annotations__", None) or {}
    returned = annotations.get("return", _NO_RETURN)
    if returned is not _NO_RETURN and returned is not bool and returned != "bool":
        raise TypeError(
            f"invalid provider {kind}: the return value for should_load method must be a bool"
        )


def should_load_module(obj: Any, container: Container) -> bool:
    """Call ``obj.should_load`` with injected arguments; true when absent."""
    method = getattr(obj, "should_load", None)
    if method is None or not callable(method):
        return True
    try:
        result = container.call(method)
    except Exception as exc:
        raise RuntimeError(
            f"[glacier] call {type(obj).__name__}.should_load method failed: {exc}"
        ) from exc
    return bool(result)