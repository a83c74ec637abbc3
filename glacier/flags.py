"""A typed, in-memory store of command-line option values."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping


class FlagContext:
    """Option values by name; a missing or mistyped value yields a zero value."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    def set(self, name: str, value: Any) -> None:
        """Store a value for an option."""
        self._data[name] = value

    def string(self, name: str) -> str:
        raw = self._data.get(name)
        return raw if isinstance(raw, str) else ""

    def string_slice(self, name: str) -> list[str]:
        raw = self._data.get(name)
        if isinstance(raw, (list, tuple)) and all(isinstance(v, str) for v in raw):
            return list(raw)
        return []

    def bool(self, name: str) -> bool:
        raw = self._data.get(name)
        return raw if isinstance(raw, bool) else False

    def int(self, name: str) -> int:
        raw = self._data.get(name)
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        return 0

    def int_slice(self, name: str) -> list[int]:
        raw = self._data.get(name)
        if isinstance(raw, (list, tuple)) and all(
            isinstance(v, int) and not isinstance(v, bool) for v in raw
        ):
            return list(raw)
        return []

    def duration(self, name: str) -> timedelta:
        raw = self._data.get(name)
        return raw if isinstance(raw, timedelta) else timedelta(0)

    def float(self, name: str) -> float:
        raw = self._data.get(name)
        return raw if isinstance(raw, float) else 0.0

    def flag_names(self) -> list[str]:
        """Names of every option that has a value."""
        return list(self._data)