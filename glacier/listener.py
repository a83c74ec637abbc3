"""Builders that create the listening socket of a network server."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Any

from glacier.flags import FlagContext

DEFAULT_LISTEN_ADDR = "127.0.0.1:8080"


def _split_address(addr: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; an empty host means every interface."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not port:
        return host, 0
    try:
        number = int(port)
    except ValueError as exc:
        raise ValueError(f"invalid port in address {addr!r}") from exc
    if not 0 <= number <= 65535:
        raise ValueError(f"invalid port in address {addr!r}")
    return host, number


def _listen(addr: str) -> socket.socket:
    host, port = _split_address(addr)
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, port), family=family)


@dataclass(frozen=True)
class DefaultListenerBuilder:
    """Listens on a fixed TCP address."""

    listen_addr: str

    def build(self, resolver: Any) -> socket.socket:
        return _listen(self.listen_addr)


@dataclass(frozen=True)
class FlagListenerBuilder:
    """Listens on the TCP address held by a command-line option."""

    flag_name: str

    def build(self, resolver: Any) -> socket.socket:
        listen_addr = resolver.get(FlagContext).string(self.flag_name)
        if not listen_addr:
            raise ValueError("listen addr is required")
        return _listen(listen_addr)


@dataclass(frozen=True)
class ExistingListenerBuilder:
    """Hands out a socket that was created elsewhere."""

    sock: Any

    def build(self, resolver: Any) -> Any:
        return self.sock


def default(listen_addr: str) -> DefaultListenerBuilder:
    """Builder listening on ``listen_addr``."""
    return DefaultListenerBuilder(listen_addr)


def from_flag(flag_name: str) -> FlagListenerBuilder:
    """Builder listening on the address given by the option ``flag_name``."""
    return FlagListenerBuilder(flag_name)


def existing(sock: Any) -> ExistingListenerBuilder:
    """Builder that reuses an already created socket."""
    return ExistingListenerBuilder(sock)