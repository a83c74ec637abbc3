import socket

import pytest

from glacier import listener
from glacier.container import Container
from glacier.flags import FlagContext


def _resolver_with(data):
    container = Container()
    container.singleton(FlagContext(data))
    return container


def test_default_builder_listens_on_given_host():
    sock = listener.default("127.0.0.1:0").build(None)
    try:
        host, port = sock.getsockname()[:2]
        assert host == "127.0.0.1"
        assert port > 0
    finally:
        sock.close()


def test_default_builder_accepts_connections():
    sock = listener.default("127.0.0.1:0").build(None)
    try:
        port = sock.getsockname()[1]
        with socket.create_connection(("127.0.0.1", port), timeout=2) as client:
            conn, _ = sock.accept()
            conn.close()
            assert client.getpeername()[1] == port
    finally:
        sock.close()


def test_default_builder_keeps_address():
    builder = listener.default("127.0.0.1:0")
    assert builder.listen_addr == "127.0.0.1:0"


def test_flag_builder_reads_address_from_flags():
    resolver = _resolver_with({"listen": "127.0.0.1:0"})
    sock = listener.from_flag("listen").build(resolver)
    try:
        assert sock.getsockname()[0] == "127.0.0.1"
    finally:
        sock.close()


def test_flag_builder_requires_address():
    resolver = _resolver_with({})
    with pytest.raises(ValueError, match="listen addr is required"):
        listener.from_flag("listen").build(resolver)


def test_existing_builder_returns_same_socket():
    sentinel = object()
    assert listener.existing(sentinel).build(None) is sentinel


@pytest.mark.parametrize("addr", ["nope", "127.0.0.1:abc", "127.0.0.1:70000"])
def test_invalid_addresses_are_rejected(addr):
    with pytest.raises(ValueError):
        listener.default(addr).build(None)