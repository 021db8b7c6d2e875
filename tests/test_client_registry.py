import socket
import threading

import pytest

from bourse.client_registry import ClientRegistry


class FakeConn:
    def __init__(self):
        self.shutdowns = []

    def shutdown(self, how):
        self.shutdowns.append(how)


class BrokenConn:
    def shutdown(self, how):
        raise OSError("not connected")


def test_register_and_unregister_counts():
    registry = ClientRegistry()
    a, b = FakeConn(), FakeConn()
    registry.register(a)
    registry.register(b)
    assert len(registry) == 2
    registry.unregister(a)
    assert len(registry) == 1


def test_unregister_unknown_raises():
    registry = ClientRegistry()
    with pytest.raises(KeyError):
        registry.unregister(FakeConn())


def test_wait_for_empty_when_empty():
    assert ClientRegistry().wait_for_empty(timeout=0.01) is True


def test_wait_for_empty_times_out():
    registry = ClientRegistry()
    registry.register(FakeConn())
    assert registry.wait_for_empty(timeout=0.01) is False


def test_wait_for_empty_wakes_on_last_unregister():
    registry = ClientRegistry()
    conn = FakeConn()
    registry.register(conn)
    timer = threading.Timer(0.05, registry.unregister, args=(conn,))
    timer.start()
    try:
        assert registry.wait_for_empty(timeout=5) is True
    finally:
        timer.join()
    assert len(registry) == 0


def test_shutdown_all_shuts_reading_side():
    registry = ClientRegistry()
    conns = [FakeConn(), FakeConn()]
    for conn in conns:
        registry.register(conn)
    registry.shutdown_all()
    assert [c.shutdowns for c in conns] == [[socket.SHUT_RD], [socket.SHUT_RD]]
    assert len(registry) == 2


def test_shutdown_all_tolerates_errors():
    registry = ClientRegistry()
    good = FakeConn()
    registry.register(BrokenConn())
    registry.register(good)
    registry.shutdown_all()
    assert good.shutdowns == [socket.SHUT_RD]


def test_shutdown_ends_socket_reads():
    registry = ClientRegistry()
    left, right = socket.socketpair()
    try:
        registry.register(left)
        registry.shutdown_all()
        assert left.recv(16) == b""
    finally:
        left.close()
        right.close()