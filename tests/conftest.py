import itertools
import queue
import threading
import time

import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class FakeNetwork:
    """
    In-memory broadcast domain.

    A broadcast to a port is delivered to every open channel bound to
    that port, including the sender's own listener, like a real LAN.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._bound = {}
        self._ephemeral = itertools.count(50000)
        self.fail_sends = False

    def channel_factory(self, address: str):
        return lambda: FakeChannel(self, address)

    def bind(self, channel, port):
        with self._lock:
            if port is None:
                port = next(self._ephemeral)
            self._bound.setdefault(port, []).append(channel)
            return port

    def unbind(self, channel, port):
        with self._lock:
            channels = self._bound.get(port, [])
            if channel in channels:
                channels.remove(channel)

    def listeners(self, port):
        with self._lock:
            return list(self._bound.get(port, []))

    def deliver(self, payload: bytes, source: str, port: int) -> bool:
        if self.fail_sends:
            return False
        for channel in self.listeners(port):
            channel.inbox.put((payload, source))
        return True


class FakeChannel:
    def __init__(self, network: FakeNetwork, address: str):
        self.network = network
        self.address = address
        self.inbox = queue.Queue()
        self.port = None

    def open(self, port=None):
        self.port = self.network.bind(self, port)

    def send_broadcast(self, payload: bytes, port: int) -> bool:
        return self.network.deliver(payload, self.address, port)

    def receive(self, timeout: float):
        try:
            return self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self):
        if self.port is not None:
            self.network.unbind(self, self.port)
            self.port = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def wait_until(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def network():
    return FakeNetwork()
