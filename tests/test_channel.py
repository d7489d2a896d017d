import pytest

from lanchat.discovery.channel import DatagramChannel


@pytest.fixture
def receiver():
    channel = DatagramChannel()
    channel.open()
    yield channel
    channel.close()


def test_send_and_receive_over_loopback(receiver):
    with DatagramChannel(broadcast_address="127.0.0.1") as sender:
        sender.open()
        assert sender.send_broadcast(b"hello", receiver.local_port) is True

        assert receiver.receive(2.0) == (b"hello", "127.0.0.1")


def test_receive_timeout_returns_none(receiver):
    assert receiver.receive(0.05) is None


def test_open_binds_any_port_by_default(receiver):
    assert receiver.is_open
    assert receiver.local_port > 0


def test_open_is_idempotent(receiver):
    port = receiver.local_port
    receiver.open()
    assert receiver.local_port == port


def test_closed_channel_cannot_send_or_receive():
    channel = DatagramChannel()

    assert channel.send_broadcast(b"x", 9) is False
    with pytest.raises(OSError):
        channel.receive(0.01)


def test_close_is_idempotent():
    channel = DatagramChannel()
    channel.open()
    channel.close()
    channel.close()

    assert not channel.is_open
    assert channel.local_port is None


def test_context_manager_releases_socket():
    with DatagramChannel() as channel:
        channel.open()
        assert channel.is_open
    assert not channel.is_open
