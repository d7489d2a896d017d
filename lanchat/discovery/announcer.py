"""
Discovery Announcer

Periodically broadcasts this node's presence message. Runs on its own
thread until the shared stop event is set.
"""

import logging
import threading
from typing import Callable

from .channel import DatagramChannel
from .protocol import encode_announcement

logger = logging.getLogger(__name__)

# Seconds between presence broadcasts
DEFAULT_ANNOUNCE_INTERVAL = 15.0

ChannelFactory = Callable[[], DatagramChannel]


class Announcer:
    """Broadcasts presence messages on a fixed interval."""

    def __init__(self, peer_id: str, port: int, channel_factory: ChannelFactory,
                 interval: float = DEFAULT_ANNOUNCE_INTERVAL):
        """
        Args:
            peer_id: Identity to announce
            port: Discovery port the listeners are bound to
            channel_factory: Creates the (unopened) channel to send on
            interval: Seconds between broadcasts
        """
        self.peer_id = peer_id
        self.port = port
        self.interval = interval
        self._channel_factory = channel_factory

        self.available = True
        self.sent = 0
        self.failed = 0

    def announce(self, channel: DatagramChannel) -> bool:
        """Send one presence message."""
        ok = channel.send_broadcast(encode_announcement(self.peer_id), self.port)
        if ok:
            self.sent += 1
            logger.debug(f"Announced {self.peer_id} on port {self.port}")
        else:
            self.failed += 1
            logger.warning(f"Presence broadcast failed for {self.peer_id}, will retry")
        return ok

    def run(self, stop_event: threading.Event):
        """Thread body: announce now, then every ``interval`` until stopped."""
        try:
            channel = self._channel_factory()
            channel.open()
        except OSError as e:
            self.available = False
            logger.error(f"Announcer setup failed, discovery disabled: {e}")
            return

        with channel:
            while not stop_event.is_set():
                try:
                    self.announce(channel)
                except Exception as e:
                    self.failed += 1
                    logger.error(f"Error in announce loop: {e}")

                stop_event.wait(self.interval)

        logger.debug("Announcer stopped")
