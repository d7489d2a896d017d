"""
Discovery Listener

Receives presence messages and folds them into the membership table.

Loop:
1. Receive with a short timeout so the stop event is noticed even
   when the network is silent
2. Decode; malformed or foreign datagrams are dropped without noise,
   they are expected on a shared broadcast port
3. Drop our own announcements
4. Upsert the sender with its source address and the local receipt time
5. Sweep expired peers on a timer, if configured
"""

import logging
import threading
from typing import Callable, Optional

from .channel import DatagramChannel
from .membership import MembershipTable, PeerRecord, DEFAULT_LIVENESS_THRESHOLD
from .protocol import decode_announcement

logger = logging.getLogger(__name__)

# Upper bound on how long stop() waits for the listener to notice
DEFAULT_RECEIVE_TIMEOUT = 1.0

# Callback type for peer membership events
PeerCallback = Callable[[PeerRecord, bool], None]  # (peer, is_added)


class Listener:
    """Ingests announcements into a MembershipTable."""

    def __init__(self, peer_id: str, port: int, table: MembershipTable,
                 channel_factory: Callable[[], DatagramChannel],
                 receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT,
                 liveness_threshold: float = DEFAULT_LIVENESS_THRESHOLD,
                 sweep_interval: Optional[float] = None,
                 on_peer_change: Optional[PeerCallback] = None):
        """
        Args:
            peer_id: Our own identity (announcements carrying it are dropped)
            port: Discovery port to bind
            table: Shared membership table
            channel_factory: Creates the (unopened) channel to listen on
            receive_timeout: Bounded wait per receive call
            liveness_threshold: Age after which peers are evicted
            sweep_interval: Seconds between sweeps from this loop (None disables)
            on_peer_change: Called with (record, is_added) on join / expiry
        """
        self.peer_id = peer_id
        self.port = port
        self.table = table
        self.receive_timeout = receive_timeout
        self.liveness_threshold = liveness_threshold
        self.sweep_interval = sweep_interval
        self._channel_factory = channel_factory
        self._on_peer_change = on_peer_change
        self._last_sweep = table.now()

        self.available = True
        self.received = 0
        self.accepted = 0
        self.discarded = 0

    def handle_datagram(self, data: bytes, source_ip: str) -> bool:
        """
        Process one datagram.

        Returns:
            True if it updated the membership table
        """
        self.received += 1

        announcement = decode_announcement(data)
        if announcement is None:
            self.discarded += 1
            logger.debug(f"Ignoring foreign datagram from {source_ip}")
            return False

        if announcement.peer_id == self.peer_id:
            self.discarded += 1
            return False

        is_new = self.table.upsert(announcement.peer_id, source_ip)
        self.accepted += 1

        if is_new:
            logger.info(f"Discovered peer {announcement.peer_id} at {source_ip}")
            record = self.table.get(announcement.peer_id)
            if record is not None:
                self._notify(record, True)

        return True

    def sweep_if_due(self):
        """Run a sweep if sweep_interval has elapsed since the last one."""
        if self.sweep_interval is None:
            return

        now = self.table.now()
        if now - self._last_sweep < self.sweep_interval:
            return

        self._last_sweep = now
        for record in self.table.sweep(self.liveness_threshold, now):
            self._notify(record, False)

    def _notify(self, record: PeerRecord, is_added: bool):
        if self._on_peer_change is None:
            return
        try:
            self._on_peer_change(record, is_added)
        except Exception as e:
            logger.error(f"Callback error: {e}")

    def run(self, stop_event: threading.Event):
        """Thread body: receive until the stop event is set."""
        try:
            channel = self._channel_factory()
            channel.open(self.port)
        except OSError as e:
            self.available = False
            logger.error(f"Listener could not bind port {self.port}, discovery disabled: {e}")
            return

        logger.info(f"Listening for peers on port {self.port}")

        with channel:
            while not stop_event.is_set():
                try:
                    packet = channel.receive(self.receive_timeout)
                except OSError as e:
                    if stop_event.is_set():
                        break
                    logger.warning(f"Error receiving broadcast: {e}")
                    stop_event.wait(self.receive_timeout)
                    continue

                if packet is not None and not stop_event.is_set():
                    try:
                        self.handle_datagram(*packet)
                    except Exception as e:
                        logger.error(f"Error handling broadcast message: {e}")

                self.sweep_if_due()

        logger.debug("Listener stopped")
