"""
Peer Discovery Service

Design Decision: Threads vs asyncio
===================================

Options Considered:
1. asyncio tasks on the API server's event loop
   - No extra threads
   - Discovery stalls whenever the loop is busy, and the HTTP layer
     must not dictate the discovery threading model

2. Two OS threads (announcer, listener)
   - Independent of whoever hosts the service
   - Blocking socket calls with short timeouts are simple and portable

Decision: Two OS threads
- Announcer sleeps on the shared stop event, so stop() is prompt
- Listener blocks in a bounded receive, so stop() is prompt
- stop() joins both threads; once it returns nothing mutates the table

Error handling:
- A task that cannot open its socket logs, marks discovery unavailable
  and exits; the host process and chat API keep working
- get_active_peers() never raises
"""

import logging
import random
import threading
import time
from typing import Callable, List, Optional

from .announcer import Announcer, DEFAULT_ANNOUNCE_INTERVAL
from .channel import DatagramChannel, BROADCAST_ADDRESS
from .identity import generate_peer_id
from .listener import Listener, PeerCallback, DEFAULT_RECEIVE_TIMEOUT
from .membership import MembershipTable, PeerRecord, DEFAULT_LIVENESS_THRESHOLD
from .protocol import DEFAULT_DISCOVERY_PORT

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 5.0

# How often stop() reports a thread that is slow to exit
JOIN_WARN_INTERVAL = 10.0


class PeerDiscovery:
    """
    LAN peer discovery via periodic UDP broadcast.

    Owns the membership table and the announcer / listener threads:
    - start() / stop(): idempotent lifecycle
    - get_active_peers(): sweep, then snapshot
    - get_peer_id(): our own identity
    """

    def __init__(self, port: int = DEFAULT_DISCOVERY_PORT,
                 announce_interval: float = DEFAULT_ANNOUNCE_INTERVAL,
                 liveness_threshold: float = DEFAULT_LIVENESS_THRESHOLD,
                 receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT,
                 sweep_interval: Optional[float] = DEFAULT_SWEEP_INTERVAL,
                 broadcast_address: str = BROADCAST_ADDRESS,
                 peer_id: Optional[str] = None,
                 rng: Optional[random.Random] = None,
                 channel_factory: Optional[Callable[[], DatagramChannel]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize discovery (nothing runs until start()).

        Args:
            port: UDP port shared by all nodes for announcements
            announce_interval: Seconds between presence broadcasts
            liveness_threshold: Seconds of silence before a peer is evicted
            receive_timeout: Listener receive timeout (bounds stop() latency)
            sweep_interval: Seconds between listener-side sweeps (None disables)
            broadcast_address: Where announcements are sent
            peer_id: Our identity (generated if not provided)
            rng: Random generator used for the identity
            channel_factory: Creates datagram channels (tests swap this out)
            clock: Monotonic time source for the membership table
        """
        for name, value in (('announce_interval', announce_interval),
                            ('liveness_threshold', liveness_threshold),
                            ('receive_timeout', receive_timeout),
                            ('sweep_interval', sweep_interval)):
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        self.port = port
        self.announce_interval = announce_interval
        self.liveness_threshold = liveness_threshold
        self.receive_timeout = receive_timeout
        self.sweep_interval = sweep_interval
        self.broadcast_address = broadcast_address

        self._peer_id = peer_id or generate_peer_id(rng)
        self._channel_factory = channel_factory or (
            lambda: DatagramChannel(broadcast_address)
        )

        self._table = MembershipTable(clock=clock)
        self._callbacks: List[PeerCallback] = []

        self._lifecycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._announcer: Optional[Announcer] = None
        self._listener: Optional[Listener] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_available(self) -> bool:
        """False once a discovery task failed to open its socket."""
        for task in (self._announcer, self._listener):
            if task is not None and not task.available:
                return False
        return True

    @property
    def table(self) -> MembershipTable:
        return self._table

    def get_peer_id(self) -> str:
        return self._peer_id

    def on_peer_change(self, callback: PeerCallback):
        """Register a callback for peer join / expiry events."""
        self._callbacks.append(callback)

    def start(self):
        """Start the announcer and listener threads (no-op if running)."""
        with self._lifecycle_lock:
            if self._running:
                return

            self._stop_event = threading.Event()

            self._announcer = Announcer(
                peer_id=self._peer_id,
                port=self.port,
                channel_factory=self._channel_factory,
                interval=self.announce_interval,
            )
            self._listener = Listener(
                peer_id=self._peer_id,
                port=self.port,
                table=self._table,
                channel_factory=self._channel_factory,
                receive_timeout=self.receive_timeout,
                liveness_threshold=self.liveness_threshold,
                sweep_interval=self.sweep_interval,
                on_peer_change=self._notify,
            )

            self._threads = [
                threading.Thread(
                    target=self._listener.run,
                    args=(self._stop_event,),
                    name=f"discovery-listener-{self._peer_id}",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._announcer.run,
                    args=(self._stop_event,),
                    name=f"discovery-announcer-{self._peer_id}",
                    daemon=True,
                ),
            ]
            for thread in self._threads:
                thread.start()

            self._running = True
            logger.info(f"Peer discovery started as {self._peer_id} on port {self.port}")

    def stop(self):
        """Stop both threads and wait for them to exit (no-op if stopped)."""
        with self._lifecycle_lock:
            if not self._running:
                return

            self._stop_event.set()
            for thread in self._threads:
                # A callback calling stop() runs on the listener thread itself
                if thread is threading.current_thread():
                    continue
                thread.join(JOIN_WARN_INTERVAL)
                while thread.is_alive():
                    logger.warning(f"Still waiting for {thread.name} to exit")
                    thread.join(JOIN_WARN_INTERVAL)

            self._threads = []
            self._running = False
            self._table.clear()
            logger.info("Peer discovery stopped")

    def get_active_peers(self) -> List[PeerRecord]:
        """
        Evict stale peers and return a copy of the rest.

        Safe to call from any thread, before start() and after stop().
        """
        removed, survivors = self._table.sweep_and_snapshot(self.liveness_threshold)
        for record in removed:
            self._notify(record, False)
        return list(survivors)

    def _notify(self, record: PeerRecord, is_added: bool):
        for callback in list(self._callbacks):
            try:
                callback(record, is_added)
            except Exception as e:
                logger.error(f"Callback error: {e}")

    def get_stats(self) -> dict:
        """Get discovery statistics."""
        announcer = self._announcer
        listener = self._listener
        return {
            'peer_id': self._peer_id,
            'running': self._running,
            'available': self.is_available,
            'port': self.port,
            'announce_interval': self.announce_interval,
            'liveness_threshold': self.liveness_threshold,
            'total_peers': len(self._table),
            'announcements_sent': announcer.sent if announcer else 0,
            'announcements_failed': announcer.failed if announcer else 0,
            'datagrams_received': listener.received if listener else 0,
            'datagrams_accepted': listener.accepted if listener else 0,
            'datagrams_discarded': listener.discarded if listener else 0,
        }

    def __enter__(self) -> 'PeerDiscovery':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
