"""
UDP Datagram Channel

Design Decision: Channel Abstraction
====================================

Options Considered:
1. Raw sockets inside the announce/listen loops
   - Least code
   - Loops become hard to test without a real network

2. Thin channel object (open / send_broadcast / receive / close)
   - Loops only see bytes and source addresses
   - Tests can swap in an in-memory channel

Decision: Thin channel object
- Discovery logic stays platform-agnostic
- Socket lifetime is scoped with ``with channel:``
- No ordering, delivery or deduplication guarantees are added here

Socket options:
- SO_BROADCAST so announcements can go to the broadcast address
- SO_REUSEADDR / SO_REUSEPORT so several nodes on one host can
  listen on the same discovery port
"""

import logging
import socket
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

BROADCAST_ADDRESS = "255.255.255.255"
BUFFER_SIZE = 4096


class DatagramChannel:
    """
    Unreliable datagram endpoint.

    Sends to the network broadcast address and receives single
    datagrams with a bounded wait.
    """

    def __init__(self, broadcast_address: str = BROADCAST_ADDRESS,
                 buffer_size: int = BUFFER_SIZE):
        """
        Initialize the channel (no socket is created until open()).

        Args:
            broadcast_address: Destination address for broadcasts
            buffer_size: Maximum datagram size accepted by receive()
        """
        self.broadcast_address = broadcast_address
        self.buffer_size = buffer_size
        self._socket: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    @property
    def local_port(self) -> Optional[int]:
        """Port the channel is bound to, or None if closed."""
        if not self._socket:
            return None
        return self._socket.getsockname()[1]

    def open(self, port: Optional[int] = None):
        """
        Create the socket and bind it.

        Args:
            port: Local port to bind (any available port if None)

        Raises:
            OSError: If the socket cannot be created or bound
        """
        if self._socket:
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            # Not every platform has SO_REUSEPORT
            if hasattr(socket, "SO_REUSEPORT"):
                try:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                except OSError:
                    pass

            sock.bind(('', port or 0))
        except OSError:
            sock.close()
            raise

        self._socket = sock
        logger.debug(f"Datagram channel bound to port {self.local_port}")

    def send_broadcast(self, payload: bytes, port: int) -> bool:
        """
        Send one datagram to the broadcast address.

        Failures are reported, not retried.

        Returns:
            True if the datagram was handed to the network stack
        """
        if not self._socket:
            logger.warning("Broadcast on a closed channel")
            return False

        try:
            self._socket.sendto(payload, (self.broadcast_address, port))
            return True
        except OSError as e:
            logger.warning(f"Broadcast to {self.broadcast_address}:{port} failed: {e}")
            return False

    def receive(self, timeout: float) -> Optional[Tuple[bytes, str]]:
        """
        Wait up to ``timeout`` seconds for one datagram.

        Returns:
            (payload, source_ip), or None on timeout

        Raises:
            OSError: On socket errors other than a timeout
        """
        if not self._socket:
            raise OSError("Receive on a closed channel")

        self._socket.settimeout(timeout)
        try:
            data, addr = self._socket.recvfrom(self.buffer_size)
        except socket.timeout:
            return None
        return data, addr[0]

    def close(self):
        """Release the socket."""
        if self._socket:
            self._socket.close()
            self._socket = None

    def __enter__(self) -> 'DatagramChannel':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
