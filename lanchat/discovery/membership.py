"""
Peer Membership Table

Design Decision: Locking Granularity
====================================

Options Considered:
1. One lock for the whole table
   - Simple to reason about
   - Contention is negligible at a few announcements per peer per minute

2. Per-record locks / lock-free structures
   - Only pays off under heavy write load
   - Much harder to snapshot consistently

Decision: One lock, whole-table scope
- Every insert, update, sweep and snapshot holds the same lock
- Snapshots are tuples of frozen records, safe to read without locking

Conflict resolution is last-writer-wins on receipt order: the most
recently *received* announcement for a peer overwrites the record,
whatever timestamp the sender put in it.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Evict peers not heard from in this many seconds
DEFAULT_LIVENESS_THRESHOLD = 90.0

Clock = Callable[[], float]


@dataclass(frozen=True)
class PeerRecord:
    """What we know about a peer from its last announcement."""
    peer_id: str
    address: str
    last_seen: float

    def age(self, now: float) -> float:
        return now - self.last_seen

    def to_dict(self, now: Optional[float] = None) -> dict:
        data = {'id': self.peer_id, 'address': self.address}
        if now is not None:
            data['last_seen_seconds_ago'] = round(max(0.0, self.age(now)), 3)
        return data


class MembershipTable:
    """
    Concurrent map of peer id -> PeerRecord.

    Safe to use from the listener thread and any number of reader threads.
    """

    def __init__(self, clock: Clock = time.monotonic):
        """
        Args:
            clock: Monotonic time source (injectable for tests)
        """
        self._clock = clock
        self._peers: Dict[str, PeerRecord] = {}
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    def upsert(self, peer_id: str, address: str,
               seen_at: Optional[float] = None) -> bool:
        """
        Record an announcement from a peer.

        Args:
            peer_id: Announced identity
            address: Source IP of the datagram
            seen_at: Receipt time (clock() if not provided)

        Returns:
            True if the peer was not in the table before
        """
        if seen_at is None:
            seen_at = self._clock()

        with self._lock:
            is_new = peer_id not in self._peers
            self._peers[peer_id] = PeerRecord(peer_id, address, seen_at)

        return is_new

    def sweep(self, threshold: float = DEFAULT_LIVENESS_THRESHOLD,
              now: Optional[float] = None) -> List[PeerRecord]:
        """
        Remove records older than ``threshold`` seconds.

        Returns:
            The evicted records
        """
        with self._lock:
            return self._sweep_locked(threshold, now)

    def _sweep_locked(self, threshold: float, now: Optional[float]) -> List[PeerRecord]:
        if now is None:
            now = self._clock()

        stale = [p for p in self._peers.values() if p.age(now) > threshold]
        for peer in stale:
            del self._peers[peer.peer_id]
            logger.info(f"Peer timed out: {peer.peer_id} ({peer.address})")

        return stale

    def snapshot(self) -> Tuple[PeerRecord, ...]:
        """Point-in-time copy of every record."""
        with self._lock:
            return tuple(self._peers.values())

    def sweep_and_snapshot(
        self, threshold: float = DEFAULT_LIVENESS_THRESHOLD
    ) -> Tuple[List[PeerRecord], Tuple[PeerRecord, ...]]:
        """Sweep, then copy the survivors, under one lock acquisition."""
        with self._lock:
            removed = self._sweep_locked(threshold, None)
            return removed, tuple(self._peers.values())

    def get(self, peer_id: str) -> Optional[PeerRecord]:
        with self._lock:
            return self._peers.get(peer_id)

    def remove(self, peer_id: str) -> Optional[PeerRecord]:
        with self._lock:
            return self._peers.pop(peer_id, None)

    def clear(self):
        with self._lock:
            self._peers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._peers)

    def __contains__(self, peer_id: str) -> bool:
        with self._lock:
            return peer_id in self._peers
