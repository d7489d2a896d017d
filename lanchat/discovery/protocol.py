"""
Presence message format.

Every node broadcasts a small JSON object:

    {"type": "discovery", "service": "lanchat", "peer_id": "peer_1234", "timestamp": 1700000000}

``type`` and ``service`` let a listener ignore unrelated traffic on a
shared port. ``timestamp`` is the sender's wall clock and is informational
only; staleness is always judged from the receiver's own clock.
"""

import json
import time
from dataclasses import dataclass
from typing import Optional

DISCOVERY_TYPE = "discovery"
SERVICE_TAG = "lanchat"
DEFAULT_DISCOVERY_PORT = 45454


@dataclass(frozen=True)
class Announcement:
    """A decoded presence message."""
    peer_id: str
    timestamp: int = 0
    type: str = DISCOVERY_TYPE
    service: str = SERVICE_TAG

    def to_dict(self) -> dict:
        return {
            'type': self.type,
            'service': self.service,
            'peer_id': self.peer_id,
            'timestamp': self.timestamp,
        }


def encode_announcement(peer_id: str, timestamp: Optional[int] = None) -> bytes:
    """Serialize a presence message for broadcast."""
    if timestamp is None:
        timestamp = int(time.time())
    return json.dumps(Announcement(peer_id, timestamp).to_dict()).encode('utf-8')


def decode_announcement(data: bytes) -> Optional[Announcement]:
    """
    Parse a received datagram.

    Anything that is not a well-formed presence message for this service
    yields None; this function never raises.
    """
    try:
        message = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, ValueError):
        return None

    if not isinstance(message, dict):
        return None

    if message.get('type') != DISCOVERY_TYPE:
        return None
    if message.get('service') != SERVICE_TAG:
        return None

    peer_id = message.get('peer_id')
    if not isinstance(peer_id, str) or not peer_id:
        return None

    timestamp = message.get('timestamp', 0)
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        timestamp = 0

    return Announcement(peer_id=peer_id, timestamp=timestamp)
