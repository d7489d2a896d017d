"""
Discovery Module - Peer Discovery on LAN

Nodes find each other with periodic UDP broadcasts:
- Announcer: broadcasts our presence
- Listener: records who else is announcing
- MembershipTable: peer id -> last seen address/time, with expiry
"""

from .channel import DatagramChannel
from .identity import generate_peer_id
from .membership import MembershipTable, PeerRecord
from .protocol import Announcement, encode_announcement, decode_announcement
from .service import PeerDiscovery

__all__ = [
    'DatagramChannel',
    'MembershipTable',
    'PeerRecord',
    'PeerDiscovery',
    'Announcement',
    'encode_announcement',
    'decode_announcement',
    'generate_peer_id',
]
