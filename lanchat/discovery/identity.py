"""
Peer identity generation.

A peer id only needs to be unique among the nodes on one LAN for the
lifetime of a process, so a short random numeric suffix is enough.
"""

import random
from typing import Optional

PEER_ID_PREFIX = "peer_"
PEER_ID_MIN = 1000
PEER_ID_MAX = 9999


def generate_peer_id(rng: Optional[random.Random] = None) -> str:
    """
    Generate a peer identity such as ``peer_4821``.

    Args:
        rng: Random generator to draw from (a fresh one if not provided)

    Returns:
        Peer id string
    """
    rng = rng or random.Random()
    return f"{PEER_ID_PREFIX}{rng.randint(PEER_ID_MIN, PEER_ID_MAX)}"
