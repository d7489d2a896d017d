import json
import random
import re

import pytest

from lanchat.discovery.identity import generate_peer_id
from lanchat.discovery.protocol import (
    Announcement,
    decode_announcement,
    encode_announcement,
)


def _raw(**fields):
    return json.dumps(fields).encode()


def test_encode_uses_structured_fields():
    message = json.loads(encode_announcement("peer_1234", timestamp=1700000000))

    assert message == {
        "type": "discovery",
        "service": "lanchat",
        "peer_id": "peer_1234",
        "timestamp": 1700000000,
    }


def test_encode_defaults_timestamp_to_wall_clock():
    message = json.loads(encode_announcement("peer_1234"))
    assert isinstance(message["timestamp"], int)
    assert message["timestamp"] > 0


def test_decode_valid_announcement():
    data = encode_announcement("peer_1234", timestamp=42)
    assert decode_announcement(data) == Announcement(peer_id="peer_1234", timestamp=42)


def test_decode_tolerates_missing_timestamp():
    data = _raw(type="discovery", service="lanchat", peer_id="peer_1")
    assert decode_announcement(data) == Announcement(peer_id="peer_1", timestamp=0)


@pytest.mark.parametrize("data", [
    b"DISCOVER:peer_1:2024-01-01 00:00:00",
    b"\xff\xfe\x00",
    b"",
    b"[1, 2, 3]",
    b'"discovery"',
    _raw(type="chat", service="lanchat", peer_id="peer_1"),
    _raw(type="discovery", service="other-app", peer_id="peer_1"),
    _raw(type="discovery", service="lanchat"),
    _raw(type="discovery", service="lanchat", peer_id=""),
    _raw(type="discovery", service="lanchat", peer_id=1234),
])
def test_decode_rejects_malformed_and_foreign_payloads(data):
    assert decode_announcement(data) is None


def test_generate_peer_id_format():
    assert re.fullmatch(r"peer_\d{4}", generate_peer_id())


def test_generate_peer_id_is_reproducible_with_seeded_rng():
    assert generate_peer_id(random.Random(7)) == generate_peer_id(random.Random(7))
