"""Time-ordered identifiers (RFC 9562 UUIDv7)."""

from __future__ import annotations

import os
import time
import uuid
from datetime import datetime, timezone


def _uuid7() -> uuid.UUID:
    unix_ts_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    rand_a = rand >> 62 & 0x0FFF
    rand_b = rand & 0x3FFF_FFFF_FFFF_FFFF

    value = (unix_ts_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76
    value |= rand_a << 64
    value |= 0b10 << 62
    value |= rand_b
    return uuid.UUID(int=value)


_uuid7_factory = getattr(uuid, "uuid7", None) or _uuid7


def new_uuid7() -> uuid.UUID:
    """Return a new sortable UUIDv7."""
    return _uuid7_factory()


def uuid7_timestamp(value: uuid.UUID) -> datetime:
    """Creation time embedded in a UUIDv7, millisecond precision."""
    if value.version != 7:
        raise ValueError(f"not a UUIDv7: {value}")
    unix_ts_ms = value.int >> 80
    return datetime.fromtimestamp(unix_ts_ms / 1000, tz=timezone.utc)
