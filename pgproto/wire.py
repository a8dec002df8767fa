"""Shared helpers for the PostgreSQL wire format."""

from __future__ import annotations

import enum
import struct

__all__ = ["ProtocolError", "IsNull", "checked_i16", "checked_i32", "encode_nullable"]

_I16_MAX = 2**15 - 1
_I32_MAX = 2**31 - 1


class ProtocolError(ValueError):
    """Raised when a value cannot be represented in the wire format."""


class IsNull(enum.Enum):
    """Whether a serialized value is SQL ``NULL``."""

    YES = "yes"
    NO = "no"


def _checked(n: int, limit: int) -> int:
    if n > limit:
        raise ProtocolError("value too large to transmit")
    return n


def checked_i16(n: int) -> int:
    """Return ``n`` if it fits in a signed 16-bit count, else raise."""
    return _checked(n, _I16_MAX)


def checked_i32(n: int) -> int:
    """Return ``n`` if it fits in a signed 32-bit count, else raise."""
    return _checked(n, _I32_MAX)


def encode_nullable(value: bytes | None) -> bytes:
    """Prefix ``value`` with its 32-bit length, or encode ``None`` as length -1."""
    if value is None:
        return struct.pack(">i", -1)
    data = bytes(value)
    return struct.pack(">i", checked_i32(len(data))) + data