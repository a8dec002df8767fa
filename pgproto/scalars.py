"""Binary encodings of scalar and simple container values.

Every ``*_to_sql`` function returns the encoded value as ``bytes``; every
``*_from_sql`` function decodes a complete value and raises
:class:`~pgproto.wire.ProtocolError` when the buffer is malformed.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pgproto.wire import ProtocolError, checked_i32

__all__ = [
    "bool_to_sql",
    "bool_from_sql",
    "bytea_to_sql",
    "bytea_from_sql",
    "text_to_sql",
    "text_from_sql",
    "char_to_sql",
    "char_from_sql",
    "int2_to_sql",
    "int2_from_sql",
    "int4_to_sql",
    "int4_from_sql",
    "oid_to_sql",
    "oid_from_sql",
    "int8_to_sql",
    "int8_from_sql",
    "lsn_to_sql",
    "lsn_from_sql",
    "float4_to_sql",
    "float4_from_sql",
    "float8_to_sql",
    "float8_from_sql",
    "timestamp_to_sql",
    "timestamp_from_sql",
    "date_to_sql",
    "date_from_sql",
    "time_to_sql",
    "time_from_sql",
    "macaddr_to_sql",
    "macaddr_from_sql",
    "uuid_to_sql",
    "uuid_from_sql",
    "ltree_to_sql",
    "ltree_from_sql",
    "lquery_to_sql",
    "lquery_from_sql",
    "ltxtquery_to_sql",
    "ltxtquery_from_sql",
    "hstore_to_sql",
    "hstore_from_sql",
    "Varbit",
    "varbit_to_sql",
    "varbit_from_sql",
]

_EOF = "failed to fill whole buffer"
_BAD_SIZE = "invalid buffer size"


def _pack(fmt: str, value: int | float) -> bytes:
    try:
        return struct.pack(fmt, value)
    except struct.error as exc:
        raise ProtocolError(f"value out of range: {value!r}") from exc


def _unpack_exact(fmt: str, buf: bytes, trailing_message: str = _BAD_SIZE) -> int | float:
    data = bytes(buf)
    size = struct.calcsize(fmt)
    if len(data) < size:
        raise ProtocolError(_EOF)
    if len(data) > size:
        raise ProtocolError(trailing_message)
    return struct.unpack(fmt, data)[0]


def _decode_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ProtocolError(str(exc)) from exc


class _Reader:
    """Sequential reader over a byte buffer."""

    def __init__(self, buf: bytes) -> None:
        self._data = bytes(buf)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def i32(self) -> int:
        if self.remaining < 4:
            raise ProtocolError(_EOF)
        (value,) = struct.unpack_from(">i", self._data, self._pos)
        self._pos += 4
        return value

    def take(self, n: int, message: str) -> bytes:
        if n > self.remaining:
            raise ProtocolError(message)
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def rest(self) -> bytes:
        chunk = self._data[self._pos:]
        self._pos = len(self._data)
        return chunk


def bool_to_sql(value: bool) -> bytes:
    """Serialize a ``BOOL`` value as a single byte, 1 for true and 0 for false."""
    return _pack(">B", int(bool(value)))


def bool_from_sql(buf: bytes) -> bool:
    """Deserialize a ``BOOL`` value."""
    data = bytes(buf)
    if len(data) != 1:
        raise ProtocolError(_BAD_SIZE)
    return data[0] != 0


def bytea_to_sql(value: bytes) -> bytes:
    """Serialize a ``BYTEA`` value."""
    return bytes(value)


def bytea_from_sql(buf: bytes) -> bytes:
    """Deserialize a ``BYTEA`` value."""
    return bytes(buf)


def text_to_sql(value: str) -> bytes:
    """Serialize a ``TEXT``, ``VARCHAR``, ``CHAR(n)``, ``NAME`` or ``CITEXT`` value."""
    return value.encode("utf-8")


def text_from_sql(buf: bytes) -> str:
    """Deserialize a ``TEXT``, ``VARCHAR``, ``CHAR(n)``, ``NAME`` or ``CITEXT`` value."""
    return _decode_utf8(bytes(buf))


def char_to_sql(value: int) -> bytes:
    """Serialize a ``"char"`` value (a signed byte)."""
    return _pack(">b", value)


def char_from_sql(buf: bytes) -> int:
    """Deserialize a ``"char"`` value."""
    return int(_unpack_exact(">b", buf))


def int2_to_sql(value: int) -> bytes:
    """Serialize an ``INT2`` value."""
    return _pack(">h", value)


def int2_from_sql(buf: bytes) -> int:
    """Deserialize an ``INT2`` value."""
    return int(_unpack_exact(">h", buf))


def int4_to_sql(value: int) -> bytes:
    """Serialize an ``INT4`` value."""
    return _pack(">i", value)


def int4_from_sql(buf: bytes) -> int:
    """Deserialize an ``INT4`` value."""
    return int(_unpack_exact(">i", buf))


def oid_to_sql(value: int) -> bytes:
    """Serialize an ``OID`` value."""
    return _pack(">I", value)


def oid_from_sql(buf: bytes) -> int:
    """Deserialize an ``OID`` value."""
    return int(_unpack_exact(">I", buf))


def int8_to_sql(value: int) -> bytes:
    """Serialize an ``INT8`` value."""
    return _pack(">q", value)


def int8_from_sql(buf: bytes) -> int:
    """Deserialize an ``INT8`` value."""
    return int(_unpack_exact(">q", buf))


def lsn_to_sql(value: int) -> bytes:
    """Serialize a ``PG_LSN`` value."""
    return _pack(">Q", value)


def lsn_from_sql(buf: bytes) -> int:
    """Deserialize a ``PG_LSN`` value."""
    return int(_unpack_exact(">Q", buf))


def float4_to_sql(value: float) -> bytes:
    """Serialize a ``FLOAT4`` value."""
    return _pack(">f", value)


def float4_from_sql(buf: bytes) -> float:
    """Deserialize a ``FLOAT4`` value."""
    return float(_unpack_exact(">f", buf))


def float8_to_sql(value: float) -> bytes:
    """Serialize a ``FLOAT8`` value."""
    return _pack(">d", value)


def float8_from_sql(buf: bytes) -> float:
    """Deserialize a ``FLOAT8`` value."""
    return float(_unpack_exact(">d", buf))


def timestamp_to_sql(value: int) -> bytes:
    """Serialize a ``TIMESTAMP``/``TIMESTAMPTZ``: microseconds since 2000-01-01 00:00."""
    return _pack(">q", value)


def timestamp_from_sql(buf: bytes) -> int:
    """Deserialize a ``TIMESTAMP``/``TIMESTAMPTZ`` as microseconds since 2000-01-01 00:00."""
    return int(_unpack_exact(">q", buf, "invalid message length: timestamp not drained"))


def date_to_sql(value: int) -> bytes:
    """Serialize a ``DATE``: days since 2000-01-01."""
    return _pack(">i", value)


def date_from_sql(buf: bytes) -> int:
    """Deserialize a ``DATE`` as days since 2000-01-01."""
    return int(_unpack_exact(">i", buf, "invalid message length: date not drained"))


def time_to_sql(value: int) -> bytes:
    """Serialize a ``TIME``/``TIMETZ``: microseconds since midnight."""
    return _pack(">q", value)


def time_from_sql(buf: bytes) -> int:
    """Deserialize a ``TIME``/``TIMETZ`` as microseconds since midnight."""
    return int(_unpack_exact(">q", buf, "invalid message length: time not drained"))


def _fixed(value: bytes, size: int, what: str) -> bytes:
    data = bytes(value)
    if len(data) != size:
        raise ValueError(f"{what} must be exactly {size} bytes")
    return data


def macaddr_to_sql(value: bytes) -> bytes:
    """Serialize a ``MACADDR`` value (6 bytes)."""
    return _fixed(value, 6, "MAC address")


def macaddr_from_sql(buf: bytes) -> bytes:
    """Deserialize a ``MACADDR`` value."""
    data = bytes(buf)
    if len(data) != 6:
        raise ProtocolError("invalid message length: macaddr length mismatch")
    return data


def uuid_to_sql(value: bytes) -> bytes:
    """Serialize a ``UUID`` value (16 bytes)."""
    return _fixed(value, 16, "UUID")


def uuid_from_sql(buf: bytes) -> bytes:
    """Deserialize a ``UUID`` value."""
    data = bytes(buf)
    if len(data) != 16:
        raise ProtocolError("invalid message length: uuid size mismatch")
    return data


def _versioned_to_sql(value: str) -> bytes:
    return b"\x01" + value.encode("utf-8")


def _versioned_from_sql(buf: bytes, what: str) -> str:
    data = bytes(buf)
    if not data or data[0] != 1:
        raise ProtocolError(f"{what} version 1 only supported")
    return _decode_utf8(data[1:])


def ltree_to_sql(value: str) -> bytes:
    """Serialize an ``ltree`` value, prefixed with format version 1."""
    return _versioned_to_sql(value)


def ltree_from_sql(buf: bytes) -> str:
    """Deserialize an ``ltree`` value; only format version 1 is supported."""
    return _versioned_from_sql(buf, "ltree")


def lquery_to_sql(value: str) -> bytes:
    """Serialize an ``lquery`` value, prefixed with format version 1."""
    return _versioned_to_sql(value)


def lquery_from_sql(buf: bytes) -> str:
    """Deserialize an ``lquery`` value; only format version 1 is supported."""
    return _versioned_from_sql(buf, "lquery")


def ltxtquery_to_sql(value: str) -> bytes:
    """Serialize an ``ltxtquery`` value, prefixed with format version 1."""
    return _versioned_to_sql(value)


def ltxtquery_from_sql(buf: bytes) -> str:
    """Deserialize an ``ltxtquery`` value; only format version 1 is supported."""
    return _versioned_from_sql(buf, "ltxtquery")


def _pascal_string(text: str) -> bytes:
    data = text.encode("utf-8")
    return struct.pack(">i", checked_i32(len(data))) + data


def hstore_to_sql(
    entries: Mapping[str, str | None] | Iterable[tuple[str, str | None]],
) -> bytes:
    """Serialize an ``HSTORE`` value from a mapping or ``(key, value)`` pairs.

    A value of ``None`` is encoded as SQL ``NULL``.
    """
    pairs = entries.items() if isinstance(entries, Mapping) else entries
    parts = []
    for key, value in pairs:
        parts.append(_pascal_string(key))
        parts.append(struct.pack(">i", -1) if value is None else _pascal_string(value))
    count = checked_i32(len(parts) // 2)
    return struct.pack(">i", count) + b"".join(parts)


def hstore_from_sql(buf: bytes) -> list[tuple[str, str | None]]:
    """Deserialize an ``HSTORE`` value into ``(key, value)`` pairs in wire order."""
    reader = _Reader(buf)
    count = reader.i32()
    if count < 0:
        raise ProtocolError("invalid entry count")

    entries: list[tuple[str, str | None]] = []
    for _ in range(count):
        key_len = reader.i32()
        if key_len < 0:
            raise ProtocolError("invalid key length")
        key = _decode_utf8(reader.take(key_len, "invalid key length"))

        value_len = reader.i32()
        value = (
            None
            if value_len < 0
            else _decode_utf8(reader.take(value_len, "invalid value length"))
        )
        entries.append((key, value))

    if reader.remaining:
        raise ProtocolError(_BAD_SIZE)
    return entries


@dataclass(frozen=True)
class Varbit:
    """A ``VARBIT`` or ``BIT`` value: a bit count and the bytes holding the bits."""

    length: int
    data: bytes

    def __len__(self) -> int:
        return self.length


def varbit_to_sql(length: int, data: Iterable[int] | bytes) -> bytes:
    """Serialize a ``VARBIT`` or ``BIT`` value of ``length`` bits."""
    return struct.pack(">i", checked_i32(length)) + bytes(data)


def varbit_from_sql(buf: bytes) -> Varbit:
    """Deserialize a ``VARBIT`` or ``BIT`` value."""
    reader = _Reader(buf)
    length = reader.i32()
    if length < 0:
        raise ProtocolError("invalid varbit length: varbit < 0")
    data = reader.rest()
    if len(data) != (length + 7) // 8:
        raise ProtocolError("invalid message length: varbit mismatch")
    return Varbit(length, data)