"""Binary encodings of arrays, ranges, geometric values and network addresses.

Every ``*_to_sql`` function returns the encoded value as ``bytes``; every
``*_from_sql`` function decodes a complete value and raises
:class:`~pgproto.wire.ProtocolError` when the buffer is malformed.
"""

from __future__ import annotations

import enum
import ipaddress
import struct
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pgproto.wire import ProtocolError, checked_i32, encode_nullable

__all__ = [
    "ArrayDimension",
    "Array",
    "array_to_sql",
    "array_from_sql",
    "BoundKind",
    "RangeBound",
    "Range",
    "empty_range_to_sql",
    "range_to_sql",
    "range_from_sql",
    "Point",
    "point_to_sql",
    "point_from_sql",
    "Box",
    "box_to_sql",
    "box_from_sql",
    "Path",
    "path_to_sql",
    "path_from_sql",
    "Inet",
    "inet_to_sql",
    "inet_from_sql",
]

_RANGE_UPPER_UNBOUNDED = 0b0001_0000
_RANGE_LOWER_UNBOUNDED = 0b0000_1000
_RANGE_UPPER_INCLUSIVE = 0b0000_0100
_RANGE_LOWER_INCLUSIVE = 0b0000_0010
_RANGE_EMPTY = 0b0000_0001

_PGSQL_AF_INET = 2
_PGSQL_AF_INET6 = 3

_I32_MAX = 2**31 - 1
_EOF = "failed to fill whole buffer"
_BAD_SIZE = "invalid buffer size"


class _Reader:
    """Sequential big-endian reader over a byte buffer."""

    def __init__(self, buf: bytes) -> None:
        self._data = bytes(buf)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _read(self, n: int) -> bytes:
        if n > self.remaining:
            raise ProtocolError(_EOF)
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def u8(self) -> int:
        return self._read(1)[0]

    def i32(self) -> int:
        return struct.unpack(">i", self._read(4))[0]

    def u32(self) -> int:
        return struct.unpack(">I", self._read(4))[0]

    def f64(self) -> float:
        return struct.unpack(">d", self._read(8))[0]

    def take(self, n: int, message: str) -> bytes:
        if n > self.remaining:
            raise ProtocolError(message)
        return self._read(n)

    def rest(self) -> bytes:
        return self._read(self.remaining)

    def finish(self, message: str) -> None:
        if self.remaining:
            raise ProtocolError(message)


# Arrays


@dataclass(frozen=True)
class ArrayDimension:
    """One dimension of an array: its length and the index of its first element."""

    length: int
    lower_bound: int


@dataclass(frozen=True)
class Array:
    """A decoded array header with lazily decoded element values."""

    has_nulls: bool
    element_type: int
    element_count: int
    _dims: tuple[ArrayDimension, ...] = field(repr=False)
    _values_data: bytes = field(repr=False)

    def dimensions(self) -> list[ArrayDimension]:
        """The dimensions of the array, outermost first."""
        return list(self._dims)

    def values(self) -> list[bytes | None]:
        """The encoded element values in row-major order; ``None`` for ``NULL``."""
        reader = _Reader(self._values_data)
        out: list[bytes | None] = []
        for _ in range(self.element_count):
            size = reader.i32()
            out.append(None if size < 0 else reader.take(size, "invalid value length"))
        reader.finish("invalid message length: arrayvalue not drained")
        return out


def array_to_sql(
    dimensions: Iterable[ArrayDimension],
    element_type: int,
    elements: Iterable[Any],
    serializer: Callable[[Any], bytes | None],
) -> bytes:
    """Serialize an array.

    ``serializer`` turns each element into its encoded bytes, or ``None`` for
    SQL ``NULL``.
    """
    dims = list(dimensions)
    dim_bytes = b"".join(struct.pack(">ii", d.length, d.lower_bound) for d in dims)

    has_nulls = False
    parts = []
    for element in elements:
        encoded = serializer(element)
        if encoded is None:
            has_nulls = True
        parts.append(encode_nullable(encoded))

    header = struct.pack(">iiI", checked_i32(len(dims)), int(has_nulls), element_type)
    return header + dim_bytes + b"".join(parts)


def array_from_sql(buf: bytes) -> Array:
    """Deserialize an array header; element values are read by :meth:`Array.values`."""
    reader = _Reader(buf)
    ndims = reader.i32()
    if ndims < 0:
        raise ProtocolError("invalid dimension count")
    has_nulls = reader.i32() != 0
    element_type = reader.u32()
    payload = reader.rest()

    dim_reader = _Reader(payload)
    dims = []
    elements = 1
    for _ in range(ndims):
        length = dim_reader.i32()
        if length < 0:
            raise ProtocolError("invalid dimension size")
        lower_bound = dim_reader.i32()
        elements *= length
        if elements > _I32_MAX:
            raise ProtocolError("too many array elements")
        dims.append(ArrayDimension(length, lower_bound))

    if ndims == 0:
        elements = 0

    return Array(
        has_nulls=has_nulls,
        element_type=element_type,
        element_count=elements,
        _dims=tuple(dims),
        _values_data=payload[ndims * 8:],
    )


# Ranges


class BoundKind(enum.Enum):
    """The kind of one side of a range."""

    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"
    UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class RangeBound:
    """One side of a range; ``value`` is the encoded bound or ``None`` for ``NULL``.

    ``value`` is ignored for unbounded sides.
    """

    kind: BoundKind
    value: bytes | None = None


@dataclass(frozen=True)
class Range:
    """A range: either empty, or a lower and an upper bound."""

    lower: RangeBound | None = None
    upper: RangeBound | None = None
    empty: bool = False


def empty_range_to_sql() -> bytes:
    """Serialize an empty range."""
    return bytes([_RANGE_EMPTY])


def _bound_to_sql(bound: RangeBound, unbounded: int, inclusive: int) -> tuple[int, bytes]:
    if bound.kind is BoundKind.UNBOUNDED:
        return unbounded, b""
    flag = inclusive if bound.kind is BoundKind.INCLUSIVE else 0
    return flag, encode_nullable(bound.value)


def range_to_sql(lower: RangeBound, upper: RangeBound) -> bytes:
    """Serialize a nonempty range."""
    lower_flag, lower_data = _bound_to_sql(
        lower, _RANGE_LOWER_UNBOUNDED, _RANGE_LOWER_INCLUSIVE
    )
    upper_flag, upper_data = _bound_to_sql(
        upper, _RANGE_UPPER_UNBOUNDED, _RANGE_UPPER_INCLUSIVE
    )
    return bytes([lower_flag | upper_flag]) + lower_data + upper_data


def _read_bound(reader: _Reader, tag: int, unbounded: int, inclusive: int) -> RangeBound:
    if tag & unbounded:
        return RangeBound(BoundKind.UNBOUNDED)
    size = reader.i32()
    value = None if size < 0 else reader.take(size, "invalid message size")
    kind = BoundKind.INCLUSIVE if tag & inclusive else BoundKind.EXCLUSIVE
    return RangeBound(kind, value)


def range_from_sql(buf: bytes) -> Range:
    """Deserialize a range."""
    reader = _Reader(buf)
    tag = reader.u8()

    if tag == _RANGE_EMPTY:
        reader.finish("invalid message size")
        return Range(empty=True)

    lower = _read_bound(reader, tag, _RANGE_LOWER_UNBOUNDED, _RANGE_LOWER_INCLUSIVE)
    upper = _read_bound(reader, tag, _RANGE_UPPER_UNBOUNDED, _RANGE_UPPER_INCLUSIVE)
    reader.finish("invalid message size")
    return Range(lower, upper)


# Geometry


@dataclass(frozen=True)
class Point:
    """A point."""

    x: float
    y: float


@dataclass(frozen=True)
class Box:
    """A box given by two opposite corners."""

    upper_right: Point
    lower_left: Point


def point_to_sql(x: float, y: float) -> bytes:
    """Serialize a point."""
    return struct.pack(">dd", x, y)


def point_from_sql(buf: bytes) -> Point:
    """Deserialize a point."""
    reader = _Reader(buf)
    point = Point(reader.f64(), reader.f64())
    reader.finish(_BAD_SIZE)
    return point


def box_to_sql(x1: float, y1: float, x2: float, y2: float) -> bytes:
    """Serialize a box from its upper right and lower left corners."""
    return struct.pack(">dddd", x1, y1, x2, y2)


def box_from_sql(buf: bytes) -> Box:
    """Deserialize a box."""
    reader = _Reader(buf)
    upper_right = Point(reader.f64(), reader.f64())
    lower_left = Point(reader.f64(), reader.f64())
    reader.finish(_BAD_SIZE)
    return Box(upper_right, lower_left)


@dataclass(frozen=True)
class Path:
    """A path header; its points are read by :meth:`points`."""

    closed: bool
    point_count: int
    _data: bytes = field(repr=False)

    def points(self) -> list[Point]:
        """The points of the path, in order."""
        if self.point_count < 0:
            raise ProtocolError(_EOF)
        reader = _Reader(self._data)
        out = [Point(reader.f64(), reader.f64()) for _ in range(self.point_count)]
        reader.finish("invalid message length: path points not drained")
        return out


def path_to_sql(closed: bool, points: Iterable[tuple[float, float]]) -> bytes:
    """Serialize a path from ``(x, y)`` pairs."""
    coords = [struct.pack(">dd", x, y) for x, y in points]
    header = struct.pack(">Bi", int(bool(closed)), checked_i32(len(coords)))
    return header + b"".join(coords)


def path_from_sql(buf: bytes) -> Path:
    """Deserialize a path."""
    reader = _Reader(buf)
    closed = reader.u8() != 0
    count = reader.i32()
    return Path(closed, count, reader.rest())


# Network addresses


@dataclass(frozen=True)
class Inet:
    """A network address with its netmask length."""

    addr: ipaddress.IPv4Address | ipaddress.IPv6Address
    netmask: int


def inet_to_sql(
    addr: str | ipaddress.IPv4Address | ipaddress.IPv6Address, netmask: int
) -> bytes:
    """Serialize an ``INET`` value."""
    ip = ipaddress.ip_address(addr)
    if not 0 <= netmask <= 255:
        raise ProtocolError(f"value out of range: {netmask!r}")
    family = _PGSQL_AF_INET if ip.version == 4 else _PGSQL_AF_INET6
    octets = ip.packed
    return bytes([family, netmask, 0, len(octets)]) + octets


def inet_from_sql(buf: bytes) -> Inet:
    """Deserialize an ``INET`` value."""
    reader = _Reader(buf)
    family = reader.u8()
    netmask = reader.u8()
    reader.u8()  # is_cidr
    size = reader.u8()

    addr: ipaddress.IPv4Address | ipaddress.IPv6Address
    if family == _PGSQL_AF_INET:
        if netmask > 32:
            raise ProtocolError("invalid IPv4 netmask")
        if size != 4:
            raise ProtocolError("invalid IPv4 address length")
        addr = ipaddress.IPv4Address(reader.take(4, _EOF))
    elif family == _PGSQL_AF_INET6:
        if netmask > 128:
            raise ProtocolError("invalid IPv6 netmask")
        if size != 16:
            raise ProtocolError("invalid IPv6 address length")
        addr = ipaddress.IPv6Address(reader.take(16, _EOF))
    else:
        raise ProtocolError("invalid IP family")

    reader.finish(_BAD_SIZE)
    return Inet(addr, netmask)