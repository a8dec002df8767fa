"""Serialization of messages sent from the client to the server.

Every function returns the complete encoded message as ``bytes``. Message
flow is described in the server's protocol documentation.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pgproto.wire import ProtocolError, checked_i16, checked_i32, encode_nullable

__all__ = [
    "BindError",
    "bind",
    "cancel_request",
    "close",
    "copy_data",
    "copy_done",
    "copy_fail",
    "describe",
    "execute",
    "parse",
    "password_message",
    "query",
    "sasl_initial_response",
    "sasl_response",
    "ssl_request",
    "startup_message",
    "sync",
    "terminate",
]

_CANCEL_REQUEST_CODE = 80_877_102
_SSL_REQUEST_CODE = 80_877_103
_PROTOCOL_VERSION = 0x00_03_00_00


class BindError(Exception):
    """Raised when a ``Bind`` message cannot be built.

    ``conversion`` is true when a parameter value could not be converted by
    the serializer, and false when the message itself could not be encoded.
    The underlying exception is available as ``error`` and ``__cause__``.
    """

    def __init__(self, error: BaseException, *, conversion: bool) -> None:
        super().__init__(str(error))
        self.error = error
        self.conversion = conversion


def _cstr(value: str | bytes) -> bytes:
    data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    if b"\0" in data:
        raise ProtocolError("string contains embedded null")
    return data + b"\0"


def _body(body: bytes) -> bytes:
    return struct.pack(">i", checked_i32(len(body) + 4)) + body


def _message(tag: bytes, body: bytes = b"") -> bytes:
    return tag + _body(body)


def _counted(items: Iterable[Any], encode: Callable[[Any], bytes]) -> bytes:
    parts = [encode(item) for item in items]
    return struct.pack(">h", checked_i16(len(parts))) + b"".join(parts)


def _variant_byte(variant: int | bytes | str) -> bytes:
    if isinstance(variant, int):
        return bytes([variant])
    data = variant.encode("ascii") if isinstance(variant, str) else bytes(variant)
    if len(data) != 1:
        raise ValueError("variant must be a single byte")
    return data


def _format_code(code: int) -> bytes:
    return struct.pack(">h", code)


def bind(
    portal: str,
    statement: str,
    formats: Iterable[int],
    values: Iterable[Any],
    serializer: Callable[[Any], bytes | None],
    result_formats: Iterable[int],
) -> bytes:
    """Build a ``Bind`` message.

    ``serializer`` turns each value into its encoded bytes, or ``None`` for
    SQL ``NULL``. Any exception it raises is wrapped in :class:`BindError`.
    """

    def encode_value(value: Any) -> bytes:
        try:
            encoded = serializer(value)
        except Exception as exc:
            raise BindError(exc, conversion=True) from exc
        return encode_nullable(encoded)

    try:
        body = b"".join(
            (
                _cstr(portal),
                _cstr(statement),
                _counted(formats, _format_code),
                _counted(values, encode_value),
                _counted(result_formats, _format_code),
            )
        )
        return _message(b"B", body)
    except ProtocolError as exc:
        raise BindError(exc, conversion=False) from exc


def cancel_request(process_id: int, secret_key: int) -> bytes:
    """Build a ``CancelRequest`` message."""
    return _body(struct.pack(">iii", _CANCEL_REQUEST_CODE, process_id, secret_key))


def close(variant: int | bytes | str, name: str) -> bytes:
    """Build a ``Close`` message for a statement (``S``) or portal (``P``)."""
    return _message(b"C", _variant_byte(variant) + _cstr(name))


def copy_data(data: bytes) -> bytes:
    """Build a ``CopyData`` message carrying ``data``."""
    payload = bytes(data)
    length = len(payload) + 4
    if length > 2**31 - 1:
        raise ProtocolError("message length overflow")
    return b"d" + struct.pack(">i", length) + payload


def copy_done() -> bytes:
    """Build a ``CopyDone`` message."""
    return _message(b"c")


def copy_fail(message: str) -> bytes:
    """Build a ``CopyFail`` message with the given error text."""
    return _message(b"f", _cstr(message))


def describe(variant: int | bytes | str, name: str) -> bytes:
    """Build a ``Describe`` message for a statement (``S``) or portal (``P``)."""
    return _message(b"D", _variant_byte(variant) + _cstr(name))


def execute(portal: str, max_rows: int) -> bytes:
    """Build an ``Execute`` message; ``max_rows`` of 0 means no limit."""
    return _message(b"E", _cstr(portal) + struct.pack(">i", max_rows))


def parse(name: str, query: str, param_types: Iterable[int]) -> bytes:
    """Build a ``Parse`` message with the given parameter type OIDs."""
    body = _cstr(name) + _cstr(query) + _counted(param_types, lambda oid: struct.pack(">I", oid))
    return _message(b"P", body)


def password_message(password: bytes) -> bytes:
    """Build a ``PasswordMessage``."""
    return _message(b"p", _cstr(password))


def query(text: str) -> bytes:
    """Build a simple ``Query`` message."""
    return _message(b"Q", _cstr(text))


def sasl_initial_response(mechanism: str, data: bytes) -> bytes:
    """Build a ``SASLInitialResponse`` message."""
    payload = bytes(data)
    body = _cstr(mechanism) + struct.pack(">i", checked_i32(len(payload))) + payload
    return _message(b"p", body)


def sasl_response(data: bytes) -> bytes:
    """Build a ``SASLResponse`` message."""
    return _message(b"p", bytes(data))


def ssl_request() -> bytes:
    """Build an ``SSLRequest`` message."""
    return _body(struct.pack(">i", _SSL_REQUEST_CODE))


def startup_message(parameters: Mapping[str, str] | Iterable[tuple[str, str]]) -> bytes:
    """Build a ``StartupMessage`` for protocol version 3.0."""
    pairs = parameters.items() if isinstance(parameters, Mapping) else parameters
    parts = [struct.pack(">i", _PROTOCOL_VERSION)]
    for key, value in pairs:
        parts.append(_cstr(key))
        parts.append(_cstr(value))
    parts.append(b"\0")
    return _body(b"".join(parts))


def sync() -> bytes:
    """Build a ``Sync`` message."""
    return _message(b"S")


def terminate() -> bytes:
    """Build a ``Terminate`` message."""
    return _message(b"X")