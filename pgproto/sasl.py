"""Client side of the SCRAM-SHA-256 and SCRAM-SHA-256-PLUS SASL exchange."""

from __future__ import annotations

import base64
import binascii
import enum
import hashlib
import hmac
import secrets
import stringprep
import unicodedata
from dataclasses import dataclass
from typing import Callable

__all__ = [
    "SCRAM_SHA_256",
    "SCRAM_SHA_256_PLUS",
    "ScramError",
    "ChannelBinding",
    "ServerFirstMessage",
    "ServerFinalMessage",
    "normalize",
    "hi",
    "parse_server_first_message",
    "parse_server_final_message",
    "ScramSha256",
]

NONCE_LENGTH = 24

SCRAM_SHA_256 = "SCRAM-SHA-256"
"""The identifier of the SCRAM-SHA-256 SASL mechanism."""

SCRAM_SHA_256_PLUS = "SCRAM-SHA-256-PLUS"
"""The identifier of the SCRAM-SHA-256-PLUS SASL mechanism."""


class ScramError(ValueError):
    """Raised when the SCRAM exchange fails or a server message is malformed."""


_PROHIBITED: tuple[Callable[[str], bool], ...] = (
    stringprep.in_table_c12,
    stringprep.in_table_c21_c22,
    stringprep.in_table_c3,
    stringprep.in_table_c4,
    stringprep.in_table_c5,
    stringprep.in_table_c6,
    stringprep.in_table_c7,
    stringprep.in_table_c8,
    stringprep.in_table_c9,
    stringprep.in_table_a1,
)


def _saslprep(text: str) -> str:
    """Prepare ``text`` with the SASLprep profile, raising ValueError if prohibited."""
    mapped = "".join(
        " " if stringprep.in_table_c12(ch) else ch
        for ch in text
        if not stringprep.in_table_b1(ch)
    )
    normalized = unicodedata.normalize("NFKC", mapped)

    for ch in normalized:
        if any(table(ch) for table in _PROHIBITED):
            raise ValueError(f"prohibited character {ch!r}")

    if any(stringprep.in_table_d1(ch) for ch in normalized):
        if any(stringprep.in_table_d2(ch) for ch in normalized):
            raise ValueError("mixed bidirectional text")
        if not (stringprep.in_table_d1(normalized[0]) and stringprep.in_table_d1(normalized[-1])):
            raise ValueError("invalid bidirectional text")

    return normalized


def normalize(password: bytes) -> bytes:
    """Apply SASLprep to ``password`` where possible.

    Passwords that are not valid UTF-8 or that hold prohibited characters are
    returned unchanged.
    """
    data = bytes(password)
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return data
    try:
        return _saslprep(text).encode("utf-8")
    except ValueError:
        return data


def hi(password: bytes, salt: bytes, iterations: int) -> bytes:
    """The SCRAM ``Hi`` function: PBKDF2 with HMAC-SHA-256 and a 32-byte result."""
    return hashlib.pbkdf2_hmac("sha256", bytes(password), bytes(salt), max(iterations, 1))


def _hmac(key: bytes, message: bytes) -> bytes:
    return hmac.new(key, message, hashlib.sha256).digest()


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise ScramError(str(exc)) from exc


class _BindingKind(enum.Enum):
    UNREQUESTED = "unrequested"
    UNSUPPORTED = "unsupported"
    TLS_SERVER_END_POINT = "tls-server-end-point"


@dataclass(frozen=True)
class ChannelBinding:
    """The channel binding configuration for a SCRAM exchange."""

    kind: _BindingKind
    signature: bytes = b""

    @classmethod
    def unrequested(cls) -> ChannelBinding:
        """The server did not request channel binding."""
        return cls(_BindingKind.UNREQUESTED)

    @classmethod
    def unsupported(cls) -> ChannelBinding:
        """The server requested channel binding but the client cannot provide it."""
        return cls(_BindingKind.UNSUPPORTED)

    @classmethod
    def tls_server_end_point(cls, signature: bytes) -> ChannelBinding:
        """Channel binding with the ``tls-server-end-point`` method."""
        return cls(_BindingKind.TLS_SERVER_END_POINT, bytes(signature))

    def gs2_header(self) -> str:
        """The GS2 header that starts the client's first message."""
        if self.kind is _BindingKind.UNREQUESTED:
            return "y,,"
        if self.kind is _BindingKind.UNSUPPORTED:
            return "n,,"
        return "p=tls-server-end-point,,"

    def cbind_data(self) -> bytes:
        """The channel binding data appended to the GS2 header."""
        if self.kind is _BindingKind.TLS_SERVER_END_POINT:
            return self.signature
        return b""


@dataclass(frozen=True)
class ServerFirstMessage:
    """The parsed ``server-first-message``."""

    nonce: str
    salt: str
    iteration_count: int


@dataclass(frozen=True)
class ServerFinalMessage:
    """The parsed ``server-final-message``: either an error or a verifier."""

    error: str | None = None
    verifier: str | None = None


_PRINTABLE = frozenset(chr(c) for c in range(0x21, 0x7F) if c != 0x2C)
_BASE64 = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789/+=")
_DIGITS = frozenset("0123456789")
_VALUE = frozenset("\0=,")
_U32_MAX = 2**32 - 1


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _offset(self, index: int) -> int:
        return len(self._text[:index].encode("utf-8"))

    def _peek(self) -> str | None:
        return self._text[self._pos] if self._pos < len(self._text) else None

    def _eat(self, target: str) -> None:
        ch = self._peek()
        if ch is None:
            raise ScramError("unexpected EOF")
        if ch != target:
            raise ScramError(
                f"unexpected character at byte {self._offset(self._pos)}: "
                f"expected `{target}` but got `{ch}"
            )
        self._pos += 1

    def _take_while(self, allowed: frozenset[str]) -> str:
        start = self._pos
        while (ch := self._peek()) is not None and ch in allowed:
            self._pos += 1
        return self._text[start:self._pos]

    def _attribute(self, name: str, allowed: frozenset[str]) -> str:
        self._eat(name)
        self._eat("=")
        return self._take_while(allowed)

    def _iteration_count(self) -> int:
        digits = self._attribute("i", _DIGITS)
        if not digits:
            raise ScramError("invalid iteration count: empty")
        count = int(digits)
        if count > _U32_MAX:
            raise ScramError("invalid iteration count: too large")
        return count

    def _eof(self) -> None:
        if self._peek() is not None:
            raise ScramError(f"unexpected trailing data at byte {self._offset(self._pos)}")

    def server_first_message(self) -> ServerFirstMessage:
        nonce = self._attribute("r", _PRINTABLE)
        self._eat(",")
        salt = self._attribute("s", _BASE64)
        self._eat(",")
        iteration_count = self._iteration_count()
        self._eof()
        return ServerFirstMessage(nonce, salt, iteration_count)

    def server_final_message(self) -> ServerFinalMessage:
        if self._peek() == "e":
            message = ServerFinalMessage(error=self._attribute("e", _VALUE))
        else:
            message = ServerFinalMessage(verifier=self._attribute("v", _BASE64))
        self._eof()
        return message


def parse_server_first_message(message: str) -> ServerFirstMessage:
    """Parse ``r=<nonce>,s=<salt>,i=<iterations>``."""
    return _Parser(message).server_first_message()


def parse_server_final_message(message: str) -> ServerFinalMessage:
    """Parse ``e=<error>`` or ``v=<verifier>``."""
    return _Parser(message).server_final_message()


def _decode(message: bytes) -> str:
    try:
        return bytes(message).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ScramError(str(exc)) from exc


def _random_nonce() -> str:
    chars = []
    for _ in range(NONCE_LENGTH):
        code = 0x21 + secrets.randbelow(0x7E - 0x21)
        chars.append(chr(0x7E if code == 0x2C else code))
    return "".join(chars)


@dataclass
class _Pending:
    nonce: str
    password: bytes
    channel_binding: ChannelBinding


@dataclass
class _Finishing:
    salted_password: bytes
    auth_message: str


class ScramSha256:
    """The client side of a SCRAM-SHA-256(-PLUS) exchange.

    Send :meth:`message` in a ``SASLInitialResponse``; pass the server's
    ``AuthenticationSASLContinue`` data to :meth:`update` and send
    :meth:`message` again in a ``SASLResponse``; finally pass the
    ``AuthenticationSASLFinal`` data to :meth:`finish`.
    """

    def __init__(
        self,
        password: bytes,
        channel_binding: ChannelBinding,
        nonce: str | None = None,
    ) -> None:
        if nonce is None:
            nonce = _random_nonce()
        self._message = f"{channel_binding.gs2_header()}n=,r={nonce}"
        self._state: _Pending | _Finishing | None = _Pending(
            nonce, normalize(password), channel_binding
        )

    def message(self) -> bytes:
        """The message to send to the server at the current step."""
        if self._state is None:
            raise ScramError("invalid SCRAM state")
        return self._message.encode("utf-8")

    def update(self, message: bytes) -> None:
        """Process the server's ``AuthenticationSASLContinue`` data."""
        state, self._state = self._state, None
        if not isinstance(state, _Pending):
            raise ScramError("invalid SCRAM state")

        text = _decode(message)
        parsed = parse_server_first_message(text)
        if not parsed.nonce.startswith(state.nonce):
            raise ScramError("invalid nonce")

        salt = _b64decode(parsed.salt)
        salted_password = hi(state.password, salt, parsed.iteration_count)
        client_key = _hmac(salted_password, b"Client Key")
        stored_key = hashlib.sha256(client_key).digest()

        binding = state.channel_binding
        cbind_input = _b64encode(binding.gs2_header().encode("ascii") + binding.cbind_data())
        without_proof = f"c={cbind_input},r={parsed.nonce}"
        auth_message = f"n=,r={state.nonce},{text},{without_proof}"

        signature = _hmac(stored_key, auth_message.encode("utf-8"))
        proof = bytes(k ^ s for k, s in zip(client_key, signature))

        self._message = f"{without_proof},p={_b64encode(proof)}"
        self._state = _Finishing(salted_password, auth_message)

    def finish(self, message: bytes) -> None:
        """Verify the server's ``AuthenticationSASLFinal`` data.

        Authentication has succeeded only if this returns without raising.
        """
        state, self._state = self._state, None
        if not isinstance(state, _Finishing):
            raise ScramError("invalid SCRAM state")

        parsed = parse_server_final_message(_decode(message))
        if parsed.error is not None:
            raise ScramError(f"SCRAM error: {parsed.error}")

        verifier = _b64decode(parsed.verifier or "")
        server_key = _hmac(state.salted_password, b"Server Key")
        expected = _hmac(server_key, state.auth_message.encode("utf-8"))
        if not hmac.compare_digest(expected, verifier):
            raise ScramError("SCRAM verification error")