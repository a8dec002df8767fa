"""Client-side password hashing for commands such as ``ALTER USER ... PASSWORD``.

Hashing on the client keeps the cleartext password out of server logs.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from pgproto.sasl import hi, normalize

__all__ = ["scram_sha_256", "md5"]

SCRAM_DEFAULT_ITERATIONS = 4096
SCRAM_DEFAULT_SALT_LEN = 16


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def scram_sha_256(password: bytes, salt: bytes | None = None) -> str:
    """Hash ``password`` with SCRAM-SHA-256.

    A random 16-byte salt is used unless one is given. The result holds no
    characters that need escaping in an SQL command.
    """
    if salt is None:
        salt = secrets.token_bytes(SCRAM_DEFAULT_SALT_LEN)
    salt = bytes(salt)
    if len(salt) != SCRAM_DEFAULT_SALT_LEN:
        raise ValueError(f"salt must be exactly {SCRAM_DEFAULT_SALT_LEN} bytes")

    salted_password = hi(normalize(password), salt, SCRAM_DEFAULT_ITERATIONS)
    client_key = hmac.new(salted_password, b"Client Key", hashlib.sha256).digest()
    stored_key = hashlib.sha256(client_key).digest()
    server_key = hmac.new(salted_password, b"Server Key", hashlib.sha256).digest()

    return (
        f"SCRAM-SHA-256${SCRAM_DEFAULT_ITERATIONS}:{_b64(salt)}"
        f"${_b64(stored_key)}:{_b64(server_key)}"
    )


def md5(password: bytes, username: str) -> str:
    """Hash ``password`` with MD5, salted by ``username``.

    MD5 is not considered secure; prefer :func:`scram_sha_256`.
    """
    return "md5" + hashlib.md5(bytes(password) + username.encode("utf-8")).hexdigest()