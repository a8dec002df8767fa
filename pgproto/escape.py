"""Escaping of SQL literals and identifiers.

Prefer parameterized queries; do not escape parameters of such queries.
"""

from __future__ import annotations

__all__ = ["escape_literal", "escape_identifier"]


def escape_literal(text: str) -> str:
    """Quote ``text`` as a string literal.

    If it contains backslashes the result uses the `` E'...'`` form, so it is
    correct whatever the setting of ``standard_conforming_strings``.
    """
    body = text.replace("'", "''")
    if "\\" in text:
        return " E'" + body.replace("\\", "\\\\") + "'"
    return "'" + body + "'"


def escape_identifier(text: str) -> str:
    """Quote ``text`` as an identifier."""
    return '"' + text.replace('"', '""') + '"'