"""Readers for the server's catalogue data: error codes and built-in types."""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = ["DatParser", "PgType", "snake_to_camel", "parse_errcodes", "parse_types"]

_WHITESPACE = "\n \t"
_RANGE_VECTOR_RE = re.compile(r"(range|vector)\Z")
_ARRAY_RE = re.compile(r"^_(.*)", re.DOTALL)
_DOC_ESCAPES = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"}
)


def snake_to_camel(name: str) -> str:
    """Convert ``snake_case`` to ``CamelCase``."""
    out = []
    upper = True
    for ch in name:
        if ch == "_":
            upper = True
        elif upper:
            upper = False
            out.append(ch.upper() if ch.isascii() else ch)
        else:
            out.append(ch)
    return "".join(out)


def _ascii_upper(text: str) -> str:
    return "".join(c.upper() if c.isascii() else c for c in text)


def parse_errcodes(text: str) -> dict[str, list[str]]:
    """Parse an ``errcodes.txt`` listing into code -> constant names, in file order."""
    codes: dict[str, list[str]] = {}
    for line in text.splitlines():
        if line.startswith("#") or line.startswith("Section") or not line.strip():
            continue
        parts = line.split()
        if len(parts) < 3:
            raise ValueError(f"malformed error code line: {line!r}")
        codes.setdefault(parts[0], []).append(parts[2].replace("ERRCODE_", ""))
    return codes


class DatParser:
    """Parser for the Perl-style ``.dat`` catalogue files."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def parse_array(self) -> list[dict[str, str]]:
        """Parse the whole input as an array of objects."""
        self._eat("[")
        objects = []
        while not self._try_eat("]"):
            objects.append(self._parse_object())
        self._eof()
        return objects

    def _parse_object(self) -> dict[str, str]:
        obj: dict[str, str] = {}
        self._eat("{")
        while True:
            key = self._parse_ident()
            self._eat("=")
            self._eat(">")
            obj[key] = self._parse_string()
            if not self._try_eat(","):
                break
        self._eat("}")
        self._eat(",")
        return obj

    def _peek_char(self) -> str | None:
        return self._text[self._pos] if self._pos < len(self._text) else None

    def _next_char(self) -> str | None:
        ch = self._peek_char()
        if ch is not None:
            self._pos += 1
        return ch

    def _parse_ident(self) -> str:
        self._skip_ws()
        start = self._pos
        while (ch := self._peek_char()) is not None and ("a" <= ch <= "z" or ch == "_"):
            self._pos += 1
        return self._text[start:self._pos]

    def _parse_string(self) -> str:
        self._eat("'")
        chars = []
        while True:
            ch = self._next_char()
            if ch is None:
                raise ValueError("unexpected eof")
            if ch == "'":
                return "".join(chars)
            if ch == "\\":
                ch = self._next_char()
                if ch is None:
                    raise ValueError("unexpected eof")
            chars.append(ch)

    def _eat(self, target: str) -> None:
        self._skip_ws()
        ch = self._next_char()
        if ch is None:
            raise ValueError(f"expected {target} but got eof")
        if ch != target:
            raise ValueError(f"expected {target} but got {ch}")

    def _try_eat(self, target: str) -> bool:
        self._skip_ws()
        if self._peek_char() == target:
            self._pos += 1
            return True
        return False

    def _eof(self) -> None:
        self._skip_ws()
        ch = self._peek_char()
        if ch is not None:
            raise ValueError(f"expected eof but got {ch}")

    def _skip_ws(self) -> None:
        while (ch := self._peek_char()) is not None:
            if ch == "#":
                end = self._text.find("\n", self._pos)
                self._pos = len(self._text) if end < 0 else end + 1
            elif ch in _WHITESPACE:
                self._pos += 1
            else:
                break


@dataclass(frozen=True)
class PgType:
    """A built-in type as described by the catalogue."""

    oid: int
    name: str
    variant: str
    ident: str
    kind: str
    element: int
    doc: str


def parse_types(type_dat: str, range_dat: str) -> dict[int, PgType]:
    """Build the built-in type table, keyed and ordered by OID.

    Composite and enum types are left out; array types declared through
    ``array_type_oid`` are added alongside their element types.
    """
    raw_types = DatParser(type_dat).parse_array()
    raw_ranges = DatParser(range_dat).parse_array()

    oids_by_name = {raw["typname"]: int(raw["oid"]) for raw in raw_types}
    range_elements = {
        oids_by_name[raw["rngtypid"]]: oids_by_name[raw["rngsubtype"]] for raw in raw_ranges
    }

    types: dict[int, PgType] = {}
    for raw in raw_types:
        oid = int(raw["oid"])
        name = raw["typname"]

        ident = _RANGE_VECTOR_RE.sub(r"_\1", name, count=1)
        ident = _ARRAY_RE.sub(r"\1_array", ident, count=1)
        variant = snake_to_camel(ident)
        ident = _ascii_upper(ident)

        kind = raw["typcategory"]
        if kind in ("C", "E"):
            continue

        if kind == "R":
            element = range_elements[oid]
        elif kind == "A":
            element = oids_by_name[raw["typelem"]]
        else:
            element = 0

        doc_name = _ascii_upper(_ARRAY_RE.sub(r"\1[]", name, count=1))
        doc = doc_name
        if "descr" in raw:
            doc += f" - {raw['descr']}"
        doc = doc.translate(_DOC_ESCAPES)

        if "array_type_oid" in raw:
            array_oid = int(raw["array_type_oid"])
            types[array_oid] = PgType(
                oid=array_oid,
                name=f"_{name}",
                variant=f"{variant}Array",
                ident=f"{ident}_ARRAY",
                kind="A",
                element=oid,
                doc=f"{doc_name}&#91;&#93;",
            )

        types[oid] = PgType(
            oid=oid,
            name=name,
            variant=variant,
            ident=ident,
            kind=kind,
            element=element,
            doc=doc,
        )

    return dict(sorted(types.items()))