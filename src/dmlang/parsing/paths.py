"""Canonical assignment paths.

A canonical path joins its segments with '.'. The first segment is a bare
identifier; the following ones are bare identifiers or JSON-quoted strings,
which lets field names contain dots or spaces (``a."b.c".d``).
"""

from __future__ import annotations

import json

from dmlang.ast import ROOT_PATH
from dmlang.errors import InvalidAssignKeyError, NotIdentifierError
from dmlang.parsing.lexer import next_identifier

_string_decoder = json.JSONDecoder()


def quote_segment(name: str) -> str:
    """Return the canonical quoted form of a path segment."""
    return json.dumps(name, ensure_ascii=False)


def split_path(path: str) -> list[str]:
    """Split a canonical path into segments; quoted segments keep their quotes."""
    if path == ROOT_PATH:
        return [ROOT_PATH]

    segments: list[str] = []
    rest = path
    while True:
        if segments and rest.startswith('"'):
            try:
                name, end = _string_decoder.raw_decode(rest)
            except ValueError as exc:
                raise InvalidAssignKeyError(f"invalid quoted segment in {path!r}: {exc}") from exc
            segment, rest = rest[:end], rest[end:]
            if not name:
                raise InvalidAssignKeyError(f"empty quoted segment in {path!r}")
            if segment != quote_segment(name):
                raise InvalidAssignKeyError(f"quoted segment {segment} of {path!r} is not canonical")
        else:
            try:
                segment, rest = next_identifier(rest)
            except NotIdentifierError as exc:
                raise InvalidAssignKeyError(
                    f"expected an identifier or a quoted string in {path!r}"
                ) from exc
        segments.append(segment)
        if not rest:
            return segments
        if rest[0] != ".":
            raise InvalidAssignKeyError(f"unexpected {rest[0]!r} in {path!r}")
        rest = rest[1:]
