"""Canonical encoding of DML statements.

The encoding is deterministic: assignment paths are sorted, JSON is written
without whitespace and with sorted object keys, and statements are simply
concatenated. Encoding a parsed statement and parsing it again yields an
equal statement.
"""

from __future__ import annotations

import io
import json
from typing import Any, Iterable, TextIO

from dmlang.ast import (
    Append,
    DeleteKey,
    KeyFilter,
    KeyValueFilter,
    Operation,
    Prepend,
    Statement,
    ValueFilter,
)
from dmlang.errors import InvalidStatementError
from dmlang.validator import validate

DOTDOTDOT = "..."


def encode(statements: Statement | Iterable[Statement]) -> str:
    """Validate and encode statements in their text format."""
    out = io.StringIO()
    encode_to(out, statements)
    return out.getvalue()


def encode_to(writer: TextIO, statements: Statement | Iterable[Statement]) -> None:
    """Validate and write statements to *writer*.

    Statements are written one at a time: if a statement is invalid the
    statements before it have already been written.
    """
    if isinstance(statements, Statement):
        statements = [statements]
    for stmt in statements:
        errors = validate(stmt)
        if errors:
            raise InvalidStatementError(errors)
        writer.write(encode_statement(stmt))


def encode_statement(stmt: Statement) -> str:
    """Encode a single, already validated, statement."""
    operation = Operation(stmt.operation)
    parts = [operation.value, stmt.entity]
    if operation is Operation.SET:
        parts.append(",".join(_encode_assign(k, stmt.assignments[k]) for k in sorted(stmt.assignments)))
    elif stmt.assignments:
        parts.append(",".join(_encode_delete(k, stmt.assignments[k]) for k in sorted(stmt.assignments)))
    parts.append("WHERE")
    parts.append(encode_condition(stmt.where))
    return " ".join(parts) + ";"


def encode_condition(condition: dict[str, Any]) -> str:
    """Encode a WHERE condition.

    A single clause is written as ``field=value``, anything else as a JSON
    object.
    """
    if len(condition) == 1:
        ((name, value),) = condition.items()
        return f"{name}={_dumps(value)}"
    return _dumps(condition)


def _encode_assign(path: str, value: Any) -> str:
    if isinstance(value, Append):
        return f"{path}={DOTDOTDOT}{_dumps(value.values)}"
    if isinstance(value, Prepend):
        return f"{path}={_dumps(value.values)}{DOTDOTDOT}"
    return f"{path}={_dumps(value)}"


def _encode_delete(path: str, target: Any) -> str:
    if isinstance(target, DeleteKey):
        return path
    if isinstance(target, KeyFilter):
        return f"{path}[k]:{_encode_binding('k', target.keys)}"
    if isinstance(target, ValueFilter):
        return f"{path}[_]=>v:{_encode_binding('v', target.values)}"
    if isinstance(target, KeyValueFilter):
        return f"{path}[k]=>v:k={_dumps(target.key)} AND {_encode_binding('v', target.values)}"
    raise TypeError(f"not a delete target: {target!r}")


def _encode_binding(var: str, values: list[Any]) -> str:
    if len(values) == 1:
        return f"{var}={_dumps(values[0])}"
    return f"{var} IN {_dumps(values)}"


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True, allow_nan=False)
