"""AST nodes for DML statements."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Operation(str, Enum):
    """The intended operation of a statement."""

    SET = "SET"
    DELETE = "DELETE"


class ValueKind(str, Enum):
    """The JSON kind of a value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


# Path of the whole record. When present it must be the only assignment.
ROOT_PATH = "."


def kind_of(value: Any) -> ValueKind | None:
    """Return the JSON kind of *value*, or None if it is not a JSON value."""
    if value is None:
        return ValueKind.NULL
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    return None


def is_json_value(value: Any) -> bool:
    """Return True if *value* can be serialized as strict JSON."""
    kind = kind_of(value)
    if kind is None:
        return False
    if kind is ValueKind.NUMBER:
        return not isinstance(value, float) or math.isfinite(value)
    if kind is ValueKind.ARRAY:
        return all(is_json_value(v) for v in value)
    if kind is ValueKind.OBJECT:
        return all(isinstance(k, str) and is_json_value(v) for k, v in value.items())
    return True


@dataclass
class Append:
    """Append the values to the collection at the assignment path."""

    values: list[Any] = field(default_factory=list)

    @property
    def kind(self) -> ValueKind:
        """Return the element kind shared by all values."""
        from dmlang.arrays import classify

        return classify(self.values).kind


@dataclass
class Prepend:
    """Prepend the values to the collection at the assignment path."""

    values: list[Any] = field(default_factory=list)

    @property
    def kind(self) -> ValueKind:
        """Return the element kind shared by all values."""
        from dmlang.arrays import classify

        return classify(self.values).kind


@dataclass
class DeleteKey:
    """Delete the whole value at the path."""

    pass


@dataclass
class KeyFilter:
    """Delete the entries of a map whose key is in ``keys``."""

    keys: list[str] = field(default_factory=list)


@dataclass
class ValueFilter:
    """Delete the entries of a collection whose value is in ``values``."""

    values: list[Any] = field(default_factory=list)


@dataclass
class KeyValueFilter:
    """Delete the entries whose key is ``key`` and whose value is in ``values``."""

    key: str
    values: list[Any] = field(default_factory=list)


@dataclass
class Membership:
    """A condition binding written as ``field IN [v, ...]``."""

    values: list[Any] = field(default_factory=list)


DeleteTarget = DeleteKey | KeyFilter | ValueFilter | KeyValueFilter

DELETE_TARGETS = (DeleteKey, KeyFilter, ValueFilter, KeyValueFilter)


@dataclass
class Statement:
    """A single DML statement.

    A statement manipulates fields of the rows of one entity selected by the
    WHERE condition. For SET, ``assignments`` maps canonical paths to values
    (plain JSON values, ``Append`` or ``Prepend``); for DELETE it maps paths
    to delete targets.
    """

    entity: str = ""
    operation: Operation | None = None
    assignments: dict[str, Any] = field(default_factory=dict)
    where: dict[str, Any] = field(default_factory=dict)
