"""Homogeneous array classification for append and prepend values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from dmlang.ast import ValueKind, kind_of
from dmlang.errors import (
    ArrayWithMixedTypesError,
    MissingArrayValuesError,
    UnsupportedArrayValueError,
)

# Element kinds an append/prepend array may hold
ARRAY_KINDS: frozenset[ValueKind] = frozenset(
    {ValueKind.STRING, ValueKind.NUMBER, ValueKind.BOOL, ValueKind.ARRAY, ValueKind.OBJECT}
)

# Element kinds a delete value filter may hold
SCALAR_KINDS: frozenset[ValueKind] = frozenset({ValueKind.STRING, ValueKind.NUMBER, ValueKind.BOOL})


@dataclass
class TypedArray:
    """The non-null values of an array literal and their shared kind."""

    kind: ValueKind
    values: list[Any]


def classify(values: Iterable[Any]) -> TypedArray:
    """Classify the elements of an array literal.

    Null elements are dropped. The remaining elements must all share one of
    the kinds in ``ARRAY_KINDS``.
    """
    present = [v for v in values if v is not None]
    if not present:
        raise MissingArrayValuesError("...: missing array values")

    kinds = {kind_of(v) for v in present}
    if len(kinds) > 1:
        names = sorted(k.value if k is not None else "unsupported" for k in kinds)
        raise ArrayWithMixedTypesError(f"array with mixed types: {', '.join(names)}")

    kind = kinds.pop()
    if kind not in ARRAY_KINDS:
        raise UnsupportedArrayValueError(f"unsupported array value: {present[0]!r}")
    return TypedArray(kind=kind, values=present)
