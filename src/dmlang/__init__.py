"""dmlang - A textual data manipulation language for change events."""

from __future__ import annotations

import threading

from dmlang.arrays import TypedArray, classify
from dmlang.ast import (
    ROOT_PATH,
    Append,
    DeleteKey,
    DeleteTarget,
    KeyFilter,
    KeyValueFilter,
    Membership,
    Operation,
    Prepend,
    Statement,
    ValueFilter,
    ValueKind,
)
from dmlang.encoder import encode, encode_statement, encode_to
from dmlang.errors import (
    ArrayWithMixedTypesError,
    ClauseDuplicatedError,
    DMLError,
    DMLSyntaxError,
    ErrorKind,
    InvalidAssignKeyError,
    InvalidDotAssignError,
    InvalidOperationError,
    InvalidStatementError,
    InvalidValueError,
    MissingArrayValuesError,
    MissingAssignError,
    MissingEntityError,
    MissingWhereClauseError,
    NotIdentifierError,
    TypeCheckError,
    UnknownVariableError,
    UnsupportedArrayValueError,
    UnusedVariableError,
)
from dmlang.parsing import DMLParser
from dmlang.validator import check, validate

_parser: DMLParser | None = None
_parser_lock = threading.Lock()


def parse(data: str | bytes) -> list[Statement]:
    """Parse DML text into statements using a shared parser."""
    global _parser
    if _parser is None:
        with _parser_lock:
            if _parser is None:
                parser = DMLParser()
                parser.build()
                _parser = parser
    return _parser.parse(data)


__all__ = [
    # Main API
    "parse",
    "validate",
    "check",
    "encode",
    "encode_to",
    "encode_statement",
    "classify",
    "DMLParser",
    # AST
    "Statement",
    "Operation",
    "ROOT_PATH",
    "Append",
    "Prepend",
    "DeleteTarget",
    "DeleteKey",
    "KeyFilter",
    "ValueFilter",
    "KeyValueFilter",
    "Membership",
    "TypedArray",
    "ValueKind",
    # Errors
    "ErrorKind",
    "DMLError",
    "DMLSyntaxError",
    "NotIdentifierError",
    "InvalidOperationError",
    "MissingEntityError",
    "MissingAssignError",
    "MissingWhereClauseError",
    "InvalidDotAssignError",
    "MissingArrayValuesError",
    "ArrayWithMixedTypesError",
    "UnsupportedArrayValueError",
    "ClauseDuplicatedError",
    "UnusedVariableError",
    "UnknownVariableError",
    "TypeCheckError",
    "InvalidAssignKeyError",
    "InvalidValueError",
    "InvalidStatementError",
]

__version__ = "0.1.0"
