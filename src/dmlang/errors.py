"""Error types raised by the DML front end.

Every failure is a ``DMLError`` subclass tagged with an ``ErrorKind`` so that
callers can branch on the kind of contract that was violated, either with
``except`` clauses or by comparing ``exc.kind``.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Error kind codes."""

    SYNTAX = "SYNTAX"
    NOT_IDENTIFIER = "NOT_IDENTIFIER"
    INVALID_OPERATION = "INVALID_OPERATION"
    MISSING_ENTITY = "MISSING_ENTITY"
    MISSING_ASSIGN = "MISSING_ASSIGN"
    MISSING_WHERE_CLAUSE = "MISSING_WHERE_CLAUSE"
    INVALID_DOT_ASSIGN = "INVALID_DOT_ASSIGN"
    MISSING_ARRAY_VALUES = "MISSING_ARRAY_VALUES"
    ARRAY_WITH_MIXED_TYPES = "ARRAY_WITH_MIXED_TYPES"
    UNSUPPORTED_ARRAY_VALUE = "UNSUPPORTED_ARRAY_VALUE"
    CLAUSE_DUPLICATED = "CLAUSE_DUPLICATED"
    UNUSED_VARIABLE = "UNUSED_VARIABLE"
    UNKNOWN_VARIABLE = "UNKNOWN_VARIABLE"
    TYPE_CHECK = "TYPE_CHECK"
    INVALID_ASSIGN_KEY = "INVALID_ASSIGN_KEY"
    INVALID_VALUE = "INVALID_VALUE"
    INVALID_STATEMENT = "INVALID_STATEMENT"


class DMLError(ValueError):
    """Base exception class for all DML errors."""

    kind: ErrorKind = ErrorKind.SYNTAX

    def __init__(self, message: str, position: int | None = None):
        if position is not None:
            message = f"{message} (position {position})"
        super().__init__(message)
        self.position = position


class DMLSyntaxError(DMLError):
    """Error raised when the input does not match the grammar."""

    kind = ErrorKind.SYNTAX


class NotIdentifierError(DMLSyntaxError):
    """Error raised when a token or name is not a valid identifier."""

    kind = ErrorKind.NOT_IDENTIFIER


class InvalidOperationError(DMLError):
    """Error raised when the operation is neither SET nor DELETE."""

    kind = ErrorKind.INVALID_OPERATION


class MissingEntityError(DMLError):
    """Error raised when a statement has no entity."""

    kind = ErrorKind.MISSING_ENTITY


class MissingAssignError(DMLError):
    """Error raised when a SET statement has no assignment."""

    kind = ErrorKind.MISSING_ASSIGN


class MissingWhereClauseError(DMLError):
    """Error raised when a statement has no WHERE clause."""

    kind = ErrorKind.MISSING_WHERE_CLAUSE


class InvalidDotAssignError(DMLError):
    """Error raised when the '.' path is combined with other assignments."""

    kind = ErrorKind.INVALID_DOT_ASSIGN


class MissingArrayValuesError(DMLError):
    """Error raised when an array has no non-null values."""

    kind = ErrorKind.MISSING_ARRAY_VALUES


class ArrayWithMixedTypesError(DMLError):
    """Error raised when array values do not share a single kind."""

    kind = ErrorKind.ARRAY_WITH_MIXED_TYPES


class UnsupportedArrayValueError(DMLError):
    """Error raised when array values are of an unsupported kind."""

    kind = ErrorKind.UNSUPPORTED_ARRAY_VALUE


class ClauseDuplicatedError(DMLError):
    """Error raised when a condition binds the same field twice."""

    kind = ErrorKind.CLAUSE_DUPLICATED


class UnusedVariableError(DMLError):
    """Error raised when a declared filter variable is not bound."""

    kind = ErrorKind.UNUSED_VARIABLE


class UnknownVariableError(DMLError):
    """Error raised when a filter condition binds an undeclared variable."""

    kind = ErrorKind.UNKNOWN_VARIABLE


class TypeCheckError(DMLError):
    """Error raised when a filter variable is bound to a value of the wrong kind."""

    kind = ErrorKind.TYPE_CHECK


class InvalidAssignKeyError(DMLError):
    """Error raised when an assignment path is malformed."""

    kind = ErrorKind.INVALID_ASSIGN_KEY


class InvalidValueError(DMLError):
    """Error raised when a statement holds a value that cannot be encoded."""

    kind = ErrorKind.INVALID_VALUE


class InvalidStatementError(DMLError):
    """Error raised when a statement fails validation.

    Holds every violation found in the statement so that all of them can be
    reported at once.
    """

    kind = ErrorKind.INVALID_STATEMENT

    def __init__(self, errors: list[DMLError]):
        super().__init__("\n".join(str(e) for e in errors))
        self.errors = list(errors)

    @property
    def kinds(self) -> set[ErrorKind]:
        """Return the kinds of the collected errors."""
        return {e.kind for e in self.errors}
