"""Semantic validation of DML statements.

``validate`` collects every violation of a statement instead of stopping at
the first one, so that callers can report all problems at once.
"""

from __future__ import annotations

from typing import Any

from dmlang.arrays import SCALAR_KINDS, classify
from dmlang.ast import (
    DELETE_TARGETS,
    ROOT_PATH,
    Append,
    DeleteKey,
    KeyFilter,
    KeyValueFilter,
    Operation,
    Prepend,
    Statement,
    is_json_value,
    kind_of,
)
from dmlang.errors import (
    DMLError,
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
)
from dmlang.parsing.lexer import is_identifier
from dmlang.parsing.paths import split_path


def validate(stmt: Statement) -> list[DMLError]:
    """Return every violation found in *stmt* (empty when valid)."""
    errors: list[DMLError] = []

    if stmt.operation not in (Operation.SET, Operation.DELETE):
        errors.append(InvalidOperationError(f"invalid operation: {stmt.operation!r}"))

    if not stmt.entity:
        errors.append(MissingEntityError("entity is not provided"))
    elif not isinstance(stmt.entity, str) or not is_identifier(stmt.entity):
        errors.append(NotIdentifierError(f"invalid entity {stmt.entity!r}: not an identifier"))

    if not stmt.assignments and stmt.operation != Operation.DELETE:
        errors.append(MissingAssignError('"SET" requires an assign'))
    if ROOT_PATH in stmt.assignments and len(stmt.assignments) > 1:
        errors.append(InvalidDotAssignError("'.' must be the only assignment"))

    for path in sorted(stmt.assignments, key=str):
        if not isinstance(path, str):
            errors.append(InvalidAssignKeyError(f"invalid assign key {path!r}"))
            continue
        if path != ROOT_PATH:
            try:
                split_path(path)
            except DMLError as exc:
                errors.append(exc)
                continue
        value = stmt.assignments[path]
        if stmt.operation == Operation.DELETE:
            errors.extend(_validate_delete_target(path, value))
        elif stmt.operation == Operation.SET:
            errors.extend(_validate_assign_value(path, value))

    if not stmt.where:
        errors.append(MissingWhereClauseError("WHERE clause is not given"))
    for name in sorted(stmt.where, key=str):
        if not isinstance(name, str) or not is_identifier(name):
            errors.append(NotIdentifierError(f"clause with invalid field {name!r}: not an identifier"))
        elif not is_json_value(stmt.where[name]):
            errors.append(InvalidValueError(f"clause {name} holds a value that is not JSON"))

    return errors


def check(stmt: Statement) -> None:
    """Raise InvalidStatementError if *stmt* has any violation."""
    errors = validate(stmt)
    if errors:
        raise InvalidStatementError(errors)


def _validate_assign_value(path: str, value: Any) -> list[DMLError]:
    if isinstance(value, DELETE_TARGETS):
        return [InvalidValueError(f"assignment {path}: delete target in a SET statement")]
    if path == ROOT_PATH:
        if not isinstance(value, dict):
            return [InvalidValueError("root assign (.) requires an object")]
        bad = [k for k in sorted(value, key=str) if not isinstance(k, str) or not is_identifier(k)]
        if bad:
            return [InvalidValueError(f"root assign (.) requires identifier keys but found {bad[0]!r}")]
    if isinstance(value, (Append, Prepend)):
        try:
            classify(value.values)
        except DMLError as exc:
            return [exc]
        # Parsing drops nulls, so a null element would not survive encoding
        if any(v is None for v in value.values):
            return [InvalidValueError(f"assignment {path} holds a null array element")]
        if not all(is_json_value(v) for v in value.values):
            return [InvalidValueError(f"assignment {path} holds a value that is not JSON")]
        return []
    if not is_json_value(value):
        return [InvalidValueError(f"assignment {path} holds a value that is not JSON")]
    return []


def _validate_delete_target(path: str, target: Any) -> list[DMLError]:
    if not isinstance(target, DELETE_TARGETS):
        return [InvalidValueError(f"delete target {path}: {type(target).__name__} is not a delete target")]
    if isinstance(target, DeleteKey):
        return []
    if path == ROOT_PATH:
        return [InvalidValueError("filters require a field path")]

    if isinstance(target, KeyFilter):
        if not target.keys:
            return [MissingArrayValuesError(f"delete target {path}: missing keys")]
        if not all(isinstance(k, str) for k in target.keys):
            return [TypeCheckError(f"delete target {path}: keys must be strings")]
        return []

    errors: list[DMLError] = []
    if isinstance(target, KeyValueFilter) and not isinstance(target.key, str):
        errors.append(TypeCheckError(f"delete target {path}: key must be a string"))
    if not target.values:
        errors.append(MissingArrayValuesError(f"delete target {path}: missing values"))
        return errors
    kinds = {kind_of(v) for v in target.values}
    if len(kinds) != 1 or not kinds <= SCALAR_KINDS or not all(is_json_value(v) for v in target.values):
        errors.append(
            TypeCheckError(f"delete target {path}: values must be scalars of a single type")
        )
    return errors
