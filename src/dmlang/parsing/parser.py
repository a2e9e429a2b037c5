"""Parser for the DML (Data Manipulation Language).

Grammar (keywords are case-insensitive and not reserved)::

    statements  : statement*
    statement   : SET IDENTIFIER assign_list WHERE condition ';'
                | DELETE IDENTIFIER delete_list? WHERE condition ';'
    assign_list : path '=' rhs (',' path '=' rhs)*
    rhs         : '...' json_array | json_array '...' | json_value
    delete_list : delete_item (',' delete_item)*
    delete_item : path ('[' (IDENTIFIER | '_') ']' ('=>' IDENTIFIER)? ':' condition)?
    condition   : clause (AND clause)*
    clause      : json_object | IDENTIFIER '=' json_value | IDENTIFIER IN json_array
    path        : '.' | IDENTIFIER ('.' (IDENTIFIER | STRING))*
"""

from __future__ import annotations

import sys
from typing import Any

from dmlang.arrays import SCALAR_KINDS, classify
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
    kind_of,
)
from dmlang.errors import (
    ClauseDuplicatedError,
    DMLSyntaxError,
    InvalidDotAssignError,
    InvalidOperationError,
    TypeCheckError,
    UnknownVariableError,
    UnusedVariableError,
)
from dmlang.parsing.lexer import DMLLexer, is_identifier
from dmlang.parsing.paths import quote_segment
from dmlang.parsing.stream import TokenStream


class DMLParser:
    """Parser for DML statements.

    The parser only holds the built lexer; every call to ``parse`` works on
    a clone of it, so a single instance can be shared.
    """

    def __init__(self) -> None:
        self.lexer = DMLLexer()
        self._built = False

    def build(self, **kwargs: Any) -> None:
        """Build the lexer."""
        self.lexer.build(**kwargs)
        self._built = True

    def parse(self, data: str | bytes) -> list[Statement]:
        """Parse the textual input and return its statements.

        Either the whole input parses or an error is raised; no partial
        result is ever returned. Blank input yields an empty list.
        """
        if not self._built:
            self.build()
        if isinstance(data, (bytes, bytearray, memoryview)):
            try:
                data = bytes(data).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DMLSyntaxError(f"invalid UTF-8 input: {exc.reason}", position=exc.start) from exc

        stream = TokenStream(self.lexer.lexer.clone(), data)
        statements: list[Statement] = []
        while not stream.at_end():
            statements.append(self.parse_statement(stream))
        return statements

    # --- Statements ---

    def parse_statement(self, stream: TokenStream) -> Statement:
        """Parse one statement, up to and including its ';'."""
        tok = stream.next()
        if tok.type != "IDENTIFIER":
            raise DMLSyntaxError(f"expected SET or DELETE but found {tok.value!r}", position=tok.lexpos)
        keyword = tok.value.lower()
        if keyword == "set":
            operation = Operation.SET
        elif keyword == "delete":
            operation = Operation.DELETE
        else:
            raise InvalidOperationError(f"invalid operation: {tok.value}", position=tok.lexpos)

        entity = sys.intern(stream.expect_identifier("entity name"))
        if stream.at_end():
            raise stream.unexpected_eof()

        if operation is Operation.SET:
            assignments = self.parse_assign_list(stream)
        else:
            assignments = self.parse_delete_list(stream)

        pos = stream.position
        if not stream.keyword("where"):
            tok = stream.peek()
            if tok is None:
                raise stream.unexpected_eof()
            raise DMLSyntaxError(f"expected WHERE but found {tok.value!r}", position=pos)

        pos = stream.position
        where = self.parse_condition(stream)
        for name, value in where.items():
            if isinstance(value, Membership):
                raise DMLSyntaxError(f"WHERE field {name}: IN is only allowed in delete filters", position=pos)

        stream.expect("SEMICOLON")
        return Statement(entity=entity, operation=operation, assignments=assignments, where=where)

    # --- SET assignments ---

    def parse_assign_list(self, stream: TokenStream) -> dict[str, Any]:
        """Parse the comma separated assignments of a SET statement."""
        assignments: dict[str, Any] = {}
        while True:
            pos = stream.position
            path = self.parse_path(stream)
            if path == ROOT_PATH and assignments:
                raise InvalidDotAssignError("'.' must be the only assignment", position=pos)
            if path in assignments:
                raise DMLSyntaxError(f"duplicated assignment to {path}", position=pos)
            stream.expect("EQ")
            if path == ROOT_PATH:
                assignments[path] = self.parse_root_value(stream)
            else:
                assignments[path] = self.parse_assign_rhs(stream)

            pos = stream.position
            if not stream.accept("COMMA"):
                return assignments
            if path == ROOT_PATH:
                raise InvalidDotAssignError(
                    "only one '.' assignment is permitted. Unexpected ','", position=pos
                )

    def parse_root_value(self, stream: TokenStream) -> dict[str, Any]:
        """Parse the value of a '.' assignment: an object with identifier keys."""
        pos = stream.position
        value = stream.json_value()
        if not isinstance(value, dict):
            raise DMLSyntaxError("root assign (.) requires a JSON object", position=pos)
        for key in sorted(value):
            if not is_identifier(key):
                raise DMLSyntaxError(
                    f"expect root assign (.) to an object with identifier keys but found {key!r}",
                    position=pos,
                )
        return value

    def parse_assign_rhs(self, stream: TokenStream) -> Any:
        """Parse the right-hand side of an assignment."""
        if stream.accept("ELLIPSIS"):
            tok = stream.peek()
            if tok is None:
                raise stream.unexpected_eof()
            if tok.type != "LBRACKET":
                raise DMLSyntaxError("dotdotdot (...) requires a subsequent array", position=tok.lexpos)
            return Append(values=classify(stream.json_value()).values)

        tok = stream.peek()
        is_array = tok is not None and tok.type == "LBRACKET"
        value = stream.json_value()
        if is_array and stream.accept("ELLIPSIS"):
            return Prepend(values=classify(value).values)
        return value

    # --- Paths ---

    def parse_path(self, stream: TokenStream) -> str:
        """Parse a dotted path into its canonical form.

        Segments and the dots between them are written without blanks.
        """
        if stream.accept("DOT"):
            return ROOT_PATH

        segments = [stream.expect_identifier("field name")]
        while stream.accept_adjacent("DOT"):
            tok = stream.next()
            if tok is None:
                raise stream.unexpected_eof()
            if stream.follows_blank(tok):
                raise DMLSyntaxError("unexpected blank after '.' in path", position=tok.lexpos)
            if tok.type == "IDENTIFIER":
                segments.append(tok.value)
            elif tok.type == "STRING":
                if not tok.value:
                    raise DMLSyntaxError("empty quoted path segment", position=tok.lexpos)
                segments.append(quote_segment(tok.value))
            else:
                raise DMLSyntaxError(
                    f"expected a field name after '.' but found {tok.value!r}", position=tok.lexpos
                )
        return ".".join(segments)

    # --- DELETE targets ---

    def parse_delete_list(self, stream: TokenStream) -> dict[str, DeleteTarget]:
        """Parse the comma separated targets of a DELETE statement.

        The list may be empty: ``DELETE entity WHERE ...`` is legal.
        """
        targets: dict[str, DeleteTarget] = {}
        if stream.peek_keyword("where") and not _field_named_where(stream):
            return targets
        while True:
            pos = stream.position
            path, target = self.parse_delete_target(stream)
            if path == ROOT_PATH and targets or ROOT_PATH in targets:
                raise InvalidDotAssignError("'.' must be the only delete target", position=pos)
            if path in targets:
                target = _merge_targets(path, targets[path], target, pos)
            targets[path] = target
            if not stream.accept("COMMA"):
                return targets

    def parse_delete_target(self, stream: TokenStream) -> tuple[str, DeleteTarget]:
        """Parse one delete target: a path and an optional filter."""
        path = self.parse_path(stream)
        pos = stream.position
        if not stream.accept("LBRACKET"):
            return path, DeleteKey()
        if path == ROOT_PATH:
            raise DMLSyntaxError("filters require a field path", position=pos)

        tok = stream.next()
        if tok is None:
            raise stream.unexpected_eof()
        if tok.type == "UNDERSCORE":
            key_var = None
        elif tok.type == "IDENTIFIER":
            key_var = tok.value
        else:
            raise DMLSyntaxError(f"expected a key variable but found {tok.value!r}", position=tok.lexpos)
        stream.expect("RBRACKET")

        value_var = None
        if stream.accept("ARROW"):
            pos = stream.position
            value_var = stream.expect_identifier("value variable")
            if value_var == key_var:
                raise DMLSyntaxError(f"variable {value_var} declared twice", position=pos)
        stream.expect("COLON")

        pos = stream.position
        condition = self.parse_condition(stream)
        return path, _bind_filter(key_var, value_var, condition, pos)

    # --- Conditions ---

    def parse_condition(self, stream: TokenStream) -> dict[str, Any]:
        """Parse clauses joined by AND into a single mapping."""
        condition: dict[str, Any] = {}
        while True:
            self.parse_clause(stream, condition)
            if not stream.keyword("and"):
                return condition

    def parse_clause(self, stream: TokenStream, condition: dict[str, Any]) -> None:
        """Parse one clause and merge it into *condition*."""
        tok = stream.peek()
        if tok is None:
            raise stream.unexpected_eof()
        pos = tok.lexpos

        if tok.type == "LBRACE":
            obj = stream.json_value()
            if not obj:
                raise DMLSyntaxError("condition object requires key-value entries", position=pos)
            for key in sorted(obj):
                if not is_identifier(key):
                    raise DMLSyntaxError(
                        f"condition object keys need to be valid identifiers but found {key!r}",
                        position=pos,
                    )
            for key, value in obj.items():
                _bind_clause(condition, key, value, pos)
            return

        name = stream.expect_identifier("condition field")
        if stream.accept("EQ"):
            value = stream.json_value()
        elif stream.keyword("in"):
            tok = stream.peek()
            if tok is None:
                raise stream.unexpected_eof()
            if tok.type != "LBRACKET":
                raise DMLSyntaxError("IN requires an array", position=tok.lexpos)
            values = stream.json_value()
            if not values:
                raise DMLSyntaxError("IN requires at least one value", position=tok.lexpos)
            value = Membership(values=values)
        else:
            tok = stream.peek()
            if tok is None:
                raise stream.unexpected_eof()
            raise DMLSyntaxError(f"expected '=' or IN but found {tok.value!r}", position=tok.lexpos)
        _bind_clause(condition, name, value, pos)


def _field_named_where(stream: TokenStream) -> bool:
    """Tell a first delete target named ``where`` from the WHERE keyword.

    A target is followed by '.', '[', ',' or the WHERE keyword and a
    condition; the keyword is followed by a condition, whose first clause
    is ``field =`` or an object.
    """
    following = stream.peek(1)
    if following is None:
        return False
    if following.type in ("DOT", "LBRACKET", "COMMA"):
        return True
    if stream.peek_keyword("where", 1):
        after = stream.peek(2)
        return after is not None and after.type != "EQ"
    return False


def _bind_clause(condition: dict[str, Any], name: str, value: Any, pos: int) -> None:
    if name in condition:
        raise ClauseDuplicatedError(f"clause on {name} duplicated", position=pos)
    condition[name] = value


def _bind_filter(
    key_var: str | None, value_var: str | None, condition: dict[str, Any], pos: int
) -> DeleteTarget:
    """Bind the declared filter variables against the parsed condition."""
    if key_var is None and value_var is None:
        raise UnusedVariableError("filter [_] declares no variable", position=pos)

    bindings = dict(condition)
    for var in (key_var, value_var):
        if var is not None and var not in bindings:
            raise UnusedVariableError(f"variable {var} is declared but not used", position=pos)
    key_binding = bindings.pop(key_var) if key_var is not None else None
    value_binding = bindings.pop(value_var) if value_var is not None else None
    if bindings:
        raise UnknownVariableError(f"unknown variables: {', '.join(sorted(bindings))}", position=pos)

    if value_var is None:
        return KeyFilter(keys=_string_values(key_var, key_binding, pos))
    values = _scalar_values(value_var, value_binding, pos)
    if key_var is None:
        return ValueFilter(values=values)
    if not isinstance(key_binding, str):
        raise TypeCheckError(f"variable {key_var} must be bound to a single string", position=pos)
    return KeyValueFilter(key=key_binding, values=values)


def _bound_values(binding: Any) -> list[Any]:
    """Values of a variable bound with '=', IN or a JSON array."""
    if isinstance(binding, Membership):
        return list(binding.values)
    if isinstance(binding, list):
        return list(binding)
    return [binding]


def _string_values(var: str, binding: Any, pos: int) -> list[str]:
    values = _bound_values(binding)
    if values and all(isinstance(v, str) for v in values):
        return values
    raise TypeCheckError(f"variable {var} requires a string or a list of strings", position=pos)


def _scalar_values(var: str, binding: Any, pos: int) -> list[Any]:
    values = _bound_values(binding)
    kinds = {kind_of(v) for v in values}
    if len(kinds) != 1 or not kinds <= SCALAR_KINDS:
        raise TypeCheckError(
            f"variable {var} requires scalar values of a single type (string, number or bool)",
            position=pos,
        )
    return list(values)


def _merge_targets(path: str, current: DeleteTarget, new: DeleteTarget, pos: int) -> DeleteTarget:
    """Merge two delete targets given for the same path.

    Filter values are compared together with their kind, since ``1 == True``
    in Python but not in JSON.
    """
    if isinstance(current, DeleteKey) and isinstance(new, DeleteKey):
        return current
    if isinstance(current, KeyFilter) and isinstance(new, KeyFilter):
        return KeyFilter(keys=_union(current.keys, new.keys))
    if _same_value_kind(current, new):
        if isinstance(current, ValueFilter) and isinstance(new, ValueFilter):
            return ValueFilter(values=_union(current.values, new.values))
        if (
            isinstance(current, KeyValueFilter)
            and isinstance(new, KeyValueFilter)
            and current.key == new.key
        ):
            return KeyValueFilter(key=current.key, values=_union(current.values, new.values))
    raise DMLSyntaxError(f"conflicting delete targets for {path}", position=pos)


def _same_value_kind(current: DeleteTarget, new: DeleteTarget) -> bool:
    if not isinstance(current, (ValueFilter, KeyValueFilter)):
        return False
    if not isinstance(new, (ValueFilter, KeyValueFilter)):
        return False
    return {kind_of(v) for v in current.values} == {kind_of(v) for v in new.values}


def _union(first: list[Any], second: list[Any]) -> list[Any]:
    merged = list(first)
    seen = [(kind_of(v), v) for v in first]
    for value in second:
        if (kind_of(value), value) not in seen:
            seen.append((kind_of(value), value))
            merged.append(value)
    return merged
