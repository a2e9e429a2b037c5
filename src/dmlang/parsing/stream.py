"""Token cursor shared by the DML grammar methods.

JSON values embedded in statements are not tokenized by the grammar: the
cursor hands the remaining text to the JSON decoder, which reports how much
it consumed, and the lexer resumes right after it.
"""

from __future__ import annotations

import json
import math
from typing import Any

import ply.lex as lex

from dmlang.errors import DMLSyntaxError, NotIdentifierError
from dmlang.parsing.lexer import is_keyword


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def _parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


_decoder = json.JSONDecoder(parse_constant=_reject_constant, parse_float=_parse_float)

# Human readable token names for error messages
_TOKEN_NAMES = {
    "IDENTIFIER": "identifier",
    "STRING": "string",
    "NUMBER": "number",
    "ELLIPSIS": "'...'",
    "DOT": "'.'",
    "ARROW": "'=>'",
    "EQ": "'='",
    "COMMA": "','",
    "COLON": "':'",
    "SEMICOLON": "';'",
    "LBRACKET": "'['",
    "RBRACKET": "']'",
    "LBRACE": "'{'",
    "RBRACE": "'}'",
    "UNDERSCORE": "'_'",
}


class TokenStream:
    """A token cursor with lookahead over a single input.

    Tokens are buffered only while they are peeked at; decoding a JSON value
    drops the buffer and moves the lexer past the value.
    """

    def __init__(self, lexer: lex.Lexer, data: str) -> None:
        self.lexer = lexer
        self.data = data
        self.lexer.input(data)
        self._buffer: list[lex.LexToken] = []

    @property
    def position(self) -> int:
        """Offset of the next token (or of the end of the scanned input)."""
        if self._buffer:
            return self._buffer[0].lexpos
        return self.lexer.lexpos

    def peek(self, offset: int = 0) -> lex.LexToken | None:
        """Return the token *offset* places ahead without consuming anything."""
        while len(self._buffer) <= offset:
            tok = self.lexer.token()
            if tok is None:
                return None
            self._buffer.append(tok)
        return self._buffer[offset]

    def next(self) -> lex.LexToken | None:
        """Consume and return the next token."""
        tok = self.peek()
        if tok is not None:
            self._buffer.pop(0)
        return tok

    def at_end(self) -> bool:
        """Return True if only blanks remain."""
        return self.peek() is None

    def accept(self, type_: str) -> lex.LexToken | None:
        """Consume the next token if it has the given type."""
        tok = self.peek()
        if tok is not None and tok.type == type_:
            return self._buffer.pop(0)
        return None

    def expect(self, type_: str) -> lex.LexToken:
        """Consume the next token, which must have the given type."""
        tok = self.next()
        if tok is None:
            raise self.unexpected_eof()
        if tok.type != type_:
            raise DMLSyntaxError(
                f"expected {_TOKEN_NAMES[type_]} but found {tok.value!r}", position=tok.lexpos
            )
        return tok

    def expect_identifier(self, what: str = "identifier") -> str:
        """Consume an identifier and return its name."""
        tok = self.next()
        if tok is None:
            raise self.unexpected_eof()
        if tok.type != "IDENTIFIER":
            raise NotIdentifierError(f"expected {what} but found {tok.value!r}", position=tok.lexpos)
        return tok.value

    def peek_keyword(self, keyword: str, offset: int = 0) -> bool:
        """Return True if the token *offset* places ahead is the given (lowercase) keyword."""
        tok = self.peek(offset)
        return tok is not None and tok.type == "IDENTIFIER" and is_keyword(tok.value, keyword)

    def keyword(self, keyword: str) -> bool:
        """Consume the next token if it is the given (lowercase) keyword."""
        if self.peek_keyword(keyword):
            self._buffer.pop(0)
            return True
        return False

    def json_value(self) -> Any:
        """Decode one JSON value starting at the next token."""
        tok = self.peek()
        if tok is None:
            raise self.unexpected_eof()
        start = tok.lexpos
        self._buffer.clear()
        try:
            value, end = _decoder.raw_decode(self.data, start)
        except (ValueError, RecursionError) as exc:
            raise DMLSyntaxError(f"parsing JSON: {exc}", position=start) from exc
        # Numbers and true/false/null end in a word character and need a delimiter
        if end < len(self.data) and _is_word_char(self.data[end - 1]) and _is_word_char(self.data[end]):
            raise DMLSyntaxError(
                f"expected a delimiter after {self.data[start:end]!r}", position=end
            )
        self.lexer.lexpos = end
        return value

    def follows_blank(self, tok: lex.LexToken) -> bool:
        """Return True if *tok* is preceded by whitespace."""
        return tok.lexpos > 0 and self.data[tok.lexpos - 1].isspace()

    def accept_adjacent(self, type_: str) -> lex.LexToken | None:
        """Consume the next token if it has the given type and no blank precedes it."""
        tok = self.peek()
        if tok is not None and tok.type == type_ and not self.follows_blank(tok):
            return self._buffer.pop(0)
        return None

    def unexpected_eof(self) -> DMLSyntaxError:
        return DMLSyntaxError("unexpected eof", position=len(self.data))
