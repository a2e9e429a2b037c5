"""Lexer for the DML (Data Manipulation Language)."""

import json

import ply.lex as lex
from ply.lex import TOKEN

from dmlang.errors import DMLSyntaxError, NotIdentifierError

# Candidate identifier text. \w also matches numeric characters that are
# neither letters nor decimal digits (e.g. '²'), so the token is cut down
# to the identifier with identifier_end.
WORD_PATTERN = r"[^\W\d_][\w-]*"

STRING_PATTERN = r'"(?:[^"\\\x00-\x1f]|\\.)*"'

NUMBER_PATTERN = r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?"

# Positional keywords, matched case-insensitively against identifiers
KEYWORDS: frozenset[str] = frozenset({"set", "delete", "where", "and", "in"})


class DMLLexer:
    """Lexer for tokenizing DML statements.

    Keywords are not reserved: SET, DELETE, WHERE, AND and IN are produced as
    IDENTIFIER tokens and recognized by the parser where the grammar expects
    them.
    """

    tokens = [
        "IDENTIFIER",
        "STRING",
        "NUMBER",
        "ELLIPSIS",
        "DOT",
        "ARROW",
        "EQ",
        "COMMA",
        "COLON",
        "SEMICOLON",
        "LBRACKET",
        "RBRACKET",
        "LBRACE",
        "RBRACE",
        "UNDERSCORE",
    ]

    # Simple tokens. PLY sorts string-defined tokens longest-first, so
    # ELLIPSIS wins over DOT and ARROW over EQ.
    t_ELLIPSIS = r"\.\.\."
    t_DOT = r"\."
    t_ARROW = r"=>"
    t_EQ = r"="
    t_COMMA = r","
    t_COLON = r":"
    t_SEMICOLON = r";"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_UNDERSCORE = r"_"

    t_ignore = " \t"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    @TOKEN(STRING_PATTERN)
    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        # JSON string rules, including \uXXXX escapes
        try:
            t.value = json.loads(t.value)
        except ValueError as exc:
            raise DMLSyntaxError(f"invalid string literal: {exc}", position=t.lexpos) from exc
        return t

    @TOKEN(NUMBER_PATTERN)
    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        try:
            t.value = json.loads(t.value)
        except ValueError as exc:
            raise DMLSyntaxError(f"invalid number literal: {exc}", position=t.lexpos) from exc
        return t

    @TOKEN(WORD_PATTERN)
    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        end = identifier_end(t.value)
        if end == 0:
            raise DMLSyntaxError(f"Illegal character {t.value[0]!r}", position=t.lexpos)
        # Resume scanning right after the identifier
        t.lexer.lexpos = t.lexpos + end
        t.value = t.value[:end]
        return t

    def t_WHITESPACE(self, t: lex.LexToken) -> None:
        r"\s+"
        t.lexer.lineno += t.value.count("\n")

    def t_error(self, t: lex.LexToken) -> None:
        raise DMLSyntaxError(f"Illegal character {t.value[0]!r}", position=t.lexpos)

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


def identifier_end(text: str, start: int = 0) -> int:
    """Return the offset just past the identifier at *start*.

    An identifier is a letter followed by letters, decimal digits, '_' or
    '-'; a trailing '-' is never part of it. Returns *start* when no
    identifier begins there.
    """
    if start >= len(text) or not text[start].isalpha():
        return start
    end = start + 1
    while end < len(text) and _is_identifier_char(text[end]):
        end += 1
    while text[end - 1] == "-":
        end -= 1
    return end


def _is_identifier_char(ch: str) -> bool:
    return ch.isalpha() or ch.isdecimal() or ch in "_-"


def is_identifier(name: str) -> bool:
    """Return True if *name* is a valid identifier."""
    return bool(name) and identifier_end(name) == len(name)


def is_keyword(name: str, keyword: str) -> bool:
    """Case-insensitive keyword comparison."""
    return name.lower() == keyword


def next_identifier(text: str) -> tuple[str, str]:
    """Scan an identifier at the start of *text*.

    Returns the identifier and the remaining text. A trailing '-' is left in
    the remaining text.
    """
    end = identifier_end(text)
    if end == 0:
        raise NotIdentifierError(f"not an identifier: {text[:16]!r}")
    return text[:end], text[end:]
