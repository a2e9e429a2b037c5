"""Parsing module for the DML."""

from dmlang.parsing.lexer import DMLLexer, is_identifier, next_identifier
from dmlang.parsing.parser import DMLParser
from dmlang.parsing.stream import TokenStream

__all__ = [
    "DMLLexer",
    "DMLParser",
    "TokenStream",
    "is_identifier",
    "next_identifier",
]
