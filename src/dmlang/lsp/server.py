"""DML Language Server: diagnostics, completion, hover and formatting via pygls."""

from __future__ import annotations

import argparse
import logging
import re

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from dmlang.encoder import encode
from dmlang.errors import DMLError
from dmlang.parsing.parser import DMLParser

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, str] = {
    "set": "Assign values to fields of the rows matching the WHERE condition",
    "delete": "Remove fields, or filtered entries of fields, from the matching rows",
    "where": "Condition selecting the rows a statement applies to",
    "and": "Join clauses of a condition",
    "in": "Bind a filter variable to any of the values of an array",
}

# Regex to extract position from DMLError messages
_POSITION_RE = re.compile(r"\(position (\d+)\)")

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def lexpos_to_position(source: str, lexpos: int) -> types.Position:
    """Convert a character offset into an LSP ``Position(line, character)``."""
    line = source.count("\n", 0, lexpos)
    last_nl = source.rfind("\n", 0, lexpos)
    character = lexpos if last_nl == -1 else lexpos - last_nl - 1
    return types.Position(line=line, character=character)


def _extract_position_from_error(message: str) -> int | None:
    """Return the integer position embedded in a DMLError message, or None."""
    m = _POSITION_RE.search(message)
    return int(m.group(1)) if m else None


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_-"


def _word_at_position(line_text: str, character: int) -> str:
    """Return the contiguous identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    if not _is_word_char(line_text[character]):
        return ""
    left = character
    while left > 0 and _is_word_char(line_text[left - 1]):
        left -= 1
    right = character
    while right < len(line_text) and _is_word_char(line_text[right]):
        right += 1
    return line_text[left:right]


def diagnose(source: str) -> list[types.Diagnostic]:
    """Parse *source* and return the diagnostics for it."""
    try:
        _parser.parse(source)
    except DMLError as exc:
        msg = str(exc)
        pos = exc.position if exc.position is not None else _extract_position_from_error(msg)
        if pos is not None:
            start = lexpos_to_position(source, pos)
        else:
            # Fallback: end of document
            start = lexpos_to_position(source, len(source))
        end = types.Position(line=start.line, character=start.character + 1)
        return [
            types.Diagnostic(
                range=types.Range(start=start, end=end),
                severity=types.DiagnosticSeverity.Error,
                source="dml",
                code=exc.kind.value,
                message=msg,
            )
        ]
    return []


def format_source(source: str) -> str | None:
    """Return the canonical text of *source*, one statement per line.

    Returns None when the source does not parse.
    """
    try:
        statements = _parser.parse(source)
        return "".join(encode(stmt) + "\n" for stmt in statements)
    except DMLError as exc:
        logger.debug("not formatting: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("dml-language-server", "0.1.0")
_parser = DMLParser()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    diagnostics = diagnose(doc.source)
    logger.debug("%s: %d diagnostic(s)", uri, len(diagnostics))
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[" "]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    items = [
        types.CompletionItem(
            label=name.upper(),
            kind=types.CompletionItemKind.Keyword,
            detail=desc,
        )
        for name, desc in KEYWORDS.items()
    ]
    return types.CompletionList(is_incomplete=False, items=items)


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    line_text = doc.lines[params.position.line]
    word = _word_at_position(line_text, params.position.character)
    lower = word.lower()
    if lower not in KEYWORDS:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=f"**{lower.upper()}**: {KEYWORDS[lower]}",
        )
    )


@server.feature(types.TEXT_DOCUMENT_FORMATTING)
def formatting(params: types.DocumentFormattingParams) -> list[types.TextEdit] | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    source = doc.source
    formatted = format_source(source)
    if formatted is None or formatted == source:
        return None
    whole = types.Range(
        start=types.Position(line=0, character=0),
        end=lexpos_to_position(source, len(source)),
    )
    return [types.TextEdit(range=whole, new_text=formatted)]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="DML language server")
    parser.add_argument("--tcp", action="store_true", help="Serve over TCP instead of stdio")
    parser.add_argument("--host", default="127.0.0.1", help="TCP host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=2087, help="TCP port (default: 2087)")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        filename=args.log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.tcp:
        logger.info("Starting DML language server on %s:%d", args.host, args.port)
        server.start_tcp(args.host, args.port)
    else:
        logger.info("Starting DML language server on stdio")
        server.start_io()


if __name__ == "__main__":
    main()
