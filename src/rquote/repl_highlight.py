"""prompt_toolkit lexer for live R syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .errors import LexError
from .lexer_rd import tokenize
from .token_types import TT

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "boolean": "ansicyan",
    "constant": "ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "assign": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

# Token type → highlight group.
_TT_GROUP = {
    TT.IF: "keyword",
    TT.ELSE: "keyword",
    TT.FOR: "keyword",
    TT.IN: "keyword",
    TT.WHILE: "keyword",
    TT.REPEAT: "keyword",
    TT.FUNCTION: "keyword",
    TT.LAMBDA: "keyword",
    TT.BREAK: "keyword",
    TT.NEXT: "keyword",
    TT.TRUE: "boolean",
    TT.FALSE: "boolean",
    TT.NULL_CONST: "constant",
    TT.NA_CONST: "constant",
    TT.NUM_CONST: "number",
    TT.INT_CONST: "number",
    TT.STR_CONST: "string",
    TT.SYMBOL: "identifier",
    TT.LEFT_ASSIGN: "assign",
    TT.EQ_ASSIGN: "assign",
    TT.RIGHT_ASSIGN: "assign",
    TT.PLUS: "operator",
    TT.MINUS: "operator",
    TT.STAR: "operator",
    TT.SLASH: "operator",
    TT.CARET: "operator",
    TT.SPECIAL: "operator",
    TT.PIPE: "operator",
    TT.TILDE: "operator",
    TT.QMARK: "operator",
    TT.NOT: "operator",
    TT.AND: "operator",
    TT.AND2: "operator",
    TT.OR: "operator",
    TT.OR2: "operator",
    TT.GT: "operator",
    TT.GE: "operator",
    TT.LT: "operator",
    TT.LE: "operator",
    TT.EQ: "operator",
    TT.NE: "operator",
    TT.COLON: "operator",
    TT.NS_GET: "operator",
    TT.NS_GET_INT: "operator",
    TT.DOLLAR: "operator",
    TT.AT: "operator",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.LBRACE: "punctuation",
    TT.RBRACE: "punctuation",
    TT.LSQB: "punctuation",
    TT.LBB: "punctuation",
    TT.RSQB: "punctuation",
    TT.COMMA: "punctuation",
    TT.SEMI: "punctuation",
    TT.COMMENT: "comment",
}

_LAYOUT = {TT.NEWLINE, TT.EOF}


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = tokenize(text, keep_comments=True)
        bad_from = len(text)
    except LexError as exc:
        # Highlight what lexes cleanly, mark the rest as an error.
        bad_from = max((exc.column or 1) - 1, 0)
        try:
            tokens = tokenize(text[:bad_from], keep_comments=True)
        except LexError:
            return [(GROUP_STYLE["error"], text)]

    result: StyleAndTextTuples = []
    pos = 0

    for tok in tokens:
        if tok.type in _LAYOUT or tok.end <= tok.pos:
            continue

        if tok.pos > pos:
            result.append(("", text[pos:tok.pos]))

        style = GROUP_STYLE.get(_TT_GROUP.get(tok.type, ""), "")
        result.append((style, text[tok.pos:tok.end]))
        pos = tok.end

    if pos < bad_from:
        result.append(("", text[pos:bad_from]))
        pos = bad_from

    if pos < len(text):
        result.append((GROUP_STYLE["error"], text[pos:]))

    return result if result else [("", text)]


class RQuoteLexer(Lexer):
    """prompt_toolkit Lexer that highlights R source using the RD lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
