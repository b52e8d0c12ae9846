from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import pytest

from rquote.lexer_rd import LexError, TT, number_value, tokenize


@dataclass(frozen=True)
class Case:
    """Unified lexer case payload."""

    name: str
    source: str
    expected: Optional[Tuple[Tuple[TT, object], ...]] = None
    expected_types: Optional[Tuple[TT, ...]] = None
    exc: Optional[type[Exception]] = None
    msg: Optional[str] = None
    err_line: Optional[int] = None
    err_col: Optional[int] = None
    incomplete: Optional[bool] = None
    keep_comments: bool = False


BASIC_TOKEN_CASES: List[Case] = [
    Case("number-int", "123", expected=((TT.NUM_CONST, "123"),)),
    Case("number-float", "3.14", expected=((TT.NUM_CONST, "3.14"),)),
    Case("number-leading-dot", ".5", expected=((TT.NUM_CONST, ".5"),)),
    Case("number-exponent", "1e-3", expected=((TT.NUM_CONST, "1e-3"),)),
    Case("number-hex", "0xFF", expected=((TT.NUM_CONST, "0xFF"),)),
    Case("integer", "10L", expected=((TT.INT_CONST, "10L"),)),
    Case("inf", "Inf", expected=((TT.NUM_CONST, "Inf"),)),
    Case("symbol", "x", expected=((TT.SYMBOL, "x"),)),
    Case("symbol-dotted", "na.rm", expected=((TT.SYMBOL, "na.rm"),)),
    Case("symbol-dots", "...", expected=((TT.SYMBOL, "..."),)),
    Case("symbol-dot-number", "..2", expected=((TT.SYMBOL, "..2"),)),
    Case("symbol-backquoted", "`my var`", expected=((TT.SYMBOL, "my var"),)),
    Case("string-double", '"hello"', expected=((TT.STR_CONST, "hello"),)),
    Case("string-single", "'world'", expected=((TT.STR_CONST, "world"),)),
    Case("string-escapes", r'"a\tb\n"', expected=((TT.STR_CONST, "a\tb\n"),)),
    Case("string-hex-escape", r'"\x41"', expected=((TT.STR_CONST, "A"),)),
    Case("string-unicode-escape", r'"\u{e9}"', expected=((TT.STR_CONST, "\u00e9"),)),
    Case("raw-string", r'r"(C:\path)"', expected=((TT.STR_CONST, "C:\\path"),)),
    Case("raw-string-dashes", 'R"-[a]"b]-"', expected=((TT.STR_CONST, 'a]"b'),)),
    Case("true", "TRUE", expected=((TT.TRUE, "TRUE"),)),
    Case("false", "FALSE", expected=((TT.FALSE, "FALSE"),)),
    Case("null", "NULL", expected=((TT.NULL_CONST, "NULL"),)),
    Case("na", "NA", expected=((TT.NA_CONST, "NA"),)),
    Case("na-integer", "NA_integer_", expected=((TT.NA_CONST, "NA_integer_"),)),
    Case("special", "%in%", expected=((TT.SPECIAL, "%in%"),)),
    Case("power-alias", "**", expected=((TT.CARET, "^"),)),
]

OPERATOR_CASES: List[Case] = [
    Case("plus", "+", expected_types=(TT.PLUS,)),
    Case("minus", "-", expected_types=(TT.MINUS,)),
    Case("left-assign", "<-", expected_types=(TT.LEFT_ASSIGN,)),
    Case("super-assign", "<<-", expected_types=(TT.LEFT_ASSIGN,)),
    Case("right-assign", "->", expected_types=(TT.RIGHT_ASSIGN,)),
    Case("right-super-assign", "->>", expected_types=(TT.RIGHT_ASSIGN,)),
    Case("eq-assign", "=", expected_types=(TT.EQ_ASSIGN,)),
    Case("eq", "==", expected_types=(TT.EQ,)),
    Case("ne", "!=", expected_types=(TT.NE,)),
    Case("and2", "&&", expected_types=(TT.AND2,)),
    Case("or2", "||", expected_types=(TT.OR2,)),
    Case("pipe", "|>", expected_types=(TT.PIPE,)),
    Case("ns-get", "::", expected_types=(TT.NS_GET,)),
    Case("ns-get-int", ":::", expected_types=(TT.NS_GET_INT,)),
    Case("double-bracket", "[[", expected_types=(TT.LBB,)),
    Case("lambda", "\\", expected_types=(TT.LAMBDA,)),
    Case("tilde", "~", expected_types=(TT.TILDE,)),
    Case("dollar", "$", expected_types=(TT.DOLLAR,)),
    Case("at", "@", expected_types=(TT.AT,)),
]

SEQUENCE_CASES: List[Case] = [
    Case(
        "assignment",
        "x <- 1",
        expected_types=(TT.SYMBOL, TT.LEFT_ASSIGN, TT.NUM_CONST),
    ),
    Case(
        "negative-literal-is-two-tokens",
        "-1",
        expected_types=(TT.MINUS, TT.NUM_CONST),
    ),
    Case(
        "less-than-minus",
        "a < -1",
        expected_types=(TT.SYMBOL, TT.LT, TT.MINUS, TT.NUM_CONST),
    ),
    Case(
        "call-with-tag",
        "f(x = 1)",
        expected_types=(TT.SYMBOL, TT.LPAR, TT.SYMBOL, TT.EQ_ASSIGN, TT.NUM_CONST, TT.RPAR),
    ),
    Case(
        "newline-kept",
        "a\nb",
        expected_types=(TT.SYMBOL, TT.NEWLINE, TT.SYMBOL),
    ),
    Case(
        "comment-dropped",
        "a # note\nb",
        expected_types=(TT.SYMBOL, TT.NEWLINE, TT.SYMBOL),
    ),
    Case(
        "comment-kept",
        "a # note",
        expected=((TT.SYMBOL, "a"), (TT.COMMENT, "# note")),
        keep_comments=True,
    ),
    Case(
        "keywords",
        "if else for in while repeat function break next",
        expected_types=(
            TT.IF, TT.ELSE, TT.FOR, TT.IN, TT.WHILE, TT.REPEAT, TT.FUNCTION, TT.BREAK, TT.NEXT,
        ),
    ),
    Case(
        "index-brackets",
        "x[[1]]",
        expected_types=(TT.SYMBOL, TT.LBB, TT.NUM_CONST, TT.RSQB, TT.RSQB),
    ),
]

ERROR_CASES: List[Case] = [
    Case(
        "unterminated-string",
        '"abc',
        exc=LexError,
        msg="unterminated string",
        err_line=1,
        err_col=1,
        incomplete=True,
    ),
    Case(
        "unterminated-string-late-line",
        'x <- 1\ny <- "abc',
        exc=LexError,
        err_line=2,
        err_col=6,
        incomplete=True,
    ),
    Case(
        "unterminated-backquote",
        "`abc",
        exc=LexError,
        msg="unterminated backquoted name",
        incomplete=True,
    ),
    Case(
        "unterminated-raw-string",
        'r"(abc',
        exc=LexError,
        msg="unterminated raw string",
        incomplete=True,
    ),
    Case(
        "bad-escape",
        r'"\q"',
        exc=LexError,
        msg="unrecognized escape",
        incomplete=False,
    ),
    Case(
        "symbol-after-number",
        "12abc",
        exc=LexError,
        msg="unexpected symbol after numeric constant",
        err_col=1,
    ),
    Case(
        "empty-backquote",
        "``",
        exc=LexError,
        msg="zero-length variable name",
    ),
    Case(
        "unterminated-special",
        "a %in b",
        exc=LexError,
        msg="unterminated %operator%",
        err_col=3,
    ),
    Case(
        "stray-character",
        "a # b\n\u00a7",
        exc=LexError,
        msg="unexpected input",
        err_line=2,
        err_col=1,
    ),
    Case(
        "complex-constant",
        "1i",
        exc=LexError,
        msg="complex constants are not supported",
    ),
]


def _strip_layout(tokens):
    return [t for t in tokens if t.type is not TT.EOF]


def _run_case(case: Case) -> None:
    if case.exc is not None:
        with pytest.raises(case.exc) as exc_info:
            tokenize(case.source, keep_comments=case.keep_comments)
        err = exc_info.value
        if case.msg is not None:
            assert case.msg in str(err)
        if case.err_line is not None:
            assert err.line == case.err_line
        if case.err_col is not None:
            assert err.column == case.err_col
        if case.incomplete is not None:
            assert err.incomplete is case.incomplete
        return

    tokens = _strip_layout(tokenize(case.source, keep_comments=case.keep_comments))

    if case.expected is not None:
        assert [(t.type, t.value) for t in tokens] == list(case.expected)
    if case.expected_types is not None:
        assert [t.type for t in tokens] == list(case.expected_types)


@pytest.mark.parametrize("case", BASIC_TOKEN_CASES, ids=lambda c: c.name)
def test_basic_tokens(case: Case) -> None:
    _run_case(case)


@pytest.mark.parametrize("case", OPERATOR_CASES, ids=lambda c: c.name)
def test_operator_tokens(case: Case) -> None:
    _run_case(case)


@pytest.mark.parametrize("case", SEQUENCE_CASES, ids=lambda c: c.name)
def test_token_sequences(case: Case) -> None:
    _run_case(case)


@pytest.mark.parametrize("case", ERROR_CASES, ids=lambda c: c.name)
def test_lexer_errors(case: Case) -> None:
    _run_case(case)


def test_token_positions_cover_source_text() -> None:
    source = 'f(x, "y")'
    tokens = _strip_layout(tokenize(source))

    assert [source[t.pos:t.end] for t in tokens] == ["f", "(", "x", ",", '"y"', ")"]
    assert [t.column for t in tokens] == [1, 2, 3, 4, 6, 9]


def test_token_lines_advance_after_newlines() -> None:
    tokens = _strip_layout(tokenize("a\n  b\n\nc"))
    symbols = [(t.value, t.line, t.column) for t in tokens if t.type is TT.SYMBOL]

    assert symbols == [("a", 1, 1), ("b", 2, 3), ("c", 4, 1)]


def test_stream_ends_with_eof() -> None:
    tokens = tokenize("")
    assert [t.type for t in tokens] == [TT.EOF]


@pytest.mark.parametrize(
    "text, expected",
    [
        pytest.param("1", 1.0, id="double"),
        pytest.param("1L", 1, id="integer"),
        pytest.param("1.5L", 1.5, id="non-integral-integer-stays-double"),
        pytest.param("0x10", 16.0, id="hex"),
        pytest.param("0x10L", 16, id="hex-integer"),
        pytest.param("1e3", 1000.0, id="exponent"),
    ],
)
def test_number_value(text: str, expected: object) -> None:
    value = number_value(text)
    assert value == expected
    assert type(value) is type(expected)
