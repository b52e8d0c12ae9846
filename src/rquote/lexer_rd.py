"""
Lexer for R expressions - Recursive Descent Parser

Tokenizes R source code into a stream of tokens.

Features:
- Single-pass tokenization
- Position tracking (line, column, offset)
- Numbers (decimal, hex, exponent, integer `L` suffix), Inf/NaN
- Quoted strings with escapes, raw strings r"(...)", back-quoted names
- %any% operators, the |> pipe and the \\(x) lambda shorthand
"""

from typing import List, Optional, Union

from .errors import LexError
from .token_types import TT, Tok, is_ident_char, is_ident_start

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """R lexer. Newlines are emitted as tokens; the parser decides when they matter."""

    # Keyword mapping
    KEYWORDS = {
        'if': TT.IF,
        'else': TT.ELSE,
        'for': TT.FOR,
        'in': TT.IN,
        'while': TT.WHILE,
        'repeat': TT.REPEAT,
        'function': TT.FUNCTION,
        'break': TT.BREAK,
        'next': TT.NEXT,
        'TRUE': TT.TRUE,
        'FALSE': TT.FALSE,
        'NULL': TT.NULL_CONST,
        'NA': TT.NA_CONST,
        'NA_integer_': TT.NA_CONST,
        'NA_real_': TT.NA_CONST,
        'NA_character_': TT.NA_CONST,
        'Inf': TT.NUM_CONST,
        'NaN': TT.NUM_CONST,
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Three-character operators
        ('<<-', TT.LEFT_ASSIGN),
        ('->>', TT.RIGHT_ASSIGN),
        (':::', TT.NS_GET_INT),

        # Two-character operators
        ('<-', TT.LEFT_ASSIGN),
        ('->', TT.RIGHT_ASSIGN),
        (':=', TT.LEFT_ASSIGN),
        ('<=', TT.LE),
        ('>=', TT.GE),
        ('==', TT.EQ),
        ('!=', TT.NE),
        ('&&', TT.AND2),
        ('||', TT.OR2),
        ('|>', TT.PIPE),
        ('::', TT.NS_GET),
        ('**', TT.CARET),
        ('[[', TT.LBB),

        # Single-character operators
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('^', TT.CARET),
        ('<', TT.LT),
        ('>', TT.GT),
        ('!', TT.NOT),
        ('&', TT.AND),
        ('|', TT.OR),
        ('~', TT.TILDE),
        ('?', TT.QMARK),
        (':', TT.COLON),
        ('=', TT.EQ_ASSIGN),
        ('$', TT.DOLLAR),
        ('@', TT.AT),
        ('\\', TT.LAMBDA),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('{', TT.LBRACE),
        ('}', TT.RBRACE),
        ('[', TT.LSQB),
        (']', TT.RSQB),
        (',', TT.COMMA),
        (';', TT.SEMI),
    ]

    SIMPLE_ESCAPES = {
        'n': '\n',
        't': '\t',
        'r': '\r',
        'a': '\a',
        'b': '\b',
        'f': '\f',
        'v': '\v',
        '\\': '\\',
        '"': '"',
        "'": "'",
        '`': '`',
        ' ': ' ',
        '\n': '\n',
    }

    RAW_CLOSERS = {'(': ')', '[': ']', '{': '}'}

    def __init__(self, source: str, keep_comments: bool = False):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Tok] = []
        self.keep_comments = keep_comments

        # start of the token being scanned
        self.start_pos = 0
        self.start_line = 1
        self.start_column = 1

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.mark()
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        if self.skip_whitespace():
            return

        self.mark()
        ch = self.peek()

        if ch == '#':
            self.scan_comment()
            return

        if ch in ('\n', '\r'):
            self.scan_newline()
            return

        # Raw strings: r"(...)", R'[...]', r"-{...}-"
        if ch in ('r', 'R') and self.peek(1) in ('"', "'"):
            self.scan_raw_string()
            return

        if ch in ('"', "'"):
            self.scan_string()
            return

        if ch == '`':
            self.scan_backquoted()
            return

        if ch.isdigit() or (ch == '.' and self.peek(1).isdigit()):
            self.scan_number()
            return

        if is_ident_start(ch):
            self.scan_identifier()
            return

        if ch == '%':
            self.scan_special()
            return

        # pipe placeholder
        if ch == '_':
            self.advance()
            self.emit(TT.SYMBOL, '_')
            return

        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_newline(self):
        """Scan newline character"""
        if self.peek() == '\r' and self.peek(1) == '\n':
            self.advance(2)
        else:
            self.advance()

        self.emit(TT.NEWLINE, '\n')
        self.line += 1
        self.column = 1

    def scan_comment(self):
        start = self.pos
        while self.pos < len(self.source) and self.peek() not in ('\n', '\r'):
            self.advance()

        if self.keep_comments:
            self.emit(TT.COMMENT, self.source[start:self.pos])

    def scan_string(self):
        """Scan a single- or double-quoted string literal"""
        quote = self.advance()
        value = self.scan_quoted_content(quote, what='string')
        self.emit(TT.STR_CONST, value)

    def scan_backquoted(self):
        self.advance()
        name = self.scan_quoted_content('`', what='backquoted name')

        if name == '':
            self.error("attempt to use zero-length variable name")

        self.emit(TT.SYMBOL, name)

    def scan_quoted_content(self, quote: str, what: str) -> str:
        chars = []

        while True:
            if self.pos >= len(self.source):
                raise LexError(
                    f"unterminated {what}", self.start_line, self.start_column, incomplete=True
                )

            ch = self.peek()

            if ch == quote:
                self.advance()
                return ''.join(chars)

            if ch == '\\':
                chars.append(self.scan_escape())
                continue

            if ch == '\n':
                self.advance()
                self.line += 1
                self.column = 1
                chars.append('\n')
                continue

            chars.append(self.advance())

    def scan_escape(self) -> str:
        """Decode one backslash escape; positioned on the backslash."""
        line, column = self.line, self.column
        self.advance()
        ch = self.peek()

        if self.pos >= len(self.source):
            raise LexError("unterminated escape sequence", line, column, incomplete=True)

        if ch in self.SIMPLE_ESCAPES:
            self.advance()
            if ch == '\n':
                self.line += 1
                self.column = 1
            return self.SIMPLE_ESCAPES[ch]

        if ch == 'x':
            self.advance()
            digits = self.take_while(lambda c: c in '0123456789abcdefABCDEF', limit=2)
            if not digits:
                raise LexError("'\\x' used without hex digits in character string", line, column)
            return chr(int(digits, 16))

        if ch in '01234567':
            digits = self.take_while(lambda c: c in '01234567', limit=3)
            return chr(int(digits, 8))

        if ch in ('u', 'U'):
            self.advance()
            limit = 4 if ch == 'u' else 8

            if self.peek() == '{':
                self.advance()
                digits = self.take_while(lambda c: c in '0123456789abcdefABCDEF', limit=limit)
                if self.peek() != '}':
                    raise LexError(f"invalid \\{ch}{{xxxx}} sequence", line, column)
                self.advance()
            else:
                digits = self.take_while(lambda c: c in '0123456789abcdefABCDEF', limit=limit)

            if not digits:
                raise LexError(f"'\\{ch}' used without hex digits in character string", line, column)

            code = int(digits, 16)
            if code > 0x10FFFF:
                raise LexError(f"invalid \\{ch}{{{digits}}} value", line, column)
            return chr(code)

        raise LexError(f"'\\{ch}' is an unrecognized escape in character string", line, column)

    def scan_raw_string(self):
        self.advance()  # r / R
        quote = self.advance()

        dashes = self.take_while(lambda c: c == '-')
        opener = self.peek()

        if opener not in self.RAW_CLOSERS:
            self.error("malformed raw string literal")

        self.advance()
        terminator = self.RAW_CLOSERS[opener] + dashes + quote
        end = self.source.find(terminator, self.pos)

        if end < 0:
            raise LexError(
                "unterminated raw string", self.start_line, self.start_column, incomplete=True
            )

        value = self.source[self.pos:end]
        for ch in value:
            self.advance()
            if ch == '\n':
                self.line += 1
                self.column = 1

        self.advance(len(terminator))
        self.emit(TT.STR_CONST, value)

    def scan_number(self):
        """Scan a numeric literal; the token value is its source text."""
        start = self.pos

        if self.peek() == '0' and self.peek(1) in ('x', 'X'):
            self.advance(2)
            digits = self.take_while(lambda c: c in '0123456789abcdefABCDEF')
            if not digits:
                self.error("malformed hexadecimal constant")
        else:
            self.take_while(str.isdigit)

            if self.peek() == '.':
                self.advance()
                self.take_while(str.isdigit)

            if self.peek() in ('e', 'E'):
                self.advance()
                if self.peek() in ('+', '-'):
                    self.advance()
                if not self.take_while(str.isdigit):
                    self.error("malformed number: exponent has no digits")

        if self.peek() == 'L':
            self.advance()
            self.emit(TT.INT_CONST, self.source[start:self.pos])
            return

        if self.peek() == 'i':
            self.error("complex constants are not supported")

        if is_ident_start(self.peek()) or self.peek() == '_':
            # 12abc
            self.error("unexpected symbol after numeric constant")

        self.emit(TT.NUM_CONST, self.source[start:self.pos])

    def scan_identifier(self):
        """Scan identifier or keyword"""
        start = self.pos
        self.advance()
        self.take_while(is_ident_char)
        word = self.source[start:self.pos]

        tt = self.KEYWORDS.get(word)
        if tt is None:
            self.emit(TT.SYMBOL, word)
        else:
            self.emit(tt, word)

    def scan_special(self):
        """Scan %any% operators; they may not span lines."""
        end = self.pos + 1
        while end < len(self.source) and self.source[end] not in ('%', '\n'):
            end += 1

        if end >= len(self.source) or self.source[end] != '%':
            self.error("unexpected input: unterminated %operator%")

        text = self.source[self.pos:end + 1]
        self.advance(len(text))
        self.emit(TT.SPECIAL, text)

    def scan_operator(self):
        for text, tt in self.OPERATORS:
            if self.source.startswith(text, self.pos):
                self.advance(len(text))
                # ** is an alias for ^
                value = '^' if tt is TT.CARET else text
                self.emit(tt, value)
                return

        self.error(f"unexpected input '{self.peek()}'")

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        result = self.source[self.pos:self.pos + n]
        self.pos += n
        self.column += n
        return result

    def take_while(self, pred, limit: Optional[int] = None) -> str:
        start = self.pos
        while self.pos < len(self.source) and pred(self.peek()):
            if limit is not None and self.pos - start >= limit:
                break
            self.advance()
        return self.source[start:self.pos]

    def skip_whitespace(self) -> bool:
        """Skip spaces, tabs and form feeds (not newlines)"""
        start = self.pos
        while self.pos < len(self.source) and self.peek() in (' ', '\t', '\f', '\v'):
            self.advance()
        return self.pos > start

    def mark(self):
        self.start_pos = self.pos
        self.start_line = self.line
        self.start_column = self.column

    def error(self, message: str):
        raise LexError(message, self.start_line, self.start_column)

    def emit(self, token_type: TT, value):
        """Emit a token positioned at the start of its text"""
        tok = Tok(
            type=token_type,
            value=value,
            line=self.start_line,
            column=self.start_column,
            pos=self.start_pos,
            end=self.pos,
        )
        self.tokens.append(tok)


def tokenize(source: str, keep_comments: bool = False) -> List[Tok]:
    """Convenience function to tokenize source"""
    lexer = Lexer(source, keep_comments=keep_comments)
    return lexer.tokenize()


def number_value(text: str) -> Union[int, float]:
    """Convert NUM_CONST/INT_CONST source text to its value.

    ``1L`` gives an int; ``1.5L`` is not integral so it stays a double.
    """
    if text == 'Inf':
        return float('inf')
    if text == 'NaN':
        return float('nan')

    is_int = text.endswith('L')
    body = text[:-1] if is_int else text

    if body[:2] in ('0x', '0X'):
        value: Union[int, float] = float(int(body, 16))
    else:
        value = float(body)

    if is_int and value.is_integer():
        return int(value)
    return value
