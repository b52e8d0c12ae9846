"""
Token Types for the R expression parser

Shared between lexer, parser, deparser and highlighter to avoid circular
dependencies.
"""

from typing import Any, Dict, Optional, Tuple
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types"""

    # Literals
    NUM_CONST = auto()
    INT_CONST = auto()
    STR_CONST = auto()
    SYMBOL = auto()
    NULL_CONST = auto()
    TRUE = auto()
    FALSE = auto()
    NA_CONST = auto()

    # Keywords
    IF = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()
    WHILE = auto()
    REPEAT = auto()
    FUNCTION = auto()
    BREAK = auto()
    NEXT = auto()

    # Assignment
    LEFT_ASSIGN = auto()   # <- <<- :=
    EQ_ASSIGN = auto()     # =
    RIGHT_ASSIGN = auto()  # -> ->>

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    CARET = auto()
    SPECIAL = auto()       # %any%
    PIPE = auto()          # |>
    TILDE = auto()
    QMARK = auto()
    NOT = auto()
    AND = auto()
    AND2 = auto()
    OR = auto()
    OR2 = auto()
    GT = auto()
    GE = auto()
    LT = auto()
    LE = auto()
    EQ = auto()
    NE = auto()
    COLON = auto()
    NS_GET = auto()        # ::
    NS_GET_INT = auto()    # :::
    DOLLAR = auto()
    AT = auto()
    LAMBDA = auto()        # \

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    LBRACE = auto()
    RBRACE = auto()
    LSQB = auto()
    LBB = auto()           # [[
    RSQB = auto()
    COMMA = auto()
    SEMI = auto()

    # Layout
    NEWLINE = auto()
    COMMENT = auto()
    EOF = auto()


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0
    pos: int = 0
    end: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"


# ============================================================================
# Operator precedence, lowest first
# ============================================================================

PREC_LOWEST = 0
PREC_HELP = 1
PREC_EQ_ASSIGN = 2
PREC_LEFT_ASSIGN = 3
PREC_RIGHT_ASSIGN = 4
PREC_TILDE = 5
PREC_OR = 6
PREC_AND = 7
PREC_NOT = 8
PREC_COMPARE = 9
PREC_SUM = 10
PREC_PROD = 11
PREC_SPECIAL = 12
PREC_COLON = 13
PREC_UNARY = 14
PREC_POWER = 15
PREC_DOLLAR = 16
PREC_NS = 17

LEFT = 'left'
RIGHT = 'right'
NONASSOC = 'none'

# Binary operators as they appear in the token stream
BINARY_TOKENS: Dict[TT, Tuple[int, str]] = {
    TT.QMARK: (PREC_HELP, LEFT),
    TT.EQ_ASSIGN: (PREC_EQ_ASSIGN, RIGHT),
    TT.LEFT_ASSIGN: (PREC_LEFT_ASSIGN, RIGHT),
    TT.RIGHT_ASSIGN: (PREC_RIGHT_ASSIGN, LEFT),
    TT.TILDE: (PREC_TILDE, LEFT),
    TT.OR: (PREC_OR, LEFT),
    TT.OR2: (PREC_OR, LEFT),
    TT.AND: (PREC_AND, LEFT),
    TT.AND2: (PREC_AND, LEFT),
    TT.GT: (PREC_COMPARE, NONASSOC),
    TT.GE: (PREC_COMPARE, NONASSOC),
    TT.LT: (PREC_COMPARE, NONASSOC),
    TT.LE: (PREC_COMPARE, NONASSOC),
    TT.EQ: (PREC_COMPARE, NONASSOC),
    TT.NE: (PREC_COMPARE, NONASSOC),
    TT.PLUS: (PREC_SUM, LEFT),
    TT.MINUS: (PREC_SUM, LEFT),
    TT.STAR: (PREC_PROD, LEFT),
    TT.SLASH: (PREC_PROD, LEFT),
    TT.SPECIAL: (PREC_SPECIAL, LEFT),
    TT.PIPE: (PREC_SPECIAL, LEFT),
    TT.COLON: (PREC_COLON, LEFT),
    TT.CARET: (PREC_POWER, RIGHT),
}

PREFIX_TOKENS: Dict[TT, int] = {
    TT.QMARK: PREC_HELP,
    TT.TILDE: PREC_TILDE,
    TT.NOT: PREC_NOT,
    TT.PLUS: PREC_UNARY,
    TT.MINUS: PREC_UNARY,
}

COMPARISON_TOKENS = frozenset({TT.GT, TT.GE, TT.LT, TT.LE, TT.EQ, TT.NE})

# The same table keyed by function name, as seen in a Call's callee
BINARY_OPS: Dict[str, Tuple[int, str]] = {
    '?': (PREC_HELP, LEFT),
    '=': (PREC_EQ_ASSIGN, RIGHT),
    '<-': (PREC_LEFT_ASSIGN, RIGHT),
    '<<-': (PREC_LEFT_ASSIGN, RIGHT),
    ':=': (PREC_LEFT_ASSIGN, RIGHT),
    '~': (PREC_TILDE, LEFT),
    '|': (PREC_OR, LEFT),
    '||': (PREC_OR, LEFT),
    '&': (PREC_AND, LEFT),
    '&&': (PREC_AND, LEFT),
    '>': (PREC_COMPARE, NONASSOC),
    '>=': (PREC_COMPARE, NONASSOC),
    '<': (PREC_COMPARE, NONASSOC),
    '<=': (PREC_COMPARE, NONASSOC),
    '==': (PREC_COMPARE, NONASSOC),
    '!=': (PREC_COMPARE, NONASSOC),
    '+': (PREC_SUM, LEFT),
    '-': (PREC_SUM, LEFT),
    '*': (PREC_PROD, LEFT),
    '/': (PREC_PROD, LEFT),
    ':': (PREC_COLON, LEFT),
    '^': (PREC_POWER, RIGHT),
}

PREFIX_OPS: Dict[str, int] = {
    '?': PREC_HELP,
    '~': PREC_TILDE,
    '!': PREC_NOT,
    '+': PREC_UNARY,
    '-': PREC_UNARY,
}

RESERVED_WORDS = frozenset({
    'if', 'else', 'repeat', 'while', 'function', 'for', 'next', 'break',
    'in', 'TRUE', 'FALSE', 'NULL', 'Inf', 'NaN', 'NA', 'NA_integer_',
    'NA_real_', 'NA_character_',
})


def is_special_op(name: str) -> bool:
    return len(name) >= 2 and name.startswith('%') and name.endswith('%') and '\n' not in name


def binary_op_info(name: str) -> Optional[Tuple[int, str]]:
    if is_special_op(name):
        return (PREC_SPECIAL, LEFT)
    return BINARY_OPS.get(name)


def is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == '.'


def is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in '._'


def is_syntactic_name(name: str) -> bool:
    """True when ``name`` can be written bare in source text."""
    if not name or name in RESERVED_WORDS:
        return False

    if not is_ident_start(name[0]):
        return False

    if name[0] == '.' and len(name) > 1 and name[1].isdigit():
        return False

    return all(is_ident_char(ch) for ch in name[1:])
