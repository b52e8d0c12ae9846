"""Code as data for R-style expressions: quoting, trees, pairlists, parse/deparse."""

from .deparse import deparse
from .errors import (
    DuplicateFormalName,
    InvalidCallShape,
    LexError,
    MissingArgument,
    ParseError,
    RQuoteError,
    RRuntimeError,
    Unrenderable,
)
from .render import render
from .runner import parse, run_source, source_file, source_text
from .runtime import new_scope
from .tree import (
    EMPTY,
    Arg,
    Call,
    Constant,
    Formal,
    Name,
    NodeKind,
    Pairlist,
    kind_of,
    make_call,
    make_name,
    make_pairlist,
)
from .types import NO_VALUE, Environment, FunctionDef, make_function

__all__ = [
    "EMPTY",
    "NO_VALUE",
    "Arg",
    "Call",
    "Constant",
    "DuplicateFormalName",
    "Environment",
    "Formal",
    "FunctionDef",
    "InvalidCallShape",
    "LexError",
    "MissingArgument",
    "Name",
    "NodeKind",
    "Pairlist",
    "ParseError",
    "RQuoteError",
    "RRuntimeError",
    "Unrenderable",
    "deparse",
    "kind_of",
    "make_call",
    "make_function",
    "make_name",
    "make_pairlist",
    "new_scope",
    "parse",
    "render",
    "run_source",
    "source_file",
    "source_text",
]
