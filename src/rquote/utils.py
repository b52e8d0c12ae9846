from __future__ import annotations

import logging
import math
import os as _os
from typing import Any, List, Optional

from .deparse import deparse_or_none, format_double, quote_name, quote_string
from .tree import (
    NA,
    NA_CHARACTER,
    NA_INTEGER,
    NA_REAL,
    Arg,
    Call,
    Constant,
    Formal,
    NAType,
    Name,
    Pairlist,
    as_node,
    is_empty,
    is_node,
    is_scalar,
    scalars_identical,
)
from .types import Builtin, Environment, ExprVector, FunctionDef, NoValue, RList, RValue

DEBUG_PY_TRACE_VAR = "RQUOTE_DEBUG_PY_TRACE"
LOG_LEVEL_VAR = "RQUOTE_LOG_LEVEL"

# top-level calls whose value the REPL does not echo
INVISIBLE_CALLS = frozenset({
    "<-", "=", "<<-", "invisible", "for", "while", "repeat",
    "print", "cat", "assign", "ast", "source", "library",
})


def debug_py_trace_enabled() -> bool:
    return _os.environ.get(DEBUG_PY_TRACE_VAR, "") not in ("", "0", "false", "no")


def log_level_from_env(default: str = "WARNING") -> int:
    name = _os.environ.get(LOG_LEVEL_VAR, default).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging() -> None:
    logging.basicConfig(
        level=log_level_from_env(),
        format="%(levelname)s %(name)s: %(message)s",
    )

# ---------- vectors ----------

def as_vector(value: RValue) -> List[Any]:
    """Elements of an atomic value: NULL is empty, a scalar is one element."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, RList):
        return list(value.items)
    return [value]


def from_items(items: List[Any]) -> RValue:
    return items[0] if len(items) == 1 else items


def is_na(value: Any) -> bool:
    return isinstance(value, NAType) or (isinstance(value, float) and math.isnan(value))


def element_type(value: Any) -> str:
    match value:
        case NAType(kind=kind):
            return kind
        case bool():
            return "logical"
        case int():
            return "integer"
        case float():
            return "double"
        case str():
            return "character"
        case _:
            return "list"


TYPE_ORDER = ("logical", "integer", "double", "character", "list")

NA_FOR_TYPE = {
    "logical": NA,
    "integer": NA_INTEGER,
    "double": NA_REAL,
    "character": NA_CHARACTER,
}


def common_type(items: List[Any]) -> str:
    best = 0
    for item in items:
        best = max(best, TYPE_ORDER.index(element_type(item)))
    return TYPE_ORDER[best]


def coerce_element(value: Any, kind: str) -> Any:
    if isinstance(value, NAType):
        return NA_FOR_TYPE.get(kind, value)

    match kind:
        case "integer":
            return int(value)
        case "double":
            return float(value)
        case "character":
            return as_character(value)[0]
    return value


def as_character(value: RValue) -> List[str]:
    out = []

    for item in as_vector(value):
        match item:
            case NAType():
                out.append("NA")
            case bool():
                out.append("TRUE" if item else "FALSE")
            case int():
                out.append(str(item))
            case float():
                out.append(format_number(item))
            case str():
                out.append(item)
            case Name(identifier=identifier):
                out.append(identifier)
            case _ if is_node(item):
                out.append(deparse_or_none(item) or "")
            case _:
                out.append(str(item))

    return out


def format_number(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return format_double(value)
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))

    text = f"{value:.7g}"
    if "e" in text:
        mantissa, exp = text.split("e")
        sign = "-" if exp.startswith("-") else "+"
        text = f"{mantissa}e{sign}{exp.lstrip('+-').zfill(2)}"
    return text

# ---------- printing ----------

def _format_element(item: Any) -> str:
    match item:
        case NAType():
            return "NA"
        case bool():
            return "TRUE" if item else "FALSE"
        case int():
            return str(item)
        case float():
            return format_number(item)
        case str():
            return quote_string(item)
        case _:
            return str(item)


def _format_atomic(items: List[Any]) -> str:
    if not items:
        return "logical(0)"

    cells = [_format_element(item) for item in items]
    width = max(len(c) for c in cells)

    if all(isinstance(item, str) for item in items):
        cells = [c.ljust(width) for c in cells]
    else:
        cells = [c.rjust(width) for c in cells]

    return ("[1] " + " ".join(cells)).rstrip()


def closure_node(fn: FunctionDef) -> Call:
    """The `function(formals) body` expression a closure was made from."""
    body = fn.body if fn.body is not None else Constant(None)
    return Call(Name("function"), (Arg(None, fn.formals), Arg(None, body)))


def as_code(value: RValue) -> Any:
    """The expression that would rebuild ``value``; nodes are returned as-is."""
    match value:
        case RList(items=items, names=names):
            tags = names or [None] * len(items)
            return Call(Name("list"), tuple(Arg(t or None, as_code(v)) for t, v in zip(tags, items)))
        case list():
            return Call(Name("c"), tuple(Arg(None, as_code(v)) for v in value))
        case ExprVector(nodes=nodes):
            return Call(Name("expression"), tuple(Arg(None, n) for n in nodes))
        case FunctionDef():
            return closure_node(value)
    return as_node(value)


def _inline_marker(value: Any) -> str:
    match value:
        case Environment():
            return "<environment>"
        case Builtin(name=name):
            return f'<builtin "{name}">'
    return f"<inline {type(value).__name__}>"


def code_text(node: Any) -> str:
    """Source form of ``node``, with inlined values shown as the code that makes them.

    Values with no code form (environments, builtins) print as an angle
    bracket marker, the way R shows them inside a call.
    """
    markers: List[str] = []

    def printable(n: Any) -> Any:
        match n:
            case Call(fn=fn, args=args):
                return Call(printable(fn), tuple(Arg(a.tag, printable(a.value)) for a in args))
            case Pairlist(formals=formals):
                return Pairlist(tuple(Formal(f.name, printable(f.default)) for f in formals))
            case _ if is_node(n):
                return n

        code = as_code(n)
        if is_node(code):
            return printable(code)

        marker = _inline_marker(n)
        markers.append(marker)
        return Name(marker)

    text = deparse_or_none(printable(node))
    if text is None:
        return _inline_marker(node)

    for marker in markers:
        text = text.replace(quote_name(marker), marker)
    return text


def format_value(value: RValue) -> str:
    """R-style printed form of a value, as print() writes it."""
    match value:
        case NoValue():
            return ""
        case None:
            return "NULL"
        case Constant(value=inner):
            return format_value(inner)
        case Name() if is_empty(value):
            return ""
        case Name(identifier=identifier):
            return quote_name(identifier)
        case Call():
            return code_text(value)
        case Pairlist():
            return _format_entries([f.name for f in value], [f.default for f in value])
        case RList(items=items, names=names):
            if not items:
                return "list()"
            return _format_entries(names, items)
        case ExprVector(nodes=nodes):
            return f"expression({', '.join(code_text(n) for n in nodes)})"
        case FunctionDef(scope=scope):
            text = code_text(closure_node(value))
            if scope is not None and not scope.is_global:
                text += f"\n{scope!r}"
            return text
        case Builtin(name=name):
            return f'function (...) .Primitive("{name}")'
        case Environment():
            return repr(value)
        case list():
            return _format_atomic(value)
        case _ if is_scalar(value):
            return _format_atomic([value])
        case _:
            return repr(value)


def _format_entries(names: Optional[List[str]], items: List[Any]) -> str:
    blocks = []

    for idx, item in enumerate(items, start=1):
        name = names[idx - 1] if names is not None else ""
        header = f"${quote_name(name)}" if name else f"[[{idx}]]"
        blocks.append(f"{header}\n{format_value(item)}\n")

    return "\n".join(blocks).rstrip("\n") + "\n"

# ---------- identity ----------

def r_identical(a: RValue, b: RValue) -> bool:
    if is_node(a) or is_node(b):
        return is_node(a) and is_node(b) and type(a) is type(b) and a == b

    if is_scalar(a) or is_scalar(b):
        return is_scalar(a) and is_scalar(b) and scalars_identical(a, b)

    match (a, b):
        case (list(), list()):
            return len(a) == len(b) and all(r_identical(x, y) for x, y in zip(a, b))
        case (RList(), RList()):
            return (
                a.names == b.names
                and len(a) == len(b)
                and all(r_identical(x, y) for x, y in zip(a.items, b.items))
            )
        case (ExprVector(), ExprVector()):
            return a.nodes == b.nodes
        case (FunctionDef(), FunctionDef()):
            return a is b or (a.formals == b.formals and a.body == b.body and a.scope is b.scope)
        case _:
            return a is b
