"""Expression trees back to R source text.

For every tree that `parse` can produce, ``parse(deparse(node)) == [node]``.
Operators print infix or prefix, keyword calls print in their keyword form,
and parentheses appear only around shapes the parser could not have built
without them. Values that have no source form raise Unrenderable; no partial
text is ever returned.
"""
from __future__ import annotations

import math
from typing import Any, List, Optional

from .errors import RQuoteError, Unrenderable
from .token_types import (
    LEFT,
    PREC_LEFT_ASSIGN,
    PREC_RIGHT_ASSIGN,
    PREFIX_OPS,
    RIGHT,
    binary_op_info,
    is_syntactic_name,
)
from .tree import (
    EMPTY,
    NA_SPELLING,
    Call,
    Constant,
    NAType,
    Name,
    Pairlist,
    is_node,
)

INDENT = "    "

# printed without surrounding spaces
TIGHT_OPS = frozenset({"/", "^", ":"})

# keyword constructs whose last operand extends as far right as possible
OPEN_FORMS = frozenset({"function", "if", "for", "while", "repeat"})

INF = math.inf

ESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
}


# ---------- leaves ----------

def escape_text(text: str, quote: str) -> str:
    out = []

    for ch in text:
        if ch == quote:
            out.append("\\" + quote)
        elif ch in ESCAPES:
            out.append(ESCAPES[ch])
        elif not ch.isprintable():
            code = ord(ch)
            if code <= 0xFF:
                out.append(f"\\x{code:02x}")
            elif code <= 0xFFFF:
                out.append(f"\\u{{{code:x}}}")
            else:
                out.append(f"\\U{{{code:x}}}")
        else:
            out.append(ch)

    return "".join(out)


def quote_string(text: str) -> str:
    return '"' + escape_text(text, '"') + '"'


def quote_name(name: str) -> str:
    """Back-quote a name unless it can be written bare."""
    if is_syntactic_name(name):
        return name
    return "`" + escape_text(name, "`") + "`"


def format_double(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def format_constant(value: Any) -> str:
    match value:
        case None:
            return "NULL"
        case bool():
            return "TRUE" if value else "FALSE"
        case NAType(kind=kind):
            return NA_SPELLING[kind]
        case int():
            return f"{value}L"
        case float():
            return format_double(value)
        case str():
            return quote_string(value)
        case _:
            raise Unrenderable(value, "constant")


# ---------- shape classification ----------

def _is_member_name(value: Any) -> bool:
    if isinstance(value, Name):
        return value != EMPTY
    return isinstance(value, Constant) and isinstance(value.value, str)


def call_form(call: Call) -> str:
    """Which surface syntax a call prints with; 'call' means f(...) form."""
    if not isinstance(call.fn, Name):
        return "call"

    name = call.fn.identifier
    values = call.arg_values()
    n = len(values)
    untagged = all(a.tag is None for a in call.args)
    filled = all(v != EMPTY for v in values)

    if name in ("[", "[[") and n >= 2 and call.args[0].tag is None and values[0] != EMPTY:
        return "index"

    if not untagged:
        return "call"

    if n == 2 and filled and binary_op_info(name) is not None:
        return "binary"
    if n == 1 and filled and name in PREFIX_OPS:
        return "prefix"

    match name:
        case "function" if n == 2 and isinstance(values[0], Pairlist) and values[1] != EMPTY:
            return "function"
        case "if" if n in (2, 3) and filled:
            return "if"
        case "for" if n == 3 and filled and isinstance(values[0], Name):
            return "for"
        case "while" if n == 2 and filled:
            return "while"
        case "repeat" if n == 1 and filled:
            return "repeat"
        case "break" | "next" if n == 0:
            return "jump"
        case "(" if n == 1 and filled:
            return "paren"
        case "{" if filled:
            return "block"
        case "$" | "@" if n == 2 and values[0] != EMPTY and _is_member_name(values[1]):
            return "member"
        case "::" | ":::" if n == 2 and all(_is_member_name(v) for v in values):
            return "ns"

    return "call"


def _shape(node: Any):
    """('binary'|'prefix', prec), ('open', -1) or ('atom', INF)."""
    if not isinstance(node, Call):
        return ("atom", INF)

    form = call_form(node)
    if form == "binary":
        return ("binary", binary_op_info(node.fn.identifier)[0])
    if form == "prefix":
        return ("prefix", PREFIX_OPS[node.fn.identifier])
    if form in OPEN_FORMS:
        return ("open", -1)
    return ("atom", INF)


def _needs_parens(child: Any, prec: int, assoc: str, side: str) -> bool:
    kind, cprec = _shape(child)

    if side == "right":
        return kind == "binary" and (cprec < prec or (cprec == prec and assoc != RIGHT))

    if kind == "binary" and (cprec < prec or (cprec == prec and assoc != LEFT)):
        return True
    if kind == "prefix" and cprec < prec:
        return True
    if kind == "open":
        return True

    # a prefix operator at the end of the left operand would swallow this one
    return _open_floor(child) < prec


def _open_floor(node: Any) -> float:
    """Lowest precedence an operator following ``node``'s text would be absorbed at."""
    kind, prec = _shape(node)

    if kind == "binary":
        _, assoc = binary_op_info(node.fn.identifier)
        right = node.args[1].value
        if _needs_parens(right, prec, assoc, "right"):
            return INF
        return _open_floor(right)

    if kind == "prefix":
        operand = node.args[0].value
        if _needs_parens(operand, prec, LEFT, "right"):
            return prec
        return min(prec, _open_floor(operand))

    if kind == "open":
        return -1

    return INF


# ---------- printer ----------

def deparse(node: Any) -> str:
    if not is_node(node):
        raise Unrenderable(node, "expression")
    return _expr(node, 0)


def deparse_or_none(node: Any) -> Optional[str]:
    try:
        return deparse(node)
    except RQuoteError:
        return None


def deparse_lines(node: Any) -> List[str]:
    return deparse(node).split("\n")


def _expr(node: Any, indent: int, where: str = "expression") -> str:
    match node:
        case Constant(value=value):
            return format_constant(value)
        case Name(identifier=identifier):
            return quote_name(identifier) if identifier else ""
        case Pairlist():
            return f"pairlist({_formals(node, indent)})"
        case Call():
            return _call(node, indent)
        case _:
            raise Unrenderable(node, where)


def _operand(child: Any, prec: int, assoc: str, side: str, indent: int) -> str:
    if not _needs_parens(child, prec, assoc, side):
        return _expr(child, indent, "argument")

    arrow = _as_right_assign(child, prec, assoc, side, indent)
    if arrow is not None:
        return arrow

    return f"({_expr(child, indent, 'argument')})"


def _as_right_assign(child: Any, prec: int, assoc: str, side: str, indent: int) -> Optional[str]:
    """`value -> target` spelling for an assignment on the left of another one."""
    if side != "left" or call_form(child) != "binary" or child.fn.identifier not in ("<-", "<<-"):
        return None

    if PREC_RIGHT_ASSIGN < prec or (PREC_RIGHT_ASSIGN == prec and assoc != LEFT):
        return None

    target, value = child.args[0].value, child.args[1].value
    if _shape(target)[0] != "atom" or _needs_parens(value, PREC_RIGHT_ASSIGN, LEFT, "left"):
        return None

    arrow = "->>" if child.fn.identifier == "<<-" else "->"
    return f"{_expr(value, indent, 'argument')} {arrow} {_expr(target, indent, 'argument')}"


def _postfix_target(node: Any, indent: int) -> str:
    text = _expr(node, indent, "argument")
    if _shape(node)[0] != "atom":
        return f"({text})"
    return text


def _callee(fn: Any, indent: int) -> str:
    if isinstance(fn, Name):
        if fn == EMPTY:
            raise Unrenderable(fn, "callee")
        return quote_name(fn.identifier)

    if not is_node(fn):
        raise Unrenderable(fn, "callee")

    return _postfix_target(fn, indent)


def _arg_value(value: Any, indent: int) -> str:
    if value == EMPTY:
        return ""

    text = _expr(value, indent, "argument")
    kind, prec = _shape(value)

    # `=` at argument level would read as a tag
    if kind == "binary" and prec < PREC_LEFT_ASSIGN:
        return f"({text})"
    return text


def _arglist(args, indent: int) -> str:
    parts = []

    for arg in args:
        text = _arg_value(arg.value, indent)
        if arg.tag is not None:
            text = f"{quote_name(arg.tag)} = {text}"
        parts.append(text)

    return ", ".join(parts)


def _formals(pairlist: Pairlist, indent: int) -> str:
    parts = []

    for formal in pairlist:
        if formal.default == EMPTY:
            parts.append(quote_name(formal.name))
        else:
            parts.append(f"{quote_name(formal.name)} = {_arg_value(formal.default, indent)}")

    return ", ".join(parts)


def _block(stmts, indent: int) -> str:
    inner = INDENT * (indent + 1)
    lines = ["{"]

    for stmt in stmts:
        lines.append(inner + _expr(stmt, indent + 1, "argument"))

    lines.append(INDENT * indent + "}")
    return "\n".join(lines)


def _call(call: Call, indent: int) -> str:
    form = call_form(call)
    values = call.arg_values()

    match form:
        case "binary":
            name = call.fn.identifier
            prec, assoc = binary_op_info(name)
            left = _operand(values[0], prec, assoc, "left", indent)
            right = _operand(values[1], prec, assoc, "right", indent)
            if name in TIGHT_OPS:
                return f"{left}{name}{right}"
            return f"{left} {name} {right}"

        case "prefix":
            name = call.fn.identifier
            return name + _operand(values[0], PREFIX_OPS[name], LEFT, "right", indent)

        case "function":
            body = _expr(values[1], indent, "argument")
            return f"function({_formals(values[0], indent)}) {body}"

        case "if":
            text = f"if ({_expr(values[0], indent, 'argument')}) {_expr(values[1], indent, 'argument')}"
            if len(values) == 3:
                text += f" else {_expr(values[2], indent, 'argument')}"
            return text

        case "for":
            var = quote_name(values[0].identifier)
            seq = _expr(values[1], indent, "argument")
            return f"for ({var} in {seq}) {_expr(values[2], indent, 'argument')}"

        case "while":
            cond = _expr(values[0], indent, "argument")
            return f"while ({cond}) {_expr(values[1], indent, 'argument')}"

        case "repeat":
            return f"repeat {_expr(values[0], indent, 'argument')}"

        case "jump":
            return call.fn.identifier

        case "paren":
            return f"({_expr(values[0], indent, 'argument')})"

        case "block":
            return _block(values, indent)

        case "index":
            target = _postfix_target(values[0], indent)
            close = "]" if call.fn.identifier == "[" else "]]"
            return f"{target}{call.fn.identifier}{_arglist(call.args[1:], indent)}{close}"

        case "member":
            target = _postfix_target(values[0], indent)
            return f"{target}{call.fn.identifier}{_expr(values[1], indent, 'argument')}"

        case "ns":
            lhs = _expr(values[0], indent, "argument")
            rhs = _expr(values[1], indent, "argument")
            return f"{lhs}{call.fn.identifier}{rhs}"

    return f"{_callee(call.fn, indent)}({_arglist(call.args, indent)})"
