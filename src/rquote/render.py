"""Indented tree printer behind ast().

Each node becomes one line, children indented two spaces under their parent:

    \\- ()
      \\- `f
      \\-  1
      \\- na.rm =  TRUE

Names get a leading backquote with their text escaped as inside a back-quoted
name, so every node stays on one line. Tags and formal names print the way
source would write them.
"""
from __future__ import annotations

from typing import Any, List, Optional

from .deparse import escape_text, format_constant, quote_name
from .tree import Call, Constant, Name, Pairlist

BRANCH = "\\- "
INDENT = "  "


def render(node: Any) -> str:
    lines: List[str] = []
    _render_into(node, 0, None, lines)
    return "\n".join(lines)


def _head(node: Any) -> str:
    match node:
        case Constant(value=value):
            return " " + format_constant(value)
        case Name(identifier=""):
            return "<missing>"
        case Name(identifier=identifier):
            return "`" + escape_text(identifier, "`")
        case Call():
            return "()"
        case Pairlist():
            return "[]"
        case _:
            return f"<inline {type(node).__name__}>"


def _render_into(node: Any, depth: int, label: Optional[str], lines: List[str]) -> None:
    prefix = f"{quote_name(label)} = " if label is not None else ""
    lines.append(f"{INDENT * depth}{BRANCH}{prefix}{_head(node)}")

    match node:
        case Call(fn=fn, args=args):
            _render_into(fn, depth + 1, None, lines)
            for arg in args:
                _render_into(arg.value, depth + 1, arg.tag, lines)
        case Pairlist(formals=formals):
            for formal in formals:
                _render_into(formal.default, depth + 1, formal.name, lines)
