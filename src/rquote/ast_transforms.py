"""
Lowering of the parser's lark CST into expression nodes.

ToExpr is a lark Transformer: callbacks run bottom-up, so every callback sees
already-lowered children. Surface sugar disappears here: `->` becomes `<-`
with swapped operands, `\\(x)` becomes `function`, `x |> f(y)` becomes
`f(x, y)`, and a string used as a callee becomes a name.
"""

from __future__ import annotations

from typing import Any, List

from lark import Token, Transformer, Tree, v_args
from lark.exceptions import VisitError

from .errors import ParseError, RQuoteError
from .lexer_rd import number_value
from .tree import (
    EMPTY,
    NA,
    NA_CHARACTER,
    NA_INTEGER,
    NA_REAL,
    Arg,
    Call,
    Constant,
    Formal,
    Name,
    Pairlist,
)

NA_BY_SPELLING = {
    'NA': NA,
    'NA_integer_': NA_INTEGER,
    'NA_real_': NA_REAL,
    'NA_character_': NA_CHARACTER,
}

PLACEHOLDER = Name('_')


class ToExpr(Transformer):
    """CST -> expression nodes."""

    # ---------- leaves ----------

    def NUM_CONST(self, tok: Token) -> Constant:
        return Constant(float(number_value(str(tok))))

    def INT_CONST(self, tok: Token) -> Constant:
        return Constant(number_value(str(tok)))

    def STR_CONST(self, tok: Token) -> Constant:
        return Constant(str(tok))

    def NULL_CONST(self, tok: Token) -> Constant:
        return Constant(None)

    def TRUE(self, tok: Token) -> Constant:
        return Constant(True)

    def FALSE(self, tok: Token) -> Constant:
        return Constant(False)

    def NA_CONST(self, tok: Token) -> Constant:
        return Constant(NA_BY_SPELLING[str(tok)])

    def SYMBOL(self, tok: Token) -> Name:
        return Name(str(tok))

    # ---------- structure ----------

    def program(self, children: List[Any]) -> List[Any]:
        return list(children)

    @v_args(inline=True)
    def binop(self, left, op: Token, right) -> Call:
        if op.type == 'RIGHT_ASSIGN':
            target = '<<-' if op.value == '->>' else '<-'
            return Call(Name(target), (Arg(None, right), Arg(None, left)))

        return Call(Name(op.value), (Arg(None, left), Arg(None, right)))

    @v_args(inline=True)
    def unop(self, op: Token, operand) -> Call:
        return Call(Name(op.value), (Arg(None, operand),))

    @v_args(inline=True)
    def paren(self, inner) -> Call:
        return Call(Name('('), (Arg(None, inner),))

    def block(self, children) -> Call:
        return Call(Name('{'), tuple(Arg(None, c) for c in children))

    def args(self, children) -> List[Arg]:
        return list(children)

    def arg(self, children) -> Arg:
        if not children:
            return Arg(None, EMPTY)

        if isinstance(children[0], Token) and children[0].type == 'TAG':
            tag = str(children[0])
            value = children[1] if len(children) > 1 else EMPTY
            return Arg(tag, value)

        return Arg(None, children[0])

    @v_args(inline=True)
    def call(self, callee, args: List[Arg]) -> Call:
        # "f"(x) calls f
        if isinstance(callee, Constant) and isinstance(callee.value, str):
            callee = Name(callee.value)
        return Call(callee, tuple(args))

    @v_args(inline=True)
    def index(self, target, args: List[Arg]) -> Call:
        return Call(Name('['), (Arg(None, target),) + tuple(args))

    @v_args(inline=True)
    def dindex(self, target, args: List[Arg]) -> Call:
        return Call(Name('[['), (Arg(None, target),) + tuple(args))

    @v_args(inline=True)
    def dollar(self, target, op: Token, rhs) -> Call:
        return Call(Name(op.value), (Arg(None, target), Arg(None, rhs)))

    @v_args(inline=True)
    def ns(self, lhs, op: Token, rhs) -> Call:
        return Call(Name(op.value), (Arg(None, lhs), Arg(None, rhs)))

    @v_args(inline=True)
    def pipe(self, lhs, op: Token, rhs) -> Call:
        if not isinstance(rhs, Call) or rhs.fn_name == 'function':
            raise ParseError(
                "the pipe operator requires a function call as RHS", op.line, op.column
            )

        slots = [i for i, a in enumerate(rhs.args) if a.value == PLACEHOLDER]

        if not slots:
            return Call(rhs.fn, (Arg(None, lhs),) + rhs.args)

        if len(slots) > 1:
            raise ParseError(
                "pipe placeholder may only appear once", op.line, op.column
            )

        slot = slots[0]
        if rhs.args[slot].tag is None:
            raise ParseError(
                "pipe placeholder can only be used as a named argument", op.line, op.column
            )

        return rhs.replace_arg(slot, lhs)

    # ---------- keyword constructs ----------

    @v_args(inline=True)
    def formal(self, name: Token, default=EMPTY) -> Formal:
        return Formal(str(name), default)

    def formals(self, children) -> Pairlist:
        return Pairlist(tuple(children))

    @v_args(inline=True)
    def fndef(self, formals: Pairlist, body) -> Call:
        return Call(Name('function'), (Arg(None, formals), Arg(None, body)))

    lambdadef = fndef

    @v_args(inline=True)
    def ifexpr(self, cond, yes, no=None) -> Call:
        args = [Arg(None, cond), Arg(None, yes)]
        if no is not None:
            args.append(Arg(None, no))
        return Call(Name('if'), tuple(args))

    @v_args(inline=True)
    def forexpr(self, var: Name, seq, body) -> Call:
        return Call(Name('for'), (Arg(None, var), Arg(None, seq), Arg(None, body)))

    @v_args(inline=True)
    def whileexpr(self, cond, body) -> Call:
        return Call(Name('while'), (Arg(None, cond), Arg(None, body)))

    @v_args(inline=True)
    def repeatexpr(self, body) -> Call:
        return Call(Name('repeat'), (Arg(None, body),))

    def breakexpr(self, children) -> Call:
        return Call(Name('break'), ())

    def nextexpr(self, children) -> Call:
        return Call(Name('next'), ())

    def __default__(self, data, children, meta):
        raise ParseError(f"unknown syntax tree node '{data}'")


def to_expr(cst: Tree) -> List[Any]:
    """Lower a 'program' CST into a list of top-level expression nodes."""
    try:
        return ToExpr().transform(cst)
    except VisitError as exc:
        if isinstance(exc.orig_exc, RQuoteError):
            raise exc.orig_exc from None
        raise
