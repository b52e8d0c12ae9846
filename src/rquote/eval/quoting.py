"""Code-as-data builtins: quoting, quasiquotation, substitution and evaluation."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, List, Optional

from ..deparse import deparse_lines
from ..errors import InvalidCallShape, RRuntimeError, RTypeError
from ..render import render
from ..runtime import ArgList, expect_arity, register_builtin, require
from ..tree import (
    EMPTY,
    Arg,
    Call,
    Formal,
    Name,
    Pairlist,
    arity,
    as_call,
    as_node,
    as_value,
    is_empty,
    make_name,
    make_pairlist,
)
from ..types import DotsList, Environment, ExprVector, Promise, RList, RValue
from ..utils import as_character, as_code, as_vector, format_number, from_items
from ..walk import all_names, all_vars, find_assign, logical_abbr, modify_call, replace_names


def _eval(node: Any, env: Environment) -> RValue:
    from ..evaluator import eval_node
    return eval_node(node, env)


# ---------- quote ----------

@register_builtin("quote", special=True)
def eval_quote(call: Call, env: Environment) -> RValue:
    expect_arity("quote", call.args, 1)
    arg = call.args[0]

    if arg.tag not in (None, "expr"):
        raise RRuntimeError(f"supplied argument name '{arg.tag}' does not match 'expr'")
    return as_value(arg.value)


def _splice_items(value: RValue) -> List[Arg]:
    match value:
        case RList():
            return [Arg(name or None, as_node(item)) for name, item in value.pairs()]
        case ExprVector(nodes=nodes):
            return [Arg(None, n) for n in nodes]
        case None:
            return []
    return [Arg(None, as_node(v)) for v in as_vector(value)]


def _is_unquote(node: Any, marker: str) -> bool:
    return (
        isinstance(node, Call)
        and isinstance(node.fn, Name)
        and node.fn.identifier == marker
        and len(node.args) == 1
    )


def unquote(node: Any, where: Environment, splice: bool = True) -> Any:
    """Evaluate `.()` holes in ``node``; `..()` in argument position splices."""
    if _is_unquote(node, "."):
        return as_node(_eval(node.args[0].value, where))

    match node:
        case Call(fn=fn, args=args):
            new_args: List[Arg] = []
            for arg in args:
                if splice and _is_unquote(arg.value, ".."):
                    new_args.extend(_splice_items(_eval(arg.value.args[0].value, where)))
                else:
                    new_args.append(Arg(arg.tag, unquote(arg.value, where, splice)))
            return Call(unquote(fn, where, splice), tuple(new_args))
        case Pairlist(formals=formals):
            return Pairlist(tuple(Formal(f.name, unquote(f.default, where, splice)) for f in formals))

    return node


@register_builtin("bquote", special=True)
def eval_bquote(call: Call, env: Environment) -> RValue:
    expect_arity("bquote", call.args, 1, 3)

    expr = call.args[0].value
    where = env
    splice = True

    for arg in call.args[1:]:
        if arg.tag == "splice":
            splice = bool(_eval(arg.value, env))
            continue
        where = _eval(arg.value, env)

    if isinstance(where, RList):
        where = _list_env(where, env)
    if not isinstance(where, Environment):
        raise RTypeError("'where' must be an environment")

    return as_value(unquote(expr, where, splice))

# ---------- substitute ----------

def substitute(expr: Any, env: Environment | RList) -> Any:
    """Replace names bound in ``env`` by the expressions (or values) behind them."""
    if isinstance(env, RList):
        bound = {name: item for name, item in env.pairs() if name}

        def lookup_list(name: str) -> Optional[Any]:
            if name not in bound:
                return None
            return as_node(bound[name])

        return replace_names(expr, lookup_list)

    if env.is_global:
        return expr

    def lookup(name: str) -> Optional[Any]:
        if name not in env.vars or name == "...":
            return None

        value = env.vars[name]
        if isinstance(value, Promise):
            return value.expr
        if is_empty(value):
            return EMPTY
        return as_node(value)

    def splice(name: str) -> Optional[List[Arg]]:
        if name != "...":
            return None
        dots = env.vars.get("...")
        if not isinstance(dots, DotsList):
            return None
        return [
            Arg(tag, entry.expr if isinstance(entry, Promise) else entry)
            for tag, entry in dots.entries
        ]

    return replace_names(expr, lookup, splice)


@register_builtin("substitute", special=True)
def eval_substitute(call: Call, env: Environment) -> RValue:
    expect_arity("substitute", call.args, 0, 2)

    if not call.args:
        return EMPTY

    target = env
    if len(call.args) == 2:
        target = _eval(call.args[1].value, env)
        if not isinstance(target, (Environment, RList)):
            raise RTypeError("invalid environment specified")

    return as_value(substitute(call.args[0].value, target))

# ---------- evaluation ----------

def _list_env(values: RList, parent: Environment) -> Environment:
    scope = Environment(parent=parent)
    for name, value in values.pairs():
        if name:
            scope.define(name, value)
    return scope


def _eval_in(expr: RValue, scope: Environment) -> RValue:
    if isinstance(expr, ExprVector):
        result: RValue = None
        for node in expr.nodes:
            result = _eval(node, scope)
        return result
    if isinstance(expr, (Name, Call)):
        return _eval(expr, scope)
    return expr


def _resolve_envir(envir: RValue, enclos: RValue, frame: Environment) -> Environment:
    if is_empty(envir):
        return frame
    if isinstance(envir, Environment):
        return envir

    parent = enclos if isinstance(enclos, Environment) else frame
    if isinstance(envir, RList):
        return _list_env(envir, parent)
    if envir is None:
        return Environment(parent=parent)
    raise RTypeError("invalid 'envir' argument")


@register_builtin("eval", formals=("expr", "envir", "enclos"))
def builtin_eval(frame: Environment, expr: RValue = EMPTY, envir: RValue = EMPTY, enclos: RValue = EMPTY) -> RValue:
    return _eval_in(require(expr, "expr"), _resolve_envir(envir, enclos, frame))


@register_builtin("evalq", special=True)
def eval_evalq(call: Call, env: Environment) -> RValue:
    expect_arity("evalq", call.args, 1, 3)
    values = [_eval(a.value, env) for a in call.args[1:]]

    envir = values[0] if values else EMPTY
    enclos = values[1] if len(values) > 1 else EMPTY
    return _eval_in(call.args[0].value, _resolve_envir(envir, enclos, env))

# ---------- text ----------

@register_builtin("deparse", formals=("expr", "width.cutoff"))
def builtin_deparse(frame: Environment, expr: RValue = None, width_cutoff: RValue = 60) -> RValue:
    lines = deparse_lines(as_code(expr))
    return lines[0] if len(lines) == 1 else lines


@register_builtin("parse", formals=("file", "n", "text", "keep.source"))
def builtin_parse(frame: Environment, file: RValue = "", n: RValue = None,
                  text: RValue = None, keep_source: RValue = False) -> RValue:
    from ..runner import parse

    if text is not None:
        source = "\n".join(as_character(text))
    elif file == "" or file is None:
        source = sys.stdin.read()
    else:
        source = Path(as_character(file)[0]).read_text(encoding="utf-8")

    nodes = parse(source)
    if n is not None and int(as_vector(n)[0]) >= 0:
        nodes = nodes[:int(as_vector(n)[0])]
    return ExprVector(tuple(nodes))


@register_builtin("expression", special=True)
def eval_expression(call: Call, env: Environment) -> RValue:
    return ExprVector(tuple(call.arg_values()))

# ---------- construction ----------

@register_builtin("call")
def builtin_call(frame: Environment, args: ArgList) -> RValue:
    if not args:
        raise RRuntimeError("first argument must be a character string")

    _, name = args[0]
    if not isinstance(name, str):
        raise RTypeError("first argument must be a character string")

    if not name:
        raise InvalidCallShape("a call needs a callee in element 0")

    return Call(make_name(name), tuple(Arg(tag, as_node(value)) for tag, value in args[1:]))


@register_builtin("as.call", formals=("x",))
def builtin_as_call(frame: Environment, x: RValue = EMPTY) -> RValue:
    match require(x, "x"):
        case Call():
            return x
        case RList(items=items, names=names):
            return as_call(items, [n or None for n in names] if names else None)
        case list():
            return as_call(x)
        case ExprVector(nodes=nodes):
            return as_call(list(nodes))
    raise RTypeError("invalid argument list")


@register_builtin("as.name", formals=("x",))
@register_builtin("as.symbol", formals=("x",))
def builtin_as_name(frame: Environment, x: RValue = EMPTY) -> RValue:
    match require(x, "x"):
        case Name():
            return x
        case str():
            return make_name(x)
        case float():
            return make_name(format_number(x))
        case bool() | int():
            return make_name(as_character(x)[0])
        case list() if x:
            return builtin_as_name(frame, x[0])
    raise RTypeError("invalid type/length (symbol/0) in vector allocation")


@register_builtin("alist", special=True)
def eval_alist(call: Call, env: Environment) -> RValue:
    names = [a.tag or "" for a in call.args]
    return RList([as_value(v) for v in call.arg_values()], names if any(names) else None)


@register_builtin("pairlist")
def builtin_pairlist(frame: Environment, args: ArgList) -> RValue:
    if not args:
        return None
    if any(not tag for tag, _ in args):
        raise RRuntimeError("pairlist entries need names")
    return make_pairlist((tag, value) for tag, value in args)


@register_builtin("as.pairlist", formals=("x",))
def builtin_as_pairlist(frame: Environment, x: RValue = None) -> RValue:
    match x:
        case None:
            return None
        case Pairlist():
            return x
        case RList(items=items, names=names):
            if names is None or not all(names):
                raise RRuntimeError("pairlist entries need names")
            return make_pairlist(zip(names, items))
    raise RTypeError("cannot convert to a pairlist")

# ---------- tree tools ----------

@register_builtin("ast", special=True)
def eval_ast(call: Call, env: Environment) -> RValue:
    expect_arity("ast", call.args, 1)
    print(render(call.args[0].value))
    return None


@register_builtin("arity", formals=("x",))
def builtin_arity(frame: Environment, x: RValue = EMPTY) -> RValue:
    node = require(x, "x")
    if not isinstance(node, Call):
        raise RTypeError("arity() needs a call")
    return arity(node)


@register_builtin("modify_call", formals=("call", "..."))
def builtin_modify_call(frame: Environment, call: RValue = EMPTY, dots: Optional[ArgList] = None) -> RValue:
    target = require(call, "call")
    if not isinstance(target, Call):
        raise RTypeError("modify_call() needs a call")

    changes = {}
    for tag, value in dots or []:
        if not tag:
            raise InvalidCallShape("all new arguments must be named")
        changes[tag] = value
    return modify_call(target, changes)


@register_builtin("all.names", formals=("expr",))
def builtin_all_names(frame: Environment, expr: RValue = EMPTY) -> RValue:
    return from_items(all_names(require(expr, "expr")))


@register_builtin("all.vars", formals=("expr",))
def builtin_all_vars(frame: Environment, expr: RValue = EMPTY) -> RValue:
    return from_items(all_vars(require(expr, "expr")))

@register_builtin("find_assign", formals=("x",))
def builtin_find_assign(frame: Environment, x: RValue = EMPTY) -> RValue:
    return from_items(find_assign(require(x, "x")))


@register_builtin("logical_abbr", formals=("x",))
def builtin_logical_abbr(frame: Environment, x: RValue = EMPTY) -> RValue:
    return logical_abbr(require(x, "x"))

