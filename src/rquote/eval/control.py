from __future__ import annotations

from typing import Any, List

from ..errors import BreakSignal, NextSignal, RRuntimeError, RTypeError, ReturnSignal
from ..runtime import base_scope, expect_arity, register_builtin
from ..tree import NA, NAType, Call, Constant, Name, as_value, is_empty
from ..types import Environment, ExprVector, RList, RValue
from ..utils import as_vector


def _eval(node: Any, env: Environment) -> RValue:
    from ..evaluator import eval_node
    return eval_node(node, env)


def as_condition(value: RValue, what: str = "argument") -> bool:
    """Coerce a value used as an if/while condition to a Python bool."""
    items = as_vector(value)

    if not items:
        raise RRuntimeError(f"{what} is of length zero")
    if len(items) > 1:
        raise RRuntimeError("the condition has length > 1")

    item = items[0]
    match item:
        case NAType():
            raise RRuntimeError("missing value where TRUE/FALSE needed")
        case bool():
            return item
        case int() | float():
            if item != item:
                raise RRuntimeError("missing value where TRUE/FALSE needed")
            return item != 0
        case str():
            if item in ("TRUE", "true", "T", "True"):
                return True
            if item in ("FALSE", "false", "F", "False"):
                return False
            raise RTypeError(f"{what} is not interpretable as logical")
        case _:
            raise RTypeError(f"{what} is not interpretable as logical")


def iteration_items(value: RValue) -> List[Any]:
    match value:
        case RList(items=items):
            return list(items)
        case ExprVector(nodes=nodes):
            return [as_value(n) for n in nodes]
        case Call():
            return [as_value(e) for e in value.elements]
    return as_vector(value)

# ---------- grouping ----------

@register_builtin("{", special=True)
def eval_block(call: Call, env: Environment) -> RValue:
    result: RValue = None
    for value in call.arg_values():
        result = _eval(value, env)
    return result


@register_builtin("(", special=True)
def eval_paren(call: Call, env: Environment) -> RValue:
    expect_arity("(", call.args, 1)
    return _eval(call.args[0].value, env)

# ---------- branches and loops ----------

@register_builtin("if", special=True)
def eval_if(call: Call, env: Environment) -> RValue:
    values = call.arg_values()
    expect_arity("if", values, 2, 3)

    if as_condition(_eval(values[0], env)):
        return _eval(values[1], env)
    if len(values) == 3:
        return _eval(values[2], env)
    return None


@register_builtin("for", special=True)
def eval_for(call: Call, env: Environment) -> RValue:
    values = call.arg_values()
    expect_arity("for", values, 3)

    var, seq, body = values
    if not isinstance(var, Name) or is_empty(var):
        raise RRuntimeError("invalid for() loop sequence")

    for item in iteration_items(_eval(seq, env)):
        env.define(var.identifier, item)
        try:
            _eval(body, env)
        except BreakSignal:
            break
        except NextSignal:
            continue

    return None


@register_builtin("while", special=True)
def eval_while(call: Call, env: Environment) -> RValue:
    values = call.arg_values()
    expect_arity("while", values, 2)

    cond, body = values
    while as_condition(_eval(cond, env)):
        try:
            _eval(body, env)
        except BreakSignal:
            break
        except NextSignal:
            continue

    return None


@register_builtin("repeat", special=True)
def eval_repeat(call: Call, env: Environment) -> RValue:
    expect_arity("repeat", call.args, 1)
    body = call.args[0].value

    while True:
        try:
            _eval(body, env)
        except BreakSignal:
            break
        except NextSignal:
            continue

    return None


@register_builtin("break", special=True)
def eval_break(call: Call, env: Environment) -> RValue:
    raise BreakSignal()


@register_builtin("next", special=True)
def eval_next(call: Call, env: Environment) -> RValue:
    raise NextSignal()


@register_builtin("return", special=True)
def eval_return(call: Call, env: Environment) -> RValue:
    expect_arity("return", call.args, 0, 1)
    value = _eval(call.args[0].value, env) if call.args else None
    raise ReturnSignal(value)

# ---------- short-circuit logic ----------

def _scalar_logical(value: RValue, op: str) -> Any:
    items = as_vector(value)
    if len(items) != 1:
        raise RTypeError(f"invalid 'x' type in 'x {op} y'")

    item = items[0]
    if isinstance(item, NAType):
        return item
    if isinstance(item, (bool, int, float)):
        return bool(item)
    raise RTypeError(f"invalid 'x' type in 'x {op} y'")


@register_builtin("&&", special=True)
def eval_and2(call: Call, env: Environment) -> RValue:
    expect_arity("&&", call.args, 2)

    left = _scalar_logical(_eval(call.args[0].value, env), "&&")
    if left is False:
        return False

    right = _scalar_logical(_eval(call.args[1].value, env), "&&")
    if right is False:
        return False
    if isinstance(left, NAType) or isinstance(right, NAType):
        return NA
    return True


@register_builtin("||", special=True)
def eval_or2(call: Call, env: Environment) -> RValue:
    expect_arity("||", call.args, 2)

    left = _scalar_logical(_eval(call.args[0].value, env), "||")
    if left is True:
        return True

    right = _scalar_logical(_eval(call.args[1].value, env), "||")
    if right is True:
        return True
    if isinstance(left, NAType) or isinstance(right, NAType):
        return NA
    return False

# ---------- odds and ends ----------

@register_builtin("~", special=True)
def eval_formula(call: Call, env: Environment) -> RValue:
    # a formula is its own unevaluated call
    return call


def _member_name(node: Any) -> str:
    match node:
        case Name(identifier=identifier) if identifier:
            return identifier
        case Constant(value=str() as text):
            return text
    raise RTypeError("bad namespace name")


@register_builtin("::", special=True)
@register_builtin(":::", special=True)
def eval_namespace(call: Call, env: Environment) -> RValue:
    expect_arity("::", call.args, 2)
    pkg = _member_name(call.args[0].value)
    name = _member_name(call.args[1].value)

    base = base_scope()
    if name not in base.vars:
        raise RRuntimeError(f"'{name}' is not an exported object from 'namespace:{pkg}'")
    return base.vars[name]


@register_builtin("local", special=True)
def eval_local(call: Call, env: Environment) -> RValue:
    expect_arity("local", call.args, 1, 2)

    if len(call.args) == 2:
        scope = _eval(call.args[1].value, env)
        if not isinstance(scope, Environment):
            raise RTypeError("invalid 'envir' argument")
    else:
        scope = Environment(parent=env)

    return _eval(call.args[0].value, scope)
