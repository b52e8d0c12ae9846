from __future__ import annotations

import logging
from typing import Any, List, Tuple

from ..errors import RRuntimeError
from ..runtime import call_function, expect_arity, register_builtin
from ..tree import Call, Constant, Name, is_empty
from ..types import Environment, Promise, RValue

logger = logging.getLogger(__name__)

# accessors whose second argument is a literal member name, never evaluated
MEMBER_ACCESSORS = ("$", "@")


def _eval(node: Any, env: Environment) -> RValue:
    from ..evaluator import eval_node
    return eval_node(node, env)


def _target_name(node: Any) -> str | None:
    match node:
        case Name(identifier=identifier) if identifier:
            return identifier
        case Constant(value=str() as text) if text:
            return text
    return None


def bind(name: str, value: RValue, env: Environment, superassign: bool) -> None:
    if superassign:
        env.assign_super(name, value)
    else:
        env.define(name, value)


def _current_value(node: Any, env: Environment, superassign: bool) -> RValue:
    name = _target_name(node)
    if name is None:
        return _eval(node, env)

    scope = env.parent if superassign and env.parent is not None else env
    value = scope.lookup(name)
    if isinstance(value, Promise):
        value = value.force()
    return value


def _replacement_args(fname: str, call: Call, env: Environment) -> List[Tuple[str | None, Any]]:
    out = []

    for arg in call.args[1:]:
        value = arg.value
        if fname in MEMBER_ACCESSORS and isinstance(value, Name) and not is_empty(value):
            out.append((arg.tag, value.identifier))
        elif is_empty(value):
            out.append((arg.tag, value))
        else:
            out.append((arg.tag, _eval(value, env)))

    return out


def assign_target(target: Any, value: RValue, env: Environment, superassign: bool = False) -> None:
    """Bind ``value`` to an assignment target.

    A call target ``f(x, ...) <- value`` is rewritten as
    ``x <- `f<-`(x, ..., value = value)``, recursing until the innermost
    target is a plain name.
    """
    name = _target_name(target)
    if name is not None:
        bind(name, value, env, superassign)
        return

    match target:
        case Call(fn=Name(identifier=fname), args=args) if fname and args:
            inner = args[0].value
            if _target_name(inner) is None and not isinstance(inner, Call):
                raise RRuntimeError("invalid assignment target")

            current = _current_value(inner, env, superassign)
            extra = _replacement_args(fname, target, env)
            replacement = env.lookup_function(f"{fname}<-")

            logger.debug("replacement call %s<-", fname)
            updated = call_function(replacement, [(None, current), *extra, ("value", value)], env)
            assign_target(inner, updated, env, superassign)
        case _:
            raise RRuntimeError("invalid (do_set) left-hand side to assignment")


@register_builtin("<-", special=True)
@register_builtin("=", special=True)
def eval_assign(call: Call, env: Environment) -> RValue:
    expect_arity("<-", call.args, 2)
    target, expr = call.arg_values()

    value = _eval(expr, env)
    assign_target(target, value, env)
    return value


@register_builtin("<<-", special=True)
def eval_superassign(call: Call, env: Environment) -> RValue:
    expect_arity("<<-", call.args, 2)
    target, expr = call.arg_values()

    value = _eval(expr, env)
    assign_target(target, value, env, superassign=True)
    return value
