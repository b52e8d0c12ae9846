from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Sequence, Tuple

from .errors import MissingArgument, RRuntimeError, RTypeError
from .runtime import ArgList, apply_closure, call_builtin, init_stdlib
from .tree import Arg, Call, Constant, Name, Pairlist, is_empty, is_node
from .types import Builtin, DotsList, Environment, FunctionDef, Promise, RValue, is_function

logger = logging.getLogger(__name__)

_DOTS_N = re.compile(r"^\.\.([1-9][0-9]*)$")

# ---------------- Public API ----------------

def eval_expr(node: Any, env: Optional[Environment] = None) -> RValue:
    init_stdlib()

    if env is None:
        from .runtime import new_scope
        env = new_scope()

    return eval_node(node, env)

# ---------------- Core evaluator ----------------

def eval_node(node: Any, env: Environment) -> RValue:
    match node:
        case Constant(value=value):
            return value
        case Name():
            return _eval_name(node, env)
        case Call():
            try:
                return eval_call(node, env)
            except RRuntimeError as e:
                if not e.located:
                    e.call = node
                    e.located = True
                raise
        case _:
            # pairlists and inlined values evaluate to themselves
            return node


def _eval_name(name: Name, env: Environment) -> RValue:
    ident = name.identifier

    if ident == "":
        raise MissingArgument()

    if ident == "...":
        raise RRuntimeError("'...' used in an incorrect context")

    m = _DOTS_N.match(ident)
    if m is not None:
        return dots_element(env, int(m.group(1)))

    return force_value(ident, env.lookup(ident))


def force_value(ident: str, value: Any) -> RValue:
    """Force a promise binding; an unsupplied argument is an error to read."""
    if isinstance(value, Promise):
        value = value.force()

    if is_empty(value):
        raise MissingArgument(f'argument "{ident}" is missing, with no default')

    return value


def lookup_dots(env: Environment) -> DotsList:
    target = env.locate("...")
    if target is None:
        raise RRuntimeError("'...' used in an incorrect context")

    dots = target.vars["..."]
    if not isinstance(dots, DotsList):
        raise RRuntimeError("'...' used in an incorrect context")
    return dots


def dots_element(env: Environment, n: int) -> RValue:
    dots = lookup_dots(env)

    if n > len(dots):
        raise RRuntimeError(f"the ... list does not contain {n} elements")

    _, value = dots.entries[n - 1]
    return force_value(f"..{n}", value)

# ---------------- Calls ----------------

def resolve_callee(fn: Any, env: Environment) -> FunctionDef | Builtin:
    match fn:
        case Name(identifier=ident) if ident:
            return env.lookup_function(ident)
        case Constant(value=str() as ident):
            return env.lookup_function(ident)
        case Call():
            value = eval_node(fn, env)
        case _:
            value = fn

    if not is_function(value):
        raise RTypeError("attempt to apply non-function")
    return value


def eval_call(call: Call, env: Environment) -> RValue:
    fn = resolve_callee(call.fn, env)

    if isinstance(fn, Builtin):
        if fn.special:
            return fn.fn(call, env)
        return call_builtin(fn, eval_args(call.args, env, fn.accepts_missing), env)

    logger.debug("closure call %r", call.fn)
    return apply_closure(fn, promise_args(call.args, env), env, call)


def _is_dots(value: Any) -> bool:
    return isinstance(value, Name) and value.identifier == "..."


def eval_args(args: Sequence[Arg], env: Environment, allow_empty: bool = False) -> ArgList:
    """Evaluate call arguments for a builtin, expanding `...` in place.

    Blank argument slots are an error unless ``allow_empty`` is set, in which
    case they are passed through as the empty name.
    """
    out: List[Tuple[Optional[str], Any]] = []

    for arg in args:
        if _is_dots(arg.value):
            for tag, value in lookup_dots(env).entries:
                if is_empty(value):
                    if not allow_empty:
                        raise RRuntimeError(f"argument {len(out) + 1} is empty")
                    out.append((tag, value))
                else:
                    out.append((tag, force_value(f"..{len(out) + 1}", value)))
            continue

        if is_empty(arg.value):
            if not allow_empty:
                raise RRuntimeError(f"argument {len(out) + 1} is empty")
            out.append((arg.tag, arg.value))
            continue

        out.append((arg.tag, eval_node(arg.value, env)))

    return out


def promise_args(args: Sequence[Arg], env: Environment) -> ArgList:
    """Wrap call arguments as promises for a closure, splicing `...` entries."""
    out: List[Tuple[Optional[str], Any]] = []

    for arg in args:
        value = arg.value

        if _is_dots(value):
            out.extend(lookup_dots(env).entries)
        elif is_empty(value):
            out.append((arg.tag, value))
        elif isinstance(value, Constant):
            out.append((arg.tag, Promise.resolved(value.value, value)))
        elif is_node(value) and not isinstance(value, Pairlist):
            out.append((arg.tag, Promise(value, env)))
        else:
            out.append((arg.tag, Promise.resolved(value)))

    return out


def eval_sequence(nodes: Sequence[Any], env: Environment) -> RValue:
    result: RValue = None
    for node in nodes:
        result = eval_node(node, env)
    return result
