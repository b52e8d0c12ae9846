from __future__ import annotations

from typing import List, Optional

from ..errors import RRuntimeError, RTypeError
from ..runtime import call_function, expect_arity, register_builtin, require
from ..tree import EMPTY, Arg, Call, Name, Pairlist, as_node, as_value, is_empty, make_pairlist
from ..types import Builtin, DotsList, Environment, FunctionDef, Promise, RList, RValue, make_function
from ..utils import as_vector
from .args import match_args


def closure_frame(env: Environment) -> Optional[Environment]:
    """The frame of the closure call ``env`` belongs to, if any."""
    for frame in env.frames():
        if frame.function is not None:
            return frame
    return None


def _function_arg(fun: RValue, env: Environment) -> FunctionDef | Builtin:
    if isinstance(fun, str):
        return env.lookup_function(fun)
    if isinstance(fun, Name) and not is_empty(fun):
        return env.lookup_function(fun.identifier)
    if isinstance(fun, (FunctionDef, Builtin)):
        return fun
    raise RTypeError("argument is not a function")


def _current_function(env: Environment) -> FunctionDef:
    frame = closure_frame(env)
    if frame is None:
        raise RRuntimeError("not called from inside a function")
    return frame.function


def _as_formals(value: RValue) -> Pairlist:
    match value:
        case None:
            return Pairlist(())
        case Pairlist():
            return value
        case RList(items=items, names=names):
            if not items:
                return Pairlist(())
            if names is None or not all(names):
                raise RRuntimeError("all formal arguments need names")
            return make_pairlist(zip(names, items))
    raise RTypeError("formals must be a list or pairlist")

# ---------- definition ----------

@register_builtin("function", special=True)
def eval_function(call: Call, env: Environment) -> RValue:
    values = call.arg_values()
    expect_arity("function", values, 2, 3)

    formals, body = values[0], values[1]
    return FunctionDef(_as_formals(formals), body, env)


@register_builtin("make_function", formals=("args", "body", "env"))
def builtin_make_function(frame: Environment, args: RValue = EMPTY, body: RValue = EMPTY, env: RValue = EMPTY) -> RValue:
    formals = _as_formals(require(args, "args"))
    scope = frame if is_empty(env) else env

    if not isinstance(scope, Environment):
        raise RTypeError("'env' must be an environment")

    return make_function(formals, require(body, "body"), scope)

# ---------- introspection ----------

@register_builtin("formals", formals=("fun", "envir"))
def builtin_formals(frame: Environment, fun: RValue = EMPTY, envir: RValue = EMPTY) -> RValue:
    fn = _current_function(frame) if is_empty(fun) else _function_arg(fun, frame)

    if isinstance(fn, Builtin):
        return None
    return fn.formals if len(fn.formals) else None


@register_builtin("body", formals=("fun",))
def builtin_body(frame: Environment, fun: RValue = EMPTY) -> RValue:
    fn = _current_function(frame) if is_empty(fun) else _function_arg(fun, frame)

    if isinstance(fn, Builtin):
        return None
    return as_value(fn.body)


@register_builtin("args", formals=("name",))
def builtin_args(frame: Environment, name: RValue = EMPTY) -> RValue:
    fn = _function_arg(require(name, "name"), frame)

    if isinstance(fn, Builtin):
        if fn.formals is None:
            return None
        return FunctionDef(fn.formals, None, frame.global_env())
    return FunctionDef(fn.formals, None, fn.scope)


@register_builtin("formals<-", formals=("fun", "envir", "value"))
def builtin_formals_assign(frame: Environment, fun: RValue = EMPTY, envir: RValue = EMPTY, value: RValue = None) -> RValue:
    fn = _function_arg(require(fun, "fun"), frame)
    if isinstance(fn, Builtin):
        raise RTypeError("cannot set formals of a primitive")
    return FunctionDef(_as_formals(value), fn.body, fn.scope)


@register_builtin("body<-", formals=("fun", "envir", "value"))
def builtin_body_assign(frame: Environment, fun: RValue = EMPTY, envir: RValue = EMPTY, value: RValue = None) -> RValue:
    fn = _function_arg(require(fun, "fun"), frame)
    if isinstance(fn, Builtin):
        raise RTypeError("cannot set body of a primitive")
    return FunctionDef(fn.formals, as_node(value), fn.scope)


@register_builtin("environment", formals=("fun",))
def builtin_environment(frame: Environment, fun: RValue = None) -> RValue:
    if fun is None:
        return frame
    if isinstance(fun, FunctionDef):
        return fun.scope
    if isinstance(fun, Builtin):
        return None
    raise RTypeError("argument is not a function")


@register_builtin("environment<-", formals=("fun", "value"))
def builtin_environment_assign(frame: Environment, fun: RValue = EMPTY, value: RValue = EMPTY) -> RValue:
    fn = require(fun, "fun")
    if not isinstance(fn, FunctionDef):
        raise RTypeError("replacement object is not an environment")
    if not isinstance(value, Environment):
        raise RTypeError("replacement object is not an environment")
    return FunctionDef(fn.formals, fn.body, value)

# ---------- call frames ----------

def match_call(fn: FunctionDef | Builtin, call: Call, caller: Optional[Environment] = None,
               expand_dots: bool = True) -> Call:
    """``call`` with every argument tagged by the formal it matches.

    Arguments passed through `...` are replaced by the expressions the
    caller supplied for them.
    """
    formals = fn.formals if fn.formals is not None else Pairlist(())
    supplied: List[tuple] = []

    for arg in call.args:
        value = arg.value
        if isinstance(value, Name) and value.identifier == "..." and caller is not None:
            dots = caller.locate("...")
            if dots is not None and isinstance(dots.vars["..."], DotsList):
                for tag, entry in dots.vars["..."].entries:
                    supplied.append((tag, entry.expr if isinstance(entry, Promise) else entry))
                continue
        supplied.append((arg.tag, value))

    matched, dots_args = match_args(formals, supplied)
    args: List[Arg] = []

    for formal in formals:
        if formal.name == "...":
            extra = [Arg(tag, as_node(v)) for tag, v in dots_args]
            if expand_dots or not extra:
                args.extend(extra)
            else:
                args.append(Arg("...", Call(Name("list"), tuple(extra))))
        elif formal.name in matched and not is_empty(matched[formal.name]):
            args.append(Arg(formal.name, as_node(matched[formal.name])))

    return Call(call.fn, tuple(args))


@register_builtin("match.call", formals=("definition", "call", "expand.dots", "envir"))
def builtin_match_call(frame: Environment, definition: RValue = EMPTY, call: RValue = EMPTY,
                       expand_dots: RValue = True, envir: RValue = EMPTY) -> RValue:
    current = closure_frame(frame)

    if is_empty(definition) or is_empty(call):
        if current is None:
            raise RRuntimeError("match.call() was called from outside a function")

    fn = current.function if is_empty(definition) else _function_arg(definition, frame)
    target = current.call if is_empty(call) else call

    if not isinstance(target, Call):
        raise RTypeError("invalid 'call' argument")

    if isinstance(envir, Environment):
        caller = envir
    else:
        caller = current.caller if current is not None and is_empty(call) else None

    return match_call(fn, target, caller, bool(expand_dots))


@register_builtin("sys.call", formals=("which",))
def builtin_sys_call(frame: Environment, which: RValue = 0) -> RValue:
    current = closure_frame(frame)
    return None if current is None else current.call


@register_builtin("sys.function", formals=("which",))
def builtin_sys_function(frame: Environment, which: RValue = 0) -> RValue:
    return _current_function(frame)


@register_builtin("parent.frame", formals=("n",))
def builtin_parent_frame(frame: Environment, n: RValue = 1) -> RValue:
    env = frame

    for _ in range(int(as_vector(n)[0])):
        current = closure_frame(env)
        if current is None or current.caller is None:
            return frame.global_env()
        env = current.caller

    return env


def _is_missing(name: str, env: Environment) -> bool:
    if name in env.missing:
        return True

    value = env.vars.get(name)
    if is_empty(value):
        return True

    # a promise that just forwards another argument is missing when that one is
    if isinstance(value, Promise) and not value.forced and value.env is not None:
        expr = value.expr
        if isinstance(expr, Name) and not is_empty(expr) and expr.identifier in value.env.vars:
            if value.env.function is not None:
                return _is_missing(expr.identifier, value.env)

    return False


@register_builtin("missing", special=True)
def eval_missing(call: Call, env: Environment) -> RValue:
    expect_arity("missing", call.args, 1)
    target = call.args[0].value

    if not isinstance(target, Name) or is_empty(target):
        raise RRuntimeError("invalid use of 'missing'")

    current = closure_frame(env)
    if current is None or target.identifier not in current.function.formals.names:
        raise RRuntimeError("'missing' can only be used for arguments")

    return _is_missing(target.identifier, current)


@register_builtin("do.call", formals=("what", "args", "quote", "envir"))
def builtin_do_call(frame: Environment, what: RValue = EMPTY, args: RValue = None,
                    quote: RValue = False, envir: RValue = EMPTY) -> RValue:
    fn = _function_arg(require(what, "what"), frame)
    scope = envir if isinstance(envir, Environment) else frame

    match args:
        case RList():
            supplied = [(name or None, value) for name, value in args.pairs()]
        case None:
            supplied = []
        case _:
            supplied = [(None, value) for value in as_vector(args)]

    name = fn.name if isinstance(fn, Builtin) else None
    call = Call(Name(name) if name else as_node(fn), tuple(Arg(t, as_node(v)) for t, v in supplied))
    return call_function(fn, supplied, scope, call)
