from __future__ import annotations

import importlib
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .errors import (
    MissingArgument,
    RArityError,
    RTypeError,
    ReturnSignal,
)
from .tree import EMPTY, Arg, Call, Formal, Name, Pairlist, as_node, is_empty
from .types import (
    Builtin,
    BuiltinFn,
    Builtins,
    DotsList,
    Environment,
    FunctionDef,
    Promise,
    RValue,
    is_function,
)

ArgList = List[Tuple[Optional[str], Any]]

_STDLIB_INITIALIZED = False

STDLIB_MODULES = (
    "rquote.eval.arith",
    "rquote.eval.control",
    "rquote.eval.assign",
    "rquote.eval.fn",
    "rquote.eval.quoting",
    "rquote.eval.subset",
    "rquote.stdlib",
)

_BASE_SCOPE: Optional[Environment] = None


def init_stdlib() -> None:
    """Load builtin modules (idempotent) so register_builtin hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    for module_name in STDLIB_MODULES:
        importlib.import_module(module_name)

    _STDLIB_INITIALIZED = True


def register_builtin(
    name: str,
    *,
    special: bool = False,
    formals: Optional[Sequence[str]] = None,
    accepts_missing: bool = False,
):
    """Register ``fn`` as a builtin.

    Specials are called as ``fn(call, env)``. Other builtins get evaluated
    arguments: ``fn(frame, args)`` with the raw (tag, value) list, or, when
    ``formals`` is given, ``fn(frame, **matched)`` where dotted R names map to
    underscores and `...` arrives as ``dots``.
    """
    def dec(fn: BuiltinFn):
        pairlist = None
        if formals is not None:
            pairlist = Pairlist(tuple(Formal(f) for f in formals))

        Builtins.functions[name] = Builtin(
            name=name,
            fn=fn,
            special=special,
            formals=pairlist,
            accepts_missing=accepts_missing,
        )
        return fn

    return dec


def base_scope() -> Environment:
    """The shared builtin scope every global scope hangs off."""
    global _BASE_SCOPE

    init_stdlib()

    if _BASE_SCOPE is None:
        env = Environment(name="base")
        for name, builtin in Builtins.functions.items():
            env.vars[name] = builtin

        env.vars["T"] = True
        env.vars["F"] = False
        env.vars["pi"] = 3.141592653589793
        env.vars["LETTERS"] = [chr(c) for c in range(ord("A"), ord("Z") + 1)]
        env.vars["letters"] = [chr(c) for c in range(ord("a"), ord("z") + 1)]
        _BASE_SCOPE = env

    return _BASE_SCOPE


def new_scope() -> Environment:
    """A fresh global scope."""
    return Environment(parent=base_scope(), name="R_GlobalEnv")


def _py_name(name: str) -> str:
    return "dots" if name == "..." else name.replace(".", "_")


def call_builtin(builtin: Builtin, args: ArgList, frame: Environment) -> RValue:
    if builtin.formals is None:
        return builtin.fn(frame, args)

    from .eval.args import match_args

    matched, dots = match_args(builtin.formals, args)
    # blank slots fall back to the Python default of a builtin that allows them
    kwargs = {
        _py_name(k): v for k, v in matched.items()
        if not (builtin.accepts_missing and is_empty(v))
    }

    if "..." in builtin.formals.names:
        kwargs["dots"] = dots

    return builtin.fn(frame, **kwargs)


def apply_closure(
    fn: FunctionDef,
    supplied: ArgList,
    caller: Environment,
    call: Optional[Call] = None,
) -> RValue:
    """Run a closure; ``supplied`` holds Promises (or EMPTY for blank slots)."""
    from .eval.args import match_args
    from .evaluator import eval_node

    matched, dots = match_args(fn.formals, supplied)
    frame = Environment(parent=fn.scope, call=call, function=fn, caller=caller)

    for formal in fn.formals:
        if formal.name == "...":
            frame.vars["..."] = DotsList(list(dots))
            continue

        value = matched.get(formal.name, EMPTY)

        if is_empty(value):
            frame.missing.add(formal.name)
            if formal.has_default:
                value = Promise(formal.default, frame)

        frame.vars[formal.name] = value

    try:
        return eval_node(fn.body, frame)
    except ReturnSignal as sig:
        return sig.value


def call_function(
    fn: Any,
    args: ArgList,
    frame: Environment,
    call: Optional[Call] = None,
) -> RValue:
    """Call a function value with already evaluated arguments."""
    if isinstance(fn, Builtin):
        if fn.special:
            # specials need code; hand them the values as inlined arguments
            synthetic = Call(Name(fn.name), tuple(
                Arg(tag, as_node(value)) for tag, value in args
            ))
            return fn.fn(synthetic, frame)
        return call_builtin(fn, args, frame)

    if isinstance(fn, FunctionDef):
        promises = [(tag, Promise.resolved(value, as_node(value))) for tag, value in args]
        return apply_closure(fn, promises, frame, call)

    raise RTypeError("attempt to apply non-function")


def expect_function(value: Any, what: str = "argument") -> FunctionDef | Builtin:
    if not is_function(value):
        raise RTypeError(f"{what} is not a function")
    return value


def expect_arity(name: str, args: Iterable[Any], lo: int, hi: Optional[int] = None) -> None:
    n = len(list(args))
    hi = lo if hi is None else hi

    if n < lo or n > hi:
        if lo == hi:
            raise RArityError(f"{n} arguments passed to '{name}' which requires {lo}")
        raise RArityError(f"{n} arguments passed to '{name}' which requires {lo} to {hi}")


def require(value: Any, name: str) -> Any:
    """Builtin parameters default to EMPTY; insist one was supplied."""
    if is_empty(value):
        raise MissingArgument(f'argument "{name}" is missing, with no default')
    return value
