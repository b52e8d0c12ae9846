"""Built-in utility functions (print, c, typeof, stop, ...) registered via rquote.runtime."""

from __future__ import annotations

import sys
from typing import Any, List

from .errors import RConditionError, RObjectNotFound, RRuntimeError, RTypeError
from .runtime import ArgList, call_function, register_builtin, require
from .tree import EMPTY, NA_REAL, NAType, Call, Name, Pairlist, as_value, is_empty, is_node
from .types import Builtin, Environment, ExprVector, FunctionDef, Promise, RList, RValue
from .utils import (
    as_character,
    as_vector,
    coerce_element,
    common_type,
    element_type,
    format_value,
    from_items,
    is_na,
    r_identical,
)

_EMPTY_ENV = Environment(name="R_EmptyEnv")

# calls whose class() is their keyword rather than "call"
_KEYWORD_CLASSES = frozenset({"if", "for", "while", "(", "{", "<-", "="})

# ---------- output ----------

@register_builtin("print", formals=("x", "..."))
def std_print(_frame, x: RValue = None, dots: ArgList = ()) -> RValue:
    print(format_value(x))
    return x


@register_builtin("cat", formals=("...", "sep"))
def std_cat(_frame, dots: ArgList = (), sep: RValue = " ") -> RValue:
    pieces: List[str] = []

    for _, value in dots:
        if is_node(value) and not isinstance(value, Name):
            raise RTypeError("argument 1 (type 'language') cannot be handled by 'cat'")
        pieces.extend(as_character(value))

    sys.stdout.write(as_character(sep)[0].join(pieces))
    return None


@register_builtin("message", formals=("...",))
def std_message(_frame, dots: ArgList = ()) -> RValue:
    print("".join(s for _, v in dots for s in as_character(v)), file=sys.stderr)
    return None


def _paste(dots: ArgList, sep: str, collapse: RValue) -> RValue:
    columns = [as_character(value) for _, value in dots]
    columns = [c for c in columns if c]

    if not columns:
        rows: List[str] = []
    else:
        n = max(len(c) for c in columns)
        rows = [sep.join(c[i % len(c)] for c in columns) for i in range(n)]

    if collapse is not None:
        return as_character(collapse)[0].join(rows)
    return from_items(rows)


@register_builtin("paste", formals=("...", "sep", "collapse"))
def std_paste(_frame, dots: ArgList = (), sep: RValue = " ", collapse: RValue = None) -> RValue:
    return _paste(dots, as_character(sep)[0], collapse)


@register_builtin("paste0", formals=("...", "collapse"))
def std_paste0(_frame, dots: ArgList = (), collapse: RValue = None) -> RValue:
    return _paste(dots, "", collapse)

# ---------- vectors and lists ----------

@register_builtin("c")
def std_c(_frame, args: ArgList) -> RValue:
    items: List[Any] = []
    names: List[str] = []
    generic = False

    for tag, value in args:
        if isinstance(value, RList):
            generic = True
            for name, item in value.pairs():
                items.append(item)
                names.append(f"{tag}.{name}" if tag and name else tag or name or "")
            continue

        if is_node(value) or isinstance(value, (FunctionDef, Builtin, Environment)):
            parts = [value]
        else:
            parts = as_vector(value)

        if parts and common_type(parts) == "list":
            generic = True
        for idx, part in enumerate(parts, start=1):
            items.append(part)
            if not tag:
                names.append("")
            else:
                names.append(tag if len(parts) == 1 else f"{tag}{idx}")

    if not items:
        return None

    if generic or any(names):
        # named atomic vectors are represented as lists
        return RList(items, names if any(names) else None)

    kind = common_type(items)
    return from_items([coerce_element(i, kind) for i in items])


@register_builtin("list")
def std_list(_frame, args: ArgList) -> RValue:
    names = [tag or "" for tag, _ in args]
    return RList([value for _, value in args], names if any(names) else None)


def r_length(x: RValue) -> int:
    match x:
        case None:
            return 0
        case list():
            return len(x)
        case RList() | Pairlist() | ExprVector() | Call():
            return len(x)
        case Environment():
            return len(x.vars)
    return 1


@register_builtin("length", formals=("x",))
def std_length(_frame, x: RValue = None) -> RValue:
    return r_length(x)


@register_builtin("seq_along", formals=("along.with",))
def std_seq_along(_frame, along_with: RValue = None) -> RValue:
    return from_items(list(range(1, r_length(along_with) + 1)))


@register_builtin("seq_len", formals=("length.out",))
def std_seq_len(_frame, length_out: RValue = EMPTY) -> RValue:
    n = int(as_vector(require(length_out, "length.out"))[0])
    if n < 0:
        raise RRuntimeError("argument of length 0")
    return from_items(list(range(1, n + 1)))


@register_builtin("rev", formals=("x",))
def std_rev(_frame, x: RValue = None) -> RValue:
    if isinstance(x, RList):
        return RList(list(reversed(x.items)), list(reversed(x.names)) if x.names else None)
    return from_items(list(reversed(as_vector(x))))


@register_builtin("lapply", formals=("X", "FUN", "..."))
def std_lapply(frame: Environment, X: RValue = None, FUN: RValue = EMPTY, dots: ArgList = ()) -> RValue:
    fn = require(FUN, "FUN")
    if isinstance(fn, str):
        fn = frame.lookup_function(fn)

    match X:
        case RList():
            pairs = list(X.pairs())
        case ExprVector(nodes=nodes):
            pairs = [("", as_value(n)) for n in nodes]
        case Call():
            pairs = [("", as_value(e)) for e in X.elements]
        case _:
            pairs = [("", v) for v in as_vector(X)]

    results = [call_function(fn, [(None, item), *dots], frame) for _, item in pairs]
    names = [name for name, _ in pairs]
    return RList(results, names if any(names) else None)


@register_builtin("as.character", formals=("x",))
def std_as_character(_frame, x: RValue = None) -> RValue:
    if isinstance(x, (Call, Pairlist)):
        parts = x.elements if isinstance(x, Call) else [f.default for f in x]
        return from_items(as_character([as_value(p) for p in parts]))
    return from_items(as_character(x))


def _as_number(value: Any, kind: str) -> Any:
    if isinstance(value, NAType):
        return coerce_element(value, kind)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return coerce_element(NA_REAL, kind)
        return int(number) if kind == "integer" else number
    if element_type(value) == "list":
        raise RTypeError(f"cannot coerce type '{r_typeof(value)}' to vector of type '{kind}'")
    return int(value) if kind == "integer" else float(value)


@register_builtin("as.numeric", formals=("x",))
@register_builtin("as.double", formals=("x",))
def std_as_numeric(_frame, x: RValue = None) -> RValue:
    return from_items([_as_number(v, "double") for v in as_vector(x)])


@register_builtin("as.integer", formals=("x",))
def std_as_integer(_frame, x: RValue = None) -> RValue:
    return from_items([_as_number(v, "integer") for v in as_vector(x)])


@register_builtin("identical", formals=("x", "y"))
def std_identical(_frame, x: RValue = EMPTY, y: RValue = EMPTY) -> RValue:
    return r_identical(x, y)

# ---------- types ----------

def r_typeof(x: RValue) -> str:
    match x:
        case None:
            return "NULL"
        case Name():
            return "symbol"
        case Call():
            return "language"
        case Pairlist():
            return "pairlist"
        case RList():
            return "list"
        case ExprVector():
            return "expression"
        case FunctionDef():
            return "closure"
        case Builtin(special=special):
            return "special" if special else "builtin"
        case Environment():
            return "environment"
        case list():
            return common_type(x) if x else "logical"
    return element_type(x)


def r_class(x: RValue) -> str:
    match x:
        case Name():
            return "name"
        case Call(fn=Name(identifier=identifier)) if identifier in _KEYWORD_CLASSES:
            return identifier
        case Call():
            return "call"
        case FunctionDef() | Builtin():
            return "function"

    kind = r_typeof(x)
    return "numeric" if kind == "double" else kind


@register_builtin("typeof", formals=("x",))
def std_typeof(_frame, x: RValue = EMPTY) -> RValue:
    return r_typeof(x)


@register_builtin("class", formals=("x",))
def std_class(_frame, x: RValue = EMPTY) -> RValue:
    return r_class(x)


def _register_predicate(name: str, test) -> None:
    def builtin(_frame, x: RValue = EMPTY) -> RValue:
        return bool(test(x))

    builtin.__name__ = "std_" + name.replace(".", "_")
    register_builtin(name, formals=("x",))(builtin)


def _is_atomic_kind(x: RValue, *kinds: str) -> bool:
    if not (isinstance(x, list) or (not is_node(x) and element_type(x) != "list")):
        return False
    return r_typeof(x) in kinds


for _name, _test in {
    "is.null": lambda x: x is None,
    "is.function": lambda x: isinstance(x, (FunctionDef, Builtin)),
    "is.primitive": lambda x: isinstance(x, Builtin),
    "is.call": lambda x: isinstance(x, Call),
    "is.name": lambda x: isinstance(x, Name),
    "is.symbol": lambda x: isinstance(x, Name),
    "is.pairlist": lambda x: x is None or isinstance(x, Pairlist),
    "is.list": lambda x: isinstance(x, (RList, Pairlist)),
    "is.environment": lambda x: isinstance(x, Environment),
    "is.expression": lambda x: isinstance(x, ExprVector),
    "is.language": lambda x: isinstance(x, (Name, Call, ExprVector)),
    "is.character": lambda x: _is_atomic_kind(x, "character"),
    "is.numeric": lambda x: _is_atomic_kind(x, "integer", "double"),
    "is.double": lambda x: _is_atomic_kind(x, "double"),
    "is.integer": lambda x: _is_atomic_kind(x, "integer"),
    "is.logical": lambda x: _is_atomic_kind(x, "logical"),
    "is.atomic": lambda x: _is_atomic_kind(x, "logical", "integer", "double", "character"),
}.items():
    _register_predicate(_name, _test)


@register_builtin("is.na", formals=("x",))
def std_is_na(_frame, x: RValue = EMPTY) -> RValue:
    if is_node(x) or isinstance(x, (FunctionDef, Builtin, Environment)):
        return False
    return from_items([is_na(v) for v in as_vector(x)])

# ---------- conditions ----------

def _condition_message(dots: ArgList) -> str:
    return "".join(s for _, value in dots for s in as_character(value))


@register_builtin("stop", formals=("...", "call."))
def std_stop(frame: Environment, dots: ArgList = (), call_: RValue = True) -> RValue:
    err = RConditionError(_condition_message(dots))

    if call_ is True:
        from .eval.fn import closure_frame

        current = closure_frame(frame)
        err.call = current.call if current is not None else None

    # the error belongs to the caller of stop(), not to stop() itself
    err.located = True
    raise err


@register_builtin("warning", formals=("...", "call."))
def std_warning(_frame, dots: ArgList = (), call_: RValue = True) -> RValue:
    message = _condition_message(dots)
    print(f"Warning message:\n{message}", file=sys.stderr)
    return message


@register_builtin("invisible", formals=("x",))
def std_invisible(_frame, x: RValue = None) -> RValue:
    return x

# ---------- environments ----------

@register_builtin("new.env", formals=("hash", "parent", "size"))
def std_new_env(frame: Environment, hash: RValue = True, parent: RValue = EMPTY, size: RValue = 29) -> RValue:
    if is_empty(parent):
        parent = frame
    if not isinstance(parent, Environment):
        raise RTypeError("'enclos' must be an environment")
    return Environment(parent=parent)


@register_builtin("globalenv")
def std_globalenv(frame: Environment, args: ArgList) -> RValue:
    return frame.global_env()


@register_builtin("emptyenv")
def std_emptyenv(_frame, args: ArgList) -> RValue:
    return _EMPTY_ENV


@register_builtin("environmentName", formals=("env",))
def std_environment_name(_frame, env: RValue = EMPTY) -> RValue:
    if isinstance(env, Environment):
        return "R_GlobalEnv" if env.is_global else env.name or ""
    return ""


def _scope(envir: RValue, frame: Environment) -> Environment:
    if is_empty(envir):
        return frame
    if not isinstance(envir, Environment):
        raise RTypeError("invalid 'envir' argument")
    return envir


def _var_name(x: RValue, allow_empty: bool = False) -> str:
    names = as_character(require(x, "x"))
    if len(names) != 1 or not (names[0] or allow_empty):
        raise RTypeError("invalid first argument")
    return names[0]


@register_builtin("assign", formals=("x", "value", "pos", "envir", "inherits"))
def std_assign(frame: Environment, x: RValue = EMPTY, value: RValue = EMPTY, pos: RValue = -1,
               envir: RValue = EMPTY, inherits: RValue = False) -> RValue:
    scope = _scope(envir, frame)
    # binding the empty name is left to define(), which rejects it
    name = _var_name(x, allow_empty=True)
    value = require(value, "value")

    if inherits:
        target = scope.locate(name)
        if target is not None:
            target.define(name, value)
            return value

    scope.define(name, value)
    return value


@register_builtin("get", formals=("x", "pos", "envir", "mode", "inherits"))
def std_get(frame: Environment, x: RValue = EMPTY, pos: RValue = -1, envir: RValue = EMPTY,
            mode: RValue = "any", inherits: RValue = True) -> RValue:
    scope = _scope(envir, frame)
    name = _var_name(x)

    if mode == "function":
        return scope.lookup_function(name)

    if inherits:
        value = scope.lookup(name)
    elif name in scope.vars:
        value = scope.vars[name]
    else:
        raise RObjectNotFound(name)

    return value.force() if isinstance(value, Promise) else value


@register_builtin("exists", formals=("x", "where", "envir", "mode", "inherits"))
def std_exists(frame: Environment, x: RValue = EMPTY, where: RValue = -1, envir: RValue = EMPTY,
               mode: RValue = "any", inherits: RValue = True) -> RValue:
    scope = _scope(envir, frame)
    name = _var_name(x)

    if inherits:
        return scope.locate(name) is not None
    return name in scope.vars

# ---------- files ----------

@register_builtin("source", formals=("file", "local", "echo"))
def std_source(frame: Environment, file: RValue = EMPTY, local: RValue = False, echo: RValue = False) -> RValue:
    from .runner import source_file

    path = as_character(require(file, "file"))[0]

    if isinstance(local, Environment):
        scope = local
    elif local is True:
        scope = frame
    else:
        scope = frame.global_env()

    return source_file(path, scope)
