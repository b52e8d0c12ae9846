"""Element access and replacement: `[[`, `[`, `$`, names() and their `<-` forms.

Calls, pairlists, lists, atomic vectors, expression vectors and environments
all support positional and named access. Replacement functions never mutate
their input; they return the updated value for the assignment to rebind.
"""
from __future__ import annotations

from typing import Any, List, Optional

from ..errors import RRuntimeError, RTypeError
from ..runtime import expect_arity, register_builtin
from ..tree import EMPTY, Call, Constant, Formal, NAType, Name, Pairlist, as_call, as_node, as_value, is_empty
from ..types import Environment, ExprVector, Promise, RList, RValue
from ..utils import NA_FOR_TYPE, as_vector, coerce_element, common_type, element_type, from_items

# ---------- shared views ----------

def _call_names(call: Call) -> List[str]:
    return [""] + [a.tag or "" for a in call.args]


def _entries(x: RValue) -> tuple[List[Any], Optional[List[str]]]:
    """Elements and names of any indexable value."""
    match x:
        case Call():
            names = _call_names(x)
            return [as_value(e) for e in x.elements], names if any(names) else None
        case Pairlist():
            return [as_value(f.default) for f in x], list(x.names)
        case RList(items=items, names=names):
            return list(items), list(names) if names is not None else None
        case ExprVector(nodes=nodes):
            return [as_value(n) for n in nodes], None
        case list():
            return list(x), None
        case None:
            return [], None
    if element_type(x) != "list":
        return [x], None
    raise RTypeError(f"object of type '{type_label(x)}' is not subsettable")


def type_label(x: RValue) -> str:
    from ..stdlib import r_typeof
    return r_typeof(x)


def _rebuild(x: RValue, items: List[Any], names: Optional[List[str]]) -> RValue:
    match x:
        case Call():
            if not items:
                return None
            tags = [n or None for n in names] if names is not None else None
            return as_call(items, tags)
        case Pairlist():
            if names is None or not all(names):
                raise RRuntimeError("pairlist formals need non-empty names")
            return Pairlist(tuple(Formal(n, as_node(v)) for n, v in zip(names, items)))
        case ExprVector():
            return ExprVector(tuple(as_node(v) for v in items))
        case RList():
            return RList(items, names if names is not None and any(names) else None)

    kind = common_type(items) if items else "logical"
    if kind == "list":
        return RList(items, names)
    return from_items([coerce_element(i, kind) for i in items])


def _index(i: RValue, what: str = "subscript") -> Any:
    items = as_vector(i)
    if len(items) != 1:
        raise RRuntimeError(f"{what} must select exactly one element")

    item = items[0]
    if isinstance(item, str):
        return item
    if isinstance(item, NAType) or element_type(item) not in ("logical", "integer", "double"):
        raise RTypeError(f"invalid {what} type")
    return int(item)


def _position(key: Any, names: Optional[List[str]]) -> Optional[int]:
    """Zero-based position for a 1-based index or a name; None if the name is absent."""
    if isinstance(key, str):
        if names is None or key not in names:
            return None
        return names.index(key)
    if key < 1:
        raise RRuntimeError("subscript out of bounds" if key == 0 else "invalid negative subscript in get1index <real>")
    return key - 1

# ---------- [[ and $ ----------

def get_element(x: RValue, i: RValue, exact_name: bool = False) -> RValue:
    if isinstance(x, Environment):
        key = _index(i)
        if not isinstance(key, str):
            raise RTypeError("wrong args for environment subassignment")
        value = x.vars.get(key)
        return value.force() if isinstance(value, Promise) else value

    items, names = _entries(x)
    key = _index(i)
    pos = _position(key, names)

    if pos is None:
        if isinstance(x, (RList, Pairlist, Call)) or exact_name:
            return None
        raise RRuntimeError("subscript out of bounds")
    if pos >= len(items):
        raise RRuntimeError("subscript out of bounds")

    return items[pos]


@register_builtin("[[", formals=("x", "i", "exact"))
def builtin_index2(frame: Environment, x: RValue = EMPTY, i: RValue = EMPTY, exact: RValue = True) -> RValue:
    if is_empty(i):
        raise RRuntimeError("invalid subscript")
    return get_element(x, i)


def _member(node: Any) -> str:
    match node:
        case Name(identifier=identifier) if identifier:
            return identifier
        case Constant(value=str() as text):
            return text
        case str():
            return node
    raise RTypeError("invalid subscript type 'language'")


@register_builtin("$", special=True)
def eval_dollar(call: Call, env: Environment) -> RValue:
    from ..evaluator import eval_node

    expect_arity("$", call.args, 2)
    x = eval_node(call.args[0].value, env)
    name = _member(call.args[1].value)

    if isinstance(x, (list, str, int, float, bool, NAType)):
        raise RTypeError("$ operator is invalid for atomic vectors")
    if x is None:
        return None

    if isinstance(x, RList) and x.names is not None and name not in x.names:
        # $ matches unique prefixes on lists
        hits = [n for n in x.names if n.startswith(name)]
        if len(hits) == 1:
            name = hits[0]

    return get_element(x, name, exact_name=True)


def set_element(x: RValue, i: RValue, value: RValue) -> RValue:
    if isinstance(x, Environment):
        key = _index(i)
        if not isinstance(key, str):
            raise RTypeError("wrong args for environment subassignment")
        x.define(key, value)
        return x

    if x is None:
        x = RList([], None) if value is not None and element_type(value) == "list" else []

    items, names = _entries(x)
    key = _index(i)
    pos = _position(key, names)

    if value is None:
        if pos is not None and pos < len(items):
            del items[pos]
            if names is not None:
                del names[pos]
        return _rebuild(x, items, names)

    if pos is None:
        items.append(value)
        names = (names or [""] * (len(items) - 1)) + [key]
    elif pos >= len(items):
        filler = EMPTY if isinstance(x, (Call, Pairlist, ExprVector)) else _na_like(value)
        items.extend([filler] * (pos - len(items) + 1))
        if names is not None:
            names.extend([""] * (len(items) - len(names)))
        items[pos] = value
    else:
        items[pos] = value

    if not isinstance(x, (Call, ExprVector, RList, Pairlist)) and names is not None:
        # naming an element of an atomic vector promotes it to a list
        return RList(items, names)

    return _rebuild(x, items, names)


def _na_like(value: RValue) -> Any:
    return NA_FOR_TYPE.get(element_type(value), None)


@register_builtin("[[<-", formals=("x", "i", "value"))
def builtin_index2_assign(frame: Environment, x: RValue = None, i: RValue = EMPTY, value: RValue = None) -> RValue:
    if is_empty(i):
        raise RRuntimeError("[[ ]] with missing subscript")
    return set_element(x, i, value)


@register_builtin("$<-", formals=("x", "name", "value"))
def builtin_dollar_assign(frame: Environment, x: RValue = None, name: RValue = EMPTY, value: RValue = None) -> RValue:
    if isinstance(x, (list, str, int, float, bool, NAType)):
        raise RTypeError("$ operator is invalid for atomic vectors")
    return set_element(x, _member(name), value)

# ---------- [ ----------

def _selection(i: RValue, items: List[Any], names: Optional[List[str]]) -> List[Optional[int]]:
    """Zero-based positions picked by a `[` subscript; None marks out-of-range picks."""
    if is_empty(i):
        return list(range(len(items)))

    keys = as_vector(i)
    if not keys:
        return []

    if all(isinstance(k, bool) for k in keys):
        n = max(len(items), len(keys))
        return [p for p in range(n) if keys[p % len(keys)]]

    if all(isinstance(k, str) for k in keys):
        return [names.index(k) if names is not None and k in names else None for k in keys]

    ints = [int(k) for k in keys if not isinstance(k, NAType)]
    if any(k < 0 for k in ints):
        if any(k > 0 for k in ints):
            raise RRuntimeError("can't mix positive and negative subscripts")
        dropped = {-k - 1 for k in ints}
        return [p for p in range(len(items)) if p not in dropped]

    return [k - 1 if k - 1 < len(items) else None for k in ints if k != 0]


@register_builtin("[", formals=("x", "i"), accepts_missing=True)
def builtin_index(frame: Environment, x: RValue = EMPTY, i: RValue = EMPTY) -> RValue:
    if is_empty(x):
        raise RRuntimeError('argument "x" is missing, with no default')

    items, names = _entries(x)
    picked = _selection(i, items, names)

    out: List[Any] = []
    out_names: List[str] = []

    for pos in picked:
        if pos is None or pos >= len(items):
            out.append(None if isinstance(x, RList) else _na_like(items[0] if items else None))
            out_names.append("")
        else:
            out.append(items[pos])
            out_names.append(names[pos] if names is not None else "")

    if isinstance(x, (Call, RList, ExprVector, Pairlist)):
        if isinstance(x, Pairlist):
            return RList(out, out_names)
        return _rebuild(x, out, out_names if names is not None else None)

    if not out:
        return []
    return from_items(out)


@register_builtin("[<-", formals=("x", "i", "value"), accepts_missing=True)
def builtin_index_assign(frame: Environment, x: RValue = None, i: RValue = EMPTY, value: RValue = None) -> RValue:
    items, names = _entries(x)
    picked = _selection(i, items, names)
    values = value.items if isinstance(value, RList) else as_vector(value)

    if not values:
        raise RRuntimeError("replacement has length zero")

    for n, pos in enumerate(picked):
        if pos is None:
            raise RRuntimeError("subscript out of bounds")
        while pos >= len(items):
            items.append(_na_like(values[0]))
        items[pos] = values[n % len(values)]

    if isinstance(x, (Call, RList, ExprVector)):
        return _rebuild(x, items, names)
    return _rebuild([], items, None)

# ---------- names ----------

@register_builtin("names", formals=("x",))
def builtin_names(frame: Environment, x: RValue = None) -> RValue:
    if isinstance(x, Environment):
        return sorted(x.vars)

    if isinstance(x, (RList, Call, Pairlist)):
        _, names = _entries(x)
        return None if names is None else from_items(names)

    return None


@register_builtin("names<-", formals=("x", "value"))
def builtin_names_assign(frame: Environment, x: RValue = None, value: RValue = None) -> RValue:
    items, _ = _entries(x)
    new_names = [str(n) for n in as_vector(value)] if value is not None else None

    if new_names is not None:
        new_names = (new_names + [""] * len(items))[:len(items)]

    match x:
        case Call():
            tags = [None] + [n or None for n in (new_names or [""] * len(items))[1:]]
            return as_call(items, tags)
        case Pairlist():
            if new_names is None or not all(new_names):
                raise RRuntimeError("pairlist formals need non-empty names")
            return Pairlist(tuple(Formal(n, as_node(v)) for n, v in zip(new_names, items)))
        case RList():
            return RList(items, new_names)

    if new_names is None:
        return x
    return RList(items, new_names)

