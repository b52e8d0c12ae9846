from __future__ import annotations

import math
import operator
from typing import Any, Callable, List

from ..errors import RTypeError
from ..runtime import ArgList, expect_arity, register_builtin
from ..tree import NA, NA_INTEGER, NA_REAL, NAType
from ..types import Environment, RValue
from ..utils import as_character, as_vector, element_type, from_items, r_identical

# ---------- vector plumbing ----------

def _numeric_kind(item: Any) -> str:
    kind = element_type(item)
    if kind in ("character", "list"):
        raise RTypeError("non-numeric argument to binary operator")
    return "double" if kind == "double" else "integer"


def _recycle(a: List[Any], b: List[Any]) -> List[tuple]:
    if not a or not b:
        return []
    n = max(len(a), len(b))
    return [(a[i % len(a)], b[i % len(b)]) for i in range(n)]


def _values(args: ArgList) -> List[Any]:
    return [value for _, value in args]


def _int_result(value: Any) -> Any:
    # R integers are 32-bit; overflow turns into NA
    if isinstance(value, int) and abs(value) > 2147483647:
        return NA_INTEGER
    return value


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _power(a: float, b: float) -> float:
    if a == 1 or b == 0:
        return 1.0
    if a < 0 and not float(b).is_integer():
        return math.nan
    try:
        return a ** b
    except ZeroDivisionError:
        return math.inf
    except OverflowError:
        return math.inf if a > 0 or float(b) % 2 == 0 else -math.inf


def _fmod(a: float, b: float) -> float:
    if b == 0:
        return math.nan
    return a - math.floor(a / b) * b


def _fdiv(a: float, b: float) -> float:
    if b == 0:
        return _divide(a, b)
    return float(math.floor(a / b))


def _int_mod(a: int, b: int) -> Any:
    return NA_INTEGER if b == 0 else a % b


def _int_div(a: int, b: int) -> Any:
    return NA_INTEGER if b == 0 else a // b


# name -> (integer op or None when the result is always double, double op)
ARITH_OPS: dict[str, tuple[Callable | None, Callable]] = {
    "+": (operator.add, operator.add),
    "-": (operator.sub, operator.sub),
    "*": (operator.mul, operator.mul),
    "/": (None, _divide),
    "^": (None, _power),
    "%%": (_int_mod, _fmod),
    "%/%": (_int_div, _fdiv),
}


def arith(op: str, left: RValue, right: RValue) -> RValue:
    int_op, dbl_op = ARITH_OPS[op]
    out = []

    for a, b in _recycle(as_vector(left), as_vector(right)):
        integral = (
            int_op is not None
            and _numeric_kind(a) == "integer"
            and _numeric_kind(b) == "integer"
        )

        if isinstance(a, NAType) or isinstance(b, NAType):
            out.append(NA_INTEGER if integral else NA_REAL)
        elif integral:
            out.append(_int_result(int_op(int(a), int(b))))
        else:
            _numeric_kind(a)
            _numeric_kind(b)
            out.append(dbl_op(float(a), float(b)))

    return from_items(out)


def _negate(value: RValue) -> RValue:
    out = []
    for item in as_vector(value):
        kind = element_type(item)
        if kind in ("character", "list"):
            raise RTypeError("invalid argument to unary operator")
        if isinstance(item, NAType):
            out.append(NA_REAL if kind == "double" else NA_INTEGER)
        elif kind == "double":
            out.append(-item)
        else:
            out.append(-int(item))
    return from_items(out)


def _unary_plus(value: RValue) -> RValue:
    out = []
    for item in as_vector(value):
        if element_type(item) in ("character", "list"):
            raise RTypeError("invalid argument to unary operator")
        out.append(int(item) if isinstance(item, bool) else item)
    return from_items(out)


def _register_arith(name: str) -> None:
    def builtin(frame: Environment, args: ArgList) -> RValue:
        values = _values(args)

        if len(values) == 1 and name in ("+", "-"):
            return _negate(values[0]) if name == "-" else _unary_plus(values[0])

        expect_arity(name, values, 2)
        return arith(name, values[0], values[1])

    builtin.__name__ = f"builtin_arith_{name}"
    register_builtin(name)(builtin)


for _name in ARITH_OPS:
    _register_arith(_name)

# ---------- comparison ----------

COMPARE_OPS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
}


def compare(op: str, left: RValue, right: RValue) -> RValue:
    fn = COMPARE_OPS[op]
    left_items, right_items = as_vector(left), as_vector(right)

    for item in (*left_items, *right_items):
        if element_type(item) == "list":
            raise RTypeError(f"comparison ({op}) is possible only for atomic types")

    textual = any(isinstance(i, str) for i in (*left_items, *right_items))
    out = []

    for a, b in _recycle(left_items, right_items):
        if isinstance(a, NAType) or isinstance(b, NAType):
            out.append(NA)
        elif textual:
            out.append(fn(as_character(a)[0], as_character(b)[0]))
        elif (isinstance(a, float) and math.isnan(a)) or (isinstance(b, float) and math.isnan(b)):
            out.append(NA)
        else:
            out.append(fn(a, b))

    return from_items(out)


def _register_compare(name: str) -> None:
    def builtin(frame: Environment, args: ArgList) -> RValue:
        values = _values(args)
        expect_arity(name, values, 2)
        return compare(name, values[0], values[1])

    builtin.__name__ = f"builtin_compare_{name}"
    register_builtin(name)(builtin)


for _name in COMPARE_OPS:
    _register_compare(_name)

# ---------- element-wise logic ----------

def _logical(item: Any) -> Any:
    match item:
        case NAType():
            return NA
        case bool():
            return item
        case int() | float():
            return NA if item != item else item != 0
    raise RTypeError("operations are possible only for numeric, logical or complex types")


def _and(a: Any, b: Any) -> Any:
    if a is False or b is False:
        return False
    if a is NA or b is NA:
        return NA
    return True


def _or(a: Any, b: Any) -> Any:
    if a is True or b is True:
        return True
    if a is NA or b is NA:
        return NA
    return False


@register_builtin("!")
def builtin_not(frame: Environment, args: ArgList) -> RValue:
    expect_arity("!", args, 1)
    out = []
    for item in as_vector(args[0][1]):
        value = _logical(item)
        out.append(NA if value is NA else not value)
    return from_items(out)


@register_builtin("&")
def builtin_and(frame: Environment, args: ArgList) -> RValue:
    expect_arity("&", args, 2)
    pairs = _recycle(as_vector(args[0][1]), as_vector(args[1][1]))
    return from_items([_and(_logical(a), _logical(b)) for a, b in pairs])


@register_builtin("|")
def builtin_or(frame: Environment, args: ArgList) -> RValue:
    expect_arity("|", args, 2)
    pairs = _recycle(as_vector(args[0][1]), as_vector(args[1][1]))
    return from_items([_or(_logical(a), _logical(b)) for a, b in pairs])

# ---------- sequences and membership ----------

def _bound(value: RValue) -> float:
    items = as_vector(value)
    if not items:
        raise RTypeError("argument of length 0")

    item = items[0]
    if isinstance(item, NAType) or element_type(item) in ("character", "list"):
        raise RTypeError("NA/NaN argument")
    return float(item)


@register_builtin(":")
def builtin_colon(frame: Environment, args: ArgList) -> RValue:
    expect_arity(":", args, 2)
    start = _bound(args[0][1])
    stop = _bound(args[1][1])

    step = 1 if stop >= start else -1
    count = int(math.floor(abs(stop - start) + 1e-10)) + 1
    integral = start.is_integer() and abs(start) <= 2147483647 and abs(stop) <= 2147483647

    if integral:
        first = int(start)
        return from_items([first + step * i for i in range(count)])
    return from_items([start + step * i for i in range(count)])


@register_builtin("%in%")
def builtin_in(frame: Environment, args: ArgList) -> RValue:
    expect_arity("%in%", args, 2)
    table = as_vector(args[1][1])

    out = []
    for item in as_vector(args[0][1]):
        out.append(any(_match_equal(item, candidate) for candidate in table))
    return from_items(out) if out else []


def _match_equal(a: Any, b: Any) -> bool:
    if isinstance(a, str) or isinstance(b, str):
        return as_character(a) == as_character(b)
    if isinstance(a, NAType) or isinstance(b, NAType):
        return isinstance(a, NAType) and isinstance(b, NAType)
    return r_identical(float(a), float(b))
