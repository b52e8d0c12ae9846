"""Expression tree model shared by the parser, printer, deparser and evaluator.

Four node kinds make up a tree:

- Constant: a single atomic literal (string, double, integer, logical, NULL, NA)
- Name: an identifier; ``EMPTY`` is the empty name meaning "argument not supplied"
- Call: a callee followed by optionally tagged arguments
- Pairlist: the formal parameter list of a function

Nodes are frozen value objects. Every "modification" helper returns a new
tree and leaves the original untouched.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Sequence, Tuple, Union
from typing_extensions import TypeAlias, TypeGuard

from .errors import DuplicateFormalName, InvalidCallShape


@dataclass(frozen=True)
class NAType:
    """Typed missing value (NA, NA_integer_, NA_real_, NA_character_)."""
    kind: str

    def __repr__(self) -> str:
        return NA_SPELLING[self.kind]


NA = NAType("logical")
NA_INTEGER = NAType("integer")
NA_REAL = NAType("double")
NA_CHARACTER = NAType("character")

NA_SPELLING = {
    "logical": "NA",
    "integer": "NA_integer_",
    "double": "NA_real_",
    "character": "NA_character_",
}

Scalar: TypeAlias = Union[None, bool, int, float, str, NAType]


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str, NAType))


def scalars_identical(a: Any, b: Any) -> bool:
    if type(a) is not type(b):
        return False

    if isinstance(a, float) and math.isnan(a) and math.isnan(b):
        return True

    return a == b


@dataclass(frozen=True, eq=False)
class Constant:
    value: Scalar

    def __post_init__(self) -> None:
        if not is_scalar(self.value):
            raise TypeError(
                f"Constant holds a single scalar literal, not {type(self.value).__name__}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Constant):
            return NotImplemented
        return scalars_identical(self.value, other.value)

    def __hash__(self) -> int:
        v = self.value
        if isinstance(v, float) and math.isnan(v):
            return hash((float, "nan"))
        return hash((type(v), v))

    def __repr__(self) -> str:
        return f"Constant({self.value!r})"


@dataclass(frozen=True)
class Name:
    identifier: str

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, str):
            raise TypeError("Name identifier must be a string")

    @property
    def is_empty(self) -> bool:
        return self.identifier == ""

    def __repr__(self) -> str:
        if self.is_empty:
            return "EMPTY"
        return f"Name({self.identifier!r})"


EMPTY = Name("")


@dataclass(frozen=True)
class Arg:
    """One argument slot of a call; ``tag`` is None for positional arguments."""
    tag: Optional[str]
    value: Any

    def __repr__(self) -> str:
        if self.tag is None:
            return f"Arg({self.value!r})"
        return f"Arg({self.tag!r}, {self.value!r})"


@dataclass(frozen=True)
class Call:
    fn: Any
    args: Tuple[Arg, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))

    def __len__(self) -> int:
        return 1 + len(self.args)

    def __repr__(self) -> str:
        return f"Call({self.fn!r}, {list(self.args)!r})"

    @property
    def elements(self) -> Tuple[Any, ...]:
        return (self.fn,) + tuple(a.value for a in self.args)

    @property
    def tags(self) -> Tuple[Optional[str], ...]:
        return tuple(a.tag for a in self.args)

    @property
    def fn_name(self) -> Optional[str]:
        return self.fn.identifier if isinstance(self.fn, Name) else None

    def arg_values(self) -> Tuple[Any, ...]:
        return tuple(a.value for a in self.args)

    def with_fn(self, fn: Any) -> Call:
        return replace(self, fn=fn)

    def with_args(self, args: Iterable[Any]) -> Call:
        return Call(self.fn, tuple(coerce_arg(a) for a in args))

    def replace_arg(self, index: int, value: Any) -> Call:
        """Return a copy with argument ``index`` (0-based, callee excluded) replaced."""
        args = list(self.args)
        old = args[index]
        args[index] = Arg(old.tag, as_node(value))
        return Call(self.fn, tuple(args))

    def append_arg(self, value: Any, tag: Optional[str] = None) -> Call:
        return Call(self.fn, self.args + (Arg(tag or None, as_node(value)),))


@dataclass(frozen=True)
class Formal:
    name: str
    default: Any = EMPTY

    @property
    def has_default(self) -> bool:
        return self.default != EMPTY


@dataclass(frozen=True)
class Pairlist:
    formals: Tuple[Formal, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.formals, tuple):
            object.__setattr__(self, "formals", tuple(self.formals))

        seen = set()
        for formal in self.formals:
            if formal.name in seen:
                raise DuplicateFormalName(formal.name)
            seen.add(formal.name)

    def __len__(self) -> int:
        return len(self.formals)

    def __iter__(self) -> Iterator[Formal]:
        return iter(self.formals)

    def __repr__(self) -> str:
        return f"Pairlist({list(self.formals)!r})"

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.formals)

    def get(self, name: str) -> Any:
        for formal in self.formals:
            if formal.name == name:
                return formal.default
        raise KeyError(name)

    def with_default(self, name: str, default: Any) -> Pairlist:
        if name not in self.names:
            return Pairlist(self.formals + (Formal(name, as_node(default)),))

        return Pairlist(tuple(
            Formal(f.name, as_node(default)) if f.name == name else f
            for f in self.formals
        ))


Node: TypeAlias = Union[Constant, Name, Call, Pairlist]


class NodeKind(Enum):
    CONSTANT = "constant"
    NAME = "name"
    CALL = "call"
    PAIRLIST = "pairlist"


def kind_of(node: Node) -> NodeKind:
    match node:
        case Constant():
            return NodeKind.CONSTANT
        case Name():
            return NodeKind.NAME
        case Call():
            return NodeKind.CALL
        case Pairlist():
            return NodeKind.PAIRLIST
        case _:
            raise TypeError(f"{type(node).__name__} is not an expression node")


def is_node(value: Any) -> TypeGuard[Node]:
    return isinstance(value, (Constant, Name, Call, Pairlist))

def is_constant(value: Any) -> TypeGuard[Constant]:
    return isinstance(value, Constant)

def is_name(value: Any) -> TypeGuard[Name]:
    return isinstance(value, Name)

def is_call(value: Any) -> TypeGuard[Call]:
    return isinstance(value, Call)

def is_pairlist(value: Any) -> TypeGuard[Pairlist]:
    return isinstance(value, Pairlist)

def is_call_to(value: Any, *names: str) -> bool:
    return isinstance(value, Call) and value.fn_name in names


def as_node(value: Any) -> Any:
    """Lift a scalar into a Constant; nodes pass through; anything else stays inlined."""
    if is_node(value):
        return value
    if is_scalar(value):
        return Constant(value)
    return value


def coerce_arg(entry: Any) -> Arg:
    if isinstance(entry, Arg):
        return entry

    if isinstance(entry, tuple):
        if len(entry) != 2:
            raise InvalidCallShape(f"argument entries are (tag, node) pairs; got {len(entry)} items")
        tag, value = entry
        if tag is not None and not isinstance(tag, str):
            raise InvalidCallShape("argument tags must be strings or None")
        return Arg(tag or None, as_node(value))

    return Arg(None, as_node(entry))


# ---------- Constructors ----------

def make_name(identifier: str) -> Name:
    """Build a Name; non-syntactic identifiers are legal and get quoted when printed."""
    if not isinstance(identifier, str):
        raise TypeError("identifier must be a string")
    if identifier == "":
        return EMPTY
    return Name(identifier)


def make_call(callee: Any, args: Iterable[Any] = ()) -> Call:
    if isinstance(callee, str):
        callee = Name(callee)

    if callee is None or callee == EMPTY:
        raise InvalidCallShape("a call needs a callee in element 0")

    if not isinstance(callee, (Name, Call)):
        raise InvalidCallShape(
            f"callee must be a name or a call, not {type(callee).__name__}"
        )

    return Call(callee, tuple(coerce_arg(a) for a in args))


def as_call(elements: Sequence[Any], tags: Optional[Sequence[Optional[str]]] = None) -> Call:
    """Low-level call construction from a flat element list.

    Element 0 becomes the callee as-is, so non-code values can end up in code
    slots here; such trees evaluate but cannot be deparsed.
    """
    if not elements:
        raise InvalidCallShape("cannot build a call from an empty sequence")

    if tags is not None and len(tags) != len(elements):
        raise InvalidCallShape("tags must line up with elements")

    fn = as_node(elements[0])
    args = []

    for idx, value in enumerate(elements[1:], start=1):
        tag = tags[idx] if tags is not None else None
        args.append(Arg(tag or None, as_node(value)))

    return Call(fn, tuple(args))


def make_pairlist(entries: Iterable[Any]) -> Pairlist:
    formals = []

    for entry in entries:
        if isinstance(entry, Formal):
            formals.append(entry)
            continue

        name, default = entry
        if not isinstance(name, str) or not name:
            raise ValueError("formal names must be non-empty strings")
        formals.append(Formal(name, as_node(default)))

    return Pairlist(tuple(formals))


def arity(call: Call) -> int:
    if not isinstance(call, Call):
        raise TypeError("arity is defined for calls only")
    return len(call.args)


def is_empty(value: Any) -> bool:
    """True for the empty name, the marker of an unsupplied argument."""
    return isinstance(value, Name) and value.identifier == ""


def as_value(node: Any) -> Any:
    """The runtime value of a code slot: a constant is its scalar, other nodes stay code."""
    if isinstance(node, Constant):
        return node.value
    return node
