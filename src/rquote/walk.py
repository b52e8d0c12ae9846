"""Recursive walkers over expression trees.

All of these are pure: trees are never mutated, rewriting helpers build new
nodes and share untouched subtrees with the input.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import InvalidCallShape
from .tree import Arg, Call, Constant, EMPTY, Formal, Name, Pairlist, as_node

ASSIGN_FUNCTIONS = ("<-", "=", "<<-")


def walk(node: Any) -> Iterator[Any]:
    """Pre-order iteration: a call yields itself, its callee, then its arguments."""
    yield node

    match node:
        case Call(fn=fn, args=args):
            yield from walk(fn)
            for arg in args:
                yield from walk(arg.value)
        case Pairlist(formals=formals):
            for formal in formals:
                yield from walk(formal.default)


def all_names(node: Any) -> List[str]:
    """Every name in the tree in order of appearance, callees included."""
    return [
        n.identifier
        for n in walk(node)
        if isinstance(n, Name) and n != EMPTY
    ]


def all_vars(node: Any) -> List[str]:
    """Names used as values, each once; callee names are skipped."""
    found: List[str] = []

    def visit(n: Any) -> None:
        match n:
            case Name(identifier=identifier) if identifier:
                if identifier not in found:
                    found.append(identifier)
            case Call(fn=fn, args=args):
                if not isinstance(fn, Name):
                    visit(fn)
                for arg in args:
                    visit(arg.value)
            case Pairlist(formals=formals):
                for formal in formals:
                    visit(formal.default)

    visit(node)
    return found


def logical_abbr(node: Any) -> bool:
    """True if the code uses the T/F abbreviations for TRUE/FALSE."""
    match node:
        case Name(identifier=identifier):
            return identifier in ("T", "F")
        case Call(fn=fn, args=args):
            return logical_abbr(fn) or any(logical_abbr(a.value) for a in args)
        case Pairlist(formals=formals):
            # formal names are bindings, not uses
            return any(logical_abbr(f.default) for f in formals)
        case _:
            return False


def _assigned_name(target: Any) -> Optional[str]:
    match target:
        case Name(identifier=identifier) if identifier:
            return identifier
        case Constant(value=str() as text):
            return text
        case Call(args=args) if args:
            # names(x) <- value, x$a <- value
            return _assigned_name(args[0].value)
        case _:
            return None


def find_assign(node: Any) -> List[str]:
    """Names bound by assignment anywhere in the tree, first occurrence first."""
    found: List[str] = []

    def visit(n: Any) -> None:
        match n:
            case Call(fn=Name(identifier=op), args=args) if op in ASSIGN_FUNCTIONS and len(args) == 2:
                name = _assigned_name(args[0].value)
                if name is not None and name not in found:
                    found.append(name)
                visit(args[0].value)
                visit(args[1].value)
                return
            case Call(fn=Name(identifier="assign"), args=args) if args:
                first = args[0].value
                if isinstance(first, Constant) and isinstance(first.value, str):
                    if first.value not in found:
                        found.append(first.value)

        match n:
            case Call(fn=fn, args=args):
                visit(fn)
                for arg in args:
                    visit(arg.value)
            case Pairlist(formals=formals):
                for formal in formals:
                    visit(formal.default)

    visit(node)
    return found


def replace_names(
    node: Any,
    lookup: Callable[[str], Any],
    splice: Optional[Callable[[str], Optional[List[Arg]]]] = None,
) -> Any:
    """Rebuild ``node`` with names substituted.

    ``lookup(name)`` returns the replacement (a node or an inlined value) or
    None to keep the name. ``splice(name)``, when given, may return a list of
    arguments to splice in place of a bare name in argument position; this is
    how `...` expands inside substitute().
    """
    match node:
        case Name(identifier=identifier) if identifier:
            replacement = lookup(identifier)
            return node if replacement is None else replacement

        case Call(fn=fn, args=args):
            new_args: List[Arg] = []
            for arg in args:
                value = arg.value
                if splice is not None and isinstance(value, Name) and value != EMPTY:
                    spliced = splice(value.identifier)
                    if spliced is not None:
                        new_args.extend(spliced)
                        continue
                new_args.append(Arg(arg.tag, replace_names(value, lookup, splice)))
            return Call(replace_names(fn, lookup, splice), tuple(new_args))

        case Pairlist(formals=formals):
            return Pairlist(tuple(
                Formal(f.name, replace_names(f.default, lookup, splice)) for f in formals
            ))

        case _:
            return node


def modify_call(call: Call, changes: Dict[str, Any]) -> Call:
    """Add, replace or (with a None value) remove tagged arguments."""
    if not isinstance(call, Call):
        raise InvalidCallShape("modify_call needs a call")

    args = list(call.args)

    for tag, value in changes.items():
        if not tag:
            raise InvalidCallShape("all new arguments must be named")

        idx = next((i for i, a in enumerate(args) if a.tag == tag), None)

        if value is None:
            if idx is not None:
                del args[idx]
        elif idx is None:
            args.append(Arg(tag, as_node(value)))
        else:
            args[idx] = Arg(tag, as_node(value))

    return Call(call.fn, tuple(args))
