from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..deparse import deparse_or_none
from ..errors import RArityError
from ..tree import Pairlist, as_node, is_node
from ..types import Promise

ArgList = List[Tuple[Optional[str], Any]]


def _describe(tag: Optional[str], value: Any) -> str:
    expr = value.expr if isinstance(value, Promise) else value
    node = as_node(expr)
    text = deparse_or_none(node) if is_node(node) else None

    if text is None:
        text = f"<{type(expr).__name__}>"

    return f"{tag} = {text}" if tag is not None else text


def match_args(formals: Pairlist, supplied: Sequence[Tuple[Optional[str], Any]]) -> Tuple[Dict[str, Any], ArgList]:
    """Match supplied (tag, value) pairs to formals.

    Exact tags first, then unique tag prefixes for formals before `...`, then
    positions. Whatever is left goes to `...` when the function has one.
    Returns the matched values by formal name and the leftover dots entries.
    """
    names = formals.names
    has_dots = "..." in names
    before_dots = names[:names.index("...")] if has_dots else names

    matched: Dict[str, Any] = {}
    used = [False] * len(supplied)

    for idx, (tag, value) in enumerate(supplied):
        if tag is None or tag == "..." or tag not in names:
            continue
        if tag in matched:
            raise RArityError(f'formal argument "{tag}" matched by multiple actual arguments')
        matched[tag] = value
        used[idx] = True

    for idx, (tag, value) in enumerate(supplied):
        if used[idx] or not tag:
            continue

        candidates = [n for n in before_dots if n not in matched and n.startswith(tag)]
        if len(candidates) > 1:
            raise RArityError(f"argument {idx + 1} matches multiple formal arguments")
        if candidates:
            matched[candidates[0]] = value
            used[idx] = True

    free = iter([n for n in before_dots if n not in matched])
    dots: ArgList = []

    for idx, (tag, value) in enumerate(supplied):
        if used[idx]:
            continue

        if tag is None:
            target = next(free, None)
            if target is not None:
                matched[target] = value
                continue

        if has_dots:
            dots.append((tag, value))
            continue

        raise RArityError(f"unused argument ({_describe(tag, value)})")

    return matched, dots
