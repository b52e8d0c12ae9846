from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .ast_transforms import to_expr
from .deparse import deparse
from .errors import BreakSignal, NextSignal, RQuoteError, RRuntimeError, ReturnSignal
from .evaluator import eval_node
from .parser_rd import parse_source
from .render import render
from .runtime import init_stdlib, new_scope
from .tree import Call, Name
from .types import NO_VALUE, Environment, RValue
from .utils import INVISIBLE_CALLS, configure_logging, debug_py_trace_enabled, format_value

logger = logging.getLogger(__name__)

Evaluator = Callable[[Any, Environment], RValue]


def parse(text: str) -> List[Any]:
    """Parse source text into its top-level expressions, all or nothing."""
    cst = parse_source(text)
    nodes = to_expr(cst)
    logger.debug("parsed %d top-level expressions", len(nodes))
    return nodes


def run_source(nodes: Sequence[Any], scope: Optional[Environment] = None,
               evaluator: Evaluator = eval_node) -> RValue:
    """Evaluate ``nodes`` in order; the value of the last one is the result.

    An empty sequence yields NO_VALUE. Loop and return signals that reach
    the top level become runtime errors.
    """
    init_stdlib()

    if scope is None:
        scope = new_scope()

    result: RValue = NO_VALUE

    for node in nodes:
        try:
            result = evaluator(node, scope)
        except BreakSignal:
            raise RRuntimeError("no loop for break/next, jumping to top level") from None
        except NextSignal:
            raise RRuntimeError("no loop for break/next, jumping to top level") from None
        except ReturnSignal:
            raise RRuntimeError("no function to return from, jumping to top level") from None

    return result


def source_text(text: str, scope: Optional[Environment] = None) -> RValue:
    return run_source(parse(text), scope)


def source_file(path: str | Path, scope: Optional[Environment] = None) -> RValue:
    p = Path(path)
    if not p.exists():
        raise RRuntimeError(f"cannot open file '{p}': No such file or directory")

    logger.debug("sourcing %s", p)
    return source_text(p.read_text(encoding="utf-8"), scope)


def is_visible(node: Any) -> bool:
    """Whether the REPL echoes the value of a top-level expression."""
    if isinstance(node, Call) and isinstance(node.fn, Name):
        return node.fn.identifier not in INVISIBLE_CALLS
    return True


def repl_eval(text: str, scope: Environment) -> Tuple[RValue, bool]:
    """Run one REPL entry; returns the last value and whether to echo it."""
    nodes = parse(text)
    result = run_source(nodes, scope)
    visible = bool(nodes) and is_visible(nodes[-1])
    return result, visible


def format_error(exc: BaseException) -> str:
    if isinstance(exc, RRuntimeError) and exc.call is not None:
        return str(exc)
    return f"Error: {exc}"


def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg


def main() -> None:
    configure_logging()

    mode = "run"
    arg = None

    for token in sys.argv[1:]:
        if token in ("--ast", "--cst", "--deparse"):
            mode = token[2:]
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    source = _load_source(arg or "-")

    try:
        if mode == "cst":
            print(parse_source(source).pretty())
            return

        nodes = parse(source)

        if mode == "ast":
            for node in nodes:
                print(render(node))
            return

        if mode == "deparse":
            for node in nodes:
                print(deparse(node))
            return

        scope = new_scope()
        for node in nodes:
            result = run_source([node], scope)
            if is_visible(node):
                print(format_value(result))
    except RQuoteError as exc:
        print(format_error(exc), file=sys.stderr)
        if debug_py_trace_enabled():
            traceback.print_exc(file=sys.stderr)
        raise SystemExit(1) from None


if __name__ == "__main__":
    main()
