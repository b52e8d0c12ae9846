from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    MissingArgument,
    RArityError,
    RConditionError,
    RObjectNotFound,
    RRuntimeError,
    RTypeError,
    run_program,
    run_runtime_case,
)

SCENARIOS = [
    pytest.param(
        dedent(
            """\
            add <- function(a = 1, b = 2) a + b
            add()
        """
        ),
        ("number", 3),
        None,
        id="defaults",
    ),
    pytest.param(
        dedent(
            """\
            add <- function(a, b = 2) a + b
            add(10)
        """
        ),
        ("number", 12),
        None,
        id="default-partial",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x, y = x * 2) y
            f(3)
        """
        ),
        ("number", 6),
        None,
        id="default-refers-to-other-formal",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x = y) {
              y <- 5
              x
            }
            f()
        """
        ),
        ("number", 5),
        None,
        id="default-evaluated-in-call-frame",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) 10
            f(stop("never forced"))
        """
        ),
        ("number", 10),
        None,
        id="lazy-argument-never-forced",
    ),
    pytest.param(
        dedent(
            """\
            n <- 0
            f <- function(x) { x; x; n }
            f(n <- n + 1)
        """
        ),
        ("number", 1),
        None,
        id="promise-forced-once",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(first, second) first - second
            f(second = 1, 10)
        """
        ),
        ("number", 9),
        None,
        id="named-then-positional",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(value, other) value
            f(val = 4, 1)
        """
        ),
        ("number", 4),
        None,
        id="partial-name-match",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(...) length(list(...))
            f(1, "a", TRUE)
        """
        ),
        ("int", 3),
        None,
        id="dots-collects",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(...) ..2
            f("a", "b", "c")
        """
        ),
        ("string", "b"),
        None,
        id="dots-by-position",
    ),
    pytest.param(
        dedent(
            """\
            inner <- function(a, b) paste(a, b)
            outer <- function(...) inner(...)
            outer(b = "y", "x")
        """
        ),
        ("string", "x y"),
        None,
        id="dots-forwarded",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x, ...) names(list(...))
            f(1, a = 2, b = 3)
        """
        ),
        ("vector", ["a", "b"]),
        None,
        id="dots-keep-tags",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) missing(x)
            c(f(), f(1))
        """
        ),
        ("vector", [True, False]),
        None,
        id="missing",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x = 1) missing(x)
            f()
        """
        ),
        ("bool", True),
        None,
        id="missing-with-default",
    ),
    pytest.param(
        dedent(
            """\
            g <- function(y) missing(y)
            f <- function(x) g(x)
            f()
        """
        ),
        ("bool", True),
        None,
        id="missing-forwarded",
    ),
    pytest.param(
        dedent(
            """\
            fact <- function(n) if (n <= 1) 1 else n * fact(n - 1)
            fact(5)
        """
        ),
        ("number", 120),
        None,
        id="recursion",
    ),
    pytest.param(
        dedent(
            """\
            f <- function() {
              return("early")
              "late"
            }
            f()
        """
        ),
        ("string", "early"),
        None,
        id="return",
    ),
    pytest.param(
        dedent(
            """\
            f <- function() return()
            f()
        """
        ),
        ("null", None),
        None,
        id="bare-return",
    ),
    pytest.param(
        dedent(
            """\
            make_counter <- function() {
              i <- 0
              function() {
                i <<- i + 1
                i
              }
            }
            counter <- make_counter()
            counter()
            counter()
        """
        ),
        ("number", 2),
        None,
        id="closure-state",
    ),
    pytest.param(
        dedent(
            """\
            adder <- function(n) function(x) x + n
            add2 <- adder(2)
            n <- 100
            add2(1)
        """
        ),
        ("number", 3),
        None,
        id="lexical-capture",
    ),
    pytest.param(
        "(\\(x) x * 2)(21)",
        ("number", 42),
        None,
        id="lambda-called-inline",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x, y) match.call()
            f(y = 2, 1)
        """
        ),
        ("code", "f(x = 1, y = 2)"),
        None,
        id="match-call",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x, ...) match.call()
            f(1, 2, extra = 3)
        """
        ),
        ("code", "f(x = 1, 2, extra = 3)"),
        None,
        id="match-call-dots",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(...) match.call(expand.dots = FALSE)
            f(1, 2)
        """
        ),
        ("code", "f(... = list(1, 2))"),
        None,
        id="match-call-collapsed-dots",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) sys.call()
            f(1 + 2)
        """
        ),
        ("code", "f(1 + 2)"),
        None,
        id="sys-call",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x, y = 1) NULL
            names(formals(f))
        """
        ),
        ("vector", ["x", "y"]),
        None,
        id="formals",
    ),
    pytest.param(
        "body(function(x) x + 1)",
        ("code", "x + 1"),
        None,
        id="body",
    ),
    pytest.param(
        "body(function() 1)",
        ("number", 1),
        None,
        id="body-constant-is-value",
    ),
    pytest.param(
        "formals(function() NULL)",
        ("null", None),
        None,
        id="no-formals-is-null",
    ),
    pytest.param(
        "args(paste)",
        ("closure", ["...", "sep", "collapse"]),
        None,
        id="args-of-builtin",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) x
            formals(f) <- alist(x = , y = 10)
            f(1)
            names(formals(f))
        """
        ),
        ("vector", ["x", "y"]),
        None,
        id="formals-replacement",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) x
            body(f) <- quote(x * 2)
            f(4)
        """
        ),
        ("number", 8),
        None,
        id="body-replacement",
    ),
    pytest.param(
        dedent(
            """\
            f <- make_function(alist(x = , y = 2), quote(x + y))
            f(1)
        """
        ),
        ("number", 3),
        None,
        id="make-function",
    ),
    pytest.param(
        "make_function(alist(a = , b = ), quote(a))",
        ("closure", ["a", "b"]),
        None,
        id="make-function-value",
    ),
    pytest.param(
        dedent(
            """\
            e <- new.env()
            assign("k", 7, envir = e)
            f <- make_function(alist(), quote(k), e)
            f()
        """
        ),
        ("number", 7),
        None,
        id="make-function-scope",
    ),
    pytest.param(
        'do.call("paste", list("a", "b", sep = "-"))',
        ("string", "a-b"),
        None,
        id="do-call-by-name",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x, y) x - y
            do.call(f, list(y = 1, x = 10))
        """
        ),
        ("number", 9),
        None,
        id="do-call-closure",
    ),
    pytest.param(
        dedent(
            """\
            f <- function() parent.frame()
            g <- function() identical(f(), environment())
            g()
        """
        ),
        ("bool", True),
        None,
        id="parent-frame",
    ),
    pytest.param(
        "identical(parent.frame(), globalenv())",
        ("bool", True),
        None,
        id="parent-frame-top-level",
    ),
    pytest.param(
        dedent(
            """\
            f <- function() NULL
            identical(environment(f), globalenv())
        """
        ),
        ("bool", True),
        None,
        id="closure-environment",
    ),
    pytest.param(
        dedent(
            """\
            f <- function() x
            e <- new.env()
            assign("x", "from e", envir = e)
            environment(f) <- e
            f()
        """
        ),
        ("string", "from e"),
        None,
        id="environment-replacement",
    ),
    pytest.param(
        dedent(
            """\
            sq <- function(v) v * v
            lapply(list(a = 1, b = 2), sq)
        """
        ),
        ("list", [1.0, 4.0]),
        None,
        id="lapply-closure",
    ),
    pytest.param(
        "typeof(function(x) x)",
        ("string", "closure"),
        None,
        id="typeof-closure",
    ),
    pytest.param(
        "c(typeof(paste), typeof(quote))",
        ("vector", ["builtin", "special"]),
        None,
        id="typeof-builtins",
    ),
]

ERROR_SCENARIOS = [
    pytest.param(
        dedent(
            """\
            f <- function(x) x
            f(1, 2)
        """
        ),
        RArityError,
        "unused argument (2)",
        id="unused-argument",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) x
            f(y = 2)
        """
        ),
        RArityError,
        "unused argument (y = 2)",
        id="unused-tagged-argument",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(value, valid) 1
            f(val = 3)
        """
        ),
        RArityError,
        "matches multiple formal arguments",
        id="ambiguous-partial-match",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) x
            f(x = 1, x = 2)
        """
        ),
        RArityError,
        "matched by multiple actual arguments",
        id="duplicate-tag",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) x
            f()
        """
        ),
        MissingArgument,
        'argument "x" is missing, with no default',
        id="missing-argument-read",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x = x) x
            f()
        """
        ),
        RRuntimeError,
        "promise already under evaluation",
        id="recursive-default",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(...) ..3
            f(1)
        """
        ),
        RRuntimeError,
        "does not contain 3 elements",
        id="dots-out-of-range",
    ),
    pytest.param(
        "..1",
        RRuntimeError,
        "'...' used in an incorrect context",
        id="dots-outside-function",
    ),
    pytest.param(
        "missing(x)",
        RRuntimeError,
        "'missing' can only be used for arguments",
        id="missing-outside-function",
    ),
    pytest.param(
        "match.call()",
        RRuntimeError,
        "called from outside a function",
        id="match-call-outside-function",
    ),
    pytest.param(
        "undefined_fn(1)",
        RObjectNotFound,
        'could not find function "undefined_fn"',
        id="unknown-function",
    ),
    pytest.param(
        dedent(
            """\
            x <- 5
            x(1)
        """
        ),
        RObjectNotFound,
        'could not find function "x"',
        id="non-function-binding-skipped",
    ),
    pytest.param(
        "(1)(2)",
        RTypeError,
        "attempt to apply non-function",
        id="apply-non-function",
    ),
    pytest.param(
        "make_function(list(1), quote(x))",
        RRuntimeError,
        "all formal arguments need names",
        id="make-function-unnamed-formals",
    ),
    pytest.param(
        dedent(
            """\
            f <- function() stop("boom")
            f()
        """
        ),
        RConditionError,
        "Error in f() : boom",
        id="stop-names-caller",
    ),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_functions(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


@pytest.mark.parametrize("source, expected_exc, msg", ERROR_SCENARIOS)
def test_function_errors(source: str, expected_exc, msg: str) -> None:
    run_runtime_case(source, None, expected_exc, msg)


def test_function_value_prints_as_source() -> None:
    from rquote.utils import format_value

    fn = run_program("function(x, y = 2) x + y")
    assert format_value(fn) == "function(x, y = 2) x + y"


@pytest.mark.parametrize(
    "source, expected",
    [
        pytest.param("formals(function(x = 2) x)", "$x\n[1] 2\n", id="formals-default"),
        pytest.param("formals(function(x, y = 'a') x)", '$x\n\n\n$y\n[1] "a"\n', id="formals-mixed"),
        pytest.param("pairlist(n = 1L)", "$n\n[1] 1\n", id="pairlist"),
        pytest.param("quote(function(x, y = 2) x)[[2]]", "$x\n\n\n$y\n[1] 2\n", id="quoted-formals"),
        pytest.param("quote(`a b`)", "`a b`", id="odd-name-quoted"),
        pytest.param("list(`a b` = 1)", "$`a b`\n[1] 1\n", id="odd-list-name"),
        pytest.param('call("f", 1:3)', "f(c(1L, 2L, 3L))", id="inlined-vector"),
        pytest.param('call("f", list(a = 1))', "f(list(a = 1))", id="inlined-list"),
        pytest.param('call("f", new.env())', "f(<environment>)", id="inlined-environment"),
    ],
)
def test_printed_values_use_r_syntax(source: str, expected: str) -> None:
    from rquote.utils import format_value

    assert format_value(run_program(source)) == expected


def test_closure_frame_records_call_and_caller() -> None:
    scope_env = run_program("f <- function(a) environment()\nf(1)")

    assert scope_env.call is not None
    assert scope_env.function is not None
    assert scope_env.caller is not None and scope_env.caller.is_global
