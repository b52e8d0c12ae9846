from __future__ import annotations

from textwrap import dedent

import pytest

from rquote.runtime import new_scope
from tests.support.harness import (
    InvalidCallShape,
    RArityError,
    RTypeError,
    run_program,
    run_runtime_case,
)

SCENARIOS = [
    # quote
    pytest.param("quote(x + y)", ("code", "x + y"), None, id="quote-call"),
    pytest.param("quote(x)", ("code", "x"), None, id="quote-name"),
    pytest.param("quote(1)", ("number", 1), None, id="quote-constant-is-value"),
    pytest.param('quote("a")', ("string", "a"), None, id="quote-string"),
    pytest.param("quote(expr = f(1))", ("code", "f(1)"), None, id="quote-tagged"),
    pytest.param("quote(x <- 1)", ("code", "x <- 1"), None, id="quote-does-not-assign"),
    pytest.param(
        "identical(quote(f(x)), call(\"f\", quote(x)))",
        ("bool", True),
        None,
        id="quote-equals-constructed",
    ),
    pytest.param("identical(quote(1L), 1L)", ("bool", True), None, id="quoted-literal-identical"),
    pytest.param(
        'c(class(quote(x)), class(quote(f(x))), class(quote(if (a) b)))',
        ("vector", ["name", "call", "if"]),
        None,
        id="classes-of-code",
    ),
    pytest.param(
        "c(typeof(quote(x)), typeof(quote(f(x))))",
        ("vector", ["symbol", "language"]),
        None,
        id="typeof-code",
    ),
    # bquote
    pytest.param(
        dedent(
            """\
            y <- 2
            bquote(x + .(y))
        """
        ),
        ("code", "x + 2"),
        None,
        id="bquote-unquote",
    ),
    pytest.param(
        "bquote(.(quote(a)) + 1)",
        ("code", "a + 1"),
        None,
        id="bquote-insert-code",
    ),
    pytest.param(
        dedent(
            """\
            args <- list(1, quote(b))
            bquote(f(..(args)))
        """
        ),
        ("code", "f(1, b)"),
        None,
        id="bquote-splice",
    ),
    pytest.param(
        dedent(
            """\
            args <- list(n = 1)
            bquote(f(a, ..(args)))
        """
        ),
        ("code", "f(a, n = 1)"),
        None,
        id="bquote-splice-keeps-names",
    ),
    pytest.param(
        "bquote(.(a) * 2, list(a = quote(z)))",
        ("code", "z * 2"),
        None,
        id="bquote-where-list",
    ),
    pytest.param(
        dedent(
            """\
            k <- 1
            bquote(function(x) x + .(k))
        """
        ),
        ("code", "function(x) x + 1"),
        None,
        id="bquote-into-function",
    ),
    pytest.param(
        dedent(
            """\
            d <- 3
            bquote(function(x = .(d)) x)
        """
        ),
        ("code", "function(x = 3) x"),
        None,
        id="bquote-into-default",
    ),
    pytest.param("bquote(.(5))", ("number", 5), None, id="bquote-whole-is-value"),
    # substitute
    pytest.param("substitute(x + y, list(x = 1))", ("code", "1 + y"), None, id="substitute-list"),
    pytest.param(
        "substitute(f(x), list(f = quote(g)))",
        ("code", "g(x)"),
        None,
        id="substitute-callee",
    ),
    pytest.param(
        dedent(
            """\
            a <- 1
            substitute(a + b)
        """
        ),
        ("code", "a + b"),
        None,
        id="substitute-global-unchanged",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) substitute(x)
            f(a * b)
        """
        ),
        ("code", "a * b"),
        None,
        id="substitute-promise",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) deparse(substitute(x))
            f(foo(bar))
        """
        ),
        ("string", "foo(bar)"),
        None,
        id="deparse-substitute",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(...) substitute(list(...))
            f(a, b = c)
        """
        ),
        ("code", "list(a, b = c)"),
        None,
        id="substitute-dots",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) {
              y <- 10
              substitute(x + y)
            }
            f(z)
        """
        ),
        ("code", "z + 10"),
        None,
        id="substitute-local-value",
    ),
    pytest.param(
        dedent(
            """\
            f <- function(x) substitute(x)
            f()
        """
        ),
        ("code", ""),
        None,
        id="substitute-missing-is-empty",
    ),
    # eval
    pytest.param("eval(quote(x * 2), list(x = 5))", ("number", 10), None, id="eval-list"),
    pytest.param('evalq(x, list(x = "e"))', ("string", "e"), None, id="evalq-list"),
    pytest.param(
        dedent(
            """\
            e <- new.env()
            assign("v", 3, envir = e)
            eval(quote(v + 1), e)
        """
        ),
        ("number", 4),
        None,
        id="eval-environment",
    ),
    pytest.param(
        dedent(
            """\
            e <- new.env()
            evalq(w <- 2, e)
            c(exists("w"), get("w", envir = e))
        """
        ),
        ("vector", [0.0, 2.0]),
        None,
        id="evalq-binds-in-target",
    ),
    pytest.param(
        dedent(
            """\
            n <- 100
            eval(quote(n + m), list(m = 1))
        """
        ),
        ("number", 101),
        None,
        id="eval-list-encloses-caller",
    ),
    pytest.param("eval(7)", ("number", 7), None, id="eval-value"),
    pytest.param(
        'eval(parse(text = "1 + 2; 3 * 4"))',
        ("number", 12),
        None,
        id="eval-parsed",
    ),
    pytest.param(
        'parse(text = "a; b(c)")',
        ("expression", ["a", "b(c)"]),
        None,
        id="parse-text",
    ),
    pytest.param(
        'parse(text = c("x <- 1", "y"))',
        ("expression", ["x <- 1", "y"]),
        None,
        id="parse-text-lines",
    ),
    pytest.param(
        "expression(a + 1, b)",
        ("expression", ["a + 1", "b"]),
        None,
        id="expression",
    ),
    pytest.param(
        "length(expression(a, b, c))",
        ("int", 3),
        None,
        id="expression-length",
    ),
    # deparse
    pytest.param(
        "deparse(quote(if (a) b else c))",
        ("string", "if (a) b else c"),
        None,
        id="deparse-if",
    ),
    pytest.param("deparse(c(1, 2))", ("string", "c(1, 2)"), None, id="deparse-vector"),
    pytest.param('deparse("a")', ("string", '"a"'), None, id="deparse-string"),
    pytest.param(
        "deparse(list(a = 1, 2))",
        ("string", "list(a = 1, 2)"),
        None,
        id="deparse-list",
    ),
    pytest.param(
        "deparse(quote(function(x) {\n  x\n}))",
        ("vector", ["function(x) {", "    x", "}"]),
        None,
        id="deparse-multiline",
    ),
    pytest.param(
        "deparse(function(a) a)",
        ("string", "function(a) a"),
        None,
        id="deparse-closure",
    ),
    # construction
    pytest.param('call("round", 10.5)', ("code", "round(10.5)"), None, id="call"),
    pytest.param(
        'call("f", quote(x), n = 2)',
        ("code", "f(x, n = 2)"),
        None,
        id="call-tagged",
    ),
    pytest.param('eval(call("paste", "a", "b"))', ("string", "a b"), None, id="call-then-eval"),
    pytest.param(
        'as.call(list(as.name("max"), 1, 5))',
        ("code", "max(1, 5)"),
        None,
        id="as-call",
    ),
    pytest.param(
        'as.call(list(quote(f), a = 1))',
        ("code", "f(a = 1)"),
        None,
        id="as-call-tags",
    ),
    pytest.param('as.name("my var")', ("code", "`my var`"), None, id="as-name"),
    pytest.param('as.symbol("x")', ("code", "x"), None, id="as-symbol"),
    pytest.param("alist(a = , b = 1)", ("names", ["a", "b"]), None, id="alist-names"),
    pytest.param("alist(x + y)[[1]]", ("code", "x + y"), None, id="alist-unevaluated"),
    pytest.param("typeof(pairlist(a = 1))", ("string", "pairlist"), None, id="pairlist"),
    pytest.param("pairlist()", ("null", None), None, id="pairlist-empty"),
    pytest.param(
        "names(as.pairlist(alist(x = , y = 2)))",
        ("vector", ["x", "y"]),
        None,
        id="as-pairlist",
    ),
    # tree tools
    pytest.param(
        "modify_call(quote(f(a = 1, b = 2)), b = NULL, d = 3)",
        ("code", "f(a = 1, d = 3)"),
        None,
        id="modify-call",
    ),
    pytest.param(
        "modify_call(quote(f(a = 1)), a = quote(z))",
        ("code", "f(a = z)"),
        None,
        id="modify-call-replace",
    ),
    pytest.param(
        "all.names(quote(sin(x + y)))",
        ("vector", ["sin", "+", "x", "y"]),
        None,
        id="all-names",
    ),
    pytest.param(
        "all.vars(quote(sin(x + y * x)))",
        ("vector", ["x", "y"]),
        None,
        id="all-vars",
    ),
    pytest.param(
        'find_assign(quote({\n  a <- 1\n  b = 2\n  names(d) <- "x"\n}))',
        ("vector", ["a", "b", "d"]),
        None,
        id="find-assign",
    ),
    pytest.param(
        'find_assign(quote(assign("k", 1)))',
        ("string", "k"),
        None,
        id="find-assign-call",
    ),
    pytest.param("logical_abbr(quote(f(T)))", ("bool", True), None, id="logical-abbr"),
    pytest.param(
        "logical_abbr(quote(function(T) TRUE))",
        ("bool", False),
        None,
        id="logical-abbr-formal-is-not-use",
    ),
    pytest.param("arity(quote(f(1, 2)))", ("int", 2), None, id="arity"),
]

ERROR_SCENARIOS = [
    pytest.param("quote(a, b)", RArityError, "requires 1", id="quote-arity"),
    pytest.param('call("")', InvalidCallShape, "callee", id="call-empty-name"),
    pytest.param("call(1)", RTypeError, "character string", id="call-non-string"),
    pytest.param("substitute(x, 1)", RTypeError, "invalid environment", id="substitute-bad-env"),
    pytest.param("modify_call(quote(f()), 1)", InvalidCallShape, "must be named", id="modify-call-untagged"),
    pytest.param("arity(quote(x))", RTypeError, "needs a call", id="arity-of-name"),
    pytest.param('eval(quote(x), "no")', RTypeError, "invalid 'envir'", id="eval-bad-envir"),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_quoting(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


@pytest.mark.parametrize("source, expected_exc, msg", ERROR_SCENARIOS)
def test_quoting_errors(source: str, expected_exc, msg: str) -> None:
    run_runtime_case(source, None, expected_exc, msg)


def test_ast_prints_tree(capsys) -> None:
    result = run_program("ast(f(x, 1))")

    assert result is None
    assert capsys.readouterr().out.splitlines() == [
        "\\- ()",
        "  \\- `f",
        "  \\- `x",
        "  \\-  1",
    ]


def test_code_built_at_runtime_evaluates_in_scope() -> None:
    scope = new_scope()
    run_program("x <- 3\nexpr <- bquote(x * .(x))", scope)

    assert run_program("eval(expr)", scope) == 9.0
    assert run_program("x <- 10\neval(expr)", scope) == 30.0
