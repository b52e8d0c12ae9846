from __future__ import annotations

import sys

import pytest

from rquote.runner import format_error, main, repl_eval, run_source, source_file
from rquote.runtime import new_scope
from rquote.types import NO_VALUE
from tests.support.harness import RConditionError, RRuntimeError, parse, run_program


def test_run_source_evaluates_in_order_and_returns_last_value() -> None:
    scope = new_scope()
    result = run_source(parse("x <- 1\nx <- x + 1\nx"), scope)

    assert result == 2.0
    assert scope.vars["x"] == 2.0


def test_run_source_of_nothing_is_no_value() -> None:
    assert run_source([]) is NO_VALUE
    assert run_program("# just a comment\n") is NO_VALUE


def test_source_file_reads_and_runs(tmp_path) -> None:
    script = tmp_path / "script.R"
    script.write_text("sq <- function(n) n * n\nsq(4)\n", encoding="utf-8")
    scope = new_scope()

    assert source_file(script, scope) == 16.0
    assert "sq" in scope.vars


def test_source_file_missing_path(tmp_path) -> None:
    with pytest.raises(RRuntimeError) as exc_info:
        source_file(tmp_path / "nope.R")
    assert "cannot open file" in str(exc_info.value)


@pytest.mark.parametrize(
    "source, msg",
    [
        pytest.param("break", "no loop for break/next", id="break"),
        pytest.param("next", "no loop for break/next", id="next"),
        pytest.param("return(1)", "no function to return from", id="return"),
    ],
)
def test_control_signals_at_top_level_are_errors(source: str, msg: str) -> None:
    with pytest.raises(RRuntimeError) as exc_info:
        run_program(source)
    assert msg in str(exc_info.value)


@pytest.mark.parametrize(
    "source, visible",
    [
        pytest.param("1 + 1", True, id="arithmetic"),
        pytest.param("x <- 1", False, id="assignment"),
        pytest.param("x = 1", False, id="eq-assignment"),
        pytest.param("invisible(3)", False, id="invisible"),
        pytest.param("for (i in 1:2) i", False, id="for-loop"),
        pytest.param("(x <- 1)", True, id="parenthesized-assignment"),
        pytest.param("quote(x <- 1)", True, id="quoted-assignment"),
    ],
)
def test_repl_eval_visibility(source: str, visible: bool) -> None:
    _, shown = repl_eval(source, new_scope())
    assert shown is visible


def test_repl_eval_keeps_bindings_between_entries() -> None:
    scope = new_scope()
    repl_eval("y <- 10", scope)
    value, shown = repl_eval("y * 2", scope)

    assert value == 20.0
    assert shown


def test_format_error_names_the_call() -> None:
    with pytest.raises(RConditionError) as exc_info:
        run_program('f <- function() stop("boom")\nf()')
    assert format_error(exc_info.value) == "Error in f() : boom"


def test_format_error_without_call() -> None:
    with pytest.raises(RConditionError) as exc_info:
        run_program('stop("top level")')
    assert format_error(exc_info.value) == "Error: top level"


def _run_main(monkeypatch, *argv: str) -> None:
    monkeypatch.setattr(sys, "argv", ["rquote", *argv])
    main()


def test_main_runs_source_and_prints_visible_values(monkeypatch, capsys) -> None:
    _run_main(monkeypatch, "x <- 2\nx + 1\ninvisible(5)")
    assert capsys.readouterr().out == "[1] 3\n"


def test_main_ast_mode(monkeypatch, capsys) -> None:
    _run_main(monkeypatch, "--ast", "f(1)")
    assert capsys.readouterr().out.splitlines() == ["\\- ()", "  \\- `f", "  \\-  1"]


def test_main_deparse_mode(monkeypatch, capsys) -> None:
    _run_main(monkeypatch, "--deparse", "1 -> x; \\(y) y")
    assert capsys.readouterr().out.splitlines() == ["x <- 1", "function(y) y"]


def test_main_cst_mode(monkeypatch, capsys) -> None:
    _run_main(monkeypatch, "--cst", "f(1)")
    assert capsys.readouterr().out.startswith("program")


def test_main_reads_script_file(monkeypatch, capsys, tmp_path) -> None:
    script = tmp_path / "run.R"
    script.write_text('paste("a", "b")\n', encoding="utf-8")

    _run_main(monkeypatch, str(script))
    assert capsys.readouterr().out == '[1] "a b"\n'


def test_main_error_exits_nonzero(monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        _run_main(monkeypatch, 'stop("bad input")')

    assert exc_info.value.code == 1
    assert "Error: bad input" in capsys.readouterr().err


def test_main_parse_error_exits_nonzero(monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        _run_main(monkeypatch, "f(1))")

    assert exc_info.value.code == 1
    assert "unexpected ')'" in capsys.readouterr().err


def test_main_rejects_extra_arguments(monkeypatch) -> None:
    with pytest.raises(SystemExit) as exc_info:
        _run_main(monkeypatch, "1", "2")
    assert "Unexpected argument" in str(exc_info.value.code)
