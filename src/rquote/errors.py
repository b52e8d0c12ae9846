from __future__ import annotations

from typing import Any, Optional, Tuple

# ---------- Exceptions (keep R* canonical for evaluation errors) ----------

class RQuoteError(Exception):
    """Base class for every error raised by rquote."""


class ParseError(RQuoteError):
    """Malformed source text, with the position it was detected at."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None,
                 incomplete: bool = False):
        self.message = message
        self.line = line
        self.column = column
        # input ended while a construct was still open
        self.incomplete = incomplete
        super().__init__(
            f"{message} at line {line}, col {column}" if line is not None else message
        )

    @property
    def position(self) -> Tuple[Optional[int], Optional[int]]:
        return (self.line, self.column)


class LexError(ParseError):
    """Lexical analysis error"""


class InvalidCallShape(RQuoteError):
    pass


class DuplicateFormalName(RQuoteError):
    def __init__(self, name: str):
        super().__init__(f"repeated formal argument '{name}'")
        self.name = name


class Unrenderable(RQuoteError):
    """A tree holds a value that has no source-text form."""

    def __init__(self, value: Any, where: str = "argument"):
        super().__init__(
            f"cannot deparse {type(value).__name__} value embedded as {where}"
        )
        self.value = value
        self.where = where


class RRuntimeError(RQuoteError):
    call: Optional[Any]

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.call = None
        # set once the error has been tied to the call it belongs to
        self.located = False

    def __str__(self) -> str:
        if self.call is None:
            return self.message

        from .deparse import deparse_or_none

        text = deparse_or_none(self.call)
        if text is None:
            return self.message

        first = text.split("\n", 1)[0]
        return f"Error in {first} : {self.message}"


class MissingArgument(RRuntimeError):
    """The empty name was used where a value is required."""

    def __init__(self, message: str = "argument is missing, with no default"):
        super().__init__(message)


class RTypeError(RRuntimeError):
    pass


class RArityError(RRuntimeError):
    pass


class RObjectNotFound(RRuntimeError):
    def __init__(self, name: str, what: str = "object"):
        if what == "function":
            message = f'could not find function "{name}"'
        else:
            message = f"{what} '{name}' not found"
        super().__init__(message)
        self.name = name


class RConditionError(RRuntimeError):
    """Raised by stop()."""


class ReturnSignal(Exception):
    """Internal control-flow exception used to implement `return`."""
    def __init__(self, value: Any):
        self.value = value


class BreakSignal(Exception):
    """Internal control flow for `break`."""


class NextSignal(Exception):
    """Internal control flow for `next`."""
