from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple
from typing_extensions import TypeAlias, TypeGuard

from .errors import MissingArgument, RObjectNotFound, RRuntimeError
from .tree import Pairlist, make_pairlist

# ---------- Value Model ----------
#
# Runtime values are plain Python where possible: None is NULL, bool/int/
# float/str are length-one vectors, a Python list is a longer atomic vector.
# Expression nodes are values too (quote() returns them unchanged).

class NoValue:
    """Result of running an empty program."""
    _instance: Optional['NoValue'] = None

    def __new__(cls) -> 'NoValue':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE = NoValue()


@dataclass
class RList:
    """Generic vector: list(a = 1, 2)."""
    items: List[Any] = field(default_factory=list)
    names: Optional[List[str]] = None

    def __post_init__(self) -> None:
        if self.names is not None and len(self.names) != len(self.items):
            raise ValueError("names must line up with items")

    def __len__(self) -> int:
        return len(self.items)

    def index_of(self, name: str) -> Optional[int]:
        if self.names is None:
            return None
        for idx, candidate in enumerate(self.names):
            if candidate == name:
                return idx
        return None

    def get(self, name: str) -> Any:
        idx = self.index_of(name)
        if idx is None:
            raise KeyError(name)
        return self.items[idx]

    def pairs(self) -> Iterator[Tuple[str, Any]]:
        names = self.names or [""] * len(self.items)
        return iter(zip(names, self.items))


@dataclass(frozen=True)
class ExprVector:
    """What parse() returns: a sequence of top-level expressions."""
    nodes: Tuple[Any, ...] = ()

    def __len__(self) -> int:
        return len(self.nodes)


class Promise:
    """A lazily evaluated argument: an expression plus the scope to run it in."""

    __slots__ = ("expr", "env", "value", "forced", "_forcing")

    def __init__(self, expr: Any, env: Optional['Environment']):
        self.expr = expr
        self.env = env
        self.value: Any = None
        self.forced = False
        self._forcing = False

    @classmethod
    def resolved(cls, value: Any, expr: Any = None) -> 'Promise':
        promise = cls(expr if expr is not None else value, None)
        promise.value = value
        promise.forced = True
        return promise

    def force(self) -> Any:
        if self.forced:
            return self.value

        if self._forcing:
            raise RRuntimeError(
                "promise already under evaluation: recursive default argument reference or earlier problems?"
            )

        from .evaluator import eval_node

        self._forcing = True
        try:
            value = eval_node(self.expr, self.env)
        finally:
            self._forcing = False

        self.value = value
        self.forced = True
        self.env = None
        return value

    def __repr__(self) -> str:
        state = "forced" if self.forced else "pending"
        return f"<promise {state} {self.expr!r}>"


@dataclass
class DotsList:
    """Arguments collected by `...`; values are Promises or EMPTY."""
    entries: List[Tuple[Optional[str], Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(eq=False)
class FunctionDef:
    """A closure: formals, body and the scope it was created in."""
    formals: Pairlist
    body: Any
    scope: Optional['Environment']

    def __repr__(self) -> str:
        return f"<closure ({', '.join(self.formals.names)})>"


BuiltinFn = Callable[..., Any]

@dataclass(frozen=True, eq=False)
class Builtin:
    name: str
    fn: BuiltinFn
    # specials receive the unevaluated call and the calling environment
    special: bool = False
    formals: Optional[Pairlist] = None
    accepts_missing: bool = False

    def __repr__(self) -> str:
        return f'.Primitive("{self.name}")'


RValue: TypeAlias = Any


def is_function(value: Any) -> TypeGuard[FunctionDef | Builtin]:
    return isinstance(value, (FunctionDef, Builtin))


def make_function(formals: Any, body: Any, scope: Optional['Environment']) -> FunctionDef:
    """Compose a closure from parts; nothing is evaluated."""
    if formals is None:
        formals = Pairlist(())
    elif not isinstance(formals, Pairlist):
        formals = make_pairlist(formals)

    return FunctionDef(formals, body, scope)


class Environment:
    def __init__(
        self,
        parent: Optional['Environment'] = None,
        name: Optional[str] = None,
        *,
        call: Any = None,
        function: Optional[FunctionDef] = None,
        caller: Optional['Environment'] = None,
    ):
        self.parent = parent
        self.vars: Dict[str, RValue] = {}
        self.name = name
        # set on frames created by a closure call
        self.call = call
        self.function = function
        self.caller = caller
        # formals that were not supplied by the caller
        self.missing: Set[str] = set()

    @property
    def is_base(self) -> bool:
        return self.name == "base"

    @property
    def is_global(self) -> bool:
        return self.name == "R_GlobalEnv"

    def define(self, name: str, val: RValue) -> None:
        if name == "":
            raise MissingArgument("cannot bind a value to the empty name")
        self.vars[name] = val

    def locate(self, name: str) -> Optional['Environment']:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.vars:
                return env
            env = env.parent
        return None

    def lookup(self, name: str) -> RValue:
        env = self.locate(name)
        if env is None:
            raise RObjectNotFound(name)
        return env.vars[name]

    def lookup_function(self, name: str) -> FunctionDef | Builtin:
        """Find the nearest binding of ``name`` that holds a function."""
        env: Optional[Environment] = self

        while env is not None:
            if name in env.vars:
                value = env.vars[name]
                if isinstance(value, Promise):
                    value = value.force()
                if is_function(value):
                    return value
            env = env.parent

        raise RObjectNotFound(name, "function")

    def assign_super(self, name: str, val: RValue) -> None:
        """`<<-`: rebind in the nearest enclosing scope, else in the global scope."""
        env = self.parent
        while env is not None and not env.is_base:
            if name in env.vars:
                env.vars[name] = val
                return
            env = env.parent

        self.global_env().define(name, val)

    def global_env(self) -> 'Environment':
        env: Environment = self
        outermost = self

        while True:
            if env.is_global:
                return env
            if not env.is_base:
                outermost = env
            if env.parent is None:
                return outermost
            env = env.parent

    def frames(self) -> Iterator['Environment']:
        env: Optional[Environment] = self
        while env is not None:
            yield env
            env = env.parent

    def label(self) -> str:
        return self.name or f"0x{id(self):x}"

    def __repr__(self) -> str:
        return f"<environment: {self.label()}>"


class Builtins:
    functions: Dict[str, Builtin] = {}
