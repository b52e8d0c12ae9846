"""Evaluator helper modules: argument matching and the builtin families."""

__all__ = [
    "args",
    "arith",
    "assign",
    "control",
    "fn",
    "quoting",
    "subset",
]
