"""Taggers: deferred generators of log event tags.

A tagger is a plain callable that receives an ``emit(key, value)`` function
and calls it zero or more times. Taggers are composed, not evaluated, until
a writer actually builds an event.

Example:
    >>> pairs = []
    >>> compose(tag("a", 1), [tag("b", 2)])(lambda k, v: pairs.append((k, v)))
    >>> pairs
    [('a', 1), ('b', 2)]
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

__all__ = ["Emit", "Tagger", "compose", "error", "tag", "type_name"]

Emit = Callable[[str, Any], None]
Tagger = Callable[[Emit], None]


def tag(key: str, value: Any) -> Tagger:
    """Return a tagger that emits a single key/value pair."""

    def tagger(emit: Emit) -> None:
        emit(key, value)

    return tagger


def error(err: BaseException | None) -> Tagger:
    """Return a tagger describing an exception.

    A non-None exception produces ``error=True``, ``error.message`` and
    ``error.type``. None produces nothing.
    """

    def tagger(emit: Emit) -> None:
        if err is None:
            return

        emit("error", True)
        emit("error.message", str(err))
        emit("error.type", type_name(err))

    return tagger


def compose(base: Tagger | None, additions: Iterable[Tagger]) -> Tagger:
    """Return a tagger that runs ``base`` and then each of ``additions``.

    Later taggers win on key collisions because writers keep the last value.
    """
    additions = tuple(additions)

    def tagger(emit: Emit) -> None:
        if base is not None:
            base(emit)

        for t in additions:
            t(emit)

    return tagger


def type_name(value: Any) -> str:
    """Diagnostic name of a value's type, e.g. ``ValueError`` or ``pkg.mod.Err``."""
    cls = type(value)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"
