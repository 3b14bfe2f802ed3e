"""Immutable contexts carrying ambient taggers, the current span and cancellation.

Every derivation returns a new Context that wraps its parent's state; nothing
is ever mutated in place, so contexts can be shared freely between threads.

    ctx = with_tags(background(), tag("request-id", rid))
    handle(ctx)  # every log(ctx, ...) below carries request-id
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

from buglog.tags import Tagger, compose

if TYPE_CHECKING:
    from buglog.spans import Span

__all__ = [
    "CancelFunc",
    "Context",
    "background",
    "current",
    "use",
    "with_cancel",
    "with_span",
    "with_tags",
]

CancelFunc = Callable[[], None]


class _CancelScope:
    """A cancellation signal that also fires for every scope derived from it."""

    def __init__(self, parent: _CancelScope | None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: weakref.WeakSet[_CancelScope] = weakref.WeakSet()
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: _CancelScope) -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.add(child)
                return
        child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None) -> bool:
        return self._event.wait(timeout)

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children = list(self._children)
            self._children.clear()

        for child in children:
            child.cancel()


@dataclass(frozen=True, slots=True)
class Context:
    """An immutable link in a context chain.

    Attributes:
        tagger: Composed ambient tagger applied to every log call made with
            this context, or None when no tags have been added.
        span: The nearest enclosing span, or None.
    """

    tagger: Tagger | None = None
    span: Span | None = None
    _scope: _CancelScope | None = None

    @property
    def cancelled(self) -> bool:
        """True once this context or one of its ancestors has been cancelled."""
        return self._scope is not None and self._scope.cancelled

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` seconds pass.

        Returns:
            True if the context was cancelled, False on timeout.
        """
        if self._scope is None:
            return threading.Event().wait(timeout)
        return self._scope.wait(timeout)


_BACKGROUND = Context()

_current: ContextVar[Context] = ContextVar("buglog_context", default=_BACKGROUND)


def background() -> Context:
    """Return the empty root context."""
    return _BACKGROUND


def with_tags(parent: Context, *taggers: Tagger) -> Context:
    """Return a copy of ``parent`` with additional ambient taggers."""
    return Context(compose(parent.tagger, taggers), parent.span, parent._scope)


def with_cancel(parent: Context) -> tuple[Context, CancelFunc]:
    """Return a cancellable child of ``parent`` and its cancel function.

    Cancelling the child never affects the parent. Cancelling any ancestor
    cancels the child.
    """
    scope = _CancelScope(parent._scope)
    return Context(parent.tagger, parent.span, scope), scope.cancel


def with_span(parent: Context, span: Span) -> Context:
    """Return a copy of ``parent`` whose current span is ``span``."""
    return Context(parent.tagger, span, parent._scope)


def current() -> Context:
    """Return the context bound to the running thread or task."""
    return _current.get()


@contextmanager
def use(ctx: Context) -> Iterator[Context]:
    """Bind ``ctx`` as the current context for the duration of the block."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)
