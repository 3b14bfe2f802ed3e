"""Spans: timed operations that log one summary event when they close."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from buglog.context import CancelFunc, Context, with_cancel, with_span
from buglog.tags import Tagger, error, tag

if TYPE_CHECKING:
    from types import TracebackType

    from buglog.logger import Logger

__all__ = ["Span", "open_span", "span", "span_from"]


class Span:
    """A named operation with a cancellable context and deferred summary event.

    Tags appended with :meth:`append` end up in the summary event. Tags added
    to :attr:`context` with ``with_tags`` only reach logs made from that
    context, never the summary itself.
    """

    def __init__(self, parent: Context, at: str, logger: Logger) -> None:
        self.at = at
        self.parent = parent
        self._logger = logger
        self._start = logger.now()
        self._lock = threading.Lock()
        self._taggers: list[Tagger] = []
        self._closed = False

        ctx, self._cancel = with_cancel(parent)
        self.context = with_span(ctx, self)

    @property
    def closed(self) -> bool:
        return self._closed

    def append(self, *taggers: Tagger) -> None:
        """Add taggers to the summary event."""
        with self._lock:
            self._taggers.extend(taggers)

    def close(self) -> None:
        """Cancel the span's context and log the summary event.

        Only the first call logs; later calls do nothing.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancel()
            self._taggers.append(tag("elapsed", self._logger.now() - self._start))
            taggers = tuple(self._taggers)

        self._logger.log(self.parent, self.at, *taggers)

    def __enter__(self) -> Span:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc is not None:
            self.append(error(exc))
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Span {self.at!r} {state}>"


def open_span(
    parent: Context, at: str, *taggers: Tagger, logger: Logger | None = None
) -> tuple[Span, CancelFunc]:
    """Open a span named ``at`` and return it with its close function.

    The summary event is logged against ``parent`` with any ``taggers``,
    everything appended later, and an ``elapsed`` tag in seconds.

    Example:
        >>> s, close = open_span(ctx, "import")
        >>> try:
        ...     rows = run_import(s.context)
        ...     s.append(tag("rows", rows))
        ... finally:
        ...     close()
    """
    if logger is None:
        from buglog.logger import default_logger

        logger = default_logger()

    s = Span(parent, at, logger)
    s.append(*taggers)
    return s, s.close


@contextmanager
def span(
    parent: Context, at: str, *taggers: Tagger, logger: Logger | None = None
) -> Iterator[Span]:
    """Context manager around :func:`open_span` that records exceptions.

    Example:
        >>> with span(ctx, "fetch", tag("url", url)) as s:
        ...     body = fetch(s.context, url)
        ...     s.append(tag("bytes", len(body)))
    """
    s, _ = open_span(parent, at, *taggers, logger=logger)
    with s:
        yield s


def span_from(ctx: Context) -> Span | None:
    """Return the nearest span enclosing ``ctx``, if there is one."""
    return ctx.span
