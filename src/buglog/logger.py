"""The log entrypoint and the process-wide default logger."""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import IO, TYPE_CHECKING

from loguru import logger as diagnostics

from buglog.config import BuglogConfig, load_config
from buglog.tags import Tagger, compose
from buglog.writer import JSONLWriter, Writer

if TYPE_CHECKING:
    from buglog.context import CancelFunc, Context
    from buglog.spans import Span

__all__ = ["Logger", "default_logger", "log", "set_default_logger"]

Clock = Callable[[], float]


class Logger:
    """Composes ambient and call-local taggers and hands them to a writer.

    Args:
        writer: Destination for events. Defaults to JSON lines on stdout.
        now: Clock returning seconds as a float, used to time spans.
            Defaults to :func:`time.monotonic`.
    """

    def __init__(self, writer: Writer | None = None, now: Clock | None = None) -> None:
        self.writer: Writer = writer if writer is not None else JSONLWriter(sys.stdout)
        self.now: Clock = now if now is not None else time.monotonic

    @classmethod
    def from_config(cls, config: BuglogConfig, now: Clock | None = None) -> Logger:
        """Build a logger writing to the stream named by ``config.output``.

        A file output is opened here and closed by :meth:`close`.
        """
        sink: IO[str]
        owns_sink = False
        if config.output == "stdout":
            sink = sys.stdout
        elif config.output == "stderr":
            sink = sys.stderr
        else:
            sink = open(config.output, "a", encoding="utf-8")  # noqa: SIM115
            owns_sink = True
        writer = JSONLWriter(sink, placeholder=config.placeholder, owns_sink=owns_sink)
        return cls(writer, now=now)

    def close(self) -> None:
        """Release the writer's resources, if it has any."""
        close = getattr(self.writer, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def log(self, ctx: Context, at: str, *taggers: Tagger) -> None:
        """Write an event named ``at`` with ctx's ambient tags and ``taggers``."""
        try:
            self.writer.write(at, compose(ctx.tagger, taggers))
        except Exception as e:
            diagnostics.error(f"buglog: writer failed for {at!r}: {e}")

    def open_span(self, parent: Context, at: str, *taggers: Tagger) -> tuple[Span, CancelFunc]:
        from buglog.spans import open_span

        return open_span(parent, at, *taggers, logger=self)

    def span(self, parent: Context, at: str, *taggers: Tagger) -> AbstractContextManager[Span]:
        from buglog.spans import span

        return span(parent, at, *taggers, logger=self)


_default: Logger | None = None
_default_lock = threading.Lock()


def default_logger() -> Logger:
    """Return the process default logger, building it from config on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = Logger.from_config(load_config())
            diagnostics.debug("buglog default logger initialized")
        return _default


def set_default_logger(new: Logger | None) -> Logger | None:
    """Replace the default logger for subsequent calls and return the old one.

    Passing None makes the next call rebuild the default from config. The
    returned logger is not closed; call its ``close()`` once it is no longer
    needed.
    """
    global _default
    with _default_lock:
        old, _default = _default, new
        return old


def log(ctx: Context, at: str, *taggers: Tagger) -> None:
    """Write an event with the default logger."""
    default_logger().log(ctx, at, *taggers)
