"""buglog - a small structured logger that writes JSON lines.

Features:
- Events are a name ("at") plus key/value tags
- Ambient tags accumulate on immutable contexts and reach nested log calls
- Spans time an operation and log one summary event when they close
- ASGI middleware for per-request response and panic events

Usage:
    from buglog import background, log, span, tag, with_tags

    ctx = with_tags(background(), tag("job", "nightly"))
    log(ctx, "hello", tag("subject", "world"))

    with span(ctx, "sync") as s:
        s.append(tag("rows", sync_rows(s.context)))
"""

from importlib.metadata import version

from buglog.config import BuglogConfig, load_config
from buglog.context import (
    CancelFunc,
    Context,
    background,
    current,
    use,
    with_cancel,
    with_tags,
)
from buglog.logger import Logger, default_logger, log, set_default_logger
from buglog.spans import Span, open_span, span, span_from
from buglog.tags import Emit, Tagger, compose, error, tag
from buglog.writer import JSONLWriter, Writer

__version__ = version("buglog")

__all__ = [
    "BuglogConfig",
    "CancelFunc",
    "Context",
    "Emit",
    "JSONLWriter",
    "Logger",
    "Span",
    "Tagger",
    "Writer",
    "__version__",
    "background",
    "compose",
    "current",
    "default_logger",
    "error",
    "load_config",
    "log",
    "open_span",
    "set_default_logger",
    "span",
    "span_from",
    "tag",
    "use",
    "with_cancel",
    "with_tags",
]
