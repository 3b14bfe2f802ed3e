"""Writers turn an event name and a composed tagger into one output record."""

from __future__ import annotations

import json
import threading
from typing import IO, Any, Protocol

from loguru import logger

from buglog.tags import Tagger

__all__ = ["DEFAULT_PLACEHOLDER", "JSONLWriter", "Writer", "encode_value"]

# Written in place of any value that can't be represented as JSON
DEFAULT_PLACEHOLDER = "💥"

_JSON_NATIVE = (str, int, float, bool, type(None), list, tuple, dict)


class Writer(Protocol):
    """Anything that can write a log event."""

    def write(self, at: str, tagger: Tagger) -> None: ...


def _is_stringer(value: Any) -> bool:
    """True for values whose type provides its own string form."""
    if isinstance(value, _JSON_NATIVE):
        return False
    return type(value).__str__ is not object.__str__


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def _encode_key(key: str) -> str:
    # Lone surrogates in keys become "?"
    return _dumps(str(key).encode("utf-8", "replace").decode("utf-8"))


def encode_value(value: Any, placeholder: str = DEFAULT_PLACEHOLDER) -> str:
    """Encode a tag value as a JSON fragment.

    Values with a custom ``__str__`` are encoded as that string. Everything
    else goes through :func:`json.dumps`; if that fails, or the result isn't
    valid UTF-8 (lone surrogates from ``os.fsdecode``, say), the placeholder
    is encoded instead, so a single bad value never loses the whole event.
    """
    try:
        if _is_stringer(value):
            value = str(value)
        encoded = _dumps(value)
        encoded.encode("utf-8")
        return encoded
    except Exception:
        return _dumps(placeholder)


class JSONLWriter:
    """Writes each event as one line of JSON with sorted keys.

    Safe to share between threads: building and writing a record happens
    under a single lock, so lines are never interleaved.

    Example:
        >>> import io
        >>> from buglog.tags import tag
        >>> out = io.StringIO()
        >>> JSONLWriter(out).write("hello", tag("subject", "world"))
        >>> out.getvalue()
        '{"at":"hello","subject":"world"}\\n'
    """

    def __init__(
        self,
        sink: IO[str],
        *,
        placeholder: str = DEFAULT_PLACEHOLDER,
        owns_sink: bool = False,
    ) -> None:
        self.sink = sink
        self.placeholder = placeholder
        self.owns_sink = owns_sink
        self._lock = threading.Lock()

    def close(self) -> None:
        """Close the sink when the writer owns it; shared streams stay open."""
        with self._lock:
            if self.owns_sink and not self.sink.closed:
                self.sink.close()

    def write(self, at: str, tagger: Tagger) -> None:
        with self._lock:
            try:
                event: dict[str, str] = {"at": encode_value(at, self.placeholder)}

                def emit(key: str, value: Any) -> None:
                    event[key] = encode_value(value, self.placeholder)

                tagger(emit)

                fields = ",".join(f"{_encode_key(key)}:{event[key]}" for key in sorted(event))
                self.sink.write("{" + fields + "}\n")
                self.sink.flush()
            except Exception as e:
                logger.error(f"buglog: jsonl: {e}")
