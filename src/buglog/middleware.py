"""ASGI middleware that logs HTTP responses and unhandled exceptions.

Install the response middleware outermost so panic events carry the
request's context:

    app = Starlette(
        routes=routes,
        middleware=[Middleware(ResponseMiddleware), Middleware(PanicMiddleware)],
    )

Handlers find the request context with ``context_from_scope(request.scope)``
or ``buglog.current()``.
"""

from __future__ import annotations

import traceback
from typing import TYPE_CHECKING

from starlette.responses import PlainTextResponse

from buglog.context import Context, current, use
from buglog.logger import default_logger
from buglog.spans import open_span
from buglog.tags import error, tag, type_name

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from buglog.logger import Logger

__all__ = ["CONTEXT_KEY", "PanicMiddleware", "ResponseMiddleware", "context_from_scope"]

# Key under scope["state"] holding the request's Context
CONTEXT_KEY = "buglog_context"

INTERNAL_ERROR_BODY = "buglog: Internal server error\n"


def context_from_scope(scope: Scope) -> Context:
    """Return the Context stored on an ASGI scope, or the current one."""
    state = scope.get("state") or {}
    ctx = state.get(CONTEXT_KEY)
    if isinstance(ctx, Context):
        return ctx
    return current()


def _remote_addr(scope: Scope) -> str:
    client = scope.get("client")
    if not client:
        return ""
    host, port = client
    return f"{host}:{port}"


class ResponseMiddleware:
    """Logs one ``response`` event per HTTP request.

    The event carries method, path, remote-addr, body (bytes written),
    status and elapsed seconds.
    """

    def __init__(self, app: ASGIApp, *, logger: Logger | None = None, at: str = "response") -> None:
        self.app = app
        self.logger = logger
        self.at = at

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        s, close = open_span(current(), self.at, logger=self.logger)
        try:
            s.append(
                tag("method", scope.get("method", "")),
                tag("path", scope.get("path", "")),
                tag("remote-addr", _remote_addr(scope)),
            )

            status = 0
            written = 0

            async def snoop(message: Message) -> None:
                nonlocal status, written
                if message["type"] == "http.response.start":
                    status = message["status"]
                elif message["type"] == "http.response.body":
                    written += len(message.get("body", b""))
                await send(message)

            scope = dict(scope)
            scope["state"] = {**(scope.get("state") or {}), CONTEXT_KEY: s.context}

            with use(s.context):
                try:
                    await self.app(scope, receive, snoop)
                except Exception as e:
                    s.append(error(e))
                    raise

            s.append(tag("body", written), tag("status", status))
        finally:
            close()


class PanicMiddleware:
    """Logs a ``panic`` event for unhandled exceptions and answers 500.

    If the response has already started the exception is re-raised after
    logging, since the status can no longer be changed.
    """

    def __init__(self, app: ASGIApp, *, logger: Logger | None = None) -> None:
        self.app = app
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def watch(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, watch)
        except Exception as e:
            frames = traceback.extract_tb(e.__traceback__)
            logger = self.logger or default_logger()
            logger.log(
                context_from_scope(scope),
                "panic",
                tag("func", frames[-1].name if frames else ""),
                tag("stack", [f"{f.filename}:{f.lineno}" for f in reversed(frames)]),
                tag("type", type_name(e)),
                tag("value", str(e)),
            )

            if started:
                raise

            response = PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500)
            await response(scope, receive, send)
