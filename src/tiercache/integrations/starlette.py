"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Starlette / FastAPI middleware applying the response cache globally.
"""

from __future__ import annotations

import logging
from typing import Any

from ..engine import CacheEngine
from ..errors import CacheConfigError
from ..factory import create_cache_engine
from ..interceptor import ResponseCacheInterceptor, route_policy_of
from ..settings import CacheSettings
from ..types import CacheableRequest, RouteCachePolicy

try:
    from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.routing import Match
except ModuleNotFoundError as exc:  # pragma: no cover - optional runtime path
    raise CacheConfigError(
        "Starlette is required for the ASGI cache middleware. "
        "Install it with: pip install 'tiercache[asgi]'"
    ) from exc

logger = logging.getLogger("tiercache.integrations.starlette")

CACHE_STATUS_HEADER = "x-cache"


def _query_of(request: Request) -> dict[str, Any]:
    """Collapse query parameters, keeping repeated names as lists."""
    params = request.query_params
    query: dict[str, Any] = {}
    for name in params.keys():
        values = params.getlist(name)
        query[name] = values[0] if len(values) == 1 else values
    return query


def _resolve_policy(request: Request) -> RouteCachePolicy:
    """Find the endpoint that will serve `request` and read its cache metadata."""
    app = request.scope.get("app")
    for route in getattr(app, "routes", ()):
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route_policy_of(getattr(route, "endpoint", None))
    return RouteCachePolicy()


def _is_cacheable(response: Response) -> bool:
    """
    Whether `response` is a complete 200 body worth buffering.

    Responses without a `content-length` (streams, server-sent events) pass
    through untouched.
    """
    if response.status_code != 200:
        return False
    if "content-length" not in response.headers:
        return False
    media_type = response.headers.get("content-type", "")
    return not media_type.startswith("text/event-stream")


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """
    Cache successful read responses and invalidate tags on mutations.

    Cached payloads are stored as ``{"body": str, "media_type": str | None}``
    so they survive the JSON-encoded shared tier. Only 200 responses with a
    known length and a UTF-8 body are buffered and cached; streams pass
    through untouched.
    """

    def __init__(self, app: Any, *, interceptor: ResponseCacheInterceptor) -> None:
        super().__init__(app)
        self.interceptor = interceptor

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        policy = _resolve_policy(request)
        cache_request = CacheableRequest(
            method=request.method,
            path=request.url.path,
            query=_query_of(request),
        )
        is_read = self.interceptor.classify(request.method) == "read"
        produced: dict[str, Response] = {}

        async def handler() -> dict[str, Any] | None:
            response = await call_next(request)
            produced["response"] = response
            if not is_read:
                return None
            response.headers[CACHE_STATUS_HEADER] = "MISS"
            if not _is_cacheable(response):
                return None

            body = b""
            async for chunk in response.body_iterator:
                body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

            async def replay():
                yield body

            response.body_iterator = replay()
            try:
                text = body.decode("utf-8")
            except UnicodeDecodeError:
                return None
            return {"body": text, "media_type": response.headers.get("content-type")}

        payload = await self.interceptor.intercept(cache_request, handler, policy)
        if "response" in produced:
            return produced["response"]

        if not isinstance(payload, dict) or not isinstance(payload.get("body"), str):
            logger.warning("Ignoring malformed cached response for %s", request.url.path)
            return await call_next(request)

        headers = {CACHE_STATUS_HEADER: "HIT"}
        if payload.get("media_type"):
            headers["content-type"] = payload["media_type"]
        return Response(content=payload["body"], status_code=200, headers=headers)


def install_response_cache(
    app: Any,
    engine: CacheEngine | None = None,
    *,
    settings: CacheSettings | None = None,
) -> CacheEngine:
    """
    Install the response cache on a Starlette or FastAPI app.

    Builds the engine from `settings` (or `TIERCACHE_*` environment
    variables) unless one is supplied, and returns it so the caller can
    `close()` it on shutdown.
    """
    if engine is None:
        engine = create_cache_engine(settings or CacheSettings.from_env())
    app.add_middleware(
        ResponseCacheMiddleware,
        interceptor=ResponseCacheInterceptor(engine),
    )
    return engine
