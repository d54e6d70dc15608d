"""Pure-ASGI middleware serving cached GET responses and flushing on writes."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from jose import JWTError
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.auth.security import decode_access_token
from app.auth.token_revocation import is_payload_revoked
from app.core.cache import PUBLIC_IDENTITY, CachedResponse, ResponseCache

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
CACHE_HEADER = b"x-cache"


class _Uncacheable(Exception):
    """The request carries credentials that cannot be tied to an identity."""


class ResponseCacheMiddleware:
    """Serve repeated GETs from :class:`ResponseCache`.

    * GET under one of ``route_ttls``' prefixes: replay a cached body
      (``X-Cache: HIT``) or run the handler, tag ``X-Cache: MISS`` and store a
      200 JSON body for the prefix TTL.
    * POST/PUT/PATCH/DELETE anywhere: flush the whole cache before the
      handler runs.
    * Cache disabled: pass through untouched.

    Cache failures never fail the request; they are logged and the request
    proceeds uncached.
    """

    def __init__(
        self,
        app: ASGIApp,
        cache: ResponseCache,
        route_ttls: Mapping[str, int] | None = None,
    ) -> None:
        self.app = app
        self.cache = cache
        # Longest prefix wins when prefixes nest
        self.route_ttls = dict(
            sorted((route_ttls or {}).items(), key=lambda item: len(item[0]), reverse=True)
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.cache.enabled:
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        if method in MUTATING_METHODS:
            try:
                self.cache.invalidate_all()
            except Exception:
                logger.exception("Response cache flush failed for %s %s", method, scope["path"])
            await self.app(scope, receive, send)
            return

        ttl = self._ttl_for(scope["path"]) if method == "GET" else None
        if ttl is None:
            await self.app(scope, receive, send)
            return

        try:
            key = await self._cache_key(scope)
            cached = self.cache.get(key)
        except _Uncacheable:
            await self.app(scope, receive, send)
            return
        except Exception:
            logger.exception("Response cache lookup failed for %s", scope["path"])
            await self.app(scope, receive, send)
            return

        if cached is not None:
            await self._replay(cached, send)
            return

        await self._run_and_store(scope, receive, send, key, ttl)

    def _ttl_for(self, path: str) -> int | None:
        for prefix, ttl in self.route_ttls.items():
            if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                return ttl
        return None

    async def _cache_key(self, scope: Scope) -> str:
        path = scope["path"]
        query = scope.get("query_string", b"").decode("latin-1")
        if query:
            path = f"{path}?{query}"
        return ResponseCache.make_key(path, await self._identity(scope))

    async def _identity(self, scope: Scope) -> str:
        headers = dict(scope.get("headers", []))
        authorization = headers.get(b"authorization", b"").decode("latin-1")
        if not authorization:
            return PUBLIC_IDENTITY

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise _Uncacheable
        try:
            payload = decode_access_token(token)
        except JWTError as exc:
            raise _Uncacheable from exc

        app = scope.get("app")
        redis = getattr(getattr(app, "state", None), "redis", None)
        if await is_payload_revoked(redis, payload):
            raise _Uncacheable
        return str(payload["sub"])

    @staticmethod
    async def _replay(cached: CachedResponse, send: Send) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": cached.status_code,
                "headers": [
                    (b"content-type", cached.media_type.encode("latin-1")),
                    (b"content-length", str(len(cached.body)).encode("latin-1")),
                    (CACHE_HEADER, b"HIT"),
                ],
            }
        )
        await send({"type": "http.response.body", "body": cached.body, "more_body": False})

    async def _run_and_store(
        self, scope: Scope, receive: Receive, send: Send, key: str, ttl: int
    ) -> None:
        status_code = 0
        media_type = ""
        chunks: list[bytes] = []

        async def send_and_capture(message: Message) -> None:
            nonlocal status_code, media_type
            if message["type"] == "http.response.start":
                status_code = message["status"]
                response_headers = list(message.get("headers", []))
                for name, value in response_headers:
                    if name.lower() == b"content-type":
                        media_type = value.decode("latin-1")
                response_headers.append((CACHE_HEADER, b"MISS"))
                message["headers"] = response_headers
            elif message["type"] == "http.response.body" and self._storable(
                status_code, media_type
            ):
                chunks.append(message.get("body", b""))
                if not message.get("more_body", False):
                    self._store(key, b"".join(chunks), status_code, media_type, ttl)
            await send(message)

        await self.app(scope, receive, send_and_capture)

    @staticmethod
    def _storable(status_code: int, media_type: str) -> bool:
        return status_code == 200 and media_type.startswith("application/json")

    def _store(self, key: str, body: bytes, status_code: int, media_type: str, ttl: int) -> None:
        try:
            self.cache.set(
                key,
                CachedResponse(body=body, status_code=status_code, media_type=media_type),
                ttl,
            )
        except Exception:
            logger.exception("Response cache store failed for key %s", key)
