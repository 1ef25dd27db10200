from typing import AsyncIterable, Iterable, Mapping

from httpx import AsyncClient, Headers, Request as HTTPXRequest, RequestError
from starlette.requests import Request
from starlette.responses import Response

from notesearch.core.config import settings
from notesearch.core.headers import sanitize_headers
from notesearch.core.logging_config import setup_logging
from notesearch.core.target import BaseTargetResolver, normalize_target
from notesearch.middlewares.metrics_middleware import RELAY_FORWARD_COUNT

logger = setup_logging()

HTTP_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"})
READ_ONLY_METHODS = frozenset({"GET", "HEAD"})

RequestBody = bytes | AsyncIterable[bytes]


class ProxyRequest:
    """An inbound call to relay: method, path below the relay prefix, headers, body.

    The body is either absent, fully buffered bytes, or a live async
    byte stream. It is always absent for GET and HEAD.
    """

    def __init__(
        self,
        method: str,
        path_segments: Iterable[str] = (),
        headers: Headers | Mapping[str, str] | Iterable[tuple] | None = None,
        body: RequestBody | None = None,
        query: str = "",
    ):
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported relay method: {method}")
        self.method = method
        self.path_segments = tuple(path_segments)
        self.headers = headers if isinstance(headers, Headers) else Headers(headers or {})
        self.body = None if method in READ_ONLY_METHODS else body
        self.query = query

    @classmethod
    def from_starlette(cls, request: Request, full_path: str = "") -> "ProxyRequest":
        """Wrap a Starlette request without reading its body."""
        method = request.method.upper()
        return cls(
            method=method,
            path_segments=full_path.split("/") if full_path else (),
            headers=request.headers.raw,
            body=None if method in READ_ONLY_METHODS else request.stream(),
            query=request.url.query,
        )


def build_target_url(target: str, path_segments: Iterable[str] = ()) -> str:
    """Join the target and the path segments. No segments means the target root."""
    base = normalize_target(target)
    segments = list(path_segments)
    if not segments:
        return base
    return f"{base}/{'/'.join(segments)}"


class RelayedResponse(Response):
    """The backend's response, body buffered, status and headers untouched.

    ``reason_phrase`` keeps the backend's status text for in-process
    consumers; over ASGI the server writes its own phrase for the code.
    """

    def __init__(self, content: bytes, status_code: int, raw_headers: list[tuple[bytes, bytes]], reason_phrase: str = ""):
        super().__init__(content=content, status_code=status_code)
        # Backend headers go out as received, duplicates included; ASGI wants lowercase names
        self.raw_headers = [(key.lower(), value) for key, value in raw_headers]
        self.reason_phrase = reason_phrase


class ProxyGateway:
    """Stateless relay from the relay prefix onto a user-selected backend.

    Transport failures (refused connections, DNS errors, ...) are not
    caught here; they reach the caller as ``httpx.RequestError``.
    """

    def __init__(
        self,
        client: AsyncClient,
        resolver: BaseTargetResolver | None = None,
        control_header: str | None = None,
    ):
        self.client = client
        self.resolver = resolver or BaseTargetResolver()
        self.control_header = (control_header or settings.target_header).lower()

    def target_url(self, request: ProxyRequest) -> str:
        target = self.resolver.resolve(request.headers.get(self.control_header))
        url = build_target_url(target, request.path_segments)
        if request.query:
            url = f"{url}?{request.query}"
        return url

    def build_outbound(self, request: ProxyRequest) -> HTTPXRequest:
        # Streams are handed to httpx as-is and sent chunked as they are read
        content = None if request.method in READ_ONLY_METHODS else request.body
        return HTTPXRequest(
            request.method,
            self.target_url(request),
            headers=sanitize_headers(request.headers, self.control_header),
            content=content,
        )

    async def forward(self, request: ProxyRequest) -> RelayedResponse:
        outbound = self.build_outbound(request)
        target_url = str(outbound.url)

        try:
            upstream = await self.client.send(outbound, stream=True, follow_redirects=True)
        except RequestError as e:
            RELAY_FORWARD_COUNT.labels(method=request.method, outcome="transport_error").inc()
            logger.warning(
                "Relay target unreachable",
                method=request.method,
                target_url=target_url,
                exception=str(e),
                exception_type=type(e).__name__,
            )
            raise

        # The raw stream: still content-encoded, and readable whether or not
        # the transport built the response with its body already loaded
        try:
            body = b"".join([chunk async for chunk in upstream.stream])
        finally:
            await upstream.aclose()

        RELAY_FORWARD_COUNT.labels(method=request.method, outcome=str(upstream.status_code)).inc()
        logger.info(f"Relayed {request.method} {target_url} -> {upstream.status_code}")

        return RelayedResponse(
            content=body,
            status_code=upstream.status_code,
            raw_headers=upstream.headers.raw,
            reason_phrase=upstream.reason_phrase,
        )


def create_relay_client() -> AsyncClient:
    """Client used by the gateway.

    Redirects are followed so the caller only ever sees the final response
    from the backend. No timeouts: a hung backend hangs its call.
    """
    return AsyncClient(timeout=None, follow_redirects=True)
