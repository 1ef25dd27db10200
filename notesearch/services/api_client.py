"""Typed client for the note-search backend, reached through the relay.

Every call reports failure the same way: an ``ApiError`` whose ``code``
is NETWORK_ERROR (no response at all), a backend-declared code (the
body matched the error shape), or HTTP_ERROR (any other non-2xx).
"""

import json
from typing import IO, Any, Mapping, TypeVar

from httpx import AsyncClient, InvalidURL, RequestError, Response
from pydantic import BaseModel, ValidationError

from notesearch.core.config import settings
from notesearch.core.errors import (
    HTTP_ERROR_FALLBACK_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    ApiError,
    ErrorCode,
    UploadUnsupportedError,
)
from notesearch.core.logging_config import setup_logging
from notesearch.core.target import BaseTargetResolver, FileTargetStore
from notesearch.schemas.backend import (
    ErrorPayload,
    IngestRequest,
    IngestResponse,
    ReindexResponse,
    SearchRequest,
    SearchResponse,
    StatsResponse,
    UploadResponse,
)

logger = setup_logging()

ModelT = TypeVar("ModelT", bound=BaseModel)

# Backend answers these on the upload path when it has no upload endpoint
UPLOAD_UNSUPPORTED_STATUSES = frozenset({404, 405})


def parse_json_body(response: Response) -> Any | None:
    """Decoded JSON body, or None for 204 and undecodable bodies."""
    if response.status_code == 204:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def classify_error_response(response: Response) -> ApiError:
    """Turn a non-2xx response into the matching ApiError."""
    payload = parse_json_body(response)
    try:
        error = ErrorPayload.model_validate(payload).error
    except ValidationError:
        return ApiError(
            response.reason_phrase or HTTP_ERROR_FALLBACK_MESSAGE,
            ErrorCode.HTTP_ERROR,
            status=response.status_code,
        )
    return ApiError(error.message, error.code, error.details, response.status_code)


def decode_result(model: type[ModelT], response: Response) -> ModelT:
    """Lenient decoding of a 2xx body: anything unusable becomes an empty result."""
    data = parse_json_body(response)
    if not isinstance(data, dict):
        if response.status_code != 204:
            logger.warning("Undecodable response body", status_code=response.status_code, model=model.__name__)
        return model()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("Response did not match wire shape", model=model.__name__, errors=e.error_count())
        return model()


def _as_payload(body: BaseModel | Mapping[str, Any] | None, model: type[BaseModel]) -> dict | None:
    if body is None:
        return None
    if not isinstance(body, model):
        body = model.model_validate(body)
    return body.model_dump(exclude_none=True)


class ApiClient:
    """One method per backend operation, all funnelled through ``request``.

    ``client`` must point at the relay (``settings.relay_url`` by default);
    the backend target travels in the control header on every call.
    """

    def __init__(
        self,
        client: AsyncClient | None = None,
        resolver: BaseTargetResolver | None = None,
        relay_prefix: str | None = None,
        target_header: str | None = None,
        upload_path: str | None = None,
    ):
        self._owns_client = client is None
        self.client = client or AsyncClient(base_url=settings.relay_url, timeout=None)
        self.resolver = resolver or BaseTargetResolver(FileTargetStore())
        self.relay_prefix = (relay_prefix or settings.relay_prefix).rstrip("/")
        self.target_header = target_header or settings.target_header
        self.upload_path = upload_path or settings.upload_path

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        target_override: str | None = None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ) -> Response:
        """Send through the relay. Anything that stops a response from arriving is NETWORK_ERROR."""
        url = f"{self.relay_prefix}{path}"
        # A target or relay URL httpx cannot encode fails before any I/O
        try:
            headers = {**(headers or {}), self.target_header: self.resolver.resolve(target_override)}
            return await self.client.request(method, url, headers=headers, **kwargs)
        except (RequestError, InvalidURL, UnicodeEncodeError) as e:
            logger.warning(
                "Relay call failed before any response",
                method=method,
                path=path,
                exception=str(e),
                exception_type=type(e).__name__,
            )
            raise ApiError(NETWORK_ERROR_MESSAGE, ErrorCode.NETWORK_ERROR) from e

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        target_override: str | None = None,
        response_model: type[ModelT] | None = None,
    ) -> ModelT | dict:
        """Issue a JSON call and return the decoded result.

        Raises:
            ApiError: on transport failure or any non-2xx response.
        """
        content = json.dumps(body).encode("utf-8") if body is not None else None

        response = await self._send(
            method,
            path,
            target_override=target_override,
            headers={"Content-Type": "application/json"},
            content=content,
        )
        if not response.is_success:
            error = classify_error_response(response)
            logger.info("Backend call failed", path=path, code=error.code, status=error.status)
            raise error

        if response_model is None:
            data = parse_json_body(response)
            return data if isinstance(data, dict) else {}
        return decode_result(response_model, response)

    async def search(self, body: SearchRequest | Mapping[str, Any], target_override: str | None = None) -> SearchResponse:
        return await self.request(
            "/v1/search",
            method="POST",
            body=_as_payload(body, SearchRequest),
            target_override=target_override,
            response_model=SearchResponse,
        )

    async def ingest(
        self,
        body: IngestRequest | Mapping[str, Any] | None = None,
        target_override: str | None = None,
    ) -> IngestResponse:
        return await self.request(
            "/v1/ingest",
            method="POST",
            body=_as_payload(body if body is not None else IngestRequest(), IngestRequest),
            target_override=target_override,
            response_model=IngestResponse,
        )

    async def reindex(self, target_override: str | None = None) -> ReindexResponse:
        return await self.request(
            "/v1/reindex", method="POST", target_override=target_override, response_model=ReindexResponse
        )

    async def stats(self, target_override: str | None = None) -> StatsResponse:
        return await self.request(
            "/v1/stats", method="GET", target_override=target_override, response_model=StatsResponse
        )

    async def upload(
        self,
        filename: str,
        content: bytes | IO[bytes],
        content_type: str = "application/octet-stream",
        target_override: str | None = None,
    ) -> UploadResponse:
        """Post one file as multipart form data to the backend upload path.

        Raises:
            UploadUnsupportedError: the backend answered 404 or 405.
            ApiError: transport failure or any other non-2xx response.
        """
        files = {"file": (filename, content, content_type)}

        response = await self._send("POST", self.upload_path, target_override=target_override, files=files)
        if response.status_code in UPLOAD_UNSUPPORTED_STATUSES:
            raise UploadUnsupportedError(response.status_code)
        if not response.is_success:
            raise classify_error_response(response)
        return decode_result(UploadResponse, response)
