from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Codes the client knows about. Backends may send any other string."""
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    UPLOAD_UNSUPPORTED = "UPLOAD_UNSUPPORTED"
    # Declared by the backend
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"
    PARSE_ERROR = "PARSE_ERROR"
    INDEX_ERROR = "INDEX_ERROR"
    CACHE_ERROR = "CACHE_ERROR"


NETWORK_ERROR_MESSAGE = "Server not reachable."
HTTP_ERROR_FALLBACK_MESSAGE = "Request failed"
UPLOAD_UNSUPPORTED_MESSAGE = "Server does not support /v1/upload."


class ApiError(Exception):
    """A classified failure of a backend call.

    Built once, where a response or transport failure is classified, and
    never changed afterwards. ``status`` is None when no response was
    obtained at all.
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
        status: int | None = None,
    ):
        super().__init__(message)
        object.__setattr__(self, "_message", message)
        object.__setattr__(self, "_code", code.value if isinstance(code, ErrorCode) else code)
        object.__setattr__(self, "_details", dict(details) if details is not None else None)
        object.__setattr__(self, "_status", status)

    def __setattr__(self, name, value):
        if name.lstrip("_") in ("message", "code", "details", "status"):
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> str:
        return self._code

    @property
    def details(self) -> dict[str, Any] | None:
        # Copy so callers can't mutate the error through the mapping
        return dict(self._details) if self._details is not None else None

    @property
    def status(self) -> int | None:
        return self._status

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self._message!r}, code={self._code!r}, status={self._status!r})"

    def __reduce__(self):
        return (type(self), (self._message, self._code, self._details, self._status))


class UploadUnsupportedError(ApiError):
    """The chosen backend has no upload endpoint (404/405 on the upload path)."""

    def __init__(self, status: int, message: str = UPLOAD_UNSUPPORTED_MESSAGE):
        super().__init__(message, ErrorCode.UPLOAD_UNSUPPORTED, status=status)

    def __reduce__(self):
        return (type(self), (self._status, self._message))


_FRIENDLY_MESSAGES = {
    ErrorCode.NETWORK_ERROR.value: "Server not reachable. Check the base URL in Settings.",
    ErrorCode.UPLOAD_UNSUPPORTED.value: (
        "Upload endpoint not available. The server must expose /v1/upload to accept files."
    ),
}


def describe_error(error: BaseException, fallback: str = "Something went wrong.") -> str:
    """User-facing text for any failure, falling back to a generic message."""
    if isinstance(error, ApiError):
        if error.code in _FRIENDLY_MESSAGES:
            return _FRIENDLY_MESSAGES[error.code]
        return error.message or fallback
    return str(error) or fallback
