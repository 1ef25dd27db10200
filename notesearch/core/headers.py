import re
from typing import Iterable, Mapping

from httpx import Headers

from notesearch.core.config import settings

# Header names (lowercase) that are never copied onto the outbound request
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-connection",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
})

# Header names (lowercase) that must be redacted in logs
_SENSITIVE_HEADER_PATTERNS = [
    "authorization",
    "x-api-key",
    "x-token",
    "cookie",
    "set-cookie",
    "proxy-authorization",
]

_SENSITIVE_RE = re.compile(
    "|".join(re.escape(p) for p in _SENSITIVE_HEADER_PATTERNS),
    re.IGNORECASE,
)

_REDACT_PREFIX_LEN = 4


def sanitized_header_names(control_header: str | None = None) -> frozenset[str]:
    """The full never-forwarded set: hop-by-hop headers plus the control header."""
    control_header = control_header or settings.target_header
    return HOP_BY_HOP_HEADERS | {control_header.lower()}


def sanitize_headers(
    headers: Headers | Mapping[str, str] | Iterable[tuple[str, str]],
    control_header: str | None = None,
) -> Headers:
    """Return the headers to send to the next hop.

    Matching is case-insensitive and duplicate headers that survive are
    kept as duplicates. Values are copied as raw bytes, so non-ASCII
    header values pass through unchanged. The input is never mutated.
    """
    dropped = sanitized_header_names(control_header)
    if not isinstance(headers, Headers):
        headers = Headers(headers)
    return Headers([
        (key, value)
        for key, value in headers.raw
        if key.decode("latin-1").lower() not in dropped
    ])


def _redact_value(value: str) -> str:
    """Keep first few chars of a secret for identification, mask the rest."""
    if len(value) <= _REDACT_PREFIX_LEN:
        return "[REDACTED]"
    return value[:_REDACT_PREFIX_LEN] + "...[REDACTED]"


def redact_headers(headers: Mapping[str, str]) -> dict:
    """Return a copy of *headers* with credential values partially masked.

    Used for log output only. The original mapping is never mutated.
    """
    redacted = {}
    for key, value in headers.items():
        if _SENSITIVE_RE.fullmatch(key):
            redacted[key] = _redact_value(str(value))
        else:
            redacted[key] = value
    return redacted
