import pytest
from httpx import Headers

from notesearch.core.headers import (
    HOP_BY_HOP_HEADERS,
    _redact_value,
    redact_headers,
    sanitize_headers,
    sanitized_header_names,
)


def _case_variants(name):
    return [name, name.upper(), name.title(), name[0].upper() + name[1:]]


@pytest.mark.parametrize("name", sorted(HOP_BY_HOP_HEADERS | {"x-base-url"}))
def test_sanitize_removes_every_variant(name):
    inbound = Headers([(variant, "v") for variant in _case_variants(name)] + [("accept", "application/json")])
    result = sanitize_headers(inbound, control_header="x-base-url")
    assert name not in result
    assert all(key.lower() != name for key, _ in result.multi_items())
    assert result["accept"] == "application/json"


def test_sanitized_set_includes_control_header():
    names = sanitized_header_names("X-Target")
    assert "x-target" in names
    assert HOP_BY_HOP_HEADERS <= names


def test_sanitize_keeps_duplicates_and_order():
    inbound = [("x-tag", "a"), ("Connection", "close"), ("x-tag", "b"), ("content-type", "text/plain")]
    result = sanitize_headers(inbound, control_header="x-base-url")
    assert result.get_list("x-tag") == ["a", "b"]
    assert [k for k, _ in result.multi_items()] == ["x-tag", "x-tag", "content-type"]


def test_sanitize_accepts_plain_mapping_and_does_not_mutate():
    original = {"Host": "relay.local", "Authorization": "Bearer t", "X-Base-Url": "http://b"}
    copy = dict(original)
    result = sanitize_headers(original, control_header="x-base-url")
    assert original == copy
    assert dict(result) == {"authorization": "Bearer t"}


def test_sanitize_keeps_non_ascii_header_bytes():
    cookie = "name=résumé".encode()
    inbound = [(b"Cookie", cookie), (b"X-Note", "café".encode()), (b"Host", b"relay.local")]
    result = sanitize_headers(inbound, control_header="x-base-url")
    assert result.raw == [(b"Cookie", cookie), (b"X-Note", "café".encode())]


def test_sanitize_defaults_to_configured_control_header():
    result = sanitize_headers({"x-base-url": "http://b", "accept": "*/*"})
    assert "x-base-url" not in result


def test_redact_value_short():
    assert _redact_value("abc") == "[REDACTED]"
    assert _redact_value("abcd") == "[REDACTED]"


def test_redact_value_long():
    assert _redact_value("abcde") == "abcd...[REDACTED]"
    assert _redact_value("Bearer sk-12345") == "Bear...[REDACTED]"


def test_redact_headers_sensitive():
    headers = {
        "authorization": "Bearer secret-token",
        "cookie": "session=abc",
        "x-api-key": "key-12345",
        "set-cookie": "id=xyz123",
    }
    result = redact_headers(headers)
    for key in headers:
        assert "[REDACTED]" in result[key]


def test_redact_headers_preserves_non_sensitive():
    headers = {"content-type": "application/json", "x-base-url": "http://127.0.0.1:8080"}
    assert redact_headers(headers) == headers
