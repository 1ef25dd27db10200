import pytest
from pydantic import ValidationError

from notesearch.schemas.backend import (
    ErrorPayload,
    IngestResponse,
    SearchRequest,
    SearchResponse,
    UploadResponse,
)
from notesearch.schemas.health import HealthCheck
from notesearch.schemas.upload import TERMINAL_STATUSES, TRANSITIONS, UploadStatus


def test_error_payload_requires_code_and_message():
    payload = ErrorPayload.model_validate({"error": {"code": "X", "message": "m", "extra": 1}})
    assert payload.error.details is None

    for bad in ({}, {"error": None}, {"error": {"code": "X"}}, {"error": {"code": "", "message": "m"}}):
        with pytest.raises(ValidationError):
            ErrorPayload.model_validate(bad)


def test_search_request_dump_skips_unset():
    request = SearchRequest(q="todo", options={"fuzzy": True})
    assert request.model_dump(exclude_none=True) == {"q": "todo", "options": {"fuzzy": True}}


def test_response_models_keep_unknown_fields():
    response = SearchResponse.model_validate({"hits": [{"doc_id": "1", "path": "/a", "rank": 3}], "took_ms": 2})
    assert response.model_extra == {"took_ms": 2}
    assert response.hits[0].model_extra == {"rank": 3}


def test_ingest_failure_count_from_top_level_counters():
    response = IngestResponse.model_validate({"failed": 1, "parse_failed": 2, "index_failed": 3})
    assert response.failure_count() == 6


def test_ingest_failure_count_falls_back_to_summary():
    response = IngestResponse.model_validate({"indexed": 0, "summary": {"total": 4, "parse_failed": 1}})
    assert response.failure_count() == 1
    assert IngestResponse().failure_count() == 0


def test_upload_response_fields_are_optional():
    assert UploadResponse.model_validate({}) == UploadResponse()
    response = UploadResponse.model_validate({"ingest": {"indexed": 1, "index_epoch": 9}})
    assert response.ingest.index_epoch == 9
    assert response.ingest.failure_count() == 0


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert not TRANSITIONS.get(status)
    assert UploadStatus.queued not in TERMINAL_STATUSES
    assert UploadStatus.uploading not in TERMINAL_STATUSES


def test_health_check_model():
    health = HealthCheck(status="ok", components={"relay": "ok"}, version="0.1.0", default_target="http://b")
    assert health.model_dump()["default_target"] == "http://b"
