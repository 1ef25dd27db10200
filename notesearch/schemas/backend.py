from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Response models keep fields the backend adds that we don't know yet."""
    model_config = ConfigDict(extra="allow")


# --- errors ---

class ErrorDetail(BaseModel):
    code: str = Field(..., min_length=1, description="Backend error code, passed through verbatim")
    message: str = Field(..., min_length=1)
    details: dict[str, Any] | None = None


class ErrorPayload(BaseModel):
    """Well-formed error body: ``{"error": {"code", "message", "details"?}}``."""
    error: ErrorDetail


# --- search ---

class SearchFilters(BaseModel):
    tags_any: list[str] | None = None
    path_prefix: str | None = None


class SearchOptions(BaseModel):
    fuzzy: bool | None = None


class SearchRequest(BaseModel):
    q: str
    limit: int | None = None
    filters: SearchFilters | None = None
    options: SearchOptions | None = None
    cache: bool | None = None


class SearchHit(WireModel):
    doc_id: str
    score: float | None = None
    path: str
    title: str | None = None
    snippet: str | None = None
    source: str | None = Field(default=None, description="cache, index, or backend-specific")


class SearchResponse(WireModel):
    hits: list[SearchHit] = Field(default_factory=list)
    source: str | None = None
    cache_key: str | None = None
    index_epoch: int | None = None


# --- ingest ---

class IngestRequest(BaseModel):
    roots: list[str] | None = None
    extensions: list[str] | None = None
    mode: str | None = Field(default=None, description="incremental, full, or backend-specific")
    dry_run: bool | None = None


class IngestCounts(WireModel):
    indexed: int | None = None
    updated: int | None = None
    skipped: int | None = None
    failed: int | None = None
    parse_failed: int | None = None
    index_failed: int | None = None

    def failure_count(self) -> int:
        return (self.failed or 0) + (self.parse_failed or 0) + (self.index_failed or 0)


class IngestSummary(IngestCounts):
    total: int | None = None


class IngestFileResult(WireModel):
    path: str
    status: str
    code: str | None = None
    message: str | None = None


class IngestResponse(IngestCounts):
    index_epoch: int | None = None
    errors: list[str] | None = None
    summary: IngestSummary | None = None
    files: list[IngestFileResult] | None = None

    def failure_count(self) -> int:
        counts = super().failure_count()
        if counts == 0 and self.summary is not None:
            return self.summary.failure_count()
        return counts


# --- reindex / stats ---

class ReindexResponse(WireModel):
    index_epoch: int | None = None
    cache_cleared: bool | None = None


class StatsResponse(WireModel):
    doc_count: int | None = None
    index_epoch: int | None = None
    cache_entries: int | None = None
    cache_hit_rate: float | None = None
    searches_total: int | None = None
    cache_hits_total: int | None = None
    cache_misses_total: int | None = None
    ingest_runs_total: int | None = None
    parse_failures_total: int | None = None
    index_failures_total: int | None = None
    last_ingest_at: str | None = None


# --- upload ---

class UploadIngest(IngestCounts):
    """Ingest summary a backend may embed in a successful upload response."""
    index_epoch: int | None = None
    errors: list[str] | None = None


class UploadResponse(WireModel):
    path: str | None = None
    filename: str | None = None
    size: int | None = None
    ingest: UploadIngest | None = None
