from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from notesearch.core.config import settings
from notesearch.core.logging_config import setup_logging
from notesearch.middlewares.logging_middleware import LoggingMiddleware
from notesearch.schemas.backend import (
    ErrorDetail,
    ErrorPayload,
    IngestRequest,
    SearchRequest,
)

logger = setup_logging()


def error_response(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    payload = ErrorPayload(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(content=payload.model_dump(exclude_none=True), status_code=status_code)


class FakeIndex:
    """In-memory note index with the counters the stats endpoint reports."""

    def __init__(self):
        self.docs: dict[str, str] = {}
        self.index_epoch = 1
        self.cache: dict[str, list[dict]] = {}
        self.searches_total = 0
        self.cache_hits_total = 0
        self.ingest_runs_total = 0
        self.parse_failures_total = 0
        self.last_ingest_at: str | None = None

    def add(self, path: str, text: str) -> str:
        """Store a document; returns "indexed" or "updated"."""
        status = "updated" if path in self.docs else "indexed"
        self.docs[path] = text
        self.cache.clear()
        return status

    def search(self, request: SearchRequest) -> dict:
        self.searches_total += 1
        cache_key = request.model_dump_json(exclude_none=True)
        if request.cache is not False and cache_key in self.cache:
            self.cache_hits_total += 1
            return {"hits": self.cache[cache_key], "source": "cache", "cache_key": cache_key, "index_epoch": self.index_epoch}

        needle = request.q.lower()
        prefix = request.filters.path_prefix if request.filters else None
        hits = []
        for doc_id, (path, text) in enumerate(sorted(self.docs.items()), start=1):
            if prefix and not path.startswith(prefix):
                continue
            count = text.lower().count(needle)
            if count == 0:
                continue
            first_line = text.strip().splitlines()[0] if text.strip() else path
            idx = text.lower().find(needle)
            hits.append({
                "doc_id": str(doc_id),
                "score": float(count),
                "path": path,
                "title": first_line.lstrip("# ").strip(),
                "snippet": text[max(idx - 40, 0):idx + 80].strip(),
                "source": "index",
            })
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        hits = hits[:request.limit or 20]
        if request.cache is not False:
            self.cache[cache_key] = hits
        return {"hits": hits, "source": "index", "cache_key": cache_key, "index_epoch": self.index_epoch}

    def mark_ingest(self):
        self.ingest_runs_total += 1
        self.last_ingest_at = datetime.now(timezone.utc).isoformat()

    def stats(self) -> dict:
        misses = self.searches_total - self.cache_hits_total
        return {
            "doc_count": len(self.docs),
            "index_epoch": self.index_epoch,
            "cache_entries": len(self.cache),
            "cache_hit_rate": self.cache_hits_total / self.searches_total if self.searches_total else 0.0,
            "searches_total": self.searches_total,
            "cache_hits_total": self.cache_hits_total,
            "cache_misses_total": misses,
            "ingest_runs_total": self.ingest_runs_total,
            "parse_failures_total": self.parse_failures_total,
            "index_failures_total": 0,
            "last_ingest_at": self.last_ingest_at,
        }


def create_app(index: FakeIndex | None = None, upload_enabled: bool | None = None) -> FastAPI:
    """Create the fake note-search backend."""
    app = FastAPI(title="Fake NoteSearch Backend", debug=settings.debug)
    app.state.index = index = index or FakeIndex()
    if upload_enabled is None:
        upload_enabled = settings.fake_backend_upload_enabled

    app.add_middleware(LoggingMiddleware)

    @app.get("/status")
    async def status():
        return {"status": "Fake backend is running"}

    @app.post("/v1/search")
    async def search(data: dict):
        if not isinstance(data.get("q"), str) or not data["q"].strip():
            return error_response(400, "INVALID_ARGUMENT", "q required")
        try:
            request = SearchRequest.model_validate(data)
        except ValidationError as e:
            return error_response(400, "INVALID_ARGUMENT", "invalid search request", {"errors": e.error_count()})
        return index.search(request)

    @app.post("/v1/ingest")
    async def ingest(data: IngestRequest):
        extensions = {ext.lower() for ext in (data.extensions or settings.allowed_upload_extensions)}
        counts = {"indexed": 0, "updated": 0, "skipped": 0, "failed": 0, "parse_failed": 0, "index_failed": 0}
        files, errors = [], []
        for root in data.roots or []:
            root_path = Path(root)
            if not root_path.is_dir():
                return error_response(404, "NOT_FOUND", f"root not found: {root}", {"root": root})
            for path in sorted(p for p in root_path.rglob("*") if p.is_file()):
                if path.suffix.lower() not in extensions:
                    counts["skipped"] += 1
                    continue
                try:
                    text = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    counts["parse_failed"] += 1
                    index.parse_failures_total += 1
                    errors.append(f"{path}: {e}")
                    files.append({"path": str(path), "status": "parse_failed", "code": "PARSE_ERROR", "message": str(e)})
                    continue
                status = "indexed" if data.dry_run else index.add(str(path), text)
                counts[status] += 1
                files.append({"path": str(path), "status": status})
        if not data.dry_run:
            index.mark_ingest()
        return {**counts, "index_epoch": index.index_epoch, "errors": errors, "files": files}

    @app.post("/v1/reindex")
    async def reindex():
        index.index_epoch += 1
        index.cache.clear()
        return {"index_epoch": index.index_epoch, "cache_cleared": True}

    @app.get("/v1/stats")
    async def stats():
        return index.stats()

    if upload_enabled:
        @app.post("/v1/upload")
        async def upload(file: UploadFile = File(...)):
            raw = await file.read()
            path = f"uploads/{file.filename}"
            summary = {"indexed": 0, "updated": 0, "skipped": 0, "failed": 0, "parse_failed": 0, "index_failed": 0, "errors": []}
            try:
                status = index.add(path, raw.decode("utf-8"))
                summary[status] += 1
            except UnicodeDecodeError as e:
                index.parse_failures_total += 1
                summary["parse_failed"] += 1
                summary["errors"].append(f"{file.filename}: {e.reason}")
            index.mark_ingest()
            summary["index_epoch"] = index.index_epoch
            return {"path": path, "filename": file.filename, "size": len(raw), "ingest": summary}

    return app
