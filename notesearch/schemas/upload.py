import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(str, Enum):
    queued = "queued"
    invalid = "invalid"
    uploading = "uploading"
    uploaded = "uploaded"
    failed = "failed"
    endpoint_unsupported = "endpoint_unsupported"


TERMINAL_STATUSES = frozenset({
    UploadStatus.invalid,
    UploadStatus.uploaded,
    UploadStatus.failed,
    UploadStatus.endpoint_unsupported,
})

# Allowed moves; anything else is a programming error
TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.queued: frozenset({UploadStatus.invalid, UploadStatus.uploading}),
    UploadStatus.uploading: frozenset({
        UploadStatus.uploaded,
        UploadStatus.failed,
        UploadStatus.endpoint_unsupported,
    }),
}


class UploadSource(BaseModel):
    """A file handed to the upload queue."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        idx = self.filename.rfind(".")
        return self.filename[idx:].lower() if idx >= 0 else ""


class UploadItem(BaseModel):
    """One file's upload lifecycle. Immutable: transitions return a new item."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    filename: str
    size: int = 0
    status: UploadStatus = UploadStatus.queued
    message: str | None = None
    error_code: str | None = Field(default=None, description="ApiError code when the item failed")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, status: UploadStatus, message: str | None = None, error_code: str | None = None) -> "UploadItem":
        if status not in TRANSITIONS.get(self.status, frozenset()):
            raise ValueError(f"Illegal upload transition {self.status.value} -> {status.value}")
        return self.model_copy(update={"status": status, "message": message, "error_code": error_code})


class UploadSummary(BaseModel):
    total: int
    counts: dict[UploadStatus, int]
    endpoint_unsupported: bool = Field(
        default=False, description="Backend lacks /v1/upload; path-based ingest is the alternative"
    )
