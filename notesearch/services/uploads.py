import asyncio
from typing import Callable, Iterable

from notesearch.core.config import settings
from notesearch.core.errors import ApiError, UploadUnsupportedError
from notesearch.core.logging_config import setup_logging
from notesearch.schemas.backend import UploadResponse
from notesearch.schemas.upload import UploadItem, UploadSource, UploadStatus, UploadSummary
from notesearch.services.api_client import ApiClient

logger = setup_logging()


def upload_outcome(item: UploadItem, result: UploadResponse) -> UploadItem:
    """Final state of a transport-level success.

    An embedded ingest summary with any failure counter set means the
    file was received but not indexed, so the item still fails.
    """
    ingest = result.ingest
    if ingest is None:
        return item.transition(UploadStatus.uploaded, "Upload succeeded.")
    if ingest.failure_count() > 0:
        return item.transition(UploadStatus.failed, ", ".join(ingest.errors or []) or "Ingest failed.")
    return item.transition(
        UploadStatus.uploaded,
        f"Indexed {ingest.indexed or 0}, updated {ingest.updated or 0}.",
    )


class UploadBatch:
    """Tracks upload items and sends the valid ones concurrently.

    Every item moves through its own state machine. One item failing
    never cancels or blocks another; ``run`` returns once all of them
    have settled. Nothing is retried.
    """

    def __init__(
        self,
        api_client: ApiClient,
        allowed_extensions: Iterable[str] | None = None,
        on_update: Callable[[UploadItem], None] | None = None,
        target_override: str | None = None,
    ):
        self.api_client = api_client
        self.allowed_extensions = frozenset(
            ext.lower() for ext in (allowed_extensions or settings.allowed_upload_extensions)
        )
        self.on_update = on_update
        self.target_override = target_override
        self.items: dict[str, UploadItem] = {}
        self._pending: dict[str, UploadSource] = {}

    def _record(self, item: UploadItem) -> UploadItem:
        self.items[item.id] = item
        logger.info("Upload item update", item_id=item.id, filename=item.filename, status=item.status.value)
        if self.on_update:
            self.on_update(item)
        return item

    def enqueue(self, sources: Iterable[UploadSource]) -> list[UploadItem]:
        """Add files to the queue; unsupported extensions go straight to ``invalid``."""
        added = []
        for source in sources:
            item = self._record(UploadItem(filename=source.filename, size=len(source.content)))
            if source.extension not in self.allowed_extensions:
                item = self._record(item.transition(
                    UploadStatus.invalid,
                    f"Unsupported file type ({source.extension or 'unknown'}).",
                ))
            else:
                self._pending[item.id] = source
            added.append(item)
        return added

    async def _upload_one(self, item_id: str, source: UploadSource) -> UploadItem:
        item = self._record(self.items[item_id].transition(UploadStatus.uploading))
        try:
            result = await self.api_client.upload(
                source.filename,
                source.content,
                content_type=source.content_type,
                target_override=self.target_override,
            )
        except UploadUnsupportedError as e:
            return self._record(item.transition(UploadStatus.endpoint_unsupported, e.message, e.code))
        except ApiError as e:
            return self._record(item.transition(UploadStatus.failed, e.message, e.code))
        except Exception as e:
            logger.exception("Unexpected upload failure", item_id=item.id, filename=item.filename)
            return self._record(item.transition(UploadStatus.failed, str(e) or "Upload failed."))
        return self._record(upload_outcome(item, result))

    async def run(self) -> list[UploadItem]:
        """Upload every queued item and wait for all of them to settle."""
        pending, self._pending = self._pending, {}
        return list(await asyncio.gather(
            *(self._upload_one(item_id, source) for item_id, source in pending.items())
        ))

    async def submit(self, sources: Iterable[UploadSource]) -> list[UploadItem]:
        """Enqueue and upload; returns the final state of the submitted items in order."""
        added = self.enqueue(sources)
        await self.run()
        return [self.items[item.id] for item in added]

    def summary(self) -> UploadSummary:
        counts = {status: 0 for status in UploadStatus}
        for item in self.items.values():
            counts[item.status] += 1
        return UploadSummary(
            total=len(self.items),
            counts=counts,
            endpoint_unsupported=counts[UploadStatus.endpoint_unsupported] > 0,
        )
