"""Concurrent attachment uploads with per-upload cancellation."""

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from berry_editor.common.utils.logger import get_logger
from berry_editor.editor.models import UploadFile, UploadResult

if TYPE_CHECKING:
    from berry_editor.editor.engine import EditorEngine

logger = get_logger(__name__)


class CancellationToken:
    """Set once when the upload it belongs to is cancelled."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class UploadContext:
    token: CancellationToken
    set_progress: Callable[[float], None]


class UploadAdapter(Protocol):
    async def upload(self, file: UploadFile, ctx: UploadContext) -> UploadResult | dict: ...


class AttachmentUploader:
    """Uploads files through an adapter and settles each placeholder once.

    Placeholders are inserted in file order before any upload starts, so the
    document order never depends on which upload finishes first.
    """

    def __init__(self, engine: "EditorEngine", adapter: UploadAdapter):
        self.engine = engine
        self.adapter = adapter
        self._tasks: dict[str, asyncio.Task] = {}
        self._tokens: dict[str, CancellationToken] = {}
        self._settled: set[str] = set()

    @property
    def in_flight(self) -> list[str]:
        return list(self._tasks)

    async def upload_files(self, files: Iterable[UploadFile], preview_urls: dict[str, str] | None = None) -> list[str]:
        """Upload ``files`` concurrently; return the attachment ids in file order."""
        files = list(files)
        previews = preview_urls or {}
        ids = [self.engine.insert_attachment_placeholder(file, previews.get(file.name)) for file in files]

        tasks = []
        for attachment_id, file in zip(ids, files):
            token = CancellationToken()
            self._tokens[attachment_id] = token
            self._tasks[attachment_id] = asyncio.create_task(self._upload_one(attachment_id, file, token))
            tasks.append(self._tasks[attachment_id])

        await asyncio.gather(*tasks, return_exceptions=True)

        # tasks cancelled before their first step never ran their own handler
        for attachment_id in ids:
            self._tasks.pop(attachment_id, None)
            self._tokens.pop(attachment_id, None)
            if attachment_id not in self._settled:
                self._fail(attachment_id)
            self._settled.discard(attachment_id)
        return ids

    def _fail(self, attachment_id: str) -> None:
        if attachment_id not in self._settled:
            self._settled.add(attachment_id)
            self.engine.fail_attachment(attachment_id)

    def _resolve(self, attachment_id: str, result: UploadResult) -> None:
        if attachment_id not in self._settled:
            self._settled.add(attachment_id)
            self.engine.resolve_attachment(attachment_id, result)

    async def _upload_one(self, attachment_id: str, file: UploadFile, token: CancellationToken) -> None:
        def set_progress(value: float) -> None:
            if not token.cancelled:
                self.engine.set_attachment_progress(attachment_id, value)

        try:
            result = await self.adapter.upload(file, UploadContext(token=token, set_progress=set_progress))
            if isinstance(result, dict):
                result = UploadResult.model_validate(result)
        except asyncio.CancelledError:
            logger.info("Upload cancelled: %s (%s)", file.name, attachment_id)
            self._fail(attachment_id)
            raise
        except Exception:
            logger.warning("Upload failed: %s (%s)", file.name, attachment_id, exc_info=True)
            self._fail(attachment_id)
            return

        if token.cancelled:
            logger.info("Discarding result of cancelled upload: %s (%s)", file.name, attachment_id)
            self._fail(attachment_id)
            return
        self._resolve(attachment_id, result)

    def cancel(self, attachment_id: str) -> bool:
        """Cancel one in-flight upload. Returns ``False`` if it already settled."""
        token = self._tokens.get(attachment_id)
        task = self._tasks.get(attachment_id)
        if token is None or task is None or attachment_id in self._settled:
            return False
        token.cancel()
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for attachment_id in list(self._tasks):
            self.cancel(attachment_id)
