"""
HTTP upload client adapter.

Implements UploadClientPort against ``POST /api/audios/upload`` using an
httpx.AsyncClient. Progress is measured on the request body as httpx reads
the file for the multipart stream.

The file is read with blocking calls of at most ``chunk_size`` bytes each, so
every chunk holds the event loop for one disk read. Callers that share the
loop with other work should keep ``chunk_size`` small; the worker runs one
batch per process and is unaffected.
"""

from __future__ import annotations

import os
from typing import Any, BinaryIO, Dict, Optional

import httpx

from domain.models import CandidateFile, UploadForm
from ports.upload_client import ProgressCallback
from shared_utils.constants import BackendEndpoints, Defaults, LogScope, UploadLimits
from shared_utils.error_handler import UploadError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class ProgressReader:
    """File wrapper that reports read progress as a 0-``cap`` percentage.

    Only reports when the integer percentage changes. Sized reads larger than
    ``chunk_size`` are shortened so progress ticks at least once per chunk.
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        total: int,
        on_progress: ProgressCallback,
        cap: int = UploadLimits.MAX_IN_FLIGHT_PROGRESS,
        chunk_size: Optional[int] = None,
    ) -> None:
        self._file = fileobj
        self._chunk_size = chunk_size
        self._total = total
        self._on_progress = on_progress
        self._cap = cap
        self._sent = 0
        self._last: Optional[int] = None

    def read(self, size: int = -1) -> bytes:
        if self._chunk_size and size > self._chunk_size:
            size = self._chunk_size
        chunk = self._file.read(size)
        self._sent += len(chunk)
        if self._total > 0:
            percent = min(self._cap, round(self._sent * 100 / self._total))
            if percent != self._last:
                self._last = percent
                self._on_progress(percent)
        return chunk

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        position = self._file.seek(offset, whence)
        if whence == os.SEEK_SET and offset == 0:
            self._sent = 0
        return position

    def tell(self) -> int:
        return self._file.tell()


def _error_message(resp: httpx.Response) -> str:
    """Backend error bodies carry ``message`` and/or ``error``."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            if body.get(key):
                return str(body[key])
    text = resp.text.strip()
    return text or f"Upload failed with status {resp.status_code}"


class HttpUploadClientAdapter:
    """Uploads one media file per call as ``multipart/form-data``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = Defaults.UPLOAD_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = Defaults.UPLOAD_CHUNK_SIZE,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._client = client

    async def upload(
        self,
        candidate: CandidateFile,
        form: UploadForm,
        on_progress: ProgressCallback,
    ) -> Dict[str, Any]:
        if self._client is not None:
            return await self._send(self._client, candidate, form, on_progress)
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self._timeout) as client:
            return await self._send(client, candidate, form, on_progress)

    async def _send(
        self,
        client: httpx.AsyncClient,
        candidate: CandidateFile,
        form: UploadForm,
        on_progress: ProgressCallback,
    ) -> Dict[str, Any]:
        logger.info(
            "upload_started",
            filename=candidate.filename,
            size_bytes=candidate.size_bytes,
            content_type=candidate.content_type,
        )
        try:
            with candidate.open() as fh:
                reader = ProgressReader(
                    fh, candidate.size_bytes, on_progress, chunk_size=self._chunk_size
                )
                files = {"audio": (candidate.filename, reader, candidate.content_type)}
                resp = await client.post(
                    BackendEndpoints.UPLOAD,
                    data=form.to_form_fields(),
                    files=files,
                )
        except (OSError, ValueError) as exc:
            logger.error("upload_file_unreadable", filename=candidate.filename, error=str(exc))
            raise UploadError(
                f"Could not read {candidate.filename}: {exc}", filename=candidate.filename
            ) from exc
        except httpx.RequestError as exc:
            logger.error("upload_connection_failed", filename=candidate.filename, error=str(exc))
            raise UploadError(
                f"Connection failed: {exc}", filename=candidate.filename
            ) from exc

        if not resp.is_success:
            message = _error_message(resp)
            logger.error(
                "upload_rejected",
                filename=candidate.filename,
                status=resp.status_code,
                error=message,
            )
            raise UploadError(message, filename=candidate.filename, status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError:
            body = {}
        logger.info("upload_completed", filename=candidate.filename, status=resp.status_code)
        return body if isinstance(body, dict) else {"data": body}
