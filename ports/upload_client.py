"""
Port interface for single-file uploads to the backend.

Implementations: HttpUploadClientAdapter (adapters/)
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Protocol, runtime_checkable

from domain.models import CandidateFile, UploadForm

ProgressCallback = Callable[[int], None]


@runtime_checkable
class UploadClientPort(Protocol):
    """Abstract interface for uploading one media file."""

    async def upload(
        self,
        candidate: CandidateFile,
        form: UploadForm,
        on_progress: ProgressCallback,
    ) -> Dict[str, Any]:
        """Upload *candidate* as ``multipart/form-data``.

        Args:
            candidate: File to send in the ``audio`` part.
            form: Text fields sent alongside the file.
            on_progress: Called with this file's progress (0-100) while the
                request body is sent.

        Returns:
            Decoded backend response body.

        Raises:
            UploadError: If the backend rejects the file or cannot be reached.
        """
        ...
