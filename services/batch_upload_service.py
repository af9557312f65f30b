"""
Batch upload orchestration.

Flow:  candidates → select_files (type/size/cap checks) → run() → one upload
per file, strictly in selection order → BatchUploadResult.

State machine:  IDLE → UPLOADING → COMPLETED. Per file:
PENDING → UPLOADING → SUCCEEDED | FAILED.

Overall progress for file i of n at file progress p is
``round((i * 100 + p) / n)``; after file i finishes, whatever the outcome, it
is ``round((i + 1) * 100 / n)``. Progress never decreases within a run.

A failed file never aborts the batch. There is no mid-run cancellation: a
file in flight always runs to completion or failure.
"""

from __future__ import annotations

import math
import time
from typing import Callable, Iterable, List, Optional

from domain.models import (
    BatchProgress,
    BatchState,
    BatchUploadResult,
    CandidateFile,
    FileRejection,
    FileUploadState,
    FileUploadStatus,
    RejectionReason,
    SelectionResult,
    UploadForm,
)
from ports.upload_client import UploadClientPort
from shared_utils.constants import ALLOWED_MEDIA_TYPES, LogScope, UploadLimits
from shared_utils.error_handler import AppException, BatchStateError, ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.BATCH_UPLOAD)

ProgressListener = Callable[[BatchProgress], None]


# ---------------------------------------------------------------------------
# Helpers (pure functions)
# ---------------------------------------------------------------------------

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def overall_progress(file_index: int, file_progress: float, total_files: int) -> int:
    """Map one file's progress (0-100) into batch progress (0-100)."""
    if total_files <= 0:
        return 0
    file_progress = max(0.0, min(100.0, float(file_progress)))
    return _round_half_up((file_index * 100 + file_progress) / total_files)


def _failure_reason(exc: Exception) -> str:
    if isinstance(exc, AppException):
        return exc.message
    return str(exc) or type(exc).__name__


def describe_result(result: BatchUploadResult) -> str:
    """One-line completion notice for the user.

    A batch where every file failed gets its own notice instead of the
    success/failure counts.
    """
    if result.is_total_failure:
        return f"All {result.total} uploads failed."
    message = f"Successfully uploaded {len(result.succeeded)} files."
    if result.failed:
        message += f" Failed to upload {len(result.failed)} files."
    return message


# ---------------------------------------------------------------------------
# BatchUploadJob
# ---------------------------------------------------------------------------

class BatchUploadJob:
    """One user-confirmed batch of uploads.

    Jobs share no state and are single-use: after ``run()`` completes the job
    is discarded. Not reentrant; a second ``run()`` raises BatchStateError.
    """

    def __init__(
        self,
        upload_client: UploadClientPort,
        *,
        max_files: int = UploadLimits.MAX_BATCH_FILES,
        max_file_size: int = UploadLimits.MAX_FILE_SIZE_BYTES,
        allowed_types: Iterable[str] = ALLOWED_MEDIA_TYPES,
        on_progress: Optional[ProgressListener] = None,
    ) -> None:
        self._client = upload_client
        self._max_files = max_files
        self._max_file_size = max_file_size
        self._allowed_types = frozenset(allowed_types)
        self._on_progress = on_progress

        self._state = BatchState.IDLE
        self._files: List[CandidateFile] = []
        self._file_states: List[FileUploadState] = []
        self._overall = 0
        self._current_index: Optional[int] = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def files(self) -> List[CandidateFile]:
        return list(self._files)

    @property
    def overall_progress(self) -> int:
        return self._overall

    @property
    def file_states(self) -> List[FileUploadState]:
        return [s.model_copy() for s in self._file_states]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_files(self, candidates: Iterable[CandidateFile]) -> SelectionResult:
        """Validate candidates one by one and add the valid ones.

        Invalid candidates are rejected individually with a reason. Valid
        candidates beyond the batch cap are dropped and counted in
        ``truncated_count``.
        """
        if self._state is not BatchState.IDLE:
            raise BatchStateError("Files can only be selected before the upload starts", self._state.value)

        accepted: List[CandidateFile] = []
        rejected: List[FileRejection] = []
        truncated = 0

        for candidate in candidates:
            rejection = self._validate(candidate)
            if rejection is not None:
                rejected.append(rejection)
                continue
            if len(self._files) >= self._max_files:
                truncated += 1
                continue
            self._files.append(candidate)
            accepted.append(candidate)

        logger.info(
            "batch_files_selected",
            accepted=len(accepted),
            rejected=len(rejected),
            truncated=truncated,
            selected_total=len(self._files),
        )
        if rejected:
            logger.warning(
                "batch_files_rejected",
                files=[f"{r.filename}: {r.message}" for r in rejected],
            )

        return SelectionResult(accepted=accepted, rejected=rejected, truncated_count=truncated)

    def _validate(self, candidate: CandidateFile) -> Optional[FileRejection]:
        try:
            InputValidator.validate_media_type(candidate.content_type, self._allowed_types)
        except ValidationError as exc:
            return FileRejection(
                filename=candidate.filename,
                reason=RejectionReason.INVALID_TYPE,
                message=exc.message,
            )
        try:
            InputValidator.validate_file_size(candidate.size_bytes, self._max_file_size)
        except ValidationError as exc:
            return FileRejection(
                filename=candidate.filename,
                reason=RejectionReason.FILE_TOO_LARGE,
                message=exc.message,
            )
        return None

    def remove_file(self, index: int) -> bool:
        """Drop one selected file. No-op once the upload has started."""
        if self._state is not BatchState.IDLE:
            logger.warning("batch_remove_ignored", index=index, state=self._state.value)
            return False
        if not 0 <= index < len(self._files):
            return False
        removed = self._files.pop(index)
        logger.debug("batch_file_removed", index=index, filename=removed.filename)
        return True

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> BatchUploadResult:
        """Upload every selected file, one at a time.

        Raises:
            BatchStateError: If the job is already running or finished.
            ValidationError: If no file is selected.
        """
        if self._state is not BatchState.IDLE:
            raise BatchStateError("Batch upload already started", self._state.value)
        if not self._files:
            raise ValidationError("No files selected for upload")

        self._state = BatchState.UPLOADING
        started = time.time()
        total = len(self._files)
        self._file_states = [
            FileUploadState(index=i, filename=f.filename) for i, f in enumerate(self._files)
        ]
        succeeded: List[int] = []
        failed: List[int] = []

        logger.info("batch_upload_started", total=total)
        self._notify(None)

        for index, candidate in enumerate(self._files):
            file_state = self._file_states[index]
            self._current_index = index
            file_state.status = FileUploadStatus.UPLOADING
            self._notify(index)

            try:
                response = await self._client.upload(
                    candidate,
                    UploadForm.for_batch(candidate),
                    self._file_progress_callback(index, total),
                )
            except Exception as exc:
                file_state.status = FileUploadStatus.FAILED
                file_state.error = _failure_reason(exc)
                failed.append(index)
                logger.warning(
                    "batch_file_failed",
                    index=index,
                    filename=candidate.filename,
                    error=file_state.error,
                )
            else:
                file_state.status = FileUploadStatus.SUCCEEDED
                file_state.progress = 100
                file_state.response = response if isinstance(response, dict) else {}
                succeeded.append(index)
                logger.info("batch_file_uploaded", index=index, filename=candidate.filename)

            self._advance(_round_half_up((index + 1) * 100 / total), index)

        self._current_index = None
        self._state = BatchState.COMPLETED

        result = BatchUploadResult(
            total=total,
            succeeded=succeeded,
            failed=failed,
            files=self.file_states,
            overall_progress=self._overall,
            duration_ms=(time.time() - started) * 1000,
        )
        logger.info(
            "batch_upload_completed",
            total=total,
            succeeded=len(succeeded),
            failed=len(failed),
            outcome=result.outcome.value,
            duration_ms=round(result.duration_ms, 1),
        )
        if result.is_total_failure:
            logger.error("batch_upload_all_failed", total=total)
        return result

    def _file_progress_callback(self, index: int, total: int) -> Callable[[int], None]:
        def on_progress(percent: int) -> None:
            # Late reports from an earlier file are ignored.
            if self._current_index != index:
                return
            file_state = self._file_states[index]
            file_state.progress = max(file_state.progress, max(0, min(100, int(percent))))
            self._advance(overall_progress(index, file_state.progress, total), index)

        return on_progress

    def _advance(self, value: int, index: Optional[int]) -> None:
        value = max(0, min(100, value))
        if value > self._overall:
            self._overall = value
        self._notify(index)

    def _notify(self, index: Optional[int]) -> None:
        if self._on_progress is None:
            return
        file_state = self._file_states[index] if index is not None else None
        snapshot = BatchProgress(
            overall=self._overall,
            file_index=index,
            filename=file_state.filename if file_state else None,
            file_status=file_state.status if file_state else None,
            file_progress=file_state.progress if file_state else 0,
        )
        # A broken listener must not abort the batch or fail the file in flight.
        try:
            self._on_progress(snapshot)
        except Exception as exc:
            logger.warning(
                "batch_progress_listener_failed",
                file_index=index,
                error=str(exc) or type(exc).__name__,
            )
