"""
Batch upload runner.

Usage:
    python -m worker.entrypoint FILE [FILE ...]

The runner:
    1. Builds one candidate per path and selects them into a fresh batch job
       (type, size and batch-cap checks; rejections are reported, not fatal).
    2. Uploads the selected files one at a time to the backend.
    3. Exits 0 when at least one file uploaded, 1 when every file failed or
       nothing could be selected.

All logging is JSON (structlog).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional, Sequence

from domain.models import BatchProgress, CandidateFile
from services.batch_upload_service import describe_result
from shared_utils.constants import LogScope
from shared_utils.error_handler import AppException
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.di_container import get_di_container

logger = get_scoped_logger(LogScope.WORKER)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload coaching session recordings to the backend as one batch"
    )
    parser.add_argument(
        "files",
        nargs="+",
        metavar="FILE",
        help="Audio or video files to upload (at most 10 per batch)",
    )
    return parser.parse_args(list(argv))


def _load_candidates(paths: Sequence[str]) -> List[CandidateFile]:
    candidates = []
    for path in paths:
        try:
            candidates.append(CandidateFile.from_path(path))
        except OSError as exc:
            logger.warning("worker_file_unreadable", path=path, error=str(exc))
            print(f"SKIPPED: {path}: {exc.strerror or exc}", file=sys.stderr)
    return candidates


def _log_progress(progress: BatchProgress) -> None:
    logger.info(
        "worker_progress",
        overall=progress.overall,
        file_index=progress.file_index,
        filename=progress.filename,
        file_status=progress.file_status.value if progress.file_status else None,
        file_progress=progress.file_progress,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Worker main: parse paths, select, run the batch."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    job = get_di_container().new_batch_upload_job(on_progress=_log_progress)
    selection = job.select_files(_load_candidates(args.files))

    for rejection in selection.rejected:
        print(f"REJECTED: {rejection.filename}: {rejection.message}", file=sys.stderr)
    if selection.truncated_count:
        print(
            f"SKIPPED: {selection.truncated_count} files over the batch limit",
            file=sys.stderr,
        )

    if not job.files:
        logger.error("worker_nothing_selected", requested=len(args.files))
        print("ERROR: no valid files to upload", file=sys.stderr)
        return 1

    logger.info("worker_started", files=len(job.files))

    try:
        result = asyncio.run(job.run())
    except AppException as exc:
        logger.error("worker_failed", error_code=exc.error_code, error=exc.message)
        return 1

    for file_state in result.files:
        if file_state.error:
            print(f"FAILED: {file_state.filename}: {file_state.error}", file=sys.stderr)
    if result.is_total_failure:
        print(f"ERROR: {describe_result(result)}", file=sys.stderr)
    else:
        print(describe_result(result))

    logger.info(
        "worker_completed",
        outcome=result.outcome.value,
        succeeded=len(result.succeeded),
        failed=len(result.failed),
        duration_ms=round(result.duration_ms, 1),
    )
    return 1 if result.is_total_failure else 0


if __name__ == "__main__":
    sys.exit(main())
