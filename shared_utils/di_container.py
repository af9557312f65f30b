"""
Dependency injection container for managing application dependencies.
Centralizes adapter creation and lifecycle management.

Long-lived collaborators (diagnostic sink, feedback source, upload client,
FeedbackService) are lazy singletons. Batch upload jobs are single-use, so
the container hands out a fresh one per call.
"""

from typing import Callable, Optional
import logging

from domain.models import BatchProgress
from shared_utils.config_loader import get_settings
from shared_utils.constants import ALLOWED_MEDIA_TYPES, LogScope


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None
    _diagnostic_sink: Optional[object] = None
    _feedback_source: Optional[object] = None
    _feedback_service: Optional[object] = None
    _upload_client: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        if self._feedback_source is not None and hasattr(self._feedback_source, "close"):
            self._feedback_source.close()
        self._diagnostic_sink = None
        self._feedback_source = None
        self._feedback_service = None
        self._upload_client = None

    def get_diagnostic_sink(self):
        """Get or create the diagnostic sink (lazy singleton).

        Structlog-backed when diagnostics are enabled, a no-op otherwise.
        """
        if self._diagnostic_sink is None:
            settings = get_settings()
            if settings.diagnostics_enabled:
                from adapters.diagnostic_sinks import StructlogDiagnosticSink
                self._diagnostic_sink = StructlogDiagnosticSink()
            else:
                from adapters.diagnostic_sinks import NullDiagnosticSink
                self._diagnostic_sink = NullDiagnosticSink()
            logger.info(
                "Initialized diagnostic sink",
                extra={"scope": LogScope.CONFIG, "enabled": settings.diagnostics_enabled},
            )
        return self._diagnostic_sink

    def get_feedback_source(self):
        """Get or create HttpFeedbackSourceAdapter (lazy singleton)."""
        if self._feedback_source is None:
            from adapters.http_feedback_source import HttpFeedbackSourceAdapter

            settings = get_settings()
            self._feedback_source = HttpFeedbackSourceAdapter(
                base_url=settings.backend_base_url,
                timeout=settings.request_timeout_seconds,
            )
            logger.info(
                "Initialized HttpFeedbackSourceAdapter",
                extra={"scope": LogScope.CONFIG, "base_url": settings.backend_base_url},
            )
        return self._feedback_source

    def get_feedback_service(self):
        """Get or create FeedbackService (lazy singleton)."""
        if self._feedback_service is None:
            from services.feedback_service import FeedbackService

            self._feedback_service = FeedbackService(
                feedback_source=self.get_feedback_source(),
                diagnostic_sink=self.get_diagnostic_sink(),
            )
            logger.info("Initialized FeedbackService")
        return self._feedback_service

    def get_upload_client(self):
        """Get or create HttpUploadClientAdapter (lazy singleton)."""
        if self._upload_client is None:
            from adapters.http_upload_client import HttpUploadClientAdapter

            settings = get_settings()
            self._upload_client = HttpUploadClientAdapter(
                base_url=settings.backend_base_url,
                timeout=settings.upload_timeout_seconds,
                chunk_size=settings.upload_chunk_size,
            )
            logger.info("Initialized HttpUploadClientAdapter")
        return self._upload_client

    def new_batch_upload_job(
        self, on_progress: Optional[Callable[[BatchProgress], None]] = None
    ):
        """Create a fresh BatchUploadJob configured from settings."""
        from services.batch_upload_service import BatchUploadJob

        settings = get_settings()
        return BatchUploadJob(
            self.get_upload_client(),
            max_files=settings.max_batch_files,
            max_file_size=settings.max_file_size_bytes,
            allowed_types=ALLOWED_MEDIA_TYPES,
            on_progress=on_progress,
        )


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
