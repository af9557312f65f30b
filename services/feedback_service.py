"""
FeedbackService: fetch + normalize.

Flow:  backend record → ProviderPayloadParser → FieldMergeResolver → NormalizedFeedbackView.

Depends only on ports. A view is built fresh on every call; nothing is cached.
"""

from __future__ import annotations

from typing import Any, Optional

from adapters.diagnostic_sinks import NullDiagnosticSink
from domain.models import NormalizedFeedbackView, RawFeedbackRecord
from feedback_engine.engine.merge import FieldMergeResolver
from feedback_engine.engine.view_builder import FeedbackViewBuilder
from feedback_engine.parser.provider_payload import ProviderPayloadParser
from ports.diagnostic_sink import DiagnosticSinkPort
from ports.feedback_source import FeedbackSourcePort
from shared_utils.constants import LogScope
from shared_utils.logging_utils import ContextualLogger, log_execution
from shared_utils.validation import InputValidator


logger = ContextualLogger(scope=LogScope.FEEDBACK_SERVICE)


class FeedbackService:
    """Turns backend feedback records into normalized views."""

    def __init__(
        self,
        *,
        feedback_source: FeedbackSourcePort,
        diagnostic_sink: Optional[DiagnosticSinkPort] = None,
    ) -> None:
        self._source = feedback_source
        sink = diagnostic_sink or NullDiagnosticSink()
        self._parser = ProviderPayloadParser(sink)
        self._builder = FeedbackViewBuilder(FieldMergeResolver(sink))

    @log_execution(scope=LogScope.FEEDBACK_SERVICE)
    def get_normalized_feedback(self, feedback_id: str) -> NormalizedFeedbackView:
        """Fetch one record and normalize it.

        Raises:
            ValidationError: If *feedback_id* is not a backend id.
            FeedbackNotFoundError: If the backend has no such record.
            ExternalServiceError: If the backend cannot be reached.
        """
        feedback_id = InputValidator.validate_feedback_id(str(feedback_id))
        raw = self._source.get_feedback(feedback_id)
        return self.normalize(raw)

    def normalize(self, raw: Any) -> NormalizedFeedbackView:
        """Normalize an already-fetched record. Never raises on malformed data."""
        record = raw if isinstance(raw, RawFeedbackRecord) else RawFeedbackRecord.from_api(raw)
        payload = self._parser.parse(record.multi_ai_analysis)
        view = self._builder.build(record, payload)

        logger.info(
            "feedback_normalized",
            feedback_id=view.feedback_id,
            payload_kind=payload.kind,
            analysis_source=view.analysis_source.value,
            strengths=len(view.strengths),
            improvements=len(view.improvements),
        )
        return view
