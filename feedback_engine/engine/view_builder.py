"""
Feedback view model builder.

Composes payload parsing, field merging and list coercion into one
NormalizedFeedbackView. ``build`` has no I/O and no logging; the only side
effect is diagnostics for malformed topic blocks. Same inputs give
structurally equal output.
"""

from typing import Any, List, Optional

from domain.models import (
    AnalysisSource,
    CurrentShapeAnalysis,
    LegacyShapeAnalysis,
    NormalizedFeedbackView,
    ParsedProviderPayload,
    RawFeedbackRecord,
)
from feedback_engine.engine.coercion import coerce_string_list, coerce_with_summary_fallback
from feedback_engine.engine.merge import FieldMergeResolver
from feedback_engine.parser.provider_payload import ProviderPayloadParser
from ports.diagnostic_sink import DiagnosticSinkPort
from shared_utils.constants import ScoreKeys, TopicKeys


class FeedbackViewBuilder:
    """Builds the UI-ready view from a raw record and its parsed payload."""

    def __init__(self, resolver: Optional[FieldMergeResolver] = None) -> None:
        self._resolver = resolver or FieldMergeResolver()

    def build(
        self, record: RawFeedbackRecord, payload: ParsedProviderPayload
    ) -> NormalizedFeedbackView:
        r = self._resolver

        strengths = coerce_with_summary_fallback(record.strengths, record.summary, "strengths")
        improvements = coerce_with_summary_fallback(
            record.improvements, record.summary, "improvements"
        )

        comprehensive_strengths: List[str] = list(strengths.items)
        comprehensive_improvements: List[str] = list(improvements.items)
        if isinstance(payload, CurrentShapeAnalysis):
            comprehensive_strengths += coerce_string_list(payload.synthesized.get("keyStrengths"))
            comprehensive_improvements += coerce_string_list(
                payload.synthesized.get("priorityDevelopmentAreas")
            )

        return NormalizedFeedbackView(
            feedback_id=r.resolve_id(record),
            analysis_source=self._analysis_source(payload),
            overall_score=r.resolve_overall_score(record, payload),
            communication_score=r.resolve_score(ScoreKeys.COMMUNICATION, record, payload),
            engagement_score=r.resolve_score(ScoreKeys.ENGAGEMENT, record, payload),
            instruction_score=r.resolve_score(ScoreKeys.INSTRUCTION, record, payload),
            summary=r.resolve_text("summary", record),
            key_info=r.resolve_topic(TopicKeys.KEY_INFO, record, payload),
            questioning=r.resolve_topic(TopicKeys.QUESTIONING, record, payload),
            language=r.resolve_topic(TopicKeys.LANGUAGE, record, payload),
            coach_behaviours=r.resolve_topic(TopicKeys.COACH_BEHAVIOURS, record, payload),
            player_engagement=r.resolve_topic(TopicKeys.PLAYER_ENGAGEMENT, record, payload),
            intended_outcomes=r.resolve_topic(TopicKeys.INTENDED_OUTCOMES, record, payload),
            visual_analysis=r.resolve_topic(TopicKeys.VISUAL_ANALYSIS, record, payload),
            strengths=strengths.items,
            improvements=improvements.items,
            strengths_provenance=strengths.provenance,
            improvements_provenance=improvements.provenance,
            comprehensive_strengths=comprehensive_strengths,
            comprehensive_improvements=comprehensive_improvements,
        )

    @staticmethod
    def _analysis_source(payload: ParsedProviderPayload) -> AnalysisSource:
        if isinstance(payload, CurrentShapeAnalysis):
            return AnalysisSource.CURRENT
        if isinstance(payload, LegacyShapeAnalysis):
            return AnalysisSource.LEGACY
        return AnalysisSource.BASE


def normalize_feedback(
    raw: Any, sink: Optional[DiagnosticSinkPort] = None
) -> NormalizedFeedbackView:
    """Raw backend JSON -> NormalizedFeedbackView.

    The payload parser and the topic resolver report malformed input to *sink*.
    """
    record = raw if isinstance(raw, RawFeedbackRecord) else RawFeedbackRecord.from_api(raw)
    payload = ProviderPayloadParser(sink).parse(record.multi_ai_analysis)
    return FeedbackViewBuilder(FieldMergeResolver(sink)).build(record, payload)
