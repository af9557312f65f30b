"""
Tests for FeedbackService.

All dependencies are mocked. No network calls.
"""

from unittest.mock import MagicMock

import pytest

from domain.models import AnalysisSource, RawFeedbackRecord
from services.feedback_service import FeedbackService
from shared_utils.error_handler import (
    ExternalServiceError,
    FeedbackNotFoundError,
    ValidationError,
)


def _build(source: MagicMock, sink: MagicMock = None) -> FeedbackService:
    return FeedbackService(feedback_source=source, diagnostic_sink=sink)


# ---------------------------------------------------------------------------
# get_normalized_feedback
# ---------------------------------------------------------------------------


class TestGetNormalizedFeedback:
    def test_fetches_and_normalizes(self, current_record) -> None:
        source = MagicMock()
        source.get_feedback.return_value = current_record
        view = _build(source).get_normalized_feedback("42")

        source.get_feedback.assert_called_once_with("42")
        assert view.analysis_source is AnalysisSource.CURRENT
        assert view.overall_score == 95

    def test_accepts_int_id(self, base_record) -> None:
        source = MagicMock()
        source.get_feedback.return_value = base_record
        _build(source).get_normalized_feedback(42)
        source.get_feedback.assert_called_once_with("42")

    @pytest.mark.parametrize("bad_id", ["", "   ", "abc", "../1"])
    def test_invalid_id_rejected(self, bad_id) -> None:
        source = MagicMock()
        with pytest.raises(ValidationError):
            _build(source).get_normalized_feedback(bad_id)
        source.get_feedback.assert_not_called()

    def test_not_found_propagates(self) -> None:
        source = MagicMock()
        source.get_feedback.side_effect = FeedbackNotFoundError("9")
        with pytest.raises(FeedbackNotFoundError):
            _build(source).get_normalized_feedback("9")

    def test_backend_down_propagates(self) -> None:
        source = MagicMock()
        source.get_feedback.side_effect = ExternalServiceError("Backend", "timeout")
        with pytest.raises(ExternalServiceError, match="Backend unavailable"):
            _build(source).get_normalized_feedback("9")

    def test_no_caching(self, base_record, legacy_record) -> None:
        source = MagicMock()
        source.get_feedback.side_effect = [base_record, legacy_record]
        svc = _build(source)
        first = svc.get_normalized_feedback("42")
        second = svc.get_normalized_feedback("42")
        assert first.analysis_source is AnalysisSource.BASE
        assert second.analysis_source is AnalysisSource.LEGACY
        assert source.get_feedback.call_count == 2


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_reports_to_sink(self, make_base_record) -> None:
        sink = MagicMock()
        svc = _build(MagicMock(), sink)
        view = svc.normalize(make_base_record(multiAiAnalysis="{broken"))
        assert view.analysis_source is AnalysisSource.BASE
        assert sink.record.call_args[0][0] == "multi_ai_json_invalid"

    def test_topic_block_reported_to_sink(self, make_base_record) -> None:
        sink = MagicMock()
        svc = _build(MagicMock(), sink)
        view = svc.normalize(make_base_record(language="{broken"))
        assert view.language.is_empty()
        assert sink.record.call_args[0][0] == "topic_block_malformed"
        assert sink.record.call_args[1]["topic"] == "language"

    def test_deeply_nested_input_never_raises(self, make_base_record) -> None:
        nested = "[" * 100000
        view = _build(MagicMock()).normalize(
            make_base_record(multiAiAnalysis=nested, improvements=nested)
        )
        assert view.analysis_source is AnalysisSource.BASE
        assert view.improvements == (nested,)

    def test_without_sink(self, make_base_record) -> None:
        svc = _build(MagicMock())
        view = svc.normalize(make_base_record(multiAiAnalysis="{broken"))
        assert view.overall_score == 50

    def test_accepts_raw_record(self, base_record) -> None:
        svc = _build(MagicMock())
        view = svc.normalize(RawFeedbackRecord.from_api(base_record))
        assert view.feedback_id == "42"
