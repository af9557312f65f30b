"""
Tests for feedback_engine.engine.merge.

Covers the overall-score precedence chain, secondary scores, topic block
merging, annotation attachment and id resolution.
"""

from unittest.mock import MagicMock, call

import pytest

from domain.models import (
    CurrentShapeAnalysis,
    LegacyShapeAnalysis,
    NoAnalysis,
    RawFeedbackRecord,
    Unparseable,
)
from feedback_engine.engine.merge import (
    SUPPLEMENTARY_SOURCES,
    FieldMergeResolver,
    as_number,
    first_number,
)
from shared_utils.constants import ScoreKeys, TopicKeys


@pytest.fixture()
def resolver() -> FieldMergeResolver:
    return FieldMergeResolver()


def _record(**fields) -> RawFeedbackRecord:
    return RawFeedbackRecord.from_api(fields)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


class TestNumbers:
    @pytest.mark.parametrize(
        "value, expected",
        [(5, 5.0), (0, 0.0), (7.5, 7.5), ("81", 81.0), (" 3.5 ", 3.5)],
    )
    def test_as_number_accepts(self, value, expected) -> None:
        assert as_number(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", [1], {"a": 1}, float("nan"), float("inf")])
    def test_as_number_rejects(self, value) -> None:
        assert as_number(value) is None

    def test_first_number_skips_malformed(self) -> None:
        assert first_number([None, "n/a", 0, 9]) == 0

    def test_first_number_default(self) -> None:
        assert first_number([None, None]) == 0
        assert first_number([], default=-1) == -1


# ---------------------------------------------------------------------------
# Overall score
# ---------------------------------------------------------------------------


class TestOverallScore:
    def test_synthesized_wins(self, resolver) -> None:
        payload = CurrentShapeAnalysis(synthesized={"overallScore": 95}, openai_overall_score=90)
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 95

    def test_openai_when_synthesized_absent(self, resolver) -> None:
        payload = CurrentShapeAnalysis(openai_overall_score=90)
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 90

    def test_base_when_current_has_no_scores(self, resolver) -> None:
        payload = CurrentShapeAnalysis()
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 50

    def test_zero_is_present(self, resolver) -> None:
        payload = CurrentShapeAnalysis(synthesized={"overallScore": 0}, openai_overall_score=90)
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 0

    def test_legacy_overrides_base(self, resolver) -> None:
        payload = LegacyShapeAnalysis(openai={"overallScore": 70})
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 70

    def test_legacy_without_score_uses_base(self, resolver) -> None:
        payload = LegacyShapeAnalysis(openai={})
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 50

    @pytest.mark.parametrize("payload", [NoAnalysis(), Unparseable(reason="x")])
    def test_base_only(self, resolver, payload) -> None:
        assert resolver.resolve_overall_score(_record(overallScore=50), payload) == 50

    def test_default_zero(self, resolver) -> None:
        assert resolver.resolve_overall_score(_record(), NoAnalysis()) == 0


class TestSecondaryScores:
    def test_primary_block_wins(self, resolver) -> None:
        payload = CurrentShapeAnalysis(openai={"communicationScore": 80})
        record = _record(communicationScore=60)
        assert resolver.resolve_score(ScoreKeys.COMMUNICATION, record, payload) == 80

    def test_falls_back_to_base(self, resolver) -> None:
        record = _record(engagementScore=55)
        assert resolver.resolve_score(ScoreKeys.ENGAGEMENT, record, NoAnalysis()) == 55


# ---------------------------------------------------------------------------
# Topic blocks
# ---------------------------------------------------------------------------


class TestResolveTopic:
    def test_key_by_key_merge(self, resolver) -> None:
        record = _record(questioning={"totalQuestions": 8, "openQuestions": 3})
        payload = LegacyShapeAnalysis(openai={"questioning": {"openQuestions": 5}})
        block = resolver.resolve_topic(TopicKeys.QUESTIONING, record, payload)
        assert block.content == {"totalQuestions": 8, "openQuestions": 5}
        assert block.annotations == {}

    def test_none_in_primary_does_not_erase_base(self, resolver) -> None:
        record = _record(language={"clarity": 7})
        payload = LegacyShapeAnalysis(openai={"language": {"clarity": None, "pace": "fast"}})
        block = resolver.resolve_topic(TopicKeys.LANGUAGE, record, payload)
        assert block.content == {"clarity": 7, "pace": "fast"}

    def test_base_block_as_json_string(self, resolver) -> None:
        record = _record(keyInfo='{"totalWords": 1200}')
        block = resolver.resolve_topic(TopicKeys.KEY_INFO, record, NoAnalysis())
        assert block.content == {"totalWords": 1200}

    def test_malformed_blocks_degrade_to_empty(self, resolver) -> None:
        record = _record(language="{broken")
        payload = LegacyShapeAnalysis(openai={"language": ["not", "an", "object"]})
        block = resolver.resolve_topic(TopicKeys.LANGUAGE, record, payload)
        assert block.is_empty()

    def test_malformed_blocks_reported(self) -> None:
        sink = MagicMock()
        record = _record(language="{broken")
        payload = LegacyShapeAnalysis(openai={"language": ["not", "an", "object"]})

        FieldMergeResolver(sink).resolve_topic(TopicKeys.LANGUAGE, record, payload)

        sink.record.assert_has_calls([
            call("topic_block_malformed", topic="language", source="base", value_type="str"),
            call("topic_block_malformed", topic="language", source="primary", value_type="list"),
        ])
        assert sink.record.call_count == 2

    def test_absent_blocks_not_reported(self) -> None:
        sink = MagicMock()
        FieldMergeResolver(sink).resolve_topic(TopicKeys.QUESTIONING, _record(), NoAnalysis())
        sink.record.assert_not_called()

    def test_deeply_nested_block_degrades(self) -> None:
        sink = MagicMock()
        record = _record(questioning="[" * 100000)
        block = FieldMergeResolver(sink).resolve_topic(TopicKeys.QUESTIONING, record, NoAnalysis())
        assert block.is_empty()
        sink.record.assert_called_once()

    def test_failing_sink_ignored(self) -> None:
        sink = MagicMock()
        sink.record.side_effect = RuntimeError("sink down")
        record = _record(language="{broken")
        block = FieldMergeResolver(sink).resolve_topic(TopicKeys.LANGUAGE, record, NoAnalysis())
        assert block.is_empty()

    def test_visual_analysis_is_base_only(self, resolver) -> None:
        record = _record(visualAnalysis={"drills": 3})
        payload = LegacyShapeAnalysis(openai={"visualAnalysis": {"drills": 9}})
        block = resolver.resolve_topic(TopicKeys.VISUAL_ANALYSIS, record, payload)
        assert block.content == {"drills": 3}

    def test_annotations_attached_for_current_shape(self, resolver) -> None:
        payload = CurrentShapeAnalysis(
            claude={"pedagogicalInsights": ["p"]},
            perplexity={"bestPractices": ["b"]},
        )
        block = resolver.resolve_topic(TopicKeys.KEY_INFO, _record(), payload)
        assert block.annotations == {
            "claudeInsights": ("p",),
            "researchRecommendations": ("b",),
        }

    def test_annotation_defaults(self, resolver) -> None:
        block = resolver.resolve_topic(TopicKeys.QUESTIONING, _record(), CurrentShapeAnalysis())
        assert block.annotations == {
            "claudeQuestioningTheory": None,
            "researchEvidence": (),
        }

    def test_annotations_never_shadow_primary(self, resolver) -> None:
        record = _record(questioning={"researchEvidence": "primary"})
        payload = CurrentShapeAnalysis(perplexity={"researchEvidence": ["secondary"]})
        block = resolver.resolve_topic(TopicKeys.QUESTIONING, record, payload)
        assert block.content["researchEvidence"] == "primary"
        assert block.annotations["researchEvidence"] == ("secondary",)
        assert block.flatten()["researchEvidence"] == "primary"

    def test_every_provider_topic_has_two_supplements(self) -> None:
        for topic in TopicKeys.PROVIDER_TOPICS:
            providers = [s.provider for s in SUPPLEMENTARY_SOURCES[topic]]
            assert providers == ["claude", "perplexity"]


class TestResolveId:
    def test_numeric_id_stringified(self) -> None:
        assert FieldMergeResolver.resolve_id(_record(id=42)) == "42"

    def test_missing_id(self) -> None:
        assert FieldMergeResolver.resolve_id(_record()) is None
