"""
Field merge resolution.

Each output field is resolved independently with a fixed precedence:

    1. primary provider block (current ``openaiAnalysis`` or legacy ``openai``)
    2. the base record
    3. a default (0 for scores, "" for text, {} for topic blocks)

A value is "present" when it is not None; 0 and "" are present. Claude and
Perplexity material never enters a block's primary content, it is attached
under dedicated annotation keys.
"""

import copy
import math
from typing import Any, Dict, Iterable, NamedTuple, Optional

from domain.models import (
    CurrentShapeAnalysis,
    LegacyShapeAnalysis,
    ParsedProviderPayload,
    RawFeedbackRecord,
    TopicBlock,
)
from feedback_engine.engine.coercion import coerce_text, decode_json_object
from ports.diagnostic_sink import DiagnosticSinkPort
from shared_utils.constants import ScoreKeys, TopicKeys


class Supplement(NamedTuple):
    """One supplementary annotation attached to a topic block."""
    annotation_key: str
    provider: str  # "claude" or "perplexity"
    source_key: str
    default: Any


SUPPLEMENTARY_SOURCES: Dict[str, tuple] = {
    TopicKeys.KEY_INFO: (
        Supplement("claudeInsights", "claude", "pedagogicalInsights", []),
        Supplement("researchRecommendations", "perplexity", "bestPractices", []),
    ),
    TopicKeys.QUESTIONING: (
        Supplement("claudeQuestioningTheory", "claude", "pedagogicalInsights", None),
        Supplement("researchEvidence", "perplexity", "researchEvidence", []),
    ),
    TopicKeys.LANGUAGE: (
        Supplement("claudeLanguageInsights", "claude", "instructionalDesign", None),
        Supplement("communicationResearch", "perplexity", "researchEvidence", []),
    ),
    TopicKeys.COACH_BEHAVIOURS: (
        Supplement("claudeBehaviourAnalysis", "claude", "learningTheoryApplication", None),
        Supplement("behaviourResearch", "perplexity", "industryBenchmarks", []),
    ),
    TopicKeys.PLAYER_ENGAGEMENT: (
        Supplement("claudeEngagementTheory", "claude", "pedagogicalInsights", None),
        Supplement("engagementResearch", "perplexity", "bestPractices", []),
    ),
    TopicKeys.INTENDED_OUTCOMES: (
        Supplement("claudeOutcomeAnalysis", "claude", "instructionalDesign", None),
        Supplement("outcomeResearch", "perplexity", "researchEvidence", []),
    ),
}


def as_number(value: Any) -> Optional[float]:
    """Numeric view of a score, or None when the value is not a usable number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def first_number(candidates: Iterable[Any], default: float = 0) -> float:
    """First candidate that is present and numeric; malformed ones are skipped."""
    for candidate in candidates:
        number = as_number(candidate)
        if number is not None:
            return number
    return default


class FieldMergeResolver:
    """Resolves single fields of the normalized view.

    Holds no state besides the optional diagnostic sink. Malformed topic
    blocks are reported there and resolved as if absent.
    """

    def __init__(self, sink: Optional[DiagnosticSinkPort] = None) -> None:
        self._sink = sink

    def _report(self, event: str, **context: Any) -> None:
        if self._sink is None:
            return
        try:
            self._sink.record(event, **context)
        except Exception:
            # Diagnostics are best-effort; a broken sink must not break merging.
            pass

    def _decode_topic(self, value: Any, topic: str, source: str) -> Dict[str, Any]:
        decoded = decode_json_object(value)
        if decoded is None:
            if value is not None:
                self._report(
                    "topic_block_malformed",
                    topic=topic,
                    source=source,
                    value_type=type(value).__name__,
                )
            return {}
        return decoded

    @staticmethod
    def _primary_block(payload: ParsedProviderPayload) -> Dict[str, Any]:
        if isinstance(payload, (CurrentShapeAnalysis, LegacyShapeAnalysis)):
            return payload.openai
        return {}

    def resolve_overall_score(
        self, record: RawFeedbackRecord, payload: ParsedProviderPayload
    ) -> float:
        """synthesizedInsights -> openaiAnalysis -> (legacy) openai -> base -> 0."""
        candidates = []
        if isinstance(payload, CurrentShapeAnalysis):
            candidates.append(payload.synthesized.get(ScoreKeys.OVERALL))
            candidates.append(payload.openai_overall_score)
        elif isinstance(payload, LegacyShapeAnalysis):
            candidates.append(payload.openai.get(ScoreKeys.OVERALL))
        candidates.append(record.base_fields.get(ScoreKeys.OVERALL))
        return first_number(candidates)

    def resolve_score(
        self, key: str, record: RawFeedbackRecord, payload: ParsedProviderPayload
    ) -> float:
        """Secondary scores: primary provider block -> base -> 0."""
        return first_number([
            self._primary_block(payload).get(key),
            record.base_fields.get(key),
        ])

    def resolve_text(self, key: str, record: RawFeedbackRecord) -> str:
        return coerce_text(record.base_fields.get(key))

    def resolve_topic(
        self, topic: str, record: RawFeedbackRecord, payload: ParsedProviderPayload
    ) -> TopicBlock:
        """Merge base and primary-provider content key by key, then annotate.

        Primary keys override base keys unless their value is None. Malformed
        blocks on either side degrade to {} without affecting other topics.
        """
        content = self._decode_topic(record.base_fields.get(topic), topic, "base")

        if topic in TopicKeys.PROVIDER_TOPICS:
            primary = self._decode_topic(
                self._primary_block(payload).get(topic), topic, "primary"
            )
            for key, value in primary.items():
                if value is not None:
                    content[key] = value

        annotations: Dict[str, Any] = {}
        if isinstance(payload, CurrentShapeAnalysis):
            providers = {"claude": payload.claude, "perplexity": payload.perplexity}
            for supplement in SUPPLEMENTARY_SOURCES.get(topic, ()):
                value = providers[supplement.provider].get(supplement.source_key)
                annotations[supplement.annotation_key] = copy.deepcopy(
                    value if value is not None else supplement.default
                )

        return TopicBlock(content=content, annotations=annotations)

    @staticmethod
    def resolve_id(record: RawFeedbackRecord) -> Optional[str]:
        value = record.base_fields.get("id")
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value)
