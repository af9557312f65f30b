"""
Multi-AI payload parsing.
Decodes the ``multiAiAnalysis`` value of a feedback record into one tagged
ParsedProviderPayload variant. Parsing never raises.
"""

import copy
import json
from typing import Any, Dict, Mapping, Optional

from domain.models import (
    CurrentShapeAnalysis,
    LegacyShapeAnalysis,
    NoAnalysis,
    ParsedProviderPayload,
    Unparseable,
)
from ports.diagnostic_sink import DiagnosticSinkPort


class ProviderPayloadParser:
    """Parser for the current and legacy multi-AI payload layouts.

    Current layout (three providers plus synthesis):
        {"openaiAnalysis": {...}, "claudeAnalysis": {...},
         "perplexityAnalysis": {...}, "synthesizedInsights": {...}}

    Legacy layout:
        {"openai": {...}}

    Anything else, including malformed JSON, is ``Unparseable``.
    """

    CURRENT_KEY = "openaiAnalysis"
    LEGACY_KEY = "openai"

    def __init__(self, sink: Optional[DiagnosticSinkPort] = None) -> None:
        self._sink = sink

    def parse(self, value: Any) -> ParsedProviderPayload:
        """Classify and extract a raw ``multiAiAnalysis`` value.

        Args:
            value: None, a JSON string, or an already-decoded mapping

        Returns:
            NoAnalysis, CurrentShapeAnalysis, LegacyShapeAnalysis or Unparseable
        """
        if value is None:
            return NoAnalysis()

        if isinstance(value, (str, bytes, bytearray)):
            try:
                value = json.loads(value)
            except (ValueError, UnicodeDecodeError, RecursionError) as exc:
                self._report("multi_ai_json_invalid", error=str(exc))
                return Unparseable(reason=f"invalid JSON: {exc}")

        if not isinstance(value, Mapping):
            self._report("multi_ai_not_an_object", value_type=type(value).__name__)
            return Unparseable(reason=f"expected an object, got {type(value).__name__}")

        if self.CURRENT_KEY in value:
            return self._parse_current(value)

        if self.LEGACY_KEY in value:
            return LegacyShapeAnalysis(openai=self._block(value, self.LEGACY_KEY))

        self._report("multi_ai_shape_unknown", keys=sorted(str(k) for k in value.keys()))
        return Unparseable(reason="no openaiAnalysis or openai key")

    def _parse_current(self, payload: Mapping) -> CurrentShapeAnalysis:
        openai_analysis = payload.get(self.CURRENT_KEY)
        if openai_analysis is not None and not isinstance(openai_analysis, Mapping):
            self._report("multi_ai_block_malformed", block=self.CURRENT_KEY)
            openai_analysis = None
        openai_analysis = openai_analysis or {}

        detailed = openai_analysis.get("detailed")
        if isinstance(detailed, Mapping):
            effective_openai = copy.deepcopy(dict(detailed))
        else:
            if detailed is not None:
                self._report("multi_ai_block_malformed", block="openaiAnalysis.detailed")
            effective_openai = copy.deepcopy(dict(openai_analysis))

        return CurrentShapeAnalysis(
            openai=effective_openai,
            claude=self._block(payload, "claudeAnalysis"),
            perplexity=self._block(payload, "perplexityAnalysis"),
            synthesized=self._block(payload, "synthesizedInsights"),
            openai_overall_score=copy.deepcopy(openai_analysis.get("overallScore")),
        )

    def _block(self, payload: Mapping, key: str) -> Dict[str, Any]:
        """Deep copy of a sub-object; absent or malformed becomes {}."""
        block = payload.get(key)
        if block is None:
            return {}
        if not isinstance(block, Mapping):
            self._report("multi_ai_block_malformed", block=key)
            return {}
        return copy.deepcopy(dict(block))

    def _report(self, event: str, **context: Any) -> None:
        if self._sink is None:
            return
        try:
            self._sink.record(event, **context)
        except Exception:
            # Diagnostics are best-effort; a broken sink must not break parsing.
            pass


def parse_provider_payload(
    value: Any, sink: Optional[DiagnosticSinkPort] = None
) -> ParsedProviderPayload:
    """Functional shortcut for ``ProviderPayloadParser(sink).parse(value)``."""
    return ProviderPayloadParser(sink).parse(value)
