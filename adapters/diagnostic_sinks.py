"""
Diagnostic sink adapters.

Implement DiagnosticSinkPort. The structlog sink is used in every deployed
environment; the null sink silences parser diagnostics (e.g. bulk re-normalisation).
"""

from __future__ import annotations

from typing import Any

from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


class StructlogDiagnosticSink:
    """Forwards payload diagnostics to structlog at WARNING level."""

    def __init__(self, scope: str = LogScope.PARSER) -> None:
        self._logger = get_scoped_logger(scope)

    def record(self, event: str, **context: Any) -> None:
        self._logger.warning(event, **context)


class NullDiagnosticSink:
    """Discards every diagnostic."""

    def record(self, event: str, **context: Any) -> None:
        return None
