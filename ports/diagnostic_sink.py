"""
Port interface for parser diagnostics.

Implementations: StructlogDiagnosticSink, NullDiagnosticSink (adapters/)
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DiagnosticSinkPort(Protocol):
    """Receives non-fatal findings about malformed provider payloads."""

    def record(self, event: str, **context: Any) -> None:
        """Record one diagnostic.

        Args:
            event: snake_case event name (e.g. ``multi_ai_json_invalid``).
            **context: Structured details (error text, offending key, ...).

        Must return promptly; callers never wait on or handle sink failures.
        """
        ...
