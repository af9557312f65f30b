"""
Port interface for fetching raw feedback records from the backend.

Implementations: HttpFeedbackSourceAdapter (adapters/)
"""

from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class FeedbackSourcePort(Protocol):
    """Abstract interface for feedback-by-id lookups."""

    def get_feedback(self, feedback_id: str) -> Dict[str, Any]:
        """Return the decoded JSON feedback record.

        Args:
            feedback_id: Backend id of the analysed session.

        Returns:
            Raw record mapping (``multiAiAnalysis`` may be a string or object).

        Raises:
            FeedbackNotFoundError: If the backend has no such record.
            ExternalServiceError: If the backend cannot be reached.
        """
        ...
