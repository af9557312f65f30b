"""
HTTP feedback source adapter.

Implements FeedbackSourcePort against the coaching backend's
``GET /api/audios/{id}/feedback`` route using httpx.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from shared_utils.constants import BackendEndpoints, Defaults, LogScope
from shared_utils.error_handler import ExternalServiceError, FeedbackNotFoundError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class HttpFeedbackSourceAdapter:
    """Fetches raw feedback records from the backend."""

    def __init__(
        self,
        base_url: str,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def get_feedback(self, feedback_id: str) -> Dict[str, Any]:
        """GET the raw record; 404 becomes FeedbackNotFoundError."""
        path = BackendEndpoints.FEEDBACK.format(audio_id=feedback_id)
        try:
            resp = self._client.get(path)
        except httpx.RequestError as exc:
            logger.error("feedback_fetch_failed", feedback_id=feedback_id, error=str(exc))
            raise ExternalServiceError("Backend", f"Failed to fetch feedback: {exc}") from exc

        if resp.status_code == 404:
            logger.info("feedback_not_found", feedback_id=feedback_id)
            raise FeedbackNotFoundError(feedback_id)

        if resp.status_code != 200:
            logger.error(
                "feedback_fetch_rejected",
                feedback_id=feedback_id,
                status=resp.status_code,
            )
            raise ExternalServiceError(
                "Backend",
                f"Unexpected status {resp.status_code}",
                context={"feedback_id": feedback_id, "status_code": resp.status_code},
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ExternalServiceError(
                "Backend", "Feedback response is not JSON", context={"feedback_id": feedback_id}
            ) from exc

        if not isinstance(data, dict):
            raise ExternalServiceError(
                "Backend", "Feedback response is not an object", context={"feedback_id": feedback_id}
            )

        logger.debug("feedback_fetched", feedback_id=feedback_id, keys=len(data))
        return data

    def close(self) -> None:
        self._client.close()
