"""
Constants management.
Centralized configuration for all magic values, limits, endpoints and defaults.
"""

from enum import Enum
from typing import Dict, Final, FrozenSet


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


# Default values
class Defaults:
    """Defaults for all configurations."""
    REQUEST_TIMEOUT: Final[float] = 30.0
    UPLOAD_TIMEOUT: Final[float] = 3600.0  # large coaching videos take a while
    UPLOAD_CHUNK_SIZE: Final[int] = 1024 * 1024
    BACKEND_BASE_URL: Final[str] = "http://localhost:5000"


# Upload limits
class UploadLimits:
    """Batch upload bounds enforced at selection time."""
    MAX_BATCH_FILES: Final[int] = 10
    MAX_FILE_SIZE_BYTES: Final[int] = 6 * 1024 * 1024 * 1024  # 6 GiB
    # Per-file progress is held below 100 until the backend responds.
    MAX_IN_FLIGHT_PROGRESS: Final[int] = 99


ALLOWED_MEDIA_TYPES: Final[FrozenSet[str]] = frozenset({
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/ogg",
    "audio/m4a",
    "audio/x-m4a",
    "audio/aac",
    "audio/flac",
    "audio/webm",
    "video/mp4",
    "video/mpeg",
    "video/quicktime",
    "video/x-msvideo",
    "video/webm",
    "video/x-ms-wmv",
    "video/3gpp",
    "video/x-flv",
})


# Extension lookup used when a file comes from disk instead of a browser.
EXTENSION_MEDIA_TYPES: Final[Dict[str, str]] = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/x-m4a",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "weba": "audio/webm",
    "mp4": "video/mp4",
    "mpeg": "video/mpeg",
    "mpg": "video/mpeg",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "webm": "video/webm",
    "wmv": "video/x-ms-wmv",
    "3gp": "video/3gpp",
    "flv": "video/x-flv",
}


# Topic blocks of a feedback record (camelCase wire key -> view attribute)
class TopicKeys:
    """Structured feedback sections."""
    KEY_INFO: Final[str] = "keyInfo"
    QUESTIONING: Final[str] = "questioning"
    LANGUAGE: Final[str] = "language"
    COACH_BEHAVIOURS: Final[str] = "coachBehaviours"
    PLAYER_ENGAGEMENT: Final[str] = "playerEngagement"
    INTENDED_OUTCOMES: Final[str] = "intendedOutcomes"
    VISUAL_ANALYSIS: Final[str] = "visualAnalysis"

    # Sections enriched by the primary provider.
    PROVIDER_TOPICS: Final[tuple] = (
        KEY_INFO,
        QUESTIONING,
        LANGUAGE,
        COACH_BEHAVIOURS,
        PLAYER_ENGAGEMENT,
        INTENDED_OUTCOMES,
    )
    # Sections that only ever come from the base record.
    BASE_ONLY_TOPICS: Final[tuple] = (VISUAL_ANALYSIS,)


class ScoreKeys:
    """Numeric score fields of a feedback record."""
    OVERALL: Final[str] = "overallScore"
    COMMUNICATION: Final[str] = "communicationScore"
    ENGAGEMENT: Final[str] = "engagementScore"
    INSTRUCTION: Final[str] = "instructionScore"


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    PARSER = "payload_parser"
    FEEDBACK_ENGINE = "feedback_engine"
    FEEDBACK_SERVICE = "feedback_service"
    BATCH_UPLOAD = "batch_upload"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    WORKER = "worker"
    ADAPTER = "adapter"


# Backend collaborator routes
class BackendEndpoints:
    """Routes of the coaching backend consumed by the adapters."""
    FEEDBACK = "/api/audios/{audio_id}/feedback"
    UPLOAD = "/api/audios/upload"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    FEEDBACK = "/api/v1/feedback/{feedback_id}"
    NORMALIZE = "/api/v1/feedback/normalize"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_INPUT = "INVALID_INPUT"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    FEEDBACK_NOT_FOUND = "FEEDBACK_NOT_FOUND"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    INVALID_BATCH_STATE = "INVALID_BATCH_STATE"
