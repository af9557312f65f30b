from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict, ValidationError as PydanticValidationError
from functools import lru_cache

from shared_utils.constants import Defaults, Environment, LogScope, UploadLimits
from shared_utils.error_handler import ConfigurationError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.CONFIG)


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2) .env file > 3) Class defaults
    """
    # Application metadata
    app_name: str = "Coaching Feedback Engine"  # Configurable via APP_NAME env var
    app_version: str = "1.0.0"
    app_description: str = "Multi-provider coaching feedback normalization and batch upload"
    api_version: str = "v1"

    # Backend collaborator
    backend_base_url: str = Defaults.BACKEND_BASE_URL
    request_timeout_seconds: float = Defaults.REQUEST_TIMEOUT
    upload_timeout_seconds: float = Defaults.UPLOAD_TIMEOUT

    # Batch upload limits
    max_batch_files: int = UploadLimits.MAX_BATCH_FILES
    max_file_size_bytes: int = UploadLimits.MAX_FILE_SIZE_BYTES
    upload_chunk_size: int = Defaults.UPLOAD_CHUNK_SIZE

    # Payload-parser diagnostics go to structlog when enabled
    diagnostics_enabled: bool = True

    # Environment
    environment: str = Environment.DEVELOPMENT.value

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = {e.value for e in Environment}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return v.lower()

    @field_validator('backend_base_url')
    @classmethod
    def validate_backend_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL; trailing slash is dropped."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"backend_base_url must start with http:// or https://, got {v}")
        return v.rstrip("/")

    @field_validator('max_batch_files', 'max_file_size_bytes', 'upload_chunk_size')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Limits must be positive."""
        if v < 1:
            raise ValueError(f"value must be >= 1, got {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If settings are invalid
    """
    try:
        settings = Settings()
    except PydanticValidationError as exc:
        fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
        logger.error("configuration_invalid", fields=fields)
        raise ConfigurationError(
            f"Invalid configuration: {', '.join(fields)}",
            context={"fields": fields},
        ) from exc

    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        backend_base_url=settings.backend_base_url,
        max_batch_files=settings.max_batch_files,
        max_file_size_bytes=settings.max_file_size_bytes,
        diagnostics_enabled=settings.diagnostics_enabled,
    )

    return settings
