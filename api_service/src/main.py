"""
FastAPI surface for the Coaching Feedback Engine.

Endpoints:
    GET  /health                          Health check
    GET  /api/v1/feedback/{feedback_id}   Fetch a record from the backend and normalize it
    POST /api/v1/feedback/normalize       Normalize a raw record supplied in the body

Views are serialized with camelCase keys, the shape the dashboard renders.
"""

from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import uvicorn

from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger
from shared_utils.constants import LogScope, APIEndpoints
from shared_utils.error_handler import AppException, ValidationError, handle_error
from shared_utils.di_container import get_di_container


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

logger.info(
    "api_initialized",
    environment=settings.environment,
    backend_base_url=settings.backend_base_url,
)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": settings.app_version,
    }


# ======================================================================
# Feedback endpoints
# ======================================================================

@app.get(APIEndpoints.FEEDBACK)
@limiter.limit("60/minute")
async def get_feedback(request: Request, feedback_id: str) -> JSONResponse:
    """Fetch one feedback record and return its normalized view.

    404 when the backend has no such record, 503 when it is unreachable.
    """
    try:
        container = get_di_container()
        feedback_svc = container.get_feedback_service()
        view = feedback_svc.get_normalized_feedback(feedback_id)
        return JSONResponse(content=view.model_dump(by_alias=True, mode="json"))

    except AppException as e:
        logger.warning("feedback_error", feedback_id=feedback_id, error_code=e.error_code)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    except Exception as e:
        error_response = handle_error(e, scope=LogScope.API)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )


@app.post(APIEndpoints.NORMALIZE)
@limiter.limit("60/minute")
async def normalize_feedback(
    request: Request, body: Optional[Dict[str, Any]] = Body(None)
) -> JSONResponse:
    """Normalize an already-fetched raw feedback record.

    Body JSON: the record exactly as ``GET /api/audios/{id}/feedback`` returns it.
    An empty object is a valid record and yields the default view.
    """
    try:
        if body is None:
            raise ValidationError("Feedback record is required")

        container = get_di_container()
        feedback_svc = container.get_feedback_service()
        view = feedback_svc.normalize(body)
        return JSONResponse(content=view.model_dump(by_alias=True, mode="json"))

    except AppException as e:
        logger.warning("normalize_error", error_code=e.error_code)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    except Exception as e:
        error_response = handle_error(e, scope=LogScope.API)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
