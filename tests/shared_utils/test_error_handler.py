"""
Comprehensive tests for shared_utils.error_handler.

Covers every exception subclass, to_dict() serialisation, HTTP status codes,
log_exception(), and handle_error().
"""

from unittest.mock import MagicMock

import pytest

from shared_utils.constants import ErrorCode
from shared_utils.error_handler import (
    AppException,
    BatchStateError,
    ConfigurationError,
    ExternalServiceError,
    FeedbackNotFoundError,
    UploadError,
    ValidationError,
    handle_error,
    log_exception,
)


# ---------------------------------------------------------------------------
# AppException base
# ---------------------------------------------------------------------------


class TestAppException:
    def test_defaults(self) -> None:
        exc = AppException(error_code="TEST", message="boom")
        assert exc.error_code == "TEST"
        assert exc.message == "boom"
        assert exc.http_status == 500
        assert exc.context == {}
        assert str(exc) == "boom"

    def test_to_dict_structure(self) -> None:
        exc = AppException("CODE", "msg", context={"a": 1})
        assert exc.to_dict() == {"error": {"code": "CODE", "message": "msg", "context": {"a": 1}}}


# ---------------------------------------------------------------------------
# Subclasses
# ---------------------------------------------------------------------------


class TestSubclasses:
    @pytest.mark.parametrize(
        "exc, code, status",
        [
            (ValidationError("x"), ErrorCode.INVALID_INPUT, 400),
            (ConfigurationError("x"), ErrorCode.INVALID_CONFIG, 500),
            (ExternalServiceError("Backend", "x"), ErrorCode.EXTERNAL_SERVICE_ERROR, 503),
            (FeedbackNotFoundError("9"), ErrorCode.FEEDBACK_NOT_FOUND, 404),
            (UploadError("x"), ErrorCode.UPLOAD_FAILED, 502),
            (BatchStateError("x", "uploading"), ErrorCode.INVALID_BATCH_STATE, 409),
        ],
    )
    def test_code_and_status(self, exc, code, status) -> None:
        assert isinstance(exc, AppException)
        assert exc.error_code == code.value
        assert exc.http_status == status


class TestExternalServiceError:
    def test_message_includes_service(self) -> None:
        exc = ExternalServiceError("Backend", "timed out")
        assert exc.message == "Backend unavailable: timed out"

    def test_context_includes_service_key(self) -> None:
        exc = ExternalServiceError("Backend", "x", context={"feedback_id": "1"})
        assert exc.context == {"feedback_id": "1", "service": "Backend"}


class TestFeedbackNotFoundError:
    def test_message_and_context(self) -> None:
        exc = FeedbackNotFoundError("12")
        assert exc.message == "Feedback not found: 12"
        assert exc.context["feedback_id"] == "12"


class TestUploadError:
    def test_attributes_and_context(self) -> None:
        exc = UploadError("Invalid file type", filename="a.mp3", status_code=400)
        assert exc.filename == "a.mp3"
        assert exc.status_code == 400
        assert exc.context == {"filename": "a.mp3", "status_code": 400}

    def test_optional_fields_omitted(self) -> None:
        exc = UploadError("Connection failed")
        assert exc.filename is None
        assert exc.context == {}


class TestBatchStateError:
    def test_state_in_context(self) -> None:
        assert BatchStateError("busy", "uploading").context == {"state": "uploading"}


# ---------------------------------------------------------------------------
# log_exception
# ---------------------------------------------------------------------------


class TestLogException:
    def test_app_exception_uses_error_level(self) -> None:
        mock_logger = MagicMock()
        log_exception(ValidationError("oops"), logger=mock_logger)
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[0][0] == "app_exception"

    def test_generic_exception_uses_error_level(self) -> None:
        mock_logger = MagicMock()
        log_exception(RuntimeError("boom"), logger=mock_logger)
        assert mock_logger.error.call_args[0][0] == "unexpected_exception"

    def test_default_logger_does_not_raise(self) -> None:
        log_exception(ValidationError("x"))
        log_exception(RuntimeError("y"))


# ---------------------------------------------------------------------------
# handle_error
# ---------------------------------------------------------------------------


class TestHandleError:
    def test_app_exception_returns_to_dict(self) -> None:
        result = handle_error(UploadError("bad", filename="a.mp3"))
        assert result["error"]["code"] == ErrorCode.UPLOAD_FAILED.value
        assert result["error"]["context"]["filename"] == "a.mp3"

    def test_generic_exception_returns_structured_dict(self) -> None:
        result = handle_error(RuntimeError("unexpected"))
        err = result["error"]
        assert err["code"] == ErrorCode.EXTERNAL_SERVICE_ERROR.value
        assert "unexpected" in err["message"]
        assert err["context"]["error_type"] == "RuntimeError"

    def test_custom_default_error_code(self) -> None:
        result = handle_error(ValueError("bad"), default_error_code=ErrorCode.INVALID_INPUT.value)
        assert result["error"]["code"] == ErrorCode.INVALID_INPUT.value
