"""
Input validation and sanitization utilities.
Provides checks applied to feedback ids and to candidate upload files.
"""

from typing import Iterable

from shared_utils.error_handler import ValidationError


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Stripped string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty")

        return value.strip()

    @staticmethod
    def validate_feedback_id(value: str) -> str:
        """Feedback ids are backend row ids: digits only."""
        value = InputValidator.validate_non_empty_string(value, "feedback_id")
        if not value.isdigit():
            raise ValidationError("feedback_id must be numeric", context={"feedback_id": value})
        return value

    @staticmethod
    def validate_media_type(content_type: str, allowed_types: Iterable[str]) -> str:
        """Validate a MIME type against the allowed upload set.

        Args:
            content_type: MIME type reported for the file
            allowed_types: Accepted MIME types

        Returns:
            Normalised (lower-cased, parameter-free) MIME type

        Raises:
            ValidationError: If the type is not accepted
        """
        normalised = (content_type or "").split(";", 1)[0].strip().lower()
        if normalised not in set(allowed_types):
            raise ValidationError(
                "Invalid file type",
                context={"content_type": content_type},
            )
        return normalised

    @staticmethod
    def validate_file_size(size_bytes: int, max_bytes: int) -> int:
        """Validate a file size against the per-file limit.

        Raises:
            ValidationError: If the size is negative or above the limit
        """
        if size_bytes < 0:
            raise ValidationError("File size cannot be negative", context={"size_bytes": size_bytes})
        if size_bytes > max_bytes:
            raise ValidationError(
                f"File size exceeds {InputValidator.format_size(max_bytes)} limit",
                context={"size_bytes": size_bytes, "max_bytes": max_bytes},
            )
        return size_bytes

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """Human readable size (KB below 1 MB, MB below 1 GB, else GB)."""
        if size_bytes < 1024 * 1024:
            return f"{size_bytes / 1024:.1f} KB"
        if size_bytes < 1024 * 1024 * 1024:
            return f"{size_bytes / (1024 * 1024):.1f} MB"
        gib = size_bytes / (1024 * 1024 * 1024)
        return f"{gib:g}GB" if gib.is_integer() else f"{gib:.1f}GB"
