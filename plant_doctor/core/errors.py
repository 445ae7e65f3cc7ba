from __future__ import annotations

from typing import Optional


# -----------------------------
# Base
# -----------------------------

class PlantDoctorError(Exception):
    """
    Base class for every failure the analysis flow can surface.

    `code` is stable and machine-readable (used in HTTP payloads and metrics).
    `user_message` is what the presentation layer shows verbatim.
    """
    code: str = "plant_doctor_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        return self.message


# -----------------------------
# Upload validation
# -----------------------------

class ValidationError(PlantDoctorError):
    """The selected file does not satisfy the upload policy."""
    code = "validation_error"


class UnsupportedFormatError(ValidationError):
    code = "unsupported_format"

    def __init__(self, mime_type: Optional[str], message: str = "Please select a JPEG, PNG, or WebP image file"):
        super().__init__(message)
        self.mime_type = mime_type


class FileTooLargeError(ValidationError):
    code = "file_too_large"

    def __init__(self, size: int, limit: int, message: Optional[str] = None):
        super().__init__(message or f"File size must be less than {limit // (1024 * 1024)}MB")
        self.size = size
        self.limit = limit


# -----------------------------
# Analysis pipeline
# -----------------------------

class ReadError(PlantDoctorError):
    """Reading the file bytes for encoding failed."""
    code = "read_error"


class RemoteCallError(PlantDoctorError):
    """
    The remote diagnosis call failed:
    - network failure / timeout
    - auth or permission errors
    - service-side errors (throttling, model not found, ...)
    """
    code = "remote_call_failed"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    @property
    def user_message(self) -> str:
        return f"{self.message}. Check your AWS credentials and Bedrock model configuration."


class ParseError(PlantDoctorError):
    """The model replied, but the reply holds no extractable diagnosis."""
    code = "parse_error"

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


# -----------------------------
# Session lifecycle
# -----------------------------

class SessionBusyError(PlantDoctorError):
    code = "session_busy"

    def __init__(self, message: str = "An analysis is already running; wait for it to finish"):
        super().__init__(message)


class NoImageSelectedError(PlantDoctorError):
    code = "no_image_selected"

    def __init__(self, message: str = "Select an image before starting the analysis"):
        super().__init__(message)


class InvalidTransitionError(PlantDoctorError):
    code = "invalid_transition"


class SessionNotFoundError(PlantDoctorError):
    code = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id
