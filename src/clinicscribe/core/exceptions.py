"""
Exception handling for Clinic Scribe infrastructure.

Domain errors of the dictation flow live in ``clinicscribe.domain.errors``;
this module covers configuration and outbound service failures raised by
adapters.
"""

from typing import Any, Dict, Optional


class ClinicScribeException(Exception):
    """Base exception class for Clinic Scribe infrastructure."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ClinicScribeException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class ExternalServiceError(ClinicScribeException):
    """Raised when there's an external service error."""

    def __init__(
        self, service: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.service = service
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "EXTERNAL_SERVICE_ERROR", details)


class RecordsApiError(ExternalServiceError):
    """Raised when the clinic records API rejects or fails a request."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("Records API", message, details)
