"""
Domain error types for the dictation flow.

Every error carries a human-readable ``message`` suitable for direct display,
a stable ``error_code`` and optional ``details``.
"""

from typing import Any, Dict, Optional


class DictationError(Exception):
    """Base dictation error."""

    retryable: bool = False

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


class UnsupportedCapabilityError(DictationError):
    """Host lacks speech recognition or audio capture support."""

    def __init__(self, missing: str) -> None:
        message = f"Voice recording not supported: {missing} is unavailable on this device"
        super().__init__(message, "UNSUPPORTED_CAPABILITY", {"missing": missing})


class AcquisitionFailedError(DictationError):
    """Microphone permission denied or device error while starting."""

    retryable = True

    def __init__(self, cause: str) -> None:
        message = f"Could not start recording: {cause}"
        super().__init__(message, "ACQUISITION_FAILED", {"cause": cause})


class EngineError(DictationError):
    """Recognition engine reported a runtime error mid-session."""

    retryable = True

    def __init__(self, error: str) -> None:
        message = f"Speech recognition error: {error}"
        super().__init__(message, "ENGINE_ERROR", {"error": error})


class EmptyTranscriptError(DictationError):
    """Note generation requested without any transcript entries."""

    def __init__(self) -> None:
        message = "No transcription available. Please record some conversation before generating notes."
        super().__init__(message, "EMPTY_TRANSCRIPT")


class NoteGenerationFailedError(DictationError):
    """Note-generation service failed or returned a non-success status."""

    retryable = True

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        details = {"status": status} if status is not None else {}
        super().__init__(message, "NOTE_GENERATION_FAILED", details)


class PersistenceWarning(DictationError):
    """Transcript auto-save failed; aggregation continues."""

    retryable = True

    def __init__(self, consultation_id: str, cause: str) -> None:
        message = f"Transcription could not be saved to the patient record: {cause}"
        super().__init__(
            message,
            "PERSISTENCE_WARNING",
            {"consultation_id": consultation_id, "cause": cause},
        )
