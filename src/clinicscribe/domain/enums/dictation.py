"""
Capture state and speaker enums for the dictation flow.
"""

from enum import Enum


class CaptureState(str, Enum):
    """Lifecycle states of a capture session."""
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"
    FAILED = "failed"


class Speaker(str, Enum):
    """Speaker tags, set by the operator (no diarization)."""
    DOCTOR = "doctor"
    PATIENT = "patient"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return None

    @property
    def label(self) -> str:
        """Uppercase label used in serialized transcripts."""
        return self.value.upper()


class EngineSignalKind(str, Enum):
    """Signals a recognition engine reports to its owner."""
    STARTED = "started"
    RESULT = "result"
    ENDED = "ended"
    ERROR = "error"
