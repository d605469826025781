"""Transcript domain entities: recognition events and finalized entries."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable

from ..enums.dictation import Speaker


@dataclass(frozen=True)
class RecognitionEvent:
    """Interim or final result produced by the speech engine."""

    text: str
    is_final: bool
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {self.confidence}")


def _new_entry_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TranscriptEntry:
    """One finalized, speaker-tagged utterance. Immutable once created."""

    speaker: Speaker
    text: str
    confidence: float
    timestamp: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=_new_entry_id)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form sent to the records API and the relay client."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "speaker": self.speaker.value,
            "text": self.text,
            "confidence": self.confidence,
        }

    def to_line(self) -> str:
        return f"[{self.speaker.label}]: {self.text}"


def format_transcript(entries: Iterable[TranscriptEntry]) -> str:
    """Serialize entries as ``[SPEAKER]: text`` lines, one per entry."""
    return "\n".join(entry.to_line() for entry in entries)
