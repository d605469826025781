"""
Dictation schemas: HTTP request/response bodies and relay socket messages.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ...domain.enums.dictation import Speaker


class CamelModel(BaseModel):
    """Accepts camelCase from clients and snake_case from Python callers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ============================================================================
# HTTP
# ============================================================================


class LanguageOption(CamelModel):
    code: str = Field(..., description="Dictation language code")
    name: str = Field(..., description="English name")
    native_name: str = Field(..., description="Name in the language itself")
    locale: str = Field(..., description="Speech engine locale")


class TranscriptEntryIn(CamelModel):
    """A transcript entry aggregated on the client."""

    speaker: Speaker
    text: str = Field(..., min_length=1, description="Finalized utterance")
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    timestamp: Optional[datetime] = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Entry text cannot be blank")
        return v.strip()


class NotesGenerateRequest(CamelModel):
    consultation_id: str = Field(..., description="Consultation identifier")
    patient_id: str = Field(..., min_length=1, description="Patient identifier")
    language: str = Field("en", description="Dictation language code")
    entries: List[TranscriptEntryIn] = Field(default_factory=list)


class NoteResponse(CamelModel):
    consultation_id: str
    transcription: str
    notes: Dict[str, Any]


# ============================================================================
# RELAY SOCKET (client -> server)
# ============================================================================


class ClientCapabilities(CamelModel):
    speech_recognition: bool = False
    audio_capture: bool = False


class HelloMessage(CamelModel):
    type: Literal["hello"] = "hello"
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    mime_types: List[str] = Field(default_factory=list)
    token: Optional[str] = None


class SpeakerMessage(CamelModel):
    type: Literal["speaker"] = "speaker"
    speaker: Speaker


class EngineResultMessage(CamelModel):
    type: Literal["engine.result"] = "engine.result"
    text: str = ""
    is_final: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class EngineErrorMessage(CamelModel):
    type: Literal["engine.error"] = "engine.error"
    error: str = "unknown"


class AudioGrantedMessage(CamelModel):
    type: Literal["audio.granted"] = "audio.granted"
    tracks: List[str] = Field(default_factory=list)


class AudioDeniedMessage(CamelModel):
    type: Literal["audio.denied"] = "audio.denied"
    reason: str = ""


# Messages with a body; the remaining commands carry only ``type``
CLIENT_MESSAGE_MODELS: Dict[str, Type[CamelModel]] = {
    "hello": HelloMessage,
    "speaker": SpeakerMessage,
    "engine.result": EngineResultMessage,
    "engine.error": EngineErrorMessage,
    "audio.granted": AudioGrantedMessage,
    "audio.denied": AudioDeniedMessage,
}

CLIENT_COMMANDS = frozenset(
    {"start", "stop", "reset", "generate_notes", "engine.started", "engine.ended"}
)
