"""
Shared fixtures and in-memory fakes of the dictation ports.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import pytest

from clinicscribe.application.ports.repositories.transcript_repo import TranscriptRepository
from clinicscribe.application.ports.services.audio_capture import (
    AudioCapture,
    AudioConstraints,
    AudioStream,
    AudioTrack,
)
from clinicscribe.application.ports.services.note_generation_service import NoteGenerationService
from clinicscribe.application.ports.services.recognition_engine import (
    EngineOptions,
    EngineSignal,
    RecognitionEngine,
    RecognitionEngineFactory,
    SignalHandler,
)
from clinicscribe.core.config import reset_settings
from clinicscribe.domain.entities.note import GeneratedNote
from clinicscribe.domain.entities.transcript import TranscriptEntry
from clinicscribe.domain.errors import NoteGenerationFailedError
from clinicscribe.domain.value_objects.consultation_id import ConsultationId


# -----------------------------------------------------------------------------
# Audio capture
# -----------------------------------------------------------------------------


class FakeTrack(AudioTrack):
    def __init__(self, track_id: str):
        self._track_id = track_id
        self.stopped = False

    @property
    def track_id(self) -> str:
        return self._track_id

    def stop(self) -> None:
        self.stopped = True


class FakeStream(AudioStream):
    def __init__(self, track_count: int = 1):
        self._tracks = [FakeTrack(f"track-{i}") for i in range(track_count)]
        self.closed = False

    @property
    def tracks(self) -> List[AudioTrack]:
        return list(self._tracks)

    @property
    def mime_type(self) -> str:
        return "audio/webm"

    async def close(self) -> None:
        self.closed = True


class FakeAudioCapture(AudioCapture):
    """Grants the microphone immediately unless gated or told to fail."""

    def __init__(self, supported: bool = True, error: Optional[Exception] = None):
        self.supported = supported
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls = 0
        self.cancelled = 0
        self.constraints: List[AudioConstraints] = []
        self.streams: List[FakeStream] = []

    def is_supported(self) -> bool:
        return self.supported

    async def acquire(self, constraints: AudioConstraints) -> AudioStream:
        self.calls += 1
        self.constraints.append(constraints)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    def cancel(self) -> None:
        self.cancelled += 1


# -----------------------------------------------------------------------------
# Recognition engine
# -----------------------------------------------------------------------------


class FakeEngine(RecognitionEngine):
    def __init__(self, options: EngineOptions, start_error: Optional[Exception] = None):
        self.options = options
        self.start_error = start_error
        self.handler: Optional[SignalHandler] = None
        self.handlers: List[SignalHandler] = []
        self.start_calls = 0
        self.stop_calls = 0
        self.running = False

    async def start(self, handler: SignalHandler) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.handler = handler
        self.handlers.append(handler)
        self.running = True

    async def stop(self) -> None:
        self.stop_calls += 1
        self.running = False

    async def emit(self, signal: EngineSignal) -> None:
        assert self.handler is not None
        await self.handler(signal)


class FakeEngineFactory(RecognitionEngineFactory):
    def __init__(self, supported: bool = True):
        self.supported = supported
        self.start_error: Optional[Exception] = None
        self.engines: List[FakeEngine] = []

    def is_supported(self) -> bool:
        return self.supported

    def create(self, options: EngineOptions) -> FakeEngine:
        engine = FakeEngine(options, start_error=self.start_error)
        self.engines.append(engine)
        return engine

    @property
    def engine(self) -> FakeEngine:
        return self.engines[-1]


# -----------------------------------------------------------------------------
# Persistence and note generation
# -----------------------------------------------------------------------------


@dataclass
class SaveCall:
    consultation_id: ConsultationId
    entries: Sequence[TranscriptEntry]
    bearer_token: Optional[str]


class RecordingRepository(TranscriptRepository):
    def __init__(self):
        self.calls: List[SaveCall] = []

    async def save_entries(self, consultation_id, entries, bearer_token=None) -> None:
        self.calls.append(SaveCall(consultation_id, tuple(entries), bearer_token))


class FailingRepository(TranscriptRepository):
    async def save_entries(self, consultation_id, entries, bearer_token=None) -> None:
        raise ConnectionError("records API unreachable")


SAMPLE_NOTES: Dict[str, Any] = {
    "chiefComplaint": "Headache for three days",
    "historyOfPresentIllness": "Frontal headache, worse in the evening",
    "clinicalFindings": "Afebrile",
    "assessment": "Tension-type headache",
    "plan": "Hydration and rest",
    "medications": ["Paracetamol 500 mg"],
    "followUp": "One week",
}


@dataclass
class FakeNoteService(NoteGenerationService):
    error: Optional[Exception] = None
    gate: Optional[asyncio.Event] = None
    calls: List[Dict[str, Any]] = field(default_factory=list)

    async def generate_notes(
        self, consultation_id, transcription, patient_id, language, bearer_token=None
    ) -> GeneratedNote:
        self.calls.append(
            {
                "consultation_id": consultation_id,
                "transcription": transcription,
                "patient_id": patient_id,
                "language": language,
                "bearer_token": bearer_token,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return GeneratedNote.from_payload(SAMPLE_NOTES)


class SteppingClock:
    """UTC clock advancing by ``step`` seconds per call; ``step`` may be negative."""

    def __init__(self, step: float = 1.0):
        self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
        self.step = timedelta(seconds=step)

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        return value


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Fresh settings per test, with no outbound services configured."""
    for name in ("NOTES_API_BASE_URL", "RECORDS_API_BASE_URL", "DICTATION_CONFIDENCE_THRESHOLD"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_ENV", "testing")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def consultation_id() -> ConsultationId:
    return ConsultationId("consult-42")


@pytest.fixture
def audio_capture() -> FakeAudioCapture:
    return FakeAudioCapture()


@pytest.fixture
def engine_factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def note_service() -> FakeNoteService:
    return FakeNoteService()


@pytest.fixture
def client(note_service):
    """Test client with the outbound services replaced by fakes."""
    from fastapi.testclient import TestClient

    from clinicscribe.api.deps import get_note_service, get_transcript_repository
    from clinicscribe.app import create_app

    app = create_app()
    app.dependency_overrides[get_note_service] = lambda: note_service
    app.dependency_overrides[get_transcript_repository] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
