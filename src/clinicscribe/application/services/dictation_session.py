"""
Dictation session: one consultation's capture controller, transcript
aggregator and note generation wired together.
"""

import logging
from typing import Optional

from ...core.config import DictationSettings
from ...domain.entities.note import GeneratedNote
from ...domain.entities.transcript import RecognitionEvent
from ...domain.enums.dictation import CaptureState, Speaker
from ...domain.errors import DictationError, PersistenceWarning
from ...domain.value_objects.consultation_id import ConsultationId
from ..ports.repositories.transcript_repo import TranscriptRepository
from ..ports.services.audio_capture import AudioCapture, AudioConstraints
from ..ports.services.note_generation_service import NoteGenerationService
from ..ports.services.recognition_engine import RecognitionEngineFactory
from ..use_cases.generate_clinical_note import GenerateClinicalNoteUseCase
from .capture_controller import CaptureController
from .transcript_aggregator import Snapshot, TranscriptAggregator

logger = logging.getLogger("clinicscribe.session")


class DictationListener:
    """Receives session updates. Override the hooks you need."""

    def on_state(self, state: CaptureState) -> None:
        pass

    def on_preview(self, text: str) -> None:
        pass

    def on_transcript(self, entries: Snapshot, text: str) -> None:
        pass

    def on_warning(self, warning: PersistenceWarning) -> None:
        pass

    def on_error(self, error: DictationError) -> None:
        pass


class DictationSession:
    """
    Owns the dictation state of one consultation.

    The engine handle and the audio stream belong to the session's
    controller; nothing here is shared between sessions.
    """

    def __init__(
        self,
        consultation_id: ConsultationId,
        patient_id: str,
        settings: DictationSettings,
        audio_capture: AudioCapture,
        engine_factory: RecognitionEngineFactory,
        note_service: NoteGenerationService,
        repository: Optional[TranscriptRepository] = None,
        listener: Optional[DictationListener] = None,
        language: Optional[str] = None,
        bearer_token: Optional[str] = None,
    ) -> None:
        self.consultation_id = consultation_id
        self.patient_id = patient_id
        self._listener = listener or DictationListener()
        self._bearer_token = bearer_token
        self._language = language or settings.language

        self.aggregator = TranscriptAggregator(
            consultation_id,
            repository=repository,
            confidence_threshold=settings.confidence_threshold,
            speaker=Speaker(settings.default_speaker),
            on_update=self._on_update,
            on_preview=self._listener.on_preview,
            on_warning=self._listener.on_warning,
            bearer_token=bearer_token,
        )
        self.controller = CaptureController(
            audio_capture,
            engine_factory,
            language=self._language,
            continuous=settings.continuous,
            constraints=AudioConstraints(
                echo_cancellation=settings.echo_cancellation,
                noise_suppression=settings.noise_suppression,
                auto_gain_control=settings.auto_gain_control,
            ),
            on_state_change=self._listener.on_state,
            on_result=self._on_result,
            on_error=self._listener.on_error,
            session_label=str(consultation_id),
        )
        self._notes = GenerateClinicalNoteUseCase(note_service)

    @property
    def language(self) -> str:
        return self._language

    @property
    def state(self) -> CaptureState:
        return self.controller.state

    def set_language(self, language: str) -> None:
        self._language = language
        self.controller.set_language(language)

    async def start(self) -> None:
        await self.controller.start()

    async def stop(self) -> None:
        await self.controller.stop()

    def set_speaker(self, speaker: Speaker) -> None:
        self.aggregator.set_speaker(speaker)

    def reset(self) -> None:
        self.aggregator.reset()

    async def generate_notes(self) -> Optional[GeneratedNote]:
        return await self._notes.execute(
            self.aggregator,
            patient_id=self.patient_id,
            language=self._language,
            bearer_token=self._bearer_token,
        )

    async def close(self) -> None:
        """Release capture resources and wait for pending auto-saves."""
        await self.controller.dispose()
        await self.aggregator.flush()
        logger.info(f"Dictation session closed for consultation {self.consultation_id}")

    def _on_result(self, event: RecognitionEvent) -> None:
        self.aggregator.ingest(event)

    def _on_update(self, snapshot: Snapshot) -> None:
        self._listener.on_transcript(snapshot, self.aggregator.transcript_text())
