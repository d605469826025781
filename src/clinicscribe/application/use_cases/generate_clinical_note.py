"""Generate clinical note use case for the AI medical scribe."""

import logging
from typing import Optional, Sequence

from ...domain.entities.note import GeneratedNote
from ...domain.entities.transcript import TranscriptEntry, format_transcript
from ...domain.errors import EmptyTranscriptError, NoteGenerationFailedError
from ...domain.value_objects.consultation_id import ConsultationId
from ..ports.services.note_generation_service import NoteGenerationService
from ..services.transcript_aggregator import TranscriptAggregator

logger = logging.getLogger("clinicscribe.notes")


class GenerateClinicalNoteUseCase:
    """Use case for turning a consultation transcript into a structured note."""

    def __init__(self, note_service: NoteGenerationService):
        self._note_service = note_service

    async def execute(
        self,
        aggregator: TranscriptAggregator,
        patient_id: str,
        language: str,
        bearer_token: Optional[str] = None,
    ) -> Optional[GeneratedNote]:
        """
        Generate a note from the aggregator's transcript and store it there.

        The transcript is only read. If it is reset while the request is in
        flight the result is discarded and ``None`` is returned.

        Raises:
            EmptyTranscriptError: no entries; nothing is sent
            NoteGenerationFailedError: the service call failed
        """
        session_id = aggregator.session_id
        note = await self.generate(
            aggregator.consultation_id,
            aggregator.entries,
            patient_id=patient_id,
            language=language,
            bearer_token=bearer_token,
        )
        if not aggregator.apply_note(note, session_id):
            return None
        return note

    async def generate(
        self,
        consultation_id: ConsultationId,
        entries: Sequence[TranscriptEntry],
        patient_id: str,
        language: str,
        bearer_token: Optional[str] = None,
    ) -> GeneratedNote:
        """Generate a note from an explicit entry list."""
        if not entries:
            raise EmptyTranscriptError()

        transcription = format_transcript(entries)
        logger.info(
            f"[GenerateNote] consultation={consultation_id} entries={len(entries)} "
            f"chars={len(transcription)} language={language}"
        )
        try:
            note = await self._note_service.generate_notes(
                consultation_id,
                transcription,
                patient_id=patient_id,
                language=language,
                bearer_token=bearer_token,
            )
        except NoteGenerationFailedError:
            raise
        except Exception as e:
            logger.error(f"[GenerateNote] Unexpected failure for consultation={consultation_id}: {e}")
            raise NoteGenerationFailedError(str(e) or "Failed to generate clinical notes") from e

        logger.info(f"[GenerateNote] Note generated for consultation={consultation_id}")
        return note
