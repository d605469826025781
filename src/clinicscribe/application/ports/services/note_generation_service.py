"""
Note generation service interface for structured clinical notes.
"""

from abc import ABC, abstractmethod
from typing import Optional

from clinicscribe.domain.entities.note import GeneratedNote
from clinicscribe.domain.value_objects.consultation_id import ConsultationId


class NoteGenerationService(ABC):
    """Abstract service for AI clinical note generation."""

    @abstractmethod
    async def generate_notes(
        self,
        consultation_id: ConsultationId,
        transcription: str,
        patient_id: str,
        language: str,
        bearer_token: Optional[str] = None,
    ) -> GeneratedNote:
        """
        Generate a structured note from a serialized transcript.

        Args:
            consultation_id: Consultation the transcript belongs to
            transcription: ``[SPEAKER]: text`` lines
            patient_id: Patient identifier
            language: Dictation language code
            bearer_token: Credential forwarded from the caller, if any

        Returns:
            GeneratedNote built from the service response

        Raises:
            NoteGenerationFailedError: remote failure or non-success status,
                carrying the remote message
        """
        pass
