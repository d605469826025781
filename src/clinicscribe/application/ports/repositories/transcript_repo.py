"""
Transcript repository interface for auto-saving dictation entries.
"""

from typing import Optional, Sequence

from clinicscribe.domain.entities.transcript import TranscriptEntry
from clinicscribe.domain.value_objects.consultation_id import ConsultationId


class TranscriptRepository:
    """
    Repository interface for consultation transcripts.

    Implementations receive the full entry list on every append and must
    tolerate duplicate submissions.
    """

    async def save_entries(
        self,
        consultation_id: ConsultationId,
        entries: Sequence[TranscriptEntry],
        bearer_token: Optional[str] = None,
    ) -> None:
        """Replace the stored transcript of a consultation with ``entries``."""
        raise NotImplementedError
