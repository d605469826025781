"""
Clinic records API repository for consultation transcripts.
"""

import asyncio
import logging
from typing import Dict, Optional, Sequence

import aiohttp

from ...application.ports.repositories.transcript_repo import TranscriptRepository
from ...core.config import RecordsApiSettings, get_settings
from ...core.exceptions import RecordsApiError
from ...domain.entities.transcript import TranscriptEntry
from ...domain.value_objects.consultation_id import ConsultationId

logger = logging.getLogger("clinicscribe.records")


class HttpTranscriptRepository(TranscriptRepository):
    """Saves the full transcript with ``POST /api/consultations/{id}/transcription``."""

    def __init__(self, settings: Optional[RecordsApiSettings] = None):
        self._settings = settings or get_settings().records_api

    def _headers(self, bearer_token: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = bearer_token or self._settings.api_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def save_entries(
        self,
        consultation_id: ConsultationId,
        entries: Sequence[TranscriptEntry],
        bearer_token: Optional[str] = None,
    ) -> None:
        url = f"{self._settings.base_url}/api/consultations/{consultation_id}/transcription"
        payload = {
            "consultationId": str(consultation_id),
            "entries": [entry.to_dict() for entry in entries],
        }

        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url, json=payload, headers=self._headers(bearer_token)
                ) as response:
                    if response.status not in (200, 201, 202, 204):
                        error_text = await response.text()
                        raise RecordsApiError(
                            f"{response.status} {error_text}".strip(),
                            {"status": response.status},
                        )
        except aiohttp.ClientError as e:
            raise RecordsApiError(str(e) or type(e).__name__) from e
        except asyncio.TimeoutError as e:
            raise RecordsApiError(
                f"timed out after {self._settings.timeout_seconds:g} seconds"
            ) from e
