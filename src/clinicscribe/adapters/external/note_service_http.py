"""
HTTP client for the note-generation service.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ...application.ports.services.note_generation_service import NoteGenerationService
from ...core.config import NotesApiSettings, get_settings
from ...domain.entities.note import GeneratedNote
from ...domain.errors import NoteGenerationFailedError
from ...domain.value_objects.consultation_id import ConsultationId

logger = logging.getLogger("clinicscribe.notes")

DEFAULT_FAILURE_MESSAGE = "Failed to generate clinical notes"


def _error_message(body: str) -> str:
    """Remote error text: the JSON ``message`` field, else the raw body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return body.strip()
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("detail")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return body.strip()


class HttpNoteGenerationService(NoteGenerationService):
    """Calls ``POST /api/consultations/{id}/generate-notes`` on the notes API."""

    def __init__(self, settings: Optional[NotesApiSettings] = None):
        self._settings = settings or get_settings().notes_api

    def _headers(self, bearer_token: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = bearer_token or self._settings.api_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def generate_notes(
        self,
        consultation_id: ConsultationId,
        transcription: str,
        patient_id: str,
        language: str,
        bearer_token: Optional[str] = None,
    ) -> GeneratedNote:
        if not self._settings.base_url:
            raise NoteGenerationFailedError("Note generation service is not configured")

        url = f"{self._settings.base_url}/api/consultations/{consultation_id}/generate-notes"
        payload = {
            "transcription": transcription,
            "patientId": patient_id,
            "language": language,
        }

        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url, json=payload, headers=self._headers(bearer_token)
                ) as response:
                    body = await response.text()
                    if response.status >= 400:
                        message = _error_message(body) or DEFAULT_FAILURE_MESSAGE
                        logger.error(
                            f"Note generation failed for consultation {consultation_id}: "
                            f"{response.status} {message}"
                        )
                        raise NoteGenerationFailedError(message, status=response.status)
                    data: Any = json.loads(body) if body else {}
        except NoteGenerationFailedError:
            raise
        except aiohttp.ClientError as e:
            logger.error(f"Note generation request failed for consultation {consultation_id}: {e}")
            raise NoteGenerationFailedError(str(e) or DEFAULT_FAILURE_MESSAGE) from e
        except ValueError as e:
            raise NoteGenerationFailedError("Note generation service returned invalid JSON") from e
        except asyncio.TimeoutError as e:
            raise NoteGenerationFailedError(
                f"Note generation timed out after {self._settings.timeout_seconds:g} seconds"
            ) from e

        notes = data.get("notes") if isinstance(data, dict) else None
        if not isinstance(notes, dict):
            raise NoteGenerationFailedError("Note generation service returned no notes")

        logger.info(f"Generated notes for consultation {consultation_id}")
        return GeneratedNote.from_payload(notes)
