"""FastAPI dependency providers."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header

from ..adapters.external.note_service_http import HttpNoteGenerationService
from ..adapters.external.transcript_repository_http import HttpTranscriptRepository
from ..application.ports.repositories.transcript_repo import TranscriptRepository
from ..application.ports.services.note_generation_service import NoteGenerationService
from ..core.config import DictationSettings, Settings, get_settings


def get_app_settings() -> Settings:
    """Get application settings."""
    return get_settings()


def get_dictation_settings() -> DictationSettings:
    """Get dictation settings."""
    return get_settings().dictation


@lru_cache()
def get_note_service() -> NoteGenerationService:
    """Get note generation service instance."""
    return HttpNoteGenerationService(get_settings().notes_api)


@lru_cache()
def get_transcript_repository() -> Optional[TranscriptRepository]:
    """Get transcript repository, or None when persistence is not configured."""
    settings = get_settings().records_api
    if not settings.enabled:
        return None
    return HttpTranscriptRepository(settings)


AppSettingsDep = Annotated[Settings, Depends(get_app_settings)]
DictationSettingsDep = Annotated[DictationSettings, Depends(get_dictation_settings)]
NoteServiceDep = Annotated[NoteGenerationService, Depends(get_note_service)]
TranscriptRepositoryDep = Annotated[Optional[TranscriptRepository], Depends(get_transcript_repository)]


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token of an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Caller credential forwarded to the downstream services."""
    return parse_bearer_token(authorization)


BearerTokenDep = Annotated[Optional[str], Depends(get_bearer_token)]
