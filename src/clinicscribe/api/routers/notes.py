"""Clinical note endpoints for clients that aggregate transcripts locally."""

import logging

from fastapi import APIRouter, Request, status

from ...application.use_cases.generate_clinical_note import GenerateClinicalNoteUseCase
from ...domain.entities.transcript import TranscriptEntry, format_transcript
from ...domain.value_objects.consultation_id import ConsultationId
from ..deps import BearerTokenDep, NoteServiceDep
from ..errors import ValidationError
from ..schemas.common import ApiResponse, ErrorResponse
from ..schemas.dictation import NoteResponse, NotesGenerateRequest
from ..utils.responses import ok

router = APIRouter(prefix="/notes", tags=["notes"])
logger = logging.getLogger("clinicscribe.notes")


@router.post(
    "/generate",
    response_model=ApiResponse[NoteResponse],
    status_code=status.HTTP_200_OK,
    responses={
        422: {"model": ErrorResponse, "description": "No transcript entries or invalid input"},
        502: {"model": ErrorResponse, "description": "Note generation service failed"},
    },
)
async def generate_notes(
    request: Request,
    body: NotesGenerateRequest,
    note_service: NoteServiceDep,
    bearer_token: BearerTokenDep,
):
    """
    Generate a structured clinical note from a list of transcript entries.

    Entries are serialized as ``[SPEAKER]: text`` lines in the order given.
    """
    try:
        consultation_id = ConsultationId.parse(body.consultation_id)
    except ValueError as e:
        raise ValidationError(str(e), {"consultation_id": body.consultation_id})

    entries = [
        TranscriptEntry(
            speaker=item.speaker,
            text=item.text,
            confidence=item.confidence,
            **({"timestamp": item.timestamp} if item.timestamp else {}),
        )
        for item in body.entries
    ]

    use_case = GenerateClinicalNoteUseCase(note_service)
    note = await use_case.generate(
        consultation_id,
        entries,
        patient_id=body.patient_id,
        language=body.language,
        bearer_token=bearer_token,
    )
    return ok(
        request,
        data=NoteResponse(
            consultation_id=str(consultation_id),
            transcription=format_transcript(entries),
            notes=note.to_dict(),
        ),
        message="Clinical notes generated",
    )
