"""
aiohttp adapter tests against a local aiohttp test server.
"""

from datetime import datetime, timezone

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as AiohttpTestServer

from clinicscribe.adapters.external.note_service_http import HttpNoteGenerationService
from clinicscribe.adapters.external.transcript_repository_http import HttpTranscriptRepository
from clinicscribe.core.config import NotesApiSettings, RecordsApiSettings
from clinicscribe.core.exceptions import RecordsApiError
from clinicscribe.domain.entities.transcript import TranscriptEntry
from clinicscribe.domain.enums.dictation import Speaker
from clinicscribe.domain.errors import NoteGenerationFailedError

from conftest import SAMPLE_NOTES


class FakeRemote:
    """Records requests and replies with a canned response."""

    def __init__(self, status: int = 200, json_body=None, text_body: str = None):
        self.status = status
        self.json_body = json_body
        self.text_body = text_body
        self.requests = []

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "path": request.path,
                "id": request.match_info.get("consultation_id"),
                "body": await request.json(),
                "authorization": request.headers.get("Authorization"),
            }
        )
        if self.text_body is not None:
            return web.Response(status=self.status, text=self.text_body)
        return web.json_response(self.json_body, status=self.status)


async def serve(remote: FakeRemote, path: str) -> AiohttpTestServer:
    app = web.Application()
    app.router.add_post(path, remote.handle)
    server = AiohttpTestServer(app)
    await server.start_server()
    return server


def base_url(server: AiohttpTestServer) -> str:
    return f"http://{server.host}:{server.port}"


NOTES_PATH = "/api/consultations/{consultation_id}/generate-notes"
RECORDS_PATH = "/api/consultations/{consultation_id}/transcription"


# -----------------------------------------------------------------------------
# Note generation
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generate_notes_posts_transcript(consultation_id):
    remote = FakeRemote(json_body={"notes": SAMPLE_NOTES})
    server = await serve(remote, NOTES_PATH)
    try:
        service = HttpNoteGenerationService(
            NotesApiSettings(base_url=base_url(server) + "/", api_token="service-token")
        )
        note = await service.generate_notes(
            consultation_id, "[DOCTOR]: How are you?", patient_id="p-1", language="en"
        )
    finally:
        await server.close()

    assert note.assessment == "Tension-type headache"
    assert note.follow_up == "One week"
    request = remote.requests[0]
    assert request["id"] == "consult-42"
    assert request["body"] == {
        "transcription": "[DOCTOR]: How are you?",
        "patientId": "p-1",
        "language": "en",
    }
    assert request["authorization"] == "Bearer service-token"


@pytest.mark.asyncio
async def test_forwarded_token_takes_precedence(consultation_id):
    remote = FakeRemote(json_body={"notes": SAMPLE_NOTES})
    server = await serve(remote, NOTES_PATH)
    try:
        service = HttpNoteGenerationService(
            NotesApiSettings(base_url=base_url(server), api_token="service-token")
        )
        await service.generate_notes(
            consultation_id, "[DOCTOR]: Hi", patient_id="p-1", language="en", bearer_token="user-token"
        )
    finally:
        await server.close()

    assert remote.requests[0]["authorization"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_json_error_message_is_surfaced(consultation_id):
    remote = FakeRemote(status=500, json_body={"message": "Model overloaded"})
    server = await serve(remote, NOTES_PATH)
    try:
        service = HttpNoteGenerationService(NotesApiSettings(base_url=base_url(server)))
        with pytest.raises(NoteGenerationFailedError) as exc_info:
            await service.generate_notes(consultation_id, "[DOCTOR]: Hi", patient_id="p-1", language="en")
    finally:
        await server.close()

    assert exc_info.value.message == "Model overloaded"
    assert exc_info.value.details["status"] == 500


@pytest.mark.asyncio
async def test_plain_text_error_is_surfaced(consultation_id):
    remote = FakeRemote(status=400, text_body="Consultation not found")
    server = await serve(remote, NOTES_PATH)
    try:
        service = HttpNoteGenerationService(NotesApiSettings(base_url=base_url(server)))
        with pytest.raises(NoteGenerationFailedError) as exc_info:
            await service.generate_notes(consultation_id, "[DOCTOR]: Hi", patient_id="p-1", language="en")
    finally:
        await server.close()

    assert exc_info.value.message == "Consultation not found"
    assert exc_info.value.details["status"] == 400


@pytest.mark.asyncio
async def test_response_without_notes_fails(consultation_id):
    remote = FakeRemote(json_body={"status": "ok"})
    server = await serve(remote, NOTES_PATH)
    try:
        service = HttpNoteGenerationService(NotesApiSettings(base_url=base_url(server)))
        with pytest.raises(NoteGenerationFailedError):
            await service.generate_notes(consultation_id, "[DOCTOR]: Hi", patient_id="p-1", language="en")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_unconfigured_notes_service_fails(consultation_id):
    service = HttpNoteGenerationService(NotesApiSettings(base_url=""))

    with pytest.raises(NoteGenerationFailedError) as exc_info:
        await service.generate_notes(consultation_id, "[DOCTOR]: Hi", patient_id="p-1", language="en")

    assert "not configured" in exc_info.value.message


# -----------------------------------------------------------------------------
# Transcript persistence
# -----------------------------------------------------------------------------


def sample_entries():
    at = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    return [
        TranscriptEntry(Speaker.DOCTOR, "How are you?", 0.9, timestamp=at, id="e1"),
        TranscriptEntry(Speaker.PATIENT, "Fine", 0.85, timestamp=at, id="e2"),
    ]


@pytest.mark.asyncio
async def test_save_entries_posts_full_list(consultation_id):
    remote = FakeRemote(json_body={"success": True})
    server = await serve(remote, RECORDS_PATH)
    try:
        repository = HttpTranscriptRepository(RecordsApiSettings(base_url=base_url(server)))
        await repository.save_entries(consultation_id, sample_entries(), bearer_token="user-token")
    finally:
        await server.close()

    request = remote.requests[0]
    assert request["body"]["consultationId"] == "consult-42"
    assert [entry["id"] for entry in request["body"]["entries"]] == ["e1", "e2"]
    assert request["body"]["entries"][1] == {
        "id": "e2",
        "timestamp": "2024-05-01T09:00:00+00:00",
        "speaker": "patient",
        "text": "Fine",
        "confidence": 0.85,
    }
    assert request["authorization"] == "Bearer user-token"


@pytest.mark.asyncio
async def test_save_failure_raises_records_error(consultation_id):
    remote = FakeRemote(status=503, text_body="maintenance")
    server = await serve(remote, RECORDS_PATH)
    try:
        repository = HttpTranscriptRepository(RecordsApiSettings(base_url=base_url(server)))
        with pytest.raises(RecordsApiError) as exc_info:
            await repository.save_entries(consultation_id, sample_entries())
    finally:
        await server.close()

    assert "maintenance" in exc_info.value.message
    assert exc_info.value.details == {"status": 503}
