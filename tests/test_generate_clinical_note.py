"""
Clinical note generation use case tests.
"""

import asyncio

import pytest

from clinicscribe.application.services.transcript_aggregator import TranscriptAggregator
from clinicscribe.application.use_cases.generate_clinical_note import GenerateClinicalNoteUseCase
from clinicscribe.domain.entities.transcript import RecognitionEvent
from clinicscribe.domain.enums.dictation import Speaker
from clinicscribe.domain.errors import EmptyTranscriptError, NoteGenerationFailedError

from conftest import FakeNoteService, settle


def dictate(aggregator: TranscriptAggregator) -> None:
    aggregator.ingest(RecognitionEvent("How are you?", is_final=True, confidence=0.9))
    aggregator.set_speaker(Speaker.PATIENT)
    aggregator.ingest(RecognitionEvent("Fine", is_final=True, confidence=0.9))


@pytest.mark.asyncio
async def test_empty_transcript_fails_without_remote_call(consultation_id, note_service):
    aggregator = TranscriptAggregator(consultation_id)
    use_case = GenerateClinicalNoteUseCase(note_service)

    with pytest.raises(EmptyTranscriptError) as exc_info:
        await use_case.execute(aggregator, patient_id="p-1", language="en")

    assert "No transcription available" in exc_info.value.message
    assert note_service.calls == []


@pytest.mark.asyncio
async def test_generation_after_reset_fails_without_remote_call(consultation_id, note_service):
    aggregator = TranscriptAggregator(consultation_id)
    dictate(aggregator)
    use_case = GenerateClinicalNoteUseCase(note_service)
    await use_case.execute(aggregator, patient_id="p-1", language="en")

    aggregator.reset()

    with pytest.raises(EmptyTranscriptError):
        await use_case.execute(aggregator, patient_id="p-1", language="en")
    assert aggregator.entries == ()
    assert aggregator.note is None
    assert len(note_service.calls) == 1


@pytest.mark.asyncio
async def test_note_is_generated_from_serialized_transcript(consultation_id, note_service):
    aggregator = TranscriptAggregator(consultation_id)
    dictate(aggregator)
    use_case = GenerateClinicalNoteUseCase(note_service)

    note = await use_case.execute(aggregator, patient_id="p-1", language="hi", bearer_token="tok")

    assert note is not None
    assert note.chief_complaint == "Headache for three days"
    assert note.medications == ["Paracetamol 500 mg"]
    assert aggregator.note is note
    call = note_service.calls[0]
    assert call["transcription"] == "[DOCTOR]: How are you?\n[PATIENT]: Fine"
    assert call["consultation_id"] == consultation_id
    assert call["patient_id"] == "p-1"
    assert call["language"] == "hi"
    assert call["bearer_token"] == "tok"


@pytest.mark.asyncio
async def test_remote_failure_keeps_transcript(consultation_id):
    service = FakeNoteService(error=NoteGenerationFailedError("Model overloaded", status=503))
    aggregator = TranscriptAggregator(consultation_id)
    dictate(aggregator)
    entries_before = aggregator.entries

    with pytest.raises(NoteGenerationFailedError) as exc_info:
        await GenerateClinicalNoteUseCase(service).execute(aggregator, patient_id="p-1", language="en")

    assert exc_info.value.message == "Model overloaded"
    assert exc_info.value.details == {"status": 503}
    assert aggregator.entries == entries_before
    assert aggregator.note is None


@pytest.mark.asyncio
async def test_unexpected_service_error_is_wrapped(consultation_id):
    service = FakeNoteService(error=ConnectionResetError("connection reset"))
    aggregator = TranscriptAggregator(consultation_id)
    dictate(aggregator)

    with pytest.raises(NoteGenerationFailedError) as exc_info:
        await GenerateClinicalNoteUseCase(service).execute(aggregator, patient_id="p-1", language="en")

    assert "connection reset" in exc_info.value.message


@pytest.mark.asyncio
async def test_result_is_discarded_when_transcript_reset_in_flight(consultation_id):
    service = FakeNoteService(gate=asyncio.Event())
    aggregator = TranscriptAggregator(consultation_id)
    dictate(aggregator)

    task = asyncio.create_task(
        GenerateClinicalNoteUseCase(service).execute(aggregator, patient_id="p-1", language="en")
    )
    await settle()
    aggregator.reset()
    service.gate.set()

    assert await task is None
    assert aggregator.note is None
    assert aggregator.entries == ()


@pytest.mark.asyncio
async def test_generate_from_explicit_entries(consultation_id, note_service):
    aggregator = TranscriptAggregator(consultation_id)
    dictate(aggregator)

    note = await GenerateClinicalNoteUseCase(note_service).generate(
        consultation_id, aggregator.entries, patient_id="p-2", language="en"
    )

    assert note.plan == "Hydration and rest"
    assert aggregator.note is None
