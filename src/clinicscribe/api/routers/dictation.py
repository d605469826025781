"""
Dictation endpoints: language catalogue and the relay WebSocket.

The browser runs the speech engine and the microphone; this socket carries
its events to the server-side capture controller and transcript aggregator
and pushes state, preview, transcript and note updates back.
"""

import asyncio
import json
import logging
from typing import Any, Coroutine, Dict, List, Optional, Set

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from ...adapters.relay.audio_capture import RelayAudioCapture
from ...adapters.relay.channel import RelayChannel
from ...adapters.relay.recognition_engine import RelayEngineFactory
from ...application.ports.services.recognition_engine import EngineSignal
from ...application.services.dictation_session import DictationListener, DictationSession
from ...application.services.transcript_aggregator import Snapshot
from ...core.audio_utils import get_speech_locale
from ...core.constants import SUPPORTED_LANGUAGE_CODES, SUPPORTED_LANGUAGES
from ...domain.entities.transcript import RecognitionEvent
from ...domain.enums.dictation import CaptureState
from ...domain.errors import (
    AcquisitionFailedError,
    DictationError,
    PersistenceWarning,
    UnsupportedCapabilityError,
)
from ...domain.value_objects.consultation_id import ConsultationId
from ..deps import (
    BearerTokenDep,
    DictationSettingsDep,
    NoteServiceDep,
    TranscriptRepositoryDep,
)
from ..schemas.common import ApiResponse
from ..schemas.dictation import (
    CLIENT_COMMANDS,
    CLIENT_MESSAGE_MODELS,
    HelloMessage,
    LanguageOption,
)
from ..utils.responses import ok

router = APIRouter(prefix="/dictation", tags=["dictation"])
logger = logging.getLogger("clinicscribe.dictation")

# WebSocket close code for malformed handshakes
POLICY_VIOLATION = 1008


@router.get("/languages", response_model=ApiResponse[List[LanguageOption]])
async def list_languages(request: Request):
    """Languages offered for dictation, with their speech engine locales."""
    languages = [
        LanguageOption(code=code, name=name, native_name=native, locale=get_speech_locale(code))
        for code, name, native in SUPPORTED_LANGUAGES
    ]
    return ok(request, data=languages, message="OK")


class SocketListener(DictationListener):
    """Pushes session updates to the connected client."""

    def __init__(self, channel: RelayChannel):
        self._channel = channel

    def on_state(self, state: CaptureState) -> None:
        self._channel.push({"type": "state", "state": state.value})

    def on_preview(self, text: str) -> None:
        self._channel.push({"type": "preview", "text": text})

    def on_transcript(self, entries: Snapshot, text: str) -> None:
        if entries:
            self._channel.push({"type": "entry", "entry": entries[-1].to_dict()})
        self._channel.push(
            {
                "type": "transcript",
                "entries": [entry.to_dict() for entry in entries],
                "text": text,
            }
        )

    def on_warning(self, warning: PersistenceWarning) -> None:
        self._channel.push(_error_message("warning", warning))

    def on_error(self, error: DictationError) -> None:
        self._channel.push(_error_message("error", error))


def _error_message(kind: str, error: Any, code: Optional[str] = None) -> Dict[str, Any]:
    if isinstance(error, DictationError):
        return {
            "type": kind,
            "code": error.error_code,
            "message": error.message,
            "retryable": error.retryable,
            "details": error.details,
        }
    return {"type": kind, "code": code or "INVALID_MESSAGE", "message": str(error), "retryable": False}


class DictationSocket:
    """Relay protocol handler for one connected client."""

    def __init__(
        self,
        websocket: WebSocket,
        session: DictationSession,
        channel: RelayChannel,
        capture: RelayAudioCapture,
        engines: RelayEngineFactory,
    ):
        self.websocket = websocket
        self.session = session
        self.channel = channel
        self.capture = capture
        self.engines = engines
        self._tasks: Set[asyncio.Task] = set()

    async def run(self) -> None:
        writer = asyncio.create_task(self.channel.pump(self.websocket.send_json))
        self.channel.push(self._ready_message())
        try:
            while True:
                raw = await self.websocket.receive_text()
                await self.handle(raw)
        except WebSocketDisconnect:
            logger.info(f"Dictation client disconnected from consultation {self.session.consultation_id}")
        finally:
            self.channel.close()
            for task in list(self._tasks):
                task.cancel()
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            await self.session.close()
            try:
                await writer
            except Exception as e:
                logger.debug(f"Relay writer stopped: {e}")

    async def handle(self, raw: str) -> None:
        try:
            payload = json.loads(raw)
        except ValueError:
            self.channel.push(_error_message("error", "Message is not valid JSON"))
            return
        if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
            self.channel.push(_error_message("error", "Message must be an object with a 'type'"))
            return

        kind = payload["type"]
        model = CLIENT_MESSAGE_MODELS.get(kind)
        if model is None and kind not in CLIENT_COMMANDS:
            self.channel.push(_error_message("error", f"Unknown message type '{kind}'"))
            return
        try:
            message = model.model_validate(payload) if model else None
        except PydanticValidationError as e:
            self.channel.push(
                _error_message("error", f"Invalid '{kind}' message: {e.error_count()} error(s)")
            )
            return

        if kind == "start":
            self._spawn(self._start())
        elif kind == "stop":
            await self.session.stop()
        elif kind == "speaker":
            self.session.set_speaker(message.speaker)
        elif kind == "reset":
            self.session.reset()
            self.channel.push({"type": "cleared"})
        elif kind == "generate_notes":
            self._spawn(self._generate_notes())
        elif kind == "audio.granted":
            self.capture.grant(message.tracks)
        elif kind == "audio.denied":
            self.capture.deny(message.reason)
        elif kind == "engine.started":
            await self.engines.dispatch(EngineSignal.started())
        elif kind == "engine.result":
            event = RecognitionEvent(
                text=message.text, is_final=message.is_final, confidence=message.confidence
            )
            await self.engines.dispatch(EngineSignal.result(event))
        elif kind == "engine.ended":
            await self.engines.dispatch(EngineSignal.ended())
        elif kind == "engine.error":
            await self.engines.dispatch(EngineSignal.failed(message.error))
        elif kind == "hello":
            logger.warning("Repeated hello ignored")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _start(self) -> None:
        try:
            await self.session.start()
        except UnsupportedCapabilityError as e:
            self.channel.push(_error_message("error", e))
        except AcquisitionFailedError:
            # Already delivered through the controller's error callback
            logger.debug("Start failed; error already reported")

    async def _generate_notes(self) -> None:
        try:
            note = await self.session.generate_notes()
        except DictationError as e:
            self.channel.push(_error_message("error", e))
            return
        if note is None:
            self.channel.push(
                {
                    "type": "warning",
                    "code": "NOTES_DISCARDED",
                    "message": "The transcript was cleared while notes were being generated.",
                    "retryable": True,
                }
            )
            return
        self.channel.push(
            {
                "type": "notes",
                "consultationId": str(self.session.consultation_id),
                "notes": note.to_dict(),
            }
        )

    def _ready_message(self) -> Dict[str, Any]:
        return {
            "type": "ready",
            "consultationId": str(self.session.consultation_id),
            "patientId": self.session.patient_id,
            "language": self.session.language,
            "locale": get_speech_locale(self.session.language),
            "state": self.session.state.value,
            "speaker": self.session.aggregator.speaker.value,
            "mimeType": self.capture.mime_type,
            "capabilities": {
                "speechRecognition": self.engines.is_supported(),
                "audioCapture": self.capture.is_supported(),
            },
        }


async def _reject(websocket: WebSocket, code: str, message: str) -> None:
    await websocket.send_json({"type": "error", "code": code, "message": message, "retryable": False})
    await websocket.close(code=POLICY_VIOLATION)


@router.websocket("/{consultation_id}/ws")
async def dictation_socket(
    websocket: WebSocket,
    consultation_id: str,
    settings: DictationSettingsDep,
    note_service: NoteServiceDep,
    repository: TranscriptRepositoryDep,
    bearer_token: BearerTokenDep,
    patient_id: str = Query("", description="Patient the consultation belongs to"),
    language: Optional[str] = Query(None, description="Dictation language code"),
):
    """
    Relay socket of one dictation session.

    The first client message must be ``hello`` announcing the client's
    speech recognition and audio capture support.
    """
    await websocket.accept()

    try:
        consultation = ConsultationId.parse(consultation_id)
    except ValueError as e:
        await _reject(websocket, "INVALID_CONSULTATION_ID", str(e))
        return

    if language and language.strip().lower().split("-")[0] not in SUPPORTED_LANGUAGE_CODES:
        await _reject(websocket, "UNSUPPORTED_LANGUAGE", f"Language '{language}' is not supported")
        return

    try:
        hello = HelloMessage.model_validate(await websocket.receive_json())
    except WebSocketDisconnect:
        return
    except (ValueError, PydanticValidationError):
        await _reject(websocket, "PROTOCOL_ERROR", "First message must be a valid 'hello'")
        return

    channel = RelayChannel()
    capture = RelayAudioCapture(
        channel.send,
        supported=hello.capabilities.audio_capture,
        mime_types=hello.mime_types,
        timeout=settings.acquire_timeout_seconds,
    )
    engines = RelayEngineFactory(channel.send, supported=hello.capabilities.speech_recognition)
    session = DictationSession(
        consultation,
        patient_id=patient_id,
        settings=settings,
        audio_capture=capture,
        engine_factory=engines,
        note_service=note_service,
        repository=repository,
        listener=SocketListener(channel),
        language=language.strip().lower() if language else None,
        bearer_token=hello.token or bearer_token,
    )
    logger.info(
        f"Dictation session opened for consultation {consultation} "
        f"(speech={hello.capabilities.speech_recognition}, audio={hello.capabilities.audio_capture})"
    )
    await DictationSocket(websocket, session, channel, capture, engines).run()
