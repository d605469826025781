"""
Capture lifecycle for continuous dictation.

``CaptureController`` owns the microphone stream and the recognition engine
of one capture session and drives them through

    idle -> starting -> listening -> stopping -> idle
                   \\-> failed

Each engine run is bound to a run token. ``stop()`` and every restart issue
a new token, so signals from a superseded run (or a start that lost a race
with ``stop()``) are recognised and dropped.
"""

from typing import Callable, List, Optional

from ...core.audio_utils import get_speech_locale
from ...core.structured_logger import get_logger
from ...domain.entities.transcript import RecognitionEvent
from ...domain.enums.dictation import CaptureState, EngineSignalKind
from ...domain.errors import (
    AcquisitionFailedError,
    DictationError,
    EngineError,
    UnsupportedCapabilityError,
)
from ..ports.services.audio_capture import AudioCapture, AudioConstraints, AudioStream, AudioTrack
from ..ports.services.recognition_engine import (
    EngineOptions,
    EngineSignal,
    RecognitionEngine,
    RecognitionEngineFactory,
    SignalHandler,
)


class CaptureController:
    """
    Start/stop state machine around one microphone stream and one engine.

    ``start()`` and ``stop()`` are coroutines; callers run them on a single
    event loop. ``start()`` while starting or listening is a no-op and
    ``stop()`` is valid in every state.
    """

    def __init__(
        self,
        audio_capture: AudioCapture,
        engine_factory: RecognitionEngineFactory,
        language: str = "en",
        continuous: bool = True,
        constraints: Optional[AudioConstraints] = None,
        on_state_change: Optional[Callable[[CaptureState], None]] = None,
        on_result: Optional[Callable[[RecognitionEvent], None]] = None,
        on_error: Optional[Callable[[DictationError], None]] = None,
        session_label: str = "",
    ) -> None:
        self._audio_capture = audio_capture
        self._engine_factory = engine_factory
        self._language = language
        self._continuous = continuous
        self._constraints = constraints or AudioConstraints()
        self._on_state_change = on_state_change
        self._on_result = on_result
        self._on_error = on_error
        self._log = get_logger("clinicscribe.capture", session=session_label)

        self._state = CaptureState.IDLE
        self._stream: Optional[AudioStream] = None
        self._engine: Optional[RecognitionEngine] = None
        self._run = 0
        self._restarting = False
        self._recovery_used = False

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def language(self) -> str:
        return self._language

    @property
    def continuous(self) -> bool:
        return self._continuous

    @property
    def tracks(self) -> List[AudioTrack]:
        """Audio tracks currently held; empty whenever nothing is acquired."""
        return list(self._stream.tracks) if self._stream else []

    @property
    def engine(self) -> Optional[RecognitionEngine]:
        return self._engine

    @property
    def mime_type(self) -> str:
        return self._stream.mime_type if self._stream else ""

    def set_language(self, language: str) -> None:
        """Language for the next start; a running session keeps its engine."""
        self._language = language

    async def start(self) -> None:
        """
        Acquire the microphone and start the engine.

        Raises:
            UnsupportedCapabilityError: host cannot capture or recognise
                speech; the controller stays idle
            AcquisitionFailedError: permission denied, device error or the
                engine would not start; the controller moves to failed
        """
        if self._state in (CaptureState.STARTING, CaptureState.LISTENING):
            self._log.debug("start ignored", state=self._state.value)
            return
        if self._state is CaptureState.FAILED:
            self._log.warning("start refused until the failed session is stopped")
            return
        if self._state is CaptureState.STOPPING:
            self._log.debug("start ignored while stopping")
            return

        if not self._engine_factory.is_supported():
            raise UnsupportedCapabilityError("speech recognition")
        if not self._audio_capture.is_supported():
            raise UnsupportedCapabilityError("audio capture")

        self._run += 1
        run = self._run
        self._recovery_used = False
        self._set_state(CaptureState.STARTING)

        try:
            stream = await self._audio_capture.acquire(self._constraints)
        except Exception as e:
            if run != self._run:
                return
            error = AcquisitionFailedError(self._describe(e))
            await self._fail(error)
            raise error from e

        if run != self._run:
            # stop() won the race while the microphone was being acquired
            await self._release_stream(stream)
            return
        self._stream = stream

        options = EngineOptions(
            locale=get_speech_locale(self._language),
            continuous=self._continuous,
            interim_results=True,
            max_alternatives=1,
        )
        try:
            self._engine = self._engine_factory.create(options)
            await self._engine.start(self._bind(run))
        except Exception as e:
            if run != self._run:
                return
            error = AcquisitionFailedError(self._describe(e))
            await self._fail(error)
            raise error from e

        if run != self._run:
            return
        self._log.info("engine started", locale=options.locale, continuous=self._continuous, run=run)

    async def stop(self) -> None:
        """Tear down and return to idle. Safe in every state."""
        self._run += 1
        self._restarting = False
        if self._state is CaptureState.IDLE and self._stream is None and self._engine is None:
            return
        if self._state is CaptureState.STARTING and self._stream is None:
            # Microphone request still outstanding
            self._audio_capture.cancel()
        if self._state is not CaptureState.IDLE:
            self._set_state(CaptureState.STOPPING)
        await self._teardown()
        self._set_state(CaptureState.IDLE)

    async def dispose(self) -> None:
        """Release everything when the owner goes away."""
        await self.stop()

    async def __aenter__(self) -> "CaptureController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def _bind(self, run: int) -> SignalHandler:
        async def handler(signal: EngineSignal) -> None:
            await self._handle_signal(run, signal)

        return handler

    async def _handle_signal(self, run: int, signal: EngineSignal) -> None:
        if run != self._run:
            self._log.debug("stale engine signal dropped", kind=signal.kind.value, run=run)
            return

        if signal.kind is EngineSignalKind.STARTED:
            if self._restarting:
                self._restarting = False
            elif self._state is CaptureState.STARTING:
                self._set_state(CaptureState.LISTENING)
            return

        if signal.kind is EngineSignalKind.RESULT:
            if self._state is not CaptureState.LISTENING or signal.event is None:
                return
            # The engine is producing again, so a later error may be recovered once more
            self._recovery_used = False
            if self._on_result:
                self._on_result(signal.event)
            return

        if signal.kind is EngineSignalKind.ENDED:
            if self._state is not CaptureState.LISTENING:
                return
            if self._continuous:
                await self._restart(reason="ended")
            else:
                self._log.info("engine ended")
                await self.stop()
            return

        if signal.kind is EngineSignalKind.ERROR:
            error = signal.error or "unknown"
            if self._state not in (CaptureState.STARTING, CaptureState.LISTENING):
                return
            if (
                self._continuous
                and self._state is CaptureState.LISTENING
                and not self._recovery_used
            ):
                self._recovery_used = True
                self._log.warning("engine error, restarting", error=error)
                await self._restart(reason=error)
                return
            await self._fail(EngineError(error))

    async def _restart(self, reason: str) -> None:
        """Restart the engine without surfacing a state change."""
        engine = self._engine
        if engine is None:
            await self._fail(EngineError(f"engine lost ({reason})"))
            return
        self._run += 1
        run = self._run
        self._restarting = True
        try:
            await engine.start(self._bind(run))
        except Exception as e:
            if run != self._run:
                return
            self._restarting = False
            await self._fail(EngineError(f"restart failed: {self._describe(e)}"))
            return
        self._log.info("engine restarted", reason=reason, run=run)

    async def _fail(self, error: DictationError) -> None:
        self._run += 1
        self._restarting = False
        await self._teardown()
        self._set_state(CaptureState.FAILED)
        self._log.error("capture failed", error_code=error.error_code, reason=error.message)
        if self._on_error:
            self._on_error(error)

    async def _teardown(self) -> None:
        engine, self._engine = self._engine, None
        stream, self._stream = self._stream, None
        if engine is not None:
            try:
                await engine.stop()
            except Exception as e:
                self._log.warning("engine stop failed", error=self._describe(e))
        if stream is not None:
            await self._release_stream(stream)

    async def _release_stream(self, stream: AudioStream) -> None:
        for track in list(stream.tracks):
            try:
                track.stop()
            except Exception as e:
                self._log.warning("track stop failed", track=track.track_id, error=self._describe(e))
        try:
            await stream.close()
        except Exception as e:
            self._log.warning("stream close failed", error=self._describe(e))

    def _set_state(self, state: CaptureState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        self._log.info("capture state changed", previous=previous.value, state=state.value)
        if self._on_state_change:
            self._on_state_change(state)

    @staticmethod
    def _describe(error: BaseException) -> str:
        return getattr(error, "message", None) or str(error) or type(error).__name__
