"""
Recognition engine relayed to the speech engine running in the client.

The server sends ``engine.start`` / ``engine.stop`` commands; the client
reports ``engine.started``, ``engine.result``, ``engine.ended`` and
``engine.error`` back, and the socket handler feeds them to ``dispatch()``.
"""

import logging
from typing import Optional

from ...application.ports.services.recognition_engine import (
    EngineOptions,
    EngineSignal,
    RecognitionEngine,
    RecognitionEngineFactory,
    SignalHandler,
)
from .channel import Send

logger = logging.getLogger("clinicscribe.relay")


class RelayRecognitionEngine(RecognitionEngine):
    """Client-side speech engine driven over the relay socket."""

    def __init__(self, send: Send, options: EngineOptions):
        self._send = send
        self.options = options
        self._handler: Optional[SignalHandler] = None

    @property
    def running(self) -> bool:
        return self._handler is not None

    async def start(self, handler: SignalHandler) -> None:
        self._handler = handler
        await self._send(
            {
                "type": "engine.start",
                "locale": self.options.locale,
                "continuous": self.options.continuous,
                "interimResults": self.options.interim_results,
                "maxAlternatives": self.options.max_alternatives,
            }
        )

    async def stop(self) -> None:
        if self._handler is None:
            return
        self._handler = None
        await self._send({"type": "engine.stop"})

    async def dispatch(self, signal: EngineSignal) -> None:
        handler = self._handler
        if handler is None:
            logger.debug(f"Engine signal {signal.kind.value} received while stopped")
            return
        await handler(signal)


class RelayEngineFactory(RecognitionEngineFactory):
    """Creates relay engines for a client that announced speech recognition."""

    def __init__(self, send: Send, supported: bool):
        self._send = send
        self._supported = supported
        self.current: Optional[RelayRecognitionEngine] = None

    def is_supported(self) -> bool:
        return self._supported

    def create(self, options: EngineOptions) -> RelayRecognitionEngine:
        self.current = RelayRecognitionEngine(self._send, options)
        return self.current

    async def dispatch(self, signal: EngineSignal) -> None:
        """Route a client-reported signal to the most recently created engine."""
        if self.current is None:
            logger.debug(f"Engine signal {signal.kind.value} received with no engine")
            return
        await self.current.dispatch(signal)
