"""
Speech recognition engine interface for continuous dictation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from clinicscribe.domain.entities.transcript import RecognitionEvent
from clinicscribe.domain.enums.dictation import EngineSignalKind


@dataclass(frozen=True)
class EngineSignal:
    """Something the engine reports: session start, a result, an end or an error."""

    kind: EngineSignalKind
    event: Optional[RecognitionEvent] = None
    error: Optional[str] = None

    @classmethod
    def started(cls) -> "EngineSignal":
        return cls(EngineSignalKind.STARTED)

    @classmethod
    def result(cls, event: RecognitionEvent) -> "EngineSignal":
        return cls(EngineSignalKind.RESULT, event=event)

    @classmethod
    def ended(cls) -> "EngineSignal":
        return cls(EngineSignalKind.ENDED)

    @classmethod
    def failed(cls, error: str) -> "EngineSignal":
        return cls(EngineSignalKind.ERROR, error=error)


SignalHandler = Callable[[EngineSignal], Awaitable[None]]


@dataclass(frozen=True)
class EngineOptions:
    """Options applied when the engine is created."""

    locale: str = "en-US"
    continuous: bool = True
    interim_results: bool = True
    max_alternatives: int = 1


class RecognitionEngine(ABC):
    """A single speech recognition engine instance."""

    @abstractmethod
    async def start(self, handler: SignalHandler) -> None:
        """
        Start (or restart) recognition.

        Every signal of this run must be delivered through ``handler``, in the
        order the engine produced it. Replaces any handler of a previous run.

        Raises:
            Any exception if the engine cannot start.
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop recognition. Must be safe to call on a stopped engine."""
        pass


class RecognitionEngineFactory(ABC):
    """Creates engines for capture sessions."""

    @abstractmethod
    def is_supported(self) -> bool:
        """Whether the host provides a speech recognition engine."""
        pass

    @abstractmethod
    def create(self, options: EngineOptions) -> RecognitionEngine:
        pass
