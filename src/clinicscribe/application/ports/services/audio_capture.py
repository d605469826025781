"""
Audio capture interface for microphone acquisition.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class AudioConstraints:
    """Processing requested from the capture device."""

    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


class AudioTrack(ABC):
    """A live input track held by an acquired stream."""

    @property
    @abstractmethod
    def track_id(self) -> str:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the track. Must be safe to call more than once."""
        pass


class AudioStream(ABC):
    """An acquired microphone stream. Owned by exactly one capture session."""

    @property
    @abstractmethod
    def tracks(self) -> List[AudioTrack]:
        pass

    @property
    def mime_type(self) -> str:
        """Recording container negotiated for this stream ("" when unspecified)."""
        return ""

    @abstractmethod
    async def close(self) -> None:
        """
        Release the stream and any processing context attached to it.

        Called after every track has been stopped.
        """
        pass


class AudioCapture(ABC):
    """Abstract microphone acquisition service."""

    @abstractmethod
    def is_supported(self) -> bool:
        """Whether the host can capture audio at all."""
        pass

    @abstractmethod
    async def acquire(self, constraints: AudioConstraints) -> AudioStream:
        """
        Acquire the microphone.

        Args:
            constraints: Processing requested from the device

        Returns:
            The acquired stream

        Raises:
            Any exception on permission denial or device error; the message
            is surfaced to the operator.
        """
        pass

    def cancel(self) -> None:
        """
        Abandon an ``acquire()`` that has not completed yet.

        The pending call should fail promptly. Implementations without
        outstanding requests may ignore it.
        """
        pass
