"""
Microphone capture relayed to the client.

``acquire()`` asks the client for the microphone with ``audio.acquire`` and
waits until the socket handler reports ``audio.granted`` or
``audio.denied``.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from ...application.ports.services.audio_capture import (
    AudioCapture,
    AudioConstraints,
    AudioStream,
    AudioTrack,
)
from ...core.audio_utils import pick_recording_mime_type
from .channel import Send

logger = logging.getLogger("clinicscribe.relay")


class MicrophonePermissionError(Exception):
    """The client refused or failed to open the microphone."""


class RelayAudioTrack(AudioTrack):
    def __init__(self, track_id: str):
        self._track_id = track_id
        self.stopped = False

    @property
    def track_id(self) -> str:
        return self._track_id

    def stop(self) -> None:
        self.stopped = True


class RelayAudioStream(AudioStream):
    """Microphone stream held open by the client until ``audio.release``."""

    def __init__(self, send: Send, track_ids: Sequence[str], mime_type: str = ""):
        self._send = send
        self._tracks: List[AudioTrack] = [RelayAudioTrack(t) for t in track_ids]
        self._mime_type = mime_type
        self._closed = False

    @property
    def tracks(self) -> List[AudioTrack]:
        return list(self._tracks)

    @property
    def mime_type(self) -> str:
        return self._mime_type

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._send(
            {"type": "audio.release", "tracks": [t.track_id for t in self._tracks]}
        )


class RelayAudioCapture(AudioCapture):
    """
    Audio capture for a client that announced microphone support.

    Args:
        send: Outbound message writer of the socket
        supported: Whether the client reported an audio capture capability
        mime_types: Recording containers the client can produce
        timeout: Seconds to wait for the permission decision
    """

    def __init__(
        self,
        send: Send,
        supported: bool,
        mime_types: Sequence[str] = (),
        timeout: float = 15.0,
    ):
        self._send = send
        self._supported = supported
        self._mime_type = pick_recording_mime_type(mime_types)
        self._timeout = timeout
        self._pending: Optional[asyncio.Future] = None

    @property
    def mime_type(self) -> str:
        return self._mime_type

    def is_supported(self) -> bool:
        return self._supported

    async def acquire(self, constraints: AudioConstraints) -> AudioStream:
        if self._pending is not None and not self._pending.done():
            logger.warning("Superseding an unanswered microphone request")
            self._pending.set_exception(
                MicrophonePermissionError("Superseded by a newer microphone request")
            )

        future = asyncio.get_running_loop().create_future()
        self._pending = future
        await self._send(
            {
                "type": "audio.acquire",
                "constraints": {
                    "echoCancellation": constraints.echo_cancellation,
                    "noiseSuppression": constraints.noise_suppression,
                    "autoGainControl": constraints.auto_gain_control,
                },
                "mimeType": self._mime_type,
            }
        )
        try:
            track_ids = await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            raise MicrophonePermissionError(
                f"No microphone permission decision within {self._timeout:g} seconds"
            )
        finally:
            if self._pending is future:
                self._pending = None

        return RelayAudioStream(self._send, track_ids, self._mime_type)

    def grant(self, track_ids: Sequence[str]) -> None:
        """Resolve the pending request with the client's track ids."""
        future = self._pending
        if future is None or future.done():
            logger.warning("audio.granted received with no pending microphone request")
            return
        future.set_result(list(track_ids) or ["audio-0"])

    def cancel(self) -> None:
        """Fail the pending request; a late grant or deny is then ignored."""
        future = self._pending
        if future is None or future.done():
            return
        future.set_exception(MicrophonePermissionError("Microphone request cancelled"))

    def deny(self, reason: str = "") -> None:
        """Fail the pending request with the client's reason."""
        future = self._pending
        if future is None or future.done():
            logger.warning("audio.denied received with no pending microphone request")
            return
        future.set_exception(MicrophonePermissionError(reason or "Permission denied"))
