"""
Transcript aggregation for a dictation session.

Turns the stream of recognition events into the ordered, speaker-tagged
transcript of a consultation and keeps a separate live preview of
not-yet-final text.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Tuple

from ...domain.entities.note import GeneratedNote
from ...domain.entities.transcript import RecognitionEvent, TranscriptEntry, format_transcript
from ...domain.enums.dictation import Speaker
from ...domain.errors import PersistenceWarning
from ...domain.value_objects.consultation_id import ConsultationId
from ..ports.repositories.transcript_repo import TranscriptRepository

logger = logging.getLogger("clinicscribe.transcript")

DEFAULT_CONFIDENCE_THRESHOLD = 0.7

Snapshot = Tuple[TranscriptEntry, ...]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TranscriptAggregator:
    """
    Owns the transcript of one consultation.

    Entries are only ever appended, or emptied all at once by ``reset()``.
    Consumers get read-only tuple snapshots.

    Args:
        consultation_id: Consultation the transcript belongs to
        repository: Auto-save target; ``None`` disables persistence
        confidence_threshold: Minimum confidence of a final result
        speaker: Speaker tag for the first entry
        clock: Timestamp source (UTC)
        on_update: Called with the snapshot after every mutation
        on_preview: Called with the live preview text whenever it changes
        on_warning: Called with a PersistenceWarning when auto-save fails
    """

    def __init__(
        self,
        consultation_id: ConsultationId,
        repository: Optional[TranscriptRepository] = None,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        speaker: Speaker = Speaker.DOCTOR,
        clock: Callable[[], datetime] = _utcnow,
        on_update: Optional[Callable[[Snapshot], None]] = None,
        on_preview: Optional[Callable[[str], None]] = None,
        on_warning: Optional[Callable[[PersistenceWarning], None]] = None,
        bearer_token: Optional[str] = None,
    ) -> None:
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError("Confidence threshold must be between 0.0 and 1.0")
        self._consultation_id = consultation_id
        self._repository = repository
        self._threshold = confidence_threshold
        self._speaker = speaker
        self._clock = clock
        self._on_update = on_update
        self._on_preview = on_preview
        self._on_warning = on_warning
        self._bearer_token = bearer_token

        self._entries: List[TranscriptEntry] = []
        self._preview = ""
        self._note: Optional[GeneratedNote] = None
        self._session_id = 0
        self._pending: Set[asyncio.Task] = set()
        self._last_save: Optional[asyncio.Task] = None

    @property
    def consultation_id(self) -> ConsultationId:
        return self._consultation_id

    @property
    def confidence_threshold(self) -> float:
        return self._threshold

    @property
    def speaker(self) -> Speaker:
        return self._speaker

    @property
    def entries(self) -> Snapshot:
        return tuple(self._entries)

    @property
    def preview(self) -> str:
        return self._preview

    @property
    def note(self) -> Optional[GeneratedNote]:
        return self._note

    @property
    def session_id(self) -> int:
        """Advances on every reset; used to spot results of an earlier transcript."""
        return self._session_id

    def set_speaker(self, speaker: Speaker) -> None:
        """Tag whichever entry is finalized next with ``speaker``."""
        self._speaker = Speaker(speaker)

    def transcript_text(self) -> str:
        return format_transcript(self._entries)

    def ingest(self, event: RecognitionEvent) -> Optional[TranscriptEntry]:
        """
        Process one recognition event.

        Returns the appended entry, or ``None`` for interim and
        low-confidence results.
        """
        if not event.is_final:
            self._set_preview(event.text)
            return None

        # Low-confidence finals are noise: no entry, and the partial text goes too
        if event.confidence < self._threshold:
            logger.debug(
                f"Discarded final result below threshold "
                f"(confidence={event.confidence:.2f}, threshold={self._threshold:.2f})"
            )
            self._set_preview("")
            return None

        text = event.text.strip()
        if not text:
            self._set_preview("")
            return None

        timestamp = self._clock()
        if self._entries and timestamp < self._entries[-1].timestamp:
            timestamp = self._entries[-1].timestamp

        entry = TranscriptEntry(
            speaker=self._speaker,
            text=text,
            confidence=event.confidence,
            timestamp=timestamp,
        )
        self._entries.append(entry)
        self._set_preview("")

        snapshot = self.entries
        self._persist(snapshot)
        self._notify(snapshot)
        return entry

    def reset(self) -> None:
        """Empty the transcript and drop any generated note."""
        self._entries = []
        self._note = None
        self._session_id += 1
        self._set_preview("")
        logger.info(f"Transcript cleared for consultation {self._consultation_id}")
        self._notify(())

    def apply_note(self, note: GeneratedNote, session_id: int) -> bool:
        """
        Store a generated note produced from transcript ``session_id``.

        Returns False, leaving state untouched, when the transcript has been
        reset since the request was issued.
        """
        if session_id != self._session_id or not self._entries:
            logger.info(
                f"Discarded generated note for consultation {self._consultation_id}: "
                f"transcript changed while the request was in flight"
            )
            return False
        self._note = note
        return True

    async def flush(self) -> None:
        """Wait for in-flight auto-saves."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _set_preview(self, text: str) -> None:
        if text == self._preview:
            return
        self._preview = text
        if self._on_preview:
            self._on_preview(text)

    def _notify(self, snapshot: Snapshot) -> None:
        if self._on_update:
            self._on_update(snapshot)

    def _persist(self, snapshot: Snapshot) -> None:
        if self._repository is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._warn("no running event loop to save the transcript")
            return
        # Saves are chained; the newest snapshot is always written last
        task = loop.create_task(self._save(snapshot, self._last_save))
        self._last_save = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, snapshot: Snapshot, previous: Optional[asyncio.Task]) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        try:
            await self._repository.save_entries(
                self._consultation_id, snapshot, bearer_token=self._bearer_token
            )
        except Exception as e:
            self._warn(getattr(e, "message", None) or str(e) or type(e).__name__)
        else:
            logger.debug(
                f"Saved {len(snapshot)} transcript entries for consultation {self._consultation_id}"
            )

    def _warn(self, cause: str) -> None:
        warning = PersistenceWarning(str(self._consultation_id), cause)
        logger.warning(warning.message, extra={"extra_data": warning.details})
        if self._on_warning:
            self._on_warning(warning)
