"""
Domain entities package.
"""

from .note import GeneratedNote
from .transcript import RecognitionEvent, TranscriptEntry, format_transcript

__all__ = [
    "GeneratedNote",
    "RecognitionEvent",
    "TranscriptEntry",
    "format_transcript",
]
