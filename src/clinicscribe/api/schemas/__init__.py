"""
API schemas package.
"""

from .common import ApiResponse, ErrorResponse
from .dictation import (
    LanguageOption,
    NoteResponse,
    NotesGenerateRequest,
    TranscriptEntryIn,
)

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "LanguageOption",
    "NoteResponse",
    "NotesGenerateRequest",
    "TranscriptEntryIn",
]
