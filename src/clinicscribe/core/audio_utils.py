"""
Audio helpers for speech engine locales and recording container negotiation.
"""

import logging
from typing import Iterable, Optional

from .constants import DEFAULT_SPEECH_LOCALE, RECORDING_MIME_TYPES, SPEECH_LOCALES

logger = logging.getLogger(__name__)


def get_speech_locale(language: Optional[str]) -> str:
    """
    Map a dictation language code to the speech engine locale.

    Already-qualified locales such as ``en-IN`` are passed through unchanged;
    unknown codes fall back to ``en-US``.
    """
    if not language:
        return DEFAULT_SPEECH_LOCALE
    code = language.strip()
    if "-" in code:
        base, region = code.split("-", 1)
        return f"{base.lower()}-{region.upper()}"
    locale = SPEECH_LOCALES.get(code.lower())
    if locale is None:
        logger.debug(f"No speech locale for language '{code}', using {DEFAULT_SPEECH_LOCALE}")
        return DEFAULT_SPEECH_LOCALE
    return locale


def pick_recording_mime_type(supported: Iterable[str]) -> str:
    """
    Pick the preferred recording container the client supports.

    Returns an empty string when none match, which lets the client choose
    its default container.
    """
    available = {mime.strip().lower() for mime in supported if mime}
    for mime in RECORDING_MIME_TYPES:
        if mime in available:
            return mime
    return ""
