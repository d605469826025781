"""
Shared constants for Clinic Scribe.
"""

# Languages offered in the dictation language picker: (code, name, native name)
SUPPORTED_LANGUAGES = [
    ("en", "English", "English"),
    ("hi", "Hindi", "हिंदी"),
    ("bn", "Bengali", "বাংলা"),
    ("ta", "Tamil", "தமிழ்"),
    ("te", "Telugu", "తెలుగు"),
    ("mr", "Marathi", "मराठी"),
    ("gu", "Gujarati", "ગુજરાતી"),
    ("kn", "Kannada", "ಕನ್ನಡ"),
    ("ml", "Malayalam", "മലയാളം"),
    ("pa", "Punjabi", "ਪੰਜਾਬੀ"),
    ("or", "Odia", "ଓଡ଼ିଆ"),
    ("as", "Assamese", "অসমীয়া"),
]

SUPPORTED_LANGUAGE_CODES = frozenset(code for code, _, _ in SUPPORTED_LANGUAGES)

# Speech engine locales keyed by language code
SPEECH_LOCALES = {
    "en": "en-US",
    "hi": "hi-IN",
    "bn": "bn-IN",
    "ta": "ta-IN",
    "te": "te-IN",
    "mr": "mr-IN",
    "gu": "gu-IN",
    "kn": "kn-IN",
    "ml": "ml-IN",
    "pa": "pa-IN",
    "or": "or-IN",
    "as": "as-IN",
}

DEFAULT_SPEECH_LOCALE = "en-US"

# Recording containers in order of preference
RECORDING_MIME_TYPES = [
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/mp4",
    "audio/mpeg",
]

# Logger namespace shared by every module
LOGGER_NAME = "clinicscribe"
