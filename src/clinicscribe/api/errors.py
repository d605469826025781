class APIError(Exception):
    def __init__(self, code: str, message: str, http_status: int = 400, details: dict = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details


class ValidationError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("INVALID_INPUT", message, 422, details)


# Domain error codes mapped to HTTP status
DICTATION_ERROR_STATUS = {
    "UNSUPPORTED_CAPABILITY": 400,
    "ACQUISITION_FAILED": 409,
    "ENGINE_ERROR": 409,
    "EMPTY_TRANSCRIPT": 422,
    "NOTE_GENERATION_FAILED": 502,
    "PERSISTENCE_WARNING": 502,
}


def status_for_dictation_error(error_code: str) -> int:
    return DICTATION_ERROR_STATUS.get(error_code or "", 400)
