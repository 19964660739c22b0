"""
Legacy Letters exception hierarchy.

All application-specific exceptions inherit from LegacyLettersError,
enabling centralized error handling in the API middleware layer.
"""

from datetime import UTC, datetime


class LegacyLettersError(Exception):
    """Base exception for all Legacy Letters errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "LEGACY_LETTERS_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class UnauthenticatedError(LegacyLettersError):
    """Raised when a questionnaire request carries no authenticated user."""

    def __init__(self, login_url: str = "/login") -> None:
        self.login_url = login_url
        super().__init__(
            detail=f"Authentication required. Sign in at {login_url}",
            code="AUTH_REQUIRED",
            status_code=401,
        )


class SubmissionNotFoundError(LegacyLettersError):
    """Raised when a submission ID does not exist."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(
            detail=f"Submission not found: {submission_id}",
            code="SUBMISSION_NOT_FOUND",
            status_code=404,
        )


class QuestionNotFoundError(LegacyLettersError):
    """Raised when an answer targets a question outside the catalog."""

    def __init__(self, question_id: str) -> None:
        super().__init__(
            detail=f"Question not found: {question_id}",
            code="QUESTION_NOT_FOUND",
            status_code=404,
        )


class InvalidAnswerError(LegacyLettersError):
    """Raised when an answer value does not fit its question type."""

    def __init__(self, detail: str = "Invalid answer") -> None:
        super().__init__(detail=detail, code="INVALID_ANSWER", status_code=400)


class SectionOutOfRangeError(LegacyLettersError):
    """Raised when navigation targets a section outside the catalog."""

    def __init__(self, section_id: int, total: int) -> None:
        super().__init__(
            detail=f"Section {section_id} is outside 1..{total}",
            code="SECTION_OUT_OF_RANGE",
            status_code=400,
        )


class QuestionnaireStateError(LegacyLettersError):
    """Raised when an operation is not allowed in the current questionnaire phase."""

    def __init__(self, phase: str, operation: str) -> None:
        super().__init__(
            detail=f"Cannot {operation} while questionnaire is {phase}",
            code="QUESTIONNAIRE_STATE",
            status_code=409,
        )


class PersistenceError(LegacyLettersError):
    """Raised when a durable checkpoint could not be written to the store."""

    def __init__(self, detail: str = "Could not save progress") -> None:
        super().__init__(detail=detail, code="PERSISTENCE_ERROR", status_code=503)


class RecordingAlreadyActiveError(LegacyLettersError):
    """Raised when trying to start a recording while one is already active."""

    def __init__(self) -> None:
        super().__init__(
            detail="A recording is already active",
            code="RECORDING_ALREADY_ACTIVE",
            status_code=409,
        )


class MicrophonePermissionError(LegacyLettersError):
    """Raised by an audio source when microphone access was denied."""

    def __init__(self, detail: str = "Microphone access denied") -> None:
        super().__init__(
            detail=detail,
            code="MICROPHONE_PERMISSION_DENIED",
            status_code=403,
        )


class AudioDeviceError(LegacyLettersError):
    """Raised when no capture device is available or capture fails."""

    def __init__(self, detail: str = "Audio capture failed") -> None:
        super().__init__(detail=detail, code="AUDIO_DEVICE_ERROR", status_code=500)


class ModelLoadError(LegacyLettersError):
    """Raised when the speech recognition model cannot be loaded."""

    def __init__(self, detail: str = "Model load failed") -> None:
        super().__init__(detail=detail, code="MODEL_LOAD_ERROR", status_code=503)


class TranscriptionError(LegacyLettersError):
    """Raised when STT processing fails."""

    def __init__(self, detail: str = "Transcription failed") -> None:
        super().__init__(
            detail=detail,
            code="TRANSCRIPTION_ERROR",
            status_code=500,
        )
