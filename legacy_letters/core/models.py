"""
Pydantic v2 request / response models and shared enums.

Catalog: Question, Section
Questionnaire: snapshot, navigation, entities, timer beacon
Admin: submission summaries
WebSocket: questionnaire channel and dictation messages
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

AnswerValue = str | list[str]

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class QuestionType(StrEnum):
    """Input widget variants a question can be rendered with."""

    text = "text"
    textarea = "textarea"
    dropdown = "dropdown"
    multiselect = "multiselect"
    multi_dropdown = "multi-dropdown"
    story = "story"
    voice = "voice"
    child_section = "child-section"
    spouse_section = "spouse-section"
    asset_section = "asset-section"


class Question(BaseModel):
    """Static question definition."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType
    text: str
    options: list[str] = Field(default_factory=list)
    placeholder: str = ""
    help_text: str = ""
    subtitle: str = ""
    max_selections: int | None = None
    max_length: int | None = None
    required: bool = False


class Section(BaseModel):
    """An ordered group of questions shown on one page."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    questions: list[Question] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Questionnaire
# ---------------------------------------------------------------------------


class SubmissionStatus(StrEnum):
    """Lifecycle of a user's submission."""

    in_progress = "in_progress"
    completed = "completed"


class QuestionnairePhase(StrEnum):
    """States of the questionnaire state machine."""

    initializing = "initializing"
    redirected = "redirected"
    active = "active"
    submitting = "submitting"
    done = "done"


class NavigationOutcome(StrEnum):
    """What the caller should do after a section transition."""

    advanced = "advanced"
    completed = "completed"
    retreated = "retreated"
    exit = "exit"
    jumped = "jumped"


class EntityKind(StrEnum):
    """Repeatable sub-form kinds."""

    child = "child"
    spouse = "spouse"
    asset = "asset"
    story = "story"


class TimerUrgency(StrEnum):
    """Display bands for the countdown."""

    normal = "normal"
    warning = "warning"
    expired = "expired"


class QuestionnaireSnapshot(BaseModel):
    """Serializable view of one user's live questionnaire."""

    submission_id: str | None = None
    phase: QuestionnairePhase
    status: SubmissionStatus = SubmissionStatus.in_progress
    current_section_index: int = 1
    total_sections: int
    time_remaining: int = 0
    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    entity_counts: dict[str, int] = Field(default_factory=dict)


class AnswerSaveRequest(BaseModel):
    """PUT /questionnaire/answers/{question_id} body."""

    value: AnswerValue


class AnswerSaveResponse(BaseModel):
    """Accepted answer; persistence continues in the background."""

    question_id: str
    value: AnswerValue
    pending_writes: int = 0


class NavigationResponse(BaseModel):
    """Result of a section transition."""

    outcome: NavigationOutcome
    questionnaire: QuestionnaireSnapshot


class EntityAddRequest(BaseModel):
    """POST /questionnaire/entities/{kind} body; ``question_id`` is required for stories."""

    question_id: str | None = None


class EntityAddResponse(BaseModel):
    """The repeatable entity block that was appended."""

    kind: EntityKind
    index: int
    key: str
    count: int


class NavigationEntry(BaseModel):
    """One row of the progress overview."""

    id: int
    title: str
    current: bool = False


class NavigationOverview(BaseModel):
    """GET /questionnaire/navigation response."""

    open: bool = False
    current_section_index: int
    total_sections: int
    progress_percent: float
    entries: list[NavigationEntry] = Field(default_factory=list)


class TimerBeaconRequest(BaseModel):
    """POST /timer body; accepts the browser beacon's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    submission_id: str | None = Field(None, alias="submissionId")
    time_remaining: int | None = Field(None, alias="timeRemaining", ge=0)


class TimerBeaconResponse(BaseModel):
    """POST /timer response."""

    success: bool = True


class DeleteSubmissionResponse(BaseModel):
    """DELETE /questionnaire response."""

    submission_id: str
    deleted: bool = True
    answers_deleted: int = 0


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class SubmissionSummary(BaseModel):
    """Row of the admin submission list."""

    id: str
    user_id: str
    status: SubmissionStatus
    current_section_index: int
    time_remaining: int
    submitted_at: datetime | None = None
    created_at: datetime
    answer_count: int = 0
    signer_name: str = "Anonymous"
    initials: str = "NA"
    preview: str = ""


class SubmissionDetail(SubmissionSummary):
    """Admin detail view with decoded answers."""

    answers: dict[str, AnswerValue] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Transcription / WebSocket
# ---------------------------------------------------------------------------


class ModelStatus(StrEnum):
    """Speech model load status."""

    idle = "idle"
    loading = "loading"
    ready = "ready"
    error = "error"


class RecordingStatus(StrEnum):
    """Recording controller status."""

    idle = "idle"
    recording = "recording"
    transcribing = "transcribing"


class AudioFormat(StrEnum):
    """Container of the audio delivered by a source."""

    pcm16 = "pcm16"
    webm = "webm"
    ogg = "ogg"
    mp4 = "mp4"
    wav = "wav"


class TranscriptionResult(BaseModel):
    """Text produced from one recorded clip."""

    text: str
    language: str = "unknown"
    duration: float = 0.0


class WebSocketMessageType(StrEnum):
    """Discriminator for messages sent over the WebSocket endpoints."""

    connected = "connected"
    timer = "timer"
    status = "status"
    model_progress = "model_progress"
    transcript = "transcript"
    error = "error"


class WebSocketMessage(BaseModel):
    """JSON message sent from server to client over WebSocket."""

    type: WebSocketMessageType
    data: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope returned by the API."""

    detail: str
    code: str
    timestamp: str
