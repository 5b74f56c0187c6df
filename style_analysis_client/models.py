from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    queued = "queued"
    running = "running"
    completed = "completed"
    failed = "failed"

    @classmethod
    def parse(cls, value: Any) -> Optional["JobStatus"]:
        """Normalize a raw status string; None means the status is unknown or absent"""
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        normalized = _STATUS_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed)


_STATUS_ALIASES = {
    "pending": "queued",
    "submitted": "queued",
    "processing": "running",
    "in_progress": "running",
    "error": "failed",
}


class Dialect(str, Enum):
    american_english = "american_english"
    australian_english = "australian_english"
    british_oxford = "british_oxford"
    canadian_english = "canadian_english"
    indian_english = "indian_english"


class Tone(str, Enum):
    academic = "academic"
    business = "business"
    casual = "casual"
    conversational = "conversational"
    formal = "formal"
    gen_z = "gen-z"
    informal = "informal"
    technical = "technical"


class StyleGuideName(str, Enum):
    ap = "ap"
    chicago = "chicago"
    microsoft = "microsoft"


class IssueCategory(str, Enum):
    grammar = "grammar"
    simple_vocab = "simple_vocab"
    sentence_structure = "sentence_structure"
    sentence_length = "sentence_length"
    tone = "tone"
    style_guide = "style_guide"
    terminology = "terminology"


class StatusResponse(BaseModel):
    workflow_id: str
    status: Optional[JobStatus]
    raw_response: Dict[str, Any]
    elapsed_time: float
    attempts: int = 1


class StatusPollingConfig(BaseModel):
    poll_interval: float = Field(default=2.0, ge=0)
    backoff_factor: float = Field(default=1.0, ge=1.0)
    max_delay: Optional[float] = Field(default=None, ge=0)
    max_attempts: int = Field(default=30, ge=1)
    timeout: Optional[float] = Field(default=None, gt=0)  # wall-clock bound, seconds
    jitter: bool = False


class ClientConfig(BaseModel):
    platform_url: str
    api_key: str
    auth_scheme: Literal["api_key", "bearer"] = "api_key"
    request_timeout: float = Field(default=60.0, gt=0)
    polling: StatusPollingConfig = Field(default_factory=StatusPollingConfig)

    @field_validator("platform_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("platform_url must not be empty")
        return value

    @field_validator("api_key")
    @classmethod
    def _require_api_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("api_key must not be empty")
        return value

    def url_for(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.platform_url}{path}"


class NoContent:
    """Marker for a successful response that carried no body (e.g. HTTP 204)"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT = NoContent()


class FormField(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: Union[str, bytes]
    filename: Optional[str] = None
    content_type: Optional[str] = None


class FormPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    parts: Tuple[FormField, ...] = ()

    def build(self) -> aiohttp.FormData:
        """Build a fresh FormData; aiohttp form bodies can only be sent once"""
        form = aiohttp.FormData()
        for field in self.parts:
            form.add_field(
                field.name,
                field.value,
                filename=field.filename,
                content_type=field.content_type,
            )
        return form


class RequestEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    headers: Dict[str, str] = Field(default_factory=dict)
    json_body: Optional[Any] = None
    form: Optional[FormPayload] = None


MIME_TYPES = {
    "pdf": "application/pdf",
    "txt": "text/plain",
    "md": "text/markdown",
    "html": "text/html",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
}


def get_mime_type(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return MIME_TYPES.get(extension, "application/octet-stream")


class GuidanceSettings(BaseModel):
    dialect: Dialect = Dialect.american_english
    tone: Tone = Tone.formal
    style_guide: str

    @field_validator("style_guide")
    @classmethod
    def _require_style_guide(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("style_guide must be a style guide id or name")
        return value


class AnalysisRequest(BaseModel):
    content: Union[str, bytes]
    guidance: GuidanceSettings
    document_name: str = "unknown.txt"
    content_type: Optional[str] = None  # overrides the type guessed from document_name

    @field_validator("content")
    @classmethod
    def _require_content(cls, value: Union[str, bytes]) -> Union[str, bytes]:
        if not value or (isinstance(value, str) and not value.strip()):
            raise ValueError("content must not be empty")
        return value

    def upload_field(self, name: str) -> FormField:
        if isinstance(self.content, str):
            return FormField(
                name=name,
                value=self.content.encode("utf-8"),
                filename=self.document_name,
                content_type=self.content_type or "text/plain",
            )
        return FormField(
            name=name,
            value=self.content,
            filename=self.document_name,
            content_type=self.content_type or get_mime_type(self.document_name),
        )


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    workflow_id: str
    status: Optional[str] = None
    message: Optional[str] = None


class ServerPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


class RewriteResult(ServerPayload):
    merged_text: str
    original_text: Optional[str] = None
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    initial_scores: Optional[Dict[str, Any]] = None
    final_scores: Optional[Dict[str, Any]] = None
    results: List[Dict[str, Any]] = Field(default_factory=list)
    error_message: Optional[str] = None


class CheckResult(ServerPayload):
    merged_text: Optional[str] = None
    original_text: Optional[str] = None
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    initial_scores: Optional[Dict[str, Any]] = None
    final_scores: Optional[Dict[str, Any]] = None
    results: List[Dict[str, Any]] = Field(default_factory=list)


class Scores(ServerPayload):
    avg_sentence_length: Optional[float] = None
    avg_word_length: Optional[float] = None
    complexity_score: Optional[float] = None
    readability_score: Optional[float] = None
    sentence_count: Optional[int] = None
    vocabulary_score: Optional[float] = None
    word_count: Optional[int] = None
    overall_score: Optional[float] = None


class Issue(ServerPayload):
    original: str
    char_index: int
    category: str
    subcategory: Optional[str] = None
    suggestion: Optional[str] = None


class CheckOptions(ServerPayload):
    style_guide: Optional[Dict[str, Any]] = None
    dialect: Optional[str] = None
    tone: Optional[str] = None


class StyleCheckResult(ServerPayload):
    status: JobStatus
    style_guide_id: Optional[str] = None
    scores: Scores
    issues: List[Issue] = Field(default_factory=list)
    check_options: Optional[CheckOptions] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        return JobStatus.parse(value) or value


class StyleSuggestionResult(StyleCheckResult):
    pass


class StyleRewriteResult(StyleSuggestionResult):
    rewrite: str


class StyleGuide(ServerPayload):
    id: str
    name: str
    created_at: Optional[str] = None
    created_by: Optional[str] = None
    status: Optional[str] = None
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None


def file_url_to_path(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme}. Only file:// URLs are supported.")
    return Path(url2pathname(parsed.path))


def require_pdf(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension != "pdf":
        raise ValueError(
            f"Unsupported file type: {extension or 'none'}. Only .pdf files are supported."
        )
    return filename


class StyleGuideUpload(BaseModel):
    name: str
    filename: str
    content: bytes

    @field_validator("filename")
    @classmethod
    def _require_pdf(cls, value: str) -> str:
        return require_pdf(value)

    @classmethod
    def from_path(
        cls, path: Union[str, Path], name: Optional[str] = None
    ) -> "StyleGuideUpload":
        if isinstance(path, str) and "://" in path:
            path = file_url_to_path(path)
        path = Path(path)
        require_pdf(path.name)
        return cls(name=name or path.stem, filename=path.name, content=path.read_bytes())


class StyleGuideUpdate(BaseModel):
    name: Optional[str] = None


class ScoreColor(BaseModel):
    value: str
    min_score: float


class Constants(ServerPayload):
    dialects: List[str] = Field(default_factory=list)
    tones: List[str] = Field(default_factory=list)
    style_guides: Dict[str, str] = Field(default_factory=dict)
    colors: Dict[str, ScoreColor] = Field(default_factory=dict)


class FeedbackRequest(BaseModel):
    workflow_id: str
    run_id: str
    helpful: bool
    feedback: Optional[str] = None
    original: Optional[str] = None
    suggestion: Optional[str] = None
    category: Optional[str] = None
