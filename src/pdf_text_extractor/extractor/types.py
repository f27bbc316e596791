"""Shared types for the extraction pipeline.

Defines the document value, per-backend attempts, the async job record and
the orchestrator's final result, used across all backend modules, the
script-ratio gate and the orchestration service.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

PDF_CONTENT_TYPE = "application/pdf"


class BackendName(Enum):
    """Extraction backend that produced an attempt or result."""

    PARSE_JOB = "parse_job"
    LOCAL = "local"
    OCR = "ocr"


class AttemptOutcome(Enum):
    """How a single backend attempt ended."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INCONCLUSIVE = "inconclusive"


class ErrorKind(Enum):
    """Why an attempt (or the whole waterfall) did not yield usable text."""

    BACKEND_UNAVAILABLE = "backend_unavailable"
    TRANSPORT_FAILURE = "transport_failure"
    DECODE_FAILURE = "decode_failure"
    PROVIDER_ERROR = "provider_error"
    QUALITY_REJECTED = "quality_rejected"
    JOB_TIMEOUT = "job_timeout"
    JOB_FAILED = "job_failed"
    NO_TEXT = "no_text"
    UNEXPECTED = "unexpected"
    ALL_BACKENDS_EXHAUSTED = "all_backends_exhausted"


class JobState(Enum):
    """Lifecycle of a cloud parsing job."""

    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED)


@dataclass(frozen=True)
class Document:
    """An uploaded PDF held in memory for one extraction request.

    Attributes:
        data: Raw PDF bytes.
        filename: Original upload filename.
        content_type: Declared MIME type.
    """

    data: bytes
    filename: str = "document.pdf"
    content_type: str = PDF_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ExtractionAttempt:
    """Result of running one backend against one document.

    Attributes:
        backend: Which backend produced this attempt.
        outcome: succeeded / failed / inconclusive.
        text: Extracted text (possibly empty).
        page_count: Number of pages, 0 if unknown.
        error: Error description if the attempt did not succeed.
        error_kind: Classification of the error, if any.
        elapsed_seconds: Wall-clock time spent in the backend.
    """

    backend: BackendName
    outcome: AttemptOutcome
    text: str = ""
    page_count: int = 0
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    elapsed_seconds: float = 0.0

    @property
    def has_text(self) -> bool:
        return bool(self.text.strip())


@dataclass
class ExtractionJob:
    """A cloud parsing job tracked by a single polling loop.

    ``submitted_at`` and ``deadline`` are ``time.monotonic()`` readings so
    the polling ceiling is measured from submission, not iteration count.
    """

    job_id: str
    submitted_at: float
    deadline: float
    state: JobState = JobState.SUBMITTED
    raw_state: str = ""
    polls: int = 0


@dataclass
class ExtractionResult:
    """Final output of the extraction waterfall for one document.

    Attributes:
        text: Extracted text, empty when no backend produced usable text.
        page_count: Number of pages reported by the winning backend.
        backend: Backend that produced the text, or None.
        attempts: Every attempt made, in waterfall order.
        error_kind: Set to ALL_BACKENDS_EXHAUSTED on the terminal empty result.
    """

    text: str = ""
    page_count: int = 0
    backend: Optional[BackendName] = None
    attempts: list[ExtractionAttempt] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None

    @property
    def char_count(self) -> int:
        return len(self.text)

    @property
    def is_empty(self) -> bool:
        return not self.text
