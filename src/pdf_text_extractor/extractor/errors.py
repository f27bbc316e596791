"""Exception taxonomy for extraction backends.

Backends raise these internally and convert them into an
:class:`~pdf_text_extractor.extractor.types.ExtractionAttempt` at their own
boundary -- none of them is allowed to reach the orchestrator.
"""

from pdf_text_extractor.extractor.types import ErrorKind


class ExtractionError(Exception):
    """Base exception for backend failures."""

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str = "Extraction failed"):
        self.message = message
        super().__init__(self.message)


class BackendUnavailable(ExtractionError):
    kind = ErrorKind.BACKEND_UNAVAILABLE

    def __init__(self, backend: str, reason: str = "not configured"):
        super().__init__(f"{backend} backend unavailable: {reason}")


class BackendTransportFailure(ExtractionError):
    kind = ErrorKind.TRANSPORT_FAILURE


class BackendDecodeFailure(ExtractionError):
    kind = ErrorKind.DECODE_FAILURE


class ProviderProcessingError(ExtractionError):
    kind = ErrorKind.PROVIDER_ERROR


class QualityRejected(ExtractionError):
    kind = ErrorKind.QUALITY_REJECTED

    def __init__(self, ratio: float, threshold: float):
        self.ratio = ratio
        self.threshold = threshold
        super().__init__(f"script ratio {ratio:.3f} below threshold {threshold:.3f}")


class JobTimeout(ExtractionError):
    kind = ErrorKind.JOB_TIMEOUT

    def __init__(self, job_id: str, deadline_seconds: float, last_state: str = ""):
        self.job_id = job_id
        super().__init__(
            f"job {job_id} not finished after {deadline_seconds:g}s "
            f"(last state={last_state or 'unknown'})"
        )


class JobFailed(ExtractionError):
    kind = ErrorKind.JOB_FAILED

    def __init__(self, job_id: str, state: str):
        self.job_id = job_id
        super().__init__(f"job {job_id} ended in state {state}")
