"""Cloud parsing job backend: upload, then poll until the job finishes.

Two-phase protocol against a LlamaParse-style API:

1. **Submission** -- multipart upload to ``{base_url}{upload_path}``. The
   response should carry a job id (``id``, ``job.id`` or ``job_id``). A
   response without one is treated as a synchronous result and searched for
   text directly.
2. **Polling** -- ``GET {base_url}{job_path}`` at a fixed interval until the
   job reaches a terminal state or the deadline (measured from job creation,
   so slow polls count against it) passes. Polling is driven by tenacity
   with a non-blocking ``asyncio.sleep`` between requests. On timeout the job
   is abandoned, not cancelled remotely.

Text is read from the first matching response shape in ``TEXT_EXTRACTORS``.
A job that succeeds without any text is ``inconclusive``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_result, wait_fixed

from pdf_text_extractor.config.settings import ParseJobSettings
from pdf_text_extractor.extractor.base import ExtractionBackend
from pdf_text_extractor.extractor.errors import (
    BackendTransportFailure,
    BackendUnavailable,
    JobFailed,
    JobTimeout,
    ProviderProcessingError,
)
from pdf_text_extractor.extractor.types import (
    PDF_CONTENT_TYPE,
    AttemptOutcome,
    BackendName,
    Document,
    ErrorKind,
    ExtractionAttempt,
    ExtractionJob,
    JobState,
)

logger = logging.getLogger(__name__)

_STATE_ALIASES: dict[str, JobState] = {
    "SUCCESS": JobState.SUCCEEDED,
    "SUCCEEDED": JobState.SUCCEEDED,
    "COMPLETED": JobState.SUCCEEDED,
    "FAILED": JobState.FAILED,
    "ERROR": JobState.FAILED,
    "CANCELLED": JobState.CANCELLED,
    "CANCELED": JobState.CANCELLED,
}


# ---------------------------------------------------------------------------
# Typed response extractors -- each returns a value or None; first wins.
# ---------------------------------------------------------------------------


@dataclass
class TextCandidate:
    text: str
    page_count: int = 0
    source: str = ""


def _dig(payload: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(payload, dict):
            return None
        payload = payload.get(key)
    return payload


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _text_field(*keys: str) -> Callable[[Any], Optional[TextCandidate]]:
    source = ".".join(keys)

    def extract(payload: Any) -> Optional[TextCandidate]:
        text = _clean(_dig(payload, *keys))
        return TextCandidate(text, source=source) if text else None

    return extract


def _fragment_list(
    key: str, *fields: str
) -> Callable[[Any], Optional[TextCandidate]]:
    """Join ``payload[key][*].<first non-empty of fields>`` with blank lines."""
    source = f"{key}[].{'|'.join(fields)}"

    def extract(payload: Any) -> Optional[TextCandidate]:
        items = _dig(payload, key)
        if not isinstance(items, list):
            return None
        parts = []
        for item in items:
            if not isinstance(item, dict):
                continue
            for name in fields:
                value = item.get(name)
                if isinstance(value, str) and value:
                    parts.append(value)
                    break
        text = _clean("\n\n".join(parts))
        if not text:
            return None
        page_count = len(items) if key == "pages" else 0
        return TextCandidate(text, page_count=page_count, source=source)

    return extract


TEXT_EXTRACTORS: list[Callable[[Any], Optional[TextCandidate]]] = [
    _text_field("text"),
    _text_field("output"),
    _text_field("result", "text"),
    _text_field("result", "output"),
    _fragment_list("pages", "text"),
    _fragment_list("documents", "text", "content"),
]

JOB_ID_PATHS: list[tuple[str, ...]] = [("id",), ("job", "id"), ("job_id",)]


def extract_text_candidate(payload: Any) -> Optional[TextCandidate]:
    """Return the first non-empty text candidate found in *payload*."""
    for extractor in TEXT_EXTRACTORS:
        candidate = extractor(payload)
        if candidate is not None:
            return candidate
    return None


def extract_job_id(payload: Any) -> Optional[str]:
    """Return the job id from an upload response, or None."""
    for path in JOB_ID_PATHS:
        value = _dig(payload, *path)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_job_state(payload: Any) -> tuple[JobState, str]:
    """Map the provider's state/status string onto :class:`JobState`.

    Unknown or missing states count as still running.
    """
    raw = _dig(payload, "state") or _dig(payload, "status") or ""
    raw = str(raw).strip().upper()
    return _STATE_ALIASES.get(raw, JobState.RUNNING), raw


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class ParseJobBackend(ExtractionBackend):
    name = BackendName.PARSE_JOB

    def __init__(
        self,
        settings: ParseJobSettings,
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._settings = settings
        self._client = http_client
        self._clock = clock
        self._sleep = sleep

    @property
    def available(self) -> bool:
        return self._settings.is_configured

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        return self._settings.base_url.rstrip("/") + path

    def _preview(self, payload: Any) -> str:
        try:
            dumped = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError):
            dumped = repr(payload)
        return dumped[: self._settings.response_preview_chars]

    async def _request_json(
        self, method: str, url: str, timeout: float, **kwargs
    ) -> Any:
        """Send one request bounded by *timeout* seconds in total."""
        try:
            async with asyncio.timeout(timeout):
                response = await self._client.request(
                    method, url, headers=self._headers, timeout=timeout, **kwargs
                )
            response.raise_for_status()
        except TimeoutError as e:
            raise BackendTransportFailure(
                f"{method} {url} exceeded {timeout:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise BackendTransportFailure(f"{method} {url} failed: {e!r}") from e
        try:
            return response.json()
        except ValueError as e:
            raise ProviderProcessingError(f"non-JSON response from {url}") from e

    async def _submit(self, document: Document) -> Any:
        payload = await self._request_json(
            "POST",
            self._url(self._settings.upload_path),
            files={"file": (document.filename, document.data, PDF_CONTENT_TYPE)},
            timeout=self._settings.upload_timeout_seconds,
        )
        logger.debug("Parse job upload response (preview): %s", self._preview(payload))
        return payload

    async def _poll_once(self, job: ExtractionJob) -> Any:
        payload = await self._request_json(
            "GET",
            self._url(self._settings.job_path.format(job_id=job.job_id)),
            timeout=self._settings.poll_timeout_seconds,
        )
        job.polls += 1
        job.state, job.raw_state = parse_job_state(payload)
        logger.debug(
            "Parse job %s poll #%d state=%s (preview): %s",
            job.job_id,
            job.polls,
            job.raw_state or "-",
            self._preview(payload),
        )
        return payload

    def _stop_at_deadline(self, job: ExtractionJob) -> Callable[[RetryCallState], bool]:
        interval = self._settings.poll_interval_seconds

        def stop(retry_state: RetryCallState) -> bool:
            # Next poll would start at or past the deadline
            return self._clock() + interval >= job.deadline

        return stop

    async def _poll_until_terminal(self, job: ExtractionJob) -> Any:
        """Poll *job* until terminal, returning the final status payload.

        Raises:
            JobTimeout: deadline reached while the job was still running.
            BackendTransportFailure: any poll request failed.
        """
        retrying = AsyncRetrying(
            stop=self._stop_at_deadline(job),
            wait=wait_fixed(self._settings.poll_interval_seconds),
            retry=retry_if_result(lambda _payload: not job.state.is_terminal),
            sleep=self._sleep,
        )
        try:
            return await retrying(self._poll_once, job)
        except RetryError as e:
            raise JobTimeout(
                job.job_id, self._settings.job_deadline_seconds, job.raw_state
            ) from e

    async def _extract(self, document: Document) -> ExtractionAttempt:
        if not self.available:
            raise BackendUnavailable("parse_job", "base URL or API key missing")

        logger.info("Submitting %s to parse job provider", document.filename)
        payload = await self._submit(document)

        job_id = extract_job_id(payload)
        if not job_id:
            candidate = extract_text_candidate(payload)
            if candidate is None:
                raise ProviderProcessingError(
                    "upload response carried neither a job id nor text"
                )
            logger.info(
                "Parse job upload returned text synchronously (%s, %d chars)",
                candidate.source,
                len(candidate.text),
            )
            return ExtractionAttempt(
                backend=self.name,
                outcome=AttemptOutcome.SUCCEEDED,
                text=candidate.text,
                page_count=candidate.page_count,
            )

        created = self._clock()
        job = ExtractionJob(
            job_id=job_id,
            submitted_at=created,
            deadline=created + self._settings.job_deadline_seconds,
        )
        logger.info("Parse job %s submitted, polling", job_id)

        payload = await self._poll_until_terminal(job)

        if job.state is not JobState.SUCCEEDED:
            raise JobFailed(job_id, job.raw_state)

        candidate = extract_text_candidate(payload)
        if candidate is None:
            logger.warning(
                "Parse job %s succeeded after %d polls but carried no text",
                job_id,
                job.polls,
            )
            return ExtractionAttempt(
                backend=self.name,
                outcome=AttemptOutcome.INCONCLUSIVE,
                error=f"job {job_id} succeeded without text",
                error_kind=ErrorKind.NO_TEXT,
            )

        logger.info(
            "Parse job %s succeeded after %d polls (%s, %d chars)",
            job_id,
            job.polls,
            candidate.source,
            len(candidate.text),
        )
        return ExtractionAttempt(
            backend=self.name,
            outcome=AttemptOutcome.SUCCEEDED,
            text=candidate.text,
            page_count=candidate.page_count,
        )
