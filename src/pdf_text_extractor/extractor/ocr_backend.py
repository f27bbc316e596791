"""Last-resort OCR extraction through the OCR.space HTTP API.

The whole PDF is posted as a multipart upload. Up to three parameter sets
are tried in a fixed order, stopping at the first response that does not
report a processing error:

1. Default engine (engine 1, provider-default language).
2. Engine 2 with automatic language detection.
3. Default engine with the language forced to a single fallback language.

Each try is an independent request; results are never merged. A
transport-level failure (timeout, connection error, HTTP error status) at
any try aborts the sequence and the backend reports ``failed``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pdf_text_extractor.config.settings import OcrSettings
from pdf_text_extractor.extractor.base import ExtractionBackend
from pdf_text_extractor.extractor.errors import (
    BackendTransportFailure,
    BackendUnavailable,
    ProviderProcessingError,
)
from pdf_text_extractor.extractor.types import (
    PDF_CONTENT_TYPE,
    AttemptOutcome,
    BackendName,
    Document,
    ErrorKind,
    ExtractionAttempt,
)

logger = logging.getLogger(__name__)


class OcrParsedResult(BaseModel):
    """One parsed page (or document chunk) from the OCR provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    parsed_text: Optional[str] = Field(default=None, alias="ParsedText")


class OcrResponse(BaseModel):
    """Subset of the OCR provider's JSON response that the backend reads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_errored: bool = Field(default=False, alias="IsErroredOnProcessing")
    error_message: Optional[Union[str, list[str]]] = Field(
        default=None, alias="ErrorMessage"
    )
    parsed_results: Optional[list[OcrParsedResult]] = Field(
        default=None, alias="ParsedResults"
    )

    @property
    def error_text(self) -> str:
        if isinstance(self.error_message, list):
            return ", ".join(str(m) for m in self.error_message)
        return self.error_message or ""

    @property
    def reports_error(self) -> bool:
        """True when the provider flagged a processing error with a message."""
        return self.is_errored and bool(self.error_text)

    @property
    def fragments(self) -> list[str]:
        return [r.parsed_text or "" for r in self.parsed_results or []]


def _flag(value: bool) -> str:
    return "true" if value else "false"


class OcrBackend(ExtractionBackend):
    name = BackendName.OCR

    def __init__(self, settings: OcrSettings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def available(self) -> bool:
        return self._settings.is_configured

    @property
    def endpoint(self) -> str:
        return self._settings.base_url.rstrip("/") + self._settings.parse_path

    def parameter_sets(self) -> list[tuple[str, dict[str, str]]]:
        """Ordered (label, extra form fields) tries; bounded at three."""
        s = self._settings
        return [
            ("default", {}),
            (
                f"engine {s.retry_engine}/{s.retry_language}",
                {"OCREngine": s.retry_engine, "language": s.retry_language},
            ),
            (f"language {s.fallback_language}", {"language": s.fallback_language}),
        ]

    def _form_fields(self, extra: dict[str, str]) -> dict[str, str]:
        s = self._settings
        fields = {
            "apikey": s.api_key,
            "OCREngine": s.default_engine,
            "filetype": "PDF",
            "detectOrientation": _flag(s.detect_orientation),
            "isTable": _flag(s.is_table),
            "scale": _flag(s.scale),
        }
        if s.language:
            fields["language"] = s.language
        fields.update(extra)
        return fields

    async def _call(self, document: Document, extra: dict[str, str]) -> OcrResponse:
        """POST the document once with the given parameter overrides.

        ``timeout_seconds`` caps the whole call, not each socket operation.

        Raises:
            BackendTransportFailure: timeout, connection error, HTTP status.
            ProviderProcessingError: body is not a recognisable OCR response.
        """
        timeout = self._settings.timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                response = await self._client.post(
                    self.endpoint,
                    data=self._form_fields(extra),
                    files={"file": (document.filename, document.data, PDF_CONTENT_TYPE)},
                    timeout=timeout,
                )
            response.raise_for_status()
        except TimeoutError as e:
            raise BackendTransportFailure(f"OCR request exceeded {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise BackendTransportFailure(f"OCR request failed: {e!r}") from e

        try:
            return OcrResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProviderProcessingError(f"unreadable OCR response: {e}") from e

    async def _extract(self, document: Document) -> ExtractionAttempt:
        if not self.available:
            raise BackendUnavailable("ocr", "no API key configured")

        result = OcrResponse()
        for label, extra in self.parameter_sets():
            logger.info("OCR try (%s) for %s", label, document.filename)
            result = await self._call(document, extra)
            if not result.reports_error:
                break
            logger.warning("OCR provider error (%s): %s", label, result.error_text)

        fragments = result.fragments
        text = "\n\n".join(fragments).strip()

        logger.info(
            "OCR extracted %d chars from %d pages: %s",
            len(text),
            len(fragments),
            document.filename,
        )

        if text:
            outcome = AttemptOutcome.SUCCEEDED
            error, kind = None, None
        elif result.reports_error:
            outcome = AttemptOutcome.FAILED
            error, kind = result.error_text, ErrorKind.PROVIDER_ERROR
        else:
            outcome = AttemptOutcome.INCONCLUSIVE
            error, kind = "no text recognised", ErrorKind.NO_TEXT

        return ExtractionAttempt(
            backend=self.name,
            outcome=outcome,
            text=text,
            page_count=len(fragments),
            error=error,
            error_kind=kind,
        )
