"""Request-level extraction entry point with fault isolation.

Wires the three backends to the tiered waterfall and exposes the single
inbound operation, ``ExtractionPipeline.extract_text``. Backend failures
never surface here -- they are absorbed at each backend's boundary and the
waterfall degrades to an empty-but-successful result. Only missing input
or an exception escaping the orchestrator produces a failure response.

Public API:
    ExtractionPipeline(extraction, parse_job, ocr, http_client)
        .extract_text(data, filename, content_type) -> ExtractTextResponse
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from pdf_text_extractor.config.settings import (
    ExtractionSettings,
    OcrSettings,
    ParseJobSettings,
)
from pdf_text_extractor.extractor.base import ExtractionBackend
from pdf_text_extractor.extractor.local_backend import LocalExtractionBackend
from pdf_text_extractor.extractor.ocr_backend import OcrBackend
from pdf_text_extractor.extractor.parse_job_backend import ParseJobBackend
from pdf_text_extractor.extractor.schemas import (
    INTERNAL_ERROR,
    NO_FILE_ERROR,
    ExtractTextResponse,
)
from pdf_text_extractor.extractor.service import extract_document
from pdf_text_extractor.extractor.types import PDF_CONTENT_TYPE, Document

logger = logging.getLogger(__name__)

__all__ = ["ExtractionPipeline", "ExtractTextResponse"]


class ExtractionPipeline:
    """Holds the configured backends for the lifetime of the process.

    The ``httpx.AsyncClient`` is owned by the caller (CLI or API lifespan).
    Backends may be passed explicitly to replace the ones built from
    settings.
    """

    def __init__(
        self,
        extraction: ExtractionSettings,
        parse_job: ParseJobSettings,
        ocr: OcrSettings,
        http_client: httpx.AsyncClient,
        *,
        parse_job_backend: Optional[ExtractionBackend] = None,
        local_backend: Optional[ExtractionBackend] = None,
        ocr_backend: Optional[ExtractionBackend] = None,
    ):
        self.settings = extraction
        self.parse_job_backend = parse_job_backend or ParseJobBackend(parse_job, http_client)
        self.local_backend = local_backend or LocalExtractionBackend(extraction)
        self.ocr_backend = ocr_backend or OcrBackend(ocr, http_client)

        logger.info(
            "Extraction pipeline ready -- parse_job=%s, ocr=%s, threshold=%.2f",
            "configured" if self.parse_job_backend.available else "unavailable",
            "configured" if self.ocr_backend.available else "unavailable",
            extraction.script_ratio_threshold,
        )

    async def extract_text(
        self,
        data: Optional[bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> ExtractTextResponse:
        """Extract plain text from one uploaded PDF.

        Args:
            data: Raw PDF bytes; None or empty means no file was provided.
            filename: Original upload filename.
            content_type: Declared MIME type.

        Returns:
            ``success=True`` with ``text`` (possibly empty) and ``pages`` for
            any provided document; ``success=False`` with ``error`` only for
            missing input or an unexpected internal fault.
        """
        if not data:
            logger.warning("Extraction request without a PDF payload")
            return ExtractTextResponse.failure(NO_FILE_ERROR)

        document = Document(
            data=data,
            filename=filename or "document.pdf",
            content_type=content_type or PDF_CONTENT_TYPE,
        )
        logger.info(
            "Extracting text from %s (%d bytes, %s)",
            document.filename,
            document.size,
            document.content_type,
        )

        try:
            result = await extract_document(
                document,
                self.settings,
                parse_job=self.parse_job_backend,
                local=self.local_backend,
                ocr=self.ocr_backend,
            )
        except Exception:
            logger.exception("Fatal error extracting %s", document.filename)
            return ExtractTextResponse.failure(INTERNAL_ERROR)

        logger.info(
            "ExtractText done for %s: %d chars, %d pages via %s (%d attempts)",
            document.filename,
            result.char_count,
            result.page_count,
            result.backend.value if result.backend else "none",
            len(result.attempts),
        )
        return ExtractTextResponse.ok(
            text=result.text,
            pages=result.page_count,
            backend=result.backend.value if result.backend else None,
        )
