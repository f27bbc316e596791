"""Offline PDF text decoding using PyMuPDF, with pdfplumber as a fallback.

Decodes embedded/selectable text straight from the PDF bytes -- fast and
free, but scanned documents come back empty or as noise, so the
orchestrator gates the output with the script-ratio check.

The decoding library is loaded lazily, once per process, through a
guarded initializer. Loading strategies are tried in order (PyMuPDF, then
pdfplumber); the first that loads is cached for the process lifetime. A
failed load is not cached, so a later call tries the strategies again.
"""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol

from pdf_text_extractor.config.settings import ExtractionSettings
from pdf_text_extractor.extractor.base import ExtractionBackend
from pdf_text_extractor.extractor.errors import (
    BackendDecodeFailure,
    BackendUnavailable,
    ExtractionError,
)
from pdf_text_extractor.extractor.types import (
    AttemptOutcome,
    BackendName,
    Document,
    ErrorKind,
    ExtractionAttempt,
)

logger = logging.getLogger(__name__)


@dataclass
class DecodedPdf:
    text: str
    page_count: int


class PdfDecoder(Protocol):
    name: str

    def decode(self, data: bytes) -> DecodedPdf: ...


class PymupdfDecoder:
    """Decode page text with PyMuPDF's plain-text extraction."""

    name = "pymupdf"

    def __init__(self, module):
        self._pymupdf = module

    def decode(self, data: bytes) -> DecodedPdf:
        try:
            doc = self._pymupdf.open(stream=data, filetype="pdf")
        except Exception as e:
            raise BackendDecodeFailure(f"cannot_open: {e}") from e

        with doc:
            if doc.needs_pass:
                raise BackendDecodeFailure("encrypted")
            pages = [page.get_text("text") for page in doc]
            return DecodedPdf(text="\n".join(pages), page_count=len(pages))


class PdfplumberDecoder:
    """Decode page text with pdfplumber (pdfminer.six underneath)."""

    name = "pdfplumber"

    def __init__(self, module):
        self._pdfplumber = module

    def decode(self, data: bytes) -> DecodedPdf:
        try:
            with self._pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            raise BackendDecodeFailure(str(e)) from e
        return DecodedPdf(text="\n".join(pages), page_count=len(pages))


def _load_pymupdf() -> PdfDecoder:
    import pymupdf

    return PymupdfDecoder(pymupdf)


def _load_pdfplumber() -> PdfDecoder:
    import pdfplumber

    return PdfplumberDecoder(pdfplumber)


LOADING_STRATEGIES: list[Callable[[], PdfDecoder]] = [
    _load_pymupdf,
    _load_pdfplumber,
]

_decoder: Optional[PdfDecoder] = None
_decoder_lock = threading.Lock()


def get_decoder() -> PdfDecoder:
    """Return the process-wide decoder, loading it on first use.

    Raises:
        BackendUnavailable: every loading strategy failed. Nothing is
            cached, so the next call retries.
    """
    global _decoder
    if _decoder is not None:
        return _decoder

    with _decoder_lock:
        if _decoder is not None:
            return _decoder

        errors: list[str] = []
        for strategy in LOADING_STRATEGIES:
            try:
                decoder = strategy()
            except Exception as e:
                logger.warning(
                    "PDF decoder strategy %s failed to load: %s",
                    strategy.__name__,
                    e,
                )
                errors.append(f"{strategy.__name__}: {e}")
                continue
            logger.info("Loaded local PDF decoder: %s", decoder.name)
            _decoder = decoder
            return _decoder

    raise BackendUnavailable("local", "; ".join(errors) or "no loading strategy")


def reset_decoder() -> None:
    """Forget the cached decoder (used by tests)."""
    global _decoder
    with _decoder_lock:
        _decoder = None


class LocalExtractionBackend(ExtractionBackend):
    """Load the decoder and decode embedded text in a worker thread.

    Both steps share one bounded wait (``local_decode_timeout_seconds``).

    Judges only decode success; text quality is the orchestrator's call.
    """

    name = BackendName.LOCAL

    def __init__(
        self,
        settings: ExtractionSettings,
        decoder_factory: Callable[[], PdfDecoder] = get_decoder,
    ):
        self._settings = settings
        self._decoder_factory = decoder_factory

    def _load_and_decode(self, data: bytes) -> tuple[PdfDecoder, DecodedPdf]:
        # First use imports the decoding library; keep it off the event loop
        decoder = self._decoder_factory()
        return decoder, decoder.decode(data)

    async def _extract(self, document: Document) -> ExtractionAttempt:
        try:
            decoder, decoded = await asyncio.wait_for(
                asyncio.to_thread(self._load_and_decode, document.data),
                timeout=self._settings.local_decode_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise BackendDecodeFailure(
                f"decode exceeded {self._settings.local_decode_timeout_seconds:g}s"
            ) from e
        except ExtractionError:
            raise
        except Exception as e:
            raise BackendDecodeFailure(str(e)) from e

        text = decoded.text.strip()
        logger.info(
            "%s decoded %d chars from %d pages: %s",
            decoder.name,
            len(text),
            decoded.page_count,
            document.filename,
        )
        if not text:
            return ExtractionAttempt(
                backend=self.name,
                outcome=AttemptOutcome.INCONCLUSIVE,
                page_count=decoded.page_count,
                error="no embedded text",
                error_kind=ErrorKind.NO_TEXT,
            )
        return ExtractionAttempt(
            backend=self.name,
            outcome=AttemptOutcome.SUCCEEDED,
            text=text,
            page_count=decoded.page_count,
        )
