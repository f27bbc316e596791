"""Per-document PDF text extraction service with tiered fallback.

Orchestrates the three-tier extraction waterfall for a single PDF:

1. **Parse job** -- cloud parsing job; best quality, highest latency.
   Accepted when it returns any non-empty text.
2. **Local decode** -- embedded text via PyMuPDF/pdfplumber; fast and free
   but unreliable for scans. Accepted only when the text passes the
   script-ratio gate; rejected text is discarded, never merged.
3. **OCR** -- OCR.space upload with engine/language retries; slow and paid,
   most robust for scanned documents. Accepted when it returns any text.

Tiers run strictly in sequence and a later tier is never started once an
earlier one produced a good result. Unconfigured tiers are skipped. When
every tier is exhausted the result is still a success, with empty text.
"""

from __future__ import annotations

import logging
from typing import Optional

from pdf_text_extractor.config.settings import ExtractionSettings
from pdf_text_extractor.extractor.base import ExtractionBackend
from pdf_text_extractor.extractor.errors import QualityRejected
from pdf_text_extractor.extractor.quality import ensure_script_ratio
from pdf_text_extractor.extractor.types import (
    AttemptOutcome,
    Document,
    ErrorKind,
    ExtractionAttempt,
    ExtractionResult,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ExtractionResult",
    "extract_document",
]


def _accept(attempt: ExtractionAttempt, attempts: list[ExtractionAttempt]) -> ExtractionResult:
    return ExtractionResult(
        text=attempt.text.strip(),
        page_count=attempt.page_count,
        backend=attempt.backend,
        attempts=attempts,
    )


async def _run_tier(
    tier: int,
    backend: Optional[ExtractionBackend],
    document: Document,
    attempts: list[ExtractionAttempt],
) -> Optional[ExtractionAttempt]:
    """Run one tier if its backend is configured; record the attempt."""
    if backend is None or not backend.available:
        label = backend.name.value if backend is not None else "none"
        logger.info(
            "Tier %d (%s): unavailable, skipping for %s",
            tier,
            label,
            document.filename,
        )
        return None

    logger.info(
        "Tier %d (%s): attempting extraction for %s",
        tier,
        backend.name.value,
        document.filename,
    )
    attempt = await backend.extract(document)
    attempts.append(attempt)
    return attempt


def _log_fall_through(attempt: ExtractionAttempt, document: Document, next_tier: str) -> None:
    logger.warning(
        "%s %s for %s (%s), falling back to %s",
        attempt.backend.value,
        attempt.outcome.value,
        document.filename,
        attempt.error or "no text",
        next_tier,
    )


async def extract_document(
    document: Document,
    settings: ExtractionSettings,
    parse_job: Optional[ExtractionBackend],
    local: Optional[ExtractionBackend],
    ocr: Optional[ExtractionBackend],
) -> ExtractionResult:
    """Extract text from a single PDF using tiered fallback.

    Args:
        document: The uploaded PDF.
        settings: Script-ratio gate configuration.
        parse_job: Tier 1 backend (None or unavailable = skipped).
        local: Tier 2 backend.
        ocr: Tier 3 backend.

    Returns:
        ExtractionResult carrying the first acceptable text, or an empty
        result tagged ALL_BACKENDS_EXHAUSTED.
    """
    attempts: list[ExtractionAttempt] = []

    # --- Tier 1: cloud parse job ---

    attempt = await _run_tier(1, parse_job, document, attempts)
    if attempt is not None:
        if attempt.has_text:
            logger.info(
                "Extraction succeeded via parse job: %s (%d chars)",
                document.filename,
                len(attempt.text.strip()),
            )
            return _accept(attempt, attempts)
        _log_fall_through(attempt, document, "local decode")

    # --- Tier 2: local decode, gated by script ratio ---

    attempt = await _run_tier(2, local, document, attempts)
    if attempt is not None:
        if attempt.has_text:
            try:
                ratio = ensure_script_ratio(attempt.text, settings)
            except QualityRejected as exc:
                # Rejected text is dropped so it can never leak into the result
                attempt.outcome = AttemptOutcome.INCONCLUSIVE
                attempt.error = exc.message
                attempt.error_kind = exc.kind
                attempt.text = ""
                _log_fall_through(attempt, document, "OCR")
            else:
                logger.info(
                    "Extraction succeeded via local decode: %s "
                    "(%d chars, %d pages, script ratio %.3f)",
                    document.filename,
                    len(attempt.text),
                    attempt.page_count,
                    ratio,
                )
                return _accept(attempt, attempts)
        else:
            _log_fall_through(attempt, document, "OCR")

    # --- Tier 3: OCR ---

    attempt = await _run_tier(3, ocr, document, attempts)
    if attempt is not None:
        if attempt.has_text:
            logger.info(
                "Extraction succeeded via OCR: %s (%d chars, %d pages)",
                document.filename,
                len(attempt.text.strip()),
                attempt.page_count,
            )
            return _accept(attempt, attempts)
        logger.warning(
            "OCR %s for %s (%s)",
            attempt.outcome.value,
            document.filename,
            attempt.error or "no text",
        )

    # --- All tiers exhausted: empty but successful ---

    logger.warning(
        "No usable text found in %s after %d attempt(s): %s",
        document.filename,
        len(attempts),
        ", ".join(f"{a.backend.value}={a.outcome.value}" for a in attempts) or "none",
    )
    return ExtractionResult(
        attempts=attempts,
        error_kind=ErrorKind.ALL_BACKENDS_EXHAUSTED,
    )
