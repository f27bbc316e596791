"""Backend contract for the extraction waterfall.

Every backend exposes ``extract(document) -> ExtractionAttempt`` and never
raises: subclasses implement ``_extract`` and may raise any
:class:`~pdf_text_extractor.extractor.errors.ExtractionError`, which the
base class converts into a ``failed`` attempt at the backend boundary.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from pdf_text_extractor.extractor.errors import ExtractionError
from pdf_text_extractor.extractor.types import (
    AttemptOutcome,
    BackendName,
    Document,
    ErrorKind,
    ExtractionAttempt,
)

logger = logging.getLogger(__name__)


class ExtractionBackend(ABC):
    name: BackendName

    @property
    def available(self) -> bool:
        """False when the backend lacks configuration and must be skipped."""
        return True

    async def extract(self, document: Document) -> ExtractionAttempt:
        """Run the backend against *document*; never raises."""
        started = time.monotonic()
        try:
            attempt = await self._extract(document)
        except ExtractionError as exc:
            logger.warning(
                "%s backend failed for %s: %s",
                self.name.value,
                document.filename,
                exc.message,
            )
            attempt = ExtractionAttempt(
                backend=self.name,
                outcome=AttemptOutcome.FAILED,
                error=exc.message,
                error_kind=exc.kind,
            )
        except Exception as exc:
            logger.exception(
                "Unexpected error in %s backend for %s",
                self.name.value,
                document.filename,
            )
            attempt = ExtractionAttempt(
                backend=self.name,
                outcome=AttemptOutcome.FAILED,
                error=f"unexpected: {exc}",
                error_kind=ErrorKind.UNEXPECTED,
            )
        attempt.elapsed_seconds = time.monotonic() - started
        return attempt

    @abstractmethod
    async def _extract(self, document: Document) -> ExtractionAttempt:
        """Backend-specific extraction; may raise ExtractionError."""
        ...
