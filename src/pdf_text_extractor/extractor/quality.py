"""Script-ratio quality gate for locally decoded PDF text.

Scanned or badly encoded PDFs often decode to Latin-looking noise (broken
font maps, reversed glyph runs) instead of the expected script. The gate
measures how much of a sample falls inside the target script's Unicode
ranges and rejects text below a configured threshold so the waterfall can
move on to OCR.

- ``script_ratio``: pure ratio in [0, 1].
- ``ensure_script_ratio``: raises ``QualityRejected`` below the threshold.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from pdf_text_extractor.config.settings import ExtractionSettings
from pdf_text_extractor.extractor.errors import QualityRejected

logger = logging.getLogger(__name__)


def script_ratio(text: str, script_ranges: Iterable[Sequence[int]]) -> float:
    """Return the fraction of characters in *text* inside *script_ranges*.

    Every character counts toward the denominator, including whitespace and
    punctuation. The denominator is at least 1 so empty text yields 0.0.

    Args:
        text: Text sample to classify.
        script_ranges: Inclusive ``(first, last)`` code point pairs.

    Returns:
        Ratio between 0.0 and 1.0.
    """
    ranges = [(int(first), int(last)) for first, last in script_ranges]
    matches = sum(
        1
        for ch in text
        if any(first <= ord(ch) <= last for first, last in ranges)
    )
    return matches / max(len(text), 1)


def ensure_script_ratio(text: str, settings: ExtractionSettings) -> float:
    """Return the script ratio of *text* or raise if it is below threshold.

    Raises:
        QualityRejected: ratio < ``settings.script_ratio_threshold``.
    """
    ratio = script_ratio(text, settings.script_ranges)
    logger.debug("Script ratio %.3f over %d chars", ratio, len(text))
    if ratio < settings.script_ratio_threshold:
        raise QualityRejected(ratio, settings.script_ratio_threshold)
    return ratio
